"""
회비 엔진 예외

라우터에서 HTTPException으로 변환된다.
"""


class BillingError(Exception):
    """회비 엔진 기본 예외"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(BillingError, LookupError):
    """클럽/선수/카테고리/납부 기록 없음"""

    status_code = 404


class InvalidConfig(BillingError, ValueError):
    """저장할 수 없는 회비 설정"""

    status_code = 400


class PersistenceError(BillingError):
    """저장소 읽기/쓰기 실패"""

    status_code = 502


class PermissionDenied(BillingError):
    """회계 권한 없음"""

    status_code = 403
