"""
Billing Dependencies

인증 및 회비 권한 체크 의존성
"""

from enum import Enum
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from loguru import logger

from app.config import server_config
from database.store import COLLABORATORS
from .errors import PermissionDenied


class CollaboratorRole(str, Enum):
    """클럽 협업자 역할"""
    club_admin = "club_admin"   # 클럽 관리자
    accountant = "accountant"   # 회계 담당
    delegate = "delegate"       # 대표/위원
    read_only = "read_only"     # 조회 전용
    player = "player"           # 선수 본인


# 역할별 회비 권한 (view, manage)
ROLE_PERMISSIONS = {
    CollaboratorRole.club_admin: (True, True),
    CollaboratorRole.accountant: (True, True),
    CollaboratorRole.delegate: (True, False),
    CollaboratorRole.read_only: (True, False),
    CollaboratorRole.player: (False, False),
}

# 테스트용 기본 협업자 (CLUB_TEST_MODE=1)
TEST_MEMBER_CONFIG = {
    "member_id": "00000000-0000-0000-0000-000000000001",
    "full_name": "테스트 관리자",
    "role": CollaboratorRole.club_admin,
    "player_id": None
}


class ClubMemberContext:
    """클럽 협업자 컨텍스트"""

    def __init__(
        self,
        member_id: str,
        club_id: str,
        role: CollaboratorRole,
        full_name: str = "",
        player_id: Optional[str] = None
    ):
        self.member_id = member_id
        self.club_id = club_id
        self.role = role
        self.full_name = full_name
        self.player_id = player_id

    def can_view_finances(self) -> bool:
        return ROLE_PERMISSIONS.get(self.role, (False, False))[0]

    def can_manage_finances(self) -> bool:
        return ROLE_PERMISSIONS.get(self.role, (False, False))[1]

    def can_view_player(self, player_id: str) -> bool:
        """선수 본인은 자기 계정만 조회 가능"""
        if self.can_view_finances():
            return True
        return self.role == CollaboratorRole.player and self.player_id == player_id

    def check_player_access(self, player_id: str) -> None:
        if not self.can_view_player(player_id):
            raise PermissionDenied("다른 선수의 회비 정보는 조회할 수 없습니다")


async def get_current_club_member(club_id: str, request: Request) -> ClubMemberContext:
    """
    현재 로그인한 협업자 정보 조회 (경로의 club_id 기준)

    테스트 모드:
    - 환경변수 CLUB_TEST_MODE=1 일 때만 허용
    - 쿼리 파라미터 ?test=0 으로 해당 요청만 해제
    - 클럽 관리자로 자동 로그인
    """
    from database.supabase_client import get_supabase_client

    is_test_mode = server_config.club_test_mode and request.query_params.get("test", "1") == "1"
    if is_test_mode:
        return ClubMemberContext(
            member_id=TEST_MEMBER_CONFIG["member_id"],
            club_id=club_id,
            role=TEST_MEMBER_CONFIG["role"],
            full_name=TEST_MEMBER_CONFIG["full_name"],
            player_id=TEST_MEMBER_CONFIG["player_id"]
        )

    # 1. 인증 토큰 확인
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="인증이 필요합니다"
        )

    token = auth_header.split(" ")[1]

    try:
        # 2. Supabase에서 사용자 정보 조회
        supabase = get_supabase_client()
        user_response = supabase.auth.get_user(token)

        if not user_response or not user_response.user:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="유효하지 않은 토큰입니다"
            )

        # 3. collaborators 테이블에서 클럽 역할 조회
        collaborator_response = supabase.table(COLLABORATORS).select(
            "id, role, full_name, player_id"
        ).eq("club_id", club_id).eq("user_id", user_response.user.id).limit(1).execute()

        rows = collaborator_response.data or []
        if not rows:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="클럽 협업자 등록이 필요합니다"
            )

        collaborator = rows[0]
        return ClubMemberContext(
            member_id=collaborator["id"],
            club_id=club_id,
            role=CollaboratorRole(collaborator["role"]),
            full_name=collaborator.get("full_name") or "",
            player_id=collaborator.get("player_id")
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.warning(f"인증 오류: club={club_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"인증 오류: {str(e)}"
        )


def require_finance_view(member: ClubMemberContext = Depends(get_current_club_member)) -> ClubMemberContext:
    """회비 조회 권한 필요"""
    if not member.can_view_finances():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="회비 조회 권한이 필요합니다"
        )
    return member


def require_finance_manage(member: ClubMemberContext = Depends(get_current_club_member)) -> ClubMemberContext:
    """회비 관리 권한 필요 (club_admin/accountant)"""
    if not member.can_manage_finances():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="회비 관리 권한이 필요합니다"
        )
    return member
