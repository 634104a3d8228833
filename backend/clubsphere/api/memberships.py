from fastapi import APIRouter, Depends, Query

from ..deps import get_ledger
from ..ledger import MembershipLedger
from ..services import normalize_email

router = APIRouter(tags=["memberships"])


@router.get("/memberships/check")
def check_membership(
    club_id: int = Query(alias="clubId"),
    user_email: str = Query(alias="userEmail"),
    ledger: MembershipLedger = Depends(get_ledger),
):
    return {"isMember": ledger.check_membership(club_id, normalize_email(user_email))}


@router.delete("/memberships/{club_id}")
def leave_club(
    club_id: int,
    user_email: str = Query(alias="userEmail"),
    ledger: MembershipLedger = Depends(get_ledger),
):
    ledger.leave_club(club_id, normalize_email(user_email))
    return {"success": True, "message": "Left the club"}
