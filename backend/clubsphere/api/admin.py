import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..deps import UserContext, ensure_admin, get_db, get_user
from ..errors import NotFound
from ..models import Club
from ..schemas import ClubOut, ClubStatusUpdate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin"])


@router.patch("/admin/clubs/{club_id}/status", response_model=ClubOut)
def set_club_status(
    club_id: int,
    payload: ClubStatusUpdate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_user),
):
    ensure_admin(user)
    club = db.get(Club, club_id)
    if not club:
        raise NotFound("Club not found")
    previous = club.status
    club.status = payload.status
    db.flush()
    db.refresh(club)
    logger.info("club %s status %s -> %s by %s", club.id, previous, club.status, user.email)
    return ClubOut.model_validate(club)
