from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..deps import UserContext, ensure_manager, get_db, get_ledger, get_user
from ..errors import NotFound
from ..ledger import MembershipLedger
from ..models import Club, Event
from ..schemas import (
    ClubCreate,
    ClubOut,
    EventCreate,
    EventOut,
    JoinRequest,
    MemberOut,
    MembershipOut,
    MemberStatusUpdate,
)
from ..services import serialize_membership

router = APIRouter(tags=["clubs"])


@router.post("/clubs", response_model=ClubOut)
def create_club(
    payload: ClubCreate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_user),
):
    now = datetime.utcnow()
    club = Club(
        name=payload.name,
        description=payload.description,
        category=payload.category,
        location=payload.location,
        membership_fee=payload.membership_fee,
        manager_email=user.email,
        status="pending",
        total_members=0,
        created_at=now,
        updated_at=now,
    )
    db.add(club)
    db.flush()
    db.refresh(club)
    return ClubOut.model_validate(club)


@router.get("/clubs/{club_id}", response_model=ClubOut)
def get_club(club_id: int, db: Session = Depends(get_db)):
    club = db.get(Club, club_id)
    if not club:
        raise NotFound("Club not found")
    return ClubOut.model_validate(club)


@router.post("/clubs/{club_id}/join", response_model=MembershipOut)
def join_club(
    club_id: int,
    payload: JoinRequest,
    ledger: MembershipLedger = Depends(get_ledger),
):
    membership = ledger.join_free_club(club_id, payload.user_email)
    return serialize_membership(membership)


@router.get("/clubs/{club_id}/members", response_model=list[MemberOut])
def list_members(
    club_id: int,
    status: str | None = Query(default=None),
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_user),
    ledger: MembershipLedger = Depends(get_ledger),
):
    ensure_manager(db, club_id, user)
    return ledger.list_members(club_id, status)


@router.patch("/clubs/{club_id}/members/{member_id}/status", response_model=MembershipOut)
def set_member_status(
    club_id: int,
    member_id: int,
    payload: MemberStatusUpdate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_user),
    ledger: MembershipLedger = Depends(get_ledger),
):
    ensure_manager(db, club_id, user)
    membership = ledger.set_member_status(member_id, payload.status, club_id=club_id)
    return serialize_membership(membership)


@router.post("/clubs/{club_id}/events", response_model=EventOut)
def create_club_event(
    club_id: int,
    payload: EventCreate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_user),
):
    ensure_manager(db, club_id, user)
    data = payload.model_dump()
    data["club_id"] = club_id
    # Club events are always free.
    data["is_paid"] = False
    data["event_fee"] = 0
    event = Event(**data, attendee_count=0, created_at=datetime.utcnow())
    db.add(event)
    db.flush()
    db.refresh(event)
    return EventOut.model_validate(event)
