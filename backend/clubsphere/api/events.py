from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..deps import get_db, get_registrations
from ..errors import NotFound
from ..models import Event
from ..registrations import EventRegistrations
from ..schemas import EventOut, JoinRequest, RegistrationCheck
from ..services import normalize_email, serialize_registration

router = APIRouter(tags=["events"])


@router.get("/events/{event_id}", response_model=EventOut)
def get_event(event_id: int, db: Session = Depends(get_db)):
    event = db.get(Event, event_id)
    if not event:
        raise NotFound("Event not found")
    return EventOut.model_validate(event)


@router.get("/events/{event_id}/attendees")
def list_attendees(event_id: int, registrations: EventRegistrations = Depends(get_registrations)):
    attendees = registrations.attendees(event_id)
    return {"attendees": attendees, "count": len(attendees)}


@router.get("/events/{event_id}/can-register", response_model=RegistrationCheck)
def can_register(
    event_id: int,
    user_email: str = Query(alias="userEmail"),
    registrations: EventRegistrations = Depends(get_registrations),
):
    return registrations.can_register(event_id, normalize_email(user_email))


@router.post("/events/{event_id}/register")
def register(
    event_id: int,
    payload: JoinRequest,
    registrations: EventRegistrations = Depends(get_registrations),
):
    registration = registrations.register(event_id, payload.user_email)
    return {
        "success": True,
        "message": "Registered for event",
        "registration": serialize_registration(registration),
    }


@router.delete("/events/{event_id}/cancel-registration")
def cancel_registration(
    event_id: int,
    user_email: str = Query(alias="userEmail"),
    registrations: EventRegistrations = Depends(get_registrations),
):
    registration = registrations.cancel(event_id, normalize_email(user_email))
    return {
        "success": True,
        "message": "Registration cancelled",
        "registration": serialize_registration(registration),
    }
