import logging
from datetime import datetime

from sqlalchemy import case, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .errors import Conflict, NotFound
from .ledger import MembershipLedger
from .models import Club, Event, EventRegistration
from .schemas import RegistrationCheck, RegistrationOut, RegistrationReport, ReportRow, ReportSummary
from .services import serialize_registration

logger = logging.getLogger(__name__)

UNKNOWN_EVENT = "Unknown Event"
UNKNOWN_CLUB = "Unknown Club"


class EventRegistrations:
    """Registration lifecycle per (event, user): registered -> cancelled.

    Cancelled rows are kept. A later ``register`` adds a new row next to them.
    """

    def __init__(self, db: Session, ledger: MembershipLedger | None = None):
        self.db = db
        self.ledger = ledger or MembershipLedger(db)

    def _event(self, event_id: int) -> Event:
        event = self.db.get(Event, event_id)
        if not event:
            raise NotFound("Event not found")
        return event

    def _active_registration(self, event_id: int, user_email: str) -> EventRegistration | None:
        return (
            self.db.execute(
                select(EventRegistration)
                .where(
                    EventRegistration.event_id == event_id,
                    EventRegistration.user_email == user_email,
                    EventRegistration.status == "registered",
                )
                .order_by(EventRegistration.registered_at.desc(), EventRegistration.id.desc())
            )
            .scalars()
            .first()
        )

    def can_register(self, event_id: int, user_email: str) -> RegistrationCheck:
        event = self._event(event_id)
        is_member = self.ledger.check_membership(event.club_id, user_email)
        already = self._active_registration(event_id, user_email) is not None
        return RegistrationCheck(
            isClubMember=is_member,
            alreadyRegistered=already,
            canRegister=is_member and not already,
        )

    def register(self, event_id: int, user_email: str) -> EventRegistration:
        event = self._event(event_id)
        if not self.ledger.check_membership(event.club_id, user_email):
            raise Conflict("You must be an active member of this club to register for its events")
        if self._active_registration(event_id, user_email):
            raise Conflict("Already registered for this event")

        registration = EventRegistration(
            event_id=event.id,
            club_id=event.club_id,
            user_email=user_email,
            status="registered",
            registered_at=datetime.utcnow(),
        )
        self.db.add(registration)
        try:
            self.db.flush()
        except IntegrityError as exc:
            # A concurrent request registered the same pair after our check.
            raise Conflict("Already registered for this event") from exc

        self._adjust_attendees(event.id, Event.attendee_count + 1)
        logger.info(
            "registration %s created event=%s user=%s", registration.id, event.id, user_email
        )
        return registration

    def cancel(self, event_id: int, user_email: str) -> EventRegistration:
        registration = self._active_registration(event_id, user_email)
        if not registration:
            raise NotFound("No active registration found for this event")

        registration.status = "cancelled"
        registration.cancelled_at = datetime.utcnow()
        self.db.flush()
        self._adjust_attendees(
            event_id,
            case((Event.attendee_count > 0, Event.attendee_count - 1), else_=0),
        )
        logger.info("registration %s cancelled event=%s user=%s", registration.id, event_id, user_email)
        return registration

    def _adjust_attendees(self, event_id: int, expression) -> None:
        self.db.execute(
            update(Event)
            .where(Event.id == event_id)
            .values(attendee_count=expression)
            .execution_options(synchronize_session=False)
        )
        self.db.get(Event, event_id, populate_existing=True)

    def attendees(self, event_id: int) -> list[str]:
        self._event(event_id)
        return list(
            self.db.execute(
                select(EventRegistration.user_email)
                .where(
                    EventRegistration.event_id == event_id,
                    EventRegistration.status == "registered",
                )
                .order_by(EventRegistration.registered_at.asc())
            ).scalars()
        )

    def registrations_for_user(self, user_email: str) -> list[RegistrationOut]:
        rows = self.db.execute(
            select(EventRegistration, Event.title)
            .outerjoin(Event, Event.id == EventRegistration.event_id)
            .where(EventRegistration.user_email == user_email)
            .order_by(EventRegistration.registered_at.desc())
        ).all()
        return [serialize_registration(reg, title or UNKNOWN_EVENT) for reg, title in rows]

    def manager_report(self, manager_email: str) -> RegistrationReport:
        clubs = (
            self.db.execute(select(Club).where(Club.manager_email == manager_email))
            .scalars()
            .all()
        )
        if not clubs:
            return RegistrationReport(
                registrations=[], summary=ReportSummary(total=0, active=0, cancelled=0)
            )

        club_ids = [club.id for club in clubs]
        events = (
            self.db.execute(select(Event).where(Event.club_id.in_(club_ids)))
            .scalars()
            .all()
        )
        event_ids = [event.id for event in events]
        registrations = (
            self.db.execute(
                select(EventRegistration)
                .where(
                    (EventRegistration.club_id.in_(club_ids))
                    | (EventRegistration.event_id.in_(event_ids))
                )
                .order_by(EventRegistration.registered_at.desc())
            )
            .scalars()
            .all()
        )

        events_by_id = {event.id: event for event in events}
        clubs_by_id = {club.id: club for club in clubs}
        rows = []
        for reg in registrations:
            event = events_by_id.get(reg.event_id)
            club = clubs_by_id.get(reg.club_id)
            rows.append(
                ReportRow(
                    id=reg.id,
                    event_id=reg.event_id,
                    event_title=event.title if event else UNKNOWN_EVENT,
                    club_id=reg.club_id,
                    club_name=club.name if club else UNKNOWN_CLUB,
                    user_email=reg.user_email,
                    status=reg.status,
                    registered_at=reg.registered_at,
                )
            )

        active = sum(1 for row in rows if row.status == "registered")
        cancelled = sum(1 for row in rows if row.status == "cancelled")
        return RegistrationReport(
            registrations=rows,
            summary=ReportSummary(total=len(rows), active=active, cancelled=cancelled),
        )
