from .errors import ValidationFailed
from .models import EventRegistration, Membership
from .schemas import MembershipOut, RegistrationOut


def normalize_email(value: str | None, field: str = "userEmail") -> str:
    cleaned = value.strip().lower() if isinstance(value, str) else ""
    if not cleaned:
        raise ValidationFailed(f"{field} is required")
    if "@" not in cleaned:
        raise ValidationFailed(f"{field} must be a valid email")
    return cleaned


def serialize_registration(registration: EventRegistration, event_title: str | None = None) -> RegistrationOut:
    return RegistrationOut(
        id=registration.id,
        event_id=registration.event_id,
        event_title=event_title,
        club_id=registration.club_id,
        user_email=registration.user_email,
        status=registration.status,
        registered_at=registration.registered_at,
        cancelled_at=registration.cancelled_at,
    )


def serialize_membership(membership: Membership, club_name: str | None = None) -> MembershipOut:
    return MembershipOut(
        id=membership.id,
        club_id=membership.club_id,
        club_name=club_name,
        user_email=membership.user_email,
        status=membership.status,
        joined_at=membership.joined_at,
        payment_ref=membership.payment_ref,
    )
