from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from .db import get_session
from .errors import Forbidden, NotFound, ValidationFailed
from .gateway import StripeGateway, default_gateway
from .ledger import MembershipLedger
from .models import USER_ROLES, Club
from .payments import PaymentReconciler
from .registrations import EventRegistrations


class UserContext:
    def __init__(self, email: str, role: str):
        self.email = email
        self.role = role


def get_db():
    with get_session() as session:
        yield session


def get_user(
    x_user_email: str | None = Header(default=None),
    x_user_role: str = Header(default="member"),
) -> UserContext:
    if not x_user_email:
        raise HTTPException(status_code=401, detail="User header missing")
    role = x_user_role.lower()
    if role not in USER_ROLES:
        raise ValidationFailed(f"X-User-Role must be one of {', '.join(USER_ROLES)}")
    return UserContext(email=x_user_email.strip().lower(), role=role)


def get_gateway() -> StripeGateway:
    return default_gateway()


def get_ledger(db: Session = Depends(get_db)) -> MembershipLedger:
    return MembershipLedger(db)


def get_registrations(db: Session = Depends(get_db)) -> EventRegistrations:
    return EventRegistrations(db)


def get_reconciler(
    db: Session = Depends(get_db),
    gateway: StripeGateway = Depends(get_gateway),
) -> PaymentReconciler:
    return PaymentReconciler(db, gateway)


def ensure_admin(user: UserContext) -> None:
    if user.role != "admin":
        raise Forbidden("Admin access required")


def ensure_manager(db: Session, club_id: int, user: UserContext) -> Club:
    club = db.get(Club, club_id)
    if not club:
        raise NotFound("Club not found")
    if user.role == "admin":
        return club
    if club.manager_email != user.email:
        raise Forbidden("You are not the manager of this club")
    return club
