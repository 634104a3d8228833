from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..deps import UserContext, ensure_admin, get_db, get_ledger, get_reconciler, get_registrations, get_user
from ..errors import NotFound
from ..ledger import MembershipLedger
from ..models import User
from ..payments import PaymentReconciler
from ..registrations import EventRegistrations
from ..schemas import MembershipOut, PaymentOut, RegistrationOut, RoleUpdate, UserCreate, UserOut
from ..services import normalize_email

router = APIRouter(tags=["users"])


@router.post("/users")
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    existing = db.execute(select(User).where(User.email == payload.email)).scalar_one_or_none()
    if existing:
        return {"message": "user exists", "insertedId": None}

    user = User(
        email=payload.email,
        display_name=payload.display_name,
        photo_url=payload.photo_url,
        role=payload.role,
    )
    db.add(user)
    db.flush()
    db.refresh(user)
    return {"message": "user created", "insertedId": user.id}


@router.get("/users/{email}/role")
def get_role(email: str, db: Session = Depends(get_db)):
    user = db.execute(select(User).where(User.email == email.strip().lower())).scalar_one_or_none()
    return {"role": (user.role if user else None) or "member"}


@router.patch("/users/{user_id}/role", response_model=UserOut)
def update_role(
    user_id: int,
    payload: RoleUpdate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_user),
):
    ensure_admin(user)
    target = db.get(User, user_id)
    if not target:
        raise NotFound("User not found")
    target.role = payload.role
    db.flush()
    db.refresh(target)
    return UserOut.model_validate(target)


@router.get("/users/{email}/memberships", response_model=list[MembershipOut])
def user_memberships(email: str, ledger: MembershipLedger = Depends(get_ledger)):
    return ledger.memberships_for_user(normalize_email(email, "email"))


@router.get("/users/{email}/registrations", response_model=list[RegistrationOut])
def user_registrations(email: str, registrations: EventRegistrations = Depends(get_registrations)):
    return registrations.registrations_for_user(normalize_email(email, "email"))


@router.get("/users/{email}/payments", response_model=list[PaymentOut])
def user_payments(email: str, reconciler: PaymentReconciler = Depends(get_reconciler)):
    payments = reconciler.payments_for_user(normalize_email(email, "email"))
    return [PaymentOut.model_validate(payment) for payment in payments]
