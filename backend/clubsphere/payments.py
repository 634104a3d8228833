"""Payment reconciliation.

Turns a successful gateway payment into exactly one ``completed`` payment row
and one active membership. Verification may be repeated (page refresh,
webhook retry); a payment already recorded for the reference short-circuits
with no side effects, and the unique ``gateway_ref`` constraint catches the
concurrent case.
"""

import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .config import settings
from .errors import Conflict, NotFound, UpstreamFailure, ValidationFailed
from .gateway import CheckoutSession, StripeGateway
from .ledger import MembershipLedger
from .models import OPEN_CLUB_STATUSES, Club, Payment
from .schemas import ClubRevenue, PaymentOut, VerificationOut

logger = logging.getLogger(__name__)

REFERENCE_PREFIXES = ("cs_", "pi_")
CENTS = Decimal("100")


def to_minor_units(amount: Decimal) -> int:
    return int((amount * CENTS).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_major_units(amount_minor: int) -> Decimal:
    return (Decimal(amount_minor) / CENTS).quantize(Decimal("0.01"))


class PaymentReconciler:
    def __init__(
        self,
        db: Session,
        gateway: StripeGateway,
        ledger: Optional[MembershipLedger] = None,
        currency: Optional[str] = None,
    ):
        self.db = db
        self.gateway = gateway
        self.ledger = ledger or MembershipLedger(db)
        self.currency = currency or settings.currency

    def start_checkout(
        self,
        user_email: str,
        amount,
        club_id: int,
        club_name: Optional[str] = None,
    ) -> CheckoutSession:
        try:
            amount = Decimal(str(amount))
        except InvalidOperation as exc:
            raise ValidationFailed("amount must be a number") from exc
        if amount <= 0:
            raise ValidationFailed("amount must be greater than zero")

        club = self.db.get(Club, club_id)
        if not club:
            raise NotFound("Club not found")
        if club.status not in OPEN_CLUB_STATUSES:
            raise NotFound("Club not available")
        if club.membership_fee and Decimal(club.membership_fee) > 0 and amount != Decimal(club.membership_fee):
            raise ValidationFailed("amount does not match the club membership fee")
        if self.ledger.check_membership(club_id, user_email):
            raise Conflict("Already a member of this club")

        session = self.gateway.create_checkout_session(
            amount_minor=to_minor_units(amount),
            currency=self.currency,
            product_name=f"{club_name or club.name} membership",
            customer_email=user_email,
            metadata={"userEmail": user_email, "clubId": str(club_id)},
        )
        logger.info(
            "checkout started session=%s user=%s club=%s amount=%s",
            session.id,
            user_email,
            club_id,
            amount,
        )
        return session

    def _recorded(self, *references: Optional[str]) -> Optional[Payment]:
        refs = [ref for ref in references if ref]
        if not refs:
            return None
        return (
            self.db.execute(
                select(Payment).where(
                    or_(Payment.gateway_ref.in_(refs), Payment.payment_intent_ref.in_(refs))
                )
            )
            .scalars()
            .first()
        )

    def _already_processed(self, payment: Payment) -> VerificationOut:
        return VerificationOut(
            success=True,
            message="Payment already verified",
            already_processed=True,
            payment=PaymentOut.model_validate(payment),
        )

    def verify_payment(self, reference: str) -> VerificationOut:
        reference = (reference or "").strip()
        if not reference.startswith(REFERENCE_PREFIXES):
            raise ValidationFailed("Invalid payment reference")

        existing = self._recorded(reference)
        if existing:
            return self._already_processed(existing)

        result = self.gateway.retrieve(reference)
        if not result.paid:
            logger.info("payment %s not completed yet", reference)
            return VerificationOut(success=False, message="Payment not completed")

        existing = self._recorded(result.reference, result.payment_intent)
        if existing:
            return self._already_processed(existing)

        user_email = (result.metadata.get("userEmail") or "").strip().lower()
        try:
            club_id = int(result.metadata.get("clubId"))
        except (TypeError, ValueError):
            club_id = None
        if not user_email or club_id is None:
            raise UpstreamFailure("Payment metadata is missing userEmail or clubId")
        if not self.db.get(Club, club_id):
            raise NotFound("Club not found")

        now = datetime.utcnow()
        payment = Payment(
            user_email=user_email,
            club_id=club_id,
            amount=to_major_units(result.amount_minor),
            currency=result.currency,
            gateway_ref=result.reference,
            payment_intent_ref=result.payment_intent,
            status="completed",
            created_at=now,
            completed_at=now,
        )
        self.db.add(payment)
        try:
            self.db.flush()
        except IntegrityError:
            # Another verification for the same reference won the insert.
            self.db.rollback()
            existing = self._recorded(result.reference, result.payment_intent)
            if not existing:
                raise
            return self._already_processed(existing)

        self.ledger.upsert_active_membership(club_id, user_email, result.reference)
        logger.info(
            "payment %s reconciled user=%s club=%s amount=%s",
            result.reference,
            user_email,
            club_id,
            payment.amount,
        )
        return VerificationOut(
            success=True,
            message="Payment verified and membership activated",
            payment=PaymentOut.model_validate(payment),
        )

    def payments_for_user(self, user_email: str) -> list[Payment]:
        return list(
            self.db.execute(
                select(Payment)
                .where(Payment.user_email == user_email)
                .order_by(Payment.created_at.desc())
            ).scalars()
        )

    def club_revenue(self, manager_email: str) -> list[ClubRevenue]:
        rows = self.db.execute(
            select(
                Club.id,
                Club.name,
                func.coalesce(func.sum(Payment.amount), 0),
                func.count(Payment.id),
            )
            .outerjoin(
                Payment,
                and_(Payment.club_id == Club.id, Payment.status == "completed"),
            )
            .where(Club.manager_email == manager_email)
            .group_by(Club.id, Club.name)
            .order_by(Club.name.asc())
        ).all()
        return [
            ClubRevenue(club_id=cid, club_name=name, total_amount=total, payment_count=count)
            for cid, name, total, count in rows
        ]
