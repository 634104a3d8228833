from fastapi import APIRouter, Depends, Query

from ..deps import get_reconciler
from ..payments import PaymentReconciler
from ..schemas import CheckoutCreate, CheckoutOut, VerificationOut

router = APIRouter(tags=["payments"])


@router.post("/create-checkout-session", response_model=CheckoutOut)
def create_checkout_session(
    payload: CheckoutCreate,
    reconciler: PaymentReconciler = Depends(get_reconciler),
):
    session = reconciler.start_checkout(
        payload.user_email, payload.amount, payload.club_id, payload.club_name
    )
    return CheckoutOut(url=session.url, session_id=session.id)


@router.get("/verify-payment", response_model=VerificationOut)
def verify_payment_by_query(
    session_id: str = Query(),
    reconciler: PaymentReconciler = Depends(get_reconciler),
):
    return reconciler.verify_payment(session_id)


@router.patch("/verify-payment/{reference}", response_model=VerificationOut)
def verify_payment(
    reference: str,
    reconciler: PaymentReconciler = Depends(get_reconciler),
):
    return reconciler.verify_payment(reference)
