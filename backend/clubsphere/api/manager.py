from fastapi import APIRouter, Depends

from ..deps import UserContext, get_reconciler, get_registrations, get_user
from ..payments import PaymentReconciler
from ..registrations import EventRegistrations
from ..schemas import ClubRevenue, RegistrationReport

router = APIRouter(tags=["manager"])


@router.get("/manager/registrations", response_model=RegistrationReport)
def registration_report(
    user: UserContext = Depends(get_user),
    registrations: EventRegistrations = Depends(get_registrations),
):
    return registrations.manager_report(user.email)


@router.get("/manager/revenue", response_model=list[ClubRevenue])
def revenue(
    user: UserContext = Depends(get_user),
    reconciler: PaymentReconciler = Depends(get_reconciler),
):
    return reconciler.club_revenue(user.email)
