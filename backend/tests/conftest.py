import os

os.environ["DATABASE_URL"] = "sqlite:///./test_clubsphere.db"
os.environ["STRIPE_SECRET_KEY"] = ""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from clubsphere import models
from clubsphere.db import Base, engine
from clubsphere.deps import get_db, get_gateway
from clubsphere.errors import UpstreamFailure
from clubsphere.gateway import CheckoutSession, GatewayPayment
from clubsphere.main import app

TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def override_get_db():
    session = TestingSessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


class FakeGateway:
    """In-memory stand-in for StripeGateway with the same two calls."""

    def __init__(self):
        self.payments: dict[str, GatewayPayment] = {}
        self.created: list[dict] = []
        self.unavailable = False

    def create_checkout_session(self, amount_minor, currency, product_name, customer_email, metadata):
        if self.unavailable:
            raise UpstreamFailure("Payment gateway error: unavailable")
        number = len(self.payments) + 1
        session_id = f"cs_test_{number}"
        self.payments[session_id] = GatewayPayment(
            reference=session_id,
            paid=False,
            amount_minor=amount_minor,
            currency=currency,
            metadata=dict(metadata),
            payment_intent=f"pi_test_{number}",
        )
        self.created.append(
            {
                "amount_minor": amount_minor,
                "currency": currency,
                "product_name": product_name,
                "customer_email": customer_email,
                "metadata": dict(metadata),
            }
        )
        return CheckoutSession(id=session_id, url=f"https://checkout.stripe.test/pay/{session_id}")

    def mark_paid(self, session_id: str) -> None:
        self.payments[session_id].paid = True

    def retrieve(self, reference: str) -> GatewayPayment:
        if self.unavailable:
            raise UpstreamFailure("Payment gateway error: unavailable")
        if reference.startswith("pi_"):
            for payment in self.payments.values():
                if payment.payment_intent == reference:
                    return GatewayPayment(
                        reference=reference,
                        paid=payment.paid,
                        amount_minor=payment.amount_minor,
                        currency=payment.currency,
                        metadata=dict(payment.metadata),
                        payment_intent=reference,
                    )
        elif reference in self.payments:
            return self.payments[reference]
        raise UpstreamFailure(f"Payment gateway error: No such payment: '{reference}'")


@pytest.fixture(autouse=True)
def setup_test_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides.pop(get_db, None)
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def gateway():
    fake = FakeGateway()
    app.dependency_overrides[get_gateway] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_gateway, None)


@pytest.fixture()
def client(gateway):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture()
def make_club():
    def _make_club(
        name="Chess Club",
        manager_email="manager@club.io",
        status="active",
        fee="0",
    ) -> int:
        with TestingSessionLocal() as session:
            club = models.Club(
                name=name,
                description=f"{name} description",
                category="games",
                location="Room 1",
                manager_email=manager_email,
                status=status,
                membership_fee=Decimal(fee),
                total_members=0,
            )
            session.add(club)
            session.commit()
            return club.id

    return _make_club


@pytest.fixture()
def make_event():
    def _make_event(club_id: int, title="Weekly Meetup") -> int:
        with TestingSessionLocal() as session:
            event = models.Event(
                club_id=club_id,
                title=title,
                description="",
                date=datetime.utcnow() + timedelta(days=3),
                location="Hall A",
                attendee_count=0,
            )
            session.add(event)
            session.commit()
            return event.id

    return _make_event


@pytest.fixture()
def make_member():
    def _make_member(club_id: int, email: str, status="active", payment_ref=None) -> int:
        with TestingSessionLocal() as session:
            membership = models.Membership(
                club_id=club_id,
                user_email=email,
                status=status,
                payment_ref=payment_ref,
            )
            session.add(membership)
            session.commit()
            return membership.id

    return _make_member
