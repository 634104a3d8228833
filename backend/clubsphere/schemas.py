from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import CLUB_STATUSES, USER_ROLES


def _clean_email(value: str) -> str:
    cleaned = value.strip().lower() if isinstance(value, str) else ""
    if not cleaned or "@" not in cleaned:
        raise ValueError("must be a valid email")
    return cleaned


def _not_empty(value: str) -> str:
    cleaned = value.strip() if isinstance(value, str) else ""
    if not cleaned:
        raise ValueError("must not be empty")
    return cleaned


class UserCreate(BaseModel):
    email: str
    display_name: Optional[str] = Field(default=None, alias="displayName")
    photo_url: Optional[str] = Field(default=None, alias="photoURL")
    role: str = "member"

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str):
        return _clean_email(value)

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: str):
        normalized = value.lower()
        if normalized not in USER_ROLES:
            raise ValueError(f"role must be one of {', '.join(USER_ROLES)}")
        return normalized


class UserOut(BaseModel):
    id: int
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    role: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RoleUpdate(BaseModel):
    role: str

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: str):
        normalized = value.lower()
        if normalized not in USER_ROLES:
            raise ValueError(f"role must be one of {', '.join(USER_ROLES)}")
        return normalized


class ClubCreate(BaseModel):
    name: str
    description: str
    category: Optional[str] = None
    location: Optional[str] = None
    membership_fee: Decimal = Field(default=Decimal("0"), alias="membershipFee", ge=0)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("name", "description")
    @classmethod
    def must_not_be_empty(cls, value: str):
        return _not_empty(value)


class ClubOut(BaseModel):
    id: int
    name: str
    description: str
    category: Optional[str] = None
    location: Optional[str] = None
    manager_email: str
    status: str
    membership_fee: float
    total_members: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ClubStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: str):
        normalized = value.lower()
        if normalized not in CLUB_STATUSES:
            raise ValueError(f"status must be one of {', '.join(CLUB_STATUSES)}")
        return normalized


class MembershipOut(BaseModel):
    id: int
    club_id: int
    club_name: Optional[str] = None
    user_email: str
    status: str
    joined_at: datetime
    payment_ref: Optional[str] = None


class MemberOut(BaseModel):
    id: int
    user_email: str
    display_name: str
    photo_url: Optional[str] = None
    status: str
    joined_at: datetime
    payment_ref: Optional[str] = None


# Not validated against the membership enum here: the ledger rejects bad
# values so the caller gets the domain message.
class MemberStatusUpdate(BaseModel):
    status: str


class JoinRequest(BaseModel):
    user_email: str = Field(alias="userEmail")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("user_email")
    @classmethod
    def validate_email(cls, value: str):
        return _clean_email(value)


class EventCreate(BaseModel):
    title: str
    description: str = ""
    date: datetime
    location: str

    @field_validator("title", "location")
    @classmethod
    def must_not_be_empty(cls, value: str):
        return _not_empty(value)


class EventOut(BaseModel):
    id: int
    club_id: int
    title: str
    description: str
    date: datetime
    location: str
    is_paid: bool
    event_fee: int
    attendee_count: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RegistrationCheck(BaseModel):
    isClubMember: bool
    alreadyRegistered: bool
    canRegister: bool


class RegistrationOut(BaseModel):
    id: int
    event_id: int
    event_title: Optional[str] = None
    club_id: int
    user_email: str
    status: str
    registered_at: datetime
    cancelled_at: Optional[datetime] = None


class ReportRow(BaseModel):
    id: int
    event_id: int
    event_title: str
    club_id: int
    club_name: str
    user_email: str
    status: str
    registered_at: datetime


class ReportSummary(BaseModel):
    total: int
    active: int
    cancelled: int


class RegistrationReport(BaseModel):
    registrations: list[ReportRow]
    summary: ReportSummary


class CheckoutCreate(BaseModel):
    user_email: str = Field(alias="userEmail")
    amount: Decimal = Field(gt=0)
    club_id: int = Field(alias="clubId")
    club_name: Optional[str] = Field(default=None, alias="clubName")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("user_email")
    @classmethod
    def validate_email(cls, value: str):
        return _clean_email(value)


class CheckoutOut(BaseModel):
    url: str
    session_id: str = Field(alias="sessionId")

    model_config = ConfigDict(populate_by_name=True)


class PaymentOut(BaseModel):
    id: int
    user_email: str
    club_id: int
    amount: float
    currency: str
    gateway_ref: str
    status: str
    created_at: datetime
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class VerificationOut(BaseModel):
    success: bool
    message: str
    already_processed: bool = False
    payment: Optional[PaymentOut] = None


class ClubRevenue(BaseModel):
    club_id: int
    club_name: str
    total_amount: float
    payment_count: int
