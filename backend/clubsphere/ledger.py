"""Membership ledger.

The ``memberships`` table is the single source of truth for who belongs to
which club. ``Club.total_members`` is a cached count and every mutation here
recomputes it in the same statement-level transaction, so it never drifts
from the number of ``active`` rows.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from .db import upsert
from .errors import Conflict, NotFound, ValidationFailed
from .models import MEMBERSHIP_STATUSES, OPEN_CLUB_STATUSES, Club, Membership, User
from .schemas import MemberOut, MembershipOut
from .services import serialize_membership

logger = logging.getLogger(__name__)

UNKNOWN_MEMBER_NAME = "Unknown User"


class MembershipLedger:
    def __init__(self, db: Session):
        self.db = db

    def check_membership(self, club_id: int, user_email: str) -> bool:
        membership_id = self.db.execute(
            select(Membership.id).where(
                Membership.club_id == club_id,
                Membership.user_email == user_email,
                Membership.status == "active",
            )
        ).scalar_one_or_none()
        return membership_id is not None

    def get(self, club_id: int, user_email: str) -> Optional[Membership]:
        return self.db.execute(
            select(Membership)
            .where(
                Membership.club_id == club_id,
                Membership.user_email == user_email,
            )
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def upsert_active_membership(
        self, club_id: int, user_email: str, payment_ref: Optional[str]
    ) -> Membership:
        """Create or overwrite the membership for the pair as ``active``.

        Keyed on (user_email, club_id) so repeated or concurrent calls land on
        the same row.
        """
        now = datetime.utcnow()
        stmt = upsert(self.db, Membership).values(
            club_id=club_id,
            user_email=user_email,
            status="active",
            payment_ref=payment_ref,
            joined_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_email", "club_id"],
            set_={"status": "active", "payment_ref": payment_ref, "joined_at": now},
        )
        self.db.execute(stmt)
        self.sync_member_count(club_id)
        logger.info("membership active club=%s user=%s ref=%s", club_id, user_email, payment_ref)

        return self.get(club_id, user_email)

    def remove_membership(self, club_id: int, user_email: str) -> None:
        result = self.db.execute(
            delete(Membership).where(
                Membership.club_id == club_id,
                Membership.user_email == user_email,
            )
        )
        if not result.rowcount:
            raise NotFound("Membership not found")
        self.sync_member_count(club_id)
        logger.info("membership removed club=%s user=%s", club_id, user_email)

    def set_member_status(
        self, membership_id: int, status: str, club_id: Optional[int] = None
    ) -> Membership:
        normalized = (status or "").strip().lower()
        if normalized not in MEMBERSHIP_STATUSES:
            raise ValidationFailed(
                f"Invalid status. Must be one of: {', '.join(MEMBERSHIP_STATUSES)}"
            )
        membership = self.db.get(Membership, membership_id)
        if not membership or (club_id is not None and membership.club_id != club_id):
            raise NotFound("Membership not found")

        previous = membership.status
        membership.status = normalized
        self.db.flush()
        self.sync_member_count(membership.club_id)
        logger.info(
            "membership %s status %s -> %s", membership.id, previous, normalized
        )
        return membership

    def list_members(self, club_id: int, status: Optional[str] = None) -> list[MemberOut]:
        stmt = (
            select(Membership, User)
            .outerjoin(User, User.email == Membership.user_email)
            .where(Membership.club_id == club_id)
            .order_by(Membership.joined_at.desc())
        )
        if status:
            stmt = stmt.where(Membership.status == status)

        members = []
        for membership, user in self.db.execute(stmt).all():
            members.append(
                MemberOut(
                    id=membership.id,
                    user_email=membership.user_email,
                    display_name=(user.display_name if user and user.display_name else UNKNOWN_MEMBER_NAME),
                    photo_url=user.photo_url if user else None,
                    status=membership.status,
                    joined_at=membership.joined_at,
                    payment_ref=membership.payment_ref,
                )
            )
        return members

    def memberships_for_user(self, user_email: str) -> list[MembershipOut]:
        rows = self.db.execute(
            select(Membership, Club.name)
            .outerjoin(Club, Club.id == Membership.club_id)
            .where(Membership.user_email == user_email)
            .order_by(Membership.joined_at.desc())
        ).all()
        return [serialize_membership(m, club_name) for m, club_name in rows]

    def join_free_club(self, club_id: int, user_email: str) -> Membership:
        club = self.db.get(Club, club_id)
        if not club or club.status not in OPEN_CLUB_STATUSES:
            raise NotFound("Club not available")
        if club.membership_fee and club.membership_fee > 0:
            raise Conflict("This club requires a paid membership")
        if self.check_membership(club_id, user_email):
            raise Conflict("Already a member of this club")
        return self.upsert_active_membership(club_id, user_email, None)

    def leave_club(self, club_id: int, user_email: str) -> None:
        club = self.db.get(Club, club_id)
        if not club:
            raise NotFound("Club not found")
        if club.membership_fee and club.membership_fee > 0:
            raise Conflict("Paid memberships cannot be left voluntarily")
        self.remove_membership(club_id, user_email)

    def sync_member_count(self, club_id: int) -> None:
        active = (
            select(func.count(Membership.id))
            .where(Membership.club_id == club_id, Membership.status == "active")
            .scalar_subquery()
        )
        self.db.execute(
            update(Club)
            .where(Club.id == club_id)
            .values(total_members=active)
            .execution_options(synchronize_session=False)
        )
        # Reload so callers holding the Club see the new count.
        self.db.get(Club, club_id, populate_existing=True)
