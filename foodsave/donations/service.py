"""Donation service: offers, status transitions and the queries the pollers use."""

import logging

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from ..chat.service import ensure_seeded
from ..errors import Forbidden, NotFound, ValidationError, storage_guard
from ..food.models import FoodItem
from ..stakeholders.models import Stakeholder, StakeholderRole
from .models import Donation, DonationStatus

logger = logging.getLogger(__name__)


def get_donation(db: Session, donation_id: int) -> Donation | None:
    with storage_guard("loading donation"):
        return db.get(Donation, donation_id)


def get_donation_for(db: Session, donation_id: int, stakeholder_id: str) -> Donation:
    """Load a donation visible to the stakeholder (donor or charity)."""
    donation = get_donation(db, donation_id)
    if donation is None or stakeholder_id not in donation.participants():
        raise NotFound("Donation not found")
    return donation


def create_donation(db: Session, donor_id: str, charity_id: str, item_ids: list[int], note: str = "") -> Donation:
    """Offer some of the donor's food items to a charity."""
    if not item_ids:
        raise ValidationError("A donation needs at least one food item")
    if not charity_id.startswith(StakeholderRole.CHARITY.value):
        raise ValidationError("Donations can only be offered to charities")

    with storage_guard("creating donation", db):
        if db.get(Stakeholder, charity_id) is None:
            raise NotFound("Charity not found")
        owned = {
            item_id
            for (item_id,) in db.query(FoodItem.id).filter(
                FoodItem.id.in_(item_ids), FoodItem.stakeholder_id == donor_id
            )
        }
        if owned != set(item_ids):
            raise NotFound("Food item not found")

        donation = Donation(
            donor_id=donor_id,
            charity_id=charity_id,
            status=DonationStatus.PENDING,
            items=sorted(owned),
            note=note,
        )
        db.add(donation)
        db.flush()
        db.execute(
            update(FoodItem)
            .where(FoodItem.id.in_(owned))
            .values(donation_id=donation.id)
            .execution_options(synchronize_session=False)
        )
        db.commit()
    logger.info("Donation %s offered by %s to %s (%d items)", donation.id, donor_id, charity_id, len(owned))
    return donation


def _status_change_refused(db: Session, donation_id: int, charity_id: str) -> Exception:
    """Explain why the conditional status update matched no row."""
    with storage_guard("loading donation"):
        donation = db.get(Donation, donation_id, populate_existing=True)
    if donation is None:
        return NotFound("Donation not found")
    if donation.charity_id != charity_id:
        return Forbidden("Only the receiving charity can change this donation")
    return ValidationError(f"Donation is already {donation.status.value}")


def set_status(db: Session, donation_id: int, charity_id: str, status: DonationStatus) -> Donation:
    """Approve or reject a pending donation addressed to this charity.

    The transition is one conditional UPDATE guarded on the charity and the
    pending status, so of two concurrent decisions only the first lands.
    Approval seeds the chat right away; the approval poller only catches
    donations approved by other means.
    """
    if status is DonationStatus.PENDING:
        raise ValidationError("A donation cannot be moved back to pending")

    with storage_guard("updating donation status", db):
        result = db.execute(
            update(Donation)
            .where(
                Donation.id == donation_id,
                Donation.charity_id == charity_id,
                Donation.status == DonationStatus.PENDING,
            )
            .values(status=status)
            .execution_options(synchronize_session=False)
        )
        db.commit()
    if result.rowcount == 0:
        raise _status_change_refused(db, donation_id, charity_id)

    donation = get_donation(db, donation_id)
    logger.info("Donation %s %s by %s", donation_id, status.value, charity_id)

    if status is DonationStatus.APPROVED:
        ensure_seeded(db, donation.id, donation.donor_id, donation.charity_id)
    return donation


def list_approved(db: Session) -> list[Donation]:
    return db.query(Donation).filter(Donation.status == DonationStatus.APPROVED).order_by(Donation.id.asc()).all()


def pending_for_charity(db: Session, charity_id: str) -> list[Donation]:
    return (
        db.query(Donation)
        .filter(Donation.status == DonationStatus.PENDING, Donation.charity_id == charity_id)
        .order_by(Donation.id.asc())
        .all()
    )


def approved_for_participant(db: Session, stakeholder_id: str) -> list[Donation]:
    return (
        db.query(Donation)
        .filter(
            Donation.status == DonationStatus.APPROVED,
            or_(Donation.donor_id == stakeholder_id, Donation.charity_id == stakeholder_id),
        )
        .order_by(Donation.id.asc())
        .all()
    )


def count_pending(db: Session, charity_id: str) -> int:
    with storage_guard("counting pending donations"):
        return db.query(Donation).filter(
            Donation.status == DonationStatus.PENDING, Donation.charity_id == charity_id
        ).count()


def serialize_donation(donation: Donation) -> dict:
    return {
        "id": donation.id,
        "donor_id": donation.donor_id,
        "charity_id": donation.charity_id,
        "status": donation.status.value,
        "items": donation.items or [],
        "note": donation.note or "",
    }
