"""Donation model and status lifecycle."""

import enum
from datetime import UTC, datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy import Enum as SQLEnum

from ..database.base import Base


class DonationStatus(enum.StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Donation(Base):
    __tablename__ = "donations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    donor_id = Column(
        String(32),
        ForeignKey("stakeholders.id", ondelete="CASCADE"),
        nullable=False,
    )
    charity_id = Column(
        String(32),
        ForeignKey("stakeholders.id", ondelete="CASCADE"),
        nullable=False,
    )
    status = Column(
        SQLEnum(DonationStatus, name="donation_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=DonationStatus.PENDING,
    )
    items = Column(JSON, default=list)
    note = Column(String(500), default="")
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    __table_args__ = (
        Index("idx_donations_status", "status"),
        Index("idx_donations_donor", "donor_id"),
        Index("idx_donations_charity", "charity_id"),
    )

    def participants(self) -> tuple[str, str]:
        return self.donor_id, self.charity_id
