"""Stakeholder model: households, businesses and charities."""

import enum
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, Integer, String

from ..database.base import Base


class StakeholderRole(enum.StrEnum):
    """Account type, encoded as the first character of the stakeholder id."""

    HOUSEHOLD = "h"
    BUSINESS = "b"
    CHARITY = "c"


# Capacity stored for households and businesses, which do not receive donations.
NO_CAPACITY = -1


class Stakeholder(Base):
    __tablename__ = "stakeholders"

    id = Column(String(32), primary_key=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    region = Column(String(255), default="")
    capacity = Column(Integer, nullable=False, default=NO_CAPACITY)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
    )

    @property
    def role(self) -> StakeholderRole:
        return StakeholderRole(self.id[0])
