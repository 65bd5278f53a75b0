"""Food inventory model."""

from datetime import UTC, datetime

from sqlalchemy import Boolean, CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, String, false

from ..database.base import Base


class FoodItem(Base):
    __tablename__ = "food_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    stakeholder_id = Column(
        String(32),
        ForeignKey("stakeholders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(255), nullable=False)
    expiry_date = Column(Date, nullable=False)
    quantity = Column(Integer, nullable=False)
    category = Column(String(100), default="")
    donation_id = Column(
        Integer,
        ForeignKey("donations.id", ondelete="SET NULL"),
        nullable=True,
    )
    measure_per_unit = Column(String(50), default="")
    unit = Column(String(50), default="")

    # Expiry notification state, changed only by the owner
    notification_read = Column(Boolean, nullable=False, default=False, server_default=false())
    notification_deleted = Column(Boolean, nullable=False, default=False, server_default=false())

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
    )

    __table_args__ = (CheckConstraint("quantity > 0", name="ck_food_items_quantity_positive"),)

    @property
    def display_name(self) -> str:
        return f"{self.quantity} {self.name}"
