"""Chat message model: append-only rows keyed by donation, sender and time."""

from datetime import UTC, datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text, false, text

from ..database.base import Base


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    donation_id = Column(
        Integer,
        ForeignKey("donations.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender_id = Column(
        String(32),
        ForeignKey("stakeholders.id", ondelete="CASCADE"),
        nullable=False,
    )
    payload = Column(Text, nullable=False, default="")  # ciphertext, plaintext for legacy rows
    iv = Column(String(64), nullable=True)
    timestamp = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )
    read_receipt = Column(Boolean, nullable=False, default=False, server_default=false())
    delivered = Column(Boolean, nullable=False, default=False, server_default=false())
    icon = Column(String(16), default="")
    is_seed = Column(Boolean, nullable=False, default=False, server_default=false())

    __table_args__ = (
        Index("idx_chat_donation_ts", "donation_id", "timestamp"),
        # One placeholder per participant per donation, however many seeders race
        Index(
            "uq_chat_seed_participant",
            "donation_id",
            "sender_id",
            unique=True,
            postgresql_where=text("is_seed"),
            sqlite_where=text("is_seed"),
        ),
    )
