"""Donation chat: thread seeding, append-only messages and receipts.

Every approved donation gets one empty placeholder row per participant
(donor and charity) before real messages are exchanged. Message timestamps
are always assigned by the server.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..donations.models import Donation
from ..errors import Forbidden, NotFound, ValidationError, storage_guard
from ..stakeholders.service import name_map
from .events import EventPublisher
from .models import ChatMessage

logger = logging.getLogger(__name__)

FOOD_ICONS = ("🍏", "🍞", "🍳", "🍇", "🍉", "🫐", "🥕", "🍔")
EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def emoji_for_id(value: int | str) -> str:
    """Stable food emoji for a donation id (31-multiplier string hash, 32-bit wrap)."""
    h = 0
    for ch in str(value):
        h = ((h << 5) - h + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return FOOD_ICONS[abs(h) % len(FOOD_ICONS)]


def _iso(ts: datetime | None) -> str | None:
    if ts is None:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts.isoformat()


def _emit(events: EventPublisher | None, name: str, payload: dict[str, Any]) -> None:
    if events is None:
        return
    try:
        events.publish(name, payload)
    except Exception:
        logger.warning("Dropped live event %s", name, exc_info=True)


def require_participant(db: Session, donation_id: int, stakeholder_id: str) -> Donation:
    """Return the donation if the stakeholder is its donor or charity."""
    with storage_guard("loading donation"):
        donation = db.get(Donation, donation_id)
    if donation is None:
        raise NotFound("Donation not found")
    if stakeholder_id not in donation.participants():
        raise Forbidden("Not a participant of this donation")
    return donation


# ── Seeding ───────────────────────────────────────────────────────────


def _seed_exists(db: Session, donation_id: int, participant: str) -> bool:
    try:
        found = db.scalar(
            select(ChatMessage.id)
            .where(
                ChatMessage.donation_id == donation_id,
                ChatMessage.sender_id == participant,
                ChatMessage.is_seed.is_(True),
            )
            .limit(1)
        )
    except SQLAlchemyError:
        db.rollback()
        return False
    return found is not None


def ensure_seeded(
    db: Session,
    donation_id: int,
    participant_a: str,
    participant_b: str,
    now: datetime | None = None,
) -> list[ChatMessage]:
    """Insert a placeholder for each participant that has no row yet.

    Each placeholder is committed on its own: a failed insert is rolled back
    and logged, and the other participant is still attempted. Returns only
    the rows actually inserted, so a second call is a no-op.
    """
    with storage_guard("reading chat senders", db):
        present = set(db.scalars(select(ChatMessage.sender_id).where(ChatMessage.donation_id == donation_id)))

    icon = emoji_for_id(donation_id)
    timestamp = now or datetime.now(UTC)
    inserted: list[ChatMessage] = []

    for participant in dict.fromkeys((participant_a, participant_b)):
        if participant in present:
            continue
        seed = ChatMessage(
            donation_id=donation_id,
            sender_id=participant,
            payload="",
            timestamp=timestamp,
            read_receipt=False,
            delivered=False,
            icon=icon,
            is_seed=True,
        )
        db.add(seed)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            if _seed_exists(db, donation_id, participant):
                logger.info("Chat for donation %s already seeded for %s", donation_id, participant)
            else:
                logger.warning(
                    "Integrity error seeding chat for donation %s, participant %s: %s",
                    donation_id,
                    participant,
                    exc.orig,
                )
            continue
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to seed chat for donation %s, participant %s", donation_id, participant)
            continue
        inserted.append(seed)
        logger.info("Seeded chat for donation %s, participant %s", donation_id, participant)

    return inserted


# ── Messages ──────────────────────────────────────────────────────────


def append_message(
    db: Session,
    donation_id: int | None,
    sender_id: str | None,
    payload: str | None,
    iv: str | None,
    now: datetime | None = None,
) -> ChatMessage:
    if not donation_id or not sender_id or not payload or not iv:
        raise ValidationError("Missing required params: donation_id, sender_id, payload, iv")

    message = ChatMessage(
        donation_id=donation_id,
        sender_id=sender_id,
        payload=payload,
        iv=iv,
        timestamp=now or datetime.now(UTC),
        read_receipt=False,
        delivered=False,
        icon=emoji_for_id(donation_id),
    )
    with storage_guard("appending chat message", db):
        db.add(message)
        db.commit()
        db.refresh(message)
    return message


def _others_messages(donation_id: int, viewer_id: str):
    return (ChatMessage.donation_id == donation_id, ChatMessage.sender_id != viewer_id)


def _set_receipt(db: Session, donation_id: int, viewer_id: str, values: dict[str, bool], action: str) -> list[ChatMessage]:
    criteria = _others_messages(donation_id, viewer_id)
    with storage_guard(action, db):
        db.execute(update(ChatMessage).where(*criteria).values(**values).execution_options(synchronize_session=False))
        db.commit()
        return list(
            db.scalars(select(ChatMessage).where(*criteria).order_by(ChatMessage.timestamp.asc(), ChatMessage.id.asc()))
        )


def mark_read(
    db: Session,
    donation_id: int,
    reader_id: str,
    events: EventPublisher | None = None,
) -> list[ChatMessage]:
    """Mark the other party's messages in this donation as read by ``reader_id``."""
    updated = _set_receipt(db, donation_id, reader_id, {"read_receipt": True}, "marking chat read")
    _emit(events, "messageRead", {"donation_id": donation_id, "reader_id": reader_id})
    return updated


def mark_delivered(
    db: Session,
    donation_id: int,
    recipient_id: str,
    events: EventPublisher | None = None,
) -> list[ChatMessage]:
    """Mark the other party's messages in this donation as delivered to ``recipient_id``."""
    updated = _set_receipt(db, donation_id, recipient_id, {"delivered": True}, "marking chat delivered")
    for message in updated:
        _emit(
            events,
            "messageDelivered",
            {"chat_id": message.id, "donation_id": donation_id, "recipient_id": recipient_id},
        )
    return updated


def serialize_message(message: ChatMessage) -> dict[str, Any]:
    return {
        "chat_id": message.id,
        "donation_id": message.donation_id,
        "sender_id": message.sender_id,
        "payload": message.payload,
        "iv": message.iv,
        "icon": message.icon,
        "timestamp": _iso(message.timestamp),
        "read_receipt": bool(message.read_receipt),
        "delivered": bool(message.delivered),
        "is_seed": bool(message.is_seed),
    }


def list_since(db: Session, user_id: str, since: datetime | None = None) -> list[dict[str, Any]]:
    """All messages of the user's donations from ``since`` on, oldest first."""
    with storage_guard("listing chat messages"):
        donations = {
            d.id: d
            for d in db.query(Donation).filter(or_(Donation.donor_id == user_id, Donation.charity_id == user_id))
        }
        if not donations:
            return []

        messages = (
            db.query(ChatMessage)
            .filter(
                ChatMessage.donation_id.in_(list(donations)),
                ChatMessage.timestamp >= (since or EPOCH),
            )
            .order_by(ChatMessage.timestamp.asc(), ChatMessage.id.asc())
            .all()
        )
        names = name_map(db, {sid for d in donations.values() for sid in d.participants()})

    result = []
    for message in messages:
        donation = donations[message.donation_id]
        recipient_id = donation.charity_id if message.sender_id == donation.donor_id else donation.donor_id
        entry = serialize_message(message)
        entry.update(
            sender_name=names.get(message.sender_id, "Unknown"),
            recipient_id=recipient_id,
            recipient_name=names.get(recipient_id, "Unknown"),
            is_outgoing=message.sender_id == user_id,
        )
        result.append(entry)
    return result


def donation_history(db: Session, donation_id: int, viewer_id: str) -> list[dict[str, Any]]:
    """Full conversation of one donation, oldest first, for one of its participants."""
    require_participant(db, donation_id, viewer_id)
    with storage_guard("loading chat history"):
        messages = db.scalars(
            select(ChatMessage)
            .where(ChatMessage.donation_id == donation_id)
            .order_by(ChatMessage.timestamp.asc(), ChatMessage.id.asc())
        ).all()
    return [{**serialize_message(m), "is_outgoing": m.sender_id == viewer_id} for m in messages]
