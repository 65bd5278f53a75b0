"""Email digest poller.

For every stakeholder, collects the donations that warrant a reminder
(pending ones addressed to a charity, approved ones with a chat to visit),
drops those still inside the category cool-down, and sends one digest for the
rest. The ledger is stamped only after the transport accepted the message,
so a failed send is retried on the next tick.
"""

import logging
from collections.abc import Callable
from datetime import timedelta

from sqlalchemy.orm import Session

from ..config import Settings, settings
from ..donations.service import approved_for_participant, pending_for_charity
from ..errors import NotFound, storage_guard
from ..mail.digest import DigestCategory, compose_digest
from ..mail.transport import EmailTransport
from ..stakeholders.models import Stakeholder
from ..stakeholders.service import get_stakeholder_by_email
from .ledger import NotificationLedger, utcnow

logger = logging.getLogger(__name__)

_QUERIES = {
    DigestCategory.PENDING: pending_for_charity,
    DigestCategory.APPROVED: approved_for_participant,
}


def build_ledgers(
    config: Settings = settings,
    clock: Callable = utcnow,
) -> dict[DigestCategory, NotificationLedger]:
    return {
        DigestCategory.PENDING: NotificationLedger(timedelta(seconds=config.pending_digest_cooldown_seconds), clock),
        DigestCategory.APPROVED: NotificationLedger(timedelta(seconds=config.approved_digest_cooldown_seconds), clock),
    }


class EmailDigestPoller:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        transport: EmailTransport,
        ledgers: dict[DigestCategory, NotificationLedger],
    ) -> None:
        self._session_factory = session_factory
        self._transport = transport
        self.ledgers = ledgers

    def send_digest(self, db: Session, stakeholder: Stakeholder, category: DigestCategory) -> bool:
        """Send one digest of the due donations in ``category``; True if an email went out."""
        if not stakeholder.email:
            return False
        ledger = self.ledgers[category]
        with storage_guard(f"loading {category.value} donations", db):
            donations = _QUERIES[category](db, stakeholder.id)
        now = ledger.now()
        due = [d for d in donations if ledger.is_due(stakeholder.id, d.id, now)]
        if not due:
            return False

        email = compose_digest(category, stakeholder.name, due)
        if not self._transport.send(stakeholder.email, email.subject, email.html_body, email.text_body):
            logger.warning("%s digest to %s not sent, will retry next tick", category.value, stakeholder.id)
            return False

        ledger.stamp(stakeholder.id, [d.id for d in due], now)
        logger.info("Sent %s digest to %s (%d donations)", category.value, stakeholder.id, len(due))
        return True

    def send_for_email(self, db: Session, email: str, category: DigestCategory) -> bool:
        with storage_guard("resolving digest recipient"):
            stakeholder = get_stakeholder_by_email(db, email)
        if stakeholder is None:
            raise NotFound("Stakeholder not found")
        return self.send_digest(db, stakeholder, category)

    def tick(self) -> int:
        """Run both categories for every stakeholder; returns the number of emails sent."""
        db = self._session_factory()
        try:
            with storage_guard("listing digest recipients", db):
                stakeholders = db.query(Stakeholder).order_by(Stakeholder.id.asc()).all()

            sent = 0
            for stakeholder in stakeholders:
                for category in DigestCategory:
                    try:
                        sent += self.send_digest(db, stakeholder, category)
                    except Exception:
                        logger.exception("%s digest for %s failed", category.value, stakeholder.id)
                        db.rollback()
            return sent
        finally:
            db.close()
