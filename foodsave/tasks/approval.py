"""Approval poller: make sure every approved donation has its chat seeded."""

import logging
from collections.abc import Callable
from typing import Protocol

from sqlalchemy.orm import Session

from ..chat.service import ensure_seeded
from ..donations.models import Donation
from ..donations.service import list_approved
from ..errors import storage_guard

logger = logging.getLogger(__name__)


class ApprovalSource(Protocol):
    """Where the poller learns about approved donations."""

    def approved_donations(self, db: Session) -> list[Donation]: ...


class PollingApprovalSource:
    """Full scan of the donations table on every tick."""

    def approved_donations(self, db: Session) -> list[Donation]:
        return list_approved(db)


class ApprovalPoller:
    def __init__(self, session_factory: Callable[[], Session], source: ApprovalSource | None = None) -> None:
        self._session_factory = session_factory
        self._source = source or PollingApprovalSource()

    def tick(self) -> int:
        """Seed missing chat rows; returns how many placeholders were inserted."""
        db = self._session_factory()
        try:
            with storage_guard("scanning approved donations", db):
                donations = [(d.id, d.donor_id, d.charity_id) for d in self._source.approved_donations(db)]

            seeded = 0
            for donation_id, donor_id, charity_id in donations:
                try:
                    seeded += len(ensure_seeded(db, donation_id, donor_id, charity_id))
                except Exception:
                    logger.exception("Seeding chat for donation %s failed", donation_id)
            if seeded:
                logger.info("Approval poller seeded %d chat rows", seeded)
            return seeded
        finally:
            db.close()
