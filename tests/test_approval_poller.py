"""Tests for the approval poller."""

from foodsave.chat.models import ChatMessage
from foodsave.donations.models import DonationStatus
from foodsave.tasks.approval import ApprovalPoller


def _count(db, donation_id):
    return db.query(ChatMessage).filter(ChatMessage.donation_id == donation_id).count()


class TestApprovalPoller:
    def test_one_tick_seeds_both_participants(self, db_session, session_factory, approved_donation):
        seeded = ApprovalPoller(session_factory).tick()

        assert seeded == 2
        rows = db_session.query(ChatMessage).filter(ChatMessage.donation_id == approved_donation.id).all()
        assert sorted(r.sender_id for r in rows) == ["c1", "h1"]
        assert all(r.payload == "" and r.delivered is False for r in rows)

    def test_repeated_ticks_do_not_duplicate(self, db_session, session_factory, approved_donation):
        poller = ApprovalPoller(session_factory)
        poller.tick()
        assert poller.tick() == 0
        assert _count(db_session, approved_donation.id) == 2

    def test_pending_and_rejected_are_ignored(self, db_session, session_factory, make_donation, household, charity):
        pending = make_donation(household, charity, DonationStatus.PENDING)
        rejected = make_donation(household, charity, DonationStatus.REJECTED)

        assert ApprovalPoller(session_factory).tick() == 0
        assert _count(db_session, pending.id) == 0
        assert _count(db_session, rejected.id) == 0

    def test_custom_source(self, db_session, session_factory, make_donation, household, charity):
        pending = make_donation(household, charity, DonationStatus.PENDING)

        class Pushed:
            def approved_donations(self, db):
                return [pending]

        assert ApprovalPoller(session_factory, Pushed()).tick() == 2

    def test_failing_donation_does_not_stop_the_tick(
        self, db_session, session_factory, make_donation, household, charity, monkeypatch
    ):
        first_id = make_donation(household, charity, DonationStatus.APPROVED).id
        second_id = make_donation(household, charity, DonationStatus.APPROVED).id

        import foodsave.tasks.approval as approval

        real = approval.ensure_seeded

        def flaky(db, donation_id, a, b):
            if donation_id == first_id:
                raise RuntimeError("boom")
            return real(db, donation_id, a, b)

        monkeypatch.setattr(approval, "ensure_seeded", flaky)

        assert ApprovalPoller(session_factory).tick() == 2
        assert _count(db_session, first_id) == 0
        assert _count(db_session, second_id) == 2
