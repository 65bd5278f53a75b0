"""Tests for chat seeding, messages and receipts."""

import logging
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from foodsave.chat.models import ChatMessage
from foodsave.chat.service import (
    FOOD_ICONS,
    append_message,
    donation_history,
    emoji_for_id,
    ensure_seeded,
    list_since,
    mark_delivered,
    mark_read,
    require_participant,
)
from foodsave.errors import Forbidden, NotFound, ValidationError

T0 = datetime(2026, 3, 1, 10, 0, tzinfo=UTC)


def _rows(db, donation_id):
    return db.query(ChatMessage).filter(ChatMessage.donation_id == donation_id).order_by(ChatMessage.id).all()


def _fail_first_commit(monkeypatch, db, error):
    """Make the session's next commit raise ``error``; later commits go through."""
    real_commit = db.commit
    calls = []

    def commit():
        calls.append(None)
        if len(calls) == 1:
            raise error
        real_commit()

    monkeypatch.setattr(db, "commit", commit)


class TestEmojiForId:
    def test_known_values(self):
        assert emoji_for_id(1) == "🍞"
        assert emoji_for_id(7) == "🍔"
        assert emoji_for_id(12) == "🍞"

    def test_int_and_string_agree(self):
        assert emoji_for_id(4521) == emoji_for_id("4521")

    def test_always_from_the_food_set(self):
        assert {emoji_for_id(i) for i in range(500)} <= set(FOOD_ICONS)

    def test_long_ids_wrap_without_error(self):
        assert emoji_for_id("9" * 40) in FOOD_ICONS


class TestEnsureSeeded:
    def test_seeds_one_row_per_participant(self, db_session, approved_donation, household, charity):
        inserted = ensure_seeded(db_session, approved_donation.id, household.id, charity.id, now=T0)

        assert len(inserted) == 2
        rows = _rows(db_session, approved_donation.id)
        assert {r.sender_id for r in rows} == {household.id, charity.id}
        for row in rows:
            assert row.payload == ""
            assert row.delivered is False
            assert row.read_receipt is False
            assert row.is_seed is True
            assert row.icon == emoji_for_id(approved_donation.id)

    def test_second_call_is_a_no_op(self, db_session, approved_donation, household, charity):
        ensure_seeded(db_session, approved_donation.id, household.id, charity.id)
        assert ensure_seeded(db_session, approved_donation.id, household.id, charity.id) == []
        assert len(_rows(db_session, approved_donation.id)) == 2

    def test_only_missing_participant_is_seeded(self, db_session, approved_donation, household, charity):
        append_message(db_session, approved_donation.id, household.id, "cipher", "iv-1")

        inserted = ensure_seeded(db_session, approved_donation.id, household.id, charity.id)
        assert [row.sender_id for row in inserted] == [charity.id]

    def test_same_participant_twice_seeds_once(self, db_session, approved_donation, household):
        inserted = ensure_seeded(db_session, approved_donation.id, household.id, household.id)
        assert len(inserted) == 1

    def test_lost_race_is_tolerated(self, db_session, approved_donation, household, charity, monkeypatch):
        # Another seeder wrote the donor's placeholder after our presence check
        ensure_seeded(db_session, approved_donation.id, household.id, household.id)
        monkeypatch.setattr(db_session, "scalars", lambda *args, **kwargs: iter([]))

        inserted = ensure_seeded(db_session, approved_donation.id, household.id, charity.id)

        assert [row.sender_id for row in inserted] == [charity.id]
        assert len(_rows(db_session, approved_donation.id)) == 2

    def test_failed_commit_does_not_block_other_participant(
        self, db_session, approved_donation, household, charity, monkeypatch
    ):
        _fail_first_commit(monkeypatch, db_session, OperationalError("INSERT", {}, Exception("disk I/O error")))

        inserted = ensure_seeded(db_session, approved_donation.id, household.id, charity.id)

        assert [row.sender_id for row in inserted] == [charity.id]
        assert [row.sender_id for row in _rows(db_session, approved_donation.id)] == [charity.id]

    def test_failed_participant_is_seeded_on_retry(
        self, db_session, approved_donation, household, charity, monkeypatch
    ):
        _fail_first_commit(monkeypatch, db_session, OperationalError("INSERT", {}, Exception("disk I/O error")))
        ensure_seeded(db_session, approved_donation.id, household.id, charity.id)

        retried = ensure_seeded(db_session, approved_donation.id, household.id, charity.id)

        assert [row.sender_id for row in retried] == [household.id]
        assert len(_rows(db_session, approved_donation.id)) == 2

    def test_duplicate_seed_is_logged_as_already_seeded(
        self, db_session, approved_donation, household, charity, monkeypatch, caplog
    ):
        ensure_seeded(db_session, approved_donation.id, household.id, household.id)
        monkeypatch.setattr(db_session, "scalars", lambda *args, **kwargs: iter([]))
        caplog.set_level(logging.INFO, logger="foodsave.chat.service")

        ensure_seeded(db_session, approved_donation.id, household.id, charity.id)

        assert "already seeded" in caplog.text
        assert not [r for r in caplog.records if r.levelno >= logging.WARNING]

    def test_other_integrity_errors_are_not_reported_as_duplicates(
        self, db_session, approved_donation, household, charity, monkeypatch, caplog
    ):
        error = IntegrityError("INSERT", {}, Exception("FOREIGN KEY constraint failed"))
        _fail_first_commit(monkeypatch, db_session, error)
        caplog.set_level(logging.INFO, logger="foodsave.chat.service")

        inserted = ensure_seeded(db_session, approved_donation.id, household.id, charity.id)

        assert [row.sender_id for row in inserted] == [charity.id]
        assert "already seeded" not in caplog.text
        [warning] = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert "FOREIGN KEY constraint failed" in warning.getMessage()


class TestAppendMessage:
    def test_appends_row(self, db_session, approved_donation, household):
        message = append_message(db_session, approved_donation.id, household.id, "cipher", "iv-1", now=T0)

        assert message.id is not None
        assert message.payload == "cipher"
        assert message.iv == "iv-1"
        assert message.read_receipt is False
        assert message.delivered is False
        assert message.is_seed is False
        assert message.icon == emoji_for_id(approved_donation.id)

    def test_assigns_server_timestamp(self, db_session, approved_donation, household):
        before = datetime.now(UTC).replace(tzinfo=None) - timedelta(seconds=1)
        message = append_message(db_session, approved_donation.id, household.id, "cipher", "iv-1")
        assert message.timestamp.replace(tzinfo=None) >= before

    @pytest.mark.parametrize(
        "field",
        ["donation_id", "sender_id", "payload", "iv"],
    )
    def test_missing_field_rejected(self, db_session, approved_donation, household, field):
        args = {"donation_id": approved_donation.id, "sender_id": household.id, "payload": "cipher", "iv": "iv-1"}
        args[field] = None
        with pytest.raises(ValidationError, match="Missing required params"):
            append_message(db_session, **args)
        assert _rows(db_session, approved_donation.id) == []


class TestRequireParticipant:
    def test_participant_allowed(self, db_session, approved_donation, charity):
        assert require_participant(db_session, approved_donation.id, charity.id).id == approved_donation.id

    def test_outsider_forbidden(self, db_session, approved_donation, other_household):
        with pytest.raises(Forbidden):
            require_participant(db_session, approved_donation.id, other_household.id)

    def test_unknown_donation(self, db_session, household):
        with pytest.raises(NotFound):
            require_participant(db_session, 404, household.id)


class TestReceipts:
    def test_mark_read_flags_only_the_other_party(self, db_session, approved_donation, household, charity, recorder):
        theirs = append_message(db_session, approved_donation.id, household.id, "hello", "iv-1", now=T0)
        mine = append_message(db_session, approved_donation.id, charity.id, "hi", "iv-2", now=T0 + timedelta(minutes=1))

        updated = mark_read(db_session, approved_donation.id, charity.id, recorder)

        assert [m.id for m in updated] == [theirs.id]
        db_session.refresh(theirs)
        db_session.refresh(mine)
        assert theirs.read_receipt is True
        assert mine.read_receipt is False
        assert recorder.events == [("messageRead", {"donation_id": approved_donation.id, "reader_id": charity.id})]

    def test_mark_read_is_idempotent(self, db_session, approved_donation, household, charity):
        append_message(db_session, approved_donation.id, household.id, "hello", "iv-1")
        mark_read(db_session, approved_donation.id, charity.id)
        updated = mark_read(db_session, approved_donation.id, charity.id)
        assert all(m.read_receipt for m in updated)

    def test_mark_delivered_emits_per_message(self, db_session, approved_donation, household, charity, recorder):
        first = append_message(db_session, approved_donation.id, household.id, "one", "iv-1", now=T0)
        later = T0 + timedelta(seconds=5)
        second = append_message(db_session, approved_donation.id, household.id, "two", "iv-2", now=later)

        updated = mark_delivered(db_session, approved_donation.id, charity.id, recorder)

        assert [m.id for m in updated] == [first.id, second.id]
        assert all(m.delivered for m in updated)
        assert [payload["chat_id"] for _, payload in recorder.events] == [first.id, second.id]
        assert {name for name, _ in recorder.events} == {"messageDelivered"}
        assert recorder.events[0][1]["recipient_id"] == charity.id

    def test_publisher_failure_does_not_fail_receipt(self, db_session, approved_donation, household, charity):
        class Broken:
            def publish(self, name, payload):
                raise RuntimeError("subscriber gone")

        append_message(db_session, approved_donation.id, household.id, "hello", "iv-1")
        updated = mark_read(db_session, approved_donation.id, charity.id, Broken())
        assert len(updated) == 1


class TestListSince:
    def test_orders_and_annotates(self, db_session, approved_donation, household, charity):
        ensure_seeded(db_session, approved_donation.id, household.id, charity.id, now=T0)
        append_message(db_session, approved_donation.id, charity.id, "welcome", "iv-1", now=T0 + timedelta(minutes=2))
        append_message(db_session, approved_donation.id, household.id, "thanks", "iv-2", now=T0 + timedelta(minutes=1))

        messages = list_since(db_session, household.id)

        assert [m["payload"] for m in messages] == ["", "", "thanks", "welcome"]
        thanks, welcome = messages[2], messages[3]
        assert thanks["is_outgoing"] is True
        assert thanks["sender_name"] == "Hannah Household"
        assert thanks["recipient_id"] == charity.id
        assert thanks["recipient_name"] == "City Food Bank"
        assert welcome["is_outgoing"] is False
        assert welcome["recipient_id"] == household.id
        assert welcome["timestamp"] == "2026-03-01T10:02:00+00:00"

    def test_since_is_inclusive(self, db_session, approved_donation, household, charity):
        append_message(db_session, approved_donation.id, charity.id, "old", "iv-1", now=T0)
        append_message(db_session, approved_donation.id, charity.id, "new", "iv-2", now=T0 + timedelta(hours=1))

        messages = list_since(db_session, household.id, T0 + timedelta(hours=1))
        assert [m["payload"] for m in messages] == ["new"]

    def test_outsider_sees_nothing(self, db_session, approved_donation, household, charity, other_household):
        append_message(db_session, approved_donation.id, charity.id, "private", "iv-1")
        assert list_since(db_session, other_household.id) == []


class TestDonationHistory:
    def test_oldest_first_with_direction(self, db_session, approved_donation, household, charity):
        ensure_seeded(db_session, approved_donation.id, household.id, charity.id, now=T0)
        append_message(db_session, approved_donation.id, charity.id, "late", "iv-2", now=T0 + timedelta(minutes=5))
        append_message(db_session, approved_donation.id, household.id, "early", "iv-1", now=T0 + timedelta(minutes=1))

        history = donation_history(db_session, approved_donation.id, household.id)

        assert [m["payload"] for m in history if not m["is_seed"]] == ["early", "late"]
        assert [m["is_outgoing"] for m in history if not m["is_seed"]] == [True, False]
        assert sum(m["is_seed"] for m in history) == 2

    def test_other_donations_excluded(self, db_session, approved_donation, make_donation, household, charity):
        other = make_donation(household, charity)
        append_message(db_session, other.id, household.id, "elsewhere", "iv-1")

        assert donation_history(db_session, approved_donation.id, charity.id) == []

    def test_outsider_forbidden(self, db_session, approved_donation, other_household):
        with pytest.raises(Forbidden):
            donation_history(db_session, approved_donation.id, other_household.id)
