"""Tests for the expiry notification feed and its per-item flags."""

import pytest

from foodsave.errors import NotFound
from foodsave.notifications.service import list_inventory, list_notifiable, mark_deleted, mark_read


class TestListNotifiable:
    def test_window_includes_items_at_the_limit(self, db_session, household, make_item):
        item = make_item(household, "Yoghurt", days=2)

        assert [n["id"] for n in list_notifiable(db_session, household.id, 2)] == [item.id]
        assert list_notifiable(db_session, household.id, 1) == []

    def test_entry_shape(self, db_session, household, make_item):
        make_item(household, "Eggs", days=-1, quantity=6)

        [entry] = list_notifiable(db_session, household.id, 2)
        assert entry["name"] == "6 Eggs"
        assert entry["status"] == "expired"
        assert entry["message"] == "Expired 1 days ago"
        assert entry["diff_days"] == -1
        assert entry["notification_read"] is False

    def test_expired_items_always_included(self, db_session, household, make_item):
        make_item(household, "Bread", days=-30)
        assert len(list_notifiable(db_session, household.id, 0)) == 1

    def test_only_own_items(self, db_session, household, other_household, make_item):
        make_item(other_household, "Cheese", days=1)
        assert list_notifiable(db_session, household.id, 2) == []

    def test_deleted_items_are_hidden(self, db_session, household, make_item):
        item = make_item(household, "Ham", days=1)
        mark_deleted(db_session, household.id, item.id)
        assert list_notifiable(db_session, household.id, 2) == []

    def test_read_items_stay_listed(self, db_session, household, make_item):
        item = make_item(household, "Ham", days=1)
        mark_read(db_session, household.id, item.id)

        [entry] = list_notifiable(db_session, household.id, 2)
        assert entry["notification_read"] is True


class TestListInventory:
    def test_returns_every_item(self, db_session, household, make_item):
        make_item(household, "Rice", days=200)
        make_item(household, "Milk", days=-2)
        statuses = [entry["status"] for entry in list_inventory(db_session, household.id)]
        assert statuses == ["good", "expired"]


class TestFlags:
    def test_mark_read_sets_flag(self, db_session, household, make_item):
        item = make_item(household)
        mark_read(db_session, household.id, item.id)
        db_session.refresh(item)
        assert item.notification_read is True
        assert item.notification_deleted is False

    def test_mark_read_is_idempotent(self, db_session, household, make_item):
        item = make_item(household)
        mark_read(db_session, household.id, item.id)
        mark_read(db_session, household.id, item.id)
        db_session.refresh(item)
        assert item.notification_read is True

    def test_mark_read_by_non_owner_is_not_found(self, db_session, household, other_household, make_item):
        item = make_item(household)
        with pytest.raises(NotFound):
            mark_read(db_session, other_household.id, item.id)
        db_session.refresh(item)
        assert item.notification_read is False

    def test_mark_read_unknown_item(self, db_session, household):
        with pytest.raises(NotFound, match="Notification not found"):
            mark_read(db_session, household.id, 9999)

    def test_mark_deleted_by_non_owner(self, db_session, household, other_household, make_item):
        item = make_item(household)
        with pytest.raises(NotFound, match="not owned by user"):
            mark_deleted(db_session, other_household.id, item.id)
        db_session.refresh(item)
        assert item.notification_deleted is False

    def test_two_non_owners_both_rejected(
        self, db_session, session_factory, household, other_household, charity, make_item
    ):
        item = make_item(household)

        for intruder in (other_household, charity):
            session = session_factory()
            try:
                with pytest.raises(NotFound):
                    mark_read(session, intruder.id, item.id)
            finally:
                session.close()

        db_session.refresh(item)
        assert item.notification_read is False
