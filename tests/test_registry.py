"""Tests for the in-memory team registry."""

import threading

import pytest

from dojo.errors import NoSuchTeam
from dojo.registry import HealthRecord, HealthState, InMemoryRegistry


@pytest.fixture
def registry():
    return InMemoryRegistry()


class TestHealthRecord:
    def test_pending_status_is_empty(self):
        assert HealthRecord(address="http://a/").status == ""

    def test_error_status(self):
        record = HealthRecord(address="http://a/", state=HealthState.ERROR, reason="boom")
        assert record.to_dict() == {"address": "http://a/", "status": "error: boom"}

    def test_ok_includes_message(self):
        record = HealthRecord(address="http://a/", state=HealthState.OK, message="hi")
        assert record.to_dict() == {"address": "http://a/", "status": "ok", "message": "hi"}
        assert "message" not in record.to_dict(include_message=False)

    def test_from_dict(self):
        record = HealthRecord.from_dict({"address": "http://a/", "status": "error: cannot get URL: x"})
        assert record.state is HealthState.ERROR
        assert record.reason == "cannot get URL: x"
        ok = HealthRecord.from_dict({"address": "http://a/", "status": "ok", "message": "m"})
        assert ok.message == "m"
        assert HealthRecord.from_dict({"address": "http://a/", "status": ""}).state is HealthState.PENDING


class TestInMemoryRegistry:
    def test_insert_is_fresh(self, registry):
        assert registry.insert_or_update_address(1, "http://a/") is True
        record = registry.get(1)
        assert record.address == "http://a/"
        assert record.state is HealthState.PENDING

    def test_update_keeps_status(self, registry):
        registry.insert_or_update_address(1, "http://a/")
        registry.set_status_ok(1, "hello")
        assert registry.insert_or_update_address(1, "http://b/") is False
        record = registry.get(1)
        assert record.address == "http://b/"
        assert record.state is HealthState.OK
        assert record.message == "hello"

    def test_get_missing(self, registry):
        assert registry.get(7) is None

    def test_get_returns_copy(self, registry):
        registry.insert_or_update_address(1, "http://a/")
        registry.get(1).address = "mutated"
        assert registry.get(1).address == "http://a/"

    def test_get_address_missing_raises(self, registry):
        with pytest.raises(NoSuchTeam):
            registry.get_address(3)

    def test_snapshot_strips_messages(self, registry):
        registry.insert_or_update_address(1, "http://a/")
        registry.insert_or_update_address(2, "http://b/")
        registry.set_status_ok(1, "secret message")
        snap = registry.snapshot()
        assert set(snap) == {1, 2}
        assert snap[1].message is None
        assert snap[1].status == "ok"
        assert registry.get(1).message == "secret message"

    def test_error_clears_message(self, registry):
        registry.insert_or_update_address(1, "http://a/")
        registry.set_status_ok(1, "hello")
        registry.set_status_error(1, "timed out")
        record = registry.get(1)
        assert record.message is None
        assert record.status == "error: timed out"
        assert record.address == "http://a/"

    def test_remove_idempotent(self, registry):
        registry.insert_or_update_address(1, "http://a/")
        assert registry.remove(1) is True
        assert registry.remove(1) is False
        assert 1 not in registry

    def test_status_writes_do_not_resurrect(self, registry):
        assert registry.set_status_ok(5, "x") is False
        assert registry.set_status_error(5, "x") is False
        assert registry.get(5) is None
        assert len(registry) == 0

    def test_concurrent_writers(self, registry):
        for team in range(10):
            registry.insert_or_update_address(team, f"http://t{team}/")

        def worker(team):
            for i in range(200):
                if i % 2:
                    registry.set_status_ok(team, str(i))
                else:
                    registry.set_status_error(team, str(i))
                registry.snapshot()

        threads = [threading.Thread(target=worker, args=(t,)) for t in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        for team in range(10):
            record = registry.get(team)
            assert record.state is HealthState.OK
            assert record.message == "199"
