"""Tests for duplicate removal."""

from datetime import timedelta

from baby_log.data_import import LEGACY_HEADERS, LegacyImporter
from baby_log.deduplication import find_duplicates, fingerprint, remove_duplicate_logs
from baby_log.models import FeedingLog, FeedingSubType, SleepLog


def bottle(now, amount=120, **extra):
    return FeedingLog(
        family_id="fam", timestamp=now, sub_type=FeedingSubType.BOTTLE, amount=amount, **extra
    )


class TestFingerprint:
    """Tests for the content key."""

    def test_ignores_id_user_and_notes(self, now):
        """Identity and notes do not affect the key."""
        a = bottle(now, id="1", user_id="mom", notes="first")
        b = bottle(now, id="2", user_id="dad", notes="second")
        assert fingerprint(a) == fingerprint(b)

    def test_amount_matters(self, now):
        """Different amounts are different events."""
        assert fingerprint(bottle(now, 120)) != fingerprint(bottle(now, 90))

    def test_timestamp_matters(self, now):
        """Different instants are different events."""
        assert fingerprint(bottle(now)) != fingerprint(bottle(now + timedelta(seconds=1)))

    def test_type_matters(self, now):
        """A sleep never collides with a feeding."""
        sleep = SleepLog(family_id="fam", timestamp=now, duration=30)
        assert fingerprint(sleep) != fingerprint(bottle(now))


class TestFindDuplicates:
    """Tests for picking which records to drop."""

    def test_first_occurrence_kept(self, now):
        """Later copies are the duplicates."""
        records = [bottle(now, id="a"), bottle(now, id="b"), bottle(now, id="c")]
        assert [r.id for r in find_duplicates(records)] == ["b", "c"]

    def test_no_duplicates(self, now):
        """Distinct records are all kept."""
        assert find_duplicates([bottle(now, 10), bottle(now, 20)]) == []


class TestRemoveDuplicateLogs:
    """Tests for the sweep against a store."""

    def test_removes_copies(self, log_manager, gateway, now):
        """Exact repeats are deleted down to one."""
        for _ in range(3):
            log_manager.log_bottle(120, timestamp=now)
        log_manager.log_bottle(60, timestamp=now)

        result = remove_duplicate_logs("test-family", gateway)
        assert result.success is True
        assert result.deleted_count == 2
        assert result.scanned == 4
        assert sorted(log.amount for log in gateway.query("test-family")) == [60, 120]

    def test_import_twice_then_dedupe(self, gateway):
        """A doubled import is restored to a single copy."""
        rows = [
            ",".join(
                {"kind": "expression", "created_at": f"2025-11-2{i}T09:00:00Z",
                 "expression_amount_ml": "75"}.get(h, "")
                for h in LEGACY_HEADERS
            )
            for i in range(3)
        ]
        text = "\n".join([",".join(LEGACY_HEADERS), *rows])
        importer = LegacyImporter(gateway)
        importer.import_text(text, "fam")
        importer.import_text(text, "fam")
        assert len(gateway.query("fam")) == 6

        result = remove_duplicate_logs("fam", gateway)
        assert result.deleted_count == 3
        assert len(gateway.query("fam")) == 3

    def test_other_families_untouched(self, gateway, log_manager, now):
        """Only the given family is swept."""
        from baby_log.log_manager import LogManager

        other = LogManager(gateway, "other-family")
        other.log_sleep(30, timestamp=now)
        other.log_sleep(30, timestamp=now)
        log_manager.log_sleep(30, timestamp=now)

        remove_duplicate_logs("test-family", gateway)
        assert len(gateway.query("other-family")) == 2

    def test_failure_stops_sweep(self, flaky_gateway_factory, now):
        """A failed delete stops the sweep and reports progress so far."""
        from baby_log.log_manager import LogManager

        gateway = flaky_gateway_factory(fail_deletes={2})
        manager = LogManager(gateway, "test-family")
        for _ in range(4):
            manager.log_sleep(30, timestamp=now)

        result = remove_duplicate_logs("test-family", gateway)
        assert result.success is False
        assert result.deleted_count == 1
        assert result.error
        assert len(gateway.query("test-family")) == 3

    def test_empty_family(self, gateway):
        """Nothing to scan is a success."""
        result = remove_duplicate_logs("nobody", gateway)
        assert result.success is True
        assert result.deleted_count == 0
