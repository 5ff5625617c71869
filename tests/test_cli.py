"""Tests for CLI commands."""

import json

import pytest
from typer.testing import CliRunner

from baby_log.data_import import LEGACY_HEADERS
from baby_log.main import app

runner = CliRunner()


def invoke(data_dir, *args, input=None):
    return runner.invoke(app, ["--json", "--data-dir", str(data_dir), *args], input=input)


def invoke_json(data_dir, *args):
    result = invoke(data_dir, *args)
    assert result.exit_code == 0, result.stdout
    return json.loads(result.stdout)


class TestLogCommands:
    """Tests for the log subcommands."""

    def test_bottle(self, temp_data_dir):
        """Log a bottle feed in ml."""
        data = invoke_json(temp_data_dir, "log", "bottle", "120", "--contents", "formula")
        assert data["success"] is True
        log = data["data"]["log"]
        assert log["type"] == "feeding"
        assert log["subType"] == "bottle"
        assert log["amount"] == 120
        assert log["contents"] == "formula"
        assert log["familyId"] == "demo-family"
        assert log["id"]

    def test_bottle_in_ounces(self, temp_data_dir):
        """Amounts are typed in the preferred unit and stored in ml."""
        invoke_json(temp_data_dir, "prefs", "unit", "oz")
        data = invoke_json(temp_data_dir, "log", "bottle", "4")
        assert data["data"]["log"]["amount"] == 120

    def test_pump_and_diaper(self, temp_data_dir):
        """Pumping and diaper entries."""
        pump = invoke_json(temp_data_dir, "log", "pump", "75", "--side", "left")
        diaper = invoke_json(temp_data_dir, "log", "diaper", "both", "--notes", "blowout")
        assert pump["data"]["log"]["amount"] == 75
        assert diaper["data"]["log"]["status"] == "both"
        assert diaper["data"]["log"]["notes"] == "blowout"

    def test_sleep_range(self, temp_data_dir):
        """Sleep by start and end."""
        data = invoke_json(
            temp_data_dir, "log", "sleep", "--start", "2025-11-24T13:00", "--end", "2025-11-24T14:30"
        )
        assert data["data"]["log"]["duration"] == 90

    def test_sleep_zero_rejected(self, temp_data_dir):
        """Invalid entries fail with a code and write nothing."""
        result = invoke(temp_data_dir, "log", "sleep", "--minutes", "0")
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["success"] is False
        assert data["error_code"] == "INVALID_LOG"

        history = invoke_json(temp_data_dir, "history")
        assert history["data"]["count"] == 0

    def test_manual_breast(self, temp_data_dir):
        """Manual breastfeeding entry."""
        data = invoke_json(
            temp_data_dir, "log", "breast", "--side", "right",
            "--start", "2025-11-24T09:00", "--minutes", "12",
        )
        log = data["data"]["log"]
        assert log["rightDuration"] == 720
        assert log["totalDuration"] == 720
        assert log["lastSide"] == "R"
        assert log["manual"] is True


class TestTimerCommands:
    """Tests for the breastfeeding timer commands."""

    def test_toggle_persists(self, temp_data_dir):
        """The running side survives between invocations."""
        invoke_json(temp_data_dir, "timer", "toggle", "left")
        data = invoke_json(temp_data_dir, "timer", "status")
        assert data["data"]["timer"]["activeTimer"] == "left"
        assert data["data"]["timer"]["state"] == "running-left"

    def test_backdate_and_save(self, temp_data_dir):
        """A backdated session is saved and the timer cleared."""
        invoke_json(temp_data_dir, "timer", "toggle", "left")
        invoke_json(temp_data_dir, "timer", "toggle", "left")
        invoke_json(temp_data_dir, "timer", "set-start", "2000-01-01T00:00")

        data = invoke_json(temp_data_dir, "timer", "save", "--yes")
        log = data["data"]["log"]
        assert log["subType"] == "breast"
        assert log["totalDuration"] > 600
        assert log["lastSide"] == "L"

        status = invoke_json(temp_data_dir, "timer", "status")
        assert status["data"]["timer"]["state"] == "idle"

    def test_save_empty(self, temp_data_dir):
        """Saving an empty timer fails."""
        result = invoke(temp_data_dir, "timer", "save", "--yes")
        assert result.exit_code == 1
        assert json.loads(result.stdout)["error_code"] == "INVALID_LOG"

    def test_reset(self, temp_data_dir):
        """Reset clears the timer."""
        invoke_json(temp_data_dir, "timer", "toggle", "right")
        data = invoke_json(temp_data_dir, "timer", "reset")
        assert data["data"]["timer"]["state"] == "idle"


class TestHistoryAndDelete:
    """Tests for listing and deleting logs."""

    def test_history_newest_first(self, temp_data_dir):
        """History lists logs newest first."""
        invoke_json(temp_data_dir, "log", "diaper", "wet", "--at", "2025-11-24T08:00")
        invoke_json(temp_data_dir, "log", "diaper", "dirty", "--at", "2025-11-24T10:00")
        data = invoke_json(temp_data_dir, "history")
        assert [log["status"] for log in data["data"]["logs"]] == ["dirty", "wet"]

    def test_history_type_filter(self, temp_data_dir):
        """History can be filtered by type."""
        invoke_json(temp_data_dir, "log", "diaper", "wet")
        invoke_json(temp_data_dir, "log", "sleep", "--minutes", "30")
        data = invoke_json(temp_data_dir, "history", "--type", "sleep")
        assert data["data"]["count"] == 1

    def test_history_date_range(self, temp_data_dir):
        """--from and --to select whole local days, inclusive."""
        for when in ["2025-11-20T23:30", "2025-11-21T08:00", "2025-11-22T00:00", "2025-11-23T10:00"]:
            invoke_json(temp_data_dir, "log", "diaper", "wet", "--at", when)
        data = invoke_json(
            temp_data_dir, "history", "--from", "2025-11-21", "--to", "2025-11-22"
        )["data"]
        assert data["count"] == 2
        assert data["days"] == [
            {"date": "2025-11-22", "count": 1},
            {"date": "2025-11-21", "count": 1},
        ]

    def test_history_oldest_first(self, temp_data_dir):
        """--oldest-first flips the order."""
        invoke_json(temp_data_dir, "log", "diaper", "wet", "--at", "2025-11-24T08:00")
        invoke_json(temp_data_dir, "log", "diaper", "dirty", "--at", "2025-11-24T10:00")
        data = invoke_json(temp_data_dir, "history", "--oldest-first")
        assert [log["status"] for log in data["data"]["logs"]] == ["wet", "dirty"]
        assert data["data"]["days"] == [{"date": "2025-11-24", "count": 2}]

    def test_history_bad_date(self, temp_data_dir):
        """An unreadable date is rejected."""
        result = invoke(temp_data_dir, "history", "--from", "last week")
        assert result.exit_code != 0

    def test_hidden_category(self, temp_data_dir):
        """Hidden categories are left out of history."""
        invoke_json(temp_data_dir, "log", "diaper", "wet")
        invoke_json(temp_data_dir, "prefs", "toggle", "diaper")
        data = invoke_json(temp_data_dir, "history")
        assert data["data"]["count"] == 0

    def test_family_isolation(self, temp_data_dir):
        """Each family sees only its own logs."""
        invoke_json(temp_data_dir, "--family", "a", "log", "diaper", "wet")
        assert invoke_json(temp_data_dir, "--family", "b", "history")["data"]["count"] == 0
        assert invoke_json(temp_data_dir, "--family", "a", "history")["data"]["count"] == 1

    def test_delete(self, temp_data_dir):
        """Delete with --yes removes the entry."""
        log_id = invoke_json(temp_data_dir, "log", "sleep", "--minutes", "20")["data"]["log"]["id"]
        invoke_json(temp_data_dir, "delete", log_id, "--yes")
        assert invoke_json(temp_data_dir, "history")["data"]["count"] == 0

    def test_delete_declined(self, temp_data_dir):
        """Answering no keeps the entry."""
        log_id = invoke_json(temp_data_dir, "log", "sleep", "--minutes", "20")["data"]["log"]["id"]
        result = invoke(temp_data_dir, "delete", log_id, input="n\n")
        assert result.exit_code != 0
        assert invoke_json(temp_data_dir, "history")["data"]["count"] == 1


class TestInventoryCommands:
    """Tests for the milk inventory commands."""

    def test_check_in_list_check_out(self, temp_data_dir):
        """Store, list oldest first, then thaw."""
        invoke_json(temp_data_dir, "inventory", "check-in", "100", "--pumped", "2025-11-22T08:00")
        old = invoke_json(
            temp_data_dir, "inventory", "check-in", "80", "--pumped", "2025-11-20T08:00"
        )["data"]["inventory_item"]

        listed = invoke_json(temp_data_dir, "inventory", "list")["data"]
        assert listed["count"] == 2
        assert listed["total_volume"] == 180
        assert listed["inventory"][0]["id"] == old["id"]
        assert listed["inventory"][0]["oldest"] is True

        invoke_json(temp_data_dir, "inventory", "check-out", old["id"], "--yes")
        assert invoke_json(temp_data_dir, "inventory", "list")["data"]["count"] == 1

    def test_check_out_unknown(self, temp_data_dir):
        """Unknown ids fail."""
        result = invoke(temp_data_dir, "inventory", "check-out", "nope", "--yes")
        assert result.exit_code == 1
        assert json.loads(result.stdout)["error_code"] == "ITEM_NOT_FOUND"


class TestStatsAndExport:
    """Tests for stats and export."""

    def test_stats(self, temp_data_dir):
        """Stats include today and all-time totals."""
        invoke_json(temp_data_dir, "log", "bottle", "120")
        invoke_json(temp_data_dir, "log", "pump", "60", "--at", "2020-01-01T08:00")
        data = invoke_json(temp_data_dir, "stats")["data"]["stats"]
        assert data["today"]["bottle_volume"] == 120
        assert data["all_time"]["total_pumped_volume"] == 60
        assert data["last"]["fed_at"]

    def test_export(self, temp_data_dir, tmp_path):
        """Export writes a CSV."""
        invoke_json(temp_data_dir, "log", "sleep", "--minutes", "30")
        out = tmp_path / "export.csv"
        data = invoke_json(temp_data_dir, "export", str(out))
        assert data["data"]["count"] == 1
        lines = out.read_text().splitlines()
        assert lines[0].startswith("Timestamp,Type")
        assert ",sleep," in lines[1]


class TestImportAndDedupe:
    """Tests for legacy import and duplicate removal."""

    def write_legacy(self, tmp_path):
        rows = [
            {"kind": "expression", "created_at": "2025-11-24T09:00:00Z", "expression_amount_ml": "75"},
            {"kind": "diaper", "created_at": "2025-11-24T10:00:00Z", "diaper_kind": "wet"},
            {"kind": "bath", "created_at": "2025-11-24T11:00:00Z"},
        ]
        lines = [",".join(LEGACY_HEADERS)]
        lines += [",".join(row.get(h, "") for h in LEGACY_HEADERS) for row in rows]
        path = tmp_path / "legacy.csv"
        path.write_text("\n".join(lines) + "\n")
        return path

    def test_import_twice_then_dedupe(self, temp_data_dir, tmp_path):
        """A doubled import is cleaned up by dedupe."""
        path = self.write_legacy(tmp_path)
        first = invoke_json(temp_data_dir, "import-legacy", str(path), "--yes")
        assert first["data"]["import"]["count"] == 2
        assert first["data"]["import"]["skipped"] == 1
        invoke_json(temp_data_dir, "import-legacy", str(path), "--yes")
        assert invoke_json(temp_data_dir, "history")["data"]["count"] == 4

        dedup = invoke_json(temp_data_dir, "dedupe", "--yes")
        assert dedup["data"]["dedup"]["deleted_count"] == 2
        assert invoke_json(temp_data_dir, "history")["data"]["count"] == 2

    def test_import_missing_file(self, temp_data_dir, tmp_path):
        """A missing file fails the command."""
        result = invoke(temp_data_dir, "import-legacy", str(tmp_path / "none.csv"), "--yes")
        assert result.exit_code == 1
        assert json.loads(result.stdout)["error_code"] == "IMPORT_FAILED"


class TestPrefsCommands:
    """Tests for preferences."""

    def test_family_and_name(self, temp_data_dir):
        """Family and name are stored."""
        invoke_json(temp_data_dir, "prefs", "family", "smiths")
        data = invoke_json(temp_data_dir, "prefs", "name", "Robin")
        prefs = data["data"]["preferences"]
        assert prefs["familyId"] == "smiths"
        assert prefs["babyName"] == "Robin"

    @pytest.mark.parametrize(
        "content", ['{"volumeUnit": "cups"}', "{not json"]
    )
    def test_unreadable_preferences(self, temp_data_dir, content):
        """A broken preferences file fails with a code instead of a traceback."""
        temp_data_dir.mkdir(parents=True, exist_ok=True)
        (temp_data_dir / "preferences.json").write_text(content)
        result = invoke(temp_data_dir, "history")
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["success"] is False
        assert data["error_code"] == "INVALID_PREFERENCES"

    def test_family_used_for_new_logs(self, temp_data_dir):
        """New logs belong to the stored family."""
        invoke_json(temp_data_dir, "prefs", "family", "smiths")
        data = invoke_json(temp_data_dir, "log", "diaper", "wet")
        assert data["data"]["log"]["familyId"] == "smiths"
