"""Tests for preference persistence and the command-line runner."""
import json

import pytest

from constants import INSIGHT_TYPES
from insight_models import InsightPreferences
from insights_cli import main
from pipeline.preferences import load_preferences, save_preferences


class TestPreferencesFile:

    def test_unset_path_gives_defaults(self):
        prefs = load_preferences(None)
        assert prefs.enabled_types == INSIGHT_TYPES
        assert prefs.refresh_interval_seconds == 300

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_preferences(str(tmp_path / "nope.json")) == InsightPreferences()

    def test_save_then_load(self, tmp_path):
        path = str(tmp_path / "nested" / "prefs.json")
        prefs = InsightPreferences(
            enabled_types=frozenset({"critical", "warning"}),
            priority_overrides={"info-sync": 90},
            muted_insights=frozenset({"habit-streak"}),
            refresh_interval_seconds=600,
        )
        save_preferences(prefs, path)
        assert load_preferences(path) == prefs

    def test_unknown_types_dropped_and_overrides_clamped(self, tmp_path):
        path = tmp_path / "prefs.json"
        path.write_text(json.dumps({
            "enabled_types": ["critical", "bogus"],
            "priority_overrides": {"a": 250, "b": "x"},
        }))
        prefs = load_preferences(str(path))
        assert prefs.enabled_types == frozenset({"critical"})
        assert prefs.priority_overrides == {"a": 100}

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "prefs.json"
        path.write_text("{not json")
        with pytest.raises(ValueError):
            load_preferences(str(path))

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "prefs.json"
        path.write_text("[1, 2]")
        with pytest.raises(ValueError):
            load_preferences(str(path))


SNAPSHOT = {
    "now": "2026-03-16T20:00:00Z",
    "quality_data": {"metrics_by_quality": {"poor": ["Steps"], "fair": []}},
    "trainer_data": {"unreadMessages": 1},
}


class TestCli:

    def _snapshot(self, tmp_path):
        path = tmp_path / "snapshot.json"
        path.write_text(json.dumps(SNAPSHOT))
        return str(path)

    def test_prints_ranked_json(self, tmp_path, capsys):
        assert main([self._snapshot(tmp_path)]) == 0
        out = json.loads(capsys.readouterr().out)
        assert [i["id"] for i in out] == ["quality-poor", "trainer-unread-messages"]
        assert out[0]["timestamp"] == "2026-03-16T20:00:00"
        assert out[0]["action"] == {"type": "navigate", "path": "/data-quality"}

    def test_sources_and_max(self, tmp_path, capsys):
        assert main([self._snapshot(tmp_path), "--sources", "trainer,bogus", "--max", "5"]) == 0
        out = json.loads(capsys.readouterr().out)
        assert [i["id"] for i in out] == ["trainer-unread-messages"]

    def test_mute_is_saved(self, tmp_path, capsys):
        prefs = str(tmp_path / "prefs.json")
        assert main([self._snapshot(tmp_path), "--preferences", prefs, "--mute", "quality-poor"]) == 0
        out = json.loads(capsys.readouterr().out)
        assert [i["id"] for i in out] == ["trainer-unread-messages"]
        assert load_preferences(prefs).muted_insights == frozenset({"quality-poor"})

    def test_missing_snapshot(self, tmp_path):
        assert main([str(tmp_path / "missing.json")]) == 1

    def test_malformed_preferences(self, tmp_path, capsys, caplog):
        prefs = tmp_path / "prefs.json"
        prefs.write_text("{not json")
        assert main([self._snapshot(tmp_path), "--preferences", str(prefs)]) == 1
        assert capsys.readouterr().out == ""
        assert "Could not load insight preferences" in caplog.text

    def test_snapshot_must_be_object(self, tmp_path):
        path = tmp_path / "snapshot.json"
        path.write_text("[1, 2]")
        assert main([str(path)]) == 1
