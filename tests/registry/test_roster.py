"""Tests for roster loading (default roster and JSON files)."""

import json

import pytest

from quadflow.errors import RosterConfigError
from quadflow.models.common import FlowStage, ParticipationLevel
from quadflow.registry.roster import DEFAULT_ROSTER, build_registry, load_roster


def _write(tmp_path, payload) -> str:
    path = tmp_path / "roster.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


_MINIMAL = {
    "circles": [{"circle_id": "CORE", "name": "Core"}],
    "roles": [
        {
            "role_id": "OWNER",
            "display_name": "Owner",
            "circle_id": "CORE",
            "participation": {
                "QUESTION": "PRIMARY",
                "UNDERSTAND": "PRIMARY",
                "ALLOCATE": "PRIMARY",
                "DELIVER": "PRIMARY",
            },
        },
        {
            "role_id": "REVIEWER",
            "display_name": "Reviewer",
            "circle_id": "CORE",
            "participation": {"QUESTION": "REVIEW"},
        },
    ],
}


class TestDefaultRoster:

    def test_five_roles_four_circles(self) -> None:
        assert len(DEFAULT_ROSTER.roles) == 5
        assert len(DEFAULT_ROSTER.circles) == 4

    def test_round_trips_through_json(self, tmp_path) -> None:
        path = tmp_path / "default.json"
        path.write_text(DEFAULT_ROSTER.model_dump_json(), encoding="utf-8")
        assert load_roster(path) == DEFAULT_ROSTER


class TestLoadRoster:

    def test_load_and_build(self, tmp_path) -> None:
        reg = build_registry(load_roster(_write(tmp_path, _MINIMAL)))
        assert reg.lookup_participation("OWNER", FlowStage.DELIVER) == ParticipationLevel.PRIMARY
        assert reg.lookup_participation("REVIEWER", FlowStage.QUESTION) == ParticipationLevel.REVIEW
        assert reg.lookup_participation("REVIEWER", FlowStage.DELIVER) == ParticipationLevel.INFORM

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(RosterConfigError):
            load_roster(tmp_path / "nope.json")

    def test_invalid_level(self, tmp_path) -> None:
        payload = json.loads(json.dumps(_MINIMAL))
        payload["roles"][1]["participation"]["QUESTION"] = "OWNER"
        with pytest.raises(RosterConfigError):
            load_roster(_write(tmp_path, payload))

    def test_incomplete_roster_rejected_on_build(self, tmp_path) -> None:
        payload = json.loads(json.dumps(_MINIMAL))
        payload["roles"][0]["participation"]["DELIVER"] = "SUPPORT"
        with pytest.raises(RosterConfigError):
            build_registry(load_roster(_write(tmp_path, payload)))
