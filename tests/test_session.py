"""Tests for beliefnet/integration/session.py."""

from __future__ import annotations

from pathlib import Path

import pytest

from beliefnet.integration.session import NetworkSession
from beliefnet.networks.graph import alarm_network


def _rain_session() -> NetworkSession:
    session = NetworkSession()
    assert session.add_variable("Rain", "Rain", ["No", "Yes"])
    assert session.add_variable("Wet", "Wet grass", ["No", "Yes"])
    assert session.add_edge("Rain", "Wet")
    assert session.set_probability("Rain", {}, "No", 0.8)
    assert session.set_probability("Rain", {}, "Yes", 0.2)
    assert session.set_probability("Wet", {"Rain": "No"}, "No", 0.9)
    assert session.set_probability("Wet", {"Rain": "No"}, "Yes", 0.1)
    assert session.set_probability("Wet", {"Rain": "Yes"}, "No", 0.2)
    assert session.set_probability("Wet", {"Rain": "Yes"}, "Yes", 0.8)
    return session


class TestSessionMutation:

    def test_success_clears_error(self):
        session = NetworkSession()
        assert not session.add_edge("A", "B")
        assert session.last_error_message() is not None
        assert session.add_variable("A", "A", ["0"])
        assert session.last_error_message() is None

    def test_duplicate_variable(self):
        session = NetworkSession()
        assert session.add_variable("A", "A", ["0"])
        assert not session.add_variable("A", "A", ["0"])
        assert session.last_error_message() == "Variable 'A' already exists"

    def test_invalid_states_reported(self):
        session = NetworkSession()
        assert not session.add_variable("A", "A", [])
        assert "at least one state" in session.last_error_message()

    def test_cycle_reported_and_rolled_back(self):
        session = _rain_session()
        assert not session.add_edge("Wet", "Rain")
        assert "cycle" in session.last_error_message()
        assert session.edges == [("Rain", "Wet")]

    def test_out_of_range_probability(self):
        session = _rain_session()
        assert not session.set_probability("Rain", {}, "Yes", 1.2)
        assert "[0, 1]" in session.last_error_message()

    def test_normalize(self):
        session = NetworkSession()
        session.add_variable("A", "A", ["x", "y"])
        session.set_probability("A", {}, "x", 0.3)
        session.set_probability("A", {}, "y", 0.3)
        assert session.normalize("A")
        assert session.conditional_probability("A", "x", {}) == pytest.approx(0.5)

    def test_normalize_without_table(self):
        session = NetworkSession()
        session.add_variable("A", "A", ["x"])
        assert not session.normalize("A")
        assert "CPT not set" in session.last_error_message()

    def test_set_probability_after_new_parent_rebuilds_table(self):
        session = NetworkSession()
        session.add_variable("A", "A", ["0", "1"])
        session.add_variable("B", "B", ["0", "1"])
        assert session.set_probability("B", {}, "0", 0.5)
        assert session.add_edge("A", "B")

        assert session.set_probability("B", {"A": "0"}, "0", 0.5)
        assert session.set_probability("B", {"A": "0"}, "1", 0.5)
        assert session.normalize("B")
        assert session.network.get_table("B").parent_ids == ("A",)
        assert session.conditional_probability("B", "1", {"A": "0"}) == 0.5
        assert session.conditional_probability("B", "1", {"A": "1"}) == 0.0


class TestSessionQueries:

    def test_infer(self):
        session = _rain_session()
        result = session.infer(["Rain"], {"Wet": "Yes"})
        # .2 * .8 / (.2 * .8 + .8 * .1)
        assert result.probability({"Rain": "Yes"}) == pytest.approx(2 / 3)

    def test_infer_failure_returns_none(self):
        session = _rain_session()
        assert session.infer(["Snow"]) is None
        assert session.last_error_message() == "Variable 'Snow' does not exist"

    def test_infer_other_methods(self):
        session = _rain_session()
        bp = session.infer(["Rain"], {"Wet": "Yes"}, method="belief_propagation")
        assert bp.beliefs["Rain"]["Yes"] == pytest.approx(2 / 3)
        assert session.infer(["Rain"], method="nonsense") is None

    def test_joint_probability(self):
        session = _rain_session()
        assert session.joint_probability({"Rain": "Yes", "Wet": "Yes"}) == pytest.approx(0.16)
        assert session.joint_probability({"Rain": "Yes"}) is None
        assert "Missing assignment" in session.last_error_message()

    def test_conditional_probability(self):
        session = _rain_session()
        assert session.conditional_probability("Wet", "Yes", {"Rain": "Yes"}) == 0.8
        assert session.conditional_probability("Wet", "Maybe", {"Rain": "Yes"}) is None

    def test_variable_snapshot(self):
        session = _rain_session()
        assert session.variables[1] == {
            "id": "Wet",
            "name": "Wet grass",
            "states": ["No", "Yes"],
            "parents": ["Rain"],
        }


class TestSessionPersistence:

    def test_save_and_load_json(self, tmp_path: Path):
        session = NetworkSession(alarm_network())
        path = tmp_path / "alarm.json"
        assert session.save(path)

        other = NetworkSession()
        assert other.load(path)
        assert other.network.variables == session.network.variables

    def test_save_and_load_text(self, tmp_path: Path):
        session = _rain_session()
        path = tmp_path / "rain.bn"
        assert session.save(path)

        other = NetworkSession()
        assert other.load(path)
        assert other.joint_probability({"Rain": "No", "Wet": "No"}) == pytest.approx(0.72)

    def test_load_missing_file_keeps_network(self, tmp_path: Path):
        session = _rain_session()
        assert not session.load(tmp_path / "missing.json")
        assert "not found" in session.last_error_message()
        assert "Rain" in session.network

    def test_save_failure_reported(self, tmp_path: Path):
        session = NetworkSession()
        session.add_variable("A", "A", ["has space"])
        assert not session.save(tmp_path / "a.bn")
        assert "whitespace" in session.last_error_message()
