"""Tests for beliefnet/inference/exact.py.

Covers:
- Enumeration posteriors on small networks with hand-computed answers
- The medical diagnosis and burglary alarm scenarios
- Skipped-combination accounting
- Query/evidence overlap and validation
- Ancestral marginals against full enumeration
"""

from __future__ import annotations

import logging

import numpy as np
import pytest

from beliefnet.core.errors import MissingTableError, UnknownIdError, UnknownStateError
from beliefnet.distributions.conditional import ProbabilityTensor
from beliefnet.inference.exact import (
    evaluate_joint,
    iter_assignments,
    marginal_distribution,
    normalize_distribution,
    variable_elimination,
)
from beliefnet.networks.dag import BayesianNetwork
from beliefnet.networks.graph import (
    alarm_network,
    build_tree,
    medical_diagnosis_network,
)


# ------------------------------------------------------------------ #
#  Helpers
# ------------------------------------------------------------------ #

def _chain_abc(with_c_table: bool = True) -> BayesianNetwork:
    bn = BayesianNetwork()
    bn.add_variable("A", "A", ["False", "True"])
    bn.add_variable("B", "B", ["Low", "High"])
    bn.add_variable("C", "C", ["Negative", "Positive"])
    bn.add_edge("A", "B")
    bn.add_edge("B", "C")
    bn.set_conditional_table("A", ProbabilityTensor.from_array([0.7, 0.3]))
    bn.set_conditional_table(
        "B", ProbabilityTensor.from_array([[0.8, 0.2], [0.3, 0.7]])
    )
    if with_c_table:
        bn.set_conditional_table(
            "C", ProbabilityTensor.from_array([[0.9, 0.1], [0.2, 0.8]])
        )
    return bn


# ------------------------------------------------------------------ #
#  Helpers under test
# ------------------------------------------------------------------ #

class TestHelpers:

    def test_iter_assignments_last_fastest(self):
        bn = _chain_abc()
        worlds = list(iter_assignments(bn, ["A", "B"]))
        assert worlds == [
            {"A": "False", "B": "Low"},
            {"A": "False", "B": "High"},
            {"A": "True", "B": "Low"},
            {"A": "True", "B": "High"},
        ]

    def test_iter_assignments_empty_yields_one(self):
        bn = _chain_abc()
        assert list(iter_assignments(bn, [])) == [{}]

    def test_normalize_distribution(self):
        assert normalize_distribution({"a": 1.0, "b": 3.0}) == {"a": 0.25, "b": 0.75}

    def test_normalize_distribution_leaves_zero_mass(self):
        assert normalize_distribution({"a": 0.0, "b": 0.0}) == {"a": 0.0, "b": 0.0}

    def test_evaluate_joint_captures_engine_errors(self):
        bn = _chain_abc(with_c_table=False)
        outcome = evaluate_joint(bn, {"A": "True", "B": "Low", "C": "Negative"})
        assert not outcome.ok
        assert outcome.probability is None
        assert isinstance(outcome.error, MissingTableError)

    def test_evaluate_joint_success(self):
        bn = _chain_abc()
        outcome = evaluate_joint(bn, {"A": "True", "B": "Low", "C": "Negative"})
        assert outcome.ok
        assert outcome.probability == pytest.approx(0.3 * 0.3 * 0.9)


# ------------------------------------------------------------------ #
#  Enumeration
# ------------------------------------------------------------------ #

class TestVariableElimination:

    def test_no_evidence_gives_prior(self):
        bn = _chain_abc()
        result = variable_elimination(bn, ["A"])
        assert result.probability({"A": "True"}) == pytest.approx(0.3)
        assert result.total_mass == pytest.approx(1.0)

    def test_diagnostic_query_on_chain(self):
        bn = _chain_abc()
        result = variable_elimination(bn, ["A"], {"C": "Positive"})
        # P(A=F, C=+) = .7 * .24, P(A=T, C=+) = .3 * .59
        assert result.probability({"A": "True"}) == pytest.approx(0.177 / 0.345)
        assert result.probability({"A": "False"}) == pytest.approx(0.168 / 0.345)
        assert result.total_mass == pytest.approx(0.345)

    def test_posterior_sums_to_one(self):
        bn = build_tree(num_nodes=6, num_states=3, seed=11)
        result = variable_elimination(bn, ["X1", "X2"], {"X5": "s0"})
        assert len(result) == 9
        assert sum(result.values()) == pytest.approx(1.0)

    def test_joint_query_keys_in_query_order(self):
        bn = _chain_abc()
        result = variable_elimination(bn, ["B", "A"], {"C": "Positive"})
        key = (("B", "High"), ("A", "True"))
        assert key in result
        assert result[key] == pytest.approx(0.3 * 0.7 * 0.8 / 0.345)
        assert result.most_probable() == key

    def test_marginal_folds_joint(self):
        bn = _chain_abc()
        result = variable_elimination(bn, ["A", "B"], {"C": "Positive"})
        assert result.marginal("A")["True"] == pytest.approx(0.177 / 0.345)
        with pytest.raises(KeyError):
            result.marginal("C")

    def test_observed_query_variable_is_clamped(self):
        bn = _chain_abc()
        result = variable_elimination(bn, ["A"], {"A": "True"})
        assert result.probability({"A": "True"}) == pytest.approx(1.0)
        assert result.probability({"A": "False"}) == 0.0

    def test_duplicate_query_ignored(self):
        bn = _chain_abc()
        result = variable_elimination(bn, ["A", "A"])
        assert result.query == ["A"]
        assert len(result) == 2

    def test_unknown_query_raises(self):
        bn = _chain_abc()
        with pytest.raises(UnknownIdError):
            variable_elimination(bn, ["Q"])

    def test_unknown_evidence_state_raises(self):
        bn = _chain_abc()
        with pytest.raises(UnknownStateError):
            variable_elimination(bn, ["A"], {"C": "Maybe"})

    def test_missing_table_combinations_skipped(self, caplog):
        bn = _chain_abc(with_c_table=False)
        with caplog.at_level(logging.WARNING, logger="beliefnet.inference.exact"):
            result = variable_elimination(bn, ["A"])
        assert result.num_skipped == 8
        assert result.evaluated == 0
        assert all(isinstance(e.error, MissingTableError) for e in result.skipped)
        assert list(result.values()) == [0.0, 0.0]
        assert "Skipped 8 of 8" in caplog.text

    def test_network_is_not_mutated(self):
        bn = _chain_abc()
        before = {v: bn.get_table(v).copy() for v in bn.variables}
        variable_elimination(bn, ["A"], {"C": "Positive"})
        for v in bn.variables:
            assert bn.get_table(v) == before[v]


class TestClassicScenarios:

    def test_medical_diagnosis_flu_most_likely(self):
        bn = medical_diagnosis_network()
        result = variable_elimination(
            bn, ["Disease"], {"Symptom1": "Yes", "Symptom2": "Yes"}
        )
        posterior = result.marginal("Disease")
        assert max(posterior, key=posterior.get) == "Flu"
        # unnormalized: Flu .048, Cold .042, None .0035
        assert posterior["Flu"] == pytest.approx(0.048 / 0.0935)
        assert posterior["Cold"] == pytest.approx(0.042 / 0.0935)
        assert sum(posterior.values()) == pytest.approx(1.0)

    def test_alarm_burglary_given_both_calls(self):
        bn = alarm_network()
        result = variable_elimination(
            bn, ["Burglary"], {"JohnCalls": "True", "MaryCalls": "True"}
        )
        assert result.probability({"Burglary": "True"}) == pytest.approx(
            0.284, abs=0.01
        )

    def test_alarm_world_probability(self):
        bn = alarm_network()
        world = {
            "Burglary": "False",
            "Earthquake": "False",
            "Alarm": "True",
            "JohnCalls": "True",
            "MaryCalls": "True",
        }
        expected = 0.999 * 0.998 * 0.001 * 0.90 * 0.70
        assert bn.joint_probability(world) == pytest.approx(expected)


# ------------------------------------------------------------------ #
#  Ancestral marginals
# ------------------------------------------------------------------ #

class TestMarginalDistribution:

    def test_matches_full_enumeration(self):
        bn = build_tree(num_nodes=7, num_states=2, seed=3)
        evidence = {"X4": "s1", "X6": "s0"}
        for vid in ["X0", "X1", "X2", "X3"]:
            fast = marginal_distribution(bn, vid, evidence)
            full = marginal_distribution(
                bn, vid, evidence, restrict_to_ancestors=False
            )
            exact = variable_elimination(bn, [vid], evidence).marginal(vid)
            np.testing.assert_allclose(
                [fast[s] for s in exact], list(exact.values()), atol=1e-12
            )
            np.testing.assert_allclose(
                [full[s] for s in exact], list(exact.values()), atol=1e-12
            )

    def test_ignores_missing_tables_outside_closure(self):
        bn = _chain_abc(with_c_table=False)
        belief = marginal_distribution(bn, "B", {"A": "True"})
        assert belief == pytest.approx({"Low": 0.3, "High": 0.7})

    def test_missing_table_inside_closure_raises(self):
        bn = _chain_abc(with_c_table=False)
        with pytest.raises(MissingTableError):
            marginal_distribution(bn, "A", {"C": "Positive"})
