"""beliefnet benchmark suite using pytest-benchmark.

Run:
    pytest beliefnet/benchmarks/suite.py --benchmark-only --benchmark-autosave

CI integration:
    pytest beliefnet/benchmarks/suite.py --benchmark-only --benchmark-autosave \
        --benchmark-compare --benchmark-compare-fail=mean:10%
"""

from __future__ import annotations

import tracemalloc

import numpy as np
import pytest

from beliefnet.inference.belief_propagation import belief_propagation
from beliefnet.inference.exact import variable_elimination
from beliefnet.inference.reverse import reverse_belief_propagation
from beliefnet.networks.graph import alarm_network, build_chain, build_tree


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def tree_10():
    """10-node tree-structured Bayesian network."""
    return build_tree(num_nodes=10, num_states=2, seed=42)


@pytest.fixture
def tree_100():
    """100-node tree-structured Bayesian network."""
    return build_tree(num_nodes=100, num_states=2, seed=42)


@pytest.fixture
def chain_10():
    """10-node chain with three states per variable."""
    return build_chain(num_nodes=10, num_states=3, seed=7)


# ---------------------------------------------------------------------------
# Benchmark: Belief Propagation Speed
# ---------------------------------------------------------------------------

def test_belief_propagation_speed(benchmark, tree_10):
    """Belief propagation on a 10-node tree must complete in <10ms."""
    result = benchmark(
        belief_propagation, tree_10, ["X0"], {"X9": "s1"}, trace_influence=False
    )

    assert len(result.beliefs) == 10
    for belief in result.beliefs.values():
        assert abs(sum(belief.values()) - 1.0) < 1e-6

    median_ms = benchmark.stats.stats.median * 1000
    assert median_ms < 10.0, (
        f"Belief propagation took {median_ms:.3f}ms (limit: 10ms)"
    )


# ---------------------------------------------------------------------------
# Benchmark: Enumeration Throughput
# ---------------------------------------------------------------------------

def test_enumeration_throughput(benchmark, chain_10):
    """Enumerating 3^9 worlds per query state must complete in <2s."""
    result = benchmark.pedantic(
        variable_elimination,
        args=(chain_10, ["X0"], {"X9": "s2"}),
        rounds=3,
        iterations=1,
    )

    assert len(result) == 3
    assert result.num_skipped == 0
    assert abs(sum(result.values()) - 1.0) < 1e-9

    median_ms = benchmark.stats.stats.median * 1000
    assert median_ms < 2000.0, (
        f"Enumeration took {median_ms:.1f}ms (limit: 2000ms)"
    )


def test_reverse_propagation_speed(benchmark):
    """Diagnostic query on the alarm network, traces included."""
    bn = alarm_network()
    result = benchmark(
        reverse_belief_propagation,
        bn,
        ["Burglary"],
        {"JohnCalls": "True", "MaryCalls": "True"},
    )
    assert len(result.traces) == 2


# ---------------------------------------------------------------------------
# Benchmark: Memory Scaling
# ---------------------------------------------------------------------------

def test_memory_scaling(tree_100):
    """100-node network propagation must use <10MB of memory."""
    tracemalloc.start()
    snapshot_before = tracemalloc.take_snapshot()

    result = belief_propagation(
        tree_100, ["X0"], {"X99": "s0", "X50": "s1"}, trace_influence=False
    )

    snapshot_after = tracemalloc.take_snapshot()
    tracemalloc.stop()

    stats = snapshot_after.compare_to(snapshot_before, "lineno")
    total_bytes = sum(s.size_diff for s in stats if s.size_diff > 0)
    total_mb = total_bytes / (1024 * 1024)

    assert total_mb < 10.0, (
        f"Memory usage: {total_mb:.2f}MB (limit: 10MB)"
    )
    assert len(result.beliefs) == 100


# ---------------------------------------------------------------------------
# Benchmark: Inference Accuracy
# ---------------------------------------------------------------------------

class TestInferenceAccuracy:
    """Validate propagation against exact enumeration."""

    def test_belief_propagation_chain_accuracy(self):
        """BP on a chain matches enumeration for every variable."""
        bn = build_chain(num_nodes=6, num_states=2, seed=123)
        evidence = {"X5": "s1"}

        bp = belief_propagation(bn, bn.variables, evidence, trace_influence=False)
        for vid in bn.variables:
            if vid in evidence:
                continue
            exact = variable_elimination(bn, [vid], evidence).marginal(vid)
            np.testing.assert_allclose(
                [bp.beliefs[vid][s] for s in bn.get_states(vid)],
                [exact[s] for s in bn.get_states(vid)],
                atol=1e-9,
            )

    def test_belief_propagation_tree_accuracy(self):
        """BP on a tree with two leaves observed matches enumeration."""
        bn = build_tree(num_nodes=7, num_states=3, seed=5)
        evidence = {"X3": "s0", "X6": "s2"}

        bp = belief_propagation(bn, bn.variables, evidence, trace_influence=False)
        for vid in ["X0", "X1", "X2", "X4", "X5"]:
            exact = variable_elimination(bn, [vid], evidence).marginal(vid)
            np.testing.assert_allclose(
                [bp.beliefs[vid][s] for s in bn.get_states(vid)],
                [exact[s] for s in bn.get_states(vid)],
                atol=1e-9,
            )
