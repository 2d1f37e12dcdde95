"""Network construction utilities for beliefnet.

Random builders for benchmarks and tests, plus the two classical
textbook networks used throughout the examples.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from beliefnet.distributions.conditional import ProbabilityTensor
from beliefnet.networks.dag import BayesianNetwork


def _random_table(
    rng: np.random.Generator, parent_states: int, num_states: int
) -> ProbabilityTensor:
    if parent_states == 0:
        return ProbabilityTensor.from_array(rng.dirichlet(np.ones(num_states)))
    rows = np.empty((parent_states, num_states))
    for s in range(parent_states):
        rows[s] = rng.dirichlet(np.ones(num_states))
    return ProbabilityTensor.from_array(rows)


def build_tree(
    num_nodes: int,
    num_states: int = 2,
    seed: Optional[int] = None,
) -> BayesianNetwork:
    """Build a balanced binary tree network with random tables.

    Variables are named ``X0 .. X{n-1}``; node i's children are 2i+1 and
    2i+2.  Each table row is drawn from a flat Dirichlet.
    """
    rng = np.random.default_rng(seed)
    states = [f"s{i}" for i in range(num_states)]
    bn = BayesianNetwork()

    for i in range(num_nodes):
        bn.add_variable(f"X{i}", f"X{i}", states)
    for i in range(1, num_nodes):
        bn.add_edge(f"X{(i - 1) // 2}", f"X{i}")

    for i in range(num_nodes):
        parent_states = num_states if i > 0 else 0
        bn.set_conditional_table(
            f"X{i}", _random_table(rng, parent_states, num_states)
        )
    return bn


def build_chain(
    num_nodes: int,
    num_states: int = 2,
    seed: Optional[int] = None,
) -> BayesianNetwork:
    """Build a chain-structured network X0 -> X1 -> ... (a Markov chain)."""
    rng = np.random.default_rng(seed)
    states = [f"s{i}" for i in range(num_states)]
    bn = BayesianNetwork()

    for i in range(num_nodes):
        bn.add_variable(f"X{i}", f"X{i}", states)
    for i in range(num_nodes - 1):
        bn.add_edge(f"X{i}", f"X{i + 1}")

    for i in range(num_nodes):
        parent_states = num_states if i > 0 else 0
        bn.set_conditional_table(
            f"X{i}", _random_table(rng, parent_states, num_states)
        )
    return bn


def medical_diagnosis_network() -> BayesianNetwork:
    """Disease -> Fever, Disease -> Cough.

    P(Disease) = (None 0.7, Cold 0.2, Flu 0.1); symptom tables follow
    the classical diagnosis example.
    """
    bn = BayesianNetwork()
    bn.add_variable("Disease", "Disease", ["None", "Cold", "Flu"])
    bn.add_variable("Symptom1", "Fever", ["No", "Yes"])
    bn.add_variable("Symptom2", "Cough", ["No", "Yes"])
    bn.add_edge("Disease", "Symptom1")
    bn.add_edge("Disease", "Symptom2")

    bn.set_conditional_table(
        "Disease", ProbabilityTensor.from_array([0.7, 0.2, 0.1])
    )
    bn.set_conditional_table(
        "Symptom1",
        ProbabilityTensor.from_array([[0.9, 0.1], [0.7, 0.3], [0.2, 0.8]]),
    )
    bn.set_conditional_table(
        "Symptom2",
        ProbabilityTensor.from_array([[0.95, 0.05], [0.3, 0.7], [0.4, 0.6]]),
    )
    return bn


def alarm_network() -> BayesianNetwork:
    """The burglary/earthquake alarm network (Russell & Norvig).

    Alarm's table is indexed ``[Burglary, Earthquake, Alarm]``.
    """
    bn = BayesianNetwork()
    for name in ["Burglary", "Earthquake", "Alarm", "JohnCalls", "MaryCalls"]:
        bn.add_variable(name, name, ["False", "True"])
    bn.add_edge("Burglary", "Alarm")
    bn.add_edge("Earthquake", "Alarm")
    bn.add_edge("Alarm", "JohnCalls")
    bn.add_edge("Alarm", "MaryCalls")

    bn.set_conditional_table(
        "Burglary", ProbabilityTensor.from_array([0.999, 0.001])
    )
    bn.set_conditional_table(
        "Earthquake", ProbabilityTensor.from_array([0.998, 0.002])
    )
    alarm = np.array([
        [[0.999, 0.001], [0.71, 0.29]],   # Burglary=False
        [[0.06, 0.94], [0.05, 0.95]],     # Burglary=True
    ])
    bn.set_conditional_table(
        "Alarm",
        ProbabilityTensor.from_array(alarm, parent_ids=["Burglary", "Earthquake"]),
    )
    bn.set_conditional_table(
        "JohnCalls", ProbabilityTensor.from_array([[0.95, 0.05], [0.10, 0.90]])
    )
    bn.set_conditional_table(
        "MaryCalls", ProbabilityTensor.from_array([[0.99, 0.01], [0.30, 0.70]])
    )
    return bn
