"""Example usage of the beliefnet package.

This example demonstrates the core features of the beliefnet package including:
- Building a network by hand and reading joint probabilities
- Exact posteriors by enumeration (medical diagnosis, burglary alarm)
- Forward belief propagation with influence tracing
- Reverse (diagnostic) belief propagation
"""

from beliefnet import (
    BayesianNetwork,
    InferenceContext,
    ProbabilityTensor,
    belief_propagation,
    reverse_belief_propagation,
    variable_elimination,
)
from beliefnet.networks.graph import alarm_network, medical_diagnosis_network


def _print_beliefs(beliefs):
    for vid, belief in beliefs.items():
        cells = ", ".join(f"{s}={p:.4f}" for s, p in belief.items())
        print(f"   P({vid}) = [{cells}]")


def medical_diagnosis_example():
    """Which disease explains fever and cough?"""
    print("=" * 60)
    print("Medical Diagnosis Example")
    print("=" * 60)

    bn = medical_diagnosis_network()
    evidence = {"Symptom1": "Yes", "Symptom2": "Yes"}
    result = variable_elimination(bn, ["Disease"], evidence)

    print("\nP(Disease | Fever=Yes, Cough=Yes)")
    for key, prob in result.items():
        print(f"   {key[0][1]:>5}: {prob:.4f}")
    print(f"   Most probable: {result.most_probable()[0][1]}")


def alarm_example():
    """The burglary/earthquake alarm network."""
    print("\n" + "=" * 60)
    print("Burglary Alarm Example")
    print("=" * 60)

    bn = alarm_network()
    evidence = {"JohnCalls": "True", "MaryCalls": "True"}
    result = variable_elimination(bn, ["Burglary"], evidence)

    print("\n1. Exact enumeration")
    print(f"   P(Burglary=True | J, M) = {result.probability({'Burglary': 'True'}):.4f}")
    print(f"   P(evidence) = {result.total_mass:.6f}")

    print("\n2. Joint probability of one world")
    world = {
        "Burglary": "False",
        "Earthquake": "False",
        "Alarm": "True",
        "JohnCalls": "True",
        "MaryCalls": "True",
    }
    print(f"   P(~b, ~e, a, j, m) = {bn.joint_probability(world):.6f}")


def belief_propagation_example():
    """Forward propagation along a simple causal chain."""
    print("\n" + "=" * 60)
    print("Belief Propagation Example")
    print("=" * 60)

    bn = BayesianNetwork()
    bn.add_variable("A", "Exposure", ["False", "True"])
    bn.add_variable("B", "Infection", ["False", "True"])
    bn.add_variable("C", "Test", ["Negative", "Positive"])
    bn.add_edge("A", "B")
    bn.add_edge("B", "C")
    bn.set_conditional_table("A", ProbabilityTensor.from_array([0.7, 0.3]))
    bn.set_conditional_table(
        "B", ProbabilityTensor.from_array([[0.8, 0.2], [0.3, 0.7]])
    )
    bn.set_conditional_table(
        "C", ProbabilityTensor.from_array([[0.9, 0.1], [0.2, 0.8]])
    )

    print("\n1. Evidence Exposure=True, query Test")
    result = belief_propagation(bn, ["C"], {"A": "True"})
    _print_beliefs(result.posterior)
    for trace in result.traces:
        print(f"   {trace.path}: strength {trace.influence_strength:.4f}")

    print("\n2. Evidence Test=Positive, query Exposure")
    with InferenceContext(trace_influence=False):
        result = belief_propagation(bn, ["A"], {"C": "Positive"})
    _print_beliefs(result.posterior)


def reverse_propagation_example():
    """Diagnose the causes of the neighbours' calls."""
    print("\n" + "=" * 60)
    print("Reverse Belief Propagation Example")
    print("=" * 60)

    bn = alarm_network()
    result = reverse_belief_propagation(
        bn,
        ["Burglary", "Earthquake"],
        {"JohnCalls": "True", "MaryCalls": "True"},
    )
    print("\n1. Posterior over causes")
    _print_beliefs(result.beliefs)
    print("\n2. Influence paths (effect -> cause)")
    for trace in result.traces:
        print(f"   {trace.path}: strength {trace.influence_strength:.4f}")


if __name__ == "__main__":
    print("\n" + "=" * 60)
    print("beliefnet Package Examples")
    print("=" * 60)

    medical_diagnosis_example()
    alarm_example()
    belief_propagation_example()
    reverse_propagation_example()

    print("\n" + "=" * 60)
    print("Examples completed successfully!")
    print("=" * 60 + "\n")
