"""Model serialization and deserialization for BayesianNetwork.

Two formats are supported:

* JSON, via :func:`save_model` / :func:`load_model`.  The payload carries
  a ``format_version`` for backward compatibility, the variables, the
  edges and every table with its parent order, dimensions and flat
  values.
* A line-oriented text format, via :func:`save_text` / :func:`load_text`::

      # comment
      NODES
      <id> <name> <stateCount> <state1> <state2> ...
      EDGES
      <parentId> -> <childId>
      CPTS
      <id>
      <dimCount> <dim1> <dim2> ...
      PARENTS <parentId> ...
      <own-state probabilities, one line per parent configuration>

  Tokens are whitespace separated, so ids, names and states containing
  whitespace are rejected on save.

Both formats round-trip table contents exactly (floats are written with
``repr``).  Loading rebuilds the network through its public API, so
cycles, bad shapes and out-of-range values are rejected the same way as
for a hand-built network, and reported as
:class:`~beliefnet.core.errors.SerializationError`.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Tuple, Union

import numpy as np

from beliefnet.core.errors import BeliefNetError, SerializationError
from beliefnet.distributions.conditional import ProbabilityTensor
from beliefnet.networks.dag import BayesianNetwork

logger = logging.getLogger(__name__)

# Current serialization format version
FORMAT_VERSION = 1

PathLike = Union[str, Path]


# ------------------------------------------------------------------ #
#  JSON
# ------------------------------------------------------------------ #


def save_model(network: BayesianNetwork, filepath: PathLike) -> None:
    """Export a :class:`BayesianNetwork` to a JSON file.

    Parameters
    ----------
    network : BayesianNetwork
        The network to serialize.
    filepath : str or Path
        Destination file path.  Parent directories must exist.

    Raises
    ------
    TypeError
        If *network* is not a :class:`BayesianNetwork`.
    """
    if not isinstance(network, BayesianNetwork):
        raise TypeError(
            f"Expected BayesianNetwork, got {type(network).__name__}"
        )

    payload = _serialize_network(network)
    filepath = Path(filepath)
    with open(filepath, "w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2, ensure_ascii=False)
    logger.debug("Saved %d variables to %s", len(network), filepath)


def load_model(filepath: PathLike) -> BayesianNetwork:
    """Reconstruct a :class:`BayesianNetwork` from a JSON file.

    Raises
    ------
    FileNotFoundError
        If *filepath* does not exist.
    SerializationError
        If the file is corrupted, has an unsupported version, or
        describes an invalid network.
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"Model file not found: {filepath}")

    try:
        with open(filepath, "r", encoding="utf-8") as fh:
            payload = json.load(fh)
    except json.JSONDecodeError as exc:
        raise SerializationError(f"Corrupted model file: {exc}") from exc

    return _deserialize_network(payload)


def _serialize_network(network: BayesianNetwork) -> Dict[str, Any]:
    """Convert a network to a JSON-serializable dictionary."""
    variables: List[Dict[str, Any]] = []
    tables: List[Dict[str, Any]] = []

    for vid in network.variables:
        variable = network.get_variable(vid)
        variables.append(
            {"id": vid, "name": variable.name, "states": list(variable.states)}
        )
        tensor = network.get_table(vid)
        if tensor is not None:
            tables.append(
                {
                    "variable": vid,
                    "parents": list(tensor.parent_ids),
                    "dimensions": list(tensor.dimensions),
                    "values": tensor.flat_values,
                }
            )

    return {
        "format_version": FORMAT_VERSION,
        "variables": variables,
        "edges": [{"parent": p, "child": c} for p, c in network.edges],
        "tables": tables,
    }


def _deserialize_network(payload: Any) -> BayesianNetwork:
    """Reconstruct a network from a deserialized dictionary."""
    if not isinstance(payload, dict):
        raise SerializationError("Model file must contain a JSON object")

    version = payload.get("format_version")
    if version is None:
        raise SerializationError("Missing 'format_version' in model file")
    if not isinstance(version, int) or version > FORMAT_VERSION:
        raise SerializationError(
            f"Unsupported format version {version} "
            f"(max supported: {FORMAT_VERSION})"
        )

    payload = _migrate(payload, version)

    bn = BayesianNetwork()
    try:
        for entry in payload["variables"]:
            bn.add_variable(entry["id"], entry.get("name", entry["id"]), entry["states"])
        for edge in payload.get("edges", []):
            bn.add_edge(edge["parent"], edge["child"])
        for entry in payload.get("tables", []):
            _attach_table(
                bn,
                entry["variable"],
                entry["parents"],
                entry["dimensions"],
                entry["values"],
            )
    except KeyError as exc:
        raise SerializationError(f"Model file is missing field {exc}") from exc
    except (BeliefNetError, ValueError, TypeError) as exc:
        if isinstance(exc, SerializationError):
            raise
        raise SerializationError(f"Invalid model: {exc}") from exc

    return bn


def _migrate(payload: Dict[str, Any], version: int) -> Dict[str, Any]:
    """Apply version migrations to bring *payload* up to current format."""
    if "variables" not in payload:
        raise SerializationError("Missing 'variables' in model file")

    # Version 1 is current; later versions add steps here.
    return payload


def _attach_table(
    bn: BayesianNetwork,
    variable_id: str,
    parents: List[str],
    dimensions: List[int],
    values: List[float],
) -> None:
    dims = [int(d) for d in dimensions]
    expected = int(np.prod(dims)) if dims else 0
    if len(values) != expected:
        raise SerializationError(
            f"Table for '{variable_id}' has {len(values)} values, "
            f"expected {expected} for dimensions {dims}",
            {"variable_id": variable_id},
        )
    array = np.asarray(values, dtype=np.float64).reshape(dims)
    tensor = ProbabilityTensor.from_array(array, parent_ids=list(parents))
    bn.set_conditional_table(variable_id, tensor)


# ------------------------------------------------------------------ #
#  Text format
# ------------------------------------------------------------------ #


_KEYWORDS = frozenset({"NODES", "EDGES", "CPTS"})


def _check_token(token: str, what: str) -> str:
    if not token or token.startswith("#") or any(ch.isspace() for ch in token):
        raise SerializationError(
            f"{what} {token!r} cannot be written to the text format "
            "(empty, commented out, or contains whitespace)"
        )
    return token


def save_text(network: BayesianNetwork, filepath: PathLike) -> None:
    """Write *network* in the line-oriented text format.

    Raises
    ------
    SerializationError
        If an id, name or state contains whitespace.
    """
    lines: List[str] = ["# beliefnet network", "NODES"]
    for vid in network.variables:
        variable = network.get_variable(vid)
        if vid in _KEYWORDS:
            raise SerializationError(
                f"Variable id {vid!r} is a reserved word in the text format"
            )
        tokens = [_check_token(vid, "Variable id"), _check_token(variable.name, "Name")]
        tokens.append(str(variable.num_states))
        tokens.extend(_check_token(s, "State") for s in variable.states)
        lines.append(" ".join(tokens))

    lines.append("EDGES")
    for parent, child in network.edges:
        lines.append(f"{parent} -> {child}")

    lines.append("CPTS")
    for vid in network.variables:
        tensor = network.get_table(vid)
        if tensor is None:
            continue
        dims = tensor.dimensions
        lines.append(vid)
        lines.append(" ".join(str(d) for d in (len(dims), *dims)))
        lines.append(" ".join(["PARENTS", *tensor.parent_ids]))
        for row in tensor.array.reshape(-1, dims[-1]):
            lines.append(" ".join(repr(float(p)) for p in row))

    filepath = Path(filepath)
    with open(filepath, "w", encoding="utf-8") as fh:
        fh.write("\n".join(lines) + "\n")
    logger.debug("Saved %d variables to %s (text)", len(network), filepath)


def _content_lines(text: str) -> Iterator[Tuple[int, List[str]]]:
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        yield lineno, line.split()


def load_text(filepath: PathLike) -> BayesianNetwork:
    """Read a network written by :func:`save_text`.

    Raises
    ------
    FileNotFoundError
        If *filepath* does not exist.
    SerializationError
        On malformed input or an invalid network.
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"Model file not found: {filepath}")
    with open(filepath, "r", encoding="utf-8") as fh:
        text = fh.read()

    bn = BayesianNetwork()
    lines = _content_lines(text)
    section = None
    lineno = 0
    try:
        for lineno, tokens in lines:
            if tokens[0] in _KEYWORDS and len(tokens) == 1:
                section = tokens[0]
            elif section == "NODES":
                _parse_node(bn, tokens)
            elif section == "EDGES":
                if len(tokens) != 3 or tokens[1] != "->":
                    raise SerializationError(f"Malformed edge {' '.join(tokens)!r}")
                bn.add_edge(tokens[0], tokens[2])
            elif section == "CPTS":
                lineno = _parse_table(bn, tokens, lines)
            else:
                raise SerializationError("Content before the first section")
    except SerializationError as exc:
        raise SerializationError(f"Line {lineno}: {exc}", exc.details) from exc
    except (BeliefNetError, ValueError) as exc:
        raise SerializationError(f"Line {lineno}: {exc}") from exc

    return bn


def _parse_node(bn: BayesianNetwork, tokens: List[str]) -> None:
    if len(tokens) < 3:
        raise SerializationError(f"Malformed node {' '.join(tokens)!r}")
    vid, name, count = tokens[0], tokens[1], int(tokens[2])
    states = tokens[3:]
    if len(states) != count:
        raise SerializationError(
            f"Node '{vid}' declares {count} states but lists {len(states)}"
        )
    bn.add_variable(vid, name, states)


def _parse_table(
    bn: BayesianNetwork,
    header: List[str],
    lines: Iterator[Tuple[int, List[str]]],
) -> int:
    """Consume one CPTS entry whose id line is *header*."""
    if len(header) != 1:
        raise SerializationError(f"Expected a variable id, got {' '.join(header)!r}")
    vid = header[0]

    try:
        lineno, dim_tokens = next(lines)
        dims = [int(t) for t in dim_tokens]
        if len(dims) < 2 or dims[0] != len(dims) - 1:
            raise SerializationError(f"Malformed dimensions for '{vid}'")
        dims = dims[1:]

        lineno, parent_tokens = next(lines)
        if parent_tokens[0] != "PARENTS":
            raise SerializationError(f"Expected PARENTS line for '{vid}'")
        parents = parent_tokens[1:]

        rows: List[List[float]] = []
        num_rows = int(np.prod(dims[:-1])) if len(dims) > 1 else 1
        for _ in range(num_rows):
            lineno, row = next(lines)
            if len(row) != dims[-1]:
                raise SerializationError(
                    f"Row for '{vid}' has {len(row)} values, expected {dims[-1]}"
                )
            rows.append([float(t) for t in row])
    except StopIteration:
        raise SerializationError(f"Unexpected end of file in table '{vid}'") from None

    values = [p for row in rows for p in row]
    _attach_table(bn, vid, parents, dims, values)
    return lineno
