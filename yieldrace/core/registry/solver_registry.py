"""
Solver Registry - Identity catalogue for competition participants.

This module provides:
- Immutable solver identities
- An ordered, read-only registry loaded once at process start
- Uniform random selection of a solver for simulated arrivals
"""

import json
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from yieldrace.utils.logger import get_logger

logger = get_logger("registry")


# =============================================================================
# Data Structures
# =============================================================================


@dataclass(frozen=True)
class Solver:
    """
    A registered solver identity.

    Attributes:
        id: Unique identifier (e.g. "scallop")
        display_name: Human readable name
        description: Free-form strategy description
        protocol: Protocol the solver routes deposits into
        color: Display color hint for observers
    """
    id: str
    display_name: str
    description: str = ""
    protocol: str = ""
    color: str = ""

    @property
    def protocol_tag(self) -> str:
        """Protocol tag, falling back to the solver id."""
        return self.protocol or self.id


DEFAULT_SOLVERS: Tuple[Solver, ...] = (
    Solver(
        id="scallop",
        display_name="Scallop Solver",
        description="Optimized for Scallop protocol yields",
        protocol="scallop",
        color="#3B82F6",
    ),
    Solver(
        id="navi",
        display_name="Navi Solver",
        description="Specialized in Navi protocol strategies",
        protocol="navi",
        color="#10B981",
    ),
    Solver(
        id="aggregator",
        display_name="Aggregator Bot",
        description="Cross-protocol yield optimization",
        protocol="aggregator",
        color="#F59E0B",
    ),
)


# =============================================================================
# Solver Registry
# =============================================================================


class SolverRegistry:
    """
    Read-only registry of solver identities.

    Iteration order is registration order, which keeps random selection
    reproducible under a seeded random source.
    """

    def __init__(self, solvers: Iterable[Solver] = DEFAULT_SOLVERS):
        """
        Initialize the registry.

        Args:
            solvers: Solver identities; ids must be unique

        Raises:
            ValueError: On a duplicate id
        """
        ordered: List[Solver] = []
        by_id: Dict[str, Solver] = {}
        for solver in solvers:
            if solver.id in by_id:
                raise ValueError(f"Duplicate solver id: {solver.id}")
            by_id[solver.id] = solver
            ordered.append(solver)

        self._solvers: Tuple[Solver, ...] = tuple(ordered)
        self._by_id = by_id

        logger.info(f"SolverRegistry initialized with {len(self._solvers)} solvers")

    def __len__(self) -> int:
        return len(self._solvers)

    def __iter__(self) -> Iterator[Solver]:
        return iter(self._solvers)

    def __contains__(self, solver_id: object) -> bool:
        return solver_id in self._by_id

    @property
    def ids(self) -> List[str]:
        """Registered solver ids in registration order."""
        return [s.id for s in self._solvers]

    def get(self, solver_id: str) -> Optional[Solver]:
        """Get a solver by id."""
        return self._by_id.get(solver_id)

    def choose(self, rng: random.Random) -> Solver:
        """
        Pick a solver uniformly at random (repeats allowed).

        Raises:
            IndexError: If the registry is empty
        """
        return rng.choice(self._solvers)


# =============================================================================
# Loading
# =============================================================================


def load_registry(path: Union[str, Path]) -> SolverRegistry:
    """
    Load solver identities from a JSON file.

    The file holds a list of objects with "id" and "name" keys plus the
    optional "description", "protocol" and "color" keys.

    Args:
        path: Path to the JSON file

    Returns:
        SolverRegistry instance

    Raises:
        ValueError: On malformed content
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid solver registry {path}: {e}") from e

    if not isinstance(data, list):
        raise ValueError(f"Solver registry {path} must contain a JSON list")

    solvers = []
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ValueError(f"Solver entry {index} must be an object")
        solver_id = entry.get("id")
        name = entry.get("name")
        if not solver_id or not name:
            raise ValueError(f"Solver entry {index} requires 'id' and 'name'")
        solvers.append(Solver(
            id=str(solver_id),
            display_name=str(name),
            description=str(entry.get("description", "")),
            protocol=str(entry.get("protocol", "")),
            color=str(entry.get("color", "")),
        ))

    logger.debug(f"Loaded {len(solvers)} solvers from {path}")
    return SolverRegistry(solvers)
