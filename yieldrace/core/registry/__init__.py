"""
YieldRace Solver Registry Module.

Static catalogue of solver identities taking part in competitions.
"""

from yieldrace.core.registry.solver_registry import (
    Solver,
    SolverRegistry,
    DEFAULT_SOLVERS,
    load_registry,
)

__all__ = [
    "Solver",
    "SolverRegistry",
    "DEFAULT_SOLVERS",
    "load_registry",
]
