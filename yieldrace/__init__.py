"""
YieldRace - Solver competition engine

Models timed bidding rounds in which automated yield-optimization
agents (solvers) compete to serve a posted yield intent:
- Solver registry
- Randomized bid generation
- Round lifecycle with update-if-better aggregation
- Deterministic winner resolution
"""

__version__ = "0.1.0"
