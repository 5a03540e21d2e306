"""
Competition configuration parameters for YieldRace.

Defines bid generation ranges, arrival pacing, and round termination rules.
"""

import os
from dataclasses import dataclass, fields
from typing import Optional

from dotenv import load_dotenv


ENV_PREFIX = "YIELDRACE_"

TERMINATION_POLICIES = ("count", "elapsed", "grace")


@dataclass
class CompetitionConfig:
    """Round-wide configuration parameters"""

    # Bid generation (apy values are fractions, 0.085 = 8.5%)
    margin_min: float = 0.002  # Smallest solver take (0.2 percentage points)
    margin_max: float = 0.005  # Largest solver take (0.5 percentage points)
    confidence_min: float = 0.8
    confidence_max: float = 1.0
    apy_precision: int = 4  # Decimal places on the fraction scale
    enforce_min_apy: bool = False  # Clamp generated bids up to min_apy

    # Arrival pacing (seconds between simulated bids)
    arrival_interval_min: float = 0.8
    arrival_interval_max: float = 2.0

    # Termination
    termination: str = "count"
    min_bid_events: int = 5  # Round bound N is drawn from [min, max]
    max_bid_events: int = 10
    elapsed_duration: float = 5.0  # Used by the "elapsed" policy
    grace_window: float = 3.0  # Used by the "grace" policy
    round_timeout: Optional[float] = 30.0  # None disables TIMEOUT

    def __post_init__(self):
        """Validate ranges"""
        if not 0 <= self.margin_min <= self.margin_max:
            raise ValueError(f"Invalid margin range [{self.margin_min}, {self.margin_max}]")
        if not 0 <= self.confidence_min <= self.confidence_max <= 1:
            raise ValueError(
                f"Invalid confidence range [{self.confidence_min}, {self.confidence_max}]"
            )
        if self.apy_precision < 0:
            raise ValueError(f"apy_precision must be >= 0, got {self.apy_precision}")
        if not 0 <= self.arrival_interval_min <= self.arrival_interval_max:
            raise ValueError(
                f"Invalid arrival interval [{self.arrival_interval_min}, {self.arrival_interval_max}]"
            )
        if self.termination not in TERMINATION_POLICIES:
            raise ValueError(
                f"Unknown termination policy {self.termination!r}, "
                f"expected one of {', '.join(TERMINATION_POLICIES)}"
            )
        if not 1 <= self.min_bid_events <= self.max_bid_events:
            raise ValueError(
                f"Invalid bid event range [{self.min_bid_events}, {self.max_bid_events}]"
            )
        if self.elapsed_duration < 0 or self.grace_window < 0:
            raise ValueError("elapsed_duration and grace_window must be >= 0")
        if self.round_timeout is not None and self.round_timeout <= 0:
            raise ValueError(f"round_timeout must be positive, got {self.round_timeout}")


def _coerce(raw: str, default):
    """Convert an environment string to the type of the field default."""
    if raw.lower() in ("none", "") and not isinstance(default, str):
        return None
    if isinstance(default, bool):
        return raw.lower() in ("1", "true", "yes", "on")
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float) or default is None:
        return float(raw)
    return raw


def load_config(env_file: Optional[str] = None, **overrides) -> CompetitionConfig:
    """
    Load configuration from the environment.

    Values come from YIELDRACE_<FIELD> variables (a .env file is read
    first when present), then from explicit keyword overrides.

    Args:
        env_file: Optional path to a dotenv file
        **overrides: Field values that win over the environment

    Returns:
        CompetitionConfig instance
    """
    load_dotenv(dotenv_path=env_file)

    defaults = CompetitionConfig()
    values = {}
    for f in fields(CompetitionConfig):
        raw = os.environ.get(ENV_PREFIX + f.name.upper())
        if raw is not None:
            try:
                values[f.name] = _coerce(raw.strip(), getattr(defaults, f.name))
            except ValueError as e:
                raise ValueError(f"Invalid {ENV_PREFIX}{f.name.upper()}={raw!r}: {e}") from e

    values.update({k: v for k, v in overrides.items() if v is not None})
    return CompetitionConfig(**values)
