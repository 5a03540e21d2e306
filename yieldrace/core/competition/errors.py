"""Usage errors raised by the competition controller."""


class CompetitionError(Exception):
    """Base class for competition usage errors."""


class AlreadyRunning(CompetitionError):
    """A round for another intent is still bidding."""

    def __init__(self, active_intent_id: str, requested_intent_id: str):
        self.active_intent_id = active_intent_id
        self.requested_intent_id = requested_intent_id
        super().__init__(
            f"Round for intent {active_intent_id} is still bidding; "
            f"cancel it before starting {requested_intent_id}"
        )


class RoundClosed(CompetitionError):
    """A bid arrived while no round was bidding."""


class NoSolversAvailable(CompetitionError):
    """The solver registry is empty."""
