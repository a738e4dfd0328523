"""Exceptions raised by single-item engine operations.

Batch sweeps never raise these for a single item; they collect them as
``SweepError`` entries instead.
"""


class PawcareError(Exception):
    pass


class NotFound(PawcareError, LookupError):
    def __init__(self, kind: str, item_id: str) -> None:
        super().__init__(f"{kind} {item_id} not found")
        self.kind = kind
        self.id = item_id


class InvalidInput(PawcareError, ValueError):
    pass


class InvalidTransition(InvalidInput):
    """Raised when a reminder in a terminal state is asked to change."""
