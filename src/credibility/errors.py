"""Credibility engine errors."""


class CredibilityError(Exception):
    """Base credibility engine error."""


class RecordNotFound(CredibilityError):
    """No usage record with the given id exists in history."""

    def __init__(self, record_id: str):
        super().__init__(f"No usage record with id {record_id!r}")
        self.record_id = record_id


class RecordAlreadyResolved(CredibilityError):
    """The usage record already carries an outcome."""

    def __init__(self, record_id: str, outcome: str):
        super().__init__(f"Usage record {record_id!r} already resolved as {outcome}")
        self.record_id = record_id
        self.outcome = outcome


class InvariantViolation(CredibilityError):
    """A profile snapshot is outside its allowed ranges."""
