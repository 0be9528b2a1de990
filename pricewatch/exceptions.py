"""Exceptions raised by the matching and reconciliation engine."""


class PricewatchError(Exception):
    """Base class for engine errors."""

    pass


class MatchConflictError(PricewatchError):
    """Raised when a candidate would be approved for a second catalog product."""

    pass


class ReconciliationError(PricewatchError):
    """Raised when a price observation cannot be reconciled."""

    pass
