class OddsEngineError(Exception):
    """Base class for errors raised by the odds stores."""


class EventNotFound(OddsEngineError):
    pass


class QuoteNotFound(OddsEngineError):
    pass


class PolicyNotFound(OddsEngineError):
    pass


class InvalidWager(OddsEngineError):
    pass


class ConcurrencyConflict(OddsEngineError):
    """Compare-and-swap lost: the quote revision moved since it was read."""


class QuoteClosed(OddsEngineError):
    """The quote is CLOSED and can no longer be mutated."""


class InvariantViolation(OddsEngineError):
    """Stored data breaks a structural rule (e.g. two ACTIVE quotes for one outcome)."""
