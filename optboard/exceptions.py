"""
Error types raised by the pricing engine and the quote collections.

Each error also derives from the builtin it specializes, so callers that
only care about "bad value" or "not found" can catch ValueError or
LookupError without importing this module.
"""


class OptionBoardError(Exception):
    """Base class for every error raised by optboard."""


class MissingQuoteError(OptionBoardError, LookupError):
    """A requested bid, ask or quote is absent."""


class EmptyCollectionError(OptionBoardError, ValueError):
    """A query was made on an empty chain, board or subset."""


class NonConvergenceError(OptionBoardError, RuntimeError):
    """The implied volatility solver could not reproduce the target price."""

    def __init__(self, message: str, iterations: int = 0, last_sigma: float = float("nan")):
        super().__init__(message)
        self.iterations = iterations
        self.last_sigma = last_sigma


class UndefinedGreekError(OptionBoardError, ValueError):
    """
    A model quantity is not defined for the given inputs.

    Raised for Greeks requested on a Price-valued quote, and for any
    pricing or sensitivity call with non-positive time, vol, spot or strike.
    """


class InvalidKeyError(OptionBoardError, LookupError):
    """A lookup or strict delete targeted a key that does not exist."""
