"""
Quote book: every bid and ask seen at one strike, maturity and kind.

Quotes are keyed by (value kind, side), so a book holds at most one bid
and one ask per value kind (plus, if the feed sends them, non-sided
quotes). Queries never mutate the book; they return new quotes with the
side cleared.
"""

import logging
from dataclasses import replace
from typing import Dict, Iterator, Optional, Tuple

from .crud import book_key, log_missing
from .exceptions import EmptyCollectionError, InvalidKeyError, MissingQuoteError
from .quote import Maturity, OptionSide, OptionType, Quote, ValueKind, make_value, normalize_maturity

logger = logging.getLogger(__name__)


class QuoteBook:
    """
    Bid/ask aggregation at one (strike, maturity, option kind).

    Parameters
    ----------
    strike, maturity, option_type : identity every stored quote must share
    quotes : optional initial ticks, upserted in order
    """

    def __init__(self, strike: float, maturity: Maturity, option_type, quotes=()):
        self.strike = float(strike)
        self.maturity = normalize_maturity(maturity)
        self.option_type = OptionType.parse(option_type)
        self._quotes: Dict[Tuple[ValueKind, Optional[OptionSide]], Quote] = {}
        for quote in quotes:
            self.upsert(quote)

    @classmethod
    def for_quote(cls, quote: Quote) -> "QuoteBook":
        """Empty book with the quote's strike, maturity and kind."""
        return cls(quote.strike, quote.maturity, quote.option_type)

    def __len__(self) -> int:
        return len(self._quotes)

    def __iter__(self) -> Iterator[Quote]:
        return iter(list(self._quotes.values()))

    def __contains__(self, key) -> bool:
        return key in self._quotes

    def __repr__(self) -> str:
        return (f"QuoteBook(strike={self.strike}, maturity={self.maturity!r}, "
                f"option_type={self.option_type.value}, n={len(self)})")

    @property
    def spot(self) -> float:
        """Spot of the most recently stored quote."""
        if not self._quotes:
            raise EmptyCollectionError(f"quote book at strike {self.strike} is empty")
        return next(reversed(self._quotes.values())).spot

    def _matches(self, quote: Quote) -> bool:
        return (float(quote.strike) == self.strike
                and quote.maturity == self.maturity
                and quote.option_type is self.option_type)

    def get(self, value_kind, side) -> Quote:
        key = (ValueKind.parse(value_kind), None if side is None else OptionSide.parse(side))
        try:
            return self._quotes[key]
        except KeyError:
            raise InvalidKeyError(f"no {key[0].value} quote on side {side} at strike {self.strike}")

    # ── CRUD ─────────────────────────────────────────────────────────────

    def upsert(self, quote: Quote) -> None:
        """Replace the quote with the same (value kind, side), or insert it."""
        if not self._matches(quote):
            raise InvalidKeyError(
                f"quote (strike={quote.strike}, maturity={quote.maturity!r}, "
                f"{quote.option_type.value}) does not belong in {self!r}"
            )
        if quote.is_empty():
            logger.debug("value %r below epsilon, deleting instead", quote.amount)
            return self.delete(quote)
        self._quotes[book_key(quote)] = quote

    def delete(self, quote: Quote, missing_ok: bool = True) -> None:
        """
        Remove the quote with the same (value kind, side).

        A missing key is a no-op unless missing_ok is False, in which case
        InvalidKeyError is raised.
        """
        key = book_key(quote)
        if self._matches(quote) and key in self._quotes:
            del self._quotes[key]
            return
        if not missing_ok:
            raise InvalidKeyError(f"{key} not in {self!r}")
        log_missing("quote book", key)

    # ── queries ──────────────────────────────────────────────────────────

    def _kinds(self, side: OptionSide) -> set:
        return {q.value_kind for q in self._quotes.values() if q.side is side}

    def _side(self, side: OptionSide, value_kind) -> list:
        ticks = [q for q in self._quotes.values() if q.side is side]
        if value_kind is None:
            # prices and vols are never compared with each other
            kinds = {q.value_kind for q in ticks}
            value_kind = ValueKind.PRICE if ValueKind.PRICE in kinds else ValueKind.IMPLIED_VOLATILITY
        kind = ValueKind.parse(value_kind)
        return [q for q in ticks if q.value_kind is kind]

    def _mid_kind(self, value_kind) -> ValueKind:
        """
        Value kind a mid is taken in.

        Without an explicit kind: a kind quoted on both sides (Price first),
        else Price if present anywhere, else ImpliedVolatility.
        """
        if value_kind is not None:
            return ValueKind.parse(value_kind)
        bid_kinds = self._kinds(OptionSide.BID)
        ask_kinds = self._kinds(OptionSide.ASK)
        candidates = (bid_kinds & ask_kinds) or (bid_kinds | ask_kinds)
        if ValueKind.PRICE in candidates or not candidates:
            return ValueKind.PRICE
        return ValueKind.IMPLIED_VOLATILITY

    def best_bid(self, value_kind=None) -> Quote:
        """
        Highest bid of one value kind, side cleared.

        value_kind defaults to Price when the bid side has one, else
        ImpliedVolatility.
        """
        bids = self._side(OptionSide.BID, value_kind)
        if not bids:
            raise MissingQuoteError(f"no bid in quote book at strike {self.strike}")
        best = bids[0]
        for tick in bids[1:]:
            if tick.amount > best.amount:
                best = tick
        return best.with_side(None)

    def best_ask(self, value_kind=None) -> Quote:
        """Lowest ask of one value kind (default as in best_bid), side cleared."""
        asks = self._side(OptionSide.ASK, value_kind)
        if not asks:
            raise MissingQuoteError(f"no ask in quote book at strike {self.strike}")
        best = asks[0]
        for tick in asks[1:]:
            if tick.amount < best.amount:
                best = tick
        return best.with_side(None)

    def _both_sides(self, value_kind):
        value_kind = self._mid_kind(value_kind)
        try:
            bid = self.best_bid(value_kind)
        except MissingQuoteError:
            bid = None
        try:
            ask = self.best_ask(value_kind)
        except MissingQuoteError:
            ask = None
        if bid is None and ask is None:
            raise MissingQuoteError(
                f"no {value_kind.value} bid or ask in quote book at strike {self.strike}"
            )
        return bid, ask

    @staticmethod
    def _synthetic(bid: Quote, value: float) -> Quote:
        # a mid has no volume or open interest of its own
        return replace(bid, value=make_value(bid.value_kind, value), extra=None)

    def mid(self, value_kind=None) -> Quote:
        """
        (best bid + best ask) / 2, both of one value kind (see _mid_kind).

        Falls back to whichever side exists; MissingQuoteError if neither.
        The result carries no volume or open interest.
        """
        bid, ask = self._both_sides(value_kind)
        if bid is None:
            return ask
        if ask is None:
            return bid
        return self._synthetic(bid, 0.5 * (bid.amount + ask.amount))

    def mid_weighted(self, value_kind=None) -> Quote:
        """
        Volume-weighted average of best bid and best ask.

        Same fallback as mid(). Both sides need a volume; a missing volume
        or zero total volume raises MissingQuoteError.
        """
        bid, ask = self._both_sides(value_kind)
        if bid is None:
            return ask
        if ask is None:
            return bid
        if bid.volume is None or ask.volume is None:
            raise MissingQuoteError(f"volume missing on best bid/ask at strike {self.strike}")
        total = bid.volume + ask.volume
        if total <= 0:
            raise MissingQuoteError(f"zero volume on best bid/ask at strike {self.strike}")
        value = (bid.amount * bid.volume + ask.amount * ask.volume) / total
        return self._synthetic(bid, value)
