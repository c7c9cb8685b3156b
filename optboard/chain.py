"""
Option chain: everything quoted at one maturity, keyed by (strike, kind).

A Chain is generic over its entries. Chain.of_quotes() holds one quote
per (strike, kind); Chain.of_books() holds a QuoteBook per (strike, kind)
and turns into a quote chain through mid(), best_bid(), best_ask() or
mid_weighted(). Entries only need the QuoteLike capabilities (strike,
maturity, option_type, spot).

Filters (call, put, otm, sort_by_strike) return new chains. The
synthetic quotes (atm, delta buckets) work on quote chains and return
new quotes; nothing is written back. Every query scans the chain from
scratch, so cache results yourself if the chain does not change.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, Generic, Iterable, Iterator, List, Optional, Tuple, TypeVar

from . import config
from .black_scholes import theoretical_price
from .book import QuoteBook
from .crud import BookSlot, QuoteSlot, chain_key, log_missing
from .exceptions import EmptyCollectionError, InvalidKeyError, MissingQuoteError
from .frames import quotes_to_frame
from .greeks import Greeks
from .implied_vol import implied_volatility
from .quote import Maturity, OptionType, Quote, QuoteLike, make_value, normalize_maturity

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=QuoteLike)


def _strike_order(item: QuoteLike) -> Tuple[float, int]:
    # calls sort before puts at the same strike
    return float(item.strike), 0 if item.option_type is OptionType.CALL else 1


def _nearest(quotes: List[Quote], spot: float) -> Quote:
    """Quote with the smallest |strike - spot|; ties go to the first in the list."""
    best = quotes[0]
    for q in quotes[1:]:
        if abs(q.strike - spot) < abs(best.strike - spot):
            best = q
    return best


class Chain(Generic[T]):
    """
    Same-maturity collection keyed by (strike, option kind).

    Parameters
    ----------
    maturity : shared maturity; taken from the first upserted quote if None
    slot : crud.QuoteSlot() for bare quotes (default) or crud.BookSlot(...)
    """

    def __init__(self, maturity: Optional[Maturity] = None, slot=None):
        self.maturity = None if maturity is None else normalize_maturity(maturity)
        self._slot = slot if slot is not None else QuoteSlot()
        self._entries: Dict[Tuple[float, OptionType], T] = {}

    @classmethod
    def of_quotes(cls, quotes: Iterable[Quote] = (), maturity: Optional[Maturity] = None) -> "Chain[Quote]":
        chain = cls(maturity, QuoteSlot())
        for q in quotes:
            chain.upsert(q)
        return chain

    @classmethod
    def of_books(cls, quotes: Iterable[Quote] = (), maturity: Optional[Maturity] = None) -> "Chain[QuoteBook]":
        chain = cls(maturity, BookSlot(QuoteBook.for_quote))
        for q in quotes:
            chain.upsert(q)
        return chain

    def _derive(self, entries: Iterable[T]) -> "Chain[T]":
        """New chain sharing maturity and slot, holding entries in the given order."""
        out = Chain(self.maturity, self._slot)
        for e in entries:
            out._entries[chain_key(e)] = e
        return out

    # ── container protocol ───────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._entries.values()))

    def __contains__(self, key) -> bool:
        return key in self._entries

    def __repr__(self) -> str:
        kind = "books" if self.holds_books else "quotes"
        return f"Chain(maturity={self.maturity!r}, {kind}={len(self)})"

    @property
    def holds_books(self) -> bool:
        return self._slot.holds_books

    def get(self, strike: float, option_type) -> T:
        key = (float(strike), OptionType.parse(option_type))
        try:
            return self._entries[key]
        except KeyError:
            raise InvalidKeyError(f"no {key[1].value} at strike {strike} in {self!r}")

    def strikes(self) -> List[float]:
        return sorted({k[0] for k in self._entries})

    def quotes(self) -> Iterator[Quote]:
        """Every stored quote; books are flattened."""
        for entry in self._entries.values():
            if self.holds_books:
                yield from entry
            else:
                yield entry

    def to_frame(self):
        """pandas DataFrame, one row per stored quote."""
        return quotes_to_frame(self.quotes())

    @property
    def spot(self) -> float:
        """Underlying price, read from the first entry."""
        if not self._entries:
            raise EmptyCollectionError(f"{self!r} is empty")
        return next(iter(self._entries.values())).spot

    # ── CRUD ─────────────────────────────────────────────────────────────

    def upsert(self, quote: Quote) -> None:
        """Replace (or merge into) the entry at (strike, kind), inserting if absent."""
        if quote.is_empty():
            logger.debug("value %r below epsilon, deleting instead", quote.amount)
            return self.delete(quote)
        if self.maturity is None:
            self.maturity = quote.maturity
        elif quote.maturity != self.maturity:
            raise InvalidKeyError(f"maturity {quote.maturity!r} does not belong in {self!r}")
        key = chain_key(quote)
        self._entries[key] = self._slot.merge(self._entries.get(key), quote)

    def delete(self, quote: Quote, missing_ok: bool = True) -> None:
        """
        Remove the quote at (strike, kind); an emptied book is dropped.

        A missing key is a no-op unless missing_ok is False (InvalidKeyError).
        """
        key = chain_key(quote)
        entry = self._entries.get(key)
        if entry is None or quote.maturity != self.maturity:
            if not missing_ok:
                raise InvalidKeyError(f"{key} not in {self!r}")
            log_missing("chain", key)
            return
        remaining = self._slot.purge(entry, quote, missing_ok=missing_ok)
        if remaining is None:
            del self._entries[key]
        else:
            self._entries[key] = remaining

    # ── conversion ───────────────────────────────────────────────────────

    def map(self, func: Callable[[T], Quote], skip_missing: bool = False) -> "Chain[Quote]":
        """
        Quote chain built by applying func to every entry.

        With skip_missing, entries for which func raises MissingQuoteError
        are left out instead of aborting the whole map.
        """
        out = Chain(self.maturity, QuoteSlot())
        for entry in self._entries.values():
            try:
                q = func(entry)
            except MissingQuoteError:
                if not skip_missing:
                    raise
                logger.debug("no quote derived at strike %s, skipped", entry.strike)
                continue
            out._entries[chain_key(q)] = q
        return out

    def _require_books(self, what: str) -> None:
        if not self.holds_books:
            raise TypeError(f"{what}() needs a chain of quote books")

    def _require_quotes(self, what: str) -> None:
        if self.holds_books:
            raise TypeError(f"{what}() needs a chain of quotes; convert with mid() first")

    def mid(self, value_kind=None, skip_missing: bool = False) -> "Chain[Quote]":
        self._require_books("mid")
        return self.map(lambda b: b.mid(value_kind), skip_missing)

    def mid_weighted(self, value_kind=None, skip_missing: bool = False) -> "Chain[Quote]":
        self._require_books("mid_weighted")
        return self.map(lambda b: b.mid_weighted(value_kind), skip_missing)

    def best_bid(self, value_kind=None, skip_missing: bool = False) -> "Chain[Quote]":
        self._require_books("best_bid")
        return self.map(lambda b: b.best_bid(value_kind), skip_missing)

    def best_ask(self, value_kind=None, skip_missing: bool = False) -> "Chain[Quote]":
        self._require_books("best_ask")
        return self.map(lambda b: b.best_ask(value_kind), skip_missing)

    def implied_volatility(self, now: Optional[datetime] = None, **solver_kwargs) -> "Chain[Quote]":
        """Every quote solved for implied vol (IV quotes pass through)."""
        self._require_quotes("implied_volatility")
        return self.map(lambda q: implied_volatility(q, now=now, **solver_kwargs))

    def theoretical_price(self, now: Optional[datetime] = None) -> "Chain[Quote]":
        """Every quote priced from its implied vol (Price quotes pass through)."""
        self._require_quotes("theoretical_price")
        return self.map(lambda q: theoretical_price(q, now=now))

    # ── filters ──────────────────────────────────────────────────────────

    def call(self) -> "Chain[T]":
        return self._derive(e for e in self._entries.values() if e.option_type is OptionType.CALL)

    def put(self) -> "Chain[T]":
        return self._derive(e for e in self._entries.values() if e.option_type is OptionType.PUT)

    def sort_by_strike(self) -> "Chain[T]":
        """Same entries, iterating in ascending strike (calls first on a tie)."""
        return self._derive(sorted(self._entries.values(), key=_strike_order))

    def otm(self) -> "Chain[T]":
        """Calls with strike >= spot and puts with strike < spot."""
        spot = self.spot
        return self._derive(
            e for e in self._entries.values()
            if (e.option_type is OptionType.CALL and e.strike >= spot)
            or (e.option_type is OptionType.PUT and e.strike < spot)
        )

    # ── synthetic quotes ─────────────────────────────────────────────────

    def atm(self) -> Quote:
        """
        At-the-money quote interpolated from the nearest OTM put and call.

            value = put + (call - put) * (spot - K_put) / (K_call - K_put)

        The result copies the put anchor with strike = spot and the side
        cleared. With only one kind out of the money, that quote anchors
        both sides and its value is returned at strike = spot.

        Raises
        ------
        EmptyCollectionError : no OTM call or put
        ValueError : anchors hold different value kinds
        """
        self._require_quotes("atm")
        spot = self.spot
        otm = list(self.otm().sort_by_strike())
        puts = [q for q in otm if q.option_type is OptionType.PUT]
        calls = [q for q in otm if q.option_type is OptionType.CALL]
        if not puts and not calls:
            raise EmptyCollectionError(f"no out-of-the-money put or call in {self!r}")

        put = _nearest(puts or calls, spot)
        call = _nearest(calls or puts, spot)
        if put.value_kind is not call.value_kind:
            raise ValueError(
                f"cannot interpolate a {put.value_kind.value} with a {call.value_kind.value}"
            )

        if call.strike == put.strike:
            value = put.amount
        else:
            value = put.amount + (call.amount - put.amount) * (spot - put.strike) / (call.strike - put.strike)

        return replace(put, strike=float(spot), value=make_value(put.value_kind, value), side=None)

    def closest_delta(self, target: float, option_type, now: Optional[datetime] = None) -> Quote:
        """
        Quote of the given kind whose delta is closest to target.

        Quotes are scanned in ascending strike order and replaced only on a
        strictly smaller |delta - target|, so ties go to the lowest strike.

        Raises
        ------
        EmptyCollectionError : no quote of that kind
        UndefinedGreekError : a candidate holds a Price instead of an IV
        """
        self._require_quotes("closest_delta")
        kind = OptionType.parse(option_type)
        candidates = [q for q in self.sort_by_strike() if q.option_type is kind]
        if not candidates:
            raise EmptyCollectionError(f"no {kind.value} in {self!r}")

        best = candidates[0]
        best_dist = abs(Greeks.from_quote(best, now).delta() - target)
        for q in candidates[1:]:
            dist = abs(Greeks.from_quote(q, now).delta() - target)
            if dist < best_dist:
                best, best_dist = q, dist
        return best

    def call_25delta(self, now: Optional[datetime] = None) -> Quote:
        return self.closest_delta(config.CALL_25_DELTA, OptionType.CALL, now)

    def call_50delta(self, now: Optional[datetime] = None) -> Quote:
        return self.closest_delta(config.CALL_50_DELTA, OptionType.CALL, now)

    def put_25delta(self, now: Optional[datetime] = None) -> Quote:
        return self.closest_delta(config.PUT_25_DELTA, OptionType.PUT, now)

    def put_50delta(self, now: Optional[datetime] = None) -> Quote:
        return self.closest_delta(config.PUT_50_DELTA, OptionType.PUT, now)
