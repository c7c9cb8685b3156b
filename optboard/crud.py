"""
Keyed upsert / delete shared by QuoteBook, Chain and Board.

A tick flows Board -> Chain -> (Book) by key:

    Board  : maturity
    Chain  : (strike, option kind)
    Book   : (value kind, side)

At every level a value below config.QUOTE_EPSILON means "this quote is
gone" and is routed to delete instead of being stored. Removing the last
entry of a container removes the container one level up, so there are
never empty books inside a chain or empty chains inside a board.

Chains do not know what they hold: a slot policy decides what upsert and
delete mean for one (strike, kind) entry. QuoteSlot stores the latest
quote; BookSlot keeps a QuoteBook per strike and forwards the tick to it.
"""

import logging
from typing import Callable, Hashable, Iterable, Optional, Protocol, Tuple

from .quote import Maturity, OptionSide, OptionType, Quote, QuoteLike, ValueKind

logger = logging.getLogger(__name__)


def book_key(quote: Quote) -> Tuple[ValueKind, Optional[OptionSide]]:
    return quote.value_kind, quote.side


def chain_key(item: QuoteLike) -> Tuple[float, OptionType]:
    return float(item.strike), item.option_type


def board_key(item: QuoteLike) -> Maturity:
    return item.maturity


class CRUD(Protocol):
    def upsert(self, quote: Quote) -> None: ...

    def delete(self, quote: Quote, missing_ok: bool = True) -> None: ...


def upsert_all(collection: CRUD, quotes: Iterable[Quote]) -> CRUD:
    """Feed ticks into a book, chain or board in order; returns the collection."""
    for quote in quotes:
        collection.upsert(quote)
    return collection


def log_missing(level: str, key: Hashable) -> None:
    logger.debug("delete on %s: key %s not present, nothing removed", level, key)


# ════════════════════════════════════════════════════════════════════════
#  SLOT POLICIES
# ════════════════════════════════════════════════════════════════════════

class QuoteSlot:
    """Entries are bare quotes: upsert replaces, delete drops the entry."""

    holds_books = False

    def merge(self, entry: Optional[Quote], quote: Quote) -> Quote:
        return quote

    def purge(self, entry: Quote, quote: Quote, missing_ok: bool = True) -> Optional[Quote]:
        return None


class BookSlot:
    """
    Entries are quote books: upsert and delete are forwarded to the book.

    Parameters
    ----------
    factory : builds an empty book matching a quote's strike, maturity and kind
    """

    holds_books = True

    def __init__(self, factory: Callable[[Quote], "CRUD"]):
        self.factory = factory

    def merge(self, entry, quote: Quote):
        if entry is None:
            entry = self.factory(quote)
        entry.upsert(quote)
        return entry

    def purge(self, entry, quote: Quote, missing_ok: bool = True):
        entry.delete(quote, missing_ok=missing_ok)
        if len(entry) == 0:
            logger.debug("book at strike %s emptied, removing it", entry.strike)
            return None
        return entry
