"""
Option board: chains across maturities, keyed by maturity.

A board of quotes (Board.of_quotes) or of quote books (Board.of_books)
is filled tick by tick with upsert/delete; the tick is routed to the
chain for its maturity, which is created on first use and dropped once
its last entry is deleted.
"""

import logging
from datetime import datetime
from typing import Dict, Generic, Iterable, Iterator, List, Optional

import pandas as pd

from .chain import Chain, T
from .crud import board_key, log_missing, upsert_all
from .exceptions import EmptyCollectionError, InvalidKeyError
from .frames import quotes_from_frame, quotes_to_frame
from .quote import Maturity, Quote, normalize_maturity

logger = logging.getLogger(__name__)


class Board(Generic[T]):
    """
    Multi-maturity collection of chains.

    Parameters
    ----------
    books : if True, chains hold QuoteBooks (bid/ask aggregation per
            strike); otherwise they hold the latest quote per strike
    """

    def __init__(self, books: bool = False):
        self.books = books
        self._chains: Dict[Maturity, Chain[T]] = {}

    @classmethod
    def of_quotes(cls, quotes: Iterable[Quote] = ()) -> "Board":
        return upsert_all(cls(books=False), quotes)

    @classmethod
    def of_books(cls, quotes: Iterable[Quote] = ()) -> "Board":
        return upsert_all(cls(books=True), quotes)

    @classmethod
    def from_frame(cls, df: pd.DataFrame, books: bool = False) -> "Board":
        """Upsert every row of a quote frame (see frames.COLUMNS) into a new board."""
        return upsert_all(cls(books=books), quotes_from_frame(df))

    def _new_chain(self, maturity: Maturity) -> Chain:
        if self.books:
            return Chain.of_books(maturity=maturity)
        return Chain.of_quotes(maturity=maturity)

    # ── container protocol ───────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._chains)

    def __iter__(self) -> Iterator[Chain[T]]:
        return iter(list(self._chains.values()))

    def __contains__(self, maturity) -> bool:
        return normalize_maturity(maturity) in self._chains

    def __repr__(self) -> str:
        kind = "books" if self.books else "quotes"
        return f"Board({kind}, chains={len(self)})"

    def chain(self, maturity: Maturity) -> Chain[T]:
        try:
            return self._chains[normalize_maturity(maturity)]
        except KeyError:
            raise InvalidKeyError(f"no chain for maturity {maturity!r}")

    def quotes(self) -> Iterator[Quote]:
        for chain in self.sort_by_maturity():
            yield from chain.quotes()

    def to_frame(self) -> pd.DataFrame:
        """pandas DataFrame of every stored quote, front month first."""
        return quotes_to_frame(self.quotes())

    # ── CRUD ─────────────────────────────────────────────────────────────

    def upsert(self, quote: Quote) -> None:
        """Route a tick to the chain for its maturity, creating the chain if needed."""
        if quote.is_empty():
            logger.debug("value %r below epsilon, deleting instead", quote.amount)
            return self.delete(quote)
        key = board_key(quote)
        chain = self._chains.get(key)
        if chain is None:
            chain = self._new_chain(key)
            chain.upsert(quote)
            self._chains[key] = chain
            logger.debug("new chain for maturity %r", key)
        else:
            chain.upsert(quote)

    def delete(self, quote: Quote, missing_ok: bool = True) -> None:
        """
        Remove a tick; a chain left empty is removed from the board.

        A missing key is a no-op unless missing_ok is False (InvalidKeyError).
        """
        key = board_key(quote)
        chain = self._chains.get(key)
        if chain is None:
            if not missing_ok:
                raise InvalidKeyError(f"no chain for maturity {key!r}")
            log_missing("board", key)
            return
        chain.delete(quote, missing_ok=missing_ok)
        if len(chain) == 0:
            del self._chains[key]
            logger.debug("chain for maturity %r emptied, removing it", key)

    # ── queries ──────────────────────────────────────────────────────────

    def maturities(self) -> List[Maturity]:
        return sorted(self._chains)

    def sort_by_maturity(self) -> List[Chain[T]]:
        return [self._chains[m] for m in self.maturities()]

    def get_front_month(self) -> Chain[T]:
        """Chain with the nearest maturity."""
        if not self._chains:
            raise EmptyCollectionError("board is empty")
        return self._chains[min(self._chains)]

    def get(self, i: int) -> Chain[T]:
        """i-th chain in ascending maturity order."""
        chains = self.sort_by_maturity()
        if not chains:
            raise EmptyCollectionError("board is empty")
        try:
            return chains[i]
        except IndexError:
            raise InvalidKeyError(f"chain index {i} out of range for {len(chains)} chains")

    def quote_chains(self) -> List[Chain]:
        """Chains as quote chains in maturity order; book chains are reduced to mids."""
        if not self.books:
            return self.sort_by_maturity()
        return [c.mid(skip_missing=True) for c in self.sort_by_maturity()]

    def atm_term_structure(self) -> List[Quote]:
        """
        ATM quote per maturity, front month first.

        Chains without any out-of-the-money quote are skipped.
        """
        out = []
        for chain in self.quote_chains():
            try:
                out.append(chain.atm())
            except EmptyCollectionError:
                logger.debug("no ATM quote for maturity %r", chain.maturity)
        return out
