"""
Tests for the quote book: best bid/ask, mids, and keyed upsert/delete.
"""

import pytest
import numpy as np
from conftest import make_quote
from optboard.book import QuoteBook
from optboard.exceptions import InvalidKeyError, MissingQuoteError
from optboard.quote import OptionSide, ValueKind


def _book(*quotes):
    return QuoteBook(100.0, 0.25, "call", quotes)


class TestBestQuotes:

    def test_best_bid_and_ask(self):
        book = _book(
            make_quote(100.0, value=4.8, side="bid"),
            make_quote(100.0, value=0.21, side="bid", kind="iv"),
            make_quote(100.0, value=5.2, side="ask"),
        )
        assert book.best_bid(ValueKind.PRICE).amount == 4.8
        assert book.best_ask().amount == 5.2

    def test_side_cleared(self):
        book = _book(make_quote(100.0, value=4.8, side="bid"))
        assert book.best_bid().side is None
        # the stored quote keeps its side
        assert book.get("price", "bid").side is OptionSide.BID

    def test_highest_bid_wins_regardless_of_order(self):
        ticks = [
            make_quote(100.0, value=4.8, side="bid"),
            make_quote(100.0, value=0.30, side="bid", kind="iv"),
            make_quote(100.0, value=4.8, side="ask"),
        ]
        for order in (np.random.permutation(len(ticks)) for _ in range(5)):
            book = _book(*[ticks[i] for i in order])
            assert book.best_bid().amount == 4.8
            assert book.best_bid(ValueKind.IMPLIED_VOLATILITY).amount == 0.30

    def test_missing_side(self):
        book = _book(make_quote(100.0, value=5.2, side="ask"))
        with pytest.raises(MissingQuoteError):
            book.best_bid()

    def test_upsert_replaces_same_side(self):
        book = _book(make_quote(100.0, value=4.8, side="bid"))
        book.upsert(make_quote(100.0, value=4.6, side="bid"))
        assert len(book) == 1
        assert book.best_bid().amount == 4.6


class TestMid:

    def test_mid(self):
        book = _book(make_quote(100.0, value=4.8, side="bid"),
                     make_quote(100.0, value=5.2, side="ask"))
        mid = book.mid()
        assert mid.amount == pytest.approx(5.0)
        assert mid.side is None

    def test_mid_one_sided(self):
        book = _book(make_quote(100.0, value=5.2, side="ask"))
        assert book.mid().amount == 5.2

    def test_mid_empty(self):
        with pytest.raises(MissingQuoteError):
            _book().mid()

    def test_mid_never_mixes_kinds(self):
        """A price bid and a vol ask are two one-sided books, not one spread."""
        book = _book(make_quote(100.0, value=4.8, side="bid"),
                     make_quote(100.0, value=0.25, side="ask", kind="iv"))
        assert book.mid().value_kind is ValueKind.PRICE
        assert book.mid().amount == 4.8
        assert book.mid("iv").amount == 0.25

    def test_mid_drops_volume(self):
        book = _book(make_quote(100.0, value=4.0, side="bid", volume=30),
                     make_quote(100.0, value=6.0, side="ask", volume=10))
        assert book.mid().extra is None
        assert book.mid_weighted().extra is None

    def test_mid_weighted(self):
        book = _book(make_quote(100.0, value=4.0, side="bid", volume=30),
                     make_quote(100.0, value=6.0, side="ask", volume=10))
        # (4*30 + 6*10) / 40
        assert book.mid_weighted().amount == pytest.approx(4.5)

    def test_mid_weighted_needs_volume(self):
        book = _book(make_quote(100.0, value=4.0, side="bid", volume=30),
                     make_quote(100.0, value=6.0, side="ask"))
        with pytest.raises(MissingQuoteError):
            book.mid_weighted()

    def test_mid_weighted_zero_volume(self):
        book = _book(make_quote(100.0, value=4.0, side="bid", volume=0),
                     make_quote(100.0, value=6.0, side="ask", volume=0))
        with pytest.raises(MissingQuoteError):
            book.mid_weighted()


class TestBothValueKinds:
    """One bid and one ask per value kind: prices and vols side by side."""

    def _full_book(self):
        return _book(
            make_quote(100.0, value=4.8, side="bid", volume=10),
            make_quote(100.0, value=5.2, side="ask", volume=30),
            make_quote(100.0, value=0.30, side="bid", kind="iv", volume=10),
            make_quote(100.0, value=0.32, side="ask", kind="iv", volume=10),
        )

    def test_best_quotes_default_to_price(self):
        book = self._full_book()
        assert book.best_bid().value_kind is ValueKind.PRICE
        assert book.best_ask().value_kind is ValueKind.PRICE
        assert book.best_ask().amount == 5.2

    def test_best_quotes_per_kind(self):
        book = self._full_book()
        assert book.best_bid("iv").amount == 0.30
        assert book.best_ask("iv").amount == 0.32

    def test_mid(self):
        book = self._full_book()
        assert book.mid().amount == pytest.approx(5.0)
        assert book.mid().value_kind is ValueKind.PRICE
        assert book.mid(ValueKind.IMPLIED_VOLATILITY).amount == pytest.approx(0.31)

    def test_mid_weighted(self):
        book = self._full_book()
        # (4.8*10 + 5.2*30) / 40
        assert book.mid_weighted().amount == pytest.approx(5.1)
        assert book.mid_weighted("iv").amount == pytest.approx(0.31)

    def test_kind_quoted_on_both_sides_wins(self):
        book = _book(
            make_quote(100.0, value=4.8, side="bid"),
            make_quote(100.0, value=0.30, side="bid", kind="iv"),
            make_quote(100.0, value=0.34, side="ask", kind="iv"),
        )
        mid = book.mid()
        assert mid.value_kind is ValueKind.IMPLIED_VOLATILITY
        assert mid.amount == pytest.approx(0.32)


class TestCRUD:

    def test_zero_value_deletes(self):
        book = _book(make_quote(100.0, value=4.8, side="bid"),
                     make_quote(100.0, value=5.2, side="ask"))
        book.upsert(make_quote(100.0, value=0.0, side="bid"))
        assert len(book) == 1
        with pytest.raises(MissingQuoteError):
            book.best_bid()

    def test_delete_missing_is_noop(self):
        book = _book(make_quote(100.0, value=5.2, side="ask"))
        book.delete(make_quote(100.0, value=1.0, side="bid"))
        assert len(book) == 1

    def test_strict_delete_missing(self):
        book = _book(make_quote(100.0, value=5.2, side="ask"))
        with pytest.raises(InvalidKeyError):
            book.delete(make_quote(100.0, value=1.0, side="bid"), missing_ok=False)

    @pytest.mark.parametrize("quote", [
        make_quote(105.0, value=1.0, side="bid"),
        make_quote(100.0, "put", value=1.0, side="bid"),
        make_quote(100.0, value=1.0, side="bid", maturity=0.5),
    ])
    def test_identity_mismatch(self, quote):
        with pytest.raises(InvalidKeyError):
            _book().upsert(quote)

    def test_spot_follows_latest_quote(self):
        book = _book(make_quote(100.0, value=4.8, side="bid", spot=99.0))
        book.upsert(make_quote(100.0, value=5.2, side="ask", spot=101.0))
        assert book.spot == 101.0
