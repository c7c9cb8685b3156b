"""
optboard
========
European option valuation and bid/ask quote aggregation.

Modules:
    quote          - Immutable quote record and its tagged Price / IV value
    black_scholes  - d1/d2, normal pdf/cdf, theoretical price
    greeks         - All sixteen BSM sensitivities
    implied_vol    - Guarded Newton-Raphson implied vol solver
    book           - Bid/ask quote book at one strike
    chain          - Same-maturity chain: OTM, ATM, delta buckets
    board          - Multi-maturity board of chains
    crud           - Keyed upsert/delete shared by book, chain and board
    frames         - pandas DataFrame boundary
    visualization  - Smile charts (matplotlib + plotly)
    config         - Global constants and defaults
"""

from .black_scholes import bs_price, call_price, put_price, theoretical_price
from .board import Board
from .book import QuoteBook
from .chain import Chain
from .exceptions import (
    EmptyCollectionError,
    InvalidKeyError,
    MissingQuoteError,
    NonConvergenceError,
    OptionBoardError,
    UndefinedGreekError,
)
from .greeks import Greeks
from .implied_vol import implied_vol, implied_volatility
from .quote import (
    AdditionalData,
    ImpliedVolatility,
    OptionSide,
    OptionType,
    Price,
    Quote,
    ValueKind,
)

__version__ = "0.1.0"

__all__ = [
    "AdditionalData",
    "Board",
    "Chain",
    "EmptyCollectionError",
    "Greeks",
    "ImpliedVolatility",
    "InvalidKeyError",
    "MissingQuoteError",
    "NonConvergenceError",
    "OptionBoardError",
    "OptionSide",
    "OptionType",
    "Price",
    "Quote",
    "QuoteBook",
    "UndefinedGreekError",
    "ValueKind",
    "bs_price",
    "call_price",
    "implied_vol",
    "implied_volatility",
    "put_price",
    "theoretical_price",
]
