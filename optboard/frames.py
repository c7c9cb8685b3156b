"""
Tabular boundary: quotes to and from pandas DataFrames.

Feed adapters (CSV, JSON, exchange APIs) live outside this package; the
only structural contract is one row per quote with the columns below.
Chain.to_frame / Board.to_frame and Board.from_frame build on these.

Columns:
    strike, maturity, spot, risk_free_rate, dividend_yield,
    option_type ("call"/"put"), value_kind ("price"/"implied_volatility"),
    value, side ("bid"/"ask" or empty), open_interest, volume
"""

from datetime import datetime
from typing import Iterable, List

import pandas as pd

from . import config
from .quote import AdditionalData, OptionSide, OptionType, Quote, make_value

COLUMNS = [
    "strike", "maturity", "spot", "risk_free_rate", "dividend_yield",
    "option_type", "value_kind", "value", "side", "open_interest", "volume",
]

REQUIRED_COLUMNS = ("strike", "maturity", "spot", "option_type", "value_kind", "value")


def quotes_to_frame(quotes: Iterable[Quote]) -> pd.DataFrame:
    """One row per quote, in iteration order."""
    rows = []
    for q in quotes:
        rows.append({
            "strike": q.strike,
            "maturity": q.maturity,
            "spot": q.spot,
            "risk_free_rate": q.risk_free_rate,
            "dividend_yield": q.dividend_yield,
            "option_type": q.option_type.value,
            "value_kind": q.value_kind.value,
            "value": q.amount,
            "side": None if q.side is None else q.side.value,
            "open_interest": q.open_interest,
            "volume": q.volume,
        })
    return pd.DataFrame(rows, columns=COLUMNS)


def _optional(row, column):
    if column not in row.index:
        return None
    val = row[column]
    if val is None or (not isinstance(val, str) and pd.isna(val)):
        return None
    return val


def _maturity(val):
    # Timestamps come back from pandas for datetime columns
    if isinstance(val, pd.Timestamp):
        return val.to_pydatetime()
    if isinstance(val, datetime):
        return val
    return float(val)


def quotes_from_frame(df: pd.DataFrame) -> List[Quote]:
    """
    Build quotes from rows.

    Raises
    ------
    ValueError : if a required column is missing or a label is unknown
    """
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"missing required columns: {missing}")

    quotes = []
    for _, row in df.iterrows():
        rate = _optional(row, "risk_free_rate")
        div = _optional(row, "dividend_yield")
        side = _optional(row, "side")
        oi = _optional(row, "open_interest")
        vol = _optional(row, "volume")

        extra = None
        if oi is not None or vol is not None:
            extra = AdditionalData(
                open_interest=None if oi is None else float(oi),
                volume=None if vol is None else float(vol),
            )

        quotes.append(Quote(
            strike=float(row["strike"]),
            maturity=_maturity(row["maturity"]),
            spot=float(row["spot"]),
            option_type=OptionType.parse(row["option_type"]),
            value=make_value(row["value_kind"], float(row["value"])),
            risk_free_rate=config.RISK_FREE_RATE if rate is None else float(rate),
            dividend_yield=config.DIVIDEND_YIELD if div is None else float(div),
            side=None if side is None else OptionSide.parse(side),
            extra=extra,
        ))
    return quotes
