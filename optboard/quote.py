"""
The quote record: one immutable valuation tick.

A quote carries everything needed to price or invert it under
Black-Scholes-Merton (strike, maturity, spot, rate, dividend yield, kind)
plus a tagged value that is either an observed premium or an implied
volatility, never both:

    Price(amount) | ImpliedVolatility(sigma)

Converting between the two (pricing, IV solving) or interpolating a
synthetic quote always yields a new Quote; nothing here mutates in place.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import ClassVar, Optional, Protocol, Union, runtime_checkable

from . import config


class OptionType(str, Enum):
    CALL = "call"
    PUT = "put"

    @classmethod
    def parse(cls, value) -> "OptionType":
        """Accept an OptionType or any of 'call', 'c', 'put', 'p' (any case)."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        if text in ("c", "call"):
            return cls.CALL
        if text in ("p", "put"):
            return cls.PUT
        raise ValueError(f"Unknown option_type: {value}. Use 'call' or 'put'.")


class OptionSide(str, Enum):
    BID = "bid"
    ASK = "ask"

    @classmethod
    def parse(cls, value) -> "OptionSide":
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        if text in ("b", "bid"):
            return cls.BID
        if text in ("a", "ask"):
            return cls.ASK
        raise ValueError(f"Unknown side: {value}. Use 'bid' or 'ask'.")


class ValueKind(str, Enum):
    PRICE = "price"
    IMPLIED_VOLATILITY = "implied_volatility"

    @classmethod
    def parse(cls, value) -> "ValueKind":
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        if text in ("price", "premium"):
            return cls.PRICE
        if text in ("iv", "implied_volatility", "vol"):
            return cls.IMPLIED_VOLATILITY
        raise ValueError(f"Unknown value kind: {value}. Use 'price' or 'iv'.")


# ════════════════════════════════════════════════════════════════════════
#  TAGGED VALUE
# ════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Price:
    """Observed or theoretical option premium."""

    amount: float
    kind: ClassVar[ValueKind] = ValueKind.PRICE


@dataclass(frozen=True)
class ImpliedVolatility:
    """Annualized Black-Scholes volatility."""

    sigma: float
    kind: ClassVar[ValueKind] = ValueKind.IMPLIED_VOLATILITY

    @property
    def amount(self) -> float:
        return self.sigma


OptionValue = Union[Price, ImpliedVolatility]


def make_value(kind, amount: float) -> OptionValue:
    """Build the tagged value of the given kind."""
    if ValueKind.parse(kind) is ValueKind.PRICE:
        return Price(float(amount))
    return ImpliedVolatility(float(amount))


# ════════════════════════════════════════════════════════════════════════
#  QUOTE
# ════════════════════════════════════════════════════════════════════════

Maturity = Union[datetime, float]


@dataclass(frozen=True)
class AdditionalData:
    open_interest: Optional[float] = None
    volume: Optional[float] = None


@runtime_checkable
class QuoteLike(Protocol):
    """Anything a Chain or Board can hold: it knows its strike, maturity, kind and spot."""

    @property
    def strike(self) -> float: ...

    @property
    def maturity(self) -> Maturity: ...

    @property
    def option_type(self) -> OptionType: ...

    @property
    def spot(self) -> float: ...


def _as_utc(t: datetime) -> datetime:
    if t.tzinfo is None:
        return t.replace(tzinfo=timezone.utc)
    return t


def normalize_maturity(maturity: Maturity) -> Maturity:
    """Datetime maturities become timezone-aware (naive means UTC); year fractions pass through."""
    if isinstance(maturity, datetime):
        return _as_utc(maturity)
    return maturity


def _yearfrac(t0: datetime, t1: datetime) -> float:
    """Convert timedelta to year-fraction (ACT/365)."""
    return (_as_utc(t1) - _as_utc(t0)).total_seconds() / config.SECONDS_PER_YEAR


@dataclass(frozen=True)
class Quote:
    """
    One option tick.

    Parameters
    ----------
    strike : strike price
    maturity : absolute expiry (datetime, naive means UTC) or a
               year-fraction time to maturity (float)
    spot : underlying price
    option_type : OptionType.CALL or OptionType.PUT
    value : Price(...) or ImpliedVolatility(...)
    risk_free_rate : annualized, continuous compounding
    dividend_yield : continuous dividend yield
    side : OptionSide.BID / OptionSide.ASK, or None for a non-sided quote
    extra : open interest / volume, if known
    """

    strike: float
    maturity: Maturity
    spot: float
    option_type: OptionType
    value: OptionValue
    risk_free_rate: float = config.RISK_FREE_RATE
    dividend_yield: float = config.DIVIDEND_YIELD
    side: Optional[OptionSide] = None
    extra: Optional[AdditionalData] = field(default=None, compare=False)

    def __post_init__(self):
        # normalize loose inputs so keys built from them compare equal
        object.__setattr__(self, "option_type", OptionType.parse(self.option_type))
        object.__setattr__(self, "maturity", normalize_maturity(self.maturity))
        if self.side is not None:
            object.__setattr__(self, "side", OptionSide.parse(self.side))
        if not isinstance(self.value, (Price, ImpliedVolatility)):
            raise TypeError(
                f"value must be Price or ImpliedVolatility, got {type(self.value).__name__}"
            )

    @property
    def value_kind(self) -> ValueKind:
        return self.value.kind

    @property
    def amount(self) -> float:
        """Raw number inside the tagged value, whichever kind it is."""
        return self.value.amount

    @property
    def is_call(self) -> bool:
        return self.option_type is OptionType.CALL

    @property
    def volume(self) -> Optional[float]:
        return None if self.extra is None else self.extra.volume

    @property
    def open_interest(self) -> Optional[float]:
        return None if self.extra is None else self.extra.open_interest

    def is_empty(self, epsilon: float = None) -> bool:
        """A value below epsilon is treated as 'no quote'."""
        if epsilon is None:
            epsilon = config.QUOTE_EPSILON
        return self.amount < epsilon

    def tau(self, now: Optional[datetime] = None) -> float:
        """
        Time to maturity as a year fraction.

        Float maturities already are year fractions and ignore `now`.
        Datetime maturities are measured from `now` (default: current UTC).
        """
        if isinstance(self.maturity, datetime):
            if now is None:
                now = datetime.now(timezone.utc)
            return _yearfrac(now, self.maturity)
        return float(self.maturity)

    def with_value(self, value: OptionValue) -> "Quote":
        return replace(self, value=value)

    def with_side(self, side: Optional[OptionSide]) -> "Quote":
        return replace(self, side=side)

    def greeks(self, now: Optional[datetime] = None):
        """Sensitivities of this quote; requires an ImpliedVolatility value."""
        from .greeks import Greeks

        return Greeks.from_quote(self, now=now)
