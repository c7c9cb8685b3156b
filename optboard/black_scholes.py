"""
Black-Scholes-Merton pricing for European options.

Everything here is closed-form. Sensitivities live in greeks.py and the
implied vol inversion in implied_vol.py; both build on the primitives
below (d1, d2, and the standard normal density / distribution).

Unlike a batch pipeline, this module never papers over bad inputs with a
payoff or a NaN: non-positive time, vol, spot or strike raise
UndefinedGreekError, and so does any non-finite result.

References:
    Black, F. & Scholes, M. (1973). The Pricing of Options and Corporate Liabilities.
    Merton, R.C. (1973). Theory of Rational Option Pricing.
    Hull, J.C. (2018). Options, Futures, and Other Derivatives. 10th ed.
"""

from datetime import datetime
from typing import Optional

import numpy as np
from scipy.stats import norm

from .exceptions import UndefinedGreekError
from .quote import OptionType, Price, Quote, ValueKind


# ════════════════════════════════════════════════════════════════════════
#  PRIMITIVES
# ════════════════════════════════════════════════════════════════════════

def norm_pdf(x: float) -> float:
    """Standard normal density phi(x) = exp(-x^2/2) / sqrt(2 pi)."""
    return float(norm.pdf(x))


def norm_cdf(x: float) -> float:
    """Standard normal distribution Phi(x)."""
    return float(norm.cdf(x))


def check_inputs(S: float, K: float, T: float, sigma: float) -> None:
    """Raise UndefinedGreekError unless S, K, T and sigma are all positive and finite."""
    for name, val in (("spot", S), ("strike", K), ("time to maturity", T), ("volatility", sigma)):
        if not np.isfinite(val):
            raise UndefinedGreekError(f"{name} must be finite, got {val}")
        if val <= 0:
            raise UndefinedGreekError(f"{name} must be positive, got {val}")


def d1(S: float, K: float, T: float, r: float, sigma: float, q: float = 0.0) -> float:
    """
    Compute d1 in the Black-Scholes formula.

    Parameters
    ----------
    S : spot price
    K : strike price
    T : time to expiry in years
    r : risk-free rate (annualized, continuous compounding)
    sigma : volatility (annualized)
    q : continuous dividend yield (default 0)

    Returns
    -------
    float

    Raises
    ------
    UndefinedGreekError : if S, K, T or sigma is not positive
    """
    check_inputs(S, K, T, sigma)
    return float((np.log(S / K) + (r - q + 0.5 * sigma**2) * T) / (sigma * np.sqrt(T)))


def d2(S: float, K: float, T: float, r: float, sigma: float, q: float = 0.0) -> float:
    """Compute d2 = d1 - sigma * sqrt(T)."""
    return d1(S, K, T, r, sigma, q) - sigma * float(np.sqrt(T))


# ════════════════════════════════════════════════════════════════════════
#  PRICING
# ════════════════════════════════════════════════════════════════════════

def _finite(value: float, what: str) -> float:
    value = float(value)
    if not np.isfinite(value):
        raise UndefinedGreekError(f"{what} is not finite ({value})")
    return value


def call_price(S: float, K: float, T: float, r: float, sigma: float, q: float = 0.0) -> float:
    """
    European call price under Black-Scholes-Merton.

        C = S * e^{-qT} * N(d1) - K * e^{-rT} * N(d2)
    """
    _d1 = d1(S, K, T, r, sigma, q)
    _d2 = _d1 - sigma * np.sqrt(T)
    price = S * np.exp(-q * T) * norm.cdf(_d1) - K * np.exp(-r * T) * norm.cdf(_d2)
    return _finite(price, "call price")


def put_price(S: float, K: float, T: float, r: float, sigma: float, q: float = 0.0) -> float:
    """
    European put price under Black-Scholes-Merton.

        P = K * e^{-rT} * N(-d2) - S * e^{-qT} * N(-d1)
    """
    _d1 = d1(S, K, T, r, sigma, q)
    _d2 = _d1 - sigma * np.sqrt(T)
    price = K * np.exp(-r * T) * norm.cdf(-_d2) - S * np.exp(-q * T) * norm.cdf(-_d1)
    return _finite(price, "put price")


def bs_price(S: float, K: float, T: float, r: float, sigma: float,
             option_type="call", q: float = 0.0) -> float:
    """Dispatch to call_price or put_price based on option_type."""
    if OptionType.parse(option_type) is OptionType.CALL:
        return call_price(S, K, T, r, sigma, q)
    return put_price(S, K, T, r, sigma, q)


def theoretical_price(quote: Quote, now: Optional[datetime] = None) -> Quote:
    """
    Price a quote from its implied volatility.

    A quote that already holds a Price is returned as is. Otherwise the
    result is a new quote whose value is Price(theoretical premium); side
    and extra data are carried over.
    """
    if quote.value_kind is ValueKind.PRICE:
        return quote
    price = bs_price(
        quote.spot,
        quote.strike,
        quote.tau(now),
        quote.risk_free_rate,
        quote.value.sigma,
        quote.option_type,
        quote.dividend_yield,
    )
    return quote.with_value(Price(price))
