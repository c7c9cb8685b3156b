"""
Implied volatility: the sigma that reprices an observed premium.

Newton-Raphson on f(sigma) = BS_price(sigma) - market_price with the
analytic vega as f'(sigma). Newton converges quadratically near the
root but can shoot off when vega is tiny (deep ITM/OTM, T -> 0), so every
iterate is kept inside a bracket [lo, hi] on which f changes sign:

    - a step that would leave the bracket becomes a bisection step
    - a vega below config.VEGA_FLOOR also falls back to bisection

BS prices are monotone in sigma, which is what makes the bracket valid.
Failure is explicit: a premium outside the no-arbitrage band, or running
out of iterations, raises NonConvergenceError instead of returning NaN or
the last iterate.
"""

import logging
from datetime import datetime
from typing import Optional, Tuple

import numpy as np

from . import config
from .black_scholes import bs_price, d1 as _d1, norm_pdf
from .exceptions import NonConvergenceError, UndefinedGreekError
from .quote import ImpliedVolatility, OptionType, Quote, ValueKind

logger = logging.getLogger(__name__)


def price_bounds(S: float, K: float, T: float, r: float,
                 option_type="call", q: float = 0.0) -> Tuple[float, float]:
    """
    No-arbitrage band for a European premium.

    call : (max(S e^{-qT} - K e^{-rT}, 0), S e^{-qT})
    put  : (max(K e^{-rT} - S e^{-qT}, 0), K e^{-rT})
    """
    discounted_spot = S * np.exp(-q * T)
    discounted_strike = K * np.exp(-r * T)
    if OptionType.parse(option_type) is OptionType.CALL:
        return float(max(discounted_spot - discounted_strike, 0.0)), float(discounted_spot)
    return float(max(discounted_strike - discounted_spot, 0.0)), float(discounted_strike)


def _vega(S, K, T, r, sigma, q) -> float:
    return S * np.exp(-q * T) * np.sqrt(T) * norm_pdf(_d1(S, K, T, r, sigma, q))


def implied_vol(
    market_price: float,
    S: float,
    K: float,
    T: float,
    r: float,
    option_type="call",
    q: float = 0.0,
    initial_guess: float = None,
    tol: float = None,
    max_iter: int = None,
) -> float:
    """
    Invert Black-Scholes for volatility.

    Parameters
    ----------
    market_price : observed premium
    S, K, T, r, q : as in black_scholes.bs_price
    option_type : "call" or "put"; puts are solved against the put price
    initial_guess : starting vol (default: config.IV_INITIAL_GUESS)
    tol : stop once |model price - market_price| < tol (default: config.IV_TOLERANCE)
    max_iter : iteration cap (default: config.IV_MAX_ITER)

    Returns
    -------
    float : implied volatility

    Raises
    ------
    UndefinedGreekError : T, S or K not positive
    NonConvergenceError : price outside the no-arbitrage band, no bracket
                          below config.IV_MAX_BRACKET, or max_iter reached
    """
    if initial_guess is None:
        initial_guess = config.IV_INITIAL_GUESS
    if tol is None:
        tol = config.IV_TOLERANCE
    if max_iter is None:
        max_iter = config.IV_MAX_ITER
    if max_iter <= 0:
        raise ValueError("max_iter must be positive")
    if initial_guess <= 0:
        raise ValueError("initial_guess must be positive")

    option_type = OptionType.parse(option_type)
    for name, val in (("spot", S), ("strike", K), ("time to maturity", T)):
        if not np.isfinite(val) or val <= 0:
            raise UndefinedGreekError(f"{name} must be positive and finite, got {val}")
    if not np.isfinite(market_price):
        raise NonConvergenceError(f"market price is not finite ({market_price})")

    lower, upper = price_bounds(S, K, T, r, option_type, q)
    if market_price <= lower or market_price >= upper:
        raise NonConvergenceError(
            "price outside no-arbitrage bounds "
            f"({lower:.10f}, {upper:.10f}) with price={market_price:.10f}"
        )

    def objective(sigma):
        return bs_price(S, K, T, r, sigma, option_type, q) - market_price

    # grow the bracket until the model price at hi exceeds the market price
    lo = 0.0
    hi = max(config.IV_UPPER_BOUND, 2.0 * initial_guess)
    while objective(hi) < 0.0:
        hi *= 2.0
        if hi > config.IV_MAX_BRACKET:
            raise NonConvergenceError(
                f"no volatility below {config.IV_MAX_BRACKET} reaches price {market_price}",
                last_sigma=hi,
            )

    sigma = initial_guess if lo < initial_guess < hi else 0.5 * (lo + hi)
    for i in range(max_iter):
        diff = objective(sigma)
        if abs(diff) < tol:
            logger.debug("implied vol %.8f found in %d iterations", sigma, i + 1)
            return float(sigma)

        if diff > 0.0:
            hi = sigma
        else:
            lo = sigma

        v = _vega(S, K, T, r, sigma, q)
        if v > config.VEGA_FLOOR:
            step = sigma - diff / v
            sigma = step if lo < step < hi else 0.5 * (lo + hi)
        else:
            sigma = 0.5 * (lo + hi)

    raise NonConvergenceError(
        f"implied vol did not converge in {max_iter} iterations "
        f"(last sigma={sigma:.8f}, price={market_price})",
        iterations=max_iter,
        last_sigma=float(sigma),
    )


def implied_volatility(
    quote: Quote,
    now: Optional[datetime] = None,
    initial_guess: float = None,
    tol: float = None,
    max_iter: int = None,
) -> Quote:
    """
    Solve a Price-valued quote for its implied volatility.

    A quote already holding ImpliedVolatility is returned as is. Otherwise
    the result is a new quote valued ImpliedVolatility(sigma).
    """
    if quote.value_kind is ValueKind.IMPLIED_VOLATILITY:
        return quote
    sigma = implied_vol(
        quote.amount,
        quote.spot,
        quote.strike,
        quote.tau(now),
        quote.risk_free_rate,
        quote.option_type,
        quote.dividend_yield,
        initial_guess=initial_guess,
        tol=tol,
        max_iter=max_iter,
    )
    return quote.with_value(ImpliedVolatility(sigma))
