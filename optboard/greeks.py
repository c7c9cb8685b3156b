"""
Black-Scholes-Merton sensitivities ("greeks") for European options.

A Greeks object evaluates d1, d2, the discount factors and the normal
density / distribution values once at construction; every sensitivity is
a cheap method reusing them. Build one from raw parameters or from a quote
holding an implied volatility:

    g = Greeks(S=100, K=105, T=0.5, r=0.03, sigma=0.25, option_type="put")
    g.delta(), g.vanna(), g.as_dict()

    quote.greeks().charm()

Conventions (tau = time to maturity, V = option value):

    first order   delta = dV/dS, vega = dV/dsigma, rho = dV/dr,
                  epsilon = dV/dq, dual_delta = dV/dK,
                  theta = -dV/dtau (per year; divide by 365 for daily)
    second order  gamma = d2V/dS2, vanna = d2V/dSdsigma,
                  vomma = d2V/dsigma2, dual_gamma = d2V/dK2,
                  charm = -d(delta)/dtau, veta = d(vega)/dtau
    third order   speed = d(gamma)/dS, zomma = d(gamma)/dsigma,
                  color = d(gamma)/dtau, ultima = d(vomma)/dsigma

References:
    Haug, E.G. (2007). The Complete Guide to Option Pricing Formulas. 2nd ed.
    Hull, J.C. (2018). Options, Futures, and Other Derivatives. 10th ed.
"""

from datetime import datetime
from typing import Dict, Optional

import numpy as np

from .black_scholes import check_inputs, d1 as _d1, norm_cdf, norm_pdf
from .exceptions import UndefinedGreekError
from .quote import OptionType, Quote, ValueKind


GREEK_NAMES = (
    "delta", "gamma", "theta", "rho", "vega", "epsilon",
    "vanna", "charm", "vomma", "veta",
    "speed", "zomma", "color", "ultima",
    "dual_delta", "dual_gamma",
)


def _finite(value: float, name: str) -> float:
    value = float(value)
    if not np.isfinite(value):
        raise UndefinedGreekError(f"{name} is not finite ({value})")
    return value


class Greeks:
    """
    All sixteen BSM sensitivities for one option.

    Parameters
    ----------
    S : spot price
    K : strike price
    T : time to expiry in years
    r : risk-free rate
    sigma : volatility
    option_type : "call" / "put" or an OptionType
    q : continuous dividend yield

    Raises
    ------
    UndefinedGreekError : if S, K, T or sigma is not positive
    """

    def __init__(self, S: float, K: float, T: float, r: float, sigma: float,
                 option_type="call", q: float = 0.0):
        check_inputs(S, K, T, sigma)
        self.S = float(S)
        self.K = float(K)
        self.T = float(T)
        self.r = float(r)
        self.q = float(q)
        self.sigma = float(sigma)
        self.option_type = OptionType.parse(option_type)

        self.sqrt_t = float(np.sqrt(T))
        self.sig_sqrt_t = self.sigma * self.sqrt_t
        self.d1 = _d1(S, K, T, r, sigma, q)
        self.d2 = self.d1 - self.sig_sqrt_t
        self.df_q = float(np.exp(-self.q * self.T))
        self.df_r = float(np.exp(-self.r * self.T))
        self.pdf_d1 = norm_pdf(self.d1)
        self.pdf_d2 = norm_pdf(self.d2)
        self.cdf_d1 = norm_cdf(self.d1)
        self.cdf_d2 = norm_cdf(self.d2)
        self.cdf_neg_d1 = norm_cdf(-self.d1)
        self.cdf_neg_d2 = norm_cdf(-self.d2)

    @classmethod
    def from_quote(cls, quote: Quote, now: Optional[datetime] = None) -> "Greeks":
        """
        Build from a quote holding ImpliedVolatility.

        A Price-valued quote has no volatility to differentiate against;
        solve it first with implied_vol.implied_volatility.
        """
        if quote.value_kind is not ValueKind.IMPLIED_VOLATILITY:
            raise UndefinedGreekError(
                f"greeks need an implied volatility, quote at strike {quote.strike} holds a price"
            )
        return cls(
            S=quote.spot,
            K=quote.strike,
            T=quote.tau(now),
            r=quote.risk_free_rate,
            sigma=quote.value.sigma,
            option_type=quote.option_type,
            q=quote.dividend_yield,
        )

    @property
    def is_call(self) -> bool:
        return self.option_type is OptionType.CALL

    def __repr__(self) -> str:
        return (f"Greeks(S={self.S}, K={self.K}, T={self.T}, r={self.r}, "
                f"sigma={self.sigma}, option_type={self.option_type.value}, q={self.q})")

    # ── first order ──────────────────────────────────────────────────────

    def delta(self) -> float:
        """Call delta is in [0, e^{-qT}]; put delta in [-e^{-qT}, 0]."""
        if self.is_call:
            return _finite(self.df_q * self.cdf_d1, "delta")
        return _finite(-self.df_q * self.cdf_neg_d1, "delta")

    def vega(self) -> float:
        """Sensitivity per 1 unit (100%) change in vol. Same for calls and puts."""
        return _finite(self.S * self.df_q * self.pdf_d1 * self.sqrt_t, "vega")

    def theta(self) -> float:
        """
        Time decay per year, -dV/dtau.

        Typically negative for long positions.
        """
        decay = -self.S * self.df_q * self.pdf_d1 * self.sigma / (2.0 * self.sqrt_t)
        if self.is_call:
            val = (decay
                   + self.q * self.S * self.df_q * self.cdf_d1
                   - self.r * self.K * self.df_r * self.cdf_d2)
        else:
            val = (decay
                   - self.q * self.S * self.df_q * self.cdf_neg_d1
                   + self.r * self.K * self.df_r * self.cdf_neg_d2)
        return _finite(val, "theta")

    def rho(self) -> float:
        if self.is_call:
            return _finite(self.K * self.T * self.df_r * self.cdf_d2, "rho")
        return _finite(-self.K * self.T * self.df_r * self.cdf_neg_d2, "rho")

    def epsilon(self) -> float:
        """Sensitivity to the dividend yield (a.k.a. psi)."""
        if self.is_call:
            return _finite(-self.S * self.T * self.df_q * self.cdf_d1, "epsilon")
        return _finite(self.S * self.T * self.df_q * self.cdf_neg_d1, "epsilon")

    def dual_delta(self) -> float:
        """dV/dK, the discounted risk-neutral exercise probability up to sign."""
        if self.is_call:
            return _finite(-self.df_r * self.cdf_d2, "dual_delta")
        return _finite(self.df_r * self.cdf_neg_d2, "dual_delta")

    # ── second order ─────────────────────────────────────────────────────

    def gamma(self) -> float:
        """Same for calls and puts; peaks near the money and grows as T -> 0."""
        return _finite(self.df_q * self.pdf_d1 / (self.S * self.sig_sqrt_t), "gamma")

    def vanna(self) -> float:
        return _finite(-self.df_q * self.pdf_d1 * self.d2 / self.sigma, "vanna")

    def _dd1_dtau(self) -> float:
        # d(d1)/dtau, shared by charm, veta and color
        return ((2.0 * (self.r - self.q) * self.T - self.d2 * self.sig_sqrt_t)
                / (2.0 * self.T * self.sig_sqrt_t))

    def charm(self) -> float:
        """Delta decay, -d(delta)/dtau."""
        drift = self.df_q * self.pdf_d1 * self._dd1_dtau()
        if self.is_call:
            return _finite(self.q * self.df_q * self.cdf_d1 - drift, "charm")
        return _finite(-self.q * self.df_q * self.cdf_neg_d1 - drift, "charm")

    def vomma(self) -> float:
        return _finite(self.vega() * self.d1 * self.d2 / self.sigma, "vomma")

    def veta(self) -> float:
        """d(vega)/dtau."""
        val = -self.S * self.df_q * self.pdf_d1 * self.sqrt_t * (
            self.q
            + (self.r - self.q) * self.d1 / self.sig_sqrt_t
            - (1.0 + self.d1 * self.d2) / (2.0 * self.T)
        )
        return _finite(val, "veta")

    def dual_gamma(self) -> float:
        return _finite(self.df_r * self.pdf_d2 / (self.K * self.sig_sqrt_t), "dual_gamma")

    # ── third order ──────────────────────────────────────────────────────

    def speed(self) -> float:
        return _finite(-self.gamma() / self.S * (self.d1 / self.sig_sqrt_t + 1.0), "speed")

    def zomma(self) -> float:
        return _finite(self.gamma() * (self.d1 * self.d2 - 1.0) / self.sigma, "zomma")

    def color(self) -> float:
        """d(gamma)/dtau."""
        val = -self.df_q * self.pdf_d1 / (2.0 * self.S * self.T * self.sig_sqrt_t) * (
            2.0 * self.q * self.T + 1.0 + 2.0 * self.T * self._dd1_dtau() * self.d1
        )
        return _finite(val, "color")

    def ultima(self) -> float:
        d1d2 = self.d1 * self.d2
        val = -self.vega() / self.sigma**2 * (
            d1d2 * (1.0 - d1d2) + self.d1**2 + self.d2**2
        )
        return _finite(val, "ultima")

    def as_dict(self) -> Dict[str, float]:
        """Every sensitivity, keyed by name in GREEK_NAMES order."""
        return {name: getattr(self, name)() for name in GREEK_NAMES}
