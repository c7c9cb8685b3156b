"""
Tests for the Black-Scholes pricing module.

Covers: pricing accuracy, put-call parity, quote pricing, and the domain
errors for non-positive inputs.

Run with: pytest tests/ -v
"""

import pytest
import numpy as np
from optboard.black_scholes import (
    call_price, put_price, bs_price, theoretical_price,
    d1, d2, norm_cdf, norm_pdf,
)
from optboard.exceptions import UndefinedGreekError
from optboard.quote import ImpliedVolatility, Price, Quote, ValueKind


# ── fixtures ─────────────────────────────────────────────────────────

# standard test parameters: ATM SPY-like option
S = 600.0
K = 600.0
T = 0.25  # 3 months
r = 0.05
sigma = 0.20
q = 0.013


class TestPrimitives:

    def test_norm_pdf_peak(self):
        assert norm_pdf(0.0) == pytest.approx(1.0 / np.sqrt(2 * np.pi))

    def test_norm_cdf_symmetry(self):
        for x in (-2.0, -0.3, 0.0, 0.7, 3.1):
            assert norm_cdf(x) + norm_cdf(-x) == pytest.approx(1.0)

    def test_d2_is_d1_minus_vol_root_t(self):
        assert d1(S, K, T, r, sigma, q) - d2(S, K, T, r, sigma, q) == pytest.approx(sigma * np.sqrt(T))

    def test_reference_d1_d2(self):
        """Far OTM, very high vol: d1 > 0 even though K = 2.5 S."""
        assert d1(100.0, 250.0, 30 / 365, 0.001, 10.0) == pytest.approx(1.1138750444, rel=1e-6)
        assert d2(100.0, 250.0, 30 / 365, 0.001, 10.0) == pytest.approx(-1.7530358510, rel=1e-6)


class TestPricing:
    """Basic pricing correctness."""

    def test_call_price_positive(self):
        """Call price must be positive for reasonable inputs."""
        assert call_price(S, K, T, r, sigma, q) > 0

    def test_put_price_positive(self):
        assert put_price(S, K, T, r, sigma, q) > 0

    def test_put_call_parity(self):
        """
        Put-call parity: C - P = S*e^{-qT} - K*e^{-rT}

        This is model-independent for European options. If this fails,
        something fundamental is wrong with the pricing formulas.
        """
        c = call_price(S, K, T, r, sigma, q)
        p = put_price(S, K, T, r, sigma, q)
        rhs = S * np.exp(-q * T) - K * np.exp(-r * T)
        assert abs((c - p) - rhs) < 1e-10

    def test_put_call_parity_otm(self):
        for K_test in [500.0, 550.0, 650.0, 700.0]:
            c = call_price(S, K_test, T, r, sigma, q)
            p = put_price(S, K_test, T, r, sigma, q)
            rhs = S * np.exp(-q * T) - K_test * np.exp(-r * T)
            assert abs((c - p) - rhs) < 1e-10

    def test_call_below_spot(self):
        """C <= S*e^{-qT} (call can never be worth more than the discounted stock)."""
        assert call_price(S, K, T, r, sigma, q) <= S * np.exp(-q * T)

    def test_reference_prices(self):
        assert call_price(100.0, 250.0, 30 / 365, 0.001, 10.0) == pytest.approx(76.784696, rel=1e-4)
        assert put_price(100.0, 250.0, 30 / 365, 0.001, 10.0) == pytest.approx(226.764149, rel=1e-4)

    def test_bs_price_dispatch(self):
        assert bs_price(S, K, T, r, sigma, "call", q) == call_price(S, K, T, r, sigma, q)
        assert bs_price(S, K, T, r, sigma, "p", q) == put_price(S, K, T, r, sigma, q)

    def test_invalid_option_type(self):
        with pytest.raises(ValueError, match="Unknown option_type"):
            bs_price(S, K, T, r, sigma, "straddle", q)

    def test_price_increases_with_vol(self):
        assert call_price(S, K, T, r, 0.30, q) > call_price(S, K, T, r, 0.20, q)


class TestDomain:
    """Non-positive time, vol, spot or strike is an error, never a payoff."""

    @pytest.mark.parametrize("T_bad", [0.0, -0.1])
    def test_non_positive_time(self, T_bad):
        with pytest.raises(UndefinedGreekError):
            call_price(S, K, T_bad, r, sigma, q)

    @pytest.mark.parametrize("sigma_bad", [0.0, -0.2])
    def test_non_positive_vol(self, sigma_bad):
        with pytest.raises(UndefinedGreekError):
            put_price(S, K, T, r, sigma_bad, q)

    def test_non_finite_spot(self):
        with pytest.raises(UndefinedGreekError):
            d1(np.inf, K, T, r, sigma)

    def test_undefined_is_a_value_error(self):
        with pytest.raises(ValueError):
            d1(S, K, 0.0, r, sigma)


class TestTheoreticalPrice:

    def test_iv_quote_is_priced(self):
        quote = Quote(strike=K, maturity=T, spot=S, option_type="put",
                      value=ImpliedVolatility(sigma), risk_free_rate=r, dividend_yield=q,
                      side="bid")
        priced = theoretical_price(quote)
        assert priced.value_kind is ValueKind.PRICE
        assert priced.amount == pytest.approx(put_price(S, K, T, r, sigma, q))
        # everything but the value is carried over
        assert priced.side is quote.side
        assert priced.strike == quote.strike

    def test_price_quote_returned_unchanged(self):
        quote = Quote(strike=K, maturity=T, spot=S, option_type="call", value=Price(25.0))
        assert theoretical_price(quote) is quote

    def test_expired_quote_raises(self):
        quote = Quote(strike=K, maturity=0.0, spot=S, option_type="call",
                      value=ImpliedVolatility(sigma))
        with pytest.raises(UndefinedGreekError):
            theoretical_price(quote)
