"""
Tests for the Greeks.

Every sensitivity is checked against a central finite difference of the
quantity it differentiates (price or a lower-order greek), for calls and
puts, with a non-zero rate and dividend yield. Reference values pin the
first-order greeks of one far-OTM, high-vol call.
"""

from dataclasses import replace

import pytest
from optboard.black_scholes import bs_price
from optboard.exceptions import UndefinedGreekError
from optboard.greeks import GREEK_NAMES, Greeks
from optboard.quote import Price, Quote


BASE = dict(S=100.0, K=105.0, T=0.5, r=0.03, sigma=0.25, q=0.01)


def _greeks(option_type, **bumped):
    params = dict(BASE)
    params.update(bumped)
    return Greeks(option_type=option_type, **params)


def _price(g):
    return bs_price(g.S, g.K, g.T, g.r, g.sigma, g.option_type, g.q)


def _central(option_type, measure, param, h):
    up = _greeks(option_type, **{param: BASE[param] + h})
    dn = _greeks(option_type, **{param: BASE[param] - h})
    return (measure(up) - measure(dn)) / (2.0 * h)


# greek name -> (what it differentiates, with respect to, bump size, sign)
FINITE_DIFFERENCES = {
    "delta": (_price, "S", 1e-3, 1.0),
    "gamma": (lambda g: g.delta(), "S", 1e-3, 1.0),
    "speed": (lambda g: g.gamma(), "S", 1e-3, 1.0),
    "vega": (_price, "sigma", 1e-5, 1.0),
    "vanna": (lambda g: g.delta(), "sigma", 1e-5, 1.0),
    "vomma": (lambda g: g.vega(), "sigma", 1e-5, 1.0),
    "zomma": (lambda g: g.gamma(), "sigma", 1e-5, 1.0),
    "ultima": (lambda g: g.vomma(), "sigma", 1e-5, 1.0),
    "rho": (_price, "r", 1e-5, 1.0),
    "epsilon": (_price, "q", 1e-5, 1.0),
    "dual_delta": (_price, "K", 1e-3, 1.0),
    "dual_gamma": (lambda g: g.dual_delta(), "K", 1e-3, 1.0),
    "theta": (_price, "T", 1e-5, -1.0),
    "charm": (lambda g: g.delta(), "T", 1e-5, -1.0),
    "veta": (lambda g: g.vega(), "T", 1e-5, 1.0),
    "color": (lambda g: g.gamma(), "T", 1e-5, 1.0),
}


class TestFiniteDifferences:

    def test_every_greek_is_covered(self):
        assert set(FINITE_DIFFERENCES) == set(GREEK_NAMES)

    @pytest.mark.parametrize("option_type", ["call", "put"])
    @pytest.mark.parametrize("name", sorted(FINITE_DIFFERENCES))
    def test_matches_central_difference(self, name, option_type):
        measure, param, h, sign = FINITE_DIFFERENCES[name]
        analytic = getattr(_greeks(option_type), name)()
        numeric = sign * _central(option_type, measure, param, h)
        assert analytic == pytest.approx(numeric, rel=1e-4, abs=1e-6)


class TestReferenceValues:
    """S=100, K=250, 30 days, r=0.1%, sigma=1000%."""

    def test_call(self, reference_quote):
        g = reference_quote.greeks()
        assert g.delta() == pytest.approx(0.86733360, rel=1e-3)
        assert g.gamma() == pytest.approx(0.0007483030, rel=1e-3)
        assert g.vega() == pytest.approx(6.15043530, rel=1e-3)
        assert g.theta() == pytest.approx(-374.161429, rel=1e-3)
        assert g.rho() == pytest.approx(0.817698, rel=1e-3)

    def test_put(self, reference_quote):
        g = replace(reference_quote, option_type="put").greeks()
        assert g.delta() == pytest.approx(-0.13266640, rel=1e-3)
        assert g.gamma() == pytest.approx(0.0007483030, rel=1e-3)
        assert g.vega() == pytest.approx(6.15043530, rel=1e-3)
        assert g.theta() == pytest.approx(-373.911450, rel=1e-3)
        assert g.rho() == pytest.approx(-19.728558, rel=1e-3)


class TestProperties:

    def test_delta_bounds(self):
        call, put = _greeks("call"), _greeks("put")
        assert 0.0 <= call.delta() <= call.df_q
        assert -put.df_q <= put.delta() <= 0.0

    def test_call_put_delta_gap(self):
        """Delta_call - Delta_put = e^{-qT}."""
        assert _greeks("call").delta() - _greeks("put").delta() == pytest.approx(_greeks("call").df_q)

    def test_shared_second_order(self):
        call, put = _greeks("call"), _greeks("put")
        for name in ("gamma", "vega", "vanna", "vomma", "speed", "zomma", "color", "ultima", "veta"):
            assert getattr(call, name)() == pytest.approx(getattr(put, name)())

    def test_as_dict(self):
        d = _greeks("call").as_dict()
        assert list(d) == list(GREEK_NAMES)
        assert d["gamma"] > 0


class TestUndefined:

    def test_price_quote_has_no_greeks(self):
        quote = Quote(strike=100.0, maturity=0.5, spot=100.0, option_type="call", value=Price(5.0))
        with pytest.raises(UndefinedGreekError):
            quote.greeks()

    def test_expired(self):
        with pytest.raises(UndefinedGreekError):
            _greeks("call", T=0.0)

    def test_zero_vol(self):
        with pytest.raises(UndefinedGreekError):
            _greeks("put", sigma=0.0)
