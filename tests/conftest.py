"""
Shared test fixtures and pytest configuration.
"""

import pytest
import numpy as np

from optboard.black_scholes import bs_price
from optboard.quote import AdditionalData, ImpliedVolatility, Price, Quote


# spot / rate used by the chain and board fixtures
SPOT = 100.0
RATE = 0.01


@pytest.fixture(autouse=True)
def set_random_seed():
    """Ensure test reproducibility."""
    np.random.seed(42)
    yield


def make_quote(strike, option_type="call", value=5.0, maturity=0.25, spot=SPOT,
               side=None, kind="price", volume=None, r=RATE, q=0.0):
    """Short-hand quote builder; kind is 'price' or 'iv'."""
    val = Price(value) if kind == "price" else ImpliedVolatility(value)
    extra = None if volume is None else AdditionalData(volume=volume)
    return Quote(strike=strike, maturity=maturity, spot=spot, option_type=option_type,
                 value=val, risk_free_rate=r, dividend_yield=q, side=side, extra=extra)


def smile_vol(strike, spot=SPOT):
    """Toy skewed smile: higher vol on the downside."""
    m = np.log(strike / spot)
    return 0.20 - 0.15 * m + 0.40 * m**2


@pytest.fixture
def reference_quote():
    """High-vol, far OTM call: S=100, K=250, 30 days, r=0.1%, sigma=1000%."""
    return Quote(strike=250.0, maturity=30.0 / 365.0, spot=100.0, option_type="call",
                 value=ImpliedVolatility(10.0), risk_free_rate=0.001, dividend_yield=0.0)


@pytest.fixture
def price_quotes():
    """Calls and puts at strikes 80..120 for two maturities, priced off smile_vol."""
    quotes = []
    for T in (0.25, 0.5):
        for K in (80.0, 90.0, 95.0, 100.0, 105.0, 110.0, 120.0):
            for kind in ("call", "put"):
                premium = bs_price(SPOT, K, T, RATE, smile_vol(K), kind)
                quotes.append(make_quote(K, kind, premium, maturity=T))
    return quotes
