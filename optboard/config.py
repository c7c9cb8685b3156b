"""
Global configuration for option valuation and quote aggregation.

Keeps all magic numbers in one place. Every function that uses one of
these takes an explicit keyword argument defaulting to None, so override
per call or edit this file for persistent changes.
"""

import numpy as np


# ── market parameters ────────────────────────────────────────────────────
RISK_FREE_RATE = 0.001          # annualized, continuous compounding
DIVIDEND_YIELD = 0.0            # continuous dividend yield


# ── time ─────────────────────────────────────────────────────────────────
SECONDS_PER_YEAR = 365 * 24 * 3600   # ACT/365 year fraction for absolute maturities


# ── quote book ───────────────────────────────────────────────────────────
QUOTE_EPSILON = float(np.finfo(float).eps)   # values below this mean "no quote"


# ── implied vol solver ───────────────────────────────────────────────────
IV_INITIAL_GUESS = 0.25         # starting vol for Newton-Raphson
IV_TOLERANCE = 1e-8             # |model price - market price| to stop at
IV_MAX_ITER = 100               # Newton + bisection steps before giving up
IV_UPPER_BOUND = 5.0            # initial upper end of the vol bracket (500%)
IV_MAX_BRACKET = 1000.0         # bracket never grows beyond this
VEGA_FLOOR = 1e-12              # below this a Newton step is not trusted


# ── delta buckets ────────────────────────────────────────────────────────
CALL_25_DELTA = 0.25
CALL_50_DELTA = 0.50
PUT_25_DELTA = -0.25
PUT_50_DELTA = -0.50


# ── visualization ────────────────────────────────────────────────────────
DARK_BG = "#0c0c16"
GRID_COLOR_ALPHA = 0.12
AXIS_TEXT_COLOR = "rgba(200,200,200,0.8)"
TITLE_COLOR = "white"
DPI = 200                       # matplotlib export resolution
FIG_WIDTH_2D = 12
FIG_HEIGHT_2D = 6

# smile line colors (mpl + plotly), cycled across maturities
SMILE_COLORS = ["#ff6b6b", "#ffd93d", "#6bcb77", "#4d96ff", "#b388ff"]
