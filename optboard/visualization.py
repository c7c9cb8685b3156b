"""
Visualization: implied volatility smiles across a board's maturities.

Two backends:
    - matplotlib: static PNG
    - plotly: interactive HTML with hover tooltips

Only out-of-the-money quotes are drawn (puts below spot, calls above), the
usual way to stitch a single smile out of both wings. Price quotes are
solved for implied vol first; strikes the solver cannot invert are left
out of the chart.
"""

import logging
from datetime import datetime
from typing import Dict, Optional

import pandas as pd

import matplotlib
matplotlib.use("Agg")  # non-interactive backend for server/CI environments
import matplotlib.pyplot as plt

import plotly.graph_objects as go

from . import config
from .board import Board
from .exceptions import EmptyCollectionError, NonConvergenceError, UndefinedGreekError
from .implied_vol import implied_volatility

logger = logging.getLogger(__name__)


def _maturity_label(maturity) -> str:
    if isinstance(maturity, datetime):
        return maturity.strftime("%Y-%m-%d")
    return f"T={float(maturity):.2f}y"


def smile_points(board: Board, now: Optional[datetime] = None) -> Dict[str, pd.DataFrame]:
    """
    OTM implied vol by strike for every maturity, front month first.

    Returns
    -------
    dict : {maturity label: DataFrame[strike, iv]} sorted by strike
    """
    smiles = {}
    for chain in board.quote_chains():
        try:
            otm = chain.otm().sort_by_strike()
        except EmptyCollectionError:
            continue
        rows = []
        for quote in otm:
            try:
                iv = implied_volatility(quote, now=now).amount
            except (NonConvergenceError, UndefinedGreekError) as exc:
                logger.debug("strike %s left out of smile: %s", quote.strike, exc)
                continue
            rows.append({"strike": quote.strike, "iv": iv})
        if rows:
            smiles[_maturity_label(chain.maturity)] = pd.DataFrame(rows, columns=["strike", "iv"])
    return smiles


# ════════════════════════════════════════════════════════════════════════
#  MATPLOTLIB — SMILES (static PNG)
# ════════════════════════════════════════════════════════════════════════

def plot_smile_matplotlib(
    board: Board,
    output_path: str,
    title: str = "Implied Volatility Smile by Maturity",
    now: Optional[datetime] = None,
) -> str:
    """
    Render the board's smiles as a PNG.

    Parameters
    ----------
    board : Board of quotes or books (books are reduced to mids)
    output_path : PNG save path
    title : chart title
    now : valuation time for datetime maturities (default: current UTC)

    Returns
    -------
    str : output_path
    """
    smiles = smile_points(board, now=now)

    fig, ax = plt.subplots(figsize=(config.FIG_WIDTH_2D, config.FIG_HEIGHT_2D))
    fig.patch.set_facecolor(config.DARK_BG)
    ax.set_facecolor(config.DARK_BG)

    for i, (label, subset) in enumerate(smiles.items()):
        color = config.SMILE_COLORS[i % len(config.SMILE_COLORS)]
        ax.plot(subset["strike"], subset["iv"] * 100, color=color,
                linewidth=2.2, marker="o", markersize=3, label=label)

    ax.set_xlabel("Strike (K)", fontsize=13, color="white")
    ax.set_ylabel("Implied Volatility (σ) %", fontsize=13, color="white")
    ax.set_title(title, fontsize=17, fontweight="bold", color=config.TITLE_COLOR)
    ax.tick_params(colors="white", labelsize=10)
    ax.grid(True, alpha=config.GRID_COLOR_ALPHA, color="white")

    if smiles:
        leg = ax.legend(title="Maturity", loc="upper right", fontsize=10,
                        title_fontsize=11, facecolor="#191930", edgecolor="#ffffff30",
                        labelcolor="white")
        leg.get_title().set_color("white")

    for spine in ax.spines.values():
        spine.set_color("#333355")

    plt.tight_layout()
    plt.savefig(output_path, dpi=config.DPI, bbox_inches="tight",
                facecolor=config.DARK_BG, edgecolor="none")
    plt.close(fig)
    return str(output_path)


# ════════════════════════════════════════════════════════════════════════
#  PLOTLY — SMILES (interactive HTML)
# ════════════════════════════════════════════════════════════════════════

def plot_smile_plotly(
    board: Board,
    output_path: str,
    title: str = "Implied Volatility Smile by Maturity",
    now: Optional[datetime] = None,
) -> str:
    """Render the board's smiles as interactive HTML; returns output_path."""
    smiles = smile_points(board, now=now)

    fig = go.Figure()
    for i, (label, subset) in enumerate(smiles.items()):
        color = config.SMILE_COLORS[i % len(config.SMILE_COLORS)]
        fig.add_trace(go.Scatter(
            x=subset["strike"], y=subset["iv"],
            mode="lines+markers", name=label,
            line=dict(color=color, width=2.5),
            hovertemplate="K=%{x:.2f}  IV=%{y:.1%}<extra></extra>",
        ))

    fig.update_layout(
        title=dict(
            text=f"<b>{title}</b>",
            font=dict(size=20, color=config.TITLE_COLOR), x=0.5,
        ),
        xaxis=dict(
            title=dict(text="Strike (K)", font=dict(size=14, color="#ddd")),
            tickfont=dict(size=11, color=config.AXIS_TEXT_COLOR),
            gridcolor=f"rgba(200,200,200,{config.GRID_COLOR_ALPHA})",
        ),
        yaxis=dict(
            title=dict(text="Implied Volatility (σ)", font=dict(size=14, color="#ddd")),
            tickformat=".0%",
            tickfont=dict(size=11, color=config.AXIS_TEXT_COLOR),
            gridcolor=f"rgba(200,200,200,{config.GRID_COLOR_ALPHA})",
        ),
        plot_bgcolor=config.DARK_BG,
        paper_bgcolor=config.DARK_BG,
        font=dict(color="white"),
        legend=dict(
            bgcolor="rgba(25,25,45,0.85)",
            bordercolor="rgba(255,255,255,0.15)", borderwidth=1,
            font=dict(size=12),
            title=dict(text="Maturity", font=dict(size=12, color="#ccc")),
        ),
        width=1000, height=550,
        margin=dict(l=60, r=30, t=60, b=50),
    )

    fig.write_html(str(output_path))
    return str(output_path)
