from __future__ import annotations

from typing import List, Tuple

import numpy as np
import pandas as pd
import plotly.graph_objects as go
from pandas.io.formats.style import Styler

from temptracker.models import MISSING_LABEL

STRIPE_CSS = "background-color: #f5f5f5"
MISSING_CSS = "color: #9e9e9e; opacity: 0.6"


def autoscale_y(values: np.ndarray) -> Tuple[float, float]:
    """
    Y range for the visible readings, padded so a flat series still shows.

    >>> autoscale_y(np.array([36.5, np.nan, 37.2]))
    (36.0, 37.7)
    >>> autoscale_y(np.array([np.nan]))
    (36.0, 40.0)
    """
    vals = values[~np.isnan(values)] if values.size else values
    if vals.size == 0:
        return 36.0, 40.0
    y_min = float(np.min(vals))
    y_max = float(np.max(vals))
    pad = max(0.5, 0.05 * (y_max - y_min))
    return round(y_min - pad, 2), round(y_max + pad, 2)


def gap_connectors(dates: List, values: np.ndarray) -> List[Tuple[int, int]]:
    """
    (last reading before, first reading after) index pairs around each interior gap.

    >>> gap_connectors(list(range(5)), np.array([1.0, np.nan, np.nan, 2.0, 3.0]))
    [(0, 3)]
    """
    pairs = []
    nan_mask = np.isnan(values)
    in_gap = False
    start_nan = 0
    for k in range(len(values)):
        if nan_mask[k] and not in_gap:
            in_gap = True
            start_nan = k
        if not nan_mask[k] and in_gap:
            # densified series never start or end on a gap
            if start_nan > 0:
                pairs.append((start_nan - 1, k))
            in_gap = False
    return pairs


def make_temperature_chart(dense: pd.DataFrame) -> go.Figure:
    fig = go.Figure()
    if dense.empty:
        fig.update_layout(title="Temperature", template="plotly_white")
        return fig

    x = list(dense["Date"])
    y = dense["Temperature"].to_numpy(dtype=float, na_value=np.nan)

    fig.add_trace(go.Scatter(
        x=x,
        y=y,
        mode="lines+markers",
        name="Temperature",
        uid="trace-daily",
        legendgroup="daily",
        connectgaps=False,
        hovertemplate="%{x|%Y-%m-%d}: %{y:.1f} °C",
    ))

    for i_before, i_after in gap_connectors(x, y):
        fig.add_trace(go.Scatter(
            x=[x[i_before], x[i_after]],
            y=[y[i_before], y[i_after]],
            mode="lines",
            line=dict(dash="dot", width=2, color="gray"),
            opacity=0.7,
            name="Missing days",
            legendgroup="daily",
            showlegend=False,
            hoverinfo="skip",
        ))

    y0, y1 = autoscale_y(y)
    fig.update_layout(
        title="Daily Temperature",
        xaxis_title="Date",
        yaxis_title="Temperature (°C)",
        hovermode="x unified",
        template="plotly_white",
        yaxis=dict(range=[y0, y1]),
        uirevision="daily_temperature_uirev",
    )
    return fig


def style_dense_table(dense: pd.DataFrame, newest_first: bool = True) -> Styler:
    """
    Dense series as a display table: alternate rows striped, days without a
    reading labelled "No data" and greyed out.
    """
    missing = dense["Temperature"].isna().tolist()
    table = pd.DataFrame({
        "Date": [d.isoformat() for d in dense["Date"]],
        "Temperature": [MISSING_LABEL if m else f"{float(t):.1f}°C" for m, t in zip(missing, dense["Temperature"])],
    })
    if newest_first:
        table = table.iloc[::-1].reset_index(drop=True)
        missing = missing[::-1]

    def _row_css(row: pd.Series) -> List[str]:
        css = []
        if row.name % 2 == 1:
            css.append(STRIPE_CSS)
        if missing[row.name]:
            css.append(MISSING_CSS)
        return ["; ".join(css)] * len(row)

    return table.style.apply(_row_css, axis=1)
