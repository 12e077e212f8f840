"""
This module builds Plotly figures for the chart series of a generated report.

Each `Chart` becomes one figure whose trace type follows the chart's declared
kind (bar, line, pie, or radar). Charts with an unknown kind are drawn as
radar charts. Figures are embedded in the HTML export as `<div>` fragments
that load plotly.js from the CDN.
"""

import logging
from typing import List, Optional

import plotly.graph_objects as go

from ..models import Chart, ChartKind
from .localization import get_label
from .theme import Theme

logger = logging.getLogger(__name__)

PALETTE = ["#3b82f6", "#10b981", "#f59e0b", "#ef4444", "#8b5cf6", "#ec4899"]
PRIMARY_COLOR = PALETTE[0]
FALLBACK_KIND = ChartKind.RADAR


def _bar_trace(labels: List[str], values: List[float], name: str) -> go.Bar:
    return go.Bar(x=labels, y=values, name=name, marker_color=PRIMARY_COLOR)


def _line_trace(labels: List[str], values: List[float], name: str) -> go.Scatter:
    return go.Scatter(
        x=labels,
        y=values,
        name=name,
        mode="lines+markers",
        line=dict(color=PRIMARY_COLOR, width=4, shape="spline"),
        marker=dict(size=10),
    )


def _pie_trace(labels: List[str], values: List[float], name: str) -> go.Pie:
    colors = [PALETTE[i % len(PALETTE)] for i in range(len(labels))]
    return go.Pie(labels=labels, values=values, name=name, hole=0.4, marker_colors=colors)


def _radar_trace(labels: List[str], values: List[float], name: str) -> go.Scatterpolar:
    # Repeat the first point so the polygon closes.
    return go.Scatterpolar(
        r=values + values[:1],
        theta=labels + labels[:1],
        name=name,
        fill="toself",
        line=dict(color=PRIMARY_COLOR),
        opacity=0.7,
    )


_TRACE_BUILDERS = {
    ChartKind.BAR: _bar_trace,
    ChartKind.LINE: _line_trace,
    ChartKind.PIE: _pie_trace,
    ChartKind.RADAR: _radar_trace,
}


def build_chart_figure(
    chart: Chart, theme: Theme = Theme.LIGHT, language: Optional[str] = None
) -> go.Figure:
    """
    Creates the Plotly figure for one report chart.

    Args:
        chart: The chart series from the report.
        theme: Selects the light or dark Plotly template.
        language: Used for the value axis label.

    Returns:
        A `go.Figure` ready to be embedded.
    """
    kind = chart.kind
    if kind is None:
        logger.warning(
            f"Chart '{chart.id}' has unknown type '{chart.type}', drawing it as {FALLBACK_KIND.value}."
        )
        kind = FALLBACK_KIND

    labels = [point.label for point in chart.data]
    values = [point.value for point in chart.data]
    trace = _TRACE_BUILDERS[kind](labels, values, get_label(language, "value"))

    fig = go.Figure(data=[trace])
    fig.update_layout(
        title_text=chart.title,
        template=Theme(theme).plotly_template,
        showlegend=kind is ChartKind.PIE,
        margin=dict(l=40, r=40, t=60, b=40),
        height=400,
        autosize=True,
    )
    return fig


def chart_to_html_div(fig: go.Figure, include_plotlyjs: bool = False) -> str:
    """Renders a figure as an embeddable `<div>`; the page loads plotly.js once."""
    return fig.to_html(
        full_html=False,
        include_plotlyjs="cdn" if include_plotlyjs else False,
    )
