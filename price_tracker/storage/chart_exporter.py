# price_tracker/storage/chart_exporter.py

"""Generate interactive Plotly HTML charts from an item's price history."""

import importlib
import logging
import re
import webbrowser
from datetime import datetime
from pathlib import Path
from types import ModuleType
from typing import Any

from price_tracker.config.settings import Settings
from price_tracker.models.tracked_item import TrackedItem

logger = logging.getLogger("price_tracker.chart")


def _get_plotly_go() -> ModuleType:
    """Import plotly.graph_objects lazily."""
    return importlib.import_module("plotly.graph_objects")


def build_price_chart(item: TrackedItem) -> Any:
    """Build a Plotly step chart of sale price over time."""
    go = _get_plotly_go()
    dates = [e.observed_at for e in item.price_history]
    prices = [e.price for e in item.price_history]

    fig: Any = go.Figure()
    fig.add_trace(go.Scatter(
        x=dates,
        y=prices,
        mode="lines+markers",
        line_shape="hv",
        name=item.title[:50],
        hovertemplate=(
            "%{x|%Y-%m-%d %H:%M}<br>"
            "Price: ₹%{y:,.0f}"
            "<extra></extra>"
        ),
    ))

    min_price = min(prices)
    min_idx = prices.index(min_price)
    fig.add_annotation(
        x=dates[min_idx], y=min_price,
        text=f"Lowest: ₹{min_price:,}",
        showarrow=True, arrowhead=2,
    )
    if item.list_price:
        fig.add_hline(
            y=item.list_price,
            line_dash="dot",
            annotation_text=f"List price ₹{item.list_price:,}",
        )

    fig.update_layout(
        title=f"Price History: {item.title[:60]}",
        xaxis_title="Date",
        yaxis_title="Price (₹)",
        hovermode="x unified",
        template="plotly_white",
    )
    return fig


def export_price_chart(
    item: TrackedItem,
    open_browser: bool = True,
    charts_dir: Path | None = None,
) -> Path | None:
    """Write *item*'s price chart as HTML; None without enough data."""
    if len(item.price_history) < 2:
        logger.warning(
            "Not enough data points for chart: item %s", item.id,
        )
        return None

    fig = build_price_chart(item)

    target_dir = charts_dir or Settings.CHARTS_DIR
    target_dir.mkdir(parents=True, exist_ok=True)
    slug = re.sub(r"[^A-Za-z0-9]+", "_", item.title[:30]).strip("_")
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filepath = target_dir / f"item{item.id}_{slug}_{stamp}.html"
    fig.write_html(str(filepath))
    logger.info("Chart saved to %s", filepath)

    if open_browser:
        webbrowser.open(filepath.as_uri())

    return filepath
