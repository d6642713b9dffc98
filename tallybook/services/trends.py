"""
Spending and income trends.

Provides functionality for:
- Grouping ledger entries into weekly, monthly or yearly totals
- Rendering those totals as a line chart
"""

import io
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

import matplotlib
import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns
from matplotlib.ticker import FuncFormatter

from tallybook.config import CHART_DPI, CHART_FORMAT, CHART_HEIGHT, CHART_WIDTH
from tallybook.errors import ValidationError
from tallybook.models import LedgerEntry

# Headless rendering; charts are returned as image buffers
matplotlib.use("Agg")

logger = logging.getLogger(__name__)


class Timeframe(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @classmethod
    def parse(cls, value) -> "Timeframe":
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(
                "timeframe", f"Timeframe must be one of: {', '.join(t.value for t in cls)}"
            ) from None


GROUP_KEYS = {
    Timeframe.WEEKLY: ["year", "month", "week"],
    Timeframe.MONTHLY: ["year", "month"],
    Timeframe.YEARLY: ["year"],
}


@dataclass
class TrendPoint:
    """Total amount for one bucket of the chosen timeframe."""

    name: str
    total: float

    def to_dict(self) -> dict:
        return {"name": self.name, "total": self.total}


def _label(timeframe: Timeframe, row) -> str:
    if timeframe is Timeframe.WEEKLY:
        return f"Week {row.week} - {row.month}"
    if timeframe is Timeframe.MONTHLY:
        return f"{row.month}/{row.year}"
    return str(row.year)


class TrendService:
    """Service for grouping ledger amounts over time and charting them."""

    def __init__(self):
        try:
            sns.set_theme(style="darkgrid")
        except Exception as e:
            logger.warning(f"Failed to set seaborn theme: {e}")

    def group(
        self, entries: Iterable[LedgerEntry], timeframe: str = Timeframe.WEEKLY.value
    ) -> list[TrendPoint]:
        """
        Sum entry amounts per week, month or year, oldest bucket first.

        Weeks are numbered within their month: days 1-7 are week 1,
        days 8-14 week 2, and so on up to week 5.

        Raises:
            ValidationError: If the timeframe is not weekly, monthly or yearly
        """
        frame = Timeframe.parse(timeframe)
        entries = list(entries)
        if not entries:
            return []

        df = pd.DataFrame(
            {
                "date": pd.to_datetime([e.date for e in entries], format="%Y-%m-%d"),
                "amount": [e.amount for e in entries],
            }
        )
        df["year"] = df["date"].dt.year
        df["month"] = df["date"].dt.month
        df["week"] = (df["date"].dt.day + 6) // 7

        grouped = (
            df.groupby(GROUP_KEYS[frame], sort=True)["amount"].sum().reset_index()
        )

        return [
            TrendPoint(name=_label(frame, row), total=float(row.amount))
            for row in grouped.itertuples(index=False)
        ]

    def render_chart(
        self, points: list[TrendPoint], title: Optional[str] = None
    ) -> io.BytesIO:
        """
        Render trend points as a PNG line chart.

        Returns:
            BytesIO buffer containing the image
        """
        fig = None
        try:
            fig, ax = plt.subplots(figsize=(CHART_WIDTH, CHART_HEIGHT))

            if not points:
                ax.text(
                    0.5, 0.5, "No data to display.", ha="center", va="center", fontsize=14
                )
                ax.set_xlim(0, 1)
                ax.set_ylim(0, 1)
                ax.set_axis_off()
            else:
                df = pd.DataFrame([p.to_dict() for p in points])
                sns.lineplot(data=df, x="name", y="total", marker="o", ax=ax, sort=False)
                ax.yaxis.set_major_formatter(FuncFormatter(lambda v, _: f"{v:,.0f}"))
                ax.set_xlabel("")
                ax.set_ylabel("Total")
                ax.tick_params(axis="x", rotation=45)

            if title:
                ax.set_title(title)

            buf = io.BytesIO()
            fig.savefig(buf, format=CHART_FORMAT, dpi=CHART_DPI, bbox_inches="tight")
            buf.seek(0)
            logger.debug(f"Generated trend chart with {len(points)} points")
            return buf
        finally:
            if fig is not None:
                plt.close(fig)
