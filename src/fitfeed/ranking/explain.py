"""
Small explainability formatting helpers.

Used by the CLI to print compact summaries of ranked feeds.
"""

from __future__ import annotations

from fitfeed.domain.models import ScoreBreakdown


def one_line_summary(breakdown: ScoreBreakdown) -> str:
    """Render a compact single-line summary for a score breakdown."""
    parts = [f"total={breakdown.total:.2f}"]
    for name in ("interest", "rating", "popularity", "recency", "freshness"):
        parts.append(f"{name}={getattr(breakdown, name):.2f}")
    return " | ".join(parts)
