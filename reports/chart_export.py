"""Render the category chart geometry to an image."""
from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Dict, Sequence

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
from matplotlib.patches import Circle, Wedge  # noqa: E402

from hearth_app.hearth.schedule import CATEGORY_PALETTE, ChartSlice  # noqa: E402

LOGGER = logging.getLogger(__name__)

RADIUS = 45.0
HOLE_RADIUS = 28.0
BACKGROUND = "#fdfbf7"


def _to_degrees(angle: float) -> float:
    # Slice angles run clockwise on a y-down canvas; matplotlib's y axis points up.
    return -math.degrees(angle)


def render_chart(
    slices: Sequence[ChartSlice],
    path: Path,
    colors: Dict[str, str] | None = None,
    session_count: int = 0,
) -> Path:
    colors = colors or {}
    fig, ax = plt.subplots(figsize=(3, 3))
    ax.set_xlim(0, 100)
    ax.set_ylim(0, 100)
    ax.set_aspect("equal")
    ax.axis("off")

    if not slices:
        ax.add_patch(Circle((50, 50), RADIUS, fill=False, linestyle=":", edgecolor="#8b4513", alpha=0.3))
    else:
        for index, piece in enumerate(slices):
            color = colors.get(piece.category, CATEGORY_PALETTE[index % len(CATEGORY_PALETTE)])
            if math.isclose(piece.sweep_fraction, 1.0):
                ax.add_patch(Circle((50, 50), RADIUS, color=color))
                continue
            ax.add_patch(
                Wedge(
                    (50, 50),
                    RADIUS,
                    _to_degrees(piece.end_angle),
                    _to_degrees(piece.start_angle),
                    facecolor=color,
                    label=piece.category,
                )
            )
        ax.add_patch(Circle((50, 50), HOLE_RADIUS, color=BACKGROUND))

    ax.text(50, 53, str(session_count), ha="center", va="center", fontsize=18, color="#8b4513")
    ax.text(50, 42, "SESSIONS", ha="center", va="center", fontsize=6, color="#8b4513", alpha=0.4)

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(path, format="png", facecolor=BACKGROUND)
    plt.close(fig)
    LOGGER.info("Rendered chart with %s slices to %s", len(slices), path)
    return path
