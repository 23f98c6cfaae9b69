"""Render the insert-size distribution as an SVG or PNG line chart."""
from __future__ import annotations

from enum import Enum
from pathlib import Path

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from isize.config import ConfigurationError, PlotStyle
from isize.models import InsertSizeDistribution


class RenderError(Exception):
    """Raised when the chart cannot be drawn or written."""


class PicFormat(Enum):
    SVG = "svg"
    PNG = "png"


_SUFFIXES = {
    ".svg": PicFormat.SVG,
    ".SVG": PicFormat.SVG,
    ".png": PicFormat.PNG,
    ".PNG": PicFormat.PNG,
}


def pic_format(path: Path | str) -> PicFormat:
    """Pick the output format from the picture path's suffix."""
    suffix = Path(path).suffix
    try:
        return _SUFFIXES[suffix]
    except KeyError:
        raise ConfigurationError(
            f"Unsupported picture suffix {suffix!r} for {path}; use .svg or .png"
        ) from None


def draw_distribution(dist: InsertSizeDistribution, style: PlotStyle | None = None) -> plt.Figure:
    """Build the frequency chart: x from 0 to upper + 1, y from 0 to ``axis_max``."""
    style = style or PlotStyle()
    upper = int(dist.insert_size[-1])

    plt.style.use(style.style)
    fig, ax = plt.subplots(figsize=style.figsize)
    try:
        ax.plot(
            dist.insert_size,
            dist.frequency,
            color=style.line_color,
            linewidth=style.line_width,
            solid_joinstyle="round",
        )
        ax.set_xlim(0, upper + 1)
        ax.set_ylim(0, dist.axis_max)
        ax.set_xlabel(style.x_label)
        ax.set_ylabel(style.y_label)
        ax.grid(False)
    except ValueError:
        plt.close(fig)
        raise
    return fig


def render_distribution(
    dist: InsertSizeDistribution,
    path: Path,
    fmt: PicFormat,
    style: PlotStyle | None = None,
) -> Path:
    """Draw frequency against insert size and save it to ``path``."""
    style = style or PlotStyle()
    try:
        fig = draw_distribution(dist, style)
    except (OSError, ValueError) as exc:
        raise RenderError(f"Failed to draw chart for {path}: {exc}") from exc

    try:
        fig.savefig(path, format=fmt.value, dpi=style.dpi)
    except (OSError, ValueError) as exc:
        raise RenderError(f"Failed to write {path}: {exc}") from exc
    finally:
        plt.close(fig)
    return Path(path)
