"""Run configuration for bam-isize.

Settings come from an optional TOML file with ``[scan]`` and ``[plot]``
tables; the command line may override ``scan.upper``.
"""
from __future__ import annotations

import tomllib
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from isize.models import DEFAULT_UPPER


class ConfigurationError(Exception):
    """Raised when options or configuration files are unusable."""


class PlotStyle(BaseModel):
    """Appearance of the insert-size distribution chart."""

    model_config = ConfigDict(extra="forbid")

    x_label: str = "Insert size (bp)"
    y_label: str = "Proportion"
    line_color: str = "#FF0000"
    line_width: float = Field(default=1.5, gt=0)
    figsize: tuple[float, float] = (7.0, 6.1)
    dpi: int = Field(default=100, gt=0)
    style: str = "default"

    @field_validator("figsize")
    @classmethod
    def _positive_figsize(cls, v: tuple[float, float]) -> tuple[float, float]:
        if v[0] <= 0 or v[1] <= 0:
            raise ValueError(f"figsize must be positive, got {v}")
        return v


class ScanConfig(BaseModel):
    """Top-level configuration: histogram bound plus chart style."""

    model_config = ConfigDict(extra="forbid")

    upper: int = Field(default=DEFAULT_UPPER, ge=0)
    plot: PlotStyle = Field(default_factory=PlotStyle)


def load_config(path: Path | None = None, upper: int | None = None) -> ScanConfig:
    """Build a ScanConfig from an optional TOML file and CLI override.

    Parameters
    ----------
    path : Path or None
        TOML file with optional ``[scan]`` and ``[plot]`` tables.
    upper : int or None
        Maximum insert size to bucket; replaces ``scan.upper`` when given.
    """
    data: dict = {}
    if path is not None:
        try:
            raw = tomllib.loads(Path(path).read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigurationError(f"Cannot read config {path}: {exc}") from exc
        except tomllib.TOMLDecodeError as exc:
            raise ConfigurationError(f"Invalid TOML in {path}: {exc}") from exc
        unknown = sorted(set(raw) - {"scan", "plot"})
        if unknown:
            raise ConfigurationError(f"Unknown table(s) in {path}: {', '.join(unknown)}")
        scan = raw.get("scan", {})
        if not isinstance(scan, dict):
            raise ConfigurationError(f"[scan] in {path} must be a table")
        data.update(scan)
        if "plot" in raw:
            data["plot"] = raw["plot"]

    if upper is not None:
        data["upper"] = upper

    try:
        return ScanConfig.model_validate(data)
    except ValidationError as exc:
        source = path if path is not None else "command line"
        raise ConfigurationError(f"Invalid configuration ({source}): {exc}") from exc
