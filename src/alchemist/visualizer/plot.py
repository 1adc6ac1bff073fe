# src/alchemist/visualizer/plot.py
"""
Phase-capacity chart for a validation pass.

Responsibilities:
- Normalize the capacity / requirement tables into a per-phase DataFrame.
- Enforce headless backend (Agg) and figure export parameters (DPI, size).
- Draw capacity bars with requirement overlaid, coloured by phase status.
- Save PNG to the requested out_path and return that Path.
"""

from __future__ import annotations

# --- Standard library ---
from collections.abc import Mapping
from pathlib import Path
from typing import Any

# --- Third-party (no pyplot here!) ---
import matplotlib
import pandas as pd
import seaborn as sns

# --- Project imports ---
from alchemist.errors import DataError, VisualizationError
from alchemist.schemas.models import Config, ValidationResult
from alchemist.validator.rules import NEAR_CAPACITY_RATIO

# (1) Enforce headless backend for environments without display
matplotlib.use("Agg")

PHASE_COLUMNS = ["phase", "capacity", "requirement", "utilization", "status"]
STATUS_ORDER = ["ok", "near", "over"]


def phase_frame(capacity: Mapping[Any, Any], requirement: Mapping[Any, Any]) -> pd.DataFrame:
    """
    @brief
    Merge capacity and requirement tables into one frame, one row per phase.

    @details
    Phases present in either table appear; a missing side counts as 0.
    utilization = requirement / max(capacity, 1); status is "over" when the
    requirement exceeds capacity, "near" above the near-capacity ratio,
    otherwise "ok". Rows are sorted by phase.

    @raises
        DataError if a phase key or a count is not an integer.
    """
    try:
        cap = {int(k): int(v) for k, v in capacity.items()}
        req = {int(k): int(v) for k, v in requirement.items()}
    except (TypeError, ValueError) as exc:
        raise DataError(
            f"Phase tables must map integer phases to integer counts: {exc}",
            source="visualizer.plot.phase_frame",
            suggested_action="Pass ValidationResult.phase_capacity / phase_requirement",
        ) from exc

    phases = sorted(set(cap) | set(req))
    df = pd.DataFrame(
        {
            "phase": phases,
            "capacity": [cap.get(p, 0) for p in phases],
            "requirement": [req.get(p, 0) for p in phases],
        },
        columns=PHASE_COLUMNS[:3],
    )
    df["utilization"] = df["requirement"] / df["capacity"].clip(lower=1)
    df["status"] = "ok"
    df.loc[df["utilization"] > NEAR_CAPACITY_RATIO, "status"] = "near"
    df.loc[df["requirement"] > df["capacity"], "status"] = "over"
    return df[PHASE_COLUMNS]


def _extract_visual_params(cfg: Config | Any) -> tuple[float, float, int]:
    """Read cfg.visual.{width, height, dpi}, falling back to PNG-friendly defaults."""
    width, height, dpi = 12.0, 6.0, 120
    visual = getattr(cfg, "visual", None)
    if visual is not None:
        width = float(getattr(visual, "width", width))
        height = float(getattr(visual, "height", height))
        dpi = int(getattr(visual, "dpi", dpi))
    return width, height, dpi


def _draw(df: pd.DataFrame, width: float, height: float):
    from matplotlib import pyplot as plt

    palette = dict(zip(STATUS_ORDER, sns.color_palette("RdYlGn_r", n_colors=len(STATUS_ORDER))))

    with sns.axes_style("whitegrid"):
        fig, ax = plt.subplots(figsize=(width, height))

        if df.empty:
            ax.text(0.5, 0.5, "No phase requirements", ha="center", va="center", transform=ax.transAxes)
            ax.set_axis_off()
            return fig

        # (1) Capacity as light bars, requirement as status-coloured bars on top
        ax.bar(df["phase"], df["capacity"], width=0.8, color="lightgray", edgecolor="gray", label="capacity")
        ax.bar(
            df["phase"],
            df["requirement"],
            width=0.5,
            color=[palette[s] for s in df["status"]],
            edgecolor="black",
            linewidth=0.5,
            label="requirement",
        )

        # (2) Axes and labels
        ax.set_xticks(df["phase"].tolist())
        ax.set_xlabel("phase")
        ax.set_ylabel("slots")
        over = int((df["status"] == "over").sum())
        near = int((df["status"] == "near").sum())
        ax.set_title(f"Phase capacity: {len(df)} phases, {over} oversaturated, {near} near capacity")
        ax.legend(loc="upper right")
    return fig


def plot_phase_capacity(
    source: ValidationResult | pd.DataFrame, cfg: Config | Any, out_path: Path
) -> Path:
    """
    @brief
    Render the phase-capacity chart of a validation pass to PNG.

    @details
    Steps:
        (1) Normalize the source (ValidationResult or phase DataFrame).
        (2) Ensure the output directory exists.
        (3) Draw the chart with cfg.visual size.
        (4) Save with cfg.visual.dpi and close the figure.

    @params
        source : ValidationResult | pd.DataFrame
            A result carrying phase tables, or a frame from phase_frame().
        cfg : Config | Any
            Configuration object with optional visual section.
        out_path : Path
            Destination path for PNG output.

    @returns
        Absolute path of the saved PNG.

    @raises
        DataError on an unsupported source; VisualizationError on render/save failure.
    """
    from matplotlib import pyplot as plt

    # (1) Normalize input
    if isinstance(source, ValidationResult):
        df = phase_frame(source.phase_capacity, source.phase_requirement)
    elif isinstance(source, pd.DataFrame):
        missing = [c for c in ("phase", "capacity", "requirement", "status") if c not in source.columns]
        if missing:
            raise DataError(
                f"Missing required columns: {missing}",
                source="visualizer.plot.plot_phase_capacity",
                suggested_action="Build the frame with phase_frame()",
            )
        df = source.sort_values("phase", kind="stable", ignore_index=True)
    else:
        raise DataError(
            f"Unsupported source type for visualization: {type(source).__name__}",
            source="visualizer.plot.plot_phase_capacity",
            suggested_action="Pass a ValidationResult or a phase DataFrame",
        )

    # (2) Prepare output directory
    out_path = Path(out_path)
    try:
        out_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise VisualizationError(
            f"Cannot create output directory: {out_path.parent} ({exc})",
            source="visualizer.plot.plot_phase_capacity",
            suggested_action="Check filesystem permissions or choose another output path",
        ) from exc

    # (3) Draw
    width, height, dpi = _extract_visual_params(cfg)
    fig = _draw(df, width, height)

    # (4) Export
    try:
        fig.savefig(out_path, dpi=dpi, bbox_inches="tight")
    except OSError as exc:
        raise VisualizationError(
            f"Failed to save figure: {out_path} ({exc})",
            source="visualizer.plot.plot_phase_capacity",
            suggested_action="Check disk space and that the file is not open elsewhere",
        ) from exc
    finally:
        plt.close(fig)

    return out_path.resolve()


__all__ = ["phase_frame", "plot_phase_capacity"]
