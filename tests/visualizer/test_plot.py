# tests/visualizer/test_plot.py
from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pandas as pd
import pytest
from matplotlib.figure import Figure

from alchemist.errors import DataError, VisualizationError
from alchemist.schemas.models import Config
from alchemist.validator import validate
from alchemist.visualizer.plot import PHASE_COLUMNS, phase_frame, plot_phase_capacity


# ------------------------------
# Helpers
# ------------------------------
def _mini_cfg(dpi: int = 100, size: tuple[float, float] = (6.0, 3.0)) -> Any:
    """Minimal config-like object with a 'visual' section."""
    width, height = size
    return SimpleNamespace(visual=SimpleNamespace(width=width, height=height, dpi=dpi))


# ------------------------------
# phase_frame
# ------------------------------
def test_phase_frame_merges_and_classifies():
    """
    @brief
    Phases from both tables appear once, sorted, with status per phase.

    @details
    Phase 1: 2/4 = 50 % -> ok; phase 2: 5/6 ~ 83 % -> near;
    phase 3: 3/2 -> over; phase 4: requirement without capacity -> over.
    """
    # --- Act ---
    df = phase_frame({2: 6, 1: 4, 3: 2}, {1: 2, 2: 5, 3: 3, 4: 1})

    # --- Assert ---
    assert list(df.columns) == PHASE_COLUMNS
    assert df["phase"].tolist() == [1, 2, 3, 4]
    assert df["capacity"].tolist() == [4, 6, 2, 0]
    assert df["status"].tolist() == ["ok", "near", "over", "over"]
    assert df.loc[3, "utilization"] == pytest.approx(1.0)


def test_phase_frame_accepts_string_keys():
    # --- Act ---
    df = phase_frame({"1": 2}, {"1": "1"})

    # --- Assert ---
    assert df["phase"].tolist() == [1]
    assert df["requirement"].tolist() == [1]


def test_phase_frame_rejects_non_integer_tables():
    # --- Act / Assert ---
    with pytest.raises(DataError):
        phase_frame({"one": 2}, {})


# ------------------------------
# Smoke: basic rendering
# ------------------------------
def test_plot_smoke_validation_result(tmp_path: Path, make_worker, make_task) -> None:
    """
    @brief
    Smoke test for rendering straight from a ValidationResult.

    @details
    Verifies that plot_phase_capacity() produces a PNG file with a valid
    signature, and that all matplotlib figures are closed afterwards.
    """
    # --- Arrange ---
    result = validate([], [make_worker()], [make_task(duration=4)])
    out = tmp_path / "nested" / "phase_capacity.png"

    # --- Act ---
    path = plot_phase_capacity(result, _mini_cfg(), out)

    # --- Assert ---
    assert path == out.resolve()
    data = path.read_bytes()
    assert len(data) > 64
    assert data[:4] == b"\x89PNG"

    import matplotlib.pyplot as plt

    assert plt.get_fignums() == []


def test_plot_smoke_dataframe_and_real_config(tmp_path: Path) -> None:
    # --- Arrange ---
    df = phase_frame({1: 2, 2: 2}, {1: 3})

    # --- Act ---
    path = plot_phase_capacity(df, Config(), tmp_path / "df.png")

    # --- Assert ---
    assert path.exists() and path.stat().st_size > 0


def test_plot_empty_tables_still_renders(tmp_path: Path) -> None:
    # --- Act ---
    path = plot_phase_capacity(validate([], [], []), _mini_cfg(), tmp_path / "empty.png")

    # --- Assert ---
    assert path.exists()


# ------------------------------
# Errors
# ------------------------------
def test_plot_missing_required_column_raises_dataerror(tmp_path: Path) -> None:
    # --- Arrange ---
    df = phase_frame({1: 2}, {1: 1}).drop(columns=["status"])

    # --- Act / Assert ---
    with pytest.raises(DataError) as ei:
        plot_phase_capacity(df, _mini_cfg(), tmp_path / "x.png")
    assert "missing required columns" in str(ei.value).lower()


def test_plot_unsupported_source_raises_dataerror(tmp_path: Path) -> None:
    # --- Act / Assert ---
    with pytest.raises(DataError):
        plot_phase_capacity([{"phase": 1}], _mini_cfg(), tmp_path / "x.png")


def test_plot_unwritable_path_raises_visualizationerror(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """
    @brief
    VisualizationError is raised when saving the figure is denied.
    """

    # --- Arrange ---
    def _boom(*args: Any, **kwargs: Any) -> None:
        raise PermissionError("deny")

    monkeypatch.setattr(Figure, "savefig", _boom)

    # --- Act / Assert ---
    with pytest.raises(VisualizationError) as ei:
        plot_phase_capacity(phase_frame({1: 1}, {1: 1}), _mini_cfg(), tmp_path / "c.png")
    assert "failed to save figure" in str(ei.value).lower()


def test_plot_uses_cfg_dpi(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """
    @brief
    The DPI from cfg.visual.dpi reaches savefig.
    """
    # --- Arrange ---
    called: dict[str, Any] = {"dpi": None}

    def _spy_savefig(self, *args: Any, **kwargs: Any) -> None:
        called["dpi"] = kwargs.get("dpi")

    monkeypatch.setattr(Figure, "savefig", _spy_savefig)

    # --- Act ---
    plot_phase_capacity(pd.DataFrame(columns=PHASE_COLUMNS), _mini_cfg(dpi=222), tmp_path / "dpi.png")

    # --- Assert ---
    assert called["dpi"] == 222
