import json
from pathlib import Path

import pytest
import yaml

from alchemist.dataloader.records_loader import RecordsLoader
from scripts.run import main, run_pipeline

ROOT = Path(__file__).resolve().parents[1]


def _write_config(tmp_path: Path, inputs: dict[str, Path], **extra) -> Path:
    """Config YAML pointing at the given CSVs, output under tmp_path/out."""
    cfg = {
        "clients_csv": str(inputs["clients"]),
        "workers_csv": str(inputs["workers"]),
        "tasks_csv": str(inputs["tasks"]),
        "output_dir": str(tmp_path / "out"),
        "visual": {"width": 6, "height": 3, "dpi": 60},
        **extra,
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(cfg), encoding="utf-8")
    return path


@pytest.mark.live
def test_run_pipeline_with_repository_config(tmp_path: Path):
    """
    @brief
    End-to-end run over the shipped config/config.yaml and data/input CSVs.

    @details
    Relative input paths in the shipped config resolve against config/, so the
    run works from any working directory. Artifacts go to a temporary folder.
    """
    # --- Arrange ---
    cfg_path = ROOT / "config" / "config.yaml"
    assert cfg_path.exists(), f"Config file not found: {cfg_path}"

    # --- Act ---
    result = run_pipeline(cfg_path, tmp_path / "out")

    # --- Assert ---
    arts = result["artifacts"]
    assert all(Path(p).exists() for p in arts.values() if p is not None)
    assert (arts["export_metadata"] is not None) == result["export_ready"]
    report = json.loads(Path(arts["validation_report"]).read_text(encoding="utf-8"))
    assert report["valid"] == result["valid"]
    assert report["summary"]["total"] == result["summary"]["total"]


def test_run_pipeline_clean_dataset(tmp_path: Path, sample_inputs: dict[str, Path]):
    """
    @brief
    A consistent dataset validates cleanly and produces all three artifacts.
    """
    # --- Arrange ---
    cfg_path = _write_config(tmp_path, sample_inputs)

    # --- Act ---
    result = run_pipeline(cfg_path)

    # --- Assert ---
    assert result["valid"] is True
    assert result["export_ready"] is True
    assert result["summary"]["total"] == 0
    assert result["summary"]["score"] == 100
    arts = result["artifacts"]
    assert arts["validation_report"] == tmp_path / "out" / "validation_report.json"
    assert arts["findings_csv"].read_text(encoding="utf-8").startswith("id,severity,")
    assert arts["phase_plot"].read_bytes()[:4] == b"\x89PNG"


def test_io_policy_skips_artifacts(tmp_path: Path, sample_inputs: dict[str, Path]):
    # --- Arrange ---
    cfg_path = _write_config(
        tmp_path, sample_inputs, io_policy={"write_plot": False, "write_findings_csv": False}
    )

    # --- Act ---
    result = run_pipeline(cfg_path)

    # --- Assert ---
    assert result["artifacts"]["phase_plot"] is None
    assert result["artifacts"]["findings_csv"] is None
    assert result["artifacts"]["validation_report"].exists()


def test_cli_overrides_inputs_and_output(tmp_path: Path, sample_inputs: dict[str, Path], csv_writer):
    """
    @brief
    --clients replaces the configured clients CSV; --output replaces output_dir.
    """
    # --- Arrange ---
    cfg_path = _write_config(tmp_path, sample_inputs)
    bad_clients = csv_writer(
        tmp_path / "bad_clients.csv",
        ["ClientID", "ClientName", "PriorityLevel", "RequestedTaskIDs", "GroupTag"],
        [["C001", "Acme", 3, "T999", "Enterprise"]],
    )
    out_dir = tmp_path / "cli_out"

    # --- Act ---
    code = main(["--config", str(cfg_path), "--clients", str(bad_clients), "--output", str(out_dir)])

    # --- Assert ---
    assert code == 1  # export gate closed by the unknown task reference
    report = json.loads((out_dir / "validation_report.json").read_text(encoding="utf-8"))
    assert report["valid"] is False
    assert report["findings"][0]["field"] == "RequestedTaskIDs"


def test_main_exit_codes(tmp_path: Path, sample_inputs: dict[str, Path]):
    # --- Arrange ---
    cfg_path = _write_config(tmp_path, sample_inputs)

    # --- Act / Assert ---
    assert main(["--config", str(cfg_path)]) == 0
    assert main(["--config", str(tmp_path / "missing.yaml")]) == 1


def test_max_errors_opens_the_gate(tmp_path: Path, sample_inputs: dict[str, Path], csv_writer):
    # --- Arrange ---
    sample_inputs = dict(sample_inputs)
    sample_inputs["clients"] = csv_writer(
        tmp_path / "clients_one_error.csv",
        ["ClientID", "ClientName", "PriorityLevel", "RequestedTaskIDs", "GroupTag"],
        [["C001", "Acme", 3, "T404", "Enterprise"]],
    )
    cfg_path = _write_config(tmp_path, sample_inputs, validation={"max_errors": 1})

    # --- Act ---
    result = run_pipeline(cfg_path)

    # --- Assert ---
    assert result["valid"] is False
    assert result["export_ready"] is True


def test_load_failure_stops_before_validation(tmp_path: Path, sample_inputs: dict[str, Path], csv_writer):
    # --- Arrange ---
    sample_inputs = dict(sample_inputs)
    sample_inputs["tasks"] = csv_writer(tmp_path / "tasks_no_id.csv", ["TaskName"], [["orphan"]])
    cfg_path = _write_config(tmp_path, sample_inputs)

    # --- Act ---
    code = main(["--config", str(cfg_path)])

    # --- Assert ---
    assert code == 1
    assert not (tmp_path / "out" / "validation_report.json").exists()


def test_open_gate_writes_export_package(tmp_path: Path, sample_inputs: dict[str, Path]):
    """
    @brief
    With the gate open, cleaned CSVs and export_metadata.json land in out/export.
    """
    # --- Arrange ---
    cfg_path = _write_config(tmp_path, sample_inputs)
    export_dir = tmp_path / "out" / "export"

    # --- Act ---
    result = run_pipeline(cfg_path)

    # --- Assert ---
    assert result["artifacts"]["export_metadata"] == export_dir / "export_metadata.json"
    assert sorted(p.name for p in export_dir.iterdir()) == [
        "clients.csv",
        "export_metadata.json",
        "tasks.csv",
        "workers.csv",
    ]
    meta = json.loads((export_dir / "export_metadata.json").read_text(encoding="utf-8"))
    assert meta["statistics"]["total_clients"] == 2
    assert meta["statistics"]["validation_score"] == 100
    assert meta["validation_summary"]["errors"] == 0
    assert meta["validation_summary"]["status"] == "excellent"

    exported = RecordsLoader("worker").load(export_dir / "workers.csv")
    assert [w.identifier for w in exported.entities] == ["W001", "W002"]
    assert exported.entities[0].skills == ["JavaScript", "React"]


def test_closed_gate_writes_no_export_package(tmp_path: Path, sample_inputs: dict[str, Path], csv_writer):
    # --- Arrange ---
    sample_inputs = dict(sample_inputs)
    sample_inputs["clients"] = csv_writer(
        tmp_path / "clients_bad_ref.csv",
        ["ClientID", "ClientName", "PriorityLevel", "RequestedTaskIDs", "GroupTag"],
        [["C001", "Acme", 3, "T404", "Enterprise"]],
    )
    cfg_path = _write_config(tmp_path, sample_inputs)

    # --- Act ---
    result = run_pipeline(cfg_path)

    # --- Assert ---
    assert result["export_ready"] is False
    assert result["artifacts"]["export_metadata"] is None
    assert not (tmp_path / "out" / "export").exists()
    assert (tmp_path / "out" / "validation_report.json").exists()


def test_io_policy_can_skip_export_package(tmp_path: Path, sample_inputs: dict[str, Path]):
    # --- Arrange ---
    cfg_path = _write_config(tmp_path, sample_inputs, io_policy={"write_export": False})

    # --- Act ---
    result = run_pipeline(cfg_path)

    # --- Assert ---
    assert result["export_ready"] is True
    assert result["artifacts"]["export_metadata"] is None
    assert not (tmp_path / "out" / "export").exists()
