# tests/dataloader/test_config_loader.py

from pathlib import Path

import pytest
import yaml

from alchemist.dataloader.config_loader import ConfigLoader
from alchemist.errors import ConfigError
from alchemist.schemas.models import Config


@pytest.fixture()
def tmp_yaml(tmp_path: Path) -> Path:
    """Creates a temporary YAML with valid Config fields."""
    path = tmp_path / "config.yaml"
    cfg = {
        "clients_csv": "input/clients.csv",
        "workers_csv": "input/workers.csv",
        "tasks_csv": str(tmp_path / "abs" / "tasks.csv"),
        "validation": {"skill_matching": "substring", "max_errors": 2},
        "co_run_groups": {"g1": ["T001", "T002"]},
    }
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(cfg, f)
    return path


def test_load_valid_yaml_returns_config(tmp_yaml: Path):
    """
    @brief
    Verify that valid YAML is correctly parsed and validated.

    @details
    Ensures that a well-formed YAML configuration file produces a fully
    validated `Config` object and that omitted sections get their defaults
    (phase_overflow, io_policy, visual).
    """
    # --- Arrange ---
    loader = ConfigLoader()

    # --- Act ---
    cfg = loader.load(tmp_yaml)

    # --- Assert ---
    assert isinstance(cfg, Config)
    assert cfg.validation.skill_matching == "substring"
    assert cfg.validation.max_errors == 2
    assert cfg.validation.phase_overflow == "clip"
    assert cfg.io_policy.write_plot is True
    assert cfg.io_policy.write_export is True
    assert cfg.visual.dpi == 120
    assert cfg.co_run_groups == {"g1": ["T001", "T002"]}


def test_relative_inputs_resolve_against_config_dir(tmp_yaml: Path):
    """
    @brief
    Relative CSV paths are anchored at the config file; absolute ones are kept.
    """
    # --- Act ---
    cfg = ConfigLoader().load(tmp_yaml)

    # --- Assert ---
    base = tmp_yaml.resolve().parent
    assert Path(cfg.clients_csv) == base / "input" / "clients.csv"
    assert Path(cfg.workers_csv) == base / "input" / "workers.csv"
    assert Path(cfg.tasks_csv) == tmp_yaml.parent / "abs" / "tasks.csv"


def test_missing_file_raises_configerror(tmp_path: Path):
    """
    @brief
    Missing configuration file triggers ConfigError.
    """
    # --- Arrange ---
    loader = ConfigLoader()
    path = tmp_path / "no_such.yaml"

    # --- Act / Assert ---
    with pytest.raises(ConfigError) as e:
        loader.load(path)

    # --- Assert ---
    assert "Configuration file not found" in str(e.value)


def test_wrong_extension_raises_configerror(tmp_path: Path):
    """
    @brief
    Invalid file extension results in ConfigError.

    @details
    Ensures that only `.yaml` or `.yml` files are accepted.
    """
    # --- Arrange ---
    path = tmp_path / "config.txt"
    path.write_text("clients_csv: a.csv", encoding="utf-8")
    loader = ConfigLoader()

    # --- Act / Assert ---
    with pytest.raises(ConfigError):
        loader.load(path)


def test_empty_yaml_raises_configerror(tmp_path: Path):
    """
    @brief
    Empty YAML file triggers ConfigError.
    """
    # --- Arrange ---
    path = tmp_path / "config.yaml"
    path.write_text("", encoding="utf-8")
    loader = ConfigLoader()

    # --- Act / Assert ---
    with pytest.raises(ConfigError) as e:
        loader.load(path)

    # --- Assert ---
    assert "empty" in str(e.value).lower()


def test_non_mapping_root_raises_configerror(tmp_path: Path):
    # --- Arrange ---
    path = tmp_path / "config.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")

    # --- Act / Assert ---
    with pytest.raises(ConfigError) as e:
        ConfigLoader().load(path)
    assert "mapping" in str(e.value)


def test_broken_yaml_raises_configerror(tmp_path: Path):
    # --- Arrange ---
    path = tmp_path / "config.yaml"
    path.write_text("validation: [unclosed\n", encoding="utf-8")

    # --- Act / Assert ---
    with pytest.raises(ConfigError) as e:
        ConfigLoader().load(path)
    assert "YAML parsing failed" in str(e.value)


def test_yaml_with_extra_field_raises_configerror(tmp_yaml: Path):
    """
    @brief
    Extra field in YAML causes validation error.

    @details
    The top-level Config forbids unknown keys, so typos never pass silently.
    """
    # --- Arrange ---
    data = yaml.safe_load(tmp_yaml.read_text(encoding="utf-8"))
    data["unexpected_key"] = 1
    tmp_yaml.write_text(yaml.safe_dump(data), encoding="utf-8")

    # --- Act / Assert ---
    with pytest.raises(ConfigError) as e:
        ConfigLoader().load(tmp_yaml)
    assert "Invalid configuration" in str(e.value)


@pytest.mark.parametrize(
    "validation",
    [{"skill_matching": "fuzzy"}, {"phase_overflow": "wrap"}, {"max_errors": -1}],
)
def test_invalid_validation_settings_raise_configerror(tmp_path: Path, validation):
    # --- Arrange ---
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"validation": validation}), encoding="utf-8")

    # --- Act / Assert ---
    with pytest.raises(ConfigError):
        ConfigLoader().load(path)
