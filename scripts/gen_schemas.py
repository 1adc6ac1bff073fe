# scripts/gen_schemas.py
"""
Generate JSON Schemas for Alchemist data models.

This script exports JSON Schema files for:
    - Client, Worker, Task (input records)
    - ValidationFinding (engine output item)
    - Config

Output directory: schemas/
"""

import json
from pathlib import Path

from alchemist.schemas.models import Client, Config, Task, ValidationFinding, Worker

MODELS = {
    "client": Client,
    "worker": Worker,
    "task": Task,
    "finding": ValidationFinding,
    "config": Config,
}


def export_schema(model_cls, name: str, out_dir: Path) -> Path:
    """
    @brief
    Writes "<name>.schema.json" for one pydantic model.

    @details
    Uses the alias (spreadsheet column) names so the schema matches the CSV
    headers and the finding field names.

    @returns
        Path of the written schema.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    schema_path = (out_dir / f"{name}.schema.json").resolve()
    schema = model_cls.model_json_schema(by_alias=True)

    with schema_path.open("w", encoding="utf-8") as f:
        json.dump(schema, f, indent=2, ensure_ascii=False)
        f.write("\n")
    return schema_path


def main(out_dir: Path | None = None) -> None:
    out_dir = (out_dir or Path("schemas")).resolve()
    for name, model in MODELS.items():
        path = export_schema(model, name, out_dir)
        try:
            rel = path.relative_to(Path.cwd())
        except ValueError:
            rel = path
        print(f"Generated {rel}")


if __name__ == "__main__":
    main()
