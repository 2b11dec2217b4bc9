# scripts/gen_schemas.py
"""
Generate JSON Schemas for the Data Alchemist contracts.

Exports schema files for the entity rows, the workspace snapshot, the
validation finding and the runtime configuration.

Output directory: schemas/
"""

import json
from pathlib import Path

from alchemist.schemas.models import Client, Config, Task, ValidationFinding, Worker, Workspace

SCHEMAS = (
    (Client, "client"),
    (Worker, "worker"),
    (Task, "task"),
    (Workspace, "workspace"),
    (ValidationFinding, "finding"),
    (Config, "config"),
)


def export_schema(model_cls, name: str, out_dir: Path) -> Path:
    """
    @brief
    Writes "<name>.schema.json" for a Pydantic model.

    @details
    Schemas use the upload column names (by_alias) since that is what
    snapshot files carry.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    schema_path = (out_dir / f"{name}.schema.json").resolve()
    schema = model_cls.model_json_schema(by_alias=True)

    with schema_path.open("w", encoding="utf-8") as f:
        json.dump(schema, f, indent=2, ensure_ascii=False)
        f.write("\n")

    try:
        rel = schema_path.relative_to(Path.cwd())
    except ValueError:
        rel = schema_path
    print(f"Generated {rel}")
    return schema_path


def main(out_dir: Path | None = None) -> list[Path]:
    out_dir = out_dir or Path("schemas").resolve()
    return [export_schema(model, name, out_dir) for model, name in SCHEMAS]


if __name__ == "__main__":
    main()
