"""Export JSON Schemas for every message and response type.

Usage:
    python -m quorum_escrow.schema [out_dir]

``out_dir`` defaults to ``./schema``; existing files are overwritten.
"""

import json
import sys
from pathlib import Path
from typing import Any

from pydantic import BaseModel, TypeAdapter

from quorum_escrow.api.schemas import (
    ContractResponse,
    EscrowListResponse,
    EscrowResponse,
    InstantiateMsg,
    MigrateMsg,
    execute_msg_adapter,
    query_msg_adapter,
)

SCHEMAS: dict[str, type[BaseModel] | TypeAdapter] = {
    "instantiate_msg": InstantiateMsg,
    "execute_msg": execute_msg_adapter,
    "query_msg": query_msg_adapter,
    "migrate_msg": MigrateMsg,
    "escrow_response": EscrowResponse,
    "escrow_list_response": EscrowListResponse,
    "contract_response": ContractResponse,
}


def build_schema(name: str) -> dict[str, Any]:
    target = SCHEMAS[name]
    if isinstance(target, TypeAdapter):
        schema = target.json_schema()
    else:
        schema = target.model_json_schema()
    schema.setdefault("title", "".join(part.title() for part in name.split("_")))
    return schema


def export_schemas(out_dir: Path) -> list[Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for name in SCHEMAS:
        path = out_dir / f"{name}.json"
        path.write_text(json.dumps(build_schema(name), indent=2, sort_keys=True) + "\n")
        written.append(path)
    return written


def main() -> None:
    args = sys.argv[1:]
    if len(args) > 1:
        print("Usage: python -m quorum_escrow.schema [out_dir]")
        sys.exit(1)

    out_dir = Path(args[0]) if args else Path("schema")
    for path in export_schemas(out_dir):
        print(f"Created {path}")


if __name__ == "__main__":
    main()
