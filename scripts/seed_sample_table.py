#!/usr/bin/env python3
"""
Load the sample training table from data/sample_table.json into the database.
Idempotent: safe to run multiple times (upserts).

Usage (from project root):
  python scripts/seed_sample_table.py
"""
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

SAMPLE_PATH = ROOT / "data" / "sample_table.json"


def main() -> int:
    if not SAMPLE_PATH.exists():
        print(f"Sample file not found: {SAMPLE_PATH}", file=sys.stderr)
        return 1
    from backend.database import Base, SessionLocal, engine
    from backend.models_db import TrainingTableModel
    from backend.services.table_service import validate_table
    from shared.schemas import TrainingTable

    table = TrainingTable.model_validate(json.loads(SAMPLE_PATH.read_text(encoding="utf-8")))
    errors = validate_table(table)
    if errors:
        for err in errors:
            print(f"  {err.code}: {err.message}", file=sys.stderr)
        return 1

    Base.metadata.create_all(bind=engine)
    table_id = table.id or "sample"
    payload = table.model_dump(mode="json")
    db = SessionLocal()
    try:
        row = db.query(TrainingTableModel).filter(TrainingTableModel.id == table_id).first()
        if row:
            row.name = table.name
            row.table_json = payload
        else:
            row = TrainingTableModel(id=table_id, name=table.name, table_json=payload)
            db.add(row)
        db.commit()
        db.refresh(row)
        print(f"Seeded table: {row.name} (id={row.id}, {len(table.rows)} rows x {len(table.columns)} columns)")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
