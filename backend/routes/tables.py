"""
CRUD, import/export, and analysis routes for training tables.
"""

import json
import uuid
from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.database import get_db
from backend.models.decision_tree import Encoding
from backend.models_db import PredictionLogModel, TrainingTableModel
from backend.services.evaluation_service import evaluate_fit
from backend.services.table_service import (
    DEFAULT_ENCODING,
    AnalysisResult,
    AnalyzerOptions,
    analyze_table,
    answers_to_mapping,
    build_table_tree,
    table_from_upload,
    validate_table,
)
from backend.services.tree_service import InsufficientDataError
from shared.schemas import AnswerEntry, TrainingTable

router = APIRouter()


class PredictRequest(BaseModel):
    answers: Union[dict[str, str], list[AnswerEntry]] = Field(
        default_factory=dict,
        description="Questionnaire answers: {symptom: level} or [{attribute, value}]",
    )
    options: Optional[AnalyzerOptions] = Field(None, description="Analyzer options")


def _load_table(db: Session, table_id: str) -> TrainingTable:
    row = db.query(TrainingTableModel).filter(TrainingTableModel.id == table_id).first()
    if not row:
        raise HTTPException(status_code=404, detail=f"Table '{table_id}' not found")
    return TrainingTable.model_validate({**row.table_json, "id": row.id})


def _check_table(table: TrainingTable) -> None:
    errors = validate_table(table)
    if errors:
        raise HTTPException(
            status_code=400,
            detail={"message": "Invalid training table", "errors": [e.model_dump() for e in errors]},
        )


def _save_table(db: Session, table: TrainingTable) -> TrainingTable:
    """Create or overwrite a table; assigns an ID when missing."""
    table_id = table.id or f"tbl-{uuid.uuid4().hex[:12]}"
    table = table.model_copy(update={"id": table_id})
    payload = table.model_dump(mode="json")
    row = db.query(TrainingTableModel).filter(TrainingTableModel.id == table_id).first()
    if row:
        row.name = table.name
        row.table_json = payload
    else:
        db.add(TrainingTableModel(id=table_id, name=table.name, table_json=payload))
    db.commit()
    return table


@router.get("/", response_model=list[dict])
def list_tables(db: Session = Depends(get_db)):
    """List stored training tables, most recently updated first."""
    rows = db.query(TrainingTableModel).order_by(TrainingTableModel.updated_at.desc()).all()
    return [
        {
            "id": r.id,
            "name": r.name,
            "columns": len((r.table_json or {}).get("columns") or []),
            "rows": len((r.table_json or {}).get("rows") or []),
            "created_at": r.created_at.isoformat(),
            "updated_at": r.updated_at.isoformat(),
        }
        for r in rows
    ]


@router.post("/", status_code=201)
def create_table(table: TrainingTable, db: Session = Depends(get_db)):
    """Create or overwrite a training table."""
    _check_table(table)
    return _save_table(db, table)


@router.post("/validate")
def validate_table_body(table: TrainingTable):
    """Validate a table without saving it. Returns list of errors."""
    errors = validate_table(table)
    return {"errors": [e.model_dump() for e in errors], "valid": len(errors) == 0}


@router.post("/import", status_code=201)
async def import_table(file: UploadFile, db: Session = Depends(get_db)):
    """Import a table from an uploaded JSON file (same shape as export)."""
    raw = await file.read()
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid JSON file: {e}") from e
    if not isinstance(data, dict) or not isinstance(data.get("columns"), list) or not isinstance(data.get("rows"), list):
        raise HTTPException(status_code=400, detail="Invalid table format: expected 'columns' and 'rows' lists")
    try:
        table = table_from_upload(data)
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Invalid table: {e}") from e
    _check_table(table)
    return _save_table(db, table)


@router.get("/{table_id}")
def get_table(table_id: str, db: Session = Depends(get_db)):
    """Get a single training table by ID."""
    return _load_table(db, table_id)


@router.get("/{table_id}/export")
def export_table(table_id: str, db: Session = Depends(get_db)):
    """Download the table as a JSON file."""
    table = _load_table(db, table_id)
    return JSONResponse(
        content=table.model_dump(mode="json"),
        headers={"Content-Disposition": f'attachment; filename="{table_id}.json"'},
    )


@router.put("/{table_id}")
def update_table(table_id: str, table: TrainingTable, db: Session = Depends(get_db)):
    """Replace an existing table."""
    if table.id and table.id != table_id:
        raise HTTPException(status_code=400, detail="ID in path and body must match")
    if not db.query(TrainingTableModel).filter(TrainingTableModel.id == table_id).first():
        raise HTTPException(status_code=404, detail=f"Table '{table_id}' not found")
    _check_table(table)
    return _save_table(db, table.model_copy(update={"id": table_id}))


@router.delete("/{table_id}", status_code=204)
def delete_table(table_id: str, db: Session = Depends(get_db)):
    """Delete a training table by ID."""
    row = db.query(TrainingTableModel).filter(TrainingTableModel.id == table_id).first()
    if not row:
        raise HTTPException(status_code=404, detail=f"Table '{table_id}' not found")
    db.delete(row)
    db.commit()
    return None


# -----------------------------------------------------------------------------
# Tree, prediction, and fit
# -----------------------------------------------------------------------------


@router.get("/{table_id}/tree")
def get_table_tree(
    table_id: str,
    encoding: Encoding = Query(Encoding(DEFAULT_ENCODING), description="Attribute encoding"),
    db: Session = Depends(get_db),
):
    """Rebuild the decision tree for a table and return it with a shape summary."""
    table = _load_table(db, table_id)
    try:
        tree, summary = build_table_tree(table, encoding)
    except InsufficientDataError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return {"summary": summary.model_dump(mode="json"), "tree": tree.model_dump(mode="json")}


@router.post("/{table_id}/predict", response_model=AnalysisResult)
def predict_for_table(table_id: str, body: PredictRequest, db: Session = Depends(get_db)):
    """Build the tree from the stored table and return the most probable disease."""
    table = _load_table(db, table_id)
    try:
        result = analyze_table(table, body.answers, body.options)
    except InsufficientDataError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    db.add(
        PredictionLogModel(
            table_id=table_id,
            encoding=result.encoding.value,
            answers=answers_to_mapping(body.answers),
            category=result.category,
            questions=len(result.path),
            fallbacks=sum(1 for step in result.path if step.fallback),
            duration_ms=result.duration_ms,
        )
    )
    db.commit()
    return result


@router.post("/{table_id}/evaluate")
def evaluate_table(table_id: str, options: Optional[AnalyzerOptions] = None, db: Session = Depends(get_db)):
    """Predict every training row from its own pattern and report how many are reproduced."""
    table = _load_table(db, table_id)
    try:
        report = evaluate_fit(table, options)
    except InsufficientDataError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return report.to_dict()
