"""
Stateless build + predict: the caller sends its current table and answers.
"""

from fastapi import APIRouter, HTTPException
from pydantic import Field

from backend.routes.tables import PredictRequest
from backend.services.table_service import AnalysisResult, analyze_table, validate_table
from backend.services.tree_service import InsufficientDataError
from shared.schemas import TrainingTable

router = APIRouter()


class InlinePredictRequest(PredictRequest):
    table: TrainingTable = Field(..., description="Training table to learn from")


@router.post("/", response_model=AnalysisResult)
def predict_inline(body: InlinePredictRequest):
    """Build the tree from the inline table and return the most probable disease. Nothing is stored."""
    errors = validate_table(body.table)
    if errors:
        raise HTTPException(
            status_code=400,
            detail={"message": "Invalid training table", "errors": [e.model_dump() for e in errors]},
        )
    try:
        return analyze_table(body.table, body.answers, body.options)
    except InsufficientDataError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
