"""
Training table JSON schema and Pydantic models.

Used by both backend (storage, analysis API) and frontend (table editor and
questionnaire). A table has one column per symptom and one row per disease;
each cell holds the intensity level of that symptom for that disease.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class Intensity(str, Enum):
    """Default intensity levels offered by the table editor."""

    IRRELEVANT = "irrelevant"
    MEDIUM = "medium"
    STRONG = "strong"


DEFAULT_LEVELS = [level.value for level in Intensity]


class TableRow(BaseModel):
    """One disease and its symptom levels, aligned with the table columns."""

    disease: str = Field(..., description="Disease (category) name")
    values: list[str] = Field(default_factory=list, description="One level per column, in column order")


class DiseaseDescription(BaseModel):
    """Free-text description shown with a predicted disease."""

    disease: str = Field(..., description="Disease name (matches a row)")
    description: str = Field("", description="Description text; newlines allowed")


class TrainingTable(BaseModel):
    """Full training table as edited, imported and exported by the frontend."""

    id: Optional[str] = Field(None, description="Table ID (assigned on save when missing)")
    name: str = Field("Training table", description="Human-readable name")
    columns: list[str] = Field(default_factory=list, description="Symptom (attribute) names")
    rows: list[TableRow] = Field(default_factory=list, description="Training rows")
    levels: list[str] = Field(
        default_factory=lambda: list(DEFAULT_LEVELS),
        description="Allowed cell values",
    )
    not_applicable: str = Field(
        Intensity.IRRELEVANT.value,
        description="Level meaning the symptom does not apply; omitted from binary tokens",
    )
    descriptions: list[DiseaseDescription] = Field(default_factory=list, description="Disease descriptions")

    model_config = {"extra": "allow"}


class AnswerEntry(BaseModel):
    """One questionnaire answer: the level chosen for a symptom."""

    attribute: str = Field(..., description="Symptom (column) name")
    value: str = Field(..., description="Chosen level")
