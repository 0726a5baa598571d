"""Shared schemas and types for DXTREE (backend and frontend contract)."""

from shared.schemas.training_table import (
    DEFAULT_LEVELS,
    AnswerEntry,
    DiseaseDescription,
    Intensity,
    TableRow,
    TrainingTable,
)

__all__ = [
    "DEFAULT_LEVELS",
    "AnswerEntry",
    "DiseaseDescription",
    "Intensity",
    "TableRow",
    "TrainingTable",
]
