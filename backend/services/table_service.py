"""
Training table service: table -> training set, answers -> answer set, validation,
and the build + predict workflow used by the API.

The table is the editor's shape (columns x disease rows of intensity levels).
Depending on the encoding, each cell becomes either an (attribute, level) pair
(multiway) or a "{attribute}_{level}" token (binary; not-applicable cells are
omitted).
"""

import logging
import os
import time
from collections.abc import Mapping
from typing import Any, Iterable, Optional, Union

from pydantic import BaseModel, Field

from backend.models.decision_tree import DecisionTreeNode, Encoding, Observation, TreeSummary, summarize_tree
from backend.services.tree_service import (
    UNKNOWN_CATEGORY,
    AnswerSet,
    InsufficientDataError,
    QuestionStep,
    build_tree,
    pair_token,
    pairs_to_tokens,
    trace_prediction,
)
from backend.utils.logging import log_prediction, log_tree_build, log_validation_result
from shared.schemas import DEFAULT_LEVELS, AnswerEntry, Intensity, TrainingTable

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = os.getenv("DXTREE_DEFAULT_ENCODING", Encoding.MULTIWAY.value).lower()
NO_DESCRIPTION = "No description available for this disease."
# Level names that mean "does not apply" in files exported without a levels list
NOT_APPLICABLE_ALIASES = ("irrelevant", "irrelevante")

# -----------------------------------------------------------------------------
# AnalyzerOptions
# -----------------------------------------------------------------------------


class AnalyzerOptions(BaseModel):
    """Options for building and querying a tree from a training table."""

    encoding: Encoding = Field(
        default=Encoding(DEFAULT_ENCODING),
        description="Attribute encoding: multiway (branch on level) | binary (token present/absent)",
    )
    unknown_on_empty: bool = Field(
        default=False,
        description="Return the 'unknown' category instead of failing when the table has no rows",
    )


# -----------------------------------------------------------------------------
# ValidationError
# -----------------------------------------------------------------------------


class ValidationError(BaseModel):
    """A single table validation issue."""

    code: str = Field(..., description="Error code (e.g. duplicate_column, unknown_level)")
    message: str = Field(..., description="Human-readable message")
    row: Optional[int] = Field(None, description="Row index if applicable")
    column: Optional[str] = Field(None, description="Column name if applicable")


def validate_table(table: TrainingTable) -> list[ValidationError]:
    """
    Check: columns unique and named, one value per column in every row,
    disease names present, cell values among the table's levels, and no two
    (column, level) pairs sharing a binary token.
    """
    errors: list[ValidationError] = []
    seen: set[str] = set()
    for name in table.columns:
        if not name.strip():
            errors.append(ValidationError(code="empty_column", message="Column name is empty", column=name))
        elif name in seen:
            errors.append(ValidationError(code="duplicate_column", message=f"Column '{name}' appears more than once", column=name))
        seen.add(name)

    if table.not_applicable not in table.levels:
        errors.append(
            ValidationError(
                code="unknown_not_applicable",
                message=f"Not-applicable level '{table.not_applicable}' is not one of {table.levels}",
            )
        )

    levels = set(table.levels)
    for i, row in enumerate(table.rows):
        if not row.disease.strip():
            errors.append(ValidationError(code="empty_disease", message=f"Row {i} has no disease name", row=i))
        if len(row.values) != len(table.columns):
            errors.append(
                ValidationError(
                    code="column_count_mismatch",
                    message=f"Row {i} has {len(row.values)} values for {len(table.columns)} columns",
                    row=i,
                )
            )
        for column, value in zip(table.columns, row.values):
            if value not in levels:
                errors.append(
                    ValidationError(
                        code="unknown_level",
                        message=f"Row {i} column '{column}' has unknown level '{value}'",
                        row=i,
                        column=column,
                    )
                )

    # Binary tokens are "{column}_{level}" and must stay distinct per cell pair
    tokens: dict[str, tuple[str, str]] = {}
    for column in dict.fromkeys(table.columns):
        for level in dict.fromkeys(table.levels):
            if level == table.not_applicable:
                continue
            token = pair_token(column, level)
            other = tokens.setdefault(token, (column, level))
            if other != (column, level):
                errors.append(
                    ValidationError(
                        code="token_clash",
                        message=(
                            f"Column '{column}' with level '{level}' and column '{other[0]}' with level "
                            f"'{other[1]}' both encode as '{token}'"
                        ),
                        column=column,
                    )
                )
    log_validation_result(logger, table.id or table.name, len(errors))
    return errors


def table_from_upload(data: dict[str, Any]) -> TrainingTable:
    """
    Parse an uploaded table file.

    Files written by the table editor carry only columns and rows. When no
    levels are given they are taken from the cell values (first seen first;
    the default levels when every cell is one of them), and the
    not-applicable level is the first one named like "irrelevant". If none
    is, the default not-applicable level is added to the levels unused.
    """
    data = dict(data)
    if "levels" not in data:
        seen: dict[str, None] = {}
        for row in data.get("rows") or []:
            if not isinstance(row, dict):
                continue
            for value in row.get("values") or []:
                if isinstance(value, str):
                    seen.setdefault(value, None)
        levels = list(seen)
        if set(levels) <= set(DEFAULT_LEVELS):
            levels = list(DEFAULT_LEVELS)
        data["levels"] = levels
        if "not_applicable" not in data:
            match = next((lv for lv in levels if str(lv).casefold() in NOT_APPLICABLE_ALIASES), None)
            if match is None:
                match = Intensity.IRRELEVANT.value
                levels.append(match)
            data["not_applicable"] = match
        logger.info("Inferred levels %s (not applicable: %r) for uploaded table", levels, data["not_applicable"])
    return TrainingTable.model_validate(data)


# -----------------------------------------------------------------------------
# Conversions
# -----------------------------------------------------------------------------


def table_to_observations(table: TrainingTable, encoding: Encoding) -> list[Observation]:
    """One observation per row, in row order."""
    observations: list[Observation] = []
    for row in table.rows:
        pairs = dict(zip(table.columns, row.values))
        if encoding == Encoding.BINARY:
            observations.append(Observation(category=row.disease, attributes=pairs_to_tokens(pairs, table.not_applicable)))
        else:
            observations.append(Observation(category=row.disease, values=pairs))
    return observations


def answers_to_mapping(answers: Union[Mapping[str, str], Iterable[Any]]) -> dict[str, str]:
    """Normalize {attribute: value} or a list of AnswerEntry/dicts into a mapping."""
    if isinstance(answers, Mapping):
        return {str(k): v for k, v in answers.items() if v is not None}
    out: dict[str, str] = {}
    for entry in answers:
        if isinstance(entry, AnswerEntry):
            out[entry.attribute] = entry.value
        else:
            item = AnswerEntry.model_validate(entry)
            out[item.attribute] = item.value
    return out


def answers_to_answer_set(
    answers: Union[Mapping[str, str], Iterable[Any]],
    encoding: Encoding,
    not_applicable: Optional[str] = None,
) -> AnswerSet:
    """Questionnaire answers in the shape the tree's encoding expects."""
    pairs = answers_to_mapping(answers)
    if encoding == Encoding.BINARY:
        return pairs_to_tokens(pairs, not_applicable)
    return pairs


def describe_disease(table: TrainingTable, disease: str) -> str:
    for entry in table.descriptions:
        if entry.disease == disease:
            return entry.description or NO_DESCRIPTION
    return NO_DESCRIPTION


# -----------------------------------------------------------------------------
# Build + predict
# -----------------------------------------------------------------------------


class AnalysisResult(BaseModel):
    """Outcome of one questionnaire analysis."""

    category: str = Field(..., description="Most probable disease, or 'unknown' for an empty table")
    description: str = Field(NO_DESCRIPTION, description="Description of the predicted disease")
    encoding: Encoding
    path: list[QuestionStep] = Field(default_factory=list, description="Questions asked, root first")
    insufficient_data: bool = Field(False, description="True when the table had no rows")
    duration_ms: float = Field(0.0, ge=0)


def build_table_tree(table: TrainingTable, encoding: Encoding) -> tuple[DecisionTreeNode, TreeSummary]:
    """Build the tree for a table and log its shape. Raises InsufficientDataError when empty."""
    start = time.perf_counter()
    observations = table_to_observations(table, encoding)
    tree = build_tree(observations, encoding=encoding)
    summary = summarize_tree(tree, encoding)
    log_tree_build(
        logger,
        table_id=table.id or table.name,
        encoding=encoding.value,
        observations=len(observations),
        depth=summary.depth,
        leaves=summary.leaves,
        duration_sec=time.perf_counter() - start,
    )
    return tree, summary


def analyze_table(
    table: TrainingTable,
    answers: Union[Mapping[str, str], Iterable[Any]],
    options: Optional[AnalyzerOptions] = None,
) -> AnalysisResult:
    """
    Full workflow:
    1. Convert the table rows to observations in the requested encoding
    2. Build the ID3 tree
    3. Convert answers and walk the tree
    4. Attach the disease description
    """
    options = options or AnalyzerOptions()
    start = time.perf_counter()
    if not table.rows:
        if not options.unknown_on_empty:
            raise InsufficientDataError("Training table has no rows; fill in the table before predicting")
        logger.info("Table %s has no rows; returning %r", table.id or table.name, UNKNOWN_CATEGORY)
        return AnalysisResult(category=UNKNOWN_CATEGORY, encoding=options.encoding, insufficient_data=True)

    tree, _ = build_table_tree(table, options.encoding)
    answer_set = answers_to_answer_set(answers, options.encoding, table.not_applicable)
    trace = trace_prediction(tree, answer_set)
    elapsed = time.perf_counter() - start
    log_prediction(
        logger,
        table_id=table.id or table.name,
        encoding=options.encoding.value,
        category=trace.category,
        questions=len(trace.path),
        fallbacks=sum(1 for step in trace.path if step.fallback),
        duration_sec=elapsed,
    )
    return AnalysisResult(
        category=trace.category,
        description=describe_disease(table, trace.category),
        encoding=options.encoding,
        path=trace.path,
        duration_ms=elapsed * 1000,
    )
