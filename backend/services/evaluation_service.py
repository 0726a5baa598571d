"""
Training-fit evaluation for a training table.

- run_fit_case: predict one training row from its own attribute pattern.
- evaluate_fit: run every row, aggregate, and flag conflicting rows
  (identical patterns with different diseases cannot all be reproduced).
"""

import logging
import time
from typing import Any, Optional

from backend.models.decision_tree import DecisionTreeNode, Encoding, Observation
from backend.services.table_service import AnalyzerOptions, build_table_tree, table_to_observations
from backend.services.tree_service import QuestionStep, trace_prediction
from shared.schemas import TrainingTable

logger = logging.getLogger(__name__)


class FitCaseResult:
    """Result of predicting a single training row."""

    __slots__ = (
        "row",
        "expected",
        "actual",
        "passed",
        "path",
        "execution_time_ms",
    )

    def __init__(
        self,
        row: int,
        expected: str,
        actual: str,
        path: list[QuestionStep],
        execution_time_ms: float,
    ):
        self.row = row
        self.expected = expected
        self.actual = actual
        self.passed = expected == actual
        self.path = path
        self.execution_time_ms = execution_time_ms

    def to_dict(self) -> dict[str, Any]:
        return {
            "row": self.row,
            "expected": self.expected,
            "actual": self.actual,
            "passed": self.passed,
            "path": [step.model_dump(mode="json") for step in self.path],
            "execution_time_ms": self.execution_time_ms,
        }


class FitReport:
    """Aggregated fit results for a table."""

    def __init__(
        self,
        table_id: str,
        encoding: Encoding,
        results: list[FitCaseResult],
        conflicts: Optional[list[list[int]]] = None,
    ):
        self.table_id = table_id
        self.encoding = encoding
        self.results = results
        self.total = len(results)
        self.passed = sum(1 for r in results if r.passed)
        self.failed = self.total - self.passed
        self.conflicts = conflicts or []

    @property
    def accuracy(self) -> Optional[float]:
        return self.passed / self.total if self.total else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "table_id": self.table_id,
            "encoding": self.encoding.value,
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "accuracy": self.accuracy,
            "conflicts": self.conflicts,
            "results": [r.to_dict() for r in self.results],
        }


def _pattern(obs: Observation, encoding: Encoding) -> Any:
    if encoding == Encoding.BINARY:
        return obs.attributes
    return tuple(sorted(obs.values.items()))


def find_conflicts(observations: list[Observation], encoding: Encoding) -> list[list[int]]:
    """Groups of row indices sharing one attribute pattern but not one category."""
    by_pattern: dict[Any, list[int]] = {}
    for i, obs in enumerate(observations):
        by_pattern.setdefault(_pattern(obs, encoding), []).append(i)
    return [
        rows
        for rows in by_pattern.values()
        if len({observations[i].category for i in rows}) > 1
    ]


def run_fit_case(tree: DecisionTreeNode, row: int, obs: Observation, encoding: Encoding) -> FitCaseResult:
    start = time.perf_counter()
    answers = obs.attributes if encoding == Encoding.BINARY else obs.values
    trace = trace_prediction(tree, answers)
    return FitCaseResult(
        row=row,
        expected=obs.category,
        actual=trace.category,
        path=trace.path,
        execution_time_ms=(time.perf_counter() - start) * 1000,
    )


def evaluate_fit(table: TrainingTable, options: Optional[AnalyzerOptions] = None) -> FitReport:
    """Predict every row of the table from its own pattern. Raises InsufficientDataError when empty."""
    options = options or AnalyzerOptions()
    tree, _ = build_table_tree(table, options.encoding)
    observations = table_to_observations(table, options.encoding)
    results = [run_fit_case(tree, i, obs, options.encoding) for i, obs in enumerate(observations)]
    conflicts = find_conflicts(observations, options.encoding)
    report = FitReport(table.id or table.name, options.encoding, results, conflicts)
    if report.failed:
        logger.warning(
            "Fit for %s: %d/%d rows reproduced (%d conflicting groups)",
            report.table_id, report.passed, report.total, len(conflicts),
        )
    else:
        logger.info("Fit for %s: all %d rows reproduced", report.table_id, report.total)
    return report
