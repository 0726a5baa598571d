"""Backend services (ID3 engine, training tables, fit evaluation)."""

from backend.services.entropy_service import (
    attribute_gains,
    best_attribute,
    conditional_entropy,
    entropy,
    information_gain,
    label_counts,
    partition,
)
from backend.services.tree_service import (
    UNKNOWN_CATEGORY,
    EncodingMismatchError,
    InsufficientDataError,
    PredictionTrace,
    QuestionStep,
    attribute_vocabulary,
    build_tree,
    get_probable_result,
    majority_category,
    pairs_to_tokens,
    predict,
    to_binary,
    trace_prediction,
)
from backend.services.table_service import (
    AnalysisResult,
    AnalyzerOptions,
    ValidationError,
    analyze_table,
    answers_to_answer_set,
    build_table_tree,
    table_from_upload,
    table_to_observations,
    validate_table,
)
from backend.services.evaluation_service import FitReport, evaluate_fit

__all__ = [
    "attribute_gains",
    "best_attribute",
    "conditional_entropy",
    "entropy",
    "information_gain",
    "label_counts",
    "partition",
    "UNKNOWN_CATEGORY",
    "EncodingMismatchError",
    "InsufficientDataError",
    "PredictionTrace",
    "QuestionStep",
    "attribute_vocabulary",
    "build_tree",
    "get_probable_result",
    "majority_category",
    "pairs_to_tokens",
    "predict",
    "to_binary",
    "trace_prediction",
    "AnalysisResult",
    "AnalyzerOptions",
    "ValidationError",
    "analyze_table",
    "answers_to_answer_set",
    "build_table_tree",
    "table_from_upload",
    "table_to_observations",
    "validate_table",
    "FitReport",
    "evaluate_fit",
]
