"""
Structured logging for DXTREE.

- Configurable level (DEBUG, INFO, WARN, ERROR)
- Writes to logs/ directory (file handler)
- Console handler for development
- Helpers for tree builds, predictions, and table validation results
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

# Default: project root / logs
LOG_DIR = Path(os.getenv("DXTREE_LOG_DIR", str(Path(__file__).resolve().parent.parent.parent / "logs")))
LOG_LEVEL = os.getenv("DXTREE_LOG_LEVEL", "INFO").upper()


def _ensure_log_dir(log_dir: Path) -> Path:
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def configure_logging(
    level: str = LOG_LEVEL,
    log_dir: Optional[Path] = None,
    log_to_console: bool = True,
) -> None:
    """Configure root and DXTREE loggers. Call once at app startup."""
    log_dir = _ensure_log_dir(log_dir or LOG_DIR)
    level_value = getattr(logging, level, logging.INFO)

    file_handler = logging.FileHandler(log_dir / "dxtree.log", encoding="utf-8")
    file_handler.setLevel(level_value)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    )

    root = logging.getLogger()
    root.setLevel(level_value)
    # Avoid duplicate handlers when reloading
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(file_handler)
    if log_to_console:
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(level_value)
        console.setFormatter(logging.Formatter("%(levelname)s | %(name)s | %(message)s"))
        root.addHandler(console)

    logging.getLogger("backend").setLevel(level_value)


def log_tree_build(
    logger: logging.Logger,
    table_id: str,
    encoding: str,
    observations: int,
    depth: int,
    leaves: int,
    duration_sec: Optional[float] = None,
    extra: Optional[dict[str, Any]] = None,
) -> None:
    """Log the shape of a freshly built tree."""
    payload = {
        "event": "tree_build",
        "table_id": table_id,
        "encoding": encoding,
        "observations": observations,
        "depth": depth,
        "leaves": leaves,
        "duration_sec": duration_sec,
        "ts": _now(),
    }
    if extra:
        payload.update(extra)
    logger.info("Tree build: %s", json.dumps(payload, default=str))


def log_prediction(
    logger: logging.Logger,
    table_id: str,
    encoding: str,
    category: str,
    questions: int,
    fallbacks: int = 0,
    duration_sec: Optional[float] = None,
) -> None:
    """Log a prediction. Fallback descents are logged at WARNING."""
    payload = {
        "event": "prediction",
        "table_id": table_id,
        "encoding": encoding,
        "category": category,
        "questions": questions,
        "fallbacks": fallbacks,
        "duration_sec": duration_sec,
        "ts": _now(),
    }
    level = logging.WARNING if fallbacks else logging.INFO
    logger.log(level, "Prediction: %s", json.dumps(payload, default=str))


def log_validation_result(
    logger: logging.Logger,
    table_id: str,
    errors: int,
) -> None:
    """Log table validation result."""
    payload = {
        "event": "validation",
        "table_id": table_id,
        "errors": errors,
        "ts": _now(),
    }
    level = logging.WARNING if errors else logging.INFO
    logger.log(level, "Validation: %s", json.dumps(payload, default=str))
