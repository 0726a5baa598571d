#!/usr/bin/env python3
"""
Run the questionnaire example: load the sample table and analyze the fixture answer sets.

Usage (from project root):
  python scripts/demo.py [--encoding binary|multiway]

Output: formatted table of results and a fit summary for the training table.
"""
import argparse
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

TABLE_PATH = ROOT / "data" / "sample_table.json"
FIXTURES_PATH = ROOT / "tests" / "fixtures" / "questionnaire_cases.json"


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--encoding", choices=["binary", "multiway"], default="multiway")
    args = parser.parse_args()

    from backend.models.decision_tree import Encoding
    from backend.services.evaluation_service import evaluate_fit
    from backend.services.table_service import AnalyzerOptions, analyze_table
    from shared.schemas import TrainingTable

    table = TrainingTable.model_validate(json.loads(TABLE_PATH.read_text(encoding="utf-8")))
    cases = json.loads(FIXTURES_PATH.read_text(encoding="utf-8"))
    options = AnalyzerOptions(encoding=Encoding(args.encoding))

    print(f"Table: {table.name} ({len(table.rows)} diseases, {len(table.columns)} symptoms)")
    print(f"Encoding: {options.encoding.value}")
    print(f"Running {len(cases)} questionnaire cases...\n")

    col_id = 16
    col_outcome = 20
    col_check = 8
    col_questions = 10
    header = f"{'Case ID':<{col_id}} {'Prediction':<{col_outcome}} {'Check':<{col_check}} {'Questions':<{col_questions}}"
    print(header)
    print("-" * (col_id + col_outcome + col_check + col_questions + 3))
    mismatches = 0
    for case in cases:
        result = analyze_table(table, case["answers"], options)
        expected = case.get("expected")
        if expected is None:
            check = "-"
        elif expected == result.category:
            check = "ok"
        else:
            check = "FAIL"
            mismatches += 1
        print(f"{case['id']:<{col_id}} {result.category:<{col_outcome}} {check:<{col_check}} {len(result.path):<{col_questions}}")

    report = evaluate_fit(table, options)
    print()
    print(f"Fit: {report.passed}/{report.total} training rows reproduced")
    if report.conflicts:
        print(f"Conflicting rows: {report.conflicts}")
    sys.exit(1 if mismatches else 0)


if __name__ == "__main__":
    main()
