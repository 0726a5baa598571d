"""Unit tests for training table conversion, validation, analysis, and fit evaluation."""

import pytest

from backend.models.decision_tree import Encoding
from backend.services.evaluation_service import evaluate_fit, find_conflicts
from backend.services.table_service import (
    NO_DESCRIPTION,
    AnalyzerOptions,
    analyze_table,
    answers_to_answer_set,
    table_from_upload,
    table_to_observations,
    validate_table,
)
from backend.services.tree_service import UNKNOWN_CATEGORY, InsufficientDataError
from shared.schemas import AnswerEntry, TableRow, TrainingTable


def test_sample_table_is_valid(sample_table):
    assert validate_table(sample_table) == []


def test_validate_reports_table_problems():
    table = TrainingTable(
        columns=["Fever", "Fever", " "],
        rows=[
            TableRow(disease="Flu", values=["strong", "medium"]),
            TableRow(disease="", values=["strong", "weird", "medium"]),
        ],
    )
    codes = [e.code for e in validate_table(table)]
    assert "duplicate_column" in codes
    assert "empty_column" in codes
    assert "column_count_mismatch" in codes
    assert "empty_disease" in codes
    assert "unknown_level" in codes


def test_validate_not_applicable_must_be_a_level():
    table = TrainingTable(columns=["Fever"], levels=["yes", "no"], not_applicable="n/a")
    assert [e.code for e in validate_table(table)] == ["unknown_not_applicable"]


def test_binary_observations_omit_not_applicable_cells(sample_table):
    data = table_to_observations(sample_table, Encoding.BINARY)
    migraine = next(o for o in data if o.category == "Migraine")
    assert migraine.attributes == frozenset({"Headache_strong"})
    assert migraine.values == {}


def test_multiway_observations_keep_not_applicable_as_a_value(sample_table):
    data = table_to_observations(sample_table, Encoding.MULTIWAY)
    migraine = next(o for o in data if o.category == "Migraine")
    assert migraine.values["Fever"] == "irrelevant"
    assert len(migraine.values) == len(sample_table.columns)


def test_answers_accept_entry_lists():
    entries = [AnswerEntry(attribute="Fever", value="strong"), {"attribute": "Cough", "value": "irrelevant"}]
    assert answers_to_answer_set(entries, Encoding.MULTIWAY) == {"Fever": "strong", "Cough": "irrelevant"}
    assert answers_to_answer_set(entries, Encoding.BINARY, "irrelevant") == frozenset({"Fever_strong"})


@pytest.mark.parametrize("encoding", [Encoding.BINARY, Encoding.MULTIWAY])
def test_questionnaire_cases(sample_table, questionnaire_cases, encoding):
    options = AnalyzerOptions(encoding=encoding)
    diseases = {row.disease for row in sample_table.rows}
    for case in questionnaire_cases:
        result = analyze_table(sample_table, case["answers"], options)
        assert result.category in diseases
        if case["expected"]:
            assert result.category == case["expected"], case["id"]


def test_analysis_attaches_description(sample_table, questionnaire_cases):
    flu = next(c for c in questionnaire_cases if c["expected"] == "Flu")
    result = analyze_table(sample_table, flu["answers"])
    assert result.description.startswith("Viral infection")
    assert result.path
    strep = next(c for c in questionnaire_cases if c["expected"] == "Strep throat")
    assert analyze_table(sample_table, strep["answers"]).description == NO_DESCRIPTION


def test_empty_table_analysis():
    table = TrainingTable(columns=["Fever"])
    with pytest.raises(InsufficientDataError):
        analyze_table(table, {"Fever": "strong"})
    result = analyze_table(table, {"Fever": "strong"}, AnalyzerOptions(unknown_on_empty=True))
    assert result.category == UNKNOWN_CATEGORY
    assert result.insufficient_data is True


@pytest.mark.parametrize("encoding", [Encoding.BINARY, Encoding.MULTIWAY])
def test_fit_on_sample_table_is_perfect(sample_table, encoding):
    report = evaluate_fit(sample_table, AnalyzerOptions(encoding=encoding))
    assert report.total == len(sample_table.rows)
    assert report.failed == 0
    assert report.accuracy == 1.0
    assert report.conflicts == []


def test_fit_reports_conflicting_rows():
    table = TrainingTable(
        columns=["Fever"],
        rows=[
            TableRow(disease="Flu", values=["strong"]),
            TableRow(disease="COVID-19", values=["strong"]),
            TableRow(disease="Cold", values=["irrelevant"]),
        ],
    )
    report = evaluate_fit(table, AnalyzerOptions(encoding=Encoding.MULTIWAY))
    assert report.conflicts == [[0, 1]]
    assert report.failed == 1
    data = report.to_dict()
    assert data["results"][1]["actual"] == "Flu"


def test_find_conflicts_binary(sample_table):
    data = table_to_observations(sample_table, Encoding.BINARY)
    assert find_conflicts(data, Encoding.BINARY) == []


def test_validate_reports_token_clash():
    table = TrainingTable(columns=["A_b", "A"], levels=["none", "c", "b_c"], not_applicable="none")
    errors = validate_table(table)
    assert [e.code for e in errors] == ["token_clash"]
    assert "A_b_c" in errors[0].message


def test_upload_without_levels_takes_them_from_cells():
    data = {
        "columns": ["Febre", "Tosse"],
        "rows": [
            {"disease": "Gripe", "values": ["Forte", "Médio"]},
            {"disease": "Resfriado", "values": ["Irrelevante", "Forte"]},
        ],
    }
    table = table_from_upload(data)
    assert table.levels == ["Forte", "Médio", "Irrelevante"]
    assert table.not_applicable == "Irrelevante"
    assert validate_table(table) == []
    assert "levels" not in data

    tokens = table_to_observations(table, Encoding.BINARY)[1].attributes
    assert tokens == frozenset({"Tosse_Forte"})


def test_upload_without_levels_or_not_applicable_level():
    table = table_from_upload({"columns": ["X"], "rows": [{"disease": "A", "values": ["yes"]}]})
    assert table.levels == ["yes", "irrelevant"]
    assert table.not_applicable == "irrelevant"
    assert validate_table(table) == []


def test_upload_with_default_levels_keeps_default_order():
    table = table_from_upload({"columns": ["X"], "rows": [{"disease": "A", "values": ["strong"]}]})
    assert table.levels == ["irrelevant", "medium", "strong"]
    assert table.not_applicable == "irrelevant"
