import json
from datetime import datetime, timezone

import pytest

from product_creator.models.schemas import (
    PipelineOutput,
    StageResult,
    StageStatus,
    ValidationReport,
    VisionAnalysis,
)
from product_creator.services.validation_service import ValidationService
from product_creator.utils.formatters import (
    ReportFormatter,
    format_product_table,
    format_stage_table,
    generate_run_report,
    save_report,
)

STARTED_AT = datetime(2026, 3, 1, 9, 30, 5, tzinfo=timezone.utc)


@pytest.fixture
def completed_output(settings, pipeline_input, vision_analysis, content_generation):
    outcome = ValidationService(settings).validate(pipeline_input, vision_analysis, content_generation)
    return PipelineOutput(
        run_id="run-42",
        vision_analysis=StageResult[VisionAnalysis](
            status=StageStatus.COMPLETED, data=vision_analysis, duration_ms=1234, provider_id="google"
        ),
        validation=outcome.result,
        product=outcome.product,
        status="completed",
        total_duration_ms=4321,
        started_at=STARTED_AT,
    )


@pytest.fixture
def failed_output():
    return PipelineOutput(
        run_id="run-7",
        vision_analysis=StageResult[VisionAnalysis](status=StageStatus.FAILED, error="no providers"),
        status="failed",
        errors=["Vision analysis failed: no providers"],
        started_at=STARTED_AT,
    )


def test_stage_table_rows(completed_output):
    table = format_stage_table(completed_output)
    lines = table.splitlines()
    assert lines[0] == "| Stage | Status | Provider | Duration |"
    assert lines[2] == "| Vision | ✅ completed | google | 1,234 ms |"
    assert lines[3].startswith("| Content | … pending | - |")


def test_product_table(completed_output):
    table = format_product_table(completed_output.product)
    assert "| Price (gross) | 123.00 PLN |" in table
    assert "| Price (net) | 100.00 PLN |" in table
    assert "| VAT | 23% |" in table
    assert "| Stock | 1 (in_stock) |" in table
    assert "| Images | 2 |" in table


def test_run_report_for_completed_run(completed_output):
    report = generate_run_report(completed_output)
    assert report.startswith("# Product Report: Acme Wicker Privacy Mat 1x3 m")
    assert "**Run:** `run-42`" in report
    assert "## SEO" in report
    assert "- **Material:** wicker" in report
    assert "## Errors" not in report


def test_run_report_for_failed_run(failed_output):
    report = generate_run_report(failed_output)
    assert report.startswith("# Product Report: run run-7")
    assert "## Product" not in report
    assert "## Errors\n- Vision analysis failed: no providers" in report


def test_run_report_lists_warnings(failed_output):
    output = failed_output.model_copy(update={
        "validation": StageResult[ValidationReport](
            status=StageStatus.COMPLETED,
            data=ValidationReport(is_valid=True, warnings=["Consider adding more SEO keywords"]),
        ),
    })
    assert "## Warnings\n- Consider adding more SEO keywords" in generate_run_report(output)


def test_save_json_report(tmp_path, completed_output):
    path = save_report(completed_output, tmp_path / "reports" / "run.txt", format="json")
    assert path == tmp_path / "reports" / "run.json"
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["run_id"] == "run-42"
    assert data["product"]["pricing"]["gross"] == 123.0


def test_save_markdown_report(tmp_path, failed_output):
    path = save_report(failed_output, tmp_path / "run", format="markdown")
    assert path.suffix == ".md"
    assert path.read_text(encoding="utf-8").startswith("# Product Report")


def test_save_rejects_unknown_format(tmp_path, failed_output):
    with pytest.raises(ValueError, match="Unsupported format"):
        save_report(failed_output, tmp_path / "run", format="pdf")


def test_report_formatter_names(tmp_path, completed_output, failed_output):
    formatter = ReportFormatter(tmp_path / "outputs")
    assert formatter.report_name(completed_output) == "acme-wicker-privacy-mat-1x3-m_20260301_093005"
    assert formatter.report_name(failed_output) == "run-7_20260301_093005"

    path = formatter.save(failed_output, format="markdown")
    assert path == tmp_path / "outputs" / "run-7_20260301_093005.md"
    assert path.exists()


def test_stage_table_for_fresh_output():
    rows = format_stage_table(PipelineOutput()).splitlines()[2:]
    assert rows == [
        "| Vision | … pending | - | 0 ms |",
        "| Content | … pending | - | 0 ms |",
        "| Validation | … pending | - | 0 ms |",
    ]


def test_run_report_status_line_for_fresh_output():
    assert "**Status:** ❌ failed" in generate_run_report(PipelineOutput())
