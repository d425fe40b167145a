from contextlib import contextmanager
from io import StringIO
import json
import logging

import pytest

from rips_export.core.logging_utils import (
    clear_log_context,
    log_event,
    log_latency_event,
    pop_request_metrics_summary,
    set_request_id,
)
from rips_export.core.schemas import RIPSGenerateRequest
from rips_export.pipelines import build_patient_summary, generate_rips

from conftest import REFERENCE_DATE


def _parse_log_lines(raw_output: str) -> list[dict]:
    lines = [line for line in raw_output.splitlines() if line.strip()]
    return [json.loads(line) for line in lines]


@contextmanager
def _capture_structured_logs(level=logging.INFO):
    logger = logging.getLogger("rips_export.structured")
    original_handlers = list(logger.handlers)
    original_level = logger.level
    original_propagate = logger.propagate

    buffer = StringIO()
    handler = logging.StreamHandler(buffer)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.handlers = [handler]
    logger.setLevel(level)
    logger.propagate = False
    try:
        yield buffer
    finally:
        handler.flush()
        logger.handlers = original_handlers
        logger.setLevel(original_level)
        logger.propagate = original_propagate


def test_log_event_schema_includes_required_fields():
    set_request_id("req-schema")

    with _capture_structured_logs() as buffer:
        log_event(component="test_component", event="test_event")
    parsed = _parse_log_lines(buffer.getvalue())
    assert parsed
    record = parsed[-1]

    assert "ts" in record
    assert record["level"] == "INFO"
    assert record["component"] == "test_component"
    assert record["event"] == "test_event"
    assert record["request_id"] == "req-schema"
    assert isinstance(record["details"], dict)

    clear_log_context()


def test_explicit_request_id_overrides_context():
    set_request_id("req-context")

    with _capture_structured_logs() as buffer:
        log_event(component="test_component", event="test_event", request_id="req-explicit")
    (record,) = _parse_log_lines(buffer.getvalue())

    assert record["request_id"] == "req-explicit"
    clear_log_context()


def test_latency_metrics_are_summarized_per_request():
    set_request_id("req-metrics")

    with _capture_structured_logs() as buffer:
        log_latency_event(
            component="test_component",
            event="stage_done",
            stage="rips_convert",
            duration_s=0.0125,
            status="ok",
        )
        log_latency_event(
            component="test_component",
            event="stage_done",
            stage="rips_convert",
            duration_s=-1.0,
            status="ok",
        )
    records = _parse_log_lines(buffer.getvalue())

    assert records[0]["details"] == {"stage": "rips_convert", "status": "ok", "duration_ms": 12.5}
    assert records[1]["details"]["duration_ms"] == 0.0
    assert pop_request_metrics_summary("req-metrics") == {
        "stages": {"rips_convert": {"count": 2, "total_ms": 12.5, "max_ms": 12.5}}
    }
    # Summaries are popped, not peeked.
    assert pop_request_metrics_summary("req-metrics") == {"stages": {}}
    clear_log_context()


def test_metrics_are_not_tracked_without_request_id():
    clear_log_context()
    with _capture_structured_logs():
        log_latency_event(
            component="test_component",
            event="stage_done",
            stage="orphan_stage",
            duration_s=0.5,
            status="ok",
        )
    assert pop_request_metrics_summary("None") == {"stages": {}}


@pytest.mark.asyncio
async def test_generation_logs_conversion_and_request_metrics(services):
    set_request_id("req-generate")
    request = RIPSGenerateRequest.model_validate(
        {"numFactura": "FE-1", "fechaInicio": "2025-05-01", "fechaFin": "2025-05-31"}
    )

    with _capture_structured_logs(level=logging.DEBUG) as buffer:
        outcome = await generate_rips(request, services, reference_date=REFERENCE_DATE)
    records = _parse_log_lines(buffer.getvalue())

    assert outcome.status == "ok"
    assert all(record["request_id"] == "req-generate" for record in records)

    states = [
        record["details"]["state"]
        for record in records
        if record["component"] == "rips_converter" and record["event"] == "state_changed"
    ]
    assert states == ["init", "per_patient_convert", "validate", "done"]

    (completed,) = [record for record in records if record["event"] == "generation_completed"]
    assert completed["details"]["status"] == "ok"
    assert completed["details"]["usersProcessed"] == 2

    (metrics,) = [record for record in records if record["event"] == "request_metrics"]
    assert set(metrics["details"]["stages"]) >= {"rips_convert", "rips_generate"}
    clear_log_context()


@pytest.mark.asyncio
async def test_rejected_request_is_logged_as_warning(services):
    request = RIPSGenerateRequest.model_validate({"fechaInicio": "2025-05-01"})

    with _capture_structured_logs() as buffer:
        outcome = await generate_rips(request, services)
    (record,) = _parse_log_lines(buffer.getvalue())

    assert outcome.status == "invalid"
    assert record["level"] == "WARNING"
    assert record["event"] == "request_rejected"


@pytest.mark.asyncio
async def test_patient_summary_reports_and_releases_request_metrics(services):
    set_request_id("req-summary")

    with _capture_structured_logs() as buffer:
        outcome = await build_patient_summary("p-child", services)
    records = _parse_log_lines(buffer.getvalue())

    assert outcome.status == "ok"
    (metrics,) = [record for record in records if record["event"] == "request_metrics"]
    assert set(metrics["details"]["stages"]) == {"summary_patient"}
    assert pop_request_metrics_summary("req-summary") == {"stages": {}}
    clear_log_context()
