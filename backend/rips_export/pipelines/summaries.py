"""Clinical-summary pipelines: fetch records, map them to a document bundle, validate."""
from __future__ import annotations

from dataclasses import dataclass
import time
from typing import Any, Literal

from pydantic import ValidationError

from ..core.error_mapping import (
    FHIR_ERROR_CODE_GENERIC,
    FHIR_ERROR_CODE_NOT_FOUND,
    FHIR_ERROR_CODE_VALIDATION,
)
from ..core.logging_utils import (
    get_request_id,
    log_event,
    log_latency_event,
    pop_request_metrics_summary,
)
from ..fhir import map_encounter_summary, map_patient_summary, validate_fhir_bundle_structure
from ..records import Consultation, Patient, RecordParseError

_COMPONENT = "summary_pipeline"

SummaryStatus = Literal["ok", "not_found", "invalid", "error"]


@dataclass(frozen=True)
class SummaryOutcome:
    status: SummaryStatus
    bundle: dict[str, Any] | None = None
    warnings: tuple[str, ...] = ()
    message: str | None = None
    error_code: str | None = None
    issues: tuple[str, ...] = ()


def _not_found(message: str) -> SummaryOutcome:
    return SummaryOutcome(status="not_found", message=message, error_code=FHIR_ERROR_CODE_NOT_FOUND)


def _parse(schema, record: dict[str, Any], label: str):
    try:
        return schema.model_validate(record)
    except ValidationError as err:
        raise RecordParseError(f"invalid {label}: {err.error_count()} field error(s)") from err


def _finish(
    kind: str,
    started: float,
    request_id: str | None,
    bundle: dict[str, Any],
    warnings: list[str],
) -> SummaryOutcome:
    issues = validate_fhir_bundle_structure(bundle)
    if issues:
        outcome = SummaryOutcome(
            status="invalid",
            bundle=bundle,
            warnings=tuple(warnings),
            message="Generated bundle failed structural validation.",
            error_code=FHIR_ERROR_CODE_VALIDATION,
            issues=tuple(issues),
        )
    else:
        outcome = SummaryOutcome(status="ok", bundle=bundle, warnings=tuple(warnings))
    log_latency_event(
        component=_COMPONENT,
        event="summary_built",
        stage=f"summary_{kind}",
        duration_s=time.perf_counter() - started,
        status=outcome.status,
        details={
            "entries": len(bundle.get("entry", [])),
            "warnings": len(warnings),
            "issues": len(issues),
        },
    )
    if request_id:
        log_event(
            component=_COMPONENT,
            event="request_metrics",
            details=pop_request_metrics_summary(request_id),
        )
    return outcome


def _failed(kind: str, err: Exception) -> SummaryOutcome:
    log_event(
        component=_COMPONENT,
        event="summary_failed",
        level="ERROR",
        details={"kind": kind, "error": str(err)},
    )
    return SummaryOutcome(
        status="error",
        message="Unexpected failure during clinical summary export.",
        error_code=FHIR_ERROR_CODE_GENERIC,
        issues=(str(err),),
    )


async def build_patient_summary(patient_id: str, services: dict[str, Any]) -> SummaryOutcome:
    """Patient summary built from the patient and their most recent consultation."""
    started = time.perf_counter()
    request_id = get_request_id()
    store = services["store"]
    raw_patient = await store.get_patient(patient_id)
    if raw_patient is None:
        return _not_found("Paciente no encontrado")

    try:
        patient = _parse(Patient, raw_patient, "patient")
        raw_latest = await store.latest_consultation_for_patient(patient.id)
        latest = _parse(Consultation, raw_latest, "consultation") if raw_latest else None
        bundle, warnings = map_patient_summary(
            patient, latest, services["provider"], services["classifier"]
        )
    except RecordParseError as err:
        return _failed("patient", err)
    return _finish("patient", started, request_id, bundle, warnings)


async def build_encounter_summary(consultation_id: str, services: dict[str, Any]) -> SummaryOutcome:
    """Outpatient encounter summary for one consultation."""
    started = time.perf_counter()
    request_id = get_request_id()
    store = services["store"]
    raw_consultation = await store.get_consultation(consultation_id)
    if raw_consultation is None:
        return _not_found("Valoración no encontrada")

    try:
        consultation = _parse(Consultation, raw_consultation, "consultation")
        raw_patient = await store.get_patient(consultation.patient_id) if consultation.patient_id else None
        if raw_patient is None:
            return _not_found("Paciente de la valoración no encontrado")
        patient = _parse(Patient, raw_patient, "patient")
        bundle, warnings = map_encounter_summary(
            consultation, patient, services["provider"], services["classifier"]
        )
    except RecordParseError as err:
        return _failed("encounter", err)
    return _finish("encounter", started, request_id, bundle, warnings)
