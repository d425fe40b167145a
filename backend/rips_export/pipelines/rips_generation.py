"""RIPS generation pipeline: request checks, aggregation, conversion."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
import time
from typing import Any, Literal

from ..aggregation import RecordAggregator
from ..core.error_mapping import (
    RIPS_ERROR_CODE_INPUT,
    RIPS_ERROR_CODE_NO_PATIENTS,
    classify_rips_error_code,
)
from ..core.logging_utils import (
    get_request_id,
    log_event,
    log_latency_event,
    pop_request_metrics_summary,
)
from ..core.schemas import RIPSGenerateRequest
from ..records import DateRange
from ..rips import ConversionState, RIPSConverter, RIPSDocument

_COMPONENT = "rips_pipeline"

GenerationStatus = Literal["ok", "invalid", "not_found"]


@dataclass(frozen=True)
class RIPSGenerationOutcome:
    status: GenerationStatus
    rips: RIPSDocument | None = None
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    message: str | None = None
    error_code: str | None = None
    summary: dict[str, int] = field(default_factory=dict)

    def to_body(self) -> dict[str, Any]:
        """Response body for this outcome."""
        if self.status == "ok":
            return {
                "success": True,
                "data": {
                    "rips": self.rips.to_payload() if self.rips else None,
                    "summary": self.summary,
                    "warnings": list(self.warnings),
                },
            }
        if self.status == "not_found":
            return {"success": False, "message": self.message}
        return {
            "success": False,
            "message": self.message,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "error": {"code": self.error_code, "message": self.message},
        }


def _input_error(message: str) -> RIPSGenerationOutcome:
    return RIPSGenerationOutcome(
        status="invalid",
        errors=(f"Invalid input: {message}",),
        message="Solicitud de generación RIPS inválida",
        error_code=RIPS_ERROR_CODE_INPUT,
    )


def _check_request(request: RIPSGenerateRequest) -> tuple[DateRange | None, RIPSGenerationOutcome | None]:
    has_invoice = bool(request.invoice_number and request.invoice_number.strip())
    if has_invoice == request.no_invoice:
        return None, _input_error("se requiere exactamente uno de numFactura o sinFactura")
    if request.patient_ids is not None and not request.patient_ids:
        return None, _input_error("pacienteIds no puede estar vacío")
    try:
        date_range = DateRange(start=request.date_from, end=request.date_to)
    except ValueError as err:
        return None, _input_error(str(err))
    if request.patient_ids is None and not date_range.is_bounded:
        return None, _input_error("se requiere pacienteIds o un rango de fechas (fechaInicio/fechaFin)")
    return date_range, None


async def generate_rips(
    request: RIPSGenerateRequest,
    services: dict[str, Any],
    reference_date: date | None = None,
) -> RIPSGenerationOutcome:
    """
    Build a RIPS document for the requested patients and date range.

    Returns ``not_found`` when no patient has a service in range, ``invalid``
    for input errors, per-patient failures or validation errors, and ``ok``
    otherwise. Per-patient failures never stop the rest of the batch.
    """
    started = time.perf_counter()
    request_id = get_request_id()
    date_range, rejected = _check_request(request)
    if rejected is not None:
        log_event(
            component=_COMPONENT,
            event="request_rejected",
            level="WARNING",
            details={"errors": list(rejected.errors)},
        )
        return rejected

    aggregator = RecordAggregator(services["store"])
    aggregation = await aggregator.collect(request.patient_ids, date_range)

    if not aggregation.patients:
        if aggregation.errors:
            outcome = RIPSGenerationOutcome(
                status="invalid",
                errors=aggregation.errors,
                message="Errores leyendo los registros de los pacientes",
                error_code=classify_rips_error_code(aggregation.errors),
            )
        else:
            requested = ", ".join(request.patient_ids or []) or "rango de fechas"
            outcome = RIPSGenerationOutcome(
                status="not_found",
                message=f"No se encontraron pacientes con servicios para generar RIPS ({requested})",
                error_code=RIPS_ERROR_CODE_NO_PATIENTS,
            )
        _log_outcome(outcome, started, request_id)
        return outcome

    converter = RIPSConverter(
        services["catalog"],
        services["classifier"],
        services["provider"],
        reference_date=reference_date,
    )
    result = converter.convert(
        list(aggregation.patients),
        invoice_number=request.invoice_number,
        no_invoice=request.no_invoice,
    )

    errors = (*aggregation.errors, *result.errors)
    if result.state is ConversionState.FAILED or errors:
        outcome = RIPSGenerationOutcome(
            status="invalid",
            rips=result.rips,
            errors=errors,
            warnings=result.warnings,
            message="Errores de validación en la generación de RIPS",
            error_code=classify_rips_error_code(errors),
            summary=result.summary,
        )
    else:
        outcome = RIPSGenerationOutcome(
            status="ok",
            rips=result.rips,
            warnings=result.warnings,
            message="RIPS generado exitosamente",
            summary=result.summary,
        )
    _log_outcome(outcome, started, request_id)
    return outcome


def _log_outcome(outcome: RIPSGenerationOutcome, started: float, request_id: str | None) -> None:
    log_latency_event(
        component=_COMPONENT,
        event="generation_completed",
        stage="rips_generate",
        duration_s=time.perf_counter() - started,
        status=outcome.status,
        details={
            "errors": len(outcome.errors),
            "warnings": len(outcome.warnings),
            "error_code": outcome.error_code,
            **outcome.summary,
        },
    )
    if request_id:
        log_event(
            component=_COMPONENT,
            event="request_metrics",
            details=pop_request_metrics_summary(request_id),
        )
