from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from rips_export.catalog.defaults import (
    ATTENTION_CAUSES,
    DOCUMENT_TYPES,
    MAX_SERVICE_VALUE,
    MAX_SERVICES_PER_INVOICE,
    MIN_SERVICE_VALUE,
    MODALITY_GROUP,
    MODALITY_INDIVIDUAL,
    MODALITY_OUTPATIENT,
    PAYMENT_MODERATOR_TYPES,
    RESOLUTION_VERSION,
    RIPS_DATE_FORMATS,
    SERVICE_GROUP_CONSULTATIONS,
    SERVICE_GROUP_MEDICATIONS,
    SERVICE_GROUP_OTHER,
    SERVICE_GROUP_PROCEDURES,
    SERVICE_GROUP_SURGICAL,
    SEX_CODES,
    USER_TYPES,
)
from rips_export.config import get_services
from rips_export.core import (
    CatalogListResponse,
    RIPSGenerateRequest,
    RIPSValidateRequest,
    RIPSValidateResponse,
    StatusResponse,
)
from rips_export.core.error_mapping import (
    RIPS_ERROR_CODE_GENERIC,
    RIPS_ERROR_CODE_INPUT,
    build_error_payload,
)
from rips_export.core.logging_utils import log_event
from rips_export.pipelines import build_encounter_summary, build_patient_summary, generate_rips
from rips_export.pipelines.summaries import SummaryOutcome
from rips_export.rips import RIPSDocument, validate_rips_document

router = APIRouter()

_SUMMARY_STATUS_CODES = {"not_found": 404, "invalid": 500, "error": 500}


def get_pipeline_services():
    return get_services()


@router.get("/", response_model=StatusResponse)
def read_root():
    return {"status": "online", "system": "RIPS Export"}


@router.post("/api/rips/generate")
async def generate_rips_document(
    request: RIPSGenerateRequest, services: dict = Depends(get_pipeline_services)
):
    try:
        outcome = await generate_rips(request, services)
    except Exception as err:
        log_event(
            component="http",
            event="rips_generation_failed",
            level="ERROR",
            details={"error": str(err)},
        )
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "message": "Error interno del servidor al generar RIPS",
                "error": build_error_payload(
                    RIPS_ERROR_CODE_GENERIC,
                    "Unexpected failure during RIPS generation.",
                    details=str(err),
                ),
            },
        )

    status_code = {"ok": 200, "not_found": 404}.get(outcome.status, 400)
    return JSONResponse(status_code=status_code, content=outcome.to_body())


def _format_validation_error(err: ValidationError) -> list[str]:
    return [
        f"Invalid input: {'.'.join(str(part) for part in issue['loc'])}: {issue['msg']}"
        for issue in err.errors()
    ]


@router.post("/api/rips/validate", response_model=RIPSValidateResponse)
def validate_rips(request: RIPSValidateRequest):
    if request.rips_data is None:
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "data": {},
                "error": build_error_payload(
                    RIPS_ERROR_CODE_INPUT, "Los datos RIPS son obligatorios"
                ),
            },
        )

    try:
        document = RIPSDocument.model_validate(request.rips_data)
    except ValidationError as err:
        return {
            "success": True,
            "data": {"isValid": False, "errors": _format_validation_error(err), "summary": {}},
            "error": None,
        }

    errors = validate_rips_document(document, no_invoice=request.no_invoice)
    return {
        "success": True,
        "data": {"isValid": not errors, "errors": errors, "summary": document.summary()},
        "error": None,
    }


@router.get("/api/rips/config")
def get_rips_config(services: dict = Depends(get_pipeline_services)):
    provider = services["provider"]
    return {
        "success": True,
        "data": {
            "nitFacturador": provider.nit,
            "codPrestador": provider.provider_code,
            "prestador": provider.as_dict(),
            "versionResolucion": RESOLUTION_VERSION,
            "formatosFecha": list(RIPS_DATE_FORMATS),
            "tiposUsuario": USER_TYPES,
            "tiposDocumento": DOCUMENT_TYPES,
            "codigosSexo": SEX_CODES,
            "gruposServicios": {
                "consultas": SERVICE_GROUP_CONSULTATIONS,
                "medicamentos": SERVICE_GROUP_MEDICATIONS,
                "quirurgicos": SERVICE_GROUP_SURGICAL,
                "procedimientos": SERVICE_GROUP_PROCEDURES,
                "otros": SERVICE_GROUP_OTHER,
            },
            "modalidades": {
                "individual": MODALITY_INDIVIDUAL,
                "grupal": MODALITY_GROUP,
                "consultaExterna": MODALITY_OUTPATIENT,
            },
            "tiposPagoModerador": PAYMENT_MODERATOR_TYPES,
            "causasMotivoAtencion": ATTENTION_CAUSES,
            "limites": {
                "valorMinimo": MIN_SERVICE_VALUE,
                "valorMaximo": MAX_SERVICE_VALUE,
                "serviciosPorFactura": MAX_SERVICES_PER_INVOICE,
            },
        },
    }


@router.get("/api/cups", response_model=CatalogListResponse)
def list_catalog(
    tipoServicio: Optional[str] = None,
    services: dict = Depends(get_pipeline_services),
):
    entries = [
        entry.as_dict()
        for entry in services["catalog"].entries
        if tipoServicio is None or entry.service_type == tipoServicio
    ]
    entries.sort(key=lambda entry: (entry["serviceType"], entry["name"]))
    return {"success": True, "data": entries, "total": len(entries)}


@router.get("/api/cups/buscar/{key}")
def find_catalog_entry(key: str, services: dict = Depends(get_pipeline_services)):
    catalog = services["catalog"]
    if key not in catalog:
        return JSONResponse(
            status_code=404,
            content={"success": False, "message": f"No se encontró código con clave: {key}"},
        )
    return {"success": True, "data": catalog.entry_of(key).as_dict()}


def _summary_response(outcome: SummaryOutcome):
    if outcome.status == "ok":
        return outcome.bundle
    content = {
        "success": False,
        "message": outcome.message,
        "error": build_error_payload(
            outcome.error_code,
            outcome.message,
            details="; ".join(outcome.issues) or None,
        ),
    }
    return JSONResponse(status_code=_SUMMARY_STATUS_CODES[outcome.status], content=content)


@router.get("/api/rda/patient/{patient_id}")
async def export_patient_summary(patient_id: str, services: dict = Depends(get_pipeline_services)):
    return _summary_response(await build_patient_summary(patient_id, services))


@router.get("/api/rda/encounter/{consultation_id}")
async def export_encounter_summary(
    consultation_id: str, services: dict = Depends(get_pipeline_services)
):
    return _summary_response(await build_encounter_summary(consultation_id, services))
