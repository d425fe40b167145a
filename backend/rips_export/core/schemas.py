"""API request and response schemas for the export backend."""
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


# ============= Request Schemas =============

class RIPSGenerateRequest(BaseModel):
    """Request schema for /api/rips/generate.

    Accepts the English field names and the Spanish ones used by the
    existing frontend. Exactly one of ``invoiceNumber`` or ``noInvoice``
    must be given; without ``patientIds`` a date range is required.
    """
    invoice_number: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("invoiceNumber", "numFactura"),
        description="Invoice number the RIPS document reports on",
    )
    no_invoice: bool = Field(
        default=False,
        validation_alias=AliasChoices("noInvoice", "sinFactura"),
        description="Report services without an invoice",
    )
    patient_ids: Optional[List[str]] = Field(
        default=None,
        validation_alias=AliasChoices("patientIds", "pacienteIds"),
        description="Explicit patient set; derived from the date range when omitted",
    )
    date_from: Optional[date] = Field(
        default=None,
        validation_alias=AliasChoices("dateFrom", "fechaInicio"),
    )
    date_to: Optional[date] = Field(
        default=None,
        validation_alias=AliasChoices("dateTo", "fechaFin"),
    )
    model_config = ConfigDict(extra="forbid")


class RIPSValidateRequest(BaseModel):
    """Request schema for /api/rips/validate."""

    rips_data: Optional[Dict[str, Any]] = Field(
        default=None,
        validation_alias=AliasChoices("ripsData", "rips"),
        description="RIPS document using the regulation's field names",
    )
    no_invoice: bool = Field(
        default=False,
        validation_alias=AliasChoices("noInvoice", "sinFactura"),
    )
    model_config = ConfigDict(extra="forbid")


# ============= Response Schemas =============

class RIPSValidateResponse(BaseModel):
    """Envelope response from /api/rips/validate."""

    success: bool = Field(..., description="Whether the request was processed")
    data: Dict[str, Any] = Field(
        default_factory=dict,
        description="Validation outcome with isValid, errors and summary",
    )
    error: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Error metadata when success is false",
    )
    model_config = ConfigDict(extra="forbid")


class CatalogListResponse(BaseModel):
    """Envelope response from /api/cups."""

    success: bool
    data: List[Dict[str, Any]] = Field(default_factory=list)
    total: int = 0


class StatusResponse(BaseModel):
    """Generic status response for health check endpoints."""
    status: str = Field(..., description="Service status")
    system: Optional[str] = Field(None, description="System identifier")
