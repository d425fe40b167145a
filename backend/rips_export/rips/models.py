"""RIPS document structure (Res. 1036 of 2022) with the regulation's field names as aliases."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..catalog.defaults import (
    ADMISSION_ROUTE_OUTPATIENT,
    ATTENTION_CAUSE_OUTPATIENT,
    DIAGNOSIS_TYPE_CONFIRMED,
    DISABILITY_NOT_APPLICABLE,
    PAYMENT_MODERATOR_NOT_APPLICABLE,
)


class _RIPSModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class RIPSUser(_RIPSModel):
    document_type: str = Field(alias="tipoDocumentoIdentificacion")
    document_number: str = Field(alias="numDocumentoIdentificacion")
    user_type: str = Field(alias="tipoUsuario")
    birth_date: Optional[str] = Field(default=None, alias="fechaNacimiento")
    sex: str = Field(alias="codSexo")
    country_code: str = Field(default="170", alias="codPaisResidencia")
    municipality_code: Optional[str] = Field(default=None, alias="codMunicipioResidencia")
    zone_code: str = Field(default="01", alias="codZonaTerritorialResidencia")
    disability: str = Field(default=DISABILITY_NOT_APPLICABLE, alias="incapacidad")
    sequence: int = Field(alias="consecutivo", ge=1)


class _RIPSServiceEntry(_RIPSModel):
    provider_code: str = Field(alias="codPrestador")
    started_at: Optional[str] = Field(alias="fechaInicioAtencion")
    authorization_number: Optional[str] = Field(default=None, alias="numAutorizacion")
    modality: str = Field(alias="modalidadGrupoServicioTecSal")
    service_group: str = Field(alias="grupoServicios")
    service_code: str = Field(alias="codServicio")
    finality: str = Field(alias="finalidadTecnologiaSalud")
    professional_document_type: str = Field(alias="tipoDocumentoIdentificacion")
    professional_document_number: str = Field(alias="numDocumentoIdentificacion")
    main_diagnosis: str = Field(alias="codDiagnosticoPrincipal")
    value: int = Field(alias="vrServicio", ge=0)
    payment_moderator_type: str = Field(
        default=PAYMENT_MODERATOR_NOT_APPLICABLE, alias="tipoPagoModerador"
    )
    payment_moderator_value: int = Field(default=0, alias="valorPagoModerador")
    payment_moderator_invoice: Optional[str] = Field(default=None, alias="numFEVPagoModerador")
    sequence: int = Field(alias="consecutivo", ge=1)


class RIPSConsultation(_RIPSServiceEntry):
    consultation_code: str = Field(alias="codConsulta")
    attention_cause: str = Field(default=ATTENTION_CAUSE_OUTPATIENT, alias="causaMotivoAtencion")
    related_diagnosis_1: Optional[str] = Field(default=None, alias="codDiagnosticoRelacionado1")
    related_diagnosis_2: Optional[str] = Field(default=None, alias="codDiagnosticoRelacionado2")
    related_diagnosis_3: Optional[str] = Field(default=None, alias="codDiagnosticoRelacionado3")
    main_diagnosis_type: str = Field(
        default=DIAGNOSIS_TYPE_CONFIRMED, alias="tipoDiagnosticoPrincipal"
    )


class RIPSProcedure(_RIPSServiceEntry):
    procedure_code: str = Field(alias="codProcedimiento")
    mipres_id: Optional[str] = Field(default=None, alias="idMIPRES")
    admission_route: str = Field(default=ADMISSION_ROUTE_OUTPATIENT, alias="viaIngresoServicioSalud")
    related_diagnosis: Optional[str] = Field(default=None, alias="codDiagnosticoRelacionado")
    complication: Optional[str] = Field(default=None, alias="codComplicacion")


class RIPSServiceBlock(_RIPSModel):
    """The seven category buckets of one user, linked by ``consecutivo``."""

    consultations: list[RIPSConsultation] = Field(default_factory=list, alias="consultas")
    procedures: list[RIPSProcedure] = Field(default_factory=list, alias="procedimientos")
    emergencies: list[dict[str, Any]] = Field(default_factory=list, alias="urgencias")
    hospitalizations: list[dict[str, Any]] = Field(default_factory=list, alias="hospitalizacion")
    newborns: list[dict[str, Any]] = Field(default_factory=list, alias="recienNacidos")
    medications: list[dict[str, Any]] = Field(default_factory=list, alias="medicamentos")
    other_services: list[dict[str, Any]] = Field(default_factory=list, alias="otrosServicios")
    sequence: int = Field(alias="consecutivo", ge=1)

    def buckets(self) -> tuple[list[Any], ...]:
        return (
            self.consultations,
            self.procedures,
            self.emergencies,
            self.hospitalizations,
            self.newborns,
            self.medications,
            self.other_services,
        )

    @property
    def total_entries(self) -> int:
        return sum(len(bucket) for bucket in self.buckets())

    @property
    def is_empty(self) -> bool:
        return self.total_entries == 0


class RIPSDocument(_RIPSModel):
    biller_id: Optional[str] = Field(default=None, alias="numDocumentoIdObligado")
    invoice_number: Optional[str] = Field(default=None, alias="numFactura")
    note_type: Optional[str] = Field(default=None, alias="tipoNota")
    note_number: Optional[str] = Field(default=None, alias="numNota")
    users: list[RIPSUser] = Field(default_factory=list, alias="usuarios")
    service_blocks: list[RIPSServiceBlock] = Field(default_factory=list, alias="serviciosTecnologias")

    def summary(self) -> dict[str, int]:
        return {
            "usersProcessed": len(self.users),
            "serviceBlocks": len(self.service_blocks),
            "totalConsultations": sum(len(block.consultations) for block in self.service_blocks),
            "totalProcedures": sum(len(block.procedures) for block in self.service_blocks),
        }
