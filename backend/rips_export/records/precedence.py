"""Named fallback order for every source field that has more than one origin.

Stored records come from several schema generations (pediatric and adult
patients, legacy valuations). Each logical field lists the source paths to
try, first non-empty value wins. Dotted paths reach into nested documents.
"""
from __future__ import annotations

from typing import Any, Mapping

from ..core.types import RawRecord

FieldPrecedence = Mapping[str, tuple[str, ...]]

PATIENT_FIELDS: FieldPrecedence = {
    "id": ("_id", "id"),
    "given_names": ("nombres", "nombre"),
    "family_names": ("apellidos",),
    "document_type": ("tipoDocumento",),
    "document_number": ("numeroDocumento", "registroCivil", "cedula"),
    "birth_date": ("fechaNacimiento",),
    "sex": ("genero", "sexo"),
    "affiliation_regime": ("regimenAfiliacion",),
    "country_code": ("codPaisResidencia",),
    "municipality_code": ("codMunicipioResidencia",),
    "zone_code": ("codZonaTerritorialResidencia",),
    "care_line": ("lineaAtencion", "tipoPaciente"),
    "address": ("direccion",),
    "phone": ("celular", "telefono"),
}

PROFESSIONAL_FIELDS: FieldPrecedence = {
    "document_type": ("tipoDocumento",),
    "document_number": ("numeroDocumento", "cedula"),
    "name": ("nombre", "nombres"),
}

CONSULTATION_FIELDS: FieldPrecedence = {
    "id": ("_id", "id"),
    "patient_id": ("paciente", "pacienteId"),
    "date": ("fecha", "fechaInicioAtencion", "createdAt"),
    "reason": ("motivoDeConsulta", "motivoConsulta"),
    "professional": ("profesionalTratante", "profesional"),
    "value": ("vrServicio",),
    "authorization_number": ("numAutorizacion",),
    "allergies": ("antecedentes.alergias",),
    "medications": ("antecedentes.farmacologicos",),
    "pathological_history": ("antecedentes.patologicos",),
    "family_history": ("familiares", "antecedentes.familiares", "_datosLegacy.familiares"),
    "diagnosis": ("diagnosticoFisioterapeutico", "diagnosticoFisio"),
    "treatment_plan": ("planTratamiento", "planIntervencion"),
}

GROUP_SESSION_FIELDS: FieldPrecedence = {
    "id": ("_id", "id"),
    "date": ("fecha",),
    "title": ("titulo", "nombre", "descripcion"),
    "instructor": ("instructor",),
    "value": ("vrServicio",),
}

PERINATAL_SESSION_FIELDS: FieldPrecedence = {
    "id": ("_id", "id"),
    "patient_id": ("paciente", "pacienteId"),
    "date": ("fecha", "fechaRegistro"),
    "session_name": ("nombreSesion", "titulo"),
    "program_type": ("tipoPrograma",),
    "professional": ("profesional",),
    "value": ("vrServicio",),
}


def _lookup(record: Mapping[str, Any], path: str) -> Any:
    node: Any = record
    for part in path.split("."):
        if not isinstance(node, Mapping):
            return None
        node = node.get(part)
    return node


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict, tuple)):
        return not value
    return False


def first_present(record: Mapping[str, Any], paths: tuple[str, ...]) -> Any:
    """Return the first non-empty value among ``paths``, or ``None``."""
    for path in paths:
        value = _lookup(record, path)
        if not _is_empty(value):
            return value
    return None


def resolve_fields(record: Mapping[str, Any], precedence: FieldPrecedence) -> RawRecord:
    """Flatten a stored record into logical field names using a precedence table."""
    resolved: RawRecord = {}
    for field_name, paths in precedence.items():
        value = first_present(record, paths)
        if value is not None:
            resolved[field_name] = value
    return resolved
