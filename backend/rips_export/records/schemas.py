"""Input schemas for patients and the three service-event variants.

Every schema accepts either stored documents (original Spanish field names,
resolved through ``precedence``) or logical field names. Instances are frozen:
the pipeline never mutates what it reads.
"""
from __future__ import annotations

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .dates import event_day, parse_timestamp
from .precedence import (
    CONSULTATION_FIELDS,
    GROUP_SESSION_FIELDS,
    PATIENT_FIELDS,
    PERINATAL_SESSION_FIELDS,
    PROFESSIONAL_FIELDS,
    FieldPrecedence,
    resolve_fields,
)

PLACEHOLDER_DOCUMENT_TYPE = "CC"
PLACEHOLDER_DOCUMENT_NUMBER = "00000000"
PLACEHOLDER_PROFESSIONAL_NAME = "Profesional no registrado"

DEFAULT_COUNTRY_CODE = "170"
DEFAULT_ZONE_CODE = "01"

# Document type inferred from which identifier field a stored patient carries.
DOCUMENT_TYPE_BY_SOURCE_FIELD: tuple[tuple[str, str], ...] = (
    ("cedula", "CC"),
    ("registroCivil", "RC"),
)
DEFAULT_ADULT_DOCUMENT_TYPE = "CC"
DEFAULT_PEDIATRIC_DOCUMENT_TYPE = "TI"

StoredDate = Union[datetime, date, str]


class RecordParseError(ValueError):
    """Raised when a stored record cannot be read into its schema."""


def _merge_source(data: Any, precedence: FieldPrecedence, field_names: set[str]) -> Any:
    if not isinstance(data, Mapping):
        return data
    merged = resolve_fields(data, precedence)
    for key, value in data.items():
        if key in field_names and value is not None:
            merged[key] = value
    return merged


def _stringify_id(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, Mapping):
        value = value.get("_id") or value.get("id")
    text = str(value).strip() if value is not None else ""
    return text or None


class _FrozenRecord(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class Professional(_FrozenRecord):
    """Treating professional or instructor; missing identities use a placeholder."""

    document_type: str = PLACEHOLDER_DOCUMENT_TYPE
    document_number: str = PLACEHOLDER_DOCUMENT_NUMBER
    name: str = PLACEHOLDER_PROFESSIONAL_NAME

    @model_validator(mode="before")
    @classmethod
    def _from_source(cls, data: Any) -> Any:
        if data is None:
            return {}
        if isinstance(data, str):
            return {"name": data} if data.strip() else {}
        if not isinstance(data, Mapping):
            # Unpopulated reference to another collection.
            return {}
        return _merge_source(data, PROFESSIONAL_FIELDS, set(cls.model_fields))

    @field_validator("document_number", mode="before")
    @classmethod
    def _number_as_text(cls, value: Any) -> str:
        return str(value)

    @property
    def is_placeholder(self) -> bool:
        return self.document_number == PLACEHOLDER_DOCUMENT_NUMBER


def _professional_or_placeholder(value: Any) -> Any:
    if value is None:
        return Professional()
    return value


class Patient(_FrozenRecord):
    id: str
    given_names: str = ""
    family_names: str = ""
    document_type: str
    document_number: str = ""
    birth_date: Optional[date] = None
    sex: Optional[str] = None
    affiliation_regime: Optional[str] = None
    country_code: str = DEFAULT_COUNTRY_CODE
    municipality_code: Optional[str] = None
    zone_code: str = DEFAULT_ZONE_CODE
    care_line: Literal["pediatric", "adult"] = "pediatric"
    address: Optional[str] = None
    phone: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _from_source(cls, data: Any) -> Any:
        merged = _merge_source(data, PATIENT_FIELDS, set(cls.model_fields))
        if not isinstance(merged, dict):
            return merged
        merged["id"] = _stringify_id(merged.get("id"))
        merged["care_line"] = _normalize_care_line(merged.get("care_line"), data)
        if not merged.get("document_type"):
            merged["document_type"] = _infer_document_type(data, merged["care_line"])
        return merged

    @field_validator("birth_date", mode="before")
    @classmethod
    def _parse_birth_date(cls, value: Any) -> Optional[date]:
        return event_day(value)

    @field_validator("document_number", mode="before")
    @classmethod
    def _number_as_text(cls, value: Any) -> str:
        return str(value)

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.given_names, self.family_names) if part).strip()


def _normalize_care_line(value: Any, source: Any) -> str:
    text = str(value or "").lower()
    if "adult" in text:
        return "adult"
    if text:
        return "pediatric"
    if isinstance(source, Mapping) and source.get("cedula"):
        return "adult"
    return "pediatric"


def _infer_document_type(source: Any, care_line: str) -> str:
    if isinstance(source, Mapping):
        for field_name, document_type in DOCUMENT_TYPE_BY_SOURCE_FIELD:
            if source.get(field_name):
                return document_type
    if care_line == "adult":
        return DEFAULT_ADULT_DOCUMENT_TYPE
    return DEFAULT_PEDIATRIC_DOCUMENT_TYPE


class _ServiceEventBase(_FrozenRecord):
    id: Optional[str] = None
    date: StoredDate
    value: Optional[int] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value: Any) -> Optional[str]:
        return _stringify_id(value)

    @field_validator("date", mode="before")
    @classmethod
    def _require_parsable_date(cls, value: Any) -> Any:
        if parse_timestamp(value) is None:
            raise ValueError("service date is required")
        return value

    @field_validator("value", mode="before")
    @classmethod
    def _whole_pesos(cls, value: Any) -> Optional[int]:
        # RIPS values are whole pesos; fractional amounts round half up.
        if value is None or isinstance(value, bool):
            return value
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
        try:
            amount = Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        except InvalidOperation as err:
            raise ValueError("service value must be numeric") from err
        return int(amount)

    @property
    def timestamp(self) -> datetime:
        return parse_timestamp(self.date)  # type: ignore[return-value]


class Consultation(_ServiceEventBase):
    """Consultation or intake valuation; also carries history fields for clinical summaries."""

    kind: Literal["consultation"] = "consultation"
    patient_id: Optional[str] = None
    reason: str = ""
    professional: Professional = Field(default_factory=Professional)
    authorization_number: Optional[str] = None
    allergies: Optional[str] = None
    medications: Optional[str] = None
    pathological_history: Optional[str] = None
    family_history: Optional[str] = None
    diagnosis: Optional[str] = None
    treatment_plan: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _from_source(cls, data: Any) -> Any:
        merged = _merge_source(data, CONSULTATION_FIELDS, set(cls.model_fields))
        if isinstance(merged, dict):
            merged["patient_id"] = _stringify_id(merged.get("patient_id"))
            merged["professional"] = _professional_or_placeholder(merged.get("professional"))
            merged.pop("kind", None)
        return merged


class GroupSession(_ServiceEventBase):
    """Group class attended by the patient."""

    kind: Literal["group_session"] = "group_session"
    title: str = ""
    instructor: Professional = Field(default_factory=Professional)

    @model_validator(mode="before")
    @classmethod
    def _from_source(cls, data: Any) -> Any:
        merged = _merge_source(data, GROUP_SESSION_FIELDS, set(cls.model_fields))
        if isinstance(merged, dict):
            merged["instructor"] = _professional_or_placeholder(merged.get("instructor"))
            merged.pop("kind", None)
        return merged


class PerinatalSession(_ServiceEventBase):
    """Individual perinatal program session of an adult patient."""

    kind: Literal["perinatal_session"] = "perinatal_session"
    patient_id: Optional[str] = None
    session_name: Optional[str] = None
    program_type: Optional[str] = None
    professional: Professional = Field(default_factory=Professional)

    @model_validator(mode="before")
    @classmethod
    def _from_source(cls, data: Any) -> Any:
        merged = _merge_source(data, PERINATAL_SESSION_FIELDS, set(cls.model_fields))
        if isinstance(merged, dict):
            merged["patient_id"] = _stringify_id(merged.get("patient_id"))
            merged["professional"] = _professional_or_placeholder(merged.get("professional"))
            merged.pop("kind", None)
        return merged


ServiceEvent = Annotated[
    Union[Consultation, GroupSession, PerinatalSession],
    Field(discriminator="kind"),
]


class PatientRecords(_FrozenRecord):
    """A patient together with the service events that fall in the requested range."""

    patient: Patient
    events: tuple[ServiceEvent, ...] = ()

    @property
    def consultations(self) -> tuple[Consultation, ...]:
        return tuple(event for event in self.events if isinstance(event, Consultation))

    @property
    def group_sessions(self) -> tuple[GroupSession, ...]:
        return tuple(event for event in self.events if isinstance(event, GroupSession))

    @property
    def perinatal_sessions(self) -> tuple[PerinatalSession, ...]:
        return tuple(event for event in self.events if isinstance(event, PerinatalSession))
