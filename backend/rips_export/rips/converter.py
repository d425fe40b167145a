"""Conversion of aggregated patient records into a RIPS document."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
import time
from typing import Any, Sequence

from ..catalog import CONSULTATION_CATEGORIES, ServiceCatalog, ServiceCategory
from ..catalog.defaults import (
    AFFILIATION_REGIME_USER_TYPES,
    DEFAULT_SEX_CODE,
    MAX_SERVICE_VALUE,
    MAX_SERVICES_PER_INVOICE,
    MIN_SERVICE_VALUE,
    SEX_BY_GENDER_LABEL,
    UNINSURED_USER_TYPE,
)
from ..classification import Classification, Classifier, normalize_text
from ..config.settings import ProviderSettings
from ..core.logging_utils import log_event, log_latency_event
from ..core.results import fold_batch
from ..records import (
    Consultation,
    GroupSession,
    PatientRecords,
    PerinatalSession,
    Professional,
    calculate_age,
    format_rips_date,
    format_rips_datetime,
)
from .models import (
    RIPSConsultation,
    RIPSDocument,
    RIPSProcedure,
    RIPSServiceBlock,
    RIPSUser,
)
from .validation import validate_rips_document

_COMPONENT = "rips_converter"

# Document types accepted per age band; adults are not checked.
_DOCUMENT_TYPES_UNDER_7 = ("RC", "CN", "MS")
_DOCUMENT_TYPES_UNDER_18 = ("TI", "MS")


class ConversionState(str, Enum):
    INIT = "init"
    PER_PATIENT_CONVERT = "per_patient_convert"
    VALIDATE = "validate"
    DONE = "done"
    FAILED = "failed"


class RIPSInputError(ValueError):
    """Raised for a malformed top-level conversion request."""


@dataclass(frozen=True)
class ConversionResult:
    """Output of one conversion: the document (absent on input failure) plus messages."""

    rips: RIPSDocument | None
    state: ConversionState
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return self.state is ConversionState.DONE and not self.errors

    @property
    def summary(self) -> dict[str, int]:
        if self.rips is None:
            return RIPSDocument().summary()
        return self.rips.summary()


@dataclass(frozen=True)
class _PatientConversion:
    user: RIPSUser
    block: RIPSServiceBlock
    warnings: tuple[str, ...] = ()


@dataclass
class _BlockBuilder:
    consultations: list[RIPSConsultation] = field(default_factory=list)
    procedures: list[RIPSProcedure] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _enter(state: ConversionState, previous: ConversionState | None = None) -> ConversionState:
    log_event(
        component=_COMPONENT,
        event="state_changed",
        level="DEBUG",
        details={"state": state.value, "previous": previous.value if previous else None},
    )
    return state


def document_type_warning(document_type: str, age: int) -> str | None:
    """Return a warning when the document type is unusual for the patient's age."""
    if age < 7:
        expected = _DOCUMENT_TYPES_UNDER_7
    elif age < 18:
        expected = _DOCUMENT_TYPES_UNDER_18
    else:
        return None
    if document_type in expected:
        return None
    return (
        f"Tipo de documento {document_type} no recomendado para edad {age} "
        f"(usar {', '.join(expected)})"
    )


def map_sex(gender: str | None) -> str:
    return SEX_BY_GENDER_LABEL.get(normalize_text(gender), DEFAULT_SEX_CODE)


def map_user_type(affiliation_regime: str | None) -> str:
    return AFFILIATION_REGIME_USER_TYPES.get(normalize_text(affiliation_regime), UNINSURED_USER_TYPE)


class RIPSConverter:
    """
    Build a RIPS document from aggregated patient records.

    The converter is stateless between calls: catalog, classifier and provider
    settings are injected, and every per-request counter or message list lives
    inside ``convert``. A failure while converting one patient drops that
    patient's user and service block and is reported as an error; the other
    patients still convert. Validation always runs on whatever was built.
    """

    def __init__(
        self,
        catalog: ServiceCatalog,
        classifier: Classifier,
        provider: ProviderSettings,
        reference_date: date | None = None,
    ) -> None:
        self._catalog = catalog
        self._classifier = classifier
        self._provider = provider
        self._reference_date = reference_date

    def convert(
        self,
        patients: Sequence[PatientRecords],
        invoice_number: str | None = None,
        no_invoice: bool = False,
    ) -> ConversionResult:
        started = time.perf_counter()
        state = _enter(ConversionState.INIT)
        try:
            self._check_input(patients, invoice_number, no_invoice)
        except RIPSInputError as err:
            result = ConversionResult(
                rips=None, state=_enter(ConversionState.FAILED, state), errors=(str(err),)
            )
            self._log_completed(result, started)
            return result

        state = _enter(ConversionState.PER_PATIENT_CONVERT, state)
        folded = fold_batch(
            list(enumerate(patients, start=1)),
            lambda item: self._convert_patient(item[1], item[0]),
            lambda item: f"Patient {item[1].patient.id}",
        )
        for error in folded.errors:
            log_event(
                component=_COMPONENT,
                event="patient_conversion_failed",
                level="WARNING",
                details={"error": error},
            )

        document = RIPSDocument(
            biller_id=self._provider.nit,
            invoice_number=None if no_invoice else invoice_number,
            users=[converted.user for converted in folded.successes],
            service_blocks=[converted.block for converted in folded.successes],
        )
        warnings = [warning for converted in folded.successes for warning in converted.warnings]
        total_services = sum(block.total_entries for block in document.service_blocks)
        if not no_invoice and total_services > MAX_SERVICES_PER_INVOICE:
            warnings.append(
                f"La factura reporta {total_services} servicios; el máximo recomendado es "
                f"{MAX_SERVICES_PER_INVOICE}"
            )

        state = _enter(ConversionState.VALIDATE, state)
        validation_errors = validate_rips_document(document, no_invoice=no_invoice)

        state = _enter(ConversionState.DONE, state)
        result = ConversionResult(
            rips=document,
            state=state,
            errors=(*folded.errors, *validation_errors),
            warnings=tuple(warnings),
        )
        self._log_completed(result, started)
        return result

    def _check_input(self, patients: Any, invoice_number: str | None, no_invoice: bool) -> None:
        if not isinstance(patients, (list, tuple)):
            raise RIPSInputError("Invalid input: patients must be a list")
        has_invoice = bool(invoice_number and str(invoice_number).strip())
        if not has_invoice and not no_invoice:
            raise RIPSInputError("Invalid input: se requiere numFactura o marcar sinFactura")
        if has_invoice and no_invoice:
            raise RIPSInputError("Invalid input: numFactura y sinFactura son excluyentes")

    def _log_completed(self, result: ConversionResult, started: float) -> None:
        status = "ok" if result.is_valid else "error"
        log_latency_event(
            component=_COMPONENT,
            event="conversion_completed",
            stage="rips_convert",
            duration_s=time.perf_counter() - started,
            status=status,
            details={
                "state": result.state.value,
                "errors": len(result.errors),
                "warnings": len(result.warnings),
                **result.summary,
            },
        )

    def _convert_patient(self, records: PatientRecords, sequence: int) -> _PatientConversion:
        patient = records.patient
        if not patient.document_number:
            raise ValueError("document number is required")

        warnings: list[str] = []
        if patient.birth_date is None:
            warnings.append(f"Patient {patient.id}: sin fecha de nacimiento, no se valida el tipo de documento")
        else:
            age = calculate_age(patient.birth_date, self._reference_date)
            warning = document_type_warning(patient.document_type, age)
            if warning:
                warnings.append(f"Patient {patient.id}: {warning}")

        user = RIPSUser(
            document_type=patient.document_type,
            document_number=patient.document_number,
            user_type=map_user_type(patient.affiliation_regime),
            birth_date=format_rips_date(patient.birth_date),
            sex=map_sex(patient.sex),
            country_code=patient.country_code,
            municipality_code=patient.municipality_code or self._provider.default_municipality,
            zone_code=patient.zone_code,
            sequence=sequence,
        )

        builder = _BlockBuilder()
        for event in records.events:
            if isinstance(event, Consultation):
                self._add_consultation(builder, patient.id, event)
            elif isinstance(event, GroupSession):
                self._add_procedure(
                    builder,
                    patient.id,
                    event,
                    self._classifier.classify_procedure(event.title),
                    event.title,
                    event.instructor,
                )
            elif isinstance(event, PerinatalSession):
                text = event.session_name or event.program_type
                self._add_procedure(
                    builder,
                    patient.id,
                    event,
                    self._classifier.classify_procedure(text, default=ServiceCategory.BIRTH_PREPARATION),
                    text,
                    event.professional,
                )

        block = RIPSServiceBlock(
            consultations=builder.consultations,
            procedures=builder.procedures,
            sequence=sequence,
        )
        return _PatientConversion(user=user, block=block, warnings=(*warnings, *builder.warnings))

    def _service_value(self, event: Consultation | GroupSession | PerinatalSession, category: ServiceCategory) -> int:
        if event.value:
            return int(event.value)
        return self._catalog.value_of(category)

    def _diagnosis(self, text: str | None, category: ServiceCategory) -> str:
        diagnosis = self._classifier.classify_diagnosis(text)
        if diagnosis.fallback:
            return self._catalog.diagnosis_of(category)
        return diagnosis.code

    def _checked_value(self, builder: _BlockBuilder, patient_id: str, event, category: ServiceCategory) -> int:
        value = self._service_value(event, category)
        if not MIN_SERVICE_VALUE <= value <= MAX_SERVICE_VALUE:
            builder.warnings.append(
                f"Patient {patient_id}: valor {value} fuera del rango "
                f"{MIN_SERVICE_VALUE}-{MAX_SERVICE_VALUE} ({event.kind} {event.id or '?'})"
            )
        return value

    def _fallback_warning(
        self,
        builder: _BlockBuilder,
        patient_id: str,
        event,
        classification: Classification[ServiceCategory],
    ) -> None:
        if classification.fallback:
            builder.warnings.append(
                f"Patient {patient_id}: {event.kind} {event.id or '?'} sin clasificación específica, "
                f"se usa '{classification.tag.value}'"
            )

    def _add_consultation(self, builder: _BlockBuilder, patient_id: str, event: Consultation) -> None:
        classification = self._classifier.classify_consultation(event.reason)
        category = classification.tag
        entry = self._catalog.entry_of(category)
        self._fallback_warning(builder, patient_id, event, classification)
        builder.consultations.append(
            RIPSConsultation(
                provider_code=self._provider.provider_code,
                started_at=format_rips_datetime(event.date),
                authorization_number=event.authorization_number,
                consultation_code=entry.code,
                modality=entry.modality,
                service_group=entry.service_group,
                service_code=self._provider.reps_service_code,
                finality=entry.finality,
                main_diagnosis=self._diagnosis(event.reason, category),
                professional_document_type=event.professional.document_type,
                professional_document_number=event.professional.document_number,
                value=self._checked_value(builder, patient_id, event, category),
                sequence=len(builder.consultations) + 1,
            )
        )

    def _add_procedure(
        self,
        builder: _BlockBuilder,
        patient_id: str,
        event: GroupSession | PerinatalSession,
        classification: Classification[ServiceCategory],
        text: str | None,
        professional: Professional,
    ) -> None:
        category = classification.tag
        if category in CONSULTATION_CATEGORIES:
            raise ValueError(f"session classified as consultation category '{category.value}'")
        entry = self._catalog.entry_of(category)
        self._fallback_warning(builder, patient_id, event, classification)
        builder.procedures.append(
            RIPSProcedure(
                provider_code=self._provider.provider_code,
                started_at=format_rips_datetime(event.date),
                procedure_code=entry.code,
                modality=entry.modality,
                service_group=entry.service_group,
                service_code=self._provider.reps_service_code,
                finality=entry.finality,
                main_diagnosis=self._diagnosis(text, category),
                professional_document_type=professional.document_type,
                professional_document_number=professional.document_number,
                value=self._checked_value(builder, patient_id, event, category),
                sequence=len(builder.procedures) + 1,
            )
        )
