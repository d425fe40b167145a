"""Deterministic mapping from clinical records to FHIR R4 document bundles."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from ..classification import Classifier, normalize_text
from ..config.settings import ProviderSettings
from ..records import Consultation, Patient, Professional, format_rips_date, parse_timestamp

LOINC_SYSTEM = "http://loinc.org"
ICD10_SYSTEM = "http://hl7.org/fhir/sid/icd-10"
IDENTIFIER_TYPE_SYSTEM = "http://terminology.hl7.org/CodeSystem/v2-0203"
PATIENT_IDENTIFIER_SYSTEM = "http://minsalud.gov.co/fhir/identificacion"
REPS_SYSTEM = "http://minsalud.gov.co/reps"
BUNDLE_IDENTIFIER_SYSTEM = "http://minsalud.gov.co/fhir/RDA/bundle-identifier"

CONDITION_PROBLEM_LIST = "problem-list-item"
CONDITION_ENCOUNTER_DIAGNOSIS = "encounter-diagnosis"

DEFAULT_DIAGNOSIS_TEXT = "Evaluación Fisioterapéutica"
DEFAULT_ENCOUNTER_REASON = "Consulta de Fisioterapia"

# Free-text answers that state the absence of a finding.
NEGATIVE_TEXTS = frozenset(
    {
        "no",
        "niega",
        "ninguno",
        "ninguna",
        "none",
        "denies",
        "sin antecedentes",
        "no refiere",
        "n/a",
        "na",
    }
)


@dataclass(frozen=True)
class _ResourceRef:
    full_url: str
    resource: dict[str, Any]


@dataclass(frozen=True)
class SectionSpec:
    title: str
    loinc_code: str


@dataclass(frozen=True)
class CompositionKind:
    loinc_code: str
    title: str


SECTION_ALLERGIES = SectionSpec("Alergias", "48765-2")
SECTION_MEDICATIONS = SectionSpec("Medicamentos", "10160-0")
SECTION_PROBLEMS = SectionSpec("Problemas Activos", "11450-4")
SECTION_FAMILY_HISTORY = SectionSpec("Antecedentes Familiares", "10157-6")
SECTION_DIAGNOSIS = SectionSpec("Diagnóstico", "29548-5")
SECTION_CARE_PLAN = SectionSpec("Plan de Tratamiento", "18776-5")

PATIENT_SUMMARY = CompositionKind("60591-5", "Resumen Digital de Atención - Paciente")
ENCOUNTER_SUMMARY = CompositionKind("34133-9", "Resumen Digital de Atención - Consulta Externa")

# Resource types that only exist in a bundle as the target of a section entry.
SECTION_RESOURCE_TYPES = frozenset(
    {
        "Condition",
        "AllergyIntolerance",
        "MedicationStatement",
        "FamilyMemberHistory",
        "CarePlan",
    }
)


def _normalize_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _to_urn(resource_id: str) -> str:
    return f"urn:uuid:{resource_id}"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def _new_ref(resource_type: str, body: dict[str, Any]) -> _ResourceRef:
    resource_id = str(uuid4())
    return _ResourceRef(
        full_url=_to_urn(resource_id),
        resource={"resourceType": resource_type, "id": resource_id, **body},
    )


def _reference(ref: _ResourceRef) -> dict[str, str]:
    return {"reference": ref.full_url}


def is_negative_text(value: Any) -> bool:
    """True when a history field is empty or only states a negative ("niega", "none")."""
    normalized = normalize_text(value).rstrip(".")
    return not normalized or normalized in NEGATIVE_TEXTS


def _map_gender(value: str | None) -> str:
    normalized = normalize_text(value)
    if normalized in {"masculino", "m", "male"}:
        return "male"
    if normalized in {"femenino", "f", "female"}:
        return "female"
    return "unknown"


def build_patient(patient: Patient, warnings: list[str]) -> _ResourceRef:
    name: dict[str, Any] = {"use": "official", "text": patient.full_name or "Sin Nombre"}
    if patient.family_names:
        name["family"] = patient.family_names
    if patient.given_names:
        name["given"] = patient.given_names.split()
    body: dict[str, Any] = {
        "identifier": [
            {
                "use": "official",
                "type": {
                    "coding": [
                        {"system": IDENTIFIER_TYPE_SYSTEM, "code": patient.document_type}
                    ]
                },
                "system": PATIENT_IDENTIFIER_SYSTEM,
                "value": patient.document_number,
            }
        ],
        "name": [name],
        "gender": _map_gender(patient.sex),
    }
    if body["gender"] == "unknown":
        warnings.append("Patient sex unavailable; Patient.gender exported as 'unknown'.")
    if patient.birth_date is not None:
        body["birthDate"] = format_rips_date(patient.birth_date)
    else:
        warnings.append("Patient birth date unavailable; omitting Patient.birthDate.")
    if patient.phone:
        body["telecom"] = [{"system": "phone", "value": patient.phone, "use": "mobile"}]
    body["address"] = [
        {
            "line": [patient.address] if patient.address else [],
            "city": patient.municipality_code,
            "district": "Urbana" if patient.zone_code == "01" else "Rural",
            "country": "CO",
        }
    ]
    return _new_ref("Patient", body)


def build_practitioner(provider: ProviderSettings, professional: Professional | None = None) -> _ResourceRef:
    """Treating professional when identified, otherwise the billing provider."""
    if professional is not None and not professional.is_placeholder:
        identifier = {
            "type": {
                "coding": [{"system": IDENTIFIER_TYPE_SYSTEM, "code": professional.document_type}]
            },
            "value": professional.document_number,
        }
        name = professional.name
    else:
        identifier = {"system": REPS_SYSTEM, "value": provider.nit}
        name = provider.name
    return _new_ref("Practitioner", {"identifier": [identifier], "name": [{"text": name}]})


def build_organization(provider: ProviderSettings) -> _ResourceRef:
    return _new_ref(
        "Organization",
        {
            "identifier": [{"system": REPS_SYSTEM, "value": provider.provider_code}],
            "name": provider.name,
            "type": [
                {
                    "coding": [
                        {
                            "system": "http://terminology.hl7.org/CodeSystem/organization-type",
                            "code": "prov",
                            "display": "Healthcare Provider",
                        }
                    ]
                }
            ],
        },
    )


def build_encounter(
    consultation: Consultation,
    patient_ref: _ResourceRef,
    organization_ref: _ResourceRef,
) -> _ResourceRef:
    started = parse_timestamp(consultation.date)
    start = started.replace(tzinfo=timezone.utc).isoformat().replace("+00:00", "Z")
    reason = _normalize_text(consultation.reason) or DEFAULT_ENCOUNTER_REASON
    return _new_ref(
        "Encounter",
        {
            "status": "finished",
            "class": {
                "system": "http://terminology.hl7.org/CodeSystem/v3-ActCode",
                "code": "AMB",
                "display": "ambulatory",
            },
            "subject": _reference(patient_ref),
            "period": {"start": start, "end": start},
            "reasonCode": [{"text": reason}],
            "serviceProvider": _reference(organization_ref),
        },
    )


def build_condition(
    text: str,
    patient_ref: _ResourceRef,
    category: str,
    icd_code: str | None = None,
    encounter_ref: _ResourceRef | None = None,
) -> _ResourceRef:
    code: dict[str, Any] = {"text": text}
    if icd_code:
        code["coding"] = [{"system": ICD10_SYSTEM, "code": icd_code}]
    body: dict[str, Any] = {
        "clinicalStatus": {
            "coding": [
                {
                    "system": "http://terminology.hl7.org/CodeSystem/condition-clinical",
                    "code": "active",
                }
            ]
        },
        "category": [
            {
                "coding": [
                    {
                        "system": "http://terminology.hl7.org/CodeSystem/condition-category",
                        "code": category,
                    }
                ]
            }
        ],
        "code": code,
        "subject": _reference(patient_ref),
    }
    if encounter_ref is not None:
        body["encounter"] = _reference(encounter_ref)
    return _new_ref("Condition", body)


def build_allergy_intolerance(text: str, patient_ref: _ResourceRef) -> _ResourceRef:
    return _new_ref(
        "AllergyIntolerance",
        {
            "clinicalStatus": {
                "coding": [
                    {
                        "system": "http://terminology.hl7.org/CodeSystem/allergyintolerance-clinical",
                        "code": "active",
                    }
                ]
            },
            "code": {"text": text},
            "patient": _reference(patient_ref),
        },
    )


def build_medication_statement(text: str, patient_ref: _ResourceRef) -> _ResourceRef:
    return _new_ref(
        "MedicationStatement",
        {
            "status": "active",
            "medicationCodeableConcept": {"text": text},
            "subject": _reference(patient_ref),
        },
    )


def build_family_member_history(text: str, patient_ref: _ResourceRef) -> _ResourceRef:
    return _new_ref(
        "FamilyMemberHistory",
        {
            "status": "completed",
            "patient": _reference(patient_ref),
            "relationship": {"text": "Family Member"},
            "note": [{"text": text}],
        },
    )


def build_care_plan(text: str, patient_ref: _ResourceRef, encounter_ref: _ResourceRef) -> _ResourceRef:
    return _new_ref(
        "CarePlan",
        {
            "status": "active",
            "intent": "plan",
            "subject": _reference(patient_ref),
            "encounter": _reference(encounter_ref),
            "description": text,
        },
    )


def build_composition(
    kind: CompositionKind,
    patient_ref: _ResourceRef,
    author_ref: _ResourceRef,
    custodian_ref: _ResourceRef,
    encounter_ref: _ResourceRef | None = None,
) -> _ResourceRef:
    body: dict[str, Any] = {
        "status": "final",
        "type": {
            "coding": [{"system": LOINC_SYSTEM, "code": kind.loinc_code, "display": kind.title}]
        },
        "subject": _reference(patient_ref),
        "date": _now_iso(),
        "author": [_reference(author_ref)],
        "custodian": _reference(custodian_ref),
        "title": kind.title,
        "section": [],
    }
    if encounter_ref is not None:
        body["encounter"] = _reference(encounter_ref)
    return _new_ref("Composition", body)


@dataclass
class ClinicalBundleBuilder:
    """
    Assemble a document bundle around one Composition.

    ``add_context`` adds resources the Composition points at directly
    (subject, author, custodian, encounter). ``add_to_section`` adds a
    clinical resource and its section entry together, so neither can exist
    without the other.
    """

    composition: _ResourceRef
    _entries: list[_ResourceRef] = field(default_factory=list)

    def add_context(self, ref: _ResourceRef) -> _ResourceRef:
        self._entries.append(ref)
        return ref

    def add_to_section(self, section: SectionSpec, ref: _ResourceRef) -> _ResourceRef:
        sections = self.composition.resource["section"]
        target = next((item for item in sections if item["title"] == section.title), None)
        if target is None:
            target = {
                "title": section.title,
                "code": {"coding": [{"system": LOINC_SYSTEM, "code": section.loinc_code}]},
                "entry": [],
            }
            sections.append(target)
        target["entry"].append(_reference(ref))
        self._entries.append(ref)
        return ref

    def build(self) -> dict[str, Any]:
        timestamp = _now_iso()
        return {
            "resourceType": "Bundle",
            "id": str(uuid4()),
            "meta": {"lastUpdated": timestamp},
            "identifier": {"system": BUNDLE_IDENTIFIER_SYSTEM, "value": str(uuid4())},
            "type": "document",
            "timestamp": timestamp,
            "entry": [
                {"fullUrl": ref.full_url, "resource": ref.resource}
                for ref in (self.composition, *self._entries)
            ],
        }


def map_patient_summary(
    patient: Patient,
    latest_consultation: Consultation | None,
    provider: ProviderSettings,
    classifier: Classifier,
) -> tuple[dict[str, Any], list[str]]:
    """Map a patient and their latest consultation history to a patient-summary bundle."""
    warnings: list[str] = []
    patient_ref = build_patient(patient, warnings)
    practitioner_ref = build_practitioner(provider)
    organization_ref = build_organization(provider)
    builder = ClinicalBundleBuilder(
        build_composition(PATIENT_SUMMARY, patient_ref, practitioner_ref, organization_ref)
    )
    builder.add_context(patient_ref)
    builder.add_context(practitioner_ref)
    builder.add_context(organization_ref)

    if latest_consultation is None:
        warnings.append("No consultation history found; clinical sections omitted.")
        return builder.build(), warnings

    history = latest_consultation
    if not is_negative_text(history.allergies):
        builder.add_to_section(
            SECTION_ALLERGIES, build_allergy_intolerance(history.allergies.strip(), patient_ref)
        )
    if not is_negative_text(history.medications):
        builder.add_to_section(
            SECTION_MEDICATIONS, build_medication_statement(history.medications.strip(), patient_ref)
        )
    if not is_negative_text(history.pathological_history):
        text = history.pathological_history.strip()
        diagnosis = classifier.classify_diagnosis(text)
        builder.add_to_section(
            SECTION_PROBLEMS,
            build_condition(
                text,
                patient_ref,
                CONDITION_PROBLEM_LIST,
                icd_code=None if diagnosis.fallback else diagnosis.code,
            ),
        )
    if not is_negative_text(history.family_history):
        builder.add_to_section(
            SECTION_FAMILY_HISTORY,
            build_family_member_history(history.family_history.strip(), patient_ref),
        )
    return builder.build(), warnings


def map_encounter_summary(
    consultation: Consultation,
    patient: Patient,
    provider: ProviderSettings,
    classifier: Classifier,
) -> tuple[dict[str, Any], list[str]]:
    """Map one consultation to an outpatient encounter-summary bundle."""
    warnings: list[str] = []
    patient_ref = build_patient(patient, warnings)
    practitioner_ref = build_practitioner(provider, consultation.professional)
    organization_ref = build_organization(provider)
    encounter_ref = build_encounter(consultation, patient_ref, organization_ref)
    builder = ClinicalBundleBuilder(
        build_composition(
            ENCOUNTER_SUMMARY, patient_ref, practitioner_ref, organization_ref, encounter_ref
        )
    )
    builder.add_context(encounter_ref)
    builder.add_context(patient_ref)
    builder.add_context(practitioner_ref)
    builder.add_context(organization_ref)

    diagnosis_text = _normalize_text(consultation.diagnosis)
    if not diagnosis_text:
        warnings.append("Consultation has no diagnosis; using free-text fallback.")
        diagnosis_text = DEFAULT_DIAGNOSIS_TEXT
    diagnosis = classifier.classify_diagnosis(
        consultation.diagnosis if consultation.diagnosis else consultation.reason
    )
    builder.add_to_section(
        SECTION_DIAGNOSIS,
        build_condition(
            diagnosis_text,
            patient_ref,
            CONDITION_ENCOUNTER_DIAGNOSIS,
            icd_code=diagnosis.code,
            encounter_ref=encounter_ref,
        ),
    )

    plan_text = _normalize_text(consultation.treatment_plan)
    if plan_text:
        builder.add_to_section(
            SECTION_CARE_PLAN, build_care_plan(plan_text, patient_ref, encounter_ref)
        )
    return builder.build(), warnings
