"""FHIR export helpers for clinical-summary document bundles."""

from .mapping import (
    ClinicalBundleBuilder,
    is_negative_text,
    map_encounter_summary,
    map_patient_summary,
)
from .validation import validate_fhir_bundle_structure

__all__ = [
    "ClinicalBundleBuilder",
    "is_negative_text",
    "map_encounter_summary",
    "map_patient_summary",
    "validate_fhir_bundle_structure",
]
