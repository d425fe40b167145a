"""Rule-based classification of clinical free text."""
from .classifier import (
    Classifier,
    DiagnosisClassification,
    classify_consultation,
    classify_diagnosis_key,
    classify_procedure,
)
from .rules import Classification, ClassificationRule, normalize_text

__all__ = [
    "Classifier",
    "Classification",
    "ClassificationRule",
    "DiagnosisClassification",
    "classify_consultation",
    "classify_procedure",
    "classify_diagnosis_key",
    "normalize_text",
]
