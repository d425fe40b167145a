"""Classification of free-text clinical fields into catalog categories and ICD codes."""
from __future__ import annotations

from dataclasses import dataclass

from ..catalog import DiagnosisKey, ServiceCatalog, ServiceCategory
from .rules import (
    CONSULTATION_RULES,
    DIAGNOSIS_RULES,
    PROCEDURE_RULES,
    Classification,
    evaluate_rules,
)


def classify_consultation(reason_text: str | None) -> Classification[ServiceCategory]:
    """Map a consultation reason to prenatal, postnatal, lactation or general consultation."""
    return evaluate_rules(reason_text, CONSULTATION_RULES, ServiceCategory.GENERAL_CONSULTATION)


def classify_procedure(
    title_text: str | None,
    default: ServiceCategory = ServiceCategory.INDIVIDUAL_PHYSICAL_THERAPY,
) -> Classification[ServiceCategory]:
    """Map a session title to a procedure category, individual physical therapy by default."""
    return evaluate_rules(title_text, PROCEDURE_RULES, default)


def classify_diagnosis_key(reason_text: str | None) -> Classification[DiagnosisKey]:
    return evaluate_rules(reason_text, DIAGNOSIS_RULES, DiagnosisKey.PHYSIOTHERAPY)


@dataclass(frozen=True)
class DiagnosisClassification:
    """ICD-10 code inferred from text, plus the key and rule that produced it."""

    code: str
    key: DiagnosisKey
    rule_id: str | None

    @property
    def fallback(self) -> bool:
        return self.rule_id is None


class Classifier:
    """Rule-table classifier bound to one catalog for ICD code resolution."""

    def __init__(self, catalog: ServiceCatalog) -> None:
        self._catalog = catalog

    @property
    def catalog(self) -> ServiceCatalog:
        return self._catalog

    def classify_consultation(self, reason_text: str | None) -> Classification[ServiceCategory]:
        return classify_consultation(reason_text)

    def classify_procedure(
        self,
        title_text: str | None,
        default: ServiceCategory = ServiceCategory.INDIVIDUAL_PHYSICAL_THERAPY,
    ) -> Classification[ServiceCategory]:
        return classify_procedure(title_text, default)

    def classify_diagnosis(self, reason_text: str | None) -> DiagnosisClassification:
        result = classify_diagnosis_key(reason_text)
        return DiagnosisClassification(
            code=self._catalog.icd_code_of(result.tag),
            key=result.tag,
            rule_id=result.rule_id,
        )
