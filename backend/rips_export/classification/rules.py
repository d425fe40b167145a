"""Ordered substring rule tables for service and diagnosis classification."""
from __future__ import annotations

from dataclasses import dataclass
import re
import unicodedata
from typing import Generic, TypeVar

from ..catalog.keys import DiagnosisKey, ServiceCategory

TagT = TypeVar("TagT")


@dataclass(frozen=True)
class ClassificationRule(Generic[TagT]):
    """Rule definition: any of ``patterns`` found in the text selects ``tag``."""

    rule_id: str
    patterns: tuple[str, ...]
    tag: TagT


@dataclass(frozen=True)
class Classification(Generic[TagT]):
    """Result of evaluating one rule table against a text."""

    tag: TagT
    rule_id: str | None
    matched_pattern: str | None

    @property
    def fallback(self) -> bool:
        return self.rule_id is None


def normalize_text(text: str | None) -> str:
    """Lowercase, strip diacritics and collapse whitespace."""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", str(text))
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return re.sub(r"\s+", " ", stripped.casefold()).strip()


# Order is part of the contract: the first matching rule wins.
CONSULTATION_RULES: tuple[ClassificationRule[ServiceCategory], ...] = (
    ClassificationRule(
        rule_id="consultation_prenatal",
        patterns=("prenatal", "embarazo", "gestacion", "gestante", "embarazada"),
        tag=ServiceCategory.PRENATAL_CONSULTATION,
    ),
    ClassificationRule(
        rule_id="consultation_postnatal",
        patterns=("postnatal", "posparto", "postparto", "puerperio", "parto"),
        tag=ServiceCategory.POSTNATAL_CONSULTATION,
    ),
    ClassificationRule(
        rule_id="consultation_lactation",
        patterns=("lactancia", "amamantamiento", "lactar"),
        tag=ServiceCategory.LACTATION_CONSULTATION,
    ),
)

PROCEDURE_RULES: tuple[ClassificationRule[ServiceCategory], ...] = (
    ClassificationRule(
        rule_id="procedure_pelvic_floor",
        patterns=("piso pelvico", "suelo pelvico", "perineal"),
        tag=ServiceCategory.PELVIC_FLOOR,
    ),
    ClassificationRule(
        rule_id="procedure_birth_preparation",
        patterns=(
            "preparacion parto",
            "preparacion para el parto",
            "psicoprofilactic",
            "educacion",
        ),
        tag=ServiceCategory.BIRTH_PREPARATION,
    ),
    ClassificationRule(
        rule_id="procedure_massage",
        patterns=("masaje", "drenaje linfatico"),
        tag=ServiceCategory.MASSAGE,
    ),
    ClassificationRule(
        rule_id="procedure_electrotherapy",
        patterns=("electroterapia", "electroestimulacion"),
        tag=ServiceCategory.ELECTROTHERAPY,
    ),
    ClassificationRule(
        rule_id="procedure_hydrotherapy",
        patterns=("hidroterapia", "piscina", "acuatic"),
        tag=ServiceCategory.HYDROTHERAPY,
    ),
    ClassificationRule(
        rule_id="procedure_group",
        patterns=("grupal", "clase", "estimulacion", "sensorial", "taller"),
        tag=ServiceCategory.GROUP_PHYSICAL_THERAPY,
    ),
)

DIAGNOSIS_RULES: tuple[ClassificationRule[DiagnosisKey], ...] = (
    ClassificationRule(
        rule_id="diagnosis_pregnancy",
        patterns=("prenatal", "embarazo", "gestacion", "gestante", "embarazada"),
        tag=DiagnosisKey.PREGNANCY,
    ),
    ClassificationRule(
        rule_id="diagnosis_postpartum",
        patterns=("postnatal", "posparto", "postparto", "puerperio", "parto"),
        tag=DiagnosisKey.POSTPARTUM,
    ),
    ClassificationRule(
        rule_id="diagnosis_lactation",
        patterns=("lactancia", "amamantamiento", "lactar"),
        tag=DiagnosisKey.LACTATION_ISSUE,
    ),
    ClassificationRule(
        rule_id="diagnosis_urinary_incontinence",
        patterns=("piso pelvico", "suelo pelvico", "incontinencia"),
        tag=DiagnosisKey.URINARY_INCONTINENCE,
    ),
    ClassificationRule(
        rule_id="diagnosis_developmental_delay",
        patterns=("desarrollo", "pediatric", "psicomotor", "neurodesarrollo"),
        tag=DiagnosisKey.DEVELOPMENTAL_DELAY,
    ),
)


def evaluate_rules(
    text: str | None,
    rules: tuple[ClassificationRule[TagT], ...],
    default: TagT,
) -> Classification[TagT]:
    """Evaluate rules top to bottom; the first rule with a matching pattern wins."""
    normalized = normalize_text(text)
    if not normalized:
        return Classification(tag=default, rule_id=None, matched_pattern=None)

    for rule in rules:
        for pattern in rule.patterns:
            if pattern in normalized:
                return Classification(tag=rule.tag, rule_id=rule.rule_id, matched_pattern=pattern)

    return Classification(tag=default, rule_id=None, matched_pattern=None)
