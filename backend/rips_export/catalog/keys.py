"""Stable internal keys for billable service categories and diagnoses."""
from enum import Enum


class ServiceCategory(str, Enum):
    """Internal category key of a billable service."""

    GENERAL_CONSULTATION = "general-consultation"
    PRENATAL_CONSULTATION = "prenatal-consultation"
    POSTNATAL_CONSULTATION = "postnatal-consultation"
    LACTATION_CONSULTATION = "lactation-consultation"
    PELVIC_FLOOR = "pelvic-floor-reeducation"
    BIRTH_PREPARATION = "birth-preparation"
    MASSAGE = "therapeutic-massage"
    ELECTROTHERAPY = "electrotherapy"
    HYDROTHERAPY = "hydrotherapy"
    GROUP_PHYSICAL_THERAPY = "group-physical-therapy"
    INDIVIDUAL_PHYSICAL_THERAPY = "individual-physical-therapy"


class DiagnosisKey(str, Enum):
    """Internal key of a diagnosis the classifier can infer."""

    PHYSIOTHERAPY = "physiotherapy"
    PREGNANCY = "pregnancy"
    POSTPARTUM = "postpartum"
    LACTATION_ISSUE = "lactation-issue"
    URINARY_INCONTINENCE = "urinary-incontinence"
    DEVELOPMENTAL_DELAY = "developmental-delay"
    GENITAL_PROLAPSE = "genital-prolapse"
    CEREBRAL_PALSY = "cerebral-palsy"
    HEALTH_PROMOTION = "health-promotion"


CONSULTATION_CATEGORIES = frozenset(
    {
        ServiceCategory.GENERAL_CONSULTATION,
        ServiceCategory.PRENATAL_CONSULTATION,
        ServiceCategory.POSTNATAL_CONSULTATION,
        ServiceCategory.LACTATION_CONSULTATION,
    }
)
