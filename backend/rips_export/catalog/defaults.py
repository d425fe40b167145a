"""Built-in catalog data for perinatal and pediatric physiotherapy services.

CUPS codes follow Res. 2706 of 2025, RIPS code domains follow Res. 1036 of
2022. Values are reference prices in COP and can be overridden per deployment
through catalog rows in the record store or a JSON catalog file.
"""
from __future__ import annotations

from .keys import DiagnosisKey, ServiceCategory
from .registry import CatalogEntry

SERVICE_GROUP_CONSULTATIONS = "01"
SERVICE_GROUP_MEDICATIONS = "02"
SERVICE_GROUP_SURGICAL = "03"
SERVICE_GROUP_PROCEDURES = "04"
SERVICE_GROUP_OTHER = "05"

MODALITY_INDIVIDUAL = "01"
MODALITY_GROUP = "02"
MODALITY_OUTPATIENT = "09"

DEFAULT_CATALOG_ENTRIES: tuple[CatalogEntry, ...] = (
    CatalogEntry(
        key=ServiceCategory.GENERAL_CONSULTATION.value,
        code="890264",
        name="CONSULTA DE PRIMERA VEZ POR FISIOTERAPIA",
        service_type="consulta",
        value=80000,
        finality="11",
        diagnosis="Z51.4",
        service_group=SERVICE_GROUP_CONSULTATIONS,
        modality=MODALITY_OUTPATIENT,
    ),
    CatalogEntry(
        key=ServiceCategory.PRENATAL_CONSULTATION.value,
        code="890264",
        name="VALORACIÓN PRENATAL - PRIMERA VEZ",
        service_type="consulta",
        value=90000,
        finality="05",
        diagnosis="Z34.9",
        service_group=SERVICE_GROUP_CONSULTATIONS,
        modality=MODALITY_OUTPATIENT,
    ),
    CatalogEntry(
        key=ServiceCategory.POSTNATAL_CONSULTATION.value,
        code="890264",
        name="VALORACIÓN POSTNATAL - PRIMERA VEZ",
        service_type="consulta",
        value=90000,
        finality="05",
        diagnosis="Z39.2",
        service_group=SERVICE_GROUP_CONSULTATIONS,
        modality=MODALITY_OUTPATIENT,
    ),
    CatalogEntry(
        key=ServiceCategory.LACTATION_CONSULTATION.value,
        code="890264",
        name="VALORACIÓN DE LACTANCIA - PRIMERA VEZ",
        service_type="consulta",
        value=90000,
        finality="06",
        diagnosis="Z39.1",
        service_group=SERVICE_GROUP_CONSULTATIONS,
        modality=MODALITY_OUTPATIENT,
    ),
    CatalogEntry(
        key=ServiceCategory.PELVIC_FLOOR.value,
        code="938610",
        name="ENTRENAMIENTO FUNCIONAL DE MÚSCULOS DE PISO PÉLVICO",
        service_type="procedimiento",
        value=50000,
        finality="44",
        diagnosis="N39.3",
        service_group=SERVICE_GROUP_PROCEDURES,
        modality=MODALITY_INDIVIDUAL,
    ),
    CatalogEntry(
        key=ServiceCategory.BIRTH_PREPARATION.value,
        code="890384",
        name="SESIÓN DE EDUCACIÓN PERINATAL (CONTROL)",
        service_type="procedimiento",
        value=50000,
        finality="05",
        diagnosis="Z34.9",
        service_group=SERVICE_GROUP_PROCEDURES,
        modality=MODALITY_INDIVIDUAL,
    ),
    CatalogEntry(
        key=ServiceCategory.MASSAGE.value,
        code="931000",
        name="MASAJE TERAPÉUTICO",
        service_type="procedimiento",
        value=45000,
        finality="44",
        diagnosis="Z51.4",
        service_group=SERVICE_GROUP_PROCEDURES,
        modality=MODALITY_INDIVIDUAL,
    ),
    CatalogEntry(
        key=ServiceCategory.ELECTROTHERAPY.value,
        code="931000",
        name="ELECTROTERAPIA",
        service_type="procedimiento",
        value=45000,
        finality="44",
        diagnosis="Z51.4",
        service_group=SERVICE_GROUP_PROCEDURES,
        modality=MODALITY_INDIVIDUAL,
    ),
    CatalogEntry(
        key=ServiceCategory.HYDROTHERAPY.value,
        code="931000",
        name="HIDROTERAPIA",
        service_type="procedimiento",
        value=45000,
        finality="44",
        diagnosis="Z51.4",
        service_group=SERVICE_GROUP_PROCEDURES,
        modality=MODALITY_INDIVIDUAL,
    ),
    CatalogEntry(
        key=ServiceCategory.GROUP_PHYSICAL_THERAPY.value,
        code="933900",
        name="ACTIVIDADES DE INTEGRACIÓN SENSORIAL / CLASES GRUPALES",
        service_type="procedimiento",
        value=35000,
        finality="44",
        diagnosis="Z51.4",
        service_group=SERVICE_GROUP_PROCEDURES,
        modality=MODALITY_GROUP,
    ),
    CatalogEntry(
        key=ServiceCategory.INDIVIDUAL_PHYSICAL_THERAPY.value,
        code="931000",
        name="FISIOTERAPIA INTEGRAL / SESIÓN INDIVIDUAL",
        service_type="procedimiento",
        value=45000,
        finality="44",
        diagnosis="Z51.4",
        service_group=SERVICE_GROUP_PROCEDURES,
        modality=MODALITY_INDIVIDUAL,
    ),
)

ICD10_CODES: dict[str, str] = {
    DiagnosisKey.PHYSIOTHERAPY.value: "Z51.4",
    DiagnosisKey.PREGNANCY.value: "Z34.9",
    DiagnosisKey.POSTPARTUM.value: "Z39.2",
    DiagnosisKey.LACTATION_ISSUE.value: "Z39.1",
    DiagnosisKey.URINARY_INCONTINENCE.value: "N39.3",
    DiagnosisKey.DEVELOPMENTAL_DELAY.value: "R62.0",
    DiagnosisKey.GENITAL_PROLAPSE.value: "N81.9",
    DiagnosisKey.CEREBRAL_PALSY.value: "G80.9",
    DiagnosisKey.HEALTH_PROMOTION.value: "Z00.0",
}

PAYMENT_MODERATOR_NOT_APPLICABLE = "04"
PAYMENT_MODERATOR_TYPES: dict[str, str] = {
    "01": "Copago",
    "02": "Cuota moderadora",
    "03": "Porcentaje",
    "04": "No aplica",
}

ATTENTION_CAUSE_OUTPATIENT = "21"
ATTENTION_CAUSES: dict[str, str] = {
    "01": "Urgencias",
    "02": "Hospitalización",
    "21": "Consulta externa",
}

ADMISSION_ROUTE_OUTPATIENT = "01"
DIAGNOSIS_TYPE_CONFIRMED = "01"
DISABILITY_NOT_APPLICABLE = "02"

DOCUMENT_TYPES: dict[str, str] = {
    "CC": "Cédula ciudadanía",
    "TI": "Tarjeta identidad",
    "RC": "Registro civil",
    "CE": "Cédula extranjería",
    "PA": "Pasaporte",
    "PE": "Permiso especial",
    "CN": "Certificado nacido vivo",
    "MS": "Menor sin identificar",
}

USER_TYPES: dict[str, str] = {
    "01": "Cotizante",
    "02": "Beneficiario",
    "03": "Especial",
    "04": "No asegurado",
}

AFFILIATION_REGIME_USER_TYPES: dict[str, str] = {
    "contributivo": "01",
    "subsidiado": "02",
    "especial": "03",
    "no asegurado": "04",
}
UNINSURED_USER_TYPE = "04"

SEX_CODES: dict[str, str] = {
    "M": "Masculino",
    "F": "Femenino",
    "I": "Indeterminado",
}

# Stored gender labels; unknown or undisclosed values report "M".
SEX_BY_GENDER_LABEL: dict[str, str] = {
    "masculino": "M",
    "m": "M",
    "femenino": "F",
    "f": "F",
    "indeterminado": "I",
    "i": "I",
}
DEFAULT_SEX_CODE = "M"

MIN_SERVICE_VALUE = 1000
MAX_SERVICE_VALUE = 1000000
MAX_SERVICES_PER_INVOICE = 100
RIPS_DATE_FORMATS = ("AAAA-MM-DD HH:MM",)
RESOLUTION_VERSION = "1036 de 2022"
