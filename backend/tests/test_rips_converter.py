from datetime import date
from unittest.mock import patch

import pytest

from rips_export.aggregation import RecordAggregator
from rips_export.catalog import ServiceCategory
from rips_export.config import ProviderSettings
from rips_export.records import DateRange, InMemoryRecordStore, Patient, PatientRecords
from rips_export.rips import (
    ConversionState,
    RIPSConverter,
    document_type_warning,
    map_sex,
    map_user_type,
)

from conftest import REFERENCE_DATE

MAY_2025 = DateRange(start=date(2025, 5, 1), end=date(2025, 5, 31))


def _converter(services) -> RIPSConverter:
    return RIPSConverter(
        services["catalog"],
        services["classifier"],
        services["provider"],
        reference_date=REFERENCE_DATE,
    )


async def _collect(store, patient_ids=None):
    result = await RecordAggregator(store).collect(patient_ids, MAY_2025)
    return list(result.patients)


@pytest.mark.asyncio
async def test_convert_builds_linked_users_and_service_blocks(services):
    patients = await _collect(services["store"])
    result = _converter(services).convert(patients, invoice_number="FE-1001")

    assert result.state is ConversionState.DONE
    assert result.is_valid
    payload = result.rips.to_payload()
    assert payload["numDocumentoIdObligado"] == "2300101133"
    assert payload["numFactura"] == "FE-1001"
    assert [user["consecutivo"] for user in payload["usuarios"]] == [1, 2]
    assert [block["consecutivo"] for block in payload["serviciosTecnologias"]] == [1, 2]
    assert set(payload["serviciosTecnologias"][0]) == {
        "consultas",
        "procedimientos",
        "urgencias",
        "hospitalizacion",
        "recienNacidos",
        "medicamentos",
        "otrosServicios",
        "consecutivo",
    }
    assert result.summary == {
        "usersProcessed": 2,
        "serviceBlocks": 2,
        "totalConsultations": 2,
        "totalProcedures": 2,
    }


@pytest.mark.asyncio
async def test_user_fields_follow_patient_record(services):
    patients = await _collect(services["store"], ["p-adult"])
    result = _converter(services).convert(patients, invoice_number="FE-1001")

    (user,) = result.rips.to_payload()["usuarios"]
    assert user == {
        "tipoDocumentoIdentificacion": "CC",
        "numDocumentoIdentificacion": "52000111",
        "tipoUsuario": "01",
        "fechaNacimiento": "1992-03-10",
        "codSexo": "F",
        "codPaisResidencia": "170",
        "codMunicipioResidencia": "23001",
        "codZonaTerritorialResidencia": "01",
        "incapacidad": "02",
        "consecutivo": 1,
    }


@pytest.mark.asyncio
async def test_consultation_entry_uses_classification_and_recorded_value(services):
    patients = await _collect(services["store"], ["p-adult"])
    result = _converter(services).convert(patients, invoice_number="FE-1001")

    (consultation,) = result.rips.to_payload()["serviciosTecnologias"][0]["consultas"]
    assert consultation["codConsulta"] == "890264"
    assert consultation["finalidadTecnologiaSalud"] == "05"
    assert consultation["codDiagnosticoPrincipal"] == "Z34.9"
    assert consultation["vrServicio"] == 95000
    assert consultation["fechaInicioAtencion"] == "2025-05-20 00:00"
    assert consultation["tipoDocumentoIdentificacion"] == "CC"
    assert consultation["numDocumentoIdentificacion"] == "00000000"
    assert consultation["codPrestador"] == "230010113301"
    assert consultation["codServicio"] == "739"
    assert consultation["consecutivo"] == 1


@pytest.mark.asyncio
async def test_missing_value_uses_catalog_default(services):
    patients = await _collect(services["store"], ["p-child"])
    result = _converter(services).convert(patients, invoice_number="FE-1001")

    (consultation,) = result.rips.to_payload()["serviciosTecnologias"][0]["consultas"]
    assert consultation["vrServicio"] == services["catalog"].value_of(ServiceCategory.GENERAL_CONSULTATION)
    assert consultation["fechaInicioAtencion"] == "2025-05-10 14:35"
    assert consultation["codDiagnosticoPrincipal"] == "R62.0"


@pytest.mark.asyncio
async def test_perinatal_session_defaults_to_birth_preparation(services):
    patients = await _collect(services["store"], ["p-adult"])
    result = _converter(services).convert(patients, invoice_number="FE-1001")

    procedures = result.rips.to_payload()["serviciosTecnologias"][0]["procedimientos"]
    perinatal = procedures[1]
    assert perinatal["codProcedimiento"] == services["catalog"].code_of(ServiceCategory.BIRTH_PREPARATION)
    assert perinatal["numDocumentoIdentificacion"] == "1067888999"
    assert [procedure["consecutivo"] for procedure in procedures] == [1, 2]


# Scenario 1: a five-year-old with a citizenship card converts with a warning.
@pytest.mark.asyncio
async def test_document_type_mismatch_is_a_warning_only(services):
    patients = await _collect(services["store"], ["p-child"])
    result = _converter(services).convert(patients, invoice_number="FE-1001")

    assert result.is_valid
    assert len(result.rips.users) == 1
    mismatch = [warning for warning in result.warnings if "Tipo de documento CC" in warning]
    assert len(mismatch) == 1
    assert "edad 5" in mismatch[0]
    assert "RC" in mismatch[0]


# Scenario 2: no-invoice report with a single pelvic-floor group session.
@pytest.mark.asyncio
async def test_no_invoice_group_session_becomes_pelvic_floor_procedure(services):
    store = InMemoryRecordStore(
        {
            "pacientes": [
                {
                    "_id": "p-1",
                    "nombres": "Ana",
                    "cedula": "43000222",
                    "fechaNacimiento": "1990-02-02",
                    "genero": "Femenino",
                    "lineaAtencion": "adultos",
                }
            ],
            "clases": [
                {
                    "_id": "c-1",
                    "titulo": "Terapia Grupal de Piso Pélvico",
                    "fecha": "2025-05-15T09:00:00Z",
                    "ninos": [{"paciente": "p-1", "asistio": True}],
                }
            ],
        }
    )
    patients = await _collect(store)
    result = _converter(services).convert(patients, no_invoice=True)

    assert result.errors == ()
    assert result.rips.invoice_number is None
    assert len(result.rips.users) == 1
    (block,) = result.rips.service_blocks
    assert block.consultations == []
    (procedure,) = block.procedures
    pelvic_floor = services["catalog"].entry_of(ServiceCategory.PELVIC_FLOOR)
    assert procedure.procedure_code == pelvic_floor.code
    assert procedure.finality == pelvic_floor.finality
    assert procedure.main_diagnosis == "N39.3"
    assert procedure.value == pelvic_floor.value


# Scenario 4: a failure for one patient leaves the rest of the batch intact.
@pytest.mark.asyncio
async def test_patient_failure_is_isolated(services):
    patients = await _collect(services["store"])
    converter = _converter(services)
    original = converter._service_value

    def _failing_value(event, category):
        if event.id == "v-child":
            raise RuntimeError("value lookup failed")
        return original(event, category)

    with patch.object(converter, "_service_value", side_effect=_failing_value):
        result = converter.convert(patients, invoice_number="FE-1001")

    assert result.state is ConversionState.DONE
    assert not result.is_valid
    assert result.errors == ("Patient p-child: value lookup failed",)
    assert [user.document_number for user in result.rips.users] == ["52000111"]
    # The surviving patient keeps its position-based sequence number.
    assert [user.sequence for user in result.rips.users] == [2]
    assert [block.sequence for block in result.rips.service_blocks] == [2]


def test_missing_invoice_identity_fails_before_conversion(services):
    result = _converter(services).convert([], invoice_number=None)

    assert result.state is ConversionState.FAILED
    assert result.rips is None
    assert result.errors[0].startswith("Invalid input:")


def test_non_list_patient_payload_fails(services):
    result = _converter(services).convert("p-child", invoice_number="FE-1")  # type: ignore[arg-type]

    assert result.state is ConversionState.FAILED
    assert result.summary["usersProcessed"] == 0


def test_validation_runs_when_nothing_converted(services):
    result = _converter(services).convert([], invoice_number="FE-1")

    assert result.state is ConversionState.DONE
    assert result.errors == ("RVG03: No se encontraron servicios prestados",)


def test_patient_without_document_number_is_reported(services):
    records = PatientRecords(
        patient=Patient.model_validate({"_id": "p-x", "tipoDocumento": "TI", "fechaNacimiento": "2015-01-01"}),
        events=(),
    )
    result = _converter(services).convert([records], invoice_number="FE-1")

    assert result.errors[0] == "Patient p-x: document number is required"


def test_custom_provider_settings_flow_into_document(services):
    provider = ProviderSettings(nit="900123456", provider_code="230010000001", reps_service_code="740")
    converter = RIPSConverter(services["catalog"], services["classifier"], provider, REFERENCE_DATE)

    result = converter.convert([], invoice_number="FE-1")
    assert result.rips.biller_id == "900123456"


@pytest.mark.parametrize(
    ("document_type", "age", "warns"),
    [
        ("RC", 3, False),
        ("CN", 0, False),
        ("TI", 3, True),
        ("CC", 6, True),
        ("TI", 7, False),
        ("MS", 12, False),
        ("RC", 12, True),
        ("CC", 17, True),
        ("CC", 18, False),
        ("TI", 40, False),
    ],
)
def test_document_type_warning_matrix(document_type, age, warns):
    assert (document_type_warning(document_type, age) is not None) is warns


@pytest.mark.parametrize(
    ("gender", "expected"),
    [("Femenino", "F"), ("masculino", "M"), ("Prefiero no decir", "M"), (None, "M")],
)
def test_map_sex(gender, expected):
    assert map_sex(gender) == expected


@pytest.mark.parametrize(
    ("regime", "expected"),
    [("Contributivo", "01"), ("subsidiado", "02"), ("Especial", "03"), ("No asegurado", "04"), (None, "04")],
)
def test_map_user_type(regime, expected):
    assert map_user_type(regime) == expected
