from rips_export.rips import (
    RIPSConsultation,
    RIPSDocument,
    RIPSProcedure,
    RIPSServiceBlock,
    RIPSUser,
    validate_rips_document,
)
from rips_export.rips.validation import (
    RVG01_INVOICE_WITHOUT_FLAG,
    RVG01_MISSING_BILLER,
    RVG01_MISSING_INVOICE,
    RVG03_NO_SERVICES,
)


def _user(sequence: int) -> RIPSUser:
    return RIPSUser(
        document_type="RC",
        document_number=f"10670000{sequence:02d}",
        user_type="02",
        birth_date="2021-04-02",
        sex="F",
        municipality_code="23001",
        sequence=sequence,
    )


def _block(sequence: int, with_service: bool = True) -> RIPSServiceBlock:
    procedures = []
    if with_service:
        procedures.append(
            RIPSProcedure(
                provider_code="230010113301",
                started_at="2025-05-15 09:00",
                procedure_code="933900",
                modality="02",
                service_group="04",
                service_code="739",
                finality="44",
                main_diagnosis="R62.0",
                professional_document_type="CC",
                professional_document_number="1067888999",
                value=35000,
                sequence=1,
            )
        )
    return RIPSServiceBlock(procedures=procedures, sequence=sequence)


def test_linked_document_is_valid():
    document = RIPSDocument(
        biller_id="2300101133",
        invoice_number="FE-1",
        users=[_user(1), _user(2)],
        service_blocks=[_block(1), _block(2)],
    )
    assert validate_rips_document(document) == []


def test_missing_biller_and_invoice():
    document = RIPSDocument(users=[_user(1)], service_blocks=[_block(1)])
    assert validate_rips_document(document) == [RVG01_MISSING_BILLER, RVG01_MISSING_INVOICE]


def test_no_invoice_report_must_not_carry_invoice_number():
    document = RIPSDocument(
        biller_id="2300101133",
        invoice_number="FE-1",
        users=[_user(1)],
        service_blocks=[_block(1)],
    )
    assert validate_rips_document(document, no_invoice=True) == [RVG01_INVOICE_WITHOUT_FLAG]
    document = document.model_copy(update={"invoice_number": None})
    assert validate_rips_document(document, no_invoice=True) == []


def test_document_without_services_fails_rvg03():
    document = RIPSDocument(
        biller_id="2300101133",
        invoice_number="FE-1",
        users=[_user(1)],
        service_blocks=[_block(1, with_service=False)],
    )
    assert validate_rips_document(document) == [RVG03_NO_SERVICES]


def test_orphan_service_blocks_fail_rvg07():
    document = RIPSDocument(
        biller_id="2300101133",
        invoice_number="FE-1",
        users=[_user(1)],
        service_blocks=[_block(1), _block(3), _block(4)],
    )
    (error,) = validate_rips_document(document)
    assert error.startswith("RVG07:")
    assert "3, 4" in error


def test_all_rules_are_reported_together():
    document = RIPSDocument(service_blocks=[_block(2, with_service=False)])
    errors = validate_rips_document(document)

    assert [error[:5] for error in errors] == ["RVG01", "RVG01", "RVG03", "RVG07"]


def test_payload_uses_rips_field_names():
    consultation = RIPSConsultation(
        provider_code="230010113301",
        started_at="2025-05-10 14:35",
        consultation_code="890264",
        modality="09",
        service_group="01",
        service_code="739",
        finality="11",
        main_diagnosis="R62.0",
        professional_document_type="CC",
        professional_document_number="1067888999",
        value=80000,
        sequence=1,
    )
    payload = consultation.to_payload()

    assert payload["codConsulta"] == "890264"
    assert payload["causaMotivoAtencion"] == "21"
    assert payload["tipoDiagnosticoPrincipal"] == "01"
    assert payload["tipoPagoModerador"] == "04"
    assert payload["valorPagoModerador"] == 0
    assert payload["numAutorizacion"] is None
    assert payload["codDiagnosticoRelacionado1"] is None


def test_document_parses_from_wire_payload():
    document = RIPSDocument.model_validate(
        {
            "numDocumentoIdObligado": "2300101133",
            "numFactura": None,
            "usuarios": [_user(1).to_payload()],
            "serviciosTecnologias": [_block(1).to_payload()],
        }
    )

    assert document.summary() == {
        "usersProcessed": 1,
        "serviceBlocks": 1,
        "totalConsultations": 0,
        "totalProcedures": 1,
    }
    assert validate_rips_document(document, no_invoice=True) == []
