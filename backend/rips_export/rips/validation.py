"""Structural validation of RIPS documents (rules RVG01, RVG03, RVG07)."""
from __future__ import annotations

from .models import RIPSDocument

RVG01_MISSING_BILLER = "RVG01: Falta información básica del obligado"
RVG01_MISSING_INVOICE = "RVG01: Falta número de factura (obligatorio si no es reporte sin factura)"
RVG01_INVOICE_WITHOUT_FLAG = "RVG01: Para reporte sin factura, numFactura debe ser null"
RVG03_NO_SERVICES = "RVG03: No se encontraron servicios prestados"
RVG07_ORPHAN_SERVICES = "RVG07: Existen servicios sin usuario correspondiente"


def validate_rips_document(document: RIPSDocument, no_invoice: bool = False) -> list[str]:
    """
    Validate the cross-document invariants of a RIPS document.

    Every rule is checked; the returned list holds all errors found (empty when
    valid).
    """
    errors: list[str] = []

    if not document.biller_id:
        errors.append(RVG01_MISSING_BILLER)
    if not no_invoice and not document.invoice_number:
        errors.append(RVG01_MISSING_INVOICE)
    if no_invoice and document.invoice_number is not None:
        errors.append(RVG01_INVOICE_WITHOUT_FLAG)

    if not any(not block.is_empty for block in document.service_blocks):
        errors.append(RVG03_NO_SERVICES)

    user_sequences = {user.sequence for user in document.users}
    orphaned = sorted(
        {block.sequence for block in document.service_blocks} - user_sequences
    )
    if orphaned:
        errors.append(f"{RVG07_ORPHAN_SERVICES} (consecutivo {', '.join(map(str, orphaned))})")

    return errors
