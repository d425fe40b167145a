"""Service catalog: CUPS codes, reference values and RIPS code domains."""
from typing import Iterable

from ..core.types import RawRecord
from .defaults import DEFAULT_CATALOG_ENTRIES, ICD10_CODES
from .keys import CONSULTATION_CATEGORIES, DiagnosisKey, ServiceCategory
from .registry import CatalogEntry, ServiceCatalog, catalog_entry_from_record


def build_default_catalog() -> ServiceCatalog:
    """Build the catalog from the built-in entries."""
    return ServiceCatalog(DEFAULT_CATALOG_ENTRIES, ICD10_CODES)


def overlay_catalog_records(catalog: ServiceCatalog, records: Iterable[RawRecord]) -> ServiceCatalog:
    """Return a catalog where active stored rows replace the matching entries."""
    overrides = []
    for record in records:
        if record.get("activo", True) is False:
            continue
        key = str(record.get("claveInterna") or record.get("key") or "").strip()
        code = str(record.get("codigo") or record.get("code") or "").strip()
        if not key or not code:
            continue
        base = catalog.entry_of(key) if key in catalog else None
        overrides.append(catalog_entry_from_record(record, base))
    return catalog.with_overrides(overrides)


__all__ = [
    "CatalogEntry",
    "ServiceCatalog",
    "ServiceCategory",
    "DiagnosisKey",
    "CONSULTATION_CATEGORIES",
    "build_default_catalog",
    "overlay_catalog_records",
    "catalog_entry_from_record",
]
