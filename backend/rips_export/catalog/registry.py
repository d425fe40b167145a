"""Immutable registry of billable-service definitions."""
from __future__ import annotations

from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from ..core.types import RawRecord
from .keys import DiagnosisKey, ServiceCategory

FALLBACK_CATEGORY = ServiceCategory.GENERAL_CONSULTATION.value
FALLBACK_DIAGNOSIS = DiagnosisKey.PHYSIOTHERAPY.value
FALLBACK_ICD_CODE = "Z51.4"


@dataclass(frozen=True)
class CatalogEntry:
    """One billable service: CUPS code, default value and RIPS classification codes."""

    key: str
    code: str
    name: str
    service_type: str
    value: int
    finality: str
    diagnosis: str
    service_group: str
    modality: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "code": self.code,
            "name": self.name,
            "serviceType": self.service_type,
            "value": self.value,
            "finality": self.finality,
            "diagnosis": self.diagnosis,
            "serviceGroup": self.service_group,
            "modality": self.modality,
        }


def _key_of(key: str | ServiceCategory) -> str:
    if isinstance(key, ServiceCategory):
        return key.value
    return str(key or "")


class ServiceCatalog:
    """
    Read-only lookup of catalog entries by internal category key.

    Every accessor falls back to the general-consultation entry when the key
    is unknown, so callers never receive ``None``. Instances are never mutated;
    ``with_overrides`` returns a new catalog.
    """

    def __init__(
        self,
        entries: Iterable[CatalogEntry],
        icd_codes: Mapping[str, str] | None = None,
    ) -> None:
        by_key = {entry.key: entry for entry in entries}
        if FALLBACK_CATEGORY not in by_key:
            raise ValueError(
                f"catalog must define the fallback category '{FALLBACK_CATEGORY}'"
            )
        self._entries: Mapping[str, CatalogEntry] = MappingProxyType(by_key)
        self._icd_codes: Mapping[str, str] = MappingProxyType(dict(icd_codes or {}))

    def __contains__(self, key: object) -> bool:
        return _key_of(key) in self._entries  # type: ignore[arg-type]

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> tuple[CatalogEntry, ...]:
        return tuple(self._entries.values())

    @property
    def fallback_entry(self) -> CatalogEntry:
        return self._entries[FALLBACK_CATEGORY]

    def entry_of(self, key: str | ServiceCategory) -> CatalogEntry:
        return self._entries.get(_key_of(key), self.fallback_entry)

    def value_of(self, key: str | ServiceCategory) -> int:
        return self.entry_of(key).value

    def code_of(self, key: str | ServiceCategory) -> str:
        return self.entry_of(key).code

    def finality_of(self, key: str | ServiceCategory) -> str:
        return self.entry_of(key).finality

    def diagnosis_of(self, key: str | ServiceCategory) -> str:
        return self.entry_of(key).diagnosis

    def icd_code_of(self, diagnosis_key: str | DiagnosisKey) -> str:
        key = diagnosis_key.value if isinstance(diagnosis_key, DiagnosisKey) else diagnosis_key
        return self._icd_codes.get(key) or self._icd_codes.get(FALLBACK_DIAGNOSIS, FALLBACK_ICD_CODE)

    def with_overrides(self, entries: Iterable[CatalogEntry]) -> "ServiceCatalog":
        """Return a new catalog where the given entries replace same-key entries."""
        merged = dict(self._entries)
        for entry in entries:
            merged[entry.key] = entry
        return ServiceCatalog(merged.values(), self._icd_codes)


def catalog_entry_from_record(record: RawRecord, base: CatalogEntry | None = None) -> CatalogEntry:
    """
    Build a catalog entry from a stored CUPS row.

    Stored rows use the original field names (``claveInterna``, ``codigo``,
    ``valor``, ``finalidad``, ``diagnosticoCIE``, ``grupoServicio``,
    ``modalidad``). Missing fields are taken from ``base`` when given.
    """
    key = str(record.get("claveInterna") or record.get("key") or "").strip()
    code = str(record.get("codigo") or record.get("code") or "").strip()
    if not key or not code:
        raise ValueError("catalog row requires 'claveInterna' and 'codigo'")

    fields = {
        "code": code,
        "name": record.get("nombre") or record.get("name"),
        "service_type": record.get("tipoServicio") or record.get("serviceType"),
        "value": record.get("valor", record.get("value")),
        "finality": record.get("finalidad") or record.get("finality"),
        "diagnosis": record.get("diagnosticoCIE") or record.get("diagnosis"),
        "service_group": record.get("grupoServicio") or record.get("serviceGroup"),
        "modality": record.get("modalidad") or record.get("modality"),
    }
    if base is not None:
        present = {name: value for name, value in fields.items() if value is not None}
        if "value" in present:
            present["value"] = int(present["value"])
        return replace(base, key=key, **present)

    return CatalogEntry(
        key=key,
        code=code,
        name=str(fields["name"] or code),
        service_type=str(fields["service_type"] or "procedimiento"),
        value=int(fields["value"] or 0),
        finality=str(fields["finality"] or "11"),
        diagnosis=str(fields["diagnosis"] or FALLBACK_ICD_CODE),
        service_group=str(fields["service_group"] or "04"),
        modality=str(fields["modality"] or "01"),
    )
