"""Configuration and service factory for the export backend."""
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from ..catalog import ServiceCatalog, build_default_catalog, overlay_catalog_records
from ..classification import Classifier
from ..core.logging_utils import log_event
from ..records import BaseRecordStore, InMemoryRecordStore


# Singleton service instances
_services: Dict[str, Any] = None

_DEFAULT_NIT = "2300101133"
_DEFAULT_PROVIDER_CODE = "230010113301"
_DEFAULT_PROVIDER_NAME = "Dayan Ivonne Villegas Gamboa"
_DEFAULT_SPECIALTY = "Fisioterapia"
_DEFAULT_REPS_SERVICE_CODE = "739"
_DEFAULT_MUNICIPALITY = "23001"


@dataclass(frozen=True)
class ProviderSettings:
    """Identity of the billing provider as registered in REPS."""

    nit: str = _DEFAULT_NIT
    provider_code: str = _DEFAULT_PROVIDER_CODE
    name: str = _DEFAULT_PROVIDER_NAME
    specialty: str = _DEFAULT_SPECIALTY
    reps_service_code: str = _DEFAULT_REPS_SERVICE_CODE
    default_municipality: str = _DEFAULT_MUNICIPALITY

    @classmethod
    def from_env(cls) -> "ProviderSettings":
        return cls(
            nit=_env("NIT_FACTURADOR", _DEFAULT_NIT),
            provider_code=_env("COD_PRESTADOR", _DEFAULT_PROVIDER_CODE),
            name=_env("PROVIDER_NAME", _DEFAULT_PROVIDER_NAME),
            specialty=_env("PROVIDER_SPECIALTY", _DEFAULT_SPECIALTY),
            reps_service_code=_env("COD_SERVICIO_REPS", _DEFAULT_REPS_SERVICE_CODE),
            default_municipality=_env("RIPS_DEFAULT_MUNICIPALITY", _DEFAULT_MUNICIPALITY),
        )

    def as_dict(self) -> Dict[str, str]:
        return {
            "nit": self.nit,
            "codPrestador": self.provider_code,
            "nombre": self.name,
            "especialidad": self.specialty,
            "codServicioREPS": self.reps_service_code,
            "codMunicipioDefecto": self.default_municipality,
        }


def _env(name: str, default: str) -> str:
    value = os.environ.get(name, "").strip()
    return value or default


def _build_store() -> BaseRecordStore:
    records_path = os.environ.get("RIPS_RECORDS_PATH", "").strip()
    if not records_path:
        log_event(
            component="services",
            event="record_store_empty",
            level="WARNING",
            details={"reason": "RIPS_RECORDS_PATH not set"},
        )
        return InMemoryRecordStore()
    log_event(component="services", event="record_store_loaded", details={"path": records_path})
    return InMemoryRecordStore.from_json_file(records_path)


def _build_catalog() -> ServiceCatalog:
    catalog = build_default_catalog()
    catalog_path = os.environ.get("RIPS_CATALOG_PATH", "").strip()
    if not catalog_path:
        return catalog
    rows = json.loads(Path(catalog_path).read_text(encoding="utf-8"))
    if isinstance(rows, dict):
        rows = rows.get("codigosCUPS", [])
    log_event(
        component="services",
        event="catalog_file_loaded",
        details={"path": catalog_path, "rows": len(rows)},
    )
    return overlay_catalog_records(catalog, rows)


def get_services() -> Dict[str, Any]:
    """
    Factory function to get or initialize service instances.

    Returns a dictionary with:
        - 'catalog': immutable service catalog
        - 'classifier': rule-table classifier bound to the catalog
        - 'store': read-only record store
        - 'provider': provider settings
    """
    global _services
    if _services is None:
        catalog = _build_catalog()
        _services = {
            "catalog": catalog,
            "classifier": Classifier(catalog),
            "store": _build_store(),
            "provider": ProviderSettings.from_env(),
        }
        log_event(
            component="services",
            event="services_initialized",
            details={"catalog_entries": len(catalog)},
        )
    return _services


async def prime_catalog_from_store() -> ServiceCatalog:
    """
    Overlay active catalog rows from the record store onto the catalog.

    Runs once at startup; the catalog and classifier are replaced together so
    both keep referring to the same immutable catalog. A failing read keeps the
    built-in catalog.
    """
    services = get_services()
    try:
        rows = await services["store"].catalog_entries()
    except Exception as err:
        log_event(
            component="services",
            event="catalog_store_unavailable",
            level="WARNING",
            details={"error": str(err)},
        )
        return services["catalog"]
    if not rows:
        return services["catalog"]

    try:
        catalog = overlay_catalog_records(services["catalog"], rows)
    except (TypeError, ValueError) as err:
        log_event(
            component="services",
            event="catalog_rows_rejected",
            level="WARNING",
            details={"error": str(err), "store_rows": len(rows)},
        )
        return services["catalog"]
    services["catalog"] = catalog
    services["classifier"] = Classifier(catalog)
    log_event(
        component="services",
        event="catalog_primed",
        details={"store_rows": len(rows), "catalog_entries": len(catalog)},
    )
    return catalog


def reset_services() -> None:
    """Drop the cached services so the next call rebuilds them from the environment."""
    global _services
    _services = None


def get_catalog() -> ServiceCatalog:
    """Get the active service catalog."""
    return get_services()["catalog"]


def get_provider_settings() -> ProviderSettings:
    """Get the provider settings."""
    return get_services()["provider"]
