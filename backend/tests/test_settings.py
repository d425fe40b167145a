import json

import pytest

from rips_export.catalog import ServiceCategory
from rips_export.config import (
    ProviderSettings,
    get_catalog,
    get_provider_settings,
    get_services,
    prime_catalog_from_store,
    reset_services,
)

from conftest import SAMPLE_COLLECTIONS


@pytest.fixture(autouse=True)
def _fresh_services(monkeypatch):
    for name in (
        "NIT_FACTURADOR",
        "COD_PRESTADOR",
        "COD_SERVICIO_REPS",
        "RIPS_RECORDS_PATH",
        "RIPS_CATALOG_PATH",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_services()
    yield
    reset_services()


def test_provider_settings_read_environment(monkeypatch):
    monkeypatch.setenv("NIT_FACTURADOR", "900123456")
    monkeypatch.setenv("COD_SERVICIO_REPS", "  ")

    provider = ProviderSettings.from_env()
    assert provider.nit == "900123456"
    # Blank values keep the default.
    assert provider.reps_service_code == "739"
    assert provider.as_dict()["codPrestador"] == "230010113301"


def test_services_are_cached_until_reset():
    services = get_services()
    assert get_services() is services
    assert get_provider_settings() == ProviderSettings()

    reset_services()
    assert get_services() is not services


def test_catalog_file_overrides_defaults(monkeypatch, tmp_path):
    catalog_file = tmp_path / "catalog.json"
    catalog_file.write_text(
        json.dumps({"codigosCUPS": [{"claveInterna": "therapeutic-massage", "codigo": "931001"}]}),
        encoding="utf-8",
    )
    monkeypatch.setenv("RIPS_CATALOG_PATH", str(catalog_file))

    assert get_catalog().code_of(ServiceCategory.MASSAGE) == "931001"


@pytest.mark.asyncio
async def test_prime_catalog_from_store_replaces_catalog_and_classifier(monkeypatch, tmp_path):
    records = dict(SAMPLE_COLLECTIONS)
    records["codigosCUPS"] = [{"claveInterna": "hydrotherapy", "codigo": "931002", "valor": 60000}]
    records_file = tmp_path / "records.json"
    records_file.write_text(json.dumps(records), encoding="utf-8")
    monkeypatch.setenv("RIPS_RECORDS_PATH", str(records_file))

    services = get_services()
    original_classifier = services["classifier"]
    catalog = await prime_catalog_from_store()

    assert catalog.value_of(ServiceCategory.HYDROTHERAPY) == 60000
    assert get_services()["catalog"] is catalog
    assert get_services()["classifier"] is not original_classifier


@pytest.mark.asyncio
async def test_prime_catalog_keeps_defaults_when_store_fails(monkeypatch):
    services = get_services()
    original = services["catalog"]

    async def _fail():
        raise RuntimeError("catalog collection unavailable")

    monkeypatch.setattr(services["store"], "catalog_entries", _fail)
    assert await prime_catalog_from_store() is original


@pytest.mark.asyncio
async def test_prime_catalog_ignores_rows_without_internal_key(monkeypatch, tmp_path):
    records = dict(SAMPLE_COLLECTIONS)
    records["codigosCUPS"] = [
        {"codigo": "890201", "nombre": "CONSULTA GENERAL", "valor": 60000, "activo": True}
    ]
    records_file = tmp_path / "records.json"
    records_file.write_text(json.dumps(records), encoding="utf-8")
    monkeypatch.setenv("RIPS_RECORDS_PATH", str(records_file))

    defaults = get_services()["catalog"]
    catalog = await prime_catalog_from_store()

    assert len(catalog) == len(defaults)
    for category in ServiceCategory:
        assert catalog.entry_of(category) == defaults.entry_of(category)


@pytest.mark.asyncio
async def test_prime_catalog_keeps_defaults_when_rows_are_malformed(monkeypatch):
    services = get_services()
    original = services["catalog"]

    async def _rows():
        return [{"claveInterna": "hydrotherapy", "codigo": "931002", "valor": "sesenta mil"}]

    monkeypatch.setattr(services["store"], "catalog_entries", _rows)
    assert await prime_catalog_from_store() is original
    assert get_services()["catalog"] is original
