"""Configuration module for the export backend."""
from .settings import (
    ProviderSettings,
    get_catalog,
    get_provider_settings,
    get_services,
    prime_catalog_from_store,
    reset_services,
)

__all__ = [
    "ProviderSettings",
    "get_catalog",
    "get_provider_settings",
    "get_services",
    "prime_catalog_from_store",
    "reset_services",
]
