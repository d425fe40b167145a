"""
RIPS and clinical-summary export for perinatal and pediatric physiotherapy records.

Turns consultations, group sessions and perinatal sessions into a RIPS JSON
document (Res. 1036 of 2022) and into FHIR R4 clinical-summary bundles.
"""

__version__ = "0.1.0"

from .catalog import ServiceCatalog, build_default_catalog
from .classification import Classifier
from .config import ProviderSettings, get_services
from .rips import ConversionResult, RIPSConverter, RIPSDocument, validate_rips_document

__all__ = [
    "ServiceCatalog",
    "build_default_catalog",
    "Classifier",
    "ProviderSettings",
    "get_services",
    "ConversionResult",
    "RIPSConverter",
    "RIPSDocument",
    "validate_rips_document",
]
