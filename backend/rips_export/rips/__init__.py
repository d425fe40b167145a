"""RIPS document models, conversion and structural validation."""
from .converter import (
    ConversionResult,
    ConversionState,
    RIPSConverter,
    RIPSInputError,
    document_type_warning,
    map_sex,
    map_user_type,
)
from .models import (
    RIPSConsultation,
    RIPSDocument,
    RIPSProcedure,
    RIPSServiceBlock,
    RIPSUser,
)
from .validation import validate_rips_document

__all__ = [
    "ConversionResult",
    "ConversionState",
    "RIPSConverter",
    "RIPSInputError",
    "document_type_warning",
    "map_sex",
    "map_user_type",
    "RIPSConsultation",
    "RIPSDocument",
    "RIPSProcedure",
    "RIPSServiceBlock",
    "RIPSUser",
    "validate_rips_document",
]
