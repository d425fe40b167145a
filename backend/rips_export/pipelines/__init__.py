"""Request-level pipelines for RIPS generation and clinical summaries."""
from .rips_generation import RIPSGenerationOutcome, generate_rips
from .summaries import SummaryOutcome, build_encounter_summary, build_patient_summary

__all__ = [
    "RIPSGenerationOutcome",
    "SummaryOutcome",
    "build_encounter_summary",
    "build_patient_summary",
    "generate_rips",
]
