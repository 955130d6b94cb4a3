"""Core processors for runner AMI operations."""

from .report_generator import CSVReportGenerator
from .step_processor import ProcessingResult, StepProcessor

__all__ = [
    "CSVReportGenerator",
    "ProcessingResult",
    "StepProcessor",
]
