"""Domain models for the CSV lead import.

This package contains all domain model classes used throughout the application:
the target field registry, the header mapping, row level records and the
import outcome.
"""

from .config_models import DatabaseConfig, ImportConfig, ReferenceListConfig
from .error_record import ErrorRecord
from .header_mapping import IGNORE, UNSET, HeaderMapping, MappingError
from .import_outcome import ErrorDetail, ImportOutcome
from .import_step import ImportStep
from .row_data import ErrorRow, ImportRecord, RawRecord, ValidationResult
from .target_field import LEAD_FIELDS, LeadStatus, TargetFieldSpec

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "ImportConfig",
    "ReferenceListConfig",
    # Registry
    "LEAD_FIELDS",
    "LeadStatus",
    "TargetFieldSpec",
    # Mapping
    "IGNORE",
    "UNSET",
    "HeaderMapping",
    "MappingError",
    # Processing models
    "RawRecord",
    "ImportRecord",
    "ErrorRow",
    "ValidationResult",
    "ErrorDetail",
    "ImportOutcome",
    "ImportStep",
    "ErrorRecord",
]
