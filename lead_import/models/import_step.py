from __future__ import annotations

from enum import Enum

"""ImportStep enum for the step-gated import session.

State transitions: upload -> mapping -> review -> result

- UPLOAD: waiting for a CSV file / text
- MAPPING: headers parsed, mapping editable
- REVIEW: rows validated, waiting for confirmation
- RESULT: store call done (success or failure), terminal until restart
"""

__all__ = [
    "ImportStep",
]


class ImportStep(Enum):
    UPLOAD = "upload"
    MAPPING = "mapping"
    REVIEW = "review"
    RESULT = "result"
