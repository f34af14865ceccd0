"""Error handling for land record ingestion

Ingestion tolerates partial failure. Records that cannot be written are
kept as SkippedRecord entries, categorized, surfaced to the uploader as
one line each and stored on the ingestion run as structured log entries.
"""

import re
import logging
from enum import Enum
from typing import Dict, Any, List, Optional
from datetime import datetime
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


class ErrorCategory(str, Enum):
    """Categories of ingestion errors"""
    STRUCTURE = "structure"           # Upload shape is unusable
    VALIDATION = "validation"         # Record failed field validation
    MISSING_REFERENCE = "missing_ref" # Record points at something not uploaded
    DATABASE = "database"             # Store rejected the write
    UNKNOWN = "unknown"


class RecordType(str, Enum):
    """Kinds of uploaded records that can be skipped"""
    NONDH_DETAIL = "nondh_detail"
    OWNER = "owner"
    YEAR_SLAB = "year_slab"
    PANIPATRAK = "panipatrak"


# Error pattern matching for categorization of store failures
ERROR_PATTERNS = {
    ErrorCategory.DATABASE: [
        r"database",
        r"sql",
        r"integrity",
        r"constraint",
        r"not null",
        r"foreign key",
        r"deadlock",
        r"connection",
    ],
    ErrorCategory.VALIDATION: [
        r"validation",
        r"invalid",
        r"required",
        r"missing",
        r"format",
    ],
}


@dataclass
class SkippedRecord:
    """A record that was not persisted, and why"""
    record_type: RecordType
    identifier: str
    reasons: List[str]
    category: ErrorCategory = ErrorCategory.VALIDATION
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def message(self) -> str:
        """One line for the uploader, e.g. ``Nondh 4: Missing vigat, Missing type``"""
        label = {
            RecordType.NONDH_DETAIL: "Nondh",
            RecordType.OWNER: "Owner",
            RecordType.YEAR_SLAB: "Year slab",
            RecordType.PANIPATRAK: "Panipatrak",
        }[self.record_type]
        return f"{label} {self.identifier}: {', '.join(self.reasons)}"


class ErrorHandler:
    """Categorizes ingestion failures and builds error log entries"""

    def categorize_error(self, error: str) -> ErrorCategory:
        """Categorize an error based on its message"""
        error_lower = error.lower()

        for category, patterns in ERROR_PATTERNS.items():
            for pattern in patterns:
                if re.search(pattern, error_lower, re.IGNORECASE):
                    return category

        return ErrorCategory.UNKNOWN

    def create_error_entry(self, skipped: SkippedRecord) -> Dict[str, Any]:
        """Create an error log entry"""
        return {
            "timestamp": skipped.timestamp.isoformat(),
            "record_type": skipped.record_type.value,
            "identifier": skipped.identifier,
            "category": skipped.category.value,
            "reasons": list(skipped.reasons),
            "message": skipped.message(),
        }

    def summarize(self, skipped: List[SkippedRecord]) -> Dict[str, Any]:
        """Counts of skipped records by category and record type"""
        by_category: Dict[str, int] = {}
        by_record_type: Dict[str, int] = {}
        for entry in skipped:
            by_category[entry.category.value] = by_category.get(entry.category.value, 0) + 1
            by_record_type[entry.record_type.value] = by_record_type.get(entry.record_type.value, 0) + 1

        most_common: Optional[str] = None
        if by_category:
            most_common = max(by_category.items(), key=lambda x: x[1])[0]

        return {
            "total_skipped": len(skipped),
            "by_category": by_category,
            "by_record_type": by_record_type,
            "most_common": most_common,
        }


# Global instance
error_handler = ErrorHandler()
