"""Tests for ingestion error handling"""
import pytest
from datetime import datetime

from lrms.services.error_handling import (
    ErrorCategory,
    ErrorHandler,
    RecordType,
    SkippedRecord,
    error_handler,
)


class TestErrorCategorization:
    """Test error categorization"""

    def test_database_errors(self):
        """Test store failure detection"""
        database_errors = [
            "NOT NULL constraint failed: nondh_details.type",
            "FOREIGN KEY constraint failed",
            "sqlite3.OperationalError: database is locked",
            "IntegrityError: UNIQUE constraint failed",
        ]
        for error in database_errors:
            category = error_handler.categorize_error(error)
            assert category == ErrorCategory.DATABASE, \
                f"Expected DATABASE for '{error}', got {category}"

    def test_validation_errors(self):
        validation_errors = [
            "Missing vigat",
            "Date must be in ddmmyyyy format",
            "Invalid status requires invalidReason",
        ]
        for error in validation_errors:
            category = error_handler.categorize_error(error)
            assert category == ErrorCategory.VALIDATION, \
                f"Expected VALIDATION for '{error}', got {category}"

    def test_unknown_errors(self):
        assert error_handler.categorize_error("Something odd happened") == ErrorCategory.UNKNOWN
        assert error_handler.categorize_error("") == ErrorCategory.UNKNOWN


class TestSkippedRecord:
    """Test skipped record messages and log entries"""

    def test_message(self):
        skipped = SkippedRecord(RecordType.NONDH_DETAIL, "4", ["Missing vigat", "Missing type"])
        assert skipped.message() == "Nondh 4: Missing vigat, Missing type"

    @pytest.mark.parametrize("record_type,label", [
        (RecordType.OWNER, "Owner"),
        (RecordType.YEAR_SLAB, "Year slab"),
        (RecordType.PANIPATRAK, "Panipatrak"),
    ])
    def test_labels(self, record_type, label):
        assert SkippedRecord(record_type, "x", ["bad"]).message() == f"{label} x: bad"

    def test_create_error_entry(self):
        skipped = SkippedRecord(
            RecordType.NONDH_DETAIL, "7", ["Database error - disk full"],
            category=ErrorCategory.DATABASE,
            timestamp=datetime(2024, 1, 15, 10, 30),
        )

        assert ErrorHandler().create_error_entry(skipped) == {
            "timestamp": "2024-01-15T10:30:00",
            "record_type": "nondh_detail",
            "identifier": "7",
            "category": "database",
            "reasons": ["Database error - disk full"],
            "message": "Nondh 7: Database error - disk full",
        }


class TestSummary:
    """Test skipped record summaries"""

    def test_summarize(self):
        skipped = [
            SkippedRecord(RecordType.NONDH_DETAIL, "1", ["Missing vigat"]),
            SkippedRecord(RecordType.NONDH_DETAIL, "2", ["No matching nondh"], ErrorCategory.MISSING_REFERENCE),
            SkippedRecord(RecordType.OWNER, "of nondh 3", ["Missing name"]),
        ]

        summary = error_handler.summarize(skipped)

        assert summary["total_skipped"] == 3
        assert summary["by_category"] == {"validation": 2, "missing_ref": 1}
        assert summary["by_record_type"] == {"nondh_detail": 2, "owner": 1}
        assert summary["most_common"] == "validation"

    def test_summarize_nothing(self):
        assert error_handler.summarize([]) == {
            "total_skipped": 0,
            "by_category": {},
            "by_record_type": {},
            "most_common": None,
        }
