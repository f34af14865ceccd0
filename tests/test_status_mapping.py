"""Unit tests for nondh status label mapping"""
import pytest

from lrms.models.nondh import NondhStatus
from lrms.services.status_mapping import map_status


class TestMapStatus:
    """Tests for map_status"""

    @pytest.mark.parametrize("label", ["Pramaanik", "pramaanik", "certified", "valid"])
    def test_valid_labels(self, label):
        assert map_status(label) == NondhStatus.VALID

    @pytest.mark.parametrize("label", ["Radd", "RADD", "cancelled", "canceled", "invalid"])
    def test_invalid_labels(self, label):
        assert map_status(label) == NondhStatus.INVALID

    @pytest.mark.parametrize("label", ["Na Manjoor", "na manjoor", "rejected", "nullified"])
    def test_nullified_labels(self, label):
        assert map_status(label) == NondhStatus.NULLIFIED

    def test_surrounding_whitespace_ignored(self):
        assert map_status("  Radd ") == NondhStatus.INVALID

    def test_missing_status_is_valid(self):
        assert map_status(None) == NondhStatus.VALID
        assert map_status("") == NondhStatus.VALID

    def test_unknown_label_is_valid(self):
        """Unrecognized labels fall back to valid"""
        assert map_status("Pending") == NondhStatus.VALID

    def test_enum_passes_through(self):
        assert map_status(NondhStatus.NULLIFIED) == NondhStatus.NULLIFIED
