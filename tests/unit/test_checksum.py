"""
Tests for ICAO 9303 check digit computation.

Reference values come from the ICAO Doc 9303 specimen documents.
"""

import pytest
from mrz.base.functions import hash_string

from capture_service.services.checksum import compute_check_digit, validate_check_digit


class TestComputeCheckDigit:
    """Tests for the weighted 7-3-1 checksum."""

    def test_icao_passport_document_number(self):
        assert compute_check_digit("L898902C3") == 6

    def test_icao_id_card_document_number(self):
        assert compute_check_digit("D23145890") == 7

    def test_icao_dates(self):
        assert compute_check_digit("740812") == 2
        assert compute_check_digit("120415") == 9

    def test_all_fillers(self):
        assert compute_check_digit("<<<<<<<<<") == 0

    def test_empty_field(self):
        assert compute_check_digit("") == 0

    def test_agrees_with_mrz_library(self):
        for field in ("L898902C3", "740812", "120415", "D23145890", "ZE184226B<<<<<", "AB<12"):
            assert str(compute_check_digit(field)) == hash_string(field)

    def test_invalid_character_raises(self):
        with pytest.raises(ValueError):
            compute_check_digit("AB-123")

    def test_lowercase_is_rejected(self):
        """The mrz library would upper-case these; MRZ text never contains them."""
        with pytest.raises(ValueError):
            compute_check_digit("l898902c3")


class TestValidateCheckDigit:
    """Tests for check digit comparison."""

    def test_matching_digit(self):
        assert validate_check_digit("L898902C3", "6") is True

    def test_mismatching_digit(self):
        assert validate_check_digit("L898902C3", "0") is False

    def test_filler_check_counts_as_zero(self):
        assert validate_check_digit("<<<<<<<<<", "<") is True
        assert validate_check_digit("L898902C3", "<") is False

    def test_non_digit_check_fails(self):
        assert validate_check_digit("L898902C3", "X") is False

    def test_invalid_field_fails_without_raising(self):
        assert validate_check_digit("L89-902C3", "6") is False
        assert validate_check_digit("l898902c3", "6") is False
