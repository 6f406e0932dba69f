"""
Tests for IdentificationLog.
"""

from datetime import datetime

import pytest

from interactive_letter.session import IdentificationLog


class TestIdentificationLog:

    def test_record(self):
        log = IdentificationLog()
        entry = log.record("  +98 912 000 0000 ")

        assert entry.phone_number == "+98 912 000 0000"
        assert log.count == 1
        assert log.records() == [entry]

    def test_explicit_timestamp(self):
        stamp = datetime(2024, 1, 2, 3, 4, 5)
        entry = IdentificationLog().record("123", timestamp=stamp)
        assert entry.timestamp == stamp

    @pytest.mark.parametrize("phone", [None, "", "   "])
    def test_blank_rejected(self, phone):
        log = IdentificationLog()
        with pytest.raises(ValueError, match="Phone number is required."):
            log.record(phone)
        assert log.count == 0

    def test_records_returns_copy(self):
        log = IdentificationLog()
        log.record("1")
        log.records().clear()
        assert log.count == 1
