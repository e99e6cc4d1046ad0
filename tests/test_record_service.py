"""
iCanGrow API — Record Service Unit Tests
==========================================

What:  Tests for the shared service plumbing (services/base.py, lifecycle.py).
Why:   Every entity listing and every status change goes through these
       helpers, so a regression here breaks all twenty-odd endpoints at once.
How:   Pure functions are called directly; store access uses the mock session.

What we test:
    ✅ totalPages = ceil(total / limit)
    ✅ store_errors translates IntegrityError / SQLAlchemyError, passes API errors through
    ✅ Reference numbers look like PREFIX-YYYYMMDD-XXXXXX
    ✅ get() on a missing row raises NotFoundError
    ✅ Transition tables allow and refuse the documented moves
"""

import re
import uuid
from datetime import date
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from icangrow.exceptions import (
    ConflictError,
    DatabaseError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from icangrow.lifecycle import (
    AUDIT_TRANSITIONS,
    DISPATCH_TRANSITIONS,
    EBR_DISPOSITION,
    LOT_TRANSITIONS,
    PassFailStatus,
)
from icangrow.services.base import PageResult, reference_number, store_errors
from icangrow.services.inventory_service import inventory_service


class TestPageResult:
    @pytest.mark.parametrize(
        "total,limit,expected",
        [(0, 20, 0), (1, 20, 1), (20, 20, 1), (21, 20, 2), (12, 5, 3)],
    )
    def test_total_pages(self, total, limit, expected):
        assert PageResult([], total, 1, limit).total_pages == expected


class TestStoreErrors:
    """store_errors maps persistence failures onto the API error hierarchy."""

    def test_integrity_error_becomes_conflict(self):
        with pytest.raises(ConflictError):
            with store_errors("create client"):
                raise IntegrityError("INSERT", {}, Exception("duplicate key"))

    def test_other_database_errors_become_database_error(self):
        with pytest.raises(DatabaseError) as exc_info:
            with store_errors("fetch batches"):
                raise OperationalError("SELECT", {}, Exception("connection reset"))

        assert exc_info.value.message == "Failed to fetch batches"
        assert exc_info.value.status_code == 500

    def test_api_errors_pass_through(self):
        with pytest.raises(ValidationError):
            with store_errors("create batch"):
                raise ValidationError("Invalid strain: not found", field="strain")


class TestReferenceNumber:
    def test_format(self):
        number = reference_number("EBR", on=date(2024, 1, 15))
        assert re.fullmatch(r"EBR-20240115-[0-9A-F]{6}", number)

    def test_numbers_differ(self):
        assert reference_number("DSP") != reference_number("DSP")


class TestGetMissingRecord:
    """A missing row is reported by domain name, not table name."""

    @pytest.mark.asyncio
    async def test_get_raises_not_found(self, mock_db_session):
        result = MagicMock()
        result.scalar_one_or_none.return_value = None
        mock_db_session.execute.return_value = result
        lot_id = uuid.uuid4()

        with pytest.raises(NotFoundError) as exc_info:
            await inventory_service.get_lot(mock_db_session, lot_id)

        assert exc_info.value.message == "Inventory lot not found"
        assert exc_info.value.context["resource_id"] == str(lot_id)
        mock_db_session.execute.assert_awaited_once()


class TestTransitionTables:
    def test_ebr_disposition_is_not_flipped(self):
        EBR_DISPOSITION.check(PassFailStatus.PENDING, PassFailStatus.PASS)
        EBR_DISPOSITION.check(PassFailStatus.PASS, PassFailStatus.PASS)
        with pytest.raises(InvalidTransitionError) as exc_info:
            EBR_DISPOSITION.check(PassFailStatus.PASS, PassFailStatus.FAIL)

        assert exc_info.value.status_code == 409
        assert exc_info.value.context["current_status"] == "pass"
        assert exc_info.value.context["target_status"] == "fail"

    def test_dispatch_confirms_only_from_draft(self):
        assert DISPATCH_TRANSITIONS.allowed("draft", "confirmed")
        assert not DISPATCH_TRANSITIONS.allowed("confirmed", "confirmed")
        assert not DISPATCH_TRANSITIONS.allowed("delivered", "cancelled")

    def test_lot_release_requires_quarantine(self):
        assert LOT_TRANSITIONS.allowed("quarantine", "available")
        assert not LOT_TRANSITIONS.allowed("available", "available")

    def test_audit_lifecycle(self):
        assert AUDIT_TRANSITIONS.allowed("planned", "in_progress")
        assert AUDIT_TRANSITIONS.allowed("in_progress", "completed")
        assert not AUDIT_TRANSITIONS.allowed("completed", "planned")
