"""
Tests for the record store boundary and the Result type.

Overlapping revisions must never reach the store; doses are append/remove only.
"""

from datetime import UTC, date, datetime

import pytest

from hfcore.domain.errors import DataIntegrityViolation, NotFound
from hfcore.domain.models import DiureticDose, Dosage, Medication
from hfcore.services.record_store import InMemoryRecordStore, Result, find_overlap


def _revision(
    start: date,
    end: date | None = None,
    line_id: str = "furosemide",
    amount: float = 40.0,
) -> Medication:
    return Medication(
        id=line_id,
        name="Furosemide",
        dosage=Dosage(amount=amount),
        is_diuretic=True,
        effective_from=start,
        discontinued_at=end,
    )


class TestResult:
    """Test the Result type for explicit error handling."""

    def test_result_ok_creates_successful_result(self) -> None:
        result: Result[str, Exception] = Result.ok("success")
        assert result.is_ok()
        assert not result.is_err()
        assert result.unwrap() == "success"

    def test_result_ok_may_carry_none(self) -> None:
        result: Result[None, Exception] = Result.ok(None)
        assert result.is_ok()
        assert result.unwrap() is None

    def test_result_error_creates_failed_result(self) -> None:
        error = NotFound("dose gone")
        result: Result[str, NotFound] = Result.err(error)
        assert not result.is_ok()
        assert result.is_err()
        assert result.unwrap_or("default") == "default"
        assert result.unwrap_err() is error

    def test_unwrap_raises_on_error_result(self) -> None:
        result: Result[str, NotFound] = Result.err(NotFound("dose gone"))

        with pytest.raises(NotFound, match="dose gone"):
            result.unwrap()

    def test_unwrap_err_on_ok_raises(self) -> None:
        with pytest.raises(ValueError, match="Ok value"):
            Result.ok(1).unwrap_err()

    def test_cannot_hold_value_and_error(self) -> None:
        with pytest.raises(ValueError, match="both value and error"):
            Result(value=1, error=NotFound())


class TestFindOverlap:
    def test_adjoining_revisions_are_fine(self) -> None:
        revisions = [
            _revision(date(2026, 1, 10), date(2026, 1, 20)),
            _revision(date(2026, 1, 1), date(2026, 1, 10)),
        ]
        assert find_overlap(revisions) is None

    def test_reports_first_overlapping_pair(self) -> None:
        first = _revision(date(2026, 1, 1), date(2026, 1, 15))
        second = _revision(date(2026, 1, 10))

        assert find_overlap([second, first]) == (first, second)


class TestInMemoryRecordStore:
    def test_revisions_for_sorted_by_effective_from(self) -> None:
        later = _revision(date(2026, 1, 10))
        earlier = _revision(date(2026, 1, 1), date(2026, 1, 10))
        store = InMemoryRecordStore([later, earlier])

        assert store.revisions_for("furosemide") == [earlier, later]
        assert store.revisions_for("unknown") == []

    def test_overlapping_revision_rejected(self) -> None:
        store = InMemoryRecordStore([_revision(date(2026, 1, 1))])

        with pytest.raises(DataIntegrityViolation) as excinfo:
            store.save_revision(_revision(date(2026, 2, 1)))

        assert excinfo.value.medication_id == "furosemide"
        assert excinfo.value.is_integrity_fault
        assert len(store.revisions_for("furosemide")) == 1

    def test_save_replaces_by_revision_id(self) -> None:
        original = _revision(date(2026, 1, 1))
        store = InMemoryRecordStore([original])

        closed = Medication(**{**original.model_dump(), "discontinued_at": date(2026, 1, 10)})
        store.save_revision(closed)

        assert store.all_revisions() == [closed]

    def test_different_lines_never_clash(self) -> None:
        store = InMemoryRecordStore(
            [_revision(date(2026, 1, 1)), _revision(date(2026, 1, 1), line_id="torsemide")]
        )
        assert len(store.all_revisions()) == 2

    def test_dose_add_and_remove(self) -> None:
        dose = DiureticDose(
            medication_id="furosemide",
            amount=40,
            timestamp=datetime(2026, 1, 1, 8, tzinfo=UTC),
        )
        store = InMemoryRecordStore(doses=[dose])

        assert store.all_doses() == [dose]
        assert store.remove_dose(dose.id) is True
        assert store.remove_dose(dose.id) is False
        assert store.all_doses() == []

    def test_duplicate_dose_id_rejected(self) -> None:
        dose = DiureticDose(medication_id="furosemide", amount=40)
        store = InMemoryRecordStore(doses=[dose])

        with pytest.raises(DataIntegrityViolation):
            store.add_dose(dose)
