"""
Tests for the domain models in `hfcore/domain/models.py`.

Covers:
- Dosage validation and display
- Half-open validity intervals on medication revisions
- Conflict rule variants and their stable identities
- Dose timestamp awareness
- Timeline event descriptions
"""

from datetime import UTC, date, datetime, timedelta

import pytest
from hypothesis import given
from hypothesis import strategies as st
from pydantic import TypeAdapter

from hfcore.domain.models import (
    ConflictRule,
    CrossClassRule,
    DiureticDose,
    Dosage,
    DrugClass,
    Medication,
    RegimenSnapshot,
    SameClassRule,
    TimelineEvent,
    TimelineEventType,
)


def _furosemide(start: date, end: date | None = None, amount: float = 40.0) -> Medication:
    return Medication(
        name="Furosemide",
        dosage=Dosage(amount=amount),
        drug_classes=frozenset({DrugClass.LOOP_DIURETIC}),
        is_diuretic=True,
        effective_from=start,
        discontinued_at=end,
    )


class TestDosage:
    def test_display_drops_trailing_zeros(self) -> None:
        assert str(Dosage(amount=40.0)) == "40 mg"
        assert str(Dosage(amount=6.25)) == "6.25 mg"
        assert str(Dosage(amount=0.5, unit="mL")) == "0.5 mL"

    @pytest.mark.parametrize("amount", [0.0, -10.0])
    def test_non_positive_amount_rejected(self, amount: float) -> None:
        with pytest.raises(ValueError):
            Dosage(amount=amount)

    def test_unknown_unit_rejected(self) -> None:
        with pytest.raises(ValueError):
            Dosage(amount=1.0, unit="tablespoons")  # type: ignore[arg-type]

    def test_dosage_equality_is_by_value(self) -> None:
        assert Dosage(amount=40) == Dosage(amount=40.0, unit="mg")
        assert Dosage(amount=40) != Dosage(amount=80)


class TestMedication:
    def test_revision_ids_are_unique_but_line_id_can_be_shared(self) -> None:
        first = _furosemide(date(2026, 1, 1), date(2026, 1, 10))
        second = Medication(
            id=first.id,
            name="Furosemide",
            dosage=Dosage(amount=80),
            effective_from=date(2026, 1, 10),
        )
        assert first.id == second.id
        assert first.revision_id != second.revision_id

    def test_discontinued_must_follow_effective(self) -> None:
        with pytest.raises(ValueError, match="strictly after"):
            _furosemide(date(2026, 1, 10), date(2026, 1, 10))

    def test_interval_is_half_open(self) -> None:
        revision = _furosemide(date(2026, 1, 1), date(2026, 1, 10))

        assert not revision.is_active_on(date(2025, 12, 31))
        assert revision.is_active_on(date(2026, 1, 1))
        assert revision.is_active_on(date(2026, 1, 9))
        assert not revision.is_active_on(date(2026, 1, 10))

    def test_open_revision_active_indefinitely(self) -> None:
        revision = _furosemide(date(2026, 1, 1))
        assert revision.is_open
        assert revision.is_active_on(date(2099, 1, 1))

    def test_adjoining_revisions_do_not_overlap(self) -> None:
        first = _furosemide(date(2026, 1, 1), date(2026, 1, 10))
        second = _furosemide(date(2026, 1, 10))
        assert not first.overlaps(second)
        assert not second.overlaps(first)

    def test_open_revision_overlaps_later_one(self) -> None:
        first = _furosemide(date(2026, 1, 1))
        second = _furosemide(date(2026, 3, 1), date(2026, 4, 1))
        assert first.overlaps(second)
        assert second.overlaps(first)

    def test_revision_is_immutable(self) -> None:
        revision = _furosemide(date(2026, 1, 1))
        with pytest.raises(ValueError, match="frozen"):
            revision.name = "Torsemide"  # type: ignore[misc]

    @given(
        start_offset=st.integers(min_value=0, max_value=365),
        length=st.integers(min_value=1, max_value=365),
        probe_offset=st.integers(min_value=-30, max_value=800),
    )
    def test_active_iff_inside_interval(
        self, start_offset: int, length: int, probe_offset: int
    ) -> None:
        """Property: a day is covered exactly when effective_from <= day < discontinued_at."""
        base = date(2025, 1, 1)
        start = base + timedelta(days=start_offset)
        end = start + timedelta(days=length)
        probe = base + timedelta(days=probe_offset)

        revision = _furosemide(start, end)

        assert revision.is_active_on(probe) == (start <= probe < end)


class TestRegimenSnapshot:
    def test_empty_snapshot(self) -> None:
        snapshot = RegimenSnapshot(as_of=date(2026, 1, 1))
        assert snapshot.is_empty
        assert snapshot.medication_count == 0

    def test_lookup_by_line_id(self) -> None:
        revision = _furosemide(date(2026, 1, 1))
        snapshot = RegimenSnapshot(as_of=date(2026, 1, 5), medications=[revision])

        assert snapshot.medication(revision.id) == revision
        assert snapshot.medication("missing") is None


class TestConflictRules:
    def test_rule_ids_are_stable(self) -> None:
        assert SameClassRule(drug_class=DrugClass.BETA_BLOCKER).rule_id == "same_class:beta_blocker"
        rule = CrossClassRule(class_a=DrugClass.ACE_INHIBITOR, class_b=DrugClass.ARB)
        assert rule.rule_id == "cross_class:ace_inhibitor+arb"

    def test_cross_class_rule_needs_two_classes(self) -> None:
        with pytest.raises(ValueError, match="two different classes"):
            CrossClassRule(class_a=DrugClass.ARB, class_b=DrugClass.ARB)

    def test_rule_table_entries_parse_by_kind(self) -> None:
        adapter = TypeAdapter(list[ConflictRule])

        rules = adapter.validate_python(
            [
                {"kind": "same_class", "drug_class": "mra"},
                {"kind": "cross_class", "class_a": "arb", "class_b": "arni"},
            ]
        )

        assert isinstance(rules[0], SameClassRule)
        assert rules[0].drug_class is DrugClass.MRA
        assert isinstance(rules[1], CrossClassRule)
        assert rules[1].rule_id == "cross_class:arb+arni"

    def test_unknown_rule_kind_rejected(self) -> None:
        with pytest.raises(ValueError):
            TypeAdapter(ConflictRule).validate_python({"kind": "max_dose", "drug_class": "mra"})

    def test_class_labels(self) -> None:
        assert DrugClass.LOOP_DIURETIC.label == "Loop Diuretics"
        assert DrugClass.ARB.label == "ARBs"
        assert all(c.label for c in DrugClass)


class TestDiureticDose:
    def test_naive_timestamp_rejected(self) -> None:
        with pytest.raises(ValueError, match="timezone-aware"):
            DiureticDose(medication_id="m1", amount=40, timestamp=datetime(2026, 1, 1, 8, 0))

    def test_defaults(self) -> None:
        dose = DiureticDose(medication_id="m1", amount=40)
        assert dose.unit == "mg"
        assert dose.is_extra_dose is False
        assert dose.timestamp.tzinfo == UTC


class TestTimelineEvent:
    @pytest.mark.parametrize(
        ("event_type", "previous", "new", "expected"),
        [
            (TimelineEventType.STARTED, None, "40 mg", "Started at 40 mg"),
            (TimelineEventType.DOSE_CHANGED, "40 mg", "80 mg", "40 mg → 80 mg"),
            (TimelineEventType.DISCONTINUED, "80 mg", None, "Stopped (80 mg)"),
            (TimelineEventType.REACTIVATED, None, "20 mg", "Resumed at 20 mg"),
        ],
    )
    def test_change_description(
        self,
        event_type: TimelineEventType,
        previous: str | None,
        new: str | None,
        expected: str,
    ) -> None:
        event = TimelineEvent(
            occurred_on=date(2026, 1, 1),
            medication_id="m1",
            medication_name="Furosemide",
            event_type=event_type,
            previous_dosage=previous,
            new_dosage=new,
        )
        assert event.change_description == expected
