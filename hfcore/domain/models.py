"""
Domain models for heart-failure regimen tracking.

These models represent the core clinical concepts and are framework-agnostic.
They use Pydantic for validation; every record the core hands out is frozen
so snapshots and conflict results can be compared and cached by callers.
"""

from datetime import UTC, date, datetime
from enum import Enum
from typing import Annotated, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def new_id() -> str:
    return uuid4().hex


class DrugClass(str, Enum):
    """Pharmacologic classes used for conflict-rule matching."""

    LOOP_DIURETIC = "loop_diuretic"
    THIAZIDE_DIURETIC = "thiazide_diuretic"
    BETA_BLOCKER = "beta_blocker"
    ACE_INHIBITOR = "ace_inhibitor"
    ARB = "arb"
    ARNI = "arni"
    MRA = "mra"
    SGLT2_INHIBITOR = "sglt2_inhibitor"
    OTHER = "other"

    @property
    def label(self) -> str:
        return _DRUG_CLASS_LABELS[self]


_DRUG_CLASS_LABELS = {
    DrugClass.LOOP_DIURETIC: "Loop Diuretics",
    DrugClass.THIAZIDE_DIURETIC: "Thiazide-like Diuretics",
    DrugClass.BETA_BLOCKER: "Beta Blockers",
    DrugClass.ACE_INHIBITOR: "ACE Inhibitors",
    DrugClass.ARB: "ARBs",
    DrugClass.ARNI: "ARNI",
    DrugClass.MRA: "MRAs",
    DrugClass.SGLT2_INHIBITOR: "SGLT2 Inhibitors",
    DrugClass.OTHER: "Other",
}


class Dosage(BaseModel):
    """Dose magnitude and unit, e.g. 40 mg."""

    model_config = ConfigDict(frozen=True)

    amount: float = Field(gt=0.0)
    unit: Literal["mg", "mcg", "mL", "g", "units"] = "mg"

    def __str__(self) -> str:
        return f"{self.amount:g} {self.unit}"


class Medication(BaseModel):
    """
    One revision of a medication line.

    All revisions of a line share ``id``. A revision is valid on the half-open
    interval ``[effective_from, discontinued_at)``; ``discontinued_at`` is None
    while the revision is still current.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id, description="Stable medication line id")
    revision_id: str = Field(default_factory=new_id)
    name: str = Field(min_length=1)
    dosage: Dosage
    schedule: str = Field(default="", description="Free-text cadence, e.g. 'Twice daily'")
    drug_classes: frozenset[DrugClass] = Field(default_factory=frozenset)
    is_diuretic: bool = False
    effective_from: date
    discontinued_at: date | None = None

    @model_validator(mode="after")
    def discontinued_after_effective(self) -> "Medication":
        if self.discontinued_at is not None and self.discontinued_at <= self.effective_from:
            raise ValueError("discontinued_at must be strictly after effective_from")
        return self

    @property
    def is_open(self) -> bool:
        return self.discontinued_at is None

    def is_active_on(self, day: date) -> bool:
        if day < self.effective_from:
            return False
        return self.discontinued_at is None or day < self.discontinued_at

    def overlaps(self, other: "Medication") -> bool:
        """True if both validity intervals share at least one day."""
        self_end = self.discontinued_at or date.max
        other_end = other.discontinued_at or date.max
        return self.effective_from < other_end and other.effective_from < self_end


class RegimenSnapshot(BaseModel):
    """Medication revisions valid on ``as_of``, ordered by name then id."""

    model_config = ConfigDict(frozen=True)

    as_of: date
    medications: list[Medication] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.medications

    @property
    def medication_count(self) -> int:
        return len(self.medications)

    def medication(self, medication_id: str) -> Medication | None:
        return next((m for m in self.medications if m.id == medication_id), None)


class SameClassRule(BaseModel):
    """Fires when two or more active medications share ``drug_class``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["same_class"] = "same_class"
    drug_class: DrugClass
    template: str = (
        "You have {medications} listed, which are {quantifier} {class_label}. "
        "Most patients take only one. Consider verifying with your care team."
    )

    @property
    def rule_id(self) -> str:
        return f"same_class:{self.drug_class.value}"


class CrossClassRule(BaseModel):
    """Fires when one active medication is in ``class_a`` and a different one in ``class_b``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["cross_class"] = "cross_class"
    class_a: DrugClass
    class_b: DrugClass
    template: str = (
        "You have both {class_a_label} and {class_b_label} medications listed "
        "({medications}). These are usually not taken together. "
        "Your care team can help clarify."
    )

    @model_validator(mode="after")
    def distinct_classes(self) -> "CrossClassRule":
        if self.class_a == self.class_b:
            raise ValueError("cross-class rule needs two different classes")
        return self

    @property
    def rule_id(self) -> str:
        return f"cross_class:{self.class_a.value}+{self.class_b.value}"


ConflictRule = Annotated[SameClassRule | CrossClassRule, Field(discriminator="kind")]


class MedicationConflict(BaseModel):
    """A rule that fired against the active regimen."""

    model_config = ConfigDict(frozen=True)

    rule_id: str
    kind: Literal["same_class", "cross_class"]
    drug_classes: tuple[DrugClass, ...]
    medications: tuple[Medication, ...]
    message: str

    @property
    def medication_names(self) -> list[str]:
        return [m.name for m in self.medications]


class DiureticDose(BaseModel):
    """A single logged diuretic dose."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    medication_id: str
    amount: float = Field(gt=0.0)
    unit: str = "mg"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    is_extra_dose: bool = False

    @field_validator("timestamp")
    @classmethod
    def timestamp_is_aware(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            raise ValueError("dose timestamp must be timezone-aware")
        return v


class TimelineEventType(str, Enum):
    """Kinds of regimen change shown on the history timeline."""

    STARTED = "started"
    DOSE_CHANGED = "dose_changed"
    DISCONTINUED = "discontinued"
    REACTIVATED = "reactivated"


class TimelineEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    occurred_on: date
    medication_id: str
    medication_name: str
    event_type: TimelineEventType
    previous_dosage: str | None = None
    new_dosage: str | None = None
    drug_classes: frozenset[DrugClass] = Field(default_factory=frozenset)

    @property
    def change_description(self) -> str:
        if self.event_type is TimelineEventType.STARTED:
            return f"Started at {self.new_dosage}" if self.new_dosage else "Started"
        if self.event_type is TimelineEventType.DOSE_CHANGED:
            if self.previous_dosage and self.new_dosage:
                return f"{self.previous_dosage} → {self.new_dosage}"
            return "Dose changed"
        if self.event_type is TimelineEventType.DISCONTINUED:
            return f"Stopped ({self.previous_dosage})" if self.previous_dosage else "Discontinued"
        return f"Resumed at {self.new_dosage}" if self.new_dosage else "Reactivated"


class ChangeType(str, Enum):
    NO_CHANGE = "no_change"
    INCREASED = "increased"
    DECREASED = "decreased"
    CHANGED = "changed"
    STARTED = "started"
    DISCONTINUED = "discontinued"


class MedicationComparison(BaseModel):
    """How one medication differs between two regimen snapshots."""

    model_config = ConfigDict(frozen=True)

    medication_name: str
    start_dosage: str
    end_dosage: str
    change_type: ChangeType
    drug_classes: frozenset[DrugClass] = Field(default_factory=frozenset)

    @property
    def has_changed(self) -> bool:
        return self.change_type is not ChangeType.NO_CHANGE
