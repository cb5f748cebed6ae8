"""
Medication conflict detection over a static rule table.

The rule table is a tagged-variant list (same-class | cross-class) evaluated by
one dispatch function. Findings are recomputed on every call and never
persisted; hiding a finding the patient has acknowledged is the caller's job,
keyed by ``rule_id``.
"""

from collections.abc import Sequence

from hfcore.domain.models import (
    ConflictRule,
    CrossClassRule,
    DrugClass,
    Medication,
    MedicationConflict,
    SameClassRule,
)
from hfcore.services.drug_catalog import DrugClassCatalog
from hfcore.services.record_store import logger

# Classes where most patients take exactly one medication
SINGLE_MEDICATION_CLASSES = (
    DrugClass.LOOP_DIURETIC,
    DrugClass.BETA_BLOCKER,
    DrugClass.ACE_INHIBITOR,
    DrugClass.ARB,
    DrugClass.ARNI,
    DrugClass.MRA,
    DrugClass.SGLT2_INHIBITOR,
)

# Renin-angiotensin blockers that are usually not combined
CROSS_CLASS_PAIRS = (
    (DrugClass.ACE_INHIBITOR, DrugClass.ARB),
    (DrugClass.ACE_INHIBITOR, DrugClass.ARNI),
    (DrugClass.ARB, DrugClass.ARNI),
)

DEFAULT_RULES: tuple[ConflictRule, ...] = (
    *(SameClassRule(drug_class=c) for c in SINGLE_MEDICATION_CLASSES),
    *(CrossClassRule(class_a=a, class_b=b) for a, b in CROSS_CLASS_PAIRS),
)


def join_names(names: Sequence[str]) -> str:
    """'A', 'A and B', 'A, B and C'."""
    if len(names) <= 1:
        return "".join(names)
    return f"{', '.join(names[:-1])} and {names[-1]}"


def _unique(medications: list[Medication]) -> list[Medication]:
    seen: set[str] = set()
    unique = []
    for medication in medications:
        if medication.id not in seen:
            seen.add(medication.id)
            unique.append(medication)
    return unique


class ConflictRuleEngine:
    """
    Evaluates the rule table against today's active regimen.

    ``evaluate`` is a pure function of its input, the rule table and the
    catalog: same input, same conflicts, same order.
    """

    def __init__(
        self,
        catalog: DrugClassCatalog | None = None,
        rules: Sequence[ConflictRule] | None = None,
    ) -> None:
        self.catalog = catalog or DrugClassCatalog.default()
        self.rules: tuple[ConflictRule, ...] = tuple(rules) if rules is not None else DEFAULT_RULES
        self.logger = logger.bind(component="conflict_rule_engine")

        rule_ids = [rule.rule_id for rule in self.rules]
        if len(set(rule_ids)) != len(rule_ids):
            raise ValueError("conflict rule ids must be unique")

    def evaluate(self, active_medications: Sequence[Medication]) -> list[MedicationConflict]:
        """Conflicts among ``active_medications``, in rule-table declaration order."""
        classified = [(m, self.catalog.classes_for(m)) for m in active_medications]

        conflicts = []
        for rule in self.rules:
            conflict = self._apply(rule, classified)
            if conflict is not None:
                conflicts.append(conflict)

        self.logger.debug(
            "conflicts_evaluated",
            medications=len(active_medications),
            conflicts=[c.rule_id for c in conflicts],
        )
        return conflicts

    def check_addition(
        self, candidate: Medication, active_medications: Sequence[Medication]
    ) -> list[MedicationConflict]:
        """Conflicts that adding ``candidate`` would introduce, before it is saved."""
        others = [m for m in active_medications if m.id != candidate.id]
        return [
            conflict
            for conflict in self.evaluate([*others, candidate])
            if any(m.id == candidate.id for m in conflict.medications)
        ]

    def _apply(
        self,
        rule: ConflictRule,
        classified: list[tuple[Medication, frozenset[DrugClass]]],
    ) -> MedicationConflict | None:
        if rule.kind == "same_class":
            members = _unique([m for m, classes in classified if rule.drug_class in classes])
            if len(members) < 2:
                return None
            names = [m.name for m in members]
            message = rule.template.format(
                medications=join_names(names),
                quantifier="both" if len(names) == 2 else "all",
                class_label=rule.drug_class.label.lower(),
            )
            return MedicationConflict(
                rule_id=rule.rule_id,
                kind=rule.kind,
                drug_classes=(rule.drug_class,),
                medications=tuple(members),
                message=message,
            )

        in_a = _unique([m for m, classes in classified if rule.class_a in classes])
        in_b = _unique([m for m, classes in classified if rule.class_b in classes])
        members = _unique(in_a + in_b)
        # One medication in both classes cannot pair with itself
        if not in_a or not in_b or len(members) < 2:
            return None
        message = rule.template.format(
            medications=join_names([m.name for m in members]),
            class_a_label=rule.class_a.label,
            class_b_label=rule.class_b.label,
        )
        return MedicationConflict(
            rule_id=rule.rule_id,
            kind=rule.kind,
            drug_classes=(rule.class_a, rule.class_b),
            medications=tuple(members),
            message=message,
        )
