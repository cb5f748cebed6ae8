"""
Core services for the regimen tracker.

This package contains the regimen history reconstructor, the conflict rule
engine, the diuretic dose ledger and the facade the presentation layer calls.
"""

from .conflict_rules import ConflictRuleEngine
from .dose_ledger import DoseLedger
from .drug_catalog import CatalogEntry, DrugClassCatalog
from .medication_lifecycle import MedicationLifecycle
from .record_store import InMemoryRecordStore, MedicationRecordStore, Result
from .regimen_history import RegimenHistoryReconstructor
from .regimen_service import RegimenService

__all__ = [
    "CatalogEntry",
    "ConflictRuleEngine",
    "DoseLedger",
    "DrugClassCatalog",
    "InMemoryRecordStore",
    "MedicationLifecycle",
    "MedicationRecordStore",
    "RegimenHistoryReconstructor",
    "RegimenService",
    "Result",
]
