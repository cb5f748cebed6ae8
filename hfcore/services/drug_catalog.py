"""
Static drug-class catalog for heart-failure medications.

Based on 2022 AHA/ACC/HFSA Guidelines and 2024 ACC Expert Consensus. The
catalog is configuration data, not patient data: it loads once and is treated
as an immutable lookup table for the lifetime of the process.
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from hfcore.domain.models import DrugClass, Medication
from hfcore.services.record_store import logger


class CatalogEntry(BaseModel):
    """One predefined medication with its class and common dosages."""

    model_config = ConfigDict(frozen=True)

    generic_name: str = Field(min_length=1)
    brand_name: str | None = None
    aliases: tuple[str, ...] = ()
    drug_class: DrugClass
    available_dosages: tuple[str, ...] = ()
    default_frequency: str = "Once daily"
    is_diuretic: bool = False
    unit: str = "mg"

    @property
    def display_name(self) -> str:
        if self.brand_name:
            return f"{self.generic_name} ({self.brand_name})"
        return self.generic_name


class CatalogFile(BaseModel):
    """On-disk shape of a replacement catalog."""

    medications: list[CatalogEntry] = Field(min_length=1)


FREQUENCY_OPTIONS = (
    "Once daily",
    "Twice daily",
    "Three times daily",
    "Four times daily",
    "Every other day",
    "As needed",
)


def _entry(generic, brand, drug_class, dosages, frequency, is_diuretic=False, aliases=()):
    return CatalogEntry(
        generic_name=generic,
        brand_name=brand,
        aliases=tuple(aliases),
        drug_class=drug_class,
        available_dosages=tuple(dosages),
        default_frequency=frequency,
        is_diuretic=is_diuretic,
    )


DEFAULT_ENTRIES: tuple[CatalogEntry, ...] = (
    # Loop diuretics
    _entry("Furosemide", "Lasix", DrugClass.LOOP_DIURETIC,
           ["20", "40", "80", "120", "160"], "Twice daily", True),
    _entry("Torsemide", "Demadex", DrugClass.LOOP_DIURETIC,
           ["10", "20", "40", "60", "100"], "Once daily", True),
    _entry("Bumetanide", "Bumex", DrugClass.LOOP_DIURETIC,
           ["0.5", "1", "2", "4"], "Twice daily", True),
    # Thiazide-like diuretics
    _entry("Metolazone", "Zaroxolyn", DrugClass.THIAZIDE_DIURETIC,
           ["2.5", "5", "10"], "Once daily", True),
    # Beta blockers
    _entry("Carvedilol", "Coreg", DrugClass.BETA_BLOCKER,
           ["3.125", "6.25", "12.5", "25"], "Twice daily"),
    _entry("Metoprolol Succinate", "Toprol-XL", DrugClass.BETA_BLOCKER,
           ["12.5", "25", "50", "100", "200"], "Once daily", aliases=["Metoprolol"]),
    _entry("Bisoprolol", "Zebeta", DrugClass.BETA_BLOCKER,
           ["1.25", "2.5", "5", "10"], "Once daily"),
    # ACE inhibitors
    _entry("Lisinopril", "Zestril", DrugClass.ACE_INHIBITOR,
           ["2.5", "5", "10", "20", "40"], "Once daily"),
    _entry("Enalapril", "Vasotec", DrugClass.ACE_INHIBITOR,
           ["2.5", "5", "10", "20"], "Twice daily"),
    _entry("Ramipril", "Altace", DrugClass.ACE_INHIBITOR,
           ["1.25", "2.5", "5", "10"], "Once daily"),
    _entry("Captopril", "Capoten", DrugClass.ACE_INHIBITOR,
           ["6.25", "12.5", "25", "50"], "Three times daily"),
    # ARBs
    _entry("Losartan", "Cozaar", DrugClass.ARB,
           ["25", "50", "100", "150"], "Once daily"),
    _entry("Valsartan", "Diovan", DrugClass.ARB,
           ["40", "80", "160", "320"], "Twice daily"),
    _entry("Candesartan", "Atacand", DrugClass.ARB,
           ["4", "8", "16", "32"], "Once daily"),
    # ARNI
    _entry("Sacubitril/Valsartan", "Entresto", DrugClass.ARNI,
           ["24/26", "49/51", "97/103"], "Twice daily"),
    # MRAs
    _entry("Spironolactone", "Aldactone", DrugClass.MRA,
           ["12.5", "25", "50"], "Once daily", True),
    _entry("Eplerenone", "Inspra", DrugClass.MRA,
           ["25", "50"], "Once daily", True),
    # SGLT2 inhibitors
    _entry("Dapagliflozin", "Farxiga", DrugClass.SGLT2_INHIBITOR,
           ["5", "10"], "Once daily"),
    _entry("Empagliflozin", "Jardiance", DrugClass.SGLT2_INHIBITOR,
           ["10", "25"], "Once daily"),
    _entry("Sotagliflozin", "Inpefa", DrugClass.SGLT2_INHIBITOR,
           ["200", "400"], "Once daily"),
    # Other
    _entry("Digoxin", "Lanoxin", DrugClass.OTHER,
           ["0.0625", "0.125", "0.25"], "Once daily"),
    _entry("Hydralazine", None, DrugClass.OTHER,
           ["10", "25", "37.5", "50", "75", "100"], "Three times daily"),
    _entry("Isosorbide Dinitrate", "Isordil", DrugClass.OTHER,
           ["10", "20", "40"], "Three times daily"),
    _entry("Hydralazine/Isosorbide Dinitrate", "BiDil", DrugClass.OTHER,
           ["37.5/20"], "Three times daily"),
    _entry("Ivabradine", "Corlanor", DrugClass.OTHER,
           ["2.5", "5", "7.5"], "Twice daily"),
)


def _normalize(name: str) -> str:
    return " ".join(name.lower().split())


class DrugClassCatalog:
    """
    Name-to-class lookup over a fixed list of catalog entries.

    Matching is case-insensitive on generic or brand name. Free-text names
    ("Furosemide 40mg") fall back to the longest known name they contain, so
    combination products resolve to their own entry rather than a component.
    """

    def __init__(self, entries: tuple[CatalogEntry, ...] | list[CatalogEntry]) -> None:
        self._entries = tuple(entries)
        self._by_name: dict[str, CatalogEntry] = {}
        for entry in self._entries:
            self._by_name[_normalize(entry.generic_name)] = entry
            if entry.brand_name:
                self._by_name[_normalize(entry.brand_name)] = entry
            for alias in entry.aliases:
                self._by_name.setdefault(_normalize(alias), entry)
        # Longest first so the partial match prefers the most specific name
        self._names_by_length = sorted(self._by_name, key=len, reverse=True)

    @classmethod
    def default(cls) -> "DrugClassCatalog":
        return cls(DEFAULT_ENTRIES)

    @classmethod
    def from_json(cls, path: str | Path) -> "DrugClassCatalog":
        """Load a replacement catalog: ``{"medications": [CatalogEntry, ...]}``."""
        catalog_file = CatalogFile.model_validate_json(Path(path).read_text(encoding="utf-8"))
        logger.info(
            "drug_catalog_loaded", path=str(path), entries=len(catalog_file.medications)
        )
        return cls(catalog_file.medications)

    @property
    def entries(self) -> tuple[CatalogEntry, ...]:
        return self._entries

    @property
    def frequency_options(self) -> tuple[str, ...]:
        return FREQUENCY_OPTIONS

    def lookup(self, name: str) -> CatalogEntry | None:
        key = _normalize(name)
        if not key:
            return None
        if key in self._by_name:
            return self._by_name[key]
        for known in self._names_by_length:
            if known in key:
                return self._by_name[known]
        return None

    def classes_for(self, medication: Medication | str) -> frozenset[DrugClass]:
        """Classes of a medication; explicit classes on a revision win over the catalog."""
        if isinstance(medication, Medication):
            if medication.drug_classes:
                return medication.drug_classes
            medication = medication.name
        entry = self.lookup(medication)
        return frozenset({entry.drug_class}) if entry else frozenset()

    def is_diuretic(self, name: str) -> bool:
        entry = self.lookup(name)
        return entry.is_diuretic if entry else False

    def entries_by_class(self) -> list[tuple[DrugClass, list[CatalogEntry]]]:
        """Entries grouped by class, in class declaration order, skipping empty classes."""
        grouped = []
        for drug_class in DrugClass:
            members = [e for e in self._entries if e.drug_class == drug_class]
            if members:
                grouped.append((drug_class, members))
        return grouped
