# ingest/contracts.py
"""
Contracts for the menu ingestion pipeline.

Every stage hands its successor an immutable snapshot:

    RawRecord -> ItemCandidate -> ParsedMenuItem / ParseResult
        -> ConflictRecord -> ResolutionPlan -> ImportResult / ImportJob

Shapes here are plain dataclasses with ``to_dict()`` (JSON-friendly, snake
case) and ``from_dict()`` where the portal accepts them back from a client
(an edited ParseResult, a resolution plan).
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class DocumentFormat(str, Enum):
    TABULAR = "tabular"
    PDF = "pdf"
    WORD = "word"
    DELIMITED = "delimited"
    STRUCTURED = "structured"

    @classmethod
    def parse(cls, tag: Union[str, "DocumentFormat"]) -> "DocumentFormat":
        """Accept the canonical tag or a common alias (``csv``, ``xlsx``, ``structured-data``...)."""
        if isinstance(tag, DocumentFormat):
            return tag
        key = (tag or "").strip().lower().lstrip(".")
        if key in _FORMAT_ALIASES:
            return _FORMAT_ALIASES[key]
        raise ValueError(f"unknown document format: {tag!r}")


_FORMAT_ALIASES: Dict[str, DocumentFormat] = {
    "tabular": DocumentFormat.TABULAR,
    "spreadsheet": DocumentFormat.TABULAR,
    "excel": DocumentFormat.TABULAR,
    "xlsx": DocumentFormat.TABULAR,
    "xlsm": DocumentFormat.TABULAR,
    "pdf": DocumentFormat.PDF,
    "word": DocumentFormat.WORD,
    "docx": DocumentFormat.WORD,
    "delimited": DocumentFormat.DELIMITED,
    "delimited-text": DocumentFormat.DELIMITED,
    "csv": DocumentFormat.DELIMITED,
    "tsv": DocumentFormat.DELIMITED,
    "txt": DocumentFormat.DELIMITED,
    "text": DocumentFormat.DELIMITED,
    "structured": DocumentFormat.STRUCTURED,
    "structured-data": DocumentFormat.STRUCTURED,
    "json": DocumentFormat.STRUCTURED,
}


class ItemType(str, Enum):
    FOOD = "food"
    BEVERAGE = "beverage"
    WINE = "wine"


class ConflictClass(str, Enum):
    NEW = "NEW"
    EXACT_DUPLICATE = "EXACT_DUPLICATE"
    LIKELY_DUPLICATE = "LIKELY_DUPLICATE"
    FIELD_CONFLICT = "FIELD_CONFLICT"


class ImportAction(str, Enum):
    CREATE = "CREATE"
    SKIP = "SKIP"
    UPDATE = "UPDATE"
    MANUAL = "MANUAL"


class JobStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


# ---------------------------------------------------------------------------
# Reader / extractor output
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RawRecord:
    """
    One line (text documents) or one row (tabular / structured documents).

    ``fields`` is set for header-keyed rows; ``text`` is always a readable
    rendering of the record so line heuristics still apply.
    """
    text: str
    line_no: int
    fields: Optional[Dict[str, Any]] = field(default=None, compare=False, hash=False)


@dataclass(frozen=True)
class ItemCandidate:
    raw_text: str
    name: str
    description: Optional[str] = None
    price_text: Optional[str] = None
    price: Optional[float] = None
    category_hint: Optional[str] = None
    source_lines: Tuple[int, int] = (0, 0)
    # Explicit type from a keyed row ("type" / "itemType" column), if any.
    type_hint: Optional[str] = None
    # Facet values a keyed row states outright ({"vintage": 2018, "is_vegan": True}),
    # keyed by facet field name. Enhancers start from these.
    explicit_facets: Optional[Dict[str, Any]] = field(default=None, compare=False, hash=False)


# ---------------------------------------------------------------------------
# Facet groups
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ServingOption:
    size: str
    price: float

    def to_dict(self) -> Dict[str, Any]:
        return {"size": self.size, "price": self.price}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ServingOption":
        return cls(size=str(raw.get("size") or "").strip(), price=float(raw.get("price") or 0))


def _facet_to_dict(obj: Any) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        if f.name == "serving_options":
            out[f.name] = [opt.to_dict() for opt in value]
        elif isinstance(value, tuple):
            out[f.name] = list(value)
        else:
            out[f.name] = value
    return out


def _facet_kwargs(cls: Any, raw: Dict[str, Any]) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {}
    for f in fields(cls):
        if f.name not in raw:
            continue
        value = raw[f.name]
        if f.name == "serving_options":
            value = tuple(
                ServingOption.from_dict(opt) for opt in (value or []) if isinstance(opt, dict)
            )
        elif isinstance(value, list):
            value = tuple(str(v).strip() for v in value if str(v).strip())
        kwargs[f.name] = value
    return kwargs


@dataclass(frozen=True)
class FoodFacets:
    ingredients: Tuple[str, ...] = ()
    allergens: Tuple[str, ...] = ()
    cooking_methods: Tuple[str, ...] = ()
    is_vegetarian: Optional[bool] = None
    is_vegan: Optional[bool] = None
    is_gluten_free: Optional[bool] = None
    is_dairy_free: Optional[bool] = None
    is_spicy: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        return _facet_to_dict(self)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "FoodFacets":
        return cls(**_facet_kwargs(cls, raw))


@dataclass(frozen=True)
class BeverageFacets:
    spirit_type: Optional[str] = None
    beer_style: Optional[str] = None
    cocktail_ingredients: Tuple[str, ...] = ()
    alcohol_content: Optional[str] = None
    serving_style: Optional[str] = None
    serving_size: Optional[str] = None
    is_non_alcoholic: Optional[bool] = None
    serving_options: Tuple[ServingOption, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return _facet_to_dict(self)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "BeverageFacets":
        return cls(**_facet_kwargs(cls, raw))


@dataclass(frozen=True)
class WineFacets:
    vintage: Optional[int] = None
    grape_varieties: Tuple[str, ...] = ()
    region: Optional[str] = None
    producer: Optional[str] = None
    wine_color: Optional[str] = None
    wine_style: Optional[str] = None
    serving_options: Tuple[ServingOption, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return _facet_to_dict(self)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "WineFacets":
        kwargs = _facet_kwargs(cls, raw)
        if kwargs.get("vintage") is not None:
            kwargs["vintage"] = int(kwargs["vintage"])
        return cls(**kwargs)


Facets = Union[FoodFacets, BeverageFacets, WineFacets]

# Attribute on ParsedMenuItem / ExistingMenuItem holding each type's facets.
FACET_ATTR: Dict[ItemType, str] = {
    ItemType.FOOD: "food",
    ItemType.BEVERAGE: "beverage",
    ItemType.WINE: "wine",
}

FACET_CLASS: Dict[ItemType, Any] = {
    ItemType.FOOD: FoodFacets,
    ItemType.BEVERAGE: BeverageFacets,
    ItemType.WINE: WineFacets,
}


def facet_field_names(item_type: ItemType) -> List[str]:
    return [f.name for f in fields(FACET_CLASS[item_type])]


def _check_facet_exclusivity(obj: Any) -> None:
    for item_type, attr in FACET_ATTR.items():
        group = getattr(obj, attr)
        if group is None:
            continue
        if item_type != obj.item_type:
            raise ValueError(
                f"{attr} facets set on a {obj.item_type.value} item ({obj.name!r})"
            )
        if not isinstance(group, FACET_CLASS[item_type]):
            raise TypeError(f"{attr} facets must be {FACET_CLASS[item_type].__name__}")


def _facets_from_dict(item_type: ItemType, raw: Dict[str, Any]) -> Dict[str, Any]:
    """Pick the facet group for ``item_type`` out of a client payload."""
    attr = FACET_ATTR[item_type]
    group = raw.get(attr)
    if isinstance(group, dict):
        return {attr: FACET_CLASS[item_type].from_dict(group)}
    return {}


def _objects(values: List[Any], key: str) -> List[Dict[str, Any]]:
    """Every entry must be an object; positions are indices other payloads refer to."""
    for i, value in enumerate(values):
        if not isinstance(value, dict):
            raise ValueError(f"{key}[{i}] must be an object")
    return values


def _price_or_none(raw: Any) -> Optional[float]:
    if raw in (None, ""):
        return None
    return round(float(raw), 2)


# ---------------------------------------------------------------------------
# Parse output
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ParsedMenuItem:
    name: str
    category: str
    item_type: ItemType
    confidence: int
    original_text: str = ""
    description: Optional[str] = None
    price: Optional[float] = None
    price_text: Optional[str] = None
    food: Optional[FoodFacets] = None
    beverage: Optional[BeverageFacets] = None
    wine: Optional[WineFacets] = None

    def __post_init__(self) -> None:
        if not isinstance(self.item_type, ItemType):
            object.__setattr__(self, "item_type", ItemType(self.item_type))
        if not 0 <= int(self.confidence) <= 100:
            raise ValueError(f"confidence out of range: {self.confidence}")
        _check_facet_exclusivity(self)

    @property
    def facets(self) -> Optional[Facets]:
        return getattr(self, FACET_ATTR[self.item_type])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "price_text": self.price_text,
            "category": self.category,
            "item_type": self.item_type.value,
            "food": self.food.to_dict() if self.food else None,
            "beverage": self.beverage.to_dict() if self.beverage else None,
            "wine": self.wine.to_dict() if self.wine else None,
            "confidence": self.confidence,
            "original_text": self.original_text,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ParsedMenuItem":
        item_type = ItemType(str(raw.get("item_type") or "food").lower())
        for other_type, attr in FACET_ATTR.items():
            if other_type != item_type and raw.get(attr):
                raise ValueError(f"{attr} facets set on a {item_type.value} item")
        return cls(
            name=str(raw.get("name") or "").strip(),
            description=(str(raw["description"]).strip() or None) if raw.get("description") else None,
            price=_price_or_none(raw.get("price")),
            price_text=raw.get("price_text"),
            category=str(raw.get("category") or "").strip() or "Uncategorized",
            item_type=item_type,
            confidence=int(raw.get("confidence") or 0),
            original_text=str(raw.get("original_text") or ""),
            **_facets_from_dict(item_type, raw),
        )


@dataclass(frozen=True)
class ParseResult:
    menu_name: str
    items: Tuple[ParsedMenuItem, ...]
    total_items_found: int
    processing_notes: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "menu_name": self.menu_name,
            "items": [it.to_dict() for it in self.items],
            "total_items_found": self.total_items_found,
            "processing_notes": list(self.processing_notes),
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ParseResult":
        items_in = raw.get("items")
        if not isinstance(items_in, list):
            raise ValueError("ParseResult payload must carry an 'items' array")
        items = tuple(ParsedMenuItem.from_dict(it) for it in _objects(items_in, "items"))
        return cls(
            menu_name=str(raw.get("menu_name") or "").strip() or "Imported Menu",
            items=items,
            total_items_found=int(raw.get("total_items_found") or len(items)),
            processing_notes=tuple(str(n) for n in (raw.get("processing_notes") or [])),
        )


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExistingMenuItem:
    """Read-only projection of a persisted menu item, used only for comparison."""
    id: str
    name: str
    item_type: ItemType
    category: Optional[str] = None
    price: Optional[float] = None
    description: Optional[str] = None
    food: Optional[FoodFacets] = None
    beverage: Optional[BeverageFacets] = None
    wine: Optional[WineFacets] = None

    def __post_init__(self) -> None:
        if not isinstance(self.item_type, ItemType):
            object.__setattr__(self, "item_type", ItemType(self.item_type))
        _check_facet_exclusivity(self)

    @property
    def facets(self) -> Optional[Facets]:
        return getattr(self, FACET_ATTR[self.item_type])

    def to_dict(self) -> Dict[str, Any]:
        facets = self.facets
        return {
            "id": self.id,
            "name": self.name,
            "item_type": self.item_type.value,
            "category": self.category,
            "price": self.price,
            "description": self.description,
            FACET_ATTR[self.item_type]: facets.to_dict() if facets else None,
        }


@dataclass(frozen=True)
class ConflictRecord:
    candidate_index: int
    classification: ConflictClass
    suggested_action: ImportAction
    matched_existing_item_id: Optional[str] = None
    conflicting_fields: Tuple[str, ...] = ()
    similarity: float = 0.0
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "candidate_index": self.candidate_index,
            "matched_existing_item_id": self.matched_existing_item_id,
            "classification": self.classification.value,
            "conflicting_fields": list(self.conflicting_fields),
            "suggested_action": self.suggested_action.value,
            "similarity": round(self.similarity, 4),
            "message": self.message,
        }


# ---------------------------------------------------------------------------
# Commit
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PlanEntry:
    index: int
    action: ImportAction
    existing_item_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "action": self.action.value,
            "existing_item_id": self.existing_item_id,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "PlanEntry":
        action_raw = str(raw.get("action") or "").strip().upper()
        try:
            action = ImportAction(action_raw)
        except ValueError:
            raise ValueError(f"unknown import action: {raw.get('action')!r}")
        existing = raw.get("existing_item_id")
        return cls(
            index=int(raw["index"]),
            action=action,
            existing_item_id=str(existing) if existing not in (None, "") else None,
        )


@dataclass(frozen=True)
class ResolutionPlan:
    menu_name: str
    items: Tuple[ParsedMenuItem, ...]
    entries: Tuple[PlanEntry, ...]

    @property
    def write_count(self) -> int:
        return sum(1 for e in self.entries if e.action in (ImportAction.CREATE, ImportAction.UPDATE))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "menu_name": self.menu_name,
            "items": [it.to_dict() for it in self.items],
            "entries": [e.to_dict() for e in self.entries],
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ResolutionPlan":
        items_in = raw.get("items")
        entries_in = raw.get("entries")
        if not isinstance(items_in, list) or not isinstance(entries_in, list):
            raise ValueError("plan payload must carry 'items' and 'entries' arrays")
        return cls(
            menu_name=str(raw.get("menu_name") or "").strip() or "Imported Menu",
            items=tuple(ParsedMenuItem.from_dict(it) for it in _objects(items_in, "items")),
            entries=tuple(PlanEntry.from_dict(e) for e in _objects(entries_in, "entries")),
        )


@dataclass(frozen=True)
class FailedCandidate:
    index: int
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"index": self.index, "reason": self.reason}


@dataclass(frozen=True)
class ImportResult:
    menu_id: str
    menu_name: str
    status: JobStatus
    total_items: int
    imported_items: int
    failed_items: int
    skipped_items: int = 0
    created_item_ids: Tuple[str, ...] = ()
    updated_item_ids: Tuple[str, ...] = ()
    failed_candidates: Tuple[FailedCandidate, ...] = ()
    processing_notes: Tuple[str, ...] = ()
    job_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "menu_id": self.menu_id,
            "menu_name": self.menu_name,
            "status": self.status.value,
            "total_items": self.total_items,
            "imported_items": self.imported_items,
            "failed_items": self.failed_items,
            "skipped_items": self.skipped_items,
            "created_item_ids": list(self.created_item_ids),
            "updated_item_ids": list(self.updated_item_ids),
            "failed_candidates": [fc.to_dict() for fc in self.failed_candidates],
            "processing_notes": list(self.processing_notes),
            "job_id": self.job_id,
        }


@dataclass(frozen=True)
class ImportJob:
    """
    Snapshot of a background import. Each transition publishes a new
    snapshot via ``advance``; terminal snapshots are never replaced.
    """
    job_id: str
    menu_id: str
    menu_name: str
    status: JobStatus
    total_items: int = 0
    created_item_ids: Tuple[str, ...] = ()
    updated_item_ids: Tuple[str, ...] = ()
    skipped_items: int = 0
    failed_candidates: Tuple[FailedCandidate, ...] = ()
    processing_notes: Tuple[str, ...] = ()
    error: Optional[str] = None
    created_at: Optional[str] = None
    started_at: Optional[str] = None
    finished_at: Optional[str] = None

    def advance(self, status: JobStatus, **changes: Any) -> "ImportJob":
        if self.status.is_terminal:
            raise RuntimeError(f"job {self.job_id} is already {self.status.value}")
        return replace(self, status=status, **changes)

    def to_result(self) -> ImportResult:
        return ImportResult(
            menu_id=self.menu_id,
            menu_name=self.menu_name,
            status=self.status,
            total_items=self.total_items,
            imported_items=len(self.created_item_ids) + len(self.updated_item_ids),
            failed_items=len(self.failed_candidates),
            skipped_items=self.skipped_items,
            created_item_ids=self.created_item_ids,
            updated_item_ids=self.updated_item_ids,
            failed_candidates=self.failed_candidates,
            processing_notes=self.processing_notes,
            job_id=self.job_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "menu_id": self.menu_id,
            "menu_name": self.menu_name,
            "status": self.status.value,
            "total_items": self.total_items,
            "created_item_ids": list(self.created_item_ids),
            "updated_item_ids": list(self.updated_item_ids),
            "skipped_items": self.skipped_items,
            "failed_candidates": [fc.to_dict() for fc in self.failed_candidates],
            "processing_notes": list(self.processing_notes),
            "error": self.error,
            "created_at": self.created_at,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }
