# schema.py
"""
Item schema shared by the normalizer and the validator, plus the
evaluation structures returned to reviewers.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Iterable, List, Mapping, Optional


# ============================================
# TARGET SCHEMA
# ============================================

@dataclass(frozen=True)
class TargetField:
    """One field of the normalized item record"""
    name: str
    type: str          # "string" | "date"
    description: str


TARGET_SCHEMA = (
    TargetField("name", "string", "Short name / label of the found item."),
    TargetField("itemColor", "string", "Colour of the item, when known."),
    TargetField("additionalInfo", "string", "Additional details, e.g. brand, model, serial number."),
    TargetField("foundDate", "date", "Date the item was found."),
    TargetField("location", "string", "General place the item was found (city, district)."),
    TargetField("foundPlace", "string", "More precise place the item was found."),
    TargetField("notificationDate", "date", "Date the finding was reported."),
    TargetField("warehousePlace", "string", "Where the item is stored."),
)

FIELD_NAMES = tuple(f.name for f in TARGET_SCHEMA)
DATE_FIELDS = frozenset(f.name for f in TARGET_SCHEMA if f.type == "date")

NormalizedRecord = Dict[str, str]


def schema_as_dicts() -> List[Dict[str, str]]:
    """Target schema in the shape sent to the model"""
    return [asdict(f) for f in TARGET_SCHEMA]


def coerce_record(raw: Mapping[str, Any]) -> NormalizedRecord:
    """
    Project an arbitrary mapping onto the 8 schema fields.

    Missing keys and ``None`` become empty strings, other scalars are
    converted with ``str`` and unknown keys are dropped.
    """
    record: NormalizedRecord = {}
    for name in FIELD_NAMES:
        value = raw.get(name)
        record[name] = "" if value is None else str(value).strip()
    return record


# ============================================
# EVALUATION STRUCTURES
# ============================================

@dataclass
class FieldEvaluation:
    """Agreement between one normalized field and its CSV source"""
    source_columns: List[str]
    source_value: str
    json_value: str
    field_score: float
    comment: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FieldEvaluation":
        return cls(
            source_columns=[str(c) for c in data.get("source_columns") or []],
            source_value=str(data.get("source_value") or ""),
            json_value=str(data.get("json_value") or ""),
            field_score=float(data.get("field_score") or 0.0),
            comment=str(data.get("comment") or ""),
        )


@dataclass
class RecordEvaluation:
    """Validation result for one CSV row / normalized record pair"""
    index: int                  # 1-based row ordinal
    source_row: str
    overall_score: float
    fields: Dict[str, FieldEvaluation] = field(default_factory=dict)

    def field_value(self, name: str) -> str:
        evaluation = self.fields.get(name)
        return evaluation.json_value if evaluation else ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "index": self.index,
            "source_row": self.source_row,
            "overall_score": self.overall_score,
            "fields": {name: asdict(f) for name, f in self.fields.items()},
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RecordEvaluation":
        fields = data.get("fields") or {}
        return cls(
            index=int(data["index"]),
            source_row=str(data.get("source_row") or ""),
            overall_score=float(data.get("overall_score") or 0.0),
            fields={name: FieldEvaluation.from_dict(f) for name, f in fields.items()},
        )


def compute_overall_score(scores: Iterable[float]) -> float:
    """Arithmetic mean of field scores, 0.0 when there are none"""
    values = [float(s) for s in scores]
    if not values:
        return 0.0
    return sum(values) / len(values)


def source_row_text(cells: Iterable[Optional[str]]) -> str:
    """Join the non-empty cells of a CSV row the way reviewers see it"""
    parts = [str(c).strip() for c in cells if c is not None and str(c).strip() != ""]
    return ", ".join(parts)
