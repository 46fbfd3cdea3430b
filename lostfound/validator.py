# validator.py
"""
Field-level validation of normalized records.

For each CSV row the model receives the target schema, the CSV header,
the row and the normalized record, and answers which column(s) every
field came from, the literal source value and an agreement score in
[0, 1]. The overall score of a record is recomputed here as the mean of
the field scores so it always matches what reviewers see.
"""

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from lostfound.csv_loader import load_csv
from lostfound.errors import EvaluationError, InvalidJsonContentError, RecordCountMismatchError
from lostfound.llm_client import LLMProvider, parse_json_reply
from lostfound.schema import (
    FIELD_NAMES,
    FieldEvaluation,
    NormalizedRecord,
    RecordEvaluation,
    coerce_record,
    compute_overall_score,
    schema_as_dicts,
    source_row_text,
)

logger = logging.getLogger(__name__)

NOT_EVALUATED_COMMENT = "Field was not evaluated by the model."

SYSTEM_PROMPT = """
You are a data correctness validator.

You receive:
- target_schema: definition of the target JSON fields,
- csv_header: list of CSV columns,
- csv_row: values of one CSV record,
- json_record: the JSON record produced by the mapping.

Your tasks:
1. Match every JSON field to the best matching CSV column(s).
2. Extract the source values from the CSV (source_value).
3. Compare source_value with json_value and score their agreement (field_score 0-1).
4. Write a comment when field_score < 1.0.
5. Compute overall_score as the mean of field_score.
6. If the CSV has no data for a field, its json_value should be empty.
7. If location is filled, foundPlace does not have to repeat the same value.
8. Return ONLY JSON in the format:
{
  "overall_score": <0-1>,
  "fields": {
    "<field>": {
      "source_columns": [...],
      "source_value": "...",
      "json_value": "...",
      "field_score": <0-1>,
      "comment": ""
    }
  }
}

Do not add anything besides the JSON.
"""


def build_user_message(header: Sequence[str], row: Sequence[str], record: NormalizedRecord) -> str:
    payload = {
        "target_schema": schema_as_dicts(),
        "csv_header": list(header),
        "csv_row": list(row),
        "json_record": record,
    }
    return (
        "Use the data below to validate the JSON record against the CSV record.\n"
        "Return only the JSON object described in the system prompt.\n\n"
        "INPUT:\n" + json.dumps(payload, ensure_ascii=False, indent=2)
    )


# ============================================
# RESPONSE HANDLING
# ============================================

def _clamp_score(value: Any, field_name: str, content: str) -> float:
    if isinstance(value, bool):
        raise EvaluationError(f"field_score of '{field_name}' is not a number", content)
    try:
        score = float(value)
    except (TypeError, ValueError) as exc:
        raise EvaluationError(f"field_score of '{field_name}' is not a number", content) from exc
    if score != score:  # NaN
        raise EvaluationError(f"field_score of '{field_name}' is not a number", content)
    return min(1.0, max(0.0, score))


def _field_evaluation(raw: Mapping[str, Any], json_value: str, field_name: str, content: str) -> FieldEvaluation:
    columns: List[str] = []
    for column in raw.get("source_columns") or []:
        column = str(column)
        if column not in columns:
            columns.append(column)

    score = _clamp_score(raw.get("field_score"), field_name, content)
    comment = "" if score == 1.0 else str(raw.get("comment") or "")
    source_value = raw.get("source_value")
    return FieldEvaluation(
        source_columns=columns,
        source_value="" if source_value is None else str(source_value),
        json_value=json_value,
        field_score=score,
        comment=comment,
    )


def parse_evaluation(content: str, record: NormalizedRecord, index: int, source_row: str) -> RecordEvaluation:
    """
    Build a RecordEvaluation from the model reply for one record.

    Every target field is evaluated: a field missing from the reply scores
    0.0 and fields outside the target schema are ignored, so the overall
    score is always the mean over all eight fields.

    Raises:
        EvaluationError: if the reply is not JSON, has no 'fields' object
            or carries a non-numeric score.
    """
    try:
        data = parse_json_reply(content)
    except ValueError as exc:
        raise EvaluationError(f"Invalid JSON in validation response: {exc}", content) from exc

    if not isinstance(data, dict) or not isinstance(data.get("fields"), dict):
        raise EvaluationError("Validation response does not contain a 'fields' object", content)

    raw_fields = data["fields"]
    fields: Dict[str, FieldEvaluation] = {}
    for name in FIELD_NAMES:
        raw = raw_fields.get(name)
        if raw is None:
            fields[name] = FieldEvaluation(
                source_columns=[],
                source_value="",
                json_value=record[name],
                field_score=0.0,
                comment=NOT_EVALUATED_COMMENT,
            )
            continue
        if not isinstance(raw, dict):
            raise EvaluationError(f"Evaluation of '{name}' is not a JSON object", content)
        fields[name] = _field_evaluation(raw, record[name], name, content)

    overall = compute_overall_score(f.field_score for f in fields.values())
    reported = data.get("overall_score")
    if isinstance(reported, (int, float)) and abs(float(reported) - overall) > 1e-6:
        logger.debug("Record %d: model overall_score %s replaced by mean %.4f", index, reported, overall)

    return RecordEvaluation(index=index, source_row=source_row, overall_score=overall, fields=fields)


# ============================================
# VALIDATION FUNCTIONS
# ============================================

def validate_record(
    provider: LLMProvider,
    header: Sequence[str],
    row: Sequence[str],
    record: Mapping[str, Any],
    index: int,
) -> RecordEvaluation:
    """Validate one normalized record against its CSV row (1-based ``index``)"""
    normalized = coerce_record(record)
    content = provider.complete([
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": build_user_message(header, row, normalized)},
    ])
    return parse_evaluation(content, normalized, index, source_row_text(row))


def load_json_records(json_content: Any) -> List[Dict[str, Any]]:
    """
    Accept a JSON string or decoded value: a bare array of records or an
    object with an 'items' array.

    Raises:
        InvalidJsonContentError: for anything else
    """
    data = json_content
    if isinstance(json_content, (str, bytes)):
        try:
            data = json.loads(json_content)
        except ValueError as exc:
            raise InvalidJsonContentError(f"jsonContent is not valid JSON: {exc}") from exc

    if isinstance(data, dict) and isinstance(data.get("items"), list):
        data = data["items"]

    if not isinstance(data, list):
        raise InvalidJsonContentError(
            "jsonContent must be a list of records or an object with an 'items' list"
        )

    for position, record in enumerate(data, start=1):
        if not isinstance(record, dict):
            raise InvalidJsonContentError(f"Record {position} in jsonContent is not an object")
    return data


def validate_dataset(
    provider: LLMProvider,
    csv_content: str,
    json_content: Any,
    delimiter: str = ";",
    records: Optional[List[Dict[str, Any]]] = None,
) -> List[RecordEvaluation]:
    """
    Validate every normalized record against its CSV row, in row order.

    Args:
        provider: Language model provider
        csv_content: Raw CSV text
        json_content: JSON string, list of records or {"items": [...]}
        delimiter: CSV field separator
        records: Already decoded records; takes precedence over json_content

    Raises:
        RecordCountMismatchError: before any model call when counts differ
    """
    table = load_csv(csv_content, delimiter=delimiter)
    json_records = records if records is not None else load_json_records(json_content)

    if table.row_count != len(json_records):
        raise RecordCountMismatchError(table.row_count, len(json_records))

    logger.info("Validating %d record(s)", table.row_count)
    results = []
    for position, (row, record) in enumerate(zip(table.rows, json_records), start=1):
        results.append(validate_record(provider, table.header, row, record, position))
    return results
