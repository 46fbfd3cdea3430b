# normalizer.py
"""
LLM-Based Record Normalization

Converts every row of an uploaded CSV into the fixed 8-field item record
with a single language-model call.

The model does the column interpretation (which column holds the item
name, which one the place, ...). Python code then enforces the rules that
must hold regardless of what the model answered:

- one record per CSV row, in order
- every record has exactly the schema fields, as strings
- date fields are ISO (YYYY-MM-DD) or empty, never raw source text
- additionalInfo never repeats the name
"""

import logging
from typing import Any, Dict, List

from lostfound.csv_loader import CsvTable, load_csv
from lostfound.dates import canonicalize_date
from lostfound.errors import NormalizationError
from lostfound.llm_client import LLMProvider, parse_json_reply
from lostfound.schema import DATE_FIELDS, NormalizedRecord, coerce_record

logger = logging.getLogger(__name__)


# ============================================
# PROMPT
# ============================================

NORMALIZATION_INSTRUCTIONS = """
You will receive the full content of a CSV file listing found items.
Convert EVERY CSV row into one JSON object.

Meaning of the JSON fields:
- "name": the item, a short label, e.g. "telefon", "telefon iPhone 15 Pro", "portfel skórzany".
- "itemColor": colour of the item, e.g. "czarny", "czerwony".
- "additionalInfo": extra details about the item, e.g. "w etui", "uszkodzony ekran", "z brelokiem".
- "foundDate": date the item was found.
- "location": general location, e.g. "DWORZEC PKP", "Warszawa".
- "foundPlace": more precise place, e.g. "peron 2", "autobus linii 10".
- "notificationDate": date the finding was reported or registered.
- "warehousePlace": where the item is stored.

General rules:
- The number of JSON objects must equal the number of CSV rows.
- Use only values present in the CSV.
- Never guess or add information.
- If a column does not exist or the value is empty, use "".
- If the match is ambiguous, use "".

Rules for "name":
- "name" is ALWAYS a short item label, not a description of the situation.
- Only take it from columns whose header contains words such as
  "nazwa", "nazwa przedmiotu", "przedmiot", "rzecz", "opis przedmiotu".
- If several such columns exist, pick the one that best looks like a short item name.
- If no column holds a sensible item name, set "name": "".

Rules for "additionalInfo":
- "additionalInfo" only holds extra details, features or remarks.
- Take it from columns whose header contains words such as
  "uwagi", "dodatkowe informacje", "cechy", "opis", "charakterystyka".
- NEVER copy into "additionalInfo" the value used for "name".
- If the only information about the item is its name, "additionalInfo" must be "".
- If there is no clear column with additional information, "additionalInfo" = "".

Rules for dates (mandatory):
- EVERY date must be written as YYYY-MM-DD.
- For a range of two days, e.g. "13-14 lipca 2024 r.", ALWAYS take the first
  date: "2024-07-13".
- Month names (e.g. "lipca") MUST be converted to the month number.
- If you cannot determine the date with full certainty, use "".
- NEVER copy the original date text. Only YYYY-MM-DD is allowed.
"""

RESPONSE_FORMAT = """
IMPORTANT: Return ONLY valid JSON in the following format:
{
  "items": [
    {
      "name": "string",
      "itemColor": "string",
      "additionalInfo": "string",
      "foundDate": "string (YYYY-MM-DD)",
      "location": "string",
      "foundPlace": "string",
      "notificationDate": "string (YYYY-MM-DD)",
      "warehousePlace": "string"
    }
  ]
}

Every CSV row must have a matching object in the "items" array.
"""


def build_normalization_prompt(table: CsvTable) -> str:
    """Full user prompt: instructions, CSV data, response format"""
    return (
        NORMALIZATION_INSTRUCTIONS
        + f"\nThe CSV has {table.row_count} data row(s).\n\nCSV data:\n"
        + table.to_csv_text()
        + "\n"
        + RESPONSE_FORMAT
    )


# ============================================
# RESPONSE HANDLING
# ============================================

def enforce_record_rules(record: NormalizedRecord) -> NormalizedRecord:
    """Apply the date and name/additionalInfo rules to one record"""
    for name in DATE_FIELDS:
        original = record[name]
        record[name] = canonicalize_date(original)
        if original and record[name] != original:
            logger.debug("Date field %s rewritten from %r to %r", name, original, record[name])

    if record["additionalInfo"] and record["additionalInfo"].casefold() == record["name"].casefold():
        record["additionalInfo"] = ""
    return record


def parse_normalization_response(content: str, expected_count: int) -> List[NormalizedRecord]:
    """
    Turn the model reply into records, one per CSV row.

    Raises:
        NormalizationError: if the reply is not a JSON object with an
            'items' list of exactly ``expected_count`` objects.
    """
    try:
        data = parse_json_reply(content)
    except ValueError as exc:
        raise NormalizationError(f"Model returned invalid JSON: {exc}", content) from exc

    if not isinstance(data, dict) or not isinstance(data.get("items"), list):
        raise NormalizationError("Model response does not contain an 'items' array", content)

    items = data["items"]
    if len(items) != expected_count:
        raise NormalizationError(
            f"Model returned {len(items)} items for {expected_count} CSV rows", content
        )

    records = []
    for position, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise NormalizationError(f"Item {position} is not a JSON object", content)
        records.append(enforce_record_rules(coerce_record(item)))
    return records


# ============================================
# MAIN NORMALIZATION FUNCTIONS
# ============================================

def normalize_table(provider: LLMProvider, table: CsvTable) -> List[NormalizedRecord]:
    """
    Normalize every row of a loaded table with one model call.

    Args:
        provider: Language model provider
        table: Loaded CSV table

    Returns:
        List of records, same length and order as ``table.rows``
    """
    logger.info("Normalizing %d CSV row(s)", table.row_count)
    prompt = build_normalization_prompt(table)
    content = provider.complete([{"role": "user", "content": prompt}])
    return parse_normalization_response(content, table.row_count)


def process_lost_items(provider: LLMProvider, csv_content: str, delimiter: str = ";") -> Dict[str, Any]:
    """
    Load raw CSV text and normalize it.

    Returns:
        ``{"items": [...]}`` with one record per CSV row
    """
    table = load_csv(csv_content, delimiter=delimiter)
    records = normalize_table(provider, table)
    return {"items": records}
