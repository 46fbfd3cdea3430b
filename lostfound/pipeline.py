# pipeline.py
"""
Dispatch of the three import actions shared by the HTTP route and the CLI.

- ``process``:  CSV -> normalized items
- ``validate``: CSV + items -> per-record evaluations
- ``full``:     process, then validate the CSV against its own output
"""

import logging
from typing import Any, Dict, Optional

from lostfound.errors import UnknownActionError
from lostfound.llm_client import LLMProvider
from lostfound.normalizer import process_lost_items
from lostfound.validator import validate_dataset

logger = logging.getLogger(__name__)

ACTIONS = ("process", "validate", "full")


def run_action(
    provider: LLMProvider,
    action: Optional[str],
    csv_content: str,
    json_content: Any = None,
    delimiter: str = ";",
) -> Dict[str, Any]:
    """
    Run one action and build the response payload.

    Raises:
        UnknownActionError: for a missing action or one outside ACTIONS
        IngestionError: any pipeline failure, nothing partial is returned
    """
    if action not in ACTIONS:
        raise UnknownActionError(action)

    logger.info("Running action '%s'", action)

    if action == "process":
        json_data = process_lost_items(provider, csv_content, delimiter=delimiter)
        return {"action": action, "jsonData": json_data}

    if action == "validate":
        results = validate_dataset(provider, csv_content, json_content, delimiter=delimiter)
        return {"action": action, "results": [r.to_dict() for r in results]}

    json_data = process_lost_items(provider, csv_content, delimiter=delimiter)
    results = validate_dataset(
        provider, csv_content, None, delimiter=delimiter, records=json_data["items"]
    )
    return {
        "action": action,
        "jsonData": json_data,
        "validationResults": [r.to_dict() for r in results],
    }
