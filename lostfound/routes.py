# routes.py
"""
Processing endpoint of the import backend.

A single POST entry point selected by ``action``:

- ``process``:  {csvContent} -> {action, jsonData: {items}}
- ``validate``: {csvContent, jsonContent} -> {action, results}
- ``full``:     {csvContent} -> {action, jsonData, validationResults}
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from lostfound.errors import IngestionError
from lostfound.llm_client import LLMProvider, get_default_provider
from lostfound.pipeline import run_action
from lostfound.settings import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["import"])


# ============================================
# PYDANTIC MODELS
# ============================================

class ProcessRequest(BaseModel):
    """Body of the processing endpoint (camelCase, as sent by the web client)"""
    csvContent: Optional[str] = None
    jsonContent: Optional[Any] = None
    action: Optional[str] = None


# ============================================
# DEPENDENCIES
# ============================================

def get_provider(settings: Settings = Depends(get_settings)) -> LLMProvider:
    """Model provider for the request, 500 when no API key is configured"""
    try:
        return get_default_provider(settings)
    except IngestionError as exc:
        logger.error("Cannot build model provider: %s", exc)
        raise HTTPException(status_code=exc.status_code, detail=str(exc))


# ============================================
# ENDPOINTS
# ============================================

@router.post("/", response_model=Dict[str, Any])
def process_import(
    request: ProcessRequest,
    provider: LLMProvider = Depends(get_provider),
    settings: Settings = Depends(get_settings),
):
    """
    Normalize and/or validate an uploaded CSV.

    The model calls block, so the endpoint runs in the worker thread pool.
    """
    if not request.csvContent:
        raise HTTPException(status_code=400, detail="csvContent is missing from the request")

    if request.action == "validate" and request.jsonContent in (None, ""):
        raise HTTPException(
            status_code=400,
            detail="jsonContent is missing from the request for action 'validate'",
        )

    try:
        return run_action(
            provider,
            request.action,
            request.csvContent,
            request.jsonContent,
            delimiter=settings.CSV_DELIMITER,
        )
    except IngestionError as exc:
        if exc.status_code >= 500:
            logger.error("Import failed: %s", exc)
        else:
            logger.warning("Rejected import: %s", exc)
        raise HTTPException(status_code=exc.status_code, detail=str(exc))
    except Exception as exc:
        logger.exception("Unexpected error while processing import")
        raise HTTPException(status_code=500, detail=f"Error while processing the file: {exc}")
