# errors.py
"""
Exception hierarchy for the import pipeline.

Every pipeline error carries the HTTP status the API answers with:
input-shape problems are 400, model and configuration problems are 500.
"""

from typing import Optional


class IngestionError(Exception):
    """Base class for errors raised while processing an import"""
    status_code = 500


# ============================================
# INPUT-SHAPE ERRORS (400)
# ============================================

class NoRecordsError(IngestionError):
    """Raised when no parse strategy extracts any CSV record"""
    status_code = 400

    def __init__(self, message: str = "No records could be read from the CSV content"):
        super().__init__(message)


class RecordCountMismatchError(IngestionError):
    """Raised when CSV rows and JSON records cannot be paired one-to-one"""
    status_code = 400

    def __init__(self, csv_count: int, json_count: int):
        self.csv_count = csv_count
        self.json_count = json_count
        super().__init__(
            f"Record count mismatch: CSV has {csv_count} rows, JSON has {json_count} records"
        )


class InvalidJsonContentError(IngestionError):
    """Raised when jsonContent is neither a list nor an object with an 'items' list"""
    status_code = 400


class UnknownActionError(IngestionError):
    """Raised for an action other than process, validate or full"""
    status_code = 400

    def __init__(self, action: Optional[str]):
        self.action = action
        super().__init__(
            f"Invalid action {action!r}. Use 'process', 'validate' or 'full'"
        )


# ============================================
# EXTERNAL-CALL ERRORS (500)
# ============================================

class MissingApiKeyError(IngestionError):
    """Raised when the model API key is not configured"""

    def __init__(self):
        super().__init__("OPENAI_API_KEY is not set")


class ModelTransportError(IngestionError):
    """Raised when the request to the model API itself fails"""


class ModelResponseError(IngestionError):
    """Raised when the model answers with something unusable"""

    def __init__(self, message: str, raw_response: str = ""):
        self.raw_response = raw_response
        super().__init__(message)

    def __str__(self) -> str:
        message = super().__str__()
        if self.raw_response:
            return f"{message}\nContent: {self.raw_response}"
        return message


class NormalizationError(ModelResponseError):
    """Normalization response is not a JSON object with a matching 'items' list"""


class EvaluationError(ModelResponseError):
    """Validation response for a single record cannot be interpreted"""


# ============================================
# LOCAL PERSISTENCE
# ============================================

class StorageError(Exception):
    """Raised by key/value stores when a read or write fails"""
