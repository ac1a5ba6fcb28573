# core/errors.py

from typing import Any, Dict, List, Optional


def extract_supabase_error(error: Exception) -> str:
    """
    Safely extract readable details from Supabase Python client errors.
    Handles:
      • PostgREST errors
      • GoTrue (Auth) errors
      • Generic Python exceptions
    """

    # Case 1: Supabase Auth / GoTrue / PostgREST APIError
    if hasattr(error, "message"):
        try:
            return str(error.message)
        except Exception:
            pass

    # Case 2: Supabase errors with args (common)
    if hasattr(error, "args") and error.args:
        try:
            return str(error.args[0])
        except Exception:
            pass

    # Case 3: Plain string fallback
    try:
        return str(error)
    except Exception:
        return "Unknown Supabase error"


class RecordStoreError(Exception):
    """A Supabase read or write failed."""

    def __init__(self, operation: str, error: Exception):
        self.operation = operation
        self.detail = extract_supabase_error(error)
        super().__init__(f"{operation}: {self.detail}")


class EmailTransportError(Exception):
    """The email provider rejected or never acknowledged a message."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class EmailApiError(Exception):
    """
    Terminates a send request with a JSON error body.

    Rendered by the handler in main.py as
    ``{"success": false, "message": ..., "errors"?: [...], **extra}``.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        errors: Optional[List[Dict[str, str]]] = None,
        **extra: Any,
    ):
        self.status_code = status_code
        self.message = message
        self.errors = errors
        self.extra = extra
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": False, "message": self.message}
        if self.errors:
            body["errors"] = self.errors
        body.update({k: v for k, v in self.extra.items() if v is not None})
        return body
