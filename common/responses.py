from typing import Any, Dict, Optional


def message_response(message: str) -> Dict[str, Any]:
    """
    Standard acknowledgement envelope for operations without a body (e.g. deletes).
    """
    return {"message": message}


def error_response(message: str, details: Optional[Any] = None) -> Dict[str, Any]:
    """
    Standard error response envelope.
    """
    payload: Dict[str, Any] = {"message": message}
    if details is not None:
        payload["details"] = details
    return payload
