"""Mapping of service error codes to HTTP status codes."""
from typing import Any, Dict

from fastapi import HTTPException

from ..services.compliance.errors import NOT_FOUND, RANGE_TOO_LARGE, RejectionReason

ERROR_STATUS = {
    NOT_FOUND: 404,
    RejectionReason.FUTURE_DATE.value: 400,
    RejectionReason.TOO_OLD.value: 400,
    RANGE_TOO_LARGE: 400,
}


def raise_for_error(result: Dict[str, Any]) -> Dict[str, Any]:
    """Raise HTTPException if a service result carries an error; else return it."""
    if "error" in result:
        status_code = ERROR_STATUS.get(result.get("error_code"), 400)
        raise HTTPException(
            status_code=status_code,
            detail={"error": result["error"], "error_code": result.get("error_code")},
        )
    return result
