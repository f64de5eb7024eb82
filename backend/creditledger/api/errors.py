from fastapi import HTTPException

from creditledger.errors import InvalidTransitionError, LedgerError, NotFoundError

STATUS_CODES = {
    NotFoundError: 404,
    InvalidTransitionError: 409,
}


def to_http(e: LedgerError) -> HTTPException:
    """NotFound -> 404, InvalidTransition -> 409, anything else (validation) -> 400."""
    for cls, code in STATUS_CODES.items():
        if isinstance(e, cls):
            return HTTPException(status_code=code, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))
