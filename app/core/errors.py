# app/core/errors.py
from typing import TypeVar

from fastapi import HTTPException, status

T = TypeVar("T")


def written_or_503(result: T | None, detail: str = "Catalog store unavailable") -> T:
    """
    Turn a guarded write's `None` / `False` (store missing or query failed)
    into a 503 for HTTP callers.
    """
    if result is None or result is False:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
        )
    return result
