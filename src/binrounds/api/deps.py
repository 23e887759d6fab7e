"""Shared request dependencies and error translation for the routers."""

from __future__ import annotations

import logging
from typing import NoReturn, Optional

from fastapi import Header, HTTPException, status

from ..config import settings
from ..errors import Conflict, CorruptData, InvalidInput, NotFound, SchedulingError
from ..persistence.provider import get_store
from ..persistence.store import Store

_STATUS_BY_ERROR = (
    (InvalidInput, status.HTTP_400_BAD_REQUEST),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (Conflict, status.HTTP_409_CONFLICT),
    (CorruptData, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def store_dependency() -> Store:
    return get_store()


def require_ops_key(x_ops_admin_key: Optional[str] = Header(default=None)) -> None:
    """Shared-key gate for ops endpoints; a no-op when no key is configured."""
    if settings.ops_admin_key and x_ops_admin_key != settings.ops_admin_key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def raise_http(exc: Exception, action: str) -> NoReturn:
    """Translate an engine error into an ``HTTPException`` carrying its kind."""
    if isinstance(exc, SchedulingError):
        for error_type, status_code in _STATUS_BY_ERROR:
            if isinstance(exc, error_type):
                if status_code >= 500:
                    logging.error(f"Data integrity problem while trying to {action}: {exc}")
                raise HTTPException(status_code=status_code, detail=exc.to_dict()) from exc
    logging.exception(f"Error trying to {action}: {exc}")
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"kind": getattr(exc, "kind", "error"), "message": f"Failed to {action}: {exc}"},
    ) from exc
