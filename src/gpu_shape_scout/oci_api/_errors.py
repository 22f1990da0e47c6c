"""Upstream error handling for OCI SDK calls."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import oci

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """An OCI API call failed or returned a non-success status.

    *status* is the HTTP status code, or ``None`` for transport-level
    failures where no response was received.
    """

    def __init__(
        self,
        operation: str,
        status: int | None = None,
        code: str | None = None,
        message: str = "",
    ) -> None:
        self.operation = operation
        self.status = status
        self.code = code
        self.message = message
        detail = f"status={status}" if status is not None else "transport error"
        if code:
            detail += f" code={code}"
        text = f"{operation} failed ({detail})"
        if message:
            text += f": {message}"
        super().__init__(text)


def check_response(operation: str, response: Any) -> Any:
    """Return *response* if its status is 200, else raise :class:`UpstreamError`."""
    status = getattr(response, "status", None)
    if status != 200:
        logger.info("%s: status code %s", operation, status)
        raise UpstreamError(operation, status=status, message="unexpected response status")
    return response


def call_upstream(operation: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Invoke an SDK call and normalise every failure to :class:`UpstreamError`."""
    try:
        response = fn(*args, **kwargs)
    except oci.exceptions.ServiceError as exc:
        raise UpstreamError(
            operation, status=exc.status, code=exc.code, message=exc.message
        ) from exc
    except (oci.exceptions.RequestException, oci.exceptions.ConnectTimeout) as exc:
        # ConnectTimeout does not derive from oci.exceptions.RequestException.
        raise UpstreamError(operation, message=str(exc)) from exc
    return check_response(operation, response)
