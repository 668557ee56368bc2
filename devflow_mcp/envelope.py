"""Uniform success/error payloads returned by every devflow_mcp tool."""

from __future__ import annotations

import logging
from typing import Any

from devflow_mcp.config import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)


def ok(**fields: Any) -> dict[str, Any]:
    payload = dict(fields)
    payload["success"] = True
    return payload


def failure(error: str, exc: BaseException | str, **context: Any) -> dict[str, Any]:
    """
    function_purpose: Build the error payload a tool returns instead of raising.

    Shape: {error, <context fields>, details, success: False}. The failure is logged
    at error level so it also lands in the rotating log file.
    """
    details = str(exc) if isinstance(exc, BaseException) else exc
    logger.error("%s: %s", error, details)
    payload: dict[str, Any] = {"error": error}
    payload.update(context)
    payload["details"] = details
    payload["success"] = False
    return payload
