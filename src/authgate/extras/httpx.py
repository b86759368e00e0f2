"""Optional httpx failure extractor."""

import importlib
from typing import Any

from ..failure import NETWORK_ERROR_CODE, TIMEOUT, RawFailure, failure_of


def _response_body(response: Any) -> Any:
    try:
        return response.json()
    except Exception:
        return None


def httpx_failure(exc: BaseException) -> RawFailure:
    """
    Map httpx exceptions onto the raw failure shapes the classifier reads.

    * HTTPStatusError  -> {"status": <code>, "result": <JSON body or None>}
    * TimeoutException -> the "timeout" sentinel
    * TransportError   -> a nested network-error code (-1)

    This helper is optional and degrades gracefully when httpx is unavailable.
    """
    try:
        httpx_mod = importlib.import_module("httpx")
    except Exception:
        return failure_of(exc)

    status_error = getattr(httpx_mod, "HTTPStatusError", None)
    if status_error is not None and isinstance(status_error, type) and isinstance(exc, status_error):
        response = getattr(exc, "response", None)
        status = getattr(response, "status_code", None)
        return {"status": status, "result": _response_body(response)}

    timeout_exc = getattr(httpx_mod, "TimeoutException", None)
    if timeout_exc is not None and isinstance(timeout_exc, type) and isinstance(exc, timeout_exc):
        return TIMEOUT

    transport_error = getattr(httpx_mod, "TransportError", None)
    if (
        transport_error is not None
        and isinstance(transport_error, type)
        and isinstance(exc, transport_error)
    ):
        return {"result": {"error": {"code": NETWORK_ERROR_CODE, "message": str(exc)}}}

    return failure_of(exc)
