"""
Helpers for deciding how much of an underlying exception reaches clients.
"""
from config import settings


def error_details(exc: BaseException) -> dict:
    """
    Underlying exception text for an error's ``details``.

    Empty unless EXPOSE_ERROR_DETAILS is on; the message is always logged
    server-side by the caller.
    """
    if settings.expose_error_details:
        return {"reason": f"{type(exc).__name__}: {exc}"}
    return {}


def exposed_details(**fields: str) -> dict:
    """Node-supplied text (e.g. a pool error) for ``details``, under the same switch."""
    if settings.expose_error_details:
        return dict(fields)
    return {}
