"""
Database Error Descriptions
============================

Maps MySQL driver error codes to operator-facing messages.
"""

from typing import Any, Dict, Optional

from pymysql.constants import CR, ER
from sqlalchemy.exc import DBAPIError

ACCESS_DENIED_MESSAGE = "Access denied. Please check database username and password."
CONNECTION_REFUSED_MESSAGE = "Connection refused. Please check if MySQL server is running."
BAD_DATABASE_MESSAGE = "Database does not exist."


def _driver_error(exc: BaseException) -> BaseException:
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        return exc.orig
    return exc


def get_error_code(exc: BaseException) -> Optional[int]:
    """Return the numeric MySQL error code carried by ``exc``, if any."""
    orig = _driver_error(exc)
    if isinstance(orig, ConnectionRefusedError):
        return CR.CR_CONN_HOST_ERROR
    args = getattr(orig, "args", ())
    if args and isinstance(args[0], int):
        return args[0]
    return None


def describe_database_error(exc: BaseException) -> str:
    """Human-readable explanation of a driver failure."""
    code = get_error_code(exc)
    if code == ER.ACCESS_DENIED_ERROR:
        return ACCESS_DENIED_MESSAGE
    if code == CR.CR_CONN_HOST_ERROR:
        return CONNECTION_REFUSED_MESSAGE
    if code == ER.BAD_DB_ERROR:
        return BAD_DATABASE_MESSAGE
    return f"Unknown database error: {_driver_error(exc)}"


def error_details(exc: BaseException) -> Dict[str, Any]:
    """Structured log context for a driver failure."""
    orig = _driver_error(exc)
    return {
        "error_code": get_error_code(exc),
        "error_type": type(orig).__name__,
        "error_message": str(orig),
    }
