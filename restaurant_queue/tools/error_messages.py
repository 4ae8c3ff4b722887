"""User-friendly error messages and safe tool wrapper."""

import logging

from pydantic import ValidationError

from restaurant_queue.clients.resilience import (
    AuthError,
    CircuitOpenError,
    PermanentAPIError,
    SchemaChangeError,
    TransientAPIError,
)
from restaurant_queue.engine.booking_store import BranchInUseError
from restaurant_queue.engine.validation import BookingValidationError

logger = logging.getLogger(__name__)


def _first_validation_message(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "invalid value")
    return f"{location}: {message}" if location else message


def get_user_message(error: Exception, context: dict | None = None) -> str:
    """Map an exception to a user-friendly message.

    Args:
        error: The exception to translate.
        context: Optional dict with extra info (e.g. {"service": "Msegat"}).

    Returns:
        A human-readable error message.
    """
    service = (context or {}).get("service", "the messaging service")

    if isinstance(error, (BookingValidationError, BranchInUseError)):
        return str(error)
    if isinstance(error, ValidationError):
        return f"Invalid input. {_first_validation_message(error)}"
    if isinstance(error, AuthError):
        return (
            f"The credentials for {service} were rejected. "
            "Please update them in the restaurant settings."
        )
    if isinstance(error, SchemaChangeError):
        return (
            f"{service} returned a response we could not read. "
            "Please try again later."
        )
    if isinstance(error, CircuitOpenError):
        return (
            f"{service} is temporarily unavailable. "
            "Please try again in a few minutes."
        )
    if isinstance(error, TransientAPIError):
        return f"There was a temporary issue reaching {service}. Please try again shortly."
    if isinstance(error, PermanentAPIError):
        return f"Could not complete the request with {service}. {error}"
    if isinstance(error, ValueError):
        return str(error)
    return "Something went wrong. Please try again or contact support."


async def safe_tool_wrapper(
    func,  # type: ignore[no-untyped-def]
    *args: object,
    context: dict | None = None,
    **kwargs: object,
) -> str:
    """Call an async function, catching errors and returning friendly messages.

    Args:
        func: Async callable to invoke.
        *args: Positional arguments for *func*.
        context: Optional context dict for error messages.
        **kwargs: Keyword arguments for *func*.

    Returns:
        The function's return value on success, or a user-friendly error string.
    """
    try:
        return await func(*args, **kwargs)
    except (BookingValidationError, BranchInUseError, ValidationError, ValueError) as exc:
        logger.info("Rejected %s: %s", func.__name__, exc)
        return get_user_message(exc, context)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Tool error in %s", func.__name__)
        return get_user_message(exc, context)
