"""
Exception logging helpers that never raise themselves, including for
exception groups whose sub-exceptions should each be visible in the log.
"""

import logging


def _safe_str(obj) -> str:
    try:
        return str(obj)
    except Exception:
        try:
            return repr(obj)
        except Exception:
            return f"<{type(obj).__name__} object (string conversion failed)>"


def _sub_exceptions(exception) -> list:
    try:
        return list(getattr(exception, "exceptions", None) or [])
    except Exception:
        return []


def format_exception_message(exception: BaseException | None) -> str:
    """
    Format an exception for a log line or an error response.

    Exception groups are flattened into ``main (Sub-exceptions: A: x; B: y)``.
    """
    if exception is None:
        return "None"
    subs = _sub_exceptions(exception)
    if not subs:
        return _safe_str(exception)
    parts = [f"{type(sub).__name__}: {_safe_str(sub)}" for sub in subs]
    return f"{_safe_str(exception)} (Sub-exceptions: {'; '.join(parts)})"


def log_exception_with_details(
    logger: logging.Logger,
    prefix: str,
    exception: BaseException | None,
    level: int = logging.ERROR,
) -> None:
    """
    Log ``exception`` with its traceback under ``prefix`` (e.g. ``[Proxy]``).

    Each sub-exception of an exception group gets its own line and traceback.
    """
    try:
        subs = _sub_exceptions(exception)
        if not subs:
            logger.log(
                level,
                f"{prefix} Exception: {_safe_str(exception)}",
                exc_info=exception if exception is not None else False,
            )
            return

        logger.log(
            level,
            f"{prefix} Exception with {len(subs)} sub-exceptions: {_safe_str(exception)}",
        )
        for i, sub in enumerate(subs):
            logger.log(
                level,
                f"{prefix} Sub-exception {i + 1}: {type(sub).__name__}: {_safe_str(sub)}",
                exc_info=sub,
            )
    except Exception:
        try:
            logger.log(logging.ERROR, f"{prefix} Exception (logging failed)")
        except Exception:
            # logging itself is broken; nothing left to report to
            pass
