"""
logging_utils.py

Central logging utilities for DinnerMatch.

Log format (one line):
<RunId>|<Date>|<Time>|<Level>|<File:Line>|<Module.Func>|<ModulePurpose>|
<InvokingFunc>|<InvokingFuncPurpose>|<Detail>|<NextStep>|<Resolution>|<END>

Two interfaces:
  * get_logger(name) + extra={...} for library modules
  * log_info / log_warning / log_error for scripts (run banner, CLI steps)
"""

from __future__ import annotations

import datetime
import logging
import os
import uuid
from typing import Dict, Optional

LOG_RUN_ID: str = uuid.uuid4().hex[:8]
# Alias for compatibility with scripts that use RUN_ID
RUN_ID: str = LOG_RUN_ID

_SCRIPT_LOGGER_NAME = "dinner_match.scripts"


class StructuredFormatter(logging.Formatter):
    """
    Custom formatter that emits a single '|' separated line conforming
    to the log template above.
    """

    # High-level purposes by module name
    MODULE_PURPOSES: Dict[str, str] = {
        "candidate": "Pick the shared daily recipe candidate from the recipe list",
        "vote_ledger": "Keep the per-user per-day vote ledger (optimistic + confirmed)",
        "match_detector": "Detect mutual likes between paired users and emit Match events",
        "pairing": "Hold self/partner identity and persist the local profile",
        "supabase_store": "Read/write recipes and swipes in Supabase",
        "realtime": "Stream swipe insertions from Supabase Realtime",
        "memory": "In-process recipe/vote stores for local mode and tests",
        "match_session": "Wire selector, ledger, detector and stores for one user session",
        "config": "Create Supabase clients using environment variables",
        "cli": "Command line entrypoint for daily swipes and matches",
    }

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        """Format log record into structured pipe-delimited format."""
        dt = datetime.datetime.fromtimestamp(record.created, tz=datetime.timezone.utc)
        date_str = dt.strftime("%Y-%m-%d")
        time_str = dt.strftime("%H:%M:%S")

        run_id = getattr(record, "run_id", RUN_ID)

        level = record.levelname
        code_location = f"{record.filename}:{record.lineno}"
        func_name = record.funcName
        module_name = record.module
        module_purpose = getattr(record, "module_purpose", "") or self.MODULE_PURPOSES.get(module_name, "")

        invoking_func = getattr(record, "invoking_func", "")
        invoking_purpose = getattr(record, "invoking_purpose", "")
        next_step = getattr(record, "next_step", "")
        resolution = getattr(record, "resolution", "")

        detail = record.getMessage()
        if record.exc_info:
            detail = f"{detail} | EXC={record.exc_info[1]!r}"

        return (
            f"{run_id}|{date_str}|{time_str}|{level}|{code_location}|"
            f"{module_name}.{func_name}|{module_purpose}|"
            f"{invoking_func}|{invoking_purpose}|"
            f"{detail}|{next_step}|{resolution}|<END>"
        )


def init_logging(level: Optional[int] = None) -> None:
    """
    Initialize the dinner_match logger once with our StructuredFormatter.

    Level comes from DINNER_MATCH_LOG_LEVEL when not given explicitly.
    """
    base = logging.getLogger("dinner_match")
    if base.handlers:
        # Already configured, avoid double handlers in REPL / notebooks
        return

    if level is None:
        level_name = os.environ.get("DINNER_MATCH_LOG_LEVEL", "INFO").upper()
        level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    base.addHandler(handler)
    base.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """
    Return a logger configured with structured formatting.

    Names are placed under the "dinner_match" hierarchy so one handler
    serves every module.

    Usage:
        logger = get_logger("match_detector")
        logger.info(
            "Match emitted",
            extra={
                "invoking_func": "on_vote_observed",
                "invoking_purpose": "High-level purpose",
                "next_step": "What happens next",
                "resolution": "How to fix if error",
            },
        )
    """
    init_logging()
    if not name.startswith("dinner_match"):
        name = f"dinner_match.{name}"
    return logging.getLogger(name)


def _log(
    level: int,
    message: str,
    *,
    module_purpose: str,
    invoking_function: str = "",
    invoking_purpose: str = "",
    next_step: str = "",
    resolution: str = "",
    exc: Optional[BaseException] = None,
) -> None:
    logger = get_logger(_SCRIPT_LOGGER_NAME)
    if exc is not None:
        message = f"{message} | EXC={exc!r}"
    logger.log(
        level,
        message,
        stacklevel=3,
        extra={
            "module_purpose": module_purpose,
            "invoking_func": invoking_function,
            "invoking_purpose": invoking_purpose,
            "next_step": next_step,
            "resolution": resolution,
        },
    )


def log_info(
    message: str,
    *,
    module_purpose: str,
    invoking_function: str = "",
    invoking_purpose: str = "",
    next_step: str = "",
    resolution: str = "",
) -> None:
    _log(
        logging.INFO,
        message,
        module_purpose=module_purpose,
        invoking_function=invoking_function,
        invoking_purpose=invoking_purpose,
        next_step=next_step,
        resolution=resolution,
    )


def log_warning(
    message: str,
    *,
    module_purpose: str,
    invoking_function: str = "",
    invoking_purpose: str = "",
    next_step: str = "",
    resolution: str = "",
) -> None:
    _log(
        logging.WARNING,
        message,
        module_purpose=module_purpose,
        invoking_function=invoking_function,
        invoking_purpose=invoking_purpose,
        next_step=next_step,
        resolution=resolution,
    )


def log_error(
    message: str,
    *,
    module_purpose: str,
    invoking_function: str = "",
    invoking_purpose: str = "",
    next_step: str = "",
    resolution: str = "",
    exc: Optional[BaseException] = None,
) -> None:
    _log(
        logging.ERROR,
        message,
        module_purpose=module_purpose,
        invoking_function=invoking_function,
        invoking_purpose=invoking_purpose,
        next_step=next_step,
        resolution=resolution,
        exc=exc,
    )
