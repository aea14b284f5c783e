"""
debug_trace.py

Debug instrumentation for tracing pointer handling and tool transitions.

Environment:
    FLOORSKETCH_DEBUG_TRACE=1   enable tracing
    FLOORSKETCH_TRACE_MOVE=1    also trace every pointer move (very verbose)
    FLOORSKETCH_TRACE_FILE=path copy trace lines to a file
"""

import os
import sys
import traceback
from datetime import datetime


def _flag(name: str) -> bool:
    return os.environ.get(name, "") not in ("", "0")


DEBUG_TRACE = _flag("FLOORSKETCH_DEBUG_TRACE")
TRACE_MOVE = _flag("FLOORSKETCH_TRACE_MOVE")
LOG_FILE = os.environ.get("FLOORSKETCH_TRACE_FILE", "")

# Categories that need their own switch on top of DEBUG_TRACE
_VERBOSE = {"MOVE": lambda: TRACE_MOVE}

_log_file = None


def _sink():
    global _log_file
    if LOG_FILE and _log_file is None:
        try:
            _log_file = open(LOG_FILE, "w", encoding="utf-8")
        except OSError as e:
            print(f"debug_trace: cannot open {LOG_FILE}: {e}", file=sys.stderr)
    return _log_file


def enabled(category: str = "INFO") -> bool:
    """Whether a trace in *category* would be written."""
    if not DEBUG_TRACE:
        return False
    gate = _VERBOSE.get(category)
    return gate is None or gate()


def trace(msg: str, category: str = "INFO"):
    """Write ``[time] [category] msg`` to stderr and the trace file."""
    if not enabled(category):
        return

    stamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    line = f"[{stamp}] [{category}] {msg}"
    print(line, file=sys.stderr, flush=True)

    sink = _sink()
    if sink is not None:
        try:
            sink.write(line + "\n")
            sink.flush()
        except OSError:
            pass


def trace_exception(msg: str = "Exception"):
    """Trace the exception currently being handled."""
    if DEBUG_TRACE:
        trace(f"{msg}: {traceback.format_exc()}", "ERROR")


def close_log():
    global _log_file
    if _log_file is not None:
        _log_file.close()
        _log_file = None
