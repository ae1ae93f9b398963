"""
Run log for the converter.

Messages go to the console and, once init_logging() was given a path, to a
log file as well. Warnings and errors are remembered so the CLI can finish
with a summary of everything that went wrong across all converted files.

Usage:
    from rgss_codec.utils import log, logWarning, logError, logDebug, init_logging, print_summary

    init_logging(Path("conversion.log"), verbose=True)

    log("[1/3] Map001.rxdata -> Map001.yaml")   # progress and banners
    logWarning("unrecognized class Foo")         # output is usable but degraded
    logError("Map002.rxdata: truncated input")   # a file failed to convert
    logDebug("decoded 1234 objects")             # statistics, file only unless verbose

    print_summary()
"""

import sys
import atexit
from pathlib import Path
from datetime import datetime
from typing import List, Optional, TextIO, Tuple


class Colors:
    YELLOW = '\033[93m'
    RED = '\033[91m'
    GREEN = '\033[92m'
    CYAN = '\033[96m'
    BOLD = '\033[1m'
    RESET = '\033[0m'


RULE = '=' * 70

_log_file: Optional[TextIO] = None
_initialized = False
_verbose = False
_warnings: List[str] = []
_errors: List[str] = []


def _stamp() -> str:
    return datetime.now().strftime('%Y-%m-%d %H:%M:%S')


def init_logging(log_path: Optional[Path] = None, verbose: bool = False):
    """
    Start a run. Later calls are ignored until close_logging().

    Args:
        log_path: File to mirror messages into; None logs to the console only
        verbose: Show debug messages on the console too
    """
    global _log_file, _initialized, _verbose, _warnings, _errors

    if _initialized:
        return
    _initialized = True
    _verbose = verbose
    _warnings = []
    _errors = []

    if log_path is None:
        return

    log_path = Path(log_path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        _log_file = open(log_path, 'w', encoding='utf-8')
    except OSError as e:
        print(f"Warning: log file {log_path} unavailable ({e}), logging to console only", file=sys.stderr)
        return

    _write_to_file(f"Conversion started: {_stamp()}\n{RULE}\n")
    atexit.register(close_logging)


def close_logging():
    """Finish the log file (if any) and allow a new run to start."""
    global _log_file, _initialized

    if _log_file is not None:
        _write_to_file(f"\n{RULE}\nConversion finished: {_stamp()}")
        _log_file.close()
        _log_file = None
    _initialized = False


def _write_to_file(msg: str, end: str = "\n"):
    if _log_file is None:
        return
    try:
        _log_file.write(msg + end)
        _log_file.flush()
    except OSError:
        print(f"Warning: could not write to log file: {msg}", file=sys.stderr)


def _emit(msg: str, end: str, color: Optional[str] = None, console: bool = True, stream=None):
    if not _initialized:
        init_logging()
    if console:
        text = f"{color}{msg}{Colors.RESET}" if color else msg
        print(text, end=end, file=stream or sys.stdout)
    _write_to_file(msg, end)


def log(msg: str = "", end: str = "\n"):
    """Progress output: banners and one line per converted file."""
    _emit(msg, end)


def logWarning(msg: str, end: str = "\n"):
    """Something was dropped or guessed; the output file is still written."""
    _emit(f"Warning: {msg}", end, Colors.YELLOW)
    _warnings.append(msg)


def logError(msg: str, end: str = "\n"):
    """A conversion failed. Goes to stderr."""
    _emit(f"ERROR: {msg}", end, Colors.RED, stream=sys.stderr)
    _errors.append(msg)


def logDebug(msg: str, end: str = "\n"):
    _emit(f"[DEBUG] {msg}", end, Colors.CYAN, console=_verbose)


def get_counts() -> Tuple[int, int]:
    """Return (error_count, warning_count) for the current run."""
    return len(_errors), len(_warnings)


def _summary_section(title: str, color: str, messages: List[str]):
    if not messages:
        return
    print(f"\n{color}{Colors.BOLD}{title} ({len(messages)}):{Colors.RESET}")
    _write_to_file(f"\n{title} ({len(messages)}):")
    for message in messages:
        print(f"  {color}- {message}{Colors.RESET}")
        _write_to_file(f"  - {message}")


def print_summary():
    """Print every error and warning of the run, then the totals."""
    log("\n" + RULE)
    log("CONVERSION SUMMARY")
    log(RULE)

    _summary_section("Errors", Colors.RED, _errors)
    _summary_section("Warnings", Colors.YELLOW, _warnings)

    error_color = Colors.RED + Colors.BOLD if _errors else Colors.GREEN
    warning_color = Colors.YELLOW + Colors.BOLD if _warnings else Colors.GREEN
    print(f"\n{error_color}{len(_errors)} Error(s){Colors.RESET} | "
          f"{warning_color}{len(_warnings)} Warning(s){Colors.RESET}")
    _write_to_file(f"\n{len(_errors)} Error(s) | {len(_warnings)} Warning(s)")
