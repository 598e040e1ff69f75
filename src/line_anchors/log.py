"""Console logging for the anchor engine and its CLI.

Messages go to stderr so JSON written to stdout stays machine-readable.
Debug lines are only emitted in verbose mode; the engine itself logs at
debug level, so library callers see nothing unless they opt in.
"""

import sys
import traceback
from typing import Any

_COLORS = {
    "debug": "36",  # Cyan
    "info": "37",  # White
    "warning": "33",  # Yellow
    "error": "31",  # Red
    "trace": "90",  # Gray
}


class Logger:
    """Stderr logger with optional ANSI colours.

    Attributes:
        verbose: If True, DEBUG messages are printed
        use_colors: If True (and stderr is a terminal), use ANSI color codes
    """

    def __init__(self, verbose: bool = False, use_colors: bool = True) -> None:
        self.verbose = verbose
        self.use_colors = use_colors and sys.stderr.isatty()

    def _colorize(self, text: str, level: str) -> str:
        if not self.use_colors:
            return text
        return f"\033[{_COLORS[level]}m{text}\033[0m"

    def _emit(self, text: str, level: str, fields: dict[str, Any]) -> None:
        formatted = self._colorize(text, level)
        if fields:
            details = " ".join(f"{k}={v!r}" for k, v in fields.items())
            formatted += f" ({details})"
        print(formatted, file=sys.stderr)

    def debug(self, message: str, **fields: Any) -> None:
        """Log debug message with optional key=value details (verbose only)."""
        if not self.verbose:
            return
        self._emit(f"DEBUG: {message}", "debug", fields)

    def info(self, message: str, **fields: Any) -> None:
        self._emit(message, "info", fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._emit(f"Warning: {message}", "warning", fields)

    def error(self, message: str, suggestion: str | None = None) -> None:
        """Log error message with optional suggestion.

        Args:
            message: Error message to log
            suggestion: Optional hint for fixing the error
        """
        self._emit(f"Error: {message}", "error", {})
        if suggestion:
            print(self._colorize(f"  -> {suggestion}", "warning"), file=sys.stderr)

    def exception(self, message: str, exc: BaseException) -> None:
        """Log an exception; the traceback is included in verbose mode."""
        self.error(f"{message}: {exc}")
        if self.verbose:
            tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            print(self._colorize(tb, "trace"), file=sys.stderr)


_logger: Logger | None = None


def init_logger(verbose: bool = False, use_colors: bool = True) -> Logger:
    """Initialize (or replace) the global logger.

    Args:
        verbose: Enable debug output
        use_colors: Enable ANSI color codes

    Returns:
        Logger instance
    """
    global _logger
    _logger = Logger(verbose=verbose, use_colors=use_colors)
    return _logger


def get_logger() -> Logger:
    """Return the global logger, creating a quiet one on first use."""
    if _logger is None:
        return init_logger()
    return _logger
