"""
Console output wrapper.

``ConsoleOutput`` prints human-friendly lines (optional emoji and indent) for
interactive runs of the scoring job and forwards the same message to the
wrapped ``logging.Logger`` so it also lands in the JSON log files.
"""

import logging
from typing import Any, Optional


class ConsoleOutput:
    def __init__(self, logger: logging.Logger, quiet: bool = False):
        self.logger = logger
        self.quiet = quiet

    def _emit(self, level: int, message: str, emoji: Optional[str], indent: int, **extra: Any) -> None:
        if not self.quiet and message is not None:
            prefix = "  " * indent
            if emoji:
                prefix += f"{emoji} "
            print(f"{prefix}{message}")
        if message:
            self.logger.log(level, message, extra=extra or None)

    def debug(self, message: str, emoji: Optional[str] = None, indent: int = 0, **extra: Any) -> None:
        if self.logger.isEnabledFor(logging.DEBUG):
            self._emit(logging.DEBUG, message, emoji, indent, **extra)

    def info(self, message: str, emoji: Optional[str] = None, indent: int = 0, **extra: Any) -> None:
        self._emit(logging.INFO, message, emoji, indent, **extra)

    def success(self, message: str, indent: int = 0, **extra: Any) -> None:
        self._emit(logging.INFO, message, "✅", indent, **extra)

    def warning(self, message: str, indent: int = 0, **extra: Any) -> None:
        self._emit(logging.WARNING, message, "⚠️ ", indent, **extra)

    def error(self, message: str, indent: int = 0, **extra: Any) -> None:
        self._emit(logging.ERROR, message, "❌", indent, **extra)

    def section(self, title: str) -> None:
        rule = "=" * max(len(title), 40)
        if not self.quiet:
            print(rule)
            print(title)
            print(rule)
        self.logger.info(title)

    def progress(self, current: int, total: int, item_name: str, status_emoji: str = "") -> None:
        """Print ``[current/total] item`` and log it at INFO."""
        line = f"[{current}/{total}] {status_emoji + ' ' if status_emoji else ''}{item_name}"
        if not self.quiet:
            print(f"  {line}")
        self.logger.info(line)
