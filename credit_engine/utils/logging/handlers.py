"""
Rotating file handlers for scoring logs.

Rotated files are gzip-compressed so long-running scoring services keep a
bounded footprint on disk.
"""

import gzip
import logging
import os
import shutil
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


class CompressingRotatingFileHandler(RotatingFileHandler):
    """
    RotatingFileHandler that gzips each file as it is rotated out.

    Uses the standard ``namer``/``rotator`` hooks, so backups are named
    ``<file>.1.gz``, ``<file>.2.gz`` and so on.
    """

    def __init__(
        self,
        filename: str,
        mode: str = "a",
        maxBytes: int = 0,
        backupCount: int = 0,
        encoding: Optional[str] = None,
        delay: bool = False,
        compress: bool = True,
    ):
        super().__init__(filename, mode, maxBytes, backupCount, encoding, delay)
        self.compress = compress
        if compress:
            self.namer = self._gz_namer
            self.rotator = self._gz_rotator

    @staticmethod
    def _gz_namer(default_name: str) -> str:
        return f"{default_name}.gz"

    @staticmethod
    def _gz_rotator(source: str, dest: str) -> None:
        try:
            with open(source, "rb") as f_in:
                with gzip.open(dest, "wb") as f_out:
                    shutil.copyfileobj(f_in, f_out)
            os.remove(source)
        except OSError as e:
            # Keep the uncompressed file rather than losing log lines
            sys.stderr.write(f"Warning: failed to compress {source}: {e}\n")
            if os.path.exists(source):
                os.replace(source, dest[: -len(".gz")])


def create_rotating_handler(
    log_file: str,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 10,
    compress: bool = True,
    formatter: Optional[logging.Formatter] = None,
) -> CompressingRotatingFileHandler:
    """
    Build a handler for ``log_file``, creating its directory first.

    ``max_bytes`` of 0 disables rotation; ``backup_count`` caps how many
    rotated (and, with ``compress``, gzipped) files are kept.
    """
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    handler = CompressingRotatingFileHandler(
        filename=log_file, maxBytes=max_bytes, backupCount=backup_count, compress=compress, encoding="utf-8"
    )
    if formatter:
        handler.setFormatter(formatter)
    return handler
