"""Filesystem helpers for arobootstrap."""

import logging
import os
import sys
import tempfile
from pathlib import Path

from rich.console import Console

from arobootstrap.constants import SECRET_FILE_MODE
from arobootstrap.errors import BootstrapError


class FileSystemService:
    """Encapsulates file side effects for secret-bearing artifacts."""

    def __init__(self, logger: logging.Logger, console: Console):
        self.logger = logger
        self.console = console

    def set_permissions(self, path: str, mode: int):
        if sys.platform == "win32":
            return

        try:
            os.chmod(path, mode)
        except OSError as exc:
            self.logger.warning("Could not set permissions on %s: %s", path, exc)

    def write_private_file(self, path: str, content: str, mode: int = SECRET_FILE_MODE):
        """Atomically replaces *path* with *content*, readable by the owner only."""
        directory = os.path.dirname(os.path.abspath(path))
        os.makedirs(directory, exist_ok=True)

        fd, temp_path = tempfile.mkstemp(prefix=".tmp-", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
                file_obj.write(content)
            self.set_permissions(temp_path, mode)
            os.replace(temp_path, path)
        except OSError as exc:
            raise BootstrapError(f"Could not write file '{path}': {exc}") from exc
        finally:
            self.remove_file(temp_path)

    def read_text(self, path: str) -> str:
        try:
            return Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise BootstrapError(f"Could not read file '{path}': {exc}") from exc

    def remove_file(self, path: str):
        if os.path.exists(path):
            try:
                os.remove(path)
                self.logger.debug("Removed file: %s", path)
            except OSError as exc:
                message = f"Warning: Could not remove {path}: {exc}"
                self.console.print(f"[yellow]{message}[/yellow]")
                self.logger.warning(message)
