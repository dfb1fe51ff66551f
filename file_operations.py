#!/usr/bin/env python3
"""
File Operations Module

Thin, swappable wrapper over the filesystem primitives Anaktesis needs:
existence checks, stat, listing, text IO, and deletion with per-file error reporting.
"""

import os
import pathlib
from dataclasses import dataclass
from typing import Optional


@dataclass
class OperationResult:
    """Result of a file operation"""

    path: str
    success: bool
    error_message: Optional[str] = None


class FileOperations:
    """Filesystem handler; tests substitute their own implementation"""

    def exists(self, path) -> bool:
        return os.path.exists(path)

    def is_directory(self, path) -> bool:
        return os.path.isdir(path)

    def size(self, path) -> int:
        return os.path.getsize(path)

    def mtime(self, path) -> float:
        return os.path.getmtime(path)

    def delete(self, path):
        """Remove a single file; raises OSError on failure"""
        pathlib.Path(path).unlink()

    def list_files(self, directory) -> list[str]:
        """Return absolute paths of regular files directly inside directory"""
        entries = []
        with os.scandir(directory) as it:
            for entry in it:
                try:
                    if entry.is_file(follow_symlinks=False):
                        entries.append(os.path.abspath(entry.path))
                except OSError:
                    continue
        return sorted(entries)

    def basename(self, path, ext: Optional[str] = None) -> str:
        name = os.path.basename(path)
        if ext and name.endswith(ext):
            return name[: -len(ext)]
        return name

    def write_text(self, path, content: str):
        pathlib.Path(path).write_text(content, encoding="utf-8")

    def read_text(self, path) -> str:
        return pathlib.Path(path).read_text(encoding="utf-8", errors="replace")

    def delete_file(self, path) -> OperationResult:
        """Delete a file and capture the outcome instead of raising"""
        try:
            self.delete(path)
            return OperationResult(path=str(path), success=True)
        except OSError as e:
            return OperationResult(path=str(path), success=False, error_message=str(e))
