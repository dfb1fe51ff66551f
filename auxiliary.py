#!/usr/bin/env python3
"""
Auxiliary utility functions for Anaktesis

Size parsing and formatting plus small display helpers shared by the
workflow, the report writer and the CLI.
"""

import pathlib
import re
from typing import Optional

_SIZE_UNITS = {"k": 1024, "m": 1024**2, "g": 1024**3}
_SIZE_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)([kmg])b?$")
_BYTES_PATTERN = re.compile(r"^(\d+)b?$")


def parse_size(value) -> int:
    """Parse a human-readable size like '100MB', '1.5GB', '500KB' or '1024' into bytes

    Args:
        value: Size string (case-insensitive) or an integer byte count

    Returns:
        Size in bytes

    Raises:
        ValueError: If the unit is not recognized
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return value

    text = str(value).strip().lower()

    match = _BYTES_PATTERN.match(text)
    if match:
        return int(match.group(1))

    match = _SIZE_PATTERN.match(text)
    if match:
        return int(float(match.group(1)) * _SIZE_UNITS[match.group(2)])

    raise ValueError(f"Invalid size '{value}'. Use formats like: 100MB, 1.5GB, 500KB, or raw bytes")


def format_bytes(size_bytes: int) -> str:
    """Format byte size into human-readable string

    Args:
        size_bytes: Size in bytes to format

    Returns:
        Formatted string like "1.5GB", "100.0MB", "12.0KB", or "789 bytes"
    """
    if size_bytes >= 1024**3:
        return f"{size_bytes / (1024**3):.1f}GB"
    if size_bytes >= 1024**2:
        return f"{size_bytes / (1024**2):.1f}MB"
    if size_bytes >= 1024:
        return f"{size_bytes / 1024:.1f}KB"
    return f"{size_bytes} bytes"


def format_path_for_display(path: str, home_path: Optional[str] = None) -> str:
    """Format file path for display by replacing home directory with ~

    Args:
        path: File path to format
        home_path: Home directory path (defaults to platform home)

    Returns:
        Path with home directory replaced by ~ if applicable
    """
    if home_path is None:
        home_path = str(pathlib.Path.home())

    path = str(path)
    if path == home_path or path.startswith(home_path.rstrip("/") + "/"):
        return "~" + path[len(home_path.rstrip("/")) :]
    return path


def short_hash(value: Optional[str], length: int = 12) -> str:
    """Shorten a content hash for table display"""
    if value is None:
        return "not computed"
    if value == "":
        return "unavailable"
    return value[:length]
