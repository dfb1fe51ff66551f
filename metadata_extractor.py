#!/usr/bin/env python3
"""
Metadata URL Extractor

Finds the URLs a downloaded file came from. Browsers record them in an
extended attribute (macOS ``kMDItemWhereFroms``, freedesktop
``user.xdg.origin.url``); as a fallback a Windows-style ``<name>.url``
shortcut next to the file is read.

Extraction is local only and never raises: an absent, empty or corrupt
attribute simply yields no URLs.
"""

import logging
import os
import plistlib
import re
import shutil
import subprocess
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from file_operations import FileOperations

logger = logging.getLogger(__name__)

SIDECAR_URL_PATTERN = re.compile(r"^\s*URL\s*=\s*(.+?)\s*$", re.MULTILINE | re.IGNORECASE)


class UrlOrigin(Enum):
    METADATA = "metadata"
    SIDECAR = "sidecar"


@dataclass(frozen=True)
class ProvenanceURL:
    url: str
    origin: UrlOrigin


def unique_in_order(values: list[str]) -> list[str]:
    seen = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


def is_web_url(value) -> bool:
    return isinstance(value, str) and value.lower().startswith(("http://", "https://"))


# ---------------------------------------------------------------------------
# Origin attribute readers
# ---------------------------------------------------------------------------


class WhereFromReader:
    """Reads the origin attribute of a file; the base class knows none"""

    def read(self, path) -> list[str]:
        return []


class NullWhereFromReader(WhereFromReader):
    """Reader for platforms without an origin attribute"""


class MacWhereFromReader(WhereFromReader):
    """Reads ``com.apple.metadata:kMDItemWhereFroms`` through the xattr tool

    The attribute holds a binary property list (an array of strings), dumped
    by ``xattr -px`` as hex and decoded in memory.
    """

    ATTRIBUTE = "com.apple.metadata:kMDItemWhereFroms"

    def __init__(self, xattr_command: str = "xattr", timeout: float = 5.0):
        self.xattr_command = xattr_command
        self.timeout = timeout

    def read(self, path) -> list[str]:
        completed = subprocess.run(
            [self.xattr_command, "-px", self.ATTRIBUTE, str(path)],
            capture_output=True,
            text=True,
            timeout=self.timeout,
            check=False,
        )
        if completed.returncode != 0:
            return []

        hex_data = "".join(completed.stdout.split())
        if not hex_data:
            return []

        return self.decode(bytes.fromhex(hex_data))

    @staticmethod
    def decode(data: bytes) -> list[str]:
        value = plistlib.loads(data)
        if isinstance(value, str):
            return [value]
        if isinstance(value, list):
            return [item for item in value if isinstance(item, str)]
        return []


class XdgWhereFromReader(WhereFromReader):
    """Reads the freedesktop origin attributes set by Chromium, Firefox and wget"""

    ATTRIBUTES = ("user.xdg.origin.url", "user.xdg.referrer.url")

    def read(self, path) -> list[str]:
        urls = []
        for attribute in self.ATTRIBUTES:
            try:
                raw = os.getxattr(path, attribute)
            except OSError:
                continue
            value = raw.decode("utf-8").strip("\x00").strip()
            if value:
                urls.append(value)
        return urls


def default_where_from_reader() -> WhereFromReader:
    """Pick the attribute reader for the running platform"""
    if sys.platform == "darwin" and shutil.which("xattr"):
        return MacWhereFromReader()
    if hasattr(os, "getxattr"):
        return XdgWhereFromReader()
    return NullWhereFromReader()


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------


class MetadataExtractor:
    """Collects provenance URLs for a file from its metadata or a sidecar"""

    def __init__(self, file_operations: Optional[FileOperations] = None, reader: Optional[WhereFromReader] = None):
        self.fs = file_operations or FileOperations()
        self.reader = reader if reader is not None else default_where_from_reader()

    def extract(self, path) -> list[ProvenanceURL]:
        """Return distinct provenance URLs in discovery order, or an empty list"""
        urls = [ProvenanceURL(url, UrlOrigin.METADATA) for url in self.urls_from_metadata(path)]
        if urls:
            return urls

        sidecar_url = self.url_from_sidecar(path)
        if sidecar_url:
            return [ProvenanceURL(sidecar_url, UrlOrigin.SIDECAR)]
        return []

    def urls_from_metadata(self, path) -> list[str]:
        try:
            values = self.reader.read(path)
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            logger.debug("Could not read origin metadata of %s: %s", path, e)
            return []

        stripped = [value.strip() for value in values if isinstance(value, str)]
        return unique_in_order([value for value in stripped if is_web_url(value)])

    def sidecar_path(self, path) -> str:
        ext = os.path.splitext(str(path))[1]
        stem = self.fs.basename(path, ext) if ext else self.fs.basename(path)
        return os.path.join(os.path.dirname(str(path)), f"{stem}.url")

    def url_from_sidecar(self, path) -> Optional[str]:
        sidecar = self.sidecar_path(path)
        try:
            if not self.fs.exists(sidecar):
                return None
            content = self.fs.read_text(sidecar)
        except OSError as e:
            logger.debug("Could not read sidecar %s: %s", sidecar, e)
            return None

        match = SIDECAR_URL_PATTERN.search(content)
        return match.group(1) if match else None
