#!/usr/bin/env python3
"""
Redirect placeholder writer

Leaves a small ``.webloc`` file (an XML property list with a ``URL`` key,
which Finder opens in the browser) where a deleted download used to be.
"""

import logging
import plistlib
from typing import Optional

from file_operations import FileOperations

logger = logging.getLogger(__name__)


def webloc_path_for(original_path) -> str:
    return f"{original_path}.webloc"


def webloc_content(url: str) -> str:
    return plistlib.dumps({"URL": url}, fmt=plistlib.FMT_XML).decode("utf-8")


class WeblocWriter:
    def __init__(self, file_operations: Optional[FileOperations] = None):
        self.fs = file_operations or FileOperations()

    def write(self, original_path, url: str) -> Optional[str]:
        """Write the placeholder; returns its path, or None if it could not be written"""
        target = webloc_path_for(original_path)
        try:
            self.fs.write_text(target, webloc_content(url))
        except OSError as e:
            logger.warning("Failed to write .webloc for %s: %s", original_path, e)
            return None
        return target
