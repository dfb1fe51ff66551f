#!/usr/bin/env python3
"""
Content Hashing Module

Streaming MD5 calculation with an in-memory, per-run cache. MD5 is the only
digest that can be compared against MD5-shaped HTTP ETags, so it is the one
used for the ledger as well.
"""

import hashlib
import logging
import pathlib

logger = logging.getLogger(__name__)


class ContentHasher:
    """MD5 hasher with in-memory caching"""

    def __init__(self, chunk_size: int = 65536):
        """Initialize content hasher

        Args:
            chunk_size: Chunk size for streaming hash calculation
        """
        self.chunk_size = chunk_size

        # Simple in-memory cache: file_path -> hash
        self._hash_cache: dict[str, str] = {}

    def calculate_file_hash(self, file_path) -> str:
        """Calculate the MD5 of a file with in-memory caching

        Args:
            file_path: Path to the file

        Returns:
            Hex digest of the file hash

        Raises:
            OSError: If file cannot be read
        """
        file_key = str(file_path)

        if file_key in self._hash_cache:
            return self._hash_cache[file_key]

        try:
            hash_obj = hashlib.md5()
            with pathlib.Path(file_path).open("rb") as f:
                while chunk := f.read(self.chunk_size):
                    hash_obj.update(chunk)
            file_hash = hash_obj.hexdigest()
        except OSError as e:
            raise OSError(f"Cannot read file {file_path}: {e}") from e

        self._hash_cache[file_key] = file_hash
        return file_hash

    def hash_or_empty(self, file_path) -> str:
        """Hash a file, degrading to the empty string when it cannot be read

        Failures are not cached so a later attempt can still succeed.
        """
        try:
            return self.calculate_file_hash(file_path)
        except OSError as e:
            logger.warning("Could not compute MD5 for %s: %s", file_path, e)
            return ""
