#!/usr/bin/env python3
"""
Freshness Comparator

Decides whether the remote copy behind a probed URL is the same content as
the local file, using nothing but the HTTP validators the probe captured.

The only evidence strong enough to call a remote copy "unchanged" is an
MD5-shaped ETag equal to the local MD5. Every other path reports
``changed=True``; a matching Last-Modified is shown as a hint only.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from tzlocal import get_localzone

if TYPE_CHECKING:
    from url_probe import ProbeResult

MD5_PATTERN = re.compile(r"^[0-9a-f]{32}$", re.IGNORECASE)


class ComparisonMethod(Enum):
    ETAG_MD5_MATCH = "etag_md5_match"
    ETAG_MD5_MISMATCH = "etag_md5_mismatch"
    ETAG_UNVERIFIABLE = "etag_unverifiable"
    LAST_MODIFIED_ONLY = "last_modified_only"
    NO_VALIDATOR = "no_validator"
    PROBE_ERROR = "probe_error"


@dataclass(frozen=True)
class ComparisonVerdict:
    method: ComparisonMethod
    changed: bool
    detail: str


def clean_etag(etag: str) -> str:
    """Strip surrounding quotes from an ETag

    A weak validator keeps its W/ prefix, so it never reads as an MD5.
    """
    return etag.strip().strip("\"'")


def is_md5_etag(etag: Optional[str]) -> bool:
    return bool(etag) and MD5_PATTERN.match(clean_etag(etag)) is not None


def parse_http_date(value: Optional[str]) -> Optional[datetime]:
    """Parse an HTTP date header, returning None when it is unusable"""
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if parsed is None or parsed.tzinfo is None:
        return None
    return parsed


def last_modified_matches(last_modified: Optional[str], local_mtime: Optional[float]) -> Optional[bool]:
    """Compare a Last-Modified header with a local mtime at one-second resolution

    Returns None when either side is missing or unparseable. A True result is
    a heuristic only and must never be treated as a content match.
    """
    remote = parse_http_date(last_modified)
    if remote is None or local_mtime is None:
        return None
    return int(remote.timestamp()) == int(local_mtime)


def format_local_time(value: Optional[str]) -> Optional[str]:
    """Render an HTTP date in the local timezone for display"""
    parsed = parse_http_date(value)
    if parsed is None:
        return None
    return parsed.astimezone(get_localzone()).strftime("%Y-%m-%d %H:%M:%S")


class FreshnessComparator:
    """Policy interface for comparing a probe result against a local hash"""

    def compare(self, result: "ProbeResult", local_hash: Optional[str]) -> ComparisonVerdict:
        raise NotImplementedError


class UnsupportedComparator(FreshnessComparator):
    """Used by checkers that cannot judge freshness; always assumes a difference"""

    def compare(self, result: "ProbeResult", local_hash: Optional[str]) -> ComparisonVerdict:
        if not result.accessible:
            return ComparisonVerdict(ComparisonMethod.PROBE_ERROR, True, result.error or "URL not accessible")
        return ComparisonVerdict(ComparisonMethod.NO_VALIDATOR, True, "comparison not supported")


class HttpValidatorComparator(FreshnessComparator):
    """Tiered comparison using ETag and Last-Modified headers"""

    def compare(self, result: "ProbeResult", local_hash: Optional[str]) -> ComparisonVerdict:
        if not result.accessible:
            return ComparisonVerdict(
                ComparisonMethod.PROBE_ERROR, True, f"URL not accessible: {result.error or 'unknown error'}"
            )

        if result.etag:
            cleaned = clean_etag(result.etag)
            if MD5_PATTERN.match(cleaned):
                if local_hash and cleaned.lower() == local_hash.lower():
                    return ComparisonVerdict(ComparisonMethod.ETAG_MD5_MATCH, False, "ETag matches local MD5")
                return ComparisonVerdict(ComparisonMethod.ETAG_MD5_MISMATCH, True, "ETag differs from local MD5")
            return ComparisonVerdict(
                ComparisonMethod.ETAG_UNVERIFIABLE, True, "ETag present but not an MD5, cannot verify exact match"
            )

        if result.last_modified:
            return ComparisonVerdict(
                ComparisonMethod.LAST_MODIFIED_ONLY, True, f"Only Last-Modified available ({result.last_modified})"
            )

        return ComparisonVerdict(ComparisonMethod.NO_VALIDATOR, True, "No remote version info available")


def compare(result: "ProbeResult", local_hash: Optional[str]) -> ComparisonVerdict:
    """Compare with the default HTTP validator policy"""
    return HttpValidatorComparator().compare(result, local_hash)
