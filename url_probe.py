#!/usr/bin/env python3
"""
URL Probe & Classifier

Issues a header-only request against a provenance URL and reports whether it
is reachable, whether it looks like a direct file download or a web page, and
which HTTP validators (ETag, Last-Modified) the server sent.

Probing never raises: malformed URLs, DNS failures, refused connections and
timeouts all come back as an inaccessible ProbeResult with ``error`` set.
Redirects are not followed: a 3xx counts as accessible and is classified
from its own headers.
"""

import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx

from freshness import ComparisonVerdict, FreshnessComparator, HttpValidatorComparator, UnsupportedComparator

logger = logging.getLogger(__name__)

USER_AGENT = "anaktesis/1.0"

FILE_MAJOR_TYPES = {"application", "image", "audio", "video"}
PAGE_SUBTYPES = {"html", "xml", "json", "xhtml+xml"}


class UrlType(Enum):
    FILE = "file"
    SITE = "site"


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of checking one URL"""

    url: str
    accessible: bool
    url_type: UrlType = UrlType.SITE
    status_code: Optional[int] = None
    content_type: Optional[str] = None
    content_disposition: Optional[str] = None
    etag: Optional[str] = None
    last_modified: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def failed(cls, url, error: str) -> "ProbeResult":
        return cls(url=str(url) if url is not None else "", accessible=False, error=error)


def is_attachment(content_disposition: Optional[str]) -> bool:
    if not content_disposition:
        return False
    return content_disposition.split(";", 1)[0].strip().lower() == "attachment"


def classify(content_type: Optional[str], content_disposition: Optional[str]) -> UrlType:
    """Decide whether a response is a direct file or a web page

    Priority: attachment disposition, then a binary-ish media type, otherwise
    a site. A missing content type is always a site.
    """
    if is_attachment(content_disposition):
        return UrlType.FILE

    if not content_type:
        return UrlType.SITE

    media_type = content_type.split(";", 1)[0].strip().lower()
    major, _, subtype = media_type.partition("/")
    if major in FILE_MAJOR_TYPES and subtype not in PAGE_SUBTYPES:
        return UrlType.FILE

    return UrlType.SITE


class UrlChecker(ABC):
    """Capability every URL-checking collaborator provides

    The comparator is fixed at construction. Checkers that cannot judge
    freshness get the UnsupportedComparator, which always assumes the remote
    copy differs.
    """

    def __init__(self, comparator: Optional[FreshnessComparator] = None):
        self.comparator = comparator or UnsupportedComparator()

    @abstractmethod
    def probe(self, url: str) -> ProbeResult:
        """Check a single URL; must never raise"""

    def probe_all(self, urls: list[str]) -> list[ProbeResult]:
        """Check several URLs, returning results in input order"""
        return [self.probe(url) for url in urls]

    def compare_with_local(self, result: ProbeResult, local_hash: Optional[str]) -> ComparisonVerdict:
        return self.comparator.compare(result, local_hash)


class UrlProbe(UrlChecker):
    """HEAD-based prober backed by an httpx client"""

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        connect_timeout: float = 5.0,
        read_timeout: float = 10.0,
        max_workers: int = 4,
        comparator: Optional[FreshnessComparator] = None,
    ):
        """Initialize the prober

        Args:
            client: Preconfigured client (tests pass one with a MockTransport)
            connect_timeout: Seconds allowed to establish a connection
            read_timeout: Seconds allowed to wait for response headers
            max_workers: Concurrent probes for the URLs of a single file
            comparator: Freshness policy, defaults to HTTP validator comparison
        """
        super().__init__(comparator or HttpValidatorComparator())
        self._owns_client = client is None
        self.client = client or httpx.Client(
            timeout=httpx.Timeout(read_timeout, connect=connect_timeout),
            headers={"User-Agent": USER_AGENT},
        )
        self.max_workers = max(1, max_workers)
        self._results: dict[str, ProbeResult] = {}

    def close(self):
        if self._owns_client:
            self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def probe(self, url: str) -> ProbeResult:
        if isinstance(url, str) and url in self._results:
            return self._results[url]

        result = self._probe_uncached(url)
        if isinstance(url, str):
            self._results[url] = result
        return result

    def probe_all(self, urls: list[str]) -> list[ProbeResult]:
        if len(urls) <= 1 or self.max_workers == 1:
            return [self.probe(url) for url in urls]

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(urls))) as executor:
            return list(executor.map(self.probe, urls))

    def _probe_uncached(self, url) -> ProbeResult:
        if not isinstance(url, str) or not url.strip():
            return ProbeResult.failed(url, "empty URL")

        try:
            parsed = httpx.URL(url)
        except (httpx.InvalidURL, ValueError, TypeError) as e:
            return ProbeResult.failed(url, f"invalid URL: {e}")

        if parsed.scheme not in ("http", "https") or not parsed.host:
            return ProbeResult.failed(url, "unsupported URL")

        try:
            response = self.client.head(url, follow_redirects=False)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug("Probe of %s failed: %r", url, e)
            return ProbeResult.failed(url, str(e) or e.__class__.__name__)

        return self._result_from_response(url, response)

    def _result_from_response(self, url: str, response: httpx.Response) -> ProbeResult:
        status = response.status_code
        headers = response.headers
        content_type = headers.get("Content-Type")
        content_disposition = headers.get("Content-Disposition")

        accessible = 200 <= status < 400
        url_type = classify(content_type, content_disposition) if accessible else UrlType.SITE
        logger.debug("Probe %s -> %s (%s)", url, status, url_type.value)

        return ProbeResult(
            url=url,
            accessible=accessible,
            url_type=url_type,
            status_code=status,
            content_type=content_type,
            content_disposition=content_disposition,
            etag=headers.get("ETag"),
            last_modified=headers.get("Last-Modified"),
            error=None if accessible else f"HTTP {status}",
        )
