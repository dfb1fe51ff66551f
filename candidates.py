#!/usr/bin/env python3
"""
Candidate Assembler

Turns large files in the downloads directory into retrievability records:
provenance URLs from the extractor, a probe result for each, and a
freshness verdict comparing each remote copy with the local content.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from content_hasher import ContentHasher
from file_operations import FileOperations
from freshness import ComparisonMethod, ComparisonVerdict, is_md5_etag
from metadata_extractor import MetadataExtractor, ProvenanceURL
from url_probe import ProbeResult, UrlChecker

# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class FileCandidate:
    """A local file above the size threshold

    ``content_hash`` is None until computed and "" when it could not be read.
    """

    path: str
    name: str
    size: int
    mtime: Optional[float] = None
    content_hash: Optional[str] = None


@dataclass(frozen=True)
class UrlCheck:
    provenance: ProvenanceURL
    probe: ProbeResult
    verdict: ComparisonVerdict

    @property
    def url(self) -> str:
        return self.provenance.url

    @property
    def accessible(self) -> bool:
        return self.probe.accessible


@dataclass
class RetrievableFile:
    """A candidate with at least one accessible provenance URL"""

    candidate: FileCandidate
    checks: list[UrlCheck] = field(default_factory=list)

    @property
    def path(self) -> str:
        return self.candidate.path

    @property
    def name(self) -> str:
        return self.candidate.name

    @property
    def size(self) -> int:
        return self.candidate.size

    @property
    def content_hash(self) -> Optional[str]:
        return self.candidate.content_hash

    @property
    def accessible_checks(self) -> list[UrlCheck]:
        return [check for check in self.checks if check.accessible]

    @property
    def primary_url(self) -> Optional[str]:
        """First accessible URL in discovery order, else the first URL at all"""
        for check in self.checks:
            if check.accessible:
                return check.url
        return self.checks[0].url if self.checks else None

    @property
    def matches_local(self) -> bool:
        return any(check.verdict.method is ComparisonMethod.ETAG_MD5_MATCH for check in self.checks)


@dataclass
class CandidateReport:
    candidate: FileCandidate
    checks: list[UrlCheck] = field(default_factory=list)

    @property
    def retrievable(self) -> Optional[RetrievableFile]:
        if any(check.accessible for check in self.checks):
            return RetrievableFile(self.candidate, list(self.checks))
        return None


# ---------------------------------------------------------------------------
# Assembler
# ---------------------------------------------------------------------------


class CandidateAssembler:
    """Discovers candidates and assembles their retrievability records"""

    def __init__(
        self,
        extractor: MetadataExtractor,
        checker: UrlChecker,
        hasher: Optional[ContentHasher] = None,
        file_operations: Optional[FileOperations] = None,
        preserved=None,
    ):
        """Initialize the assembler

        Args:
            extractor: Provenance URL source
            checker: URL checker with its freshness comparator
            hasher: Content hasher shared with the deletion step
            file_operations: Filesystem wrapper
            preserved: Container of preserved paths (supports ``in``)
        """
        self.extractor = extractor
        self.checker = checker
        self.hasher = hasher or ContentHasher()
        self.fs = file_operations or FileOperations()
        self.preserved = preserved if preserved is not None else set()

    def discover(self, directory, threshold: int) -> list[FileCandidate]:
        """List files directly in directory that are larger than threshold and not preserved"""
        candidates = []
        for path in self.fs.list_files(directory):
            name = self.fs.basename(path)
            if name.startswith("."):
                continue

            try:
                size = self.fs.size(path)
            except OSError:
                continue
            if size <= threshold:
                continue

            if os.path.abspath(path) in self.preserved:
                continue

            try:
                mtime = self.fs.mtime(path)
            except OSError:
                mtime = None

            candidates.append(FileCandidate(path=path, name=name, size=size, mtime=mtime))

        return candidates

    def ensure_hash(self, candidate: FileCandidate) -> str:
        """Compute the content hash once; failures degrade to the empty string"""
        if candidate.content_hash is None:
            candidate.content_hash = self.hasher.hash_or_empty(candidate.path)
        return candidate.content_hash

    def assemble(self, candidate: FileCandidate) -> CandidateReport:
        provenance = self.extractor.extract(candidate.path)
        if not provenance:
            return CandidateReport(candidate)

        probes = self.checker.probe_all([item.url for item in provenance])

        # Hashing a large file is only worth it when a remote MD5 can be compared
        if any(probe.accessible and is_md5_etag(probe.etag) for probe in probes):
            self.ensure_hash(candidate)

        checks = [
            UrlCheck(item, probe, self.checker.compare_with_local(probe, candidate.content_hash))
            for item, probe in zip(provenance, probes)
        ]
        return CandidateReport(candidate, checks)
