from datetime import datetime

from candidates import FileCandidate, RetrievableFile, UrlCheck
from freshness import ComparisonMethod, ComparisonVerdict
from metadata_extractor import ProvenanceURL, UrlOrigin
from report import DeletedFile, generate_report_content, report_filename, write_report
from tests.fakes import accessible
from url_probe import ProbeResult, UrlType

GENERATED_AT = datetime(2024, 3, 1, 12, 30, 5)


def check(probe):
    return UrlCheck(
        ProvenanceURL(probe.url, UrlOrigin.METADATA),
        probe,
        ComparisonVerdict(ComparisonMethod.NO_VALIDATOR, True, "No remote version info available"),
    )


def deleted(name, size, probes, content_hash="9e107d9d372bb6826bd81d3542a419d6"):
    candidate = FileCandidate(path=f"/downloads/{name}", name=name, size=size, content_hash=content_hash)
    return DeletedFile(RetrievableFile(candidate, [check(p) for p in probes]), content_hash, "2024-03-01 12:30:00")


def test_single_url_report():
    content = generate_report_content(
        [deleted("ubuntu.iso", 1610612736, [accessible("https://releases.example/ubuntu.iso")])], GENERATED_AT
    )

    assert content.startswith("# Retrievable Downloads - 2024-03-01 12:30:05\n")
    assert "## 1. ubuntu.iso" in content
    assert "- **Size**: 1.5GB" in content
    assert "- **URL**: https://releases.example/ubuntu.iso (accessible, direct file)" in content
    assert "- **MD5**: 9e107d9d372bb6826bd81d3542a419d6" in content
    assert "- **Deleted**: 2024-03-01 12:30:00" in content
    assert content.rstrip().endswith("**Files deleted**: 1")
    assert "**Total space freed**: 1.5GB" in content


def test_multiple_urls_are_numbered():
    probes = [
        accessible("https://example.com/page", url_type=UrlType.SITE),
        ProbeResult.failed("https://old.example/a.zip", "HTTP 404"),
    ]
    content = generate_report_content([deleted("a.zip", 2048, probes, content_hash="")], GENERATED_AT)

    assert "- **URLs**:" in content
    assert "  1. https://example.com/page (accessible, site)" in content
    assert "  2. https://old.example/a.zip (not accessible, site)" in content
    assert "**MD5**" not in content


def test_totals_cover_every_file():
    items = [
        deleted("a.iso", 1024**2, [accessible("https://example.com/a.iso")]),
        deleted("b.iso", 3 * 1024**2, [accessible("https://example.com/b.iso")]),
    ]
    content = generate_report_content(items, GENERATED_AT)

    assert "## 2. b.iso" in content
    assert "**Total space freed**: 4.0MB" in content
    assert "**Files deleted**: 2" in content


def test_write_report(tmp_path):
    path = write_report([deleted("a.iso", 1024, [accessible("https://example.com/a.iso")])], tmp_path, GENERATED_AT)

    assert path == str(tmp_path / "retrievable_downloads.20240301_123005.md")
    assert report_filename(GENERATED_AT) == "retrievable_downloads.20240301_123005.md"
    assert "## 1. a.iso" in (tmp_path / "retrievable_downloads.20240301_123005.md").read_text()
