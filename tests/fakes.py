"""Test doubles injected through constructors"""

import io
import os
from datetime import datetime, timezone

from console_ui import ConsoleUI
from file_operations import FileOperations, OperationResult
from freshness import HttpValidatorComparator
from metadata_extractor import WhereFromReader
from url_probe import ProbeResult, UrlChecker, UrlType

FIXED_NOW = datetime(2024, 3, 1, 12, 30, 0, tzinfo=timezone.utc)


def fixed_clock():
    return FIXED_NOW


class FakeReader(WhereFromReader):
    """Origin attribute reader backed by a dict of basename -> urls"""

    def __init__(self, urls_by_name=None, error=None):
        self.urls_by_name = urls_by_name or {}
        self.error = error

    def read(self, path):
        if self.error is not None:
            raise self.error
        return list(self.urls_by_name.get(os.path.basename(str(path)), []))


class FakeChecker(UrlChecker):
    """URL checker answering from canned probe results"""

    def __init__(self, results=None, comparator=None):
        super().__init__(comparator or HttpValidatorComparator())
        self.results = results or {}
        self.calls = []

    def probe(self, url):
        self.calls.append(url)
        return self.results.get(url, ProbeResult.failed(url, "HTTP 404"))


class FailingDeleteOperations(FileOperations):
    """Real filesystem, except that deleting the named files fails"""

    def __init__(self, failing_names):
        super().__init__()
        self.failing_names = set(failing_names)

    def delete_file(self, path):
        if os.path.basename(str(path)) in self.failing_names:
            return OperationResult(path=str(path), success=False, error_message="Permission denied")
        return super().delete_file(path)


def accessible(url, etag=None, last_modified=None, url_type=UrlType.FILE):
    return ProbeResult(
        url=url,
        accessible=True,
        url_type=url_type,
        status_code=200,
        content_type="application/octet-stream" if url_type is UrlType.FILE else "text/html",
        etag=etag,
        last_modified=last_modified,
    )


def make_ui(answers: str = "") -> ConsoleUI:
    return ConsoleUI(force_terminal=False, file=io.StringIO(), input_stream=io.StringIO(answers), width=200)


def output_of(ui: ConsoleUI) -> str:
    return ui.console.file.getvalue()
