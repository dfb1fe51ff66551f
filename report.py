#!/usr/bin/env python3
"""
Markdown report of a deletion batch

One report per batch, listing every deleted file with its size, recovery
URLs and deletion time, followed by the total space freed.
"""

import os
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from auxiliary import format_bytes
from candidates import RetrievableFile
from file_operations import FileOperations
from url_probe import UrlType

REPORT_PREFIX = "retrievable_downloads"


@dataclass
class DeletedFile:
    """A file removed during this run, with the hash taken before removal"""

    file: RetrievableFile
    content_hash: str
    deleted_at: str
    placeholder: Optional[str] = None


def _describe(check) -> str:
    status = "accessible" if check.accessible else "not accessible"
    kind = "direct file" if check.probe.url_type is UrlType.FILE else "site"
    return f"{check.url} ({status}, {kind})"


def generate_report_content(deleted: list[DeletedFile], generated_at: datetime) -> str:
    lines = [
        f"# Retrievable Downloads - {generated_at.strftime('%Y-%m-%d %H:%M:%S')}",
        "",
        "The following files were deleted but can be retrieved from their original URLs:",
        "",
    ]

    for index, item in enumerate(deleted, 1):
        checks = item.file.checks
        lines.append(f"## {index}. {item.file.name}")
        lines.append("")
        lines.append(f"- **Size**: {format_bytes(item.file.size)}")
        if len(checks) == 1:
            lines.append(f"- **URL**: {_describe(checks[0])}")
        else:
            lines.append("- **URLs**:")
            for url_index, check in enumerate(checks, 1):
                lines.append(f"  {url_index}. {_describe(check)}")
        if item.content_hash:
            lines.append(f"- **MD5**: {item.content_hash}")
        lines.append(f"- **Deleted**: {item.deleted_at}")
        lines.append("")

    total_size = sum(item.file.size for item in deleted)
    lines.append("---")
    lines.append(f"**Total space freed**: {format_bytes(total_size)}")
    lines.append(f"**Files deleted**: {len(deleted)}")

    return "\n".join(lines) + "\n"


def report_filename(generated_at: datetime) -> str:
    return f"{REPORT_PREFIX}.{generated_at.strftime('%Y%m%d_%H%M%S')}.md"


def write_report(
    deleted: list[DeletedFile], directory, generated_at: datetime, file_operations: Optional[FileOperations] = None
) -> str:
    """Write the report into directory and return its path"""
    fs = file_operations or FileOperations()
    path = os.path.join(str(directory), report_filename(generated_at))
    fs.write_text(path, generate_report_content(deleted, generated_at))
    return path
