#!/usr/bin/env python3
"""
Deletion Decision Workflow

A small state machine that takes the downloads directory from discovery to
a recorded, reported batch of deletions:

    DISCOVER -> PRESENT -> DECIDE -> DELETE -> DONE

Nothing irreversible happens before DECIDE has a disposition for a file, the
content hash is always taken before the file is unlinked, and DONE always
attempts to flush the batch to the ledger even when some deletions failed.
"""

import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from rich.markup import escape

from auxiliary import format_bytes, format_path_for_display, short_hash
from candidates import CandidateAssembler, RetrievableFile, UrlCheck
from console_ui import ConsoleUI
from file_operations import FileOperations
from freshness import ComparisonMethod, format_local_time, last_modified_matches
from ledger import Ledger, LedgerEntry, LedgerUrl, PreservedSet, format_timestamp, local_now
from report import DeletedFile, write_report
from url_probe import UrlType
from webloc_writer import WeblocWriter

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


class WorkflowState(Enum):
    DISCOVER = "discover"
    PRESENT = "present"
    DECIDE = "decide"
    DELETE = "delete"
    DONE = "done"


class RunMode(Enum):
    INTERACTIVE = "interactive"
    UNATTENDED_DELETE = "unattended_delete"
    REPORT_ONLY = "report_only"


class Disposition(Enum):
    DELETE = "delete"
    KEEP = "keep"
    PRESERVE = "preserve"


class BatchChoice(Enum):
    DELETE_ALL = "delete_all"
    ONE_BY_ONE = "one_by_one"
    ABORT = "abort"


class Outcome(Enum):
    CONTINUE = "continue"
    EXIT = "exit"


@dataclass
class RunSummary:
    """What a run found, decided and did"""

    found: int = 0
    retrievable: int = 0
    deleted: list[DeletedFile] = field(default_factory=list)
    kept: int = 0
    preserved: int = 0
    failures: list[tuple[str, str]] = field(default_factory=list)
    bytes_freed: int = 0
    report_path: Optional[str] = None
    ledger_error: Optional[str] = None
    outcome: Outcome = Outcome.CONTINUE


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------


def freshness_indicator(check: UrlCheck, local_mtime: Optional[float]) -> str:
    """Short operator-facing description of how a remote copy relates to the local file"""
    method = check.verdict.method

    if method is ComparisonMethod.ETAG_MD5_MATCH:
        return "matches local"
    if method is ComparisonMethod.ETAG_MD5_MISMATCH:
        return "differs from local"
    if method is ComparisonMethod.ETAG_UNVERIFIABLE:
        return "ETag not MD5"
    if method is ComparisonMethod.PROBE_ERROR:
        return check.probe.error or "not accessible"
    if method is ComparisonMethod.LAST_MODIFIED_ONLY:
        same = last_modified_matches(check.probe.last_modified, local_mtime)
        if same is True:
            return "likely matches (last-modified)"
        if same is False:
            return f"likely changed (remote modified {format_local_time(check.probe.last_modified)})"
        return "last-modified only"
    return "no remote version info"


def describe_check(check: UrlCheck) -> str:
    status = "accessible" if check.accessible else "not accessible"
    kind = "direct file" if check.probe.url_type is UrlType.FILE else "site"
    return f"{status}, {kind}"


# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------


class Operator:
    """Source of batch and per-file decisions"""

    def choose_batch(self, files: list[RetrievableFile]) -> BatchChoice:
        raise NotImplementedError

    def choose_file(self, file: RetrievableFile, index: int, total: int) -> Disposition:
        raise NotImplementedError


class ConsoleOperator(Operator):
    """Asks the person at the terminal; missing or unclear answers pick the safe option"""

    BATCH_CHOICES = {
        "1": ("Delete all listed files", BatchChoice.DELETE_ALL),
        "2": ("Decide file by file", BatchChoice.ONE_BY_ONE),
        "3": ("Abort, delete nothing", BatchChoice.ABORT),
    }
    FILE_CHOICES = {
        "d": ("Delete", Disposition.DELETE),
        "k": ("Keep for now", Disposition.KEEP),
        "p": ("Preserve, never offer again", Disposition.PRESERVE),
    }

    def __init__(self, ui: ConsoleUI):
        self.ui = ui

    def choose_batch(self, files: list[RetrievableFile]) -> BatchChoice:
        total = sum(f.size for f in files)
        self.ui.console.print()
        self.ui.print_info(f"{len(files)} retrievable files, {format_bytes(total)} in total")
        key = self.ui.ask_choice(
            "Choice [1-3]:", {key: label for key, (label, _) in self.BATCH_CHOICES.items()}, default="3"
        )
        return self.BATCH_CHOICES[key][1]

    def choose_file(self, file: RetrievableFile, index: int, total: int) -> Disposition:
        self.ui.console.print(
            f"\n  [dim][{index}/{total}][/dim] {escape(file.name)} [yellow]({format_bytes(file.size)})[/yellow]"
        )
        key = self.ui.ask_choice(
            "  \\[d/k/p]:", {key: label for key, (label, _) in self.FILE_CHOICES.items()}, default="k"
        )
        return self.FILE_CHOICES[key][1]


# ---------------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------------


class DeletionWorkflow:
    """Drives one run over a downloads directory"""

    def __init__(
        self,
        assembler: CandidateAssembler,
        ui: ConsoleUI,
        mode: RunMode = RunMode.INTERACTIVE,
        operator: Optional[Operator] = None,
        ledger: Optional[Ledger] = None,
        preserved: Optional[PreservedSet] = None,
        webloc_writer: Optional[WeblocWriter] = None,
        report_directory=None,
        file_operations: Optional[FileOperations] = None,
        clock: Callable[[], datetime] = local_now,
        should_stop: Optional[Callable[[], bool]] = None,
    ):
        """Initialize the workflow

        Args:
            assembler: Candidate discovery and retrievability checks
            ui: Console for operator-facing output
            mode: How dispositions are decided
            operator: Decision source for interactive runs (defaults to the console)
            ledger: Where deletions are recorded; None disables recording
            preserved: Preserved-set store; None disables the preserve option
            webloc_writer: Writes redirect placeholders when given
            report_directory: Where the Markdown report goes (defaults to the scanned directory)
            file_operations: Filesystem wrapper used for deletion
            clock: Source of deletion timestamps
            should_stop: Polled between files; True ends the run early
        """
        self.assembler = assembler
        self.ui = ui
        self.mode = mode
        self.operator = operator or ConsoleOperator(ui)
        self.ledger = ledger
        self.preserved = preserved
        self.webloc_writer = webloc_writer
        self.report_directory = report_directory
        self.fs = file_operations or FileOperations()
        self.clock = clock
        self.should_stop = should_stop or (lambda: False)

        self.state = WorkflowState.DISCOVER
        self.summary = RunSummary()
        self.directory = None
        self.threshold = 0
        self.files: list[RetrievableFile] = []
        self.dispositions: dict[str, Disposition] = {}

    def run(self, directory, threshold: int) -> RunSummary:
        """Run every state to completion and return the summary"""
        self.directory = str(directory)
        self.threshold = threshold
        while self.step() is Outcome.CONTINUE:
            pass
        return self.summary

    def step(self) -> Outcome:
        """Execute the current state and advance to the next one"""
        if self.state is not WorkflowState.DONE and self.should_stop():
            self.ui.print_warning("Stopping early, nothing further will be deleted.")
            self.state = WorkflowState.DONE

        handler = {
            WorkflowState.DISCOVER: self._discover,
            WorkflowState.PRESENT: self._present,
            WorkflowState.DECIDE: self._decide,
            WorkflowState.DELETE: self._delete,
            WorkflowState.DONE: self._done,
        }[self.state]

        next_state = handler()
        if next_state is None:
            self.summary.outcome = Outcome.EXIT
            return Outcome.EXIT

        self.state = next_state
        return Outcome.CONTINUE

    # -- states --------------------------------------------------------------

    def _discover(self) -> WorkflowState:
        candidates = self.assembler.discover(self.directory, self.threshold)
        self.summary.found = len(candidates)

        self.ui.print_header(
            "Anaktesis",
            f"Scanning {format_path_for_display(self.directory)} for files over {format_bytes(self.threshold)}",
        )
        if not candidates:
            return WorkflowState.PRESENT

        progress = self.ui.create_activity_progress()
        with progress:
            task = progress.add_task("Checking...", total=None)
            for candidate in candidates:
                if self.should_stop():
                    break
                progress.update(task, description=f"Checking {escape(candidate.name)}...")

                report = self.assembler.assemble(candidate)
                retrievable = report.retrievable
                if retrievable is not None:
                    self.files.append(retrievable)
                elif report.checks:
                    self.ui.print_progress(f"  {escape(candidate.name)}: no accessible source URL")
                else:
                    self.ui.print_progress(f"  {escape(candidate.name)}: no source URL recorded")

        self.summary.retrievable = len(self.files)
        return WorkflowState.PRESENT

    def _present(self) -> WorkflowState:
        if not self.files:
            self.ui.print_info("No retrievable files found.")
            return WorkflowState.DONE

        self.ui.console.print()
        self.ui.print_info("Retrievable files:")
        for index, file in enumerate(self.files, 1):
            self.ui.console.print(
                f"\n[bold]{index}. {escape(file.name)}[/bold] [yellow]({format_bytes(file.size)})[/yellow]"
            )
            self.ui.console.print(f"   [dim]MD5: {short_hash(file.content_hash)}[/dim]")
            for url_index, check in enumerate(file.checks, 1):
                style = "green" if check.accessible else "red"
                self.ui.console.print(
                    f"   {url_index}. {escape(check.url)} [{style}]({describe_check(check)})[/{style}]"
                    f" [dim]- {escape(freshness_indicator(check, file.candidate.mtime))}[/dim]"
                )

        total = sum(f.size for f in self.files)
        self.ui.console.print()
        self.ui.print_info(f"Total reclaimable: {format_bytes(total)} in {len(self.files)} files")
        return WorkflowState.DECIDE

    def _decide(self) -> WorkflowState:
        if self.mode is RunMode.REPORT_ONLY:
            self.ui.print_info("Dry run, nothing deleted.")
            return WorkflowState.DONE

        if self.mode is RunMode.UNATTENDED_DELETE:
            for file in self.files:
                self.dispositions[file.path] = Disposition.DELETE
            return WorkflowState.DELETE

        choice = self.operator.choose_batch(self.files)
        if choice is BatchChoice.DELETE_ALL:
            for file in self.files:
                self.dispositions[file.path] = Disposition.DELETE
        elif choice is BatchChoice.ONE_BY_ONE:
            for index, file in enumerate(self.files, 1):
                if self.should_stop():
                    break
                self.dispositions[file.path] = self.operator.choose_file(file, index, len(self.files))
        else:
            self.ui.print_info("Aborted, nothing deleted.")

        return WorkflowState.DELETE

    def _delete(self) -> WorkflowState:
        for file in self.files:
            disposition = self.dispositions.get(file.path, Disposition.KEEP)
            if disposition is Disposition.DELETE:
                if self.should_stop():
                    self.summary.kept += 1
                    continue
                self._delete_one(file)
            elif disposition is Disposition.PRESERVE:
                self._preserve_one(file)
            else:
                self.summary.kept += 1

        return WorkflowState.DONE

    def _delete_one(self, file: RetrievableFile):
        content_hash = self.assembler.ensure_hash(file.candidate)
        if not content_hash:
            self.ui.print_warning(f"Could not compute MD5 for {escape(file.name)}, recording without it")

        result = self.fs.delete_file(file.path)
        if not result.success:
            logger.warning("Failed to delete %s: %s", file.path, result.error_message)
            self.summary.failures.append((file.path, result.error_message or "unknown error"))
            return

        placeholder = None
        if self.webloc_writer is not None and file.primary_url:
            placeholder = self.webloc_writer.write(file.path, file.primary_url)

        self.summary.deleted.append(
            DeletedFile(file, content_hash, format_timestamp(self.clock()), placeholder=placeholder)
        )
        self.summary.bytes_freed += file.size
        self.ui.print_success(f"  Deleted {escape(file.name)} ({format_bytes(file.size)})")

    def _preserve_one(self, file: RetrievableFile):
        if self.preserved is None:
            self.ui.print_warning(f"Preserved list unavailable without the database, keeping {escape(file.name)}")
            self.summary.kept += 1
            return

        self.preserved.add(file.path)
        self.summary.preserved += 1
        self.ui.print_info(f"  Preserved {escape(file.name)}")

    def _done(self) -> None:
        deleted = self.summary.deleted

        if self.ledger is not None:
            try:
                self.ledger.record([_ledger_entry(item) for item in deleted])
            except sqlite3.Error as e:
                logger.exception("Failed to record %d deletions in the ledger", len(deleted))
                self.summary.ledger_error = str(e)
                self.ui.print_error(f"Could not record deletions in the ledger: {e}")

        if deleted:
            directory = self.report_directory or self.directory
            try:
                self.summary.report_path = write_report(deleted, directory, self.clock(), self.fs)
            except OSError as e:
                logger.exception("Failed to write report to %s", directory)
                self.ui.print_error(f"Could not write report: {e}")

        self._show_summary()
        return None

    def _show_summary(self):
        summary = self.summary
        if not summary.deleted and not summary.failures and not summary.preserved:
            return

        self.ui.console.print()
        self.ui.print_info("Cleanup Complete")
        self.ui.show_operation_summary(
            [item.file.name for item in summary.deleted],
            [(format_path_for_display(path), error) for path, error in summary.failures],
        )
        if summary.deleted:
            self.ui.print_success(f"  Reclaimed {format_bytes(summary.bytes_freed)}")
        if summary.preserved:
            self.ui.print_info(f"  Preserved: {summary.preserved} files")
        if summary.report_path:
            self.ui.print_info(f"  Report: {format_path_for_display(summary.report_path)}")


def _ledger_entry(item: DeletedFile) -> LedgerEntry:
    return LedgerEntry(
        name=item.file.name,
        path=item.file.path,
        size=item.file.size,
        md5=item.content_hash,
        deleted_at=item.deleted_at,
        urls=[LedgerUrl(check.url, check.accessible, check.probe.url_type.value) for check in item.file.checks],
    )
