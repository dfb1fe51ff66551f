#!/usr/bin/env python3
"""
Anaktesis: Ancient Greek ἀνάκτησις (recovery)

Reclaims disk space in a downloads directory by finding large files that can
be fetched again from where they came from. Each candidate's source URLs are
read from the file's download metadata (or a ``.url`` sidecar), probed with a
HEAD request, and compared with the local copy using the server's ETag and
Last-Modified headers. Deletions are recorded in a SQLite ledger together
with the URLs needed to recover them.

Usage:
    anaktesis                          # Interactive run with the configured threshold
    anaktesis 500MB                    # Only consider files larger than 500 MB
    anaktesis --delete                 # Delete every retrievable file without asking
    anaktesis --dry-run                # Report retrievable files, delete nothing
    anaktesis --stats                  # Show ledger statistics
    anaktesis --lookup <md5>           # Find a deleted file by content hash
    anaktesis --show-preserved         # List files that are never offered again
"""

import argparse
import logging
import signal
import sqlite3
import sys
from typing import Optional

from rich import box
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from anaktesis_config import ConfigManager
from auxiliary import format_bytes, format_path_for_display, parse_size
from candidates import CandidateAssembler
from console_ui import ConsoleUI
from content_hasher import ContentHasher
from file_operations import FileOperations
from ledger import Ledger, LedgerDatabase, PreservedSet
from metadata_extractor import MetadataExtractor
from url_probe import UrlProbe
from webloc_writer import WeblocWriter
from workflow import DeletionWorkflow, RunMode, RunSummary

__version__ = "1.0.0"


def _setup_logging(verbose: bool, ui: ConsoleUI) -> None:
    """Route log records through the rich console"""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=ui.console, show_path=verbose, rich_tracebacks=True)],
        force=True,
    )
    # Keep the HTTP client quiet unless asked for details
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.INFO if verbose else logging.WARNING)


# ---------------------------------------------------------------------------
# Anaktesis
# ---------------------------------------------------------------------------


class Anaktesis:
    """Main application class for the Anaktesis downloads cleaner."""

    def __init__(
        self,
        args: argparse.Namespace,
        ui: Optional[ConsoleUI] = None,
        config_manager: Optional[ConfigManager] = None,
    ):
        self.args = args
        self.ui = ui or ConsoleUI()
        self._shutdown_requested = False

        self.config_manager = config_manager or ConfigManager()
        self.config = self.config_manager.load()
        self.fs = FileOperations()

    # -- signal handling ----------------------------------------------------

    def _install_signal_handlers(self):
        signal.signal(signal.SIGINT, self._signal_handler)
        if hasattr(signal, "SIGTERM"):
            signal.signal(signal.SIGTERM, self._signal_handler)

    def _signal_handler(self, signum, frame):
        if self._shutdown_requested:
            sys.exit(1)
        self._shutdown_requested = True
        self.ui.print_warning("\nShutdown requested... press Ctrl+C again to force quit.")

    # -- config persistence -------------------------------------------------

    def _record_run(self, reclaimed: int):
        self.config.record_run(reclaimed)
        self.config_manager.save(self.config)

    @property
    def use_database(self) -> bool:
        return self.config.use_database and not getattr(self.args, "no_database", False)

    def _open_database(self) -> Optional[LedgerDatabase]:
        """Open and prepare the ledger database, or None when it is disabled"""
        if not self.use_database:
            return None

        db_path = self.config_manager.database_path(self.config)
        try:
            database = LedgerDatabase(db_path)
        except sqlite3.Error as e:
            self.ui.print_error(f"Cannot open ledger {format_path_for_display(str(db_path))}: {e}")
            sys.exit(1)

        try:
            Ledger(database).setup()
        except sqlite3.Error as e:
            database.close()
            self.ui.print_error(f"Cannot prepare ledger {format_path_for_display(str(db_path))}: {e}")
            sys.exit(1)
        return database

    def _require_database(self) -> LedgerDatabase:
        database = self._open_database()
        if database is None:
            self.ui.print_error("The ledger database is disabled.")
            sys.exit(1)
        return database

    # -- ledger and preserved-set commands ----------------------------------

    def show_stats(self):
        with self._require_database() as database:
            stats = Ledger(database).statistics()

        self.ui.print_header("Anaktesis", "Ledger statistics")
        self.ui.show_configuration(
            {
                "Files deleted": f"{stats['total_files']:,}",
                "Space freed": format_bytes(stats["total_size_freed"]),
                "Last 30 days": (
                    f"{stats['recent_30_days']['files']:,} files, {format_bytes(stats['recent_30_days']['size'])}"
                ),
                "Runs": f"{self.config.stats.get('total_runs', 0):,}",
                "Last run": self.config.last_run or "never",
            }
        )

        if stats["urls_by_type"]:
            table = Table(title="Recovery URLs", box=box.ROUNDED)
            table.add_column("Type", style="cyan")
            table.add_column("Total", justify="right")
            table.add_column("Accessible", justify="right", style="green")
            for url_type, counts in sorted(stats["urls_by_type"].items()):
                table.add_row(url_type, str(counts["total"]), str(counts["accessible"]))
            self.ui.console.print(table)

    def lookup(self, md5: str):
        with self._require_database() as database:
            ledger = Ledger(database)
            rows = ledger.find_by_hash(md5.strip().lower())
            if not rows:
                self.ui.print_info(f"No deleted file with MD5 {md5}")
                return

            for row in rows:
                self.ui.console.print()
                self.ui.console.print(
                    f"[bold]{escape(row['name'])}[/bold] [yellow]({format_bytes(row['size'])})[/yellow]"
                )
                self.ui.print_plain(f"  Path:    {escape(format_path_for_display(row['path']))}")
                self.ui.print_plain(f"  Deleted: {row['deleted_at']}")
                for url in ledger.urls_for(row["id"]):
                    status = "accessible" if url["accessible"] else "not accessible"
                    self.ui.print_plain(f"  URL:     {escape(url['url'])} ({status}, {url['url_type']})")

    def show_preserved(self):
        with self._require_database() as database:
            paths = PreservedSet(database).paths()

        if not paths:
            self.ui.print_info("Preserved list is empty.")
            return
        self.ui.print_info("Preserved files (never offered for deletion):")
        for path in paths:
            self.ui.print_plain(f"  {escape(format_path_for_display(path))}")

    def unpreserve(self, path: str):
        with self._require_database() as database:
            removed = PreservedSet(database).remove(path)

        if removed:
            self.ui.print_success(f"Removed from preserved list: {escape(path)}")
        else:
            self.ui.print_warning(f"Not in preserved list: {escape(path)}")

    # -- cleanup run ----------------------------------------------------------

    def _run_mode(self) -> RunMode:
        if getattr(self.args, "delete", False):
            return RunMode.UNATTENDED_DELETE
        if getattr(self.args, "dry_run", False):
            return RunMode.REPORT_ONLY
        return RunMode.INTERACTIVE

    def _threshold(self) -> int:
        size = getattr(self.args, "size", None)
        if size is None:
            return self.config.size_threshold_bytes()
        try:
            return parse_size(size)
        except ValueError as e:
            self.ui.print_error(str(e))
            sys.exit(1)

    def clean(self) -> RunSummary:
        threshold = self._threshold()

        directory = getattr(self.args, "directory", None) or str(self.config.get_downloads_path())
        if not self.fs.is_directory(directory):
            self.ui.print_error(f"Not a directory: {directory}")
            sys.exit(1)

        write_webloc = getattr(self.args, "webloc", None)
        if write_webloc is None:
            write_webloc = self.config.write_webloc

        mode = self._run_mode()
        report_path = self.config.get_report_path()

        self._install_signal_handlers()
        database = self._open_database()
        try:
            ledger = Ledger(database) if database is not None else None
            preserved = PreservedSet(database) if database is not None else None

            with UrlProbe(
                connect_timeout=self.config.probe_connect_timeout,
                read_timeout=self.config.probe_read_timeout,
            ) as probe:
                assembler = CandidateAssembler(
                    MetadataExtractor(self.fs),
                    probe,
                    hasher=ContentHasher(),
                    file_operations=self.fs,
                    preserved=preserved if preserved is not None else set(),
                )
                workflow = DeletionWorkflow(
                    assembler,
                    self.ui,
                    mode=mode,
                    ledger=ledger,
                    preserved=preserved,
                    webloc_writer=WeblocWriter(self.fs) if write_webloc else None,
                    report_directory=str(report_path) if report_path else None,
                    file_operations=self.fs,
                    should_stop=lambda: self._shutdown_requested,
                )
                summary = workflow.run(directory, threshold)
        finally:
            if database is not None:
                database.close()

        self._record_run(summary.bytes_freed)
        return summary

    # -- main entry point ----------------------------------------------------

    def run(self):
        if getattr(self.args, "stats", False):
            self.show_stats()
            return
        if getattr(self.args, "lookup", None):
            self.lookup(self.args.lookup)
            return
        if getattr(self.args, "show_preserved", False):
            self.show_preserved()
            return
        if getattr(self.args, "unpreserve", None):
            self.unpreserve(self.args.unpreserve)
            return

        self.clean()


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="anaktesis",
        description="Anaktesis: delete large downloads that can be fetched again",
    )
    parser.add_argument("size", nargs="?", help="Size threshold (e.g. 100MB, 1.5GB, 500KB); defaults to config")

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--delete", action="store_true", help="Delete all retrievable files without asking")
    mode.add_argument("--prompt", action="store_true", help="Ask before deleting (default)")
    mode.add_argument("--dry-run", action="store_true", help="Report retrievable files without deleting")

    parser.add_argument("--directory", "-d", help="Directory to scan (defaults to config downloads_directory)")

    webloc = parser.add_mutually_exclusive_group()
    webloc.add_argument(
        "--webloc", dest="webloc", action="store_true", default=None, help="Leave a .webloc placeholder per deletion"
    )
    webloc.add_argument("--no-webloc", dest="webloc", action="store_false", help="Do not write .webloc placeholders")

    parser.add_argument("--no-database", action="store_true", help="Do not record deletions in the ledger")
    parser.add_argument("--show-preserved", action="store_true", help="Show the preserved file list")
    parser.add_argument("--unpreserve", metavar="PATH", help="Remove a path from the preserved list")
    parser.add_argument("--stats", action="store_true", help="Show ledger statistics")
    parser.add_argument("--lookup", metavar="MD5", help="Find deleted files by MD5 hash")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main():
    parser = build_parser()
    args = parser.parse_args()
    ui = ConsoleUI()
    _setup_logging(args.verbose, ui)
    app = Anaktesis(args, ui=ui)
    app.run()


if __name__ == "__main__":
    main()
