"""
Bulk catalog import.

Rows are reconciled independently and concurrently; a failing row becomes
one report entry and never stops another row.

Rows that could match each other (same normalized barcode or same
normalized name, transitively) are put in one group and reconciled in row
order by a single worker. Without this, two rows for the same product could
both miss the lookup and both insert. Distinct groups run in parallel.
"""

import threading
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor, as_completed
from io import BytesIO
from pathlib import Path
from typing import Optional, Union
import structlog

from config import settings
from models.catalog import (
    ImportReport,
    ImportRow,
    ImportRowFailure,
    IncomingRecord,
    ReconcileAction,
    ReconcileResult,
)
from exceptions import AppError
from parsers.catalog_sheet_parser import parse_catalog_sheet
from services.reconciliation_service import (
    ReconciliationService,
    get_reconciliation_service,
)
from utils.text_utils import normalize_barcode, normalize_name

logger = structlog.get_logger(__name__)

CANCELLED_MESSAGE = "Import cancelled before row was processed"


def group_rows_by_match_key(rows: list[ImportRow]) -> list[list[ImportRow]]:
    """
    Partition rows so that rows sharing a match key land in the same group.

    Keys are the non-empty normalized barcode and the non-empty normalized
    name. Groups are connected components, so A~B by barcode and B~C by name
    puts A, B and C together. Row order is preserved inside each group.
    """
    parent = list(range(len(rows)))

    def find(i: int) -> int:
        while parent[i] != i:
            parent[i] = parent[parent[i]]
            i = parent[i]
        return i

    first_seen: dict[tuple[str, str], int] = {}

    for i, row in enumerate(rows):
        if row.record is None:
            continue

        keys = []
        barcode_key = normalize_barcode(row.record.barcode)
        if barcode_key:
            keys.append(("barcode", barcode_key))
        name_key = normalize_name(row.record.name)
        if name_key:
            keys.append(("name", name_key))

        for key in keys:
            if key in first_seen:
                parent[find(i)] = find(first_seen[key])
            else:
                first_seen[key] = i

    groups: dict[int, list[ImportRow]] = defaultdict(list)
    for i, row in enumerate(rows):
        groups[find(i)].append(row)

    return list(groups.values())


class _ReportBuilder:
    """Thread-safe accumulator; rows complete in any order."""

    def __init__(self):
        self._lock = threading.Lock()
        self.created = 0
        self.merged = 0
        self.cancelled = False
        self.failures: list[ImportRowFailure] = []

    def record_success(self, result: ReconcileResult) -> None:
        with self._lock:
            if result.action == ReconcileAction.MERGED:
                self.merged += 1
            else:
                self.created += 1

    def record_failure(
        self,
        row: ImportRow,
        message: str,
        code: Optional[str] = None
    ) -> None:
        with self._lock:
            self.failures.append(ImportRowFailure(
                row_number=row.row_number,
                error=message,
                code=code,
                record_snapshot=row.snapshot,
            ))

    def record_cancelled(self, row: ImportRow) -> None:
        with self._lock:
            self.cancelled = True
            self.failures.append(ImportRowFailure(
                row_number=row.row_number,
                error=CANCELLED_MESSAGE,
                code="IMPORT_CANCELLED",
                record_snapshot=row.snapshot,
            ))

    def finalize(self, total_rows: int) -> ImportReport:
        failures = sorted(self.failures, key=lambda f: f.row_number)
        success = self.created + self.merged

        message = f"Import completed: {success} product{'s' if success != 1 else ''} added"
        if failures:
            message += f", {len(failures)} error{'s' if len(failures) != 1 else ''}"

        return ImportReport(
            message=message,
            total_rows=total_rows,
            success_count=success,
            created_count=self.created,
            merged_count=self.merged,
            cancelled=self.cancelled,
            errors=[f"Row {f.row_number}: {f.error}" for f in failures],
            failed_rows=failures,
        )


class BulkImportService:
    """
    Bulk import orchestration.

    A thin concurrency wrapper around ReconciliationService.reconcile().
    """

    def __init__(
        self,
        reconciliation: Optional[ReconciliationService] = None,
        max_workers: Optional[int] = None,
    ):
        self.reconciliation = reconciliation or get_reconciliation_service()
        self.max_workers = max_workers or settings.import_max_workers

    def import_batch(
        self,
        rows: list[ImportRow],
        cancel_event: Optional[threading.Event] = None,
    ) -> ImportReport:
        """
        Reconcile every row and aggregate the outcome.

        Args:
            rows: Parsed rows (with their spreadsheet row numbers)
            cancel_event: When set, rows not yet started are reported as
                cancelled; rows already reconciled stay reconciled

        Returns:
            ImportReport, finalized after every row has resolved
        """
        builder = _ReportBuilder()
        groups = group_rows_by_match_key(rows)

        logger.info(
            "bulk_import_started",
            rows=len(rows),
            groups=len(groups),
            workers=self.max_workers
        )

        if groups:
            workers = min(self.max_workers, len(groups))
            with ThreadPoolExecutor(max_workers=workers) as executor:
                futures = [
                    executor.submit(self._run_group, group, builder, cancel_event)
                    for group in groups
                ]
                for future in as_completed(futures):
                    future.result()

        report = builder.finalize(total_rows=len(rows))

        logger.info(
            "bulk_import_complete",
            success=report.success_count,
            created=report.created_count,
            merged=report.merged_count,
            errors=len(report.errors),
            cancelled=report.cancelled
        )

        return report

    def import_records(
        self,
        records: list[IncomingRecord],
        cancel_event: Optional[threading.Event] = None,
    ) -> ImportReport:
        """Import plain records, numbering rows from 1."""
        rows = [
            ImportRow(row_number=i, record=record, snapshot=record.snapshot())
            for i, record in enumerate(records, start=1)
        ]
        return self.import_batch(rows, cancel_event=cancel_event)

    def import_spreadsheet(
        self,
        file: Union[str, Path, bytes, BytesIO],
        filename: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ImportReport:
        """
        Parse a spreadsheet and import its rows.

        Raises:
            SpreadsheetParseError: If the file cannot be read
        """
        parsed = parse_catalog_sheet(file, filename=filename)
        return self.import_batch(parsed.rows, cancel_event=cancel_event)

    # ===================
    # WORKERS
    # ===================

    def _run_group(
        self,
        group: list[ImportRow],
        builder: _ReportBuilder,
        cancel_event: Optional[threading.Event],
    ) -> None:
        for row in group:
            if cancel_event is not None and cancel_event.is_set():
                builder.record_cancelled(row)
                continue
            self._run_row(row, builder)

    def _run_row(self, row: ImportRow, builder: _ReportBuilder) -> None:
        if row.parse_error or row.record is None:
            builder.record_failure(
                row,
                row.parse_error or "Row could not be parsed",
                code="ROW_PARSE_ERROR"
            )
            return

        try:
            result = self.reconciliation.reconcile(row.record, row_number=row.row_number)
        except AppError as e:
            logger.warning(
                "bulk_import_row_failed",
                row_number=row.row_number,
                code=e.code,
                error=e.message
            )
            builder.record_failure(row, e.message, code=e.code)
        except Exception as e:
            logger.error(
                "bulk_import_row_unexpected_error",
                row_number=row.row_number,
                error=str(e),
                error_type=type(e).__name__
            )
            builder.record_failure(row, str(e), code="INTERNAL_ERROR")
        else:
            builder.record_success(result)


# Singleton instance for convenience
_bulk_import_service: Optional[BulkImportService] = None

def get_bulk_import_service() -> BulkImportService:
    """Get or create BulkImportService instance."""
    global _bulk_import_service
    if _bulk_import_service is None:
        _bulk_import_service = BulkImportService()
    return _bulk_import_service
