#!/usr/bin/env python3
"""
Import a catalog spreadsheet from disk.

Same reconciliation as POST /api/catalog/import, without the upload.

Usage:
    python scripts/import_catalog.py stock.xlsx
    python scripts/import_catalog.py stock.csv --workers 4
"""

import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.bulk_import_service import BulkImportService


def main():
    parser = argparse.ArgumentParser(description="Import a catalog spreadsheet")
    parser.add_argument("path", help="Path to .xlsx or .csv file")
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Concurrent row groups (default: IMPORT_MAX_WORKERS)"
    )
    args = parser.parse_args()

    service = BulkImportService(max_workers=args.workers)
    report = service.import_spreadsheet(args.path)

    print("=" * 50)
    print(report.message)
    print(f"Rows: {report.total_rows}  Created: {report.created_count}  Merged: {report.merged_count}")
    print("=" * 50)

    for error in report.errors:
        print(f"  {error}")

    sys.exit(0 if not report.errors else 1)


if __name__ == "__main__":
    main()
