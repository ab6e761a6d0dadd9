#!/usr/bin/env python3
"""
Backfill barcode_key / name_key on catalog rows.

Reconciliation looks items up by these normalized keys. Rows written before
the columns existed (or edited by hand) need them recomputed once.

Usage:
    python scripts/backfill_match_keys.py            # Update rows with stale keys
    python scripts/backfill_match_keys.py --dry-run  # Only report what would change
"""

import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import get_admin_client, get_supabase_client, settings
from utils.text_utils import normalize_barcode, normalize_name

PAGE_SIZE = 500


def stale_rows(client):
    """Yield (id, changes) for rows whose stored keys don't match."""
    offset = 0
    while True:
        result = (
            client.table(settings.catalog_table)
            .select("id, name, description, barcode_key, name_key")
            .order("id")
            .range(offset, offset + PAGE_SIZE - 1)
            .execute()
        )
        if not result.data:
            return

        for row in result.data:
            changes = {}
            barcode_key = normalize_barcode(row.get("description"))
            name_key = normalize_name(row.get("name"))
            if row.get("barcode_key") != barcode_key:
                changes["barcode_key"] = barcode_key
            if row.get("name_key") != name_key:
                changes["name_key"] = name_key
            if changes:
                yield row["id"], changes

        offset += PAGE_SIZE


def main():
    parser = argparse.ArgumentParser(description="Backfill catalog match keys")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report stale rows without updating them"
    )
    args = parser.parse_args()

    client = get_admin_client() or get_supabase_client()

    print("=" * 50)
    print("MATCH KEY BACKFILL")
    print(f"Table: {settings.catalog_table}")
    print("=" * 50)

    # Materialize first so updates don't shift the pages being read
    pending = list(stale_rows(client))
    print(f"Rows with stale keys: {len(pending)}")

    if args.dry_run:
        for item_id, changes in pending[:20]:
            print(f"  {item_id}: {changes}")
        return

    updated = 0
    for item_id, changes in pending:
        client.table(settings.catalog_table).update(changes).eq("id", item_id).execute()
        updated += 1

    print(f"Updated {updated} rows")


if __name__ == "__main__":
    main()
