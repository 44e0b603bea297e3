"""
Copy legacy tag facts into tags_unified, or check the two stores agree.

Usage:
    python scripts/migrate_tags.py            # one-time copy (skipped if already migrated)
    python scripts/migrate_tags.py --force    # re-run, duplicates are ignored
    python scripts/migrate_tags.py --check    # list legacy facts missing from tags_unified
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path so we can import branch modules
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from branch.core.logging import configure_logging
from branch.db.session import get_async_session_context
from branch.services.tag_migration_service import TagMigrationService, run_tag_migration


async def migrate(force: bool) -> int:
    report = await run_tag_migration(force=force)
    
    if report.skipped_already_migrated:
        print("✓ tags_unified already holds migrated facts, nothing to do (use --force to re-run)")
        return 0
    
    print(f"✓ Inserted {report.total_inserted} facts")
    for bucket, count in sorted(report.inserted.items()):
        print(f"  {bucket}: {count}")
    print(f"  duplicates ignored: {report.ignored_duplicates}")
    if report.malformed_rows or report.failed_rows:
        print(f"⚠ malformed rows: {report.malformed_rows}, failed rows: {report.failed_rows}")
        return 1
    return 0


async def check() -> int:
    async with get_async_session_context() as db:
        report = await TagMigrationService(db).check_consistency()
    
    print(f"Legacy facts:  {report.legacy_facts}")
    print(f"Unified facts: {report.unified_facts}")
    if report.consistent:
        print("✓ Every legacy fact has a unified counterpart")
        return 0
    
    print(f"❌ {len(report.missing_in_unified)} legacy facts missing from tags_unified:")
    for fact in report.missing_in_unified:
        scope = f"{fact.entity_type}:{fact.entity_id}"
        if fact.repo_name:
            scope += f"/{fact.repo_name}"
        print(f"  [{fact.category}] {fact.tag_name} -> {scope}")
    return 1


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--force", action="store_true", help="re-run even if facts were already migrated")
    parser.add_argument("--check", action="store_true", help="only compare legacy and unified stores")
    args = parser.parse_args()
    
    configure_logging()
    if args.check:
        return asyncio.run(check())
    return asyncio.run(migrate(args.force))


if __name__ == "__main__":
    sys.exit(main())
