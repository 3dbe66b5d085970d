#!/usr/bin/env python3
"""Move submissions stored under legacy ``submission:<uuid>`` keys.

Usage:
    PYTHONPATH=. python scripts/migrate_keys.py --dry-run
    PYTHONPATH=. python scripts/migrate_keys.py --output reports/migration.json

Each record is rewritten to ``first_last_email_timestamp`` and its signature
images are copied next to it before the old record and images are removed.
The sweep is best effort: a failing key is reported and the rest continue.
Exit status is 1 when any key failed.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from week_contracts.admin import migrate_submissions
from week_contracts.main import configure_logging
from week_contracts.settings import Settings
from week_contracts.storage import build_blob_store, build_kv_store


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Migrate legacy submission keys.")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report the planned moves without writing anything",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Also write the JSON report to this file",
    )
    args = parser.parse_args(argv)

    settings = Settings()
    errors = settings.validate_backends()
    if errors:
        parser.error("; ".join(errors))
    configure_logging(settings.log_level)

    report = migrate_submissions(
        kv=build_kv_store(settings),
        blobs=build_blob_store(settings),
        dry_run=args.dry_run,
    )
    payload = json.dumps(report.asdict(), indent=2)
    print(payload)

    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(payload + "\n", encoding="utf-8")

    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
