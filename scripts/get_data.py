#!/usr/bin/env python3
"""Print stored contract submissions for one participant.

Usage:
    PYTHONPATH=. python scripts/get_data.py jane_doe
    PYTHONPATH=. python scripts/get_data.py Jane Doe

Reads the Cloudflare KV namespace configured through CF_ACCOUNT_ID,
CF_NAMESPACE_ID and CF_API_TOKEN (a .env file works too). Store calls are
retried with backoff; an entry that still fails is reported and skipped.
Field names are printed with the labels from the form rules file.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from week_contracts.form_rules import FormRules, load_rules
from week_contracts.keys import name_prefix, normalize
from week_contracts.settings import Settings
from week_contracts.storage import KeyValueStore, StorageError, build_kv_store


def _prefix_for(words: list[str]) -> str:
    if len(words) == 2:
        return name_prefix(words[0], words[1])
    return normalize(" ".join(words)) + "_"


def _labelled(record: Any, rules: FormRules) -> Any:
    if not isinstance(record, dict):
        return record
    return {rules.label(name): value for name, value in record.items()}


def _print_entries(kv: KeyValueStore, keys: list[str], rules: FormRules) -> int:
    failures = 0
    for key in keys:
        try:
            value = kv.get(key)
        except StorageError as exc:
            print(f"Failed to fetch entry for {key}: {exc}", file=sys.stderr)
            failures += 1
            continue
        if value is None:
            continue
        print(f"\n=== Entry for key: {key} ===")
        try:
            record = json.loads(value)
        except json.JSONDecodeError:
            print(value)
            continue
        print(json.dumps(_labelled(record, rules), indent=2, ensure_ascii=False))
    return failures


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Print stored submissions for a participant.")
    parser.add_argument(
        "name",
        nargs="+",
        help="Participant as first_last or 'First Last'",
    )
    args = parser.parse_args(argv)

    settings = Settings()
    if settings.kv_backend != "cloudflare":
        parser.error("set KV_BACKEND=cloudflare (and the CF_* variables) to read stored data")

    name = " ".join(args.name)
    prefix = _prefix_for(args.name)

    kv = build_kv_store(settings)
    keys = [key for key in kv.list_keys(prefix) if key.startswith(prefix)]
    if not keys:
        print(f"No entries found for name: {name}")
        return 0

    print(f"Found {len(keys)} entries for name: {name}")
    rules = load_rules(settings.form_rules_path)
    return 1 if _print_entries(kv, keys, rules) else 0


if __name__ == "__main__":
    sys.exit(main())
