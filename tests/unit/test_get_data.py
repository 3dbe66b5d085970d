from __future__ import annotations

import json
from pathlib import Path

from scripts.get_data import _prefix_for, _print_entries
from week_contracts.form_rules import load_rules
from week_contracts.storage import InMemoryKeyValueStore, StorageError


def _rules():
    return load_rules(Path("config/form.yaml"))


def test_prefix_for_first_and_last_name() -> None:
    assert _prefix_for(["Jane", "Doe"]) == "jane_doe_"
    assert _prefix_for(["jane_doe"]) == "jane_doe_"


def test_entries_are_printed_with_field_labels(capsys) -> None:
    kv = InMemoryKeyValueStore(
        {"jane_doe_jane_example_com_1": json.dumps({"firstName": "Jane", "customField": "x"})}
    )

    failures = _print_entries(kv, ["jane_doe_jane_example_com_1"], _rules())

    out = capsys.readouterr().out
    assert failures == 0
    assert "=== Entry for key: jane_doe_jane_example_com_1 ===" in out
    assert '"First Name": "Jane"' in out
    assert '"customField": "x"' in out


def test_raw_values_and_fetch_failures(capsys) -> None:
    class FailingGet(InMemoryKeyValueStore):
        def get(self, key):
            if key == "jane_doe_broken_2":
                raise StorageError("KV GET failed")
            return super().get(key)

    kv = FailingGet({"jane_doe_raw_1": "not json", "jane_doe_broken_2": "{}"})

    failures = _print_entries(kv, ["jane_doe_raw_1", "jane_doe_broken_2"], _rules())

    captured = capsys.readouterr()
    assert failures == 1
    assert "not json" in captured.out
    assert "Failed to fetch entry for jane_doe_broken_2" in captured.err
