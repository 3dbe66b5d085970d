from __future__ import annotations

from pathlib import Path

import pytest

from week_contracts.form_rules import invalidate_rules_cache

REPO_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture(autouse=True)
def _run_from_repo_root(monkeypatch: pytest.MonkeyPatch) -> None:
    # Settings default to config/form.yaml relative to the working directory.
    monkeypatch.chdir(REPO_ROOT)
    invalidate_rules_cache()
