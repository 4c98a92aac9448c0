from __future__ import annotations

import pytest

from inspectgrid import actions, grouping, keyboard


@pytest.fixture(autouse=True)
def _no_settle_delays(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(actions, "ACTION_SETTLE", 0)
    monkeypatch.setattr(grouping, "TOGGLE_SETTLE", 0)
    monkeypatch.setattr(keyboard, "KEY_SETTLE", 0)
