from __future__ import annotations

import pytest

from fibengine import runtime


@pytest.fixture(autouse=True)
def fresh_runtime():
    """Every test starts from an empty runtime (no profile, debug off)."""
    return runtime.reset()


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """Isolated workspace under tmp_path, seeded with the packaged profiles."""
    monkeypatch.setenv("FIBENGINE_HOME", str(tmp_path))
    from fibengine.workspace import ensure_workspace_seeded
    root, _, _ = ensure_workspace_seeded()
    return root
