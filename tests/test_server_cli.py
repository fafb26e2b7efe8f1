"""Server CLI tests."""

import os

import uvicorn

from complio.server_cli import main


def test_local_mode_sets_environment(monkeypatch):
    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kw: calls.append((app, kw)))
    # Registered so the values written by main() are undone afterwards
    monkeypatch.setenv("COMPLIO_LOCAL_MODE", "0")
    monkeypatch.setenv("COMPLIO_ORCHESTRATOR_ENABLED", "false")

    main(["--local", "--no-orchestrator", "--port", "9000"])

    assert os.environ["COMPLIO_LOCAL_MODE"] == "1"
    assert os.environ["COMPLIO_ORCHESTRATOR_ENABLED"] == "0"
    assert calls == [("complio.main:app", {"host": "0.0.0.0", "port": 9000})]
