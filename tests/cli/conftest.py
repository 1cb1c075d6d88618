"""Shared fixtures for CLI tests.

Every invocation runs the global callback, which installs a root log
handler bound to the runner's captured stderr.  The original handlers are
restored afterwards so later tests do not log into a closed stream.
"""

from __future__ import annotations

import logging

import pytest


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch):
    for name in ("VERSION_DIFF_LOG_LEVEL", "VERSION_DIFF_MERGE_GAP", "VERSION_DIFF_MAX_DIFF_LINES"):
        monkeypatch.delenv(name, raising=False)
