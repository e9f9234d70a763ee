from __future__ import annotations

import logging
from unittest import mock

import pytest
from django.apps import apps


def test_memo_store_app_is_installed() -> None:
    config = apps.get_app_config("memo_store")
    assert config.name == "core.memo_store"


def test_ready_runs_state_table_self_check(caplog) -> None:
    config = apps.get_app_config("memo_store")
    with caplog.at_level(logging.INFO, logger="memoflow.bootstrap"):
        config.ready()
    assert any("self-check passed" in r.getMessage() for r in caplog.records)


def test_ready_refuses_broken_table(caplog) -> None:
    config = apps.get_app_config("memo_store")
    with mock.patch(
        "engines.memo.state_table.verify_state_table",
        side_effect=ValueError("Duplicate transition"),
    ):
        with pytest.raises(ValueError, match="Duplicate"):
            config.ready()
    assert any(r.levelno == logging.CRITICAL for r in caplog.records)
