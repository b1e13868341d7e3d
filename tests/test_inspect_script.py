"""Tests for scripts/inspect_rate_limit.py."""

import importlib.util
import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from ratekeeper.app.exceptions import CounterStoreUnavailableError
from ratekeeper.app.stores import InMemoryCounterStore

SCRIPT = Path(__file__).parent.parent / "scripts" / "inspect_rate_limit.py"


@pytest.fixture
def script():
    spec = importlib.util.spec_from_file_location("inspect_rate_limit", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    with patch.object(module, "setup_logging"):
        yield module


def test_parse_args(script):
    args = script.parse_args(["slack:test", "--limit", "2", "--window", "30", "--reset"])
    assert (args.key, args.limit, args.window, args.reset) == ("slack:test", 2, 30, True)
    assert args.backend == "redis"


def test_prints_state(script, capsys):
    with patch.object(script, "get_counter_store", return_value=InMemoryCounterStore()):
        assert script.main(["slack:test", "--limit", "5", "--window", "60", "--backend", "memory"]) == 0

    state = json.loads(capsys.readouterr().out)
    assert state["key"] == "slack:test"
    assert state["count"] == 0
    assert state["remaining"] == 5
    assert state["ttl"] is None


def test_reset_deletes_window(script, capsys):
    store = MagicMock()
    store.delete = AsyncMock()
    store.get_count = AsyncMock(return_value=0)
    store.get_ttl = AsyncMock(return_value=None)
    store.close = AsyncMock()

    with patch.object(script, "get_counter_store", return_value=store):
        assert script.main(["slack:test", "--reset"]) == 0

    store.delete.assert_awaited_once_with("ratelimit:slack:test")
    store.close.assert_awaited_once()


def test_store_unavailable(script, capsys):
    store = MagicMock()
    store.get_count = AsyncMock(side_effect=CounterStoreUnavailableError("ratelimit:k"))
    store.close = AsyncMock()

    with patch.object(script, "get_counter_store", return_value=store):
        assert script.main(["k"]) == 1

    assert "Counter store unavailable" in capsys.readouterr().err
    store.close.assert_awaited_once()
