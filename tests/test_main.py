"""Tests for CLI orchestration in the main module."""

import json
import sys
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from hublights.github_client import StatusFetcher
from hublights.main import run

SUCCESS_BODY = (
    b'{"total_count":1,"check_suites":[{"id":1,"url":"https://x",'
    b'"status":"completed","conclusion":"success"}]}'
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("HUBLIGHTS_API_URL", "GITHUB_TOKEN", "HUBLIGHTS_STORAGE"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def storage(tmp_path):
    return tmp_path / "storage.json"


def _response(status_code: int, body: bytes = b""):
    response = Mock()
    response.status_code = status_code
    response.content = body
    response.text = body.decode("utf-8")
    response.headers = {}
    return response


def _patched_fetcher(inline_executor, *responses):
    session = Mock()
    session.headers = {}
    session.get = Mock(side_effect=list(responses))
    factory = patch(
        "hublights.main.StatusFetcher",
        side_effect=lambda settings: StatusFetcher(settings, session=session, executor=inline_executor),
    )
    return factory, session


def _stored_configs(storage):
    slots = json.loads(storage.read_text(encoding="utf-8"))
    return json.loads(slots["model"])["configs"]


def test_add_then_list_persists_and_prints_target(storage, capsys):
    """Verify add writes the storage slot and list shows the new target."""
    assert run(["--storage", str(storage), "add", "--org", "octo", "--repo", "hello", "--enable"]) == 0
    assert run(["--storage", str(storage), "list"]) == 0

    configs = _stored_configs(storage)
    assert len(configs) == 1
    assert configs[0]["org"] == "octo"
    assert configs[0]["enabled"] is True
    assert "title" not in configs[0]
    assert "octo/hello" in capsys.readouterr().out


def test_add_without_location_uses_placeholder_title(storage):
    """Verify a bare add creates the placeholder target."""
    assert run(["--storage", str(storage), "add"]) == 0

    assert _stored_configs(storage)[0]["title"] == "New Check"


def test_set_accepts_unique_prefix_and_clears_fields(storage):
    """Verify set resolves id prefixes and empty strings clear optional fields."""
    run(["--storage", str(storage), "add", "--org", "octo", "--branch", "dev"])
    target_id = _stored_configs(storage)[0]["id"]

    exit_code = run(["--storage", str(storage), "set", target_id[:6], "--branch", "", "--interval", "10"])

    assert exit_code == 0
    config = _stored_configs(storage)[0]
    assert "branch" not in config
    assert "checkInterval" not in config


def test_move_and_remove_reorder_storage(storage):
    """Verify move places a target at the requested position and remove drops it."""
    for org in ("a", "b", "c"):
        run(["--storage", str(storage), "add", "--org", org])
    ids = [config["id"] for config in _stored_configs(storage)]

    assert run(["--storage", str(storage), "move", ids[0], "--to", "2"]) == 0
    assert [config["org"] for config in _stored_configs(storage)] == ["b", "c", "a"]

    assert run(["--storage", str(storage), "move", ids[0], "--to", "0"]) == 0
    assert [config["org"] for config in _stored_configs(storage)] == ["a", "b", "c"]

    assert run(["--storage", str(storage), "remove", ids[1]]) == 0
    assert [config["org"] for config in _stored_configs(storage)] == ["a", "c"]


def test_check_success_returns_zero_and_mirrors_status(storage, capsys, inline_executor):
    """Verify a successful check prints the light and persists the status mirror."""
    run(["--storage", str(storage), "add", "--org", "octo", "--enable"])
    factory, session = _patched_fetcher(inline_executor, _response(200, SUCCESS_BODY))

    with factory:
        exit_code = run(["--storage", str(storage), "check"])

    assert exit_code == 0
    session.get.assert_called_once()
    assert "GREEN (1 check suite(s))" in capsys.readouterr().out
    assert _stored_configs(storage)[0]["status"]["conclusion"] == "success"


def test_check_failure_returns_check_failed_exit_code(storage, capsys, inline_executor):
    """Verify a failed fetch maps to exit code 4 and is rendered."""
    run(["--storage", str(storage), "add", "--org", "octo"])
    target_id = _stored_configs(storage)[0]["id"]
    factory, _ = _patched_fetcher(inline_executor, _response(503, b"unavailable"))

    with factory:
        exit_code = run(["--storage", str(storage), "check", target_id])

    assert exit_code == 4
    assert "HTTP 503" in capsys.readouterr().out


def test_check_with_nothing_enabled_is_ok(storage, capsys):
    """Verify refresh-all with no enabled targets exits cleanly."""
    run(["--storage", str(storage), "add", "--org", "octo"])

    assert run(["--storage", str(storage), "check"]) == 0
    assert "No enabled repositories to check." in capsys.readouterr().out


def test_unknown_target_reference_returns_configuration_exit_code(storage, capsys):
    """Verify unresolvable target references map to exit code 2."""
    assert run(["--storage", str(storage), "remove", "does-not-exist"]) == 2
    assert "No target matches" in capsys.readouterr().err


def test_invalid_environment_returns_configuration_exit_code(storage, monkeypatch):
    """Verify settings validation failures map to exit code 2."""
    monkeypatch.setenv("HUBLIGHTS_API_URL", "ftp://example.test")

    assert run(["--storage", str(storage), "list"]) == 2


def test_unexpected_error_returns_generic_exit_code(storage):
    """Verify unexpected exceptions are mapped to exit code 1."""
    with patch("hublights.main.StatusMonitor", side_effect=RuntimeError("boom")):
        assert run(["--storage", str(storage), "list"]) == 1


def test_watch_runs_requested_cycles(storage, inline_executor):
    """Verify watch polls due targets and stops after the requested cycles."""
    run(["--storage", str(storage), "add", "--org", "octo", "--enable"])
    factory, session = _patched_fetcher(inline_executor, _response(200, SUCCESS_BODY))

    with factory:
        exit_code = run(["--storage", str(storage), "watch", "--cycles", "2", "--tick", "0.01"])

    assert exit_code == 0
    session.get.assert_called_once()
