"""Tests for command-line argument parsing."""

import sys
from pathlib import Path

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from hublights.cli import parse_args


def test_parse_args_list_uses_global_defaults():
    """Verify global options default sensibly for a bare subcommand."""
    args = parse_args(["list"])

    assert args.command == "list"
    assert args.storage is None
    assert args.timeout == 30.0
    assert args.workers == 4
    assert args.verbose is False


def test_parse_args_add_with_all_fields():
    """Verify target fields are parsed for the add command."""
    args = parse_args(
        [
            "--storage",
            "/tmp/hub.json",
            "add",
            "--org",
            "octo",
            "--repo",
            "hello",
            "--branch",
            "dev",
            "--title",
            "Hello",
            "--interval",
            "120",
            "--enable",
        ]
    )

    assert args.storage == "/tmp/hub.json"
    assert (args.org, args.repo, args.branch, args.title) == ("octo", "hello", "dev", "Hello")
    assert args.interval == 120.0
    assert args.enabled is True


def test_parse_args_set_without_toggle_leaves_enabled_unset():
    """Verify omitting --enable/--disable leaves the flag untouched."""
    args = parse_args(["set", "abc", "--branch", ""])

    assert args.target == "abc"
    assert args.branch == ""
    assert args.enabled is None
    assert parse_args(["set", "abc", "--disable"]).enabled is False


def test_parse_args_check_and_watch():
    """Verify check accepts optional targets and watch parses its loop options."""
    assert parse_args(["check"]).targets == []
    assert parse_args(["check", "a", "b"]).targets == ["a", "b"]

    watch = parse_args(["watch", "--cycles", "2", "--tick", "0.5"])
    assert watch.cycles == 2
    assert watch.tick == 0.5
    assert parse_args(["watch"]).cycles is None


@pytest.mark.parametrize(
    "argv",
    [
        [],
        ["--workers", "0", "list"],
        ["--timeout", "-1", "list"],
        ["move", "abc"],
        ["move", "abc", "--to", "-1"],
        ["add", "--enable", "--disable"],
        ["watch", "--cycles", "0"],
    ],
)
def test_parse_args_rejects_invalid_input(argv):
    """Verify invalid arguments exit through argparse."""
    with pytest.raises(SystemExit):
        parse_args(argv)
