from __future__ import annotations

import pytest

from actionstate.utils.env import env_bool, env_choice


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("1", True), ("Yes", True), (" on ", True), ("0", False), ("off", False), ("maybe", True)],
)
def test_env_bool(raw: str, expected: bool) -> None:
    assert env_bool("FLAG", True, env={"FLAG": raw}) is expected


def test_env_bool_missing_uses_default() -> None:
    assert env_bool("FLAG", False, env={}) is False


def test_env_choice_normalises_case_and_dashes() -> None:
    choices = ["last_writer_wins", "first_success_wins"]
    assert env_choice("P", choices, "last_writer_wins", env={"P": "First-Success-Wins"}) == "first_success_wins"
    assert env_choice("P", choices, "last_writer_wins", env={"P": "other"}) == "last_writer_wins"
    assert env_choice("P", choices, "last_writer_wins", env={}) == "last_writer_wins"


def test_env_bool_reads_process_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ACTIONSTATE_TEST_FLAG", "off")
    assert env_bool("ACTIONSTATE_TEST_FLAG", True) is False
    monkeypatch.delenv("ACTIONSTATE_TEST_FLAG")
    assert env_bool("ACTIONSTATE_TEST_FLAG", True) is True
