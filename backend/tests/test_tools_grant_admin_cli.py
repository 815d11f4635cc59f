"""
grant_admin CLI: runs the grant use case against an injected store.
"""
from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from backend.identity_access.stores import InMemoryUserStore
from backend.tools import grant_admin


def _patch_client(monkeypatch: pytest.MonkeyPatch, store: InMemoryUserStore) -> list:
    seen = []

    def _factory(cfg):
        seen.append(cfg)
        return store

    monkeypatch.setattr(grant_admin, "AppwriteUsersClient", _factory)
    return seen


def _body(res) -> dict:
    # Log lines (stderr) may precede the JSON document in the captured output
    out = res.output
    return json.loads(out[out.index("{"): out.rindex("}") + 1])


ARGS = ["--endpoint", "https://appwrite.test/v1", "--project", "p", "--api-key", "k"]


def test_cli_grants_admin_and_prints_result(monkeypatch: pytest.MonkeyPatch):
    store = InMemoryUserStore()
    store.add_user("u1", ["vip"])
    seen = _patch_client(monkeypatch, store)

    res = CliRunner().invoke(grant_admin.main, ["u1", *ARGS, "--timeout", "2"])

    assert res.exit_code == 0, res.output
    body = _body(res)
    assert body["success"] is True
    assert set(body["updatedLabels"]) == {"vip", "admin"}
    assert seen[0].timeout_seconds == 2.0
    assert seen[0].self_signed is False


def test_cli_reads_settings_from_environment(monkeypatch: pytest.MonkeyPatch, appwrite_env):
    store = InMemoryUserStore()
    store.add_user("u1", ["admin"])
    seen = _patch_client(monkeypatch, store)

    res = CliRunner().invoke(grant_admin.main, ["u1", "--self-signed"])

    assert res.exit_code == 0, res.output
    assert _body(res)["changed"] is False
    assert seen[0].project_id == "proj-test"
    assert seen[0].self_signed is True


def test_cli_exits_nonzero_for_unknown_user(monkeypatch: pytest.MonkeyPatch):
    _patch_client(monkeypatch, InMemoryUserStore())

    res = CliRunner().invoke(grant_admin.main, ["ghost", *ARGS])

    assert res.exit_code == 1
    assert _body(res)["error"] == "User not found with ID: ghost"


def test_cli_requires_credentials(monkeypatch: pytest.MonkeyPatch):
    _patch_client(monkeypatch, InMemoryUserStore())

    res = CliRunner().invoke(grant_admin.main, ["u1"])

    assert res.exit_code == 2
    assert "--endpoint" in res.output


def test_cli_rejects_blank_user_id(monkeypatch: pytest.MonkeyPatch):
    _patch_client(monkeypatch, InMemoryUserStore())

    res = CliRunner().invoke(grant_admin.main, ["  ", *ARGS])

    assert res.exit_code == 2


def test_cli_honors_runtime_fallbacks_and_env_timeout(monkeypatch: pytest.MonkeyPatch):
    store = InMemoryUserStore()
    store.add_user("u1")
    seen = _patch_client(monkeypatch, store)
    env = {
        "APPWRITE_API_KEY": "k",
        "APPWRITE_FUNCTION_API_ENDPOINT": "https://runtime.appwrite/v1/",
        "APPWRITE_PROJECT_ID": "p-runtime",
        "APPWRITE_TIMEOUT_SECONDS": "7",
        "APPWRITE_SELF_SIGNED": "true",
    }

    res = CliRunner().invoke(grant_admin.main, ["u1"], env=env)

    assert res.exit_code == 0, res.output
    assert seen[0].endpoint == "https://runtime.appwrite/v1"
    assert seen[0].project_id == "p-runtime"
    assert seen[0].timeout_seconds == 7.0
    assert seen[0].self_signed is True


def test_cli_options_override_environment(monkeypatch: pytest.MonkeyPatch, appwrite_env):
    store = InMemoryUserStore()
    store.add_user("u1")
    seen = _patch_client(monkeypatch, store)

    res = CliRunner().invoke(
        grant_admin.main,
        ["u1", "--project", "p-cli", "--timeout", "1.5"],
        env={"APPWRITE_TIMEOUT_SECONDS": "9"},
    )

    assert res.exit_code == 0, res.output
    assert seen[0].project_id == "p-cli"
    assert seen[0].endpoint == "https://appwrite.test/v1"
    assert seen[0].timeout_seconds == 1.5


def test_cli_logs_user_count_from_environment(monkeypatch: pytest.MonkeyPatch, appwrite_env):
    store = InMemoryUserStore()
    store.add_user("u1")
    store.add_user("u2")
    seen = _patch_client(monkeypatch, store)

    res = CliRunner().invoke(grant_admin.main, ["u1"], env={"LOG_USER_COUNT": "true"})

    assert res.exit_code == 0, res.output
    assert seen[0].log_user_count is True


def test_cli_reports_missing_settings_by_name(monkeypatch: pytest.MonkeyPatch):
    _patch_client(monkeypatch, InMemoryUserStore())

    res = CliRunner().invoke(grant_admin.main, ["u1", "--endpoint", "https://appwrite.test/v1"])

    assert res.exit_code == 2
    assert "APPWRITE_API_KEY" in res.output
    assert "APPWRITE_FUNCTION_PROJECT_ID" in res.output
