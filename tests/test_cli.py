"""Tests for the command-line entry point."""

from __future__ import annotations

import json
import sys
import time

import httpx
import pytest

from meta_ads_cli.core.cli import build_parser, describe_expiry, main
from meta_ads_cli.core.config import Config, ConfigStore, Runtime


def campaigns_api(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"data": [{"id": "1", "name": "Spring", "effective_status": "ACTIVE"}]})


def test_list_campaigns_outputs_json_when_piped(make_runtime, capsys) -> None:
    runtime, recorder = make_runtime(campaigns_api, env={"META_TOKEN": "tok"})

    assert main(["campaigns", "list", "-a", "123"], runtime) == 0

    assert json.loads(capsys.readouterr().out) == [{"id": "1", "name": "Spring", "effective_status": "ACTIVE"}]
    assert recorder.requests[0].url.path.endswith("/act_123/campaigns")
    assert recorder.requests[0].url.params["access_token"] == "tok"


def test_global_flags_work_before_and_after_subcommand() -> None:
    parser = build_parser()

    before = parser.parse_args(["--account", "1", "--pretty", "ads", "list"])
    after = parser.parse_args(["ads", "list", "--account", "1", "--pretty"])
    neither = parser.parse_args(["ads", "list"])

    assert (before.account, before.pretty, before.json) == ("1", True, False)
    assert (after.account, after.pretty, after.json) == ("1", True, False)
    assert (neither.account, neither.pretty, neither.json) == (None, False, False)


def test_account_comes_from_stored_default(make_runtime, stores, capsys) -> None:
    own, _ = stores
    own.save(Config(access_token="stored", default_account="act_55"))
    runtime, recorder = make_runtime(campaigns_api)

    assert main(["adsets", "list"], runtime) == 0
    assert recorder.requests[0].url.path.endswith("/act_55/adsets")
    assert recorder.requests[0].url.params["access_token"] == "stored"


def test_not_authenticated_exits_1(make_runtime, capsys) -> None:
    runtime, recorder = make_runtime(campaigns_api)

    assert main(["accounts", "list"], runtime) == 1

    err = capsys.readouterr().err
    assert err.startswith("Error: not authenticated")
    assert recorder.requests == []


def test_graph_api_error_exits_1(make_runtime, capsys) -> None:
    def expired(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"error": {"code": 190, "message": "Session has expired", "error_subcode": 463}})

    runtime, _ = make_runtime(expired, env={"META_TOKEN": "tok"})

    assert main(["campaigns", "get", "1"], runtime) == 1
    assert "Error: meta api error 190 (subcode 463): Session has expired" in capsys.readouterr().err


def test_missing_account_exits_1(make_runtime, capsys) -> None:
    runtime, _ = make_runtime(campaigns_api, env={"META_TOKEN": "tok"})

    assert main(["pixels", "list"], runtime) == 1
    assert "no account specified" in capsys.readouterr().err


def test_missing_subcommand_is_a_usage_error(make_runtime) -> None:
    runtime, _ = make_runtime(campaigns_api)

    with pytest.raises(SystemExit) as exc_info:
        main(["campaigns"], runtime)
    assert exc_info.value.code == 2


def test_info_never_needs_a_token(make_runtime, capsys) -> None:
    runtime, _ = make_runtime(campaigns_api, env={"META_APP_SECRET": "supersecretvalue"})

    assert main(["info"], runtime) == 0

    info = json.loads(capsys.readouterr().out)
    assert info["token_source"] == "none"
    assert info["env"]["META_TOKEN"] == "(not set)"
    assert info["env"]["META_APP_SECRET"] == "supe...alue"
    assert info["resolution_order"][0] == "META_TOKEN environment variable"


def test_info_reports_env_source(make_runtime, capsys) -> None:
    runtime, _ = make_runtime(campaigns_api, env={"META_TOKEN": "tok"})

    assert main(["info"], runtime) == 0
    assert json.loads(capsys.readouterr().out)["token_source"] == "environment"


def test_auth_status_and_logout(make_runtime, stores, capsys) -> None:
    own, _ = stores
    own.save(Config(access_token="tok", token_type="oauth", user_id="42", user_name="Test User"))
    runtime, _ = make_runtime(campaigns_api)

    assert main(["auth", "status"], runtime) == 0
    status = json.loads(capsys.readouterr().out)
    assert status["logged_in"] is True
    assert status["user_name"] == "Test User"

    assert main(["auth", "logout"], runtime) == 0
    assert not own.path.exists()


def test_set_default_account(make_runtime, stores, capsys) -> None:
    own, _ = stores
    runtime, _ = make_runtime(campaigns_api)

    assert main(["accounts", "set-default", "999"], runtime) == 0

    assert own.load().default_account == "act_999"
    assert json.loads(capsys.readouterr().out) == {"default_account": "act_999"}


def test_extend_token_names_missing_credential(make_runtime, capsys) -> None:
    runtime, _ = make_runtime(campaigns_api, env={"META_APP_ID": "123"})

    assert main(["auth", "extend-token", "short"], runtime) == 1
    assert "META_APP_SECRET not set" in capsys.readouterr().err


def test_save_failure_exits_1(tmp_path, capsys) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    runtime = Runtime(
        env={},
        store=ConfigStore(blocker / "config.json"),
        shared_store=ConfigStore(tmp_path / "shared.json"),
    )

    assert main(["accounts", "set-default", "1"], runtime) == 1
    assert "cannot write" in capsys.readouterr().err


@pytest.mark.skipif(sys.platform in ("win32", "darwin"), reason="XDG_CONFIG_HOME only applies on Linux/Unix")
def test_unwritable_log_dir_does_not_stop_the_command(make_runtime, tmp_path, monkeypatch, capsys) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(blocker))
    runtime, _ = make_runtime(campaigns_api)

    assert main(["info"], runtime) == 0

    captured = capsys.readouterr()
    assert "debug log disabled" in captured.err
    assert json.loads(captured.out)["token_source"] == "none"


def test_info_shows_user_and_expiry(make_runtime, stores, capsys) -> None:
    own, _ = stores
    expires_at = int(time.time()) + 10 * 86400 + 60
    own.save(Config(access_token="tok", user_id="42", user_name="Test User", token_expires_at=expires_at))
    runtime, _ = make_runtime(campaigns_api)

    assert main(["info"], runtime) == 0

    info = json.loads(capsys.readouterr().out)
    assert info["token_source"] == "meta-ads config"
    assert info["user"] == "Test User"
    assert info["expires"] == "10 days left"


def test_describe_expiry() -> None:
    assert describe_expiry(None) == ""
    assert describe_expiry(1_000_000 + 3 * 86400, now=1_000_000) == "3 days left"
    assert describe_expiry(1_000_000, now=2_000_000).startswith("EXPIRED on ")
