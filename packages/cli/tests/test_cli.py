"""Tests for the CLI entry point."""

import subprocess
from unittest.mock import MagicMock, patch

from click.testing import CliRunner

from mergebot_cli.cli import _build_store, main
from mergebot_core.config import DEFAULT_CONFIG
from mergebot_core.dispatch import CommandInvocation
from mergebot_core.outcome import Outcome
from mergebot_store.memory import MemoryLockStore
from mergebot_store.models import LockRecord
from mergebot_store.sqlite import SQLiteLockStore

SHA = "a" * 40


def _make_config(github_token="tok", census="census.yml"):
    return dict(DEFAULT_CONFIG, github_token=github_token, census=census)


def _patch_common(mocker, config=None, token="tok"):
    """Patch load_config, resolve_github_token, and _build_store for most tests."""
    cfg = config or _make_config()
    mocker.patch("mergebot_core.config.load_config", return_value=cfg)
    mocker.patch("mergebot_cli.auth.resolve_github_token", return_value=token)
    mock_store = MagicMock(spec=SQLiteLockStore)
    mock_store.list_locks.return_value = []
    mocker.patch("mergebot_cli.cli._build_store", return_value=mock_store)
    return cfg, mock_store


class TestCLIValidation:
    def test_missing_github_token(self, mocker):
        _patch_common(mocker, config=_make_config(github_token=None), token=None)

        result = CliRunner().invoke(main, ["integrate", "--repo", "o/r", "--pr", "1", "--user", "duke"])
        assert result.exit_code != 0
        assert "GITHUB_TOKEN" in result.output

    def test_missing_census(self, mocker, tmp_path):
        _patch_common(mocker, config=_make_config(census=str(tmp_path / "missing.yml")))

        result = CliRunner().invoke(main, ["integrate", "--repo", "o/r", "--pr", "1", "--user", "duke"])
        assert result.exit_code != 0
        assert "Could not load census" in result.output

    def test_bad_config_is_usage_error(self, mocker):
        mocker.patch("mergebot_core.config.load_config", side_effect=ValueError("Unknown backport_branch_policy"))
        mocker.patch("mergebot_cli.auth.resolve_github_token", return_value="tok")

        result = CliRunner().invoke(main, ["locks"])
        assert result.exit_code != 0
        assert "Unknown backport_branch_policy" in result.output

    def test_store_closed_after_command(self, mocker):
        _, store = _patch_common(mocker)
        CliRunner().invoke(main, ["locks"])
        store.close.assert_called_once()


class TestIntegrateCommand:
    def test_runs_integrate_and_posts_reply(self, mocker):
        _patch_common(mocker)
        bot = MagicMock()
        mocker.patch("mergebot_cli.commands.integrate.build_context", return_value=bot)
        run = mocker.patch(
            "mergebot_cli.commands.integrate.run_integrate", return_value=Outcome.success("integrated", ["Pushed."])
        )

        result = CliRunner().invoke(main, ["integrate", "--repo", "o/r", "--pr", "42", "--user", "duke"])

        assert result.exit_code == 0
        bot.gh.get_repo.assert_called_once_with("o/r")
        pr = bot.gh.get_repo.return_value.get_pull.return_value
        assert run.call_args.args[1] == CommandInvocation("duke", "integrate", "")
        assert run.call_args.args[2] is pr
        pr.create_issue_comment.assert_called_once_with("@duke Pushed.")

    def test_hash_passed_as_argument(self, mocker):
        _patch_common(mocker)
        mocker.patch("mergebot_cli.commands.integrate.build_context", return_value=MagicMock())
        run = mocker.patch(
            "mergebot_cli.commands.integrate.run_integrate", return_value=Outcome.success("integrated", [])
        )

        CliRunner().invoke(main, ["integrate", "--repo", "o/r", "--pr", "42", "--user", "duke", "--hash", SHA])

        assert run.call_args.args[1].args == SHA

    def test_no_reply_prints_only(self, mocker):
        _patch_common(mocker)
        bot = MagicMock()
        mocker.patch("mergebot_cli.commands.integrate.build_context", return_value=bot)
        mocker.patch(
            "mergebot_cli.commands.integrate.run_integrate", return_value=Outcome.blocked("no-changes", ["Nothing."])
        )

        result = CliRunner().invoke(
            main, ["integrate", "--repo", "o/r", "--pr", "42", "--user", "duke", "--no-reply"]
        )

        assert result.exit_code == 0
        assert "@duke Nothing." in result.output
        bot.gh.get_repo.return_value.get_pull.return_value.create_issue_comment.assert_not_called()

    def test_fault_exits_nonzero(self, mocker):
        _patch_common(mocker)
        mocker.patch("mergebot_cli.commands.integrate.build_context", return_value=MagicMock())
        mocker.patch(
            "mergebot_cli.commands.integrate.run_integrate",
            return_value=Outcome.fault("unexpected-error", ["An unexpected error occurred."]),
        )

        result = CliRunner().invoke(main, ["integrate", "--repo", "o/r", "--pr", "42", "--user", "duke"])
        assert result.exit_code == 1


class TestBackportCommand:
    def test_runs_backport_with_target_and_branch(self, mocker):
        _patch_common(mocker)
        bot = MagicMock()
        mocker.patch("mergebot_cli.commands.backport.build_context", return_value=bot)
        run = mocker.patch(
            "mergebot_cli.commands.backport.run_backport", return_value=Outcome.success("request-opened", ["Done."])
        )

        result = CliRunner().invoke(
            main, ["backport", "--repo", "o/r", "--commit", SHA, "--user", "duke", "jdk17u", "jdk17u-dev"]
        )

        assert result.exit_code == 0
        source = bot.gh.get_repo.return_value
        assert run.call_args.args[1:] == (CommandInvocation("duke", "backport", "jdk17u jdk17u-dev"), source, SHA)
        source.get_commit.assert_called_with(SHA)
        source.get_commit.return_value.create_comment.assert_called_once_with("@duke Done.")

    def test_branch_optional(self, mocker):
        _patch_common(mocker)
        mocker.patch("mergebot_cli.commands.backport.build_context", return_value=MagicMock())
        run = mocker.patch(
            "mergebot_cli.commands.backport.run_backport", return_value=Outcome.success("request-opened", [])
        )

        CliRunner().invoke(main, ["backport", "--repo", "o/r", "--commit", SHA, "--user", "duke", "jdk17u"])

        assert run.call_args.args[1].args == "jdk17u"


class TestDispatchCommand:
    def test_pull_request_comment(self, mocker):
        _patch_common(mocker)
        bot = MagicMock()
        mocker.patch("mergebot_cli.commands.dispatch.build_context", return_value=bot)
        dispatch = mocker.patch(
            "mergebot_cli.commands.dispatch.dispatch_pull_request",
            return_value=[Outcome.success("integrated", ["Pushed."])],
        )

        result = CliRunner().invoke(
            main,
            ["dispatch", "--repo", "o/r", "--pr", "42", "--user", "duke", "--comment", "-"],
            input="/integrate\n",
        )

        assert result.exit_code == 0
        args = dispatch.call_args.args
        assert args[2] == "/integrate\n"
        assert args[3] == "duke"
        assert "@duke Pushed." in result.output

    def test_commit_comment(self, mocker):
        _patch_common(mocker)
        mocker.patch("mergebot_cli.commands.dispatch.build_context", return_value=MagicMock())
        dispatch = mocker.patch("mergebot_cli.commands.dispatch.dispatch_commit", return_value=[])

        result = CliRunner().invoke(
            main,
            ["dispatch", "--repo", "o/r", "--commit", SHA, "--user", "duke", "--comment", "-"],
            input="/backport jdk17u\n",
        )

        assert result.exit_code == 0
        assert dispatch.call_args.args[2] == SHA
        assert "No commands found." in result.output

    def test_requires_exactly_one_target(self, mocker):
        _patch_common(mocker)
        result = CliRunner().invoke(
            main,
            ["dispatch", "--repo", "o/r", "--pr", "1", "--commit", SHA, "--user", "duke", "--comment", "-"],
            input="/integrate\n",
        )
        assert result.exit_code != 0
        assert "exactly one of --pr or --commit" in result.output


class TestLocksCommand:
    def test_shows_table_when_locks_held(self, mocker):
        _, store = _patch_common(mocker)
        store.list_locks.return_value = [LockRecord("openjdk/jdk#42", "duke:abc", 1_700_000_000.0, 1_700_000_600.0)]

        result = CliRunner().invoke(main, ["locks"])

        assert result.exit_code == 0
        assert "openjdk/jdk#42" in result.output
        assert "duke:abc" in result.output

    def test_shows_empty_message(self, mocker):
        _patch_common(mocker)
        result = CliRunner().invoke(main, ["locks"])
        assert "No integration locks held." in result.output


class TestResolveGithubToken:
    def test_returns_env_var_when_set(self, monkeypatch):
        from mergebot_cli.auth import resolve_github_token

        monkeypatch.delenv("MERGEBOT_TOKEN", raising=False)
        monkeypatch.setenv("GITHUB_TOKEN", "env-token")
        assert resolve_github_token() == "env-token"

    def test_bot_token_takes_precedence(self, monkeypatch):
        from mergebot_cli.auth import resolve_github_token

        monkeypatch.setenv("MERGEBOT_TOKEN", "bot-token")
        monkeypatch.setenv("GITHUB_TOKEN", "env-token")
        assert resolve_github_token() == "bot-token"

    def test_empty_gh_output_is_none(self, monkeypatch):
        from mergebot_cli.auth import resolve_github_token

        monkeypatch.delenv("MERGEBOT_TOKEN", raising=False)
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0, stdout="   ")
            result = resolve_github_token()
        assert result is None

    def test_falls_back_to_gh_cli(self, monkeypatch):
        from mergebot_cli.auth import resolve_github_token

        monkeypatch.delenv("MERGEBOT_TOKEN", raising=False)
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0, stdout="gh-token\n")
            result = resolve_github_token()
        assert result == "gh-token"

    def test_returns_none_when_gh_not_installed(self, monkeypatch):
        from mergebot_cli.auth import resolve_github_token

        monkeypatch.delenv("MERGEBOT_TOKEN", raising=False)
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run", side_effect=FileNotFoundError):
            result = resolve_github_token()
        assert result is None

    def test_returns_none_when_gh_times_out(self, monkeypatch):
        from mergebot_cli.auth import resolve_github_token

        monkeypatch.delenv("MERGEBOT_TOKEN", raising=False)
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run", side_effect=subprocess.TimeoutExpired(cmd="gh", timeout=5)):
            result = resolve_github_token()
        assert result is None

    def test_returns_none_when_gh_returns_error(self, monkeypatch):
        from mergebot_cli.auth import resolve_github_token

        monkeypatch.delenv("MERGEBOT_TOKEN", raising=False)
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=1, stdout="")
            result = resolve_github_token()
        assert result is None


class TestBuildStore:
    def test_returns_sqlite_by_default(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        store = _build_store({})
        assert isinstance(store, SQLiteLockStore)
        store.close()

    def test_returns_sqlite_store_at_path(self, tmp_path):
        store = _build_store({"lock_store": "sqlite", "store_path": str(tmp_path / "locks.db")})
        assert isinstance(store, SQLiteLockStore)
        store.close()
        assert (tmp_path / "locks.db").exists()

    def test_returns_memory_store(self):
        assert isinstance(_build_store({"lock_store": "memory"}), MemoryLockStore)

    def test_unknown_store_falls_back_to_sqlite(self, tmp_path):
        store = _build_store({"lock_store": "redis", "store_path": str(tmp_path / "locks.db")})
        assert isinstance(store, SQLiteLockStore)
        store.close()
