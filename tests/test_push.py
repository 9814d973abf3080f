"""
Tests for the sync action and the push command.
"""

from datetime import datetime
from unittest.mock import MagicMock, call, patch

import pytest
from click.testing import CliRunner

from autopilot import cli
from autopilot.errors import GitError, SyncError, SyncErrorKind, classify_sync_failure
from autopilot.push import default_commit_message, run_sync_action


def git_error(args, stderr="", stdout=""):
    return GitError(list(args), 1, stdout, stderr)


class TestClassification:
    @pytest.mark.parametrize("output,kind", [
        ("On branch main\nnothing to commit, working tree clean", SyncErrorKind.NO_CHANGES),
        ("fatal: The current branch feature has no upstream branch.", SyncErrorKind.NO_UPSTREAM),
        (" ! [rejected]        main -> main (fetch first)", SyncErrorKind.REJECTED),
        ("fatal: unable to access 'https://github.com/x/y.git/'", SyncErrorKind.GENERIC),
    ])
    def test_kinds(self, output, kind):
        assert classify_sync_failure(output).kind is kind

    def test_upstream_hint_names_branch(self):
        error = classify_sync_failure("has no upstream branch", branch="feature")
        assert error.hint == "Run: git push -u origin feature"


class TestRunSyncAction:
    """stage -> commit -> push, any failure classified."""

    def setup_method(self):
        self.patcher = patch("autopilot.push.git")
        self.git = self.patcher.start()
        self.git.get_current_branch.return_value = "main"

    def teardown_method(self):
        self.patcher.stop()

    def test_runs_steps_in_order(self):
        progress = MagicMock()
        result = run_sync_action("Fix bug", cwd="/repo", progress=progress)

        assert result.branch == "main"
        assert result.message == "Fix bug"
        assert self.git.mock_calls[1:] == [
            call.stage_all(cwd="/repo"),
            call.commit("Fix bug", cwd="/repo"),
            call.push(cwd="/repo"),
        ]
        assert progress.call_args_list[-1] == call("Pushing to origin/main...")

    def test_default_message_is_timestamped(self):
        result = run_sync_action()
        assert result.message.startswith("Auto-commit: ")
        self.git.commit.assert_called_once_with(result.message, cwd=None)

    def test_missing_branch_falls_back_to_main(self):
        self.git.get_current_branch.return_value = None
        assert run_sync_action("x").branch == "main"

    def test_nothing_to_commit(self):
        self.git.commit.side_effect = git_error(
            ["commit", "-m", "x"], stdout="nothing to commit, working tree clean"
        )
        with pytest.raises(SyncError) as excinfo:
            run_sync_action("x")
        assert excinfo.value.kind is SyncErrorKind.NO_CHANGES
        self.git.push.assert_not_called()

    def test_push_rejected(self):
        self.git.push.side_effect = git_error(["push"], stderr=" ! [rejected] main -> main (non-fast-forward)")
        with pytest.raises(SyncError) as excinfo:
            run_sync_action("x")
        assert excinfo.value.kind is SyncErrorKind.REJECTED
        assert "git pull --rebase" in excinfo.value.hint

    def test_stage_failure_is_generic(self):
        self.git.stage_all.side_effect = git_error(["add", "-A"], stderr="fatal: index.lock exists")
        with pytest.raises(SyncError) as excinfo:
            run_sync_action("x")
        assert excinfo.value.kind is SyncErrorKind.GENERIC
        assert "index.lock" in excinfo.value.detail
        self.git.commit.assert_not_called()


def test_default_commit_message():
    assert default_commit_message(datetime(2026, 1, 2, 3, 4, 5)) == "Auto-commit: 2026-01-02 03:04:05"


class TestPushCommand:
    def setup_method(self):
        self.runner = CliRunner()

    def invoke(self, args, **kwargs):
        return self.runner.invoke(cli, ["push", *args], **kwargs)

    @patch("autopilot.checks.credentials.get_current_token", return_value=None)
    def test_requires_connection(self, _token):
        result = self.invoke(["-m", "x"])
        assert result.exit_code == 1
        assert "not connected to GitHub" in result.output
        assert "autopilot connect" in result.output

    @patch("autopilot.push.run_sync_action")
    @patch("autopilot.push.git")
    @patch("autopilot.checks.git")
    @patch("autopilot.checks.credentials.get_current_token", return_value="tok")
    def test_clean_tree(self, _token, checks_git, push_git, sync):
        push_git.get_status.return_value = ""
        result = self.invoke(["-m", "x"])
        assert result.exit_code == 0
        assert "No changes to commit" in result.output
        sync.assert_not_called()

    @patch("autopilot.push.run_sync_action")
    @patch("autopilot.push.git")
    @patch("autopilot.checks.git")
    @patch("autopilot.checks.credentials.get_current_token", return_value="tok")
    def test_requires_remote(self, _token, checks_git, push_git, sync):
        push_git.get_status.return_value = " M a.py\n"
        checks_git.has_remote.return_value = False
        result = self.invoke(["-m", "x"])
        assert result.exit_code == 1
        assert "No remote repository configured" in result.output
        sync.assert_not_called()

    @patch("autopilot.push.run_sync_action")
    @patch("autopilot.push.git")
    @patch("autopilot.checks.git")
    @patch("autopilot.checks.credentials.get_current_token", return_value="tok")
    def test_pushes_with_message(self, _token, checks_git, push_git, sync):
        push_git.get_status.return_value = "".join(f" M f{i}.py\n" for i in range(7))
        sync.return_value = MagicMock(branch="main", message="Ship it")
        result = self.invoke(["-m", "Ship it"])

        assert result.exit_code == 0, result.output
        assert "Found 7 change(s)" in result.output
        assert "... and 2 more" in result.output
        assert "Pushed to origin/main" in result.output
        assert sync.call_args.args[0] == "Ship it"

    @patch("autopilot.push.run_sync_action")
    @patch("autopilot.push.git")
    @patch("autopilot.checks.git")
    @patch("autopilot.checks.credentials.get_current_token", return_value="tok")
    def test_prompts_for_message(self, _token, checks_git, push_git, sync):
        push_git.get_status.return_value = " M a.py\n"
        sync.return_value = MagicMock(branch="main", message="typed")
        result = self.invoke([], input="typed\n")
        assert result.exit_code == 0, result.output
        assert sync.call_args.args[0] == "typed"

    @patch("autopilot.push.run_sync_action")
    @patch("autopilot.push.git")
    @patch("autopilot.checks.git")
    @patch("autopilot.checks.credentials.get_current_token", return_value="tok")
    def test_rejected_push_exits_nonzero(self, _token, checks_git, push_git, sync):
        push_git.get_status.return_value = " M a.py\n"
        sync.side_effect = SyncError(SyncErrorKind.REJECTED)
        result = self.invoke(["-m", "x"])
        assert result.exit_code == 1
        assert "Push rejected" in result.output
        assert "git pull --rebase" in result.output
