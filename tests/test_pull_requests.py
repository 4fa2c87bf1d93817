"""Tests for pull request creation and status."""

import json

import pytest

from agent_workbench.core.exceptions import (
    NoCommitsAheadError,
    PullRequestCreateError,
    PullRequestQueryError,
    PushError,
)
from agent_workbench.git.branch_state import BranchStateResolver
from agent_workbench.git.commit_push import CommitPushSequencer
from agent_workbench.git.pull_requests import (
    GH_NOT_FOUND_MESSAGE,
    PullRequestManager,
    build_create_args,
)
from agent_workbench.models import PrCreateRequest

PR_URL = "https://github.com/acme/widgets/pull/42"


@pytest.fixture
def manager(commands):
    branches = BranchStateResolver(commands)
    return PullRequestManager(commands, branches, CommitPushSequencer(commands, branches))


def ready_to_create(runner, ahead="2"):
    """A pushed feature branch with commits ahead of main."""
    runner.on("git", "status", "--porcelain", stdout="")
    runner.on("gh", "repo", "view", "--json", "nameWithOwner", stdout="acme/widgets\n")
    runner.on("gh", "repo", "view", "--json", "defaultBranchRef", stdout="main\n")
    runner.on("git", "branch", "--show-current", stdout="feature-x\n")
    runner.on("git", "rev-list", "--count", stdout=f"{ahead}\n")
    runner.on("gh", "pr", "create", stdout=f"{PR_URL}\n")


class TestBuildCreateArgs:
    """Tests for gh pr create argument construction."""

    def test_full_request(self, tmp_path):
        request = PrCreateRequest(
            workspace_path=tmp_path,
            title="Add parser",
            body="Details",
            base="develop",
            head="acme:feature-x",
            draft=True,
            web=True,
            fill=True,
        )

        args = build_create_args(request, "acme/widgets", "feature-x", "main")

        assert args == [
            "pr", "create",
            "--repo", "acme/widgets",
            "--title", "Add parser",
            "--body", "Details",
            "--base", "develop",
            "--head", "acme:feature-x",
            "--draft", "--web", "--fill",
        ]

    def test_defaults_to_owner_branch_head(self, tmp_path):
        args = build_create_args(PrCreateRequest(workspace_path=tmp_path), "acme/widgets", "feature-x", "main")

        assert args[args.index("--base") + 1] == "main"
        assert args[args.index("--head") + 1] == "acme:feature-x"
        assert "--title" not in args
        assert "--draft" not in args

    def test_unresolved_repository_uses_bare_branch(self, tmp_path):
        args = build_create_args(PrCreateRequest(workspace_path=tmp_path), None, "feature-x", "main")

        assert "--repo" not in args
        assert args[args.index("--head") + 1] == "feature-x"

    def test_detached_head_omits_head(self, tmp_path):
        args = build_create_args(PrCreateRequest(workspace_path=tmp_path), "acme/widgets", "", "main")
        assert "--head" not in args


class TestRepositoryIdentity:
    """Tests for owner/repo resolution."""

    def test_gh_first(self, runner, manager, workspace):
        runner.on("gh", "repo", "view", stdout="acme/widgets\n")

        assert manager.resolve_repository(workspace) == "acme/widgets"
        assert not runner.invoked("git", "remote", "get-url")

    def test_remote_url_fallback(self, runner, manager, workspace):
        runner.fail("gh", "repo", "view", stderr="not logged in")
        runner.on("git", "remote", "get-url", "origin", stdout="git@github.com:acme/widgets.git\n")

        assert manager.resolve_repository(workspace) == "acme/widgets"

    def test_unresolved(self, runner, manager, workspace):
        runner.missing("gh")
        runner.on("git", "remote", "get-url", stdout="/srv/git/widgets.git\n")

        assert manager.resolve_repository(workspace) is None


class TestCreatePullRequest:
    """Tests for the create flow."""

    def test_creates_and_extracts_url(self, runner, manager, workspace):
        ready_to_create(runner)

        created = manager.create_pull_request(
            PrCreateRequest(workspace_path=workspace, title="Add parser")
        )

        assert created.url == PR_URL
        assert PR_URL in created.output
        create = runner.calls_for("gh", "pr", "create")[0]
        assert create.cwd == str(workspace)
        assert ("--head", "acme:feature-x") == create.args[create.args.index("--head"):][:2]

    def test_guard_compares_against_remote_base(self, runner, manager, workspace):
        ready_to_create(runner)

        manager.create_pull_request(PrCreateRequest(workspace_path=workspace, base="develop"))

        guard = runner.calls_for("git", "rev-list", "--count")[0]
        assert guard.args[-1] == "origin/develop..HEAD"

    def test_zero_commits_ahead_rejected(self, runner, manager, workspace):
        ready_to_create(runner, ahead="0")

        with pytest.raises(NoCommitsAheadError) as exc_info:
            manager.create_pull_request(PrCreateRequest(workspace_path=workspace))

        assert "feature-x" in exc_info.value.message
        assert "main" in exc_info.value.message
        assert not runner.invoked("gh", "pr", "create")

    def test_guard_skipped_when_count_unavailable(self, runner, manager, workspace):
        ready_to_create(runner)
        runner.fail("git", "rev-list", "--count", stderr="fatal: bad revision 'origin/main..HEAD'")

        created = manager.create_pull_request(PrCreateRequest(workspace_path=workspace))

        assert created.url == PR_URL

    def test_push_failure_is_fatal(self, runner, manager, workspace):
        ready_to_create(runner)
        runner.fail("git", "push", stderr="rejected")

        with pytest.raises(PushError) as exc_info:
            manager.create_pull_request(PrCreateRequest(workspace_path=workspace))

        assert "remotes and authentication" in exc_info.value.message
        assert not runner.invoked("gh", "pr", "create")

    def test_commit_failure_is_not_fatal(self, runner, manager, workspace):
        ready_to_create(runner)
        runner.on("git", "status", "--porcelain", stdout=" M app.py\n")
        runner.fail("git", "commit", stderr="pre-commit hook failed")

        created = manager.create_pull_request(PrCreateRequest(workspace_path=workspace))

        assert created.url == PR_URL

    def test_commits_pending_changes_first(self, runner, manager, workspace):
        ready_to_create(runner)
        runner.on("git", "status", "--porcelain", stdout="?? new.py\n")

        manager.create_pull_request(PrCreateRequest(workspace_path=workspace))

        commit = runner.calls_for("git", "commit")[0]
        assert commit.args == ("commit", "-m", "chore: prepare pull request")
        order = [c.argv[:3] for c in runner.calls]
        assert order.index(("git", "commit", "-m")) < order.index(("git", "push"))

    def test_gh_failure(self, runner, manager, workspace):
        ready_to_create(runner)
        runner.fail("gh", "pr", "create", stderr="a pull request for branch \"feature-x\" already exists")

        with pytest.raises(PullRequestCreateError) as exc_info:
            manager.create_pull_request(PrCreateRequest(workspace_path=workspace))

        assert "already exists" in exc_info.value.message

    def test_gh_missing(self, runner, manager, workspace):
        ready_to_create(runner)
        runner.missing("gh", "pr", "create")

        with pytest.raises(PullRequestCreateError) as exc_info:
            manager.create_pull_request(PrCreateRequest(workspace_path=workspace))

        assert exc_info.value.message == GH_NOT_FOUND_MESSAGE

    def test_url_taken_from_gh_output_only(self, runner, manager, workspace):
        ready_to_create(runner)
        runner.on("git", "status", "--porcelain", stdout=" M app.py\n")
        runner.on("git", "commit", stdout="[feature-x abc1234] chore\nci: https://ci.example.com/runs/7\n")

        created = manager.create_pull_request(PrCreateRequest(workspace_path=workspace))

        assert created.url == PR_URL
        assert "https://ci.example.com/runs/7" in created.output
        assert PR_URL in created.output

    def test_url_missing_from_output(self, runner, manager, workspace):
        ready_to_create(runner)
        runner.on("gh", "pr", "create", stdout="Opening github.com in your browser.")

        created = manager.create_pull_request(
            PrCreateRequest(workspace_path=workspace, web=True)
        )

        assert created.url is None


class TestPullRequestStatus:
    """Tests for gh pr view handling."""

    PR_JSON = {
        "number": 42,
        "url": PR_URL,
        "state": "OPEN",
        "isDraft": False,
        "mergeStateStatus": "CLEAN",
        "headRefName": "feature-x",
        "baseRefName": "main",
        "title": "Add parser",
        "author": {"login": "octocat"},
    }

    def test_parses_pr(self, runner, manager, workspace):
        runner.on("gh", "pr", "view", stdout=json.dumps(self.PR_JSON))

        pr = manager.get_pull_request_status(workspace)

        assert pr.number == 42
        assert pr.head_ref_name == "feature-x"
        assert pr.author == {"login": "octocat"}
        assert pr.to_payload()["mergeStateStatus"] == "CLEAN"
        view = runner.calls_for("gh", "pr", "view")[0]
        assert view.args[-1] == (
            "number,url,state,isDraft,mergeStateStatus,headRefName,baseRefName,title,author"
        )

    def test_no_pull_request_is_none(self, runner, manager, workspace):
        runner.fail("gh", "pr", "view", stderr='no pull requests found for branch "feature-x"')

        assert manager.get_pull_request_status(workspace) is None

    def test_empty_output_is_error(self, runner, manager, workspace):
        runner.on("gh", "pr", "view", stdout="")

        with pytest.raises(PullRequestQueryError) as exc_info:
            manager.get_pull_request_status(workspace)
        assert exc_info.value.message == "No PR data returned"

    def test_other_failure_carries_tool_text(self, runner, manager, workspace):
        runner.fail("gh", "pr", "view", stderr="HTTP 401: Bad credentials")

        with pytest.raises(PullRequestQueryError) as exc_info:
            manager.get_pull_request_status(workspace)
        assert "Bad credentials" in exc_info.value.message

    def test_gh_missing_is_not_absence(self, runner, manager, workspace):
        runner.missing("gh")

        with pytest.raises(PullRequestQueryError) as exc_info:
            manager.get_pull_request_status(workspace)
        assert exc_info.value.message == GH_NOT_FOUND_MESSAGE

    def test_malformed_json(self, runner, manager, workspace):
        runner.on("gh", "pr", "view", stdout="{not json")

        with pytest.raises(PullRequestQueryError):
            manager.get_pull_request_status(workspace)

    def test_unexpected_state(self, runner, manager, workspace):
        runner.on("gh", "pr", "view", stdout=json.dumps({**self.PR_JSON, "state": "WEIRD"}))

        with pytest.raises(PullRequestQueryError):
            manager.get_pull_request_status(workspace)
