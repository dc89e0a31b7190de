"""
Unit tests for the repository query facade.

Covers:
- Sentinel values for every failure mode
- Argument construction for git commands
- History parsing
- Queries against a real temporary repository
"""

import shutil
import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

from git import (
    Actor, Repo, GitCommandError, GitCommandNotFound, InvalidGitRepositoryError, NoSuchPathError
)

from config.settings import GitSettings, Settings
from services.deploy_info.main import DeployInfoService
from services.deploy_info.repository import (
    NO_MESSAGE, NO_TAG, UNKNOWN, RepositoryQueryFacade, parse_history
)


def git_output(**outputs):
    """Patch Repo so that ``repo.git.<command>`` returns the given output."""
    mock_repo_class = MagicMock()
    repo = mock_repo_class.return_value.__enter__.return_value
    for command, output in outputs.items():
        getattr(repo.git, command).return_value = output
    return mock_repo_class, repo


def record(commit_hash, message, timestamp=1714564800, author="Test User"):
    return f"{commit_hash}\x1f{author}\x1ftest@example.com\x1fCI Bot\x1f{timestamp}\x1f{message}\x1e"


class TestFacadeWithMockedGit:
    """Test cases using a mocked GitPython Repo."""

    @pytest.fixture
    def facade(self):
        return RepositoryQueryFacade("/path/to/repo", timeout=2.5)

    def test_short_hash(self, facade):
        mock_repo_class, repo = git_output(rev_parse="abc1234\n")
        with patch("services.deploy_info.repository.Repo", mock_repo_class):
            assert facade.short_hash() == "abc1234"

        repo.git.rev_parse.assert_called_once_with("--short", "HEAD", kill_after_timeout=2.5)
        mock_repo_class.assert_called_once_with("/path/to/repo", search_parent_directories=True)

    def test_branch(self, facade):
        mock_repo_class, _ = git_output(rev_parse="main")
        with patch("services.deploy_info.repository.Repo", mock_repo_class):
            assert facade.branch() == "main"

    def test_identity_fields(self, facade):
        mock_repo_class, repo = git_output(log="Test User")
        with patch("services.deploy_info.repository.Repo", mock_repo_class):
            assert facade.author_name() == "Test User"
            assert facade.committer_name("abc1234") == "Test User"

        repo.git.log.assert_called_with("-1", "--format=%cn", "abc1234", "--", kill_after_timeout=2.5)

    def test_commit_time(self, facade):
        mock_repo_class, _ = git_output(log="1714564800")
        with patch("services.deploy_info.repository.Repo", mock_repo_class):
            assert facade.commit_time() == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def test_commit_time_unparsable(self, facade):
        mock_repo_class, _ = git_output(log="yesterday")
        with patch("services.deploy_info.repository.Repo", mock_repo_class):
            assert facade.commit_time() is None

    def test_commit_count(self, facade):
        mock_repo_class, _ = git_output(rev_list="42\n")
        with patch("services.deploy_info.repository.Repo", mock_repo_class):
            assert facade.commit_count() == 42

    def test_commit_count_unparsable(self, facade):
        mock_repo_class, _ = git_output(rev_list="many")
        with patch("services.deploy_info.repository.Repo", mock_repo_class):
            assert facade.commit_count() == 0

    def test_latest_tag(self, facade):
        mock_repo_class, _ = git_output(describe="v1.2.0")
        with patch("services.deploy_info.repository.Repo", mock_repo_class):
            assert facade.latest_tag() == "v1.2.0"

    def test_commits_matching(self, facade):
        output = record("a" * 40, "release v12") + record("b" * 40, "fix") + record("c" * 40, "Release v3")
        mock_repo_class, repo = git_output(log=output)
        with patch("services.deploy_info.repository.Repo", mock_repo_class):
            assert facade.commits_matching(r"release v\d+") == ["a" * 40, "c" * 40]
            assert facade.commits_matching(r"release v\d+", limit=1) == ["a" * 40]

        assert repo.git.log.call_args.args[-2:] == ("HEAD", "--")

    def test_commits_matching_pattern_is_not_a_git_argument(self, facade):
        pattern = "deploy success; rm -rf /"
        mock_repo_class, repo = git_output(log=record("a" * 40, "deploy success"))
        with patch("services.deploy_info.repository.Repo", mock_repo_class):
            assert facade.commits_matching(pattern) == []

        assert all(pattern not in arg for arg in repo.git.log.call_args.args)

    def test_commits_matching_no_output(self, facade):
        mock_repo_class, _ = git_output(log="")
        with patch("services.deploy_info.repository.Repo", mock_repo_class):
            assert facade.commits_matching("deploy") == []

    def test_commits_matching_non_positive_limit(self, facade):
        assert facade.commits_matching("deploy", limit=0) == []

    def test_history(self, facade):
        output = record("a" * 40, "deploy success: v2") + "\n" + record("b" * 40, "fix bug\n\nbody")
        mock_repo_class, repo = git_output(log=output)
        with patch("services.deploy_info.repository.Repo", mock_repo_class):
            history = facade.history(max_count=5)

        assert [c.hash for c in history] == ["a" * 40, "b" * 40]
        assert history[1].message == "fix bug\n\nbody"
        args = repo.git.log.call_args.args
        assert "--max-count=5" in args
        assert args[-2:] == ("HEAD", "--")

    def test_head(self, facade):
        mock_repo_class, _ = git_output(log=record("c" * 40, "wip"))
        with patch("services.deploy_info.repository.Repo", mock_repo_class):
            head = facade.head()

        assert head.hash == "c" * 40
        assert head.committer_name == "CI Bot"

    def test_rejects_option_like_revision(self, facade):
        mock_repo_class, repo = git_output(log="x")
        with patch("services.deploy_info.repository.Repo", mock_repo_class):
            assert facade.history(rev="--output=/tmp/x") is None
            assert facade.author_name("-p") == UNKNOWN

        repo.git.log.assert_not_called()


class TestFacadeSentinels:
    """Test cases for failure handling."""

    @pytest.fixture
    def facade(self):
        return RepositoryQueryFacade("/not/a/repo")

    @pytest.mark.parametrize(
        "error",
        [
            InvalidGitRepositoryError("/not/a/repo"),
            NoSuchPathError("/not/a/repo"),
            GitCommandNotFound("git", "not found"),
            GitCommandError(["git", "log"], 128, b"fatal: bad revision"),
            PermissionError("denied"),
        ],
    )
    def test_all_queries_return_sentinels(self, facade, error):
        with patch("services.deploy_info.repository.Repo", side_effect=error):
            assert facade.is_available() is False
            assert facade.short_hash() == UNKNOWN
            assert facade.branch() == UNKNOWN
            assert facade.author_name() == UNKNOWN
            assert facade.author_email() == UNKNOWN
            assert facade.committer_name() == UNKNOWN
            assert facade.message() == NO_MESSAGE
            assert facade.commit_time() is None
            assert facade.commit_count() == 0
            assert facade.commits_matching("deploy") == []
            assert facade.latest_tag() == NO_TAG
            assert facade.history() is None
            assert facade.head() is None

    def test_timeout_is_unavailable(self, facade):
        mock_repo_class, repo = git_output()
        repo.git.log.side_effect = GitCommandError(["git", "log"], -9, b"", b"")
        with patch("services.deploy_info.repository.Repo", mock_repo_class):
            assert facade.history() is None

    def test_empty_output_is_unknown(self, facade):
        mock_repo_class, _ = git_output(rev_parse="", log="")
        with patch("services.deploy_info.repository.Repo", mock_repo_class):
            assert facade.short_hash() == UNKNOWN
            assert facade.author_email() == UNKNOWN


class TestParseHistory:
    """Test cases for log output parsing."""

    def test_empty_output(self):
        assert parse_history("") == []

    def test_skips_malformed_records(self):
        output = "garbage\x1e" + record("d" * 40, "ok")
        history = parse_history(output)
        assert [c.hash for c in history] == ["d" * 40]

    def test_skips_bad_timestamp(self):
        output = record("e" * 40, "bad", timestamp="soon") + record("f" * 40, "good")
        assert [c.message for c in parse_history(output)] == ["good"]

    def test_message_may_contain_field_separator(self):
        history = parse_history(record("1" * 40, "odd\x1fmessage"))
        assert history[0].message == "odd\x1fmessage"


@pytest.mark.skipif(shutil.which("git") is None, reason="git executable not installed")
class TestFacadeWithRealRepository:
    """Integration tests against a temporary repository."""

    @pytest.fixture
    def repo_path(self, tmp_path):
        repo = Repo.init(tmp_path)
        author = Actor("Test User", "test@example.com")
        committer = Actor("CI Bot", "ci@example.com")
        messages = ["initial commit", "Deployment Successful - v1", "fix bug", "deploy success: v2"]
        for index, message in enumerate(messages):
            path = tmp_path / f"file{index}.txt"
            path.write_text(message)
            repo.index.add([str(path)])
            repo.index.commit(message, author=author, committer=committer)
        repo.create_tag("v2.0.0")
        repo.close()
        return tmp_path

    def test_queries(self, repo_path):
        facade = RepositoryQueryFacade(repo_path)

        assert facade.is_available()
        assert len(facade.short_hash()) >= 7
        assert facade.branch() not in (UNKNOWN, "")
        assert facade.author_name() == "Test User"
        assert facade.author_email() == "test@example.com"
        assert facade.committer_name() == "CI Bot"
        assert facade.message() == "deploy success: v2"
        assert facade.commit_time() is not None
        assert facade.commit_count() == 4
        assert facade.latest_tag() == "v2.0.0"

    def test_history_and_grep(self, repo_path):
        facade = RepositoryQueryFacade(repo_path)

        history = facade.history()
        matches = facade.commits_matching("deploy success|deployment successful")

        assert [c.message for c in history] == [
            "deploy success: v2", "fix bug", "Deployment Successful - v1", "initial commit"
        ]
        assert matches == [history[0].hash, history[2].hash]
        assert facade.commits_matching("deploy success", limit=1) == [history[0].hash]

    def test_subdirectory_resolves_repository(self, repo_path):
        subdir = repo_path / "src"
        subdir.mkdir()
        assert RepositoryQueryFacade(subdir).commit_count() == 4

    def test_plain_directory(self, tmp_path):
        plain = tmp_path / "plain"
        plain.mkdir()
        facade = RepositoryQueryFacade(plain)

        assert facade.history() is None
        assert facade.latest_tag() == NO_TAG

    def test_repository_without_commits(self, tmp_path):
        Repo.init(tmp_path).close()
        facade = RepositoryQueryFacade(tmp_path)

        assert facade.is_available() is False
        assert facade.history() is None
        assert facade.commit_count() == 0
        assert facade.short_hash() == UNKNOWN

    @pytest.fixture
    def release_repo_path(self, tmp_path):
        repo = Repo.init(tmp_path)
        author = Actor("Test User", "test@example.com")
        for index, message in enumerate(["release v1", "release v2", "fix"]):
            path = tmp_path / f"file{index}.txt"
            path.write_text(message)
            repo.index.add([str(path)])
            repo.index.commit(message, author=author, committer=author)
        repo.close()
        return tmp_path

    def test_python_regex_listing_matches_deploy_count(self, release_repo_path):
        settings = Settings(git=GitSettings(repo_path=str(release_repo_path)))
        service = DeployInfoService(settings=settings, pattern=r"release v\d+")

        hashes = service.deploy_commit_hashes()

        assert service.deploy_count == 2
        assert hashes == service.facade.commits_matching(r"release v\d+")
        assert len(hashes) == 2
        assert service.facade.commits_matching(r"(?:release) v(?=\d)", limit=1) == hashes[:1]

    def test_wrapped_subject_matches_git(self, tmp_path):
        repo = Repo.init(tmp_path)
        path = tmp_path / "file.txt"
        path.write_text("x")
        repo.index.add([str(path)])
        repo.index.commit("deploy success:\nservice v2\n\nbody text", author=Actor("Test User", "t@example.com"))
        repo.close()
        facade = RepositoryQueryFacade(tmp_path)

        assert facade.message() == "deploy success: service v2"
        assert facade.head().subject == facade.message()
