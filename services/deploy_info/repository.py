"""
Read-only git queries for deploy info.

Every query runs the git command line through GitPython with a kill timeout.
Failures never leave this module: a missing repository, a missing git binary,
a failing or hung command all map to sentinel values.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from git import (
    Repo,
    GitCommandError,
    GitCommandNotFound,
    InvalidGitRepositoryError,
    NoSuchPathError,
)

from shared.models import CommitRecord
from services.deploy_info.classifier import PatternLike, matching_commits

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"
NO_TAG = "no-tag"
NO_MESSAGE = "No commit message available"

_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_HISTORY_FORMAT = "%H%x1f%an%x1f%ae%x1f%cn%x1f%ct%x1f%B%x1e"


class RepositoryQueryFacade:
    """Sentinel-returning wrapper around the git commands deploy info needs."""

    def __init__(self, repo_path: Union[str, Path] = ".", timeout: float = 5.0):
        self.repo_path = str(repo_path)
        self.timeout = timeout

    def _git(self, command: str, *args: str) -> Optional[str]:
        """Run ``git <command> <args>`` and return stripped stdout, or None on any failure."""
        try:
            with Repo(self.repo_path, search_parent_directories=True) as repo:
                output = getattr(repo.git, command)(*args, kill_after_timeout=self.timeout)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            logger.debug(f"No git repository at {self.repo_path}: {e!r}")
            return None
        except GitCommandNotFound as e:
            logger.debug(f"git executable not available: {e}")
            return None
        except GitCommandError as e:
            logger.debug(f"git {command} failed (status {e.status}): {e.stderr.strip() if e.stderr else ''}")
            return None
        except OSError as e:
            logger.debug(f"git {command} could not run: {e}")
            return None
        return output.strip(" \t\r\n")

    @staticmethod
    def _valid_rev(rev: str) -> bool:
        if not rev or rev.startswith("-"):
            logger.warning(f"Refusing revision argument {rev!r}")
            return False
        return True

    def _log_field(self, fmt: str, rev: str) -> Optional[str]:
        if not self._valid_rev(rev):
            return None
        output = self._git("log", "-1", f"--format={fmt}", rev, "--")
        return output or None

    def is_available(self) -> bool:
        """True when HEAD resolves to a commit."""
        return self._git("rev_parse", "--verify", "HEAD") is not None

    def short_hash(self) -> str:
        return self._git("rev_parse", "--short", "HEAD") or UNKNOWN

    def branch(self) -> str:
        return self._git("rev_parse", "--abbrev-ref", "HEAD") or UNKNOWN

    def author_name(self, rev: str = "HEAD") -> str:
        return self._log_field("%an", rev) or UNKNOWN

    def author_email(self, rev: str = "HEAD") -> str:
        return self._log_field("%ae", rev) or UNKNOWN

    def committer_name(self, rev: str = "HEAD") -> str:
        return self._log_field("%cn", rev) or UNKNOWN

    def message(self, rev: str = "HEAD") -> str:
        """Subject line of a commit."""
        return self._log_field("%s", rev) or NO_MESSAGE

    def commit_time(self, rev: str = "HEAD") -> Optional[datetime]:
        """Commit timestamp as an aware UTC datetime."""
        raw = self._log_field("%ct", rev)
        if raw is None:
            return None
        try:
            return datetime.fromtimestamp(int(raw), tz=timezone.utc)
        except (ValueError, OverflowError) as e:
            logger.warning(f"Unparsable commit timestamp {raw!r}: {e}")
            return None

    def commit_count(self) -> int:
        """Number of commits reachable from HEAD."""
        raw = self._git("rev_list", "--count", "HEAD")
        if not raw:
            return 0
        try:
            return int(raw)
        except ValueError:
            logger.warning(f"Unparsable commit count {raw!r}")
            return 0

    def commits_matching(self, pattern: PatternLike, limit: Optional[int] = None) -> List[str]:
        """
        Hashes of commits reachable from HEAD whose message matches ``pattern``.

        Matching uses the deploy classifier's case-insensitive regular
        expression search over the full history, most recent first. An
        invalid pattern string raises ``re.error``.
        """
        if limit is not None and limit < 1:
            return []
        records = self.history()
        if records is None:
            return []
        return [commit.hash for commit in matching_commits(records, pattern, limit=limit)]

    def latest_tag(self) -> str:
        return self._git("describe", "--tags", "--abbrev=0") or NO_TAG

    def history(self, rev: str = "HEAD", max_count: Optional[int] = None) -> Optional[List[CommitRecord]]:
        """
        Commit records reachable from ``rev``, most recent first.

        Returns None when history cannot be read at all.
        """
        if not self._valid_rev(rev):
            return None
        args = [f"--format={_HISTORY_FORMAT}"]
        if max_count is not None:
            args.append(f"--max-count={max_count}")
        args.extend([rev, "--"])
        output = self._git("log", *args)
        if output is None:
            return None
        return parse_history(output)

    def head(self) -> Optional[CommitRecord]:
        records = self.history(max_count=1)
        return records[0] if records else None


def parse_history(output: str) -> List[CommitRecord]:
    """Parse ``git log`` output produced with the history format."""
    records = []
    for chunk in output.split(_RECORD_SEP):
        chunk = chunk.strip("\n")
        if not chunk.strip():
            continue
        parts = chunk.split(_FIELD_SEP, 5)
        if len(parts) != 6:
            logger.warning(f"Skipping malformed log record: {chunk[:80]!r}")
            continue
        commit_hash, author_name, author_email, committer_name, committed, body = parts
        try:
            timestamp = datetime.fromtimestamp(int(committed), tz=timezone.utc)
        except (ValueError, OverflowError):
            logger.warning(f"Skipping log record with bad timestamp: {committed!r}")
            continue
        records.append(
            CommitRecord(
                hash=commit_hash.strip(),
                author_name=author_name,
                author_email=author_email,
                committer_name=committer_name,
                message=body.strip(),
                timestamp=timestamp,
            )
        )
    return records
