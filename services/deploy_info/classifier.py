"""
Deploy classification.

A commit counts as a deployment when its message matches the success pattern
(case-insensitive regular expression search). Histories are ordered most
recent first.
"""

import re
from typing import List, Optional, Sequence, Union

from config.settings import DEFAULT_SUCCESS_PATTERN
from shared.models import CommitRecord, DeploymentSummary, DeployStatus

PatternLike = Union[str, re.Pattern[str], None]


def compile_pattern(pattern: PatternLike = None) -> re.Pattern[str]:
    """Compile a pattern with IGNORECASE; None, empty or blank gives the default."""
    if isinstance(pattern, re.Pattern):
        if pattern.flags & re.IGNORECASE:
            return pattern
        return re.compile(pattern.pattern, pattern.flags | re.IGNORECASE)
    if pattern is None or not pattern.strip():
        pattern = DEFAULT_SUCCESS_PATTERN
    return re.compile(pattern, re.IGNORECASE)


def is_qualifying(commit: CommitRecord, pattern: PatternLike = None) -> bool:
    return compile_pattern(pattern).search(commit.message) is not None


def matching_commits(
    history: Sequence[CommitRecord], pattern: PatternLike = None, limit: Optional[int] = None
) -> List[CommitRecord]:
    """Qualifying commits in history order, at most ``limit`` of them."""
    compiled = compile_pattern(pattern)
    matches = []
    for commit in history:
        if limit is not None and len(matches) >= limit:
            break
        if compiled.search(commit.message) is not None:
            matches.append(commit)
    return matches


def classify(history: Sequence[CommitRecord], pattern: PatternLike = None) -> DeploymentSummary:
    """
    Count qualifying commits and find the most recent one.

    Args:
        history: Commit records, most recent first
        pattern: Raw regular expression, compiled pattern or None for the default

    Returns:
        DeploymentSummary: ``count`` of matches and the first match in history order
    """
    compiled = compile_pattern(pattern)
    count = 0
    last_qualifying = None
    for commit in history:
        if compiled.search(commit.message) is None:
            continue
        count += 1
        if last_qualifying is None:
            last_qualifying = commit
    return DeploymentSummary(count=count, last_qualifying=last_qualifying)


def determine_status(
    history: Optional[Sequence[CommitRecord]], pattern: PatternLike = None
) -> DeployStatus:
    """
    Deploy status from the most recent commit.

    ``None`` history means it could not be read. An unreadable or empty
    history is UNKNOWN; otherwise HEAD matching the pattern is SUCCESS and
    anything else is FAILED.
    """
    if not history:
        return DeployStatus.UNKNOWN
    if is_qualifying(history[0], pattern):
        return DeployStatus.SUCCESS
    return DeployStatus.FAILED
