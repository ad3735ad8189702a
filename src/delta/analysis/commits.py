"""Commit analysis — keyword classification and month grouping."""

import re
from typing import Optional

from delta.models import Commit, CommitAnalysis, MonthGroup, TimeSpread

# Keyword sets in precedence order; the first set with a hit wins.
CATEGORY_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("features", ("feat", "add", "new", "implement", "create", "introduce")),
    ("fixes", ("fix", "bug", "patch", "resolve", "correct")),
    ("improvements", ("improve", "enhance", "optimize", "update", "upgrade", "better")),
    ("documentation", ("doc", "readme", "comment", "guide")),
    ("testing", ("test", "spec", "coverage")),
    ("dependencies", ("dep", "package", "npm", "yarn", "install")),
    ("configuration", ("config", "setup", "env", "settings")),
    ("refactoring", ("refactor", "clean", "reorganize", "restructure")),
]

CATEGORIES: list[str] = [name for name, _ in CATEGORY_KEYWORDS] + ["other"]

NOISE_KEYWORDS = ("merge", "bump", "version")

CONVENTIONAL_TYPES: dict[str, str] = {
    "feat": "features",
    "feature": "features",
    "fix": "fixes",
    "bugfix": "fixes",
    "hotfix": "fixes",
    "perf": "improvements",
    "docs": "documentation",
    "doc": "documentation",
    "test": "testing",
    "tests": "testing",
    "build": "dependencies",
    "deps": "dependencies",
    "ci": "configuration",
    "config": "configuration",
    "refactor": "refactoring",
    "style": "refactoring",
}

_CONVENTIONAL_RE = re.compile(r"^(?P<type>[a-z]+)(\([^)]*\))?!?:\s*\S")
_FILE_RE = re.compile(r"\b\w+\.\w+\b")


def _conventional_category(message: str) -> Optional[str]:
    """Category from a Conventional Commits prefix, if it has a known type."""
    m = _CONVENTIONAL_RE.match(message.strip().lower())
    if not m:
        return None
    return CONVENTIONAL_TYPES.get(m.group("type"))


def classify_commit(message: str) -> Optional[str]:
    """Return the category for ``message``, or None if it is noise.

    An explicit ``type:`` prefix decides first; otherwise keyword sets are
    tried in :data:`CATEGORY_KEYWORDS` order. Messages that land in "other"
    but mention merge/bump/version, or are five characters or shorter, are
    dropped.
    """
    prefixed = _conventional_category(message)
    if prefixed:
        return prefixed

    lower = message.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(k in lower for k in keywords):
            return category

    if any(k in lower for k in NOISE_KEYWORDS) or len(message.strip()) <= 5:
        return None
    return "other"


def analyze_commits(commits: list[Commit]) -> CommitAnalysis:
    """Project ``commits`` onto categories, authors and time spread.

    Raises:
        ValueError: ``commits`` is empty (there is no time spread).
    """
    if not commits:
        raise ValueError("analyze_commits needs at least one commit")

    patterns: dict[str, list[str]] = {name: [] for name in CATEGORIES}
    authors: set[str] = set()
    file_patterns: list[str] = []

    for c in commits:
        authors.add(c.author_name)
        category = classify_commit(c.message)
        if category is not None:
            patterns[category].append(c.message)
        file_patterns.extend(_FILE_RE.findall(c.message))

    dates = [c.committed_at for c in commits]
    return CommitAnalysis(
        patterns=patterns,
        authors=authors,
        time_spread=TimeSpread(earliest=min(dates), latest=max(dates)),
        commit_frequency=len(commits),
        file_patterns=file_patterns,
    )


def categorize_commits(commits: list[Commit]) -> dict[str, list[Commit]]:
    """Same classification as :func:`analyze_commits`, keeping Commit objects."""
    grouped: dict[str, list[Commit]] = {name: [] for name in CATEGORIES}
    for c in commits:
        category = classify_commit(c.message)
        if category is not None:
            grouped[category].append(c)
    return grouped


def group_commits_by_month(commits: list[Commit]) -> list[MonthGroup]:
    """Bucket commits by calendar month, most recent month first.

    Commits keep their input order inside a bucket.
    """
    buckets: dict[str, list[Commit]] = {}
    for c in commits:
        key = f"{c.committed_at.year:04d}-{c.committed_at.month:02d}"
        buckets.setdefault(key, []).append(c)

    groups: list[MonthGroup] = []
    for key in sorted(buckets, reverse=True):
        month_commits = buckets[key]
        first = month_commits[0].committed_at
        groups.append(
            MonthGroup(
                month_key=key,
                month_label=f"{first:%B} {first.year}",
                commits=month_commits,
            )
        )
    return groups


def is_sparse_repo(commits: list[Commit], analysis: CommitAnalysis) -> bool:
    """Early-stage / low-activity repository.

    Both conditions read the same number today (``commit_frequency`` is the
    commit count); the pair is kept as-is.
    """
    return len(commits) <= 5 or analysis.commit_frequency < 5


def activity_level(commit_frequency: int) -> str:
    if commit_frequency < 10:
        return "Light"
    if commit_frequency < 30:
        return "Moderate"
    return "Heavy"
