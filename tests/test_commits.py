"""Tests for commit classification, analysis and month grouping."""

from datetime import datetime, timezone

import pytest

from conftest import make_commit
from delta.analysis.commits import (
    CATEGORIES,
    activity_level,
    analyze_commits,
    categorize_commits,
    classify_commit,
    group_commits_by_month,
    is_sparse_repo,
)


class TestClassifyCommit:
    @pytest.mark.parametrize(
        "message,expected",
        [
            ("Add dark mode toggle", "features"),
            ("Fix crash on startup", "fixes"),
            ("Improve cache hit rate", "improvements"),
            ("Write contributor guide", "documentation"),
            ("Raise coverage of parser", "testing"),
            ("Install eslint package", "dependencies"),
            ("Configure CI environment", "configuration"),
            ("Refactor auth module", "refactoring"),
            ("Tweak colours of the landing hero", "other"),
        ],
    )
    def test_keyword_categories(self, message, expected):
        assert classify_commit(message) == expected

    def test_precedence_features_before_fixes(self):
        assert classify_commit("Add fix for login bug") == "features"

    def test_precedence_improvements_before_documentation(self):
        assert classify_commit("Update README") == "improvements"

    def test_matching_is_case_insensitive(self):
        assert classify_commit("FIX THE THING") == "fixes"

    @pytest.mark.parametrize(
        "message,expected",
        [
            ("feat: add login", "features"),
            ("fix: crash on null", "fixes"),
            ("docs: update readme", "documentation"),
            ("test(parser): cover edge cases", "testing"),
            ("refactor!: drop legacy api", "refactoring"),
            ("ci: run on tags", "configuration"),
            ("build(deps): bump httpx", "dependencies"),
            ("perf: faster diff", "improvements"),
        ],
    )
    def test_conventional_prefix_decides_first(self, message, expected):
        assert classify_commit(message) == expected

    def test_unknown_prefix_falls_back_to_keywords(self):
        assert classify_commit("chore: fix typo") == "fixes"

    @pytest.mark.parametrize("message", ["Merge branch 'main'", "Bump to 2.0", "Release version 3"])
    def test_noise_is_excluded(self, message):
        assert classify_commit(message) is None

    def test_short_messages_are_excluded(self):
        assert classify_commit("wip") is None
        assert classify_commit("  .  ") is None

    def test_keyword_beats_noise(self):
        # Noise filtering only applies to otherwise-uncategorized messages.
        assert classify_commit("Merge fix for login") == "fixes"


class TestAnalyzeCommits:
    def test_empty_raises(self):
        with pytest.raises(ValueError):
            analyze_commits([])

    def test_every_commit_in_at_most_one_category(self, busy_history):
        analysis = analyze_commits(busy_history)
        filed = [m for messages in analysis.patterns.values() for m in messages]
        assert len(filed) == len(set(filed))
        for c in busy_history:
            hits = [name for name, msgs in analysis.patterns.items() if c.message in msgs]
            assert len(hits) <= 1

    def test_excluded_commits_are_not_filed(self, busy_history):
        analysis = analyze_commits(busy_history)
        filed = {m for messages in analysis.patterns.values() for m in messages}
        assert "Merge pull request #12" not in filed
        assert "Bump version" not in filed
        assert "wip" not in filed
        assert analysis.total_changes == len(busy_history) - 3

    def test_patterns_have_every_category(self, busy_history):
        analysis = analyze_commits(busy_history)
        assert list(analysis.patterns) == CATEGORIES

    def test_authors_time_spread_and_frequency(self, busy_history):
        analysis = analyze_commits(busy_history)
        assert analysis.authors == {"Alice", "Bob"}
        assert analysis.commit_frequency == 12
        assert analysis.time_spread.earliest == datetime(2025, 1, 17, 12, tzinfo=timezone.utc)
        assert analysis.time_spread.latest == datetime(2025, 3, 28, 12, tzinfo=timezone.utc)

    def test_file_patterns(self, busy_history):
        analysis = analyze_commits(busy_history)
        assert "api.py" in analysis.file_patterns
        assert "README.md" in analysis.file_patterns

    def test_categorize_keeps_commit_objects(self, three_kinds):
        grouped = categorize_commits(three_kinds)
        assert [c.sha for c in grouped["features"]] == ["c" * 40]
        assert [c.sha for c in grouped["fixes"]] == ["b" * 40]
        assert [c.sha for c in grouped["documentation"]] == ["a" * 40]
        assert grouped["other"] == []


class TestGroupByMonth:
    def test_every_commit_exactly_once(self, busy_history):
        groups = group_commits_by_month(busy_history)
        shas = [c.sha for g in groups for c in g.commits]
        assert sorted(shas) == sorted(c.sha for c in busy_history)

    def test_buckets_strictly_descending(self, busy_history):
        shuffled = busy_history[::2] + busy_history[1::2]
        groups = group_commits_by_month(shuffled)
        keys = [g.month_key for g in groups]
        assert keys == ["2025-03", "2025-02", "2025-01"]

    def test_descending_across_years(self):
        commits = [
            make_commit("Add a", datetime(2024, 12, 5, tzinfo=timezone.utc), sha="1" * 40),
            make_commit("Add b", datetime(2025, 1, 5, tzinfo=timezone.utc), sha="2" * 40),
            make_commit("Add c", datetime(2023, 12, 5, tzinfo=timezone.utc), sha="3" * 40),
        ]
        assert [g.month_key for g in group_commits_by_month(commits)] == [
            "2025-01",
            "2024-12",
            "2023-12",
        ]

    def test_labels(self, three_kinds):
        groups = group_commits_by_month(three_kinds)
        assert len(groups) == 1
        assert groups[0].month_label == "January 2025"

    def test_input_order_kept_within_bucket(self, three_kinds):
        groups = group_commits_by_month(list(reversed(three_kinds)))
        assert [c.sha for c in groups[0].commits] == ["a" * 40, "b" * 40, "c" * 40]

    def test_empty(self):
        assert group_commits_by_month([]) == []


class TestSparsity:
    def test_small_repo_is_sparse(self, three_kinds):
        assert is_sparse_repo(three_kinds, analyze_commits(three_kinds))

    def test_busy_repo_is_not_sparse(self, busy_history):
        assert not is_sparse_repo(busy_history, analyze_commits(busy_history))

    @pytest.mark.parametrize("freq,level", [(0, "Light"), (9, "Light"), (10, "Moderate"), (29, "Moderate"), (30, "Heavy")])
    def test_activity_level(self, freq, level):
        assert activity_level(freq) == level
