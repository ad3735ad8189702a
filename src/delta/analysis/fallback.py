"""Deterministic Markdown changelog, used when AI generation is unavailable.

Everything here is total for a non-empty commit list: it is the error
handler for the AI path and must not raise.
"""

from datetime import datetime

from delta.analysis.commits import (
    activity_level,
    analyze_commits,
    categorize_commits,
    group_commits_by_month,
)
from delta.models import Commit, CommitAnalysis, MonthGroup

# Rendering order of per-category subsections.
CATEGORY_HEADINGS: list[tuple[str, str]] = [
    ("features", "🚀 New Features & Functionality"),
    ("improvements", "✨ Improvements & Enhancements"),
    ("fixes", "🐛 Bug Fixes & Patches"),
    ("refactoring", "🔧 Code Quality & Refactoring"),
    ("dependencies", "📦 Dependencies & Packages"),
    ("testing", "🧪 Testing & Quality Assurance"),
    ("documentation", "📚 Documentation & Guides"),
    ("configuration", "⚙️ Configuration & Setup"),
    ("other", "📝 Other Changes"),
]

FOUNDATION_KEYWORDS = ("initial", "first", "setup", "init")

AI_NOTE = (
    "*This changelog was intelligently generated using AI analysis of commit "
    "patterns and development activity.*"
)
FALLBACK_NOTE = (
    "*This changelog was generated with enhanced pattern analysis (service unavailable).*"
)


def _plural(n: int, word: str) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {word}s"


def long_date(value: datetime) -> str:
    """``January 15, 2025``"""
    return f"{value:%B} {value.day}, {value.year}"


def long_datetime(value: datetime) -> str:
    """``January 15, 2025 at 09:30 AM``"""
    return f"{long_date(value)} at {value:%I:%M %p}"


def bullet(commit: Commit) -> str:
    return f"- {commit.summary} *({commit.committed_at:%b} {commit.committed_at.day})*"


def insights_footer(
    analysis: CommitAnalysis,
    month_count: int,
    generated_at: datetime,
    *,
    fallback: bool,
) -> str:
    """Closing "Generation Insights" block shared by both generation paths."""
    lines = [
        "**📊 Generation Insights**",
        f"- **Total Commits Analyzed:** {analysis.commit_frequency}",
        f"- **Active Contributors:** {len(analysis.authors)}",
        f"- **Development Period:** {_plural(month_count, 'month')}",
        f"- **Activity Level:** {activity_level(analysis.commit_frequency)}",
        f"- **Generated:** {long_datetime(generated_at)}",
        "",
        FALLBACK_NOTE if fallback else AI_NOTE,
    ]
    return "\n".join(lines)


def is_sparse_month(group: MonthGroup, analysis: CommitAnalysis) -> bool:
    """Small month that reads better as a single section.

    At most five commits, at most three categorized items, all of them in
    one category. The single-category condition keeps a handful of commits
    of different kinds (a feature, a fix, a docs change) as separate
    subsections instead of folding them into one foundation note.
    """
    return (
        len(group.commits) <= 5
        and analysis.total_changes <= 3
        and len(analysis.non_empty_categories) <= 1
    )


def _render_sparse_month(group: MonthGroup) -> list[str]:
    n = len(group.commits)
    lines = [f"*{_plural(n, 'commit')} establishing the project foundation*", ""]

    looks_initial = any(
        k in c.message.lower() for c in group.commits for k in FOUNDATION_KEYWORDS
    )
    if looks_initial:
        lines += [
            "### 🎯 Project Foundation",
            "- Project initialization and repository setup",
            "- Initial codebase structure established",
        ]
        if n > 1:
            authors = {c.author_name for c in group.commits}
            lines.append(
                f"- {n} foundational commits by {_plural(len(authors), 'contributor')}"
            )
    else:
        lines.append("### 📝 Development Activity")
        lines += [bullet(c) for c in group.commits]
    lines.append("")
    return lines


def _render_active_month(group: MonthGroup, analysis: CommitAnalysis) -> list[str]:
    categorized = categorize_commits(group.commits)
    lines = [
        f"*{len(group.commits)} commits bringing {analysis.total_changes} "
        "notable changes this month*",
        "",
    ]
    for category, heading in CATEGORY_HEADINGS:
        items = categorized.get(category, [])
        if not items:
            continue
        lines.append(f"### {heading}")
        lines += [bullet(c) for c in items]
        lines.append("")
    return lines


def _render_quiet_month(group: MonthGroup) -> list[str]:
    """Month where every commit was filtered as noise; no subsections."""
    authors = {c.author_name for c in group.commits}
    return [
        f"*{_plural(len(group.commits), 'commit')} of maintenance and housekeeping "
        f"by {_plural(len(authors), 'contributor')}*",
        "",
    ]


def render_month(group: MonthGroup) -> list[str]:
    analysis = analyze_commits(group.commits)
    lines = [f"## 📅 {group.month_label}", ""]
    if analysis.total_changes == 0:
        lines += _render_quiet_month(group)
    elif is_sparse_month(group, analysis):
        lines += _render_sparse_month(group)
    else:
        lines += _render_active_month(group, analysis)
    lines += ["---", ""]
    return lines


def render_fallback_changelog(
    commits: list[Commit],
    title: str,
    analysis: CommitAnalysis,
    now: datetime,
) -> str:
    """Render a Markdown changelog straight from the commit analysis."""
    groups = group_commits_by_month(commits)
    lines = [
        f"# {title}",
        "",
        f"**Release Date:** {long_date(now)}",
        "",
        f"*This release includes {_plural(len(commits), 'commit')} from "
        f"{_plural(len(analysis.authors), 'contributor')} over "
        f"{_plural(len(groups), 'month')}.*",
        "",
    ]
    for group in groups:
        lines += render_month(group)
    lines.append(insights_footer(analysis, len(groups), now, fallback=True))
    return "\n".join(lines)
