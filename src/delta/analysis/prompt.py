"""Prompt construction for AI-written changelogs."""

from collections import Counter
from datetime import datetime
from typing import Optional

from delta.analysis.commits import activity_level
from delta.models import CommitAnalysis, MonthGroup

SYSTEM_PROMPT = (
    "You are an expert technical writer and software development analyst. "
    "You excel at interpreting commit data, understanding development patterns, "
    "and creating compelling changelogs that tell the story of a project's "
    "evolution. You have the creative freedom to infer meaning from vague commits "
    "and present information in the most user-friendly way possible."
)

PATTERN_LABELS: list[tuple[str, str]] = [
    ("features", "Features/New Functionality"),
    ("fixes", "Bug Fixes/Patches"),
    ("improvements", "Improvements/Enhancements"),
    ("refactoring", "Code Refactoring"),
    ("dependencies", "Dependencies/Packages"),
    ("testing", "Testing"),
    ("documentation", "Documentation"),
    ("configuration", "Configuration"),
]


def short_date(value: datetime) -> str:
    """``1/15/2025``"""
    return f"{value.month}/{value.day}/{value.year}"


def _contributors_line(analysis: CommitAnalysis) -> str:
    authors = sorted(analysis.authors)
    shown = ", ".join(authors[:3])
    more = "..." if len(authors) > 3 else ""
    return f"{len(authors)} ({shown}{more})"


def _month_listing(groups: list[MonthGroup]) -> str:
    blocks: list[str] = []
    for group in groups:
        lines = [
            f'  {i}. "{c.summary}" ({c.author_name}, {short_date(c.committed_at)})'
            for i, c in enumerate(group.commits, start=1)
        ]
        blocks.append(
            f"**{group.month_label}** ({len(group.commits)} commits):\n" + "\n".join(lines)
        )
    return "\n\n".join(blocks)


def _sparse_instructions(repo_name: str, version: str) -> str:
    return f"""This is an EARLY-STAGE repository with limited commits. Create a concise, focused changelog that:

1. **Keep it Simple**: Don't create empty sections or forced categories
2. **Focus on Reality**: If there are only initial commits, call it what it is - project foundation/setup
3. **Be Honest**: Don't over-embellish limited activity
4. **Consolidate**: Group all related commits into meaningful, substantial sections
5. **NO EMPTY SECTIONS**: Only create sections that have actual content

For sparse repos, prefer a simpler structure:
- Start with: # {repo_name} - {version}
- Brief introduction about the project's current state
- ## 📅 [Month Year] with a single comprehensive section about what was accomplished
- Focus on the foundation/setup rather than trying to create multiple categories"""


def _active_instructions(repo_name: str, version: str) -> str:
    return f"""You have complete creative freedom to interpret this data and create a compelling changelog. You should:

1. **Infer Meaning**: Even if commit messages are vague, use context clues, patterns, and timing to infer what might have happened
2. **Group Intelligently**: Combine related commits into logical features or improvements
3. **Tell a Story**: Create a narrative about the project's development
4. **Be User-Focused**: Translate technical commits into user-facing benefits
5. **Handle Poor Commits**: When commit messages are unhelpful, group them by timing/author and create reasonable descriptions
6. **Monthly Structure**: Organize by month with engaging subsections

Structure Requirements:
- Start with: # {repo_name} - {version}
- Use monthly groupings: ## 📅 [Month Year]
- Include engaging subsections with emojis (only when you have content for them)
- Make it visually appealing and easy to read
- Focus on impact and benefits, not just technical details"""


def build_changelog_prompt(
    *,
    repo_name: str,
    repo_full_name: str,
    version: str,
    analysis: CommitAnalysis,
    groups: list[MonthGroup],
    sparse: bool,
    repo_url: Optional[str] = None,
    is_private: bool = False,
) -> str:
    """Build the user prompt for the text-generation call."""
    context = [
        f"- Name: {repo_name}",
        f"- Full Name: {repo_full_name}",
        f"- Type: {'Private' if is_private else 'Public'} repository",
    ]
    if repo_url:
        context.append(f"- URL: {repo_url}")

    summary = [
        f"- Total Commits: {analysis.commit_frequency}",
        f"- Active Contributors: {_contributors_line(analysis)}",
        f"- Time Period: {short_date(analysis.time_spread.earliest)} to "
        f"{short_date(analysis.time_spread.latest)}",
        f"- Development Activity: {activity_level(analysis.commit_frequency)}",
        f"- Repository Type: {'Early Stage/Limited Activity' if sparse else 'Active Development'}",
    ]

    pattern_lines = [
        f"- {label}: {len(analysis.patterns.get(key, []))} commits"
        for key, label in PATTERN_LABELS
        if analysis.patterns.get(key)
    ]

    files = [name for name, _ in Counter(analysis.file_patterns).most_common(10)]

    sections = [
        "You are an expert technical writer and software development analyst creating "
        "a changelog for a repository. Your task is to analyze commits and create a "
        "meaningful, user-focused changelog that tells the story of the project's evolution.",
        "Repository Context:\n" + "\n".join(context),
        "Commit Analysis Summary:\n" + "\n".join(summary),
    ]
    if pattern_lines:
        sections.append("Pattern Analysis:\n" + "\n".join(pattern_lines))
    if files:
        sections.append("Files Mentioned in Commits: " + ", ".join(files))
    sections.append("Raw Commit Data by Month:\n" + _month_listing(groups))
    sections.append(
        "INSTRUCTIONS:\n"
        + (_sparse_instructions(repo_name, version) if sparse else _active_instructions(repo_name, version))
    )
    sections.append(
        "CRITICAL: Never create empty sections or section headers without content. "
        "Only include sections that have actual commits or meaningful content to display."
    )
    sections.append(
        "Be creative, insightful, and don't just repeat commit messages verbatim. "
        "Generate meaningful content that tells the real story of this project's development!"
    )
    return "\n\n".join(sections) + "\n"
