"""CLI entry point for delta."""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from delta.config import Settings
from delta.errors import ConfigurationError, DeltaError, WebhookError
from delta.logger import console, get_logger, setup_logging
from delta.models import RepositorySummary

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="delta",
        description="Generate changelogs from a GitHub repository's commit history. "
        "Run without arguments to open the interactive TUI.",
    )
    sub = parser.add_subparsers(dest="command")

    gen = sub.add_parser("generate", help="Generate a changelog without the TUI")
    gen.add_argument("repo", help="Repository as owner/repo")
    gen.add_argument("--limit", type=int, default=None, help="Number of latest commits to use")
    gen.add_argument("--output", "-o", type=Path, default=None, help="Also write the Markdown here")
    gen.add_argument("--draft", action="store_true", help="Store unpublished")

    show = sub.add_parser("show", help="Print a published changelog")
    show.add_argument("slug")

    lst = sub.add_parser("list", help="List stored changelogs of a repository")
    lst.add_argument("repo", help="Repository as owner/repo")

    repos = sub.add_parser("repos", help="Connected repositories and their changelog counts")
    repos.add_argument(
        "--remote", action="store_true", help="Also list GitHub repositories not connected yet"
    )

    delete = sub.add_parser("delete", help="Delete a stored changelog")
    delete.add_argument("slug")

    disconnect = sub.add_parser("disconnect", help="Forget a connected repository")
    disconnect.add_argument("repo", help="Repository as owner/repo")

    hook = sub.add_parser("webhook", help="Process one GitHub webhook delivery")
    hook.add_argument("event", help="Value of the X-GitHub-Event header")
    hook.add_argument("payload", type=Path, help="File holding the raw request body")
    hook.add_argument("--signature", default=None, help="Value of the X-Hub-Signature-256 header")

    return parser


def _split_repo(value: str) -> tuple[str, str]:
    owner, _, name = value.strip().partition("/")
    if not owner or not name or "/" in name:
        raise argparse.ArgumentTypeError(f"expected owner/repo, got {value!r}")
    return owner, name


async def _generate(settings: Settings, repo: str, limit: Optional[int], publish: bool) -> str:
    from delta.generator import ChangelogGenerator
    from delta.store import init_store

    owner, name = _split_repo(repo)
    generator = ChangelogGenerator(store=init_store(settings.database_path), settings=settings)
    try:
        user = await generator.connect_user()
        repository = await generator.connect_repository(user.id, owner, name)
        changelog = await generator.generate(repository.id, user.id, limit=limit, publish=publish)
    finally:
        await generator.close()

    state = settings.public_url(changelog.public_slug) if changelog.is_published else "draft"
    logger.info("Created %s (%s)", changelog.public_slug, state)
    return changelog.content


def cmd_generate(settings: Settings, args: argparse.Namespace) -> int:
    content = asyncio.run(_generate(settings, args.repo, args.limit, not args.draft))
    if args.output:
        args.output.write_text(content, encoding="utf-8")
        console.print(f"Wrote {args.output}")
    else:
        print(content)
    return 0


def cmd_show(settings: Settings, args: argparse.Namespace) -> int:
    from delta.store import init_store

    changelog = init_store(settings.database_path).get_changelog_by_slug(
        args.slug, published_only=True
    )
    if changelog is None:
        console.print(f"[red]No published changelog at {args.slug}[/red]")
        return 1
    print(changelog.content)
    return 0


def cmd_list(settings: Settings, args: argparse.Namespace) -> int:
    from rich.table import Table

    from delta.store import init_store

    _split_repo(args.repo)
    store = init_store(settings.database_path)
    repository = store.get_repository_by_full_name(args.repo)
    if repository is None:
        console.print(f"[red]{args.repo} is not connected[/red]")
        return 1

    table = Table(title=repository.repo_full_name)
    table.add_column("Slug")
    table.add_column("Version")
    table.add_column("Commits", justify="right")
    table.add_column("Published")
    table.add_column("Created")
    for cl in store.list_changelogs(repository.id):
        table.add_row(
            cl.public_slug,
            cl.version or "",
            str(len(cl.commit_hashes)),
            "yes" if cl.is_published else "no",
            f"{cl.created_at:%Y-%m-%d %H:%M}",
        )
    console.print(table)
    return 0


async def _overview(settings: Settings, include_remote: bool) -> list[RepositorySummary]:
    from delta.generator import ChangelogGenerator
    from delta.store import init_store

    generator = ChangelogGenerator(store=init_store(settings.database_path), settings=settings)
    try:
        user = await generator.connect_user()
        return await generator.repository_overview(user.id, include_remote=include_remote)
    finally:
        await generator.close()


def cmd_repos(settings: Settings, args: argparse.Namespace) -> int:
    from rich.table import Table

    summaries = asyncio.run(_overview(settings, args.remote))
    table = Table(title="Repositories")
    table.add_column("Repository")
    table.add_column("Connected")
    table.add_column("Changelogs", justify="right")
    table.add_column("Last sync")
    for s in summaries:
        table.add_row(
            s.full_name,
            "yes" if s.connected else "no",
            str(s.changelog_count) if s.connected else "",
            f"{s.last_sync_at:%Y-%m-%d %H:%M}" if s.last_sync_at else "",
        )
    console.print(table)
    return 0


def cmd_delete(settings: Settings, args: argparse.Namespace) -> int:
    from delta.store import init_store

    store = init_store(settings.database_path)
    changelog = store.get_changelog_by_slug(args.slug)
    if changelog is None:
        console.print(f"[red]No changelog at {args.slug}[/red]")
        return 1
    store.delete_changelog(changelog.id)
    if store.count_changelogs(changelog.repo_id) == 0:
        store.set_has_changelogs(changelog.repo_id, False)
    console.print(f"Deleted {args.slug}")
    return 0


def cmd_disconnect(settings: Settings, args: argparse.Namespace) -> int:
    from delta.store import init_store

    _split_repo(args.repo)
    store = init_store(settings.database_path)
    repository = store.get_repository_by_full_name(args.repo)
    if repository is None or not store.delete_repository(repository.id):
        console.print(f"[red]{args.repo} is not connected[/red]")
        return 1
    console.print(f"Disconnected {repository.repo_full_name}")
    return 0


def cmd_webhook(settings: Settings, args: argparse.Namespace) -> int:
    """Exit code is the rejection's status class: 4 for a bad signature, 5 when unconfigured."""
    from delta.store import init_store
    from delta.webhooks import WebhookHandler

    body = args.payload.read_bytes()
    try:
        payload = json.loads(body)
    except ValueError:
        console.print(f"[red]{args.payload} is not JSON[/red]")
        return 2

    handler = WebhookHandler(init_store(settings.database_path), settings.webhook_secret)
    try:
        outcome = handler.handle(args.event, payload, body, args.signature)
    except WebhookError as e:
        console.print(f"[red]{e.message}[/red]")
        return e.status_code // 100
    print(outcome)
    return 0


COMMANDS = {
    "generate": cmd_generate,
    "show": cmd_show,
    "list": cmd_list,
    "repos": cmd_repos,
    "delete": cmd_delete,
    "disconnect": cmd_disconnect,
    "webhook": cmd_webhook,
}


def main(argv: Optional[list[str]] = None) -> None:
    """Launch the Delta TUI, or run one headless subcommand."""
    from dotenv import load_dotenv

    load_dotenv()  # Load .env file (e.g. GITHUB_TOKEN, OPENAI_API_KEY)

    args = build_parser().parse_args(argv)
    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        console.print(f"[red]{e.message}[/red]")
        sys.exit(1)

    if args.command is None:
        # The TUI owns the terminal; log to file only.
        setup_logging(settings.log_level, settings.log_file, console_output=False)

        from delta.app import DeltaApp
        from delta.store import init_store

        app = DeltaApp(settings=settings, store=init_store(settings.database_path))
        app.run()
        return

    setup_logging(settings.log_level, settings.log_file)
    try:
        code = COMMANDS[args.command](settings, args)
    except argparse.ArgumentTypeError as e:
        console.print(f"[red]{e}[/red]")
        code = 2
    except DeltaError as e:
        logger.error("%s failed: %s", args.command, e)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
