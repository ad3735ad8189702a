"""Tests for the SQLite store."""

import re
from datetime import datetime, timezone

import pytest

from conftest import make_commit
from delta.errors import StoreError
from delta.models import ChangelogCreate, GitHubRepositoryPayload, GitHubUserPayload
from delta.store import ChangelogStore, init_store, slugify, unique_slug


def changelog_data(repo_id, title="My Repo - v2024.01.15", **overrides):
    data = dict(
        repo_id=repo_id,
        title=title,
        version="v2024.01.15",
        content="# My Repo",
        commit_hashes=["b" * 40, "a" * 40],
        from_commit="a" * 40,
        to_commit="b" * 40,
        is_published=True,
    )
    data.update(overrides)
    return ChangelogCreate(**data)


@pytest.fixture
def repository(store, user_payload, repo_payload):
    user = store.upsert_user(user_payload)
    return store.find_or_create_repository(user.id, repo_payload)


class TestSlugs:
    def test_slugify(self):
        assert slugify("My Repo - v2024.01.15") == "my-repo-v2024-01-15"

    def test_slugify_is_url_safe(self):
        slug = slugify("  Ünïcode / Repo -- v1.0!! ")
        assert re.fullmatch(r"[a-z0-9]+(-[a-z0-9]+)*", slug)

    def test_slugify_empty(self):
        assert slugify("!!!") == "changelog"
        assert slugify("") == "changelog"

    def test_unique_slug(self):
        taken = {"base", "base-1"}
        assert unique_slug("base", taken.__contains__) == "base-2"
        assert unique_slug("other", taken.__contains__) == "other"

    def test_colliding_titles_get_numeric_suffix(self, store, repository):
        first = store.create_changelog(changelog_data(repository.id))
        second = store.create_changelog(changelog_data(repository.id))
        third = store.create_changelog(changelog_data(repository.id, title="my repo v2024 01 15"))

        assert first.public_slug == "my-repo-v2024-01-15"
        assert second.public_slug == "my-repo-v2024-01-15-1"
        assert third.public_slug == "my-repo-v2024-01-15-2"

    def test_concurrent_slug_taken_retries(self, store, repository, monkeypatch):
        store.create_changelog(changelog_data(repository.id))
        calls = {"n": 0}
        real = store.slug_exists

        def stale_exists(slug):
            # First lookup misses the row that already exists.
            calls["n"] += 1
            return False if calls["n"] == 1 else real(slug)

        monkeypatch.setattr(store, "slug_exists", stale_exists)
        created = store.create_changelog(changelog_data(repository.id))
        assert created.public_slug == "my-repo-v2024-01-15-1"

    def test_gives_up_after_repeated_collisions(self, store, repository, monkeypatch):
        store.create_changelog(changelog_data(repository.id))
        monkeypatch.setattr(store, "slug_exists", lambda slug: False)
        with pytest.raises(StoreError):
            store.create_changelog(changelog_data(repository.id))


class TestUsers:
    def test_upsert_creates_then_updates(self, store, user_payload):
        created = store.upsert_user(user_payload)
        updated = store.upsert_user(
            GitHubUserPayload(id=user_payload.id, login="octocat2", email=None)
        )
        assert created.id == updated.id
        assert updated.username == "octocat2"
        assert updated.github_id == "42"

    def test_get_missing(self, store):
        assert store.get_user_by_github_id("nope") is None


class TestRepositories:
    def test_find_or_create_is_idempotent(self, store, user_payload, repo_payload):
        user = store.upsert_user(user_payload)
        first = store.find_or_create_repository(user.id, repo_payload)
        renamed = repo_payload.model_copy(update={"full_name": "octocat/Renamed", "name": "Renamed"})
        second = store.find_or_create_repository(user.id, renamed)

        assert first.id == second.id
        assert second.repo_full_name == "octocat/Renamed"
        assert len(store.list_user_repositories(user.id)) == 1

    def test_lookup_by_full_name_ignores_case(self, store, repository):
        found = store.get_repository_by_full_name("OCTOCAT/hello-world")
        assert found is not None
        assert found.id == repository.id

    def test_owner_and_name(self, repository):
        assert repository.owner_and_name == ("octocat", "Hello-World")

    def test_list_user_repositories(self, store, user_payload, repo_payload):
        user = store.upsert_user(user_payload)
        store.find_or_create_repository(user.id, repo_payload)
        other = GitHubRepositoryPayload(
            id=7, name="Spoon-Knife", full_name="octocat/Spoon-Knife",
            html_url="https://github.com/octocat/Spoon-Knife",
        )
        store.find_or_create_repository(user.id, other)
        names = [r.repo_name for r in store.list_user_repositories(user.id)]
        assert sorted(names) == ["Hello-World", "Spoon-Knife"]
        assert store.list_user_repositories("someone-else") == []

    def test_sync_and_flags(self, store, repository):
        assert repository.last_sync_at is None
        assert not repository.has_changelogs
        assert store.update_repository_sync(repository.id)
        assert store.set_has_changelogs(repository.id)
        refreshed = store.get_repository(repository.id)
        assert refreshed.last_sync_at is not None
        assert refreshed.has_changelogs

    def test_missing_repository_updates_report_false(self, store):
        assert not store.update_repository_sync("missing")
        assert not store.set_has_changelogs("missing")
        assert not store.delete_repository("missing")

    def test_delete(self, store, repository):
        assert store.delete_repository(repository.id)
        assert store.get_repository(repository.id) is None


class TestCommits:
    def test_store_commits_dedupes(self, store, repository, three_kinds):
        assert store.store_commits(repository.id, three_kinds) == 3
        assert store.store_commits(repository.id, three_kinds) == 0
        extra = make_commit("Add search", datetime(2025, 2, 1, tzinfo=timezone.utc), sha="d" * 40)
        assert store.store_commits(repository.id, three_kinds + [extra]) == 1

    def test_list_commits_newest_first(self, store, repository, three_kinds):
        store.store_commits(repository.id, list(reversed(three_kinds)))
        listed = store.list_commits(repository.id)
        assert [c.sha for c in listed] == ["c" * 40, "b" * 40, "a" * 40]
        assert listed[0].committed_at == datetime(2025, 1, 20, tzinfo=timezone.utc)


class TestChangelogs:
    def test_create_and_get(self, store, repository):
        created = store.create_changelog(changelog_data(repository.id))
        assert store.get_changelog(created.id) == created
        assert created.commit_hashes == ["b" * 40, "a" * 40]
        assert created.from_commit == "a" * 40
        assert created.is_published
        assert store.count_changelogs(repository.id) == 1

    def test_get_by_slug_published_only(self, store, repository):
        draft = store.create_changelog(changelog_data(repository.id, is_published=False))
        assert store.get_changelog_by_slug(draft.public_slug) is not None
        assert store.get_changelog_by_slug(draft.public_slug, published_only=True) is None
        assert store.get_changelog_by_slug("missing") is None

    def test_publish_toggle(self, store, repository):
        draft = store.create_changelog(changelog_data(repository.id, is_published=False))
        assert store.publish(draft.id)
        assert store.get_changelog(draft.id).is_published
        assert store.unpublish(draft.id)
        assert not store.get_changelog(draft.id).is_published
        assert not store.publish("missing")

    def test_update_bumps_updated_at(self, store, repository):
        created = store.create_changelog(changelog_data(repository.id))
        updated = store.update_changelog(created.id, title="Renamed", content="new body")
        assert updated.title == "Renamed"
        assert updated.content == "new body"
        assert updated.version == created.version
        assert updated.public_slug == created.public_slug
        assert updated.updated_at >= created.updated_at

    def test_update_missing(self, store):
        assert store.update_changelog("missing", title="x") is None

    def test_list_newest_first(self, store, repository):
        first = store.create_changelog(changelog_data(repository.id))
        second = store.create_changelog(changelog_data(repository.id))
        assert [c.id for c in store.list_changelogs(repository.id)] == [second.id, first.id]

    def test_delete(self, store, repository):
        created = store.create_changelog(changelog_data(repository.id))
        assert store.delete_changelog(created.id)
        assert store.get_changelog(created.id) is None
        assert not store.delete_changelog(created.id)


class TestLookupAfterWrite:
    def test_user_missing_after_upsert(self, store, user_payload, monkeypatch):
        monkeypatch.setattr(store, "get_user_by_github_id", lambda github_id: None)
        with pytest.raises(StoreError, match="User 42"):
            store.upsert_user(user_payload)

    def test_repository_missing_after_upsert(self, store, user_payload, repo_payload, monkeypatch):
        user = store.upsert_user(user_payload)
        monkeypatch.setattr(store, "get_repository", lambda repo_id: None)
        with pytest.raises(StoreError, match="octocat/Hello-World"):
            store.find_or_create_repository(user.id, repo_payload)

    def test_changelog_missing_after_insert(self, store, repository, monkeypatch):
        monkeypatch.setattr(store, "get_changelog", lambda changelog_id: None)
        with pytest.raises(StoreError, match="vanished after insert"):
            store.create_changelog(changelog_data(repository.id))


class TestInitStore:
    def test_cached_per_path(self, tmp_path):
        path = tmp_path / "data" / "delta.db"
        first = init_store(path)
        try:
            assert init_store(path) is first
            assert path.exists()
        finally:
            first.close()
            init_store.cache_clear()

    def test_closed_store_raises(self):
        s = ChangelogStore(":memory:")
        with pytest.raises(StoreError):
            s.get_repository("x")
