"""Tests for anonymous/legacy overlay migration."""

from conftest import ANON_KEY, LEGACY_KEY, USER, USER_KEY, make_template
from mailer.schemas.template import Overlay
from mailer.services.migration import OverlayMigrationService


async def _seed(overlay_repo, key, *templates, **extra):
    overlay = Overlay(additions=list(templates), **extra)
    await overlay_repo.save(key, overlay)


async def test_anonymous_additions_move_to_user(overlay_repo):
    await _seed(overlay_repo, ANON_KEY, make_template(10, "Draft"))
    await _seed(overlay_repo, USER_KEY, make_template(1, "Mine"))
    overlay = await overlay_repo.get_or_default(USER_KEY)

    moved = await OverlayMigrationService(overlay_repo).migrate(USER, overlay)

    assert moved == 1
    stored = await overlay_repo.get(USER_KEY)
    assert [t.id for t in stored.additions] == [1, 10]
    assert stored.additions[1].owner == USER
    assert (await overlay_repo.get(ANON_KEY)).additions == []
    assert overlay.to_document() == stored.to_document()


async def test_legacy_overlay_drained_even_without_anonymous(overlay_repo):
    await _seed(overlay_repo, LEGACY_KEY, make_template(20, "Old"), deletions=[3])

    overlay = await overlay_repo.get_or_default(USER_KEY)
    moved = await OverlayMigrationService(overlay_repo).migrate(USER, overlay)

    assert moved == 1
    stored = await overlay_repo.get(USER_KEY)
    assert [(t.id, t.owner) for t in stored.additions] == [(20, USER)]
    legacy = await overlay_repo.get(LEGACY_KEY)
    assert legacy.additions == []
    assert legacy.deletions == [3]


async def test_both_sources_drained_in_order(overlay_repo):
    await _seed(overlay_repo, ANON_KEY, make_template(10))
    await _seed(overlay_repo, LEGACY_KEY, make_template(20))

    overlay = await overlay_repo.get_or_default(USER_KEY)
    await OverlayMigrationService(overlay_repo).migrate(USER, overlay)

    stored = await overlay_repo.get(USER_KEY)
    assert [t.id for t in stored.additions] == [10, 20]


async def test_second_run_changes_nothing(overlay_repo, storage):
    await _seed(overlay_repo, ANON_KEY, make_template(10))
    await _seed(overlay_repo, LEGACY_KEY, make_template(20))
    service = OverlayMigrationService(overlay_repo)

    await service.migrate(USER, await overlay_repo.get_or_default(USER_KEY))
    snapshot = {
        key: await storage.get_json("templates-test", key)
        for key in (USER_KEY, ANON_KEY, LEGACY_KEY)
    }

    moved = await service.migrate(USER, await overlay_repo.get_or_default(USER_KEY))

    assert moved == 0
    for key, document in snapshot.items():
        assert await storage.get_json("templates-test", key) == document


async def test_nothing_to_migrate_writes_nothing(overlay_repo, storage):
    moved = await OverlayMigrationService(overlay_repo).migrate(USER, Overlay())

    assert moved == 0
    assert await storage.get_json("templates-test", USER_KEY) is None


async def test_migrated_ids_pruned_from_updates_and_deletions(overlay_repo):
    await _seed(overlay_repo, ANON_KEY, make_template(10))
    await _seed(overlay_repo, USER_KEY, deletions=[10, 4], updates=[{"id": 10, "color": "red"}])

    overlay = await overlay_repo.get_or_default(USER_KEY)
    await OverlayMigrationService(overlay_repo).migrate(USER, overlay)

    stored = await overlay_repo.get(USER_KEY)
    assert stored.deletions == [4]
    assert stored.updates == []


async def test_anonymous_caller_does_not_drain_into_itself(overlay_repo):
    await _seed(overlay_repo, ANON_KEY, make_template(10))

    overlay = await overlay_repo.get_or_default(ANON_KEY)
    await OverlayMigrationService(overlay_repo).migrate(None, overlay)

    assert [t.id for t in (await overlay_repo.get(ANON_KEY)).additions] == [10]
