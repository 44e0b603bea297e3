"""
Tests for TagService: unified reads in the historical response shape and
user tag mutations.
"""

import pytest
from sqlalchemy import func, select

from branch.errors import NotFoundError, PermissionDeniedError, ValidationError
from branch.models.legacy_tag import LegacyTag
from branch.models.unified_tag import EntityType, SourceType, TagCategory, UnifiedTag
from branch.repositories.fact_store import DerivedFact
from branch.repositories.unified_tag_repository import UnifiedTagRepository
from branch.services.dual_write_service import DualWriteFactStore
from branch.services.tag_service import TagService


async def unified_rows(db, **filters) -> int:
    query = select(func.count()).select_from(UnifiedTag)
    for column, value in filters.items():
        query = query.where(getattr(UnifiedTag, column) == value)
    return (await db.execute(query)).scalar_one()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_adding_a_tag_twice_keeps_one_row(db, make_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    service = TagService(db)

    first = await service.add_tag(alice, "bob", "helpful")
    second = await service.add_tag(alice, "bob", "helpful")

    assert first.success and not first.already_present
    assert second.success and second.already_present
    assert await unified_rows(db, tag_name="helpful", entity_id=bob.id) == 1
    legacy = (await db.execute(select(LegacyTag))).scalar_one()
    assert (legacy.tagged_by_user_id, legacy.tagged_entity_id) == (alice.id, bob.id)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_user_and_repo_level_tags_are_independent(db, make_user, make_repo):
    alice = await make_user("alice")
    bob = await make_user("bob")
    await make_repo(bob, "engine")
    service = TagService(db)

    await service.add_tag(alice, "bob", "fast")
    await service.add_tag(alice, "bob", "fast", repo_name="engine")

    unified = UnifiedTagRepository(db)
    user_level = await unified.get_fact("fast", EntityType.USER, bob.id)
    repo_level = await unified.get_fact("fast", EntityType.REPO, bob.id, "engine")
    assert user_level.repo_name is None
    assert repo_level.entity_id == bob.id
    assert repo_level.source_user_id == alice.id


@pytest.mark.unit
@pytest.mark.asyncio
async def test_tagging_missing_targets(db, make_user):
    alice = await make_user("alice")
    await make_user("bob")
    service = TagService(db)

    with pytest.raises(NotFoundError):
        await service.add_tag(alice, "nobody", "x")
    with pytest.raises(NotFoundError):
        await service.add_tag(alice, "bob", "x", repo_name="missing")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_only_the_tagger_can_remove(db, make_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    carol = await make_user("carol")
    service = TagService(db)
    await service.add_tag(alice, "bob", "kind")

    with pytest.raises(PermissionDeniedError):
        await service.remove_tag(carol, "bob", "kind")
    assert await unified_rows(db, tag_name="kind") == 1

    result = await service.remove_tag(alice, "bob", "kind")

    assert result.success and result.tag == "kind"
    assert await unified_rows(db, tag_name="kind") == 0
    assert (await db.execute(select(func.count()).select_from(LegacyTag))).scalar_one() == 0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_system_facts_cannot_be_removed(db, make_user):
    octo = await make_user("octo")
    await DualWriteFactStore.for_session(db).write(
        DerivedFact(tag_name="Python", category=TagCategory.LANGUAGE, owner_id=octo.id, repo_count=2)
    )

    with pytest.raises(PermissionDeniedError):
        await TagService(db).remove_tag(octo, "octo", "Python")
    assert await unified_rows(db, tag_name="Python") == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_rename_merges_into_existing_fact(db, make_user):
    octo = await make_user("octo")
    unified = UnifiedTagRepository(db)
    for name in ("JS", "JavaScript"):
        await unified.insert_fact(
            tag_name=name,
            entity_type=EntityType.USER,
            entity_id=octo.id,
            category=TagCategory.LANGUAGE,
            source_type=SourceType.SYSTEM,
        )

    result = await TagService(db).rename_tag("JS", "JavaScript")

    assert (result.renamed, result.merged) == (0, 1)
    assert await unified_rows(db, tag_name="JavaScript", entity_id=octo.id) == 1
    assert await unified_rows(db, tag_name="JS") == 0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_rename_to_same_name_is_rejected(db):
    with pytest.raises(ValidationError):
        await TagService(db).rename_tag("Go", "Go")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_facts_for_user_keep_historical_arrays(db, make_user):
    octo = await make_user("octo")
    alice = await make_user("alice")
    store = DualWriteFactStore.for_session(db)
    for fact in (
        DerivedFact(tag_name="Python", category=TagCategory.LANGUAGE, owner_id=octo.id, repo_count=3),
        DerivedFact(tag_name="Go", category=TagCategory.LANGUAGE, owner_id=octo.id, repo_count=5),
        DerivedFact(tag_name="django", category=TagCategory.FRAMEWORK, owner_id=octo.id, repo_count=1),
        DerivedFact(tag_name="Claude", category=TagCategory.AI_TOOL, owner_id=octo.id, repo_name="a", mention_count=2),
        DerivedFact(tag_name="Claude", category=TagCategory.AI_TOOL, owner_id=octo.id, repo_name="b", mention_count=1),
        DerivedFact(tag_name="Claude", category=TagCategory.AI_TOOL, owner_id=octo.id),
        DerivedFact(tag_name="Fly.io", category=TagCategory.SERVICE, owner_id=octo.id, repo_count=1, mention_count=4),
    ):
        await store.write(fact)
    await TagService(db).add_tag(alice, "octo", "night owl")

    facts = await TagService(db).get_facts_for_user(octo.id)

    assert [(e.technology, e.repo_count) for e in facts.tech_stack] == [("Go", 5), ("Python", 3), ("django", 1)]
    assert [(e.tool, e.repo_count, e.mentions) for e in facts.ai_assistance] == [("Claude", 2, 3)]
    assert [(e.service, e.repo_count, e.mentions) for e in facts.services] == [("Fly.io", 1, 4)]
    assert [(t.tag_name, t.source_user_id) for t in facts.tags] == [("night owl", alice.id)]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_entities_for_tag_carry_provenance(db, make_user, make_repo):
    alice = await make_user("alice", access_token="gho_alice")
    bob = await make_user("bob", scanned_by="alice")
    await make_repo(bob, "tool", stars=7, description="a tool")
    service = TagService(db)
    await service.add_tag(alice, "bob", "rust")
    await DualWriteFactStore.for_session(db).write(
        DerivedFact(tag_name="rust", category=TagCategory.FRAMEWORK, owner_id=alice.id, repo_count=1)
    )
    await service.add_tag(alice, "bob", "rust", repo_name="tool")

    detail = await service.get_entities_for_tag("rust")

    assert [(u.username, u.source, u.sourced_by) for u in detail.users] == [
        ("alice", SourceType.SYSTEM, None),
        ("bob", SourceType.USER, "alice"),
    ]
    assert len(detail.repositories) == 1
    repo = detail.repositories[0]
    assert (repo.username, repo.name, repo.stars, repo.sourced_by) == ("bob", "tool", 7, "alice")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_user_tags_relative_to_viewer(db, make_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    service = TagService(db)
    await service.add_tag(alice, "bob", "mentor")
    await service.add_tag(bob, "bob", "gardener")
    await service.add_tag(bob, "alice", "mentor")

    tags = await service.get_user_tags("bob", viewer="alice")

    entries = {entry.tag: entry for entry in tags.tags}
    assert set(entries) == {"gardener", "mentor"}
    assert entries["gardener"].is_own_tag is True
    assert entries["mentor"].is_own_tag is False
    assert entries["mentor"].tagged_by[0].tagged_by_username == "alice"
    assert entries["mentor"].tagged_by[0].is_viewer is True
    assert entries["mentor"].is_on_viewer_profile is True
    assert entries["gardener"].is_on_viewer_profile is False
