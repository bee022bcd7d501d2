import pytest

from app.models.domain.collaboration_domain import Collaboration, CollaborationStatus, PartyRole
from app.services.store import CandidateFilter, ConcurrentUpdateError, StoreError


def _collaboration(**overrides) -> Collaboration:
    fields = {
        "id": "collab-1",
        "match_id": "match-1",
        "seller_id": "seller-1",
        "creator_id": "creator-1",
        "creator_user_id": "user-creator-1",
    }
    fields.update(overrides)
    return Collaboration(**fields)


@pytest.mark.asyncio
async def test_update_bumps_version(store):
    await store.create_collaboration(_collaboration())

    updated = await store.update_collaboration(
        "collab-1", {"status": CollaborationStatus.ACCEPTED}, expected_version=0
    )

    assert updated.version == 1
    assert updated.status == CollaborationStatus.ACCEPTED


@pytest.mark.asyncio
async def test_stale_version_is_rejected(store):
    await store.create_collaboration(_collaboration())
    await store.update_collaboration(
        "collab-1", {"status": CollaborationStatus.ACCEPTED}, expected_version=0
    )

    with pytest.raises(ConcurrentUpdateError):
        await store.update_collaboration(
            "collab-1", {"status": CollaborationStatus.CANCELLED}, expected_version=0
        )

    assert store.collaborations["collab-1"].status == CollaborationStatus.ACCEPTED


@pytest.mark.asyncio
async def test_duplicate_create_and_missing_update(store):
    await store.create_collaboration(_collaboration())

    with pytest.raises(StoreError):
        await store.create_collaboration(_collaboration())
    with pytest.raises(StoreError):
        await store.update_collaboration("missing", {}, expected_version=0)


@pytest.mark.asyncio
async def test_candidates_reflect_ledger_score(store, make_creator):
    store.add_creator(make_creator("creator-1", reliability_score=1.0))
    await store.set_reliability("user-creator-1", PartyRole.CREATOR, 2.5)

    [candidate] = await store.find_candidates(CandidateFilter(), limit=10)
    creator = await store.get_creator("creator-1")

    assert candidate.reliability_score == 2.5
    assert creator.reliability_score == 2.5
    assert store.creators["creator-1"].reliability_score == 1.0


@pytest.mark.asyncio
async def test_find_candidates_respects_limit(store, make_creator):
    for i in range(12):
        store.add_creator(make_creator(f"creator-{i}"))

    assert len(await store.find_candidates(CandidateFilter(), limit=5)) == 5


@pytest.mark.asyncio
async def test_adjust_reliability_starts_from_default(store):
    first = await store.adjust_reliability(
        "seller-1", PartyRole.SELLER, lambda score: score + 0.5, default=1.0
    )
    second = await store.adjust_reliability(
        "seller-1", PartyRole.SELLER, lambda score: score * 2, default=1.0
    )

    assert first == (1.0, 1.5)
    assert second == (1.5, 3.0)
    assert await store.get_reliability("seller-1", PartyRole.SELLER) == 3.0
