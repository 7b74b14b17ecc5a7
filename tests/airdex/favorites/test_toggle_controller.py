"""Behavioural tests for the optimistic favorite toggle controller."""

from __future__ import annotations

import asyncio
from functools import partial

import pytest

from airdex.auth import SessionAuthGate
from airdex.cache import QueryCache, favorite_details_key, favorites_key
from airdex.schemas.favorites import FavoriteKey
from airdex.services.favorites import (
    FailureKind,
    FavoriteFailure,
    FavoritesCache,
    FavoriteToggleController,
    RemoteStoreError,
    SessionExpiredError,
    ToggleOutcome,
)
from tests.airdex.support.doubles import USER_ID, InMemoryFavoriteStore, RecordingNavigator

IST = FavoriteKey.airport("IST")
SAW = FavoriteKey.airport("SAW")
PC = FavoriteKey.airline("PC")
TK = FavoriteKey.airline("TK")
QUERY = favorites_key(USER_ID)


def _transient(operation: str = "add_element") -> RemoteStoreError:
    return RemoteStoreError("network unreachable", operation=operation, user_id=USER_ID)


@pytest.mark.asyncio
async def test_toggle_adds_key_optimistically_and_persists(
    controller: FavoriteToggleController,
    favorites_cache: FavoritesCache,
    store: InMemoryFavoriteStore,
) -> None:
    favorites_cache.replace(QUERY, ())
    gate = store.hold()

    task = controller.toggle(IST)

    assert task is not None
    assert favorites_cache.favorites(QUERY) == (IST,)
    assert controller.is_pending(IST)

    gate.set()
    outcome = await task

    assert outcome is ToggleOutcome.ADDED
    assert not controller.is_pending(IST)
    assert favorites_cache.favorites(QUERY) == (IST,)
    assert store.documents[USER_ID] == [{"id": "IST", "type": "airport"}]


@pytest.mark.asyncio
async def test_failed_add_rolls_back_and_reports(
    controller: FavoriteToggleController,
    favorites_cache: FavoritesCache,
    store: InMemoryFavoriteStore,
) -> None:
    favorites_cache.replace(QUERY, ())
    failures: list[FavoriteFailure] = []
    controller.add_failure_listener(failures.append)
    error = _transient()
    store.fail_with(error)

    task = controller.toggle(IST)
    assert favorites_cache.favorites(QUERY) == (IST,)

    outcome = await task

    assert outcome is ToggleOutcome.ROLLED_BACK
    assert favorites_cache.favorites(QUERY) == ()
    assert not controller.is_pending(IST)
    assert USER_ID not in store.documents
    assert failures == [FavoriteFailure(IST, "add", FailureKind.REMOTE_TRANSIENT, error)]


@pytest.mark.asyncio
async def test_unauthenticated_toggle_redirects_without_mutation(
    favorites_cache: FavoritesCache,
    store: InMemoryFavoriteStore,
    navigator: RecordingNavigator,
) -> None:
    controller = FavoriteToggleController(
        store=store,
        cache=favorites_cache,
        auth_gate=SessionAuthGate(),
        navigator=navigator,
    )

    assert controller.toggle(SAW) is None

    assert navigator.redirects == 1
    assert store.calls == []
    assert not controller.is_pending(SAW)
    assert favorites_cache.read(favorites_key(USER_ID)) is None


@pytest.mark.asyncio
async def test_double_tap_issues_a_single_remote_call(
    controller: FavoriteToggleController,
    favorites_cache: FavoritesCache,
    store: InMemoryFavoriteStore,
) -> None:
    favorites_cache.replace(QUERY, ())
    gate = store.hold()

    first = controller.toggle(TK)
    second = controller.toggle(TK)

    assert first is not None
    assert second is None
    assert favorites_cache.favorites(QUERY) == (TK,)

    gate.set()
    await first

    assert len(store.calls_for("add")) == 1
    assert store.calls_for("remove") == []
    assert favorites_cache.favorites(QUERY) == (TK,)


@pytest.mark.asyncio
async def test_toggle_removes_existing_favorite(
    controller: FavoriteToggleController,
    favorites_cache: FavoritesCache,
    store: InMemoryFavoriteStore,
) -> None:
    store.documents[USER_ID] = [PC.to_document(), IST.to_document()]
    favorites_cache.replace(QUERY, (PC, IST))

    task = controller.toggle(PC)
    assert favorites_cache.favorites(QUERY) == (IST,)

    assert await task is ToggleOutcome.REMOVED
    assert favorites_cache.favorites(QUERY) == (IST,)
    assert store.documents[USER_ID] == [IST.to_document()]


@pytest.mark.asyncio
async def test_failed_remove_restores_membership(
    controller: FavoriteToggleController,
    favorites_cache: FavoritesCache,
    store: InMemoryFavoriteStore,
) -> None:
    favorites_cache.replace(QUERY, (PC,))
    store.fail_with(_transient("remove_element"))

    task = controller.toggle(PC)
    assert favorites_cache.favorites(QUERY) == ()

    assert await task is ToggleOutcome.ROLLED_BACK
    assert favorites_cache.favorites(QUERY) == (PC,)


@pytest.mark.asyncio
async def test_toggling_twice_returns_to_original_state(
    controller: FavoriteToggleController,
    favorites_cache: FavoritesCache,
    store: InMemoryFavoriteStore,
) -> None:
    favorites_cache.replace(QUERY, (PC,))
    store.documents[USER_ID] = [PC.to_document()]

    await controller.toggle(IST)
    await controller.toggle(IST)

    assert favorites_cache.favorites(QUERY) == (PC,)
    assert store.documents[USER_ID] == [PC.to_document()]


@pytest.mark.asyncio
async def test_rollback_of_one_key_keeps_other_keys_untouched(
    controller: FavoriteToggleController,
    favorites_cache: FavoritesCache,
    store: InMemoryFavoriteStore,
) -> None:
    favorites_cache.replace(QUERY, ())
    slow_gate = store.hold(IST)
    store.fail_with(_transient(), key=TK)

    slow = controller.toggle(IST)
    fast = controller.toggle(TK)
    assert favorites_cache.favorites(QUERY) == (IST, TK)

    assert await fast is ToggleOutcome.ROLLED_BACK
    assert favorites_cache.favorites(QUERY) == (IST,)
    assert controller.is_pending(IST)
    assert not controller.is_pending(TK)

    slow_gate.set()
    assert await slow is ToggleOutcome.ADDED
    assert favorites_cache.favorites(QUERY) == (IST,)
    assert store.documents[USER_ID] == [IST.to_document()]


@pytest.mark.asyncio
async def test_pending_flags_are_tracked_per_key(
    controller: FavoriteToggleController,
    favorites_cache: FavoritesCache,
    store: InMemoryFavoriteStore,
) -> None:
    favorites_cache.replace(QUERY, ())
    gate = store.hold()

    controller.toggle(IST)
    controller.toggle(FavoriteKey.airport("IST"))
    controller.toggle(PC)

    assert controller.pending_keys == frozenset({IST, PC})

    gate.set()
    await controller.settle()

    assert controller.pending_keys == frozenset()
    assert len(store.calls_for("add")) == 2


@pytest.mark.asyncio
async def test_session_expiry_signals_auth_gate_without_rollback(
    controller: FavoriteToggleController,
    favorites_cache: FavoritesCache,
    store: InMemoryFavoriteStore,
    auth_gate: SessionAuthGate,
) -> None:
    favorites_cache.replace(QUERY, ())
    expired: list[str | None] = []
    auth_gate.on_session_expired(expired.append)
    failures: list[FavoriteFailure] = []
    controller.add_failure_listener(failures.append)
    store.fail_with(SessionExpiredError("token revoked", operation="add_element"))

    outcome = await controller.toggle(IST)

    assert outcome is ToggleOutcome.SESSION_EXPIRED
    assert expired == [USER_ID]
    assert not auth_gate.is_authenticated()
    assert not controller.is_pending(IST)
    assert favorites_cache.favorites(QUERY) == (IST,)
    assert [failure.kind for failure in failures] == [FailureKind.SESSION_EXPIRED]
    assert await favorites_cache.fetch(QUERY, partial(store.read, USER_ID)) == ()


@pytest.mark.asyncio
async def test_success_reapplies_key_overwritten_while_pending(
    controller: FavoriteToggleController,
    favorites_cache: FavoritesCache,
    store: InMemoryFavoriteStore,
) -> None:
    favorites_cache.replace(QUERY, (TK,))
    gate = store.hold()

    task = controller.toggle(IST)
    favorites_cache.replace(QUERY, (TK,))
    gate.set()

    assert await task is ToggleOutcome.ADDED
    assert favorites_cache.favorites(QUERY) == (TK, IST)


@pytest.mark.asyncio
async def test_late_failure_after_cache_clear_is_ignored(
    controller: FavoriteToggleController,
    favorites_cache: FavoritesCache,
    store: InMemoryFavoriteStore,
) -> None:
    favorites_cache.replace(QUERY, ())
    gate = store.hold()
    store.fail_with(_transient())

    task = controller.toggle(IST)
    favorites_cache.clear(("favorites",))
    gate.set()

    assert await task is ToggleOutcome.ROLLED_BACK
    assert favorites_cache.read(QUERY) is None
    assert not controller.is_pending(IST)


@pytest.mark.asyncio
async def test_success_invalidates_details_and_unloaded_membership(
    controller: FavoriteToggleController,
    favorites_cache: FavoritesCache,
    queries: QueryCache,
) -> None:
    details = favorite_details_key(USER_ID, "en")
    queries.set_data(details, [])

    assert await controller.toggle(IST) is ToggleOutcome.ADDED

    assert queries.get(details).is_stale
    membership = favorites_cache.read(QUERY)
    assert membership.is_stale
    assert membership.data == (IST,)


@pytest.mark.asyncio
async def test_success_keeps_loaded_membership_fresh(
    controller: FavoriteToggleController,
    favorites_cache: FavoritesCache,
) -> None:
    favorites_cache.replace(QUERY, ())

    await controller.toggle(IST)

    assert not favorites_cache.read(QUERY).is_stale


@pytest.mark.asyncio
async def test_optimistic_write_discards_inflight_refetch(
    controller: FavoriteToggleController,
    favorites_cache: FavoritesCache,
) -> None:
    favorites_cache.replace(QUERY, ())
    release = asyncio.Event()

    async def slow_read() -> tuple[FavoriteKey, ...]:
        await release.wait()
        return ()

    fetch = asyncio.create_task(favorites_cache.fetch(QUERY, slow_read))
    await asyncio.sleep(0)
    assert favorites_cache.read(QUERY).is_fetching

    toggle = controller.toggle(IST)
    release.set()
    await fetch
    await toggle

    assert favorites_cache.favorites(QUERY) == (IST,)


@pytest.mark.asyncio
async def test_unexpected_store_exception_is_contained(
    controller: FavoriteToggleController,
    favorites_cache: FavoritesCache,
    store: InMemoryFavoriteStore,
) -> None:
    favorites_cache.replace(QUERY, ())
    failures: list[FavoriteFailure] = []
    controller.add_failure_listener(failures.append)

    def broken_listener(failure: FavoriteFailure) -> None:
        raise RuntimeError("listener exploded")

    controller.add_failure_listener(broken_listener)
    store.fail_with(ValueError("unexpected payload"))

    assert await controller.toggle(IST) is ToggleOutcome.ROLLED_BACK
    assert favorites_cache.favorites(QUERY) == ()
    assert len(failures) == 1
    assert isinstance(failures[0].error, ValueError)


@pytest.mark.asyncio
async def test_removed_failure_listener_is_not_called(
    controller: FavoriteToggleController,
    favorites_cache: FavoritesCache,
    store: InMemoryFavoriteStore,
) -> None:
    favorites_cache.replace(QUERY, ())
    failures: list[FavoriteFailure] = []
    unsubscribe = controller.add_failure_listener(failures.append)
    unsubscribe()
    store.fail_with(_transient())

    await controller.toggle(IST)

    assert failures == []
