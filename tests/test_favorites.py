import pytest

from Chromabot.services.favorites import MAX_FAVORITES, FavoriteError, FavoriteStore


@pytest.mark.asyncio
async def test_add_keeps_insertion_order_and_rejects_duplicates(store):
    favorites = FavoriteStore(store)
    assert await favorites.list("u1") == []
    assert await favorites.add("u1", 7) is None
    assert await favorites.add("u1", 1) is None
    assert await favorites.add("u1", 7) is FavoriteError.ALREADY_EXISTS
    assert await favorites.list("u1") == [7, 1]
    assert await favorites.list("u2") == []


@pytest.mark.asyncio
async def test_limit_is_enforced_before_saving(store):
    favorites = FavoriteStore(store)
    for item_id in range(MAX_FAVORITES):
        await favorites.add("u1", item_id)
    writes = len(store.puts)
    assert await favorites.add("u1", 999) is FavoriteError.LIMIT_REACHED
    assert len(store.puts) == writes
    assert len(await favorites.list("u1")) == MAX_FAVORITES


@pytest.mark.asyncio
async def test_remove_and_clear(store):
    favorites = FavoriteStore(store)
    await favorites.add("u1", 7)
    await favorites.add("u1", 1)
    assert await favorites.remove("u1", 3) is False
    assert await favorites.remove("u1", 7) is True
    assert await favorites.list("u1") == [1]
    assert await favorites.clear("u1") == 1
    assert "favorites:u1" not in store.data
    assert await favorites.clear("u1") == 0
