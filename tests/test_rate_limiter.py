import pytest

from Chromabot.metrics import get_counter
from Chromabot.rate_limiter import RateLimiter, RateLimitRecord, format_rate_limit_message


class _Clock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _limiter(store, clock, limit=3):
    return RateLimiter(store, window_seconds=60, default_limit=limit, clock=clock)


@pytest.mark.asyncio
async def test_allows_up_to_capacity_then_denies(store):
    clock = _Clock()
    rl = _limiter(store, clock)

    remaining = []
    for _ in range(3):
        res = await rl.check("u1", "dye")
        assert res.allowed
        remaining.append(res.remaining)
    assert remaining == [2, 1, 0]

    clock.now += 10.5
    denied = await rl.check("u1", "dye")
    assert denied.allowed is False
    assert denied.remaining == 0
    # 49.5s left in the window, rounded up
    assert denied.retry_after == 50
    assert get_counter("rate_limit.denied") == 1


@pytest.mark.asyncio
async def test_new_window_after_expiry(store):
    clock = _Clock()
    rl = _limiter(store, clock)
    for _ in range(4):
        await rl.check("u1", "dye")

    clock.now += 60
    res = await rl.check("u1", "dye")
    assert res.allowed
    assert res.remaining == 2
    assert res.reset_at == clock.now + 60


@pytest.mark.asyncio
async def test_window_start_only_moves_on_reset(store):
    clock = _Clock()
    rl = _limiter(store, clock)
    await rl.check("u1", "dye")
    clock.now += 30
    await rl.check("u1", "dye")
    record = RateLimitRecord.from_json(await store.get(rl.key_for("u1", "dye")))
    assert record.window_start == 1_000.0
    assert record.count == 2


@pytest.mark.asyncio
async def test_pairs_are_independent(store):
    clock = _Clock()
    rl = _limiter(store, clock, limit=1)
    assert (await rl.check("u1", "dye")).allowed
    assert (await rl.check("u1", "preset")).allowed
    assert (await rl.check("u2", "dye")).allowed
    assert not (await rl.check("u1", "dye")).allowed


@pytest.mark.asyncio
async def test_records_are_written_without_ttl(store):
    rl = _limiter(store, _Clock())
    await rl.check("u1", "dye")
    key, _, ttl = store.puts[-1]
    assert key == "ratelimit:user:u1:dye"
    assert ttl is None


def test_per_command_capacities():
    rl = RateLimiter(None, default_limit=15, limits={"preset": 10, "dye": 20})
    assert rl.limit_for("preset") == 10
    assert rl.limit_for("dye") == 20
    assert rl.limit_for("unknown") == 15
    assert rl.limit_for(None) == 15


@pytest.mark.asyncio
async def test_store_failure_fails_open(broken_store):
    rl = _limiter(broken_store, _Clock())
    res = await rl.check("u1", "dye")
    assert res.allowed is True
    assert res.kv_error is True
    assert res.remaining == 3
    assert get_counter("rate_limit.kv_error") == 1


@pytest.mark.asyncio
async def test_corrupt_record_fails_open(store):
    rl = _limiter(store, _Clock())
    await store.put(rl.key_for("u1", "dye"), "not json")
    res = await rl.check("u1", "dye")
    assert res.allowed and res.kv_error


@pytest.mark.asyncio
async def test_message_names_wait_in_seconds(store):
    clock = _Clock()
    rl = _limiter(store, clock, limit=1)
    await rl.check("u1", "dye")
    clock.now += 59
    denied = await rl.check("u1", "dye")
    assert format_rate_limit_message(denied) == (
        "You're using this command too quickly! Please wait **1 second** before trying again."
    )
    assert "Sekunde" in format_rate_limit_message(denied, "de")
