from datetime import datetime, timedelta

from keepmeontrack.adapters.demo_store import DEMO_USER_ID
from keepmeontrack.core.session import GuestSessionRegistry, guest_context
from keepmeontrack.domain.quota import can_query_ai, is_expired, new_quota, release_ai_query, reserve_ai_query

NOW = datetime(2026, 10, 18, 12, 0, 0)


def test_new_quota_is_unused():
    quota = new_quota(NOW, 120)
    assert quota.ai_queries_used == 0
    assert quota.expires_at == NOW + timedelta(minutes=120)
    assert can_query_ai(quota, NOW, limit=1)


def test_reserved_query_consumes_the_allowance():
    quota = reserve_ai_query(new_quota(NOW, 120))
    assert quota.ai_queries_used == 1
    assert not can_query_ai(quota, NOW, limit=1)
    assert can_query_ai(quota, NOW, limit=2)


def test_released_query_is_handed_back():
    quota = release_ai_query(reserve_ai_query(new_quota(NOW, 120)))
    assert quota.ai_queries_used == 0
    assert can_query_ai(quota, NOW, limit=1)


def test_release_never_goes_negative():
    assert release_ai_query(new_quota(NOW, 120)).ai_queries_used == 0


def test_expired_quota_cannot_query():
    quota = new_quota(NOW, 10)
    later = NOW + timedelta(minutes=10)
    assert is_expired(quota, later)
    assert not can_query_ai(quota, later, limit=5)


def test_registry_round_trip():
    registry = GuestSessionRegistry(ttl_minutes=30)
    session = registry.create(NOW)
    assert registry.get(session.session_id, NOW + timedelta(minutes=5)) is session
    assert registry.get("unknown", NOW) is None


def test_registry_drops_expired_sessions():
    registry = GuestSessionRegistry(ttl_minutes=30)
    old = registry.create(NOW)
    assert registry.get(old.session_id, NOW + timedelta(minutes=31)) is None
    assert len(registry) == 0

    registry.create(NOW)
    registry.create(NOW + timedelta(minutes=40))
    assert len(registry) == 1


def test_guest_sessions_do_not_share_data():
    registry = GuestSessionRegistry(ttl_minutes=30)
    a, b = registry.create(NOW), registry.create(NOW)
    assert a.store is not b.store

    ctx = guest_context(a)
    assert ctx.user_id == DEMO_USER_ID
    assert ctx.is_guest
    assert ctx.store.persistent is False
