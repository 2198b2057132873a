from dataclasses import dataclass, replace
from datetime import datetime, timedelta


@dataclass(frozen=True)
class GuestQuota:
    """AI-suggestion allowance of one guest session."""
    started_at: datetime
    expires_at: datetime
    ai_queries_used: int = 0


def new_quota(now: datetime, ttl_minutes: int) -> GuestQuota:
    return GuestQuota(started_at=now, expires_at=now + timedelta(minutes=ttl_minutes))


def is_expired(quota: GuestQuota, now: datetime) -> bool:
    return now >= quota.expires_at


def can_query_ai(quota: GuestQuota, now: datetime, limit: int) -> bool:
    if is_expired(quota, now):
        return False
    return quota.ai_queries_used < limit


def reserve_ai_query(quota: GuestQuota) -> GuestQuota:
    return replace(quota, ai_queries_used=quota.ai_queries_used + 1)


def release_ai_query(quota: GuestQuota) -> GuestQuota:
    """Hand back a reserved query; template answers are free."""
    return replace(quota, ai_queries_used=max(quota.ai_queries_used - 1, 0))
