import json
import redis
import structlog
from typing import Optional, Any
from ..config import settings

logger = structlog.get_logger()

_redis_client: Optional[redis.Redis] = None


def get_redis() -> redis.Redis:
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True
        )
    return _redis_client


def chapter_lessons_key(chapter_id: int) -> str:
    return f"catalog:chapter:{chapter_id}:lessons"


def course_chapters_key(course_id: int) -> str:
    return f"catalog:course:{course_id}:chapters"


def get_cache(key: str) -> Optional[Any]:
    """Cached JSON value, or None on a miss or when Redis is unavailable."""
    if not settings.CACHE_ENABLED:
        return None
    try:
        value = get_redis().get(key)
        if value:
            return json.loads(value)
    except Exception as exc:
        # the catalog is always readable from the database
        logger.warning("cache_unavailable", op="get", key=key, error=str(exc))
    return None


def set_cache(key: str, value: Any, ttl: int = None) -> bool:
    if not settings.CACHE_ENABLED:
        return False
    try:
        get_redis().setex(key, ttl or settings.CACHE_TTL, json.dumps(value, ensure_ascii=False, default=str))
        return True
    except Exception as exc:
        logger.warning("cache_unavailable", op="set", key=key, error=str(exc))
        return False

