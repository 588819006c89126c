import pytest
from unittest.mock import MagicMock, patch

from progression_service.config import settings
from progression_service.infrastructure.cache import (
    chapter_lessons_key,
    course_chapters_key,
    get_cache,
    set_cache,
)


@pytest.fixture(autouse=True)
def enable_cache(monkeypatch):
    monkeypatch.setattr(settings, "CACHE_ENABLED", True)


def test_keys():
    assert chapter_lessons_key(4) == "catalog:chapter:4:lessons"
    assert course_chapters_key(2) == "catalog:course:2:chapters"


@patch('progression_service.infrastructure.cache.get_redis')
def test_get_cache_hit(mock_redis):
    """Cache hit returns the decoded value"""
    mock_client = MagicMock()
    mock_client.get.return_value = '[{"id": 1, "title": "Введение"}]'
    mock_redis.return_value = mock_client

    result = get_cache("catalog:chapter:1:lessons")
    assert result == [{"id": 1, "title": "Введение"}]
    mock_client.get.assert_called_once_with("catalog:chapter:1:lessons")


@patch('progression_service.infrastructure.cache.get_redis')
def test_get_cache_miss(mock_redis):
    mock_client = MagicMock()
    mock_client.get.return_value = None
    mock_redis.return_value = mock_client

    assert get_cache("missing") is None


@patch('progression_service.infrastructure.cache.get_redis')
def test_get_cache_error(mock_redis):
    """Redis outage degrades to a miss"""
    mock_redis.side_effect = Exception("Redis error")
    assert get_cache("test_key") is None


@patch('progression_service.infrastructure.cache.get_redis')
def test_set_cache(mock_redis):
    mock_client = MagicMock()
    mock_redis.return_value = mock_client

    assert set_cache("test_key", {"key": "value"}, ttl=60) is True
    mock_client.setex.assert_called_once_with("test_key", 60, '{"key": "value"}')


@patch('progression_service.infrastructure.cache.get_redis')
def test_set_cache_default_ttl(mock_redis):
    mock_client = MagicMock()
    mock_redis.return_value = mock_client

    set_cache("test_key", [1, 2])
    assert mock_client.setex.call_args.args[1] == settings.CACHE_TTL


@patch('progression_service.infrastructure.cache.get_redis')
def test_set_cache_error(mock_redis):
    mock_redis.side_effect = Exception("Redis error")
    assert set_cache("test_key", {"key": "value"}) is False


@patch('progression_service.infrastructure.cache.get_redis')
def test_disabled_cache_never_touches_redis(mock_redis, monkeypatch):
    monkeypatch.setattr(settings, "CACHE_ENABLED", False)
    assert get_cache("k") is None
    assert set_cache("k", 1) is False
    mock_redis.assert_not_called()
