import asyncio

import pytest

from autospa.config import redis as redis_config


@pytest.fixture(autouse=True)
def fresh_pool(monkeypatch):
    monkeypatch.setattr(redis_config, "_health_pool", None)


def test_health_pool_is_named_and_bounded():
    pool = redis_config.get_health_pool()

    assert pool.connection_kwargs["client_name"] == "autospa-health"
    assert pool.connection_kwargs["socket_connect_timeout"] == 2
    assert pool.connection_kwargs["socket_timeout"] == 2
    assert redis_config.get_health_pool() is pool


def test_get_redis_uses_the_health_pool():
    client = asyncio.run(redis_config.get_redis())

    assert client.connection_pool is redis_config.get_health_pool()
