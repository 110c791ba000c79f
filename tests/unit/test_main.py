"""
Tests for application wiring in the lifespan.
"""

import asyncio
from unittest.mock import MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from product_api import main
from product_api.core.config import CacheFailurePolicy
from product_api.core.database import DatabaseManager
from product_api.infrastructure.redis.exceptions import RedisConfigurationException
from product_api.infrastructure.redis.liveness import LivenessState


@pytest.fixture
def patched_lifespan(monkeypatch, fake_redis):
    calls = {"db_closed": False, "redis_closed": False}

    async def fake_initialize(self):
        self.read_executor = MagicMock(name="replica")
        self.write_executor = MagicMock(name="primary")

    async def fake_close(self):
        calls["db_closed"] = True

    async def fake_close_redis(client):
        calls["redis_closed"] = True

    monkeypatch.setattr(DatabaseManager, "initialize", fake_initialize)
    monkeypatch.setattr(DatabaseManager, "close", fake_close)
    monkeypatch.setattr(main, "create_redis_client", lambda settings: fake_redis)
    monkeypatch.setattr(main, "close_redis_client", fake_close_redis)
    monkeypatch.setattr(main, "configure_logging", lambda *args, **kwargs: None)
    return calls


class TestLifespan:
    @pytest.mark.asyncio
    async def test_wires_service_and_liveness(self, patched_lifespan, fake_redis):
        app = main.create_app()

        async with main.lifespan(app):
            liveness = app.state.cache_liveness
            service = app.state.product_service

            assert service.ttl_seconds == 60
            assert service.failure_policy is CacheFailurePolicy.FAIL_CLOSED
            assert service.cache_key(7) == "product:7"
            assert service.cache.liveness is liveness

            # First probe happens in the background after startup
            await asyncio.sleep(0.01)
            assert liveness.state is LivenessState.READY

        assert liveness.state is LivenessState.CLOSED
        assert patched_lifespan == {"db_closed": True, "redis_closed": True}

    @pytest.mark.asyncio
    async def test_starts_while_cache_unreachable(self, patched_lifespan, fake_redis):
        fake_redis.error = RedisConnectionError("Connection refused")
        app = main.create_app()

        async with main.lifespan(app):
            await asyncio.sleep(0.01)
            assert app.state.cache_liveness.state is LivenessState.ERRORED

    @pytest.mark.asyncio
    async def test_database_closed_when_cache_client_setup_fails(
        self, patched_lifespan, monkeypatch
    ):
        def broken_client(settings):
            raise RedisConfigurationException(
                "Invalid Redis configuration", config_key="REDIS_URL"
            )

        monkeypatch.setattr(main, "create_redis_client", broken_client)
        app = main.create_app()

        with pytest.raises(RedisConfigurationException):
            async with main.lifespan(app):
                pass

        assert patched_lifespan == {"db_closed": True, "redis_closed": False}
