"""
Redis cache for analytic unit configurations.

Keeps the last applied configuration of each unit so a restarted service
resumes with it instead of the defaults.
"""

import json
from typing import Optional

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError

from .errors import ConfigError
from .models import AnalyticConfig
from .units.config import AnalyticUnitConfig, config_from_dict

logger = structlog.get_logger(__name__)


class UnitConfigCache:
    """Redis backend for unit configurations"""

    def __init__(self, config: AnalyticConfig):
        self.redis = redis.Redis(
            host=config.redis_host,
            port=config.redis_port,
            db=config.redis_db,
            password=config.redis_password,
            decode_responses=True,
        )
        self.ttl = config.config_cache_ttl_seconds
        logger.info("Redis config cache initialized", host=config.redis_host, port=config.redis_port)

    async def check_health(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except RedisError as e:
            logger.error("Redis health check failed", error=str(e))
            return False

    async def save_config(self, unit_id: str, config: AnalyticUnitConfig) -> None:
        key = self._make_key(unit_id)
        await self.redis.set(key, json.dumps(config.to_dict()), ex=self.ttl or None)
        logger.debug("Unit config saved", key=key, kind=config.kind.value)

    async def load_config(self, unit_id: str) -> Optional[AnalyticUnitConfig]:
        """Load a unit's config; None if missing or unreadable"""
        key = self._make_key(unit_id)
        data = await self.redis.get(key)
        if data is None:
            return None

        try:
            return config_from_dict(json.loads(data))
        except (json.JSONDecodeError, ConfigError) as e:
            logger.warning("Discarding unreadable unit config", key=key, error=str(e))
            return None

    async def close(self):
        await self.redis.aclose()

    def _make_key(self, unit_id: str) -> str:
        return f"analytics:unit:config:{unit_id}"
