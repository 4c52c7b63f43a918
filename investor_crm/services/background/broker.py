"""
Dramatiq Redis Broker Configuration
Queue for relationship detection, recording processing and notifications
"""
import logging

import dramatiq
from dramatiq.brokers.redis import RedisBroker
from dramatiq.middleware import Retries, TimeLimit

from investor_crm.core.config import settings

logger = logging.getLogger(__name__)

JOB_TIME_LIMIT_MS = 15 * 60 * 1000
DEFAULT_MAX_RETRIES = 3

if settings.redis_url:
    redis_broker = RedisBroker(url=settings.redis_url)
    logger.info("✅ Redis broker initialized")
else:
    logger.warning("⚠️  REDIS_URL not set - background jobs will use a local Redis")
    redis_broker = RedisBroker()

redis_broker.add_middleware(TimeLimit(time_limit=JOB_TIME_LIMIT_MS))
redis_broker.add_middleware(Retries(max_retries=DEFAULT_MAX_RETRIES))

dramatiq.set_broker(redis_broker)
broker = redis_broker
