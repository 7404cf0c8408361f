"""
Cache utilities for the tea shop API.

Provides Redis-backed caching with graceful fallback to simple in-memory caching.
Uses Flask-Caching for integration with Flask app.

Only HTTP payloads are cached here (the unauthenticated public config).
The config registry keeps its own resolved-value map.

Environment Variables:
    REDIS_URL: Redis connection URL (e.g., redis://localhost:6379/0)
              Falls back to simple cache if not set or unavailable.
"""
import os
import logging
from flask_caching import Cache

logger = logging.getLogger(__name__)

# Global cache instance - initialized in init_cache()
cache = Cache()

PUBLIC_CONFIG_CACHE_KEY = 'teashop:public_config'


def init_cache(app):
    """
    Initialize Flask-Caching with Redis or fallback to simple cache.

    An explicit CACHE_TYPE in the app config (e.g. NullCache for tests) wins.

    Args:
        app: Flask application instance

    Returns:
        bool: True if Redis connected, False if using fallback
    """
    if app.config.get('CACHE_TYPE'):
        cache.init_app(app)
        logger.info('[TeaShop] Using configured cache backend: %s', app.config['CACHE_TYPE'])
        return False

    redis_url = os.getenv('REDIS_URL')

    if redis_url:
        try:
            import redis
            r = redis.from_url(redis_url, socket_connect_timeout=2)
            r.ping()

            app.config['CACHE_TYPE'] = 'RedisCache'
            app.config['CACHE_REDIS_URL'] = redis_url
            app.config['CACHE_DEFAULT_TIMEOUT'] = 300
            app.config['CACHE_KEY_PREFIX'] = 'teashop:'

            cache.init_app(app)
            logger.info('[TeaShop] Redis cache connected: %s', redis_url.split('@')[-1])
            return True

        except Exception as e:
            logger.warning('[TeaShop] Redis unavailable (%s), using simple cache', str(e))

    app.config['CACHE_TYPE'] = 'SimpleCache'
    app.config['CACHE_DEFAULT_TIMEOUT'] = 300

    cache.init_app(app)
    logger.info('[TeaShop] Using simple in-memory cache (no Redis)')
    return False


def invalidate_public_config():
    """Drop the memoized public config payload after a registry write."""
    try:
        cache.delete(PUBLIC_CONFIG_CACHE_KEY)
    except Exception as e:
        logger.warning('Public config cache invalidation failed: %s', e)
