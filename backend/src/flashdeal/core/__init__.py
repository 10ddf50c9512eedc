from flashdeal.core.config import settings
from flashdeal.core.database import Base, async_session_maker, engine, get_db
from flashdeal.core.redis import close_redis, get_redis

__all__ = [
    "settings",
    "Base",
    "engine",
    "async_session_maker",
    "get_db",
    "get_redis",
    "close_redis",
]
