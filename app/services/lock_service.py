# app/services/lock_service.py
import uuid

import redis

from app.utils.logging import get_logger
from app.utils.retry import redis_retry
from app.utils.settings import REDIS_URL

logger = get_logger(__name__)

# porownaj i usun w jednym kroku (lua jest atomowe)
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""

SWEEP_LOCK_KEY = "carts:sweep:lock"


class LockService:
    """
    Lock na sweep wygaslych koszykow, gdy beat i kilka workerow
    moga wystartowac task w tym samym czasie.

    Poprawnosc nie zalezy od locka (delete koszyka jest warunkowy),
    lock tylko oszczedza pracy.
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    def new_token(self) -> str:
        return uuid.uuid4().hex

    @redis_retry()
    def acquire_sweep_lock(self, token: str, ttl: int) -> bool:
        logger.debug(f"Acquire lock {SWEEP_LOCK_KEY} ({token})")
        # SET carts:sweep:lock <token> NX EX <ttl>, wygasa sam gdy worker padnie
        return bool(
            self.redis.set(
                name=SWEEP_LOCK_KEY,
                value=token,
                nx=True,
                ex=max(1, int(ttl)),
            )
        )

    @redis_retry()
    def release_sweep_lock(self, token: str) -> bool:
        logger.debug(f"Release lock {SWEEP_LOCK_KEY} ({token})")
        res = self.redis.eval(_RELEASE_LUA, 1, SWEEP_LOCK_KEY, token)
        return bool(res)
