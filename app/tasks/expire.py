# app/tasks/expire.py
from redis.exceptions import RedisError

from app.celery_worker import celery_app
from app.data.database import SessionLocal
from app.services.cart_service import CartService
from app.services.lock_service import LockService
from app.utils.logging import get_logger
from app.utils.settings import CART_CLEANUP_INTERVAL_SECONDS

logger = get_logger(__name__)
lock_service = LockService()


def sweep_expired_carts(session_factory=SessionLocal) -> int:
    db = session_factory()
    try:
        return CartService(db).cleanup_expired_carts()
    finally:
        db.close()


@celery_app.task(name="app.tasks.expire.expire_carts_task")
def expire_carts_task():
    logger.info("Expire carts task started")

    token = lock_service.new_token()
    try:
        acquired = lock_service.acquire_sweep_lock(token, ttl=max(1, int(CART_CLEANUP_INTERVAL_SECONDS)))
    except RedisError as e:
        # bez redisa i tak sprzatamy, warunkowy delete wyklucza podwojne zwolnienie
        logger.warning(f"Sweep lock unavailable, sweeping without it: {e}")
        acquired = None

    if acquired is False:
        logger.info("Another worker is sweeping carts, skipping")
        return 0

    try:
        expired = sweep_expired_carts()
        logger.info(f"Expire carts task finished, {expired} carts expired")
        return expired
    finally:
        if acquired:
            try:
                lock_service.release_sweep_lock(token)
            except RedisError as e:
                logger.warning(f"Failed to release sweep lock, it will expire on its own: {e}")
