# app/tasks/sweeper.py
from datetime import datetime, timezone
from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.orm import Session

from app.services.cart_service import CartService
from app.utils.clock import utcnow
from app.utils.logging import get_logger
from app.utils.settings import CART_CLEANUP_INTERVAL_SECONDS, CART_TTL_SECONDS

logger = get_logger(__name__)

_JOB_ID = "carts-sweep"


class CartSweeper:
    """
    Sweep wygaslych koszykow w procesie API (bez celery beat).
    Jeden job interwalowy, kolejne przebiegi nigdy sie nie nakladaja.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        interval_seconds: float = CART_CLEANUP_INTERVAL_SECONDS,
        cart_ttl_seconds: int = CART_TTL_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds
        self.cart_ttl_seconds = cart_ttl_seconds
        self.clock = clock
        self.scheduler = BackgroundScheduler(timezone="UTC")

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self) -> None:
        if self.scheduler.running:
            return

        self.scheduler.add_job(
            self._tick,
            "interval",
            seconds=self.interval_seconds,
            id=_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            # pierwszy przebieg od razu po starcie
            next_run_time=datetime.now(timezone.utc),
        )
        self.scheduler.start()
        logger.info(f"Cart sweeper started, interval {self.interval_seconds}s")

    def stop(self) -> None:
        if not self.scheduler.running:
            return
        self.scheduler.shutdown(wait=True)
        logger.info("Cart sweeper stopped")

    def run_once(self) -> int:
        db = self.session_factory()
        try:
            service = CartService(db, cart_ttl_seconds=self.cart_ttl_seconds, clock=self.clock)
            return service.cleanup_expired_carts()
        finally:
            db.close()

    def _tick(self) -> None:
        # blad jednego przebiegu nie zatrzymuje harmonogramu
        try:
            self.run_once()
        except Exception:
            logger.exception("Cart sweep failed, will retry on next interval")
