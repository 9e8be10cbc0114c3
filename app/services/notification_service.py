# app/services/notification_service.py
from app.celery_worker import celery_app
from app.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """Potwierdzenia zamowien, wysylane przez kolejke Celery."""

    def send_order_notification(self, order_id: int, email: str, total: str = ""):
        send_order_confirmation_task.delay(order_id, email, total)


@celery_app.task(name="app.services.notification_service.send_order_confirmation_task", ignore_result=True)
def send_order_confirmation_task(order_id: int, email: str, total: str = ""):
    # bez integracji z mailingiem, tylko slad w logach
    logger.info(f"[NOTIFICATION] Order {order_id} confirmed for {email}, total {total}")
    return {"order_id": order_id, "email": email, "status": "sent"}
