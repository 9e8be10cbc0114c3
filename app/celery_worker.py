# app/celery_worker.py
from celery import Celery

from app.utils.settings import (
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    CELERY_TASK_ALWAYS_EAGER,
    CART_CLEANUP_INTERVAL_SECONDS,
)

celery_app = Celery(
    "shop",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# WAŻNE: Explicite importuj taski, żeby Celery je zarejestrował
celery_app.conf.imports = (
    "app.tasks.expire",
    "app.services.notification_service",
)

# Konfiguracja beat schedule
celery_app.conf.beat_schedule = {
    "expire-carts": {
        "task": "app.tasks.expire.expire_carts_task",
        "schedule": float(CART_CLEANUP_INTERVAL_SECONDS),
    },
}

celery_app.conf.timezone = "UTC"
# testy / dev bez brokera
celery_app.conf.task_always_eager = CELERY_TASK_ALWAYS_EAGER
