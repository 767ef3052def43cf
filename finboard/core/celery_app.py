from celery import Celery
from celery.schedules import crontab
from finboard.core.config import settings


def make_celery() -> Celery:
    celery = Celery(
        "finboard",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
        include=[
            "finboard.tasks.refresh",
        ],
    )

    celery.conf.update(
        timezone=settings.CELERY_TIMEZONE,
        enable_utc=True,
        broker_connection_retry_on_startup=True,
        worker_concurrency=settings.CELERY_WORKER_CONCURRENCY,
    )

    if settings.CELERY_BEAT_ENABLED:
        celery.conf.beat_schedule = {
            'refresh-holding-prices-daily': {
                'task': 'finboard.tasks.refresh.refresh_prices_task',
                'schedule': crontab(minute='30', hour='21', day_of_week='mon-fri'),
            },
        }

    return celery


celery = make_celery()
