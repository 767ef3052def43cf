from finboard.core.celery_app import celery
from finboard.core.logger import logger
from finboard.managers.cache_manager import CacheManager
from finboard.services.market_data import refresh_all_users_prices
from finboard.core.db import SessionLocal


@celery.task(name="finboard.tasks.refresh.refresh_prices_task")
def refresh_prices_task():
    logger.info("Starting scheduled price refresh.")

    db = SessionLocal()

    try:
        refreshed = refresh_all_users_prices(db)
        CacheManager(prefix="metrics").clear()
        logger.info("Price refresh complete.")
        return refreshed
    except Exception as e:
        logger.error(f"Price refresh failed: {e}", exc_info=True)
    finally:
        db.close()
