"""
Background Scheduler: Periodic Jobs

Runs background tasks inside the Flask process using APScheduler:
- Agmarknet price ingestion (daily)
- Weather alert pruning (hourly)
"""

import logging
from apscheduler.schedulers.background import BackgroundScheduler

logger = logging.getLogger('scheduler')

# The scheduler instance
scheduler = BackgroundScheduler()

# Flask app reference (set during init)
_flask_app = None


def init_scheduler(app):
    """
    Initialize and start the background scheduler.
    Must be called after app creation.
    """
    global _flask_app
    _flask_app = app

    # Job 1: Pull mandi prices from Agmarknet (daily at 6 PM)
    scheduler.add_job(
        func=sync_market_prices,
        trigger='cron',
        hour=18,
        id='price_sync',
        name='Agmarknet Price Sync',
        replace_existing=True,
    )

    # Job 2: Drop weather alerts past the retention window (every hour)
    scheduler.add_job(
        func=prune_weather_alerts,
        trigger='interval',
        hours=1,
        id='weather_alert_prune',
        name='Weather Alert Pruning',
        replace_existing=True,
    )

    scheduler.start()
    logger.info("Background scheduler started with 2 jobs")


def shutdown_scheduler():
    """Gracefully shut down the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler shut down")


def sync_market_prices():
    """Upsert today's Agmarknet records for the tracked commodities."""
    if not _flask_app:
        return

    with _flask_app.app_context():
        try:
            from services.mandi_service import MandiService
            MandiService.ingest_agmarknet()
        except Exception as e:
            logger.error(f"Price sync job failed: {e}")


def prune_weather_alerts():
    """Delete weather alerts older than 24 hours across all locations."""
    if not _flask_app:
        return

    with _flask_app.app_context():
        try:
            from database.db import db
            from services.weather_service import WeatherService

            deleted = WeatherService.prune_alerts()
            db.session.commit()
            logger.info(f"Weather alert pruning: {deleted} alerts removed")
        except Exception as e:
            logger.error(f"Weather alert pruning failed: {e}")
