import datetime

import pytest

import services.scheduler as jobs
from database.db import db
from database.models import WeatherAlert


@pytest.fixture
def bound(app, monkeypatch):
    monkeypatch.setattr(jobs, '_flask_app', app)
    return app


def test_jobs_are_registered(app, monkeypatch):
    monkeypatch.setattr(jobs, '_flask_app', None)
    monkeypatch.setattr(jobs.scheduler, 'start', lambda *a, **kw: None)
    try:
        jobs.init_scheduler(app)
        assert {job.id for job in jobs.scheduler.get_jobs()} == {'price_sync', 'weather_alert_prune'}
    finally:
        jobs.scheduler.remove_all_jobs()


def test_jobs_do_nothing_before_init(monkeypatch):
    monkeypatch.setattr(jobs, '_flask_app', None)
    assert jobs.sync_market_prices() is None
    assert jobs.prune_weather_alerts() is None


def test_prune_job_removes_stale_alerts(bound):
    with bound.app_context():
        db.session.add_all([
            WeatherAlert(location='Pune', alert_key='heat_warning',
                         created_at=datetime.datetime.utcnow() - datetime.timedelta(hours=25)),
            WeatherAlert(location='Delhi', alert_key='rain_alert'),
        ])
        db.session.commit()

    jobs.prune_weather_alerts()

    with bound.app_context():
        assert [a.location for a in WeatherAlert.query.all()] == ['Delhi']


def test_price_sync_swallows_ingestion_errors(bound, monkeypatch):
    from services.mandi_service import MandiService

    def explode(*args, **kwargs):
        raise RuntimeError("database gone")

    monkeypatch.setattr(MandiService, 'ingest_agmarknet', explode)
    jobs.sync_market_prices()
