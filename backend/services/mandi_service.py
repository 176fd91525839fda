"""
Mandi Service: Agmarknet commodity prices and stored price history.

Live prices come from the data.gov.in Agmarknet resource; every lookup
degrades to "Unavailable" instead of failing the caller. History lives in
the ``market_prices`` table (scheduler ingestion + manual admin entries).
"""

import datetime
import logging

import requests
from flask import current_app
from sqlalchemy.exc import IntegrityError

from database.db import db
from database.models import MarketPrice

logger = logging.getLogger('mandi_service')

UNAVAILABLE = "Unavailable"


def _to_price(value):
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_arrival_date(value):
    """Agmarknet uses dd/mm/yyyy; manual entries use ISO dates."""
    if isinstance(value, datetime.date):
        return value
    if not value:
        return None
    for fmt in ('%d/%m/%Y', '%Y-%m-%d'):
        try:
            return datetime.datetime.strptime(str(value)[:10], fmt).date()
        except ValueError:
            continue
    return None


class MandiService:
    AGMARKNET_URL = "https://api.data.gov.in/resource/{resource_id}"

    # Commodities pulled by the daily ingestion job
    TRACKED_COMMODITIES = ['Rice', 'Wheat', 'Maize', 'Cotton', 'Sugarcane', 'Tomato', 'Potato', 'Soybean', 'Onion']

    # Cost of cultivation per acre (₹)
    INVESTMENT_REQUIRED = {
        "Rice": 25000, "Wheat": 20000, "Maize": 22000, "Cotton": 30000,
        "Sugarcane": 45000, "Tomato": 35000, "Potato": 40000, "Soybean": 18000,
    }

    HIGH_DEMAND_PRICE = 3000

    # ──────────────────────────────────────────
    # LIVE AGMARKNET LOOKUP
    # ──────────────────────────────────────────

    @staticmethod
    def fetch_agmarknet_records(commodity, state=None, limit=10):
        """
        Raw records for one commodity, most recent first.
        Returns None when no API key is configured; network/HTTP errors propagate,
        and a body that is not a ``records`` list raises ValueError.
        """
        api_key = current_app.config.get('DATA_GOV_API_KEY')
        if not api_key:
            return None

        params = {
            'api-key': api_key,
            'format': 'json',
            'limit': limit,
            'filters[commodity]': commodity,
        }
        if state:
            params['filters[state]'] = state

        url = MandiService.AGMARKNET_URL.format(resource_id=current_app.config['DATA_GOV_RESOURCE_ID'])
        response = requests.get(url, params=params, timeout=current_app.config['HTTP_TIMEOUT_SECONDS'])
        response.raise_for_status()
        payload = response.json()
        records = payload.get('records', []) if isinstance(payload, dict) else None
        if not isinstance(records, list):
            raise ValueError("Unexpected Agmarknet payload shape")
        return [record for record in records if isinstance(record, dict)]

    @staticmethod
    def get_current_price(commodity):
        """
        Latest modal price for a commodity.
        Demand is "High" above ₹3000/quintal, else "Normal".
        """
        unavailable = {"current_price": UNAVAILABLE, "market_demand": UNAVAILABLE, "latest_market": "N/A"}
        try:
            records = MandiService.fetch_agmarknet_records(commodity)
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Agmarknet lookup failed for {commodity}: {e}")
            return unavailable

        if not records:
            return unavailable

        grouped = {}
        for record in records:
            grouped.setdefault(str(record.get('commodity', '')).lower(), []).append(record)

        matching = grouped.get(commodity.lower()) or records
        latest = matching[0]
        price = _to_price(latest.get('modal_price'))
        if price is None:
            return unavailable

        return {
            "current_price": round(price),
            "market_demand": "High" if price > MandiService.HIGH_DEMAND_PRICE else "Normal",
            "latest_market": latest.get('market') or latest.get('district') or latest.get('state') or "N/A",
        }

    # ──────────────────────────────────────────
    # STORED HISTORY
    # ──────────────────────────────────────────

    @staticmethod
    def price_trend(commodity):
        """Compare the 3 newest stored prices against the 3 before them (±5%)."""
        rows = (
            MarketPrice.query.filter(MarketPrice.commodity.ilike(commodity))
            .order_by(MarketPrice.arrival_date.desc())
            .limit(6)
            .all()
        )
        prices = [r.modal_price or r.max_price or 0 for r in rows]
        recent, older = prices[:3], prices[3:6]
        if not recent or not older:
            return "stable"

        recent_avg = sum(recent) / len(recent)
        older_avg = sum(older) / len(older)
        if recent_avg > older_avg * 1.05:
            return "rising"
        if recent_avg < older_avg * 0.95:
            return "falling"
        return "stable"

    @staticmethod
    def market_insights(crop_recommendations, top_n=3):
        """One insight per top-ranked crop, in ranking order."""
        insights = []
        for crop in crop_recommendations[:top_n]:
            name = crop['name']
            score = crop.get('suitability_score', 0)
            live = MandiService.get_current_price(name)
            insights.append({
                "crop_name": name,
                "current_price": live["current_price"],
                "market_demand": live["market_demand"],
                "latest_market": live["latest_market"],
                "price_trend": MandiService.price_trend(name),
                "profit_potential": "High" if score >= 80 else "Medium" if score >= 60 else "Low",
                "investment_required": MandiService.INVESTMENT_REQUIRED.get(name, 25000),
            })
        return insights

    @staticmethod
    def list_prices(crop=None, state=None, limit=50):
        """
        Newest prices with a per-row trend against the previous price of the
        same commodity at the same market (±2%), grouped by commodity.
        """
        query = MarketPrice.query
        if crop:
            query = query.filter(MarketPrice.commodity.ilike(f"%{crop}%"))
        if state:
            query = query.filter(MarketPrice.state.ilike(f"%{state}%"))
        rows = query.order_by(MarketPrice.arrival_date.desc(), MarketPrice.id.desc()).limit(limit).all()

        prices = []
        for index, row in enumerate(rows):
            previous = next(
                (p for p in rows[index + 1:] if p.commodity == row.commodity and p.market == row.market),
                None,
            )
            trend = "stable"
            change_percent = 0.0
            if previous and previous.modal_price:
                change_percent = ((row.modal_price or 0) - previous.modal_price) / previous.modal_price * 100
                if change_percent > 2:
                    trend = "up"
                elif change_percent < -2:
                    trend = "down"

            item = row.to_dict()
            item.update({
                "trend": trend,
                "change_percent": round(change_percent, 1),
                "change_amount": round((row.modal_price or 0) * change_percent / 100),
            })
            prices.append(item)

        grouped = {}
        for item in prices:
            grouped.setdefault(item['commodity'], []).append(item)

        modal = [p['modal_price'] or 0 for p in prices]
        stats = {
            "total_crops": len(grouped),
            "price_increases": sum(1 for p in prices if p['trend'] == 'up'),
            "price_decreases": sum(1 for p in prices if p['trend'] == 'down'),
            "avg_price": round(sum(modal) / len(modal)) if modal else 0,
            "highest_price": max(modal) if modal else 0,
            "lowest_price": min(modal) if modal else 0,
        }
        return {"prices": prices, "grouped_prices": grouped, "market_stats": stats}

    @staticmethod
    def record_price(data, source='manual'):
        """
        Insert or update a price keyed on (commodity, market, arrival_date).
        Returns the row, or None when the payload lacks the key fields.
        """
        commodity = (data.get('commodity') or '').strip()
        market = (data.get('market') or '').strip()
        arrival_date = _parse_arrival_date(data.get('arrival_date')) or datetime.date.today()
        if not commodity or not market:
            return None

        row = MarketPrice.query.filter_by(commodity=commodity, market=market, arrival_date=arrival_date).first()
        if row is None:
            row = MarketPrice(commodity=commodity, market=market, arrival_date=arrival_date)
            db.session.add(row)

        row.variety = data.get('variety') or row.variety
        row.district = data.get('district') or row.district
        row.state = data.get('state') or row.state
        row.min_price = _to_price(data.get('min_price'))
        row.max_price = _to_price(data.get('max_price'))
        row.modal_price = _to_price(data.get('modal_price'))
        row.unit = data.get('unit') or row.unit or 'quintal'
        row.source = source
        return row

    @staticmethod
    def ingest_agmarknet(commodities=None, per_commodity=100):
        """Pull live records into market_prices. Returns the number of rows written."""
        count = 0
        for commodity in commodities or MandiService.TRACKED_COMMODITIES:
            try:
                records = MandiService.fetch_agmarknet_records(commodity, limit=per_commodity)
            except (requests.RequestException, ValueError) as e:
                logger.error(f"Agmarknet ingestion failed for {commodity}: {e}")
                continue
            if records is None:
                logger.info("DATA_GOV_API_KEY not set, skipping Agmarknet ingestion")
                return 0

            for record in records:
                if MandiService.record_price(record, source='agmarknet') is not None:
                    count += 1
            try:
                db.session.commit()
            except IntegrityError as e:
                db.session.rollback()
                logger.error(f"Duplicate price rows for {commodity}: {e}")

        logger.info(f"Agmarknet ingestion complete: {count} records upserted")
        return count
