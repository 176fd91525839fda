"""
Recommendation Service: soil health, crop suitability, fertilizer plan.

Pipeline behind POST /api/recommend:
  soil health → crop scoring → fertilizer deltas → risk → market insight
Everything except the market lookup is a pure function of the inputs.
"""

import logging
import math

from database.db import db
from database.models import SoilAnalysis
from services.mandi_service import MandiService

logger = logging.getLogger('recommendation_service')


class RecommendationService:
    # Per-crop agronomic requirements. Nutrients in kg/ha, rainfall in mm/year.
    CROP_DATABASE = [
        {
            "name": "Rice", "name_hi": "चावल",
            "requirements": {
                "ph": {"min": 5.5, "max": 7.0, "optimal": 6.2},
                "nitrogen": {"min": 120, "optimal": 180},
                "phosphorus": {"min": 15, "optimal": 25},
                "potassium": {"min": 100, "optimal": 150},
                "rainfall": {"min": 1000, "optimal": 1500},
                "temperature": {"min": 20, "max": 35, "optimal": 28},
            },
            "seasons": ["kharif"],
            "yield_potential": "High", "market_demand": "Stable",
            "water_requirement": "High", "duration": 120,
        },
        {
            "name": "Wheat", "name_hi": "गेहूं",
            "requirements": {
                "ph": {"min": 6.0, "max": 7.5, "optimal": 6.8},
                "nitrogen": {"min": 100, "optimal": 150},
                "phosphorus": {"min": 20, "optimal": 30},
                "potassium": {"min": 80, "optimal": 120},
                "rainfall": {"min": 300, "optimal": 600},
                "temperature": {"min": 15, "max": 25, "optimal": 20},
            },
            "seasons": ["rabi"],
            "yield_potential": "High", "market_demand": "High",
            "water_requirement": "Medium", "duration": 150,
        },
        {
            "name": "Maize", "name_hi": "मक्का",
            "requirements": {
                "ph": {"min": 6.0, "max": 7.0, "optimal": 6.5},
                "nitrogen": {"min": 150, "optimal": 200},
                "phosphorus": {"min": 25, "optimal": 35},
                "potassium": {"min": 120, "optimal": 180},
                "rainfall": {"min": 500, "optimal": 800},
                "temperature": {"min": 18, "max": 32, "optimal": 25},
            },
            "seasons": ["kharif", "rabi"],
            "yield_potential": "High", "market_demand": "Growing",
            "water_requirement": "Medium", "duration": 100,
        },
        {
            "name": "Cotton", "name_hi": "कपास",
            "requirements": {
                "ph": {"min": 5.8, "max": 8.0, "optimal": 6.5},
                "nitrogen": {"min": 100, "optimal": 140},
                "phosphorus": {"min": 20, "optimal": 30},
                "potassium": {"min": 150, "optimal": 200},
                "rainfall": {"min": 500, "optimal": 750},
                "temperature": {"min": 20, "max": 35, "optimal": 28},
            },
            "seasons": ["kharif"],
            "yield_potential": "Medium", "market_demand": "High",
            "water_requirement": "Medium", "duration": 180,
        },
        {
            "name": "Sugarcane", "name_hi": "गन्ना",
            "requirements": {
                "ph": {"min": 6.0, "max": 7.5, "optimal": 6.8},
                "nitrogen": {"min": 200, "optimal": 280},
                "phosphorus": {"min": 25, "optimal": 40},
                "potassium": {"min": 150, "optimal": 220},
                "rainfall": {"min": 1000, "optimal": 1500},
                "temperature": {"min": 20, "max": 35, "optimal": 30},
            },
            "seasons": ["annual"],
            "yield_potential": "Very High", "market_demand": "Stable",
            "water_requirement": "Very High", "duration": 365,
        },
        {
            "name": "Tomato", "name_hi": "टमाटर",
            "requirements": {
                "ph": {"min": 6.0, "max": 7.0, "optimal": 6.5},
                "nitrogen": {"min": 80, "optimal": 120},
                "phosphorus": {"min": 30, "optimal": 50},
                "potassium": {"min": 100, "optimal": 150},
                "rainfall": {"min": 400, "optimal": 600},
                "temperature": {"min": 18, "max": 30, "optimal": 24},
            },
            "seasons": ["rabi", "summer"],
            "yield_potential": "High", "market_demand": "Very High",
            "water_requirement": "Medium", "duration": 90,
        },
        {
            "name": "Potato", "name_hi": "आलू",
            "requirements": {
                "ph": {"min": 5.5, "max": 6.5, "optimal": 6.0},
                "nitrogen": {"min": 100, "optimal": 150},
                "phosphorus": {"min": 25, "optimal": 40},
                "potassium": {"min": 120, "optimal": 180},
                "rainfall": {"min": 400, "optimal": 600},
                "temperature": {"min": 15, "max": 25, "optimal": 20},
            },
            "seasons": ["rabi"],
            "yield_potential": "High", "market_demand": "High",
            "water_requirement": "Medium", "duration": 90,
        },
        {
            "name": "Soybean", "name_hi": "सोयाबीन",
            "requirements": {
                "ph": {"min": 6.0, "max": 7.0, "optimal": 6.5},
                "nitrogen": {"min": 50, "optimal": 80},  # fixes its own nitrogen
                "phosphorus": {"min": 20, "optimal": 35},
                "potassium": {"min": 100, "optimal": 150},
                "rainfall": {"min": 600, "optimal": 900},
                "temperature": {"min": 20, "max": 30, "optimal": 25},
            },
            "seasons": ["kharif"],
            "yield_potential": "Medium", "market_demand": "Growing",
            "water_requirement": "Medium", "duration": 100,
        },
    ]

    # kg/acre at a perfect suitability score
    BASE_YIELDS = {
        "Rice": 2500, "Wheat": 3000, "Maize": 3500, "Cotton": 1200,
        "Sugarcane": 45000, "Tomato": 25000, "Potato": 20000, "Soybean": 1800,
    }

    MITIGATION_STRATEGIES = [
        "Regular soil testing every 6 months",
        "Implement precision fertilizer application",
        "Consider soil amendments based on pH",
        "Use organic matter to improve soil structure",
    ]

    TOP_CROPS = 6

    # ──────────────────────────────────────────
    # SOIL HEALTH
    # ──────────────────────────────────────────

    @staticmethod
    def assess_soil_health(nitrogen, phosphorus, potassium, ph):
        """Returns (label, score, issues). Score starts at 100 and loses points per problem."""
        score = 100
        issues = []

        if nitrogen < 150:
            issues.append("Low nitrogen content")
            score -= 15
        elif nitrogen > 400:
            issues.append("Excessive nitrogen - risk of lodging")
            score -= 10

        if phosphorus < 15:
            issues.append("Phosphorus deficiency")
            score -= 20
        elif phosphorus > 50:
            issues.append("High phosphorus - may affect micronutrient uptake")
            score -= 5

        if potassium < 120:
            issues.append("Potassium deficiency")
            score -= 15
        elif potassium > 300:
            issues.append("High potassium levels")
            score -= 5

        if ph < 5.5:
            issues.append("Highly acidic soil - nutrient availability affected")
            score -= 25
        elif ph > 8.5:
            issues.append("Highly alkaline soil - micronutrient deficiency risk")
            score -= 20
        elif ph < 6.0 or ph > 8.0:
            issues.append("pH slightly outside optimal range")
            score -= 10

        if score >= 85:
            label = "Excellent"
        elif score >= 70:
            label = "Good"
        elif score >= 50:
            label = "Fair"
        else:
            label = "Poor"
        return label, score, issues

    # ──────────────────────────────────────────
    # CROP SCORING
    # ──────────────────────────────────────────

    @staticmethod
    def parameter_score(value, requirement):
        """
        0-100 closeness to the optimum. The tolerance is a quarter of the
        min-max range; ranges with no upper bound use half the min-optimal gap.
        Every tolerance step away from the optimum costs 20 points.
        """
        if 'max' in requirement:
            tolerance = (requirement['max'] - requirement['min']) / 4
        else:
            tolerance = (requirement['optimal'] - requirement['min']) / 2
        distance = abs(value - requirement['optimal'])
        return max(0.0, 100 - (distance / tolerance) * 20)

    @staticmethod
    def nutrient_score(value, requirement):
        """100 at or above optimal, 60-100 between min and optimal, decaying below min."""
        if value >= requirement['optimal']:
            return 100.0
        if value >= requirement['min']:
            ratio = (value - requirement['min']) / (requirement['optimal'] - requirement['min'])
            return 60 + ratio * 40
        return max(0.0, 60 - (requirement['min'] - value) * 0.5)

    @staticmethod
    def score_crop(crop, params):
        req = crop['requirements']
        score = 100.0
        factors = []

        ph_score = RecommendationService.parameter_score(params['ph'], req['ph'])
        score *= ph_score / 100
        if ph_score < 70:
            factors.append(f"pH {'highly' if ph_score < 50 else 'moderately'} unsuitable")

        n_score = RecommendationService.nutrient_score(params['nitrogen'], req['nitrogen'])
        p_score = RecommendationService.nutrient_score(params['phosphorus'], req['phosphorus'])
        k_score = RecommendationService.nutrient_score(params['potassium'], req['potassium'])
        score *= (n_score + p_score + k_score) / 300
        if n_score < 70:
            factors.append("Nitrogen levels suboptimal")
        if p_score < 70:
            factors.append("Phosphorus levels suboptimal")
        if k_score < 70:
            factors.append("Potassium levels suboptimal")

        season = params.get('season') or 'all'
        if season != 'all' and season not in crop['seasons']:
            score *= 0.3
            factors.append("Not ideal season for this crop")

        if params.get('rainfall') is not None:
            rain_score = RecommendationService.parameter_score(params['rainfall'], req['rainfall'])
            score *= rain_score / 100
            if rain_score < 70:
                factors.append("Rainfall not optimal")

        if params.get('temperature') is not None:
            temp_score = RecommendationService.parameter_score(params['temperature'], req['temperature'])
            score *= temp_score / 100
            if temp_score < 70:
                factors.append("Temperature not optimal")

        return {
            "name": crop['name'],
            "name_hi": crop['name_hi'],
            "suitability_score": round(score),
            "confidence": "High" if score >= 80 else "Medium" if score >= 60 else "Low",
            "yield_potential": crop['yield_potential'],
            "market_demand": crop['market_demand'],
            "water_requirement": crop['water_requirement'],
            "duration_days": crop['duration'],
            "limiting_factors": factors,
            "expected_yield_per_acre": round(RecommendationService.BASE_YIELDS.get(crop['name'], 2000) * score / 100),
        }

    @staticmethod
    def recommend_crops(params):
        """Every crop scored against the inputs, best first, top 6."""
        scored = [RecommendationService.score_crop(c, params) for c in RecommendationService.CROP_DATABASE]
        scored.sort(key=lambda c: c['suitability_score'], reverse=True)
        return scored[:RecommendationService.TOP_CROPS]

    # ──────────────────────────────────────────
    # FERTILIZER PLAN
    # ──────────────────────────────────────────

    @staticmethod
    def fertilizer_plan(nitrogen, phosphorus, potassium, ph):
        """Only out-of-range nutrients produce an entry; balanced soil gives an empty list."""
        plan = []

        if nitrogen < 150:
            urea = math.ceil((150 - nitrogen) / 46 * 100)  # urea is 46% N
            plan.append({
                "nutrient": "Nitrogen",
                "fertilizer": "Urea",
                "quantity": f"{urea} kg/acre",
                "timing": "Split application - 50% at sowing, 25% at tillering, 25% at flowering",
                "priority": "High",
            })
        elif nitrogen > 300:
            plan.append({
                "nutrient": "Nitrogen",
                "fertilizer": "None",
                "quantity": "Reduce nitrogen application",
                "timing": "Skip nitrogen fertilizer this season",
                "priority": "Important",
            })

        if phosphorus < 20:
            dap = math.ceil((20 - phosphorus) / 46 * 100)  # DAP is 46% P2O5
            plan.append({
                "nutrient": "Phosphorus",
                "fertilizer": "DAP (Diammonium Phosphate)",
                "quantity": f"{dap} kg/acre",
                "timing": "Apply at sowing time",
                "priority": "High",
            })

        if potassium < 120:
            mop = math.ceil((120 - potassium) / 60 * 100)  # MOP is 60% K2O
            plan.append({
                "nutrient": "Potassium",
                "fertilizer": "MOP (Muriate of Potash)",
                "quantity": f"{mop} kg/acre",
                "timing": "Apply at sowing or early growth stage",
                "priority": "Medium",
            })

        if ph < 6.0:
            plan.append({
                "nutrient": "pH Correction",
                "fertilizer": "Agricultural Lime",
                "quantity": f"{math.ceil((6.5 - ph) * 500)} kg/acre",
                "timing": "Apply 2-3 weeks before sowing",
                "priority": "High",
            })
        elif ph > 8.0:
            plan.append({
                "nutrient": "pH Correction",
                "fertilizer": "Gypsum",
                "quantity": f"{math.ceil((ph - 7.5) * 400)} kg/acre",
                "timing": "Apply and incorporate before sowing",
                "priority": "High",
            })

        return plan

    # ──────────────────────────────────────────
    # RISK
    # ──────────────────────────────────────────

    @staticmethod
    def assess_risk(params, issues):
        risks = []
        overall = "Low"

        if len(issues) > 3:
            overall = "High"
            risks.append("Multiple soil health issues detected")
        elif len(issues) > 1:
            overall = "Medium"

        if params['ph'] < 5.5:
            risks.append("Aluminum toxicity risk in acidic soil")
            risks.append("Reduced nutrient availability")
        elif params['ph'] > 8.5:
            risks.append("Iron and zinc deficiency risk")
            risks.append("Reduced phosphorus availability")

        if params['nitrogen'] > 300 and params['potassium'] < 150:
            risks.append("N-K imbalance may cause lodging")

        rainfall = params.get('rainfall')
        if rainfall is not None and rainfall < 300:
            risks.append("Drought stress risk - consider drought-tolerant varieties")
            overall = "Medium" if overall == "Low" else "High"

        return {
            "overall_risk": overall,
            "risk_factors": risks,
            "mitigation_strategies": list(RecommendationService.MITIGATION_STRATEGIES),
        }

    # ──────────────────────────────────────────
    # FULL PIPELINE
    # ──────────────────────────────────────────

    @staticmethod
    def get_recommendation(params, user_id=None):
        """
        params: nitrogen, phosphorus, potassium, ph (floats) plus optional
        location, season, rainfall, temperature, field_id.
        """
        n, p, k, ph = params['nitrogen'], params['phosphorus'], params['potassium'], params['ph']

        soil_health, soil_score, issues = RecommendationService.assess_soil_health(n, p, k, ph)
        crops = RecommendationService.recommend_crops(params)
        fertilizers = RecommendationService.fertilizer_plan(n, p, k, ph)
        risk = RecommendationService.assess_risk(params, issues)
        insights = MandiService.market_insights(crops)

        RecommendationService._save_analysis(params, crops, fertilizers, user_id)

        return {
            "soil_health": soil_health,
            "soil_health_score": soil_score,
            "issues": issues,
            "crop_recommendations": crops,
            "fertilizer_recommendations": fertilizers,
            "risk_assessment": risk,
            "market_insights": insights,
            "soil_parameters": {
                "nitrogen": n, "phosphorus": p, "potassium": k, "ph": ph,
                "location": params.get('location'), "season": params.get('season'),
                "rainfall": params.get('rainfall'), "temperature": params.get('temperature'),
            },
        }

    @staticmethod
    def _save_analysis(params, crops, fertilizers, user_id):
        try:
            analysis = SoilAnalysis(
                user_id=user_id,
                field_id=params.get('field_id'),
                nitrogen=params['nitrogen'],
                phosphorus=params['phosphorus'],
                potassium=params['potassium'],
                ph=params['ph'],
                location=params.get('location'),
                season=params.get('season'),
                rainfall=params.get('rainfall'),
                temperature=params.get('temperature'),
                suitable_crops=[c['name'] for c in crops],
                recommendations=fertilizers,
            )
            db.session.add(analysis)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f"Failed to store soil analysis: {e}")
