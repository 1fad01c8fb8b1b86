"""Recommendation engine: factors + risk level -> prioritized, non-diagnostic advice."""

from __future__ import annotations

from collections.abc import Sequence

from hra.domains.survey.domain_logic.survey_models import Recommendation, RecommendationSet

MAX_RECOMMENDATIONS = 5

# "middle age" intentionally has no entry.
RECOMMENDATIONS: dict[str, Recommendation] = {
    "smoking": Recommendation(
        primary="Quit smoking",
        details=(
            "Consider nicotine replacement therapy or consult a healthcare provider "
            "for smoking cessation programs"
        ),
        priority=1,
        icon="cigarette-off",
    ),
    "poor diet": Recommendation(
        primary="Improve your diet",
        details="Reduce sugar intake, increase vegetables and whole grains, limit processed foods",
        priority=2,
        icon="apple",
    ),
    "low exercise": Recommendation(
        primary="Increase physical activity",
        details="Start with 30 minutes of walking daily, gradually increase intensity",
        priority=3,
        icon="footprints",
    ),
    "excessive alcohol": Recommendation(
        primary="Reduce alcohol consumption",
        details="Limit to moderate drinking or consider abstaining. Seek support if needed",
        priority=2,
        icon="wine-off",
    ),
    "poor sleep": Recommendation(
        primary="Improve sleep habits",
        details="Aim for 7-8 hours of quality sleep. Maintain consistent sleep schedule",
        priority=4,
        icon="moon",
    ),
    "high stress": Recommendation(
        primary="Manage stress levels",
        details="Practice relaxation techniques, consider meditation or yoga, take regular breaks",
        priority=4,
        icon="brain",
    ),
    "obesity": Recommendation(
        primary="Work towards healthy weight",
        details="Consult healthcare provider for personalized weight management plan",
        priority=2,
        icon="scale",
    ),
    "overweight": Recommendation(
        primary="Consider weight management",
        details="Focus on balanced diet and regular exercise for gradual weight loss",
        priority=5,
        icon="scale",
    ),
    "advanced age": Recommendation(
        primary="Regular health checkups",
        details="Schedule regular screenings and preventive care appointments",
        priority=6,
        icon="stethoscope",
    ),
}

GENERAL_RECOMMENDATIONS: list[Recommendation] = [
    Recommendation(
        primary="Stay hydrated",
        details="Drink at least 8 glasses of water daily",
        priority=7,
        icon="droplet",
    ),
    Recommendation(
        primary="Regular health checkups",
        details="Schedule annual wellness visits with your healthcare provider",
        priority=8,
        icon="calendar-check",
    ),
]

HIGH_RISK_LEVELS = frozenset({"high", "very high"})


def generate_recommendations(factors: Sequence[str], risk_level: str) -> RecommendationSet:
    """Build the top recommendations for a factor list.

    Factor advice is deduplicated by headline and stable-sorted by priority.
    High and very high risk add general wellness advice unless the same
    headline is already present.
    The result is capped at ``MAX_RECOMMENDATIONS``.
    """
    detailed: list[Recommendation] = []
    for factor in factors:
        rec = RECOMMENDATIONS.get(factor)
        if rec is not None and all(r.primary != rec.primary for r in detailed):
            detailed.append(Recommendation(
                primary=rec.primary,
                details=rec.details,
                priority=rec.priority,
                icon=rec.icon,
                factor=factor,
            ))

    detailed.sort(key=lambda r: r.priority)

    if risk_level in HIGH_RISK_LEVELS:
        seen = {r.primary for r in detailed}
        for rec in GENERAL_RECOMMENDATIONS:
            if rec.primary not in seen:
                detailed.append(rec)
                seen.add(rec.primary)

    top = detailed[:MAX_RECOMMENDATIONS]
    return RecommendationSet(
        recommendations=[r.primary for r in top],
        detailed_recommendations=top,
    )
