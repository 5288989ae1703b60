"""
Expat RRS - Standardized Score View
===================================
Maps a RetirementResult onto the flat score shape the web UI renders.
"""

from models import RetirementResult, ScoreRecommendation, StandardizedScore


def to_standardized_score(result: RetirementResult) -> StandardizedScore:
    """
    Project a full result onto {overall, category, breakdown, recommendations}.

    The breakdown holds every component score by name; each recommendation
    carries its impact level as its priority label.
    """
    return StandardizedScore(
        overall=result.score,
        category=result.category,
        breakdown=result.component_scores.model_dump(),
        recommendations=[
            ScoreRecommendation(
                title=rec.title,
                description=rec.description,
                impact=rec.impact,
                priority=rec.impact,
            )
            for rec in result.recommendations
        ],
    )
