"""Statistics Service: dashboard aggregation over student profiles.

This service provides:
- Registration rates per cohort against enrolment totals
- Course, blood type, star sign, prefecture and personality-type charts
- Word clouds from hobbies, circles, likes and dislikes

Endpoints:
- GET /health - Health check
- GET /ready - Readiness check
- GET /statistics - Aggregated dashboard data
"""

from .aggregation import (
    AggregationEngine,
    AggregationResult,
    CategoryCount,
    CohortCount,
    WordFrequency,
    UNSPECIFIED,
    calculate_percentage,
    compute_cohort_statistics,
    compute_category_distribution,
    compute_course_by_cohort,
    extract_prefecture,
    normalize_personality_code,
    build_word_frequency,
)
from .config import StatisticsConfig, DEFAULT_COHORT_TOTALS
from .handler import (
    StatisticsHandler,
    ProfileRequired,
    app,
)

__all__ = [
    "AggregationEngine",
    "AggregationResult",
    "CategoryCount",
    "CohortCount",
    "WordFrequency",
    "UNSPECIFIED",
    "calculate_percentage",
    "compute_cohort_statistics",
    "compute_category_distribution",
    "compute_course_by_cohort",
    "extract_prefecture",
    "normalize_personality_code",
    "build_word_frequency",
    "StatisticsConfig",
    "DEFAULT_COHORT_TOTALS",
    "StatisticsHandler",
    "ProfileRequired",
    "app",
]
