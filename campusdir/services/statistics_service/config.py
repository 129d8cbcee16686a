"""Statistics Service configuration and reference data.

Cohort totals are the department's enrolment figures per year group. They
are reference data maintained by hand, never derived from registrations.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Mapping

from campusdir.shared.models import Specialty

logger = logging.getLogger(__name__)


# Enrolled students per cohort
DEFAULT_COHORT_TOTALS: Dict[str, int] = {
    "B1": 125,
    "B2": 128,
    "B3": 132,
    "B4": 130,
}

# Department names shown on dashboard charts
DEPARTMENT_NAMES: Dict[str, str] = {
    Specialty.DENKI_ENERGY_CONTROL.value: "電気・制御システム工学",
    Specialty.DENSHI_DEVICE_OPTICAL.value: "電子デバイス・光学",
    Specialty.JOHO_COMMUNICATION.value: "情報・通信システム工学",
    Specialty.KIKAI_SYSTEM.value: "機械システム工学",
    Specialty.BUSSHITSU_MATERIALS.value: "物質材料工学",
    Specialty.LEGACY_EEI.value: "電気電子情報工学コース（旧）",
}

DEPARTMENT_COLORS: Dict[str, str] = {
    Specialty.DENKI_ENERGY_CONTROL.value: "#4299E1",   # blue
    Specialty.DENSHI_DEVICE_OPTICAL.value: "#48BB78",  # green
    Specialty.JOHO_COMMUNICATION.value: "#F6AD55",     # orange
    Specialty.KIKAI_SYSTEM.value: "#9F7AEA",           # purple
    Specialty.BUSSHITSU_MATERIALS.value: "#F56565",    # red
    Specialty.LEGACY_EEI.value: "#718096",             # gray
}

FALLBACK_COLOR = "#CBD5E0"


def parse_cohort_totals(raw: str) -> Dict[str, int]:
    """Parse ``"B1=125,B2=128"`` into a cohort table.

    Malformed entries are skipped with a warning; a negative total is
    clamped to zero.
    """
    totals: Dict[str, int] = {}
    for entry in raw.split(","):
        label, sep, value = entry.partition("=")
        label = label.strip()
        if not sep or not label:
            continue
        try:
            totals[label] = max(int(value.strip()), 0)
        except ValueError:
            logger.warning(
                "COHORT_TOTAL_INVALID",
                extra={"cohort": label, "value": value}
            )
    return totals


@dataclass(frozen=True)
class StatisticsConfig:
    """Configuration for the statistics dashboard."""

    cohort_totals: Mapping[str, int] = field(
        default_factory=lambda: dict(DEFAULT_COHORT_TOTALS)
    )

    # Word cloud and ranking lengths
    word_cloud_limit: int = 30
    prefecture_limit: int = 10

    department_names: Mapping[str, str] = field(
        default_factory=lambda: dict(DEPARTMENT_NAMES)
    )
    department_colors: Mapping[str, str] = field(
        default_factory=lambda: dict(DEPARTMENT_COLORS)
    )

    @classmethod
    def from_env(cls) -> "StatisticsConfig":
        """Create config from environment variables.

        Environment variables:
            COHORT_TOTALS: Cohort table, e.g. "B1=125,B2=128,B3=132,B4=130"
            WORD_CLOUD_LIMIT: Words per cloud (default 30)
            PREFECTURE_LIMIT: Prefectures ranked (default 10)
        """
        raw_totals = os.getenv("COHORT_TOTALS")
        cohort_totals = (
            parse_cohort_totals(raw_totals) if raw_totals is not None
            else dict(DEFAULT_COHORT_TOTALS)
        )
        return cls(
            cohort_totals=cohort_totals,
            word_cloud_limit=int(os.getenv("WORD_CLOUD_LIMIT", "30")),
            prefecture_limit=int(os.getenv("PREFECTURE_LIMIT", "10")),
        )
