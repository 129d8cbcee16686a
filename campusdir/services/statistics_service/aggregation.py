"""Aggregation engine for the statistics dashboard.

Turns a snapshot of student records into chart-ready statistics:
- Registration rate per cohort against known enrolment totals
- Distributions by course, blood type, star sign, prefecture and
  personality-type code
- Word clouds from the free-text hobby/circle/likes/dislikes fields

Every function here is pure over its input. Records are read, never
modified, and noisy values are normalised or passed through rather than
raised on.
"""
import logging
import math
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from .config import FALLBACK_COLOR, StatisticsConfig

logger = logging.getLogger(__name__)

# Label for records that leave a field empty
UNSPECIFIED = "Not specified"

DEFAULT_WORD_CLOUD_LIMIT = 30

# Comma variants, middle dot, slash variants, whitespace
WORD_DELIMITERS = re.compile(r"[,、，・/／\s]+")

# Shortest run ending in 都, 道, 府 or 県. Names that contain one of the
# suffixes themselves are listed first so 京都府 does not stop at 京都.
PREFECTURE_PATTERN = re.compile(r"北海道|東京都|京都府|大阪府|[^\s\d]+?[都道府県]")

PERSONALITY_CODE_PATTERN = re.compile(r"^[EI][NS][FT][JP]$")

# Record attribute -> word cloud key
WORD_CLOUD_FIELDS: Dict[str, str] = {
    "hobby": "hobbies",
    "circle": "circles",
    "likes": "likes",
    "dislikes": "dislikes",
}

KeyExtractor = Callable[[Any], Optional[str]]


@dataclass(frozen=True)
class CategoryCount:
    """Count of records sharing one label.

    ``name`` and ``color`` are only set for course entries.
    """
    label: str
    count: int
    percentage: int
    name: Optional[str] = None
    color: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"label": self.label}
        if self.name is not None:
            result["name"] = self.name
        if self.color is not None:
            result["color"] = self.color
        result["count"] = self.count
        result["percentage"] = self.percentage
        return result


@dataclass(frozen=True)
class CohortCount:
    """Registrations in one cohort against its enrolment total."""
    label: str
    registered_count: int
    total_count: int
    percentage: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "registeredCount": self.registered_count,
            "totalCount": self.total_count,
            "percentage": self.percentage,
        }


@dataclass(frozen=True)
class WordFrequency:
    """One word cloud entry."""
    text: str
    value: int

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "value": self.value}


@dataclass(frozen=True)
class AggregationResult:
    """Statistics computed from one record snapshot.

    Recomputed on every request; never persisted.
    """
    total_students: int
    by_cohort: List[CohortCount] = field(default_factory=list)
    by_course: List[CategoryCount] = field(default_factory=list)
    by_course_and_cohort: Dict[str, List[CategoryCount]] = field(default_factory=dict)
    by_blood_type: List[CategoryCount] = field(default_factory=list)
    by_prefecture: List[CategoryCount] = field(default_factory=list)
    by_star_sign: List[CategoryCount] = field(default_factory=list)
    by_personality_type: List[CategoryCount] = field(default_factory=list)
    word_clouds: Dict[str, List[WordFrequency]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Serialise to the shape the dashboard charts consume."""
        return {
            "totalStudents": self.total_students,
            "byCohort": [c.to_dict() for c in self.by_cohort],
            "byCourse": [c.to_dict() for c in self.by_course],
            "byCourseAndCohort": {
                cohort: [c.to_dict() for c in courses]
                for cohort, courses in self.by_course_and_cohort.items()
            },
            "byBloodType": [c.to_dict() for c in self.by_blood_type],
            "byPrefecture": [c.to_dict() for c in self.by_prefecture],
            "byStarSign": [c.to_dict() for c in self.by_star_sign],
            "byPersonalityType": [c.to_dict() for c in self.by_personality_type],
            "wordClouds": {
                key: [w.to_dict() for w in words]
                for key, words in self.word_clouds.items()
            },
        }


def _field(record: Any, name: str) -> Any:
    """Read a field from a StudentRecord or a plain mapping."""
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def _label(value: Any) -> str:
    if value is None:
        return UNSPECIFIED
    if isinstance(value, str):
        return value if value.strip() else UNSPECIFIED
    return str(value)


def calculate_percentage(count: int, total: int) -> int:
    """Return ``count / total`` as a whole percentage, rounding half up.

    A zero or negative total yields 0.
    """
    if total <= 0:
        return 0
    return int(math.floor(count / total * 100 + 0.5))


def compute_cohort_statistics(
    records: Iterable[Any],
    known_cohort_totals: Optional[Mapping[str, int]],
) -> List[CohortCount]:
    """Count registrations per cohort in reference-table order.

    Args:
        records: Student record snapshot
        known_cohort_totals: Cohort label -> enrolled students

    Returns:
        One entry per cohort in the table, including cohorts without
        registrations. Records in cohorts missing from the table are not
        reported here.
    """
    if not known_cohort_totals:
        return []

    registered = Counter(_label(_field(r, "cohort")) for r in records)

    results = []
    for label, total in known_cohort_totals.items():
        total_count = total if isinstance(total, int) and total > 0 else 0
        count = registered.get(label, 0)
        results.append(CohortCount(
            label=label,
            registered_count=count,
            total_count=total_count,
            percentage=calculate_percentage(count, total_count),
        ))
    return results


def compute_category_distribution(
    records: Iterable[Any],
    key_extractor: KeyExtractor,
    *,
    total: Optional[int] = None,
    sort_by_count: bool = False,
    exclude: Sequence[str] = (),
    limit: Optional[int] = None,
) -> List[CategoryCount]:
    """Group records by a key and count each group.

    Args:
        records: Student record snapshot
        key_extractor: Returns the group label for a record. None or blank
            labels are grouped as UNSPECIFIED; unknown labels form their
            own group.
        total: Percentage denominator (default: number of records)
        sort_by_count: Order by descending count; ties keep first-seen order
        exclude: Labels to leave out of the result
        limit: Keep only the first ``limit`` groups after ordering

    Returns:
        List of CategoryCount, first-seen order unless sorted
    """
    records = list(records)
    counts: Dict[str, int] = {}
    for record in records:
        label = _label(key_extractor(record))
        if label in exclude:
            continue
        counts[label] = counts.get(label, 0) + 1

    denominator = len(records) if total is None else total
    items = list(counts.items())
    if sort_by_count:
        items.sort(key=lambda item: item[1], reverse=True)
    if limit is not None:
        items = items[:limit]

    return [
        CategoryCount(
            label=label,
            count=count,
            percentage=calculate_percentage(count, denominator),
        )
        for label, count in items
    ]


def compute_course_by_cohort(records: Iterable[Any]) -> Dict[str, List[CategoryCount]]:
    """Course distribution within each cohort.

    Percentages are relative to the cohort's registered count, not to the
    whole snapshot.
    """
    cohorts: Dict[str, List[Any]] = {}
    for record in records:
        cohorts.setdefault(_label(_field(record, "cohort")), []).append(record)

    return {
        cohort: compute_category_distribution(
            members,
            lambda r: _field(r, "course"),
            sort_by_count=True,
        )
        for cohort, members in cohorts.items()
    }


def extract_prefecture(address: str) -> str:
    """Best-effort prefecture from a free-form hometown string.

    Returns the first substring ending in 都, 道, 府 or 県 that looks like
    a prefecture name, or the input unchanged when nothing matches.

    Example:
        >>> extract_prefecture("東京都千代田区")
        '東京都'
    """
    if not isinstance(address, str):
        return address
    match = PREFECTURE_PATTERN.search(address)
    if match:
        return match.group(0)
    return address


def normalize_personality_code(raw: Optional[str]) -> str:
    """Normalise a self-reported 4-letter personality code.

    Uppercases and drops whitespace; if the first four characters form a
    valid code (E/I, N/S, F/T, J/P) that code is returned, so "intj-a"
    becomes "INTJ". Anything else is returned trimmed but otherwise as
    entered. Missing or blank input maps to UNSPECIFIED.
    """
    if raw is None:
        return UNSPECIFIED
    trimmed = str(raw).strip()
    if not trimmed:
        return UNSPECIFIED

    cleaned = re.sub(r"\s", "", trimmed.upper())
    first_four = cleaned[:4]
    if PERSONALITY_CODE_PATTERN.match(first_four):
        return first_four
    return trimmed


def build_word_frequency(
    values: Iterable[Any],
    top_n: int = DEFAULT_WORD_CLOUD_LIMIT,
) -> List[WordFrequency]:
    """Rank the words used across free-text values.

    Non-string values are skipped. Each string is split on WORD_DELIMITERS,
    tokens are trimmed and empty ones dropped. Counting is case-sensitive
    with no stemming.

    Returns:
        Top ``top_n`` words by descending count; ties keep the order in
        which the words were first seen.
    """
    counter: Counter = Counter()
    for value in values:
        if not isinstance(value, str):
            continue
        for token in WORD_DELIMITERS.split(value):
            token = token.strip()
            if token:
                counter[token] += 1

    if top_n <= 0:
        return []
    return [WordFrequency(text=text, value=count) for text, count in counter.most_common(top_n)]


class AggregationEngine:
    """Builds the full dashboard result from a record snapshot.

    Holds configuration only; no state is kept between calls.
    """

    def __init__(self, config: Optional[StatisticsConfig] = None):
        """Initialize engine.

        Args:
            config: Statistics configuration (cohort totals, limits, labels)
        """
        self.config = config or StatisticsConfig()

        logger.info(
            "AGGREGATION_ENGINE_INITIALIZED",
            extra={
                "cohorts": list(self.config.cohort_totals),
                "word_cloud_limit": self.config.word_cloud_limit,
            }
        )

    def _decorate_course(self, entry: CategoryCount) -> CategoryCount:
        return CategoryCount(
            label=entry.label,
            count=entry.count,
            percentage=entry.percentage,
            name=self.config.department_names.get(entry.label, entry.label),
            color=self.config.department_colors.get(entry.label, FALLBACK_COLOR),
        )

    def aggregate(self, records: Iterable[Any]) -> AggregationResult:
        """Compute every dashboard section from one snapshot.

        Args:
            records: StudentRecord instances (or mappings with the same keys)

        Returns:
            AggregationResult for the snapshot
        """
        records = list(records)
        total = len(records)

        by_course = [
            self._decorate_course(entry)
            for entry in compute_category_distribution(
                records, lambda r: _field(r, "course"), sort_by_count=True
            )
        ]
        by_course_and_cohort = {
            cohort: [self._decorate_course(entry) for entry in entries]
            for cohort, entries in compute_course_by_cohort(records).items()
        }

        by_prefecture = compute_category_distribution(
            records,
            lambda r: extract_prefecture(_field(r, "hometown")) if _field(r, "hometown") else None,
            sort_by_count=True,
            exclude=(UNSPECIFIED,),
            limit=self.config.prefecture_limit,
        )
        by_personality_type = compute_category_distribution(
            records,
            lambda r: normalize_personality_code(_field(r, "personality_code")),
            sort_by_count=True,
            exclude=(UNSPECIFIED,),
        )

        word_clouds = {
            key: build_word_frequency(
                (_field(r, attr) for r in records),
                top_n=self.config.word_cloud_limit,
            )
            for attr, key in WORD_CLOUD_FIELDS.items()
        }

        result = AggregationResult(
            total_students=total,
            by_cohort=compute_cohort_statistics(records, self.config.cohort_totals),
            by_course=by_course,
            by_course_and_cohort=by_course_and_cohort,
            by_blood_type=compute_category_distribution(
                records, lambda r: _field(r, "blood_type")
            ),
            by_prefecture=by_prefecture,
            by_star_sign=compute_category_distribution(
                records, lambda r: _field(r, "star_sign")
            ),
            by_personality_type=by_personality_type,
            word_clouds=word_clouds,
        )

        logger.info(
            "AGGREGATION_COMPLETED",
            extra={
                "total_students": total,
                "courses": len(by_course),
                "prefectures": len(by_prefecture),
            }
        )
        return result
