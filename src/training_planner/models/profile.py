"""Runner profile model and weekday names."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union


_DIACRITICS = str.maketrans("ąćęłńóśźż", "acelnoszz")


def _fold(value: str) -> str:
    """Lowercase and strip Polish diacritics and punctuation."""
    return value.strip().lower().translate(_DIACRITICS).rstrip(".")


class Weekday(str, Enum):
    """Canonical weekday names used in generated plans."""

    MONDAY = "poniedziałek"
    TUESDAY = "wtorek"
    WEDNESDAY = "środa"
    THURSDAY = "czwartek"
    FRIDAY = "piątek"
    SATURDAY = "sobota"
    SUNDAY = "niedziela"

    @property
    def index(self) -> int:
        """0 for Monday through 6 for Sunday (matches date.weekday())."""
        return list(Weekday).index(self)

    @classmethod
    def from_index(cls, index: int) -> "Weekday":
        return list(cls)[index % 7]

    @classmethod
    def parse(cls, value: Any) -> Optional["Weekday"]:
        """
        Parse a weekday from canonical, English, unaccented or abbreviated text.

        Returns:
            The canonical Weekday, or None when the value is not recognised.
        """
        if isinstance(value, Weekday):
            return value
        if not isinstance(value, str) or not value.strip():
            return None
        return _WEEKDAY_ALIASES.get(_fold(value))


_WEEKDAY_ALIASES: Dict[str, Weekday] = {}
for _day, _aliases in {
    Weekday.MONDAY: ("poniedzialek", "pon", "pn", "monday", "mon"),
    Weekday.TUESDAY: ("wtorek", "wt", "wto", "tuesday", "tue", "tues"),
    Weekday.WEDNESDAY: ("sroda", "sr", "sro", "wednesday", "wed"),
    Weekday.THURSDAY: ("czwartek", "czw", "cz", "thursday", "thu", "thur", "thurs"),
    Weekday.FRIDAY: ("piatek", "pt", "pia", "friday", "fri"),
    Weekday.SATURDAY: ("sobota", "sob", "sb", "saturday", "sat"),
    Weekday.SUNDAY: ("niedziela", "nd", "ndz", "niedz", "sunday", "sun"),
}.items():
    for _alias in _aliases:
        _WEEKDAY_ALIASES[_alias] = _day


def parse_weekdays(values: Optional[Iterable[Any]]) -> List[Weekday]:
    """Parse an ordered list of weekdays, dropping unknown and duplicate entries."""
    days: List[Weekday] = []
    for value in values or []:
        day = Weekday.parse(value)
        if day is not None and day not in days:
            days.append(day)
    return days


def _to_camel(name: str) -> str:
    components = name.split("_")
    return components[0] + "".join(x.title() for x in components[1:])


@dataclass
class UserProfile:
    """
    A runner's profile, supplied per plan request.

    Dates are kept raw: ``start_date`` and ``race_date`` may be malformed
    strings and are interpreted (never rejected) when the prompt is built.
    """

    age: int
    experience_level: str = "beginner"
    main_goal: str = "general_fitness"
    target_distance: Optional[str] = None
    weekly_distance_km: float = 0.0
    training_days: List[Weekday] = field(default_factory=list)
    days_per_week: Optional[int] = None

    # Health
    has_injuries: bool = False
    injuries: List[str] = field(default_factory=list)
    medical_conditions: List[str] = field(default_factory=list)
    current_pain: Optional[str] = None

    # Physiology
    resting_heart_rate: Optional[int] = None
    max_heart_rate: Optional[int] = None
    cooper_test_distance: Optional[float] = None
    vo2max: Optional[float] = None

    # Scheduling
    plan_duration_weeks: Optional[int] = None
    start_date: Optional[Union[str, date]] = None
    race_date: Optional[Union[str, date]] = None

    name: Optional[str] = None
    custom_goal: Optional[str] = None

    def __post_init__(self) -> None:
        self.training_days = parse_weekdays(self.training_days)
        if self.training_days:
            self.days_per_week = len(self.training_days)

    @property
    def training_days_per_week(self) -> int:
        """Days per week, falling back to 3 when nothing was given."""
        return self.days_per_week or 3

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserProfile":
        """
        Build a profile from a snake_case or camelCase dictionary.

        Unknown keys are ignored.
        """
        kwargs: Dict[str, Any] = {}
        for name in cls.__dataclass_fields__:
            if name in data:
                kwargs[name] = data[name]
            elif _to_camel(name) in data:
                kwargs[name] = data[_to_camel(name)]
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serialisable dictionary."""
        result: Dict[str, Any] = {}
        for name in self.__dataclass_fields__:
            value = getattr(self, name)
            if name == "training_days":
                value = [d.value for d in value]
            elif isinstance(value, date):
                value = value.isoformat()
            result[name] = value
        return result
