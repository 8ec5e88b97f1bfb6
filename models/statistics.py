from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from core.utils import hour_label


@dataclass(frozen=True)
class HourlyBucket:
    hour: int
    entries: int = 0
    exits: int = 0

    @property
    def net_flow(self) -> int:
        return self.entries - self.exits

    @property
    def time_label(self) -> str:
        return hour_label(self.hour)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hour": self.hour,
            "time_label": self.time_label,
            "entries": self.entries,
            "exits": self.exits,
            "net_flow": self.net_flow,
        }


@dataclass(frozen=True)
class PeakHour:
    hour: int
    entries: int

    @property
    def time_range(self) -> str:
        return f"{hour_label(self.hour)} - {hour_label(self.hour + 1)}"

    def to_dict(self) -> Dict[str, Any]:
        return {"hour": self.hour, "entries": self.entries, "time_range": self.time_range}


@dataclass(frozen=True)
class Revenue:
    """Estimated revenue, spreading each membership price over its period in days."""
    breakdown: Dict[str, float]
    total: int
    average_per_visit: int
    currency: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DailyStats:
    """
    Immutable snapshot of one day's visits.
    Recomputed on demand from the ledger, never mutated.
    """
    date: str
    is_today: bool
    total_visits: int
    completed_visits: int
    currently_inside: int
    total_duration: int
    average_duration: int
    hourly: List[HourlyBucket]
    peak_hour: PeakHour
    membership_breakdown: Dict[str, int]
    service_usage: Dict[str, int]
    revenue: Revenue
    override_visits: int
    generated_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "is_today": self.is_today,
            "overview": {
                "total_visits": self.total_visits,
                "completed_visits": self.completed_visits,
                "currently_inside": self.currently_inside,
                "total_duration": self.total_duration,
                "average_duration": self.average_duration,
            },
            "hourly": [bucket.to_dict() for bucket in self.hourly],
            "peak_hour": self.peak_hour.to_dict(),
            "membership_breakdown": dict(self.membership_breakdown),
            "service_usage": dict(self.service_usage),
            "revenue": self.revenue.to_dict(),
            "override_visits": self.override_visits,
            "generated_at": self.generated_at,
        }


@dataclass(frozen=True)
class DaySummary:
    date: str
    day_name: str
    visits: int = 0
    duration: int = 0
    entries: int = 0
    exits: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class WeekTrend:
    week_start: str
    week_end: str
    total_visits: int
    average_daily: int
    days: int
    change: Optional[int] = None  # vs previous week, None for the first week
    change_percent: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PeriodStats:
    """
    Snapshot for a multi-day period (a week or a month).
    """
    period_type: str  # 'weekly' or 'monthly'
    label: str
    start_date: str
    end_date: str
    days: List[DaySummary]
    total_visits: int
    total_duration: int
    average_daily_visits: int
    busiest_day: Optional[DaySummary]
    peak_hour: PeakHour
    membership_breakdown: Dict[str, int]
    service_usage: Dict[str, int]
    revenue: Revenue
    generated_at: str
    weekly_trend: List[WeekTrend] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period": {
                "type": self.period_type,
                "label": self.label,
                "start_date": self.start_date,
                "end_date": self.end_date,
            },
            "days": [day.to_dict() for day in self.days],
            "totals": {
                "total_visits": self.total_visits,
                "total_duration": self.total_duration,
                "average_daily_visits": self.average_daily_visits,
                "busiest_day": self.busiest_day.to_dict() if self.busiest_day else None,
                "peak_hour": self.peak_hour.to_dict(),
                "membership_breakdown": dict(self.membership_breakdown),
                "service_usage": dict(self.service_usage),
                "revenue": self.revenue.to_dict(),
            },
            "weekly_trend": [week.to_dict() for week in self.weekly_trend],
            "generated_at": self.generated_at,
        }


# Aliases so callers can name the period they asked for
WeeklyStats = PeriodStats
MonthlyStats = PeriodStats
