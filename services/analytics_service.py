import datetime
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

import config
from core.database import FrontDeskStore
from core.utils import (
    date_range, format_duration, month_bounds, month_name, parse_date, round_half_up, week_bounds,
)
from models.results import SYSTEM_ERROR, VALIDATION_ERROR, OperationResult
from models.statistics import (
    DailyStats, DaySummary, HourlyBucket, PeakHour, PeriodStats, Revenue, WeekTrend,
)
from models.visit import Visit
from services.visitors_service import current_occupants, occupancy

logger = logging.getLogger(__name__)

DateRef = Union[datetime.date, str, None]


# --- ACCUMULATION ---

class _Tally:
    """
    Running totals over a set of visits. Shared by the daily, weekly and monthly views.
    """

    def __init__(self) -> None:
        self.total = 0
        self.completed = 0
        self.total_duration = 0
        self.overrides = 0
        self.entries = [0] * 24
        self.exits = [0] * 24
        self.membership = {t: 0 for t in config.MEMBERSHIP_TYPES}
        self.services = {"gym": 0, "spa": 0, "both": 0}

    def add(self, visit: Visit, membership_type: Optional[str]) -> None:
        self.total += 1
        self.entries[visit.entry_time.hour] += 1
        if visit.exit_time is not None:
            self.completed += 1
            self.total_duration += visit.duration or 0
            self.exits[visit.exit_time.hour] += 1
        if visit.override_reason:
            self.overrides += 1
        # Unrecognized types are left out of the breakdown
        if membership_type in self.membership:
            self.membership[membership_type] += 1
        key = visit.service_key
        if key:
            self.services[key] += 1

    @property
    def average_duration(self) -> int:
        return round_half_up(self.total_duration / self.completed) if self.completed else 0


def _membership_type(store: FrontDeskStore, visit: Visit) -> Optional[str]:
    """
    Type recorded on the visit at entry; visits without a snapshot (older seed data)
    fall back to the customer's current membership.
    """
    if visit.membership_type:
        return visit.membership_type
    customer = store.get_customer(visit.customer_id)
    return customer.membership_type if customer else None


def _tally(store: FrontDeskStore, visits: Iterable[Visit]) -> _Tally:
    tally = _Tally()
    for visit in visits:
        tally.add(visit, _membership_type(store, visit))
    return tally


def calculate_peak_hour(entries: List[int]) -> PeakHour:
    """Hour with the most entries. On a tie the earliest hour wins."""
    peak_hour, max_entries = 0, 0
    for hour, count in enumerate(entries):
        if count > max_entries:
            peak_hour, max_entries = hour, count
    return PeakHour(hour=peak_hour, entries=max_entries)


def calculate_revenue(membership_breakdown: Dict[str, int], total_visits: int) -> Revenue:
    """
    Estimates revenue by charging each visit the daily rate of its membership:
    the plan price spread over the plan length in days.
    """
    breakdown = {}
    for mtype, count in membership_breakdown.items():
        daily_rate = config.PRICING[mtype] / config.PERIOD_DAYS[mtype]
        breakdown[mtype] = round(count * daily_rate, 2)

    total = sum(count * config.PRICING[t] / config.PERIOD_DAYS[t] for t, count in membership_breakdown.items())
    return Revenue(
        breakdown=breakdown,
        total=round_half_up(total),
        average_per_visit=round_half_up(total / total_visits) if total_visits else 0,
        currency=config.CURRENCY,
    )


# --- CACHING ---

def _cached(store: FrontDeskStore, key: str, last_day: datetime.date,
            build: Callable[[], Any]) -> Any:
    """
    Serves a snapshot from the cache when the whole period is in the past.
    Anything that covers today is always rebuilt.
    """
    now = store.now()
    cacheable = last_day < now.date()

    if cacheable and key in store.stats_cache:
        stored_at, snapshot = store.stats_cache[key]
        if now - stored_at < datetime.timedelta(seconds=config.STATS_CACHE_SECONDS):
            logger.debug("Statistics cache hit: %s", key)
            return snapshot

    snapshot = build()
    if cacheable:
        store.stats_cache[key] = (now, snapshot)
    return snapshot


def clear_cache(store: FrontDeskStore) -> None:
    store.stats_cache.clear()


def _resolve_day(store: FrontDeskStore, ref: DateRef) -> datetime.date:
    if ref is None or ref == "":
        return store.now().date()
    day = parse_date(ref)
    if day is None:
        raise ValueError(f"Invalid date: {ref!r}")
    return day


def _resolve_month(store: FrontDeskStore, ref: DateRef) -> datetime.date:
    # Accepts 'YYYY-MM' as well as any full date inside the month
    if isinstance(ref, str) and len(ref.strip()) == 7:
        ref = f"{ref.strip()}-01"
    return _resolve_day(store, ref)


# --- DAILY ---

def daily_statistics(store: FrontDeskStore, day: DateRef = None) -> DailyStats:
    """
    Statistics for one calendar day: counts, durations, hourly flow,
    peak hour, membership and service breakdowns, and a revenue estimate.

    Args:
        day (date | str, optional): Target day. Defaults to today.

    Raises:
        ValueError: If day is not a valid date.
    """
    target = _resolve_day(store, day)
    return _cached(store, f"daily:{target.isoformat()}", target, lambda: _build_daily(store, target))


def _build_daily(store: FrontDeskStore, target: datetime.date) -> DailyStats:
    visits = store.ledger.visits_on(target)
    tally = _tally(store, visits)
    now = store.now()

    return DailyStats(
        date=target.isoformat(),
        is_today=target == now.date(),
        total_visits=tally.total,
        completed_visits=tally.completed,
        currently_inside=tally.total - tally.completed,
        total_duration=tally.total_duration,
        average_duration=tally.average_duration,
        hourly=[HourlyBucket(hour=h, entries=tally.entries[h], exits=tally.exits[h]) for h in range(24)],
        peak_hour=calculate_peak_hour(tally.entries),
        membership_breakdown=dict(tally.membership),
        service_usage=dict(tally.services),
        revenue=calculate_revenue(tally.membership, tally.total),
        override_visits=tally.overrides,
        generated_at=now.isoformat(),
    )


# --- WEEKLY / MONTHLY ---

def _day_summaries(visits: List[Visit], start: datetime.date, end: datetime.date) -> List[DaySummary]:
    by_day: Dict[str, List[Visit]] = {d.isoformat(): [] for d in date_range(start, end)}
    for visit in visits:
        if visit.date in by_day:
            by_day[visit.date].append(visit)

    summaries = []
    for day in date_range(start, end):
        day_visits = by_day[day.isoformat()]
        summaries.append(DaySummary(
            date=day.isoformat(),
            day_name=day.strftime("%A"),
            visits=len(day_visits),
            duration=sum(v.duration or 0 for v in day_visits),
            entries=len(day_visits),
            exits=sum(1 for v in day_visits if v.exit_time is not None),
        ))
    return summaries


def find_busiest_day(days: List[DaySummary]) -> Optional[DaySummary]:
    """Day with the most visits, the first one on a tie. None if there were no visits."""
    busiest, max_visits = None, 0
    for day in days:
        if day.visits > max_visits:
            busiest, max_visits = day, day.visits
    return busiest


def calculate_weekly_trend(days: List[DaySummary]) -> List[WeekTrend]:
    """
    Splits a run of days into Monday-start weeks and compares each week to the one before.
    """
    weeks: List[List[DaySummary]] = []
    for day in days:
        if not weeks or datetime.date.fromisoformat(day.date).weekday() == 0:
            weeks.append([])
        weeks[-1].append(day)

    trend = []
    previous = None
    for week in weeks:
        total = sum(d.visits for d in week)
        change = total - previous if previous is not None else None
        percent = round(change / previous * 100, 1) if previous else None
        trend.append(WeekTrend(
            week_start=week[0].date,
            week_end=week[-1].date,
            total_visits=total,
            average_daily=round_half_up(total / len(week)),
            days=len(week),
            change=change,
            change_percent=percent,
        ))
        previous = total
    return trend


def _build_period(store: FrontDeskStore, period_type: str, label: str,
                  start: datetime.date, end: datetime.date) -> PeriodStats:
    visits = store.ledger.visits_in_range(start, end)
    tally = _tally(store, visits)
    days = _day_summaries(visits, start, end)

    return PeriodStats(
        period_type=period_type,
        label=label,
        start_date=start.isoformat(),
        end_date=end.isoformat(),
        days=days,
        total_visits=tally.total,
        total_duration=tally.total_duration,
        average_daily_visits=round_half_up(tally.total / len(days)),
        busiest_day=find_busiest_day(days),
        peak_hour=calculate_peak_hour(tally.entries),
        membership_breakdown=dict(tally.membership),
        service_usage=dict(tally.services),
        revenue=calculate_revenue(tally.membership, tally.total),
        generated_at=store.now().isoformat(),
        weekly_trend=calculate_weekly_trend(days) if period_type == "monthly" else [],
    )


def weekly_statistics(store: FrontDeskStore, week_start: DateRef = None) -> PeriodStats:
    """
    Statistics for the Monday-to-Sunday week containing week_start (default: this week).

    Raises:
        ValueError: If week_start is not a valid date.
    """
    start, end = week_bounds(_resolve_day(store, week_start))
    label = f"Week of {start.strftime('%B %d, %Y')}"
    return _cached(store, f"weekly:{start.isoformat()}", end,
                   lambda: _build_period(store, "weekly", label, start, end))


def monthly_statistics(store: FrontDeskStore, month_ref: DateRef = None) -> PeriodStats:
    """
    Statistics for a calendar month, including a week-over-week trend.

    Args:
        month_ref (date | str, optional): Any day in the month, or 'YYYY-MM'. Defaults to this month.

    Raises:
        ValueError: If month_ref cannot be parsed.
    """
    start, end = month_bounds(_resolve_month(store, month_ref))
    label = f"{month_name(start.month)} {start.year}"
    return _cached(store, f"monthly:{start.isoformat()}", end,
                   lambda: _build_period(store, "monthly", label, start, end))


def get_statistics(store: FrontDeskStore, period: str = "daily", ref: DateRef = None) -> OperationResult:
    """
    Presentation-facing wrapper: picks the period and reports failures as results.
    """
    builders = {
        "daily": daily_statistics,
        "weekly": weekly_statistics,
        "monthly": monthly_statistics,
    }
    if period not in builders:
        return OperationResult.fail(VALIDATION_ERROR, "Period must be daily, weekly or monthly",
                                    errors={"period": "Unknown period"})
    try:
        snapshot = builders[period](store, ref)
    except ValueError as e:
        return OperationResult.fail(VALIDATION_ERROR, str(e), errors={"date": str(e)})
    except Exception:
        logger.exception("Building %s statistics failed for %r", period, ref)
        return OperationResult.fail(SYSTEM_ERROR)

    return OperationResult.ok(period, "Statistics generated", statistics=snapshot.to_dict())


# --- DASHBOARD ---

def generate_alerts(store: FrontDeskStore, now: datetime.datetime) -> List[Dict[str, str]]:
    alerts = []
    capacity = occupancy(store)

    if capacity.percentage >= config.ALERT_CAPACITY_PERCENT:
        alerts.append({"type": "warning", "message": "Facility is near capacity", "priority": "high"})

    long_stays = [
        v for v in current_occupants(store, now=now)
        if v.current_duration_minutes > config.ALERT_LONG_STAY_HOURS * 60
    ]
    if long_stays:
        alerts.append({
            "type": "info",
            "message": f"{len(long_stays)} visitor(s) have been inside for over {config.ALERT_LONG_STAY_HOURS} hours",
            "priority": "medium",
        })

    opening, closing = config.BUSINESS_HOURS
    if opening <= now.hour <= closing and capacity.current == 0:
        alerts.append({
            "type": "info",
            "message": "No visitors currently inside during business hours",
            "priority": "low",
        })

    return alerts


def dashboard_summary(store: FrontDeskStore, now: Optional[datetime.datetime] = None) -> Dict[str, Any]:
    """
    Quick metrics for the front-desk dashboard: today's numbers, live headcount,
    the last hour of activity and any alerts.
    """
    now = now or store.now()
    today = daily_statistics(store, now.date())
    capacity = occupancy(store)

    last_hour = now - datetime.timedelta(hours=1)
    recent = [
        v for v in store.ledger
        if v.entry_time > last_hour or (v.exit_time and v.exit_time > last_hour)
    ]
    recent.sort(key=lambda v: v.exit_time or v.entry_time, reverse=True)

    return {
        "quick_metrics": {
            "visitors_inside": capacity.current,
            "today_visits": today.total_visits,
            "today_revenue": today.revenue.total,
            "average_stay": today.average_duration,
            "capacity_usage": capacity.percentage,
        },
        "hourly_activity": [bucket.to_dict() for bucket in today.hourly],
        "recent_activity": [v.to_dict() for v in recent[:10]],
        "current_visitors": [v.to_dict() for v in current_occupants(store, now=now)[:5]],
        "alerts": generate_alerts(store, now),
        "last_update": now.isoformat(),
    }


# --- BRIEFING ---

def generate_daily_brief(store: FrontDeskStore, target_date: DateRef = None) -> str:
    """
    Generates a plain-text report for a day, built from the daily statistics.

    Args:
        target_date (date | str, optional): The day to report on. Defaults to today.

    Returns:
        str: A formatted briefing.
    """
    stats = daily_statistics(store, target_date)
    day = datetime.date.fromisoformat(stats.date)
    count = stats.total_visits

    lines = []
    lines.append(f"📅 **EVENING BRIEFING** ({day.strftime('%B %d, %Y')})")
    lines.append("-" * 40)
    lines.append("")

    # Activity Section
    if count == 0:
        lines.append("📉 **Activity:** It was a quiet day. No visits were recorded.")
    elif count < 10:
        lines.append(f"⚖️ **Activity:** Steady pace today. You had **{count} visits**.")
    else:
        lines.append(f"🚀 **Activity:** It was a busy day! You welcomed **{count} visits**.")

    lines.append("")

    # Details Section
    if count > 0:
        peak = stats.peak_hour
        lines.append(f"⏰ **Peak Time:** {peak.time_range} with {peak.entries} entries.")

        top_service = max(stats.service_usage, key=stats.service_usage.get)
        lines.append(f"🏆 **Most Popular:** Most visitors came for **{top_service}**.")

        lines.append(f"⏱️ **Average Stay:** {format_duration(stats.average_duration)} "
                     f"over {stats.completed_visits} completed visits.")
        lines.append(f"💰 **Estimated Revenue:** {stats.revenue.total} {stats.revenue.currency}")

        if stats.currently_inside:
            lines.append(f"🚪 **Still Inside:** {stats.currently_inside} visitor(s) have not checked out.")
        if stats.override_visits:
            lines.append(f"⚠️ **Overrides:** {stats.override_visits} entry(ies) were let in by override.")

    # Footer
    lines.append("")
    lines.append("-" * 40)
    lines.append("End of Report. Have a good evening! 🌙")

    return "\n".join(lines)
