# 유통기한 D-day / 상태 라벨 계산, 만료 알림(D-3, D-1) 예약 목록

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

SOON_DAYS = 3
CAUTION_DAYS = 7

# 만료 알림: D-3, D-1 오전 9시
DEFAULT_REMINDER_DAYS = (3, 1)
DEFAULT_NOTIFICATION_HOUR = 9

DateLike = Union[date, datetime, str, None]


def to_date(value: DateLike) -> Optional[date]:
    """날짜 입력값 → date (YYYY-MM-DD, ISO datetime 모두 허용). 해석 불가면 None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    if not s:
        return None
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


def days_left(expiry: DateLike, today: Optional[date] = None) -> Optional[int]:
    d = to_date(expiry)
    if d is None:
        return None
    return (d - (today or date.today())).days


def status_word(dday: int) -> str:
    if dday < 0:
        return "만료"
    if dday <= SOON_DAYS:
        return "임박"
    if dday <= CAUTION_DAYS:
        return "주의"
    return "신선"


@dataclass(frozen=True)
class ExpiryStatus:
    daysLeft: Optional[int]
    isExpired: bool
    isExpiringSoon: bool
    label: str
    tone: str  # danger | warning | safe | neutral
    status: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


def expiry_status(expiry: DateLike, today: Optional[date] = None) -> ExpiryStatus:
    dday = days_left(expiry, today)
    if dday is None:
        return ExpiryStatus(None, False, False, "기한 없음", "neutral")

    expired = dday < 0
    soon = not expired and dday <= SOON_DAYS

    if dday == 0:
        label = "오늘 만료"
    elif expired:
        label = f"{abs(dday)}일 지남"
    else:
        label = f"D-{dday}"

    tone = "danger" if expired else "warning" if soon else "safe"
    return ExpiryStatus(dday, expired, soon, label, tone, status_word(dday))


@dataclass(frozen=True)
class ReminderJob:
    id: str
    ingredientId: str
    ingredientName: str
    dDay: int
    scheduledAt: datetime
    title: str
    body: str

    def to_dict(self) -> dict:
        return asdict(self)


def normalize_hour(hour: Any) -> int:
    try:
        h = int(hour)
    except (TypeError, ValueError):
        return DEFAULT_NOTIFICATION_HOUR
    return min(max(h, 0), 23)


def _reminder_body(name: str, dday: int) -> str:
    if dday == 1:
        return f"{name} 유통기한이 내일 만료됩니다."
    return f"{name} 유통기한이 {dday}일 후 만료됩니다."


def build_reminder_jobs(
    item_id: str,
    name: Optional[str],
    expiry: DateLike,
    *,
    reminder_days: Sequence[int] = DEFAULT_REMINDER_DAYS,
    hour: Any = DEFAULT_NOTIFICATION_HOUR,
    now: Optional[datetime] = None,
) -> List[ReminderJob]:
    """재료 1개의 만료 알림 예약 목록. 이미 지난 시각은 건너뛴다."""
    d = to_date(expiry)
    if d is None:
        return []

    now = now or datetime.now()
    at = time(normalize_hour(hour), tzinfo=now.tzinfo)
    label = (name or "").strip() or "재료"

    jobs = []
    for dday in reminder_days:
        if dday <= 0:
            continue
        scheduled = datetime.combine(d - timedelta(days=dday), at)
        if scheduled <= now:
            continue
        jobs.append(ReminderJob(
            id=f"expiry-{item_id}-d{dday}",
            ingredientId=item_id,
            ingredientName=label,
            dDay=dday,
            scheduledAt=scheduled,
            title=f"유통기한 D-{dday}",
            body=_reminder_body(label, dday),
        ))
    return sorted(jobs, key=lambda j: j.scheduledAt)


def schedule_expiry_reminders(
    items: Iterable[Mapping[str, Any]],
    *,
    reminder_days: Sequence[int] = DEFAULT_REMINDER_DAYS,
    hour: Any = DEFAULT_NOTIFICATION_HOUR,
    now: Optional[datetime] = None,
) -> List[ReminderJob]:
    # items: 내 재료 문서 (id / name / expiry_date)
    now = now or datetime.now()
    jobs: List[ReminderJob] = []
    for item in items:
        jobs.extend(build_reminder_jobs(
            str(item.get("id") or ""),
            item.get("name"),
            item.get("expiry_date"),
            reminder_days=reminder_days,
            hour=hour,
            now=now,
        ))
    return sorted(jobs, key=lambda j: j.scheduledAt)
