"""Datas e horas civis da barbearia.

Toda data/hora do domínio é "civil": interpretada no offset fixo da
barbearia (BUSINESS_UTC_OFFSET), sem horário de verão. No banco os instantes
ficam em UTC sem tzinfo, como o resto do projeto.
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Union

from agenda.config import BUSINESS_UTC_OFFSET

MINUTES_PER_DAY = 24 * 60


def parse_offset(value: str) -> timezone:
    sign = -1 if value.startswith("-") else 1
    hours, minutes = value.lstrip("+-").split(":")
    return timezone(sign * timedelta(hours=int(hours), minutes=int(minutes)))


BUSINESS_TZ = parse_offset(BUSINESS_UTC_OFFSET)


def parse_hhmm(value: Union[str, time]) -> time:
    if isinstance(value, time):
        return value
    hours, minutes = value.strip().split(":")[:2]
    return time(int(hours), int(minutes))


def format_hhmm(value: time) -> str:
    return value.strftime("%H:%M")


def minutes_of(value: time) -> int:
    return value.hour * 60 + value.minute


def time_from_minutes(minutes: int) -> time:
    if minutes < 0 or minutes >= MINUTES_PER_DAY:
        raise ValueError(f"{minutes} minutos está fora do dia civil")
    return time(minutes // 60, minutes % 60)


def add_minutes(value: time, minutes: int) -> time:
    """Soma minutos a uma hora do dia; não atravessa a meia-noite."""
    return time_from_minutes(minutes_of(value) + minutes)


def local_datetime(day: date, value: time) -> datetime:
    return datetime.combine(day, value, tzinfo=BUSINESS_TZ)


def local_iso(day: date, value: time) -> str:
    # formato aceito pelo calendário: 2026-01-02T20:00:00-03:00
    return f"{day.isoformat()}T{format_hhmm(value)}:00{BUSINESS_UTC_OFFSET}"


def to_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=BUSINESS_TZ)
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def to_local(value: datetime) -> datetime:
    """Instante UTC sem tzinfo (como vem do banco) → horário da barbearia."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(BUSINESS_TZ)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today() -> date:
    return datetime.now(BUSINESS_TZ).date()
