import logging
from datetime import date, timedelta
from typing import Any, Dict, Optional

from sqlmodel import Session, select

from agenda.config import RECURRING_BLOCK_HORIZON_DAYS
from agenda.core.clock import minutes_of, parse_hhmm, today
from agenda.core.errors import ValidationError
from agenda.models.recurring_block import RecurringBlockRule
from agenda.models.time_block import TimeBlock

logger = logging.getLogger(__name__)


def validate_per_weekday(per_weekday: Dict[str, Any]) -> Dict[str, Any]:
    """Normaliza {weekday: {enabled, start_time, end_time}} (weekday 0..6)."""
    cleaned: Dict[str, Any] = {}
    for key, cfg in per_weekday.items():
        weekday = int(key)
        if weekday < 0 or weekday > 6:
            raise ValidationError("weekday deve ser 0..6")

        enabled = bool(cfg.get("enabled"))
        start = parse_hhmm(cfg.get("start_time") or "12:00")
        end = parse_hhmm(cfg.get("end_time") or "13:00")
        if enabled and minutes_of(end) <= minutes_of(start):
            raise ValidationError("end_time deve ser maior que start_time")

        cleaned[str(weekday)] = {
            "enabled": enabled,
            "start_time": start.strftime("%H:%M"),
            "end_time": end.strftime("%H:%M"),
        }
    return cleaned


def materialize_recurring_blocks(
    session: Session,
    start_day: Optional[date] = None,
    horizon_days: int = RECURRING_BLOCK_HORIZON_DAYS,
) -> int:
    """Cria os bloqueios concretos das regras fixas para os próximos dias.

    Idempotente: pula data/horário que já tem bloqueio igual.
    """
    start_day = start_day or today()
    rules = session.exec(select(RecurringBlockRule)).all()
    if not rules:
        return 0

    end_day = start_day + timedelta(days=horizon_days)
    existing = {
        (b.date, b.start_time, b.end_time)
        for b in session.exec(
            select(TimeBlock).where(TimeBlock.date >= start_day, TimeBlock.date < end_day)
        ).all()
    }

    created = 0
    for rule in rules:
        for offset in range(horizon_days):
            day = start_day + timedelta(days=offset)
            cfg = (rule.per_weekday or {}).get(str(day.weekday()))
            if not cfg or not cfg.get("enabled"):
                continue

            start = parse_hhmm(cfg["start_time"])
            end = parse_hhmm(cfg["end_time"])
            if (day, start, end) in existing:
                continue

            session.add(TimeBlock(date=day, start_time=start, end_time=end, reason=rule.reason))
            existing.add((day, start, end))
            created += 1

    session.commit()
    if created:
        logger.info("Bloqueios fixos: %s criado(s) a partir de %s", created, start_day)
    return created
