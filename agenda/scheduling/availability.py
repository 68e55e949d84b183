import logging
from dataclasses import dataclass, field
from datetime import date, time, timedelta
from typing import Iterable, List, Optional, Sequence

from sqlmodel import Session, SQLModel, select

from agenda.config import DEFAULT_SERVICE_DURATION_MINUTES, SLOT_CHECK_INTERVAL_MINUTES
from agenda.core.clock import local_iso, minutes_of, time_from_minutes
from agenda.core.errors import ConflictError, ValidationError
from agenda.models.appointment import Appointment
from agenda.models.business_hours import BusinessHours
from agenda.models.service import Service
from agenda.models.time_block import TimeBlock
from agenda.models.vacation_day import VacationDay
from agenda.scheduling.overlap import BusyInterval, find_conflict
from agenda.scheduling.services import service_duration
from agenda.scheduling.slots import generate_slots, is_open

logger = logging.getLogger(__name__)

REASON_VACATION = "vacation"
REASON_CLOSED = "closed"


class SlotAvailability(SQLModel):
    time: str
    available: bool
    conflict: Optional[str] = None


class DayAvailability(SQLModel):
    date: date
    duration_minutes: int
    # vacation | closed | None
    reason: Optional[str] = None
    slots: List[SlotAvailability] = []


@dataclass
class DayContext:
    """Tudo que ocupa (ou fecha) um dia civil."""

    day: date
    hours: Optional[BusinessHours]
    vacation: bool = False
    blocks: List[TimeBlock] = field(default_factory=list)
    appointments: List[Appointment] = field(default_factory=list)
    catalog: List[Service] = field(default_factory=list)


def appointment_interval(appt: Appointment, catalog: Sequence[Service]) -> BusyInterval:
    start = minutes_of(appt.start_time)
    duration = service_duration(appt.service, catalog, default=None)
    if duration is None:
        # serviço fora do catálogo: usa o fim gravado no evento
        end = minutes_of(appt.end_time)
        if end <= start:
            end = start + DEFAULT_SERVICE_DURATION_MINUTES
    else:
        end = start + duration
    return BusyInterval(start, end, "appointment", f"{appt.service} - {appt.client_name}")


def busy_intervals(
    ctx: DayContext,
    ignore_ids: Iterable[str] = (),
) -> List[BusyInterval]:
    """Intervalos ocupados no dia: agendamentos (inclusive pendentes) e bloqueios."""
    ignore = set(ignore_ids)
    busy: List[BusyInterval] = []

    for appt in ctx.appointments:
        if appt.date != ctx.day or (appt.id is not None and appt.id in ignore):
            continue
        busy.append(appointment_interval(appt, ctx.catalog))

    for b in ctx.blocks:
        if b.date != ctx.day:
            continue
        busy.append(BusyInterval(minutes_of(b.start_time), minutes_of(b.end_time), "block", b.reason))

    return busy


def plan_day(
    ctx: DayContext,
    duration_minutes: int,
    step_minutes: int = SLOT_CHECK_INTERVAL_MINUTES,
) -> DayAvailability:
    if ctx.vacation:
        return DayAvailability(date=ctx.day, duration_minutes=duration_minutes, reason=REASON_VACATION)

    if not is_open(ctx.hours):
        return DayAvailability(date=ctx.day, duration_minutes=duration_minutes, reason=REASON_CLOSED)

    busy = busy_intervals(ctx)

    slots: List[SlotAvailability] = []
    for hhmm in generate_slots(ctx.hours, duration_minutes, step_minutes):
        start = minutes_of(time.fromisoformat(hhmm))
        conflict = find_conflict(start, start + duration_minutes, busy)
        slots.append(
            SlotAvailability(
                time=hhmm,
                available=conflict is None,
                conflict=conflict.label if conflict else None,
            )
        )

    return DayAvailability(date=ctx.day, duration_minutes=duration_minutes, slots=slots)


def check_interval(
    ctx: DayContext,
    start_time: time,
    duration_minutes: int,
    ignore_ids: Iterable[str] = (),
) -> None:
    """Levanta ConflictError se [start, start + duração) não puder ser agendado."""
    if duration_minutes <= 0:
        raise ValidationError("Duração do serviço deve ser positiva")

    if ctx.vacation:
        raise ConflictError("Data em férias", reason=REASON_VACATION)

    if not is_open(ctx.hours):
        raise ConflictError("Barbearia fechada ou sem horário configurado para esse dia", reason=REASON_CLOSED)

    start = minutes_of(start_time)
    end = start + duration_minutes
    if start < minutes_of(ctx.hours.open_time) or end > minutes_of(ctx.hours.close_time):
        raise ConflictError("Fora do horário de funcionamento", reason="outside_hours")

    conflict = find_conflict(start, end, busy_intervals(ctx, ignore_ids))
    if conflict is not None:
        raise ConflictError(
            f"Horário indisponível: conflito com {conflict.label} às {time_from_minutes(conflict.start):%H:%M}",
            conflict=conflict,
            reason="overlap",
        )


class AvailabilityPlanner:
    """Lê a ocupação atual (banco + calendário) e monta os slots do dia.

    Não segura lock nenhum até o agendamento: duas reservas simultâneas no
    mesmo horário ainda podem acontecer.
    """

    def __init__(self, session: Session, calendar):
        self.session = session
        self.calendar = calendar

    def catalog(self) -> List[Service]:
        return list(self.session.exec(select(Service).where(Service.active == True)).all())  # noqa: E712

    async def load_day(self, day: date) -> DayContext:
        hours = self.session.exec(
            select(BusinessHours).where(BusinessHours.weekday == day.weekday())
        ).first()

        vacation = self.session.exec(
            select(VacationDay).where(VacationDay.date == day)
        ).first() is not None

        blocks = list(self.session.exec(select(TimeBlock).where(TimeBlock.date == day)).all())

        appointments: List[Appointment] = []
        if not vacation and is_open(hours):
            appointments = await self.calendar.list(
                local_iso(day, time(0, 0)),
                local_iso(day + timedelta(days=1), time(0, 0)),
            )

        return DayContext(
            day=day,
            hours=hours,
            vacation=vacation,
            blocks=blocks,
            appointments=appointments,
            catalog=self.catalog(),
        )

    async def slots_for(self, day: date, service: str) -> DayAvailability:
        ctx = await self.load_day(day)
        duration = service_duration(service, ctx.catalog)
        logger.debug("Planejando %s para %s (%s min)", day, service, duration)
        return plan_day(ctx, duration)

    async def ensure_available(
        self,
        day: date,
        start_time: time,
        duration_minutes: int,
        ignore_ids: Iterable[str] = (),
    ) -> None:
        ctx = await self.load_day(day)
        check_interval(ctx, start_time, duration_minutes, ignore_ids)
