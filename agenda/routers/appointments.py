from datetime import date, time, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from agenda.core.clock import local_iso, today
from agenda.core.deps import get_calendar, get_orchestrator, get_planner
from agenda.core.security import get_current_operator
from agenda.models.appointment import (
    Appointment,
    BookingRequest,
    CancelRequest,
    RecurringBookingRequest,
    RescheduleRequest,
)
from agenda.orchestrator import SchedulingOrchestrator
from agenda.scheduling.availability import AvailabilityPlanner, DayAvailability

router = APIRouter(prefix="/appointments", tags=["appointments"])


async def _find_event(calendar, event_id: str, day: date) -> Appointment:
    # o calendário não tem "buscar por id" aqui: procura no dia informado
    events = await calendar.list(local_iso(day, time(0, 0)), local_iso(day + timedelta(days=1), time(0, 0)))
    for appt in events:
        if appt.id == event_id:
            return appt
    raise HTTPException(status_code=404, detail="Agendamento não encontrado")


# =========================
# HORÁRIOS DISPONÍVEIS (dia + serviço)
# GET /appointments/available?service=Corte&day=2026-02-14
# =========================
@router.get("/available", response_model=DayAvailability)
async def get_available_slots(
    service: str,
    day: date,
    planner: AvailabilityPlanner = Depends(get_planner),
):
    return await planner.slots_for(day, service)


# =========================
# LISTAR AGENDAMENTOS (janela)
# =========================
@router.get("/")
async def list_appointments(
    start: Optional[date] = None,
    end: Optional[date] = None,
    calendar=Depends(get_calendar),
    operator: str = Depends(get_current_operator),
):
    start = start or today()
    end = end or start + timedelta(days=7)
    if end < start:
        raise HTTPException(status_code=400, detail="end deve ser maior ou igual a start")

    events = await calendar.list(local_iso(start, time(0, 0)), local_iso(end + timedelta(days=1), time(0, 0)))
    return sorted(events, key=lambda a: (a.date, a.start_time))


# =========================
# AGENDAR
# =========================
@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_appointment(
    request: BookingRequest,
    orchestrator: SchedulingOrchestrator = Depends(get_orchestrator),
    operator: str = Depends(get_current_operator),
):
    result = await orchestrator.book(request)
    return {
        "event_id": result.event_id,
        "appointment": result.appointment,
        "reminder_scheduled": bool(result.reminder and result.reminder.scheduled),
        "whatsapp_sent": result.whatsapp_sent,
    }


@router.post("/recurring", status_code=status.HTTP_201_CREATED)
async def create_recurring_appointments(
    request: RecurringBookingRequest,
    orchestrator: SchedulingOrchestrator = Depends(get_orchestrator),
    operator: str = Depends(get_current_operator),
):
    result = await orchestrator.book_recurring(request)
    return {
        "succeeded": result.succeeded,
        "failed": result.failed,
        "event_ids": result.event_ids,
        "whatsapp_sent": result.whatsapp_sent,
    }


# =========================
# SÉRIE / CANCELAR / REAGENDAR
# =========================
@router.get("/{event_id}/series")
async def get_series(
    event_id: str,
    day: date,
    orchestrator: SchedulingOrchestrator = Depends(get_orchestrator),
    operator: str = Depends(get_current_operator),
):
    anchor = await _find_event(orchestrator.calendar, event_id, day)
    return {"anchor": anchor, "members": await orchestrator.series_of(anchor)}


@router.post("/{event_id}/cancel")
async def cancel_appointment(
    event_id: str,
    request: CancelRequest,
    orchestrator: SchedulingOrchestrator = Depends(get_orchestrator),
    operator: str = Depends(get_current_operator),
):
    anchor = await _find_event(orchestrator.calendar, event_id, request.date)
    result = await orchestrator.cancel(anchor, request.mode)
    return {
        "deleted_count": result.deleted_count,
        "error_count": result.error_count,
        "whatsapp_sent": result.whatsapp_sent,
    }


@router.post("/{event_id}/reschedule")
async def reschedule_appointment(
    event_id: str,
    request: RescheduleRequest,
    orchestrator: SchedulingOrchestrator = Depends(get_orchestrator),
    operator: str = Depends(get_current_operator),
):
    anchor = await _find_event(orchestrator.calendar, event_id, request.date)
    result = await orchestrator.reschedule(anchor, request.new_date, request.new_time, request.mode)
    return {
        "success_count": result.success_count,
        "error_count": result.error_count,
        "restored_count": result.restored_count,
        "whatsapp_sent": result.whatsapp_sent,
    }
