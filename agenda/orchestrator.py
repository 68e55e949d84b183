"""Casos de uso da agenda: agendar, agendar horário fixo, cancelar, reagendar.

Cada caso de uso roda os passos em sequência (inclusive os laços de série,
que não são paralelizados). Falha ao criar o evento aborta o agendamento;
dentro dos laços, cada item conta sucesso/erro sem parar os demais.
Lembretes, WhatsApp e notificação in-app nunca derrubam a mutação principal.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, time, timedelta
from typing import Iterable, List, Optional, Sequence

from agenda.config import ENFORCE_AVAILABILITY, SERIES_LOOKAHEAD_DAYS
from agenda.core.clock import add_minutes, local_datetime, local_iso, minutes_of, parse_hhmm
from agenda.core.errors import ConflictError, SchedulingError, UpstreamError, ValidationError
from agenda.integrations import messages
from agenda.integrations.calendar import build_summary
from agenda.integrations.notifier import TAG_DELETED, TAG_NEW, TAG_RESCHEDULED, emit
from agenda.models.appointment import Appointment, BookingRequest, RecurringBookingRequest
from agenda.models.service import Service
from agenda.reminders import ReminderLifecycleManager, ReminderOutcome
from agenda.scheduling.matching import NormalizedNameMatcher
from agenda.scheduling.series import find_series
from agenda.scheduling.services import service_duration, service_price

logger = logging.getLogger(__name__)

MODE_SINGLE = "single"
MODE_SERIES = "series"
MODES = (MODE_SINGLE, MODE_SERIES)


@dataclass
class BookingResult:
    event_id: str
    appointment: Appointment
    reminder: Optional[ReminderOutcome] = None
    whatsapp_sent: bool = False


@dataclass
class RecurringBookingResult:
    succeeded: int = 0
    failed: int = 0
    event_ids: List[str] = field(default_factory=list)
    whatsapp_sent: bool = False


@dataclass
class CancelResult:
    deleted_count: int = 0
    error_count: int = 0
    whatsapp_sent: bool = False


@dataclass
class RescheduleResult:
    success_count: int = 0
    error_count: int = 0
    whatsapp_sent: bool = False
    # eventos antigos recriados depois que a criação do novo falhou
    restored_count: int = 0


@dataclass
class _Move:
    appointment: Appointment
    new_date: date
    new_start: time
    new_end: time


class SchedulingOrchestrator:
    def __init__(
        self,
        calendar,
        messenger,
        notifier,
        reminders: ReminderLifecycleManager,
        clients: NormalizedNameMatcher,
        catalog: Sequence[Service] = (),
        planner=None,
        enforce_availability: bool = ENFORCE_AVAILABILITY,
    ):
        self.calendar = calendar
        self.messenger = messenger
        self.notifier = notifier
        self.reminders = reminders
        self.clients = clients
        self.catalog = list(catalog)
        self.planner = planner
        self.enforce_availability = enforce_availability

    # =========================
    # AUXILIARES
    # =========================

    def _validate(self, request: BookingRequest) -> None:
        missing = [
            name
            for name, value in (
                ("service", (request.service or "").strip()),
                ("client_name", (request.client_name or "").strip()),
                ("date", request.date),
                ("start_time", request.start_time),
            )
            if value is None or value == ""
        ]
        if missing:
            raise ValidationError(f"Campos obrigatórios ausentes: {', '.join(missing)}")

    def _end_time(self, start: time, duration_minutes: int) -> time:
        if duration_minutes <= 0:
            raise ValidationError("Duração do serviço deve ser positiva")
        try:
            return add_minutes(start, duration_minutes)
        except ValueError:
            raise ValidationError("O horário de término passa da meia-noite")

    def _duration_of(self, appt: Appointment) -> int:
        duration = minutes_of(appt.end_time) - minutes_of(appt.start_time)
        if duration > 0:
            return duration
        return service_duration(appt.service, self.catalog)

    def phone_for(self, client_name: str, explicit: Optional[str] = None, event_id: Optional[str] = None):
        if explicit:
            return explicit
        match = self.clients.match(client_name)
        if match.phone:
            return match.phone
        if match.ambiguous:
            logger.warning("Nome '%s' ambíguo no cadastro (%s candidatos)", client_name, len(match.candidates))
        return self.reminders.resolve_phone(event_id)

    async def _send(self, phone: Optional[str], message: str) -> bool:
        if not phone:
            logger.info("Sem telefone do cliente; WhatsApp não enviado")
            return False
        try:
            await self.messenger.send(phone, message)
        except SchedulingError as e:
            logger.warning("WhatsApp não enviado: %s", e)
            return False
        return True

    async def _create_event(self, appt: Appointment) -> str:
        price = service_price(appt.service, self.catalog)
        description = f"Valor: R$ {price:.2f}" if price else ""
        return await self.calendar.create(
            build_summary(appt.service, appt.client_name),
            description,
            local_iso(appt.date, appt.start_time),
            local_iso(appt.date, appt.end_time),
        )

    async def future_appointments(self, from_day: date) -> List[Appointment]:
        return await self.calendar.list(
            local_iso(from_day, time(0, 0)),
            local_iso(from_day + timedelta(days=SERIES_LOOKAHEAD_DAYS), time(0, 0)),
        )

    async def series_of(
        self, anchor: Appointment, candidates: Optional[Iterable[Appointment]] = None
    ) -> List[Appointment]:
        if candidates is None:
            candidates = await self.future_appointments(anchor.date)
        return find_series(anchor, candidates)

    async def _targets(self, anchor, mode, candidates) -> List[Appointment]:
        if mode not in MODES:
            raise ValidationError(f"mode deve ser um de {MODES}")
        if not anchor.id:
            raise ValidationError("Agendamento sem id de evento")
        targets = [anchor]
        if mode == MODE_SERIES:
            targets.extend(await self.series_of(anchor, candidates))
        return targets

    # =========================
    # AGENDAR
    # =========================

    async def book(
        self,
        request: BookingRequest,
        send_confirmation: bool = True,
        notify: bool = True,
    ) -> BookingResult:
        self._validate(request)
        duration = service_duration(request.service, self.catalog)
        end = self._end_time(request.start_time, duration)

        if self.enforce_availability and self.planner is not None:
            await self.planner.ensure_available(request.date, request.start_time, duration)

        appt = Appointment(
            client_name=request.client_name.strip(),
            service=request.service.strip(),
            date=request.date,
            start_time=request.start_time,
            end_time=end,
        )
        # falha aqui aborta: nada mais roda
        appt.id = await self._create_event(appt)

        phone = self.phone_for(appt.client_name, request.client_phone)
        reminder = None
        whatsapp_sent = False
        if phone:
            reminder = self.reminders.create(
                appt.id, phone, appt.client_name, appt.service, local_datetime(appt.date, appt.start_time)
            )
            if send_confirmation:
                whatsapp_sent = await self._send(
                    phone, messages.booking_confirmation(appt.client_name, appt.service, appt.date, appt.start_time)
                )

        if notify:
            emit(
                self.notifier,
                "📅 Novo Agendamento",
                messages.in_app_body(appt.client_name, appt.service, appt.date, appt.start_time),
                TAG_NEW,
            )

        logger.info("Agendado %s para %s em %s %s", appt.service, appt.client_name, appt.date, appt.start_time)
        return BookingResult(event_id=appt.id, appointment=appt, reminder=reminder, whatsapp_sent=whatsapp_sent)

    async def book_recurring(self, request: RecurringBookingRequest) -> RecurringBookingResult:
        self._validate(request)
        if request.weeks < 1:
            raise ValidationError("Quantidade de semanas deve ser pelo menos 1")
        self._end_time(request.start_time, service_duration(request.service, self.catalog))

        result = RecurringBookingResult()
        phone = self.phone_for(request.client_name, request.client_phone)

        for week in range(request.weeks):
            occurrence = BookingRequest(
                client_name=request.client_name,
                service=request.service,
                date=request.date + timedelta(weeks=week),
                start_time=request.start_time,
                client_phone=phone,
            )
            try:
                # só a primeira semana manda confirmação imediata
                booked = await self.book(occurrence, send_confirmation=(week == 0), notify=False)
            except (ConflictError, UpstreamError) as e:
                logger.error("Erro ao criar evento para semana %s: %s", week + 1, e)
                result.failed += 1
                continue
            result.succeeded += 1
            result.event_ids.append(booked.event_id)

        if result.succeeded > 0 and phone:
            last_day = request.date + timedelta(weeks=request.weeks - 1)
            result.whatsapp_sent = await self._send(
                phone,
                messages.recurring_confirmation(
                    request.client_name, request.service, request.date, last_day, request.start_time, result.succeeded
                ),
            )

        logger.info("Horário fixo: %s criado(s), %s erro(s)", result.succeeded, result.failed)
        return result

    # =========================
    # CANCELAR
    # =========================

    async def cancel(
        self,
        anchor: Appointment,
        mode: str = MODE_SINGLE,
        candidates: Optional[Iterable[Appointment]] = None,
    ) -> CancelResult:
        targets = await self._targets(anchor, mode, candidates)
        phone = self.phone_for(anchor.client_name, event_id=anchor.id)
        result = CancelResult()

        for appt in targets:
            try:
                await self.calendar.delete(appt.id)
            except SchedulingError as e:
                logger.error("Erro ao remover evento %s: %s", appt.id, e)
                result.error_count += 1
                continue
            result.deleted_count += 1

        if result.deleted_count > 0:
            if mode == MODE_SERIES:
                message = messages.series_cancellation(
                    anchor.client_name, anchor.service, anchor.date, anchor.start_time, result.deleted_count
                )
            else:
                message = messages.cancellation(anchor.client_name, anchor.service, anchor.date, anchor.start_time)
            result.whatsapp_sent = await self._send(phone, message)

        # o aviso interno sai mesmo sem nenhuma remoção
        emit(
            self.notifier,
            "❌ Agendamento Cancelado",
            messages.in_app_body(anchor.client_name, anchor.service, anchor.date, anchor.start_time),
            TAG_DELETED,
        )

        logger.info(
            "Cancelamento (%s): %s removido(s), %s erro(s)", mode, result.deleted_count, result.error_count
        )
        return result

    # =========================
    # REAGENDAR
    # =========================

    def _plan_moves(self, anchor: Appointment, targets, new_date: date, new_time: time) -> List[_Move]:
        moves = []
        for appt in targets:
            # a série mantém o deslocamento em dias em relação à âncora;
            # a hora nova vale para todos
            offset = (appt.date - anchor.date).days
            target_date = new_date + timedelta(days=offset)
            end = self._end_time(new_time, self._duration_of(appt))
            moves.append(_Move(appt, target_date, new_time, end))
        return moves

    async def _restore(self, appt: Appointment) -> Optional[str]:
        """Recria o evento antigo quando o novo não pôde ser criado."""
        try:
            restored_id = await self._create_event(appt)
        except SchedulingError as e:
            logger.error("Evento %s perdido: não foi possível recriar (%s)", appt.id, e)
            return None
        logger.warning("Evento %s recriado como %s após falha no reagendamento", appt.id, restored_id)
        return restored_id

    async def reschedule(
        self,
        anchor: Appointment,
        new_date: date,
        new_time,
        mode: str = MODE_SINGLE,
        candidates: Optional[Iterable[Appointment]] = None,
    ) -> RescheduleResult:
        if new_date is None or new_time is None:
            raise ValidationError("Nova data e novo horário são obrigatórios")
        try:
            new_time = parse_hhmm(new_time)
        except ValueError:
            raise ValidationError(f"Horário inválido: {new_time}")

        targets = await self._targets(anchor, mode, candidates)
        moves = self._plan_moves(anchor, targets, new_date, new_time)
        # telefones antes de mexer nos eventos
        phones = {m.appointment.id: self.phone_for(m.appointment.client_name, event_id=m.appointment.id) for m in moves}
        result = RescheduleResult()

        for move in moves:
            old = move.appointment
            phone = phones[old.id]
            try:
                await self.calendar.delete(old.id)
            except SchedulingError as e:
                logger.error("Erro ao remover evento antigo %s: %s", old.id, e)
                result.error_count += 1
                continue

            moved = Appointment(
                client_name=old.client_name,
                service=old.service,
                date=move.new_date,
                start_time=move.new_start,
                end_time=move.new_end,
                status=old.status,
            )
            try:
                moved.id = await self._create_event(moved)
            except SchedulingError as e:
                logger.error("Erro ao criar evento novo para %s: %s", old.id, e)
                result.error_count += 1
                restored_id = await self._restore(old)
                if restored_id:
                    result.restored_count += 1
                    if phone:
                        self.reminders.migrate(
                            old.id, restored_id, phone, old.client_name, old.service,
                            local_datetime(old.date, old.start_time),
                        )
                continue

            if phone:
                self.reminders.migrate(
                    old.id, moved.id, phone, moved.client_name, moved.service,
                    local_datetime(moved.date, moved.start_time),
                )
            result.success_count += 1

        # uma mensagem só, depois do laço, com o total reagendado
        message = messages.reschedule(
            anchor.client_name,
            anchor.service,
            anchor.date,
            anchor.start_time,
            new_date,
            new_time,
            count=result.success_count,
            series=(mode == MODE_SERIES),
        )
        result.whatsapp_sent = await self._send(phones[anchor.id], message)
        emit(
            self.notifier,
            "🔄 Agendamento Reagendado",
            messages.in_app_body(anchor.client_name, anchor.service, new_date, new_time, "Nova Data"),
            TAG_RESCHEDULED,
        )

        logger.info(
            "Reagendamento (%s): %s atualizado(s), %s erro(s)", mode, result.success_count, result.error_count
        )
        return result
