"""Lembretes de WhatsApp ligados aos eventos do calendário.

Cada agendamento vivo tem no máximo um lembrete pendente, chaveado pelo
event_id. Como reagendar = remover + criar evento, o lembrete é migrado para
o novo event_id em vez de ser recriado. Registros "contact_only" só guardam
o vínculo event_id -> telefone e nunca são enviados.

Tudo aqui é best-effort: falha de escrita é registrada no log e nunca
interrompe o agendamento.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from agenda.core.clock import to_utc_naive, utcnow
from agenda.core.errors import SchedulingError
from agenda.integrations.messages import render_reminder
from agenda.models.reminder import CONTACT_ONLY_PREFIX, ReminderSettings, ScheduledReminder

logger = logging.getLogger(__name__)

REASON_DISABLED = "reminders_disabled"
REASON_TIME_PASSED = "reminder_time_passed"


@dataclass
class ReminderOutcome:
    stored: bool
    # created | updated | migrated | contact_only | skipped | failed
    action: str
    reminder_id: Optional[int] = None
    reminder_time: Optional[datetime] = None

    @property
    def scheduled(self) -> bool:
        return self.stored and self.action in ("created", "updated", "migrated")


def get_reminder_settings(session: Session) -> ReminderSettings:
    settings = session.exec(select(ReminderSettings)).first()
    if settings is None:
        settings = ReminderSettings()
        session.add(settings)
        session.commit()
        session.refresh(settings)
    return settings


class ReminderLifecycleManager:
    def __init__(self, session: Session, now: Callable[[], datetime] = utcnow):
        self.session = session
        self.now = now

    # =========================
    # CONSULTAS
    # =========================

    def _latest(self, event_id: str, pending_only: bool = False) -> Optional[ScheduledReminder]:
        query = select(ScheduledReminder).where(ScheduledReminder.event_id == event_id)
        if pending_only:
            query = query.where(ScheduledReminder.sent == False)  # noqa: E712
        query = query.order_by(ScheduledReminder.created_at.desc(), ScheduledReminder.id.desc())
        return self.session.exec(query).first()

    def pending_for(self, event_id: str) -> Optional[ScheduledReminder]:
        return self._latest(event_id, pending_only=True)

    def resolve_phone(self, event_id: Optional[str]) -> Optional[str]:
        """Telefone do registro mais recente do evento (inclusive contact_only)."""
        if not event_id:
            return None
        try:
            row = self._latest(event_id)
        except SQLAlchemyError:
            logger.exception("Falha ao resolver telefone pelo evento %s", event_id)
            return None
        return row.client_phone if row else None

    # =========================
    # TRANSIÇÕES
    # =========================

    def create(
        self,
        event_id: str,
        client_phone: str,
        client_name: str,
        service_name: str,
        appointment_time: datetime,
    ) -> ReminderOutcome:
        return self.schedule(event_id, client_phone, client_name, service_name, appointment_time)

    def migrate(
        self,
        previous_event_id: str,
        event_id: str,
        client_phone: str,
        client_name: str,
        service_name: str,
        appointment_time: datetime,
    ) -> ReminderOutcome:
        return self.schedule(
            event_id,
            client_phone,
            client_name,
            service_name,
            appointment_time,
            previous_event_id=previous_event_id,
        )

    def schedule(
        self,
        event_id: str,
        client_phone: str,
        client_name: str,
        service_name: str,
        appointment_time: datetime,
        previous_event_id: Optional[str] = None,
    ) -> ReminderOutcome:
        if not (event_id and client_phone and client_name and service_name and appointment_time):
            logger.warning("Lembrete ignorado: campos obrigatórios ausentes (evento %s)", event_id)
            return ReminderOutcome(stored=False, action="skipped")

        try:
            return self._schedule(
                event_id, client_phone, client_name, service_name, appointment_time, previous_event_id
            )
        except SQLAlchemyError:
            logger.exception("Falha ao gravar lembrete do evento %s", event_id)
            self.session.rollback()
            return ReminderOutcome(stored=False, action="failed")

    def _schedule(self, event_id, client_phone, client_name, service_name, appointment_time, previous_event_id):
        appointment_utc = to_utc_naive(appointment_time)
        details = dict(
            client_phone=client_phone,
            client_name=client_name,
            service_name=service_name,
            appointment_time=appointment_utc,
        )
        moved = bool(previous_event_id) and previous_event_id != event_id

        settings = get_reminder_settings(self.session)
        if not settings.enabled:
            logger.info("Lembretes desativados; guardando só o contato do evento %s", event_id)
            return self._store_contact(event_id, previous_event_id if moved else None, details, REASON_DISABLED)

        reminder_time = appointment_utc - timedelta(hours=settings.reminder_hours)
        if reminder_time <= self.now():
            logger.info("Horário do lembrete já passou; guardando só o contato do evento %s", event_id)
            return self._store_contact(event_id, previous_event_id if moved else None, details, REASON_TIME_PASSED)

        if moved:
            row = self.pending_for(previous_event_id)
            if row is None:
                # só há registros enviados/contact_only: leva o mais recente adiante
                # como lembrete pendente do novo evento
                row = self._latest(previous_event_id)
                if row is not None:
                    row.sent = False
                    row.sent_at = None
                    row.error = None
            if row is not None:
                self._apply(row, event_id=event_id, reminder_time=reminder_time, **details)
                logger.info("Lembrete %s migrado de %s para %s", row.id, previous_event_id, event_id)
                return ReminderOutcome(True, "migrated", row.id, reminder_time)

        row = self.pending_for(event_id)
        if row is not None:
            self._apply(row, reminder_time=reminder_time, **details)
            logger.info("Lembrete %s atualizado para %s", row.id, client_name)
            return ReminderOutcome(True, "updated", row.id, reminder_time)

        row = ScheduledReminder(event_id=event_id, reminder_time=reminder_time, **details)
        self._apply(row)
        logger.info("Lembrete criado para %s às %s (UTC)", client_name, reminder_time)
        return ReminderOutcome(True, "created", row.id, reminder_time)

    def _store_contact(self, event_id, previous_event_id, details, reason) -> ReminderOutcome:
        contact = dict(
            details,
            sent=True,
            sent_at=self.now(),
            error=f"{CONTACT_ONLY_PREFIX}{reason}",
            reminder_time=details["appointment_time"],
        )

        if previous_event_id:
            row = self._latest(previous_event_id)
            if row is not None:
                self._apply(row, event_id=event_id, **contact)
                return ReminderOutcome(True, "contact_only", row.id)

        row = self._latest(event_id)
        if row is not None:
            self._apply(row, **contact)
            return ReminderOutcome(True, "contact_only", row.id)

        row = ScheduledReminder(event_id=event_id, **contact)
        self._apply(row)
        return ReminderOutcome(True, "contact_only", row.id)

    def _apply(self, row: ScheduledReminder, **changes) -> None:
        for key, value in changes.items():
            setattr(row, key, value)
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)


# =========================
# DISPARO (cron)
# =========================

@dataclass
class DispatchReport:
    sent: int = 0
    failed: int = 0
    duplicates_skipped: int = 0
    errors: List[str] = field(default_factory=list)


class ReminderDispatcher:
    """Envia os lembretes vencidos. Registros contact_only nunca são pegos."""

    def __init__(self, session: Session, messenger, now: Callable[[], datetime] = utcnow):
        self.session = session
        self.messenger = messenger
        self.now = now

    def _claim(self, now: datetime) -> List[ScheduledReminder]:
        # marca como "em processamento" para outra execução não pegar os mesmos
        marker = f"processing:{uuid.uuid4()}"
        due = self.session.exec(
            select(ScheduledReminder).where(
                ScheduledReminder.sent == False,  # noqa: E712
                ScheduledReminder.error == None,  # noqa: E711
                ScheduledReminder.reminder_time <= now,
            )
        ).all()
        for row in due:
            row.error = marker
            self.session.add(row)
        self.session.commit()
        return list(due)

    async def dispatch_due(self) -> DispatchReport:
        now = self.now()
        report = DispatchReport()

        claimed = self._claim(now)
        if not claimed:
            logger.info("Nenhum lembrete pendente")
            return report

        # um lembrete por evento: fica o mais recente
        latest = {}
        for row in claimed:
            current = latest.get(row.event_id)
            if current is None or (row.created_at, row.id) > (current.created_at, current.id):
                latest[row.event_id] = row

        for row in claimed:
            if latest[row.event_id] is not row:
                row.sent = True
                row.sent_at = now
                row.error = "duplicate_skipped"
                self.session.add(row)
                report.duplicates_skipped += 1
        self.session.commit()

        template = get_reminder_settings(self.session).message_template

        for row in latest.values():
            if row.is_contact_only:
                continue
            message = render_reminder(template, row.client_name, row.service_name, row.appointment_time)
            try:
                await self.messenger.send(row.client_phone, message)
            except SchedulingError as e:
                logger.error("Falha ao enviar lembrete %s para %s: %s", row.id, row.client_name, e)
                row.error = str(e)
                report.failed += 1
                report.errors.append(f"{row.client_name}: {e}")
            else:
                row.sent = True
                row.sent_at = now
                row.error = None
                report.sent += 1
            self.session.add(row)
            self.session.commit()

        logger.info(
            "Lembretes: %s enviado(s), %s erro(s), %s duplicado(s)",
            report.sent,
            report.failed,
            report.duplicates_skipped,
        )
        return report
