from typing import Optional
from datetime import datetime
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

from agenda.config import DEFAULT_REMINDER_HOURS, DEFAULT_REMINDER_TEMPLATE
from agenda.core.clock import utcnow


# prefixo de registros que só guardam o vínculo eventId -> telefone;
# nunca são enviados pelo disparador
CONTACT_ONLY_PREFIX = "contact_only:"


class ScheduledReminder(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    event_id: str = Field(index=True)

    client_phone: str
    client_name: str
    service_name: str

    # instantes em UTC sem tzinfo; coluna DateTime "naive" explícita
    appointment_time: datetime = Field(sa_type=DateTime(timezone=False))
    reminder_time: datetime = Field(sa_type=DateTime(timezone=False), index=True)

    sent: bool = Field(default=False, index=True)
    sent_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=False))
    error: Optional[str] = None

    created_at: datetime = Field(
        default_factory=utcnow, sa_type=DateTime(timezone=False), index=True
    )

    @property
    def is_contact_only(self) -> bool:
        return bool(self.error) and self.error.startswith(CONTACT_ONLY_PREFIX)


class ReminderSettings(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    enabled: bool = True
    reminder_hours: int = DEFAULT_REMINDER_HOURS
    message_template: str = DEFAULT_REMINDER_TEMPLATE
