from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, SQLModel

from agenda.core.deps import get_messenger
from agenda.core.security import get_current_operator
from agenda.database import get_session
from agenda.reminders import ReminderDispatcher, get_reminder_settings

router = APIRouter(prefix="/reminders", tags=["reminders"])


class ReminderSettingsUpdate(SQLModel):
    enabled: Optional[bool] = None
    reminder_hours: Optional[int] = None
    message_template: Optional[str] = None


@router.get("/settings")
def read_settings(
    session: Session = Depends(get_session),
    operator: str = Depends(get_current_operator),
):
    return get_reminder_settings(session)


@router.put("/settings")
def update_settings(
    payload: ReminderSettingsUpdate,
    session: Session = Depends(get_session),
    operator: str = Depends(get_current_operator),
):
    settings = get_reminder_settings(session)

    if payload.reminder_hours is not None:
        if payload.reminder_hours < 1 or payload.reminder_hours > 72:
            raise HTTPException(status_code=400, detail="reminder_hours deve ficar entre 1 e 72")
        settings.reminder_hours = payload.reminder_hours

    if payload.message_template is not None:
        if not payload.message_template.strip():
            raise HTTPException(status_code=400, detail="message_template não pode ser vazio")
        settings.message_template = payload.message_template

    if payload.enabled is not None:
        settings.enabled = payload.enabled

    session.add(settings)
    session.commit()
    session.refresh(settings)
    return settings


@router.post("/dispatch")
async def dispatch_reminders(
    session: Session = Depends(get_session),
    messenger=Depends(get_messenger),
    operator: str = Depends(get_current_operator),
):
    report = await ReminderDispatcher(session, messenger).dispatch_due()
    return {
        "sent": report.sent,
        "failed": report.failed,
        "duplicates_skipped": report.duplicates_skipped,
        "errors": report.errors,
    }
