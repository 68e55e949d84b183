"""Dependências do FastAPI para as integrações externas.

Os testes trocam calendário, WhatsApp e notificação via
app.dependency_overrides.
"""
from functools import lru_cache

from fastapi import Depends
from sqlmodel import Session, select

from agenda.database import get_session
from agenda.integrations.calendar import GoogleCalendarStore
from agenda.integrations.notifier import LogNotifier
from agenda.integrations.whatsapp import WapiMessenger
from agenda.models.client import Client
from agenda.orchestrator import SchedulingOrchestrator
from agenda.reminders import ReminderLifecycleManager
from agenda.scheduling.availability import AvailabilityPlanner
from agenda.scheduling.matching import NormalizedNameMatcher


@lru_cache
def get_calendar():
    return GoogleCalendarStore()


@lru_cache
def get_messenger():
    return WapiMessenger()


def get_notifier():
    return LogNotifier()


def get_planner(
    session: Session = Depends(get_session),
    calendar=Depends(get_calendar),
) -> AvailabilityPlanner:
    return AvailabilityPlanner(session, calendar)


def get_orchestrator(
    session: Session = Depends(get_session),
    calendar=Depends(get_calendar),
    messenger=Depends(get_messenger),
    notifier=Depends(get_notifier),
    planner: AvailabilityPlanner = Depends(get_planner),
) -> SchedulingOrchestrator:
    clients = session.exec(select(Client)).all()
    return SchedulingOrchestrator(
        calendar=calendar,
        messenger=messenger,
        notifier=notifier,
        reminders=ReminderLifecycleManager(session),
        clients=NormalizedNameMatcher(clients),
        catalog=planner.catalog(),
        planner=planner,
    )
