"""
Google Calendar
Cria, remove e lista eventos. O calendário é o dono dos agendamentos:
não existe "mover" evento, reagendar é sempre remover + criar.
"""
import asyncio
import json
import logging
import re
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional, Protocol

import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from agenda.config import GOOGLE_CALENDAR_ID, GOOGLE_SERVICE_ACCOUNT_JSON
from agenda.core.clock import to_local
from agenda.core.errors import UpstreamError
from agenda.models.appointment import Appointment

logger = logging.getLogger(__name__)

GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"
CALENDAR_SCOPE = "https://www.googleapis.com/auth/calendar"

SUMMARY_SEPARATOR = " - "

_ISO_DATETIME = re.compile(r"^(\d{4}-\d{2}-\d{2})T(\d{2}:\d{2})")
_ISO_DATE = re.compile(r"^(\d{4}-\d{2}-\d{2})$")


class CalendarStore(Protocol):
    async def create(self, summary: str, description: str, start_iso: str, end_iso: str) -> str:
        ...

    async def delete(self, event_id: str) -> None:
        ...

    async def list(self, time_min_iso: str, time_max_iso: str) -> List[Appointment]:
        ...


# =========================
# EVENTO <-> AGENDAMENTO
# =========================

def build_summary(service: str, client_name: str) -> str:
    return f"{service}{SUMMARY_SEPARATOR}{client_name}"


def split_summary(summary: Optional[str]):
    """"Serviço - Nome do Cliente" -> (serviço, cliente).

    Sem o separador, o título inteiro vira o nome do cliente.
    """
    summary = summary or "Sem título"
    parts = summary.split(SUMMARY_SEPARATOR)
    if len(parts) >= 2:
        # junta caso o nome tenha " - "
        return parts[0].strip(), SUMMARY_SEPARATOR.join(parts[1:]).strip()
    return "", summary


def extract_date_time(value: str):
    """Data e hora locais como aparecem na string, sem converter fuso."""
    m = _ISO_DATETIME.match(value)
    if m:
        return date.fromisoformat(m.group(1)), time.fromisoformat(m.group(2))

    m = _ISO_DATE.match(value)
    if m:
        # evento de dia inteiro
        return date.fromisoformat(m.group(1)), time(0, 0)

    local = to_local(datetime.fromisoformat(value.replace("Z", "+00:00")))
    return local.date(), local.time().replace(second=0, microsecond=0)


def event_to_appointment(event: Dict[str, Any]) -> Appointment:
    start = event.get("start") or {}
    end = event.get("end") or {}
    start_date, start_time = extract_date_time(start.get("dateTime") or start.get("date") or "")
    _, end_time = extract_date_time(end.get("dateTime") or end.get("date") or "")

    service, client_name = split_summary(event.get("summary"))

    return Appointment(
        id=event.get("id"),
        client_name=client_name,
        service=service or event.get("description") or "",
        date=start_date,
        start_time=start_time,
        end_time=end_time,
        status="confirmed",
    )


# =========================
# GOOGLE CALENDAR (REST)
# =========================

def load_credentials(service_account_json: Optional[str]):
    """Credenciais da service account a partir do JSON da chave."""
    if not service_account_json:
        return None
    info = json.loads(service_account_json)
    return service_account.Credentials.from_service_account_info(info, scopes=[CALENDAR_SCOPE])


class GoogleCalendarStore:
    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        calendar_id: str = GOOGLE_CALENDAR_ID,
        service_account_json: Optional[str] = GOOGLE_SERVICE_ACCOUNT_JSON,
        credentials=None,
    ):
        self.client = client or httpx.AsyncClient(timeout=20.0)
        self.calendar_id = calendar_id
        self.credentials = credentials or load_credentials(service_account_json)

    @property
    def events_url(self) -> str:
        return f"{GOOGLE_CALENDAR_API}/calendars/{self.calendar_id}/events"

    async def _access_token(self) -> str:
        if not self.credentials:
            raise UpstreamError("calendar.auth", "GOOGLE_SERVICE_ACCOUNT_JSON não configurado")

        if not self.credentials.valid:
            try:
                # refresh do google-auth é síncrono
                await asyncio.to_thread(self.credentials.refresh, Request())
            except GoogleAuthError as e:
                logger.error("Falha ao renovar token do Google Calendar: %s", e)
                raise UpstreamError("calendar.auth", str(e)) from e
            logger.info("Token do Google Calendar renovado")

        if not self.credentials.token:
            raise UpstreamError("calendar.auth", "resposta sem access_token")
        return self.credentials.token

    async def _request(self, operation: str, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Falha de rede em %s: %s", operation, e)
            raise UpstreamError(operation, str(e)) from e

        if response.status_code >= 400:
            logger.error("Calendar API %s falhou (%s): %s", operation, response.status_code, response.text[:300])
            raise UpstreamError(operation, response.text[:300], status_code=response.status_code)
        return response

    async def _authorized(self, operation: str, method: str, url: str, **kwargs) -> httpx.Response:
        token = await self._access_token()
        headers = {"Authorization": f"Bearer {token}"}
        return await self._request(operation, method, url, headers=headers, **kwargs)

    async def create(self, summary: str, description: str, start_iso: str, end_iso: str) -> str:
        body = {
            "summary": summary,
            "description": description,
            "start": {"dateTime": start_iso},
            "end": {"dateTime": end_iso},
        }
        response = await self._authorized("calendar.create", "POST", self.events_url, json=body)
        event_id = response.json().get("id")
        if not event_id:
            raise UpstreamError("calendar.create", "evento criado sem id")
        logger.info("Evento criado: %s (%s)", event_id, summary)
        return event_id

    async def delete(self, event_id: str) -> None:
        await self._authorized("calendar.delete", "DELETE", f"{self.events_url}/{event_id}")
        logger.info("Evento removido: %s", event_id)

    async def list_events(self, time_min_iso: str, time_max_iso: str) -> List[Dict[str, Any]]:
        events: List[Dict[str, Any]] = []
        params = {
            "timeMin": time_min_iso,
            "timeMax": time_max_iso,
            "singleEvents": "true",
            "orderBy": "startTime",
            "maxResults": "2500",
        }
        while True:
            response = await self._authorized("calendar.list", "GET", self.events_url, params=params)
            data = response.json()
            events.extend(data.get("items", []))
            page_token = data.get("nextPageToken")
            if not page_token:
                return events
            params = {**params, "pageToken": page_token}

    async def list(self, time_min_iso: str, time_max_iso: str) -> List[Appointment]:
        return [event_to_appointment(e) for e in await self.list_events(time_min_iso, time_max_iso)]
