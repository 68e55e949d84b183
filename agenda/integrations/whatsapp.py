"""
WhatsApp (W-API)
Envio de mensagens de texto para o cliente.
"""
import logging
import re
from typing import Optional, Protocol

import httpx

from agenda.config import (
    PHONE_COUNTRY_CODE,
    WAPI_BASE_URL,
    WAPI_DELAY_SECONDS,
    WAPI_INSTANCE_ID,
    WAPI_TOKEN,
)
from agenda.core.errors import UpstreamError, ValidationError

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"\D")


class MessageDispatcher(Protocol):
    async def send(self, phone: str, message: str) -> None:
        ...


def format_phone(raw: Optional[str], country_code: str = PHONE_COUNTRY_CODE) -> str:
    """Só dígitos; prefixa o DDI quando o número ainda não tem (até 11 dígitos)."""
    digits = _NON_DIGITS.sub("", raw or "")
    if not digits:
        raise ValidationError("Telefone vazio")
    if not digits.startswith(country_code) and len(digits) <= 11:
        digits = country_code + digits
    return digits


class WapiMessenger:
    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        instance_id: Optional[str] = WAPI_INSTANCE_ID,
        token: Optional[str] = WAPI_TOKEN,
        base_url: str = WAPI_BASE_URL,
    ):
        self.client = client or httpx.AsyncClient(timeout=20.0)
        self.instance_id = instance_id
        self.token = token
        self.base_url = base_url.rstrip("/")

    async def send(self, phone: str, message: str) -> None:
        if not self.instance_id or not self.token:
            raise UpstreamError("whatsapp.send", "credenciais W-API não configuradas")

        formatted = format_phone(phone)
        body = {
            "phone": formatted,
            "message": message,
            "delayMessage": WAPI_DELAY_SECONDS,
        }

        try:
            response = await self.client.post(
                f"{self.base_url}/message/send-text",
                params={"instanceId": self.instance_id},
                json=body,
                headers={"Authorization": f"Bearer {self.token}"},
            )
        except httpx.HTTPError as e:
            logger.error("Falha de rede ao enviar WhatsApp para %s: %s", formatted, e)
            raise UpstreamError("whatsapp.send", str(e)) from e

        if response.status_code >= 400:
            logger.error("W-API respondeu %s: %s", response.status_code, response.text[:300])
            raise UpstreamError("whatsapp.send", response.text[:300], status_code=response.status_code)

        logger.info("WhatsApp enviado para %s", formatted)
