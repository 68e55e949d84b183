import re
from typing import Iterable, List, NamedTuple, Optional

from agenda.config import DEFAULT_SERVICE_DURATION_MINUTES
from agenda.models.service import Service


# "Corte + Barba", "Corte, Barba", "Corte/Barba", "Corte e Barba"
SERVICE_SEPARATORS = re.compile(r"\s*[+,/]\s*|\s+e\s+", re.IGNORECASE)


class ServiceToken(NamedTuple):
    raw: str
    normalized: str


def parse_service_list(text: Optional[str]) -> List[ServiceToken]:
    if not text:
        return []
    tokens = []
    for part in SERVICE_SEPARATORS.split(text):
        part = part.strip()
        if part:
            tokens.append(ServiceToken(raw=part, normalized=part.lower()))
    return tokens


def match_service(token: ServiceToken, catalog: Iterable[Service]) -> Optional[Service]:
    catalog = [s for s in catalog if s.active]
    for service in catalog:
        if service.name.strip().lower() == token.normalized:
            return service

    # heurística de texto livre: um contém o outro
    for service in catalog:
        name = service.name.strip().lower()
        if not name:
            continue
        if name in token.normalized or token.normalized in name:
            return service
    return None


def matched_services(text: Optional[str], catalog: Iterable[Service]) -> List[Service]:
    catalog = list(catalog)
    found = []
    for token in parse_service_list(text):
        service = match_service(token, catalog)
        if service is not None:
            found.append(service)
    return found


def service_duration(
    text: Optional[str],
    catalog: Iterable[Service],
    default: Optional[int] = DEFAULT_SERVICE_DURATION_MINUTES,
) -> Optional[int]:
    found = matched_services(text, catalog)
    if not found:
        return default
    return sum(s.duration_minutes for s in found)


def service_price(text: Optional[str], catalog: Iterable[Service]) -> float:
    return sum(s.price for s in matched_services(text, catalog))
