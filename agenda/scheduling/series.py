from typing import Iterable, List, NamedTuple

from agenda.models.appointment import Appointment
from agenda.scheduling.matching import first_token, is_prefix_either_way, normalize_name


class SeriesKey(NamedTuple):
    client: str
    first_name: str
    service: str
    start_time: str
    weekday: int


def series_key(appt: Appointment) -> SeriesKey:
    client = normalize_name(appt.client_name)
    return SeriesKey(
        client=client,
        first_name=first_token(client),
        service=normalize_name(appt.service),
        start_time=appt.start_time.strftime("%H:%M"),
        weekday=appt.date.weekday(),
    )


def keys_compatible(base: SeriesKey, other: SeriesKey) -> bool:
    if base.start_time != other.start_time or base.weekday != other.weekday:
        return False

    same_client = (
        base.client == other.client
        or is_prefix_either_way(base.client, other.client)
        or (bool(base.first_name) and base.first_name == other.first_name)
    )
    if not same_client:
        return False

    # "Corte" casa com "Corte + Barba"
    return base.service == other.service or is_prefix_either_way(base.service, other.service)


def find_series(anchor: Appointment, appointments: Iterable[Appointment]) -> List[Appointment]:
    """Ocorrências futuras do mesmo horário fixo semanal do `anchor`.

    Mesmo cliente (igual, prefixo ou mesmo primeiro nome), mesmo serviço
    (igual ou prefixo), mesma hora de início, mesmo dia da semana e data
    estritamente depois da âncora. Lista vazia = não é série.
    """
    base = series_key(anchor)
    matches: List[Appointment] = []

    for candidate in appointments:
        # checagens baratas primeiro
        if candidate is anchor or (anchor.id is not None and candidate.id == anchor.id):
            continue
        if candidate.start_time != anchor.start_time:
            continue
        if candidate.date <= anchor.date:
            continue
        if keys_compatible(base, series_key(candidate)):
            matches.append(candidate)

    return sorted(matches, key=lambda a: (a.date, a.start_time))
