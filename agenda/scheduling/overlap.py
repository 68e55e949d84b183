from typing import Iterable, NamedTuple, Optional


class BusyInterval(NamedTuple):
    """Intervalo ocupado [start, end) em minutos do dia."""

    start: int
    end: int
    # appointment | block
    kind: str
    label: str = ""


def overlaps(a_start, a_end, b_start, b_end) -> bool:
    """Retorna True se [a_start, a_end) sobrepõe [b_start, b_end).

    Encostar (um termina quando o outro começa) não é conflito.
    """
    return a_start < b_end and a_end > b_start


def find_conflict(start: int, end: int, busy: Iterable[BusyInterval]) -> Optional[BusyInterval]:
    for interval in busy:
        if overlaps(start, end, interval.start, interval.end):
            return interval
    return None


def has_conflict(start: int, end: int, busy: Iterable[BusyInterval]) -> bool:
    return find_conflict(start, end, busy) is not None
