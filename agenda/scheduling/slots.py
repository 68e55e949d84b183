from typing import List, Optional

from agenda.config import SLOT_CHECK_INTERVAL_MINUTES
from agenda.core.clock import format_hhmm, minutes_of, time_from_minutes
from agenda.core.errors import ValidationError
from agenda.models.business_hours import BusinessHours


def is_open(hours: Optional[BusinessHours]) -> bool:
    return bool(hours) and not hours.is_closed and bool(hours.open_time) and bool(hours.close_time)


def generate_slots(
    hours: Optional[BusinessHours],
    duration_minutes: int,
    step_minutes: int = SLOT_CHECK_INTERVAL_MINUTES,
) -> List[str]:
    """Horários candidatos (HH:MM) em que o serviço cabe no expediente.

    Varre a partir da abertura em passos de `step_minutes` e para no primeiro
    início cujo fim passaria do fechamento (os seguintes também passariam).
    """
    if duration_minutes <= 0:
        raise ValidationError("Duração do serviço deve ser positiva")
    if step_minutes <= 0:
        raise ValidationError("Intervalo de verificação deve ser positivo")

    if not is_open(hours):
        return []

    open_min = minutes_of(hours.open_time)
    close_min = minutes_of(hours.close_time)

    slots: List[str] = []
    current = open_min
    while current < close_min:
        if current + duration_minutes > close_min:
            break
        slots.append(format_hhmm(time_from_minutes(current)))
        current += step_minutes

    return slots
