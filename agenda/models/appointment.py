from typing import Optional
from datetime import date, time
from sqlmodel import SQLModel


# O agendamento não é tabela local: o dono é o calendário externo.
# O id vem de lá e nunca é gerado aqui.
class Appointment(SQLModel):
    id: Optional[str] = None

    client_name: str
    # texto livre, pode juntar serviços: "Corte + Barba"
    service: str

    date: date
    start_time: time
    end_time: time

    # confirmed | pending
    status: str = "confirmed"


class BookingRequest(SQLModel):
    client_name: str
    service: str
    date: date
    start_time: time

    # opcional: se vazio, tenta achar no cadastro de clientes
    client_phone: Optional[str] = None


class RecurringBookingRequest(BookingRequest):
    weeks: int = 4


# cancelar/reagendar recebem a data atual do evento:
# o calendário é consultado por dia para achar o evento pelo id
class CancelRequest(SQLModel):
    date: date
    # single | series
    mode: str = "single"


class RescheduleRequest(SQLModel):
    date: date
    new_date: date
    new_time: time
    mode: str = "single"
