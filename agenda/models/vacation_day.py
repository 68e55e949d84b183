import datetime as dt
from typing import Optional
from sqlmodel import SQLModel, Field


class VacationDayBase(SQLModel):
    date: dt.date = Field(index=True, unique=True)
    reason: Optional[str] = None


# dia inteiro indisponível; vale mais que bloqueios e horário de funcionamento
class VacationDay(VacationDayBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
