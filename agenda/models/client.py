from typing import Optional
from datetime import datetime
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

from agenda.core.clock import utcnow


class ClientBase(SQLModel):
    name: str = Field(index=True)
    phone: Optional[str] = None


# cadastro de clientes: o agendamento só guarda o nome em texto livre,
# então o vínculo é feito por nome normalizado (ver scheduling/matching.py)
class Client(ClientBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=False))
