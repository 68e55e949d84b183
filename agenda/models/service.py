from typing import Optional
from sqlmodel import SQLModel, Field


class ServiceBase(SQLModel):
    name: str = Field(index=True)
    duration_minutes: int
    price: float
    active: bool = True


class Service(ServiceBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
