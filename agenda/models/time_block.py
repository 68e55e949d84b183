import datetime as dt
from typing import Optional
from sqlmodel import SQLModel, Field


class TimeBlockBase(SQLModel):
    date: dt.date = Field(index=True)
    start_time: dt.time
    end_time: dt.time

    reason: str = "Bloqueio"


class TimeBlock(TimeBlockBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
