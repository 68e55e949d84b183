from typing import Optional
from datetime import time
from sqlmodel import SQLModel, Field


class BusinessHoursBase(SQLModel):
    is_closed: bool = False

    open_time: Optional[time] = None
    close_time: Optional[time] = None


class BusinessHours(BusinessHoursBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # 0=segunda ... 6=domingo (date.weekday())
    weekday: int = Field(index=True, unique=True)
