from typing import Any, Dict, Optional
from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field


class RecurringBlockRuleBase(SQLModel):
    reason: str = "Almoço"

    # {"0": {"enabled": true, "start_time": "12:00", "end_time": "13:00"}, ...}
    # chave = date.weekday() em texto
    per_weekday: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))


class RecurringBlockRule(RecurringBlockRuleBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
