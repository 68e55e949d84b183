from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select

from agenda.config import RECURRING_BLOCK_HORIZON_DAYS
from agenda.core.security import get_current_operator
from agenda.database import get_session
from agenda.models.recurring_block import RecurringBlockRule, RecurringBlockRuleBase
from agenda.models.time_block import TimeBlock, TimeBlockBase
from agenda.scheduling.recurring_blocks import materialize_recurring_blocks, validate_per_weekday

router = APIRouter(prefix="/time-blocks", tags=["time-blocks"])


@router.get("/")
def list_time_blocks(
    start: Optional[date] = None,
    end: Optional[date] = None,
    session: Session = Depends(get_session),
    operator: str = Depends(get_current_operator),
):
    query = select(TimeBlock).order_by(TimeBlock.date, TimeBlock.start_time)
    if start:
        query = query.where(TimeBlock.date >= start)
    if end:
        query = query.where(TimeBlock.date <= end)
    return session.exec(query).all()


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_time_block(
    payload: TimeBlockBase,
    session: Session = Depends(get_session),
    operator: str = Depends(get_current_operator),
):
    if payload.end_time <= payload.start_time:
        raise HTTPException(status_code=400, detail="end_time deve ser maior que start_time")

    block = TimeBlock.model_validate(payload)
    session.add(block)
    session.commit()
    session.refresh(block)
    return block


# =========================
# BLOQUEIO FIXO (ex.: almoço)
# =========================

@router.get("/recurring-rule")
def get_recurring_rule(
    session: Session = Depends(get_session),
    operator: str = Depends(get_current_operator),
):
    rule = session.exec(select(RecurringBlockRule)).first()
    if not rule:
        return RecurringBlockRule()
    return rule


@router.put("/recurring-rule")
def upsert_recurring_rule(
    payload: RecurringBlockRuleBase,
    session: Session = Depends(get_session),
    operator: str = Depends(get_current_operator),
):
    per_weekday = validate_per_weekday(payload.per_weekday or {})

    rule = session.exec(select(RecurringBlockRule)).first()
    if rule is None:
        rule = RecurringBlockRule()

    rule.reason = payload.reason or "Almoço"
    rule.per_weekday = per_weekday
    session.add(rule)
    session.commit()
    session.refresh(rule)
    return rule


@router.post("/recurring-rule/materialize")
def materialize_rule(
    start: Optional[date] = None,
    days: int = RECURRING_BLOCK_HORIZON_DAYS,
    session: Session = Depends(get_session),
    operator: str = Depends(get_current_operator),
):
    if days < 1:
        raise HTTPException(status_code=400, detail="days deve ser pelo menos 1")

    created = materialize_recurring_blocks(session, start_day=start, horizon_days=days)
    return {"created": created}


@router.delete("/recurring-rule")
def delete_recurring_rule(
    session: Session = Depends(get_session),
    operator: str = Depends(get_current_operator),
):
    # bloqueios já materializados continuam; só para de gerar novos
    rule = session.exec(select(RecurringBlockRule)).first()
    if not rule:
        raise HTTPException(status_code=404, detail="Nenhuma regra de bloqueio fixo")

    session.delete(rule)
    session.commit()
    return {"message": "Regra de bloqueio fixo removida"}


# rota com parâmetro por último: não pode capturar /recurring-rule
@router.delete("/{block_id}")
def delete_time_block(
    block_id: int,
    session: Session = Depends(get_session),
    operator: str = Depends(get_current_operator),
):
    block = session.get(TimeBlock, block_id)
    if not block:
        raise HTTPException(status_code=404, detail="Bloqueio não encontrado")

    session.delete(block)
    session.commit()
    return {"message": "Bloqueio removido"}
