from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select

from agenda.core.security import get_current_operator
from agenda.database import get_session
from agenda.models.vacation_day import VacationDay, VacationDayBase

router = APIRouter(prefix="/vacations", tags=["vacations"])


@router.get("/")
def list_vacations(
    start: Optional[date] = None,
    end: Optional[date] = None,
    session: Session = Depends(get_session),
    operator: str = Depends(get_current_operator),
):
    query = select(VacationDay).order_by(VacationDay.date)
    if start:
        query = query.where(VacationDay.date >= start)
    if end:
        query = query.where(VacationDay.date <= end)
    return session.exec(query).all()


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_vacation(
    payload: VacationDayBase,
    session: Session = Depends(get_session),
    operator: str = Depends(get_current_operator),
):
    existing = session.exec(
        select(VacationDay).where(VacationDay.date == payload.date)
    ).first()
    if existing:
        raise HTTPException(status_code=400, detail="Data já marcada como férias")

    vacation = VacationDay.model_validate(payload)
    session.add(vacation)
    session.commit()
    session.refresh(vacation)
    return vacation


@router.delete("/{day}")
def delete_vacation(
    day: date,
    session: Session = Depends(get_session),
    operator: str = Depends(get_current_operator),
):
    vacation = session.exec(select(VacationDay).where(VacationDay.date == day)).first()
    if not vacation:
        raise HTTPException(status_code=404, detail="Data de férias não encontrada")

    session.delete(vacation)
    session.commit()
    return {"message": "Férias removidas"}
