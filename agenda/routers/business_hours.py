from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from agenda.core.security import get_current_operator
from agenda.database import get_session
from agenda.models.business_hours import BusinessHours, BusinessHoursBase

router = APIRouter(prefix="/business-hours", tags=["business-hours"])


@router.get("/")
def list_business_hours(
    session: Session = Depends(get_session),
    operator: str = Depends(get_current_operator),
):
    return session.exec(select(BusinessHours).order_by(BusinessHours.weekday)).all()


@router.put("/{weekday}")
def upsert_business_hours(
    weekday: int,
    payload: BusinessHoursBase,
    session: Session = Depends(get_session),
    operator: str = Depends(get_current_operator),
):
    """
    weekday: 0=segunda ... 6=domingo
    """
    if weekday < 0 or weekday > 6:
        raise HTTPException(status_code=400, detail="weekday deve ser 0..6")

    if not payload.is_closed:
        if payload.open_time is None or payload.close_time is None:
            raise HTTPException(status_code=400, detail="open_time e close_time são obrigatórios quando is_closed=false")

        if payload.close_time <= payload.open_time:
            raise HTTPException(status_code=400, detail="close_time deve ser maior que open_time")

    row = session.exec(
        select(BusinessHours).where(BusinessHours.weekday == weekday)
    ).first()

    if row is None:
        row = BusinessHours(weekday=weekday)

    row.is_closed = payload.is_closed
    row.open_time = payload.open_time
    row.close_time = payload.close_time

    session.add(row)
    session.commit()
    session.refresh(row)
    return row
