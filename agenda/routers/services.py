from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select

from agenda.core.security import get_current_operator
from agenda.database import get_session
from agenda.models.service import Service, ServiceBase


router = APIRouter(
    prefix="/services",
    tags=["services"]
)


def _validate(service: ServiceBase) -> None:
    if not service.name or not service.name.strip():
        raise HTTPException(status_code=400, detail="Nome do serviço é obrigatório")
    if service.duration_minutes <= 0:
        raise HTTPException(status_code=400, detail="duration_minutes deve ser positivo")
    if service.price < 0:
        raise HTTPException(status_code=400, detail="price não pode ser negativo")


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_service(
    payload: ServiceBase,
    session: Session = Depends(get_session),
    operator: str = Depends(get_current_operator),
):
    _validate(payload)
    service = Service.model_validate(payload)
    service.name = service.name.strip()

    session.add(service)
    session.commit()
    session.refresh(service)

    return service


@router.get("/")
def list_services(
    include_inactive: bool = False,
    session: Session = Depends(get_session),
):
    query = select(Service).order_by(Service.name)
    if not include_inactive:
        query = query.where(Service.active == True)  # noqa: E712
    return session.exec(query).all()


@router.put("/{service_id}")
def update_service(
    service_id: int,
    payload: ServiceBase,
    session: Session = Depends(get_session),
    operator: str = Depends(get_current_operator),
):
    service = session.get(Service, service_id)
    if not service:
        raise HTTPException(status_code=404, detail="Serviço não encontrado")

    _validate(payload)
    service.name = payload.name.strip()
    service.duration_minutes = payload.duration_minutes
    service.price = payload.price
    service.active = payload.active

    session.add(service)
    session.commit()
    session.refresh(service)
    return service


@router.delete("/{service_id}")
def deactivate_service(
    service_id: int,
    session: Session = Depends(get_session),
    operator: str = Depends(get_current_operator),
):
    # agendamentos antigos ainda citam o nome: só desativa
    service = session.get(Service, service_id)
    if not service:
        raise HTTPException(status_code=404, detail="Serviço não encontrado")

    service.active = False
    session.add(service)
    session.commit()
    return {"message": "Serviço desativado"}
