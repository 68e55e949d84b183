from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select

from agenda.core.security import get_current_operator
from agenda.database import get_session
from agenda.models.client import Client, ClientBase
from agenda.scheduling.matching import NormalizedNameMatcher

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("/")
def list_clients(
    q: Optional[str] = None,
    session: Session = Depends(get_session),
    operator: str = Depends(get_current_operator),
):
    clients = session.exec(select(Client).order_by(Client.name)).all()
    if not q:
        return clients
    # mesma normalização usada para achar o cliente de um agendamento
    match = NormalizedNameMatcher(clients).match(q)
    return match.candidates


@router.get("/match")
def match_client(
    name: str,
    session: Session = Depends(get_session),
    operator: str = Depends(get_current_operator),
):
    match = NormalizedNameMatcher(session.exec(select(Client)).all()).match(name)
    return {
        "client": match.client,
        "strategy": match.strategy,
        "confidence": match.confidence,
        "ambiguous": match.ambiguous,
        "candidates": match.candidates,
    }


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_client(
    payload: ClientBase,
    session: Session = Depends(get_session),
    operator: str = Depends(get_current_operator),
):
    if not payload.name or not payload.name.strip():
        raise HTTPException(status_code=400, detail="Nome do cliente é obrigatório")

    client = Client(name=payload.name.strip(), phone=payload.phone)
    session.add(client)
    session.commit()
    session.refresh(client)
    return client


@router.put("/{client_id}")
def update_client(
    client_id: int,
    payload: ClientBase,
    session: Session = Depends(get_session),
    operator: str = Depends(get_current_operator),
):
    client = session.get(Client, client_id)
    if not client:
        raise HTTPException(status_code=404, detail="Cliente não encontrado")

    if not payload.name or not payload.name.strip():
        raise HTTPException(status_code=400, detail="Nome do cliente é obrigatório")

    client.name = payload.name.strip()
    client.phone = payload.phone
    session.add(client)
    session.commit()
    session.refresh(client)
    return client


@router.delete("/{client_id}")
def delete_client(
    client_id: int,
    session: Session = Depends(get_session),
    operator: str = Depends(get_current_operator),
):
    client = session.get(Client, client_id)
    if not client:
        raise HTTPException(status_code=404, detail="Cliente não encontrado")

    session.delete(client)
    session.commit()
    return {"message": "Cliente removido"}
