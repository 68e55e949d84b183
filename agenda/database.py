import logging

from sqlmodel import SQLModel, Session, create_engine

from agenda.config import DATABASE_URL

logger = logging.getLogger(__name__)

connect_args = {}
if DATABASE_URL.startswith("sqlite"):
    # necessário para SQLite + FastAPI
    connect_args = {"check_same_thread": False}

engine = create_engine(DATABASE_URL, echo=False, connect_args=connect_args)


def create_db_and_tables():
    # importa os modelos para registrar as tabelas no metadata
    from agenda.models import (  # noqa: F401
        business_hours,
        client,
        recurring_block,
        reminder,
        service,
        time_block,
        vacation_day,
    )

    SQLModel.metadata.create_all(engine)
    logger.info("Tabelas criadas/verificadas em %s", DATABASE_URL.split("://")[0])


# uma sessão por request
def get_session():
    with Session(engine) as session:
        yield session
