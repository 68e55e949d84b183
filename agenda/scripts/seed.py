from datetime import time

from sqlmodel import Session, select

from agenda.database import create_db_and_tables, engine
from agenda.models.business_hours import BusinessHours
from agenda.models.recurring_block import RecurringBlockRule
from agenda.models.service import Service


# seg-sáb aberto, domingo fechado
DEFAULT_HOURS = {
    weekday: dict(is_closed=False, open_time=time(9, 0), close_time=time(19, 0))
    for weekday in range(6)
}
DEFAULT_HOURS[6] = dict(is_closed=True, open_time=None, close_time=None)

DEFAULT_SERVICES = [
    dict(name="Corte", duration_minutes=30, price=40.0),
    dict(name="Barba", duration_minutes=20, price=30.0),
    dict(name="Corte + Barba", duration_minutes=50, price=65.0),
]

# almoço de seg a sex
DEFAULT_LUNCH = {
    str(weekday): {"enabled": weekday < 5, "start_time": "12:00", "end_time": "13:00"}
    for weekday in range(7)
}


def seed(session: Session) -> dict:
    # 1) horários (cria ou atualiza)
    for weekday, cfg in DEFAULT_HOURS.items():
        row = session.exec(
            select(BusinessHours).where(BusinessHours.weekday == weekday)
        ).first()
        if row is None:
            row = BusinessHours(weekday=weekday)
        row.is_closed = cfg["is_closed"]
        row.open_time = cfg["open_time"]
        row.close_time = cfg["close_time"]
        session.add(row)

    # 2) serviços (só se o catálogo estiver vazio)
    services_created = 0
    if not session.exec(select(Service)).first():
        session.add_all([Service(**s) for s in DEFAULT_SERVICES])
        services_created = len(DEFAULT_SERVICES)

    # 3) regra de almoço (se não existir)
    rule_created = False
    if not session.exec(select(RecurringBlockRule)).first():
        session.add(RecurringBlockRule(reason="Almoço", per_weekday=DEFAULT_LUNCH))
        rule_created = True

    session.commit()
    return {"services_created": services_created, "rule_created": rule_created}


def main():
    create_db_and_tables()
    with Session(engine) as session:
        result = seed(session)

    print("✅ Seed concluído!")
    print("Horários: seg-sáb 09-19; domingo fechado")
    print(f"Serviços criados: {result['services_created']}")
    print(f"Regra de almoço criada: {'sim' if result['rule_created'] else 'não (já existia)'}")


if __name__ == "__main__":
    main()
