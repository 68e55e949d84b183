"""
Tarefas agendadas (cron)
    python -m agenda.scripts.jobs materialize-blocks [--days 30]
    python -m agenda.scripts.jobs dispatch-reminders
"""
import argparse
import asyncio
import logging
import sys

from sqlmodel import Session

from agenda.config import LOG_LEVEL, RECURRING_BLOCK_HORIZON_DAYS
from agenda.database import create_db_and_tables, engine
from agenda.integrations.whatsapp import WapiMessenger
from agenda.reminders import ReminderDispatcher
from agenda.scheduling.recurring_blocks import materialize_recurring_blocks

logger = logging.getLogger(__name__)


def materialize_blocks(days: int) -> int:
    with Session(engine) as session:
        created = materialize_recurring_blocks(session, horizon_days=days)
    logger.info("Bloqueios fixos materializados: %s", created)
    return created


async def dispatch_reminders():
    messenger = WapiMessenger()
    try:
        with Session(engine) as session:
            return await ReminderDispatcher(session, messenger).dispatch_due()
    finally:
        await messenger.client.aclose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="agenda-jobs")
    sub = parser.add_subparsers(dest="command", required=True)

    blocks = sub.add_parser("materialize-blocks", help="cria os bloqueios fixos dos próximos dias")
    blocks.add_argument("--days", type=int, default=RECURRING_BLOCK_HORIZON_DAYS)

    sub.add_parser("dispatch-reminders", help="envia os lembretes vencidos")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    create_db_and_tables()

    if args.command == "materialize-blocks":
        materialize_blocks(args.days)
        return 0

    report = asyncio.run(dispatch_reminders())
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
