from datetime import date, datetime, time

from agenda.core.clock import format_hhmm, to_local

WEEKDAYS_PT = ("segunda-feira", "terça-feira", "quarta-feira", "quinta-feira", "sexta-feira", "sábado", "domingo")
MONTHS_PT = (
    "janeiro", "fevereiro", "março", "abril", "maio", "junho",
    "julho", "agosto", "setembro", "outubro", "novembro", "dezembro",
)


def day_month(d: date) -> str:
    return f"{d.day} de {MONTHS_PT[d.month - 1]}"


def long_date(d: date) -> str:
    # "segunda-feira, 1 de janeiro"
    return f"{WEEKDAYS_PT[d.weekday()]}, {day_month(d)}"


def short_date(d: date) -> str:
    return d.strftime("%d/%m/%Y")


# =========================
# WHATSAPP
# =========================

def booking_confirmation(client_name: str, service: str, day: date, start: time) -> str:
    return (
        f"Olá {client_name}! 👋\n\n"
        f"✅ *Seu agendamento foi confirmado!*\n\n"
        f"✂️ Serviço: {service}\n"
        f"🗓️ Data: {long_date(day)}\n"
        f"⏰ Horário: {format_hhmm(start)}\n\n"
        f"Te esperamos! 💈"
    )


def recurring_confirmation(
    client_name: str, service: str, first_day: date, last_day: date, start: time, count: int
) -> str:
    return (
        f"Olá {client_name}! 👋\n\n"
        f"✅ *Horário fixo semanal confirmado!*\n\n"
        f"✂️ Serviço: {service}\n"
        f"🗓️ Dia: Toda {WEEKDAYS_PT[first_day.weekday()]}\n"
        f"⏰ Horário: {format_hhmm(start)}\n"
        f"📅 Período: {day_month(first_day)} até {day_month(last_day)}\n"
        f"🔢 Total: {count} semana(s)\n\n"
        f"Te esperamos! 💈"
    )


def cancellation(client_name: str, service: str, day: date, start: time) -> str:
    return (
        f"Olá {client_name}! 👋\n\n"
        f"❌ *Agendamento cancelado:*\n\n"
        f"✂️ Serviço: {service}\n"
        f"🗓️ Data: {long_date(day)}\n"
        f"⏰ Horário: {format_hhmm(start)}\n\n"
        f"Seu horário foi cancelado. Qualquer dúvida, entre em contato! 💈"
    )


def series_cancellation(client_name: str, service: str, day: date, start: time, count: int) -> str:
    return (
        f"Olá {client_name}! 👋\n\n"
        f"❌ *Horários cancelados:*\n\n"
        f"Seu horário fixo de {service} às {format_hhmm(start)} foi cancelado.\n\n"
        f"Foram removidos {count} agendamento(s) a partir de {long_date(day)}.\n\n"
        f"Qualquer dúvida, entre em contato! 💈"
    )


def reschedule(
    client_name: str,
    service: str,
    old_day: date,
    old_start: time,
    new_day: date,
    new_start: time,
    count: int = 1,
    series: bool = False,
) -> str:
    header = "Seu horário fixo foi reagendado:" if series else "Seu horário foi reagendado:"
    lines = [
        f"Olá {client_name}! 👋\n",
        f"📅 *{header}*\n",
        f"❌ De: {long_date(old_day)} às {format_hhmm(old_start)}",
        f"✅ Para: {long_date(new_day)} às {format_hhmm(new_start)}\n",
        f"✂️ Serviço: {service}",
    ]
    if series:
        lines.append(f"🔢 Total: {count} agendamento(s) a partir desta data")
    lines.append("\nTe esperamos no novo horário! 💈")
    return "\n".join(lines)


def render_reminder(template: str, client_name: str, service: str, appointment_time: datetime) -> str:
    # placeholders do template configurável
    hora = to_local(appointment_time).strftime("%H:%M")
    return (
        template.replace("{nome}", client_name)
        .replace("{hora}", hora)
        .replace("{servico}", service)
    )


# =========================
# IN-APP
# =========================

def in_app_body(client_name: str, service: str, day: date, start: time, date_label: str = "Data") -> str:
    return f"Cliente: {client_name}\nServiço: {service}\n{date_label}: {short_date(day)} às {format_hhmm(start)}"
