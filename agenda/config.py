import os
from pathlib import Path

from dotenv import load_dotenv

# .env na raiz do projeto
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


# =========================
# BANCO
# =========================

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./agenda.db")


# =========================
# AGENDA
# =========================

# offset fixo da barbearia (Brasília), usado em toda data/hora civil
BUSINESS_UTC_OFFSET = os.getenv("BUSINESS_UTC_OFFSET", "-03:00")

# passo de verificação dos slots (independente da grade de 30min da tela)
SLOT_CHECK_INTERVAL_MINUTES = int(os.getenv("SLOT_CHECK_INTERVAL_MINUTES", "10"))

# duração usada quando o texto do agendamento não casa com nenhum serviço
DEFAULT_SERVICE_DURATION_MINUTES = int(os.getenv("DEFAULT_SERVICE_DURATION_MINUTES", "30"))

RECURRING_BLOCK_HORIZON_DAYS = int(os.getenv("RECURRING_BLOCK_HORIZON_DAYS", "30"))
SERIES_LOOKAHEAD_DAYS = int(os.getenv("SERIES_LOOKAHEAD_DAYS", "366"))

ENFORCE_AVAILABILITY = os.getenv("ENFORCE_AVAILABILITY", "true").lower() == "true"


# =========================
# LEMBRETES
# =========================

DEFAULT_REMINDER_HOURS = int(os.getenv("DEFAULT_REMINDER_HOURS", "10"))
DEFAULT_REMINDER_TEMPLATE = os.getenv(
    "DEFAULT_REMINDER_TEMPLATE",
    "Olá {nome}! 👋\n\nLembrete: Você tem um horário marcado hoje às {hora}.\n\n"
    "Serviço: {servico}\n\nTe esperamos! 💈",
)


# =========================
# WHATSAPP (W-API)
# =========================

PHONE_COUNTRY_CODE = os.getenv("PHONE_COUNTRY_CODE", "55")
WAPI_BASE_URL = os.getenv("WAPI_BASE_URL", "https://api.w-api.app/v1")
WAPI_INSTANCE_ID = os.getenv("WAPI_INSTANCE_ID")
WAPI_TOKEN = os.getenv("WAPI_TOKEN")
WAPI_DELAY_SECONDS = int(os.getenv("WAPI_DELAY_SECONDS", "15"))


# =========================
# GOOGLE CALENDAR
# =========================

GOOGLE_CALENDAR_ID = os.getenv("GOOGLE_CALENDAR_ID", "primary")
# JSON da service account (conteúdo, não caminho)
GOOGLE_SERVICE_ACCOUNT_JSON = os.getenv("GOOGLE_SERVICE_ACCOUNT_JSON")


# =========================
# AUTENTICAÇÃO
# =========================

SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY não definido! Usando chave insegura de desenvolvimento", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

# painel tem um único operador (dono da barbearia)
OPERATOR_EMAIL = os.getenv("OPERATOR_EMAIL", "admin@barbearia.local")
OPERATOR_PASSWORD_HASH = os.getenv("OPERATOR_PASSWORD_HASH")


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
