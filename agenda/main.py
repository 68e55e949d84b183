import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from agenda.config import LOG_LEVEL
from agenda.core.errors import ConflictError, UpstreamError, ValidationError
from agenda.database import create_db_and_tables
from agenda.routers import appointments, auth, business_hours, clients, reminders, services, time_blocks, vacations

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# bibliotecas de terceiros mais silenciosas
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

app = FastAPI(title="Agenda Barbearia")
app.include_router(auth.router)
app.include_router(business_hours.router)
app.include_router(services.router)
app.include_router(clients.router)
app.include_router(time_blocks.router)
app.include_router(vacations.router)
app.include_router(appointments.router)
app.include_router(reminders.router)


@app.on_event("startup")
def on_startup():
    create_db_and_tables()


# =========================
# ERROS DO DOMÍNIO -> HTTP
# =========================

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    logger.warning("Requisição inválida em %s: %s", request.url.path, exc)
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(ConflictError)
async def conflict_error_handler(request: Request, exc: ConflictError):
    logger.info("Conflito de horário em %s: %s", request.url.path, exc)
    return JSONResponse(status_code=409, content={"detail": str(exc), "reason": exc.reason})


@app.exception_handler(UpstreamError)
async def upstream_error_handler(request: Request, exc: UpstreamError):
    logger.error("Falha externa em %s: %s", request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": str(exc), "operation": exc.operation})


@app.get("/")
def root():
    return {"message": "API agenda da barbearia funcionando 🚀"}
