import logging
from datetime import timedelta
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from agenda.core.clock import utcnow
from agenda.config import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    ALGORITHM,
    OPERATOR_EMAIL,
    OPERATOR_PASSWORD_HASH,
    SECRET_KEY,
)

logger = logging.getLogger(__name__)


# =========================
# HASH DE SENHA
# =========================

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


# =========================
# OPERADOR
# =========================

# o painel tem um só operador, configurado por variável de ambiente
def authenticate_operator(email: str, password: str) -> bool:
    if not OPERATOR_PASSWORD_HASH:
        logger.warning("OPERATOR_PASSWORD_HASH não definido; login desativado")
        return False
    if email.strip().lower() != OPERATOR_EMAIL.lower():
        return False
    return verify_password(password, OPERATOR_PASSWORD_HASH)


# =========================
# TOKEN JWT
# =========================

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()

    if expires_delta:
        expire = utcnow() + expires_delta
    else:
        expire = utcnow() + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})

    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


# =========================
# OPERADOR AUTENTICADO
# =========================

def get_current_operator(token: str = Depends(oauth2_scheme)) -> str:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Não foi possível validar as credenciais",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        email: str = payload.get("sub")
    except JWTError:
        raise credentials_exception

    if email is None or email.lower() != OPERATOR_EMAIL.lower():
        raise credentials_exception

    return email
