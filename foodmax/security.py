"""
Funções de segurança e autenticação
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from foodmax.config import settings
from foodmax.database import get_db
from foodmax.models import Usuario

# Contexto de hash de senha
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)


def get_password_hash(password: str) -> str:
    """Gera hash da senha"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verifica se a senha corresponde ao hash"""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Cria um token JWT"""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=15)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt


def decode_token(token: str) -> Optional[dict]:
    """Decodifica um token JWT; None quando inválido ou expirado"""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


def get_client_ip(request: Request) -> str:
    """Primeiro IP de x-forwarded-for, senão o IP da conexão"""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        primeiro = forwarded.split(",")[0].strip()
        if primeiro:
            return primeiro
    if request.client and request.client.host:
        return request.client.host
    return "127.0.0.1"


def get_user_id(request: Request) -> int:
    """
    Dependency com o id do usuário resolvido pelo IdentidadeMiddleware.
    Lança 401 quando a requisição não traz identidade.
    """
    if getattr(request.state, "token_invalido", False):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token inválido ou expirado",
        )
    user_id = getattr(request.state, "user_id", None)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Usuário não autenticado",
        )
    return user_id


def get_current_user(
    user_id: int = Depends(get_user_id),
    db: Session = Depends(get_db),
) -> Usuario:
    """Obtém o usuário atual (ativo) na mesma sessão da requisição"""
    user = db.query(Usuario).filter(Usuario.id == user_id).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Usuário não encontrado",
        )
    if not user.ativo:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Usuário inativo",
        )
    return user


def get_current_admin(current_user: Usuario = Depends(get_current_user)) -> Usuario:
    """Exige role admin"""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Acesso negado: requer privilégios de administrador",
        )
    return current_user


def exigir_plano_pago(user: Usuario) -> None:
    if not user.plano_pago:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Essa ação só funciona no plano pago",
        )
