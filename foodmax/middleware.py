from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
import logging

from foodmax.config import settings
from foodmax.security import decode_token

logger = logging.getLogger(__name__)


class IdentidadeMiddleware(BaseHTTPMiddleware):
    """
    Resolve o usuário da requisição em request.state.user_id.
    Token Bearer tem precedência; o cabeçalho x-user-id é aceito enquanto
    TRUST_USER_ID_HEADER estiver ativo.
    """

    async def dispatch(self, request: Request, call_next):
        request.state.user_id = None
        request.state.token_invalido = False

        authorization_header = request.headers.get("authorization")
        if authorization_header:
            scheme, _, token = authorization_header.partition(" ")
            payload = decode_token(token) if scheme.lower() == "bearer" and token else None
            if payload and payload.get("user_id") is not None:
                request.state.user_id = int(payload["user_id"])
            else:
                logger.warning("❌ Token inválido em %s", request.url.path)
                request.state.token_invalido = True

        if request.state.user_id is None and not request.state.token_invalido and settings.TRUST_USER_ID_HEADER:
            header_user_id = request.headers.get("x-user-id", "").strip()
            if header_user_id.isdigit():
                request.state.user_id = int(header_user_id)
            elif header_user_id:
                logger.warning("❌ Cabeçalho x-user-id inválido: %r", header_user_id)

        return await call_next(request)
