"""Trilha de auditoria: login, cadastro, exclusões em lote, importações e envios."""
from __future__ import annotations
import logging
from typing import Optional
from fastapi import Request
from sqlalchemy.orm import Session
from foodmax.models import AuditLog
from foodmax.security import get_client_ip

logger = logging.getLogger(__name__)

MAX_USER_AGENT = 255


def _origem(request: Optional[Request]):
    if request is None:
        return None, None
    agente = request.headers.get("user-agent") or ""
    return get_client_ip(request), agente[:MAX_USER_AGENT] or None


def registrar_auditoria(
    db: Session,
    *,
    user_id: Optional[int],
    action: str,
    resource: str,
    resource_id: Optional[int] = None,
    details: Optional[str] = None,
    request: Optional[Request] = None,
) -> AuditLog:
    """Entra na transação de quem chama; o commit fica com a operação auditada."""
    ip, agente = _origem(request)
    entrada = AuditLog(
        user_id=user_id,
        action=action.upper(),
        resource=resource,
        resource_id=resource_id,
        details=details,
        ip_address=ip,
        user_agent=agente,
    )
    db.add(entrada)
    logger.debug("Auditoria %s/%s (usuário %s)", entrada.action, resource, user_id)
    return entrada
