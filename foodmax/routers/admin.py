"""
Rotas administrativas
Trilha de auditoria de todos os usuários
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from foodmax.database import get_db
from foodmax.models import AuditLog, Usuario
from foodmax.schemas import AuditLogResponse
from foodmax.security import get_current_admin
from foodmax.services.relatorios import parse_period

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.get("/audit-logs", response_model=List[AuditLogResponse])
def listar_audit_logs(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    user_id: Optional[int] = None,
    action: Optional[str] = None,
    resource: Optional[str] = None,
    resource_id: Optional[int] = None,
    period: Optional[str] = "all",
    db: Session = Depends(get_db),
    current_admin: Usuario = Depends(get_current_admin),
):
    """Mais recentes primeiro; period aceita os mesmos valores dos relatórios"""
    query = db.query(AuditLog)
    if user_id:
        query = query.filter(AuditLog.user_id == user_id)
    if action:
        query = query.filter(AuditLog.action == action.upper())
    if resource:
        query = query.filter(AuditLog.resource == resource)
    if resource_id:
        query = query.filter(AuditLog.resource_id == resource_id)
    desde = parse_period(period)
    if desde:
        query = query.filter(AuditLog.timestamp >= desde)

    return query.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).offset(skip).limit(limit).all()
