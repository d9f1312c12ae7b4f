from datetime import timedelta
from typing import Optional

from sqlalchemy import delete

from foodmax.config import settings
from foodmax.database import SessionLocal
from foodmax.models import LoginAttempt, RegistrationAttempt
from foodmax.services.transicoes import agora


def limpar_tentativas(retention_days: Optional[int] = None) -> int:
    """Remove contadores de login/cadastro anteriores à retenção e retorna o total deletado."""
    days = retention_days or settings.TENTATIVAS_RETENTION_DAYS
    cutoff = (agora() - timedelta(days=days)).date()
    session = SessionLocal()
    try:
        removidos = session.execute(
            delete(LoginAttempt).where(LoginAttempt.attempt_date < cutoff)
        ).rowcount or 0
        removidos += session.execute(
            delete(RegistrationAttempt).where(RegistrationAttempt.registration_date < cutoff)
        ).rowcount or 0
        session.commit()
        return removidos
    finally:
        session.close()
