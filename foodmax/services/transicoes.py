"""Transições de status permitidas; estados finais não voltam atrás."""
from datetime import datetime, timezone
from typing import Optional

from fastapi import HTTPException, status

from foodmax.models import StatusAbastecimento, StatusComunicacao, StatusEntrega, StatusPedido

TRANSICOES = {
    StatusPedido: {
        StatusPedido.PENDENTE: {StatusPedido.FINALIZADO, StatusPedido.CANCELADO},
    },
    StatusAbastecimento: {
        StatusAbastecimento.PENDENTE: {
            StatusAbastecimento.ENVIADO, StatusAbastecimento.RECEBIDO, StatusAbastecimento.CANCELADO,
        },
        StatusAbastecimento.ENVIADO: {StatusAbastecimento.RECEBIDO, StatusAbastecimento.CANCELADO},
    },
    StatusEntrega: {
        StatusEntrega.PENDENTE: {StatusEntrega.SAIU, StatusEntrega.ENTREGUE, StatusEntrega.CANCELADO},
        StatusEntrega.SAIU: {StatusEntrega.ENTREGUE, StatusEntrega.CANCELADO},
    },
    StatusComunicacao: {
        StatusComunicacao.PENDENTE: {StatusComunicacao.ENVIADO, StatusComunicacao.CANCELADO},
    },
}


def agora() -> datetime:
    """UTC sem tzinfo, como gravado nas colunas DateTime"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def para_utc(data: Optional[datetime]) -> Optional[datetime]:
    """Converte horários com fuso para UTC sem tzinfo; horários sem fuso já são UTC"""
    if data is None or data.tzinfo is None:
        return data
    return data.astimezone(timezone.utc).replace(tzinfo=None)



def validar_transicao(atual, novo) -> bool:
    """
    Retorna True quando o status muda, False quando é o mesmo.
    Lança 409 para transições não permitidas.
    """
    if novo is None or novo == atual:
        return False
    permitidos = TRANSICOES[type(novo)].get(atual, set())
    if novo not in permitidos:
        de = atual.value if hasattr(atual, "value") else atual
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Transição de status inválida: {de} → {novo.value}",
        )
    return True


def validar_email_enviado(atual: bool, novo) -> None:
    if atual and novo is False:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Envio de email já registrado não pode ser desfeito",
        )
