"""
Rotas de Relatórios
Agregações financeiras, de pedidos e o PDF consolidado
"""
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session
from typing import Optional
import logging

from foodmax.database import get_db
from foodmax.models import Estabelecimento, Usuario
from foodmax.security import get_current_user
from foodmax.services.crud import validar_posse
from foodmax.services.relatorios import (
    agrupa_por_mes, agrupar_financeiro, contar_status, gerar_pdf, pedidos_do_periodo, resumo_dashboard,
    somar_totais, transacoes_do_periodo,
)
from foodmax.services.transicoes import agora

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/relatorios", tags=["Relatórios"])


def _estabelecimento(db: Session, user_id: int, estabelecimento_id: Optional[int]) -> Optional[Estabelecimento]:
    return validar_posse(db, Estabelecimento, estabelecimento_id, user_id, "Estabelecimento inválido")


@router.get("/financeiro")
def relatorio_financeiro(
    estabelecimento_id: Optional[int] = None,
    period: Optional[str] = "all",
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Receitas e despesas por mês (all/12m) ou por dia, com os totais do período"""
    _estabelecimento(db, current_user.id, estabelecimento_id)
    transacoes = transacoes_do_periodo(db, current_user.id, estabelecimento_id, period)
    return {
        "agrupamento": "mes" if agrupa_por_mes(period) else "dia",
        "grupos": agrupar_financeiro(transacoes, period),
        "totals": somar_totais(transacoes),
    }


@router.get("/pedidos")
def relatorio_pedidos(
    estabelecimento_id: Optional[int] = None,
    period: Optional[str] = "all",
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _estabelecimento(db, current_user.id, estabelecimento_id)
    return contar_status(pedidos_do_periodo(db, current_user.id, estabelecimento_id, period))


@router.get("/dashboard")
def relatorio_dashboard(
    estabelecimento_id: Optional[int] = None,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _estabelecimento(db, current_user.id, estabelecimento_id)
    return resumo_dashboard(db, current_user.id, estabelecimento_id)


@router.get("/pdf")
def relatorio_pdf(
    estabelecimento_id: Optional[int] = None,
    period: Optional[str] = "all",
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    estabelecimento = _estabelecimento(db, current_user.id, estabelecimento_id)
    transacoes = transacoes_do_periodo(db, current_user.id, estabelecimento_id, period)
    pedidos = contar_status(pedidos_do_periodo(db, current_user.id, estabelecimento_id, period))

    conteudo = gerar_pdf(
        period,
        estabelecimento.nome if estabelecimento else None,
        agrupar_financeiro(transacoes, period),
        pedidos,
        somar_totais(transacoes),
    )
    nome = f"relatorio_{agora().strftime('%Y%m%d_%H%M%S')}.pdf"
    return Response(
        content=conteudo,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{nome}"'},
    )
