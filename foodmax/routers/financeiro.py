"""
Rotas do Financeiro
Receitas e despesas por estabelecimento, com totais do filtro corrente
"""
from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session
from typing import Optional
import logging

from foodmax.database import get_db
from foodmax.models import Estabelecimento, FinanceiroTransacao, Usuario
from foodmax.schemas import BulkDeleteRequest, TransacaoCreate, TransacaoResponse, TransacaoUpdate
from foodmax.security import get_current_user
from foodmax.services.audit import registrar_auditoria
from foodmax.services.crud import (
    alternar_status, aplicar_busca, aplicar_campos, campos_informados, excluir, excluir_lote,
    obter_do_usuario, paginar, registros_do_lote, transacao, validar_posse,
)
from foodmax.services.planilhas import ImportRequest, exportar_csv, importar_registros, preparar_linha
from foodmax.services.referencias import resolver_estabelecimento
from foodmax.services.relatorios import parse_period, somar_totais

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/financeiro", tags=["Financeiro"])

NAO_ENCONTRADO = "Transação não encontrada"

FINANCEIRO_CATEGORIAS = [
    "Vendas",
    "Serviços",
    "PIX",
    "Dinheiro",
    "Cartão de Crédito",
    "Cartão de Débito",
    "Aluguel",
    "Energia",
    "Água",
    "Internet",
    "Folha de Pagamento",
    "Impostos",
    "Marketing",
    "Manutenção",
    "Transporte",
    "Outros",
]

COLUNAS = [
    ("estabelecimento_nome", "Estabelecimento"),
    ("tipo", "Tipo"),
    ("categoria", "Categoria"),
    ("valor", "Valor"),
    ("data_transacao", "Data da Transação"),
    ("descricao", "Descrição"),
    ("ativo", "Ativo"),
    ("data_cadastro", "Data de Cadastro"),
]


def _query(
    db: Session,
    user_id: int,
    search: Optional[str],
    estabelecimento_id: Optional[int],
    period: Optional[str],
):
    """Filtros comuns à listagem e aos totais; o tipo é aplicado à parte"""
    query = db.query(FinanceiroTransacao).filter(FinanceiroTransacao.id_usuario == user_id)
    if estabelecimento_id:
        query = query.filter(FinanceiroTransacao.estabelecimento_id == estabelecimento_id)
    desde = parse_period(period)
    if desde:
        query = query.filter(FinanceiroTransacao.data_transacao >= desde)
    return aplicar_busca(query, search, [FinanceiroTransacao.categoria, FinanceiroTransacao.descricao])


def _filtrar_tipo(query, tipo: Optional[str]):
    if tipo in ("Receita", "Despesa"):
        query = query.filter(FinanceiroTransacao.tipo == tipo)
    return query


def _serializar(registro: FinanceiroTransacao) -> TransacaoResponse:
    return TransacaoResponse.model_validate(registro)


@router.get("")
def listar_transacoes(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=10000),
    search: Optional[str] = None,
    tipo: Optional[str] = None,
    estabelecimento_id: Optional[int] = None,
    period: Optional[str] = "all",
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Lista paginada + totals {totalReceitas, totalDespesas, saldoLiquido}"""
    base = _query(db, current_user.id, search, estabelecimento_id, period)
    resultado = paginar(
        _filtrar_tipo(base, tipo),
        page,
        limit,
        _serializar,
        order_by=(FinanceiroTransacao.data_cadastro.desc(), FinanceiroTransacao.id.desc()),
    )
    resultado["totals"] = somar_totais(base.all())
    return resultado


@router.get("/categorias")
def listar_categorias_financeiro(current_user: Usuario = Depends(get_current_user)):
    return FINANCEIRO_CATEGORIAS


@router.get("/export")
def exportar_transacoes(
    search: Optional[str] = None,
    tipo: Optional[str] = None,
    estabelecimento_id: Optional[int] = None,
    period: Optional[str] = "all",
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = _filtrar_tipo(_query(db, current_user.id, search, estabelecimento_id, period), tipo)
    registros = query.order_by(FinanceiroTransacao.data_cadastro.desc(), FinanceiroTransacao.id.desc()).all()
    linhas = (_serializar(t).model_dump() for t in registros)
    return exportar_csv(linhas, COLUNAS, "financeiro", centavos=("valor",))


@router.get("/{transacao_id}", response_model=TransacaoResponse)
def obter_transacao(
    transacao_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return obter_do_usuario(db, FinanceiroTransacao, transacao_id, current_user.id, NAO_ENCONTRADO)


@router.post("", response_model=TransacaoResponse, status_code=status.HTTP_201_CREATED)
def criar_transacao(
    dados: TransacaoCreate,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    validar_posse(db, Estabelecimento, dados.estabelecimento_id, current_user.id, "Estabelecimento inválido")
    with transacao(db):
        registro = FinanceiroTransacao(id_usuario=current_user.id, **dados.model_dump())
        db.add(registro)
    db.refresh(registro)
    return registro


@router.put("/{transacao_id}", response_model=TransacaoResponse)
def atualizar_transacao(
    transacao_id: int,
    dados: TransacaoUpdate,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registro = obter_do_usuario(db, FinanceiroTransacao, transacao_id, current_user.id, NAO_ENCONTRADO)
    campos = campos_informados(dados, FinanceiroTransacao)
    if "estabelecimento_id" in campos:
        validar_posse(db, Estabelecimento, campos["estabelecimento_id"], current_user.id, "Estabelecimento inválido")
    with transacao(db):
        aplicar_campos(registro, campos)
    db.refresh(registro)
    return registro


@router.delete("/{transacao_id}", status_code=status.HTTP_204_NO_CONTENT)
def excluir_transacao(
    transacao_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registro = obter_do_usuario(db, FinanceiroTransacao, transacao_id, current_user.id, NAO_ENCONTRADO)
    excluir(db, registro, "Não é possível excluir Transação com registros vinculados")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/bulk-delete")
def excluir_transacoes_lote(
    request: Request,
    dados: BulkDeleteRequest,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registros = registros_do_lote(db, FinanceiroTransacao, dados.ids, current_user.id)
    registrar_auditoria(
        db,
        user_id=current_user.id,
        action="BULK_DELETE",
        resource="financeiro_transacoes",
        details=f"ids={[r.id for r in registros]}",
        request=request,
    )
    return excluir_lote(db, registros, "transação(ões)")


@router.patch("/{transacao_id}/toggle-status")
def alternar_status_transacao(
    transacao_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registro = obter_do_usuario(db, FinanceiroTransacao, transacao_id, current_user.id, NAO_ENCONTRADO)
    mensagem = alternar_status(db, registro, "Transação", feminino=True)
    return {"message": mensagem, "data": _serializar(registro)}


@router.post("/import")
def importar_transacoes(
    request: Request,
    dados: ImportRequest,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    def importar_linha(linha: dict):
        valores = preparar_linha(linha, booleanos=("ativo",), centavos=("valor",), datas=("data_transacao",))
        estabelecimento_id = resolver_estabelecimento(db, current_user.id, valores)
        valores.pop("data_cadastro", None)
        payload = TransacaoCreate(**valores, estabelecimento_id=estabelecimento_id)
        registro = FinanceiroTransacao(id_usuario=current_user.id, **payload.model_dump())
        db.add(registro)
        return registro

    return importar_registros(
        db, request, current_user.id, dados.records, COLUNAS, importar_linha, "financeiro_transacoes"
    )
