"""
Rotas de Estabelecimentos
Cadastro dos restaurantes do usuário; plano gratuito permite apenas um
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import Optional
import logging

from foodmax.database import get_db
from foodmax.models import (
    Abastecimento, Cliente, Comunicacao, Entrega, Estabelecimento, EstabelecimentoEndereco,
    FinanceiroTransacao, Pedido, Usuario,
)
from foodmax.schemas import (
    BulkDeleteRequest, EstabelecimentoCreate, EstabelecimentoResponse, EstabelecimentoUpdate,
)
from foodmax.security import get_current_user
from foodmax.services.audit import registrar_auditoria
from foodmax.services.crud import (
    alternar_status, aplicar_busca, aplicar_campos, campos_informados, excluir, excluir_lote,
    obter_do_usuario, paginar, registros_do_lote, sincronizar_endereco, transacao, verificar_nome_unico,
)
from foodmax.services.planilhas import (
    COLUNAS_ENDERECO, ImportRequest, LinhaInvalida, achatar_endereco, exportar_csv,
    importar_registros, preparar_linha, separar_endereco,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/estabelecimentos", tags=["Estabelecimentos"])

NAO_ENCONTRADO = "Estabelecimento não encontrado"
NOME_DUPLICADO = "Já existe um estabelecimento com este nome"

COLUNAS = [
    ("nome", "Nome"),
    ("razao_social", "Razão Social"),
    ("cnpj", "CNPJ"),
    ("tipo_estabelecimento", "Tipo de Estabelecimento"),
    ("email", "Email"),
    ("ddi", "DDI"),
    ("telefone", "Telefone"),
    ("ativo", "Ativo"),
    *COLUNAS_ENDERECO,
    ("data_cadastro", "Data de Cadastro"),
]

# Tabelas que referenciam estabelecimentos.id
VINCULOS = [
    (Cliente, "Clientes"),
    (Pedido, "Pedidos"),
    (Abastecimento, "Abastecimentos"),
    (Entrega, "Entregas"),
    (FinanceiroTransacao, "Transações"),
    (Comunicacao, "Comunicações"),
]


def _query(db: Session, user_id: int, search: Optional[str]):
    query = db.query(Estabelecimento).filter(Estabelecimento.id_usuario == user_id)
    return aplicar_busca(query, search, [Estabelecimento.nome, Estabelecimento.email, Estabelecimento.cnpj])


def _serializar(estabelecimento: Estabelecimento) -> EstabelecimentoResponse:
    return EstabelecimentoResponse.model_validate(estabelecimento)


def _validar_limite_plano(db: Session, user: Usuario) -> None:
    if user.plano_pago:
        return
    total = db.query(func.count(Estabelecimento.id)).filter(Estabelecimento.id_usuario == user.id).scalar()
    if total >= 1:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Só é possível cadastrar 1 Estabelecimento no plano gratuito",
        )


def _vinculos(db: Session, ids) -> dict:
    """{estabelecimento_id: [nomes das tabelas que o referenciam]}"""
    encontrados = {}
    for model, nome in VINCULOS:
        rows = db.query(model.estabelecimento_id).filter(model.estabelecimento_id.in_(ids)).distinct().all()
        for (estabelecimento_id,) in rows:
            encontrados.setdefault(estabelecimento_id, []).append(nome)
    return encontrados


def _criar(db: Session, user_id: int, dados: EstabelecimentoCreate) -> Estabelecimento:
    estabelecimento = Estabelecimento(id_usuario=user_id, **dados.model_dump(exclude={"endereco"}))
    if dados.endereco and dados.endereco.informado():
        estabelecimento.endereco = EstabelecimentoEndereco(**dados.endereco.model_dump())
    db.add(estabelecimento)
    return estabelecimento


@router.get("")
def listar_estabelecimentos(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=10000),
    search: Optional[str] = None,
    ativo: Optional[bool] = None,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Lista estabelecimentos do usuário com paginação e busca"""
    query = _query(db, current_user.id, search)
    if ativo is not None:
        query = query.filter(Estabelecimento.ativo == ativo)
    return paginar(
        query, page, limit, _serializar,
        order_by=(Estabelecimento.data_cadastro.desc(), Estabelecimento.id.desc()),
    )


@router.get("/export")
def exportar_estabelecimentos(
    search: Optional[str] = None,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registros = _query(db, current_user.id, search).order_by(Estabelecimento.nome).all()
    linhas = (
        {**_serializar(e).model_dump(), **achatar_endereco(e)}
        for e in registros
    )
    return exportar_csv(linhas, COLUNAS, "estabelecimentos")


@router.get("/{estabelecimento_id}", response_model=EstabelecimentoResponse)
def obter_estabelecimento(
    estabelecimento_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return obter_do_usuario(db, Estabelecimento, estabelecimento_id, current_user.id, NAO_ENCONTRADO)


@router.post("", response_model=EstabelecimentoResponse, status_code=status.HTTP_201_CREATED)
def criar_estabelecimento(
    dados: EstabelecimentoCreate,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Cria estabelecimento e endereço na mesma transação"""
    _validar_limite_plano(db, current_user)
    verificar_nome_unico(db, Estabelecimento, current_user.id, dados.nome, NOME_DUPLICADO)

    with transacao(db):
        estabelecimento = _criar(db, current_user.id, dados)
    db.refresh(estabelecimento)
    return estabelecimento


@router.put("/{estabelecimento_id}", response_model=EstabelecimentoResponse)
def atualizar_estabelecimento(
    estabelecimento_id: int,
    dados: EstabelecimentoUpdate,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    estabelecimento = obter_do_usuario(db, Estabelecimento, estabelecimento_id, current_user.id, NAO_ENCONTRADO)
    campos = campos_informados(dados, Estabelecimento)
    endereco = campos.pop("endereco", None)
    if "nome" in campos:
        verificar_nome_unico(
            db, Estabelecimento, current_user.id, campos["nome"], NOME_DUPLICADO, ignorar_id=estabelecimento.id
        )

    with transacao(db):
        aplicar_campos(estabelecimento, campos)
        sincronizar_endereco(estabelecimento, endereco, EstabelecimentoEndereco)
    db.refresh(estabelecimento)
    return estabelecimento


@router.delete("/{estabelecimento_id}", status_code=status.HTTP_204_NO_CONTENT)
def excluir_estabelecimento(
    estabelecimento_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    estabelecimento = obter_do_usuario(db, Estabelecimento, estabelecimento_id, current_user.id, NAO_ENCONTRADO)
    vinculos = _vinculos(db, [estabelecimento.id]).get(estabelecimento.id)
    if vinculos:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Não é possível excluir Estabelecimento com {vinculos[0]} vinculados",
        )
    excluir(db, estabelecimento, "Não é possível excluir Estabelecimento com registros vinculados")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/bulk-delete")
def excluir_estabelecimentos_lote(
    request: Request,
    dados: BulkDeleteRequest,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Nada é excluído quando algum estabelecimento tem registros vinculados"""
    registros = registros_do_lote(db, Estabelecimento, dados.ids, current_user.id)
    bloqueados = sorted(_vinculos(db, [r.id for r in registros]))
    if bloqueados:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "error": "Não é possível excluir Estabelecimentos com registros vinculados",
                "blockedIds": bloqueados,
            },
        )
    registrar_auditoria(
        db,
        user_id=current_user.id,
        action="BULK_DELETE",
        resource="estabelecimentos",
        details=f"ids={[r.id for r in registros]}",
        request=request,
    )
    return excluir_lote(db, registros, "estabelecimento(s)")


@router.patch("/{estabelecimento_id}/toggle-status")
def alternar_status_estabelecimento(
    estabelecimento_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    estabelecimento = obter_do_usuario(db, Estabelecimento, estabelecimento_id, current_user.id, NAO_ENCONTRADO)
    mensagem = alternar_status(db, estabelecimento, "Estabelecimento")
    return {"message": mensagem, "data": _serializar(estabelecimento)}


@router.post("/import")
def importar_estabelecimentos(
    request: Request,
    dados: ImportRequest,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Duplicados (mesmo CNPJ ou mesmo nome) viram erro da linha"""

    def importar_linha(linha: dict):
        valores = preparar_linha(linha, booleanos=("ativo",))
        endereco = separar_endereco(valores)
        payload = EstabelecimentoCreate(**valores, endereco=endereco)

        duplicado = False
        if payload.cnpj and len(payload.cnpj) == 14:
            duplicado = db.query(Estabelecimento.id).filter(
                Estabelecimento.id_usuario == current_user.id,
                Estabelecimento.cnpj == payload.cnpj,
            ).first() is not None
        if not duplicado:
            duplicado = db.query(Estabelecimento.id).filter(
                Estabelecimento.id_usuario == current_user.id,
                func.lower(Estabelecimento.nome) == payload.nome.strip().lower(),
            ).first() is not None
        if duplicado:
            raise LinhaInvalida("Estabelecimento duplicado (nome ou CNPJ já existe)")

        _validar_limite_plano(db, current_user)
        return _criar(db, current_user.id, payload)

    return importar_registros(
        db, request, current_user.id, dados.records, COLUNAS, importar_linha, "estabelecimentos"
    )
