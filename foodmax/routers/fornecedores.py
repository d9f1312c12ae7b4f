from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import Optional
import logging

from foodmax.database import get_db
from foodmax.models import Abastecimento, Fornecedor, FornecedorEndereco, Usuario
from foodmax.schemas import BulkDeleteRequest, FornecedorCreate, FornecedorResponse, FornecedorUpdate
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

router = APIRouter(prefix="/api/fornecedores", tags=["Fornecedores"])

NAO_ENCONTRADO = "Fornecedor não encontrado"
NOME_DUPLICADO = "Já existe um fornecedor com este nome"

COLUNAS = [
    ("nome", "Nome"),
    ("razao_social", "Razão Social"),
    ("cnpj", "CNPJ"),
    ("email", "Email"),
    ("ddi", "DDI"),
    ("telefone", "Telefone"),
    ("nome_responsavel", "Nome do Responsável"),
    ("ativo", "Ativo"),
    *COLUNAS_ENDERECO,
    ("data_cadastro", "Data de Cadastro"),
]


def _query(db: Session, user_id: int, search: Optional[str]):
    query = db.query(Fornecedor).filter(Fornecedor.id_usuario == user_id)
    return aplicar_busca(
        query, search, [Fornecedor.nome, Fornecedor.email, Fornecedor.cnpj, Fornecedor.nome_responsavel]
    )


def _serializar(fornecedor: Fornecedor) -> FornecedorResponse:
    return FornecedorResponse.model_validate(fornecedor)


def _criar(db: Session, user_id: int, dados: FornecedorCreate) -> Fornecedor:
    fornecedor = Fornecedor(id_usuario=user_id, **dados.model_dump(exclude={"endereco"}))
    if dados.endereco and dados.endereco.informado():
        fornecedor.endereco = FornecedorEndereco(**dados.endereco.model_dump())
    db.add(fornecedor)
    return fornecedor


def _em_abastecimentos(db: Session, user_id: int, ids) -> set:
    """fornecedores_ids é uma lista JSON; o cruzamento é feito em Python"""
    ids = set(ids)
    usados = set()
    for (lista,) in db.query(Abastecimento.fornecedores_ids).filter(Abastecimento.id_usuario == user_id):
        usados.update(ids.intersection(lista or []))
    return usados


@router.get("")
def listar_fornecedores(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=10000),
    search: Optional[str] = None,
    ativo: Optional[bool] = None,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = _query(db, current_user.id, search)
    if ativo is not None:
        query = query.filter(Fornecedor.ativo == ativo)
    return paginar(
        query, page, limit, _serializar, order_by=(Fornecedor.data_cadastro.desc(), Fornecedor.id.desc())
    )


@router.get("/export")
def exportar_fornecedores(
    search: Optional[str] = None,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registros = _query(db, current_user.id, search).order_by(Fornecedor.nome).all()
    linhas = ({**_serializar(f).model_dump(), **achatar_endereco(f)} for f in registros)
    return exportar_csv(linhas, COLUNAS, "fornecedores")


@router.get("/{fornecedor_id}", response_model=FornecedorResponse)
def obter_fornecedor(
    fornecedor_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return obter_do_usuario(db, Fornecedor, fornecedor_id, current_user.id, NAO_ENCONTRADO)


@router.post("", response_model=FornecedorResponse, status_code=status.HTTP_201_CREATED)
def criar_fornecedor(
    dados: FornecedorCreate,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    verificar_nome_unico(db, Fornecedor, current_user.id, dados.nome, NOME_DUPLICADO)
    with transacao(db):
        fornecedor = _criar(db, current_user.id, dados)
    db.refresh(fornecedor)
    return fornecedor


@router.put("/{fornecedor_id}", response_model=FornecedorResponse)
def atualizar_fornecedor(
    fornecedor_id: int,
    dados: FornecedorUpdate,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    fornecedor = obter_do_usuario(db, Fornecedor, fornecedor_id, current_user.id, NAO_ENCONTRADO)
    campos = campos_informados(dados, Fornecedor)
    endereco = campos.pop("endereco", None)
    if "nome" in campos:
        verificar_nome_unico(db, Fornecedor, current_user.id, campos["nome"], NOME_DUPLICADO, ignorar_id=fornecedor.id)

    with transacao(db):
        aplicar_campos(fornecedor, campos)
        sincronizar_endereco(fornecedor, endereco, FornecedorEndereco)
    db.refresh(fornecedor)
    return fornecedor


@router.delete("/{fornecedor_id}", status_code=status.HTTP_204_NO_CONTENT)
def excluir_fornecedor(
    fornecedor_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    fornecedor = obter_do_usuario(db, Fornecedor, fornecedor_id, current_user.id, NAO_ENCONTRADO)
    if _em_abastecimentos(db, current_user.id, [fornecedor.id]):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Não é possível excluir Fornecedor vinculado a abastecimentos",
        )
    excluir(db, fornecedor, "Não é possível excluir Fornecedor com registros vinculados")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/bulk-delete")
def excluir_fornecedores_lote(
    request: Request,
    dados: BulkDeleteRequest,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registros = registros_do_lote(db, Fornecedor, dados.ids, current_user.id)
    bloqueados = sorted(_em_abastecimentos(db, current_user.id, [r.id for r in registros]))
    if bloqueados:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "error": "Não é possível excluir Fornecedores vinculados a abastecimentos",
                "blockedIds": bloqueados,
            },
        )
    registrar_auditoria(
        db,
        user_id=current_user.id,
        action="BULK_DELETE",
        resource="fornecedores",
        details=f"ids={[r.id for r in registros]}",
        request=request,
    )
    return excluir_lote(db, registros, "fornecedor(es)")


@router.patch("/{fornecedor_id}/toggle-status")
def alternar_status_fornecedor(
    fornecedor_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    fornecedor = obter_do_usuario(db, Fornecedor, fornecedor_id, current_user.id, NAO_ENCONTRADO)
    mensagem = alternar_status(db, fornecedor, "Fornecedor")
    return {"message": mensagem, "data": _serializar(fornecedor)}


@router.post("/import")
def importar_fornecedores(
    request: Request,
    dados: ImportRequest,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    def importar_linha(linha: dict):
        valores = preparar_linha(linha, booleanos=("ativo",))
        endereco = separar_endereco(valores)
        payload = FornecedorCreate(**valores, endereco=endereco)
        duplicado = db.query(Fornecedor.id).filter(
            Fornecedor.id_usuario == current_user.id,
            func.lower(Fornecedor.nome) == payload.nome.strip().lower(),
        ).first()
        if duplicado:
            raise LinhaInvalida("Fornecedor duplicado (nome já existe)")
        return _criar(db, current_user.id, payload)

    return importar_registros(
        db, request, current_user.id, dados.records, COLUNAS, importar_linha, "fornecedores"
    )
