from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.orm import Session
from typing import Optional
import logging

from foodmax.database import get_db
from foodmax.models import Cliente, ClienteEndereco, Entrega, Estabelecimento, Pedido, Usuario
from foodmax.schemas import BulkDeleteRequest, ClienteCreate, ClienteResponse, ClienteUpdate
from foodmax.security import get_current_user
from foodmax.services.audit import registrar_auditoria
from foodmax.services.crud import (
    alternar_status, aplicar_busca, aplicar_campos, campos_informados, excluir, excluir_lote,
    ids_vinculados, obter_do_usuario, paginar, registros_do_lote, sincronizar_endereco, transacao,
    validar_posse,
)
from foodmax.services.planilhas import (
    COLUNAS_ENDERECO, ImportRequest, LinhaInvalida, achatar_endereco, exportar_csv,
    importar_registros, preparar_linha, separar_endereco,
)
from foodmax.services.referencias import resolver_estabelecimento

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/clientes", tags=["Clientes"])

NAO_ENCONTRADO = "Cliente não encontrado"
VINCULADO = "Não é possível excluir Cliente vinculado a pedidos ou entregas"

COLUNAS = [
    ("nome", "Nome"),
    ("estabelecimento_nome", "Estabelecimento"),
    ("genero", "Gênero"),
    ("profissao", "Profissão"),
    ("email", "Email"),
    ("ddi", "DDI"),
    ("telefone", "Telefone"),
    ("ativo", "Ativo"),
    ("aceita_promocao_email", "Aceita Promoção Email"),
    *COLUNAS_ENDERECO,
    ("data_cadastro", "Data de Cadastro"),
]

REFERENCIAS = (Pedido.cliente_id, Entrega.cliente_id)


def _query(db: Session, user_id: int, search: Optional[str], estabelecimento_id: Optional[int]):
    query = db.query(Cliente).filter(Cliente.id_usuario == user_id)
    if estabelecimento_id:
        query = query.filter(Cliente.estabelecimento_id == estabelecimento_id)
    return aplicar_busca(query, search, [Cliente.nome, Cliente.email, Cliente.telefone])


def _serializar(cliente: Cliente) -> ClienteResponse:
    return ClienteResponse.model_validate(cliente)


def _criar(db: Session, user_id: int, dados: ClienteCreate) -> Cliente:
    cliente = Cliente(id_usuario=user_id, **dados.model_dump(exclude={"endereco"}))
    if dados.endereco and dados.endereco.informado():
        cliente.endereco = ClienteEndereco(**dados.endereco.model_dump())
    db.add(cliente)
    return cliente


@router.get("")
def listar_clientes(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=10000),
    search: Optional[str] = None,
    estabelecimento_id: Optional[int] = None,
    ativo: Optional[bool] = None,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = _query(db, current_user.id, search, estabelecimento_id)
    if ativo is not None:
        query = query.filter(Cliente.ativo == ativo)
    return paginar(query, page, limit, _serializar, order_by=(Cliente.data_cadastro.desc(), Cliente.id.desc()))


@router.get("/export")
def exportar_clientes(
    search: Optional[str] = None,
    estabelecimento_id: Optional[int] = None,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registros = _query(db, current_user.id, search, estabelecimento_id).order_by(Cliente.nome).all()
    linhas = ({**_serializar(c).model_dump(), **achatar_endereco(c)} for c in registros)
    return exportar_csv(linhas, COLUNAS, "clientes")


@router.get("/{cliente_id}", response_model=ClienteResponse)
def obter_cliente(
    cliente_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return obter_do_usuario(db, Cliente, cliente_id, current_user.id, NAO_ENCONTRADO)


@router.post("", response_model=ClienteResponse, status_code=status.HTTP_201_CREATED)
def criar_cliente(
    dados: ClienteCreate,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    validar_posse(db, Estabelecimento, dados.estabelecimento_id, current_user.id, "Estabelecimento inválido")
    with transacao(db):
        cliente = _criar(db, current_user.id, dados)
    db.refresh(cliente)
    return cliente


@router.put("/{cliente_id}", response_model=ClienteResponse)
def atualizar_cliente(
    cliente_id: int,
    dados: ClienteUpdate,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    cliente = obter_do_usuario(db, Cliente, cliente_id, current_user.id, NAO_ENCONTRADO)
    campos = campos_informados(dados, Cliente)
    endereco = campos.pop("endereco", None)
    if "estabelecimento_id" in campos:
        validar_posse(db, Estabelecimento, campos["estabelecimento_id"], current_user.id, "Estabelecimento inválido")

    with transacao(db):
        aplicar_campos(cliente, campos)
        sincronizar_endereco(cliente, endereco, ClienteEndereco)
    db.refresh(cliente)
    return cliente


@router.delete("/{cliente_id}", status_code=status.HTTP_204_NO_CONTENT)
def excluir_cliente(
    cliente_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    cliente = obter_do_usuario(db, Cliente, cliente_id, current_user.id, NAO_ENCONTRADO)
    if ids_vinculados(db, REFERENCIAS, [cliente.id]):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=VINCULADO)
    excluir(db, cliente, VINCULADO)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/bulk-delete")
def excluir_clientes_lote(
    request: Request,
    dados: BulkDeleteRequest,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registros = registros_do_lote(db, Cliente, dados.ids, current_user.id)
    bloqueados = sorted(ids_vinculados(db, REFERENCIAS, [r.id for r in registros]))
    if bloqueados:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "error": "Não é possível excluir Clientes vinculados a pedidos ou entregas",
                "blockedIds": bloqueados,
            },
        )
    registrar_auditoria(
        db,
        user_id=current_user.id,
        action="BULK_DELETE",
        resource="clientes",
        details=f"ids={[r.id for r in registros]}",
        request=request,
    )
    return excluir_lote(db, registros, "cliente(s)")


@router.patch("/{cliente_id}/toggle-status")
def alternar_status_cliente(
    cliente_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    cliente = obter_do_usuario(db, Cliente, cliente_id, current_user.id, NAO_ENCONTRADO)
    mensagem = alternar_status(db, cliente, "Cliente")
    return {"message": mensagem, "data": _serializar(cliente)}


@router.post("/import")
def importar_clientes(
    request: Request,
    dados: ImportRequest,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Estabelecimento por id ou nome; mesmo nome + telefone é duplicado"""

    def importar_linha(linha: dict):
        valores = preparar_linha(linha, booleanos=("ativo", "aceita_promocao_email"))
        estabelecimento_id = resolver_estabelecimento(db, current_user.id, valores)
        endereco = separar_endereco(valores)
        payload = ClienteCreate(**valores, estabelecimento_id=estabelecimento_id, endereco=endereco)

        duplicado = db.query(Cliente.id).filter(
            Cliente.id_usuario == current_user.id,
            Cliente.nome == payload.nome,
            Cliente.telefone == payload.telefone,
        ).first()
        if duplicado:
            raise LinhaInvalida("Cliente duplicado (nome e telefone já cadastrados)")
        return _criar(db, current_user.id, payload)

    return importar_registros(db, request, current_user.id, dados.records, COLUNAS, importar_linha, "clientes")
