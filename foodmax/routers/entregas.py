"""
Rotas de Entregas
Entregas próprias (vinculadas a um pedido) ou de aplicativo (código externo)
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.orm import Session
from typing import Optional
import logging

from foodmax.database import get_db
from foodmax.models import (
    Cliente, Entrega, EntregaEndereco, Estabelecimento, Pedido, StatusEntrega, TipoEntrega, Usuario,
)
from foodmax.schemas import BulkDeleteRequest, EntregaCreate, EntregaResponse, EntregaUpdate
from foodmax.security import get_current_user
from foodmax.services.audit import registrar_auditoria
from foodmax.services.crud import (
    aplicar_busca, aplicar_campos, campos_informados, excluir, excluir_lote, obter_do_usuario, paginar,
    registros_do_lote, sincronizar_endereco, transacao, validar_posse,
)
from foodmax.services.planilhas import (
    COLUNAS_ENDERECO, ImportRequest, LinhaInvalida, achatar_endereco, exportar_csv, importar_registros,
    preparar_linha, separar_endereco,
)
from foodmax.services.referencias import resolver_cliente, resolver_estabelecimento
from foodmax.services.transicoes import agora, validar_transicao

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/entregas", tags=["Entregas"])

NAO_ENCONTRADO = "Entrega não encontrada"

COLUNAS = [
    ("estabelecimento_nome", "Estabelecimento"),
    ("tipo_entrega", "Tipo de Entrega"),
    ("pedido_codigo", "Código do Pedido"),
    ("codigo_pedido_app", "Código do Pedido no App"),
    ("valor_pedido", "Valor do Pedido"),
    ("taxa_extra", "Taxa Extra"),
    ("valor_entrega", "Valor da Entrega"),
    ("forma_pagamento", "Forma de Pagamento"),
    ("cliente_nome", "Cliente"),
    ("ddi", "DDI"),
    ("telefone", "Telefone"),
    ("data_hora_saida", "Data/Hora Saída"),
    ("data_hora_entregue", "Data/Hora Entregue"),
    ("observacao", "Observação"),
    ("status", "Status"),
    *COLUNAS_ENDERECO,
    ("data_cadastro", "Data de Cadastro"),
]
CENTAVOS = ("valor_pedido", "taxa_extra", "valor_entrega")

# Data registrada na primeira vez que a entrega atinge cada status
DATAS_STATUS = {
    StatusEntrega.SAIU: "data_hora_saida",
    StatusEntrega.ENTREGUE: "data_hora_entregue",
}


def _query(
    db: Session,
    user_id: int,
    search: Optional[str],
    status_filtro: Optional[str],
    estabelecimento_id: Optional[int],
):
    query = db.query(Entrega).filter(Entrega.id_usuario == user_id)
    if status_filtro and status_filtro != "Todos":
        query = query.filter(Entrega.status == status_filtro)
    if estabelecimento_id:
        query = query.filter(Entrega.estabelecimento_id == estabelecimento_id)
    return aplicar_busca(query, search, [Entrega.codigo_pedido_app, Entrega.telefone, Entrega.observacao])


def _serializar(entrega: Entrega) -> EntregaResponse:
    return EntregaResponse.model_validate(entrega)


def _validar_tipo(tipo: TipoEntrega, pedido_id: Optional[int], codigo_pedido_app: Optional[str]) -> None:
    """Própria aponta para um pedido interno; as demais, para o código do aplicativo"""
    if tipo == TipoEntrega.PROPRIA and codigo_pedido_app:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Código do pedido no app só é permitido em entregas de aplicativo",
        )
    if tipo != TipoEntrega.PROPRIA and pedido_id is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Pedido só pode ser vinculado a entregas do tipo Própria",
        )


def _validar_referencias(db: Session, user_id: int, campos: dict) -> None:
    if "estabelecimento_id" in campos:
        validar_posse(db, Estabelecimento, campos["estabelecimento_id"], user_id, "Estabelecimento inválido")
    if "pedido_id" in campos:
        validar_posse(db, Pedido, campos["pedido_id"], user_id, "Pedido inválido")
    if "cliente_id" in campos:
        validar_posse(db, Cliente, campos["cliente_id"], user_id, "Cliente inválido")


def _datar_status(entrega: Entrega) -> None:
    campo = DATAS_STATUS.get(entrega.status)
    if campo and getattr(entrega, campo) is None:
        setattr(entrega, campo, agora())


def _criar(db: Session, user_id: int, dados: EntregaCreate) -> Entrega:
    entrega = Entrega(id_usuario=user_id, **dados.model_dump(exclude={"endereco"}))
    entrega.endereco = EntregaEndereco(**dados.endereco.model_dump())
    _datar_status(entrega)
    db.add(entrega)
    return entrega


def _mudar_status(entrega: Entrega, novo: StatusEntrega) -> None:
    if validar_transicao(entrega.status, novo):
        entrega.status = novo
    _datar_status(entrega)


@router.get("")
def listar_entregas(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=10000),
    search: Optional[str] = None,
    status_filtro: Optional[str] = Query(None, alias="status"),
    estabelecimento_id: Optional[int] = None,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = _query(db, current_user.id, search, status_filtro, estabelecimento_id)
    return paginar(query, page, limit, _serializar, order_by=(Entrega.data_cadastro.desc(), Entrega.id.desc()))


@router.get("/export")
def exportar_entregas(
    search: Optional[str] = None,
    status_filtro: Optional[str] = Query(None, alias="status"),
    estabelecimento_id: Optional[int] = None,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registros = (
        _query(db, current_user.id, search, status_filtro, estabelecimento_id)
        .order_by(Entrega.data_cadastro.desc(), Entrega.id.desc())
        .all()
    )
    linhas = ({**_serializar(e).model_dump(), **achatar_endereco(e)} for e in registros)
    return exportar_csv(linhas, COLUNAS, "entregas", centavos=CENTAVOS)


@router.get("/{entrega_id}", response_model=EntregaResponse)
def obter_entrega(
    entrega_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return obter_do_usuario(db, Entrega, entrega_id, current_user.id, NAO_ENCONTRADO)


@router.post("", response_model=EntregaResponse, status_code=status.HTTP_201_CREATED)
def criar_entrega(
    dados: EntregaCreate,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _validar_tipo(dados.tipo_entrega, dados.pedido_id, dados.codigo_pedido_app)
    _validar_referencias(db, current_user.id, dados.model_dump(exclude={"endereco"}))
    with transacao(db):
        entrega = _criar(db, current_user.id, dados)
    db.refresh(entrega)
    logger.info(f"✅ Entrega criada (ID: {entrega.id})")
    return entrega


@router.put("/{entrega_id}", response_model=EntregaResponse)
def atualizar_entrega(
    entrega_id: int,
    dados: EntregaUpdate,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Ao trocar o tipo, a referência do outro tipo é descartada"""
    entrega = obter_do_usuario(db, Entrega, entrega_id, current_user.id, NAO_ENCONTRADO)
    campos = campos_informados(dados, Entrega)
    endereco = campos.pop("endereco", None)
    novo_status = campos.pop("status", None)

    tipo = campos.get("tipo_entrega", entrega.tipo_entrega)
    if "tipo_entrega" in campos:
        if tipo == TipoEntrega.PROPRIA:
            campos.setdefault("codigo_pedido_app", None)
        else:
            campos.setdefault("pedido_id", None)
    _validar_tipo(
        tipo,
        campos.get("pedido_id", entrega.pedido_id),
        campos.get("codigo_pedido_app", entrega.codigo_pedido_app),
    )
    _validar_referencias(db, current_user.id, campos)

    with transacao(db):
        aplicar_campos(entrega, campos)
        if novo_status is not None:
            _mudar_status(entrega, novo_status)
        sincronizar_endereco(entrega, endereco, EntregaEndereco)
    db.refresh(entrega)
    return entrega


@router.patch("/{entrega_id}/saida", response_model=EntregaResponse)
def registrar_saida(
    entrega_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    entrega = obter_do_usuario(db, Entrega, entrega_id, current_user.id, NAO_ENCONTRADO)
    with transacao(db):
        _mudar_status(entrega, StatusEntrega.SAIU)
    db.refresh(entrega)
    return entrega


@router.patch("/{entrega_id}/entregue", response_model=EntregaResponse)
def registrar_entrega(
    entrega_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    entrega = obter_do_usuario(db, Entrega, entrega_id, current_user.id, NAO_ENCONTRADO)
    with transacao(db):
        _mudar_status(entrega, StatusEntrega.ENTREGUE)
    db.refresh(entrega)
    return entrega


@router.delete("/{entrega_id}", status_code=status.HTTP_204_NO_CONTENT)
def excluir_entrega(
    entrega_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    entrega = obter_do_usuario(db, Entrega, entrega_id, current_user.id, NAO_ENCONTRADO)
    excluir(db, entrega, "Não é possível excluir Entrega com registros vinculados")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/bulk-delete")
def excluir_entregas_lote(
    request: Request,
    dados: BulkDeleteRequest,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registros = registros_do_lote(db, Entrega, dados.ids, current_user.id)
    registrar_auditoria(
        db,
        user_id=current_user.id,
        action="BULK_DELETE",
        resource="entregas",
        details=f"ids={[r.id for r in registros]}",
        request=request,
    )
    return excluir_lote(db, registros, "entrega(s)")


@router.post("/import")
def importar_entregas(
    request: Request,
    dados: ImportRequest,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Pedido próprio é localizado pelo código; valor da entrega ausente vira
    valor do pedido + taxa extra.
    """

    def importar_linha(linha: dict):
        valores = preparar_linha(
            linha,
            centavos=CENTAVOS,
            datas=("data_hora_saida", "data_hora_entregue"),
        )
        estabelecimento_id = resolver_estabelecimento(db, current_user.id, valores)
        cliente_id = resolver_cliente(db, current_user.id, valores)
        endereco = separar_endereco(valores)

        codigo_pedido = str(valores.pop("pedido_codigo", "") or "").strip()
        tipo = valores.get("tipo_entrega", TipoEntrega.PROPRIA.value)
        pedido_id = None
        if tipo == TipoEntrega.PROPRIA.value:
            valores.pop("codigo_pedido_app", None)
            if codigo_pedido:
                pedido = db.query(Pedido.id).filter(
                    Pedido.id_usuario == current_user.id, Pedido.codigo == codigo_pedido
                ).first()
                if pedido is None:
                    raise LinhaInvalida(f"Pedido não encontrado: {codigo_pedido}")
                pedido_id = pedido.id
        elif codigo_pedido and "codigo_pedido_app" not in valores:
            valores["codigo_pedido_app"] = codigo_pedido

        if "valor_entrega" not in valores:
            valores["valor_entrega"] = valores.get("valor_pedido", 0) + valores.get("taxa_extra", 0)
        for campo in ("pedido_id", "data_cadastro"):
            valores.pop(campo, None)

        payload = EntregaCreate(
            **valores,
            estabelecimento_id=estabelecimento_id,
            cliente_id=cliente_id,
            pedido_id=pedido_id,
            endereco=endereco,
        )
        return _criar(db, current_user.id, payload)

    return importar_registros(db, request, current_user.id, dados.records, COLUNAS, importar_linha, "entregas")
