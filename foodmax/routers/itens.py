from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.orm import Session
from typing import Optional
import logging

from foodmax.database import get_db
from foodmax.models import AbastecimentoItem, CardapioItem, Item, ItemCategoria, PedidoItemExtra, Usuario
from foodmax.schemas import BulkDeleteRequest, ItemCreate, ItemResponse, ItemUpdate
from foodmax.security import get_current_user
from foodmax.services.audit import registrar_auditoria
from foodmax.services.crud import (
    alternar_status, aplicar_busca, aplicar_campos, campos_informados, excluir, excluir_lote,
    ids_vinculados, obter_do_usuario, paginar, registros_do_lote, transacao, validar_posse,
)
from foodmax.services.planilhas import (
    ImportRequest, exportar_csv, importar_registros, parse_inteiro, preparar_linha,
)
from foodmax.services.referencias import obter_ou_criar_categoria

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/itens", tags=["Itens"])

NAO_ENCONTRADO = "Item não encontrado"
VINCULADO = "Não é possível excluir Item vinculado a cardápios, pedidos ou abastecimentos"

COLUNAS = [
    ("nome", "Nome"),
    ("categoria_nome", "Categoria"),
    ("preco_centavos", "Preço"),
    ("custo_pago_centavos", "Custo Pago"),
    ("unidade_medida", "Unidade de Medida"),
    ("peso_gramas", "Peso (g)"),
    ("estoque_atual", "Estoque Atual"),
    ("ativo", "Ativo"),
    ("data_cadastro", "Data de Cadastro"),
]
CENTAVOS = ("preco_centavos", "custo_pago_centavos")

REFERENCIAS = (CardapioItem.item_id, PedidoItemExtra.item_id, AbastecimentoItem.item_id)


def _query(db: Session, user_id: int, search: Optional[str], categoria_id: Optional[int]):
    query = db.query(Item).filter(Item.id_usuario == user_id)
    if categoria_id:
        query = query.filter(Item.categoria_id == categoria_id)
    return aplicar_busca(query, search, [Item.nome])


def _serializar(item: Item) -> ItemResponse:
    return ItemResponse.model_validate(item)


@router.get("")
def listar_itens(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=10000),
    search: Optional[str] = None,
    categoria_id: Optional[int] = None,
    ativo: Optional[bool] = None,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = _query(db, current_user.id, search, categoria_id)
    if ativo is not None:
        query = query.filter(Item.ativo == ativo)
    return paginar(query, page, limit, _serializar, order_by=(Item.data_cadastro.desc(), Item.id.desc()))


@router.get("/export")
def exportar_itens(
    search: Optional[str] = None,
    categoria_id: Optional[int] = None,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registros = _query(db, current_user.id, search, categoria_id).order_by(Item.nome).all()
    linhas = (_serializar(i).model_dump() for i in registros)
    return exportar_csv(linhas, COLUNAS, "itens", centavos=CENTAVOS)


@router.get("/{item_id}", response_model=ItemResponse)
def obter_item(
    item_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return obter_do_usuario(db, Item, item_id, current_user.id, NAO_ENCONTRADO)


@router.post("", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
def criar_item(
    dados: ItemCreate,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    validar_posse(db, ItemCategoria, dados.categoria_id, current_user.id, "Categoria inválida")
    with transacao(db):
        item = Item(id_usuario=current_user.id, **dados.model_dump())
        db.add(item)
    db.refresh(item)
    return item


@router.put("/{item_id}", response_model=ItemResponse)
def atualizar_item(
    item_id: int,
    dados: ItemUpdate,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    item = obter_do_usuario(db, Item, item_id, current_user.id, NAO_ENCONTRADO)
    campos = campos_informados(dados, Item)
    if "categoria_id" in campos:
        validar_posse(db, ItemCategoria, campos["categoria_id"], current_user.id, "Categoria inválida")
    with transacao(db):
        aplicar_campos(item, campos)
    db.refresh(item)
    return item


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def excluir_item(
    item_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    item = obter_do_usuario(db, Item, item_id, current_user.id, NAO_ENCONTRADO)
    if ids_vinculados(db, REFERENCIAS, [item.id]):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=VINCULADO)
    excluir(db, item, VINCULADO)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/bulk-delete")
def excluir_itens_lote(
    request: Request,
    dados: BulkDeleteRequest,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registros = registros_do_lote(db, Item, dados.ids, current_user.id)
    bloqueados = sorted(ids_vinculados(db, REFERENCIAS, [r.id for r in registros]))
    if bloqueados:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "error": "Não é possível excluir Itens vinculados a cardápios, pedidos ou abastecimentos",
                "blockedIds": bloqueados,
            },
        )
    registrar_auditoria(
        db,
        user_id=current_user.id,
        action="BULK_DELETE",
        resource="itens",
        details=f"ids={[r.id for r in registros]}",
        request=request,
    )
    return excluir_lote(db, registros, "item(ns)")


@router.patch("/{item_id}/toggle-status")
def alternar_status_item(
    item_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    item = obter_do_usuario(db, Item, item_id, current_user.id, NAO_ENCONTRADO)
    mensagem = alternar_status(db, item, "Item")
    return {"message": mensagem, "data": _serializar(item)}


@router.post("/import")
def importar_itens(
    request: Request,
    dados: ImportRequest,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Categoria por id ou nome; categorias ausentes são criadas"""

    def importar_linha(linha: dict):
        valores = preparar_linha(
            linha,
            booleanos=("ativo",),
            centavos=CENTAVOS,
            inteiros=("estoque_atual", "peso_gramas"),
        )
        categoria_nome = valores.pop("categoria_nome", None)
        if "categoria_id" in valores:
            categoria_id = parse_inteiro(valores.pop("categoria_id"), padrao=-1)
            validar_posse(db, ItemCategoria, categoria_id, current_user.id, "Categoria inválida")
        else:
            categoria_id = obter_ou_criar_categoria(db, current_user.id, categoria_nome).id
        payload = ItemCreate(**valores, categoria_id=categoria_id)
        item = Item(id_usuario=current_user.id, **payload.model_dump())
        db.add(item)
        return item

    return importar_registros(db, request, current_user.id, dados.records, COLUNAS, importar_linha, "itens")
