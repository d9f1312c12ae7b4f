from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.orm import Session
from typing import Optional
import logging

from foodmax.database import get_db
from foodmax.models import Abastecimento, Item, ItemCategoria, PedidoItemExtra, Usuario
from foodmax.schemas import BulkDeleteRequest, CategoriaCreate, CategoriaResponse, CategoriaUpdate
from foodmax.security import get_current_user
from foodmax.services.audit import registrar_auditoria
from foodmax.services.crud import (
    alternar_status, aplicar_busca, aplicar_campos, campos_informados, excluir, ids_vinculados,
    obter_do_usuario, paginar, registros_do_lote, transacao, verificar_nome_unico,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/itens-categorias", tags=["Categorias de Itens"])

NAO_ENCONTRADO = "Categoria não encontrada"
NOME_DUPLICADO = "Já existe uma categoria com este nome"

CATEGORIAS_PADRAO = [
    "Carnes", "Aves", "Peixes", "Massas", "Molhos", "Laticínios", "Bebidas", "Vegetais",
    "Frutas", "Sobremesas", "Padaria", "Cereais", "Temperos", "Congelados", "Enlatados",
]

REFERENCIAS = (Item.categoria_id, PedidoItemExtra.categoria_id, Abastecimento.categoria_id)


def _semear_padrao(db: Session, user_id: int) -> None:
    """Cria as categorias padrão na primeira listagem do usuário"""
    if db.query(ItemCategoria.id).filter(ItemCategoria.id_usuario == user_id).first():
        return
    with transacao(db):
        for nome in CATEGORIAS_PADRAO:
            db.add(ItemCategoria(id_usuario=user_id, nome=nome, ativo=True))
    logger.info("Categorias padrão criadas para o usuário %s", user_id)


def _serializar(categoria: ItemCategoria) -> CategoriaResponse:
    return CategoriaResponse.model_validate(categoria)


@router.get("")
def listar_categorias(
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=10000),
    search: Optional[str] = None,
    ativo: Optional[bool] = None,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Lista categorias por nome; semeia as padrão quando o usuário não tem nenhuma"""
    _semear_padrao(db, current_user.id)
    query = db.query(ItemCategoria).filter(ItemCategoria.id_usuario == current_user.id)
    query = aplicar_busca(query, search, [ItemCategoria.nome, ItemCategoria.descricao])
    if ativo is not None:
        query = query.filter(ItemCategoria.ativo == ativo)
    return paginar(query, page, limit, _serializar, order_by=(ItemCategoria.nome, ItemCategoria.id))


@router.get("/{categoria_id}", response_model=CategoriaResponse)
def obter_categoria(
    categoria_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return obter_do_usuario(db, ItemCategoria, categoria_id, current_user.id, NAO_ENCONTRADO)


@router.post("", response_model=CategoriaResponse, status_code=status.HTTP_201_CREATED)
def criar_categoria(
    dados: CategoriaCreate,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    verificar_nome_unico(db, ItemCategoria, current_user.id, dados.nome, NOME_DUPLICADO)
    with transacao(db):
        categoria = ItemCategoria(id_usuario=current_user.id, **dados.model_dump())
        db.add(categoria)
    db.refresh(categoria)
    return categoria


@router.put("/{categoria_id}", response_model=CategoriaResponse)
def atualizar_categoria(
    categoria_id: int,
    dados: CategoriaUpdate,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    categoria = obter_do_usuario(db, ItemCategoria, categoria_id, current_user.id, NAO_ENCONTRADO)
    campos = campos_informados(dados, ItemCategoria)
    if "nome" in campos:
        verificar_nome_unico(db, ItemCategoria, current_user.id, campos["nome"], NOME_DUPLICADO, ignorar_id=categoria.id)
    with transacao(db):
        aplicar_campos(categoria, campos)
    db.refresh(categoria)
    return categoria


@router.delete("/{categoria_id}", status_code=status.HTTP_204_NO_CONTENT)
def excluir_categoria(
    categoria_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    categoria = obter_do_usuario(db, ItemCategoria, categoria_id, current_user.id, NAO_ENCONTRADO)
    if ids_vinculados(db, (Item.categoria_id,), [categoria.id]):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Não é possível excluir Categoria com Itens vinculados",
        )
    if ids_vinculados(db, REFERENCIAS, [categoria.id]):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Não é possível excluir Categoria com registros vinculados",
        )
    excluir(db, categoria, "Não é possível excluir Categoria com registros vinculados")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/bulk-delete")
def excluir_categorias_lote(
    request: Request,
    dados: BulkDeleteRequest,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Exclui as categorias livres e devolve em blockedIds as que têm vínculos"""
    registros = registros_do_lote(db, ItemCategoria, dados.ids, current_user.id)
    bloqueados = ids_vinculados(db, REFERENCIAS, [r.id for r in registros])
    livres = [r for r in registros if r.id not in bloqueados]

    with transacao(db):
        for categoria in livres:
            db.delete(categoria)
        registrar_auditoria(
            db,
            user_id=current_user.id,
            action="BULK_DELETE",
            resource="itens_categorias",
            details=f"ids={[r.id for r in livres]} bloqueados={sorted(bloqueados)}",
            request=request,
        )

    mensagem = f"{len(livres)} categoria(s) excluída(s) com sucesso"
    if bloqueados:
        mensagem += f"; {len(bloqueados)} com itens vinculados não foram excluídas"
    return {"message": mensagem, "deletedCount": len(livres), "blockedIds": sorted(bloqueados)}


@router.patch("/{categoria_id}/toggle-status")
def alternar_status_categoria(
    categoria_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    categoria = obter_do_usuario(db, ItemCategoria, categoria_id, current_user.id, NAO_ENCONTRADO)
    mensagem = alternar_status(db, categoria, "Categoria", feminino=True)
    return {"message": mensagem, "data": _serializar(categoria)}
