"""
Peças reutilizadas por todos os routers: paginação, posse do registro,
sincronização de filhos e transação única por escrita.
"""
import logging
import math
from contextlib import contextmanager
from typing import Callable, Iterable, List, Optional, Sequence

from fastapi import HTTPException, status
from pydantic import BaseModel
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

logger = logging.getLogger(__name__)


@contextmanager
def transacao(db: Session):
    """Commit único ao final do bloco; rollback de tudo em qualquer falha"""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def aplicar_busca(query: Query, termo: Optional[str], colunas: Sequence) -> Query:
    """ilike em qualquer uma das colunas"""
    termo = (termo or "").strip()
    if not termo:
        return query
    padrao = f"%{termo}%"
    return query.filter(or_(*[coluna.ilike(padrao) for coluna in colunas]))


def paginar(query: Query, page: int, limit: int, serializar: Callable, order_by: Iterable = ()) -> dict:
    """Aplica offset/limit e monta {data, pagination}"""
    page = max(page, 1)
    limit = max(limit, 1)
    total = query.order_by(None).count()
    if order_by:
        query = query.order_by(*order_by)
    rows = query.offset((page - 1) * limit).limit(limit).all()
    return {
        "data": [serializar(r) for r in rows],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit) if total else 0,
        },
    }


def obter_do_usuario(db: Session, model, registro_id: int, user_id: int, detail: str):
    """Busca um registro do usuário; 404 quando não existe ou é de outro dono"""
    registro = db.query(model).filter(model.id == registro_id, model.id_usuario == user_id).first()
    if not registro:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
    return registro


def validar_posse(db: Session, model, registro_id: Optional[int], user_id: int, detail: str):
    """Referência a registro de outro usuário (ou inexistente) vira 403"""
    if registro_id is None:
        return None
    registro = db.query(model).filter(model.id == registro_id, model.id_usuario == user_id).first()
    if not registro:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
    return registro


def validar_posse_lista(db: Session, model, ids: Iterable[int], user_id: int, detail: str) -> List:
    ids = list(dict.fromkeys(ids))
    if not ids:
        return []
    registros = db.query(model).filter(model.id.in_(ids), model.id_usuario == user_id).all()
    if len(registros) != len(ids):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
    return registros


def verificar_nome_unico(db: Session, model, user_id: int, nome: str, detail: str, ignorar_id: Optional[int] = None):
    """Nome único por dono, sem diferenciar maiúsculas"""
    query = db.query(model.id).filter(
        model.id_usuario == user_id,
        func.lower(model.nome) == nome.strip().lower(),
    )
    if ignorar_id is not None:
        query = query.filter(model.id != ignorar_id)
    if query.first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)


def campos_informados(dados: BaseModel, model) -> dict:
    """Campos enviados no corpo; null só é aceito em colunas anuláveis"""
    campos = dados.model_dump(exclude_unset=True)
    colunas = model.__table__.columns
    return {
        campo: valor
        for campo, valor in campos.items()
        if valor is not None or campo not in colunas or colunas[campo].nullable
    }


def aplicar_campos(registro, dados: dict) -> None:
    for campo, valor in dados.items():
        setattr(registro, campo, valor)


def sincronizar_endereco(registro, dados: Optional[dict], model) -> None:
    """Atualiza o endereço 1:1 no lugar ou cria quando ainda não existe"""
    if dados is None:
        return
    if registro.endereco is None:
        registro.endereco = model(**dados)
    else:
        aplicar_campos(registro.endereco, dados)


def sincronizar_filhos(colecao: list, novos: List[dict], chave: str, criar: Callable[[dict], object]) -> None:
    """
    Upsert por diferença: filhos com a mesma chave são atualizados no lugar,
    os novos são inseridos e os ausentes removidos (delete-orphan).
    """
    existentes = {}
    for filho in colecao:
        existentes.setdefault(getattr(filho, chave), []).append(filho)

    mantidos = []
    for dados in novos:
        candidatos = existentes.get(dados[chave])
        if candidatos:
            filho = candidatos.pop(0)
            aplicar_campos(filho, dados)
        else:
            filho = criar(dados)
        mantidos.append(filho)

    colecao[:] = mantidos


def alternar_status(db: Session, registro, entidade: str, feminino: bool = False) -> str:
    registro.ativo = not registro.ativo
    db.commit()
    db.refresh(registro)
    situacao = "ativad" if registro.ativo else "desativad"
    situacao += "a" if feminino else "o"
    return f"{entidade} {situacao} com sucesso"


def excluir(db: Session, registro, detail_conflito: str) -> None:
    """Exclusão definitiva; violação de FK no banco vira 409"""
    try:
        with transacao(db):
            db.delete(registro)
    except IntegrityError:
        logger.warning("Exclusão bloqueada por FK: %s id=%s", type(registro).__name__, registro.id)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail_conflito)


def registros_do_lote(db: Session, model, ids: List[int], user_id: int) -> List:
    """Carrega os ids do lote; qualquer id de outro dono bloqueia a operação"""
    ids = list(dict.fromkeys(ids))
    registros = db.query(model).filter(model.id.in_(ids), model.id_usuario == user_id).all()
    if len(registros) != len(ids):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Alguns registros não pertencem ao usuário",
        )
    return registros


def ids_vinculados(db: Session, colunas: Sequence, ids: Iterable[int]) -> set:
    """Ids referenciados por qualquer uma das colunas de FK informadas"""
    ids = list(ids)
    encontrados = set()
    for coluna in colunas:
        encontrados.update(valor for (valor,) in db.query(coluna).filter(coluna.in_(ids)).distinct())
    return encontrados


def excluir_lote(db: Session, registros: List, entidade_plural: str) -> dict:
    try:
        with transacao(db):
            for registro in registros:
                db.delete(registro)
    except IntegrityError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Não foi possível excluir {entidade_plural} com registros vinculados",
        )
    return {
        "message": f"{len(registros)} {entidade_plural} excluído(s) com sucesso",
        "deletedCount": len(registros),
    }
