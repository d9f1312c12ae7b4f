"""
Rotas de Cardápios
Composição de itens com preço calculado a partir das quantidades
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from foodmax.database import get_db
from foodmax.models import Cardapio, CardapioItem, Item, PedidoCardapio, Usuario
from foodmax.schemas import (
    BulkDeleteRequest, CardapioCreate, CardapioDetalhe, CardapioResponse, CardapioUpdate,
)
from foodmax.security import get_current_user
from foodmax.services.audit import registrar_auditoria
from foodmax.services.crud import (
    alternar_status, aplicar_busca, aplicar_campos, campos_informados, excluir, excluir_lote,
    ids_vinculados, obter_do_usuario, paginar, registros_do_lote, sincronizar_filhos, transacao,
    validar_posse_lista,
)
from foodmax.services.planilhas import (
    ImportRequest, LinhaInvalida, exportar_csv, importar_agrupado, parse_centavos, parse_inteiro,
    preparar_linha,
)
from foodmax.services.referencias import obter_ou_criar_item

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cardapios", tags=["Cardápios"])

NAO_ENCONTRADO = "Cardápio não encontrado"
VINCULADO = "Não é possível excluir Cardápio vinculado a pedidos"

# Uma linha por item do cardápio; os campos do cardápio se repetem
COLUNAS = [
    ("nome", "Nome"),
    ("tipo_cardapio", "Tipo de Cardápio"),
    ("quantidade_total", "Quantidade Total"),
    ("preco_itens_centavos", "Preço dos Itens"),
    ("margem_lucro_percentual", "Margem de Lucro (%)"),
    ("preco_total", "Preço Total"),
    ("descricao", "Descrição"),
    ("ativo", "Ativo"),
    ("item_nome", "Item"),
    ("item_quantidade", "Quantidade do Item"),
    ("item_valor_unitario", "Valor Unitário do Item"),
    ("data_cadastro", "Data de Cadastro"),
]
CENTAVOS = ("preco_itens_centavos", "preco_total", "item_valor_unitario")


def _query(db: Session, user_id: int, search: Optional[str], tipo: Optional[str]):
    query = db.query(Cardapio).filter(Cardapio.id_usuario == user_id)
    if tipo and tipo != "Todos":
        query = query.filter(Cardapio.tipo_cardapio == tipo)
    return aplicar_busca(query, search, [Cardapio.nome, Cardapio.descricao])


def _serializar(cardapio: Cardapio) -> CardapioResponse:
    return CardapioResponse.model_validate(cardapio)


def _recalcular(cardapio: Cardapio) -> None:
    cardapio.quantidade_total = sum(i.quantidade for i in cardapio.itens)
    cardapio.preco_itens_centavos = sum(i.quantidade * i.valor_unitario_centavos for i in cardapio.itens)


def _validar_itens(db: Session, user_id: int, itens: List[dict]) -> None:
    validar_posse_lista(db, Item, [i["item_id"] for i in itens], user_id, "Item inválido")


def _criar(db: Session, user_id: int, dados: CardapioCreate) -> Cardapio:
    cardapio = Cardapio(id_usuario=user_id, **dados.model_dump(exclude={"itens"}))
    cardapio.itens = [CardapioItem(**i.model_dump()) for i in dados.itens]
    _recalcular(cardapio)
    db.add(cardapio)
    return cardapio


def _linhas_exportacao(cardapio: Cardapio):
    base = _serializar(cardapio).model_dump()
    if not cardapio.itens:
        yield base
        return
    for item in cardapio.itens:
        yield {
            **base,
            "item_nome": item.item_nome,
            "item_quantidade": item.quantidade,
            "item_valor_unitario": item.valor_unitario_centavos,
        }


@router.get("")
def listar_cardapios(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=10000),
    search: Optional[str] = None,
    tipo: Optional[str] = None,
    ativo: Optional[bool] = None,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = _query(db, current_user.id, search, tipo)
    if ativo is not None:
        query = query.filter(Cardapio.ativo == ativo)
    return paginar(query, page, limit, _serializar, order_by=(Cardapio.data_cadastro.desc(), Cardapio.id.desc()))


@router.get("/export")
def exportar_cardapios(
    search: Optional[str] = None,
    tipo: Optional[str] = None,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registros = _query(db, current_user.id, search, tipo).order_by(Cardapio.nome).all()
    linhas = (linha for c in registros for linha in _linhas_exportacao(c))
    return exportar_csv(linhas, COLUNAS, "cardapios", centavos=CENTAVOS)


@router.get("/{cardapio_id}", response_model=CardapioDetalhe)
def obter_cardapio(
    cardapio_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return obter_do_usuario(db, Cardapio, cardapio_id, current_user.id, NAO_ENCONTRADO)


@router.post("", response_model=CardapioDetalhe, status_code=status.HTTP_201_CREATED)
def criar_cardapio(
    dados: CardapioCreate,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _validar_itens(db, current_user.id, [i.model_dump() for i in dados.itens])
    with transacao(db):
        cardapio = _criar(db, current_user.id, dados)
    db.refresh(cardapio)
    logger.info(f"✅ Cardápio criado: {cardapio.nome} (ID: {cardapio.id})")
    return cardapio


@router.put("/{cardapio_id}", response_model=CardapioDetalhe)
def atualizar_cardapio(
    cardapio_id: int,
    dados: CardapioUpdate,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Itens enviados substituem a composição por diferença (chave item_id)"""
    cardapio = obter_do_usuario(db, Cardapio, cardapio_id, current_user.id, NAO_ENCONTRADO)
    campos = campos_informados(dados, Cardapio)
    itens = campos.pop("itens", None)
    if itens is not None:
        _validar_itens(db, current_user.id, itens)

    with transacao(db):
        aplicar_campos(cardapio, campos)
        if itens is not None:
            sincronizar_filhos(cardapio.itens, itens, "item_id", lambda d: CardapioItem(**d))
            _recalcular(cardapio)
    db.refresh(cardapio)
    return cardapio


@router.delete("/{cardapio_id}", status_code=status.HTTP_204_NO_CONTENT)
def excluir_cardapio(
    cardapio_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    cardapio = obter_do_usuario(db, Cardapio, cardapio_id, current_user.id, NAO_ENCONTRADO)
    if ids_vinculados(db, (PedidoCardapio.cardapio_id,), [cardapio.id]):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=VINCULADO)
    excluir(db, cardapio, VINCULADO)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/bulk-delete")
def excluir_cardapios_lote(
    request: Request,
    dados: BulkDeleteRequest,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registros = registros_do_lote(db, Cardapio, dados.ids, current_user.id)
    bloqueados = sorted(ids_vinculados(db, (PedidoCardapio.cardapio_id,), [r.id for r in registros]))
    if bloqueados:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"error": "Não é possível excluir Cardápios vinculados a pedidos", "blockedIds": bloqueados},
        )
    registrar_auditoria(
        db,
        user_id=current_user.id,
        action="BULK_DELETE",
        resource="cardapios",
        details=f"ids={[r.id for r in registros]}",
        request=request,
    )
    return excluir_lote(db, registros, "cardápio(s)")


@router.patch("/{cardapio_id}/toggle-status")
def alternar_status_cardapio(
    cardapio_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    cardapio = obter_do_usuario(db, Cardapio, cardapio_id, current_user.id, NAO_ENCONTRADO)
    mensagem = alternar_status(db, cardapio, "Cardápio")
    return {"message": mensagem, "data": _serializar(cardapio)}


@router.post("/import")
def importar_cardapios(
    request: Request,
    dados: ImportRequest,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Uma linha por item; linhas com o mesmo nome + tipo formam um cardápio.
    Itens são buscados pelo nome e criados com estoque zero quando ausentes.
    """

    def chave(linha: dict):
        nome = str(linha.get("nome") or "").strip()
        if not nome:
            raise LinhaInvalida("Nome do cardápio é obrigatório")
        return nome.lower(), str(linha.get("tipo_cardapio") or "").strip()

    def importar_grupo(linhas: List[dict]):
        valores = preparar_linha(linhas[0], booleanos=("ativo",), centavos=("preco_total",))
        for campo in ("item_nome", "item_quantidade", "item_valor_unitario", "quantidade_total",
                      "preco_itens_centavos", "itens", "data_cadastro"):
            valores.pop(campo, None)
        if "margem_lucro_percentual" in valores:
            valores["margem_lucro_percentual"] = str(valores["margem_lucro_percentual"]).replace(",", ".")

        itens = []
        for linha in linhas:
            item_nome = str(linha.get("item_nome") or "").strip()
            if not item_nome:
                continue
            valor = parse_centavos(linha.get("item_valor_unitario"))
            item = obter_ou_criar_item(db, current_user.id, item_nome, preco_centavos=valor)
            itens.append({
                "item_id": item.id,
                "quantidade": parse_inteiro(linha.get("item_quantidade"), padrao=1),
                "valor_unitario_centavos": valor,
            })

        payload = CardapioCreate(**valores, itens=itens)
        return _criar(db, current_user.id, payload)

    return importar_agrupado(
        db, request, current_user.id, dados.records, COLUNAS, chave, importar_grupo, "cardapios"
    )
