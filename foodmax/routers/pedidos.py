"""
Rotas de Pedidos
Pedidos com cardápios e itens extras; código XXXX-XXXX único por usuário
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from itertools import zip_longest
from sqlalchemy.orm import Session
from typing import List, Optional
import logging
import secrets
import string

from foodmax.database import get_db
from foodmax.models import (
    Cardapio, Cliente, Entrega, Estabelecimento, Item, Pedido, PedidoCardapio, PedidoItemExtra,
    StatusPedido, Usuario,
)
from foodmax.schemas import BulkDeleteRequest, PedidoCreate, PedidoDetalhe, PedidoResponse, PedidoUpdate
from foodmax.security import get_current_user
from foodmax.services.audit import registrar_auditoria
from foodmax.services.crud import (
    aplicar_busca, aplicar_campos, campos_informados, excluir, excluir_lote, ids_vinculados,
    obter_do_usuario, paginar, registros_do_lote, sincronizar_filhos, transacao, validar_posse,
    validar_posse_lista,
)
from foodmax.services.planilhas import (
    ImportRequest, LinhaInvalida, exportar_csv, importar_agrupado, parse_centavos,
    parse_inteiro, preparar_linha,
)
from foodmax.services.referencias import (
    obter_ou_criar_cardapio, obter_ou_criar_item, resolver_cliente, resolver_estabelecimento,
)
from foodmax.services.transicoes import agora, validar_transicao

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/pedidos", tags=["Pedidos"])

NAO_ENCONTRADO = "Pedido não encontrado"
VINCULADO = "Não é possível excluir Pedido vinculado a entregas"
BASE36 = string.ascii_uppercase + string.digits

COLUNAS = [
    ("codigo", "Código"),
    ("estabelecimento_nome", "Estabelecimento"),
    ("cliente_nome", "Cliente"),
    ("tipo_pedido", "Tipo de Pedido"),
    ("valor_total", "Valor Total"),
    ("status", "Status"),
    ("data_hora_finalizado", "Data/Hora Finalizado"),
    ("observacao", "Observação"),
    ("cardapio_nome", "Cardápio"),
    ("cardapio_preco_total", "Preço do Cardápio"),
    ("itens_extras_nome", "Item Extra"),
    ("itens_extras_categoria", "Categoria do Item Extra"),
    ("itens_extras_quantidade", "Quantidade do Item Extra"),
    ("itens_extras_valor_unitario", "Valor Unitário do Item Extra"),
    ("data_cadastro", "Data de Cadastro"),
]
CENTAVOS = ("valor_total", "cardapio_preco_total", "itens_extras_valor_unitario")


def gerar_codigo() -> str:
    parte = lambda: "".join(secrets.choice(BASE36) for _ in range(4))
    return f"{parte()}-{parte()}"


def _codigo_em_uso(db: Session, user_id: int, codigo: str, ignorar_id: Optional[int] = None) -> bool:
    query = db.query(Pedido.id).filter(Pedido.id_usuario == user_id, Pedido.codigo == codigo)
    if ignorar_id is not None:
        query = query.filter(Pedido.id != ignorar_id)
    return query.first() is not None


def _novo_codigo(db: Session, user_id: int) -> str:
    codigo = gerar_codigo()
    while _codigo_em_uso(db, user_id, codigo):
        codigo = gerar_codigo()
    return codigo


def _query(
    db: Session,
    user_id: int,
    search: Optional[str],
    status_filtro: Optional[str],
    estabelecimento_id: Optional[int],
):
    query = db.query(Pedido).filter(Pedido.id_usuario == user_id)
    if status_filtro and status_filtro != "Todos":
        query = query.filter(Pedido.status == status_filtro)
    if estabelecimento_id:
        query = query.filter(Pedido.estabelecimento_id == estabelecimento_id)
    return aplicar_busca(query, search, [Pedido.codigo])


def _serializar(pedido: Pedido) -> PedidoResponse:
    return PedidoResponse.model_validate(pedido)


def _validar_extras(db: Session, user_id: int, extras: List[dict]) -> None:
    """Item do usuário, categoria coerente e estoque suficiente"""
    if not extras:
        return
    ids = {e["item_id"] for e in extras}
    itens = {
        i.id: i
        for i in db.query(Item).filter(Item.id.in_(ids), Item.id_usuario == user_id)
    }
    for extra in extras:
        item_id = extra["item_id"]
        item = itens.get(item_id)
        if item is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Item inválido ({item_id})")
        if item.categoria_id != extra["categoria_id"]:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Categoria do item não confere para o item {item_id}",
            )
        estoque = item.estoque_atual or 0
        if estoque <= 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Item sem estoque ({item_id}). Ajuste no módulo Itens.",
            )
        if extra["quantidade"] > estoque:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=(
                    f"Quantidade informada ({extra['quantidade']}) é maior que o estoque atual "
                    f"({estoque}) do item {item_id}. Ajuste no módulo Itens."
                ),
            )


def _precificar_cardapios(db: Session, user_id: int, cardapios: List[dict]) -> List[dict]:
    """Preço ausente vem do cadastro do cardápio"""
    registros = validar_posse_lista(db, Cardapio, [c["cardapio_id"] for c in cardapios], user_id, "Cardápio inválido")
    precos = {c.id: c.preco_total for c in registros}
    return [
        {
            "cardapio_id": c["cardapio_id"],
            "preco_total": c["preco_total"] if c.get("preco_total") is not None else precos[c["cardapio_id"]],
        }
        for c in cardapios
    ]


def _validar_referencias(db: Session, user_id: int, campos: dict) -> None:
    if "estabelecimento_id" in campos:
        validar_posse(db, Estabelecimento, campos["estabelecimento_id"], user_id, "Estabelecimento inválido")
    if "cliente_id" in campos:
        validar_posse(db, Cliente, campos["cliente_id"], user_id, "Cliente inválido")


def _criar(db: Session, user_id: int, dados: dict, cardapios: List[dict], extras: List[dict]) -> Pedido:
    if not dados.get("codigo"):
        dados["codigo"] = _novo_codigo(db, user_id)
    pedido = Pedido(id_usuario=user_id, **dados)
    if pedido.status == StatusPedido.FINALIZADO and pedido.data_hora_finalizado is None:
        pedido.data_hora_finalizado = agora()
    pedido.cardapios = [PedidoCardapio(**c) for c in cardapios]
    pedido.itens_extras = [PedidoItemExtra(**e) for e in extras]
    db.add(pedido)
    return pedido


def _mudar_status(pedido: Pedido, novo: StatusPedido) -> None:
    if validar_transicao(pedido.status, novo):
        pedido.status = novo
    if pedido.status == StatusPedido.FINALIZADO and pedido.data_hora_finalizado is None:
        pedido.data_hora_finalizado = agora()


def _linhas_exportacao(pedido: Pedido):
    base = _serializar(pedido).model_dump()
    pares = list(zip_longest(pedido.cardapios, pedido.itens_extras))
    if not pares:
        yield base
        return
    for cardapio, extra in pares:
        linha = dict(base)
        if cardapio is not None:
            linha["cardapio_nome"] = cardapio.cardapio_nome
            linha["cardapio_preco_total"] = cardapio.preco_total
        if extra is not None:
            linha["itens_extras_nome"] = extra.item_nome
            linha["itens_extras_categoria"] = extra.categoria_nome
            linha["itens_extras_quantidade"] = extra.quantidade
            linha["itens_extras_valor_unitario"] = extra.valor_unitario
        yield linha


@router.get("")
def listar_pedidos(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=10000),
    search: Optional[str] = None,
    status_filtro: Optional[str] = Query(None, alias="status"),
    estabelecimento_id: Optional[int] = None,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = _query(db, current_user.id, search, status_filtro, estabelecimento_id)
    return paginar(query, page, limit, _serializar, order_by=(Pedido.data_cadastro.desc(), Pedido.id.desc()))


@router.get("/export")
def exportar_pedidos(
    search: Optional[str] = None,
    status_filtro: Optional[str] = Query(None, alias="status"),
    estabelecimento_id: Optional[int] = None,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registros = (
        _query(db, current_user.id, search, status_filtro, estabelecimento_id)
        .order_by(Pedido.data_cadastro.desc(), Pedido.id.desc())
        .all()
    )
    linhas = (linha for p in registros for linha in _linhas_exportacao(p))
    return exportar_csv(linhas, COLUNAS, "pedidos", centavos=CENTAVOS)


@router.get("/{pedido_id}", response_model=PedidoDetalhe)
def obter_pedido(
    pedido_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return obter_do_usuario(db, Pedido, pedido_id, current_user.id, NAO_ENCONTRADO)


@router.post("", response_model=PedidoDetalhe, status_code=status.HTTP_201_CREATED)
def criar_pedido(
    dados: PedidoCreate,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    campos = dados.model_dump(exclude={"cardapios", "itens_extras"})
    _validar_referencias(db, current_user.id, campos)
    if campos.get("codigo") and _codigo_em_uso(db, current_user.id, campos["codigo"]):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Já existe um pedido com este código")
    extras = [e.model_dump() for e in dados.itens_extras]
    _validar_extras(db, current_user.id, extras)
    cardapios = _precificar_cardapios(db, current_user.id, [c.model_dump() for c in dados.cardapios])

    with transacao(db):
        pedido = _criar(db, current_user.id, campos, cardapios, extras)
    db.refresh(pedido)
    logger.info(f"✅ Pedido criado: {pedido.codigo} (ID: {pedido.id})")
    return pedido


@router.put("/{pedido_id}", response_model=PedidoDetalhe)
def atualizar_pedido(
    pedido_id: int,
    dados: PedidoUpdate,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Cardápios (chave cardapio_id) e extras (chave item_id) são sincronizados por diferença"""
    pedido = obter_do_usuario(db, Pedido, pedido_id, current_user.id, NAO_ENCONTRADO)
    campos = campos_informados(dados, Pedido)
    cardapios = campos.pop("cardapios", None)
    extras = campos.pop("itens_extras", None)
    novo_status = campos.pop("status", None)

    _validar_referencias(db, current_user.id, campos)
    if campos.get("codigo") and _codigo_em_uso(db, current_user.id, campos["codigo"], ignorar_id=pedido.id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Já existe um pedido com este código")
    if not campos.get("codigo", True):
        campos.pop("codigo")
    if extras is not None:
        _validar_extras(db, current_user.id, extras)
    if cardapios is not None:
        cardapios = _precificar_cardapios(db, current_user.id, cardapios)

    with transacao(db):
        aplicar_campos(pedido, campos)
        if novo_status is not None:
            _mudar_status(pedido, novo_status)
        if cardapios is not None:
            sincronizar_filhos(pedido.cardapios, cardapios, "cardapio_id", lambda d: PedidoCardapio(**d))
        if extras is not None:
            sincronizar_filhos(pedido.itens_extras, extras, "item_id", lambda d: PedidoItemExtra(**d))
    db.refresh(pedido)
    return pedido


@router.patch("/{pedido_id}/finalizar", response_model=PedidoDetalhe)
def finalizar_pedido(
    pedido_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    pedido = obter_do_usuario(db, Pedido, pedido_id, current_user.id, NAO_ENCONTRADO)
    with transacao(db):
        _mudar_status(pedido, StatusPedido.FINALIZADO)
    db.refresh(pedido)
    logger.info(f"✅ Pedido finalizado: {pedido.codigo}")
    return pedido


@router.delete("/{pedido_id}", status_code=status.HTTP_204_NO_CONTENT)
def excluir_pedido(
    pedido_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    pedido = obter_do_usuario(db, Pedido, pedido_id, current_user.id, NAO_ENCONTRADO)
    if ids_vinculados(db, (Entrega.pedido_id,), [pedido.id]):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=VINCULADO)
    excluir(db, pedido, VINCULADO)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/bulk-delete")
def excluir_pedidos_lote(
    request: Request,
    dados: BulkDeleteRequest,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registros = registros_do_lote(db, Pedido, dados.ids, current_user.id)
    bloqueados = sorted(ids_vinculados(db, (Entrega.pedido_id,), [r.id for r in registros]))
    if bloqueados:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"error": "Não é possível excluir Pedidos vinculados a entregas", "blockedIds": bloqueados},
        )
    registrar_auditoria(
        db,
        user_id=current_user.id,
        action="BULK_DELETE",
        resource="pedidos",
        details=f"ids={[r.id for r in registros]}",
        request=request,
    )
    return excluir_lote(db, registros, "pedido(s)")


@router.post("/import")
def importar_pedidos(
    request: Request,
    dados: ImportRequest,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Linhas com o mesmo código formam um pedido. Cardápios e itens extras são
    buscados pelo nome; os ausentes são criados. Código já existente é erro.
    """

    def chave(linha: dict):
        codigo = str(linha.get("codigo") or "").strip()
        return codigo or gerar_codigo()

    def importar_grupo(linhas: List[dict]):
        valores = preparar_linha(linhas[0], centavos=("valor_total",), datas=("data_hora_finalizado",))
        codigo = str(valores.get("codigo") or "").strip() or _novo_codigo(db, current_user.id)
        if _codigo_em_uso(db, current_user.id, codigo):
            raise LinhaInvalida(f"Pedido com código {codigo} já existe")
        estabelecimento_id = resolver_estabelecimento(db, current_user.id, valores)
        cliente_id = resolver_cliente(db, current_user.id, valores)

        cardapios = []
        extras = []
        for linha in linhas:
            nome = str(linha.get("cardapio_nome") or "").strip()
            if nome:
                preco = parse_centavos(linha.get("cardapio_preco_total"))
                cardapio = obter_ou_criar_cardapio(db, current_user.id, nome, preco)
                cardapios.append({"cardapio_id": cardapio.id, "preco_total": preco})
            item_nome = str(linha.get("itens_extras_nome") or "").strip()
            if item_nome:
                valor = parse_centavos(linha.get("itens_extras_valor_unitario"))
                item = obter_ou_criar_item(
                    db, current_user.id, item_nome, linha.get("itens_extras_categoria"), preco_centavos=valor
                )
                extras.append({
                    "item_id": item.id,
                    "categoria_id": item.categoria_id,
                    "quantidade": parse_inteiro(linha.get("itens_extras_quantidade"), padrao=1),
                    "valor_unitario": valor,
                })

        payload = PedidoCreate(
            estabelecimento_id=estabelecimento_id,
            cliente_id=cliente_id,
            tipo_pedido=valores.get("tipo_pedido"),
            codigo=codigo,
            observacao=valores.get("observacao"),
            status=valores.get("status", StatusPedido.PENDENTE),
            valor_total=valores.get("valor_total", 0),
        )
        campos = payload.model_dump(exclude={"cardapios", "itens_extras"})
        campos["data_hora_finalizado"] = valores.get("data_hora_finalizado")
        return _criar(db, current_user.id, campos, cardapios, extras)

    return importar_agrupado(
        db, request, current_user.id, dados.records, COLUNAS, chave, importar_grupo, "pedidos"
    )
