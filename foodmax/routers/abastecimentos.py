"""
Rotas de Abastecimentos
Pedidos de reposição aos fornecedores, com itens, endereço de entrega e envio de email
"""
from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session
from typing import Dict, List, Optional
import logging
import secrets
import string

from foodmax.database import get_db
from foodmax.models import (
    Abastecimento, AbastecimentoEndereco, AbastecimentoItem, Estabelecimento, Fornecedor, Item,
    ItemCategoria, StatusAbastecimento, Usuario,
)
from foodmax.schemas import (
    AbastecimentoCreate, AbastecimentoDetalhe, AbastecimentoResponse, AbastecimentoUpdate, BulkDeleteRequest,
)
from foodmax.security import exigir_plano_pago, get_current_user
from foodmax.services.audit import registrar_auditoria
from foodmax.services.crud import (
    aplicar_busca, aplicar_campos, campos_informados, excluir, excluir_lote, obter_do_usuario, paginar,
    registros_do_lote, sincronizar_endereco, sincronizar_filhos, transacao, validar_posse, validar_posse_lista,
)
from foodmax.services.planilhas import (
    COLUNAS_ENDERECO, ImportRequest, LinhaInvalida, achatar_endereco, exportar_csv, importar_agrupado,
    parse_inteiro, preparar_linha, separar_endereco,
)
from foodmax.services.referencias import (
    obter_ou_criar_categoria, obter_ou_criar_item, resolver_estabelecimento, resolver_fornecedores,
)
from foodmax.services.transicoes import agora, validar_email_enviado, validar_transicao

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/abastecimentos", tags=["Abastecimentos"])

NAO_ENCONTRADO = "Abastecimento não encontrado"
ALFABETO_CODIGO = string.ascii_uppercase + string.digits

COLUNAS = [
    ("codigo", "Código"),
    ("estabelecimento_nome", "Estabelecimento"),
    ("fornecedores_nomes", "Fornecedores"),
    ("categoria_nome", "Categoria"),
    ("quantidade_total", "Quantidade Total"),
    ("ddi", "DDI"),
    ("telefone", "Telefone"),
    ("email", "Email"),
    ("data_hora_recebido", "Data/Hora Recebido"),
    ("observacao", "Observação"),
    ("status", "Status"),
    ("email_enviado", "Email Enviado"),
    ("item_nome", "Item"),
    ("item_quantidade", "Quantidade do Item"),
    *COLUNAS_ENDERECO,
    ("data_cadastro", "Data de Cadastro"),
]


def gerar_codigo() -> str:
    return "".join(secrets.choice(ALFABETO_CODIGO) for _ in range(8))


def _novo_codigo(db: Session, user_id: int) -> str:
    codigo = gerar_codigo()
    while _codigo_em_uso(db, user_id, codigo):
        codigo = gerar_codigo()
    return codigo


def _codigo_em_uso(db: Session, user_id: int, codigo: str) -> bool:
    return db.query(Abastecimento.id).filter(
        Abastecimento.id_usuario == user_id, Abastecimento.codigo == codigo
    ).first() is not None


def _query(
    db: Session,
    user_id: int,
    search: Optional[str],
    status_filtro: Optional[str],
    estabelecimento_id: Optional[int],
):
    query = db.query(Abastecimento).filter(Abastecimento.id_usuario == user_id)
    if status_filtro and status_filtro != "Todos":
        query = query.filter(Abastecimento.status == status_filtro)
    if estabelecimento_id:
        query = query.filter(Abastecimento.estabelecimento_id == estabelecimento_id)
    return aplicar_busca(query, search, [Abastecimento.observacao, Abastecimento.codigo])


def _serializar(abastecimento: Abastecimento) -> AbastecimentoResponse:
    return AbastecimentoResponse.model_validate(abastecimento)


def _nomes_fornecedores(db: Session, user_id: int) -> Dict[int, str]:
    return dict(db.query(Fornecedor.id, Fornecedor.nome).filter(Fornecedor.id_usuario == user_id).all())


def _detalhe(db: Session, abastecimento: Abastecimento) -> AbastecimentoDetalhe:
    nomes = _nomes_fornecedores(db, abastecimento.id_usuario)
    detalhe = AbastecimentoDetalhe.model_validate(abastecimento)
    detalhe.fornecedores_nomes = [nomes[i] for i in abastecimento.fornecedores_ids or [] if i in nomes]
    return detalhe


def _validar_referencias(db: Session, user_id: int, campos: dict) -> None:
    if "estabelecimento_id" in campos:
        validar_posse(db, Estabelecimento, campos["estabelecimento_id"], user_id, "Estabelecimento inválido")
    if "categoria_id" in campos:
        validar_posse(db, ItemCategoria, campos["categoria_id"], user_id, "Categoria inválida")
    if campos.get("fornecedores_ids") is not None:
        validar_posse_lista(db, Fornecedor, campos["fornecedores_ids"], user_id, "Fornecedor inválido")
    if campos.get("itens") is not None:
        validar_posse_lista(db, Item, [i["item_id"] for i in campos["itens"]], user_id, "Item inválido")


def _recalcular(abastecimento: Abastecimento) -> None:
    abastecimento.quantidade_total = sum(i.quantidade for i in abastecimento.itens)


def _criar(db: Session, user_id: int, dados: AbastecimentoCreate, codigo: Optional[str] = None) -> Abastecimento:
    abastecimento = Abastecimento(id_usuario=user_id, **dados.model_dump(exclude={"itens", "endereco"}))
    abastecimento.codigo = codigo or _novo_codigo(db, user_id)
    abastecimento.itens = [AbastecimentoItem(**i.model_dump()) for i in dados.itens]
    abastecimento.endereco = AbastecimentoEndereco(**dados.endereco.model_dump())
    if abastecimento.status == StatusAbastecimento.RECEBIDO and abastecimento.data_hora_recebido is None:
        abastecimento.data_hora_recebido = agora()
    _recalcular(abastecimento)
    db.add(abastecimento)
    return abastecimento


def _mudar_status(abastecimento: Abastecimento, novo: StatusAbastecimento) -> None:
    if validar_transicao(abastecimento.status, novo):
        abastecimento.status = novo
    if abastecimento.status == StatusAbastecimento.RECEBIDO and abastecimento.data_hora_recebido is None:
        abastecimento.data_hora_recebido = agora()


def _linhas_exportacao(abastecimento: Abastecimento, nomes: Dict[int, str]):
    base = {
        **_serializar(abastecimento).model_dump(),
        **achatar_endereco(abastecimento),
        "fornecedores_nomes": [nomes[i] for i in abastecimento.fornecedores_ids or [] if i in nomes],
    }
    if not abastecimento.itens:
        yield base
        return
    for item in abastecimento.itens:
        yield {**base, "item_nome": item.item_nome, "item_quantidade": item.quantidade}


@router.get("")
def listar_abastecimentos(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=10000),
    search: Optional[str] = None,
    status_filtro: Optional[str] = Query(None, alias="status"),
    estabelecimento_id: Optional[int] = None,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = _query(db, current_user.id, search, status_filtro, estabelecimento_id)
    return paginar(
        query, page, limit, _serializar, order_by=(Abastecimento.data_cadastro.desc(), Abastecimento.id.desc())
    )


@router.get("/export")
def exportar_abastecimentos(
    search: Optional[str] = None,
    status_filtro: Optional[str] = Query(None, alias="status"),
    estabelecimento_id: Optional[int] = None,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registros = (
        _query(db, current_user.id, search, status_filtro, estabelecimento_id)
        .order_by(Abastecimento.data_cadastro.desc(), Abastecimento.id.desc())
        .all()
    )
    nomes = _nomes_fornecedores(db, current_user.id)
    linhas = (linha for a in registros for linha in _linhas_exportacao(a, nomes))
    return exportar_csv(linhas, COLUNAS, "abastecimentos")


@router.get("/{abastecimento_id}", response_model=AbastecimentoDetalhe)
def obter_abastecimento(
    abastecimento_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    abastecimento = obter_do_usuario(db, Abastecimento, abastecimento_id, current_user.id, NAO_ENCONTRADO)
    return _detalhe(db, abastecimento)


@router.post("", response_model=AbastecimentoDetalhe, status_code=status.HTTP_201_CREATED)
def criar_abastecimento(
    dados: AbastecimentoCreate,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _validar_referencias(db, current_user.id, dados.model_dump())
    with transacao(db):
        abastecimento = _criar(db, current_user.id, dados)
    db.refresh(abastecimento)
    logger.info(f"✅ Abastecimento criado: {abastecimento.codigo} (ID: {abastecimento.id})")
    return _detalhe(db, abastecimento)


@router.put("/{abastecimento_id}", response_model=AbastecimentoDetalhe)
def atualizar_abastecimento(
    abastecimento_id: int,
    dados: AbastecimentoUpdate,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    abastecimento = obter_do_usuario(db, Abastecimento, abastecimento_id, current_user.id, NAO_ENCONTRADO)
    campos = campos_informados(dados, Abastecimento)
    _validar_referencias(db, current_user.id, campos)
    itens = campos.pop("itens", None)
    endereco = campos.pop("endereco", None)
    novo_status = campos.pop("status", None)
    if "email_enviado" in campos:
        validar_email_enviado(abastecimento.email_enviado, campos["email_enviado"])

    with transacao(db):
        aplicar_campos(abastecimento, campos)
        if novo_status is not None:
            _mudar_status(abastecimento, novo_status)
        if itens is not None:
            sincronizar_filhos(abastecimento.itens, itens, "item_id", lambda d: AbastecimentoItem(**d))
            _recalcular(abastecimento)
        sincronizar_endereco(abastecimento, endereco, AbastecimentoEndereco)
    db.refresh(abastecimento)
    return _detalhe(db, abastecimento)


@router.patch("/{abastecimento_id}/recebido", response_model=AbastecimentoDetalhe)
def marcar_recebido(
    abastecimento_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    abastecimento = obter_do_usuario(db, Abastecimento, abastecimento_id, current_user.id, NAO_ENCONTRADO)
    with transacao(db):
        _mudar_status(abastecimento, StatusAbastecimento.RECEBIDO)
    db.refresh(abastecimento)
    return _detalhe(db, abastecimento)


@router.post("/{abastecimento_id}/enviar-email")
def enviar_email_abastecimento(
    abastecimento_id: int,
    request: Request,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Registra o envio do pedido de abastecimento aos fornecedores.
    Não há disparo SMTP: o retorno traz os emails que receberiam a mensagem.
    """
    exigir_plano_pago(current_user)
    abastecimento = obter_do_usuario(db, Abastecimento, abastecimento_id, current_user.id, NAO_ENCONTRADO)

    destinatarios = [
        email
        for (email,) in db.query(Fornecedor.email).filter(
            Fornecedor.id_usuario == current_user.id,
            Fornecedor.id.in_(abastecimento.fornecedores_ids or []),
            Fornecedor.ativo == True,
        )
        if email
    ]

    with transacao(db):
        abastecimento.email_enviado = True
        if abastecimento.status == StatusAbastecimento.PENDENTE:
            abastecimento.status = StatusAbastecimento.ENVIADO
        registrar_auditoria(
            db,
            user_id=current_user.id,
            action="ABASTECIMENTO_EMAIL",
            resource="abastecimentos",
            resource_id=abastecimento.id,
            details=f"destinatarios={len(destinatarios)}",
            request=request,
        )

    logger.info(f"✅ Email de abastecimento {abastecimento.codigo} registrado para {len(destinatarios)} fornecedor(es)")
    return {"success": True, "message": "Email enviado com sucesso", "destinatarios": destinatarios}


@router.delete("/{abastecimento_id}", status_code=status.HTTP_204_NO_CONTENT)
def excluir_abastecimento(
    abastecimento_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    abastecimento = obter_do_usuario(db, Abastecimento, abastecimento_id, current_user.id, NAO_ENCONTRADO)
    excluir(db, abastecimento, "Não é possível excluir Abastecimento com registros vinculados")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/bulk-delete")
def excluir_abastecimentos_lote(
    request: Request,
    dados: BulkDeleteRequest,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registros = registros_do_lote(db, Abastecimento, dados.ids, current_user.id)
    registrar_auditoria(
        db,
        user_id=current_user.id,
        action="BULK_DELETE",
        resource="abastecimentos",
        details=f"ids={[r.id for r in registros]}",
        request=request,
    )
    return excluir_lote(db, registros, "abastecimento(s)")


@router.post("/import")
def importar_abastecimentos(
    request: Request,
    dados: ImportRequest,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Uma linha por item; linhas com o mesmo código formam um abastecimento.
    Fornecedores vêm pelo nome separados por vírgula e precisam existir.
    """

    def chave(linha: dict):
        codigo = str(linha.get("codigo") or "").strip()
        return codigo or gerar_codigo()

    def importar_grupo(linhas: List[dict]):
        valores = preparar_linha(linhas[0], booleanos=("email_enviado",), datas=("data_hora_recebido",))
        codigo = str(valores.pop("codigo", "") or "").strip()[:8] or None
        if codigo and _codigo_em_uso(db, current_user.id, codigo):
            raise LinhaInvalida(f"Abastecimento com código {codigo} já existe")
        estabelecimento_id = resolver_estabelecimento(db, current_user.id, valores)
        fornecedores_ids = resolver_fornecedores(db, current_user.id, valores.pop("fornecedores_nomes", None))
        categoria_id = obter_ou_criar_categoria(db, current_user.id, valores.pop("categoria_nome", None)).id
        endereco = separar_endereco(valores)

        itens = []
        for linha in linhas:
            item_nome = str(linha.get("item_nome") or "").strip()
            if item_nome:
                item = obter_ou_criar_item(db, current_user.id, item_nome)
                itens.append({"item_id": item.id, "quantidade": parse_inteiro(linha.get("item_quantidade"), padrao=1)})

        for campo in ("item_nome", "item_quantidade", "quantidade_total", "fornecedores_ids", "categoria_id",
                      "itens", "data_cadastro"):
            valores.pop(campo, None)
        payload = AbastecimentoCreate(
            **valores,
            estabelecimento_id=estabelecimento_id,
            fornecedores_ids=fornecedores_ids,
            categoria_id=categoria_id,
            itens=itens,
            endereco=endereco,
        )
        return _criar(db, current_user.id, payload, codigo=codigo)

    return importar_agrupado(
        db, request, current_user.id, dados.records, COLUNAS, chave, importar_grupo, "abastecimentos"
    )
