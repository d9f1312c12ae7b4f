"""
Resolução de referências por id ou por nome nas importações.

Planilhas costumam trazer o nome do estabelecimento, cliente, categoria ou
item em vez do id. A busca é exata primeiro e depois sem diferenciar
maiúsculas; categorias e itens ausentes são criados na hora.
"""
import logging
import re
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from foodmax.models import Cardapio, Cliente, Estabelecimento, Fornecedor, Item, ItemCategoria, TipoCardapio
from foodmax.services.crud import validar_posse
from foodmax.services.planilhas import LinhaInvalida, parse_inteiro

CATEGORIA_PADRAO = "Outros"

logger = logging.getLogger(__name__)


def _por_nome(db: Session, model, user_id: int, nome: str, *filtros):
    base = db.query(model).filter(model.id_usuario == user_id, *filtros)
    encontrado = base.filter(model.nome == nome).first()
    if encontrado is None:
        encontrado = base.filter(func.lower(model.nome) == nome.lower()).first()
    return encontrado


def resolver_estabelecimento(db: Session, user_id: int, valores: Dict[str, Any]) -> int:
    """Consome estabelecimento_id/estabelecimento_nome da linha e devolve o id"""
    nome = str(valores.pop("estabelecimento_nome", "") or "").strip()
    bruto = valores.pop("estabelecimento_id", None)
    if bruto not in (None, ""):
        estabelecimento_id = parse_inteiro(bruto, padrao=-1)
        validar_posse(db, Estabelecimento, estabelecimento_id, user_id, "Estabelecimento inválido")
        return estabelecimento_id
    if not nome:
        raise LinhaInvalida("Estabelecimento é obrigatório")
    estabelecimento = _por_nome(db, Estabelecimento, user_id, nome)
    if estabelecimento is None:
        raise LinhaInvalida(f"Estabelecimento não encontrado: {nome}")
    return estabelecimento.id


def resolver_cliente(db: Session, user_id: int, valores: Dict[str, Any]) -> Optional[int]:
    """Cliente é opcional; "não cliente" e vazio significam sem cliente"""
    nome = str(valores.pop("cliente_nome", "") or "").strip()
    bruto = valores.pop("cliente_id", None)
    if bruto not in (None, ""):
        cliente_id = parse_inteiro(bruto, padrao=-1)
        validar_posse(db, Cliente, cliente_id, user_id, "Cliente inválido")
        return cliente_id
    if not nome or nome.lower() in ("não cliente", "nao cliente"):
        return None
    cliente = _por_nome(db, Cliente, user_id, nome)
    if cliente is None:
        raise LinhaInvalida(f"Cliente não encontrado: {nome}")
    return cliente.id


def obter_ou_criar_categoria(db: Session, user_id: int, nome: Optional[str]) -> ItemCategoria:
    nome = (nome or "").strip() or CATEGORIA_PADRAO
    categoria = _por_nome(db, ItemCategoria, user_id, nome)
    if categoria is None:
        categoria = ItemCategoria(id_usuario=user_id, nome=nome, ativo=True)
        db.add(categoria)
        db.flush()
        logger.info("Categoria '%s' criada na importação (usuário %s)", nome, user_id)
    return categoria


def obter_ou_criar_item(
    db: Session,
    user_id: int,
    nome: str,
    categoria_nome: Optional[str] = None,
    preco_centavos: int = 0,
) -> Item:
    """Item ausente nasce com estoque zero na categoria informada (ou na padrão)"""
    nome = (nome or "").strip()
    if not nome:
        raise LinhaInvalida("Nome do item é obrigatório")
    item = _por_nome(db, Item, user_id, nome)
    if item is None:
        categoria = obter_ou_criar_categoria(db, user_id, categoria_nome)
        item = Item(
            id_usuario=user_id,
            categoria_id=categoria.id,
            nome=nome,
            preco_centavos=preco_centavos,
            custo_pago_centavos=0,
            estoque_atual=0,
            ativo=True,
        )
        db.add(item)
        db.flush()
        logger.info("Item '%s' criado na importação (usuário %s)", nome, user_id)
    return item


def obter_ou_criar_cardapio(db: Session, user_id: int, nome: str, preco_total: int = 0) -> Cardapio:
    """Cardápio ausente nasce vazio, do tipo Outro, com o preço da planilha"""
    cardapio = _por_nome(db, Cardapio, user_id, nome)
    if cardapio is None:
        cardapio = Cardapio(
            id_usuario=user_id,
            nome=nome,
            tipo_cardapio=TipoCardapio.OUTRO,
            preco_total=preco_total,
            ativo=True,
        )
        db.add(cardapio)
        db.flush()
        logger.info("Cardápio '%s' criado na importação (usuário %s)", nome, user_id)
    return cardapio


def resolver_fornecedores(db: Session, user_id: int, texto: Optional[str]) -> List[int]:
    """Nomes separados por vírgula ou ponto e vírgula; todos precisam existir"""
    ids = []
    for nome in (n.strip() for n in re.split(r"[;,]", texto or "")):
        if not nome:
            continue
        fornecedor = _por_nome(db, Fornecedor, user_id, nome)
        if fornecedor is None:
            raise LinhaInvalida(f"Fornecedor não encontrado: {nome}")
        ids.append(fornecedor.id)
    return ids
