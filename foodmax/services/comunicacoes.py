"""Resolução dos destinatários de uma comunicação"""
import re
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from foodmax.models import Cliente, Comunicacao, DestinatariosTipo, Fornecedor, TipoComunicacao

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def extrair_emails(texto: Optional[str]) -> List[str]:
    """Separa por ';', ',' ou espaços e mantém só o que parece email"""
    if not texto:
        return []
    partes = [p.strip() for p in re.split(r"[;,\s]+", texto) if p.strip()]
    return [p for p in partes if EMAIL_REGEX.match(p.lower())]


def _limpos(emails: Iterable[Optional[str]]) -> List[str]:
    return [e.strip() for e in emails if e and e.strip()]


def _emails_clientes(db: Session, comunicacao: Comunicacao) -> List[str]:
    query = db.query(Cliente.email).filter(
        Cliente.id_usuario == comunicacao.id_usuario,
        Cliente.ativo == True,
        Cliente.aceita_promocao_email == True,
    )
    if comunicacao.destinatarios_tipo == DestinatariosTipo.TODOS_CLIENTES:
        query = query.filter(Cliente.estabelecimento_id == comunicacao.estabelecimento_id)
    elif comunicacao.destinatarios_tipo == DestinatariosTipo.CLIENTES_ESPECIFICOS:
        ids = comunicacao.clientes_ids or []
        if not ids:
            return []
        query = query.filter(Cliente.id.in_(ids))
    else:
        return []
    return _limpos(email for (email,) in query.order_by(Cliente.id).all())


def _emails_fornecedores(db: Session, comunicacao: Comunicacao) -> List[str]:
    query = db.query(Fornecedor.email).filter(
        Fornecedor.id_usuario == comunicacao.id_usuario,
        Fornecedor.ativo == True,
    )
    if comunicacao.destinatarios_tipo == DestinatariosTipo.FORNECEDORES_ESPECIFICOS:
        ids = comunicacao.fornecedores_ids or []
        if not ids:
            return []
        query = query.filter(Fornecedor.id.in_(ids))
    elif comunicacao.destinatarios_tipo != DestinatariosTipo.TODOS_FORNECEDORES:
        return []
    return _limpos(email for (email,) in query.order_by(Fornecedor.id).all())


def resolver_destinatarios(db: Session, comunicacao: Comunicacao) -> List[str]:
    """
    Promoção vai para clientes ativos que aceitam email, Fornecedor para
    fornecedores ativos e Outro para os emails digitados em destinatarios_text.
    """
    if comunicacao.tipo_comunicacao == TipoComunicacao.PROMOCAO:
        emails = _emails_clientes(db, comunicacao)
    elif comunicacao.tipo_comunicacao == TipoComunicacao.FORNECEDOR:
        emails = _emails_fornecedores(db, comunicacao)
    else:
        emails = extrair_emails(comunicacao.destinatarios_text)
    return list(dict.fromkeys(emails))
