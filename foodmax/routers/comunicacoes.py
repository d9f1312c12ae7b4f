"""
Rotas de Comunicações
Promoções para clientes, avisos a fornecedores e envio (registrado) de emails
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from foodmax.config import settings
from foodmax.database import get_db
from foodmax.models import Cliente, Comunicacao, Estabelecimento, Fornecedor, StatusComunicacao, Usuario
from foodmax.schemas import (
    BulkDeleteRequest, BulkIdsRequest, ComunicacaoCreate, ComunicacaoResponse, ComunicacaoUpdate,
)
from foodmax.security import exigir_plano_pago, get_current_user
from foodmax.services.audit import registrar_auditoria
from foodmax.services.comunicacoes import resolver_destinatarios
from foodmax.services.crud import (
    aplicar_busca, aplicar_campos, campos_informados, excluir, excluir_lote, obter_do_usuario, paginar,
    registros_do_lote, transacao, validar_posse, validar_posse_lista,
)
from foodmax.services.planilhas import exportar_csv
from foodmax.services.transicoes import agora, validar_transicao

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/comunicacoes", tags=["Comunicações"])

NAO_ENCONTRADO = "Comunicação não encontrada"
APENAS_PENDENTES = "Apenas registros pendentes podem ser enviados"

COLUNAS = [
    ("estabelecimento_nome", "Estabelecimento"),
    ("tipo_comunicacao", "Tipo de Comunicação"),
    ("assunto", "Assunto"),
    ("mensagem", "Mensagem"),
    ("destinatarios_tipo", "Destinatários"),
    ("destinatarios_text", "Emails Informados"),
    ("status", "Status"),
    ("email_enviado", "Email Enviado"),
    ("data_hora_enviado", "Data/Hora Enviado"),
    ("data_cadastro", "Data de Cadastro"),
]


def _query(
    db: Session,
    user_id: int,
    search: Optional[str],
    status_filtro: Optional[str],
    estabelecimento_id: Optional[str],
):
    query = db.query(Comunicacao).filter(Comunicacao.id_usuario == user_id)
    if status_filtro and status_filtro != "Todos":
        query = query.filter(Comunicacao.status == status_filtro)
    # o front envia "todos" quando nenhum estabelecimento está selecionado
    if estabelecimento_id and estabelecimento_id.lower() != "todos":
        try:
            query = query.filter(Comunicacao.estabelecimento_id == int(estabelecimento_id))
        except ValueError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Estabelecimento inválido")
    return aplicar_busca(query, search, [Comunicacao.assunto, Comunicacao.mensagem])


def _serializar(comunicacao: Comunicacao) -> ComunicacaoResponse:
    return ComunicacaoResponse.model_validate(comunicacao)


def _validar_referencias(db: Session, user_id: int, campos: dict) -> None:
    if "estabelecimento_id" in campos:
        validar_posse(db, Estabelecimento, campos["estabelecimento_id"], user_id, "Estabelecimento inválido")
    if campos.get("clientes_ids"):
        validar_posse_lista(db, Cliente, campos["clientes_ids"], user_id, "Cliente inválido")
    if campos.get("fornecedores_ids"):
        validar_posse_lista(db, Fornecedor, campos["fornecedores_ids"], user_id, "Fornecedor inválido")


def _mudar_status(comunicacao: Comunicacao, novo: StatusComunicacao) -> None:
    if validar_transicao(comunicacao.status, novo):
        comunicacao.status = novo
    if comunicacao.status == StatusComunicacao.ENVIADO:
        comunicacao.email_enviado = True
        if comunicacao.data_hora_enviado is None:
            comunicacao.data_hora_enviado = agora()


def _enviar(db: Session, comunicacao: Comunicacao) -> List[str]:
    """Resolve os destinatários e marca a comunicação como enviada"""
    destinatarios = resolver_destinatarios(db, comunicacao)
    comunicacao.status = StatusComunicacao.ENVIADO
    comunicacao.email_enviado = True
    comunicacao.data_hora_enviado = agora()
    return destinatarios


@router.get("")
def listar_comunicacoes(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=10000),
    search: Optional[str] = None,
    status_filtro: Optional[str] = Query(None, alias="status"),
    estabelecimento_id: Optional[str] = None,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = _query(db, current_user.id, search, status_filtro, estabelecimento_id)
    return paginar(
        query, page, limit, _serializar, order_by=(Comunicacao.data_cadastro.desc(), Comunicacao.id.desc())
    )


@router.get("/export")
def exportar_comunicacoes(
    search: Optional[str] = None,
    status_filtro: Optional[str] = Query(None, alias="status"),
    estabelecimento_id: Optional[str] = None,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registros = (
        _query(db, current_user.id, search, status_filtro, estabelecimento_id)
        .order_by(Comunicacao.data_cadastro.desc(), Comunicacao.id.desc())
        .all()
    )
    linhas = (_serializar(c).model_dump() for c in registros)
    return exportar_csv(linhas, COLUNAS, "comunicacoes")


@router.post("/send-bulk")
def enviar_comunicacoes_lote(
    request: Request,
    dados: BulkIdsRequest,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Envia várias comunicações de uma vez. Ids inexistentes ou que não estão
    pendentes vão para failed; os demais são enviados numa única transação.
    """
    exigir_plano_pago(current_user)
    ids = list(dict.fromkeys(dados.ids))
    if len(ids) > settings.COMUNICACOES_BULK_MAX:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Só é possível enviar até {settings.COMUNICACOES_BULK_MAX} registros por vez",
        )

    encontrados = {
        c.id: c
        for c in db.query(Comunicacao).filter(
            Comunicacao.id.in_(ids), Comunicacao.id_usuario == current_user.id
        )
    }

    enviados = []
    falhas = []
    total_emails = 0
    with transacao(db):
        for comunicacao_id in ids:
            comunicacao = encontrados.get(comunicacao_id)
            if comunicacao is None:
                falhas.append({"id": comunicacao_id, "error": NAO_ENCONTRADO})
                continue
            if comunicacao.status != StatusComunicacao.PENDENTE:
                falhas.append({"id": comunicacao_id, "error": APENAS_PENDENTES})
                continue
            total_emails += len(_enviar(db, comunicacao))
            enviados.append(comunicacao_id)
        if enviados:
            registrar_auditoria(
                db,
                user_id=current_user.id,
                action="COMUNICACAO_ENVIADA",
                resource="comunicacoes",
                details=f"ids={enviados} emails={total_emails}",
                request=request,
            )

    logger.info(f"✅ {len(enviados)} comunicação(ões) enviada(s), {len(falhas)} falha(s)")
    return {
        "success": True,
        "sent": enviados,
        "failed": falhas,
        "processed": len(enviados),
        "total": len(ids),
        "totalEmails": total_emails,
    }


@router.get("/{comunicacao_id}", response_model=ComunicacaoResponse)
def obter_comunicacao(
    comunicacao_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return obter_do_usuario(db, Comunicacao, comunicacao_id, current_user.id, NAO_ENCONTRADO)


@router.post("", response_model=ComunicacaoResponse, status_code=status.HTTP_201_CREATED)
def criar_comunicacao(
    dados: ComunicacaoCreate,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _validar_referencias(db, current_user.id, dados.model_dump())
    with transacao(db):
        comunicacao = Comunicacao(id_usuario=current_user.id, **dados.model_dump())
        if comunicacao.status == StatusComunicacao.ENVIADO:
            comunicacao.email_enviado = True
            comunicacao.data_hora_enviado = agora()
        db.add(comunicacao)
    db.refresh(comunicacao)
    logger.info(f"✅ Comunicação criada: {comunicacao.assunto} (ID: {comunicacao.id})")
    return comunicacao


@router.put("/{comunicacao_id}", response_model=ComunicacaoResponse)
def atualizar_comunicacao(
    comunicacao_id: int,
    dados: ComunicacaoUpdate,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    comunicacao = obter_do_usuario(db, Comunicacao, comunicacao_id, current_user.id, NAO_ENCONTRADO)
    campos = campos_informados(dados, Comunicacao)
    _validar_referencias(db, current_user.id, campos)
    novo_status = campos.pop("status", None)
    for campo in ("clientes_ids", "fornecedores_ids"):
        if campo in campos and campos[campo] is None:
            campos[campo] = []

    with transacao(db):
        aplicar_campos(comunicacao, campos)
        if novo_status is not None:
            _mudar_status(comunicacao, novo_status)
    db.refresh(comunicacao)
    return comunicacao


@router.post("/{comunicacao_id}/send")
def enviar_comunicacao(
    comunicacao_id: int,
    request: Request,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Não há disparo SMTP: o envio registra os destinatários resolvidos e
    marca a comunicação como enviada.
    """
    exigir_plano_pago(current_user)
    comunicacao = obter_do_usuario(db, Comunicacao, comunicacao_id, current_user.id, NAO_ENCONTRADO)
    if comunicacao.status != StatusComunicacao.PENDENTE:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=APENAS_PENDENTES)

    with transacao(db):
        destinatarios = _enviar(db, comunicacao)
        registrar_auditoria(
            db,
            user_id=current_user.id,
            action="COMUNICACAO_ENVIADA",
            resource="comunicacoes",
            resource_id=comunicacao.id,
            details=f"destinatarios={len(destinatarios)}",
            request=request,
        )
    db.refresh(comunicacao)

    logger.info(f"✅ Comunicação {comunicacao.id} enviada para {len(destinatarios)} destinatário(s)")
    return {
        "success": True,
        "sentCount": len(destinatarios),
        "recipients": destinatarios,
        "comunicacao": _serializar(comunicacao),
    }


@router.delete("/{comunicacao_id}", status_code=status.HTTP_204_NO_CONTENT)
def excluir_comunicacao(
    comunicacao_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    comunicacao = obter_do_usuario(db, Comunicacao, comunicacao_id, current_user.id, NAO_ENCONTRADO)
    excluir(db, comunicacao, "Não é possível excluir Comunicação com registros vinculados")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/bulk-delete")
def excluir_comunicacoes_lote(
    request: Request,
    dados: BulkDeleteRequest,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registros = registros_do_lote(db, Comunicacao, dados.ids, current_user.id)
    registrar_auditoria(
        db,
        user_id=current_user.id,
        action="BULK_DELETE",
        resource="comunicacoes",
        details=f"ids={[r.id for r in registros]}",
        request=request,
    )
    return excluir_lote(db, registros, "comunicação(ões)")
