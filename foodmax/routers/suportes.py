"""
Rotas de Suporte
Tickets dos usuários; o admin enxerga e responde todos
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from foodmax.database import get_db
from foodmax.models import RoleUsuario, StatusSuporte, Suporte, SuporteEvento, Usuario
from foodmax.schemas import (
    ResponderSuporteRequest, SuporteCreate, SuporteEventoResponse, SuporteResponse, SuporteUpdate,
)
from foodmax.security import get_current_user
from foodmax.services.crud import aplicar_busca, aplicar_campos, campos_informados, paginar, transacao
from foodmax.services.planilhas import exportar_csv
from foodmax.services.transicoes import agora

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/suportes", tags=["Suporte"])

NAO_ENCONTRADO = "Registro não encontrado"

COLUNAS = [
    ("titulo", "Título"),
    ("tipo", "Tipo"),
    ("prioridade", "Prioridade"),
    ("status", "Status"),
    ("nome_usuario", "Nome"),
    ("email_usuario", "Email"),
    ("descricao", "Descrição"),
    ("resposta_admin", "Resposta do Admin"),
    ("data_resposta_admin", "Data da Resposta"),
    ("data_cadastro", "Data de Cadastro"),
]


def _query(db: Session, user: Usuario, search: Optional[str], status_filtro: Optional[str]):
    query = db.query(Suporte)
    if not user.is_admin:
        query = query.filter(Suporte.id_usuario == user.id)
    if status_filtro and status_filtro != "Todos":
        query = query.filter(Suporte.status == status_filtro)
    return aplicar_busca(
        query, search, [Suporte.titulo, Suporte.descricao, Suporte.email_usuario, Suporte.nome_usuario]
    )


def _serializar(suporte: Suporte) -> SuporteResponse:
    return SuporteResponse.model_validate(suporte)


def _visivel(db: Session, suporte_id: int, user: Usuario) -> Suporte:
    """Ticket de outro usuário não existe para quem não é admin"""
    suporte = _query(db, user, None, None).filter(Suporte.id == suporte_id).first()
    if not suporte:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NAO_ENCONTRADO)
    return suporte


def _editavel(db: Session, suporte_id: int, user: Usuario) -> Suporte:
    suporte = db.query(Suporte).filter(Suporte.id == suporte_id).first()
    if not suporte:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NAO_ENCONTRADO)
    if not user.is_admin and suporte.id_usuario != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Acesso negado")
    return suporte


def _email_admin(db: Session) -> Optional[str]:
    admin = (
        db.query(Usuario.email)
        .filter(Usuario.role == RoleUsuario.ADMIN)
        .order_by(Usuario.id)
        .first()
    )
    return admin[0] if admin else None


def _registrar_evento(suporte: Suporte, tipo_evento: str, detalhes: str) -> None:
    suporte.eventos.append(SuporteEvento(tipo_evento=tipo_evento, detalhes=detalhes))


def _mudar_status(suporte: Suporte, novo: StatusSuporte) -> None:
    if suporte.status == novo:
        return
    anterior = suporte.status.value if suporte.status else None
    suporte.status = novo
    _registrar_evento(suporte, "status", f"Status alterado de {anterior} para {novo.value}")


@router.get("")
def listar_suportes(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=10000),
    search: Optional[str] = None,
    status_filtro: Optional[str] = Query(None, alias="status"),
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = _query(db, current_user, search, status_filtro)
    return paginar(query, page, limit, _serializar, order_by=(Suporte.data_cadastro.desc(), Suporte.id.desc()))


@router.get("/export")
def exportar_suportes(
    search: Optional[str] = None,
    status_filtro: Optional[str] = Query(None, alias="status"),
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registros = (
        _query(db, current_user, search, status_filtro)
        .order_by(Suporte.data_cadastro.desc(), Suporte.id.desc())
        .all()
    )
    linhas = (_serializar(s).model_dump() for s in registros)
    return exportar_csv(linhas, COLUNAS, "suportes")


@router.get("/{suporte_id}", response_model=SuporteResponse)
def obter_suporte(
    suporte_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _visivel(db, suporte_id, current_user)


@router.get("/{suporte_id}/respostas", response_model=List[SuporteEventoResponse])
def listar_respostas(
    suporte_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Histórico de eventos do ticket em ordem cronológica"""
    suporte = _visivel(db, suporte_id, current_user)
    return suporte.eventos


@router.post("", response_model=SuporteResponse, status_code=status.HTTP_201_CREATED)
def criar_suporte(
    dados: SuporteCreate,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    valores = dados.model_dump()
    valores["status"] = valores["status"] or StatusSuporte.ABERTO
    with transacao(db):
        suporte = Suporte(id_usuario=current_user.id, **valores)
        if suporte.resposta_admin:
            suporte.data_resposta_admin = agora()
        destino = _email_admin(db) or "admin"
        _registrar_evento(suporte, "criacao", f"Novo ticket criado e enviado para {destino}")
        db.add(suporte)
    db.refresh(suporte)
    logger.info(f"✅ Ticket de suporte criado: {suporte.titulo} (ID: {suporte.id})")
    return suporte


@router.put("/{suporte_id}", response_model=SuporteResponse)
def atualizar_suporte(
    suporte_id: int,
    dados: SuporteUpdate,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    suporte = _editavel(db, suporte_id, current_user)
    campos = campos_informados(dados, Suporte)
    resposta = campos.get("resposta_admin")
    respondeu = (
        current_user.is_admin
        and "resposta_admin" in campos
        and (resposta or "").strip()
        and resposta != suporte.resposta_admin
    )

    with transacao(db):
        aplicar_campos(suporte, campos)
        if respondeu:
            suporte.data_resposta_admin = agora()
            _registrar_evento(
                suporte, "resposta_admin", "Resposta enviada ao usuário criador do ticket (via formulário)"
            )
    db.refresh(suporte)
    return suporte


@router.post("/{suporte_id}/responder", response_model=SuporteResponse)
def responder_suporte(
    suporte_id: int,
    dados: ResponderSuporteRequest,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Apenas admin pode responder")
    suporte = _visivel(db, suporte_id, current_user)

    with transacao(db):
        suporte.resposta_admin = dados.resposta
        suporte.data_resposta_admin = agora()
        if dados.status is not None:
            suporte.status = dados.status
        _registrar_evento(suporte, "resposta_admin", "Resposta enviada ao usuário criador do ticket")
    db.refresh(suporte)
    logger.info(f"✅ Ticket {suporte.id} respondido por {current_user.email}")
    return suporte


@router.patch("/{suporte_id}/resolver", response_model=SuporteResponse)
def resolver_suporte(
    suporte_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    suporte = _editavel(db, suporte_id, current_user)
    with transacao(db):
        _mudar_status(suporte, StatusSuporte.RESOLVIDO)
    db.refresh(suporte)
    return suporte


@router.patch("/{suporte_id}/fechar", response_model=SuporteResponse)
def fechar_suporte(
    suporte_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    suporte = _editavel(db, suporte_id, current_user)
    with transacao(db):
        _mudar_status(suporte, StatusSuporte.FECHADO)
    db.refresh(suporte)
    return suporte


@router.delete("/{suporte_id}", status_code=status.HTTP_204_NO_CONTENT)
def excluir_suporte(
    suporte_id: int,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    suporte = _editavel(db, suporte_id, current_user)
    with transacao(db):
        db.delete(suporte)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
