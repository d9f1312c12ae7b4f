from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import func
from sqlalchemy.orm import Session
import logging

from foodmax.database import get_db
from foodmax.models import LoginAttempt, RegistrationAttempt, RoleUsuario, Usuario, UsuarioContato
from foodmax.schemas import (
    ForgotPasswordRequest, LoginRequest, OnboardingRequest, RegisterRequest, UsuarioResponse,
)
from foodmax.security import (
    create_access_token, get_client_ip, get_current_user, get_password_hash, get_user_id, verify_password,
)
from foodmax.rate_limit import limiter
from datetime import timedelta
from foodmax.config import settings
from foodmax.services.audit import registrar_auditoria
from foodmax.services.transicoes import agora

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Autenticação"])


def _registrar_login_audit(
    db: Session,
    request: Request,
    action: str,
    detail: str,
    user: Usuario | None = None,
):
    registrar_auditoria(
        db,
        user_id=user.id if user else None,
        action=action,
        resource="auth",
        resource_id=user.id if user else None,
        details=detail,
        request=request,
    )
    db.commit()


def _tentativa_do_dia(db: Session, ip: str, email: str) -> LoginAttempt | None:
    return db.query(LoginAttempt).filter(
        LoginAttempt.ip == ip,
        LoginAttempt.email == email,
        LoginAttempt.attempt_date == agora().date(),
    ).first()


def _registrar_falha(db: Session, ip: str, email: str, tentativa: LoginAttempt | None) -> None:
    if tentativa is None:
        tentativa = LoginAttempt(ip=ip, email=email, attempt_date=agora().date(), attempts_count=0)
        db.add(tentativa)
    tentativa.attempts_count += 1
    tentativa.last_attempt = agora()


@router.post("/login")
@limiter.limit(settings.RATE_LIMIT_LOGIN)
def login(request: Request, credentials: LoginRequest, db: Session = Depends(get_db)):
    """
    Endpoint de login.
    Conta tentativas por IP + email no dia; o limite diário bloqueia com 429.
    """
    ip = get_client_ip(request)
    email = credentials.email.strip().lower()

    tentativa = _tentativa_do_dia(db, ip, email)
    if tentativa and tentativa.attempts_count >= settings.LOGIN_MAX_TENTATIVAS_DIA:
        logger.warning(f"❌ Login bloqueado para {email} (ip {ip}): limite diário atingido")
        _registrar_login_audit(db, request, "LOGIN_BLOCKED", f"Limite diário de tentativas para {email}")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Você excedeu o limite de tentativas hoje. Por favor, troque sua senha.",
        )

    user = db.query(Usuario).filter(func.lower(Usuario.email) == email).first()

    if not user or not verify_password(credentials.password, user.senha_hash):
        _registrar_falha(db, ip, email, tentativa)
        logger.warning(f"❌ Login falhou para {email} (ip {ip})")
        _registrar_login_audit(db, request, "LOGIN_FAILED", f"Credenciais inválidas para {email}", user)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Email ou senha incorretos",
        )

    if not user.ativo:
        _registrar_login_audit(db, request, "LOGIN_FAILED", f"Usuário inativo {email}", user)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Usuário inativo",
        )

    db.query(LoginAttempt).filter(
        LoginAttempt.ip == ip,
        LoginAttempt.email == email,
    ).delete(synchronize_session=False)
    user.ip = ip

    access_token = create_access_token(
        data={"sub": user.email, "user_id": user.id, "role": user.role.value},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    _registrar_login_audit(db, request, "LOGIN_SUCCESS", f"Login bem-sucedido para {user.email}", user)
    db.refresh(user)

    logger.info(f"✅ Login bem-sucedido para {user.email}")
    return {
        "success": True,
        "needsOnboarding": not user.onboarding,
        "user": UsuarioResponse.from_usuario(user),
        "access_token": access_token,
        "token_type": "bearer",
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.RATE_LIMIT_LOGIN)
def register(request: Request, dados: RegisterRequest, db: Session = Depends(get_db)):
    """Cria conta com role user; limitado por IP a algumas contas por dia"""
    ip = get_client_ip(request)
    hoje = agora().date()
    email = dados.email.strip().lower()

    contador = db.query(RegistrationAttempt).filter(
        RegistrationAttempt.ip == ip,
        RegistrationAttempt.registration_date == hoje,
    ).first()
    if contador and contador.registrations_count >= settings.REGISTRO_MAX_CONTAS_DIA:
        logger.warning(f"❌ Cadastro bloqueado para ip {ip}: limite diário atingido")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Limite de {settings.REGISTRO_MAX_CONTAS_DIA} contas por dia para este IP atingido",
        )

    if db.query(Usuario.id).filter(func.lower(Usuario.email) == email).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email já cadastrado",
        )

    user = Usuario(
        email=email,
        senha_hash=get_password_hash(dados.password),
        role=RoleUsuario.USER,
        ativo=True,
        onboarding=False,
        ip=ip,
    )
    db.add(user)

    if contador is None:
        contador = RegistrationAttempt(ip=ip, registration_date=hoje, registrations_count=0)
        db.add(contador)
    contador.registrations_count += 1

    db.flush()
    registrar_auditoria(
        db,
        user_id=user.id,
        action="REGISTER",
        resource="auth",
        resource_id=user.id,
        details=f"Conta criada para {email}",
        request=request,
    )
    db.commit()
    db.refresh(user)

    logger.info(f"✅ Conta criada para {email}")
    return {
        "success": True,
        "message": "Conta criada com sucesso",
        "user": UsuarioResponse.from_usuario(user),
    }


@router.post("/forgot-password")
def forgot_password(dados: ForgotPasswordRequest):
    """Resposta idêntica exista ou não o email, para não revelar cadastros"""
    logger.info("Solicitação de redefinição de senha recebida")
    return {
        "success": True,
        "message": "Se o email estiver cadastrado, você receberá instruções para redefinir sua senha",
    }


@router.post("/onboarding")
def onboarding(
    request: Request,
    dados: OnboardingRequest,
    current_user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Registra o contato do usuário e o plano escolhido"""
    if current_user.contatos:
        contato = current_user.contatos[0]
        contato.nome = dados.nome
        contato.ddi = dados.ddi
        contato.telefone = dados.telefone
    else:
        current_user.contatos.append(
            UsuarioContato(nome=dados.nome, ddi=dados.ddi, telefone=dados.telefone)
        )

    current_user.onboarding = True
    if dados.selectedPlan == "paid" and current_user.data_pagamento is None:
        current_user.data_pagamento = agora()

    registrar_auditoria(
        db,
        user_id=current_user.id,
        action="ONBOARDING",
        resource="auth",
        resource_id=current_user.id,
        details=f"Onboarding concluído (plano {dados.selectedPlan})",
        request=request,
    )
    db.commit()
    db.refresh(current_user)

    return {
        "success": True,
        "message": "Onboarding concluído com sucesso",
        "user": UsuarioResponse.from_usuario(current_user),
    }


@router.get("/me")
def get_current_user_info(
    user_id: int = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """Retorna informações do usuário identificado"""
    user = db.query(Usuario).filter(Usuario.id == user_id).first()

    if not user:
        logger.error(f"Usuário {user_id} não encontrado em /me")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Usuário não encontrado",
        )
    if not user.ativo:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Usuário inativo",
        )

    contato = user.contatos[0] if user.contatos else None
    return {
        **UsuarioResponse.from_usuario(user).model_dump(),
        "nome": contato.nome if contato else None,
        "ddi": contato.ddi if contato else None,
        "telefone": contato.telefone if contato else None,
    }
