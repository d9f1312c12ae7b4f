import asyncio
import contextlib
import logging
import sys
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.httpsredirect import HTTPSRedirectMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from foodmax.config import settings
from foodmax.middleware import IdentidadeMiddleware
from foodmax.rate_limit import limiter
from foodmax.routers import (
    abastecimentos, admin, auth, cardapios, clientes, comunicacoes, entregas, estabelecimentos,
    financeiro, fornecedores, itens, itens_categorias, pedidos, relatorios, suportes,
)
from foodmax.services.limpeza import limpar_tentativas

# Configurar logging estruturado para produção
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)
cleanup_logger = logging.getLogger("foodmax.limpeza")

app = FastAPI(
    title="FoodMax - Gestão Gastronômica",
    description="Sistema de gestão para restaurantes (SaaS multi-usuário)",
    version="1.0.0"
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


# ==================== ERROS ====================
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Toda resposta de erro sai como {"error": ...}; detail em dict é mesclado"""
    if exc.status_code == 401:
        logger.warning("🔴 401 Unauthorized em %s: %s", request.url.path, exc.detail)
    if isinstance(exc.detail, dict):
        content = dict(exc.detail)
    else:
        content = {"error": exc.detail}
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "loc": [str(parte) for parte in erro.get("loc", ())],
            "msg": erro.get("msg"),
            "type": erro.get("type"),
        }
        for erro in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "Dados inválidos", "details": details})


@app.exception_handler(IntegrityError)
async def integrity_exception_handler(request: Request, exc: IntegrityError):
    logger.warning("Violação de integridade em %s: %s", request.url.path, exc.orig)
    return JSONResponse(
        status_code=409,
        content={"error": "Registro duplicado ou vinculado a outros registros"},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("❌ Erro não tratado em %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Erro interno do servidor"})


# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "x-user-id"],
    max_age=3600,
)


# Security Headers Middleware
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Adiciona headers de segurança às respostas"""
    response = await call_next(request)

    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    response.headers["Content-Security-Policy"] = (
        "default-src 'self'; "
        "img-src 'self' data: https:; "
        "connect-src 'self' https:; "
        "frame-ancestors 'none'; "
        "base-uri 'self'; "
        "form-action 'self'"
    )

    # HSTS (se em HTTPS)
    if settings.ENABLE_HTTPS_REDIRECT or request.url.scheme == "https":
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

    return response


# Identidade do usuário (precisa rodar antes do rate limit por usuário)
app.add_middleware(IdentidadeMiddleware)


def configurar_https(aplicacao: FastAPI) -> None:
    """Redireciona HTTP para HTTPS (307) quando ENABLE_HTTPS_REDIRECT está ligado"""
    if settings.ENABLE_HTTPS_REDIRECT:
        aplicacao.add_middleware(HTTPSRedirectMiddleware)


configurar_https(app)

# Routers
app.include_router(auth.router)
app.include_router(estabelecimentos.router)
app.include_router(clientes.router)
app.include_router(fornecedores.router)
app.include_router(itens_categorias.router)
app.include_router(itens.router)
app.include_router(cardapios.router)
app.include_router(pedidos.router)
app.include_router(abastecimentos.router)
app.include_router(entregas.router)
app.include_router(financeiro.router)
app.include_router(comunicacoes.router)
app.include_router(suportes.router)
app.include_router(relatorios.router)
app.include_router(admin.router)


async def limpeza_tentativas_worker():
    """Remove contadores antigos de login/cadastro uma vez por dia, com retry exponencial."""
    retry_count = 0
    max_retries = 5
    base_sleep = 60  # 1 minuto

    cleanup_logger.info("✅ Worker de limpeza de tentativas iniciado")

    while True:
        try:
            removed = limpar_tentativas()
            if removed:
                cleanup_logger.info(
                    "🧹 Limpeza executada com sucesso: %s tentativas removidas (retenção: %s dias)",
                    removed, settings.TENTATIVAS_RETENTION_DAYS
                )
            else:
                cleanup_logger.debug("Limpeza executada: nenhuma tentativa antiga encontrada")

            retry_count = 0

            # Aguarda 24 horas até próxima execução
            await asyncio.sleep(24 * 60 * 60)

        except asyncio.CancelledError:
            cleanup_logger.info("🛑 Worker de limpeza cancelado (shutdown)")
            raise

        except Exception as e:
            retry_count += 1
            sleep_time = min(base_sleep * (2 ** retry_count), 3600)  # Máximo 1 hora

            cleanup_logger.error(
                "❌ Erro na limpeza de tentativas (tentativa %s/%s): %s",
                retry_count, max_retries, str(e), exc_info=True
            )

            if retry_count >= max_retries:
                cleanup_logger.critical(
                    "🔥 FALHA CRÍTICA: Worker de limpeza falhou %s vezes consecutivas",
                    max_retries
                )

            cleanup_logger.info("⏳ Aguardando %s segundos antes de tentar novamente...", sleep_time)
            await asyncio.sleep(sleep_time)


@app.on_event("startup")
async def startup_event():
    """Inicializa tasks e recursos na inicialização"""
    logger.info("🚀 Iniciando aplicação...")

    from foodmax.database import SessionLocal
    try:
        db = SessionLocal()
        db.execute(text("SELECT 1"))
        db.close()
        logger.info("✅ Conexão com banco de dados OK")
    except Exception as e:
        logger.error("❌ Falha na conexão com banco de dados: %s", e)
        raise

    app.state.limpeza_task = asyncio.create_task(limpeza_tentativas_worker())
    app.state.startup_time = datetime.utcnow()

    logger.info("✅ Aplicação inicializada com sucesso")


@app.on_event("shutdown")
async def shutdown_event():
    """Graceful shutdown - finaliza tasks e libera recursos"""
    logger.info("🔴 Iniciando shutdown graceful...")

    task = getattr(app.state, "limpeza_task", None)
    if task:
        logger.info("🛑 Cancelando worker de limpeza...")
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("✅ Worker de limpeza finalizado")

    from foodmax.database import engine
    logger.info("🔌 Fechando pool de conexões do banco...")
    engine.dispose()

    logger.info("✅ Shutdown completo")


@app.get("/")
def root():
    return {
        "message": "FoodMax - API de Gestão Gastronômica",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/api/ping")
def ping():
    return {"message": "pong"}


@app.get("/health")
async def health_check():
    """Health check detalhado para monitoramento e load balancers"""
    from foodmax.database import SessionLocal, get_pool_status

    health_status = {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": "1.0.0",
        "checks": {}
    }

    try:
        db = SessionLocal()
        db.execute(text("SELECT 1"))
        db.close()
        health_status["checks"]["database"] = "ok"
    except Exception as e:
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = f"error: {str(e)}"

    try:
        pool_status = get_pool_status()
        health_status["checks"]["connection_pool"] = {
            "status": "ok" if pool_status["checked_out"] < pool_status["size"] + pool_status["max_overflow"] else "warning",
            **pool_status
        }
    except Exception as e:
        health_status["checks"]["connection_pool"] = f"error: {str(e)}"

    task = getattr(app.state, "limpeza_task", None)
    if task:
        health_status["checks"]["cleanup_worker"] = "ok" if not task.done() else "stopped"
    else:
        health_status["checks"]["cleanup_worker"] = "not_started"

    startup_time = getattr(app.state, "startup_time", None)
    if startup_time:
        health_status["uptime_seconds"] = (datetime.utcnow() - startup_time).total_seconds()

    status_code = 200 if health_status["status"] == "healthy" else 503

    return JSONResponse(content=health_status, status_code=status_code)
