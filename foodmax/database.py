from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from foodmax.config import settings
import logging

logger = logging.getLogger(__name__)


def _engine_options() -> dict:
    if settings.is_sqlite:
        # Sessões atravessam threads do threadpool do FastAPI
        return {"connect_args": {"check_same_thread": False}}
    # Configuração robusta de pool para SaaS de alta demanda
    return {
        "pool_size": 20,              # Número base de conexões no pool
        "max_overflow": 40,           # Conexões extras permitidas em picos
        "pool_pre_ping": True,        # Verifica conexões antes de usar (evita conexões mortas)
        "pool_recycle": 3600,         # Recicla conexões a cada hora (evita timeout do PG)
        "connect_args": {
            "connect_timeout": 10,                     # Timeout de conexão: 10s
            "options": "-c statement_timeout=30000",   # Timeout de query: 30s
        },
    }


engine = create_engine(settings.DATABASE_URL, echo_pool=False, **_engine_options())

if settings.is_sqlite:
    # pysqlite só emite BEGIN sozinho antes de DML; sem isso SAVEPOINT não isola nada
    @event.listens_for(engine, "connect")
    def _sqlite_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    @event.listens_for(engine, "begin")
    def _sqlite_begin(conn):
        conn.exec_driver_sql("BEGIN")

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Dependency para injeção de sessão DB - usa automaticamente o pool configurado"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_pool_status():
    """Retorna status do pool de conexões para monitoramento"""
    pool = engine.pool
    if not hasattr(pool, "checkedout"):
        return {"size": 0, "checked_in": 0, "checked_out": 0, "overflow": 0, "max_overflow": 0}
    return {
        "size": pool.size(),
        "checked_in": pool.checkedin(),
        "checked_out": pool.checkedout(),
        "overflow": pool.overflow(),
        "max_overflow": getattr(pool, "_max_overflow", 0),
    }
