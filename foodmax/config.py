from pydantic_settings import BaseSettings
from typing import List
import logging

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # ==================== BANCO DE DADOS ====================
    DATABASE_URL: str

    # ==================== SEGURANÇA - OBRIGATÓRIAS ====================
    # SECRET_KEY é obrigatória e não pode ser a padrão
    SECRET_KEY: str
    ALGORITHM: str = "HS256"

    # ==================== AUTENTICAÇÃO ====================
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    BCRYPT_ROUNDS: int = 12
    # Aceita o cabeçalho x-user-id sem token (compatibilidade com o frontend)
    TRUST_USER_ID_HEADER: bool = True

    # ==================== CORS ====================
    ALLOWED_ORIGINS: str = "http://localhost:8080,http://localhost:5173"

    # ==================== RATE LIMITING ====================
    RATE_LIMIT_LOGIN: str = "20/minute"
    RATE_LIMIT_DEFAULT: str = "200/minute"
    LOGIN_MAX_TENTATIVAS_DIA: int = 5
    REGISTRO_MAX_CONTAS_DIA: int = 3

    # ==================== LOGGING ====================
    LOG_LEVEL: str = "INFO"

    # ==================== DADOS ADICIONAIS ====================
    ENABLE_HTTPS_REDIRECT: bool = True
    TENTATIVAS_RETENTION_DAYS: int = 30
    IMPORT_MAX_REGISTROS: int = 1000
    COMUNICACOES_BULK_MAX: int = 50

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def allowed_origins_list(self) -> List[str]:
        """Converte string de origens para lista"""
        if isinstance(self.ALLOWED_ORIGINS, str):
            return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]
        return self.ALLOWED_ORIGINS

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    def validate_settings(self):
        """Valida configurações críticas de segurança"""
        errors = []

        # 1. Verificar se SECRET_KEY está presente
        if not self.SECRET_KEY:
            errors.append("❌ SECRET_KEY não está definida")

        # 2. Verificar se SECRET_KEY é a padrão (segurança)
        default_keys = [
            "sua-chave-secreta-super-segura-aqui",
            "change-me",
            "secret",
            "key",
        ]

        if any(self.SECRET_KEY.lower() == key.lower() for key in default_keys):
            errors.append("❌ SECRET_KEY está usando valor padrão! Gere uma nova com: python -c \"import secrets; print(secrets.token_urlsafe(64))\"")

        # 3. Verificar se DATABASE_URL é suportada
        if not self.DATABASE_URL or not (
            self.DATABASE_URL.startswith("postgresql") or self.is_sqlite
        ):
            errors.append("❌ DATABASE_URL inválida ou não definida")

        # 4. Verificar comprimento da SECRET_KEY
        if len(self.SECRET_KEY) < 32:
            logger.warning("⚠️  SECRET_KEY muito curta (recomendado: 64+ caracteres)")

        if self.is_sqlite:
            logger.warning("⚠️  DATABASE_URL usa SQLite - apenas para desenvolvimento e testes")

        if self.TRUST_USER_ID_HEADER:
            logger.warning("⚠️  TRUST_USER_ID_HEADER=true - cabeçalho x-user-id aceito sem token")

        if errors:
            for error in errors:
                logger.error(error)
            raise ValueError("\n".join(errors))

        logger.info("✅ Configurações validadas com sucesso")


def load_settings() -> Settings:
    """Carrega (ambiente ou .env) e valida as configurações"""
    settings = Settings()
    settings.validate_settings()
    return settings


# Instância global
try:
    settings = load_settings()
except ValueError as e:
    logger.error(str(e))
    raise
