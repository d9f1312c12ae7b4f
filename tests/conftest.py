"""Fixtures de teste.

Notas:
 - O banco é um SQLite temporário; as variáveis de ambiente precisam existir
   antes do primeiro import de foodmax (settings é carregado no import).
 - O schema é criado uma vez por sessão e as tabelas são esvaziadas depois
   de cada teste.
 - A identidade vem do cabeçalho x-user-id, como o front envia.
"""
import itertools
import os
import tempfile

import pytest

_tmpdir = tempfile.TemporaryDirectory()
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmpdir.name, 'test.db')}"
os.environ["SECRET_KEY"] = "teste-" + "x" * 58
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ENABLE_HTTPS_REDIRECT"] = "false"
os.environ["TRUST_USER_ID_HEADER"] = "true"
os.environ["RATE_LIMIT_DEFAULT"] = "10000/minute"
os.environ["RATE_LIMIT_LOGIN"] = "1000/minute"
os.environ["LOG_LEVEL"] = "WARNING"

from fastapi.testclient import TestClient  # noqa: E402

from foodmax.database import Base, SessionLocal, engine  # noqa: E402
from foodmax.main import app  # noqa: E402
from foodmax.models import RoleUsuario, Usuario  # noqa: E402
from foodmax.rate_limit import limiter  # noqa: E402
from foodmax.security import get_password_hash  # noqa: E402
from foodmax.services.transicoes import agora  # noqa: E402

SENHA_PADRAO = "Senha@123"


@pytest.fixture(scope="session", autouse=True)
def schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    _tmpdir.cleanup()


@pytest.fixture(autouse=True)
def limpar_banco():
    limiter.reset()
    yield
    with engine.begin() as conn:
        for tabela in reversed(Base.metadata.sorted_tables):
            conn.execute(tabela.delete())


@pytest.fixture
def client():
    # sem o context manager: o worker de limpeza não é iniciado nos testes
    return TestClient(app)


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


def _criar_usuario(email, role=RoleUsuario.USER, pago=False, ativo=True):
    session = SessionLocal()
    try:
        usuario = Usuario(
            email=email,
            senha_hash=get_password_hash(SENHA_PADRAO),
            role=role,
            ativo=ativo,
            onboarding=True,
            data_pagamento=agora() if pago else None,
        )
        session.add(usuario)
        session.commit()
        session.refresh(usuario)
        session.expunge(usuario)
        return usuario
    finally:
        session.close()


@pytest.fixture
def usuario_gratis():
    return _criar_usuario("gratis@foodmax.com")


@pytest.fixture
def usuario_pago():
    return _criar_usuario("pago@foodmax.com", pago=True)


@pytest.fixture
def outro_usuario():
    return _criar_usuario("outro@foodmax.com", pago=True)


@pytest.fixture
def admin():
    return _criar_usuario("admin@foodmax.com", role=RoleUsuario.ADMIN)


def _headers(usuario):
    return {"x-user-id": str(usuario.id)}


@pytest.fixture
def headers_gratis(usuario_gratis):
    return _headers(usuario_gratis)


@pytest.fixture
def headers(usuario_pago):
    return _headers(usuario_pago)


@pytest.fixture
def headers_outro(outro_usuario):
    return _headers(outro_usuario)


@pytest.fixture
def headers_admin(admin):
    return _headers(admin)


# ==================== FÁBRICAS ====================
@pytest.fixture
def criar_estabelecimento(client):
    def _criar(headers, **campos):
        payload = {"nome": "Restaurante Central", "email": "contato@central.com", **campos}
        resp = client.post("/api/estabelecimentos", json=payload, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _criar


@pytest.fixture
def criar_cliente(client):
    def _criar(headers, estabelecimento_id, **campos):
        payload = {"estabelecimento_id": estabelecimento_id, "nome": "Maria Souza", **campos}
        resp = client.post("/api/clientes", json=payload, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _criar


@pytest.fixture
def criar_fornecedor(client):
    def _criar(headers, **campos):
        payload = {"nome": "Distribuidora Sul", "email": "vendas@sul.com", **campos}
        resp = client.post("/api/fornecedores", json=payload, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _criar


@pytest.fixture
def criar_categoria(client):
    def _criar(headers, **campos):
        payload = {"nome": "Carnes Nobres", **campos}
        resp = client.post("/api/itens-categorias", json=payload, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _criar


@pytest.fixture
def criar_item(client, criar_categoria):
    sequencia = itertools.count(1)

    def _criar(headers, categoria_id=None, **campos):
        if categoria_id is None:
            categoria_id = criar_categoria(headers, nome=f"Categoria {next(sequencia)}")["id"]
        payload = {
            "categoria_id": categoria_id,
            "nome": "Picanha",
            "preco_centavos": 5000,
            "estoque_atual": 10,
            **campos,
        }
        resp = client.post("/api/itens", json=payload, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _criar


@pytest.fixture
def criar_cardapio(client):
    def _criar(headers, itens, **campos):
        payload = {"nome": "Executivo", "tipo_cardapio": "Almoço", "preco_total": 3500, "itens": itens, **campos}
        resp = client.post("/api/cardapios", json=payload, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _criar


@pytest.fixture
def criar_pedido(client):
    def _criar(headers, estabelecimento_id, **campos):
        payload = {"estabelecimento_id": estabelecimento_id, "tipo_pedido": "Atendente", **campos}
        resp = client.post("/api/pedidos", json=payload, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _criar


ENDERECO = {"cep": "90000-000", "endereco": "Rua das Flores, 100", "cidade": "Porto Alegre", "uf": "rs"}


@pytest.fixture
def endereco():
    return dict(ENDERECO)
