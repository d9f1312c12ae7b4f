def test_ping(client):
    resp = client.get("/api/ping")
    assert resp.status_code == 200
    assert resp.json() == {"message": "pong"}


def test_raiz_informa_versao(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json()["version"] == "1.0.0"


def test_health_com_banco_ok(client):
    resp = client.get("/health")
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["status"] == "healthy"
    assert body["checks"]["database"] == "ok"
    assert body["checks"]["cleanup_worker"] == "not_started"


def test_headers_de_seguranca(client):
    resp = client.get("/api/ping")
    assert resp.headers["X-Frame-Options"] == "DENY"
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert "Content-Security-Policy" in resp.headers


def test_rota_inexistente_usa_envelope_de_erro(client):
    resp = client.get("/api/nao-existe")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Not Found"}


def test_validacao_retorna_400_com_detalhes(client, headers):
    resp = client.post("/api/estabelecimentos", json={"nome": ""}, headers=headers)
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "Dados inválidos"
    campos = {tuple(d["loc"]) for d in body["details"]}
    assert ("body", "email") in campos
    assert ("body", "nome") in campos


def test_sem_identidade_retorna_401(client):
    resp = client.get("/api/estabelecimentos")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Usuário não autenticado"}


def test_usuario_inexistente_retorna_401(client):
    resp = client.get("/api/estabelecimentos", headers={"x-user-id": "987654"})
    assert resp.status_code == 401
    assert resp.json()["error"] == "Usuário não encontrado"


def test_usuario_inativo_retorna_401(client, db, usuario_pago, headers):
    from foodmax.models import Usuario

    usuario = db.get(Usuario, usuario_pago.id)
    usuario.ativo = False
    db.commit()

    resp = client.get("/api/estabelecimentos", headers=headers)
    assert resp.status_code == 401
    assert resp.json()["error"] == "Usuário inativo"


def test_redirecionamento_https(monkeypatch):
    from fastapi import FastAPI
    from fastapi.testclient import TestClient

    from foodmax.config import settings
    from foodmax.main import configurar_https

    monkeypatch.setattr(settings, "ENABLE_HTTPS_REDIRECT", True)
    aplicacao = FastAPI()
    aplicacao.get("/api/ping")(lambda: {"message": "pong"})
    configurar_https(aplicacao)

    resp = TestClient(aplicacao).get("/api/ping", follow_redirects=False)
    assert resp.status_code == 307
    assert resp.headers["location"] == "https://testserver/api/ping"


def test_sem_redirecionamento_com_flag_desligada(client):
    resp = client.get("/api/ping", follow_redirects=False)
    assert resp.status_code == 200
    assert "Strict-Transport-Security" not in resp.headers
