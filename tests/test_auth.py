SENHA = "Senha@123"


def _registrar(client, email, senha=SENHA, confirmacao=None):
    return client.post(
        "/api/auth/register",
        json={"email": email, "password": senha, "confirmPassword": confirmacao or senha},
    )


def _login(client, email, senha=SENHA):
    return client.post("/api/auth/login", json={"email": email, "password": senha})


def test_registrar_e_logar(client):
    resp = _registrar(client, "Novo@FoodMax.com")
    assert resp.status_code == 201, resp.text
    usuario = resp.json()["user"]
    assert usuario["email"] == "novo@foodmax.com"
    assert usuario["role"] == "user"
    assert usuario["onboarding"] is False
    assert usuario["hasPayment"] is False

    resp = _login(client, "novo@foodmax.com")
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["success"] is True
    assert body["needsOnboarding"] is True
    assert body["token_type"] == "bearer"

    resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert resp.status_code == 200, resp.text
    assert resp.json()["email"] == "novo@foodmax.com"


def test_registro_exige_senha_forte(client):
    resp = _registrar(client, "fraca@foodmax.com", senha="abcdefgh")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Dados inválidos"


def test_registro_exige_confirmacao_igual(client):
    resp = _registrar(client, "conf@foodmax.com", confirmacao="Outra@123")
    assert resp.status_code == 400


def test_registro_email_duplicado(client, usuario_pago):
    resp = _registrar(client, "PAGO@foodmax.com")
    assert resp.status_code == 409
    assert resp.json()["error"] == "Email já cadastrado"


def test_registro_limitado_por_ip_no_dia(client):
    for i in range(3):
        assert _registrar(client, f"conta{i}@foodmax.com").status_code == 201

    resp = _registrar(client, "conta3@foodmax.com")
    assert resp.status_code == 429
    assert "contas por dia" in resp.json()["error"]


def test_login_senha_incorreta(client, usuario_pago):
    resp = _login(client, "pago@foodmax.com", "Errada@123")
    assert resp.status_code == 401
    assert resp.json()["error"] == "Email ou senha incorretos"


def test_login_bloqueado_apos_limite_diario(client, usuario_pago):
    for _ in range(5):
        assert _login(client, "pago@foodmax.com", "Errada@123").status_code == 401

    resp = _login(client, "pago@foodmax.com")
    assert resp.status_code == 429
    assert "troque sua senha" in resp.json()["error"]


def test_login_sucesso_zera_tentativas(client, db, usuario_pago):
    from foodmax.models import LoginAttempt

    for _ in range(2):
        _login(client, "pago@foodmax.com", "Errada@123")
    assert _login(client, "pago@foodmax.com").status_code == 200

    assert db.query(LoginAttempt).count() == 0


def test_login_registra_auditoria(client, db, usuario_pago):
    from foodmax.models import AuditLog

    _login(client, "pago@foodmax.com")
    acoes = [a.action for a in db.query(AuditLog).all()]
    assert "LOGIN_SUCCESS" in acoes


def test_token_invalido(client):
    resp = client.get("/api/auth/me", headers={"Authorization": "Bearer nao-e-um-token"})
    assert resp.status_code == 401
    assert resp.json()["error"] == "Token inválido ou expirado"


def test_onboarding_plano_pago(client, db):
    resp = _registrar(client, "onb@foodmax.com")
    user_id = resp.json()["user"]["id"]
    headers = {"x-user-id": str(user_id)}

    resp = client.post(
        "/api/auth/onboarding",
        json={"nome": "Ana Lima", "ddi": "55", "telefone": "(51) 98888-7777", "selectedPlan": "paid"},
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    usuario = resp.json()["user"]
    assert usuario["onboarding"] is True
    assert usuario["hasPayment"] is True

    me = client.get("/api/auth/me", headers=headers).json()
    assert me["nome"] == "Ana Lima"
    assert me["ddi"] == "+55"
    assert me["telefone"] == "51988887777"


def test_onboarding_plano_gratuito_nao_marca_pagamento(client):
    resp = _registrar(client, "free@foodmax.com")
    headers = {"x-user-id": str(resp.json()["user"]["id"])}

    resp = client.post(
        "/api/auth/onboarding",
        json={"nome": "Bia", "telefone": "51999990000", "selectedPlan": "free"},
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["user"]["hasPayment"] is False


def test_esqueci_senha_nao_revela_cadastro(client, usuario_pago):
    existente = client.post("/api/auth/forgot-password", json={"email": "pago@foodmax.com"})
    inexistente = client.post("/api/auth/forgot-password", json={"email": "ninguem@foodmax.com"})
    assert existente.status_code == inexistente.status_code == 200
    assert existente.json() == inexistente.json()
