import pytest


@pytest.fixture
def estabelecimento(headers, criar_estabelecimento):
    return criar_estabelecimento(headers)


@pytest.fixture
def criar_comunicacao(client, estabelecimento):
    def _criar(headers, **campos):
        payload = {
            "estabelecimento_id": estabelecimento["id"],
            "tipo_comunicacao": "Promoção",
            "assunto": "Rodízio em dobro",
            "mensagem": "Só nesta sexta!",
            **campos,
        }
        resp = client.post("/api/comunicacoes", json=payload, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _criar


def test_enviar_promocao_para_clientes_que_aceitam(
    client, headers, estabelecimento, criar_estabelecimento, criar_cliente, criar_comunicacao
):
    criar_cliente(headers, estabelecimento["id"], nome="Ana", email="ana@x.com", aceita_promocao_email=True)
    criar_cliente(headers, estabelecimento["id"], nome="Bruno", email="bruno@x.com", aceita_promocao_email=False)
    criar_cliente(
        headers, estabelecimento["id"], nome="Carla", email="carla@x.com", aceita_promocao_email=True, ativo=False
    )
    filial = criar_estabelecimento(headers, nome="Filial", email="filial@x.com")
    criar_cliente(headers, filial["id"], nome="Davi", email="davi@x.com", aceita_promocao_email=True)

    comunicacao = criar_comunicacao(headers)
    resp = client.post(f"/api/comunicacoes/{comunicacao['id']}/send", headers=headers)
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["recipients"] == ["ana@x.com"]
    assert body["sentCount"] == 1
    assert body["comunicacao"]["status"] == "Enviado"
    assert body["comunicacao"]["email_enviado"] is True
    assert body["comunicacao"]["data_hora_enviado"] is not None


def test_enviar_para_emails_digitados(client, headers, criar_comunicacao):
    comunicacao = criar_comunicacao(
        headers,
        tipo_comunicacao="Outro",
        destinatarios_tipo="Outros",
        destinatarios_text="a@x.com; b@x.com,invalido  c@x.com",
    )
    resp = client.post(f"/api/comunicacoes/{comunicacao['id']}/send", headers=headers)
    assert resp.json()["recipients"] == ["a@x.com", "b@x.com", "c@x.com"]


def test_enviar_para_fornecedores(client, headers, criar_fornecedor, criar_comunicacao):
    escolhido = criar_fornecedor(headers, nome="Escolhido", email="escolhido@x.com")
    criar_fornecedor(headers, nome="Outro", email="outro@x.com")
    comunicacao = criar_comunicacao(
        headers,
        tipo_comunicacao="Fornecedor",
        destinatarios_tipo="FornecedoresEspecificos",
        fornecedores_ids=[escolhido["id"]],
    )
    resp = client.post(f"/api/comunicacoes/{comunicacao['id']}/send", headers=headers)
    assert resp.json()["recipients"] == ["escolhido@x.com"]


def test_reenviar_nao_permitido(client, headers, criar_comunicacao):
    comunicacao = criar_comunicacao(headers)
    client.post(f"/api/comunicacoes/{comunicacao['id']}/send", headers=headers)
    resp = client.post(f"/api/comunicacoes/{comunicacao['id']}/send", headers=headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Apenas registros pendentes podem ser enviados"


def test_envio_exige_plano_pago(client, headers_gratis, criar_estabelecimento):
    estabelecimento = criar_estabelecimento(headers_gratis)
    resp = client.post(
        "/api/comunicacoes",
        json={
            "estabelecimento_id": estabelecimento["id"],
            "tipo_comunicacao": "Outro",
            "assunto": "Aviso",
            "mensagem": "Fechado amanhã",
        },
        headers=headers_gratis,
    )
    assert resp.status_code == 201, resp.text
    resp = client.post(f"/api/comunicacoes/{resp.json()['id']}/send", headers=headers_gratis)
    assert resp.status_code == 403


def test_envio_em_lote(client, headers, criar_comunicacao):
    pendente = criar_comunicacao(headers, tipo_comunicacao="Outro", destinatarios_text="a@x.com")
    cancelada = criar_comunicacao(headers, status="Cancelado")

    resp = client.post(
        "/api/comunicacoes/send-bulk", json={"ids": [pendente["id"], cancelada["id"], 999999]}, headers=headers
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["sent"] == [pendente["id"]]
    assert body["processed"] == 1
    assert body["total"] == 3
    assert body["totalEmails"] == 1
    assert body["failed"] == [
        {"id": cancelada["id"], "error": "Apenas registros pendentes podem ser enviados"},
        {"id": 999999, "error": "Comunicação não encontrada"},
    ]


def test_envio_em_lote_limite(client, headers):
    resp = client.post("/api/comunicacoes/send-bulk", json={"ids": list(range(1, 52))}, headers=headers)
    assert resp.status_code == 400


def test_filtro_estabelecimento_todos(client, headers, criar_comunicacao):
    criar_comunicacao(headers)
    assert client.get("/api/comunicacoes?estabelecimento_id=todos", headers=headers).json()["pagination"]["total"] == 1

    resp = client.get("/api/comunicacoes?estabelecimento_id=abc", headers=headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Estabelecimento inválido"


def test_transicao_de_status(client, headers, criar_comunicacao):
    comunicacao = criar_comunicacao(headers)
    resp = client.put(f"/api/comunicacoes/{comunicacao['id']}", json={"status": "Enviado"}, headers=headers)
    assert resp.json()["email_enviado"] is True

    resp = client.put(f"/api/comunicacoes/{comunicacao['id']}", json={"status": "Pendente"}, headers=headers)
    assert resp.status_code == 409


def test_cancelada_nao_pode_ser_enviada(client, headers, criar_comunicacao):
    comunicacao = criar_comunicacao(headers)
    resp = client.put(f"/api/comunicacoes/{comunicacao['id']}", json={"status": "Cancelado"}, headers=headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "Cancelado"

    resp = client.put(f"/api/comunicacoes/{comunicacao['id']}", json={"status": "Enviado"}, headers=headers)
    assert resp.status_code == 409
    assert resp.json()["error"] == "Transição de status inválida: Cancelado → Enviado"

    resp = client.put(f"/api/comunicacoes/{comunicacao['id']}", json={"status": "Pendente"}, headers=headers)
    assert resp.json()["error"] == "Transição de status inválida: Cancelado → Pendente"

    resp = client.post(f"/api/comunicacoes/{comunicacao['id']}/send", headers=headers)
    assert resp.status_code == 400

    atual = client.get(f"/api/comunicacoes/{comunicacao['id']}", headers=headers).json()
    assert atual["status"] == "Cancelado"
    assert atual["email_enviado"] is False


def test_enviada_nao_pode_ser_cancelada(client, headers, criar_comunicacao):
    comunicacao = criar_comunicacao(headers)
    client.post(f"/api/comunicacoes/{comunicacao['id']}/send", headers=headers)
    resp = client.put(f"/api/comunicacoes/{comunicacao['id']}", json={"status": "Cancelado"}, headers=headers)
    assert resp.status_code == 409
    assert resp.json()["error"] == "Transição de status inválida: Enviado → Cancelado"


def test_cliente_de_outro_usuario(client, headers, headers_outro, estabelecimento, criar_cliente, criar_estabelecimento):
    alheio = criar_estabelecimento(headers_outro, nome="Alheio", email="alheio@x.com")
    cliente = criar_cliente(headers_outro, alheio["id"])
    resp = client.post(
        "/api/comunicacoes",
        json={
            "estabelecimento_id": estabelecimento["id"],
            "tipo_comunicacao": "Promoção",
            "assunto": "X",
            "mensagem": "Y",
            "destinatarios_tipo": "ClientesEspecificos",
            "clientes_ids": [cliente["id"]],
        },
        headers=headers,
    )
    assert resp.status_code == 403
    assert resp.json()["error"] == "Cliente inválido"


def test_exportar(client, headers, criar_comunicacao):
    criar_comunicacao(headers)
    resp = client.get("/api/comunicacoes/export", headers=headers)
    linhas = resp.content.decode("utf-8-sig").splitlines()
    assert linhas[1].startswith("Restaurante Central;Promoção;Rodízio em dobro;Só nesta sexta!;TodosClientes;;Pendente;Não;")
