import pytest


@pytest.fixture
def estabelecimento(headers, criar_estabelecimento):
    return criar_estabelecimento(headers)


@pytest.fixture
def criar_entrega(client, estabelecimento, endereco):
    def _criar(headers, **campos):
        payload = {"estabelecimento_id": estabelecimento["id"], "endereco": endereco, **campos}
        resp = client.post("/api/entregas", json=payload, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _criar


def test_entrega_propria_com_pedido(headers, estabelecimento, criar_pedido, criar_entrega):
    pedido = criar_pedido(headers, estabelecimento["id"], valor_total=3000)
    entrega = criar_entrega(headers, pedido_id=pedido["id"], valor_pedido=3000, taxa_extra=500, valor_entrega=3500)
    assert entrega["tipo_entrega"] == "Própria"
    assert entrega["pedido_codigo"] == pedido["codigo"]
    assert entrega["pedido_valor_total"] == 3000
    assert entrega["status"] == "Pendente"
    assert entrega["endereco"]["cidade"] == "Porto Alegre"


def test_propria_nao_aceita_codigo_de_app(client, headers, estabelecimento, endereco):
    resp = client.post(
        "/api/entregas",
        json={"estabelecimento_id": estabelecimento["id"], "codigo_pedido_app": "IF-123", "endereco": endereco},
        headers=headers,
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Código do pedido no app só é permitido em entregas de aplicativo"


def test_aplicativo_nao_aceita_pedido(client, headers, estabelecimento, criar_pedido, endereco):
    pedido = criar_pedido(headers, estabelecimento["id"])
    resp = client.post(
        "/api/entregas",
        json={
            "estabelecimento_id": estabelecimento["id"],
            "tipo_entrega": "iFood",
            "pedido_id": pedido["id"],
            "endereco": endereco,
        },
        headers=headers,
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Pedido só pode ser vinculado a entregas do tipo Própria"


def test_endereco_obrigatorio(client, headers, estabelecimento):
    resp = client.post("/api/entregas", json={"estabelecimento_id": estabelecimento["id"]}, headers=headers)
    assert resp.status_code == 400


def test_trocar_tipo_limpa_referencia(client, headers, estabelecimento, criar_pedido, criar_entrega):
    pedido = criar_pedido(headers, estabelecimento["id"])
    entrega = criar_entrega(headers, pedido_id=pedido["id"])

    resp = client.put(
        f"/api/entregas/{entrega['id']}",
        json={"tipo_entrega": "Rappi", "codigo_pedido_app": "RP-9988"},
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["pedido_id"] is None
    assert resp.json()["codigo_pedido_app"] == "RP-9988"

    resp = client.put(f"/api/entregas/{entrega['id']}", json={"tipo_entrega": "Própria"}, headers=headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["codigo_pedido_app"] is None


def test_saida_e_entrega(client, headers, criar_entrega):
    entrega = criar_entrega(headers)

    resp = client.patch(f"/api/entregas/{entrega['id']}/saida", headers=headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "Saiu"
    assert resp.json()["data_hora_saida"] is not None

    resp = client.patch(f"/api/entregas/{entrega['id']}/entregue", headers=headers)
    assert resp.json()["status"] == "Entregue"
    assert resp.json()["data_hora_entregue"] is not None

    resp = client.patch(f"/api/entregas/{entrega['id']}/saida", headers=headers)
    assert resp.status_code == 409
    assert resp.json()["error"] == "Transição de status inválida: Entregue → Saiu"


def test_filtrar_por_status(client, headers, criar_entrega):
    criar_entrega(headers)
    criar_entrega(headers, status="Cancelado")
    resp = client.get("/api/entregas?status=Pendente", headers=headers)
    assert resp.json()["pagination"]["total"] == 1


def test_exportar_valores_em_reais(client, headers, criar_entrega):
    criar_entrega(headers, tipo_entrega="iFood", codigo_pedido_app="IF-1", valor_pedido=2500, taxa_extra=300)
    resp = client.get("/api/entregas/export", headers=headers)
    linhas = resp.content.decode("utf-8-sig").splitlines()
    assert linhas[1].startswith("Restaurante Central;iFood;;IF-1;25,00;3,00;0,00;PIX;")


def test_importar(client, headers, estabelecimento, criar_pedido):
    pedido = criar_pedido(headers, estabelecimento["id"], codigo="LOJA-0001")
    endereco = {"CEP": "90000-000", "Endereço": "Rua B, 2", "Cidade": "Porto Alegre", "UF": "RS"}
    resp = client.post(
        "/api/entregas/import",
        json={"records": [
            {"Estabelecimento": "Restaurante Central", "Tipo de Entrega": "Própria",
             "Código do Pedido": "LOJA-0001", "Valor do Pedido": "30,00", "Taxa Extra": "5,00", **endereco},
            {"Estabelecimento": "Restaurante Central", "Tipo de Entrega": "UberEats",
             "Código do Pedido": "UE-77", "Valor do Pedido": "10,00", "Valor da Entrega": "12,00", **endereco},
            {"Estabelecimento": "Restaurante Central", "Tipo de Entrega": "Própria",
             "Código do Pedido": "NAO-EXISTE", **endereco},
        ]},
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["imported"] == 2
    assert body["errors"] == ["Linha 3: Pedido não encontrado: NAO-EXISTE"]

    entregas = {e["tipo_entrega"]: e for e in client.get("/api/entregas", headers=headers).json()["data"]}
    assert entregas["Própria"]["pedido_id"] == pedido["id"]
    assert entregas["Própria"]["valor_entrega"] == 3500
    assert entregas["UberEats"]["codigo_pedido_app"] == "UE-77"
    assert entregas["UberEats"]["valor_entrega"] == 1200
