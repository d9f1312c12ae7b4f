import re

import pytest


@pytest.fixture
def cenario(headers, criar_estabelecimento, criar_fornecedor, criar_item):
    estabelecimento = criar_estabelecimento(headers)
    fornecedores = [
        criar_fornecedor(headers, nome="Distribuidora Sul", email="vendas@sul.com"),
        criar_fornecedor(headers, nome="Atacado Norte", email="pedidos@norte.com"),
    ]
    item = criar_item(headers, nome="Arroz")
    return estabelecimento, fornecedores, item


@pytest.fixture
def criar_abastecimento(client, cenario, endereco):
    def _criar(headers, **campos):
        estabelecimento, fornecedores, item = cenario
        payload = {
            "estabelecimento_id": estabelecimento["id"],
            "fornecedores_ids": [f["id"] for f in fornecedores],
            "categoria_id": item["categoria_id"],
            "itens": [{"item_id": item["id"], "quantidade": 4}],
            "endereco": endereco,
            **campos,
        }
        resp = client.post("/api/abastecimentos", json=payload, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _criar


def test_criar_com_codigo_e_fornecedores(headers, criar_abastecimento):
    abastecimento = criar_abastecimento(headers)
    assert re.fullmatch(r"[A-Z0-9]{8}", abastecimento["codigo"])
    assert abastecimento["status"] == "Pendente"
    assert abastecimento["quantidade_total"] == 4
    assert abastecimento["fornecedores_nomes"] == ["Distribuidora Sul", "Atacado Norte"]
    assert abastecimento["itens"][0]["item_nome"] == "Arroz"
    assert abastecimento["endereco"]["uf"] == "RS"


def test_fornecedores_obrigatorios(client, headers, cenario, endereco):
    estabelecimento, _, item = cenario
    resp = client.post(
        "/api/abastecimentos",
        json={
            "estabelecimento_id": estabelecimento["id"],
            "fornecedores_ids": [],
            "categoria_id": item["categoria_id"],
            "itens": [{"item_id": item["id"], "quantidade": 1}],
            "endereco": endereco,
        },
        headers=headers,
    )
    assert resp.status_code == 400


def test_fornecedor_de_outro_usuario(client, headers, headers_outro, cenario, criar_fornecedor, endereco):
    estabelecimento, _, item = cenario
    alheio = criar_fornecedor(headers_outro, nome="Alheio", email="a@b.com")
    resp = client.post(
        "/api/abastecimentos",
        json={
            "estabelecimento_id": estabelecimento["id"],
            "fornecedores_ids": [alheio["id"]],
            "categoria_id": item["categoria_id"],
            "itens": [{"item_id": item["id"], "quantidade": 1}],
            "endereco": endereco,
        },
        headers=headers,
    )
    assert resp.status_code == 403
    assert resp.json()["error"] == "Fornecedor inválido"


def test_marcar_recebido(client, headers, criar_abastecimento):
    abastecimento = criar_abastecimento(headers)
    resp = client.patch(f"/api/abastecimentos/{abastecimento['id']}/recebido", headers=headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "Recebido"
    assert resp.json()["data_hora_recebido"] is not None

    resp = client.put(f"/api/abastecimentos/{abastecimento['id']}", json={"status": "Pendente"}, headers=headers)
    assert resp.status_code == 409


def test_cancelado_nao_pode_ser_recebido(client, headers, criar_abastecimento):
    abastecimento = criar_abastecimento(headers)
    resp = client.put(f"/api/abastecimentos/{abastecimento['id']}", json={"status": "Cancelado"}, headers=headers)
    assert resp.status_code == 200, resp.text

    resp = client.patch(f"/api/abastecimentos/{abastecimento['id']}/recebido", headers=headers)
    assert resp.status_code == 409
    assert resp.json()["error"] == "Transição de status inválida: Cancelado → Recebido"

    resp = client.put(f"/api/abastecimentos/{abastecimento['id']}", json={"status": "Enviado"}, headers=headers)
    assert resp.status_code == 409
    assert resp.json()["error"] == "Transição de status inválida: Cancelado → Enviado"

    atual = client.get(f"/api/abastecimentos/{abastecimento['id']}", headers=headers).json()
    assert atual["status"] == "Cancelado"
    assert atual["data_hora_recebido"] is None


def test_recebido_nao_pode_ser_cancelado(client, headers, criar_abastecimento):
    abastecimento = criar_abastecimento(headers, status="Enviado")
    assert client.patch(f"/api/abastecimentos/{abastecimento['id']}/recebido", headers=headers).status_code == 200

    resp = client.put(f"/api/abastecimentos/{abastecimento['id']}", json={"status": "Cancelado"}, headers=headers)
    assert resp.status_code == 409
    assert resp.json()["error"] == "Transição de status inválida: Recebido → Cancelado"


def test_atualizar_itens_recalcula_total(client, headers, criar_abastecimento, criar_item):
    abastecimento = criar_abastecimento(headers)
    feijao = criar_item(headers, nome="Feijão")
    resp = client.put(
        f"/api/abastecimentos/{abastecimento['id']}",
        json={"itens": [
            {"item_id": abastecimento["itens"][0]["item_id"], "quantidade": 1},
            {"item_id": feijao["id"], "quantidade": 6},
        ]},
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["quantidade_total"] == 7
    assert resp.json()["qtde_itens"] == 2


def test_enviar_email_exige_plano_pago(client, headers_gratis, usuario_gratis):
    resp = client.post("/api/abastecimentos/1/enviar-email", headers=headers_gratis)
    assert resp.status_code == 403
    assert resp.json()["error"] == "Essa ação só funciona no plano pago"


def test_enviar_email(client, headers, criar_abastecimento):
    abastecimento = criar_abastecimento(headers)
    resp = client.post(f"/api/abastecimentos/{abastecimento['id']}/enviar-email", headers=headers)
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "Email enviado com sucesso"
    assert sorted(body["destinatarios"]) == ["pedidos@norte.com", "vendas@sul.com"]

    atual = client.get(f"/api/abastecimentos/{abastecimento['id']}", headers=headers).json()
    assert atual["status"] == "Enviado"
    assert atual["email_enviado"] is True

    resp = client.put(
        f"/api/abastecimentos/{abastecimento['id']}", json={"email_enviado": False}, headers=headers
    )
    assert resp.status_code == 409
    assert resp.json()["error"] == "Envio de email já registrado não pode ser desfeito"


def test_outro_usuario_nao_ve(client, headers, headers_outro, criar_abastecimento):
    abastecimento = criar_abastecimento(headers)
    assert client.get(f"/api/abastecimentos/{abastecimento['id']}", headers=headers_outro).status_code == 404
    assert client.get("/api/abastecimentos", headers=headers_outro).json()["data"] == []


def test_excluir_em_lote(client, headers, criar_abastecimento):
    ids = [criar_abastecimento(headers)["id"] for _ in range(2)]
    resp = client.post("/api/abastecimentos/bulk-delete", json={"ids": ids}, headers=headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["deletedCount"] == 2


def test_exportar(client, headers, criar_abastecimento):
    abastecimento = criar_abastecimento(headers)
    resp = client.get("/api/abastecimentos/export", headers=headers)
    linhas = resp.content.decode("utf-8-sig").splitlines()
    assert linhas[0].startswith("Código;Estabelecimento;Fornecedores;Categoria")
    assert linhas[1].startswith(f"{abastecimento['codigo']};Restaurante Central;Distribuidora Sul, Atacado Norte;")


def test_importar_por_codigo(client, headers, cenario):
    base = {
        "Código": "REPOS001",
        "Estabelecimento": "Restaurante Central",
        "Fornecedores": "Distribuidora Sul; Atacado Norte",
        "Categoria": "Grãos",
        "CEP": "90000-000",
        "Endereço": "Rua A, 1",
        "Cidade": "Porto Alegre",
        "UF": "RS",
    }
    resp = client.post(
        "/api/abastecimentos/import",
        json={"records": [
            {**base, "Item": "Arroz", "Quantidade do Item": "3"},
            {**base, "Item": "Lentilha", "Quantidade do Item": "2"},
            {**base, "Código": "REPOS002", "Fornecedores": "Inexistente", "Item": "Arroz"},
        ]},
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["imported"] == 1
    assert body["errors"] == ["Linha 3: Fornecedor não encontrado: Inexistente"]

    importado = client.get("/api/abastecimentos?search=REPOS001", headers=headers).json()["data"][0]
    assert importado["quantidade_total"] == 5
    assert importado["categoria_nome"] == "Grãos"
    assert len(importado["fornecedores_ids"]) == 2
