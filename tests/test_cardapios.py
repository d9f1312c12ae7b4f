import pytest


@pytest.fixture
def itens(headers, criar_item):
    return [
        criar_item(headers, nome="Arroz", preco_centavos=500),
        criar_item(headers, nome="Feijão", preco_centavos=400),
        criar_item(headers, nome="Farofa", preco_centavos=300),
    ]


def test_criar_calcula_totais(headers, itens, criar_cardapio):
    arroz, feijao, _ = itens
    cardapio = criar_cardapio(headers, [
        {"item_id": arroz["id"], "quantidade": 2, "valor_unitario_centavos": 500},
        {"item_id": feijao["id"], "quantidade": 1, "valor_unitario_centavos": 400},
    ], margem_lucro_percentual=30)

    assert cardapio["quantidade_total"] == 3
    assert cardapio["preco_itens_centavos"] == 1400
    assert cardapio["qtde_itens"] == 2
    assert cardapio["margem_lucro_percentual"] == 30
    assert {i["item_nome"] for i in cardapio["itens"]} == {"Arroz", "Feijão"}


def test_item_de_outro_usuario(client, headers_outro, itens):
    resp = client.post(
        "/api/cardapios",
        json={
            "nome": "Invasor",
            "tipo_cardapio": "Janta",
            "itens": [{"item_id": itens[0]["id"], "quantidade": 1}],
        },
        headers=headers_outro,
    )
    assert resp.status_code == 403
    assert resp.json()["error"] == "Item inválido"


def test_tipo_invalido(client, headers):
    resp = client.post("/api/cardapios", json={"nome": "X", "tipo_cardapio": "Ceia"}, headers=headers)
    assert resp.status_code == 400


def test_atualizar_itens_por_diferenca(client, headers, itens, criar_cardapio):
    arroz, feijao, farofa = itens
    cardapio = criar_cardapio(headers, [
        {"item_id": arroz["id"], "quantidade": 2, "valor_unitario_centavos": 500},
        {"item_id": feijao["id"], "quantidade": 1, "valor_unitario_centavos": 400},
    ])
    ids_antes = {i["item_id"]: i["id"] for i in cardapio["itens"]}

    resp = client.put(
        f"/api/cardapios/{cardapio['id']}",
        json={"itens": [
            {"item_id": arroz["id"], "quantidade": 5, "valor_unitario_centavos": 500},
            {"item_id": farofa["id"], "quantidade": 1, "valor_unitario_centavos": 300},
        ]},
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    depois = {i["item_id"]: i for i in body["itens"]}

    assert set(depois) == {arroz["id"], farofa["id"]}
    # linha mantida é atualizada no lugar
    assert depois[arroz["id"]]["id"] == ids_antes[arroz["id"]]
    assert depois[arroz["id"]]["quantidade"] == 5
    assert body["quantidade_total"] == 6
    assert body["preco_itens_centavos"] == 2800


def test_atualizar_sem_itens_preserva_composicao(client, headers, itens, criar_cardapio):
    cardapio = criar_cardapio(headers, [{"item_id": itens[0]["id"], "quantidade": 1, "valor_unitario_centavos": 500}])
    resp = client.put(f"/api/cardapios/{cardapio['id']}", json={"nome": "Prato do Dia"}, headers=headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["nome"] == "Prato do Dia"
    assert len(resp.json()["itens"]) == 1


def test_atualizacao_invalida_nao_grava_nada(client, headers, headers_outro, itens, criar_item, criar_cardapio):
    cardapio = criar_cardapio(headers, [{"item_id": itens[0]["id"], "quantidade": 1, "valor_unitario_centavos": 500}])
    alheio = criar_item(headers_outro, nome="Alheio")

    resp = client.put(
        f"/api/cardapios/{cardapio['id']}",
        json={"nome": "Alterado", "itens": [{"item_id": alheio["id"], "quantidade": 1}]},
        headers=headers,
    )
    assert resp.status_code == 403

    atual = client.get(f"/api/cardapios/{cardapio['id']}", headers=headers).json()
    assert atual["nome"] == "Executivo"
    assert [i["item_id"] for i in atual["itens"]] == [itens[0]["id"]]


def test_filtrar_por_tipo(client, headers, criar_cardapio):
    criar_cardapio(headers, [], nome="Café Colonial", tipo_cardapio="Café")
    criar_cardapio(headers, [], nome="Executivo")

    resp = client.get("/api/cardapios?tipo=Café", headers=headers)
    assert [c["nome"] for c in resp.json()["data"]] == ["Café Colonial"]
    resp = client.get("/api/cardapios?tipo=Todos", headers=headers)
    assert resp.json()["pagination"]["total"] == 2


def test_excluir_vinculado_a_pedido(client, headers, criar_estabelecimento, criar_cardapio, criar_pedido):
    estabelecimento = criar_estabelecimento(headers)
    cardapio = criar_cardapio(headers, [])
    criar_pedido(headers, estabelecimento["id"], cardapios=[{"cardapio_id": cardapio["id"]}])

    resp = client.delete(f"/api/cardapios/{cardapio['id']}", headers=headers)
    assert resp.status_code == 409
    assert resp.json()["error"] == "Não é possível excluir Cardápio vinculado a pedidos"


def test_excluir_remove_itens(client, headers, itens, criar_cardapio):
    cardapio = criar_cardapio(headers, [{"item_id": itens[0]["id"], "quantidade": 1, "valor_unitario_centavos": 500}])
    assert client.delete(f"/api/cardapios/{cardapio['id']}", headers=headers).status_code == 204
    # o item continua existindo
    assert client.delete(f"/api/itens/{itens[0]['id']}", headers=headers).status_code == 204


def test_exportar_uma_linha_por_item(client, headers, itens, criar_cardapio):
    criar_cardapio(headers, [
        {"item_id": itens[0]["id"], "quantidade": 2, "valor_unitario_centavos": 500},
        {"item_id": itens[1]["id"], "quantidade": 1, "valor_unitario_centavos": 400},
    ])
    resp = client.get("/api/cardapios/export", headers=headers)
    linhas = resp.content.decode("utf-8-sig").splitlines()
    assert len(linhas) == 3
    assert "35,00" in linhas[1]
    assert ";Arroz;2;5,00;" in linhas[1]


def test_importar_agrupa_por_nome(client, headers):
    resp = client.post(
        "/api/cardapios/import",
        json={"records": [
            {"Nome": "Feijoada", "Tipo de Cardápio": "Almoço", "Preço Total": "45,00",
             "Item": "Feijão Preto", "Quantidade do Item": "2", "Valor Unitário do Item": "5,00"},
            {"Nome": "Feijoada", "Tipo de Cardápio": "Almoço", "Preço Total": "45,00",
             "Item": "Couve", "Quantidade do Item": "1", "Valor Unitário do Item": "2,50"},
            {"Nome": "", "Tipo de Cardápio": "Almoço"},
        ]},
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["imported"] == 1
    assert body["errors"] == ["Linha 3: Nome do cardápio é obrigatório"]

    cardapio_id = client.get("/api/cardapios", headers=headers).json()["data"][0]["id"]
    cardapio = client.get(f"/api/cardapios/{cardapio_id}", headers=headers).json()
    assert cardapio["preco_total"] == 4500
    assert cardapio["quantidade_total"] == 3
    assert cardapio["preco_itens_centavos"] == 1250
    assert {i["item_nome"] for i in cardapio["itens"]} == {"Feijão Preto", "Couve"}
