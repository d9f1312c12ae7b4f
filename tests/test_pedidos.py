import re

import pytest


@pytest.fixture
def estabelecimento(headers, criar_estabelecimento):
    return criar_estabelecimento(headers)


@pytest.fixture
def refrigerante(headers, criar_item):
    return criar_item(headers, nome="Refrigerante", preco_centavos=600, estoque_atual=5)


def test_criar_pedido_completo(headers, estabelecimento, refrigerante, criar_cardapio, criar_pedido, criar_cliente):
    cliente = criar_cliente(headers, estabelecimento["id"])
    cardapio = criar_cardapio(headers, [], preco_total=3500)

    pedido = criar_pedido(
        headers,
        estabelecimento["id"],
        cliente_id=cliente["id"],
        valor_total=4700,
        cardapios=[{"cardapio_id": cardapio["id"]}],
        itens_extras=[{
            "item_id": refrigerante["id"],
            "categoria_id": refrigerante["categoria_id"],
            "quantidade": 2,
            "valor_unitario": 600,
        }],
    )

    assert re.fullmatch(r"[A-Z0-9]{4}-[A-Z0-9]{4}", pedido["codigo"])
    assert pedido["status"] == "Pendente"
    assert pedido["cliente_nome"] == "Maria Souza"
    assert pedido["cardapios"][0]["preco_total"] == 3500
    assert pedido["cardapios"][0]["cardapio_nome"] == "Executivo"
    assert pedido["itens_extras"][0]["item_nome"] == "Refrigerante"
    assert pedido["data_hora_finalizado"] is None


def test_quantidade_maior_que_estoque(client, headers, estabelecimento, refrigerante):
    resp = client.post(
        "/api/pedidos",
        json={
            "estabelecimento_id": estabelecimento["id"],
            "tipo_pedido": "APP",
            "itens_extras": [{
                "item_id": refrigerante["id"],
                "categoria_id": refrigerante["categoria_id"],
                "quantidade": 6,
            }],
        },
        headers=headers,
    )
    assert resp.status_code == 400
    assert "maior que o estoque atual (5)" in resp.json()["error"]


def test_item_sem_estoque(client, headers, estabelecimento, criar_item):
    item = criar_item(headers, estoque_atual=0)
    resp = client.post(
        "/api/pedidos",
        json={
            "estabelecimento_id": estabelecimento["id"],
            "tipo_pedido": "Atendente",
            "itens_extras": [{"item_id": item["id"], "categoria_id": item["categoria_id"], "quantidade": 1}],
        },
        headers=headers,
    )
    assert resp.status_code == 400
    assert resp.json()["error"].startswith("Item sem estoque")


def test_categoria_do_item_nao_confere(client, headers, estabelecimento, refrigerante, criar_categoria):
    outra = criar_categoria(headers, nome="Outra")
    resp = client.post(
        "/api/pedidos",
        json={
            "estabelecimento_id": estabelecimento["id"],
            "tipo_pedido": "Atendente",
            "itens_extras": [{"item_id": refrigerante["id"], "categoria_id": outra["id"], "quantidade": 1}],
        },
        headers=headers,
    )
    assert resp.status_code == 400


def test_codigo_duplicado(client, headers, estabelecimento, criar_pedido):
    criar_pedido(headers, estabelecimento["id"], codigo="MESA-0001")
    resp = client.post(
        "/api/pedidos",
        json={"estabelecimento_id": estabelecimento["id"], "tipo_pedido": "Atendente", "codigo": "MESA-0001"},
        headers=headers,
    )
    assert resp.status_code == 409
    assert resp.json()["error"] == "Já existe um pedido com este código"


def test_criar_ja_finalizado_registra_data(headers, estabelecimento, criar_pedido):
    pedido = criar_pedido(headers, estabelecimento["id"], status="Finalizado")
    assert pedido["data_hora_finalizado"] is not None


def test_finalizar_e_transicoes(client, headers, estabelecimento, criar_pedido):
    pedido = criar_pedido(headers, estabelecimento["id"])

    resp = client.patch(f"/api/pedidos/{pedido['id']}/finalizar", headers=headers)
    assert resp.status_code == 200, resp.text
    finalizado = resp.json()
    assert finalizado["status"] == "Finalizado"
    assert finalizado["data_hora_finalizado"] is not None

    # repetir o mesmo status não é erro
    resp = client.patch(f"/api/pedidos/{pedido['id']}/finalizar", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data_hora_finalizado"] == finalizado["data_hora_finalizado"]

    resp = client.put(f"/api/pedidos/{pedido['id']}", json={"status": "Cancelado"}, headers=headers)
    assert resp.status_code == 409
    assert resp.json()["error"] == "Transição de status inválida: Finalizado → Cancelado"


def test_atualizar_extras_por_diferenca(client, headers, estabelecimento, refrigerante, criar_item, criar_pedido):
    agua = criar_item(headers, nome="Água", estoque_atual=10)
    extra_refri = {"item_id": refrigerante["id"], "categoria_id": refrigerante["categoria_id"], "quantidade": 1}
    pedido = criar_pedido(headers, estabelecimento["id"], itens_extras=[extra_refri])
    id_refri = pedido["itens_extras"][0]["id"]

    resp = client.put(
        f"/api/pedidos/{pedido['id']}",
        json={"itens_extras": [
            {**extra_refri, "quantidade": 3},
            {"item_id": agua["id"], "categoria_id": agua["categoria_id"], "quantidade": 2},
        ]},
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    extras = {e["item_id"]: e for e in resp.json()["itens_extras"]}
    assert extras[refrigerante["id"]]["id"] == id_refri
    assert extras[refrigerante["id"]]["quantidade"] == 3
    assert extras[agua["id"]]["quantidade"] == 2

    resp = client.put(f"/api/pedidos/{pedido['id']}", json={"itens_extras": []}, headers=headers)
    assert resp.json()["itens_extras"] == []


def test_filtrar_por_status(client, headers, estabelecimento, criar_pedido):
    criar_pedido(headers, estabelecimento["id"])
    criar_pedido(headers, estabelecimento["id"], status="Cancelado")

    resp = client.get("/api/pedidos?status=Cancelado", headers=headers)
    assert [p["status"] for p in resp.json()["data"]] == ["Cancelado"]
    resp = client.get("/api/pedidos?status=Todos", headers=headers)
    assert resp.json()["pagination"]["total"] == 2


def test_excluir_vinculado_a_entrega(client, headers, estabelecimento, criar_pedido, endereco):
    pedido = criar_pedido(headers, estabelecimento["id"])
    resp = client.post(
        "/api/entregas",
        json={"estabelecimento_id": estabelecimento["id"], "pedido_id": pedido["id"], "endereco": endereco},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text

    resp = client.delete(f"/api/pedidos/{pedido['id']}", headers=headers)
    assert resp.status_code == 409
    assert resp.json()["error"] == "Não é possível excluir Pedido vinculado a entregas"


def test_excluir_remove_filhos(client, headers, estabelecimento, refrigerante, criar_pedido):
    pedido = criar_pedido(
        headers,
        estabelecimento["id"],
        itens_extras=[{"item_id": refrigerante["id"], "categoria_id": refrigerante["categoria_id"], "quantidade": 1}],
    )
    assert client.delete(f"/api/pedidos/{pedido['id']}", headers=headers).status_code == 204
    assert client.delete(f"/api/itens/{refrigerante['id']}", headers=headers).status_code == 204


def test_exportar(client, headers, estabelecimento, criar_pedido):
    criar_pedido(headers, estabelecimento["id"], codigo="ABCD-1234", valor_total=1990)
    resp = client.get("/api/pedidos/export", headers=headers)
    linhas = resp.content.decode("utf-8-sig").splitlines()
    assert linhas[0].startswith("Código;Estabelecimento;Cliente;Tipo de Pedido;Valor Total;Status")
    assert linhas[1].startswith("ABCD-1234;Restaurante Central;;Atendente;19,90;Pendente")


def test_importar_agrupa_por_codigo(client, headers, estabelecimento):
    registros = [
        {"Código": "IMP-0001", "Estabelecimento": "Restaurante Central", "Tipo de Pedido": "Atendente",
         "Valor Total": "52,00", "Cliente": "não cliente", "Cardápio": "Combo Família",
         "Preço do Cardápio": "40,00"},
        {"Código": "IMP-0001", "Item Extra": "Suco de Laranja", "Categoria do Item Extra": "Bebidas",
         "Quantidade do Item Extra": "2", "Valor Unitário do Item Extra": "6,00"},
    ]
    resp = client.post("/api/pedidos/import", json={"records": registros}, headers=headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["imported"] == 1
    assert resp.json()["errors"] is None

    pedido_id = client.get("/api/pedidos?search=IMP-0001", headers=headers).json()["data"][0]["id"]
    pedido = client.get(f"/api/pedidos/{pedido_id}", headers=headers).json()
    assert pedido["valor_total"] == 5200
    assert pedido["cliente_id"] is None
    assert pedido["cardapios"][0]["cardapio_nome"] == "Combo Família"
    assert pedido["cardapios"][0]["preco_total"] == 4000
    assert pedido["itens_extras"][0]["item_nome"] == "Suco de Laranja"
    assert pedido["itens_extras"][0]["categoria_nome"] == "Bebidas"
    assert pedido["itens_extras"][0]["quantidade"] == 2

    # mesmo código outra vez vira erro
    resp = client.post("/api/pedidos/import", json={"records": registros[:1]}, headers=headers)
    assert resp.json()["imported"] == 0
    assert resp.json()["errors"] == ["Linha 1: Pedido com código IMP-0001 já existe"]
