import pytest


@pytest.fixture
def estabelecimento(headers, criar_estabelecimento):
    return criar_estabelecimento(headers)


@pytest.fixture
def lancamentos(client, headers, estabelecimento):
    for tipo, valor, data in [
        ("Receita", 10000, "2024-03-05T10:00:00"),
        ("Despesa", 3000, "2024-03-20T10:00:00"),
        ("Receita", 5000, "2024-04-02T10:00:00"),
    ]:
        resp = client.post(
            "/api/financeiro",
            json={
                "estabelecimento_id": estabelecimento["id"],
                "tipo": tipo,
                "categoria": "Vendas" if tipo == "Receita" else "Aluguel",
                "valor": valor,
                "data_transacao": data,
            },
            headers=headers,
        )
        assert resp.status_code == 201, resp.text


def test_financeiro_por_mes(client, headers, lancamentos):
    resp = client.get("/api/relatorios/financeiro", headers=headers)
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["agrupamento"] == "mes"
    assert body["grupos"] == [
        {"chave": "2024-03", "label": "mar/2024", "receitas": 10000, "despesas": 3000, "saldo": 7000},
        {"chave": "2024-04", "label": "abr/2024", "receitas": 5000, "despesas": 0, "saldo": 5000},
    ]
    assert body["totals"] == {"totalReceitas": 15000, "totalDespesas": 3000, "saldoLiquido": 12000}


def test_financeiro_por_dia_desde_data(client, headers, lancamentos):
    resp = client.get("/api/relatorios/financeiro?period=2024-03-15", headers=headers)
    body = resp.json()
    assert body["agrupamento"] == "dia"
    assert [g["label"] for g in body["grupos"]] == ["20/03/2024", "02/04/2024"]
    assert body["totals"]["saldoLiquido"] == 2000


def test_transacao_inativa_fica_fora(client, headers, lancamentos):
    transacao_id = client.get("/api/financeiro?tipo=Despesa", headers=headers).json()["data"][0]["id"]
    client.patch(f"/api/financeiro/{transacao_id}/toggle-status", headers=headers)
    resp = client.get("/api/relatorios/financeiro", headers=headers)
    assert resp.json()["totals"]["totalDespesas"] == 0


def test_pedidos_por_status(client, headers, estabelecimento, criar_pedido):
    criar_pedido(headers, estabelecimento["id"], valor_total=2000, status="Finalizado")
    criar_pedido(headers, estabelecimento["id"], valor_total=1500, status="Finalizado")
    criar_pedido(headers, estabelecimento["id"], valor_total=999)

    resp = client.get("/api/relatorios/pedidos", headers=headers)
    assert resp.json() == {
        "total": 3,
        "porStatus": {"Pendente": 1, "Finalizado": 2, "Cancelado": 0},
        "valorFinalizado": 3500,
    }


def test_dashboard(client, headers, estabelecimento, criar_pedido, criar_cliente):
    criar_pedido(headers, estabelecimento["id"], valor_total=2000, status="Finalizado")
    criar_pedido(headers, estabelecimento["id"])
    criar_cliente(headers, estabelecimento["id"])
    criar_cliente(headers, estabelecimento["id"], nome="Inativo", ativo=False)

    resp = client.get(f"/api/relatorios/dashboard?estabelecimento_id={estabelecimento['id']}", headers=headers)
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["pedidosFinalizadosMes"] == 1
    assert body["valorPedidosMes"] == 2000
    assert body["clientesTotal"] == 2
    assert body["clientesAtivos"] == 1
    assert body["pedidosPendentes"] == 1
    assert body["entregasPendentes"] == 0
    assert len(body["pedidosRecentes"]) == 2
    assert body["pedidosRecentes"][0]["estabelecimento_nome"] == "Restaurante Central"
    assert len(body["clientesRecentes"]) == 2


def test_dashboard_conta_pela_data_de_finalizacao(client, headers, db, estabelecimento, criar_pedido):
    from datetime import timedelta

    from foodmax.models import Pedido
    from foodmax.services.transicoes import agora

    mes_passado = agora().replace(day=1) - timedelta(days=3)
    criado_antes = criar_pedido(headers, estabelecimento["id"], valor_total=1500)
    finalizado_antes = criar_pedido(headers, estabelecimento["id"], valor_total=900, status="Finalizado")
    db.query(Pedido).filter(Pedido.id == criado_antes["id"]).update({"data_cadastro": mes_passado})
    db.query(Pedido).filter(Pedido.id == finalizado_antes["id"]).update(
        {"data_cadastro": mes_passado, "data_hora_finalizado": mes_passado}
    )
    db.commit()

    resp = client.patch(f"/api/pedidos/{criado_antes['id']}/finalizar", headers=headers)
    assert resp.status_code == 200, resp.text

    body = client.get("/api/relatorios/dashboard", headers=headers).json()
    assert body["pedidosFinalizadosMes"] == 1
    assert body["valorPedidosMes"] == 1500


def test_pdf(client, headers, estabelecimento, lancamentos, criar_pedido):
    criar_pedido(headers, estabelecimento["id"], status="Finalizado", valor_total=1000)
    resp = client.get(f"/api/relatorios/pdf?estabelecimento_id={estabelecimento['id']}", headers=headers)
    assert resp.status_code == 200, resp.text
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.content.startswith(b"%PDF")


def test_pdf_sem_dados(client, headers):
    resp = client.get("/api/relatorios/pdf?period=7d", headers=headers)
    assert resp.status_code == 200
    assert resp.content.startswith(b"%PDF")


def test_estabelecimento_de_outro_usuario(client, headers_outro, estabelecimento):
    resp = client.get(f"/api/relatorios/financeiro?estabelecimento_id={estabelecimento['id']}", headers=headers_outro)
    assert resp.status_code == 403
    assert resp.json()["error"] == "Estabelecimento inválido"
