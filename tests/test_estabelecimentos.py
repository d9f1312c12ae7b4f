def test_criar_e_listar(client, headers, criar_estabelecimento):
    criado = criar_estabelecimento(
        headers,
        cnpj="12.345.678/0001-90",
        telefone="(51) 3333-4444",
        endereco={"cep": "90000-000", "endereco": "Rua A, 1", "cidade": "Porto Alegre", "uf": "rs"},
    )
    assert criado["cnpj"] == "12345678000190"
    assert criado["telefone"] == "5133334444"
    assert criado["tipo_estabelecimento"] == "Restaurante"
    assert criado["endereco"]["cep"] == "90000000"
    assert criado["endereco"]["uf"] == "RS"
    assert criado["endereco"]["pais"] == "Brasil"

    resp = client.get("/api/estabelecimentos", headers=headers)
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["pagination"] == {"page": 1, "limit": 10, "total": 1, "totalPages": 1}
    assert body["data"][0]["id"] == criado["id"]


def test_plano_gratuito_permite_um_estabelecimento(client, headers_gratis, criar_estabelecimento):
    criar_estabelecimento(headers_gratis)

    resp = client.post(
        "/api/estabelecimentos",
        json={"nome": "Filial", "email": "filial@central.com"},
        headers=headers_gratis,
    )
    assert resp.status_code == 403
    assert resp.json()["error"] == "Só é possível cadastrar 1 Estabelecimento no plano gratuito"


def test_plano_pago_sem_limite(headers, criar_estabelecimento):
    criar_estabelecimento(headers, nome="Matriz")
    criar_estabelecimento(headers, nome="Filial")


def test_nome_duplicado_sem_diferenciar_maiusculas(client, headers, criar_estabelecimento):
    criar_estabelecimento(headers, nome="Cantina")
    resp = client.post(
        "/api/estabelecimentos", json={"nome": "CANTINA", "email": "a@b.com"}, headers=headers
    )
    assert resp.status_code == 409


def test_registro_de_outro_usuario_nao_existe(client, headers, headers_outro, criar_estabelecimento):
    criado = criar_estabelecimento(headers)
    resp = client.get(f"/api/estabelecimentos/{criado['id']}", headers=headers_outro)
    assert resp.status_code == 404
    assert resp.json()["error"] == "Estabelecimento não encontrado"


def test_atualizar_endereco_no_lugar(client, headers, criar_estabelecimento):
    criado = criar_estabelecimento(
        headers, endereco={"endereco": "Rua A, 1", "cidade": "Porto Alegre", "uf": "RS"}
    )
    resp = client.put(
        f"/api/estabelecimentos/{criado['id']}",
        json={"telefone": "51999990000", "endereco": {"endereco": "Rua B, 2", "cidade": "Canoas", "uf": "RS"}},
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["nome"] == criado["nome"]
    assert body["telefone"] == "51999990000"
    assert body["endereco"]["id"] == criado["endereco"]["id"]
    assert body["endereco"]["cidade"] == "Canoas"


def test_excluir(client, headers, criar_estabelecimento):
    criado = criar_estabelecimento(headers)
    resp = client.delete(f"/api/estabelecimentos/{criado['id']}", headers=headers)
    assert resp.status_code == 204
    assert client.get(f"/api/estabelecimentos/{criado['id']}", headers=headers).status_code == 404


def test_excluir_com_clientes_vinculados(client, headers, criar_estabelecimento, criar_cliente):
    criado = criar_estabelecimento(headers)
    criar_cliente(headers, criado["id"])

    resp = client.delete(f"/api/estabelecimentos/{criado['id']}", headers=headers)
    assert resp.status_code == 409
    assert resp.json()["error"] == "Não é possível excluir Estabelecimento com Clientes vinculados"


def test_exclusao_em_lote_bloqueada_nao_exclui_nada(client, headers, criar_estabelecimento, criar_cliente):
    livre = criar_estabelecimento(headers, nome="Livre")
    vinculado = criar_estabelecimento(headers, nome="Vinculado")
    criar_cliente(headers, vinculado["id"])

    resp = client.post(
        "/api/estabelecimentos/bulk-delete", json={"ids": [livre["id"], vinculado["id"]]}, headers=headers
    )
    assert resp.status_code == 409
    assert resp.json()["blockedIds"] == [vinculado["id"]]
    assert client.get(f"/api/estabelecimentos/{livre['id']}", headers=headers).status_code == 200


def test_exclusao_em_lote(client, headers, criar_estabelecimento):
    ids = [criar_estabelecimento(headers, nome=f"Loja {i}")["id"] for i in range(3)]
    resp = client.post("/api/estabelecimentos/bulk-delete", json={"ids": ids}, headers=headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["deletedCount"] == 3


def test_exclusao_em_lote_com_id_de_outro_usuario(client, headers, headers_outro, criar_estabelecimento):
    meu = criar_estabelecimento(headers)
    alheio = criar_estabelecimento(headers_outro)
    resp = client.post(
        "/api/estabelecimentos/bulk-delete", json={"ids": [meu["id"], alheio["id"]]}, headers=headers
    )
    assert resp.status_code == 403


def test_alternar_status(client, headers, criar_estabelecimento):
    criado = criar_estabelecimento(headers)
    resp = client.patch(f"/api/estabelecimentos/{criado['id']}/toggle-status", headers=headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["message"] == "Estabelecimento desativado com sucesso"
    assert resp.json()["data"]["ativo"] is False

    resp = client.get("/api/estabelecimentos?ativo=false", headers=headers)
    assert resp.json()["pagination"]["total"] == 1


def test_busca(client, headers, criar_estabelecimento):
    criar_estabelecimento(headers, nome="Pizzaria Napoli", email="napoli@x.com")
    criar_estabelecimento(headers, nome="Bar do Zé", email="ze@x.com")

    resp = client.get("/api/estabelecimentos?search=napoli", headers=headers)
    assert [e["nome"] for e in resp.json()["data"]] == ["Pizzaria Napoli"]


def test_exportar_csv(client, headers, criar_estabelecimento):
    criar_estabelecimento(headers, endereco={"endereco": "Rua A, 1", "cidade": "Porto Alegre", "uf": "RS"})

    resp = client.get("/api/estabelecimentos/export", headers=headers)
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert 'filename="estabelecimentos.csv"' in resp.headers["content-disposition"]
    assert resp.content.startswith(b"\xef\xbb\xbf")

    linhas = resp.content.decode("utf-8-sig").splitlines()
    assert linhas[0].startswith("Nome;Razão Social;CNPJ;Tipo de Estabelecimento;Email")
    assert "Restaurante Central" in linhas[1]
    assert ";Sim;" in linhas[1]
    assert "Porto Alegre" in linhas[1]


def test_importar_com_rotulos_e_duplicados(client, headers):
    resp = client.post(
        "/api/estabelecimentos/import",
        json={"records": [
            {"Nome": "Filial Centro", "Email": "centro@x.com", "Ativo": "Sim", "Cidade": "Porto Alegre"},
            {"nome": "filial centro", "email": "outro@x.com"},
            {"Nome": "Sem email"},
        ]},
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["imported"] == 1
    assert body["errors"][0] == "Linha 2: Estabelecimento duplicado (nome ou CNPJ já existe)"
    assert body["errors"][1].startswith("Linha 3: ")
    assert len(body["errors"]) == 2


def test_importar_respeita_plano_gratuito(client, headers_gratis):
    resp = client.post(
        "/api/estabelecimentos/import",
        json={"records": [
            {"Nome": "Primeiro", "Email": "um@x.com"},
            {"Nome": "Segundo", "Email": "dois@x.com"},
        ]},
        headers=headers_gratis,
    )
    body = resp.json()
    assert body["imported"] == 1
    assert body["errors"] == ["Linha 2: Só é possível cadastrar 1 Estabelecimento no plano gratuito"]


def test_importar_sem_registros(client, headers):
    resp = client.post("/api/estabelecimentos/import", json={"records": []}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Nenhum registro fornecido"
