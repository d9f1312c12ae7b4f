from datetime import datetime

import pytest

from foodmax.services.planilhas import (
    LinhaInvalida, centavos_para_reais, mapear_cabecalhos, normalizar_ddi, parse_centavos, parse_data,
    preparar_linha, separar_endereco, to_bool,
)

COLUNAS = [("nome", "Nome"), ("endereco", "Endereço"), ("aceita_promocao_email", "Aceita Promoções por Email")]


@pytest.mark.parametrize("valor,esperado", [
    ("R$ 1.234,56", 123456),
    ("12,50", 1250),
    ("8.90", 890),
    ("1234.5", 123450),
    (19.9, 1990),
    (7, 700),
    ("", 0),
    (None, 0),
])
def test_parse_centavos(valor, esperado):
    assert parse_centavos(valor) == esperado


def test_centavos_para_reais():
    assert centavos_para_reais(1250) == "12,50"
    assert centavos_para_reais(5) == "0,05"
    assert centavos_para_reais(None) == ""


@pytest.mark.parametrize("valor,esperado", [
    ("Sim", True),
    ("ATIVO", True),
    ("1", True),
    (True, True),
    ("não", False),
    ("Inativo", False),
    ("0", False),
    ("talvez", None),
    ("", None),
])
def test_to_bool(valor, esperado):
    assert to_bool(valor) is esperado


def test_parse_data():
    assert parse_data("05/02/2024") == datetime(2024, 2, 5)
    assert parse_data("05/02/2024 14:30") == datetime(2024, 2, 5, 14, 30)
    assert parse_data("2024-02-05T14:30:00Z") == datetime(2024, 2, 5, 14, 30)
    assert parse_data("2024-02-05T14:30:00-03:00") == datetime(2024, 2, 5, 17, 30)
    assert parse_data("") is None
    with pytest.raises(LinhaInvalida):
        parse_data("ontem")


def test_mapear_cabecalhos_aceita_rotulo_e_chave():
    linha = mapear_cabecalhos(
        {"NOME": " Ana ", "endereço": "Rua X", "aceita promocoes por email": "sim", "extra": 1},
        COLUNAS,
    )
    assert linha == {"nome": "Ana", "endereco": "Rua X", "aceita_promocao_email": "sim", "extra": 1}


def test_preparar_linha_descarta_vazios_e_converte():
    linha = preparar_linha(
        {"nome": "Ana", "email": "", "ativo": "talvez", "valor": "10,00", "qtd": "3"},
        booleanos=("ativo",),
        centavos=("valor",),
        inteiros=("qtd",),
    )
    assert linha == {"nome": "Ana", "valor": 1000, "qtd": 3}


def test_separar_endereco():
    dados = {"nome": "Ana", "cidade": "Canoas", "pais": "Brasil"}
    assert separar_endereco(dados) == {"cidade": "Canoas", "pais": "Brasil"}
    assert dados == {"nome": "Ana"}

    so_pais = {"pais": "Brasil"}
    assert separar_endereco(so_pais) is None


def test_normalizar_ddi():
    assert normalizar_ddi("55") == "+55"
    assert normalizar_ddi("+1") == "+1"
    assert normalizar_ddi(None) == "+55"
