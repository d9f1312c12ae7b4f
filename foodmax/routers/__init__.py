"""Router imports"""
from . import (
	auth,
	estabelecimentos,
	clientes,
	fornecedores,
	itens_categorias,
	itens,
	cardapios,
	pedidos,
	abastecimentos,
	entregas,
	financeiro,
	comunicacoes,
	suportes,
	relatorios,
	admin,
)

__all__ = [
	"auth",
	"estabelecimentos",
	"clientes",
	"fornecedores",
	"itens_categorias",
	"itens",
	"cardapios",
	"pedidos",
	"abastecimentos",
	"entregas",
	"financeiro",
	"comunicacoes",
	"suportes",
	"relatorios",
	"admin",
]
