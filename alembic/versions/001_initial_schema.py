"""Initial schema - FoodMax

Revision ID: 001
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _dono():
    return sa.Column('id_usuario', sa.Integer(), sa.ForeignKey('usuarios.id', ondelete='CASCADE'), nullable=False)


def _datas():
    return [
        sa.Column('data_cadastro', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.Column('data_atualizacao', sa.DateTime(), server_default=sa.func.now(), nullable=True),
    ]


def _endereco():
    return [
        sa.Column('cep', sa.String(length=8), nullable=True),
        sa.Column('endereco', sa.String(length=255), nullable=True),
        sa.Column('cidade', sa.String(length=100), nullable=True),
        sa.Column('uf', sa.String(length=2), nullable=True),
        sa.Column('pais', sa.String(length=60), nullable=True),
    ]


def _indices(tabela, colunas):
    for coluna in colunas:
        op.create_index(op.f(f'ix_{tabela}_{coluna}'), tabela, [coluna], unique=False)


def upgrade() -> None:
    # ==================== USUÁRIOS ====================
    op.create_table(
        'usuarios',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('senha_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=5), nullable=False, server_default='user'),
        sa.Column('ativo', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('onboarding', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('data_pagamento', sa.DateTime(), nullable=True),
        sa.Column('ip', sa.String(length=64), nullable=True),
        *_datas(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_usuarios_id'), 'usuarios', ['id'], unique=False)
    op.create_index(op.f('ix_usuarios_email'), 'usuarios', ['email'], unique=True)

    op.create_table(
        'usuarios_contatos',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('usuario_id', sa.Integer(), sa.ForeignKey('usuarios.id', ondelete='CASCADE'), nullable=False),
        sa.Column('nome', sa.String(length=255), nullable=False),
        sa.Column('ddi', sa.String(length=6), nullable=True),
        sa.Column('telefone', sa.String(length=20), nullable=True),
        *_endereco(),
        sa.Column('data_cadastro', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    _indices('usuarios_contatos', ['id', 'usuario_id'])

    op.create_table(
        'login_attempts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('ip', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('attempt_date', sa.Date(), nullable=False),
        sa.Column('attempts_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_attempt', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    _indices('login_attempts', ['id', 'ip', 'email', 'attempt_date'])

    op.create_table(
        'registration_attempts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('ip', sa.String(length=64), nullable=False),
        sa.Column('registration_date', sa.Date(), nullable=False),
        sa.Column('registrations_count', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id')
    )
    _indices('registration_attempts', ['id', 'ip', 'registration_date'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('usuarios.id', ondelete='SET NULL'), nullable=True),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('resource', sa.String(length=50), nullable=False),
        sa.Column('resource_id', sa.Integer(), nullable=True),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('timestamp', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    _indices('audit_logs', ['id', 'user_id', 'action', 'resource', 'timestamp'])

    # ==================== ESTABELECIMENTOS ====================
    op.create_table(
        'estabelecimentos',
        sa.Column('id', sa.Integer(), nullable=False),
        _dono(),
        sa.Column('nome', sa.String(length=255), nullable=False),
        sa.Column('razao_social', sa.String(length=255), nullable=True),
        sa.Column('cnpj', sa.String(length=14), nullable=True),
        sa.Column('tipo_estabelecimento', sa.String(length=12), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('ddi', sa.String(length=6), nullable=True),
        sa.Column('telefone', sa.String(length=20), nullable=True),
        sa.Column('ativo', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_datas(),
        sa.PrimaryKeyConstraint('id')
    )
    _indices('estabelecimentos', ['id', 'id_usuario', 'data_cadastro'])

    op.create_table(
        'estabelecimentos_enderecos',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column(
            'estabelecimento_id', sa.Integer(),
            sa.ForeignKey('estabelecimentos.id', ondelete='CASCADE'), nullable=False, unique=True
        ),
        *_endereco(),
        sa.PrimaryKeyConstraint('id')
    )
    _indices('estabelecimentos_enderecos', ['id'])

    # ==================== CLIENTES / FORNECEDORES ====================
    op.create_table(
        'clientes',
        sa.Column('id', sa.Integer(), nullable=False),
        _dono(),
        sa.Column('estabelecimento_id', sa.Integer(), sa.ForeignKey('estabelecimentos.id'), nullable=False),
        sa.Column('nome', sa.String(length=255), nullable=False),
        sa.Column('genero', sa.String(length=9), nullable=True),
        sa.Column('profissao', sa.String(length=120), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('ddi', sa.String(length=6), nullable=True),
        sa.Column('telefone', sa.String(length=20), nullable=True),
        sa.Column('ativo', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('aceita_promocao_email', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_datas(),
        sa.PrimaryKeyConstraint('id')
    )
    _indices('clientes', ['id', 'id_usuario', 'estabelecimento_id', 'data_cadastro'])

    op.create_table(
        'clientes_enderecos',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('cliente_id', sa.Integer(), sa.ForeignKey('clientes.id', ondelete='CASCADE'), nullable=False, unique=True),
        *_endereco(),
        sa.PrimaryKeyConstraint('id')
    )
    _indices('clientes_enderecos', ['id'])

    op.create_table(
        'fornecedores',
        sa.Column('id', sa.Integer(), nullable=False),
        _dono(),
        sa.Column('nome', sa.String(length=255), nullable=False),
        sa.Column('razao_social', sa.String(length=255), nullable=True),
        sa.Column('cnpj', sa.String(length=14), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('ddi', sa.String(length=6), nullable=True),
        sa.Column('telefone', sa.String(length=20), nullable=True),
        sa.Column('nome_responsavel', sa.String(length=255), nullable=True),
        sa.Column('ativo', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_datas(),
        sa.PrimaryKeyConstraint('id')
    )
    _indices('fornecedores', ['id', 'id_usuario', 'data_cadastro'])

    op.create_table(
        'fornecedores_enderecos',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column(
            'fornecedor_id', sa.Integer(),
            sa.ForeignKey('fornecedores.id', ondelete='CASCADE'), nullable=False, unique=True
        ),
        *_endereco(),
        sa.PrimaryKeyConstraint('id')
    )
    _indices('fornecedores_enderecos', ['id'])

    # ==================== ITENS ====================
    op.create_table(
        'itens_categorias',
        sa.Column('id', sa.Integer(), nullable=False),
        _dono(),
        sa.Column('nome', sa.String(length=120), nullable=False),
        sa.Column('descricao', sa.Text(), nullable=True),
        sa.Column('ativo', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_datas(),
        sa.PrimaryKeyConstraint('id')
    )
    _indices('itens_categorias', ['id', 'id_usuario', 'data_cadastro'])

    op.create_table(
        'itens',
        sa.Column('id', sa.Integer(), nullable=False),
        _dono(),
        sa.Column('categoria_id', sa.Integer(), sa.ForeignKey('itens_categorias.id'), nullable=False),
        sa.Column('nome', sa.String(length=255), nullable=False),
        sa.Column('preco_centavos', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('custo_pago_centavos', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('unidade_medida', sa.String(length=14), nullable=True),
        sa.Column('peso_gramas', sa.Integer(), nullable=True),
        sa.Column('estoque_atual', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('ativo', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_datas(),
        sa.PrimaryKeyConstraint('id')
    )
    _indices('itens', ['id', 'id_usuario', 'categoria_id', 'data_cadastro'])

    # ==================== CARDÁPIOS ====================
    op.create_table(
        'cardapios',
        sa.Column('id', sa.Integer(), nullable=False),
        _dono(),
        sa.Column('nome', sa.String(length=255), nullable=False),
        sa.Column('tipo_cardapio', sa.String(length=6), nullable=False),
        sa.Column('quantidade_total', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('preco_itens_centavos', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('margem_lucro_percentual', sa.Float(), nullable=False, server_default='0'),
        sa.Column('preco_total', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('descricao', sa.Text(), nullable=True),
        sa.Column('ativo', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_datas(),
        sa.PrimaryKeyConstraint('id')
    )
    _indices('cardapios', ['id', 'id_usuario', 'data_cadastro'])

    op.create_table(
        'cardapios_itens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('cardapio_id', sa.Integer(), sa.ForeignKey('cardapios.id', ondelete='CASCADE'), nullable=False),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('itens.id'), nullable=False),
        sa.Column('quantidade', sa.Integer(), nullable=False),
        sa.Column('valor_unitario_centavos', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id')
    )
    _indices('cardapios_itens', ['id', 'cardapio_id', 'item_id'])

    # ==================== PEDIDOS ====================
    op.create_table(
        'pedidos',
        sa.Column('id', sa.Integer(), nullable=False),
        _dono(),
        sa.Column('estabelecimento_id', sa.Integer(), sa.ForeignKey('estabelecimentos.id'), nullable=False),
        sa.Column('cliente_id', sa.Integer(), sa.ForeignKey('clientes.id'), nullable=True),
        sa.Column('tipo_pedido', sa.String(length=9), nullable=False),
        sa.Column('codigo', sa.String(length=20), nullable=False),
        sa.Column('observacao', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=10), nullable=False, server_default='Pendente'),
        sa.Column('valor_total', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('data_hora_finalizado', sa.DateTime(), nullable=True),
        *_datas(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('id_usuario', 'codigo', name='uq_pedidos_usuario_codigo')
    )
    _indices('pedidos', ['id', 'id_usuario', 'estabelecimento_id', 'cliente_id', 'codigo', 'status', 'data_cadastro'])

    op.create_table(
        'pedidos_cardapios',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('pedido_id', sa.Integer(), sa.ForeignKey('pedidos.id', ondelete='CASCADE'), nullable=False),
        sa.Column('cardapio_id', sa.Integer(), sa.ForeignKey('cardapios.id'), nullable=False),
        sa.Column('preco_total', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id')
    )
    _indices('pedidos_cardapios', ['id', 'pedido_id', 'cardapio_id'])

    op.create_table(
        'pedidos_itens_extras',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('pedido_id', sa.Integer(), sa.ForeignKey('pedidos.id', ondelete='CASCADE'), nullable=False),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('itens.id'), nullable=False),
        sa.Column('categoria_id', sa.Integer(), sa.ForeignKey('itens_categorias.id'), nullable=False),
        sa.Column('quantidade', sa.Integer(), nullable=False),
        sa.Column('valor_unitario', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id')
    )
    _indices('pedidos_itens_extras', ['id', 'pedido_id', 'item_id'])

    # ==================== ABASTECIMENTOS ====================
    op.create_table(
        'abastecimentos',
        sa.Column('id', sa.Integer(), nullable=False),
        _dono(),
        sa.Column('estabelecimento_id', sa.Integer(), sa.ForeignKey('estabelecimentos.id'), nullable=False),
        sa.Column('fornecedores_ids', sa.JSON(), nullable=False),
        sa.Column('categoria_id', sa.Integer(), sa.ForeignKey('itens_categorias.id'), nullable=False),
        sa.Column('quantidade_total', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('telefone', sa.String(length=20), nullable=True),
        sa.Column('ddi', sa.String(length=6), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('data_hora_recebido', sa.DateTime(), nullable=True),
        sa.Column('observacao', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=9), nullable=False, server_default='Pendente'),
        sa.Column('email_enviado', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('codigo', sa.String(length=8), nullable=True),
        *_datas(),
        sa.PrimaryKeyConstraint('id')
    )
    _indices('abastecimentos', ['id', 'id_usuario', 'estabelecimento_id', 'status', 'codigo', 'data_cadastro'])

    op.create_table(
        'abastecimentos_itens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column(
            'abastecimento_id', sa.Integer(),
            sa.ForeignKey('abastecimentos.id', ondelete='CASCADE'), nullable=False
        ),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('itens.id'), nullable=False),
        sa.Column('quantidade', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    _indices('abastecimentos_itens', ['id', 'abastecimento_id', 'item_id'])

    op.create_table(
        'abastecimentos_enderecos',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column(
            'abastecimento_id', sa.Integer(),
            sa.ForeignKey('abastecimentos.id', ondelete='CASCADE'), nullable=False, unique=True
        ),
        *_endereco(),
        sa.PrimaryKeyConstraint('id')
    )
    _indices('abastecimentos_enderecos', ['id'])

    # ==================== ENTREGAS ====================
    op.create_table(
        'entregas',
        sa.Column('id', sa.Integer(), nullable=False),
        _dono(),
        sa.Column('estabelecimento_id', sa.Integer(), sa.ForeignKey('estabelecimentos.id'), nullable=False),
        sa.Column('tipo_entrega', sa.String(length=8), nullable=False),
        sa.Column('pedido_id', sa.Integer(), sa.ForeignKey('pedidos.id'), nullable=True),
        sa.Column('codigo_pedido_app', sa.String(length=60), nullable=True),
        sa.Column('valor_pedido', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('taxa_extra', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('valor_entrega', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('forma_pagamento', sa.String(length=17), nullable=False),
        sa.Column('cliente_id', sa.Integer(), sa.ForeignKey('clientes.id'), nullable=True),
        sa.Column('ddi', sa.String(length=6), nullable=True),
        sa.Column('telefone', sa.String(length=15), nullable=True),
        sa.Column('data_hora_saida', sa.DateTime(), nullable=True),
        sa.Column('data_hora_entregue', sa.DateTime(), nullable=True),
        sa.Column('observacao', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=9), nullable=False, server_default='Pendente'),
        *_datas(),
        sa.PrimaryKeyConstraint('id')
    )
    _indices('entregas', ['id', 'id_usuario', 'estabelecimento_id', 'pedido_id', 'cliente_id', 'status', 'data_cadastro'])

    op.create_table(
        'entregas_enderecos',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('entrega_id', sa.Integer(), sa.ForeignKey('entregas.id', ondelete='CASCADE'), nullable=False, unique=True),
        *_endereco(),
        sa.PrimaryKeyConstraint('id')
    )
    _indices('entregas_enderecos', ['id'])

    # ==================== FINANCEIRO ====================
    op.create_table(
        'financeiro_transacoes',
        sa.Column('id', sa.Integer(), nullable=False),
        _dono(),
        sa.Column('estabelecimento_id', sa.Integer(), sa.ForeignKey('estabelecimentos.id'), nullable=False),
        sa.Column('tipo', sa.String(length=7), nullable=False),
        sa.Column('categoria', sa.String(length=120), nullable=False),
        sa.Column('valor', sa.Integer(), nullable=False),
        sa.Column('data_transacao', sa.DateTime(), nullable=True),
        sa.Column('descricao', sa.Text(), nullable=True),
        sa.Column('ativo', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_datas(),
        sa.PrimaryKeyConstraint('id')
    )
    _indices('financeiro_transacoes', ['id', 'id_usuario', 'estabelecimento_id', 'tipo', 'data_transacao', 'data_cadastro'])

    # ==================== COMUNICAÇÕES ====================
    op.create_table(
        'comunicacoes',
        sa.Column('id', sa.Integer(), nullable=False),
        _dono(),
        sa.Column('estabelecimento_id', sa.Integer(), sa.ForeignKey('estabelecimentos.id'), nullable=False),
        sa.Column('tipo_comunicacao', sa.String(length=10), nullable=False),
        sa.Column('assunto', sa.String(length=255), nullable=False),
        sa.Column('mensagem', sa.Text(), nullable=False),
        sa.Column('destinatarios_tipo', sa.String(length=23), nullable=False),
        sa.Column('clientes_ids', sa.JSON(), nullable=False),
        sa.Column('fornecedores_ids', sa.JSON(), nullable=False),
        sa.Column('destinatarios_text', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=9), nullable=False, server_default='Pendente'),
        sa.Column('email_enviado', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('data_hora_enviado', sa.DateTime(), nullable=True),
        *_datas(),
        sa.PrimaryKeyConstraint('id')
    )
    _indices('comunicacoes', ['id', 'id_usuario', 'estabelecimento_id', 'status', 'data_cadastro'])

    # ==================== SUPORTE ====================
    op.create_table(
        'suportes',
        sa.Column('id', sa.Integer(), nullable=False),
        _dono(),
        sa.Column('tipo', sa.String(length=10), nullable=False),
        sa.Column('prioridade', sa.String(length=5), nullable=False),
        sa.Column('nome_usuario', sa.String(length=255), nullable=False),
        sa.Column('email_usuario', sa.String(length=255), nullable=False),
        sa.Column('titulo', sa.String(length=255), nullable=False),
        sa.Column('descricao', sa.Text(), nullable=False),
        sa.Column('status', sa.String(length=12), nullable=False, server_default='Aberto'),
        sa.Column('resposta_admin', sa.Text(), nullable=True),
        sa.Column('data_resposta_admin', sa.DateTime(), nullable=True),
        *_datas(),
        sa.PrimaryKeyConstraint('id')
    )
    _indices('suportes', ['id', 'id_usuario', 'status', 'data_cadastro'])

    op.create_table(
        'suportes_eventos',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('suporte_id', sa.Integer(), sa.ForeignKey('suportes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('tipo_evento', sa.String(length=40), nullable=False),
        sa.Column('detalhes', sa.Text(), nullable=True),
        sa.Column('data_cadastro', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    _indices('suportes_eventos', ['id', 'suporte_id'])


def downgrade() -> None:
    for tabela in [
        'suportes_eventos', 'suportes', 'comunicacoes', 'financeiro_transacoes',
        'entregas_enderecos', 'entregas', 'abastecimentos_enderecos', 'abastecimentos_itens', 'abastecimentos',
        'pedidos_itens_extras', 'pedidos_cardapios', 'pedidos', 'cardapios_itens', 'cardapios',
        'itens', 'itens_categorias', 'fornecedores_enderecos', 'fornecedores',
        'clientes_enderecos', 'clientes', 'estabelecimentos_enderecos', 'estabelecimentos',
        'audit_logs', 'registration_attempts', 'login_attempts', 'usuarios_contatos', 'usuarios',
    ]:
        op.drop_table(tabela)
