from sqlalchemy import (
    Column, Integer, String, DateTime, Date, ForeignKey, Boolean, Text, Float,
    Enum, JSON, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from foodmax.database import Base
import enum


def _enum(enum_cls):
    """Enum persistido pelo valor ("QR Code", "Café"), não pelo nome do membro"""
    return Enum(
        enum_cls,
        values_callable=lambda membros: [m.value for m in membros],
        native_enum=False,
        validate_strings=True,
    )


# ==================== ENUMS ====================
class RoleUsuario(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"


class TipoEstabelecimento(str, enum.Enum):
    RESTAURANTE = "Restaurante"
    BAR = "Bar"
    LANCHERIA = "Lancheria"
    CHURRASCARIA = "Churrascaria"
    PETISCARIA = "Petiscaria"
    PIZZARIA = "Pizzaria"
    OUTRO = "Outro"


class Genero(str, enum.Enum):
    MASCULINO = "Masculino"
    FEMININO = "Feminino"
    OUTRO = "Outro"


class UnidadeMedida(str, enum.Enum):
    GRAMA = "Grama"
    QUILOGRAMA = "Quilograma"
    MILILITRO = "Mililitro"
    LITRO = "Litro"
    UNIDADE = "Unidade"
    DUZIA = "Dúzia"
    CAIXA = "Caixa"
    PACOTE = "Pacote"
    FATIA = "Fatia"
    XICARA = "Xícara"
    COLHER_SOPA = "Colher de sopa"
    COLHER_CHA = "Colher de chá"


class TipoCardapio(str, enum.Enum):
    CAFE = "Café"
    ALMOCO = "Almoço"
    JANTA = "Janta"
    LANCHE = "Lanche"
    BEBIDA = "Bebida"
    OUTRO = "Outro"


class TipoPedido(str, enum.Enum):
    ATENDENTE = "Atendente"
    QR_CODE = "QR Code"
    APP = "APP"
    OUTRO = "Outro"


class StatusPedido(str, enum.Enum):
    PENDENTE = "Pendente"
    FINALIZADO = "Finalizado"
    CANCELADO = "Cancelado"


class StatusAbastecimento(str, enum.Enum):
    PENDENTE = "Pendente"
    ENVIADO = "Enviado"
    RECEBIDO = "Recebido"
    CANCELADO = "Cancelado"


class TipoEntrega(str, enum.Enum):
    PROPRIA = "Própria"
    IFOOD = "iFood"
    RAPPI = "Rappi"
    UBEREATS = "UberEats"
    OUTRO = "Outro"


class FormaPagamento(str, enum.Enum):
    PIX = "PIX"
    CARTAO_DEBITO = "Cartão de Débito"
    CARTAO_CREDITO = "Cartão de Crédito"
    DINHEIRO = "Dinheiro"
    OUTRO = "Outro"


class StatusEntrega(str, enum.Enum):
    PENDENTE = "Pendente"
    SAIU = "Saiu"
    ENTREGUE = "Entregue"
    CANCELADO = "Cancelado"


class TipoTransacao(str, enum.Enum):
    RECEITA = "Receita"
    DESPESA = "Despesa"


class TipoComunicacao(str, enum.Enum):
    PROMOCAO = "Promoção"
    FORNECEDOR = "Fornecedor"
    OUTRO = "Outro"


class DestinatariosTipo(str, enum.Enum):
    TODOS_CLIENTES = "TodosClientes"
    CLIENTES_ESPECIFICOS = "ClientesEspecificos"
    TODOS_FORNECEDORES = "TodosFornecedores"
    FORNECEDORES_ESPECIFICOS = "FornecedoresEspecificos"
    OUTROS = "Outros"


class StatusComunicacao(str, enum.Enum):
    PENDENTE = "Pendente"
    ENVIADO = "Enviado"
    CANCELADO = "Cancelado"


class TipoSuporte(str, enum.Enum):
    TECNICO = "Técnico"
    FINANCEIRO = "Financeiro"
    DUVIDA = "Dúvida"
    SUGESTAO = "Sugestão"
    RECLAMACAO = "Reclamação"
    OUTRO = "Outro"


class PrioridadeSuporte(str, enum.Enum):
    BAIXA = "Baixa"
    MEDIA = "Média"
    ALTA = "Alta"


class StatusSuporte(str, enum.Enum):
    ABERTO = "Aberto"
    EM_ANDAMENTO = "Em Andamento"
    RESOLVIDO = "Resolvido"
    FECHADO = "Fechado"


# ==================== MIXINS ====================
class Auditavel:
    """Datas de cadastro e atualização de toda tabela do usuário"""
    data_cadastro = Column(DateTime, server_default=func.now(), index=True)
    data_atualizacao = Column(DateTime, server_default=func.now(), onupdate=func.now())


class EnderecoMixin:
    cep = Column(String(8))
    endereco = Column(String(255))
    cidade = Column(String(100))
    uf = Column(String(2))
    pais = Column(String(60), default="Brasil")


# ==================== USUÁRIOS ====================
class Usuario(Base):
    """Conta da plataforma; dona transitiva de todos os demais registros"""
    __tablename__ = "usuarios"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    senha_hash = Column(String(255), nullable=False)
    role = Column(_enum(RoleUsuario), default=RoleUsuario.USER, nullable=False)
    ativo = Column(Boolean, default=True, nullable=False)
    onboarding = Column(Boolean, default=False, nullable=False)
    data_pagamento = Column(DateTime, nullable=True)
    ip = Column(String(64))
    data_cadastro = Column(DateTime, server_default=func.now())
    data_atualizacao = Column(DateTime, server_default=func.now(), onupdate=func.now())

    contatos = relationship("UsuarioContato", back_populates="usuario", cascade="all, delete-orphan")

    @property
    def is_admin(self) -> bool:
        return self.role == RoleUsuario.ADMIN

    @property
    def plano_pago(self) -> bool:
        """Admin conta como plano pago; demais dependem da data de pagamento"""
        return self.is_admin or self.data_pagamento is not None


class UsuarioContato(EnderecoMixin, Base):
    __tablename__ = "usuarios_contatos"

    id = Column(Integer, primary_key=True, index=True)
    usuario_id = Column(Integer, ForeignKey("usuarios.id", ondelete="CASCADE"), nullable=False, index=True)
    nome = Column(String(255), nullable=False)
    ddi = Column(String(6), default="+55")
    telefone = Column(String(20))
    data_cadastro = Column(DateTime, server_default=func.now())

    usuario = relationship("Usuario", back_populates="contatos")


class LoginAttempt(Base):
    """Contador diário de tentativas de login por IP + email"""
    __tablename__ = "login_attempts"

    id = Column(Integer, primary_key=True, index=True)
    ip = Column(String(64), nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)
    attempt_date = Column(Date, nullable=False, index=True)
    attempts_count = Column(Integer, default=0, nullable=False)
    last_attempt = Column(DateTime)


class RegistrationAttempt(Base):
    """Contador diário de contas criadas por IP"""
    __tablename__ = "registration_attempts"

    id = Column(Integer, primary_key=True, index=True)
    ip = Column(String(64), nullable=False, index=True)
    registration_date = Column(Date, nullable=False, index=True)
    registrations_count = Column(Integer, default=0, nullable=False)


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("usuarios.id", ondelete="SET NULL"), nullable=True, index=True)
    action = Column(String(50), nullable=False, index=True)
    resource = Column(String(50), nullable=False, index=True)
    resource_id = Column(Integer)
    details = Column(Text)
    ip_address = Column(String(64))
    user_agent = Column(String(255))
    timestamp = Column(DateTime, server_default=func.now(), index=True)


# ==================== ESTABELECIMENTOS ====================
class Estabelecimento(Auditavel, Base):
    __tablename__ = "estabelecimentos"

    id = Column(Integer, primary_key=True, index=True)
    id_usuario = Column(Integer, ForeignKey("usuarios.id", ondelete="CASCADE"), nullable=False, index=True)
    nome = Column(String(255), nullable=False)
    razao_social = Column(String(255))
    cnpj = Column(String(14))
    tipo_estabelecimento = Column(_enum(TipoEstabelecimento), default=TipoEstabelecimento.RESTAURANTE, nullable=False)
    email = Column(String(255), nullable=False)
    ddi = Column(String(6), default="+55")
    telefone = Column(String(20))
    ativo = Column(Boolean, default=True, nullable=False)

    endereco = relationship(
        "EstabelecimentoEndereco", uselist=False, cascade="all, delete-orphan",
        back_populates="estabelecimento",
    )
    clientes = relationship("Cliente", back_populates="estabelecimento")


class EstabelecimentoEndereco(EnderecoMixin, Base):
    __tablename__ = "estabelecimentos_enderecos"

    id = Column(Integer, primary_key=True, index=True)
    estabelecimento_id = Column(
        Integer, ForeignKey("estabelecimentos.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    estabelecimento = relationship("Estabelecimento", back_populates="endereco")


# ==================== CLIENTES ====================
class Cliente(Auditavel, Base):
    __tablename__ = "clientes"

    id = Column(Integer, primary_key=True, index=True)
    id_usuario = Column(Integer, ForeignKey("usuarios.id", ondelete="CASCADE"), nullable=False, index=True)
    estabelecimento_id = Column(Integer, ForeignKey("estabelecimentos.id"), nullable=False, index=True)
    nome = Column(String(255), nullable=False)
    genero = Column(_enum(Genero), nullable=True)
    profissao = Column(String(120))
    email = Column(String(255))
    ddi = Column(String(6), default="+55")
    telefone = Column(String(20))
    ativo = Column(Boolean, default=True, nullable=False)
    aceita_promocao_email = Column(Boolean, default=False, nullable=False)

    estabelecimento = relationship("Estabelecimento", back_populates="clientes")
    endereco = relationship(
        "ClienteEndereco", uselist=False, cascade="all, delete-orphan", back_populates="cliente"
    )

    @property
    def estabelecimento_nome(self):
        return self.estabelecimento.nome if self.estabelecimento else None


class ClienteEndereco(EnderecoMixin, Base):
    __tablename__ = "clientes_enderecos"

    id = Column(Integer, primary_key=True, index=True)
    cliente_id = Column(Integer, ForeignKey("clientes.id", ondelete="CASCADE"), nullable=False, unique=True)

    cliente = relationship("Cliente", back_populates="endereco")


# ==================== FORNECEDORES ====================
class Fornecedor(Auditavel, Base):
    __tablename__ = "fornecedores"

    id = Column(Integer, primary_key=True, index=True)
    id_usuario = Column(Integer, ForeignKey("usuarios.id", ondelete="CASCADE"), nullable=False, index=True)
    nome = Column(String(255), nullable=False)
    razao_social = Column(String(255))
    cnpj = Column(String(14))
    email = Column(String(255), nullable=False)
    ddi = Column(String(6), default="+55")
    telefone = Column(String(20))
    nome_responsavel = Column(String(255))
    ativo = Column(Boolean, default=True, nullable=False)

    endereco = relationship(
        "FornecedorEndereco", uselist=False, cascade="all, delete-orphan", back_populates="fornecedor"
    )


class FornecedorEndereco(EnderecoMixin, Base):
    __tablename__ = "fornecedores_enderecos"

    id = Column(Integer, primary_key=True, index=True)
    fornecedor_id = Column(Integer, ForeignKey("fornecedores.id", ondelete="CASCADE"), nullable=False, unique=True)

    fornecedor = relationship("Fornecedor", back_populates="endereco")


# ==================== ITENS ====================
class ItemCategoria(Auditavel, Base):
    __tablename__ = "itens_categorias"

    id = Column(Integer, primary_key=True, index=True)
    id_usuario = Column(Integer, ForeignKey("usuarios.id", ondelete="CASCADE"), nullable=False, index=True)
    nome = Column(String(120), nullable=False)
    descricao = Column(Text)
    ativo = Column(Boolean, default=True, nullable=False)

    itens = relationship("Item", back_populates="categoria")


class Item(Auditavel, Base):
    __tablename__ = "itens"

    id = Column(Integer, primary_key=True, index=True)
    id_usuario = Column(Integer, ForeignKey("usuarios.id", ondelete="CASCADE"), nullable=False, index=True)
    categoria_id = Column(Integer, ForeignKey("itens_categorias.id"), nullable=False, index=True)
    nome = Column(String(255), nullable=False)
    preco_centavos = Column(Integer, default=0, nullable=False)
    custo_pago_centavos = Column(Integer, default=0, nullable=False)
    unidade_medida = Column(_enum(UnidadeMedida), nullable=True)
    peso_gramas = Column(Integer, nullable=True)
    estoque_atual = Column(Integer, default=0, nullable=False)
    ativo = Column(Boolean, default=True, nullable=False)

    categoria = relationship("ItemCategoria", back_populates="itens")

    @property
    def categoria_nome(self):
        return self.categoria.nome if self.categoria else None


# ==================== CARDÁPIOS ====================
class Cardapio(Auditavel, Base):
    __tablename__ = "cardapios"

    id = Column(Integer, primary_key=True, index=True)
    id_usuario = Column(Integer, ForeignKey("usuarios.id", ondelete="CASCADE"), nullable=False, index=True)
    nome = Column(String(255), nullable=False)
    tipo_cardapio = Column(_enum(TipoCardapio), nullable=False)
    quantidade_total = Column(Integer, default=0, nullable=False)
    preco_itens_centavos = Column(Integer, default=0, nullable=False)
    margem_lucro_percentual = Column(Float, default=0, nullable=False)
    preco_total = Column(Integer, default=0, nullable=False)
    descricao = Column(Text)
    ativo = Column(Boolean, default=True, nullable=False)

    itens = relationship(
        "CardapioItem", back_populates="cardapio", cascade="all, delete-orphan", order_by="CardapioItem.id"
    )

    @property
    def qtde_itens(self) -> int:
        return len(self.itens)


class CardapioItem(Base):
    __tablename__ = "cardapios_itens"

    id = Column(Integer, primary_key=True, index=True)
    cardapio_id = Column(Integer, ForeignKey("cardapios.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("itens.id"), nullable=False, index=True)
    quantidade = Column(Integer, nullable=False)
    valor_unitario_centavos = Column(Integer, default=0, nullable=False)

    cardapio = relationship("Cardapio", back_populates="itens")
    item = relationship("Item")

    @property
    def item_nome(self):
        return self.item.nome if self.item else None

    @property
    def categoria_nome(self):
        return self.item.categoria_nome if self.item else None

    @property
    def item_estoque_atual(self):
        return self.item.estoque_atual if self.item else None


# ==================== PEDIDOS ====================
class Pedido(Auditavel, Base):
    __tablename__ = "pedidos"
    __table_args__ = (UniqueConstraint("id_usuario", "codigo", name="uq_pedidos_usuario_codigo"),)

    id = Column(Integer, primary_key=True, index=True)
    id_usuario = Column(Integer, ForeignKey("usuarios.id", ondelete="CASCADE"), nullable=False, index=True)
    estabelecimento_id = Column(Integer, ForeignKey("estabelecimentos.id"), nullable=False, index=True)
    cliente_id = Column(Integer, ForeignKey("clientes.id"), nullable=True, index=True)
    tipo_pedido = Column(_enum(TipoPedido), nullable=False)
    codigo = Column(String(20), nullable=False, index=True)
    observacao = Column(Text)
    status = Column(_enum(StatusPedido), default=StatusPedido.PENDENTE, nullable=False, index=True)
    valor_total = Column(Integer, default=0, nullable=False)
    data_hora_finalizado = Column(DateTime, nullable=True)

    estabelecimento = relationship("Estabelecimento")
    cliente = relationship("Cliente")
    cardapios = relationship(
        "PedidoCardapio", back_populates="pedido", cascade="all, delete-orphan", order_by="PedidoCardapio.id"
    )
    itens_extras = relationship(
        "PedidoItemExtra", back_populates="pedido", cascade="all, delete-orphan", order_by="PedidoItemExtra.id"
    )

    @property
    def estabelecimento_nome(self):
        return self.estabelecimento.nome if self.estabelecimento else None

    @property
    def cliente_nome(self):
        return self.cliente.nome if self.cliente else None


class PedidoCardapio(Base):
    __tablename__ = "pedidos_cardapios"

    id = Column(Integer, primary_key=True, index=True)
    pedido_id = Column(Integer, ForeignKey("pedidos.id", ondelete="CASCADE"), nullable=False, index=True)
    cardapio_id = Column(Integer, ForeignKey("cardapios.id"), nullable=False, index=True)
    preco_total = Column(Integer, default=0, nullable=False)

    pedido = relationship("Pedido", back_populates="cardapios")
    cardapio = relationship("Cardapio")

    @property
    def cardapio_nome(self):
        return self.cardapio.nome if self.cardapio else None


class PedidoItemExtra(Base):
    __tablename__ = "pedidos_itens_extras"

    id = Column(Integer, primary_key=True, index=True)
    pedido_id = Column(Integer, ForeignKey("pedidos.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("itens.id"), nullable=False, index=True)
    categoria_id = Column(Integer, ForeignKey("itens_categorias.id"), nullable=False)
    quantidade = Column(Integer, nullable=False)
    valor_unitario = Column(Integer, default=0, nullable=False)

    pedido = relationship("Pedido", back_populates="itens_extras")
    item = relationship("Item")
    categoria = relationship("ItemCategoria")

    @property
    def item_nome(self):
        return self.item.nome if self.item else None

    @property
    def estoque_atual(self):
        return self.item.estoque_atual if self.item else None

    @property
    def categoria_nome(self):
        return self.categoria.nome if self.categoria else None


# ==================== ABASTECIMENTOS ====================
class Abastecimento(Auditavel, Base):
    __tablename__ = "abastecimentos"

    id = Column(Integer, primary_key=True, index=True)
    id_usuario = Column(Integer, ForeignKey("usuarios.id", ondelete="CASCADE"), nullable=False, index=True)
    estabelecimento_id = Column(Integer, ForeignKey("estabelecimentos.id"), nullable=False, index=True)
    fornecedores_ids = Column(JSON, nullable=False, default=list)
    categoria_id = Column(Integer, ForeignKey("itens_categorias.id"), nullable=False)
    quantidade_total = Column(Integer, default=0, nullable=False)
    telefone = Column(String(20))
    ddi = Column(String(6), default="+55")
    email = Column(String(255))
    data_hora_recebido = Column(DateTime, nullable=True)
    observacao = Column(Text)
    status = Column(_enum(StatusAbastecimento), default=StatusAbastecimento.PENDENTE, nullable=False, index=True)
    email_enviado = Column(Boolean, default=False, nullable=False)
    codigo = Column(String(8), index=True)

    estabelecimento = relationship("Estabelecimento")
    categoria = relationship("ItemCategoria")
    itens = relationship(
        "AbastecimentoItem", back_populates="abastecimento", cascade="all, delete-orphan",
        order_by="AbastecimentoItem.id",
    )
    endereco = relationship(
        "AbastecimentoEndereco", uselist=False, cascade="all, delete-orphan", back_populates="abastecimento"
    )

    @property
    def estabelecimento_nome(self):
        return self.estabelecimento.nome if self.estabelecimento else None

    @property
    def categoria_nome(self):
        return self.categoria.nome if self.categoria else None

    @property
    def qtde_itens(self) -> int:
        return len(self.itens)


class AbastecimentoItem(Base):
    __tablename__ = "abastecimentos_itens"

    id = Column(Integer, primary_key=True, index=True)
    abastecimento_id = Column(Integer, ForeignKey("abastecimentos.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("itens.id"), nullable=False, index=True)
    quantidade = Column(Integer, nullable=False)

    abastecimento = relationship("Abastecimento", back_populates="itens")
    item = relationship("Item")

    @property
    def item_nome(self):
        return self.item.nome if self.item else None

    @property
    def estoque_atual(self):
        return self.item.estoque_atual if self.item else None


class AbastecimentoEndereco(EnderecoMixin, Base):
    __tablename__ = "abastecimentos_enderecos"

    id = Column(Integer, primary_key=True, index=True)
    abastecimento_id = Column(
        Integer, ForeignKey("abastecimentos.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    abastecimento = relationship("Abastecimento", back_populates="endereco")


# ==================== ENTREGAS ====================
class Entrega(Auditavel, Base):
    __tablename__ = "entregas"

    id = Column(Integer, primary_key=True, index=True)
    id_usuario = Column(Integer, ForeignKey("usuarios.id", ondelete="CASCADE"), nullable=False, index=True)
    estabelecimento_id = Column(Integer, ForeignKey("estabelecimentos.id"), nullable=False, index=True)
    tipo_entrega = Column(_enum(TipoEntrega), default=TipoEntrega.PROPRIA, nullable=False)
    pedido_id = Column(Integer, ForeignKey("pedidos.id"), nullable=True, index=True)
    codigo_pedido_app = Column(String(60))
    valor_pedido = Column(Integer, default=0, nullable=False)
    taxa_extra = Column(Integer, default=0, nullable=False)
    valor_entrega = Column(Integer, default=0, nullable=False)
    forma_pagamento = Column(_enum(FormaPagamento), default=FormaPagamento.PIX, nullable=False)
    cliente_id = Column(Integer, ForeignKey("clientes.id"), nullable=True, index=True)
    ddi = Column(String(6), default="+55")
    telefone = Column(String(15))
    data_hora_saida = Column(DateTime, nullable=True)
    data_hora_entregue = Column(DateTime, nullable=True)
    observacao = Column(Text)
    status = Column(_enum(StatusEntrega), default=StatusEntrega.PENDENTE, nullable=False, index=True)

    estabelecimento = relationship("Estabelecimento")
    pedido = relationship("Pedido")
    cliente = relationship("Cliente")
    endereco = relationship(
        "EntregaEndereco", uselist=False, cascade="all, delete-orphan", back_populates="entrega"
    )

    @property
    def estabelecimento_nome(self):
        return self.estabelecimento.nome if self.estabelecimento else None

    @property
    def pedido_codigo(self):
        return self.pedido.codigo if self.pedido else None

    @property
    def pedido_valor_total(self):
        return self.pedido.valor_total if self.pedido else None

    @property
    def cliente_nome(self):
        return self.cliente.nome if self.cliente else None


class EntregaEndereco(EnderecoMixin, Base):
    __tablename__ = "entregas_enderecos"

    id = Column(Integer, primary_key=True, index=True)
    entrega_id = Column(Integer, ForeignKey("entregas.id", ondelete="CASCADE"), nullable=False, unique=True)

    entrega = relationship("Entrega", back_populates="endereco")


# ==================== FINANCEIRO ====================
class FinanceiroTransacao(Auditavel, Base):
    __tablename__ = "financeiro_transacoes"

    id = Column(Integer, primary_key=True, index=True)
    id_usuario = Column(Integer, ForeignKey("usuarios.id", ondelete="CASCADE"), nullable=False, index=True)
    estabelecimento_id = Column(Integer, ForeignKey("estabelecimentos.id"), nullable=False, index=True)
    tipo = Column(_enum(TipoTransacao), nullable=False, index=True)
    categoria = Column(String(120), nullable=False)
    valor = Column(Integer, nullable=False)
    data_transacao = Column(DateTime, nullable=True, index=True)
    descricao = Column(Text)
    ativo = Column(Boolean, default=True, nullable=False)

    estabelecimento = relationship("Estabelecimento")

    @property
    def estabelecimento_nome(self):
        return self.estabelecimento.nome if self.estabelecimento else None


# ==================== COMUNICAÇÕES ====================
class Comunicacao(Auditavel, Base):
    __tablename__ = "comunicacoes"

    id = Column(Integer, primary_key=True, index=True)
    id_usuario = Column(Integer, ForeignKey("usuarios.id", ondelete="CASCADE"), nullable=False, index=True)
    estabelecimento_id = Column(Integer, ForeignKey("estabelecimentos.id"), nullable=False, index=True)
    tipo_comunicacao = Column(_enum(TipoComunicacao), nullable=False)
    assunto = Column(String(255), nullable=False)
    mensagem = Column(Text, nullable=False)
    destinatarios_tipo = Column(_enum(DestinatariosTipo), default=DestinatariosTipo.TODOS_CLIENTES, nullable=False)
    clientes_ids = Column(JSON, nullable=False, default=list)
    fornecedores_ids = Column(JSON, nullable=False, default=list)
    destinatarios_text = Column(Text)
    status = Column(_enum(StatusComunicacao), default=StatusComunicacao.PENDENTE, nullable=False, index=True)
    email_enviado = Column(Boolean, default=False, nullable=False)
    data_hora_enviado = Column(DateTime, nullable=True)

    estabelecimento = relationship("Estabelecimento")

    @property
    def estabelecimento_nome(self):
        return self.estabelecimento.nome if self.estabelecimento else None


# ==================== SUPORTE ====================
class Suporte(Auditavel, Base):
    __tablename__ = "suportes"

    id = Column(Integer, primary_key=True, index=True)
    id_usuario = Column(Integer, ForeignKey("usuarios.id", ondelete="CASCADE"), nullable=False, index=True)
    tipo = Column(_enum(TipoSuporte), nullable=False)
    prioridade = Column(_enum(PrioridadeSuporte), nullable=False)
    nome_usuario = Column(String(255), nullable=False)
    email_usuario = Column(String(255), nullable=False)
    titulo = Column(String(255), nullable=False)
    descricao = Column(Text, nullable=False)
    status = Column(_enum(StatusSuporte), default=StatusSuporte.ABERTO, nullable=False, index=True)
    resposta_admin = Column(Text)
    data_resposta_admin = Column(DateTime, nullable=True)

    eventos = relationship(
        "SuporteEvento", back_populates="suporte", cascade="all, delete-orphan", order_by="SuporteEvento.id"
    )


class SuporteEvento(Base):
    __tablename__ = "suportes_eventos"

    id = Column(Integer, primary_key=True, index=True)
    suporte_id = Column(Integer, ForeignKey("suportes.id", ondelete="CASCADE"), nullable=False, index=True)
    tipo_evento = Column(String(40), nullable=False)
    detalhes = Column(Text)
    data_cadastro = Column(DateTime, server_default=func.now())

    suporte = relationship("Suporte", back_populates="eventos")
