import re
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from foodmax.models import (
    DestinatariosTipo, FormaPagamento, Genero, PrioridadeSuporte, RoleUsuario,
    StatusAbastecimento, StatusComunicacao, StatusEntrega, StatusPedido, StatusSuporte,
    TipoCardapio, TipoComunicacao, TipoEntrega, TipoEstabelecimento, TipoPedido,
    TipoSuporte, TipoTransacao, UnidadeMedida,
)
from foodmax.services.planilhas import normalizar_ddi, only_digits
from foodmax.services.transicoes import para_utc


class Normalizado(BaseModel):
    """Normaliza campos de contato comuns a vários cadastros"""

    @field_validator("cnpj", "telefone", mode="before", check_fields=False)
    @classmethod
    def _somente_digitos(cls, v):
        if v is None:
            return None
        digitos = only_digits(v)
        return digitos or None

    @field_validator("ddi", mode="before", check_fields=False)
    @classmethod
    def _ddi(cls, v):
        if v is None:
            return None
        return normalizar_ddi(v)

    @field_validator("cnpj", check_fields=False)
    @classmethod
    def _cnpj_tamanho(cls, v):
        if v is not None and len(v) > 14:
            raise ValueError("CNPJ deve ter no máximo 14 dígitos")
        return v

    @field_validator("telefone", check_fields=False)
    @classmethod
    def _telefone_tamanho(cls, v):
        if v is not None and len(v) > 15:
            raise ValueError("Telefone deve ter no máximo 15 dígitos")
        return v


class EmailOpcional(BaseModel):
    @field_validator("email", mode="before", check_fields=False)
    @classmethod
    def _vazio_para_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class DatasUtc(BaseModel):
    @field_validator(
        "data_hora_recebido", "data_hora_saida", "data_hora_entregue", "data_transacao",
        check_fields=False,
    )
    @classmethod
    def _para_utc(cls, v):
        return para_utc(v)


# ==================== PAGINAÇÃO / LOTE ====================
class BulkDeleteRequest(BaseModel):
    ids: List[int] = Field(..., min_length=1)


class BulkIdsRequest(BaseModel):
    ids: List[int] = Field(..., min_length=1)


# ==================== ENDEREÇO ====================
class EnderecoBase(BaseModel):
    cep: Optional[str] = None
    endereco: Optional[str] = None
    cidade: Optional[str] = None
    uf: Optional[str] = Field(default=None, max_length=2)
    pais: str = "Brasil"

    @field_validator("cep", mode="before")
    @classmethod
    def _cep(cls, v):
        if v is None:
            return None
        digitos = only_digits(v)
        if len(digitos) > 8:
            raise ValueError("CEP deve ter no máximo 8 dígitos")
        return digitos or None

    @field_validator("uf", mode="before")
    @classmethod
    def _uf(cls, v):
        if v is None or not str(v).strip():
            return None
        return str(v).strip().upper()

    @field_validator("pais", mode="before")
    @classmethod
    def _pais(cls, v):
        return v or "Brasil"

    def informado(self) -> bool:
        return bool(self.cep or self.endereco or self.cidade)


class EnderecoObrigatorio(EnderecoBase):
    endereco: str = Field(..., min_length=1)
    cidade: str = Field(..., min_length=1)
    uf: str = Field(..., min_length=2, max_length=2)


class EnderecoResponse(BaseModel):
    id: int
    cep: Optional[str]
    endereco: Optional[str]
    cidade: Optional[str]
    uf: Optional[str]
    pais: Optional[str]

    class Config:
        from_attributes = True


# ==================== AUTH SCHEMAS ====================
class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    confirmPassword: str

    @field_validator("password")
    @classmethod
    def _senha_forte(cls, v):
        if len(v) < 8:
            raise ValueError("A senha deve ter pelo menos 8 caracteres")
        if not re.search(r"[A-Za-z]", v) or not re.search(r"\d", v) or not re.search(r"[^A-Za-z0-9]", v):
            raise ValueError("A senha deve conter letras, números e símbolos")
        return v

    @model_validator(mode="after")
    def _senhas_iguais(self):
        if self.password != self.confirmPassword:
            raise ValueError("As senhas não coincidem")
        return self


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class OnboardingRequest(Normalizado):
    nome: str = Field(..., min_length=1, max_length=255)
    ddi: str = "+55"
    telefone: str = Field(..., min_length=8)
    selectedPlan: Literal["free", "paid"]


class UsuarioResponse(BaseModel):
    id: int
    email: str
    role: RoleUsuario
    ativo: bool
    onboarding: bool
    data_cadastro: Optional[datetime]
    hasPayment: bool

    @classmethod
    def from_usuario(cls, usuario) -> "UsuarioResponse":
        return cls(
            id=usuario.id,
            email=usuario.email,
            role=usuario.role,
            ativo=usuario.ativo,
            onboarding=usuario.onboarding,
            data_cadastro=usuario.data_cadastro,
            hasPayment=usuario.data_pagamento is not None,
        )


# ==================== ESTABELECIMENTO SCHEMAS ====================
class EstabelecimentoBase(Normalizado):
    nome: str = Field(..., min_length=1, max_length=255)
    razao_social: Optional[str] = None
    cnpj: Optional[str] = None
    tipo_estabelecimento: TipoEstabelecimento = TipoEstabelecimento.RESTAURANTE
    email: EmailStr
    ddi: str = "+55"
    telefone: Optional[str] = None
    ativo: bool = True


class EstabelecimentoCreate(EstabelecimentoBase):
    endereco: Optional[EnderecoBase] = None


class EstabelecimentoUpdate(Normalizado):
    nome: Optional[str] = Field(default=None, min_length=1, max_length=255)
    razao_social: Optional[str] = None
    cnpj: Optional[str] = None
    tipo_estabelecimento: Optional[TipoEstabelecimento] = None
    email: Optional[EmailStr] = None
    ddi: Optional[str] = None
    telefone: Optional[str] = None
    ativo: Optional[bool] = None
    endereco: Optional[EnderecoBase] = None


class EstabelecimentoResponse(BaseModel):
    id: int
    id_usuario: int
    nome: str
    razao_social: Optional[str]
    cnpj: Optional[str]
    tipo_estabelecimento: TipoEstabelecimento
    email: str
    ddi: Optional[str]
    telefone: Optional[str]
    ativo: bool
    endereco: Optional[EnderecoResponse] = None
    data_cadastro: Optional[datetime]
    data_atualizacao: Optional[datetime]

    class Config:
        from_attributes = True


# ==================== CLIENTE SCHEMAS ====================
class ClienteCreate(Normalizado, EmailOpcional):
    estabelecimento_id: int
    nome: str = Field(..., min_length=1, max_length=255)
    genero: Optional[Genero] = None
    profissao: Optional[str] = None
    email: Optional[EmailStr] = None
    ddi: str = "+55"
    telefone: Optional[str] = None
    ativo: bool = True
    aceita_promocao_email: bool = False
    endereco: Optional[EnderecoBase] = None


class ClienteUpdate(Normalizado, EmailOpcional):
    estabelecimento_id: Optional[int] = None
    nome: Optional[str] = Field(default=None, min_length=1, max_length=255)
    genero: Optional[Genero] = None
    profissao: Optional[str] = None
    email: Optional[EmailStr] = None
    ddi: Optional[str] = None
    telefone: Optional[str] = None
    ativo: Optional[bool] = None
    aceita_promocao_email: Optional[bool] = None
    endereco: Optional[EnderecoBase] = None


class ClienteResponse(BaseModel):
    id: int
    id_usuario: int
    estabelecimento_id: int
    estabelecimento_nome: Optional[str] = None
    nome: str
    genero: Optional[Genero]
    profissao: Optional[str]
    email: Optional[str]
    ddi: Optional[str]
    telefone: Optional[str]
    ativo: bool
    aceita_promocao_email: bool
    endereco: Optional[EnderecoResponse] = None
    data_cadastro: Optional[datetime]
    data_atualizacao: Optional[datetime]

    class Config:
        from_attributes = True


# ==================== FORNECEDOR SCHEMAS ====================
class FornecedorCreate(Normalizado):
    nome: str = Field(..., min_length=1, max_length=255)
    razao_social: Optional[str] = None
    cnpj: Optional[str] = None
    email: EmailStr
    ddi: str = "+55"
    telefone: Optional[str] = None
    nome_responsavel: Optional[str] = None
    ativo: bool = True
    endereco: Optional[EnderecoBase] = None


class FornecedorUpdate(Normalizado):
    nome: Optional[str] = Field(default=None, min_length=1, max_length=255)
    razao_social: Optional[str] = None
    cnpj: Optional[str] = None
    email: Optional[EmailStr] = None
    ddi: Optional[str] = None
    telefone: Optional[str] = None
    nome_responsavel: Optional[str] = None
    ativo: Optional[bool] = None
    endereco: Optional[EnderecoBase] = None


class FornecedorResponse(BaseModel):
    id: int
    id_usuario: int
    nome: str
    razao_social: Optional[str]
    cnpj: Optional[str]
    email: str
    ddi: Optional[str]
    telefone: Optional[str]
    nome_responsavel: Optional[str]
    ativo: bool
    endereco: Optional[EnderecoResponse] = None
    data_cadastro: Optional[datetime]
    data_atualizacao: Optional[datetime]

    class Config:
        from_attributes = True


# ==================== ITENS / CATEGORIAS SCHEMAS ====================
class CategoriaCreate(BaseModel):
    nome: str = Field(..., min_length=1, max_length=120)
    descricao: Optional[str] = None
    ativo: bool = True


class CategoriaUpdate(BaseModel):
    nome: Optional[str] = Field(default=None, min_length=1, max_length=120)
    descricao: Optional[str] = None
    ativo: Optional[bool] = None


class CategoriaResponse(BaseModel):
    id: int
    id_usuario: int
    nome: str
    descricao: Optional[str]
    ativo: bool
    data_cadastro: Optional[datetime]
    data_atualizacao: Optional[datetime]

    class Config:
        from_attributes = True


class ItemCreate(BaseModel):
    categoria_id: int
    nome: str = Field(..., min_length=1, max_length=255)
    preco_centavos: int = Field(default=0, ge=0)
    custo_pago_centavos: int = Field(default=0, ge=0)
    unidade_medida: Optional[UnidadeMedida] = None
    peso_gramas: Optional[int] = Field(default=None, ge=0)
    estoque_atual: int = Field(default=0, ge=0)
    ativo: bool = True


class ItemUpdate(BaseModel):
    categoria_id: Optional[int] = None
    nome: Optional[str] = Field(default=None, min_length=1, max_length=255)
    preco_centavos: Optional[int] = Field(default=None, ge=0)
    custo_pago_centavos: Optional[int] = Field(default=None, ge=0)
    unidade_medida: Optional[UnidadeMedida] = None
    peso_gramas: Optional[int] = Field(default=None, ge=0)
    estoque_atual: Optional[int] = Field(default=None, ge=0)
    ativo: Optional[bool] = None


class ItemResponse(BaseModel):
    id: int
    id_usuario: int
    categoria_id: int
    categoria_nome: Optional[str] = None
    nome: str
    preco_centavos: int
    custo_pago_centavos: int
    unidade_medida: Optional[UnidadeMedida]
    peso_gramas: Optional[int]
    estoque_atual: int
    ativo: bool
    data_cadastro: Optional[datetime]
    data_atualizacao: Optional[datetime]

    class Config:
        from_attributes = True


# ==================== CARDÁPIO SCHEMAS ====================
class CardapioItemIn(BaseModel):
    item_id: int
    quantidade: int = Field(..., gt=0)
    valor_unitario_centavos: int = Field(default=0, ge=0)


class CardapioCreate(BaseModel):
    nome: str = Field(..., min_length=1, max_length=255)
    tipo_cardapio: TipoCardapio
    margem_lucro_percentual: float = Field(default=0, ge=0)
    preco_total: int = Field(default=0, ge=0)
    descricao: Optional[str] = None
    ativo: bool = True
    itens: List[CardapioItemIn] = []


class CardapioUpdate(BaseModel):
    nome: Optional[str] = Field(default=None, min_length=1, max_length=255)
    tipo_cardapio: Optional[TipoCardapio] = None
    margem_lucro_percentual: Optional[float] = Field(default=None, ge=0)
    preco_total: Optional[int] = Field(default=None, ge=0)
    descricao: Optional[str] = None
    ativo: Optional[bool] = None
    itens: Optional[List[CardapioItemIn]] = None


class CardapioItemResponse(BaseModel):
    id: int
    item_id: int
    quantidade: int
    valor_unitario_centavos: int
    item_nome: Optional[str] = None
    categoria_nome: Optional[str] = None
    item_estoque_atual: Optional[int] = None

    class Config:
        from_attributes = True


class CardapioResponse(BaseModel):
    id: int
    id_usuario: int
    nome: str
    tipo_cardapio: TipoCardapio
    quantidade_total: int
    preco_itens_centavos: int
    margem_lucro_percentual: float
    preco_total: int
    descricao: Optional[str]
    ativo: bool
    qtde_itens: int = 0
    data_cadastro: Optional[datetime]
    data_atualizacao: Optional[datetime]

    class Config:
        from_attributes = True


class CardapioDetalhe(CardapioResponse):
    itens: List[CardapioItemResponse] = []


# ==================== PEDIDO SCHEMAS ====================
class PedidoCardapioIn(BaseModel):
    cardapio_id: int
    preco_total: Optional[int] = Field(default=None, ge=0)


class PedidoItemExtraIn(BaseModel):
    item_id: int
    categoria_id: int
    quantidade: int = Field(..., gt=0)
    valor_unitario: int = Field(default=0, ge=0)


class PedidoCreate(BaseModel):
    estabelecimento_id: int
    cliente_id: Optional[int] = None
    tipo_pedido: TipoPedido
    codigo: Optional[str] = Field(default=None, max_length=20)
    observacao: Optional[str] = None
    status: StatusPedido = StatusPedido.PENDENTE
    valor_total: int = Field(default=0, ge=0)
    cardapios: List[PedidoCardapioIn] = []
    itens_extras: List[PedidoItemExtraIn] = []


class PedidoUpdate(BaseModel):
    estabelecimento_id: Optional[int] = None
    cliente_id: Optional[int] = None
    tipo_pedido: Optional[TipoPedido] = None
    codigo: Optional[str] = Field(default=None, max_length=20)
    observacao: Optional[str] = None
    status: Optional[StatusPedido] = None
    valor_total: Optional[int] = Field(default=None, ge=0)
    cardapios: Optional[List[PedidoCardapioIn]] = None
    itens_extras: Optional[List[PedidoItemExtraIn]] = None


class PedidoCardapioResponse(BaseModel):
    id: int
    cardapio_id: int
    preco_total: int
    cardapio_nome: Optional[str] = None

    class Config:
        from_attributes = True


class PedidoItemExtraResponse(BaseModel):
    id: int
    item_id: int
    categoria_id: int
    quantidade: int
    valor_unitario: int
    item_nome: Optional[str] = None
    estoque_atual: Optional[int] = None
    categoria_nome: Optional[str] = None

    class Config:
        from_attributes = True


class PedidoResponse(BaseModel):
    id: int
    id_usuario: int
    estabelecimento_id: int
    estabelecimento_nome: Optional[str] = None
    cliente_id: Optional[int]
    cliente_nome: Optional[str] = None
    tipo_pedido: TipoPedido
    codigo: str
    observacao: Optional[str]
    status: StatusPedido
    valor_total: int
    data_hora_finalizado: Optional[datetime]
    data_cadastro: Optional[datetime]
    data_atualizacao: Optional[datetime]

    class Config:
        from_attributes = True


class PedidoDetalhe(PedidoResponse):
    cardapios: List[PedidoCardapioResponse] = []
    itens_extras: List[PedidoItemExtraResponse] = []


# ==================== ABASTECIMENTO SCHEMAS ====================
class AbastecimentoItemIn(BaseModel):
    item_id: int
    quantidade: int = Field(..., ge=1)


class AbastecimentoCreate(Normalizado, EmailOpcional, DatasUtc):
    estabelecimento_id: int
    fornecedores_ids: List[int] = Field(..., min_length=1)
    categoria_id: int
    telefone: Optional[str] = None
    ddi: str = "+55"
    email: Optional[EmailStr] = None
    data_hora_recebido: Optional[datetime] = None
    observacao: Optional[str] = None
    status: StatusAbastecimento = StatusAbastecimento.PENDENTE
    email_enviado: bool = False
    itens: List[AbastecimentoItemIn] = Field(..., min_length=1)
    endereco: EnderecoObrigatorio


class AbastecimentoUpdate(Normalizado, EmailOpcional, DatasUtc):
    estabelecimento_id: Optional[int] = None
    fornecedores_ids: Optional[List[int]] = Field(default=None, min_length=1)
    categoria_id: Optional[int] = None
    telefone: Optional[str] = None
    ddi: Optional[str] = None
    email: Optional[EmailStr] = None
    data_hora_recebido: Optional[datetime] = None
    observacao: Optional[str] = None
    status: Optional[StatusAbastecimento] = None
    email_enviado: Optional[bool] = None
    itens: Optional[List[AbastecimentoItemIn]] = Field(default=None, min_length=1)
    endereco: Optional[EnderecoObrigatorio] = None


class AbastecimentoItemResponse(BaseModel):
    id: int
    item_id: int
    quantidade: int
    item_nome: Optional[str] = None
    estoque_atual: Optional[int] = None

    class Config:
        from_attributes = True


class AbastecimentoResponse(BaseModel):
    id: int
    id_usuario: int
    estabelecimento_id: int
    estabelecimento_nome: Optional[str] = None
    fornecedores_ids: List[int]
    categoria_id: int
    categoria_nome: Optional[str] = None
    quantidade_total: int
    qtde_itens: int = 0
    telefone: Optional[str]
    ddi: Optional[str]
    email: Optional[str]
    data_hora_recebido: Optional[datetime]
    observacao: Optional[str]
    status: StatusAbastecimento
    email_enviado: bool
    codigo: Optional[str]
    data_cadastro: Optional[datetime]
    data_atualizacao: Optional[datetime]

    class Config:
        from_attributes = True


class AbastecimentoDetalhe(AbastecimentoResponse):
    fornecedores_nomes: List[str] = []
    itens: List[AbastecimentoItemResponse] = []
    endereco: Optional[EnderecoResponse] = None


# ==================== ENTREGA SCHEMAS ====================
class EntregaCreate(Normalizado, DatasUtc):
    estabelecimento_id: int
    tipo_entrega: TipoEntrega = TipoEntrega.PROPRIA
    pedido_id: Optional[int] = None
    codigo_pedido_app: Optional[str] = Field(default=None, max_length=60)
    valor_pedido: int = Field(default=0, ge=0)
    taxa_extra: int = Field(default=0, ge=0)
    valor_entrega: int = Field(default=0, ge=0)
    forma_pagamento: FormaPagamento = FormaPagamento.PIX
    cliente_id: Optional[int] = None
    ddi: str = "+55"
    telefone: Optional[str] = None
    data_hora_saida: Optional[datetime] = None
    data_hora_entregue: Optional[datetime] = None
    observacao: Optional[str] = None
    status: StatusEntrega = StatusEntrega.PENDENTE
    endereco: EnderecoObrigatorio


class EntregaUpdate(Normalizado, DatasUtc):
    estabelecimento_id: Optional[int] = None
    tipo_entrega: Optional[TipoEntrega] = None
    pedido_id: Optional[int] = None
    codigo_pedido_app: Optional[str] = Field(default=None, max_length=60)
    valor_pedido: Optional[int] = Field(default=None, ge=0)
    taxa_extra: Optional[int] = Field(default=None, ge=0)
    valor_entrega: Optional[int] = Field(default=None, ge=0)
    forma_pagamento: Optional[FormaPagamento] = None
    cliente_id: Optional[int] = None
    ddi: Optional[str] = None
    telefone: Optional[str] = None
    data_hora_saida: Optional[datetime] = None
    data_hora_entregue: Optional[datetime] = None
    observacao: Optional[str] = None
    status: Optional[StatusEntrega] = None
    endereco: Optional[EnderecoObrigatorio] = None


class EntregaResponse(BaseModel):
    id: int
    id_usuario: int
    estabelecimento_id: int
    estabelecimento_nome: Optional[str] = None
    tipo_entrega: TipoEntrega
    pedido_id: Optional[int]
    pedido_codigo: Optional[str] = None
    pedido_valor_total: Optional[int] = None
    codigo_pedido_app: Optional[str]
    valor_pedido: int
    taxa_extra: int
    valor_entrega: int
    forma_pagamento: FormaPagamento
    cliente_id: Optional[int]
    cliente_nome: Optional[str] = None
    ddi: Optional[str]
    telefone: Optional[str]
    data_hora_saida: Optional[datetime]
    data_hora_entregue: Optional[datetime]
    observacao: Optional[str]
    status: StatusEntrega
    endereco: Optional[EnderecoResponse] = None
    data_cadastro: Optional[datetime]
    data_atualizacao: Optional[datetime]

    class Config:
        from_attributes = True


# ==================== FINANCEIRO SCHEMAS ====================
class TransacaoCreate(DatasUtc):
    estabelecimento_id: int
    tipo: TipoTransacao
    categoria: str = Field(..., min_length=1, max_length=120)
    valor: int = Field(..., gt=0)
    data_transacao: Optional[datetime] = None
    descricao: Optional[str] = None
    ativo: bool = True


class TransacaoUpdate(DatasUtc):
    estabelecimento_id: Optional[int] = None
    tipo: Optional[TipoTransacao] = None
    categoria: Optional[str] = Field(default=None, min_length=1, max_length=120)
    valor: Optional[int] = Field(default=None, gt=0)
    data_transacao: Optional[datetime] = None
    descricao: Optional[str] = None
    ativo: Optional[bool] = None


class TransacaoResponse(BaseModel):
    id: int
    id_usuario: int
    estabelecimento_id: int
    estabelecimento_nome: Optional[str] = None
    tipo: TipoTransacao
    categoria: str
    valor: int
    data_transacao: Optional[datetime]
    descricao: Optional[str]
    ativo: bool
    data_cadastro: Optional[datetime]
    data_atualizacao: Optional[datetime]

    class Config:
        from_attributes = True


# ==================== COMUNICAÇÃO SCHEMAS ====================
class ComunicacaoCreate(BaseModel):
    estabelecimento_id: int
    tipo_comunicacao: TipoComunicacao
    assunto: str = Field(..., min_length=1, max_length=255)
    mensagem: str = Field(..., min_length=1)
    destinatarios_tipo: DestinatariosTipo = DestinatariosTipo.TODOS_CLIENTES
    clientes_ids: List[int] = []
    fornecedores_ids: List[int] = []
    destinatarios_text: Optional[str] = None
    status: StatusComunicacao = StatusComunicacao.PENDENTE


class ComunicacaoUpdate(BaseModel):
    estabelecimento_id: Optional[int] = None
    tipo_comunicacao: Optional[TipoComunicacao] = None
    assunto: Optional[str] = Field(default=None, min_length=1, max_length=255)
    mensagem: Optional[str] = Field(default=None, min_length=1)
    destinatarios_tipo: Optional[DestinatariosTipo] = None
    clientes_ids: Optional[List[int]] = None
    fornecedores_ids: Optional[List[int]] = None
    destinatarios_text: Optional[str] = None
    status: Optional[StatusComunicacao] = None


class ComunicacaoResponse(BaseModel):
    id: int
    id_usuario: int
    estabelecimento_id: int
    estabelecimento_nome: Optional[str] = None
    tipo_comunicacao: TipoComunicacao
    assunto: str
    mensagem: str
    destinatarios_tipo: DestinatariosTipo
    clientes_ids: List[int]
    fornecedores_ids: List[int]
    destinatarios_text: Optional[str]
    status: StatusComunicacao
    email_enviado: bool
    data_hora_enviado: Optional[datetime]
    data_cadastro: Optional[datetime]
    data_atualizacao: Optional[datetime]

    class Config:
        from_attributes = True


# ==================== SUPORTE SCHEMAS ====================
class SuporteCreate(BaseModel):
    tipo: TipoSuporte
    prioridade: PrioridadeSuporte
    nome_usuario: str = Field(..., min_length=1, max_length=255)
    email_usuario: EmailStr
    titulo: str = Field(..., min_length=1, max_length=255)
    descricao: str = Field(..., min_length=1)
    status: Optional[StatusSuporte] = None
    resposta_admin: Optional[str] = None


class SuporteUpdate(BaseModel):
    tipo: Optional[TipoSuporte] = None
    prioridade: Optional[PrioridadeSuporte] = None
    nome_usuario: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email_usuario: Optional[EmailStr] = None
    titulo: Optional[str] = Field(default=None, min_length=1, max_length=255)
    descricao: Optional[str] = Field(default=None, min_length=1)
    status: Optional[StatusSuporte] = None
    resposta_admin: Optional[str] = None


class ResponderSuporteRequest(BaseModel):
    resposta: str = Field(..., min_length=1)
    status: Optional[StatusSuporte] = None


class SuporteResponse(BaseModel):
    id: int
    id_usuario: int
    tipo: TipoSuporte
    prioridade: PrioridadeSuporte
    nome_usuario: str
    email_usuario: str
    titulo: str
    descricao: str
    status: StatusSuporte
    resposta_admin: Optional[str]
    data_resposta_admin: Optional[datetime]
    data_cadastro: Optional[datetime]
    data_atualizacao: Optional[datetime]

    class Config:
        from_attributes = True


class SuporteEventoResponse(BaseModel):
    id: int
    suporte_id: int
    tipo_evento: str
    detalhes: Optional[str]
    data_cadastro: Optional[datetime]

    class Config:
        from_attributes = True


# ==================== AUDITORIA ====================
class AuditLogResponse(BaseModel):
    id: int
    user_id: Optional[int]
    action: str
    resource: str
    resource_id: Optional[int]
    details: Optional[str]
    ip_address: Optional[str]
    user_agent: Optional[str]
    timestamp: Optional[datetime]

    class Config:
        from_attributes = True
