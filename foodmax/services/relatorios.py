"""
Agregações de relatórios e o PDF "Gestão Gastronômica".

Períodos aceitos: all, 7d, 30d, month, 12m ou uma data ISO. Os gráficos
financeiros agrupam por mês quando o período é longo (all/12m) e por dia
nos demais casos.
"""
import io
import logging
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from reportlab.graphics.charts.barcharts import VerticalBarChart
from reportlab.graphics.charts.legends import Legend
from reportlab.graphics.charts.piecharts import Pie
from reportlab.graphics.shapes import Drawing
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from sqlalchemy import func
from sqlalchemy.orm import Session

from foodmax.models import (
    Cliente, Entrega, FinanceiroTransacao, Pedido, StatusEntrega, StatusPedido, TipoTransacao,
)
from foodmax.services.transicoes import agora, para_utc

logger = logging.getLogger(__name__)

MESES = ["jan", "fev", "mar", "abr", "mai", "jun", "jul", "ago", "set", "out", "nov", "dez"]

PERIODOS_LABEL = {
    "all": "Todo o período",
    "7d": "Últimos 7 dias",
    "30d": "Últimos 30 dias",
    "month": "Mês atual",
    "12m": "Últimos 12 meses",
}

COR_RECEITA = colors.HexColor("#16a34a")
COR_DESPESA = colors.HexColor("#dc2626")
CORES_STATUS = {
    StatusPedido.PENDENTE.value: colors.HexColor("#f59e0b"),
    StatusPedido.FINALIZADO.value: colors.HexColor("#16a34a"),
    StatusPedido.CANCELADO.value: colors.HexColor("#9ca3af"),
}


def parse_period(period: Optional[str]) -> Optional[datetime]:
    """Início do período; None quando não há corte (all ou valor inválido)"""
    if not period or period == "all":
        return None
    now = agora()
    if period == "7d":
        return now - timedelta(days=7)
    if period == "30d":
        return now - timedelta(days=30)
    if period == "month":
        return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if period == "12m":
        try:
            return now.replace(year=now.year - 1)
        except ValueError:
            # 29/02
            return now.replace(year=now.year - 1, day=28)
    try:
        data = datetime.fromisoformat(period.replace("Z", "+00:00"))
    except ValueError:
        return None
    return para_utc(data)


def agrupa_por_mes(period: Optional[str]) -> bool:
    return parse_period(period) is None or period == "12m"


def formatar_reais(centavos: int) -> str:
    texto = f"R$ {centavos / 100:,.2f}"
    return texto.replace(",", "X").replace(".", ",").replace("X", ".")


# ==================== CONSULTAS ====================
def transacoes_do_periodo(db: Session, user_id: int, estabelecimento_id: Optional[int], period: Optional[str]):
    query = db.query(FinanceiroTransacao).filter(
        FinanceiroTransacao.id_usuario == user_id,
        FinanceiroTransacao.ativo == True,
    )
    if estabelecimento_id:
        query = query.filter(FinanceiroTransacao.estabelecimento_id == estabelecimento_id)
    desde = parse_period(period)
    if desde:
        data_ref = func.coalesce(FinanceiroTransacao.data_transacao, FinanceiroTransacao.data_cadastro)
        query = query.filter(data_ref >= desde)
    return query.all()


def pedidos_do_periodo(db: Session, user_id: int, estabelecimento_id: Optional[int], period: Optional[str]):
    query = db.query(Pedido).filter(Pedido.id_usuario == user_id)
    if estabelecimento_id:
        query = query.filter(Pedido.estabelecimento_id == estabelecimento_id)
    desde = parse_period(period)
    if desde:
        data_ref = func.coalesce(Pedido.data_hora_finalizado, Pedido.data_cadastro)
        query = query.filter(data_ref >= desde)
    return query.all()


# ==================== AGREGAÇÕES ====================
def somar_totais(transacoes: Iterable[FinanceiroTransacao]) -> Dict[str, int]:
    receitas = despesas = 0
    for t in transacoes:
        if t.tipo == TipoTransacao.RECEITA:
            receitas += t.valor or 0
        else:
            despesas += t.valor or 0
    return {"totalReceitas": receitas, "totalDespesas": despesas, "saldoLiquido": receitas - despesas}


def agrupar_financeiro(transacoes: Iterable[FinanceiroTransacao], period: Optional[str]) -> List[dict]:
    mensal = agrupa_por_mes(period)
    grupos: Dict[str, dict] = {}
    for t in transacoes:
        data = t.data_transacao or t.data_cadastro
        if data is None:
            continue
        if mensal:
            chave = data.strftime("%Y-%m")
            label = f"{MESES[data.month - 1]}/{data.year}"
        else:
            chave = data.strftime("%Y-%m-%d")
            label = data.strftime("%d/%m/%Y")
        grupo = grupos.setdefault(chave, {"chave": chave, "label": label, "receitas": 0, "despesas": 0})
        if t.tipo == TipoTransacao.RECEITA:
            grupo["receitas"] += t.valor or 0
        else:
            grupo["despesas"] += t.valor or 0

    resultado = []
    for chave in sorted(grupos):
        grupo = grupos[chave]
        grupo["saldo"] = grupo["receitas"] - grupo["despesas"]
        resultado.append(grupo)
    return resultado


def contar_status(pedidos: Iterable[Pedido]) -> dict:
    """Contagem por status (todos presentes) e soma dos finalizados"""
    contagem = {s.value: 0 for s in StatusPedido}
    valor_finalizado = 0
    total = 0
    for p in pedidos:
        total += 1
        contagem[p.status.value] += 1
        if p.status == StatusPedido.FINALIZADO:
            valor_finalizado += p.valor_total or 0
    return {"total": total, "porStatus": contagem, "valorFinalizado": valor_finalizado}


def resumo_dashboard(db: Session, user_id: int, estabelecimento_id: Optional[int]) -> dict:
    inicio_mes = agora().replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    pedidos = db.query(Pedido).filter(Pedido.id_usuario == user_id)
    clientes = db.query(Cliente).filter(Cliente.id_usuario == user_id)
    entregas = db.query(Entrega).filter(Entrega.id_usuario == user_id)
    if estabelecimento_id:
        pedidos = pedidos.filter(Pedido.estabelecimento_id == estabelecimento_id)
        clientes = clientes.filter(Cliente.estabelecimento_id == estabelecimento_id)
        entregas = entregas.filter(Entrega.estabelecimento_id == estabelecimento_id)

    finalizados_mes = pedidos.filter(
        Pedido.status == StatusPedido.FINALIZADO,
        func.coalesce(Pedido.data_hora_finalizado, Pedido.data_cadastro) >= inicio_mes,
    )
    valor_mes = finalizados_mes.with_entities(func.coalesce(func.sum(Pedido.valor_total), 0)).scalar()

    recentes = pedidos.order_by(Pedido.data_cadastro.desc(), Pedido.id.desc()).limit(5).all()
    clientes_recentes = clientes.order_by(Cliente.data_cadastro.desc(), Cliente.id.desc()).limit(5).all()

    return {
        "pedidosFinalizadosMes": finalizados_mes.count(),
        "valorPedidosMes": int(valor_mes or 0),
        "clientesTotal": clientes.count(),
        "clientesAtivos": clientes.filter(Cliente.ativo == True).count(),
        "pedidosPendentes": pedidos.filter(Pedido.status == StatusPedido.PENDENTE).count(),
        "entregasPendentes": entregas.filter(
            Entrega.status.in_([StatusEntrega.PENDENTE, StatusEntrega.SAIU])
        ).count(),
        "pedidosRecentes": [
            {
                "id": p.id,
                "codigo": p.codigo,
                "status": p.status.value,
                "valor_total": p.valor_total,
                "estabelecimento_nome": p.estabelecimento_nome,
                "data_cadastro": p.data_cadastro,
            }
            for p in recentes
        ],
        "clientesRecentes": [
            {
                "id": c.id,
                "nome": c.nome,
                "ativo": c.ativo,
                "estabelecimento_nome": c.estabelecimento_nome,
                "data_cadastro": c.data_cadastro,
            }
            for c in clientes_recentes
        ],
    }


# ==================== PDF ====================
def _grafico_financeiro(grupos: List[dict]) -> Drawing:
    drawing = Drawing(480, 240)
    chart = VerticalBarChart()
    chart.x = 50
    chart.y = 60
    chart.width = 400
    chart.height = 150
    receitas = [g["receitas"] / 100 for g in grupos]
    despesas = [g["despesas"] / 100 for g in grupos]
    chart.data = [receitas, despesas]
    chart.categoryAxis.categoryNames = [g["label"] for g in grupos]
    chart.categoryAxis.labels.angle = 30
    chart.categoryAxis.labels.boxAnchor = "ne"
    chart.categoryAxis.labels.fontSize = 7
    chart.valueAxis.valueMin = 0
    if max(receitas + despesas) <= 0:
        chart.valueAxis.valueMax = 1
    chart.valueAxis.labels.fontSize = 7
    chart.bars[0].fillColor = COR_RECEITA
    chart.bars[1].fillColor = COR_DESPESA
    drawing.add(chart)

    legenda = Legend()
    legenda.x = 60
    legenda.y = 230
    legenda.alignment = "right"
    legenda.columnMaximum = 1
    legenda.fontSize = 8
    legenda.colorNamePairs = [(COR_RECEITA, "Receitas"), (COR_DESPESA, "Despesas")]
    drawing.add(legenda)
    return drawing


def _grafico_pedidos(por_status: Dict[str, int]) -> Drawing:
    fatias = [(status, qtd) for status, qtd in por_status.items() if qtd > 0]
    drawing = Drawing(480, 200)
    pie = Pie()
    pie.x = 60
    pie.y = 20
    pie.width = 160
    pie.height = 160
    pie.data = [qtd for _, qtd in fatias]
    pie.labels = [f"{status} ({qtd})" for status, qtd in fatias]
    pie.sideLabels = True
    pie.slices.strokeColor = colors.white
    for i, (status, _) in enumerate(fatias):
        pie.slices[i].fillColor = CORES_STATUS.get(status, colors.grey)
    drawing.add(pie)
    return drawing


def gerar_pdf(
    period: Optional[str],
    estabelecimento_nome: Optional[str],
    grupos: List[dict],
    pedidos: dict,
    totais: Dict[str, int],
) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, title="Gestão Gastronômica")
    story = []

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "Titulo",
        parent=styles["Heading1"],
        fontSize=18,
        spaceAfter=12,
        alignment=1,
    )
    story.append(Paragraph("Gestão Gastronômica", title_style))

    periodo = PERIODOS_LABEL.get(period or "all")
    if periodo is None:
        inicio = parse_period(period)
        periodo = f"Desde {inicio.strftime('%d/%m/%Y')}" if inicio else PERIODOS_LABEL["all"]
    story.append(Paragraph(f"<b>Período:</b> {periodo}", styles["Normal"]))
    story.append(Paragraph(
        f"<b>Estabelecimento:</b> {estabelecimento_nome or 'Todos Estabelecimentos'}", styles["Normal"]
    ))
    story.append(Paragraph(f"<b>Gerado em:</b> {agora().strftime('%d/%m/%Y %H:%M')} (UTC)", styles["Normal"]))
    story.append(Spacer(1, 16))

    story.append(Paragraph("Financeiro", styles["Heading2"]))
    if grupos:
        story.append(_grafico_financeiro(grupos))
    else:
        story.append(Paragraph("Nenhuma transação no período.", styles["Normal"]))
    story.append(Spacer(1, 12))

    story.append(Paragraph("Pedidos por status", styles["Heading2"]))
    if pedidos["total"]:
        story.append(_grafico_pedidos(pedidos["porStatus"]))
    else:
        story.append(Paragraph("Nenhum pedido no período.", styles["Normal"]))
    story.append(Spacer(1, 12))

    data = [
        ["Indicador", "Valor"],
        ["Total de receitas", formatar_reais(totais["totalReceitas"])],
        ["Total de despesas", formatar_reais(totais["totalDespesas"])],
        ["Saldo líquido", formatar_reais(totais["saldoLiquido"])],
        ["Pedidos no período", str(pedidos["total"])],
        ["Valor dos pedidos finalizados", formatar_reais(pedidos["valorFinalizado"])],
    ]
    data.extend([f"Pedidos {status.lower()}s", str(qtd)] for status, qtd in pedidos["porStatus"].items())
    table = Table(data, colWidths=[260, 180])
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("ALIGN", (1, 0), (1, -1), "RIGHT"),
                ("BOTTOMPADDING", (0, 0), (-1, 0), 8),
                ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
            ]
        )
    )
    story.append(table)

    doc.build(story)
    logger.info("PDF de relatório gerado (%s grupo(s), %s pedido(s))", len(grupos), pedidos["total"])
    return buffer.getvalue()
