"""
Importação e exportação em planilha (CSV).

Cada módulo declara suas colunas como pares (chave, rótulo). A exportação
usa os rótulos como cabeçalho; a importação aceita tanto a chave quanto o
rótulo, sem diferenciar maiúsculas nem acentos.
"""
import csv
import io
import logging
import re
import unicodedata
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from fastapi import HTTPException, Request, status
from fastapi.responses import Response
from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from foodmax.config import settings
from foodmax.services.audit import registrar_auditoria
from foodmax.services.transicoes import para_utc

logger = logging.getLogger(__name__)

Colunas = Sequence[Tuple[str, str]]

VERDADEIROS = {"1", "true", "ativo", "sim", "yes"}
FALSOS = {"0", "false", "inativo", "nao", "não", "no"}

CAMPOS_ENDERECO = ("cep", "endereco", "cidade", "uf", "pais")
COLUNAS_ENDERECO = [
    ("cep", "CEP"),
    ("endereco", "Endereço"),
    ("cidade", "Cidade"),
    ("uf", "UF"),
    ("pais", "País"),
]


class ImportRequest(BaseModel):
    records: List[Dict[str, Any]]


class LinhaInvalida(Exception):
    """Erro de uma linha da importação; vira "Linha N: <mensagem>"."""


def to_bool(valor: Any) -> Optional[bool]:
    if isinstance(valor, bool):
        return valor
    if valor is None or valor == "":
        return None
    texto = str(valor).strip().lower()
    if texto in VERDADEIROS:
        return True
    if texto in FALSOS:
        return False
    return None


def only_digits(valor: Any) -> str:
    return re.sub(r"\D", "", str(valor or ""))


def normalizar_ddi(valor: Any) -> str:
    digitos = only_digits(valor if valor not in (None, "") else "+55")
    return f"+{digitos or '55'}"


def parse_centavos(valor: Any) -> int:
    """'R$ 1.234,56', '1234.56' ou 1234.56 -> 123456"""
    if valor is None or valor == "":
        return 0
    if isinstance(valor, bool):
        return 0
    if isinstance(valor, (int, float)):
        return int(round(valor * 100))
    texto = re.sub(r"[^\d,.\-]", "", str(valor))
    # ponto como separador de milhar quando seguido de 3 dígitos
    texto = re.sub(r"\.(?=\d{3}(,|$))", "", texto)
    texto = texto.replace(",", ".")
    try:
        return int(round(float(texto) * 100))
    except ValueError:
        digitos = only_digits(valor)
        return int(digitos) if digitos else 0


def parse_inteiro(valor: Any, padrao: int = 0) -> int:
    if valor is None or valor == "":
        return padrao
    try:
        return int(float(str(valor).replace(",", ".")))
    except ValueError:
        return padrao


def parse_data(valor: Any) -> Optional[datetime]:
    """ISO 8601 ou dd/mm/aaaa [hh:mm]"""
    if valor is None or valor == "":
        return None
    if isinstance(valor, datetime):
        return para_utc(valor)
    if isinstance(valor, date):
        return datetime(valor.year, valor.month, valor.day)
    texto = str(valor).strip()
    for formato in ("%d/%m/%Y %H:%M:%S", "%d/%m/%Y %H:%M", "%d/%m/%Y"):
        try:
            return datetime.strptime(texto, formato)
        except ValueError:
            continue
    try:
        data = datetime.fromisoformat(texto.replace("Z", "+00:00"))
    except ValueError:
        raise LinhaInvalida(f"Data inválida: {texto}")
    return para_utc(data)


def _normalizar_rotulo(texto: str) -> str:
    sem_acentos = unicodedata.normalize("NFKD", texto).encode("ascii", "ignore").decode()
    return re.sub(r"[^a-z0-9]+", "_", sem_acentos.lower()).strip("_")


def mapear_cabecalhos(registro: Dict[str, Any], colunas: Colunas) -> Dict[str, Any]:
    """Traduz rótulos de planilha para as chaves dos campos"""
    por_rotulo = {}
    for chave, rotulo in colunas:
        por_rotulo[_normalizar_rotulo(chave)] = chave
        por_rotulo[_normalizar_rotulo(rotulo)] = chave
    mapeado = {}
    for nome, valor in registro.items():
        chave = por_rotulo.get(_normalizar_rotulo(str(nome)), nome)
        if isinstance(valor, str):
            valor = valor.strip()
        mapeado[chave] = valor
    return mapeado


def preparar_linha(
    linha: Dict[str, Any],
    booleanos: Sequence[str] = (),
    centavos: Sequence[str] = (),
    inteiros: Sequence[str] = (),
    datas: Sequence[str] = (),
) -> Dict[str, Any]:
    """Descarta células vazias e converte os campos declarados"""
    dados = {k: v for k, v in linha.items() if v is not None and v != ""}
    for campo in booleanos:
        if campo in dados:
            valor = to_bool(dados[campo])
            if valor is None:
                dados.pop(campo)
            else:
                dados[campo] = valor
    for campo in centavos:
        if campo in dados:
            dados[campo] = parse_centavos(dados[campo])
    for campo in inteiros:
        if campo in dados:
            dados[campo] = parse_inteiro(dados[campo])
    for campo in datas:
        if campo in dados:
            dados[campo] = parse_data(dados[campo])
    return dados


def separar_endereco(dados: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Tira as colunas de endereço da linha; None quando nenhuma veio preenchida"""
    endereco = {campo: dados.pop(campo) for campo in CAMPOS_ENDERECO if campo in dados}
    if not any(endereco.get(campo) for campo in ("cep", "endereco", "cidade", "uf")):
        return None
    return endereco


def achatar_endereco(registro) -> Dict[str, Any]:
    endereco = getattr(registro, "endereco", None)
    return {campo: getattr(endereco, campo, None) for campo in CAMPOS_ENDERECO}


def descrever_erro_validacao(exc: ValidationError) -> str:
    partes = []
    for erro in exc.errors():
        campo = ".".join(str(p) for p in erro.get("loc", ()) if p != "body")
        partes.append(f"{campo}: {erro.get('msg')}" if campo else erro.get("msg", ""))
    return "; ".join(partes)


def _validar_quantidade(records: List[Dict[str, Any]]) -> None:
    if not records:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Nenhum registro fornecido")
    if len(records) > settings.IMPORT_MAX_REGISTROS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Só é possível importar até {settings.IMPORT_MAX_REGISTROS} registros por arquivo",
        )


def _em_savepoint(db: Session, acao: Callable[[], Any]) -> Optional[str]:
    """Executa acao num savepoint; devolve o motivo da falha ou None"""
    savepoint = db.begin_nested()
    try:
        acao()
        db.flush()
        savepoint.commit()
        return None
    except ValidationError as e:
        savepoint.rollback()
        return descrever_erro_validacao(e)
    except (LinhaInvalida, HTTPException) as e:
        savepoint.rollback()
        return e.detail if isinstance(e, HTTPException) else str(e)
    except IntegrityError:
        savepoint.rollback()
        return "Registro conflita com dados existentes"


def _finalizar(db: Session, request: Request, user_id: int, recurso: str, importados: int, erros: List[str]) -> dict:
    registrar_auditoria(
        db,
        user_id=user_id,
        action="IMPORT",
        resource=recurso,
        details=f"{importados} importado(s), {len(erros)} erro(s)",
        request=request,
    )
    db.commit()
    logger.info("Importação de %s: %s importado(s), %s erro(s)", recurso, importados, len(erros))

    return {
        "success": True,
        "message": f"{importados} registro(s) importado(s) com sucesso",
        "imported": importados,
        "errors": erros or None,
    }


def importar_registros(
    db: Session,
    request: Request,
    user_id: int,
    records: List[Dict[str, Any]],
    colunas: Colunas,
    importar_linha: Callable[[Dict[str, Any]], Any],
    recurso: str,
) -> dict:
    """
    Executa importar_linha para cada registro num savepoint próprio.
    Falhas viram "Linha N: motivo" sem interromper as demais linhas.
    """
    _validar_quantidade(records)

    importados = 0
    erros: List[str] = []
    for indice, bruto in enumerate(records, start=1):
        linha = mapear_cabecalhos(bruto, colunas)
        motivo = _em_savepoint(db, lambda: importar_linha(linha))
        if motivo is None:
            importados += 1
        else:
            erros.append(f"Linha {indice}: {motivo}")

    return _finalizar(db, request, user_id, recurso, importados, erros)


def importar_agrupado(
    db: Session,
    request: Request,
    user_id: int,
    records: List[Dict[str, Any]],
    colunas: Colunas,
    chave_grupo: Callable[[Dict[str, Any]], Any],
    importar_grupo: Callable[[List[Dict[str, Any]]], Any],
    recurso: str,
) -> dict:
    """
    Variante para planilhas com uma linha por filho (ex.: um pedido por
    código com várias linhas de itens). Cada grupo é gravado num savepoint;
    a falha é reportada na primeira linha do grupo.
    """
    _validar_quantidade(records)

    erros: List[str] = []
    grupos: Dict[Any, List[Tuple[int, Dict[str, Any]]]] = {}
    for indice, bruto in enumerate(records, start=1):
        linha = mapear_cabecalhos(bruto, colunas)
        try:
            chave = chave_grupo(linha)
        except LinhaInvalida as e:
            erros.append(f"Linha {indice}: {e}")
            continue
        grupos.setdefault(chave, []).append((indice, linha))

    importados = 0
    for linhas in grupos.values():
        primeira = linhas[0][0]
        motivo = _em_savepoint(db, lambda: importar_grupo([linha for _, linha in linhas]))
        if motivo is None:
            importados += 1
        else:
            erros.append(f"Linha {primeira}: {motivo}")

    erros.sort(key=lambda e: int(e.split(":")[0].split()[1]))
    return _finalizar(db, request, user_id, recurso, importados, erros)


def _formatar(valor: Any) -> str:
    if valor is None:
        return ""
    if isinstance(valor, bool):
        return "Sim" if valor else "Não"
    if hasattr(valor, "value"):
        return str(valor.value)
    if isinstance(valor, datetime):
        return valor.strftime("%d/%m/%Y %H:%M")
    if isinstance(valor, (list, tuple)):
        return ", ".join(str(v) for v in valor)
    return str(valor)


def centavos_para_reais(valor: Optional[int]) -> str:
    """1250 -> '12,50'; o inverso de parse_centavos"""
    if valor is None:
        return ""
    return f"{valor / 100:.2f}".replace(".", ",")


def exportar_csv(
    linhas: Iterable[Dict[str, Any]],
    colunas: Colunas,
    nome_arquivo: str,
    centavos: Sequence[str] = (),
) -> Response:
    """CSV separado por ';' com BOM, para abrir direto no Excel. Valores monetários saem em reais."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=";")
    writer.writerow([rotulo for _, rotulo in colunas])
    for linha in linhas:
        writer.writerow([
            centavos_para_reais(linha.get(chave)) if chave in centavos else _formatar(linha.get(chave))
            for chave, _ in colunas
        ])
    conteudo = "\ufeff" + buffer.getvalue()
    return Response(
        content=conteudo.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{nome_arquivo}.csv"'},
    )
