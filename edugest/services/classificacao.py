# -*- coding: utf-8 -*-
"""
Cálculo da média geral e da classificação de transição dos alunos.

A média geral é a média aritmética simples das classificações finais (MF/MFD)
das disciplinas obrigatórias da turma. Disciplinas sem classificação final são
ignoradas no numerador e no denominador (média parcial).

Os cortes de Transita / Condicional / Não Transita são política da escola e
chegam sempre através de uma PoliticaTransicao.
"""

import logging
import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional, Set

from pydantic import BaseModel, Field, model_validator
from sqlalchemy.orm import Session

from edugest.models.aluno import Aluno
from edugest.models.disciplina import Disciplina
from edugest.models.matricula import StatusTransicao
from edugest.models.nota import Nota, COMPONENTES_FINAIS
from edugest.models.turma import Turma

logger = logging.getLogger(__name__)

OBSERVACAO_SEM_NOTAS = "Aguardando notas para determinar transição."


class CortesNivel(BaseModel):
    nota_minima_transita: Optional[float] = None
    nota_minima_condicional: Optional[float] = None


class PoliticaTransicao(BaseModel):
    """Parâmetros da escola que decidem a transição."""

    nota_minima_transita: float = 10.0
    # None: não existe banda condicional
    nota_minima_condicional: Optional[float] = None
    # None: a frequência não é verificada
    frequencia_minima: Optional[float] = None
    # Estados de transição que obrigam a passar pelo exame extraordinário
    status_exame: Set[StatusTransicao] = Field(default_factory=lambda: {StatusTransicao.CONDICIONAL})
    nota_maxima: float = 20.0
    cortes_por_nivel: Dict[str, CortesNivel] = Field(default_factory=dict)

    @model_validator(mode="after")
    def validar_cortes(self):
        if self.nota_minima_condicional is not None and self.nota_minima_condicional > self.nota_minima_transita:
            raise ValueError("nota_minima_condicional não pode ser superior a nota_minima_transita")
        return self

    def para_nivel(self, nivel_ensino: Optional[str]) -> "PoliticaTransicao":
        """Aplica os cortes específicos do nível de ensino, se houver."""
        if not nivel_ensino or not self.cortes_por_nivel:
            return self
        nivel = nivel_ensino.lower()
        for chave, cortes in self.cortes_por_nivel.items():
            if chave.lower() in nivel:
                return self.model_copy(update=cortes.model_dump(exclude_none=True))
        return self

    def exige_exame(self, status: Optional[str]) -> bool:
        return status is not None and status in {s.value for s in self.status_exame}


class ResultadoClassificacao(BaseModel):
    status: Optional[StatusTransicao] = None
    media_geral: Optional[float] = None
    disciplinas_em_risco: List[str] = Field(default_factory=list)
    observacao_padronizada: str = OBSERVACAO_SEM_NOTAS
    motivo_retencao: Optional[str] = None
    matricula_condicional: bool = False


# --- Funções auxiliares de turma/classe ---

def extrair_classe(turma_nome: Optional[str]) -> Optional[str]:
    """Ex: "10ª Classe A" -> "10ª Classe"."""
    if not turma_nome:
        return None
    match = re.search(r"(\d+[ªº]\s*Classe)", turma_nome, re.IGNORECASE)
    return match.group(1) if match else None


def determinar_proxima_classe(classe_atual: Optional[str]) -> Optional[str]:
    """Ex: "7ª Classe" -> "8ª Classe". A 12ª Classe é a última."""
    if not classe_atual:
        return classe_atual
    match = re.search(r"(\d+)[ªº]\s*Classe", classe_atual, re.IGNORECASE)
    if not match:
        return classe_atual
    proximo = int(match.group(1)) + 1
    if proximo > 12:
        return classe_atual
    return f"{proximo}ª Classe"


def calcular_proximo_ano_lectivo(ano_atual: str) -> str:
    """Aceita "2025" ou "2025/2026" e devolve "2026"."""
    match = re.search(r"(\d{4})", ano_atual or "")
    if not match:
        return ano_atual
    return str(int(match.group(1)) + 1)


# --- Cálculo ---

def calcular_media(notas: Iterable[float]) -> Optional[float]:
    valores = [Decimal(str(n)) for n in notas if n is not None]
    if not valores:
        return None
    media = sum(valores) / len(valores)
    return float(media.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def classificar_media(media: Optional[float], politica: PoliticaTransicao) -> Optional[StatusTransicao]:
    if media is None:
        return None
    if media >= politica.nota_minima_transita:
        return StatusTransicao.TRANSITA
    if politica.nota_minima_condicional is not None and media >= politica.nota_minima_condicional:
        return StatusTransicao.CONDICIONAL
    return StatusTransicao.NAO_TRANSITA


def _formatar(valor: float) -> str:
    return f"{valor:.2f}".replace(".", ",")


def avaliar(finais: Dict[Any, float], politica: PoliticaTransicao,
            frequencia_anual: Optional[float] = None,
            nomes: Optional[Dict[Any, str]] = None) -> ResultadoClassificacao:
    """
    Classifica a partir das classificações finais já carregadas, uma por
    disciplina (disciplina -> nota final). nomes traduz a chave da disciplina
    para o nome usado em disciplinas_em_risco; sem nomes usa-se a própria chave.
    """
    nomes = nomes or {}
    media = calcular_media(finais.values())
    if media is None:
        return ResultadoClassificacao()

    if (politica.frequencia_minima is not None and frequencia_anual is not None
            and frequencia_anual < politica.frequencia_minima):
        motivo = (f"Frequência insuficiente ({_formatar(frequencia_anual)}%, "
                  f"inferior ao mínimo de {_formatar(politica.frequencia_minima)}%)")
        return ResultadoClassificacao(
            status=StatusTransicao.NAO_TRANSITA,
            media_geral=media,
            observacao_padronizada=f"Não transitou por {motivo[0].lower() + motivo[1:]}.",
            motivo_retencao=motivo,
        )

    status = classificar_media(media, politica)
    em_risco = sorted(nomes.get(chave, chave) for chave, nota in finais.items()
                      if nota < politica.nota_minima_transita)
    resultado = ResultadoClassificacao(status=status, media_geral=media, disciplinas_em_risco=em_risco)

    if status == StatusTransicao.TRANSITA:
        resultado.observacao_padronizada = (
            f"Transitou com média geral de {_formatar(media)} valores nas disciplinas obrigatórias.")
    elif status == StatusTransicao.CONDICIONAL:
        resultado.matricula_condicional = True
        resultado.observacao_padronizada = (
            f"Transitou condicionalmente com média geral de {_formatar(media)} valores.")
        if politica.exige_exame(status.value):
            resultado.observacao_padronizada += " Deve realizar Exame Extraordinário conforme calendário oficial."
    else:
        resultado.motivo_retencao = (
            f"Média geral de {_formatar(media)} valores, inferior a "
            f"{_formatar(politica.nota_minima_transita)} valores")
        resultado.observacao_padronizada = f"Não transitou por ter obtido {resultado.motivo_retencao[0].lower()}{resultado.motivo_retencao[1:]}."
        if em_risco:
            resultado.observacao_padronizada += f" Disciplinas em risco: {', '.join(em_risco)}."
    return resultado


def _finais_por_aluno(notas: Iterable[Nota]) -> Dict[int, Dict[int, float]]:
    # Uma nota final por disciplina_id; MFD prevalece sobre MF
    escolhidas: Dict[int, Dict[int, Nota]] = {}
    for nota in notas:
        por_disciplina = escolhidas.setdefault(nota.aluno_id, {})
        atual = por_disciplina.get(nota.disciplina_id)
        if atual is None or (atual.componente != "MFD" and nota.componente == "MFD"):
            por_disciplina[nota.disciplina_id] = nota
    return {
        aluno_id: {d_id: n.valor for d_id, n in por_disciplina.items()}
        for aluno_id, por_disciplina in escolhidas.items()
    }


def carregar_disciplinas_obrigatorias(db: Session, turma_id: int) -> List[Disciplina]:
    return db.query(Disciplina).filter(
        Disciplina.turma_id == turma_id,
        Disciplina.obrigatoria == True  # noqa: E712
    ).order_by(Disciplina.nome).all()


def classificar_aluno(
    db: Session,
    aluno_id: int,
    turma_id: int,
    nivel_ensino: Optional[str],
    classe: Optional[str],
    disciplinas_obrigatorias: List[int],
    politica: PoliticaTransicao,
    frequencia_anual: Optional[float] = None,
) -> ResultadoClassificacao:
    """
    Calcula a classificação de um aluno. Não altera o banco.

    Uma lista vazia de disciplinas obrigatórias, ou nenhuma nota final
    lançada, resulta em classificação None (não é erro).
    """
    if not disciplinas_obrigatorias:
        return ResultadoClassificacao()

    politica = politica.para_nivel(nivel_ensino)
    disciplinas = db.query(Disciplina).filter(Disciplina.id.in_(disciplinas_obrigatorias)).all()
    nomes = {d.id: d.nome for d in disciplinas}

    notas = db.query(Nota).filter(
        Nota.aluno_id == aluno_id,
        Nota.turma_id == turma_id,
        Nota.disciplina_id.in_(list(nomes)),
        Nota.componente.in_(COMPONENTES_FINAIS)
    ).all()

    finais = _finais_por_aluno(notas).get(aluno_id, {})
    resultado = avaliar(finais, politica, frequencia_anual, nomes)
    logger.debug("Aluno %s (%s): média %s -> %s", aluno_id, classe, resultado.media_geral, resultado.status)
    return resultado


def classificar_turma(db: Session, turma: Turma, politica: PoliticaTransicao) -> Dict[int, ResultadoClassificacao]:
    """
    Classifica todos os alunos ativos da turma com uma única leitura de notas.
    Devolve {aluno_id: ResultadoClassificacao}.
    """
    alunos = db.query(Aluno).filter(Aluno.turma_id == turma.id, Aluno.ativo == True).all()  # noqa: E712
    disciplinas = carregar_disciplinas_obrigatorias(db, turma.id)
    if not disciplinas:
        logger.warning(f"Turma {turma.id} ({turma.nome}) sem disciplinas obrigatórias configuradas.")
        return {aluno.id: ResultadoClassificacao() for aluno in alunos}

    politica = politica.para_nivel(turma.nivel_ensino)
    nomes = {d.id: d.nome for d in disciplinas}
    notas = db.query(Nota).filter(
        Nota.turma_id == turma.id,
        Nota.disciplina_id.in_(list(nomes)),
        Nota.componente.in_(COMPONENTES_FINAIS)
    ).all()
    finais = _finais_por_aluno(notas)

    return {
        aluno.id: avaliar(finais.get(aluno.id, {}), politica, aluno.frequencia_anual, nomes)
        for aluno in alunos
    }
