# -*- coding: utf-8 -*-
"""
Fluxo de matrículas de fim de ano lectivo.

1. gerar_matriculas_pendentes: uma matrícula 'pendente' por aluno ativo da
   turma que ainda não a tenha para o ano de destino.
2. atualizar_classificacoes: grava média e estado de transição nas
   matrículas ainda pendentes.
3. confirmar_matricula / encaminhar_para_exame / registrar_resultado_exame:
   fazem o estado da matrícula avançar. O estado nunca recua.

As funções que alteram dados recebem o utilizador que age (usuario) de forma
explícita e fazem commit no fim; qualquer erro faz rollback da operação toda.
"""

import logging
import math
from datetime import date, datetime
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from edugest.erros import ErroValidacao, RegistoNaoEncontrado, TransicaoInvalida
from edugest.models.aluno import Aluno
from edugest.models.historico_matricula import HistoricoMatricula
from edugest.models.matricula import (Matricula, EstadoMatricula, StatusTransicao,
                                      TRANSICOES_PERMITIDAS)
from edugest.models.turma import Turma
from edugest.services.classificacao import (PoliticaTransicao, ResultadoClassificacao,
                                            classificar_turma, extrair_classe,
                                            determinar_proxima_classe)

logger = logging.getLogger(__name__)

RESULTADOS_EXAME = ("aprovado", "reprovado")
FILTROS = ("todos",) + tuple(s.value for s in StatusTransicao) + tuple(e.value for e in EstadoMatricula)


def _nome_usuario(usuario) -> Optional[str]:
    return getattr(usuario, "email", None) if usuario is not None else None


def _escola_do_usuario(usuario) -> Optional[int]:
    # None: utilizador sem escola associada vê todas as turmas
    return getattr(usuario, "escola_id", None) if usuario is not None else None


def obter_turma(db: Session, turma_id: int, usuario=None) -> Turma:
    query = db.query(Turma).filter(Turma.id == turma_id)
    escola_id = _escola_do_usuario(usuario)
    if escola_id is not None:
        query = query.filter(Turma.escola_id == escola_id)
    turma = query.first()
    if turma is None:
        raise RegistoNaoEncontrado(f"Turma não encontrada: {turma_id}")
    return turma


def obter_matricula(db: Session, matricula_id: int, usuario=None) -> Matricula:
    matricula = db.query(Matricula).options(
        joinedload(Matricula.aluno),
        joinedload(Matricula.turma_origem),
        joinedload(Matricula.turma_destino)
    ).filter(Matricula.id == matricula_id).first()
    escola_id = _escola_do_usuario(usuario)
    if matricula is None or (escola_id is not None and matricula.turma_origem.escola_id != escola_id):
        raise RegistoNaoEncontrado(f"Matrícula não encontrada: {matricula_id}")
    return matricula


def _transitar(db: Session, matricula: Matricula, estado_novo: EstadoMatricula, descricao: str, usuario=None):
    """Muda o estado da matrícula e regista a alteração no histórico."""
    estado_atual = EstadoMatricula(matricula.estado_matricula)
    if estado_novo not in TRANSICOES_PERMITIDAS[estado_atual]:
        raise TransicaoInvalida(
            f"Matrícula já processada. Estado atual: {estado_atual.value}"
            if estado_atual == EstadoMatricula.CONFIRMADA
            else f"Não é possível passar de '{estado_atual.value}' para '{estado_novo.value}'."
        )
    matricula.estado_matricula = estado_novo.value
    matricula.updated_at = datetime.utcnow()
    db.add(HistoricoMatricula(
        matricula=matricula,
        estado_anterior=estado_atual.value,
        estado_novo=estado_novo.value,
        descricao=descricao,
        usuario=_nome_usuario(usuario)
    ))


def _validar_selecao(turma_id, ano_lectivo_destino):
    if not turma_id or not ano_lectivo_destino or not str(ano_lectivo_destino).strip():
        raise ErroValidacao("Selecione a turma e o ano letivo de destino")


# --- Geração ---

def _inserir_ignorando_duplicados(db: Session, linhas: List[dict]) -> int:
    """
    INSERT ... ON CONFLICT DO NOTHING sobre a restrição única
    (aluno, turma de origem, ano de destino). Devolve as linhas inseridas.
    """
    if not linhas:
        return 0

    dialeto = db.get_bind().dialect.name
    if dialeto == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialeto == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        # Sem upsert no dialeto: a restrição única rejeita duplicados
        db.bulk_insert_mappings(Matricula, linhas)
        return len(linhas)

    stmt = insert(Matricula.__table__).values(linhas).on_conflict_do_nothing(
        index_elements=["aluno_id", "turma_origem_id", "ano_lectivo_destino"]
    )
    resultado = db.execute(stmt)
    return resultado.rowcount


def gerar_matriculas_pendentes(db: Session, turma_id: int, ano_lectivo_destino: str, usuario=None) -> int:
    """
    Cria uma matrícula pendente para cada aluno ativo da turma que ainda não
    tenha matrícula para o ano de destino. Não faz commit.

    Chamar duas vezes seguidas com os mesmos argumentos não cria duplicados.
    """
    _validar_selecao(turma_id, ano_lectivo_destino)
    ano_lectivo_destino = str(ano_lectivo_destino).strip()
    turma = obter_turma(db, turma_id, usuario)

    alunos = db.query(Aluno).filter(Aluno.turma_id == turma.id, Aluno.ativo == True).all()  # noqa: E712
    existentes = {
        aluno_id for (aluno_id,) in db.query(Matricula.aluno_id).filter(
            Matricula.turma_origem_id == turma.id,
            Matricula.ano_lectivo_destino == ano_lectivo_destino
        ).all()
    }

    agora = datetime.utcnow()
    linhas = []
    for aluno in alunos:
        if aluno.id in existentes:
            continue
        linhas.append({
            "aluno_id": aluno.id,
            "escola_id": turma.escola_id,
            "turma_origem_id": turma.id,
            "ano_lectivo_origem": str(turma.ano_lectivo),
            "ano_lectivo_destino": ano_lectivo_destino,
            "estado_matricula": EstadoMatricula.PENDENTE.value,
            "frequencia_anual": aluno.frequencia_anual,
            "classe_origem": extrair_classe(turma.nome),
            "criado_por": _nome_usuario(usuario),
            "created_at": agora,
            "updated_at": agora,
        })
        logger.info(f"-> GERADA: {aluno.nome_completo} | Turma {turma.nome} | Destino {ano_lectivo_destino}")

    criadas = _inserir_ignorando_duplicados(db, linhas)
    logger.info(f"Turma {turma.id}: {criadas} matrículas criadas ({len(existentes)} já existiam).")
    return criadas


# --- Classificação ---

def aplicar_classificacao(db: Session, matricula: Matricula, resultado: ResultadoClassificacao,
                          politica: PoliticaTransicao, usuario=None):
    """Grava o resultado numa matrícula pendente."""
    if matricula.estado_matricula != EstadoMatricula.PENDENTE.value:
        raise TransicaoInvalida("Só é possível classificar matrículas pendentes.")

    status = resultado.status.value if resultado.status else None
    matricula.status_transicao = status
    matricula.media_geral = resultado.media_geral
    matricula.disciplinas_em_risco = resultado.disciplinas_em_risco
    matricula.observacao_padronizada = resultado.observacao_padronizada
    matricula.motivo_retencao = resultado.motivo_retencao
    matricula.matricula_condicional = resultado.matricula_condicional

    if status in (StatusTransicao.TRANSITA.value, StatusTransicao.CONDICIONAL.value):
        matricula.classe_destino = determinar_proxima_classe(matricula.classe_origem)
    elif status == StatusTransicao.NAO_TRANSITA.value:
        # Repetente: continua na mesma classe
        matricula.classe_destino = matricula.classe_origem
    else:
        matricula.classe_destino = None
    matricula.updated_at = datetime.utcnow()

    if politica.exige_exame(status):
        _transitar(db, matricula, EstadoMatricula.AGUARDANDO_EXAME,
                   f"Encaminhada para exame extraordinário ({status})", usuario)


def atualizar_classificacoes(db: Session, turma_id: int, ano_lectivo_destino: str,
                             politica: PoliticaTransicao, usuario=None) -> int:
    """
    Aplica a classificação a todas as matrículas pendentes da turma para o
    ano de destino. Pode ser reaplicada sem efeitos colaterais. Não faz commit.
    """
    _validar_selecao(turma_id, ano_lectivo_destino)
    turma = obter_turma(db, turma_id, usuario)
    classificacoes = classificar_turma(db, turma, politica)

    pendentes = db.query(Matricula).filter(
        Matricula.turma_origem_id == turma.id,
        Matricula.ano_lectivo_destino == str(ano_lectivo_destino).strip(),
        Matricula.estado_matricula == EstadoMatricula.PENDENTE.value
    ).all()

    atualizadas = 0
    for matricula in pendentes:
        resultado = classificacoes.get(matricula.aluno_id)
        if resultado is None:
            # Aluno deixou de estar ativo na turma
            continue
        aplicar_classificacao(db, matricula, resultado, politica, usuario)
        atualizadas += 1
    return atualizadas


def gerar_e_classificar(db: Session, turma_id: int, ano_lectivo_destino: str,
                        politica: PoliticaTransicao, usuario=None) -> Dict[str, int]:
    """
    Gera e classifica numa única transação. Em caso de erro nada fica gravado
    e a operação pode ser repetida.
    """
    try:
        criadas = gerar_matriculas_pendentes(db, turma_id, ano_lectivo_destino, usuario)
        db.flush()
        classificadas = atualizar_classificacoes(db, turma_id, ano_lectivo_destino, politica, usuario)
        db.commit()
    except (SQLAlchemyError, ErroValidacao, RegistoNaoEncontrado, TransicaoInvalida):
        db.rollback()
        logger.error(f"Erro ao gerar matrículas da turma {turma_id} para {ano_lectivo_destino}", exc_info=True)
        raise
    logger.info(f"SUCESSO: {criadas} matrículas geradas e {classificadas} classificadas (turma {turma_id}).")
    return {"criadas": criadas, "classificadas": classificadas}


def reclassificar(db: Session, turma_id: int, ano_lectivo_destino: str,
                  politica: PoliticaTransicao, usuario=None) -> int:
    try:
        classificadas = atualizar_classificacoes(db, turma_id, ano_lectivo_destino, politica, usuario)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    return classificadas


# --- Transições de estado ---

def _validar_turma_destino(db: Session, matricula: Matricula, turma_destino_id: Optional[int],
                           usuario=None) -> Turma:
    if not turma_destino_id:
        raise ErroValidacao("Selecione a turma de destino")
    query = db.query(Turma).filter(Turma.id == turma_destino_id)
    escola_id = _escola_do_usuario(usuario)
    if escola_id is not None:
        query = query.filter(Turma.escola_id == escola_id)
    turma_destino = query.first()
    if turma_destino is None:
        raise RegistoNaoEncontrado(f"Turma de destino não encontrada: {turma_destino_id}")
    if str(turma_destino.ano_lectivo) != matricula.ano_lectivo_destino:
        raise ErroValidacao(
            f"A turma '{turma_destino.nome}' pertence ao ano lectivo {turma_destino.ano_lectivo}, "
            f"e não a {matricula.ano_lectivo_destino}."
        )
    return turma_destino


def _atribuir_destino(matricula: Matricula, turma_destino: Turma, usuario):
    matricula.turma_destino_id = turma_destino.id
    matricula.classe_destino = extrair_classe(turma_destino.nome) or matricula.classe_destino
    matricula.confirmado_por = _nome_usuario(usuario)
    matricula.confirmado_em = datetime.utcnow()


def confirmar_matricula(db: Session, matricula_id: int, turma_destino_id: int,
                        politica: PoliticaTransicao, usuario=None) -> Matricula:
    """
    pendente -> confirmada. Para 'Não Transita' é a confirmação da repetência.
    Estados que exigem exame têm de passar por registrar_resultado_exame.
    """
    matricula = obter_matricula(db, matricula_id, usuario)
    if matricula.estado_matricula != EstadoMatricula.PENDENTE.value:
        raise TransicaoInvalida(f"Matrícula já processada. Estado atual: {matricula.estado_matricula}")
    if politica.exige_exame(matricula.status_transicao):
        raise TransicaoInvalida(
            f"Alunos com situação '{matricula.status_transicao}' devem realizar o exame extraordinário antes da confirmação."
        )
    turma_destino = _validar_turma_destino(db, matricula, turma_destino_id, usuario)

    try:
        _atribuir_destino(matricula, turma_destino, usuario)
        descricao = "Repetência confirmada" if matricula.status_transicao == StatusTransicao.NAO_TRANSITA.value \
            else "Matrícula confirmada"
        _transitar(db, matricula, EstadoMatricula.CONFIRMADA,
                   f"{descricao} na turma '{turma_destino.nome}'", usuario)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(matricula)
    logger.info(f"Matrícula {matricula.id} confirmada na turma {turma_destino.id}.")
    return matricula


def encaminhar_para_exame(db: Session, matricula_id: int, usuario=None) -> Matricula:
    """pendente -> aguardando_exame. Só para situações que não transitam de imediato."""
    matricula = obter_matricula(db, matricula_id, usuario)
    if matricula.status_transicao is None:
        raise ErroValidacao("A matrícula ainda não tem classificação.")
    if matricula.status_transicao == StatusTransicao.TRANSITA.value:
        raise TransicaoInvalida("Alunos que transitam não precisam de exame extraordinário.")
    try:
        _transitar(db, matricula, EstadoMatricula.AGUARDANDO_EXAME,
                   "Encaminhada para exame extraordinário", usuario)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(matricula)
    logger.info(f"Matrícula {matricula.id} aguarda exame extraordinário.")
    return matricula


def registrar_resultado_exame(db: Session, matricula_id: int, resultado: str, nota: float,
                              turma_destino_id: int, politica: PoliticaTransicao,
                              data_exame: Optional[date] = None, observacao: Optional[str] = None,
                              usuario=None) -> Matricula:
    """
    aguardando_exame -> confirmada. O resultado revê a classificação:
    aprovado passa a 'Transita', reprovado a 'Não Transita'.
    """
    if resultado not in RESULTADOS_EXAME:
        raise ErroValidacao('Resultado inválido. Use "aprovado" ou "reprovado"')
    if nota is None or not math.isfinite(nota) or nota < 0 or nota > politica.nota_maxima:
        raise ErroValidacao(f"Nota deve ser um valor entre 0 e {politica.nota_maxima:g}")

    matricula = obter_matricula(db, matricula_id, usuario)
    if matricula.estado_matricula != EstadoMatricula.AGUARDANDO_EXAME.value:
        raise TransicaoInvalida("Matrícula não está aguardando exame")
    turma_destino = _validar_turma_destino(db, matricula, turma_destino_id, usuario)

    try:
        matricula.resultado_exame = resultado
        matricula.nota_exame = nota
        matricula.data_exame = data_exame or date.today()
        matricula.observacao_exame = observacao
        if resultado == "aprovado":
            matricula.status_transicao = StatusTransicao.TRANSITA.value
            matricula.classe_destino = determinar_proxima_classe(matricula.classe_origem)
            matricula.motivo_retencao = None
        else:
            matricula.status_transicao = StatusTransicao.NAO_TRANSITA.value
            matricula.classe_destino = matricula.classe_origem
            matricula.motivo_retencao = f"Reprovado no exame extraordinário com {nota:g} valores"
        matricula.matricula_condicional = False
        _atribuir_destino(matricula, turma_destino, usuario)
        _transitar(db, matricula, EstadoMatricula.CONFIRMADA,
                   f"Exame extraordinário {resultado} ({nota:g} valores); turma '{turma_destino.nome}'", usuario)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(matricula)
    logger.info(f"Exame da matrícula {matricula.id} registado: {resultado}.")
    return matricula


def confirmar_matriculas_em_lote(db: Session, matricula_ids: List[int], turma_destino_id: int,
                                 politica: PoliticaTransicao, usuario=None) -> dict:
    """Confirma cada matrícula de forma independente e junta os erros."""
    resultado = {"sucesso": 0, "erros": []}
    for matricula_id in matricula_ids:
        try:
            confirmar_matricula(db, matricula_id, turma_destino_id, politica, usuario)
            resultado["sucesso"] += 1
        except (ErroValidacao, RegistoNaoEncontrado, TransicaoInvalida) as e:
            resultado["erros"].append({"id": matricula_id, "erro": e.mensagem})
        except SQLAlchemyError as e:
            logger.error(f"Erro ao confirmar matrícula {matricula_id}: {e}")
            resultado["erros"].append({"id": matricula_id, "erro": str(e.orig if getattr(e, "orig", None) else e)})
    return resultado


# --- Consulta ---

def listar_matriculas(db: Session, turma_id: int, ano_lectivo_destino: str, filtro: str = "todos",
                      usuario=None) -> List[Matricula]:
    _validar_selecao(turma_id, ano_lectivo_destino)
    if filtro not in FILTROS:
        raise ErroValidacao(f"Filtro inválido: {filtro}")

    query = db.query(Matricula).options(
        joinedload(Matricula.aluno),
        joinedload(Matricula.turma_destino)
    ).join(Aluno, Matricula.aluno_id == Aluno.id).filter(
        Matricula.turma_origem_id == turma_id,
        Matricula.ano_lectivo_destino == str(ano_lectivo_destino).strip()
    )
    escola_id = _escola_do_usuario(usuario)
    if escola_id is not None:
        query = query.filter(Matricula.escola_id == escola_id)

    if filtro in tuple(e.value for e in EstadoMatricula):
        query = query.filter(Matricula.estado_matricula == filtro)
    elif filtro != "todos":
        query = query.filter(Matricula.status_transicao == filtro)

    return query.order_by(Aluno.nome_completo.asc()).all()


def resumo_matriculas(db: Session, turma_id: int, ano_lectivo_destino: str, usuario=None) -> Dict[str, int]:
    _validar_selecao(turma_id, ano_lectivo_destino)
    base = db.query(Matricula).filter(
        Matricula.turma_origem_id == turma_id,
        Matricula.ano_lectivo_destino == str(ano_lectivo_destino).strip()
    )
    escola_id = _escola_do_usuario(usuario)
    if escola_id is not None:
        base = base.filter(Matricula.escola_id == escola_id)
    por_status = dict(base.with_entities(Matricula.status_transicao, func.count(Matricula.id))
                      .group_by(Matricula.status_transicao).all())
    por_estado = dict(base.with_entities(Matricula.estado_matricula, func.count(Matricula.id))
                      .group_by(Matricula.estado_matricula).all())

    return {
        "total": sum(por_estado.values()),
        "transitados": por_status.get(StatusTransicao.TRANSITA.value, 0),
        "nao_transitados": por_status.get(StatusTransicao.NAO_TRANSITA.value, 0),
        "condicionais": por_status.get(StatusTransicao.CONDICIONAL.value, 0),
        "sem_classificacao": por_status.get(None, 0),
        "pendentes": por_estado.get(EstadoMatricula.PENDENTE.value, 0),
        "confirmadas": por_estado.get(EstadoMatricula.CONFIRMADA.value, 0),
        "aguardando_exame": por_estado.get(EstadoMatricula.AGUARDANDO_EXAME.value, 0),
    }


def carregar_turmas_destino(db: Session, ano_lectivo_destino: str, nivel_ensino: Optional[str] = None,
                            usuario=None) -> List[Turma]:
    query = db.query(Turma).filter(Turma.ano_lectivo == str(ano_lectivo_destino).strip())
    escola_id = _escola_do_usuario(usuario)
    if escola_id is not None:
        query = query.filter(Turma.escola_id == escola_id)
    if nivel_ensino:
        query = query.filter(Turma.nivel_ensino == nivel_ensino)
    return query.order_by(Turma.nome).all()
