# -*- coding: utf-8 -*-
"""
Rotas FastAPI para a transição de alunos entre anos lectivos (Matrículas).

Os erros de negócio (ErroMatricula) e do banco (SQLAlchemyError) são
convertidos em respostas traduzidas pelos handlers registados em main.py.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from edugest.auth import get_usuario_gestao, get_usuario_leitura
from edugest.config import get_politica
from edugest.database import get_db
from edugest.models.historico_matricula import HistoricoMatricula
from edugest.models.usuario import Usuario
from edugest.schemas.matricula import (
    ConfirmarLoteRequest, ConfirmarLoteResponse, ConfirmarMatriculaRequest,
    GerarMatriculasRequest, GerarMatriculasResponse, HistoricoMatriculaRead,
    MatriculaRead, ReclassificarResponse, ResultadoExameRequest, ResumoMatriculas
)
from edugest.schemas.turma import TurmaRead
from edugest.services import matriculas as servico
from edugest.services.classificacao import PoliticaTransicao, calcular_proximo_ano_lectivo


router = APIRouter(
    tags=["Matrículas"],
    responses={404: {"description": "Matrícula não encontrada"}},
)

# --- Geração e classificação ---

@router.post("/gerar", response_model=GerarMatriculasResponse, status_code=status.HTTP_201_CREATED)
def gerar_matriculas(
    pedido: GerarMatriculasRequest,
    db: Session = Depends(get_db),
    politica: PoliticaTransicao = Depends(get_politica),
    usuario: Usuario = Depends(get_usuario_gestao)
):
    """
    Gera as matrículas pendentes da turma para o ano de destino e classifica-as.
    Pode ser repetido: alunos que já têm matrícula não são duplicados.
    """
    resultado = servico.gerar_e_classificar(db, pedido.turma_id, pedido.ano_lectivo_destino, politica, usuario)
    resultado["mensagem"] = f"{resultado['criadas']} matrículas geradas e classificadas com sucesso!"
    return resultado


@router.post("/reclassificar", response_model=ReclassificarResponse)
def reclassificar_matriculas(
    pedido: GerarMatriculasRequest,
    db: Session = Depends(get_db),
    politica: PoliticaTransicao = Depends(get_politica),
    usuario: Usuario = Depends(get_usuario_gestao)
):
    """
    Recalcula a classificação das matrículas ainda pendentes (ex: depois de
    corrigidas notas).
    """
    classificadas = servico.reclassificar(db, pedido.turma_id, pedido.ano_lectivo_destino, politica, usuario)
    return {"classificadas": classificadas}

# --- Consultas ---

@router.get("", response_model=List[MatriculaRead])
def read_matriculas(
    turma_id: Optional[int] = None,
    ano_lectivo_destino: Optional[str] = None,
    filtro: str = "todos", # 'todos', estado de transição ou estado da matrícula
    db: Session = Depends(get_db),
    usuario: Usuario = Depends(get_usuario_leitura)
):
    """
    Lista as matrículas da turma de origem para o ano de destino.
    """
    return servico.listar_matriculas(db, turma_id, ano_lectivo_destino, filtro, usuario)


@router.get("/resumo", response_model=ResumoMatriculas)
def read_resumo(
    turma_id: Optional[int] = None,
    ano_lectivo_destino: Optional[str] = None,
    db: Session = Depends(get_db),
    usuario: Usuario = Depends(get_usuario_leitura)
):
    return servico.resumo_matriculas(db, turma_id, ano_lectivo_destino, usuario)


@router.get("/turmas-destino", response_model=List[TurmaRead])
def read_turmas_destino(
    ano_lectivo_destino: str,
    nivel_ensino: Optional[str] = None,
    db: Session = Depends(get_db),
    usuario: Usuario = Depends(get_usuario_leitura)
):
    return servico.carregar_turmas_destino(db, ano_lectivo_destino, nivel_ensino, usuario)


@router.get("/proximo-ano-lectivo")
def read_proximo_ano_lectivo(ano_lectivo: str = Query(..., min_length=4)):
    return {"ano_lectivo_destino": calcular_proximo_ano_lectivo(ano_lectivo)}

# --- Transições em lote ---

@router.post("/confirmar-lote", response_model=ConfirmarLoteResponse)
def confirmar_lote(
    pedido: ConfirmarLoteRequest,
    db: Session = Depends(get_db),
    politica: PoliticaTransicao = Depends(get_politica),
    usuario: Usuario = Depends(get_usuario_gestao)
):
    """
    Confirma várias matrículas para a mesma turma de destino. Cada matrícula é
    tratada à parte; as que falham aparecem em 'erros'.
    """
    return servico.confirmar_matriculas_em_lote(db, pedido.matricula_ids, pedido.turma_destino_id, politica, usuario)

# --- Matrícula individual ---

@router.get("/{matricula_id}", response_model=MatriculaRead)
def read_matricula(matricula_id: int, db: Session = Depends(get_db),
                   usuario: Usuario = Depends(get_usuario_leitura)):
    return servico.obter_matricula(db, matricula_id, usuario)


@router.get("/{matricula_id}/historico", response_model=List[HistoricoMatriculaRead])
def read_historico(matricula_id: int, db: Session = Depends(get_db),
                   usuario: Usuario = Depends(get_usuario_leitura)):
    servico.obter_matricula(db, matricula_id, usuario)
    return db.query(HistoricoMatricula).filter(
        HistoricoMatricula.matricula_id == matricula_id
    ).order_by(HistoricoMatricula.id).all()


@router.post("/{matricula_id}/confirmar", response_model=MatriculaRead)
def confirmar_matricula(
    matricula_id: int,
    pedido: ConfirmarMatriculaRequest,
    db: Session = Depends(get_db),
    politica: PoliticaTransicao = Depends(get_politica),
    usuario: Usuario = Depends(get_usuario_gestao)
):
    """
    Confirma a matrícula pendente na turma de destino escolhida.
    """
    return servico.confirmar_matricula(db, matricula_id, pedido.turma_destino_id, politica, usuario)


@router.post("/{matricula_id}/encaminhar-exame", response_model=MatriculaRead)
def encaminhar_exame(matricula_id: int, db: Session = Depends(get_db),
                     usuario: Usuario = Depends(get_usuario_gestao)):
    return servico.encaminhar_para_exame(db, matricula_id, usuario)


@router.post("/{matricula_id}/exame", response_model=MatriculaRead)
def registrar_exame(
    matricula_id: int,
    pedido: ResultadoExameRequest,
    db: Session = Depends(get_db),
    politica: PoliticaTransicao = Depends(get_politica),
    usuario: Usuario = Depends(get_usuario_gestao)
):
    """
    Regista o resultado do exame extraordinário e confirma a matrícula.
    """
    return servico.registrar_resultado_exame(
        db, matricula_id, pedido.resultado, pedido.nota, pedido.turma_destino_id, politica,
        data_exame=pedido.data_exame, observacao=pedido.observacao, usuario=usuario
    )
