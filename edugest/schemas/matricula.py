# -*- coding: utf-8 -*-
"""
Schemas Pydantic para a entidade Matrícula e para as ações do fluxo de transição.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import date, datetime

from edugest.models.matricula import EstadoMatricula, StatusTransicao
from edugest.schemas.turma import TurmaRead


class AlunoResumo(BaseModel):
    id: int
    nome_completo: Optional[str] = None
    numero_processo: Optional[str] = None
    frequencia_anual: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)


class MatriculaRead(BaseModel):
    id: int
    aluno_id: int
    escola_id: Optional[int] = None
    turma_origem_id: int
    turma_destino_id: Optional[int] = None
    ano_lectivo_origem: str
    ano_lectivo_destino: str

    media_geral: Optional[float] = None
    status_transicao: Optional[StatusTransicao] = None
    estado_matricula: EstadoMatricula

    disciplinas_em_risco: Optional[List[str]] = None
    observacao_padronizada: Optional[str] = None
    motivo_retencao: Optional[str] = None
    matricula_condicional: Optional[bool] = False
    frequencia_anual: Optional[float] = None
    classe_origem: Optional[str] = None
    classe_destino: Optional[str] = None

    resultado_exame: Optional[str] = None
    nota_exame: Optional[float] = None
    data_exame: Optional[date] = None
    observacao_exame: Optional[str] = None

    confirmado_por: Optional[str] = None
    confirmado_em: Optional[datetime] = None
    created_at: Optional[datetime] = None

    aluno: Optional[AlunoResumo] = None # Inclui dados do aluno
    turma_destino: Optional[TurmaRead] = None

    model_config = ConfigDict(from_attributes=True)


# --- Pedidos ---

class GerarMatriculasRequest(BaseModel):
    turma_id: Optional[int] = None
    ano_lectivo_destino: Optional[str] = Field(None, max_length=20)


class ConfirmarMatriculaRequest(BaseModel):
    turma_destino_id: Optional[int] = None


class ConfirmarLoteRequest(BaseModel):
    matricula_ids: List[int] = Field(..., min_length=1)
    turma_destino_id: Optional[int] = None


class ResultadoExameRequest(BaseModel):
    resultado: str
    nota: float = Field(..., allow_inf_nan=False)
    turma_destino_id: Optional[int] = None
    data_exame: Optional[date] = None
    observacao: Optional[str] = Field(None, max_length=500)


# --- Respostas ---

class GerarMatriculasResponse(BaseModel):
    criadas: int
    classificadas: int
    mensagem: str


class ReclassificarResponse(BaseModel):
    classificadas: int


class ErroLote(BaseModel):
    id: int
    erro: str


class ConfirmarLoteResponse(BaseModel):
    sucesso: int
    erros: List[ErroLote]


class ResumoMatriculas(BaseModel):
    total: int = 0
    transitados: int = 0
    nao_transitados: int = 0
    condicionais: int = 0
    sem_classificacao: int = 0
    pendentes: int = 0
    confirmadas: int = 0
    aguardando_exame: int = 0


class HistoricoMatriculaRead(BaseModel):
    id: int
    data_alteracao: datetime
    estado_anterior: Optional[str] = None
    estado_novo: str
    descricao: Optional[str] = None
    usuario: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
