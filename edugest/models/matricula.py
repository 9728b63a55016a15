# edugest/models/matricula.py
import enum
from datetime import datetime

from sqlalchemy import (Column, Integer, String, Float, Boolean, Date, DateTime,
                        ForeignKey, JSON, UniqueConstraint)
from sqlalchemy.orm import relationship

from edugest.database import Base


class StatusTransicao(str, enum.Enum):
    TRANSITA = "Transita"
    NAO_TRANSITA = "Não Transita"
    CONDICIONAL = "Condicional"


class EstadoMatricula(str, enum.Enum):
    PENDENTE = "pendente"
    AGUARDANDO_EXAME = "aguardando_exame"
    CONFIRMADA = "confirmada"


# Transições permitidas: o estado só avança, "confirmada" é final
TRANSICOES_PERMITIDAS = {
    EstadoMatricula.PENDENTE: {EstadoMatricula.CONFIRMADA, EstadoMatricula.AGUARDANDO_EXAME},
    EstadoMatricula.AGUARDANDO_EXAME: {EstadoMatricula.CONFIRMADA},
    EstadoMatricula.CONFIRMADA: set(),
}


class Matricula(Base):
    __tablename__ = "matriculas"
    __table_args__ = (
        UniqueConstraint("aluno_id", "turma_origem_id", "ano_lectivo_destino",
                         name="uq_matricula_aluno_turma_ano"),
    )

    id = Column(Integer, primary_key=True, index=True)
    aluno_id = Column(Integer, ForeignKey("alunos.id"), nullable=False, index=True)
    escola_id = Column(Integer, nullable=True, index=True)
    turma_origem_id = Column(Integer, ForeignKey("turmas.id"), nullable=False, index=True)
    turma_destino_id = Column(Integer, ForeignKey("turmas.id"), nullable=True, index=True)
    ano_lectivo_origem = Column(String(20), nullable=False)
    ano_lectivo_destino = Column(String(20), nullable=False, index=True)

    # Classificação (None enquanto não houver notas)
    media_geral = Column(Float, nullable=True)
    status_transicao = Column(String(30), nullable=True, index=True)
    estado_matricula = Column(String(30), nullable=False, default=EstadoMatricula.PENDENTE.value, index=True)

    disciplinas_em_risco = Column(JSON, nullable=True)
    observacao_padronizada = Column(String(500), nullable=True)
    motivo_retencao = Column(String(500), nullable=True)
    matricula_condicional = Column(Boolean, default=False)
    frequencia_anual = Column(Float, nullable=True)
    classe_origem = Column(String(30), nullable=True)
    classe_destino = Column(String(30), nullable=True)

    # Exame extraordinário
    resultado_exame = Column(String(20), nullable=True)
    nota_exame = Column(Float, nullable=True)
    data_exame = Column(Date, nullable=True)
    observacao_exame = Column(String(500), nullable=True)

    criado_por = Column(String(100), nullable=True)
    confirmado_por = Column(String(100), nullable=True)
    confirmado_em = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    aluno = relationship("Aluno", back_populates="matriculas")
    turma_origem = relationship("Turma", foreign_keys=[turma_origem_id])
    turma_destino = relationship("Turma", foreign_keys=[turma_destino_id])
    historico = relationship("HistoricoMatricula", back_populates="matricula",
                             cascade="all, delete-orphan",
                             order_by="HistoricoMatricula.id")
