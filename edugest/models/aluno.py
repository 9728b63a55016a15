from sqlalchemy import Column, Integer, String, Boolean, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from edugest.database import Base
from datetime import datetime

class Aluno(Base):
    __tablename__ = "alunos"

    id = Column(Integer, primary_key=True, index=True)
    nome_completo = Column(String(150), index=True)
    numero_processo = Column(String(30), unique=True, index=True, nullable=True)
    turma_id = Column(Integer, ForeignKey("turmas.id"), nullable=True, index=True)
    ativo = Column(Boolean, default=True)
    # Percentagem de presenças no ano (0-100)
    frequencia_anual = Column(Float, nullable=True)
    data_cadastro = Column(DateTime, default=datetime.utcnow)

    turma = relationship("Turma", back_populates="alunos")
    notas = relationship("Nota", back_populates="aluno")
    matriculas = relationship("Matricula", back_populates="aluno")
