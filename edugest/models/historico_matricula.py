# Em edugest/models/historico_matricula.py

from sqlalchemy import Column, Integer, ForeignKey, DateTime, String
from sqlalchemy.orm import relationship
from edugest.database import Base
from datetime import datetime

class HistoricoMatricula(Base):
    __tablename__ = 'historico_matriculas'

    id = Column(Integer, primary_key=True, index=True)
    matricula_id = Column(Integer, ForeignKey('matriculas.id'), nullable=False, index=True)
    data_alteracao = Column(DateTime, default=datetime.utcnow)
    estado_anterior = Column(String(30), nullable=True)
    estado_novo = Column(String(30), nullable=False)
    descricao = Column(String(255)) # Ex: "Matrícula confirmada na turma '8ª Classe A'"
    usuario = Column(String(100), nullable=True)

    matricula = relationship("Matricula", back_populates="historico")
