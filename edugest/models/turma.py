# -*- coding: utf-8 -*-
"""
Modelo SQLAlchemy para a entidade Turma.
"""

from sqlalchemy import Column, Integer, String, Boolean
from sqlalchemy.orm import relationship
from edugest.database import Base

class Turma(Base):
    __tablename__ = 'turmas'
    __table_args__ = {'extend_existing': True}

    id = Column(Integer, primary_key=True, index=True)
    nome = Column(String(100), nullable=False)  # Ex: "7ª Classe A"
    ano_lectivo = Column(String(20), nullable=False, index=True)
    nivel_ensino = Column(String(100), nullable=True)
    escola_id = Column(Integer, nullable=True, index=True)
    ativa = Column(Boolean, default=True)

    alunos = relationship("Aluno", back_populates="turma")
    disciplinas = relationship("Disciplina", back_populates="turma")
