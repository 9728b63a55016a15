from sqlalchemy import Column, Integer, String, Float, ForeignKey
from sqlalchemy.orm import relationship
from edugest.database import Base

# Componentes que guardam a classificação final da disciplina
COMPONENTES_FINAIS = ("MF", "MFD")

class Nota(Base):
    __tablename__ = "notas"

    id = Column(Integer, primary_key=True, index=True)
    aluno_id = Column(Integer, ForeignKey("alunos.id"), nullable=False, index=True)
    disciplina_id = Column(Integer, ForeignKey("disciplinas.id"), nullable=False, index=True)
    turma_id = Column(Integer, ForeignKey("turmas.id"), nullable=False, index=True)
    componente = Column(String(20), nullable=False, default="MF")
    valor = Column(Float, nullable=False)

    aluno = relationship("Aluno", back_populates="notas")
    disciplina = relationship("Disciplina")
