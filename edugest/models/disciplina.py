from sqlalchemy import Column, Integer, String, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from edugest.database import Base

class Disciplina(Base):
    __tablename__ = "disciplinas"

    id = Column(Integer, primary_key=True, index=True)
    nome = Column(String(100), nullable=False)
    turma_id = Column(Integer, ForeignKey("turmas.id"), nullable=False, index=True)
    # Só as disciplinas obrigatórias entram na média de transição
    obrigatoria = Column(Boolean, default=False)

    turma = relationship("Turma", back_populates="disciplinas")
