from sqlalchemy import Column, Integer, String
from edugest.database import Base

class Usuario(Base):
    __tablename__ = "usuarios"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    nome = Column(String)
    role = Column(String, nullable=False, default="pendente")
    escola_id = Column(Integer, nullable=True)
