# -*- coding: utf-8 -*-
"""
Schemas Pydantic para a entidade Turma.
"""

from pydantic import BaseModel, ConfigDict
from typing import Optional

class TurmaRead(BaseModel):
    id: int
    nome: str
    ano_lectivo: str
    nivel_ensino: Optional[str] = None
    escola_id: Optional[int] = None
    ativa: Optional[bool] = True

    model_config = ConfigDict(from_attributes=True)
