# -*- coding: utf-8 -*-
"""
Rotas FastAPI de consulta de Turmas (escolha da turma de origem).
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from edugest.auth import get_usuario_leitura
from edugest.database import get_db
from edugest.models.turma import Turma
from edugest.models.usuario import Usuario
from edugest.schemas.turma import TurmaRead

router = APIRouter(
    tags=["Turmas"],
    responses={404: {"description": "Não encontrado"}},
)

@router.get("", response_model=List[TurmaRead])
def read_turmas(
    ano_lectivo: Optional[str] = None,
    nivel_ensino: Optional[str] = None,
    db: Session = Depends(get_db),
    usuario: Usuario = Depends(get_usuario_leitura)
):
    """
    Lista turmas, das mais recentes para as mais antigas.
    """
    query = db.query(Turma)
    if usuario.escola_id is not None:
        query = query.filter(Turma.escola_id == usuario.escola_id)
    if ano_lectivo:
        query = query.filter(Turma.ano_lectivo == ano_lectivo)
    if nivel_ensino:
        query = query.filter(Turma.nivel_ensino.ilike(f"%{nivel_ensino}%"))
    return query.order_by(Turma.ano_lectivo.desc(), Turma.nome).all()

@router.get("/{turma_id}", response_model=TurmaRead)
def read_turma(turma_id: int, db: Session = Depends(get_db),
               usuario: Usuario = Depends(get_usuario_leitura)):
    query = db.query(Turma).filter(Turma.id == turma_id)
    if usuario.escola_id is not None:
        query = query.filter(Turma.escola_id == usuario.escola_id)
    db_turma = query.first()
    if db_turma is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Turma não encontrada")
    return db_turma
