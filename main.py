# -*- coding: utf-8 -*-
"""
Arquivo principal da aplicação FastAPI de matrículas (transição entre anos lectivos).
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from edugest.config import ENVIRONMENT, FRONTEND_URL
from edugest.database import engine, Base
from edugest.erros import ErroMatricula, traduzir_erro
# Importa os modelos para registar as tabelas na Base
from edugest.models import aluno, disciplina, historico_matricula, matricula, nota, turma, usuario  # noqa: F401
from edugest.routes import matriculas_fastapi, turmas_fastapi

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Cria as tabelas no banco de dados com tratamento de erros
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Tabelas criadas com sucesso!")
    except SQLAlchemyError as e:
        logger.error(f"Erro ao criar tabelas: {e}")
    yield


docs_url = "/docs" if ENVIRONMENT != "production" else None
redoc_url = "/redoc" if ENVIRONMENT != "production" else None

app = FastAPI(
    title="API EduGest - Matrículas",
    description="Geração, classificação e confirmação de matrículas para o ano lectivo seguinte",
    version="1.0.0",
    docs_url=docs_url,
    redoc_url=redoc_url,
    openapi_url="/openapi.json" if ENVIRONMENT != "production" else None,
    lifespan=lifespan,
)

origins = [
    FRONTEND_URL,
    "http://localhost:5700",
    "http://localhost",
    "http://127.0.0.1",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ErroMatricula)
async def erro_matricula_handler(request: Request, exc: ErroMatricula):
    return JSONResponse(status_code=exc.status_code, content={"detail": traduzir_erro(exc.mensagem)})


@app.exception_handler(SQLAlchemyError)
async def erro_banco_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Erro do banco em {request.url.path}: {exc}")
    mensagem = str(exc.orig) if getattr(exc, "orig", None) is not None else str(exc)
    status_code = 400 if isinstance(exc, IntegrityError) else 500
    return JSONResponse(status_code=status_code, content={"detail": traduzir_erro(mensagem)})


# Montagem dos routers
app.include_router(matriculas_fastapi.router, prefix="/api/v1/matriculas")
app.include_router(turmas_fastapi.router, prefix="/api/v1/turmas")


@app.get("/", tags=["Root"])
async def root():
    return {
        "mensagem": "API EduGest - Matrículas",
        "documentacao": "/docs",
        "endpoints": [
            {"matriculas": "/api/v1/matriculas"},
            {"turmas": "/api/v1/turmas"},
        ]
    }
