# -*- coding: utf-8 -*-
"""
Configuração lida do ambiente (.env).

Os cortes de transição variam de escola para escola, por isso nunca estão
fixos no código: vêm destas variáveis e chegam às rotas via get_politica.
"""

import json
import logging
import os
from functools import lru_cache

from dotenv import load_dotenv

from edugest.models.matricula import StatusTransicao
from edugest.services.classificacao import PoliticaTransicao

load_dotenv()

logger = logging.getLogger(__name__)

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5700")

SECRET_KEY = os.environ.get("SECRET_KEY")
if not SECRET_KEY:
    if ENVIRONMENT == "production":
        raise ValueError("ERRO CRÍTICO: 'SECRET_KEY' não encontrada no .env.")
    logger.warning("SECRET_KEY não configurada; a usar chave de desenvolvimento.")
    SECRET_KEY = "chave-de-desenvolvimento-nao-usar-em-producao"


def _float_ou_none(nome):
    valor = os.environ.get(nome)
    if valor is None or valor.strip() == "":
        return None
    return float(valor.replace(",", "."))


def carregar_politica_do_ambiente() -> PoliticaTransicao:
    dados = {}

    nota_transita = _float_ou_none("NOTA_MINIMA_TRANSITA")
    if nota_transita is not None:
        dados["nota_minima_transita"] = nota_transita
    dados["nota_minima_condicional"] = _float_ou_none("NOTA_MINIMA_CONDICIONAL")
    dados["frequencia_minima"] = _float_ou_none("FREQUENCIA_MINIMA")

    status_exame = os.environ.get("STATUS_EXAME")
    if status_exame is not None:
        dados["status_exame"] = {StatusTransicao(s.strip()) for s in status_exame.split(",") if s.strip()}

    cortes = os.environ.get("CORTES_POR_NIVEL")
    if cortes:
        dados["cortes_por_nivel"] = json.loads(cortes)

    return PoliticaTransicao(**dados)


@lru_cache()
def get_politica() -> PoliticaTransicao:
    """Dependência FastAPI com a política de transição da escola."""
    politica = carregar_politica_do_ambiente()
    logger.info(
        "Política de transição: transita >= %s, condicional >= %s, frequência mínima %s",
        politica.nota_minima_transita, politica.nota_minima_condicional, politica.frequencia_minima
    )
    return politica
