# -*- coding: utf-8 -*-
"""
Erros do fluxo de matrículas e tradução de mensagens para o utilizador final.
"""


class ErroMatricula(Exception):
    """Erro base de todas as operações de matrícula."""

    status_code = 400

    def __init__(self, mensagem: str):
        super().__init__(mensagem)
        self.mensagem = mensagem


class ErroValidacao(ErroMatricula):
    """Seleção em falta ou valor inválido; nenhum acesso ao banco foi feito."""

    status_code = 400


class RegistoNaoEncontrado(ErroMatricula):
    status_code = 404


class TransicaoInvalida(ErroMatricula):
    """O estado atual da matrícula não permite a operação pedida."""

    status_code = 409


TRADUCOES = {
    # Rede / conexão
    "Failed to fetch": "Erro de conexão. Verifique sua internet",
    "Network request failed": "Falha na conexão. Tente novamente",
    "timeout": "Tempo esgotado. Tente novamente",
    "could not connect to server": "Não foi possível ligar ao servidor de dados",
    "Connection refused": "Não foi possível ligar ao servidor de dados",
    # Banco de dados
    "violates foreign key constraint": "Erro de referência no banco de dados",
    "FOREIGN KEY constraint failed": "Erro de referência no banco de dados",
    "violates not-null constraint": "Campo obrigatório não preenchido",
    "NOT NULL constraint failed": "Campo obrigatório não preenchido",
    # Genéricos
    "Internal server error": "Erro interno do servidor",
    "Service unavailable": "Serviço temporariamente indisponível",
}


def traduzir_erro(mensagem: str) -> str:
    """
    Converte a mensagem técnica de um erro do banco/transporte numa mensagem
    legível em português. Mensagens desconhecidas são devolvidas como estão.
    """
    if not mensagem:
        return "Ocorreu um erro"

    # Violação de chave única (PostgreSQL 23505 ou SQLite)
    if "23505" in mensagem or "duplicate key" in mensagem or "UNIQUE constraint failed" in mensagem:
        if "matricula" in mensagem.lower():
            return "Já existe uma matrícula deste aluno para este ano lectivo."
        return "Este valor já existe no sistema. Por favor, use um valor único."

    if mensagem in TRADUCOES:
        return TRADUCOES[mensagem]

    # Correspondência parcial
    for chave, traducao in TRADUCOES.items():
        if chave.lower() in mensagem.lower():
            return traducao

    return mensagem
