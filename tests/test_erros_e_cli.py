import pytest
from sqlalchemy.orm import sessionmaker

import gerar_matriculas
from edugest.config import carregar_politica_do_ambiente
from edugest.erros import traduzir_erro
from edugest.models.matricula import Matricula, StatusTransicao


@pytest.mark.parametrize("mensagem,esperado", [
    ('duplicate key value violates unique constraint "uq_matricula_aluno_turma_ano"',
     "Já existe uma matrícula deste aluno para este ano lectivo."),
    ("UNIQUE constraint failed: alunos.numero_processo",
     "Este valor já existe no sistema. Por favor, use um valor único."),
    ("FOREIGN KEY constraint failed", "Erro de referência no banco de dados"),
    ("(psycopg2.OperationalError) could not connect to server: Connection refused",
     "Não foi possível ligar ao servidor de dados"),
    ("timeout", "Tempo esgotado. Tente novamente"),
    ("Selecione a turma de destino", "Selecione a turma de destino"),
    ("", "Ocorreu um erro"),
])
def test_traduzir_erro(mensagem, esperado):
    assert traduzir_erro(mensagem) == esperado


def test_politica_lida_do_ambiente(monkeypatch):
    monkeypatch.setenv("NOTA_MINIMA_TRANSITA", "9,5")
    monkeypatch.setenv("NOTA_MINIMA_CONDICIONAL", "7")
    monkeypatch.setenv("FREQUENCIA_MINIMA", "66.67")
    monkeypatch.setenv("STATUS_EXAME", "Condicional, Não Transita")
    monkeypatch.setenv("CORTES_POR_NIVEL", '{"Primário": {"nota_minima_transita": 5}}')

    politica = carregar_politica_do_ambiente()

    assert politica.nota_minima_transita == 9.5
    assert politica.nota_minima_condicional == 7
    assert politica.frequencia_minima == 66.67
    assert politica.status_exame == {StatusTransicao.CONDICIONAL, StatusTransicao.NAO_TRANSITA}
    assert politica.para_nivel("Ensino Primário").nota_minima_transita == 5


def test_politica_por_omissao(monkeypatch):
    for nome in ("NOTA_MINIMA_TRANSITA", "NOTA_MINIMA_CONDICIONAL", "FREQUENCIA_MINIMA",
                 "STATUS_EXAME", "CORTES_POR_NIVEL"):
        monkeypatch.delenv(nome, raising=False)

    politica = carregar_politica_do_ambiente()

    assert politica.nota_minima_transita == 10.0
    assert politica.nota_minima_condicional is None
    assert politica.status_exame == {StatusTransicao.CONDICIONAL}


def test_cli_gera_todas_as_turmas_do_ano(db, criar_turma, monkeypatch):
    criar_turma(nome="7ª Classe A", n_alunos=3)
    criar_turma(nome="7ª Classe B", n_alunos=2)
    monkeypatch.setattr(gerar_matriculas, "SessionLocal", sessionmaker(bind=db.get_bind()))

    assert gerar_matriculas.gerar_matriculas(["--ano-origem", "2025"]) == 0
    assert gerar_matriculas.gerar_matriculas(["--ano-origem", "2025"]) == 0

    db.expire_all()
    matriculas = db.query(Matricula).all()
    assert len(matriculas) == 5
    assert {m.ano_lectivo_destino for m in matriculas} == {"2026"}


def test_cli_sem_argumentos():
    assert gerar_matriculas.gerar_matriculas([]) == 1
