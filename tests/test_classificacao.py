import pytest
from pydantic import ValidationError

from edugest.models.matricula import StatusTransicao
from edugest.services.classificacao import (
    CortesNivel, PoliticaTransicao, avaliar, calcular_media, calcular_proximo_ano_lectivo,
    classificar_aluno, classificar_media, classificar_turma, determinar_proxima_classe,
    extrair_classe,
)


def test_media_de_tres_finais():
    assert calcular_media([12, 14, 16]) == 14.0


def test_media_arredonda_a_duas_casas():
    assert calcular_media([10, 11, 11]) == 10.67
    assert calcular_media([10.005]) == 10.01


def test_media_sem_notas_e_none():
    assert calcular_media([]) is None


def test_abaixo_do_corte_nao_transita():
    politica = PoliticaTransicao(nota_minima_transita=10)
    media = calcular_media([8, 9])
    assert classificar_media(media, politica) == StatusTransicao.NAO_TRANSITA


def test_empate_no_corte_vai_para_banda_superior():
    politica = PoliticaTransicao(nota_minima_transita=10, nota_minima_condicional=7)
    assert classificar_media(10.0, politica) == StatusTransicao.TRANSITA
    assert classificar_media(7.0, politica) == StatusTransicao.CONDICIONAL
    assert classificar_media(6.99, politica) == StatusTransicao.NAO_TRANSITA


def test_sem_banda_condicional_por_omissao():
    assert classificar_media(9.5, PoliticaTransicao()) == StatusTransicao.NAO_TRANSITA


def test_media_none_nao_tem_classificacao():
    assert classificar_media(None, PoliticaTransicao()) is None


def test_corte_condicional_acima_do_transita_e_rejeitado():
    with pytest.raises(ValidationError):
        PoliticaTransicao(nota_minima_transita=10, nota_minima_condicional=12)


def test_cortes_por_nivel():
    politica = PoliticaTransicao(cortes_por_nivel={"primário": CortesNivel(nota_minima_transita=5)})
    assert politica.para_nivel("Ensino Primário").nota_minima_transita == 5
    assert politica.para_nivel("Ensino Secundário I Ciclo").nota_minima_transita == 10
    assert politica.para_nivel(None) is politica


def test_avaliar_lista_disciplinas_em_risco():
    resultado = avaliar({"Matemática": 8, "Física": 15, "Química": 9}, PoliticaTransicao())
    assert resultado.status == StatusTransicao.TRANSITA
    assert resultado.media_geral == 10.67
    assert resultado.disciplinas_em_risco == ["Matemática", "Química"]


def test_avaliar_nao_transita_explica_motivo():
    resultado = avaliar({"Matemática": 8, "Física": 9}, PoliticaTransicao())
    assert resultado.status == StatusTransicao.NAO_TRANSITA
    assert resultado.motivo_retencao == "Média geral de 8,50 valores, inferior a 10,00 valores"
    assert resultado.observacao_padronizada.startswith("Não transitou por ter obtido média geral")


def test_avaliar_condicional_fica_marcado():
    politica = PoliticaTransicao(nota_minima_condicional=8)
    resultado = avaliar({"Matemática": 8, "Física": 9}, politica)
    assert resultado.status == StatusTransicao.CONDICIONAL
    assert resultado.matricula_condicional is True
    assert "Exame Extraordinário" in resultado.observacao_padronizada


def test_frequencia_insuficiente_nao_transita():
    politica = PoliticaTransicao(frequencia_minima=66.67)
    resultado = avaliar({"Matemática": 18}, politica, frequencia_anual=50.0)
    assert resultado.status == StatusTransicao.NAO_TRANSITA
    assert "Frequência insuficiente" in resultado.motivo_retencao


def test_frequencia_ignorada_sem_minimo_configurado():
    resultado = avaliar({"Matemática": 18}, PoliticaTransicao(), frequencia_anual=10.0)
    assert resultado.status == StatusTransicao.TRANSITA


@pytest.mark.parametrize("nome,esperado", [
    ("10ª Classe A", "10ª Classe"),
    ("7º Classe B", "7º Classe"),
    ("Turma sem classe", None),
])
def test_extrair_classe(nome, esperado):
    assert extrair_classe(nome) == esperado


def test_determinar_proxima_classe():
    assert determinar_proxima_classe("7ª Classe") == "8ª Classe"
    assert determinar_proxima_classe("12ª Classe") == "12ª Classe"
    assert determinar_proxima_classe("Iniciação") == "Iniciação"


def test_calcular_proximo_ano_lectivo():
    assert calcular_proximo_ano_lectivo("2025") == "2026"
    assert calcular_proximo_ano_lectivo("2025/2026") == "2026"


# --- Com banco ---

def test_classificar_aluno_media_parcial(db, criar_turma):
    turma, alunos, disciplinas = criar_turma(notas=[[12, None, 16]])
    resultado = classificar_aluno(db, alunos[0].id, turma.id, turma.nivel_ensino, "7ª Classe",
                                  [d.id for d in disciplinas], PoliticaTransicao())
    # A disciplina sem nota não conta no denominador
    assert resultado.media_geral == 14.0
    assert resultado.status == StatusTransicao.TRANSITA


def test_classificar_aluno_sem_notas(db, criar_turma):
    turma, alunos, disciplinas = criar_turma(n_alunos=1)
    resultado = classificar_aluno(db, alunos[0].id, turma.id, turma.nivel_ensino, "7ª Classe",
                                  [d.id for d in disciplinas], PoliticaTransicao())
    assert resultado.status is None
    assert resultado.media_geral is None


def test_classificar_aluno_sem_disciplinas_obrigatorias(db, criar_turma):
    turma, alunos, _ = criar_turma(notas=[[12, 14, 16]])
    resultado = classificar_aluno(db, alunos[0].id, turma.id, turma.nivel_ensino, "7ª Classe",
                                  [], PoliticaTransicao())
    assert resultado.status is None
    assert resultado.media_geral is None


def test_classificar_aluno_ignora_componentes_nao_finais(db, criar_turma):
    from edugest.models.nota import Nota

    turma, alunos, disciplinas = criar_turma(notas=[[12, 14, 16]])
    db.add(Nota(aluno_id=alunos[0].id, disciplina_id=disciplinas[0].id, turma_id=turma.id,
                componente="MT1", valor=0))
    db.commit()
    resultado = classificar_aluno(db, alunos[0].id, turma.id, turma.nivel_ensino, "7ª Classe",
                                  [d.id for d in disciplinas], PoliticaTransicao())
    assert resultado.media_geral == 14.0


def test_classificar_turma(db, criar_turma):
    turma, alunos, _ = criar_turma(notas=[[12, 14, 16], [8, 9, None], []])
    resultados = classificar_turma(db, turma, PoliticaTransicao())
    assert resultados[alunos[0].id].status == StatusTransicao.TRANSITA
    assert resultados[alunos[1].id].status == StatusTransicao.NAO_TRANSITA
    assert resultados[alunos[1].id].media_geral == 8.5
    assert resultados[alunos[2].id].status is None


def test_disciplinas_com_o_mesmo_nome_contam_em_separado(db, criar_turma):
    turma, alunos, _ = criar_turma(notas=[[8, 16, 12]], disciplinas=("Matemática", "Matemática", "Física"))
    resultado = classificar_turma(db, turma, PoliticaTransicao())[alunos[0].id]
    assert resultado.media_geral == 12.0
    assert resultado.disciplinas_em_risco == ["Matemática"]
