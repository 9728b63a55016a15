import logging
import argparse

from edugest.config import get_politica
from edugest.database import SessionLocal
from edugest.erros import ErroMatricula, traduzir_erro
# --- Importações de todos os modelos ---
from edugest.models.aluno import Aluno  # noqa: F401
from edugest.models.disciplina import Disciplina  # noqa: F401
from edugest.models.historico_matricula import HistoricoMatricula  # noqa: F401
from edugest.models.matricula import Matricula  # noqa: F401
from edugest.models.nota import Nota  # noqa: F401
from edugest.models.turma import Turma
from edugest.models.usuario import Usuario  # noqa: F401
from edugest.services.classificacao import calcular_proximo_ano_lectivo
from edugest.services.matriculas import gerar_e_classificar
from sqlalchemy.exc import SQLAlchemyError

# Configuração básica de logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')


def gerar_matriculas(argv=None):
    """
    Gera e classifica as matrículas pendentes de fim de ano.
    Com --turma-id processa uma turma; com --ano-origem processa todas as
    turmas desse ano lectivo. Por omissão o destino é o ano seguinte.
    """
    parser = argparse.ArgumentParser(description='Gerador de Matrículas')
    parser.add_argument('--turma-id', type=int, help='ID da turma de origem')
    parser.add_argument('--ano-origem', help='Processa todas as turmas deste ano lectivo (ex: 2025)')
    parser.add_argument('--ano-destino', help='Ano lectivo de destino (ex: 2026)')
    args = parser.parse_args(argv)

    if not args.turma_id and not args.ano_origem:
        logging.error("Indique --turma-id ou --ano-origem.")
        return 1

    politica = get_politica()
    db = SessionLocal()
    falhas = 0
    try:
        if args.turma_id:
            turmas = db.query(Turma).filter(Turma.id == args.turma_id).all()
        else:
            turmas = db.query(Turma).filter(Turma.ano_lectivo == args.ano_origem).order_by(Turma.nome).all()

        if not turmas:
            logging.warning("Nenhuma turma encontrada para os parâmetros indicados.")
            return 1

        logging.info(f"Encontradas {len(turmas)} turmas.")
        for turma in turmas:
            ano_destino = args.ano_destino or calcular_proximo_ano_lectivo(turma.ano_lectivo)
            try:
                resultado = gerar_e_classificar(db, turma.id, ano_destino, politica)
                logging.info(f"-> {turma.nome}: {resultado['criadas']} criadas, "
                             f"{resultado['classificadas']} classificadas (destino {ano_destino})")
            except (ErroMatricula, SQLAlchemyError) as e:
                # A turma falhada não deixa nada gravado; as restantes continuam
                falhas += 1
                mensagem = e.mensagem if isinstance(e, ErroMatricula) else str(e)
                logging.error(f"Erro na turma {turma.nome}: {traduzir_erro(mensagem)}")
    finally:
        db.close()

    return 1 if falhas else 0


if __name__ == "__main__":
    raise SystemExit(gerar_matriculas())
