import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from edugest.auth import create_access_token
from edugest.config import get_politica
from edugest.database import Base, get_db
from edugest.models.aluno import Aluno
from edugest.models.disciplina import Disciplina
from edugest.models.nota import Nota
from edugest.models.turma import Turma
from edugest.models.usuario import Usuario
from edugest.services.classificacao import PoliticaTransicao
from main import app

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def politica():
    return PoliticaTransicao()


@pytest.fixture()
def client(db, politica):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_politica] = lambda: politica
    yield TestClient(app)
    app.dependency_overrides.clear()


def _token_para(db, email, role, escola_id=None):
    db.add(Usuario(email=email, nome=email.split("@")[0], role=role, escola_id=escola_id))
    db.commit()
    return {"Authorization": f"Bearer {create_access_token({'sub': email})}"}


@pytest.fixture()
def gestor_headers(db):
    return _token_para(db, "direcao@escola.ao", "gestor")


@pytest.fixture()
def gestor_outra_escola_headers(db):
    return _token_para(db, "direcao@outra-escola.ao", "gestor", escola_id=2)


@pytest.fixture()
def professor_headers(db):
    return _token_para(db, "professor@escola.ao", "professor")


@pytest.fixture()
def criar_turma(db):
    """
    Cria uma turma com alunos ativos e, opcionalmente, notas finais.

    notas: lista (um item por aluno) de listas de notas finais, na ordem das
    disciplinas obrigatórias; None numa posição significa nota em falta.
    """
    def _criar(nome="7ª Classe A", ano_lectivo="2025", n_alunos=0, notas=None,
               disciplinas=("Língua Portuguesa", "Matemática", "Física"),
               nivel_ensino="Ensino Secundário I Ciclo"):
        turma = Turma(nome=nome, ano_lectivo=ano_lectivo, nivel_ensino=nivel_ensino, escola_id=1)
        db.add(turma)
        db.flush()

        obrigatorias = [Disciplina(nome=d, turma_id=turma.id, obrigatoria=True) for d in disciplinas]
        db.add_all(obrigatorias)
        db.flush()

        notas = notas or [[] for _ in range(n_alunos)]
        alunos = []
        for i, notas_aluno in enumerate(notas):
            aluno = Aluno(nome_completo=f"Aluno {i + 1:02d}", numero_processo=f"{turma.id}-{i + 1}",
                          turma_id=turma.id, ativo=True, frequencia_anual=90.0)
            db.add(aluno)
            db.flush()
            for disciplina, valor in zip(obrigatorias, notas_aluno):
                if valor is not None:
                    db.add(Nota(aluno_id=aluno.id, disciplina_id=disciplina.id, turma_id=turma.id,
                                componente="MF", valor=valor))
            alunos.append(aluno)
        db.commit()
        return turma, alunos, obrigatorias
    return _criar


@pytest.fixture()
def turma_destino(db):
    def _criar(nome="8ª Classe A", ano_lectivo="2026"):
        turma = Turma(nome=nome, ano_lectivo=ano_lectivo, nivel_ensino="Ensino Secundário I Ciclo", escola_id=1)
        db.add(turma)
        db.commit()
        return turma
    return _criar
