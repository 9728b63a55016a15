import argparse

from edugest.auth import create_access_token
from edugest.database import SessionLocal, engine, Base
from edugest.models.usuario import Usuario

# Importação dos outros modelos para garantir que o SQLAlchemy registre tudo
from edugest.models.aluno import Aluno  # noqa: F401
from edugest.models.disciplina import Disciplina  # noqa: F401
from edugest.models.historico_matricula import HistoricoMatricula  # noqa: F401
from edugest.models.matricula import Matricula  # noqa: F401
from edugest.models.nota import Nota  # noqa: F401
from edugest.models.turma import Turma  # noqa: F401


def criar_primeiro_usuario(email="admin@escola.ao", role="administrador"):
    """
    Cria (se não existir) o utilizador administrador e devolve um token de
    acesso para chamar a API.
    """
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        user = db.query(Usuario).filter(Usuario.email == email).first()
        if not user:
            print("Criando primeiro usuário administrador...")
            db.add(Usuario(email=email, nome="Administrador da Escola", role=role))
            db.commit()
            print("✅ Usuário criado com sucesso!")
        else:
            print(f"ℹ️ Usuário '{email}' já existe.")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    return create_access_token({"sub": email})


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description='Cria o primeiro utilizador e mostra o token')
    parser.add_argument('--email', default="admin@escola.ao")
    args = parser.parse_args()
    print(f"🔑 Token: {criar_primeiro_usuario(args.email)}")
