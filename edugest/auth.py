# edugest/auth.py
from datetime import datetime, timedelta
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from edugest import database
from edugest.config import SECRET_KEY
from edugest.models.usuario import Usuario

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 8 # Token expira em 8 horas

# Papéis que podem alterar matrículas; os restantes só consultam
ROLES_GESTAO = ("administrador", "gestor", "secretario")
ROLES_LEITURA = ROLES_GESTAO + ("professor",)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")

def create_access_token(data: dict, expires_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES):
    to_encode = data.copy()
    expire = datetime.utcnow() + timedelta(minutes=expires_minutes)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

# --- DEPENDÊNCIAS DE AUTENTICAÇÃO E AUTORIZAÇÃO ---
def get_user(db: Session, email: str):
    return db.query(Usuario).filter(Usuario.email == email).first()

async def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(database.get_db)):
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Credenciais inválidas", headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        email: str = payload.get("sub")
        if email is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception
    user = get_user(db, email=email)
    if user is None:
        raise credentials_exception
    return user

async def get_usuario_leitura(current_user: Usuario = Depends(get_current_user)):
    """
    Qualquer papel ativo da escola pode consultar matrículas.
    Bloqueia se o papel for 'pendente'.
    """
    if current_user.role not in ROLES_LEITURA:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Sua conta não tem acesso às matrículas."
        )
    return current_user

async def get_usuario_gestao(current_user: Usuario = Depends(get_current_user)):
    if current_user.role not in ROLES_GESTAO:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Acesso restrito à direção e secretaria da escola."
        )
    return current_user
