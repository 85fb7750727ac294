from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError, ExpiredSignatureError
from passlib.context import CryptContext

from .config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES

ADMIN = "Admin"
VENDOR = "Vendor"

# pbkdf2 puro de passlib, no depende del backend bcrypt instalado
password_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
oauth2_scheme = HTTPBearer(auto_error=False)

# Usuarios de demostración (en producción irían en BD con su hash)
DEMO_USERS = {
    "admin@test.com": {"password_hash": password_context.hash("admin123"), "role": ADMIN},
    "vendedor@test.com": {"password_hash": password_context.hash("vendedor123"), "role": VENDOR},
}


class CurrentUser:
    def __init__(self, username: str, role: str):
        self.username = username
        self.role = role


def verify_password(plain, hashed):
    return password_context.verify(plain, hashed)


def authenticate(username: str, password: str) -> Optional[CurrentUser]:
    user = DEMO_USERS.get(username)
    if not user or not verify_password(password, user["password_hash"]):
        return None
    return CurrentUser(username=username, role=user["role"])


# Generamos un JWT firmado con la secret key, dentro guarda el usuario, el rol y la expiracion
def create_access_token(data: dict, expires_delta: timedelta = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(oauth2_scheme)) -> CurrentUser:
    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid auth scheme")
    token = credentials.credentials
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        sub = payload.get("sub")
        role = payload.get("role")
        if sub is None or role is None:
            raise HTTPException(status_code=401, detail="Invalid token")
        return CurrentUser(username=sub, role=role)
    except ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")


def require_roles(*roles: str):
    # Crear y leer: Admin o Vendor. Modificar y borrar: solo Admin
    def checker(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in roles:
            raise HTTPException(status_code=403, detail=f"Requires role: {' or '.join(roles)}")
        return user
    return checker
