import os
from pathlib import Path
from dotenv import load_dotenv

# Cargar SIEMPRE el .env local (no el de la raíz)
ENV_PATH = Path(__file__).resolve().parent / ".env"

load_dotenv(dotenv_path=ENV_PATH, override=True)   # variables al entorno


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


SECRET_KEY = os.getenv("SECRET_KEY")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
# 24 horas por defecto
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 1440))

# "sql" (SQLAlchemy) o "memory" (dict compartido con lock)
ORDER_STORE = os.getenv("ORDER_STORE", "sql").strip().lower()

PROCESSOR_ENABLED = _as_bool(os.getenv("PROCESSOR_ENABLED", "false"))
PROCESSOR_INTERVAL_SECONDS = float(os.getenv("PROCESSOR_INTERVAL_SECONDS", 30))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

if not SECRET_KEY:
    raise RuntimeError("SECRET_KEY no está definida en ventas/.env ni en el entorno")

if ORDER_STORE not in ("sql", "memory"):
    raise RuntimeError(f"ORDER_STORE inválido: {ORDER_STORE!r} (usar 'sql' o 'memory')")
