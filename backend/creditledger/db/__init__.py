import importlib
import os

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from creditledger.config import settings
from creditledger.utils.logs import get_logger

log = get_logger("db")

DATABASE_URL = settings.DATABASE_URL
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, future=True, echo=False, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# List of model modules imported before create_all (add new modules here)
MODEL_MODULES = [
    "creditledger.models.product",
    "creditledger.models.stock_movement",
    "creditledger.models.invoice",
    "creditledger.models.credit_note",
    "creditledger.models.credit_note_line",
    "creditledger.models.audit_entry",
    "creditledger.models.idempotency",
]


def import_models():
    for mod in MODEL_MODULES:
        importlib.import_module(mod)


def init_db(bind=None, reset: bool = None):
    """
    Initialize DB schema.

    Behavior:
      - If `reset` is true (or RESET_DB env var is set to 1/true/yes), drop & recreate tables.
      - Otherwise, leave existing tables in place and create missing ones.

    All model modules are imported first so metadata is populated.
    """
    bind = bind or engine
    if reset is None:
        reset = os.environ.get("RESET_DB", "false").lower() in ("1", "true", "yes")

    import_models()

    if reset:
        log.info("Resetting database (RESET_DB set)...")
        Base.metadata.drop_all(bind=bind)

    Base.metadata.create_all(bind=bind)
    log.info("Database initialized.")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
