# backend/database.py
import importlib

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from config import settings

# Every module that declares tables; imported before create_all and by alembic
MODEL_MODULES = (
    "models.users",
    "models.category",
    "models.product",
    "models.cart",
    "models.order",
    "models.payment",
    "models.log",
)

SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

# Hosted Postgres still hands out postgres:// URLs
if SQLALCHEMY_DATABASE_URL.startswith("postgres://"):
    SQLALCHEMY_DATABASE_URL = SQLALCHEMY_DATABASE_URL.replace("postgres://", "postgresql://", 1)

IS_SQLITE = SQLALCHEMY_DATABASE_URL.startswith("sqlite")

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False} if IS_SQLITE else {},
    pool_pre_ping=not IS_SQLITE,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def import_models():
    for name in MODEL_MODULES:
        importlib.import_module(name)
    return Base.metadata

def init_db():
    import_models().create_all(bind=engine)
