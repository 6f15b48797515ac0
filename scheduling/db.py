# scheduling/db.py

from sqlmodel import SQLModel, create_engine, Session

# SQLite database (file-based)
DATABASE_URL = "sqlite:///./scheduling.db"

engine = create_engine(
    DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},  # required for SQLite + FastAPI
)

def create_db_and_tables():
    SQLModel.metadata.create_all(engine)

# Dependency: one session per request
def get_session():
    with Session(engine) as session:
        yield session
