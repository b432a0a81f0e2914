import os
from sqlmodel import Session, SQLModel, create_engine

# table registration
from app.models.found_item import FoundItem  # noqa: F401
from app.models.lost_and_found_log import LostAndFoundLog  # noqa: F401
from app.models.lost_item import LostItem  # noqa: F401
from app.models.user import User  # noqa: F401


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./lostfound.db")

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)


def create_db_and_tables(bind=None):
    SQLModel.metadata.create_all(bind or engine)


def get_session():
    with Session(engine) as session:
        yield session
