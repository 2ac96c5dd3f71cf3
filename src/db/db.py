from pathlib import Path

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from config import DB_FILE
from db.models import Base


def init_db(echo: bool = False, *, db_file: Path | str = DB_FILE, reset: bool = True) -> Session:
    """Open the run database; ``db_file=":memory:"`` gives a throwaway in-memory store."""
    if str(db_file) == ":memory:":
        url = "sqlite://"
    else:
        path = Path(db_file)
        if reset and path.exists():
            path.unlink()
        path.parent.mkdir(parents=True, exist_ok=True)
        url = f"sqlite:///{path}"

    engine: Engine = create_engine(url, echo=echo)

    Base.metadata.create_all(engine)
    return sessionmaker(engine)()
