from pathlib import Path

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from config import config
from db.models import Base


def init_db(database_url: str | None = None, echo: bool = False) -> Session:
    url = make_url(database_url or config().database_url)
    if url.drivername.startswith("sqlite") and url.database not in (None, "", ":memory:"):
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    engine: Engine = create_engine(url, echo=echo)

    Base.metadata.create_all(engine)
    return sessionmaker(engine)()
