# import models so SQLAlchemy registers them
from campus_lms.db.base import Base
from campus_lms.db.session import engine


def init_db() -> None:
    Base.metadata.create_all(bind=engine)
