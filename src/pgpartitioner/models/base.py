from sqlalchemy.orm import declarative_base

Base = declarative_base()

class AbstractBase(Base):
    __abstract__ = True
