import pytest
from datetime import date
from sqlalchemy import Column, Date, Integer, String, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from pgpartitioner.repositories.generic_repository import GenericRepository

Base = declarative_base()

class Registry(Base):
    __tablename__ = 'registry'

    schema_name = Column(String, primary_key=True)
    table_name = Column(String, primary_key=True)
    detached_date = Column(Date, nullable=True)
    owner = Column(String, nullable=True)

    def __repr__(self):
        return f"<Registry({self.schema_name}.{self.table_name})>"

class Counter(Base):
    __tablename__ = 'counters'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)

@pytest.fixture
def db_session():
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)

    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(engine)

@pytest.fixture
def mock_logger(mocker):
    return mocker.MagicMock()

@pytest.fixture
def registry_repository(db_session, mock_logger):
    return GenericRepository[Registry](db_session=db_session, model=Registry, logger=mock_logger)

@pytest.fixture
def counter_repository(db_session, mock_logger):
    return GenericRepository[Counter](db_session=db_session, model=Counter, logger=mock_logger)

def test_save_new_object(counter_repository, db_session):
    saved = counter_repository.save(Counter(name="partitions"))

    assert saved.id is not None
    assert db_session.query(Counter).filter_by(id=saved.id).first().name == "partitions"

def test_save_merges_existing_composite_key(registry_repository, db_session):
    db_session.add(Registry(schema_name="public", table_name="orders_1_101", owner="app"))
    db_session.flush()

    saved = registry_repository.save(Registry(schema_name="public", table_name="orders_1_101", owner="maintenance"))

    assert saved.owner == "maintenance"
    assert db_session.query(Registry).count() == 1

def test_get_by_id_with_composite_key(registry_repository, db_session):
    db_session.add(Registry(schema_name="public", table_name="orders_1_101", detached_date=date(2023, 2, 20)))
    db_session.flush()

    result = registry_repository.get_by_id(("public", "orders_1_101"))

    assert result is not None
    assert result.detached_date == date(2023, 2, 20)

def test_get_by_id_not_found(registry_repository):
    assert registry_repository.get_by_id(("public", "missing")) is None

def test_hard_delete(registry_repository, db_session):
    db_session.add(Registry(schema_name="public", table_name="a"))
    db_session.flush()

    assert registry_repository.hard_delete(("public", "a")) is True
    assert db_session.query(Registry).count() == 0

def test_hard_delete_not_found(registry_repository, mock_logger):
    assert registry_repository.hard_delete(("public", "missing")) is False
    mock_logger.warning.assert_called_once()

def test_save_error_is_logged_and_raised(counter_repository, mock_logger):
    with pytest.raises(Exception):
        counter_repository.save(Counter(name=None))

    mock_logger.error.assert_called_once()
