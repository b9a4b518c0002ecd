import os
from logging import Logger
from sqlalchemy import create_engine
from sqlalchemy.engine import URL
from sqlalchemy.orm import sessionmaker
from injector import inject


class DatabaseProvider:
    @inject
    def __init__(self, logger: Logger):
        self.logger = logger
        self._configure_database()

    def _database_url(self):
        database_url = os.getenv("DATABASE_URL")
        if database_url:
            return database_url

        return URL.create(
            "postgresql+psycopg2",
            username=os.getenv("DB_USER", "postgres"),
            password=os.getenv("DB_PASSWORD"),
            host=os.getenv("DB_HOST", "localhost"),
            port=int(os.getenv("DB_PORT", "5432")),
            database=os.getenv("DB_NAME", "postgres"),
        )

    def _configure_database(self):
        database_url = self._database_url()
        self.logger.debug(f"[{self.__class__.__name__}] Configuring engine for [{os.getenv('DB_HOST', 'localhost')}]")

        self.engine = create_engine(
            database_url,
            pool_pre_ping=True,
            connect_args={"application_name": os.getenv("APPLICATION_NAME", "pgpartitioner")},
        )
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def get_session(self):
        db = self.SessionLocal()
        try:
            yield db
        finally:
            db.close()
