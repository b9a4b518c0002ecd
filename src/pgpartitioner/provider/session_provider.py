from injector import singleton, inject

from pgpartitioner.provider.database_provider import DatabaseProvider

@singleton
class SessionProvider:
    """Mantém a sessão única usada por repositórios e serviços durante uma operação."""

    @inject
    def __init__(self, database_service: DatabaseProvider):
        self._database_service = database_service
        self._session_generator = self._database_service.get_session()
        self._session = next(self._session_generator)

    def get_session(self):
        return self._session

    def commit(self):
        self._session.commit()

    def rollback(self):
        self._session.rollback()

    def savepoint(self):
        """
        Abre um SAVEPOINT na transação corrente. Usado como context manager:
        uma exceção dentro do bloco desfaz apenas o trabalho do savepoint.
        """
        return self._session.begin_nested()

    def close(self):
        """
        Fecha o generator de sessão; a sessão volta ao pool.
        """
        self._session_generator.close()
