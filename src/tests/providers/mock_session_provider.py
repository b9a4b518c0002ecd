from contextlib import nullcontext

from pgpartitioner.provider.session_provider import SessionProvider


class TestSessionProvider(SessionProvider):
    """
    Substitui o SessionProvider de produção por uma sessão
    de teste (normalmente um MagicMock), sem abrir conexão com o PostgreSQL.
    """
    def __init__(self, session):
        self._session = session

    def get_session(self):
        return self._session

    def commit(self):
        self._session.commit()

    def rollback(self):
        self._session.rollback()

    def savepoint(self):
        return nullcontext()

    def close(self):
        pass
