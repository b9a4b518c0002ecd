from logging import Logger
from sqlalchemy.orm import Session
from typing import Any, Type, TypeVar, Generic, Optional

T = TypeVar('T')

class GenericRepository(Generic[T]):
    """
    Repositório genérico para as tabelas de registro (configuração e partições desanexadas).
    O controle de commit e rollback deve ser gerenciado externamente.
    """
    def __init__(self, db_session: Session, model: Type[T], logger: Logger):
        """
        :param db_session: Sessão do banco de dados.
        :param model: Modelo da tabela associada.
        :param logger: Logger para logging de operações.
        """
        self.db_session = db_session
        self.model = model
        self.logger = logger

    def save(self, obj: T) -> T:
        """
        Insere o objeto, ou faz merge quando a chave primária já está na sessão.

        :param obj: Objeto a ser salvo.
        :return: Objeto salvo.
        """
        try:
            self.logger.debug(f"[{self.__class__.__name__}] Saving object: [{obj!r}]")
            obj = self.db_session.merge(obj)
            self.db_session.flush()
            return obj
        except Exception as e:
            self.logger.error(f"[{self.__class__.__name__}] Error saving object [{obj!r}]: {e}")
            raise

    def get_by_id(self, obj_id: Any) -> Optional[T]:
        """
        Obtém um objeto pela chave primária. Chaves compostas são passadas como tupla.

        :param obj_id: Chave primária.
        :return: Objeto encontrado ou None.
        """
        try:
            self.logger.debug(f"[{self.__class__.__name__}] Getting object by ID: [{obj_id}]")
            return self.db_session.get(self.model, obj_id)
        except Exception as e:
            self.logger.error(f"[{self.__class__.__name__}] Error fetching object by ID [{obj_id}]: {e}")
            raise

    def hard_delete(self, obj_id: Any) -> bool:
        """
        Remove permanentemente um objeto pela chave primária.

        :return: True se foi removido, False caso contrário.
        """
        try:
            self.logger.debug(f"[{self.__class__.__name__}] Hard deleting object with ID [{obj_id}]")
            obj = self.get_by_id(obj_id)
            if not obj:
                self.logger.warning(f"[{self.__class__.__name__}] Object with ID [{obj_id}] not found for hard delete.")
                return False
            self.db_session.delete(obj)
            self.db_session.flush()
            return True
        except Exception as e:
            self.logger.error(f"[{self.__class__.__name__}] Error hard deleting object with ID [{obj_id}]: {e}")
            raise

