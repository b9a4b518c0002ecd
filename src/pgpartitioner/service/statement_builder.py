import re
from datetime import date, datetime
from typing import Iterable, List, Optional

from sqlalchemy import String
from sqlalchemy.dialects import postgresql

from pgpartitioner.service.boundaries import Bound

# literais, identificadores (com ou sem aspas), números e operadores de uma expressão de índice
_EXPRESSION_TOKEN = re.compile(
    r"\s+|'(?:[^']|'')*'|\"(?:[^\"]|\"\")+\"|[a-z_][a-z0-9_$]*|\d+(?:\.\d+)?|::|[(),.+\-*/<>=|%&^~!\[\]]",
    re.IGNORECASE,
)
_IDENTIFIER = re.compile(r"^(?:[a-z_][a-z0-9_$]*|\"(?:[^\"]|\"\")+\")$", re.IGNORECASE)
_FORBIDDEN_IN_EXPRESSION = (";", "--", "/*", "*/")
_STORAGE_OPTION = re.compile(r"^[a-z_][a-z0-9_.]*=[a-z0-9_.\-]+$", re.IGNORECASE)


class StatementBuilder:
    """
    Monta o texto dos comandos DDL.
    Identificadores sempre passam pelo identifier_preparer do dialeto PostgreSQL
    e literais pelo literal_processor, nunca por interpolação direta.
    """

    def __init__(self):
        self.dialect = postgresql.dialect()
        self.preparer = self.dialect.identifier_preparer
        self._string_literal = String().literal_processor(dialect=self.dialect)

    def quote(self, name: str) -> str:
        return self.preparer.quote(name)

    def qualify(self, schema: str, name: str) -> str:
        return f"{self.quote(schema)}.{self.quote(name)}"

    def literal(self, value: Bound) -> str:
        if isinstance(value, bool):
            raise ValueError(f"Valor de limite inválido: {value!r}")
        if isinstance(value, int):
            return str(value)
        if isinstance(value, datetime):
            return self._string_literal(value.isoformat(sep=" "))
        if isinstance(value, date):
            return self._string_literal(value.isoformat())
        return self._string_literal(str(value))

    def typed_literal(self, value: Bound, cast_type: str) -> str:
        if isinstance(value, int) and not isinstance(value, bool):
            return self.literal(value)
        return f"{self.literal(value)}::{cast_type}"

    def range_check(self, column: str, lower: Bound, upper: Bound, cast_type: str) -> str:
        quoted = self.quote(column)
        return (
            f"(({quoted} IS NOT NULL) AND ({quoted} >= {self.typed_literal(lower, cast_type)}) "
            f"AND ({quoted} < {self.typed_literal(upper, cast_type)}))"
        )

    def between_check(self, column: str, lower: Bound, upper: Bound, cast_type: str) -> str:
        quoted = self.quote(column)
        return (
            f"({quoted} BETWEEN {self.typed_literal(lower, cast_type)} "
            f"AND {self.typed_literal(upper, cast_type)})"
        )

    def bound_check(self, column: str, operator: str, value: Bound, cast_type: str) -> str:
        if operator not in (">=", "<="):
            raise ValueError(f"Operador não suportado: {operator}")
        return f"({self.quote(column)} {operator} {self.typed_literal(value, cast_type)})"

    def expression_tokens(self, expression: str) -> List[str]:
        """
        Quebra uma expressão de índice em tokens, exigindo parênteses balanceados.
        Rejeita ``;``, comentários e vírgulas fora de parênteses (mais de uma coluna).
        """
        text = (expression or "").strip()
        if not text or any(marker in text for marker in _FORBIDDEN_IN_EXPRESSION):
            raise ValueError(f"Expressão de coluna inválida: '{expression}'")

        tokens, position, depth = [], 0, 0
        while position < len(text):
            match = _EXPRESSION_TOKEN.match(text, position)
            if not match:
                raise ValueError(f"Expressão de coluna inválida: '{expression}'")
            position = match.end()
            token = match.group(0)
            if token.isspace():
                continue
            if token == "(":
                depth += 1
            elif token == ")":
                depth -= 1
            elif token == "," and depth == 0:
                depth = -1
            if depth < 0:
                raise ValueError(f"Expressão de coluna inválida: '{expression}'")
            tokens.append(token)
        if depth != 0:
            raise ValueError(f"Parênteses desbalanceados em '{expression}'")
        return tokens

    def validate_expression(self, expression: str) -> str:
        self.expression_tokens(expression)
        return expression.strip()

    def expression_column(self, expression: str) -> str:
        """
        Coluna que dá nome ao índice: o primeiro identificador dentro dos parênteses
        que não é chamada de função, ou o primeiro token quando não há parênteses.
        ``date_trunc('day', created_at)`` -> ``created_at``, ``created_at desc`` -> ``created_at``.
        """
        tokens = self.expression_tokens(expression)
        name = tokens[0]
        if "(" in tokens:
            inner = tokens[tokens.index("(") + 1:]
            for token, following in zip(inner, inner[1:] + [None]):
                if _IDENTIFIER.match(token) and following != "(":
                    name = token
                    break
        return name.strip('"').lower()

    def validate_storage_options(self, options: Iterable[str]) -> List[str]:
        validated = []
        for option in options:
            if not _STORAGE_OPTION.match(option):
                raise ValueError(f"Opção de storage inválida: '{option}'")
            validated.append(option)
        return validated

    def column_list(self, columns: Iterable[str]) -> str:
        return ", ".join(self.quote(column) for column in columns)

    def index_name(self, stem: str, columns_suffix: str, max_stem: int, attempt: Optional[int] = None) -> str:
        """
        ``<stem>_<colunas>`` truncado em ``max_stem`` caracteres + ``_idx``.
        Com ``attempt`` o número é inserido antes do ``_idx``.
        """
        base = f"{stem}_{columns_suffix}".lower()[:max_stem]
        if attempt is None:
            return f"{base}_idx"
        return f"{base[:max_stem - len(str(attempt))]}{attempt}_idx"
