"""
Aritmética de limites das partições.

Inteiros usam a própria diferença entre os limites. Para date/timestamp a
largura é a diferença de calendário (equivalente ao ``age`` do PostgreSQL)
reaplicada com ``relativedelta``, de modo que uma partição mensal continua
mensal independente do número de dias do mês.
"""
import re
from datetime import date, datetime, time, timedelta
from typing import NamedTuple, Optional, Union

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from pgpartitioner.models.column_type import ColumnTypeFamily

Bound = Union[int, date, datetime]

_INTERVAL_UNITS = {
    "year": "years", "years": "years", "yr": "years", "yrs": "years", "y": "years",
    "mon": "months", "mons": "months", "month": "months", "months": "months",
    "week": "weeks", "weeks": "weeks", "w": "weeks",
    "day": "days", "days": "days", "d": "days",
    "hour": "hours", "hours": "hours", "hr": "hours", "hrs": "hours", "h": "hours",
    "minute": "minutes", "minutes": "minutes", "min": "minutes", "mins": "minutes",
    "second": "seconds", "seconds": "seconds", "sec": "seconds", "secs": "seconds", "s": "seconds",
}
_INTERVAL_TOKEN = re.compile(r"([+-]?\d+)\s*([a-z]+)")
_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_END_OF_DAY = time(23, 59, 59, 999999)


class ConversionBounds(NamedTuple):
    original_lower: Bound
    original_upper: Bound
    new_lower: Bound
    new_upper: Bound


def parse_interval(text: str) -> relativedelta:
    """
    Converte um intervalo no formato do PostgreSQL (``1 month``, ``13 days``,
    ``1 year 2 mons``) para ``relativedelta``.

    :raises ValueError: quando o texto não é um intervalo reconhecido.
    """
    normalized = str(text or "").strip().lower()
    amounts = {}
    position = 0
    for match in _INTERVAL_TOKEN.finditer(normalized):
        if normalized[position:match.start()].strip(" ,"):
            raise ValueError(f"Intervalo inválido: '{text}'")
        unit = _INTERVAL_UNITS.get(match.group(2))
        if unit is None:
            raise ValueError(f"Unidade de intervalo desconhecida em '{text}': {match.group(2)}")
        amounts[unit] = amounts.get(unit, 0) + int(match.group(1))
        position = match.end()
    if not amounts or normalized[position:].strip(" ,"):
        raise ValueError(f"Intervalo inválido: '{text}'")
    return relativedelta(**amounts)


def is_date_only(text: str) -> bool:
    return bool(_DATE_ONLY.match(str(text).strip()))


def parse_key(family: ColumnTypeFamily, value) -> Bound:
    if family == ColumnTypeFamily.INTEGER:
        return int(str(value).strip())
    if isinstance(value, (date, datetime)):
        parsed = value
    else:
        parsed = date_parser.isoparse(str(value).strip())
    if family == ColumnTypeFamily.DATE:
        return to_date(parsed)
    if not isinstance(parsed, datetime):
        return datetime.combine(parsed, time())
    return parsed


def to_date(value: Bound) -> date:
    return value.date() if isinstance(value, datetime) else value


def age(upper: Bound, lower: Bound) -> relativedelta:
    return relativedelta(to_date(upper), to_date(lower))


def next_bounds(family: ColumnTypeFamily, lower: Bound, upper: Bound):
    """
    Calcula o próximo range contíguo: começa em ``upper`` e tem a mesma largura do range atual.
    """
    if family == ColumnTypeFamily.INTEGER:
        return upper, upper + (upper - lower)

    new_upper = upper + age(upper, lower)
    if new_upper <= upper:
        # ranges menores que um dia
        new_upper = upper + relativedelta(upper, lower)
    if new_upper <= upper:
        raise ValueError(f"Não foi possível calcular a largura do range [{lower}, {upper})")
    return upper, new_upper


def native_conversion_bounds(family: ColumnTypeFamily, start_key: str, end_key: str, interval: str) -> ConversionBounds:
    """
    Ranges de uma conversão nativa (limite superior exclusivo).
    Para timestamp os dados originais vão até o fim do dia de ``end_key``.
    """
    if family == ColumnTypeFamily.INTEGER:
        start, end = parse_key(family, start_key), parse_key(family, end_key)
        return ConversionBounds(start, end, end, end + int(str(interval).strip()))

    step = parse_interval(interval)
    if family == ColumnTypeFamily.DATE:
        start, end = parse_key(family, start_key), parse_key(family, end_key)
        return ConversionBounds(start, end, end, end + step)

    start = parse_key(family, start_key)
    parsed_end = parse_key(family, end_key)
    end = datetime.combine(to_date(parsed_end) + timedelta(days=1), time(), tzinfo=parsed_end.tzinfo)
    return ConversionBounds(start, end, end, end + step)


def inheritance_conversion_bounds(family: ColumnTypeFamily, start_key: str, end_key: str, interval: str) -> ConversionBounds:
    """
    Ranges de uma conversão por herança, onde as CHECKs usam BETWEEN (limites inclusivos).
    """
    if family == ColumnTypeFamily.INTEGER:
        start, end = parse_key(family, start_key), parse_key(family, end_key)
        new_lower = end + 1
        return ConversionBounds(start, end, new_lower, new_lower + int(str(interval).strip()) - 1)

    step = parse_interval(interval)
    if family == ColumnTypeFamily.DATE:
        start, end = parse_key(family, start_key), parse_key(family, end_key)
        new_lower = end + timedelta(days=1)
        return ConversionBounds(start, end, new_lower, new_lower + step - timedelta(days=1))

    start = parse_key(family, start_key)
    parsed_end = parse_key(family, end_key)
    if is_date_only(end_key):
        end = datetime.combine(to_date(parsed_end), _END_OF_DAY, tzinfo=parsed_end.tzinfo)
        new_lower = datetime.combine(to_date(parsed_end) + timedelta(days=1), time(), tzinfo=parsed_end.tzinfo)
    else:
        end = parsed_end
        new_lower = parsed_end + timedelta(microseconds=1)
    new_upper = datetime.combine(new_lower.date(), _END_OF_DAY, tzinfo=new_lower.tzinfo) + step - timedelta(days=1)
    return ConversionBounds(start, end, new_lower, new_upper)


def _bound_token(value: Bound) -> str:
    if isinstance(value, (date, datetime)):
        value = to_date(value).isoformat()
    return str(value).split(" ")[0].replace("-", "")


def partition_suffix(lower: Bound, upper: Bound) -> str:
    """
    Sufixo derivado dos limites: 2023-01-01 / 2023-02-01 -> 20230101_20230201.
    """
    return f"{_bound_token(lower)}_{_bound_token(upper)}"


def partition_name(table_name: str, range_key: Optional[str], lower: Bound, upper: Bound) -> str:
    parts = [table_name] + ([range_key] if range_key else []) + [partition_suffix(lower, upper)]
    return "_".join(parts).replace("__", "_")
