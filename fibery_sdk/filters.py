"""
Filter compiler for the Fibery SDK.

Turns (field, kind, operator, value) conditions into the "q/where"
predicate tree of a fibery.entity/query command plus its params map.

The predicate for each condition comes from a (kind, operator) table.
Kinds are ControlType values, tagged on the condition when it was
authored. Parameters are named positionally ($where0, $where1, ...) so
repeated conditions on one field never collide.

Invariants:
    - An unknown (kind, operator) pair contributes nothing, no error;
      so does a date comparison without a value
    - With a queried type, fields failing is_supported() are skipped
    - is_empty / is_not_empty compare an emptiness probe with true/false
    - Date values are converted to a UTC instant before being sent;
      naive values are read in the caller's timezone
    - 0 conditions -> no predicate, 1 -> unwrapped, 2+ -> wrapped once
      in the match mode

Example:
    >>> compile_filter([Condition("fibery/name", "text", "contains", "Acme")])
    CompiledFilter(where=['q/contains', ['fibery/name'], '$where0'], params={'$where0': 'Acme'})
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone as dt_timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple, Union
from zoneinfo import ZoneInfo

from dateutil import parser as date_parser

from .config import get_settings
from .fields import DEFAULT_POLICY, ControlType, FieldPolicy, is_supported
from .schema import DEFAULT_ID_FIELD, Schema, Type

logger = logging.getLogger(__name__)

DATE_PARTS = ("q/start", "q/end")
_DATE_KINDS = (ControlType.DATE, ControlType.DATE_RANGE)


class Operator(Enum):
    """Filter operators offered per control type."""

    IS = "is"
    IS_NOT = "is_not"
    CONTAINS = "contains"
    DOES_NOT_CONTAIN = "does_not_contain"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
    LESS_THAN_OR_EQUAL = "less_than_or_equal"
    IS_BEFORE = "is_before"
    IS_AFTER = "is_after"
    IS_ON_OR_BEFORE = "is_on_or_before"
    IS_ON_OR_AFTER = "is_on_or_after"


class MatchMode(Enum):
    """How two or more conditions combine."""

    AND = "q/and"
    OR = "q/or"

    @classmethod
    def parse(cls, value: Union[MatchMode, str]) -> MatchMode:
        if isinstance(value, MatchMode):
            return value
        if not value.startswith("q/"):
            value = f"q/{value.lower()}"
        return cls(value)


_EMPTINESS = (Operator.IS_EMPTY, Operator.IS_NOT_EMPTY)

OPERATORS_PER_CONTROL: Dict[ControlType, Tuple[Operator, ...]] = {
    ControlType.TEXT: (
        Operator.CONTAINS,
        Operator.DOES_NOT_CONTAIN,
        Operator.IS,
        Operator.IS_NOT,
        Operator.STARTS_WITH,
        Operator.ENDS_WITH,
        *_EMPTINESS,
    ),
    ControlType.NUMBER: (
        Operator.IS,
        Operator.IS_NOT,
        Operator.GREATER_THAN,
        Operator.LESS_THAN,
        Operator.GREATER_THAN_OR_EQUAL,
        Operator.LESS_THAN_OR_EQUAL,
        *_EMPTINESS,
    ),
    ControlType.BOOLEAN: (Operator.IS,),
    ControlType.DATE: (
        Operator.IS,
        Operator.IS_BEFORE,
        Operator.IS_AFTER,
        Operator.IS_ON_OR_BEFORE,
        Operator.IS_ON_OR_AFTER,
        *_EMPTINESS,
    ),
    ControlType.SELECT: (Operator.IS, Operator.IS_NOT, *_EMPTINESS),
    ControlType.MULTI_SELECT: (Operator.CONTAINS, Operator.DOES_NOT_CONTAIN, *_EMPTINESS),
    ControlType.FILE: _EMPTINESS,
}
OPERATORS_PER_CONTROL[ControlType.DATE_RANGE] = OPERATORS_PER_CONTROL[ControlType.DATE]


@dataclass(frozen=True)
class BuildOptions:
    """What a predicate builder may need besides path and param name."""

    value: Any = None
    timezone: str = "UTC"
    date_part: Optional[str] = None
    id_field: str = DEFAULT_ID_FIELD


# Marks "send the condition's value unchanged" as the param value
_AS_IS = object()

Predicate = List[Any]
Builder = Callable[[str, str, BuildOptions], Tuple[Predicate, Any]]


def to_utc_instant(value: Any, tz_name: str) -> str:
    """Read a date/time value in a timezone and return it as UTC ISO-8601.

    Naive values (no offset) are interpreted in tz_name; values with an
    offset keep it. Output has millisecond precision and a "Z" suffix.

    Example:
        >>> to_utc_instant("2024-03-01T09:00:00", "Europe/Berlin")
        '2024-03-01T08:00:00.000Z'
    """
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime(value.year, value.month, value.day)
    else:
        moment = date_parser.parse(str(value))

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=ZoneInfo(tz_name))

    utc = moment.astimezone(dt_timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _path(name: str, opts: BuildOptions) -> List[Any]:
    if opts.date_part:
        return [opts.date_part, [name]]
    return [name]


def _compare(op: str) -> Builder:
    return lambda name, param, opts: ([op, [name], param], _AS_IS)


def _call(fn: str) -> Builder:
    return lambda name, param, opts: ([fn, [name], param], _AS_IS)


def _empty_probe(probe: str, empty: bool) -> Builder:
    return lambda name, param, opts: (["=", [probe, _path(name, opts)], param], empty)


def _date_compare(op: str) -> Builder:
    return lambda name, param, opts: (
        [op, _path(name, opts), param],
        to_utc_instant(opts.value, opts.timezone),
    )


def _related_id(op: str) -> Builder:
    return lambda name, param, opts: ([op, [name, opts.id_field], param], _AS_IS)


def _related_probe(probe: str, empty: bool) -> Builder:
    return lambda name, param, opts: (["=", [probe, [name, opts.id_field]], param], empty)


_DATE_BUILDERS: Dict[Operator, Builder] = {
    Operator.IS: _date_compare("="),
    Operator.IS_BEFORE: _date_compare("<"),
    Operator.IS_AFTER: _date_compare(">"),
    Operator.IS_ON_OR_BEFORE: _date_compare("<="),
    Operator.IS_ON_OR_AFTER: _date_compare(">="),
    Operator.IS_EMPTY: _empty_probe("q/null?", True),
    Operator.IS_NOT_EMPTY: _empty_probe("q/null?", False),
}

_COLLECTION_EMPTINESS: Dict[Operator, Builder] = {
    Operator.IS_EMPTY: _empty_probe("q/null-or-empty?", True),
    Operator.IS_NOT_EMPTY: _empty_probe("q/null-or-empty?", False),
}

PREDICATE_BUILDERS: Dict[ControlType, Dict[Operator, Builder]] = {
    ControlType.TEXT: {
        Operator.CONTAINS: _call("q/contains"),
        Operator.DOES_NOT_CONTAIN: _call("q/does_not_contain"),
        Operator.IS: _call("q/equals-ignoring-case?"),
        Operator.IS_NOT: _call("q/not-equals-ignoring-case?"),
        Operator.STARTS_WITH: _call("q/starts-with-ignoring-case?"),
        Operator.ENDS_WITH: _call("q/ends-with-ignoring-case?"),
        **_COLLECTION_EMPTINESS,
    },
    ControlType.NUMBER: {
        Operator.IS: _compare("="),
        Operator.IS_NOT: _compare("!="),
        Operator.GREATER_THAN: _compare(">"),
        Operator.LESS_THAN: _compare("<"),
        Operator.GREATER_THAN_OR_EQUAL: _compare(">="),
        Operator.LESS_THAN_OR_EQUAL: _compare("<="),
        **_COLLECTION_EMPTINESS,
    },
    ControlType.BOOLEAN: {
        Operator.IS: _compare("="),
    },
    ControlType.DATE: _DATE_BUILDERS,
    ControlType.DATE_RANGE: _DATE_BUILDERS,
    ControlType.SELECT: {
        Operator.IS: _related_id("="),
        Operator.IS_NOT: _related_id("!="),
        Operator.IS_EMPTY: _related_probe("q/null?", True),
        Operator.IS_NOT_EMPTY: _related_probe("q/null?", False),
    },
    ControlType.MULTI_SELECT: {
        Operator.CONTAINS: _related_id("q/in"),
        Operator.DOES_NOT_CONTAIN: _related_id("q/not-in"),
        **_COLLECTION_EMPTINESS,
    },
    ControlType.FILE: _COLLECTION_EMPTINESS,
}


@dataclass(frozen=True)
class Condition:
    """One filter row.

    Attributes:
        field: Field name, e.g. "fibery/name"
        kind: ControlType (or its value) the field was classified as
        operator: Operator (or its value)
        value: Compared value; ignored by emptiness operators
        date_part: "q/start" or "q/end" for date-range fields
    """

    field: str
    kind: Union[ControlType, str]
    operator: Union[Operator, str]
    value: Any = None
    date_part: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Condition:
        """Create from a UI condition row.

        The row's "key" is the field descriptor produced by
        fields.field_key(), either as a dict or JSON-encoded.
        """
        key = data.get("key") or {}
        if isinstance(key, str):
            key = json.loads(key) if key else {}
        return cls(
            field=key.get("name", ""),
            kind=data.get("type") or key.get("type") or "",
            operator=data.get("operator", ""),
            value=data.get("value"),
            date_part=data.get("datePart"),
        )


class CompiledFilter(NamedTuple):
    """Predicate tree (None when unfiltered) and its params."""

    where: Optional[Predicate]
    params: Dict[str, Any]


def _lookup(condition: Condition) -> Optional[Builder]:
    try:
        kind = ControlType(condition.kind)
        operator = Operator(condition.operator)
    except ValueError:
        return None
    return PREDICATE_BUILDERS.get(kind, {}).get(operator)


def _missing_date_value(condition: Condition) -> bool:
    """Date comparison whose value has not been filled in yet."""
    return (
        ControlType(condition.kind) in _DATE_KINDS
        and Operator(condition.operator) not in _EMPTINESS
        and (condition.value is None or condition.value == "")
    )


def compile_filter(
    conditions: Sequence[Condition],
    match_mode: Union[MatchMode, str] = MatchMode.AND,
    t: Optional[Type] = None,
    schema: Optional[Schema] = None,
    timezone: Optional[str] = None,
    policy: FieldPolicy = DEFAULT_POLICY,
) -> CompiledFilter:
    """Compile conditions into a q/where predicate and params.

    Conditions that cannot compile (unknown kind/operator pair, a date
    comparison without a value, an unsupported field) contribute nothing.

    Args:
        conditions: Filter rows in order
        match_mode: Combination for two or more predicates
        t: Queried type; when given, condition fields must exist on it
        schema: Schema of t; used to address related entities by their id field
        timezone: IANA timezone for naive date values (default from settings)
        policy: Which optional field kinds are supported; applies when t is given

    Returns:
        CompiledFilter(where, params)

    Raises:
        NotFoundError: If t is given and a condition names an unknown field
    """
    mode = MatchMode.parse(match_mode)
    tz_name = timezone or get_settings().default_timezone

    predicates: List[Predicate] = []
    params: Dict[str, Any] = {}

    for i, condition in enumerate(conditions):
        if not condition.field:
            continue

        id_field = DEFAULT_ID_FIELD
        if t is not None:
            field = t.get_field(condition.field)
            if not is_supported(field, policy):
                logger.debug("Field %s is not supported in filters, skipping", condition.field)
                continue
            target = schema.field_target(field) if schema is not None else None
            if target is not None:
                id_field = target.id_field

        builder = _lookup(condition)
        if builder is None:
            logger.debug(
                "No predicate for kind=%s operator=%s on %s, skipping",
                condition.kind,
                condition.operator,
                condition.field,
            )
            continue

        if _missing_date_value(condition):
            logger.debug("No value for date condition on %s, skipping", condition.field)
            continue

        date_part = None
        if ControlType(condition.kind) is ControlType.DATE_RANGE:
            date_part = condition.date_part if condition.date_part in DATE_PARTS else DATE_PARTS[0]

        param = f"$where{i}"
        predicate, param_value = builder(
            condition.field,
            param,
            BuildOptions(
                value=condition.value,
                timezone=tz_name,
                date_part=date_part,
                id_field=id_field,
            ),
        )
        predicates.append(predicate)
        params[param] = condition.value if param_value is _AS_IS else param_value

    if not predicates:
        return CompiledFilter(where=None, params={})
    if len(predicates) == 1:
        return CompiledFilter(where=predicates[0], params=params)
    return CompiledFilter(where=[mode.value, *predicates], params=params)
