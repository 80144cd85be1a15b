# src/neogm/core/queries.py
"""
NeoGM Query Translation

Pure functions that turn a node label plus property/filter mappings into
parameterized Cypher. Nothing here touches the driver; the entity and
repository layers execute the resulting CypherQuery values.

Node identity is the Neo4j element id, matched with ``elementId(n) = $id``.
Every value travels as a bound parameter; only labels, property keys and
pagination integers are interpolated, and those are quoted or checked first.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Tuple

from neogm.exceptions import UnsupportedKeyError


NODE = "n"


class CypherQuery(NamedTuple):
    """Query text together with its bind parameters."""

    text: str
    parameters: Dict[str, Any]


def quote_label(label: str) -> str:
    """Backtick-quote a label, escaping embedded backticks."""
    return "`" + label.replace("`", "``") + "`"


def check_key(key: Any) -> str:
    """Ensure a property key can be used as a Cypher property and parameter name."""
    if not isinstance(key, str) or not key.isidentifier():
        raise UnsupportedKeyError(key)
    return key


def _match(label: str) -> str:
    return f"MATCH ({NODE}:{quote_label(label)})"


def _where_equals(where: Optional[Mapping[str, Any]]) -> Tuple[str, Dict[str, Any]]:
    """AND-joined equality predicates, in the mapping's iteration order."""
    if not where:
        return "", {}
    predicates: List[str] = []
    parameters: Dict[str, Any] = {}
    for key, value in where.items():
        check_key(key)
        predicates.append(f"{NODE}.{key} = ${key}")
        parameters[key] = value
    return " WHERE " + " AND ".join(predicates), parameters


def _order_by(order_by: str) -> str:
    """`"age"` sorts ascending, `"-age"` descending."""
    descending = order_by.startswith("-")
    field_name = check_key(order_by[1:] if descending else order_by)
    return f" ORDER BY {NODE}.{field_name}" + (" DESC" if descending else "")


def _non_negative(name: str, value: Any) -> int:
    number = int(value)
    if number < 0:
        raise ValueError(f"{name} must be non-negative, got {value!r}")
    return number


def create_node(label: str, properties: Mapping[str, Any]) -> CypherQuery:
    """CREATE a node carrying `properties`, bound as parameters of the same name."""
    if properties:
        assignments = ", ".join(f"{check_key(key)}: ${key}" for key in properties)
        text = f"CREATE ({NODE}:{quote_label(label)} {{{assignments}}}) RETURN {NODE}"
    else:
        text = f"CREATE ({NODE}:{quote_label(label)}) RETURN {NODE}"
    return CypherQuery(text, dict(properties))


def update_node(label: str, entity_id: Any, properties: Mapping[str, Any]) -> CypherQuery:
    """Merge `properties` into the node matched by identity."""
    for key in properties:
        check_key(key)
    text = (
        f"{_match(label)} WHERE elementId({NODE}) = $id "
        f"SET {NODE} += $props RETURN {NODE}"
    )
    return CypherQuery(text, {"id": entity_id, "props": dict(properties)})


def match_by_id(label: str, entity_id: Any) -> CypherQuery:
    text = f"{_match(label)} WHERE elementId({NODE}) = $id RETURN {NODE}"
    return CypherQuery(text, {"id": entity_id})


def delete_by_id(label: str, entity_id: Any) -> CypherQuery:
    text = (
        f"{_match(label)} WHERE elementId({NODE}) = $id "
        f"DELETE {NODE} RETURN count({NODE}) AS deleted"
    )
    return CypherQuery(text, {"id": entity_id})


def find_nodes(
    label: str,
    where: Optional[Mapping[str, Any]] = None,
    order_by: Optional[str] = None,
    limit: Optional[int] = None,
    skip: Optional[int] = None,
) -> CypherQuery:
    """
    Match nodes of `label` filtered by flat equality.

    Clauses are always emitted in the order WHERE, RETURN, ORDER BY, SKIP,
    LIMIT. A zero or missing `skip`/`limit` emits no clause.
    """
    where_clause, parameters = _where_equals(where)
    text = f"{_match(label)}{where_clause} RETURN {NODE}"
    if order_by:
        text += _order_by(order_by)
    if skip:
        text += f" SKIP {_non_negative('skip', skip)}"
    if limit:
        text += f" LIMIT {_non_negative('limit', limit)}"
    return CypherQuery(text, parameters)


def count_nodes(label: str, where: Optional[Mapping[str, Any]] = None) -> CypherQuery:
    where_clause, parameters = _where_equals(where)
    text = f"{_match(label)}{where_clause} RETURN count({NODE}) AS total"
    return CypherQuery(text, parameters)


def clear_all() -> CypherQuery:
    return CypherQuery(f"MATCH ({NODE}) DETACH DELETE {NODE}", {})
