"""
Condition Evaluator

Pure predicate evaluation: one operator applied to one answer value and
one rule value. No document access, no side effects.

Coercion follows the form runtime that produced the documents:
    - String comparisons stringify both sides the way a browser does
      (None -> "", True -> "true", 20.0 -> "20", [a, b] -> "a,b")
    - Numeric comparisons fail closed: a value that is missing or not a
      number makes gt/gte/lt/lte false
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any, List, Mapping, Optional, Union

from .conditions import Condition, ConditionOperator

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def to_text(value: Any) -> str:
    """Stringify ``value`` for string operators."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (list, tuple)):
        return ",".join(to_text(item) for item in value)
    return str(value)


def to_number(value: Any) -> Optional[float]:
    """
    Coerce ``value`` to a number.

    Returns:
        The float value, or None when ``value`` is not numeric.
        None, blank strings and NaN are not numeric.
    """
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        number = float(value)
        return None if math.isnan(number) else number
    if isinstance(value, str):
        text = value.strip()
        if _NUMBER_RE.match(text):
            return float(text)
    return None


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return to_text(value) == ""


def _split_list(rule_value: Any) -> List[str]:
    return [item.strip() for item in to_text(rule_value).split(",")]


def _resolve_operator(operator: Union[ConditionOperator, str]) -> Optional[ConditionOperator]:
    if isinstance(operator, ConditionOperator):
        return operator
    try:
        return ConditionOperator(operator)
    except ValueError:
        logger.warning("Unknown condition operator %r evaluates to False", operator)
        return None


def evaluate(field_value: Any, operator: Union[ConditionOperator, str], rule_value: Any = None) -> bool:
    """
    Evaluate ``field_value <operator> rule_value``.

    Args:
        field_value: Current answer (any JSON-like value, None when missing)
        operator: ConditionOperator or its wire name
        rule_value: Right-hand operand; ignored by isEmpty/isNotEmpty

    Returns:
        bool. Unknown operators return False.
    """
    op = _resolve_operator(operator)
    if op is None:
        return False

    if op is ConditionOperator.IS_EMPTY:
        return is_empty(field_value)
    if op is ConditionOperator.IS_NOT_EMPTY:
        return not is_empty(field_value)

    text = to_text(field_value)
    rule_text = to_text(rule_value)

    if op is ConditionOperator.EQUALS:
        return text == rule_text
    if op is ConditionOperator.NOT_EQUALS:
        return text != rule_text
    if op is ConditionOperator.CONTAINS:
        return rule_text in text
    if op is ConditionOperator.NOT_CONTAINS:
        return rule_text not in text
    if op is ConditionOperator.STARTS_WITH:
        return text.startswith(rule_text)
    if op is ConditionOperator.ENDS_WITH:
        return text.endswith(rule_text)
    if op is ConditionOperator.IN:
        return text in _split_list(rule_value)
    if op is ConditionOperator.NOT_IN:
        return text not in _split_list(rule_value)

    # Numeric operators
    number = to_number(field_value)
    if number is None:
        return False
    rule_number = 0.0 if rule_value is None else to_number(rule_value)
    if rule_number is None:
        return False

    if op is ConditionOperator.GREATER_THAN:
        return number > rule_number
    if op is ConditionOperator.GREATER_EQUAL:
        return number >= rule_number
    if op is ConditionOperator.LESS_THAN:
        return number < rule_number
    if op is ConditionOperator.LESS_EQUAL:
        return number <= rule_number

    return False


def evaluate_condition(condition: Condition, values: Mapping[str, Any]) -> bool:
    """Evaluate ``condition`` against the answer map; missing answers are None."""
    return evaluate(values.get(condition.field), condition.operator, condition.value)
