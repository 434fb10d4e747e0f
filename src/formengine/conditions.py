"""
Conditional Rule Values

Every dynamic show/hide rule attached to a field or a page is represented
by the immutable values defined here, never by raw dicts or strings.

A Conditional has exactly one of two shapes:
    - SingleConditional: one ``when`` Condition
    - MultiConditional: several Conditions combined with AND / OR

The shape is the Python type itself, so a rule can never hold both
``when`` and ``conditions`` at once.

ARCHITECTURAL RULE:
    These objects hold structure only.
    Evaluation lives in ``formengine.evaluator`` and
    ``formengine.visibility``.
    Editing helpers return NEW values; nothing here mutates in place.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple, Union


class ConditionOperator(Enum):
    """
    Predicate operators understood by the condition evaluator.

    Values are the wire names used in serialized documents.
    """

    # String comparison
    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    CONTAINS = "contains"
    NOT_CONTAINS = "notContains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"

    # Numeric comparison
    GREATER_THAN = "gt"
    GREATER_EQUAL = "gte"
    LESS_THAN = "lt"
    LESS_EQUAL = "lte"

    # Presence
    IS_EMPTY = "isEmpty"
    IS_NOT_EMPTY = "isNotEmpty"

    # List membership (rule value is a comma-separated list)
    IN = "in"
    NOT_IN = "notIn"


# Operators that ignore the right-hand operand
UNARY_OPERATORS = frozenset({ConditionOperator.IS_EMPTY, ConditionOperator.IS_NOT_EMPTY})


class ConditionalAction(Enum):
    """
    What a matched Conditional does to its owner.

    Only SHOW and HIDE influence visibility. The remaining actions are
    carried through the document unchanged for the renderer.
    """

    SHOW = "show"
    HIDE = "hide"
    ENABLE = "enable"
    DISABLE = "disable"
    REQUIRE = "require"
    UNREQUIRE = "unrequire"


VISIBILITY_ACTIONS = frozenset({ConditionalAction.SHOW, ConditionalAction.HIDE})


class LogicType(Enum):
    """How the conditions of a MultiConditional are combined."""

    AND = "and"
    OR = "or"


RuleValue = Union[str, int, float, bool, None]


@dataclass(frozen=True)
class Condition:
    """
    One predicate over the current answer values.

    Example:
        age >= 18

    Becomes:
        Condition(field="age", operator=ConditionOperator.GREATER_EQUAL, value="18")

    Properties:
        field: Name of the field supplying the left-hand value
        operator: ConditionOperator
        value: Right-hand operand (ignored by isEmpty / isNotEmpty)

    IMPORTANT:
        ``field`` is a NAME reference, not an id. A reference to a field
        that no longer exists is legal and evaluates as a missing value.
    """

    field: str
    operator: ConditionOperator = ConditionOperator.EQUALS
    value: RuleValue = None


@dataclass(frozen=True)
class SingleConditional:
    """
    Conditional with exactly one condition.

    Properties:
        action: ConditionalAction applied when ``when`` matches
        when: The Condition
    """

    action: ConditionalAction
    when: Condition


@dataclass(frozen=True)
class MultiConditional:
    """
    Conditional combining several conditions.

    Properties:
        action: ConditionalAction applied when the combination matches
        logic_type: LogicType.AND (all must match) or LogicType.OR (any)
        conditions: Ordered tuple of Conditions
    """

    action: ConditionalAction
    logic_type: LogicType = LogicType.AND
    conditions: Tuple[Condition, ...] = ()


Conditional = Union[SingleConditional, MultiConditional]


def conditions_of(conditional: Conditional) -> Tuple[Condition, ...]:
    """Return the conditions of either shape as a tuple."""
    if isinstance(conditional, SingleConditional):
        return (conditional.when,)
    return tuple(conditional.conditions)


def add_condition(conditional: Conditional, condition: Condition) -> MultiConditional:
    """
    Append ``condition``.

    A SingleConditional is promoted to a MultiConditional with AND logic.
    """
    if isinstance(conditional, SingleConditional):
        return MultiConditional(
            action=conditional.action,
            logic_type=LogicType.AND,
            conditions=(conditional.when, condition),
        )
    return replace(conditional, conditions=tuple(conditional.conditions) + (condition,))


def remove_condition(conditional: Conditional, index: int) -> Optional[Conditional]:
    """
    Remove the condition at ``index``.

    Returns:
        None when no condition is left (the conditional is cleared),
        a SingleConditional when exactly one is left,
        otherwise a MultiConditional keeping its logic type.
        An out-of-range index returns ``conditional`` unchanged.
    """
    current = conditions_of(conditional)
    if not 0 <= index < len(current):
        return conditional

    remaining = current[:index] + current[index + 1:]
    if not remaining:
        return None
    if len(remaining) == 1:
        return SingleConditional(action=conditional.action, when=remaining[0])
    return replace(conditional, conditions=remaining)


def replace_condition(conditional: Conditional, index: int, condition: Condition) -> Conditional:
    """Swap the condition at ``index`` keeping the shape."""
    if isinstance(conditional, SingleConditional):
        if index != 0:
            return conditional
        return replace(conditional, when=condition)

    current = list(conditional.conditions)
    if not 0 <= index < len(current):
        return conditional
    current[index] = condition
    return replace(conditional, conditions=tuple(current))


def set_action(conditional: Conditional, action: ConditionalAction) -> Conditional:
    return replace(conditional, action=action)


def set_logic_type(conditional: Conditional, logic_type: LogicType) -> Conditional:
    """Change the combination logic. A SingleConditional has none and is returned as is."""
    if isinstance(conditional, SingleConditional):
        return conditional
    return replace(conditional, logic_type=logic_type)
