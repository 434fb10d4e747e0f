"""
Tests for conditional rule values.

These tests verify:
    - Single/multi shape promotion and demotion
    - Immutability of the helpers (new values returned)
    - Enum wire names
"""

import pytest

from formengine.conditions import (
    Condition,
    ConditionalAction,
    ConditionOperator,
    LogicType,
    MultiConditional,
    SingleConditional,
    UNARY_OPERATORS,
    VISIBILITY_ACTIONS,
    add_condition,
    conditions_of,
    remove_condition,
    replace_condition,
    set_action,
    set_logic_type,
)


A = Condition("country", ConditionOperator.EQUALS, "US")
B = Condition("age", ConditionOperator.GREATER_EQUAL, "18")
C = Condition("email", ConditionOperator.IS_NOT_EMPTY)


class TestValues:
    """Test the value objects themselves."""

    def test_condition_defaults(self):
        """A bare condition compares for equality against no value."""
        c = Condition("x")
        assert c.operator is ConditionOperator.EQUALS
        assert c.value is None

    def test_conditions_are_frozen(self):
        """Conditions cannot be mutated in place."""
        with pytest.raises(Exception):
            A.value = "UK"

    def test_wire_names(self):
        """Enum values are the serialized operator names."""
        assert ConditionOperator("notEquals") is ConditionOperator.NOT_EQUALS
        assert ConditionOperator("gte") is ConditionOperator.GREATER_EQUAL
        assert ConditionOperator("notIn") is ConditionOperator.NOT_IN
        assert LogicType("or") is LogicType.OR
        assert ConditionalAction("unrequire") is ConditionalAction.UNREQUIRE

    def test_operator_groups(self):
        assert UNARY_OPERATORS == {ConditionOperator.IS_EMPTY, ConditionOperator.IS_NOT_EMPTY}
        assert VISIBILITY_ACTIONS == {ConditionalAction.SHOW, ConditionalAction.HIDE}
        assert len(ConditionOperator) == 14
        assert len(ConditionalAction) == 6


class TestShapeDuality:
    """Test promotion Single -> Multi and demotion Multi -> Single -> None."""

    def test_add_promotes_single_to_multi_with_and(self):
        """Adding a second condition yields an AND multi-conditional."""
        single = SingleConditional(ConditionalAction.SHOW, A)
        multi = add_condition(single, B)
        assert isinstance(multi, MultiConditional)
        assert multi.logic_type is LogicType.AND
        assert multi.conditions == (A, B)
        assert multi.action is ConditionalAction.SHOW

    def test_add_to_multi_appends_and_keeps_logic(self):
        multi = MultiConditional(ConditionalAction.HIDE, LogicType.OR, (A, B))
        grown = add_condition(multi, C)
        assert grown.conditions == (A, B, C)
        assert grown.logic_type is LogicType.OR
        assert multi.conditions == (A, B)

    def test_remove_demotes_to_single(self):
        """Deleting down to one condition demotes to the single shape."""
        multi = MultiConditional(ConditionalAction.SHOW, LogicType.OR, (A, B))
        result = remove_condition(multi, 0)
        assert result == SingleConditional(ConditionalAction.SHOW, B)

    def test_remove_last_condition_clears(self):
        """Removing the only condition leaves no conditional at all."""
        single = SingleConditional(ConditionalAction.SHOW, A)
        assert remove_condition(single, 0) is None

    def test_remove_keeps_multi_above_one(self):
        multi = MultiConditional(ConditionalAction.SHOW, LogicType.OR, (A, B, C))
        result = remove_condition(multi, 1)
        assert isinstance(result, MultiConditional)
        assert result.conditions == (A, C)
        assert result.logic_type is LogicType.OR

    def test_remove_out_of_range_is_noop(self):
        single = SingleConditional(ConditionalAction.SHOW, A)
        assert remove_condition(single, 3) is single
        assert remove_condition(single, -1) is single

    def test_replace_condition(self):
        single = SingleConditional(ConditionalAction.SHOW, A)
        assert replace_condition(single, 0, B).when == B
        assert replace_condition(single, 1, B) is single

        multi = MultiConditional(ConditionalAction.SHOW, LogicType.AND, (A, B))
        assert replace_condition(multi, 1, C).conditions == (A, C)
        assert replace_condition(multi, 5, C) is multi

    def test_set_action_and_logic(self):
        single = SingleConditional(ConditionalAction.SHOW, A)
        assert set_action(single, ConditionalAction.HIDE).action is ConditionalAction.HIDE
        assert set_logic_type(single, LogicType.OR) is single

        multi = MultiConditional(ConditionalAction.SHOW, LogicType.AND, (A, B))
        assert set_logic_type(multi, LogicType.OR).logic_type is LogicType.OR

    def test_conditions_of_both_shapes(self):
        assert conditions_of(SingleConditional(ConditionalAction.SHOW, A)) == (A,)
        assert conditions_of(MultiConditional(ConditionalAction.SHOW, conditions=(A, B))) == (A, B)
