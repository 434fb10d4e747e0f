"""
Tests for the visibility resolver and page navigation.

Uses the example registration form where possible:
    page-personal -> (age < 18) page-minor | (age >= 18) page-adult
    page-adult, page-minor (hidden for adults), page-final (no going back)
"""

from formengine.conditions import (
    Condition,
    ConditionalAction,
    ConditionOperator,
    LogicType,
    MultiConditional,
    SingleConditional,
)
from formengine.examples import build_example_form
from formengine.model import Field, FieldType, FormPage, FormSchema, PageNavigationRule
from formengine.tree import find_field
from formengine.visibility import (
    evaluate_conditional,
    is_field_visible,
    is_page_visible,
    next_page_id,
    previous_page_id,
    progress,
    visible_fields,
    visible_pages,
)


def us_state_field() -> Field:
    return find_field(build_example_form(), "f-us-state").field


class TestFieldVisibility:
    """Static flag vs. conditional."""

    def test_default_is_visible(self):
        assert is_field_visible(Field(id="a", name="a", type=FieldType.TEXT), {}) is True

    def test_static_hidden(self):
        assert is_field_visible(Field(id="a", name="a", type=FieldType.TEXT, visible=False), {}) is False

    def test_and_conditional(self):
        """country == US AND age >= 18."""
        field = us_state_field()
        assert is_field_visible(field, {"country": "US", "age": 20}) is True
        assert is_field_visible(field, {"country": "US", "age": 16}) is False
        assert is_field_visible(field, {"country": "UK", "age": 20}) is False

    def test_or_conditional(self):
        field = us_state_field()
        field.conditional = MultiConditional(
            action=ConditionalAction.SHOW,
            logic_type=LogicType.OR,
            conditions=field.conditional.conditions,
        )
        assert is_field_visible(field, {"country": "UK", "age": 20}) is True
        assert is_field_visible(field, {"country": "UK", "age": 16}) is False

    def test_missing_answers_hide_show_targets(self):
        """Fail-closed: nothing answered yet means not shown."""
        assert is_field_visible(us_state_field(), {}) is False

    def test_conditional_overrides_static_flag(self):
        """A show conditional wins over visible=False."""
        field = Field(
            id="a", name="a", type=FieldType.TEXT, visible=False,
            conditional=SingleConditional(ConditionalAction.SHOW, Condition("x", ConditionOperator.EQUALS, "1")),
        )
        assert is_field_visible(field, {"x": "1"}) is True

    def test_hide_action(self):
        field = Field(
            id="a", name="a", type=FieldType.TEXT,
            conditional=SingleConditional(ConditionalAction.HIDE, Condition("x", ConditionOperator.EQUALS, "1")),
        )
        assert is_field_visible(field, {"x": "1"}) is False
        assert is_field_visible(field, {"x": "2"}) is True

    def test_non_visibility_action_overrides_static_flag(self):
        """Any conditional replaces the static flag; enable/require never hide."""
        conditional = SingleConditional(ConditionalAction.REQUIRE, Condition("x", ConditionOperator.IS_EMPTY))
        shown = Field(id="a", name="a", type=FieldType.TEXT, conditional=conditional)
        hidden = Field(id="b", name="b", type=FieldType.TEXT, visible=False, conditional=conditional)
        assert is_field_visible(shown, {}) is True
        assert is_field_visible(hidden, {}) is True
        assert is_field_visible(hidden, {"x": "filled"}) is True

        page = FormPage(
            id="p", visible=False,
            visibility_condition=SingleConditional(ConditionalAction.ENABLE, Condition("x", ConditionOperator.IS_EMPTY)),
        )
        assert is_page_visible(page, {}) is True

    def test_empty_multi_matches(self):
        assert evaluate_conditional(MultiConditional(ConditionalAction.SHOW), {}) is True
        assert evaluate_conditional(None, {}) is True

    def test_empty_multi_is_visible_for_any_action(self):
        """A multi-conditional with no conditions never hides, even with hide."""
        empty_hide = MultiConditional(ConditionalAction.HIDE)
        assert evaluate_conditional(empty_hide, {}) is True
        field = Field(id="a", name="a", type=FieldType.TEXT, conditional=empty_hide)
        assert is_field_visible(field, {}) is True


class TestVisibleFields:
    """Flattening with container subtrees."""

    def test_hidden_panel_hides_children(self):
        page = build_example_form().get_page("page-adult")
        names = [f.name for f in visible_fields(page.fields, {"employed": False})]
        assert names == ["employed"]

    def test_shown_panel_lists_children_after_parent(self):
        page = build_example_form().get_page("page-adult")
        names = [f.name for f in visible_fields(page.fields, {"employed": True})]
        assert names == ["employed", "employment", "employer", "start_date"]


class TestPageVisibility:

    def test_page_condition(self):
        minor = build_example_form().get_page("page-minor")
        assert is_page_visible(minor, {"age": 12}) is True
        assert is_page_visible(minor, {"age": 30}) is False

    def test_static_hidden_page(self):
        assert is_page_visible(FormPage(id="p", visible=False), {}) is False

    def test_visible_pages_order(self):
        ids = [p.id for p in visible_pages(build_example_form(), {"age": 30})]
        assert ids == ["page-personal", "page-adult", "page-final"]


class TestNavigation:
    """First-match-wins rules with fallback to the next visible page."""

    def test_first_matching_rule_wins(self):
        schema = build_example_form()
        assert next_page_id(schema, "page-personal", {"age": 30}) == "page-adult"
        assert next_page_id(schema, "page-personal", {"age": 12}) == "page-minor"

    def test_rule_order_matters(self):
        """Two rules both matching: the earlier one is taken."""
        schema = FormSchema(version="1.0", id="f", pages=[
            FormPage(id="pageA", navigation_rules=[
                PageNavigationRule("r1", "q1", ConditionOperator.EQUALS, "yes", "pageB"),
                PageNavigationRule("r2", "q1", ConditionOperator.NOT_EQUALS, "", "pageC"),
            ]),
            FormPage(id="pageB"),
            FormPage(id="pageC"),
        ])
        assert next_page_id(schema, "pageA", {"q1": "yes"}) == "pageB"
        assert next_page_id(schema, "pageA", {"q1": "no"}) == "pageC"
        assert next_page_id(schema, "pageA", {}) == "pageB"

    def test_fallback_to_next_page(self):
        """No rule matches (age unanswered): sequential order."""
        schema = build_example_form()
        assert next_page_id(schema, "page-personal", {}) == "page-adult"

    def test_hidden_pages_are_skipped(self):
        schema = build_example_form()
        assert next_page_id(schema, "page-adult", {"age": 30}) == "page-final"
        assert next_page_id(schema, "page-adult", {"age": 12}) == "page-minor"

    def test_rule_to_hidden_target_is_skipped(self):
        schema = build_example_form()
        schema.get_page("page-minor").visible = False
        schema.get_page("page-minor").visibility_condition = None
        assert next_page_id(schema, "page-personal", {"age": 12}) == "page-adult"

    def test_last_page_is_noop(self):
        schema = build_example_form()
        assert next_page_id(schema, "page-final", {}) == "page-final"

    def test_unknown_page(self):
        assert next_page_id(build_example_form(), "nope", {}) is None

    def test_previous(self):
        schema = build_example_form()
        assert previous_page_id(schema, "page-adult", {"age": 30}) == "page-personal"
        assert previous_page_id(schema, "page-personal", {}) is None

    def test_previous_respects_allow_previous(self):
        assert previous_page_id(build_example_form(), "page-final", {"age": 30}) is None


class TestProgress:

    def test_empty_form_is_complete(self):
        schema = FormSchema(version="1.0", id="f", pages=[FormPage(id="p")])
        p = progress(schema, {})
        assert (p.filled, p.total, p.percent) == (0, 0, 100)

    def test_counts_visible_inputs_only(self):
        """Containers, display-only fields and hidden fields are not counted."""
        values = {"country": "UK", "age": 30, "employed": False}
        p = progress(build_example_form(), values)
        # country, age, employed, comments
        assert p.total == 4
        assert p.filled == 3
        assert p.percent == 75

    def test_nested_inputs_count_when_shown(self):
        values = {"country": "US", "age": 30, "employed": True, "employer": "ACME"}
        p = progress(build_example_form(), values)
        # country, age, us_state, employed, employer, start_date, comments
        assert p.total == 7
        assert p.filled == 4
        assert p.percent == round(400 / 7)
