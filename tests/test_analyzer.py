"""
Tests for the Schema Analyzer.

Tests verify that the analyzer correctly:
    - Inventories pages, fields and containers
    - Detects duplicate ids and names
    - Finds dangling condition and navigation references
    - Flags empty pages and containers
"""

from formengine.analyzer import analyze_schema
from formengine.conditions import Condition, ConditionalAction, ConditionOperator, SingleConditional
from formengine.examples import build_example_form
from formengine.model import ContainerField, Field, FieldType, FormPage, FormSchema, PageNavigationRule


def test_example_form_is_clean():
    """The example form has no problems."""
    report = analyze_schema(build_example_form())

    assert report.total_pages == 4
    assert report.total_fields == 10
    assert report.total_containers == 1
    assert report.max_depth == 2
    assert report.fields_by_type["text"] == 3
    assert report.fields_with_conditionals == 2
    assert report.pages_with_conditionals == 1
    assert report.warnings == []
    assert not report.has_problems


def test_duplicates():
    """Should detect duplicate ids and names across pages."""
    schema = FormSchema(version="1.0", id="dup", pages=[
        FormPage(id="p1", fields=[Field(id="a", name="q", type=FieldType.TEXT)]),
        FormPage(id="p1", fields=[Field(id="a", name="q", type=FieldType.TEXT)]),
    ])
    report = analyze_schema(schema)

    assert report.duplicate_field_ids == {"a"}
    assert report.duplicate_field_names == {"q"}
    assert report.duplicate_page_ids == {"p1"}
    assert any("Duplicate field ids" in w for w in report.warnings)


def test_dangling_references():
    """Should detect conditions and rules pointing at nothing."""
    schema = build_example_form()
    schema.pages[0].fields[0].conditional = SingleConditional(
        ConditionalAction.SHOW, Condition("ghost", ConditionOperator.IS_NOT_EMPTY),
    )
    schema.pages[0].navigation_rules.append(
        PageNavigationRule("r-x", "phantom", ConditionOperator.EQUALS, "1", "page-void"),
    )
    report = analyze_schema(schema)

    assert report.unknown_condition_fields == [("f-country", "ghost")]
    assert report.unknown_rule_fields == [("r-x", "phantom")]
    assert report.unknown_rule_targets == [("r-x", "page-void")]
    assert "Navigation rules target unknown pages: page-void" in report.warnings


def test_empty_pages_and_containers():
    schema = FormSchema(version="1.0", id="e", pages=[
        FormPage(id="p1", fields=[ContainerField(id="box", name="box", type=FieldType.PANEL)]),
        FormPage(id="p2"),
    ])
    report = analyze_schema(schema)

    assert report.empty_pages == ["p2"]
    assert report.empty_containers == ["box"]
    assert len(report.warnings) == 2


def test_no_pages():
    report = analyze_schema(FormSchema(version="1.0", id="none"))
    assert report.total_fields == 0
    assert report.max_depth == 0
    assert "Document has no pages" in report.warnings
