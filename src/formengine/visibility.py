"""
Visibility Resolver: field and page visibility, page navigation.

Read-only: every function takes the CURRENT document and the CURRENT
answer values and returns a decision. Nothing here mutates the document.

Rules:
    - A conditional, whatever its action, fully overrides
      the static ``visible`` flag; it is NOT combined with it. Only
      show/hide can hide; any other action resolves to visible.
    - Missing answers evaluate as empty / non-numeric, which hides
      ``show``-type targets (fail-closed).
    - Navigation is first-match-wins over the page's rules in list order,
      falling back to the next visible page.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

from .conditions import (
    Conditional,
    ConditionalAction,
    LogicType,
    MultiConditional,
    SingleConditional,
    VISIBILITY_ACTIONS,
)
from .evaluator import evaluate, evaluate_condition, is_empty
from .model import NON_INPUT_TYPES, ContainerField, Field, FormPage, FormSchema
from .tree import child_fields


def conditional_matches(conditional: Conditional, values: Mapping[str, Any]) -> bool:
    """
    Whether the predicate part of ``conditional`` holds.

    AND: every condition holds. OR: at least one holds.
    An empty multi-condition list matches.
    """
    if isinstance(conditional, SingleConditional):
        return evaluate_condition(conditional.when, values)

    if not conditional.conditions:
        return True
    results = (evaluate_condition(c, values) for c in conditional.conditions)
    if conditional.logic_type is LogicType.AND:
        return all(results)
    return any(results)


def evaluate_conditional(conditional: Optional[Conditional], values: Mapping[str, Any]) -> bool:
    """
    Resolve a conditional to a visibility decision.

    Returns:
        ``matched`` for show, ``not matched`` for hide. True for no
        conditional, a non-visibility action, or a multi-conditional
        with no conditions, whatever its action.
    """
    if conditional is None or conditional.action not in VISIBILITY_ACTIONS:
        return True
    if isinstance(conditional, MultiConditional) and not conditional.conditions:
        return True
    matched = conditional_matches(conditional, values)
    if conditional.action is ConditionalAction.SHOW:
        return matched
    return not matched


def _resolve(visible: Optional[bool], conditional: Optional[Conditional], values: Mapping[str, Any]) -> bool:
    if conditional is not None:
        return evaluate_conditional(conditional, values)
    return visible is not False


def is_field_visible(field: Field, values: Mapping[str, Any]) -> bool:
    """Effective visibility of one node, ignoring its ancestors."""
    return _resolve(field.visible, field.conditional, values)


def is_page_visible(page: FormPage, values: Mapping[str, Any]) -> bool:
    return _resolve(page.visible, page.visibility_condition, values)


def visible_fields(fields: List[Field], values: Mapping[str, Any]) -> List[Field]:
    """
    Flatten the visible nodes of ``fields``, parents before children.

    A hidden container hides its whole subtree.
    """
    result: List[Field] = []
    for node in fields:
        if not is_field_visible(node, values):
            continue
        result.append(node)
        result.extend(visible_fields(child_fields(node), values))
    return result


def visible_pages(schema: FormSchema, values: Mapping[str, Any]) -> List[FormPage]:
    return [page for page in schema.pages if is_page_visible(page, values)]


def next_page_id(schema: FormSchema, current_page_id: str, values: Mapping[str, Any]) -> Optional[str]:
    """
    Destination when the respondent advances past ``current_page_id``.

    Walks the current page's navigation rules in list order; the first
    rule whose predicate holds AND whose target is a visible page wins.
    Otherwise the next visible page. On the last visible page advancing
    is a no-op and the current id is returned.

    Returns:
        Page id, or None if ``current_page_id`` is not a visible page
    """
    pages = visible_pages(schema, values)
    ids = [page.id for page in pages]
    if current_page_id not in ids:
        return None
    index = ids.index(current_page_id)

    for rule in pages[index].navigation_rules:
        if evaluate(values.get(rule.field_name), rule.operator, rule.value):
            if rule.target_page_id in ids:
                return rule.target_page_id

    return ids[min(index + 1, len(ids) - 1)]


def previous_page_id(schema: FormSchema, current_page_id: str, values: Mapping[str, Any]) -> Optional[str]:
    """
    Destination when the respondent goes back.

    Returns:
        The previous visible page id, or None on the first page, on a page
        with ``allow_previous`` false, or for an unknown page
    """
    pages = visible_pages(schema, values)
    ids = [page.id for page in pages]
    if current_page_id not in ids:
        return None
    index = ids.index(current_page_id)
    if index == 0 or not pages[index].allow_previous:
        return None
    return ids[index - 1]


@dataclass
class Progress:
    """Answered share of the visible input fields."""
    filled: int = 0
    total: int = 0
    percent: int = 100


def _is_input(field: Field) -> bool:
    return not isinstance(field, ContainerField) and field.type not in NON_INPUT_TYPES


def progress(schema: FormSchema, values: Mapping[str, Any]) -> Progress:
    """Count visible input fields on visible pages and how many are answered."""
    inputs = [
        node
        for page in visible_pages(schema, values)
        for node in visible_fields(page.fields, values)
        if _is_input(node)
    ]
    if not inputs:
        return Progress(filled=0, total=0, percent=100)
    filled = sum(1 for node in inputs if not is_empty(values.get(node.name)))
    return Progress(filled=filled, total=len(inputs), percent=round(filled * 100 / len(inputs)))
