"""
Serialization helpers for form documents (FormSchema, Field, Conditional, ...).

Provides lossless JSON/YAML round-trip via an intermediate dict
representation that matches the wire format exchanged with storage,
import and export:

    {"version": "1.0", "id": ..., "metadata": {...}, "settings": {...},
     "pages": [{"id", "title", "fields": [...], "navigationRules"?, ...}]}

Container children are written under ``properties.fields``. Keys the
engine does not interpret are carried in ``attributes`` and written back
unchanged.

Load-time shape violations raise SchemaFormatError; this is the only
place the engine rejects input with an exception.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional, Set

import yaml

from formengine.conditions import (
    Condition,
    Conditional,
    ConditionalAction,
    ConditionOperator,
    LogicType,
    MultiConditional,
    SingleConditional,
)
from formengine.errors import FormEngineError
from formengine.model import (
    ContainerField,
    Field,
    FieldType,
    FormPage,
    FormSchema,
    PageNavigationRule,
    build_field,
)
from formengine.tree import iter_fields


class SchemaFormatError(FormEngineError, ValueError):
    """Raised when a payload does not have the shape of a form document."""
    pass


FIELD_KEYS = {"id", "name", "type", "label", "visible", "conditional", "properties"}
PAGE_KEYS = {
    "id", "title", "description", "fields", "navigationRules",
    "allowPrevious", "visible", "visibilityCondition",
}
SCHEMA_KEYS = {"version", "id", "metadata", "settings", "pages"}


def _enum(enum_cls, raw: Any, what: str):
    try:
        return enum_cls(raw)
    except ValueError:
        raise SchemaFormatError(f"Unknown {what}: {raw!r}")


def _optional_bool(raw: Any, what: str) -> Optional[bool]:
    if raw is None or isinstance(raw, bool):
        return raw
    raise SchemaFormatError(f"{what} must be true, false or absent, got {raw!r}")


def _mapping(raw: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(raw, Mapping):
        raise SchemaFormatError(f"{what} must be an object, got {type(raw).__name__}")
    return raw


def condition_to_dict(c: Condition) -> Dict[str, Any]:
    d: Dict[str, Any] = {"field": c.field, "operator": c.operator.value}
    if c.value is not None:
        d["value"] = c.value
    return d


def condition_from_dict(d: Any) -> Condition:
    d = _mapping(d, "condition")
    return Condition(
        field=str(d.get("field", "")),
        operator=_enum(ConditionOperator, d.get("operator", "equals"), "condition operator"),
        value=d.get("value"),
    )


def conditional_to_dict(c: Conditional | None) -> Dict[str, Any] | None:
    if c is None:
        return None
    if isinstance(c, SingleConditional):
        return {"action": c.action.value, "when": condition_to_dict(c.when)}
    return {
        "action": c.action.value,
        "logicType": c.logic_type.value,
        "conditions": [condition_to_dict(item) for item in c.conditions],
    }


def conditional_from_dict(d: Any) -> Conditional | None:
    if d is None:
        return None
    d = _mapping(d, "conditional")
    action = _enum(ConditionalAction, d.get("action", "show"), "conditional action")
    if "conditions" in d:
        raw_conditions = d.get("conditions") or []
        if not isinstance(raw_conditions, list):
            raise SchemaFormatError("conditional 'conditions' must be a list")
        return MultiConditional(
            action=action,
            logic_type=_enum(LogicType, d.get("logicType", "and"), "logic type"),
            conditions=tuple(condition_from_dict(item) for item in raw_conditions),
        )
    if "when" in d:
        return SingleConditional(action=action, when=condition_from_dict(d["when"]))
    raise SchemaFormatError("conditional needs either 'when' or 'conditions'")


def field_to_dict(f: Field) -> Dict[str, Any]:
    d: Dict[str, Any] = {"id": f.id, "name": f.name, "type": f.type.value, "label": f.label}
    if f.visible is not None:
        d["visible"] = f.visible
    if f.conditional is not None:
        d["conditional"] = conditional_to_dict(f.conditional)
    properties = dict(f.properties)
    if isinstance(f, ContainerField):
        properties["fields"] = [field_to_dict(child) for child in f.fields]
    d["properties"] = properties
    for key, value in f.attributes.items():
        d.setdefault(key, value)
    return d


def field_from_dict(d: Any) -> Field:
    d = _mapping(d, "field")
    if not d.get("id"):
        raise SchemaFormatError("field without 'id'")
    field_type = _enum(FieldType, d.get("type"), "field type")
    properties = dict(_mapping(d.get("properties") or {}, "field properties"))
    raw_children = properties.pop("fields", None)
    children: List[Field] = []
    if field_type.is_container and raw_children:
        if not isinstance(raw_children, list):
            raise SchemaFormatError(f"field {d['id']!r}: 'properties.fields' must be a list")
        children = [field_from_dict(child) for child in raw_children]
    elif raw_children is not None and not field_type.is_container:
        # leaves never own children; keep whatever was there as opaque data
        properties["fields"] = raw_children

    return build_field(
        id=str(d["id"]),
        name=str(d.get("name") or ""),
        type=field_type,
        label=str(d.get("label") or ""),
        visible=_optional_bool(d.get("visible"), f"field {d['id']!r} 'visible'"),
        conditional=conditional_from_dict(d.get("conditional")),
        properties=properties,
        attributes={k: v for k, v in d.items() if k not in FIELD_KEYS},
        fields=children,
    )


def rule_to_dict(r: PageNavigationRule) -> Dict[str, Any]:
    return {
        "id": r.id,
        "fieldName": r.field_name,
        "operator": r.operator.value,
        "value": r.value,
        "targetPageId": r.target_page_id,
    }


def rule_from_dict(d: Any) -> PageNavigationRule:
    d = _mapping(d, "navigation rule")
    return PageNavigationRule(
        id=str(d.get("id", "")),
        field_name=str(d.get("fieldName", "")),
        operator=_enum(ConditionOperator, d.get("operator", "equals"), "navigation operator"),
        value=d.get("value"),
        target_page_id=str(d.get("targetPageId", "")),
    )


def page_to_dict(p: FormPage) -> Dict[str, Any]:
    d: Dict[str, Any] = {"id": p.id, "title": p.title}
    if p.description is not None:
        d["description"] = p.description
    d["fields"] = [field_to_dict(f) for f in p.fields]
    if p.navigation_rules:
        d["navigationRules"] = [rule_to_dict(r) for r in p.navigation_rules]
    d["allowPrevious"] = p.allow_previous
    if p.visible is not None:
        d["visible"] = p.visible
    if p.visibility_condition is not None:
        d["visibilityCondition"] = conditional_to_dict(p.visibility_condition)
    for key, value in p.attributes.items():
        d.setdefault(key, value)
    return d


def page_from_dict(d: Any) -> FormPage:
    d = _mapping(d, "page")
    if not d.get("id"):
        raise SchemaFormatError("page without 'id'")
    raw_fields = d.get("fields") or []
    if not isinstance(raw_fields, list):
        raise SchemaFormatError(f"page {d['id']!r}: 'fields' must be a list")
    allow_previous = _optional_bool(d.get("allowPrevious"), f"page {d['id']!r} 'allowPrevious'")
    visible = _optional_bool(d.get("visible"), f"page {d['id']!r} 'visible'")
    return FormPage(
        id=str(d["id"]),
        title=str(d.get("title") or ""),
        fields=[field_from_dict(f) for f in raw_fields],
        navigation_rules=[rule_from_dict(r) for r in d.get("navigationRules") or []],
        allow_previous=True if allow_previous is None else allow_previous,
        description=d.get("description"),
        visible=visible,
        visibility_condition=conditional_from_dict(d.get("visibilityCondition")),
        attributes={k: v for k, v in d.items() if k not in PAGE_KEYS},
    )


def schema_to_dict(s: FormSchema) -> Dict[str, Any]:
    d: Dict[str, Any] = {
        "version": s.version,
        "id": s.id,
        "metadata": dict(s.metadata),
        "settings": dict(s.settings),
        "pages": [page_to_dict(p) for p in s.pages],
    }
    for key, value in s.attributes.items():
        d.setdefault(key, value)
    return d


def validate_payload(d: Any) -> Mapping[str, Any]:
    """
    Check the outer shape of an imported document.

    Raises:
        SchemaFormatError: if ``d`` is not an object carrying a ``version``
        and a non-empty ``pages`` list
    """
    d = _mapping(d, "form schema")
    if not d.get("version"):
        raise SchemaFormatError("form schema is missing 'version'")
    if not isinstance(d.get("pages"), list):
        raise SchemaFormatError("form schema is missing a 'pages' list")
    if not d["pages"]:
        raise SchemaFormatError("form schema has no pages")
    return d


def _check_unique_ids(s: FormSchema) -> None:
    page_ids: Set[str] = set()
    field_ids: Set[str] = set()
    for page in s.pages:
        if page.id in page_ids:
            raise SchemaFormatError(f"duplicate page id {page.id!r}")
        page_ids.add(page.id)
        for node in iter_fields(page.fields):
            if node.id in field_ids:
                raise SchemaFormatError(f"duplicate field id {node.id!r}")
            field_ids.add(node.id)


def schema_from_dict(d: Any) -> FormSchema:
    d = validate_payload(d)
    s = FormSchema(
        version=str(d["version"]),
        id=str(d.get("id") or ""),
        metadata=dict(_mapping(d.get("metadata") or {}, "metadata")),
        settings=dict(_mapping(d.get("settings") or {}, "settings")),
        pages=[page_from_dict(p) for p in d["pages"]],
        attributes={k: v for k, v in d.items() if k not in SCHEMA_KEYS},
    )
    _check_unique_ids(s)
    return s


def schema_to_json(s: FormSchema, indent: Optional[int] = None) -> str:
    return json.dumps(schema_to_dict(s), indent=indent, ensure_ascii=False)


def schema_from_json(s: str) -> FormSchema:
    try:
        d = json.loads(s)
    except json.JSONDecodeError as e:
        raise SchemaFormatError(f"invalid JSON: {e}") from e
    return schema_from_dict(d)


def schema_to_yaml(s: FormSchema) -> str:
    return yaml.safe_dump(schema_to_dict(s), allow_unicode=True, sort_keys=False)


def schema_from_yaml(s: str) -> FormSchema:
    try:
        d = yaml.safe_load(s)
    except yaml.YAMLError as e:
        raise SchemaFormatError(f"invalid YAML: {e}") from e
    return schema_from_dict(d)
