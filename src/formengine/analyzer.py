"""
Schema Analyzer: early diagnostics and inventory of form documents.

This module provides lightweight analysis of FormSchema objects:
    - Field inventory per type and nesting depth
    - Id and name uniqueness
    - Dangling references from conditions and navigation rules
    - Empty pages and containers
    - Warning flags for authoring mistakes

IMPORTANT: It does NOT modify the document.
It only produces read-only reports. A document can load cleanly and still
carry every problem listed here; the engine tolerates them at runtime.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Set, Tuple

from formengine.conditions import conditions_of
from formengine.model import ContainerField, Field, FormSchema
from formengine.tree import child_fields


@dataclass
class SchemaReport:
    """Analysis report for a form document."""

    schema_id: str
    total_pages: int = 0
    total_fields: int = 0
    total_containers: int = 0
    max_depth: int = 0
    fields_by_type: Dict[str, int] = field(default_factory=dict)

    # Uniqueness
    duplicate_field_ids: Set[str] = field(default_factory=set)
    duplicate_field_names: Set[str] = field(default_factory=set)
    duplicate_page_ids: Set[str] = field(default_factory=set)

    # Dangling references: (owner id, referenced name or page id)
    unknown_condition_fields: List[Tuple[str, str]] = field(default_factory=list)
    unknown_rule_fields: List[Tuple[str, str]] = field(default_factory=list)
    unknown_rule_targets: List[Tuple[str, str]] = field(default_factory=list)

    # Structure
    empty_pages: List[str] = field(default_factory=list)
    empty_containers: List[str] = field(default_factory=list)
    fields_with_conditionals: int = 0
    pages_with_conditionals: int = 0

    warnings: List[str] = field(default_factory=list)

    def add_warning(self, msg: str) -> None:
        """Add a warning to the report."""
        if msg not in self.warnings:
            self.warnings.append(msg)

    @property
    def has_problems(self) -> bool:
        return bool(self.warnings)


def _walk(fields: List[Field], depth: int = 1):
    for node in fields:
        yield node, depth
        yield from _walk(child_fields(node), depth + 1)


def analyze_schema(schema: FormSchema) -> SchemaReport:
    """
    Inspect ``schema`` and return a SchemaReport with metrics and warnings.

    References are checked by name for conditions and rule fields, and by
    id for rule targets, matching how they are resolved at runtime.
    """
    report = SchemaReport(schema_id=schema.id)
    report.total_pages = len(schema.pages)

    nodes: List[Tuple[str, Field, int]] = []
    for page in schema.pages:
        for node, depth in _walk(page.fields):
            nodes.append((page.id, node, depth))

    # =========================================================================
    # 1. INVENTORY
    # =========================================================================

    report.total_fields = len(nodes)
    report.fields_by_type = dict(Counter(node.type.value for _, node, _ in nodes))
    report.max_depth = max((depth for _, _, depth in nodes), default=0)
    report.total_containers = sum(1 for _, node, _ in nodes if isinstance(node, ContainerField))

    # =========================================================================
    # 2. UNIQUENESS
    # =========================================================================

    id_counts = Counter(node.id for _, node, _ in nodes)
    report.duplicate_field_ids = {i for i, n in id_counts.items() if n > 1}
    name_counts = Counter(node.name for _, node, _ in nodes if node.name)
    report.duplicate_field_names = {i for i, n in name_counts.items() if n > 1}
    page_counts = Counter(page.id for page in schema.pages)
    report.duplicate_page_ids = {i for i, n in page_counts.items() if n > 1}

    # =========================================================================
    # 3. REFERENCES
    # =========================================================================

    names = set(name_counts)
    page_ids = set(page_counts)

    for _, node, _ in nodes:
        if node.conditional is None:
            continue
        report.fields_with_conditionals += 1
        for condition in conditions_of(node.conditional):
            if condition.field not in names:
                report.unknown_condition_fields.append((node.id, condition.field))

    for page in schema.pages:
        if page.visibility_condition is not None:
            report.pages_with_conditionals += 1
            for condition in conditions_of(page.visibility_condition):
                if condition.field not in names:
                    report.unknown_condition_fields.append((page.id, condition.field))
        for rule in page.navigation_rules:
            if rule.field_name not in names:
                report.unknown_rule_fields.append((rule.id, rule.field_name))
            if rule.target_page_id not in page_ids:
                report.unknown_rule_targets.append((rule.id, rule.target_page_id))

    # =========================================================================
    # 4. STRUCTURE
    # =========================================================================

    report.empty_pages = [page.id for page in schema.pages if not page.fields]
    report.empty_containers = [
        node.id for _, node, _ in nodes if isinstance(node, ContainerField) and not node.fields
    ]

    # =========================================================================
    # 5. WARNING FLAGS
    # =========================================================================

    if not schema.pages:
        report.add_warning("Document has no pages")

    if report.duplicate_page_ids:
        report.add_warning(f"Duplicate page ids: {', '.join(sorted(report.duplicate_page_ids))}")

    if report.duplicate_field_ids:
        report.add_warning(f"Duplicate field ids: {', '.join(sorted(report.duplicate_field_ids))}")

    if report.duplicate_field_names:
        report.add_warning(f"Duplicate field names: {', '.join(sorted(report.duplicate_field_names))}")

    if report.unknown_condition_fields:
        refs = sorted({name for _, name in report.unknown_condition_fields})
        report.add_warning(f"Conditions reference unknown fields: {', '.join(refs)}")

    if report.unknown_rule_fields:
        refs = sorted({name for _, name in report.unknown_rule_fields})
        report.add_warning(f"Navigation rules reference unknown fields: {', '.join(refs)}")

    if report.unknown_rule_targets:
        refs = sorted({target for _, target in report.unknown_rule_targets})
        report.add_warning(f"Navigation rules target unknown pages: {', '.join(refs)}")

    if report.empty_pages:
        report.add_warning(f"Empty pages: {', '.join(report.empty_pages)}")

    if report.empty_containers:
        report.add_warning(f"Empty containers: {', '.join(report.empty_containers)}")

    return report
