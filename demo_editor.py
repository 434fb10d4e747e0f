#!/usr/bin/env python3
"""
Editor Demo: load -> edit -> undo -> walk the form -> analyze -> export

Shows the full workflow:
1. Load the example form into a DocumentStore
2. Apply a batch of edits and undo/redo them
3. Walk the pages for two respondents
4. Analyze the edited document
5. Export it to YAML
"""

import logging

from formengine.analyzer import analyze_schema
from formengine.examples import build_example_form
from formengine.serialization import schema_to_yaml
from formengine.store import DocumentStore
from formengine.visibility import next_page_id, progress, visible_fields


def walk(schema, answers):
    """Follow "next" from the first page until it stops moving."""
    path = [schema.pages[0].id]
    while True:
        nxt = next_page_id(schema, path[-1], answers)
        if nxt is None or nxt == path[-1]:
            return path
        path.append(nxt)


def print_report(report):
    print(f"  Pages:       {report.total_pages}")
    print(f"  Fields:      {report.total_fields} ({report.total_containers} container(s), depth {report.max_depth})")
    print(f"  By type:     {report.fields_by_type}")
    if report.warnings:
        for i, warning in enumerate(report.warnings, 1):
            print(f"  {i}. {warning}")
    else:
        print("  No warnings")


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 70)
    print("FORM ENGINE DEMO")
    print("=" * 70)

    # =========================================================================
    # STEP 1: Load
    # =========================================================================
    print("\n1. LOADING...")
    store = DocumentStore(build_example_form())
    print(f"   Loaded {store.schema.metadata['title']!r}: {store.field_count()} fields")

    # =========================================================================
    # STEP 2: Edit
    # =========================================================================
    print("\n2. EDITING...")
    with store.batch("add contact details"):
        email_id = store.add_field({"type": "email", "name": "email", "label": "Email"})
        store.update_field(email_id, {"required": True})
        store.duplicate_field("f-employment")
    print(f"   After batch: {store.field_count()} fields, undo steps: {len(store.history) - 1}")
    store.undo()
    print(f"   After undo:  {store.field_count()} fields")
    store.redo()
    print(f"   After redo:  {store.field_count()} fields")

    # =========================================================================
    # STEP 3: Walk
    # =========================================================================
    print("\n3. RESPONDENTS...")
    for answers in ({"country": "US", "age": 34, "employed": True}, {"country": "FR", "age": 15}):
        path = walk(store.schema, answers)
        adult = store.schema.get_page("page-adult")
        shown = [f.name for f in visible_fields(adult.fields, answers)]
        p = progress(store.schema, answers)
        print(f"   {answers}")
        print(f"     path:     {' -> '.join(path)}")
        print(f"     adult page shows: {shown}")
        print(f"     progress: {p.filled}/{p.total} ({p.percent}%)")

    # =========================================================================
    # STEP 4: Analyze
    # =========================================================================
    print("\n4. ANALYZING...")
    print_report(analyze_schema(store.schema))

    # =========================================================================
    # STEP 5: Export
    # =========================================================================
    print("\n5. EXPORTING...")
    with open("example_form_output.yaml", "w") as f:
        f.write(schema_to_yaml(store.schema))
    print("   Form exported to example_form_output.yaml")


if __name__ == "__main__":
    main()
