"""
Document Store: the mutation API of the form document engine.

Every structural edit of a FormSchema goes through a DocumentStore:
    - field operations: add / update / delete / move / move to page / duplicate
    - page operations: add / delete / update / move, navigation rules
    - document operations: metadata, settings, load, reset
    - history: undo / redo, batched edits

ATOMICITY:
    Each operation works on a deep copy of the document and swaps it in
    only when the edit succeeded AND changed something. A rejected edit
    (unknown id, self-nesting move, last-page delete, ...) leaves the
    document, the selection and the history exactly as they were.

    Exactly one snapshot is committed per successful operation, or one
    per outermost ``batch()`` block.

ERROR POLICY:
    Unknown ids are silent no-ops (a stale selection must never crash the
    editor). Only malformed input, such as a payload that is not a form
    document or an unknown field type, raises.
"""

from __future__ import annotations

import copy
import logging
import uuid
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Set, Union

from .conditions import Conditional, ConditionOperator, MultiConditional, SingleConditional
from .config import EngineSettings, get_settings
from .history import HistoryManager
from .model import Field, FieldType, FormPage, FormSchema, PageNavigationRule
from .serialization import (
    SchemaFormatError,
    conditional_from_dict,
    field_from_dict,
    rule_from_dict,
    schema_from_dict,
    schema_to_dict,
)
from .tree import (
    clamp_index,
    clone_field,
    collect_ids,
    collect_names,
    count_fields,
    find_container,
    find_field,
    insert_field,
    remove_field,
    retag,
    subtree_contains,
)

logger = logging.getLogger(__name__)

IdFactory = Callable[[str], str]
FieldInput = Union[Field, Mapping[str, Any]]


def random_id(prefix: str) -> str:
    """Default id factory: ``<prefix>-<12 hex chars>``."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _coerce_conditional(value: Any) -> Optional[Conditional]:
    if value is None or isinstance(value, (SingleConditional, MultiConditional)):
        return value
    if isinstance(value, Mapping):
        return conditional_from_dict(value)
    raise TypeError(f"conditional must be a Conditional, a mapping or None, not {type(value).__name__}")


def _coerce_rule(value: Any) -> PageNavigationRule:
    if isinstance(value, PageNavigationRule):
        return copy.deepcopy(value)
    return rule_from_dict(value)


def _placeholder_ids(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy of a wire-shaped field with a throwaway id on every node of its subtree."""
    raw = dict(data)
    raw["id"] = "new"
    if isinstance(raw.get("type"), FieldType):
        raw["type"] = raw["type"].value
    properties = raw.get("properties")
    if isinstance(properties, Mapping) and isinstance(properties.get("fields"), list):
        properties = dict(properties)
        properties["fields"] = [
            _placeholder_ids(child) if isinstance(child, Mapping) else child
            for child in properties["fields"]
        ]
        raw["properties"] = properties
    return raw


class DocumentStore:
    """
    Single-editor, in-memory owner of one form document.

    Args:
        schema: Initial document (FormSchema or wire mapping); a fresh
            default document when omitted
        settings: EngineSettings; ``get_settings()`` when omitted
        id_factory: ``prefix -> id`` generator; collisions are retried
    """

    def __init__(
        self,
        schema: Optional[Union[FormSchema, Mapping[str, Any]]] = None,
        settings: Optional[EngineSettings] = None,
        id_factory: Optional[IdFactory] = None,
    ):
        self.settings = settings or get_settings()
        self._id_factory = id_factory or random_id
        self.history = HistoryManager(self.settings.history_limit)

        self.active_page_id: Optional[str] = None
        self.selected_field_id: Optional[str] = None
        self.selected_page_id: Optional[str] = None

        self._batch_depth = 0
        self._batch_label = ""
        self._batch_pending = False

        self._schema: FormSchema
        self._saved: FormSchema
        self.load_schema(schema if schema is not None else self.create_default_schema())

    # ------------------------------------------------------------------
    # Document lifecycle
    # ------------------------------------------------------------------

    def create_default_schema(self) -> FormSchema:
        """A new, empty, single-page document."""
        return FormSchema(
            version=self.settings.schema_version,
            id=self._id_factory("form"),
            metadata={"title": self.settings.default_form_title, "description": ""},
            settings={},
            pages=[FormPage(id="page-1", title=self.settings.page_title_template.format(number=1))],
        )

    def load_schema(self, schema: Union[FormSchema, Mapping[str, Any]]) -> None:
        """
        Replace the whole document and reset history to one snapshot.

        Raises:
            SchemaFormatError: if the document has no pages, or a mapping
                lacks ``version``/``pages`` or is malformed
        """
        if isinstance(schema, FormSchema):
            if not schema.pages:
                raise SchemaFormatError("form schema has no pages")
            loaded = copy.deepcopy(schema)
        else:
            loaded = schema_from_dict(schema)

        self._schema = loaded
        self._saved = copy.deepcopy(loaded)
        self.active_page_id = loaded.pages[0].id
        self.selected_field_id = None
        self.selected_page_id = None
        self.history.reset(loaded)
        logger.debug("Loaded schema %r with %d page(s)", loaded.id, len(loaded.pages))

    def reset_schema(self) -> None:
        self.load_schema(self.create_default_schema())

    @property
    def schema(self) -> FormSchema:
        """The live document. Read it; edit it only through this store."""
        return self._schema

    def snapshot(self) -> FormSchema:
        """Independent deep copy of the current document."""
        return copy.deepcopy(self._schema)

    def to_dict(self) -> Dict[str, Any]:
        """Wire form of the current document, ready for the persistence layer."""
        return schema_to_dict(self._schema)

    @property
    def is_dirty(self) -> bool:
        """True when the document differs from the last loaded or saved one."""
        return self._schema != self._saved

    def mark_saved(self) -> None:
        self._saved = copy.deepcopy(self._schema)

    # ------------------------------------------------------------------
    # Commit plumbing
    # ------------------------------------------------------------------

    def _working_copy(self) -> FormSchema:
        return copy.deepcopy(self._schema)

    def _commit(self, working: FormSchema, label: str) -> bool:
        if working == self._schema:
            logger.debug("%s: no change", label)
            return False
        self._schema = working
        if self._batch_depth > 0:
            self._batch_pending = True
        else:
            self.history.commit(working, label)
        return True

    @contextmanager
    def batch(self, label: str) -> Iterator["DocumentStore"]:
        """
        Coalesce every mutation inside the block into one undo step.

        Nested blocks are folded into the outermost one. If the block
        raises, the document is restored to its state on entry.
        """
        self._batch_depth += 1
        if self._batch_depth == 1:
            self._batch_label = label
            self._batch_pending = False
        origin = self._schema
        try:
            yield self
        except Exception:
            self._restore(origin)
            if self._batch_depth == 1:
                self._batch_pending = False
            raise
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._batch_pending:
                self._batch_pending = False
                self.history.commit(self._schema, self._batch_label)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def can_undo(self) -> bool:
        return self._batch_depth == 0 and self.history.can_undo()

    def can_redo(self) -> bool:
        return self._batch_depth == 0 and self.history.can_redo()

    def undo(self) -> bool:
        if self._batch_depth:
            logger.warning("undo ignored inside a batch")
            return False
        restored = self.history.undo()
        if restored is None:
            return False
        self._restore(restored)
        return True

    def redo(self) -> bool:
        if self._batch_depth:
            logger.warning("redo ignored inside a batch")
            return False
        restored = self.history.redo()
        if restored is None:
            return False
        self._restore(restored)
        return True

    def _restore(self, schema: FormSchema) -> None:
        self._schema = schema
        if self.active_page_id is None or schema.get_page(self.active_page_id) is None:
            self.active_page_id = schema.pages[0].id if schema.pages else None
        if self.selected_field_id is not None and find_field(schema, self.selected_field_id) is None:
            self.selected_field_id = None
        if self.selected_page_id is not None and schema.get_page(self.selected_page_id) is None:
            self.selected_page_id = None

    # ------------------------------------------------------------------
    # Queries and selection
    # ------------------------------------------------------------------

    def find_field(self, field_id: str) -> Optional[Field]:
        found = find_field(self._schema, field_id)
        return found.field if found else None

    @property
    def active_page(self) -> Optional[FormPage]:
        return self._schema.get_page(self.active_page_id) if self.active_page_id else None

    @property
    def active_page_fields(self) -> List[Field]:
        page = self.active_page
        return page.fields if page else []

    @property
    def selected_field(self) -> Optional[Field]:
        return self.find_field(self.selected_field_id) if self.selected_field_id else None

    @property
    def selected_page(self) -> Optional[FormPage]:
        return self._schema.get_page(self.selected_page_id) if self.selected_page_id else None

    def field_count(self) -> int:
        return count_fields(self._schema)

    def set_active_page(self, page_id: str) -> bool:
        if self._schema.get_page(page_id) is None:
            return False
        self.active_page_id = page_id
        self.selected_field_id = None
        self.selected_page_id = None
        return True

    def select_field(self, field_id: Optional[str]) -> None:
        if field_id is not None and self.find_field(field_id) is None:
            field_id = None
        self.selected_field_id = field_id
        self.selected_page_id = None

    def select_page(self, page_id: Optional[str]) -> None:
        if page_id is not None and self._schema.get_page(page_id) is None:
            page_id = None
        self.selected_page_id = page_id
        self.selected_field_id = None

    # ------------------------------------------------------------------
    # Id and name generation
    # ------------------------------------------------------------------

    def _unique_id(self, prefix: str, taken: Set[str]) -> str:
        while True:
            candidate = self._id_factory(prefix)
            if candidate not in taken:
                taken.add(candidate)
                return candidate

    def _unique_name(self, base: str, taken: Set[str]) -> str:
        candidate = base
        n = 2
        while candidate in taken:
            candidate = f"{base}_{n}"
            n += 1
        taken.add(candidate)
        return candidate

    def _prepare_new_field(self, data: FieldInput, working: FormSchema) -> Field:
        if isinstance(data, Field):
            node = data
        else:
            node = field_from_dict(_placeholder_ids(data))
        if node.type.is_container != node.is_container:
            node = retag(node, node.type)

        taken_ids = collect_ids(working)
        node = clone_field(node, new_id=lambda: self._unique_id(self.settings.field_id_prefix, taken_ids))
        if not node.name:
            node.name = self._unique_name(node.type.value, collect_names(working))
        if not node.label:
            node.label = self.settings.default_field_label
        return node

    # ------------------------------------------------------------------
    # Field operations
    # ------------------------------------------------------------------

    def add_field(
        self,
        field: FieldInput,
        index: Optional[int] = None,
        parent_id: Optional[str] = None,
    ) -> Optional[str]:
        """
        Insert a new field.

        Without ``parent_id`` the field goes to the active page's root
        list; with it, into that container's children. ``index`` is
        clamped, None appends. Every node of the added subtree receives
        a fresh id, whatever the caller supplied.

        Returns:
            The new field id (also selected), or None when the parent does
            not resolve to a container or there is no active page
        """
        working = self._working_copy()
        if parent_id is None:
            page = working.get_page(self.active_page_id) if self.active_page_id else None
            if page is None:
                logger.debug("add_field: no active page")
                return None
            target = page.fields
        else:
            container = find_container(working, parent_id)
            if container is None:
                logger.debug("add_field: %r is not a container", parent_id)
                return None
            target = container.fields

        node = self._prepare_new_field(field, working)
        insert_field(target, node, index)
        self._commit(working, "add field")
        self.selected_field_id = node.id
        self.selected_page_id = None
        return node.id

    def update_field(self, field_id: str, updates: Mapping[str, Any]) -> bool:
        """
        Shallow-merge ``updates`` onto the field.

        ``name``, ``label``, ``visible``, ``properties``, ``conditional`` and
        ``type`` map to the field's own attributes; any other key lands in
        ``attributes`` (None removes it). ``id`` and ``fields`` are ignored.
        """
        working = self._working_copy()
        found = find_field(working, field_id)
        if found is None:
            logger.debug("update_field: unknown field %r", field_id)
            return False

        node = found.field
        changes = dict(updates)
        for key in ("id", "fields"):
            if key in changes:
                logger.warning("update_field: ignoring %r, use the structural operations", key)
                changes.pop(key)

        if "type" in changes:
            new_type = FieldType(changes.pop("type"))
            if new_type.is_container != node.is_container:
                node = retag(node, new_type)
                found.container[found.index] = node
            else:
                node.type = new_type
        if "conditional" in changes:
            node.conditional = _coerce_conditional(changes.pop("conditional"))
        if "properties" in changes:
            properties = dict(changes.pop("properties") or {})
            if properties.pop("fields", None) is not None and node.is_container:
                logger.warning("update_field: ignoring properties.fields of %r", field_id)
            node.properties = properties
        for key in ("name", "label", "visible"):
            if key in changes:
                setattr(node, key, changes.pop(key))
        for key, value in changes.items():
            if value is None:
                node.attributes.pop(key, None)
            else:
                node.attributes[key] = value

        return self._commit(working, "update field")

    def set_field_conditional(self, field_id: str, conditional: Optional[Conditional]) -> bool:
        return self.update_field(field_id, {"conditional": conditional})

    def delete_field(self, field_id: str) -> bool:
        """Remove the field and its subtree; clears a selection inside it."""
        working = self._working_copy()
        removed = remove_field(working, field_id)
        if removed is None:
            logger.debug("delete_field: unknown field %r", field_id)
            return False
        if self.selected_field_id is not None and subtree_contains(removed.field, self.selected_field_id):
            self.selected_field_id = None
        return self._commit(working, "delete field")

    def move_field(self, field_id: str, new_index: int, new_parent_id: Optional[str] = None) -> bool:
        """
        Move a field to ``new_index`` of a container.

        The target is ``new_parent_id``'s children, or the active page's
        root list when omitted. The node is detached before the target is
        looked up, so its own subtree can never be the destination: such a
        move is a no-op.
        """
        working = self._working_copy()
        removed = remove_field(working, field_id)
        if removed is None:
            logger.debug("move_field: unknown field %r", field_id)
            return False

        if new_parent_id is None:
            page = working.get_page(self.active_page_id) if self.active_page_id else None
            if page is None:
                return False
            target = page.fields
        else:
            container = find_container(working, new_parent_id)
            if container is None:
                logger.debug("move_field: %r is not a container outside the moved subtree", new_parent_id)
                return False
            target = container.fields

        insert_field(target, removed.field, new_index)
        return self._commit(working, "move field")

    def move_field_to_page(self, field_id: str, target_page_id: str) -> bool:
        """Append the field to the root of another page and activate that page."""
        working = self._working_copy()
        page = working.get_page(target_page_id)
        found = find_field(working, field_id)
        if page is None or found is None:
            logger.debug("move_field_to_page: unknown field %r or page %r", field_id, target_page_id)
            return False
        if found.page_id == target_page_id and found.parent is None:
            return False

        del found.container[found.index]
        page.fields.append(found.field)
        committed = self._commit(working, "move field to page")
        if committed:
            self.active_page_id = target_page_id
        return committed

    def duplicate_field(self, field_id: str) -> Optional[str]:
        """
        Clone the field with its whole subtree right after the original.

        Every cloned node gets a new id and a suffixed, unique name.

        Returns:
            The clone's id (also selected), or None for an unknown id
        """
        working = self._working_copy()
        found = find_field(working, field_id)
        if found is None:
            logger.debug("duplicate_field: unknown field %r", field_id)
            return None

        taken_ids = collect_ids(working)
        taken_names = collect_names(working)
        suffix = self.settings.copy_suffix
        clone = clone_field(
            found.field,
            new_id=lambda: self._unique_id(self.settings.field_id_prefix, taken_ids),
            rename=lambda name: self._unique_name(f"{name}{suffix}", taken_names),
        )
        found.container.insert(found.index + 1, clone)
        self._commit(working, "duplicate field")
        self.selected_field_id = clone.id
        self.selected_page_id = None
        return clone.id

    # ------------------------------------------------------------------
    # Page operations
    # ------------------------------------------------------------------

    def add_page(self) -> str:
        """Append an empty page, activate it and return its id."""
        working = self._working_copy()
        page_id = self._unique_id(self.settings.page_id_prefix, {p.id for p in working.pages})
        title = self.settings.page_title_template.format(number=len(working.pages) + 1)
        working.pages.append(FormPage(id=page_id, title=title))
        self._commit(working, "add page")
        self.active_page_id = page_id
        return page_id

    def delete_page(self, page_id: str) -> bool:
        """
        Remove a page with all its fields.

        The last remaining page cannot be deleted. Navigation rules that
        targeted the page are removed from every other page.
        """
        working = self._working_copy()
        if len(working.pages) <= 1:
            logger.debug("delete_page: refusing to delete the last page")
            return False
        index = working.page_index(page_id)
        if index == -1:
            return False

        removed = working.pages.pop(index)
        for page in working.pages:
            page.navigation_rules = [r for r in page.navigation_rules if r.target_page_id != page_id]

        self._commit(working, "delete page")
        if self.active_page_id == page_id:
            self.active_page_id = working.pages[min(index, len(working.pages) - 1)].id
        if self.selected_page_id == page_id:
            self.selected_page_id = None
        if self.selected_field_id is not None and any(
            subtree_contains(node, self.selected_field_id) for node in removed.fields
        ):
            self.selected_field_id = None
        return True

    def update_page(self, page_id: str, updates: Mapping[str, Any]) -> bool:
        """
        Shallow-merge ``updates`` onto a page.

        Known keys: ``title``, ``description``, ``allow_previous``,
        ``visible``, ``visibility_condition``, ``navigation_rules``.
        ``id`` and ``fields`` are ignored; other keys go to ``attributes``.
        Navigation rules pointing at unknown pages are dropped.
        """
        working = self._working_copy()
        page = working.get_page(page_id)
        if page is None:
            logger.debug("update_page: unknown page %r", page_id)
            return False

        changes = dict(updates)
        for key in ("id", "fields"):
            if key in changes:
                logger.warning("update_page: ignoring %r", key)
                changes.pop(key)

        if "navigation_rules" in changes:
            page_ids = {p.id for p in working.pages}
            rules = [_coerce_rule(r) for r in changes.pop("navigation_rules") or []]
            page.navigation_rules = [r for r in rules if r.target_page_id in page_ids]
        if "visibility_condition" in changes:
            page.visibility_condition = _coerce_conditional(changes.pop("visibility_condition"))
        if "allow_previous" in changes:
            page.allow_previous = bool(changes.pop("allow_previous"))
        for key in ("title", "description", "visible"):
            if key in changes:
                setattr(page, key, changes.pop(key))
        for key, value in changes.items():
            if value is None:
                page.attributes.pop(key, None)
            else:
                page.attributes[key] = value

        return self._commit(working, "update page")

    def update_page_title(self, page_id: str, title: str) -> bool:
        return self.update_page(page_id, {"title": title})

    def set_page_condition(self, page_id: str, conditional: Optional[Conditional]) -> bool:
        return self.update_page(page_id, {"visibility_condition": conditional})

    def move_page(self, page_id: str, new_index: int) -> bool:
        working = self._working_copy()
        current = working.page_index(page_id)
        if current == -1:
            return False
        page = working.pages.pop(current)
        working.pages.insert(clamp_index(new_index, len(working.pages)), page)
        return self._commit(working, "move page")

    # ------------------------------------------------------------------
    # Navigation rules
    # ------------------------------------------------------------------

    def add_navigation_rule(
        self,
        page_id: str,
        field_name: str,
        operator: Union[ConditionOperator, str],
        value: Any,
        target_page_id: str,
    ) -> Optional[str]:
        """Append a rule to ``page_id``; None if either page is unknown."""
        working = self._working_copy()
        page = working.get_page(page_id)
        if page is None or working.get_page(target_page_id) is None:
            logger.debug("add_navigation_rule: unknown page %r or target %r", page_id, target_page_id)
            return None
        rule_id = self._unique_id("rule", {r.id for r in page.navigation_rules})
        page.navigation_rules.append(PageNavigationRule(
            id=rule_id,
            field_name=field_name,
            operator=ConditionOperator(operator),
            value=value,
            target_page_id=target_page_id,
        ))
        self._commit(working, "add navigation rule")
        return rule_id

    def update_navigation_rule(self, page_id: str, rule_id: str, updates: Mapping[str, Any]) -> bool:
        """Change ``field_name``, ``operator``, ``value`` or ``target_page_id`` of a rule."""
        working = self._working_copy()
        page = working.get_page(page_id)
        rule = next((r for r in page.navigation_rules if r.id == rule_id), None) if page else None
        if rule is None:
            return False

        changes = dict(updates)
        if "target_page_id" in changes and working.get_page(changes["target_page_id"]) is None:
            logger.debug("update_navigation_rule: unknown target %r", changes["target_page_id"])
            return False
        if "operator" in changes:
            rule.operator = ConditionOperator(changes.pop("operator"))
        for key in ("field_name", "value", "target_page_id"):
            if key in changes:
                setattr(rule, key, changes.pop(key))
        return self._commit(working, "update navigation rule")

    def remove_navigation_rule(self, page_id: str, rule_id: str) -> bool:
        working = self._working_copy()
        page = working.get_page(page_id)
        if page is None:
            return False
        page.navigation_rules = [r for r in page.navigation_rules if r.id != rule_id]
        return self._commit(working, "remove navigation rule")

    # ------------------------------------------------------------------
    # Metadata and settings
    # ------------------------------------------------------------------

    def update_metadata(self, updates: Mapping[str, Any]) -> bool:
        working = self._working_copy()
        working.metadata.update(updates)
        return self._commit(working, "update metadata")

    def update_settings(self, updates: Mapping[str, Any]) -> bool:
        working = self._working_copy()
        working.settings.update(updates)
        return self._commit(working, "update settings")
