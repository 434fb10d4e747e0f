"""
Core Form Document Objects

Defines the data structures of a multi-page form definition:
    - Fields (leaf questions and container panels)
    - Pages (ordered page-root field lists)
    - Navigation rules (conditional "next page" redirects)
    - FormSchema (root container, unit of persistence and of undo)

The field tree is a tagged union:
    - Field: a leaf, never has children
    - ContainerField: a ``panel`` or ``paneldynamic`` owning an ordered
      list of child fields, which may themselves be containers

ARCHITECTURAL RULE:
    These objects are plain mutable data.
    Only ``DocumentStore`` splices the tree; anything else that edits
    ``fields`` lists directly can break id uniqueness.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .conditions import Conditional, ConditionOperator, RuleValue


class FieldType(Enum):
    """Closed set of field variants."""

    # Text input
    TEXT = "text"
    TEXTAREA = "textarea"
    MULTIPLETEXT = "multipletext"
    EMAIL = "email"
    PHONE = "phone"
    URL = "url"
    PASSWORD = "password"

    # Numeric input
    NUMBER = "number"
    SLIDER = "slider"
    RATING = "rating"

    # Date and time
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"

    # Choice
    SELECT = "select"
    MULTISELECT = "multiselect"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    BOOLEAN = "boolean"
    IMAGEPICKER = "imagepicker"
    RANKING = "ranking"
    CASCADINGSELECT = "cascadingselect"

    # Matrix
    MATRIX = "matrix"
    MATRIXDROPDOWN = "matrixdropdown"
    MATRIXDYNAMIC = "matrixdynamic"

    # File and media
    FILE = "file"
    IMAGE = "image"
    SIGNATURE = "signature"

    # Layout
    PANEL = "panel"
    SECTION = "section"
    HTML = "html"

    # Special
    HIDDEN = "hidden"
    EXPRESSION = "expression"
    PANELDYNAMIC = "paneldynamic"

    # Display only
    WELCOME = "welcome"
    ENDING = "ending"
    DOWNLOADREPORT = "downloadreport"

    @property
    def is_container(self) -> bool:
        return self in CONTAINER_TYPES


CONTAINER_TYPES = frozenset({FieldType.PANEL, FieldType.PANELDYNAMIC})

# Types that never collect an answer of their own
NON_INPUT_TYPES = frozenset({
    FieldType.PANEL,
    FieldType.PANELDYNAMIC,
    FieldType.SECTION,
    FieldType.HTML,
    FieldType.HIDDEN,
    FieldType.WELCOME,
    FieldType.ENDING,
    FieldType.DOWNLOADREPORT,
})


@dataclass
class Field:
    """
    A leaf node of the form tree, typically a question.

    Properties:
        id:
            Opaque identity, unique across the whole document for its
            lifetime. Generated by the store, never chosen by callers.

        name:
            Answer key. Conditions and navigation rules reference fields
            by name.

        type:
            FieldType. Must not be a container type for this class.

        label:
            Human-readable question text

        visible:
            Static default visibility. None means "not set" (visible).

        conditional:
            Optional dynamic show/hide rule. When present it fully
            overrides ``visible``.

        properties:
            Type-specific settings, opaque to the engine

        attributes:
            Any other top-level keys of the serialized field
            (description, required, validation, layout, ...), kept so a
            load/save cycle is lossless.
    """

    id: str
    name: str
    type: FieldType
    label: str = ""
    visible: Optional[bool] = None
    conditional: Optional[Conditional] = None
    properties: Dict[str, Any] = field(default_factory=dict)
    attributes: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_container(self) -> bool:
        return False


@dataclass
class ContainerField(Field):
    """
    A ``panel`` or ``paneldynamic`` node.

    Adds:
        fields: Owned, ordered child fields (leaves or containers)

    Serialized, the children live under ``properties.fields``; in memory
    they are kept apart from ``properties`` so that replacing properties
    can never detach a subtree.
    """

    fields: List[Field] = field(default_factory=list)

    @property
    def is_container(self) -> bool:
        return True


def build_field(
    id: str,
    name: str,
    type: FieldType,
    label: str = "",
    visible: Optional[bool] = None,
    conditional: Optional[Conditional] = None,
    properties: Optional[Dict[str, Any]] = None,
    attributes: Optional[Dict[str, Any]] = None,
    fields: Optional[List[Field]] = None,
) -> Field:
    """
    Create the variant matching ``type``.

    ``fields`` is only honoured for container types.
    """
    common = dict(
        id=id,
        name=name,
        type=type,
        label=label,
        visible=visible,
        conditional=conditional,
        properties=dict(properties or {}),
        attributes=dict(attributes or {}),
    )
    if type.is_container:
        return ContainerField(fields=list(fields or []), **common)
    return Field(**common)


@dataclass
class PageNavigationRule:
    """
    Redirects "next page" when its predicate matches.

    Rules of a page are evaluated in list order and the first match wins.

    Properties:
        id: Rule identifier, unique within its page
        field_name: Name of the field supplying the value
        operator: ConditionOperator
        value: Right-hand operand
        target_page_id: Destination page id
    """

    id: str
    field_name: str
    operator: ConditionOperator
    value: RuleValue
    target_page_id: str


@dataclass
class FormPage:
    """
    One page of the form.

    Properties:
        id: Page identifier, unique within the document
        title: Page title
        fields: Ordered page-root field list
        navigation_rules: Ordered first-match-wins redirects
        allow_previous: Whether the respondent may go back from this page
        description: Optional page description
        visible: Static default visibility (None means visible)
        visibility_condition: Optional page-level Conditional
        attributes: Other top-level keys of the serialized page
    """

    id: str
    title: str = ""
    fields: List[Field] = field(default_factory=list)
    navigation_rules: List[PageNavigationRule] = field(default_factory=list)
    allow_previous: bool = True
    description: Optional[str] = None
    visible: Optional[bool] = None
    visibility_condition: Optional[Conditional] = None
    attributes: Dict[str, Any] = field(default_factory=dict)


@dataclass
class FormSchema:
    """
    Root container for a whole form definition.

    This is THE unit of persistence and THE unit of undo/redo: every
    snapshot in the history is a deep copy of one FormSchema.

    Properties:
        version: Format version tag ("1.0"), carried but not migrated
        id: Document identifier
        metadata: Title, description and other presentation metadata
        settings: Display options
        pages: Ordered pages
        attributes: Other top-level keys (theme, ...)

    INVARIANTS:
        - Field ids are unique across all pages and all nesting levels
        - Page ids are unique
        - There is at least one page once the document is loaded
    """

    version: str
    id: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    settings: Dict[str, Any] = field(default_factory=dict)
    pages: List[FormPage] = field(default_factory=list)
    attributes: Dict[str, Any] = field(default_factory=dict)

    def get_page(self, page_id: str) -> Optional[FormPage]:
        """
        Retrieve a page by id.

        Returns:
            FormPage or None if not found
        """
        for page in self.pages:
            if page.id == page_id:
                return page
        return None

    def page_index(self, page_id: str) -> int:
        """Return the position of ``page_id`` or -1."""
        for index, page in enumerate(self.pages):
            if page.id == page_id:
                return index
        return -1
