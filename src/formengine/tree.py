"""
Field Tree primitives.

Recursive find / insert / remove / clone / walk over the nested field
structure. Pages hold root field lists; ContainerFields hold child lists;
depth is unbounded.

Nodes are always addressed by id, never by numeric path, because
containers can be reordered under a caller's feet.

These helpers mutate the lists they are given. ``DocumentStore`` calls
them on a working copy of the document only.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Set

from .model import ContainerField, Field, FieldType, FormSchema, build_field


@dataclass
class FieldLocation:
    """
    Where a field lives.

    Properties:
        field: The node itself
        container: The list holding it (page root or a container's children)
        index: Position in ``container``
        page_id: Id of the page whose tree holds the node
        parent: Owning ContainerField, None for page-root fields
    """

    field: Field
    container: List[Field]
    index: int
    page_id: Optional[str] = None
    parent: Optional[ContainerField] = None


def child_fields(node: Field) -> List[Field]:
    """Return the children of ``node``; leaves have none."""
    if isinstance(node, ContainerField):
        return node.fields
    return []


def iter_fields(fields: List[Field]) -> Iterator[Field]:
    """Yield every node of ``fields`` depth-first, parents before children."""
    for node in fields:
        yield node
        yield from iter_fields(child_fields(node))


def iter_schema_fields(schema: FormSchema) -> Iterator[Field]:
    for page in schema.pages:
        yield from iter_fields(page.fields)


def find_in_fields(
    fields: List[Field],
    field_id: str,
    parent: Optional[ContainerField] = None,
) -> Optional[FieldLocation]:
    """Depth-first search of ``fields`` for ``field_id``."""
    for index, node in enumerate(fields):
        if node.id == field_id:
            return FieldLocation(field=node, container=fields, index=index, parent=parent)
        if isinstance(node, ContainerField):
            found = find_in_fields(node.fields, field_id, parent=node)
            if found is not None:
                return found
    return None


def find_field(schema: FormSchema, field_id: str) -> Optional[FieldLocation]:
    """Search every page, in order, for ``field_id``."""
    for page in schema.pages:
        found = find_in_fields(page.fields, field_id)
        if found is not None:
            found.page_id = page.id
            return found
    return None


def find_container(schema: FormSchema, container_id: str) -> Optional[ContainerField]:
    """Return the ContainerField with ``container_id``; None for unknown ids and leaves."""
    found = find_field(schema, container_id)
    if found is None or not isinstance(found.field, ContainerField):
        return None
    return found.field


def remove_field(schema: FormSchema, field_id: str) -> Optional[FieldLocation]:
    """
    Detach ``field_id`` (and its subtree) from wherever it is.

    Returns:
        The location it was removed from, or None if not found
    """
    found = find_field(schema, field_id)
    if found is None:
        return None
    del found.container[found.index]
    return found


def clamp_index(index: Optional[int], length: int) -> int:
    """Clamp ``index`` into ``[0, length]``; None means append."""
    if index is None:
        return length
    return max(0, min(index, length))


def insert_field(container: List[Field], node: Field, index: Optional[int] = None) -> int:
    """Insert ``node`` at the clamped ``index`` and return the position used."""
    position = clamp_index(index, len(container))
    container.insert(position, node)
    return position


def subtree_contains(node: Field, field_id: str) -> bool:
    """True if ``field_id`` is ``node`` itself or one of its descendants."""
    if node.id == field_id:
        return True
    return any(subtree_contains(child, field_id) for child in child_fields(node))


def collect_ids(schema: FormSchema) -> Set[str]:
    return {node.id for node in iter_schema_fields(schema)}


def collect_names(schema: FormSchema) -> Set[str]:
    return {node.name for node in iter_schema_fields(schema)}


def count_fields(schema: FormSchema) -> int:
    return sum(1 for _ in iter_schema_fields(schema))


def clone_field(
    node: Field,
    new_id: Callable[[], str],
    rename: Optional[Callable[[str], str]] = None,
) -> Field:
    """
    Deep-copy ``node`` and its whole subtree.

    Every cloned node receives ``new_id()``; when ``rename`` is given it
    derives the name of every cloned node.
    """
    cloned = copy.deepcopy(node)
    _reassign(cloned, new_id, rename)
    return cloned


def _reassign(node: Field, new_id: Callable[[], str], rename: Optional[Callable[[str], str]]) -> None:
    node.id = new_id()
    if rename is not None:
        node.name = rename(node.name)
    for child in child_fields(node):
        _reassign(child, new_id, rename)


def retag(node: Field, new_type: FieldType) -> Field:
    """
    Return ``node`` re-created as the variant matching ``new_type``.

    A container becoming a leaf loses its children.
    """
    return build_field(
        id=node.id,
        name=node.name,
        type=new_type,
        label=node.label,
        visible=node.visible,
        conditional=node.conditional,
        properties=node.properties,
        attributes=node.attributes,
        fields=child_fields(node),
    )
