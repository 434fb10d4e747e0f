"""
Form Document Engine

In-memory editing core for multi-page form definitions: a nested field
tree, conditional visibility rules, page navigation and undo/redo.

ARCHITECTURAL GUARANTEE:
------------------------
This package contains ZERO knowledge of:
    - Rendering or widgets
    - Transport and storage backends
    - Authentication and lock acquisition

This package defines FORM STRUCTURE and the operations over it only.
Persistence and locking are injected through ``formengine.session``.
"""

from formengine.errors import FormEngineError
from formengine.model import ContainerField, Field, FieldType, FormPage, FormSchema, PageNavigationRule
from formengine.serialization import SchemaFormatError
from formengine.store import DocumentStore

__version__ = "0.1.0"

__all__ = [
    "ContainerField",
    "DocumentStore",
    "Field",
    "FieldType",
    "FormEngineError",
    "FormPage",
    "FormSchema",
    "PageNavigationRule",
    "SchemaFormatError",
    "__version__",
]
