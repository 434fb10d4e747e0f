"""
Engine Configuration

Uses pydantic-settings so every tunable can be overridden from the
environment (prefix ``FORMENGINE_``) without touching code.

Components never read settings implicitly: a ``DocumentStore`` or
``EditSession`` receives an ``EngineSettings`` instance, falling back to
``get_settings()`` only when the caller passes none.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """
    Settings for the form document engine.

    Properties:
        history_limit:
            Maximum number of snapshots retained by the undo history,
            the initial snapshot included.

        schema_version:
            Version tag written into newly created documents.

        field_id_prefix / page_id_prefix:
            Prefixes of generated identifiers ("field-3f9a...").

        copy_suffix:
            Appended to the names of duplicated fields.

        default_field_label / default_form_title:
            Labels used when the caller supplies none.

        page_title_template:
            Title of pages created by ``add_page``; ``{number}`` is the
            1-based position of the new page.
    """

    model_config = SettingsConfigDict(
        env_prefix="FORMENGINE_",
        case_sensitive=False,
        extra="ignore",
    )

    history_limit: int = Field(
        default=50,
        ge=1,
        description="Snapshots kept for undo/redo",
    )

    schema_version: str = Field(
        default="1.0",
        description="Version tag of new documents",
    )

    field_id_prefix: str = Field(default="field")
    page_id_prefix: str = Field(default="page")
    copy_suffix: str = Field(default="_copy")

    default_field_label: str = Field(default="New field")
    default_form_title: str = Field(default="New form")
    page_title_template: str = Field(default="Page {number}")


@lru_cache
def get_settings() -> EngineSettings:
    """Return the process-wide settings loaded from the environment."""
    return EngineSettings()
