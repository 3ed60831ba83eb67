"""
Collection schemas and entry data validation.

The registry ships the built-in ``posts`` and ``articles`` collections and
merges any ``*.schema.json`` documents stored under ``content/collections``.
"""

from __future__ import annotations

import json
from typing import Any, Literal
from uuid import UUID

from inkwell_service_libs.error_handling import raise_resource_not_found
from inkwell_service_libs.logging_utils import create_service_logger
from pydantic import AliasChoices, AliasPath, BaseModel, Field, ValidationError

from services.content_repository_service.protocols import StorageBackendProtocol

logger = create_service_logger("content_repository.schemas")

COLLECTIONS_DIR = "content/collections"
SCHEMA_SUFFIX = ".schema.json"

FieldType = Literal[
    "text",
    "textarea",
    "slug",
    "date",
    "datetime",
    "boolean",
    "number",
    "select",
    "categories",
    "media",
    "media:list",
    "reference",
    "reference:list",
    "blocks",
    "object",
    "tags",
]


class SelectOption(BaseModel):
    value: str
    label: str


class FieldDefinition(BaseModel):
    key: str
    type: FieldType
    label: str
    required: bool = False
    options: list[SelectOption] | None = None
    max: int | None = None


class SortSpec(BaseModel):
    field: str = "created_at"
    direction: Literal["asc", "desc"] = "desc"


class CollectionSchema(BaseModel):
    """Field definitions and admin defaults of one collection."""

    slug: str
    name: str
    description: str = ""
    fields: list[FieldDefinition] = Field(default_factory=list)
    title_field: str = Field(
        default="title",
        validation_alias=AliasChoices("title_field", AliasPath("admin", "titleField")),
    )
    default_sort: SortSpec = Field(
        default_factory=SortSpec,
        validation_alias=AliasChoices("default_sort", AliasPath("admin", "defaultSort")),
    )


def validate_entry_data(schema: CollectionSchema, data: dict[str, Any]) -> list[str]:
    """Return human readable violations of required, type, option and count rules."""
    errors: list[str] = []

    for field in schema.fields:
        value = data.get(field.key)

        if field.required and (value is None or value == "" or value == []):
            errors.append(f"{field.label} is required")
            continue

        if value is None:
            continue

        if field.type in ("text", "textarea", "slug") and not isinstance(value, str):
            errors.append(f"{field.label} must be text")
        elif field.type == "number" and (
            isinstance(value, bool) or not isinstance(value, (int, float))
        ):
            errors.append(f"{field.label} must be a number")
        elif field.type == "boolean" and not isinstance(value, bool):
            errors.append(f"{field.label} must be true or false")
        elif field.type == "media" and not isinstance(value, str):
            errors.append(f"{field.label} must be a media ID")
        elif field.type == "media:list":
            if not isinstance(value, list):
                errors.append(f"{field.label} must be an array of media IDs")
            elif field.max and len(value) > field.max:
                errors.append(f"{field.label} can have at most {field.max} items")
        elif field.type == "blocks" and not isinstance(value, list):
            errors.append(f"{field.label} must be an array of blocks")
        elif field.type == "select" and field.options:
            valid_values = [option.value for option in field.options]
            if value not in valid_values:
                errors.append(f"{field.label} must be one of: {', '.join(valid_values)}")
        elif field.type == "categories" and not isinstance(value, list):
            errors.append(f"{field.label} must be an array of category IDs")
        elif field.type == "datetime" and not isinstance(value, str):
            errors.append(f"{field.label} must be a date string")

    return errors


POSTS_SCHEMA = CollectionSchema(
    slug="posts",
    name="Posts",
    description="Photo posts built from an ordered media list",
    fields=[
        FieldDefinition(key="title", type="text", label="Title"),
        FieldDefinition(key="description", type="textarea", label="Description"),
        FieldDefinition(key="media", type="media:list", label="Media", required=True, max=50),
        FieldDefinition(key="coverMediaId", type="media", label="Cover"),
        FieldDefinition(key="categories", type="categories", label="Categories"),
        FieldDefinition(key="tags", type="tags", label="Tags"),
        FieldDefinition(key="date", type="datetime", label="Date"),
        FieldDefinition(key="location", type="text", label="Location"),
    ],
)

ARTICLES_SCHEMA = CollectionSchema(
    slug="articles",
    name="Articles",
    description="Long-form writing composed of content blocks",
    fields=[
        FieldDefinition(key="title", type="text", label="Title", required=True),
        FieldDefinition(key="excerpt", type="textarea", label="Excerpt"),
        FieldDefinition(key="featuredImage", type="media", label="Featured Image"),
        FieldDefinition(key="content", type="blocks", label="Content", required=True),
        FieldDefinition(key="categories", type="categories", label="Categories"),
        FieldDefinition(key="tags", type="tags", label="Tags"),
        FieldDefinition(key="date", type="datetime", label="Date"),
        FieldDefinition(key="readingTime", type="number", label="Reading Time"),
    ],
)

BUILTIN_SCHEMAS = (POSTS_SCHEMA, ARTICLES_SCHEMA)


class CollectionSchemaRegistry:
    """Known collections, loaded once from storage on first use."""

    def __init__(
        self,
        backend: StorageBackendProtocol | None = None,
        builtin_schemas: tuple[CollectionSchema, ...] = BUILTIN_SCHEMAS,
    ) -> None:
        self._backend = backend
        self._builtin = {schema.slug: schema for schema in builtin_schemas}
        self._schemas: dict[str, CollectionSchema] | None = None

    def register(self, schema: CollectionSchema) -> None:
        self._builtin[schema.slug] = schema
        if self._schemas is not None:
            self._schemas[schema.slug] = schema

    def invalidate(self) -> None:
        """Forget stored schemas so the next lookup reloads them."""
        self._schemas = None

    async def _load(self) -> dict[str, CollectionSchema]:
        if self._schemas is not None:
            return self._schemas

        schemas = dict(self._builtin)
        if self._backend is not None:
            for name in await self._backend.list(COLLECTIONS_DIR):
                if not name.endswith(SCHEMA_SUFFIX):
                    continue
                raw = await self._backend.read(f"{COLLECTIONS_DIR}/{name}")
                try:
                    schema = CollectionSchema.model_validate(json.loads(raw))
                except (ValueError, ValidationError) as exc:
                    logger.error("Skipping invalid collection schema", file=name, error=str(exc))
                    continue
                schemas[schema.slug] = schema

        self._schemas = schemas
        logger.debug("Loaded collection schemas", collections=sorted(schemas))
        return schemas

    async def get(self, slug: str) -> CollectionSchema | None:
        return (await self._load()).get(slug)

    async def list_collections(self) -> list[CollectionSchema]:
        return list((await self._load()).values())

    async def require(
        self, slug: str, operation: str, correlation_id: UUID | None = None
    ) -> CollectionSchema:
        schema = await self.get(slug)
        if schema is None:
            raise_resource_not_found(
                service="content_repository_service",
                operation=operation,
                resource_type="collection",
                resource_id=slug,
                correlation_id=correlation_id,
            )
        return schema
