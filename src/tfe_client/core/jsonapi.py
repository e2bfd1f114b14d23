"""
JSON:API envelope codec built on pydantic.

Resource classes subclass ``JSONAPIModel`` and declare their wire type with
``jsonapi_type``. Every other field is either an attribute or, when its type
is another JSONAPIModel (optionally wrapped in Optional/List), a relationship.
The per-class schema table is derived once from pydantic's field metadata
and cached.
"""

from __future__ import annotations

import typing
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Generic, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

MEDIA_TYPE = "application/vnd.api+json"

M = TypeVar("M", bound="JSONAPIModel")


class JSONAPIDecodeError(ValueError):
    """Raised when a document does not have the expected JSON:API shape."""


def dasherize(name: str) -> str:
    return name.replace("_", "-")


class WireModel(BaseModel):
    """Nested attribute value using the API's dasherized keys."""

    model_config = ConfigDict(
        alias_generator=dasherize, populate_by_name=True, extra="ignore"
    )


class JSONAPIModel(WireModel):
    """Base for any resource object carried in a JSON:API document."""

    jsonapi_type: ClassVar[str] = ""

    id: Optional[str] = None
    links: Dict[str, Any] = Field(default_factory=dict)


@dataclass(frozen=True)
class Relationship:
    key: str
    target: Type[JSONAPIModel]
    many: bool


@dataclass(frozen=True)
class ResourceSchema:
    type: str
    attributes: Dict[str, str]  # field name -> wire key
    relationships: Dict[str, Relationship]


_RESERVED_FIELDS = {"id", "links"}
_SCHEMAS: Dict[type, ResourceSchema] = {}


def _relationship_target(annotation: Any) -> Tuple[Optional[type], bool]:
    """Unwrap Optional[...] / List[...] to find a JSONAPIModel target."""
    many = False
    while True:
        origin = typing.get_origin(annotation)
        if origin is None:
            break
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if origin in (list, List):
            many = True
        if len(args) != 1:
            return None, False
        annotation = args[0]
    if isinstance(annotation, type) and issubclass(annotation, JSONAPIModel):
        return annotation, many
    return None, False


def schema_for(model: Type[JSONAPIModel]) -> ResourceSchema:
    cached = _SCHEMAS.get(model)
    if cached is not None:
        return cached

    if not model.__pydantic_complete__:
        model.model_rebuild()

    attributes: Dict[str, str] = {}
    relationships: Dict[str, Relationship] = {}
    for name, info in model.model_fields.items():
        if name in _RESERVED_FIELDS:
            continue
        key = info.alias or dasherize(name)
        target, many = _relationship_target(info.annotation)
        if target is not None:
            relationships[name] = Relationship(key=key, target=target, many=many)
        else:
            attributes[name] = key

    schema = ResourceSchema(
        type=model.jsonapi_type, attributes=attributes, relationships=relationships
    )
    _SCHEMAS[model] = schema
    return schema


# --- Serialization ---


def _identifier(value: JSONAPIModel, field: str) -> Dict[str, str]:
    if not value.id:
        raise JSONAPIDecodeError(f"relationship {field!r} requires an id")
    return {"type": schema_for(type(value)).type, "id": value.id}


def resource_object(model: JSONAPIModel) -> Dict[str, Any]:
    schema = schema_for(type(model))
    obj: Dict[str, Any] = {"type": schema.type}
    if model.id:
        obj["id"] = model.id

    # None means "not set" and is left out of the document.
    obj["attributes"] = model.model_dump(
        mode="json",
        by_alias=True,
        exclude_none=True,
        include=set(schema.attributes),
    )

    relationships: Dict[str, Any] = {}
    for name, rel in schema.relationships.items():
        value = getattr(model, name)
        if value is None:
            continue
        if rel.many:
            relationships[rel.key] = {"data": [_identifier(v, name) for v in value]}
        else:
            relationships[rel.key] = {"data": _identifier(value, name)}
    if relationships:
        obj["relationships"] = relationships
    return obj


def serialize(payload: JSONAPIModel | List[JSONAPIModel]) -> Dict[str, Any]:
    """Wrap a model (or list of models) in a ``{"data": ...}`` document."""
    if isinstance(payload, list):
        return {"data": [resource_object(m) for m in payload]}
    return {"data": resource_object(payload)}


# --- Deserialization ---


class Pagination(BaseModel):
    current_page: int = Field(default=1, ge=1, alias="current-page")
    prev_page: Optional[int] = Field(default=None, alias="prev-page")
    next_page: Optional[int] = Field(default=None, alias="next-page")
    total_pages: int = Field(default=0, ge=0, alias="total-pages")
    total_count: int = Field(default=0, ge=0, alias="total-count")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("current_page", "total_pages", "total_count", mode="before")
    @classmethod
    def _null_is_default(cls, value: Any, info: Any) -> Any:
        if value is None:
            return cls.model_fields[info.field_name].default
        return value


class ResourceList(BaseModel, Generic[M]):
    items: List[M] = Field(default_factory=list)
    pagination: Optional[Pagination] = None
    links: Dict[str, Any] = Field(default_factory=dict)
    meta: Dict[str, Any] = Field(default_factory=dict)


class ErrorObject(BaseModel):
    status: Optional[str] = None
    title: Optional[str] = None
    detail: Optional[str] = None
    source: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="ignore")

    @property
    def text(self) -> str:
        return self.detail or self.title or ""


_Index = Dict[Tuple[str, str], Dict[str, Any]]


def _index_included(included: Any) -> _Index:
    index: _Index = {}
    if not isinstance(included, list):
        return index
    for obj in included:
        if isinstance(obj, dict) and "type" in obj and "id" in obj:
            index[(str(obj["type"]), str(obj["id"]))] = obj
    return index


def _resolve(
    target: Type[M], ref: Any, index: _Index, visiting: frozenset
) -> Optional[M]:
    if not isinstance(ref, dict) or "id" not in ref:
        return None
    key = (str(ref.get("type")), str(ref["id"]))
    obj = index.get(key)
    if obj is None or key in visiting:
        return target.model_validate({"id": str(ref["id"])})
    return _build(target, obj, index, visiting | {key})


def _build(
    model: Type[M], obj: Dict[str, Any], index: _Index, visiting: frozenset
) -> M:
    schema = schema_for(model)
    values: Dict[str, Any] = {
        "id": None if obj.get("id") is None else str(obj["id"]),
        "links": obj.get("links") or {},
    }

    # null attributes fall back to the field default.
    attributes = obj.get("attributes") or {}
    for name, key in schema.attributes.items():
        if attributes.get(key) is not None:
            values[name] = attributes[key]

    relationships = obj.get("relationships") or {}
    for name, rel in schema.relationships.items():
        payload = relationships.get(rel.key)
        if not isinstance(payload, dict) or "data" not in payload:
            continue
        data = payload["data"]
        if rel.many:
            resolved = [_resolve(rel.target, r, index, visiting) for r in data or []]
            values[name] = [r for r in resolved if r is not None]
        else:
            values[name] = _resolve(rel.target, data, index, visiting)

    return model.model_validate(values)


def _primary(doc: Any) -> Any:
    if not isinstance(doc, dict):
        raise JSONAPIDecodeError("expected a JSON:API document object")
    if "errors" in doc and doc["errors"]:
        raise JSONAPIDecodeError("document carries errors instead of data")
    if "data" not in doc:
        raise JSONAPIDecodeError("document has no primary data")
    return doc["data"]


def _check_type(obj: Dict[str, Any], model: Type[JSONAPIModel]) -> None:
    expected = schema_for(model).type
    if expected and obj.get("type") != expected:
        raise JSONAPIDecodeError(
            f"expected resource type {expected!r}, got {obj.get('type')!r}"
        )


def deserialize_one(doc: Any, model: Type[M]) -> M:
    data = _primary(doc)
    if not isinstance(data, dict):
        raise JSONAPIDecodeError("expected a single resource object in data")
    _check_type(data, model)
    index = _index_included(doc.get("included"))
    key = (str(data.get("type")), str(data.get("id")))
    return _build(model, data, index, frozenset({key}))


def deserialize_many(doc: Any, model: Type[M]) -> ResourceList[M]:
    data = _primary(doc)
    if not isinstance(data, list):
        raise JSONAPIDecodeError("expected a list of resource objects in data")
    index = _index_included(doc.get("included"))
    items = []
    for obj in data:
        if not isinstance(obj, dict):
            raise JSONAPIDecodeError("resource objects must be JSON objects")
        _check_type(obj, model)
        key = (str(obj.get("type")), str(obj.get("id")))
        items.append(_build(model, obj, index, frozenset({key})))

    meta = doc.get("meta") or {}
    raw_pagination = meta.get("pagination") if isinstance(meta, dict) else None
    pagination = (
        Pagination.model_validate(raw_pagination)
        if isinstance(raw_pagination, dict)
        else None
    )
    return ResourceList[model](  # type: ignore[valid-type]
        items=items,
        pagination=pagination,
        links=doc.get("links") or {},
        meta=meta if isinstance(meta, dict) else {},
    )


def parse_errors(doc: Any) -> List[ErrorObject]:
    """Extract the ``errors`` array, ignoring anything that does not fit."""
    if not isinstance(doc, dict):
        return []
    raw = doc.get("errors")
    if not isinstance(raw, list):
        return []
    return [ErrorObject.model_validate(e) for e in raw if isinstance(e, dict)]


__all__ = [
    "MEDIA_TYPE",
    "JSONAPIDecodeError",
    "JSONAPIModel",
    "WireModel",
    "Pagination",
    "ResourceList",
    "ErrorObject",
    "ResourceSchema",
    "Relationship",
    "dasherize",
    "schema_for",
    "resource_object",
    "serialize",
    "deserialize_one",
    "deserialize_many",
    "parse_errors",
]
