"""Input validators and typed payload shapes for tracked events."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Union


class ValidationError(Exception):
    pass


def _split(data: Mapping[str, Any], known: set[str]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if key not in known}


@dataclass(slots=True)
class ContentObject:
    type: str
    id: Any
    title: str = "Untitled"
    url: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ContentObject":
        return cls(
            type=data["type"],
            id=data.get("id"),
            title=data.get("title") or "Untitled",
            url=data.get("url"),
            extra=_split(data, {"type", "id", "title", "url"}),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {"type": self.type, "id": self.id, "title": self.title}
        if self.url:
            data["url"] = self.url
        return data | self.extra


@dataclass(slots=True)
class UserObject:
    type: str
    id: Any
    name: str = ""
    role: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "UserObject":
        return cls(
            type=data["type"],
            id=data.get("id"),
            name=data.get("name") or "",
            role=data.get("role"),
            extra=_split(data, {"type", "id", "name", "role"}),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {"type": self.type, "id": self.id, "name": self.name}
        if self.role:
            data["role"] = self.role
        return data | self.extra


@dataclass(slots=True)
class CommentObject:
    type: str
    id: Any
    post_id: Any = None
    post_title: str = ""
    author: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CommentObject":
        return cls(
            type=data["type"],
            id=data.get("id"),
            post_id=data.get("post_id"),
            post_title=data.get("post_title") or "",
            author=data.get("author") or "",
            extra=_split(data, {"type", "id", "post_id", "post_title", "author"}),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "type": self.type,
            "id": self.id,
            "post_id": self.post_id,
            "post_title": self.post_title,
            "author": self.author,
        }
        return data | self.extra


@dataclass(slots=True)
class PackageObject:
    type: str
    id: Any
    name: str = ""
    version: Optional[str] = None
    previous_version: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PackageObject":
        return cls(
            type=data["type"],
            id=data.get("id"),
            name=data.get("name") or str(data.get("id") or data["type"]),
            version=data.get("version"),
            previous_version=data.get("previous_version"),
            extra=_split(data, {"type", "id", "name", "version", "previous_version"}),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {"type": self.type, "id": self.id, "name": self.name}
        if self.version:
            data["version"] = self.version
        if self.previous_version:
            data["previous_version"] = self.previous_version
        return data | self.extra


@dataclass(slots=True)
class GenericObject:
    type: str
    id: Any = None
    attributes: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GenericObject":
        return cls(
            type=data["type"],
            id=data.get("id"),
            attributes=_split(data, {"type", "id"}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "id": self.id} | self.attributes


ObjectRef = Union[ContentObject, UserObject, CommentObject, PackageObject, GenericObject]

_OBJECT_SHAPES: Dict[str, Callable[[Mapping[str, Any]], ObjectRef]] = {
    "post": ContentObject.from_dict,
    "page": ContentObject.from_dict,
    "user": UserObject.from_dict,
    "comment": CommentObject.from_dict,
    "plugin": PackageObject.from_dict,
    "theme": PackageObject.from_dict,
    "core": PackageObject.from_dict,
}


def parse_object(data: Mapping[str, Any]) -> ObjectRef:
    factory = _OBJECT_SHAPES.get(data["type"], GenericObject.from_dict)
    return factory(data)


@dataclass(slots=True)
class EventPayload:
    action: str
    object: ObjectRef
    context: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "EventPayload":
        if not isinstance(data, Mapping):
            raise ValidationError("Event payload must be an object")
        if not data.get("action"):
            raise ValidationError("Missing fields: action")
        obj = data.get("object")
        if not isinstance(obj, Mapping):
            raise ValidationError("Missing fields: object")
        object_type = obj.get("type")
        if not isinstance(object_type, str) or not object_type.strip():
            raise ValidationError("Missing fields: object.type")
        context = data.get("context", {})
        if context is None:
            context = {}
        if not isinstance(context, Mapping):
            raise ValidationError("context must be an object")
        metadata = data.get("metadata", {})
        if metadata is None:
            metadata = {}
        if not isinstance(metadata, Mapping):
            raise ValidationError("metadata must be an object")
        return cls(
            action=str(data["action"]),
            object=parse_object(obj),
            context=dict(context),
            metadata=dict(metadata),
        )

    @property
    def object_type(self) -> str:
        return self.object.type

    @property
    def object_id(self) -> Any:
        return self.object.id

    @property
    def user_id(self) -> int | None:
        value = self.context.get("user_id")
        try:
            return int(value) if value is not None else None
        except (TypeError, ValueError):
            return None

    @property
    def user_name(self) -> str | None:
        return self.context.get("user_name")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"action": self.action, "object": self.object.to_dict()}
        if self.context:
            data["context"] = dict(self.context)
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        return data


@dataclass(slots=True)
class TrackRequest:
    event_type: str
    payload: EventPayload
    source: str
    subtype: Optional[str]

    @classmethod
    def from_dict(cls, data: dict) -> "TrackRequest":
        if not isinstance(data, Mapping):
            raise ValidationError("Request body must be an object")
        required = {"event_type", "payload"}
        missing = required - data.keys()
        if missing:
            raise ValidationError(f"Missing fields: {', '.join(sorted(missing))}")
        event_type = str(data["event_type"]).strip()
        if not event_type:
            raise ValidationError("event_type must not be empty")
        return cls(
            event_type=event_type,
            payload=EventPayload.from_dict(data["payload"]),
            source=str(data.get("source") or "custom"),
            subtype=data.get("subtype"),
        )
