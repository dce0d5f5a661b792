"""Event type registry: labels, titles and descriptions per event type."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from .utils import humanize

TitleFn = Callable[[Mapping[str, Any]], str]
DescribeFn = Callable[[Mapping[str, Any], Mapping[str, Any]], str]


@dataclass(frozen=True, slots=True)
class EventTypeDefinition:
    name: str
    stat_label: str
    highlight_label: str
    icon: str = "•"
    short_title: Optional[TitleFn] = None
    ai_description: Optional[DescribeFn] = None


class EventTypeRegistry:
    """Lookup table passed explicitly to the components that render events."""

    def __init__(self, definitions: List[EventTypeDefinition] | None = None) -> None:
        self._types: Dict[str, EventTypeDefinition] = {}
        for definition in definitions or []:
            self.register(definition)

    def register(self, definition: EventTypeDefinition) -> None:
        self._types[definition.name] = definition

    def get(self, event_type: str) -> EventTypeDefinition | None:
        return self._types.get(event_type)

    def is_registered(self, event_type: str) -> bool:
        return event_type in self._types

    def registered_types(self) -> List[str]:
        return list(self._types)

    def icon(self, event_type: str) -> str:
        definition = self.get(event_type)
        return definition.icon if definition else "•"

    def stat_label(self, event_type: str) -> str:
        definition = self.get(event_type)
        if definition and definition.stat_label:
            return definition.stat_label
        return humanize(event_type)

    def highlight_label(self, event_type: str) -> str:
        definition = self.get(event_type)
        if definition and definition.highlight_label:
            return definition.highlight_label
        return event_type

    def short_title(self, event_type: str, payload: Mapping[str, Any]) -> str:
        definition = self.get(event_type)
        if definition and definition.short_title:
            return definition.short_title(payload)
        return humanize(event_type)

    def ai_description(
        self, event_type: str, obj: Mapping[str, Any], metadata: Mapping[str, Any]
    ) -> str:
        definition = self.get(event_type)
        if definition and definition.ai_description:
            return definition.ai_description(obj, metadata)
        return ""

    def describe_all(self) -> List[dict]:
        return [
            {
                "name": definition.name,
                "icon": definition.icon,
                "stat_label": definition.stat_label,
                "highlight_label": definition.highlight_label,
            }
            for definition in self._types.values()
        ]


def _title(obj: Mapping[str, Any], default: str = "Untitled") -> str:
    return str(obj.get("title") or obj.get("name") or default)


def _published_title(payload: Mapping[str, Any]) -> str:
    obj = payload.get("object") or {}
    return f"New {obj.get('type', 'post')}: {_title(obj)}"


def _edited_title(payload: Mapping[str, Any]) -> str:
    obj = payload.get("object") or {}
    magnitude = (payload.get("metadata") or {}).get("edit_magnitude", 0)
    return f"{_title(obj, 'Post')} edited ({int(magnitude)}% changed)"


def _deleted_title(payload: Mapping[str, Any]) -> str:
    obj = payload.get("object") or {}
    return f"{_title(obj, 'Post')} deleted"


def _user_title(payload: Mapping[str, Any]) -> str:
    obj = payload.get("object") or {}
    return f"New user: {obj.get('name') or 'Unknown'}"


def _role_title(payload: Mapping[str, Any]) -> str:
    obj = payload.get("object") or {}
    metadata = payload.get("metadata") or {}
    return (
        f"{obj.get('name') or 'User'} role changed: "
        f"{metadata.get('old_role', '?')} → {metadata.get('new_role', '?')}"
    )


def _comment_title(payload: Mapping[str, Any]) -> str:
    obj = payload.get("object") or {}
    return f"Comment by {obj.get('author') or 'Anonymous'} on {obj.get('post_title') or 'a post'}"


def _package_title(payload: Mapping[str, Any]) -> str:
    obj = payload.get("object") or {}
    version = obj.get("version")
    suffix = f" to {version}" if version else ""
    return f"{_title(obj, str(obj.get('type', 'package')))} updated{suffix}"


def default_registry() -> EventTypeRegistry:
    """Registry with the built-in event types."""
    return EventTypeRegistry(
        [
            EventTypeDefinition(
                name="post_published",
                icon="📝",
                stat_label="Posts Published",
                highlight_label="new posts published",
                short_title=_published_title,
                ai_description=lambda obj, meta: f'Published post: "{_title(obj)}"',
            ),
            EventTypeDefinition(
                name="page_published",
                icon="📄",
                stat_label="Pages Published",
                highlight_label="new pages published",
                short_title=_published_title,
                ai_description=lambda obj, meta: f'Published page: "{_title(obj)}"',
            ),
            EventTypeDefinition(
                name="post_edited",
                icon="✏️",
                stat_label="Posts Edited",
                highlight_label="posts edited",
                short_title=_edited_title,
                ai_description=lambda obj, meta: (
                    f'Edited post "{_title(obj)}" '
                    f"({int(meta.get('edit_magnitude', 0))}% changed)"
                ),
            ),
            EventTypeDefinition(
                name="post_deleted",
                icon="🗑️",
                stat_label="Posts Deleted",
                highlight_label="posts deleted",
                short_title=_deleted_title,
                ai_description=lambda obj, meta: f'Deleted post: "{_title(obj)}"',
            ),
            EventTypeDefinition(
                name="user_registered",
                icon="👤",
                stat_label="New Users",
                highlight_label="new users registered",
                short_title=_user_title,
                ai_description=lambda obj, meta: f"New user registered: {obj.get('name') or 'Unknown'}",
            ),
            EventTypeDefinition(
                name="user_role_changed",
                icon="🔑",
                stat_label="Role Changes",
                highlight_label="user role changes",
                short_title=_role_title,
                ai_description=lambda obj, meta: (
                    f"Changed role of {obj.get('name') or 'a user'} "
                    f"to {meta.get('new_role', 'unknown')}"
                ),
            ),
            EventTypeDefinition(
                name="comment_posted",
                icon="💬",
                stat_label="Comments",
                highlight_label="new comments",
                short_title=_comment_title,
                ai_description=lambda obj, meta: (
                    f'New comment on "{obj.get("post_title") or "a post"}"'
                ),
            ),
            EventTypeDefinition(
                name="comment_approved",
                icon="✅",
                stat_label="Comments Approved",
                highlight_label="comments approved",
                short_title=_comment_title,
            ),
            EventTypeDefinition(
                name="comment_spam",
                icon="🚫",
                stat_label="Spam Comments",
                highlight_label="comments marked as spam",
                short_title=_comment_title,
            ),
            EventTypeDefinition(
                name="core_updated",
                icon="⬆️",
                stat_label="Core Updates",
                highlight_label="core updated",
                short_title=_package_title,
                ai_description=lambda obj, meta: f"Core updated to {obj.get('version') or 'a new version'}",
            ),
            EventTypeDefinition(
                name="plugin_updated",
                icon="🔌",
                stat_label="Plugins Updated",
                highlight_label="plugins updated",
                short_title=_package_title,
                ai_description=lambda obj, meta: f"Updated plugin {_title(obj, 'unknown')}",
            ),
            EventTypeDefinition(
                name="theme_updated",
                icon="🎨",
                stat_label="Themes Updated",
                highlight_label="themes updated",
                short_title=_package_title,
                ai_description=lambda obj, meta: f"Updated theme {_title(obj, 'unknown')}",
            ),
        ]
    )
