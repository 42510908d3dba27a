"""Point-in-time view of a document's matchable metadata."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Tuple

TAG_MARKER = "#"


def strip_tag_marker(tag: str) -> str:
    """Remove a single leading tag marker."""
    return tag[1:] if tag.startswith(TAG_MARKER) else tag


def stringify_value(value: Any) -> str:
    """Render a frontmatter value the way it reads in the document.

    Lists are joined with commas, booleans are lower-case and integral
    floats drop their fractional part.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join(stringify_value(v) for v in value)
    return str(value)


@dataclass(frozen=True)
class FileMetadataSnapshot:
    """Properties and tags of a file at decision time.

    Tags are kept as written (inline tags keep their ``#``); matching strips
    the marker.
    """
    properties: Mapping[str, Any] = field(default_factory=dict)
    tags: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "properties", MappingProxyType(dict(self.properties)))
        object.__setattr__(self, "tags", tuple(dict.fromkeys(self.tags)))

    def get(self, name: str) -> Any:
        return self.properties.get(name)

    @property
    def normalized_tags(self) -> Tuple[str, ...]:
        return tuple(strip_tag_marker(tag) for tag in self.tags)

    @classmethod
    def from_frontmatter(cls, frontmatter: Optional[Mapping[str, Any]],
                         inline_tags: Iterable[str] = ()) -> "FileMetadataSnapshot":
        """Build a snapshot from parsed frontmatter plus inline tags."""
        properties = dict(frontmatter or {})
        tags = []

        frontmatter_tags = properties.get("tags")
        if isinstance(frontmatter_tags, (list, tuple)):
            tags.extend(str(t) for t in frontmatter_tags if t is not None)
        elif isinstance(frontmatter_tags, str):
            tags.extend(t.strip() for t in frontmatter_tags.split(",") if t.strip())

        tags.extend(inline_tags)
        return cls(properties=properties, tags=tuple(tags))
