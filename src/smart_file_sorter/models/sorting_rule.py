"""Sorting rule model."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4

from .snapshot import stringify_value


class MatchType(Enum):
    """Comparison used when a rule is evaluated."""
    EQUALS = "equals"
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    REGEX = "regex"


@dataclass
class SortingRule:
    """A user-authored rule pairing a match condition with a destination.

    When ``use_tags`` is set the rule matches against the document's tags
    using ``tag_value``; otherwise it matches the frontmatter property
    ``property_name`` against ``property_value``.
    """
    name: str
    destination_folder: str
    property_name: str = ""
    property_value: str = ""
    match_type: MatchType = MatchType.EQUALS
    case_sensitive: bool = False
    enabled: bool = True
    create_subfolders: bool = False
    subfolder_property: Optional[str] = None
    use_tags: bool = False
    tag_value: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid4()))

    def __post_init__(self) -> None:
        # Convert string match types to enum if needed
        if isinstance(self.match_type, str):
            self.match_type = MatchType(self.match_type)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted (camelCase) representation."""
        data = {
            "id": self.id,
            "name": self.name,
            "enabled": self.enabled,
            "destinationFolder": self.destination_folder,
            "createSubfolders": self.create_subfolders,
            "propertyName": self.property_name,
            "propertyValue": self.property_value,
            "matchType": self.match_type.value,
            "caseSensitive": self.case_sensitive,
            "useTags": self.use_tags,
        }
        if self.subfolder_property is not None:
            data["subfolderProperty"] = self.subfolder_property
        if self.tag_value is not None:
            data["tagValue"] = self.tag_value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SortingRule":
        """Create from the persisted (camelCase) representation."""
        kwargs = dict(
            name=data.get("name", ""),
            destination_folder=data.get("destinationFolder", ""),
            property_name=data.get("propertyName", ""),
            property_value=stringify_value(data.get("propertyValue", "")),
            match_type=MatchType(data.get("matchType", MatchType.EQUALS.value)),
            case_sensitive=bool(data.get("caseSensitive", False)),
            enabled=bool(data.get("enabled", True)),
            create_subfolders=bool(data.get("createSubfolders", False)),
            subfolder_property=data.get("subfolderProperty"),
            use_tags=bool(data.get("useTags", False)),
            tag_value=data.get("tagValue"),
        )
        if data.get("id"):
            kwargs["id"] = data["id"]
        return cls(**kwargs)
