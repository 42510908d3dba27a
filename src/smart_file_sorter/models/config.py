"""Settings model for smart file sorter."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..core.rule_schema import validate_settings_json
from ..exceptions import ConfigurationError
from .sorting_rule import MatchType, SortingRule

logger = logging.getLogger(__name__)


def _example_rules() -> List[SortingRule]:
    return [
        SortingRule(
            name="Example: Soccer files",
            enabled=False,
            destination_folder="Topics/Soccer",
            property_name="topic",
            property_value="soccer",
            match_type=MatchType.EQUALS,
        )
    ]


@dataclass
class SorterSettings:
    """User settings: the ordered rule list plus auto-sort switches."""
    rules: List[SortingRule] = field(default_factory=_example_rules)
    enable_auto_sort: bool = False
    sort_on_modify: bool = True
    sort_on_create: bool = True
    show_notifications: bool = True
    excluded_folders: List[str] = field(default_factory=list)
    verbose_logging: bool = False

    def enabled_rules(self) -> List[SortingRule]:
        return [rule for rule in self.rules if rule.enabled]

    def get_rule(self, rule_id: str) -> Optional[SortingRule]:
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None

    def add_rule(self, rule: SortingRule) -> None:
        """Append a rule; it gets the lowest precedence."""
        self.rules.append(rule)

    def remove_rule(self, rule_id: str) -> bool:
        for i, rule in enumerate(self.rules):
            if rule.id == rule_id:
                del self.rules[i]
                return True
        return False

    def move_rule_up(self, index: int) -> bool:
        """Swap the rule at ``index`` with its predecessor."""
        if index <= 0 or index >= len(self.rules):
            return False
        self.rules[index - 1], self.rules[index] = self.rules[index], self.rules[index - 1]
        return True

    def move_rule_down(self, index: int) -> bool:
        """Swap the rule at ``index`` with its successor."""
        if index < 0 or index >= len(self.rules) - 1:
            return False
        self.rules[index], self.rules[index + 1] = self.rules[index + 1], self.rules[index]
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rules": [rule.to_dict() for rule in self.rules],
            "enableAutoSort": self.enable_auto_sort,
            "sortOnModify": self.sort_on_modify,
            "sortOnCreate": self.sort_on_create,
            "showNotifications": self.show_notifications,
            "excludedFolders": list(self.excluded_folders),
            "verboseLogging": self.verbose_logging,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SorterSettings":
        """Create settings from a decoded settings document.

        Keys missing from ``data`` keep their defaults.

        Raises:
            ConfigurationError: If the document does not match the schema
        """
        errors = validate_settings_json(data)
        if errors:
            raise ConfigurationError("; ".join(errors))

        settings = cls()
        if "rules" in data:
            settings.rules = [SortingRule.from_dict(r) for r in data["rules"]]
        settings.enable_auto_sort = data.get("enableAutoSort", settings.enable_auto_sort)
        settings.sort_on_modify = data.get("sortOnModify", settings.sort_on_modify)
        settings.sort_on_create = data.get("sortOnCreate", settings.sort_on_create)
        settings.show_notifications = data.get("showNotifications", settings.show_notifications)
        settings.excluded_folders = list(data.get("excludedFolders", settings.excluded_folders))
        settings.verbose_logging = data.get("verboseLogging", settings.verbose_logging)
        return settings


def load_settings(config_path: Path) -> SorterSettings:
    """Load settings from a JSON file."""
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {config_path}: {e.msg} at line {e.lineno}") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read settings file {config_path}: {e}") from e

    settings = SorterSettings.from_dict(data)
    logger.debug(f"Loaded {len(settings.rules)} rules from {config_path}")
    return settings


def save_settings(settings: SorterSettings, config_path: Path) -> None:
    """Save settings to a JSON file."""
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(settings.to_dict(), f, indent=2, ensure_ascii=False)


def create_default_settings(config_path: Path) -> None:
    """Create a default settings file."""
    save_settings(SorterSettings(), config_path)
