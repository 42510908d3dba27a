"""Rule matching against document metadata.

Matching is pure: a rule is evaluated against a metadata snapshot supplied by
the caller, and the matcher never looks anything up on its own.
"""

import logging
import re
from typing import Callable, Dict, Iterable, List, Optional

from ..models.snapshot import FileMetadataSnapshot, stringify_value, strip_tag_marker
from ..models.sorting_rule import MatchType, SortingRule

logger = logging.getLogger(__name__)

Comparator = Callable[[str, str, bool], bool]


def _fold(text: str, case_sensitive: bool) -> str:
    return text if case_sensitive else text.lower()


def _equals(candidate: str, expected: str, case_sensitive: bool) -> bool:
    return _fold(candidate, case_sensitive) == _fold(expected, case_sensitive)


def _contains(candidate: str, expected: str, case_sensitive: bool) -> bool:
    return _fold(expected, case_sensitive) in _fold(candidate, case_sensitive)


def _starts_with(candidate: str, expected: str, case_sensitive: bool) -> bool:
    return _fold(candidate, case_sensitive).startswith(_fold(expected, case_sensitive))


def _ends_with(candidate: str, expected: str, case_sensitive: bool) -> bool:
    return _fold(candidate, case_sensitive).endswith(_fold(expected, case_sensitive))


def _regex(candidate: str, pattern: str, case_sensitive: bool) -> bool:
    try:
        compiled = re.compile(pattern, 0 if case_sensitive else re.IGNORECASE)
    except re.error as e:
        logger.warning(f"Invalid regex pattern '{pattern}': {e}")
        return False
    return compiled.search(candidate) is not None


COMPARATORS: Dict[MatchType, Comparator] = {
    MatchType.EQUALS: _equals,
    MatchType.CONTAINS: _contains,
    MatchType.STARTS_WITH: _starts_with,
    MatchType.ENDS_WITH: _ends_with,
    MatchType.REGEX: _regex,
}


class RuleMatcher:
    """Decides which sorting rule, if any, applies to a document."""

    def matches(self, rule: SortingRule, snapshot: Optional[FileMetadataSnapshot]) -> bool:
        """Check if a rule matches the given metadata snapshot.

        A missing snapshot (metadata not parsed yet) never matches.
        """
        if not rule.enabled or snapshot is None:
            return False

        if rule.use_tags and rule.tag_value:
            return self._matches_tags(rule, snapshot)

        return self._matches_property(rule, snapshot)

    def find_first_match(self, snapshot: Optional[FileMetadataSnapshot],
                         rules: Iterable[SortingRule]) -> Optional[SortingRule]:
        """Find the first rule, in list order, that matches the snapshot.

        Args:
            snapshot: Metadata of the document, or None if not available
            rules: Rules in precedence order

        Returns:
            The matching rule or None if no rule matches
        """
        for rule in rules:
            if self.matches(rule, snapshot):
                return rule
        return None

    def _matches_tags(self, rule: SortingRule, snapshot: FileMetadataSnapshot) -> bool:
        comparator = COMPARATORS[rule.match_type]

        # Regex patterns see the tag as written, marker included
        if rule.match_type == MatchType.REGEX:
            return any(comparator(tag, rule.tag_value, rule.case_sensitive)
                       for tag in snapshot.tags)

        expected = strip_tag_marker(rule.tag_value)
        return any(comparator(tag, expected, rule.case_sensitive)
                   for tag in snapshot.normalized_tags)

    def _matches_property(self, rule: SortingRule, snapshot: FileMetadataSnapshot) -> bool:
        value = snapshot.get(rule.property_name)
        if value is None:
            return False

        comparator = COMPARATORS[rule.match_type]
        return comparator(stringify_value(value), stringify_value(rule.property_value),
                          rule.case_sensitive)

    def validate_rule(self, rule: SortingRule) -> List[str]:
        """Report configuration problems in a rule.

        Returns:
            List of human-readable problems, empty when the rule looks sound
        """
        errors = []
        if not rule.destination_folder.strip("/ "):
            errors.append(f"Rule '{rule.name}' has no destination folder")
        if rule.create_subfolders and not rule.subfolder_property:
            errors.append(f"Rule '{rule.name}' creates subfolders but names no subfolder property")

        if rule.use_tags:
            if not rule.tag_value:
                errors.append(f"Rule '{rule.name}' matches tags but has no tag value")
            pattern = rule.tag_value
        else:
            if not rule.property_name:
                errors.append(f"Rule '{rule.name}' has no property name")
            pattern = rule.property_value

        if rule.match_type == MatchType.REGEX and pattern:
            try:
                re.compile(pattern)
            except re.error as e:
                errors.append(f"Rule '{rule.name}' has invalid regex: {e}")

        return errors
