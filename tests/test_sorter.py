"""Tests for the sorter."""

from unittest.mock import AsyncMock

import pytest

from smart_file_sorter.core.move_history import MoveHistory
from smart_file_sorter.core.sorter import BatchResult, MoveStatus, Sorter, is_excluded
from smart_file_sorter.exceptions import FileOperationError, FolderConflictError
from smart_file_sorter.models.snapshot import FileMetadataSnapshot
from smart_file_sorter.models.sorting_rule import SortingRule
from smart_file_sorter.notifications import RecordingNotifier
from smart_file_sorter.storage.base import VaultFile, VaultFolder
from smart_file_sorter.storage.memory import InMemoryVault


@pytest.fixture
def vault():
    return InMemoryVault()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def sorter(vault, notifier):
    return Sorter(vault, history=MoveHistory(), notifier=notifier)


@pytest.fixture
def done_rule():
    return SortingRule(name="Done", destination_folder="Done",
                       property_name="status", property_value="done")


@pytest.fixture
def project_rule():
    return SortingRule(name="Projects", destination_folder="Projects",
                       property_name="type", property_value="project",
                       create_subfolders=True, subfolder_property="category")


class TestResolveDestination:
    """Destination path computation."""

    def test_subfolder_substitution(self, sorter, project_rule):
        file = VaultFile(path="Inbox/site.md")
        snapshot = FileMetadataSnapshot.from_frontmatter({"category": "Website"})
        assert sorter.resolve_folder(project_rule, snapshot) == "Projects/Website"
        assert sorter.resolve_destination(file, project_rule, snapshot) == "Projects/Website/site.md"

    def test_missing_subfolder_property_uses_base(self, sorter, project_rule):
        file = VaultFile(path="Inbox/site.md")
        snapshot = FileMetadataSnapshot.from_frontmatter({"category": ""})
        assert sorter.resolve_destination(file, project_rule, snapshot) == "Projects/site.md"
        assert sorter.resolve_destination(file, project_rule, None) == "Projects/site.md"

    def test_subfolders_disabled(self, sorter, project_rule):
        project_rule.create_subfolders = False
        snapshot = FileMetadataSnapshot.from_frontmatter({"category": "Website"})
        assert sorter.resolve_folder(project_rule, snapshot) == "Projects"

    def test_destination_is_normalized(self, sorter):
        rule = SortingRule(name="messy", destination_folder="/Areas//Health/")
        assert sorter.resolve_destination(VaultFile(path="a.md"), rule, None) == "Areas/Health/a.md"

    def test_root_destination(self, sorter):
        rule = SortingRule(name="root", destination_folder="/")
        assert sorter.resolve_destination(VaultFile(path="Inbox/a.md"), rule, None) == "a.md"


class TestMove:
    """Single file moves."""

    @pytest.mark.asyncio
    async def test_move_creates_folders_and_records_history(self, vault, sorter, project_rule):
        file = vault.add_file("Inbox/site.md", {"type": "project", "category": "Website"})
        snapshot = await vault.get_metadata(file)

        result = await sorter.move(file, project_rule, snapshot)

        assert result.status == MoveStatus.MOVED
        assert result.source == "Inbox/site.md"
        assert result.destination == "Projects/Website/site.md"
        assert file.path == "Projects/Website/site.md"
        assert isinstance(await vault.get_entry("Projects"), VaultFolder)
        assert isinstance(await vault.get_entry("Projects/Website"), VaultFolder)
        assert await vault.get_entry("Inbox/site.md") is None

        [operation] = list(sorter.history)
        assert operation.file == "site.md"
        assert operation.from_path == "Inbox/site.md"
        assert operation.to_path == "Projects/Website/site.md"
        assert operation.rule == "Projects"

    @pytest.mark.asyncio
    async def test_second_move_is_already_in_place(self, vault, sorter, done_rule):
        file = vault.add_file("Notes/a.md", {"status": "done"})
        snapshot = await vault.get_metadata(file)

        first = await sorter.move(file, done_rule, snapshot)
        second = await sorter.move(file, done_rule, snapshot)

        assert first.status == MoveStatus.MOVED
        assert second.status == MoveStatus.ALREADY_IN_PLACE
        assert len(sorter.history) == 1

    @pytest.mark.asyncio
    async def test_conflict_leaves_file_untouched(self, vault, sorter, notifier, done_rule):
        file_a = vault.add_file("Notes/a.md", {"status": "done"})
        vault.add_file("Done/a.md", {"status": "other"})
        snapshot = await vault.get_metadata(file_a)

        result = await sorter.move(file_a, done_rule, snapshot)

        assert result.status == MoveStatus.CONFLICT
        assert file_a.path == "Notes/a.md"
        assert (await vault.get_entry("Notes/a.md")).is_same(file_a)
        assert notifier.messages == ["Cannot move a.md: file already exists at destination"]
        assert len(sorter.history) == 0

    @pytest.mark.asyncio
    async def test_file_in_folder_position_fails(self, vault, sorter, done_rule):
        vault.add_file("Done", {})
        file = vault.add_file("Notes/a.md", {"status": "done"})

        result = await sorter.move(file, done_rule, await vault.get_metadata(file))

        assert result.status == MoveStatus.FAILED
        assert isinstance(result.error, FolderConflictError)
        assert file.path == "Notes/a.md"

    @pytest.mark.asyncio
    async def test_rename_failure_is_reported(self, vault, sorter, done_rule):
        file = vault.add_file("Notes/a.md", {"status": "done"})
        vault.rename = AsyncMock(side_effect=FileOperationError("disk full"))

        result = await sorter.move(file, done_rule, await vault.get_metadata(file))

        assert result.status == MoveStatus.FAILED
        assert str(result.error) == "disk full"
        assert file.path == "Notes/a.md"

    @pytest.mark.asyncio
    async def test_existing_folders_are_reused(self, vault, sorter, done_rule):
        vault.add_folder("Done")
        vault.create_folder = AsyncMock()
        file = vault.add_file("a.md", {"status": "done"})

        result = await sorter.move(file, done_rule, await vault.get_metadata(file))

        assert result.status == MoveStatus.MOVED
        vault.create_folder.assert_not_called()

    @pytest.mark.asyncio
    async def test_already_in_place_does_not_create_folders(self, vault, sorter, done_rule):
        file = vault.add_file("Done/a.md", {"status": "done"})
        vault.create_folder = AsyncMock()

        result = await sorter.move(file, done_rule, await vault.get_metadata(file))

        assert result.status == MoveStatus.ALREADY_IN_PLACE
        vault.create_folder.assert_not_called()


class TestSortCollection:
    """Whole-vault batches."""

    @pytest.mark.asyncio
    async def test_counts_add_up(self, vault, sorter, done_rule, project_rule):
        vault.add_file("Inbox/a.md", {"status": "done"})
        vault.add_file("Inbox/b.md", {"type": "project", "category": "Web"})
        vault.add_file("Inbox/c.md", {"status": "open"})
        vault.add_file("Done/d.md", {"status": "done"})
        vault.add_file("Inbox/image.png")

        progress = []
        result = await sorter.sort_collection(
            [done_rule, project_rule], [], lambda current, total: progress.append((current, total))
        )

        assert result == BatchResult(moved=2, skipped=2, errors=0)
        assert result.total == 4
        assert progress == [(1, 4), (2, 4), (3, 4), (4, 4)]
        assert await vault.get_entry("Projects/Web/b.md") is not None

    @pytest.mark.asyncio
    async def test_excluded_folders_are_segment_aligned(self, vault, sorter, done_rule):
        vault.add_file("Archive/a.md", {"status": "done"})
        vault.add_file("Archive2/b.md", {"status": "done"})

        result = await sorter.sort_collection([done_rule], ["Archive"])

        assert result == BatchResult(moved=1, skipped=1, errors=0)
        assert await vault.get_entry("Archive/a.md") is not None
        assert await vault.get_entry("Done/b.md") is not None

    @pytest.mark.asyncio
    async def test_disabled_rules_are_ignored(self, vault, sorter, done_rule):
        done_rule.enabled = False
        vault.add_file("a.md", {"status": "done"})

        result = await sorter.sort_collection([done_rule])

        assert result == BatchResult(moved=0, skipped=1, errors=0)

    @pytest.mark.asyncio
    async def test_one_failure_does_not_abort_the_batch(self, vault, sorter, done_rule):
        vault.add_file("a.md", {"status": "done"})
        vault.add_file("b.md", {"status": "done"})
        vault.add_file("c.md", {"status": "done"})
        original_rename = vault.rename

        async def flaky_rename(file, new_path):
            if file.name == "b.md":
                raise FileOperationError("permission denied")
            await original_rename(file, new_path)

        vault.rename = flaky_rename
        progress = []

        result = await sorter.sort_collection([done_rule], [], lambda c, t: progress.append(c))

        assert result == BatchResult(moved=2, skipped=0, errors=1)
        assert progress == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_metadata_lookup_failure_counts_as_error(self, vault, sorter, done_rule):
        vault.add_file("a.md", {"status": "done"})
        vault.get_metadata = AsyncMock(side_effect=OSError("unreadable"))

        result = await sorter.sort_collection([done_rule])

        assert result == BatchResult(moved=0, skipped=0, errors=1)

    @pytest.mark.asyncio
    async def test_conflicts_are_skipped(self, vault, sorter, done_rule):
        vault.add_file("Notes/a.md", {"status": "done"})
        vault.add_file("Done/a.md", {"status": "other"})

        result = await sorter.sort_collection([done_rule])

        assert result == BatchResult(moved=0, skipped=2, errors=0)

    @pytest.mark.asyncio
    async def test_unparsed_metadata_is_skipped(self, vault, sorter, done_rule):
        file = vault.add_file("a.md", {"status": "done"})
        vault.set_metadata(file, None)

        result = await sorter.sort_collection([done_rule])

        assert result == BatchResult(moved=0, skipped=1, errors=0)


class TestSortSubtree:
    """Folder batches."""

    @pytest.mark.asyncio
    async def test_direct_children_only(self, vault, sorter, done_rule):
        vault.add_file("Inbox/a.md", {"status": "done"})
        vault.add_file("Inbox/nested/b.md", {"status": "done"})
        vault.add_file("Elsewhere/c.md", {"status": "done"})

        result = await sorter.sort_subtree("Inbox", [done_rule])

        assert result == BatchResult(moved=1, skipped=0, errors=0)
        assert await vault.get_entry("Inbox/nested/b.md") is not None
        assert await vault.get_entry("Elsewhere/c.md") is not None

    @pytest.mark.asyncio
    async def test_recursive_sums_children(self, vault, sorter, done_rule):
        vault.add_file("Inbox/a.md", {"status": "done"})
        vault.add_file("Inbox/nested/b.md", {"status": "done"})
        vault.add_file("Inbox/nested/deeper/c.md", {"status": "open"})

        result = await sorter.sort_subtree("Inbox", [done_rule], recursive=True)

        assert result == BatchResult(moved=2, skipped=1, errors=0)

    @pytest.mark.asyncio
    async def test_recursive_does_not_revisit_moved_file(self, vault, sorter):
        vault.add_file("Inbox/a.md", {"status": "done"})
        vault.add_folder("Inbox/nested")
        rule = SortingRule(name="Nested", destination_folder="Inbox/nested",
                           property_name="status", property_value="done")

        result = await sorter.sort_subtree("Inbox", [rule], recursive=True)

        assert result == BatchResult(moved=1, skipped=0, errors=0)
        assert await vault.get_entry("Inbox/nested/a.md") is not None

    @pytest.mark.asyncio
    async def test_excluded_folders_not_applied(self, vault, sorter, done_rule):
        vault.add_file("Archive/a.md", {"status": "done"})

        result = await sorter.sort_subtree("Archive", [done_rule])

        assert result.moved == 1

    @pytest.mark.asyncio
    async def test_missing_folder_raises(self, sorter, done_rule):
        with pytest.raises(FileOperationError):
            await sorter.sort_subtree("Nope", [done_rule])


class TestHelpers:

    def test_is_excluded(self):
        assert is_excluded("Archive/note.md", ["Templates", "Archive"])
        assert not is_excluded("Archive2/note.md", ["Archive"])
        assert not is_excluded("note.md", [])

    def test_batch_result_addition(self):
        total = BatchResult(1, 2, 3) + BatchResult(4, 5, 6)
        assert total == BatchResult(5, 7, 9)
        assert total.total == 21

    def test_verbose_toggle(self, sorter):
        sorter.set_verbose_logging(True)
        assert sorter.verbose_logging is True
