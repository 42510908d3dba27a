"""Tests for the local filesystem vault."""

import pytest

from smart_file_sorter.core.sorter import MoveStatus, Sorter
from smart_file_sorter.exceptions import FileOperationError
from smart_file_sorter.models.sorting_rule import SortingRule
from smart_file_sorter.storage.base import VaultFile, VaultFolder
from smart_file_sorter.storage.local import LocalVault, extract_inline_tags, split_frontmatter

NOTE = """---
topic: Soccer
tags: [sport, league]
rating: 4
---
# Match report

Great game #weekend #2024 and a link to #sport.

```python
# not a tag
```
Inline `#code` is ignored too.
"""


@pytest.fixture
def vault_dir(tmp_path):
    (tmp_path / "Inbox").mkdir()
    (tmp_path / "Inbox" / "report.md").write_text(NOTE, encoding="utf-8")
    (tmp_path / "Inbox" / "image.png").write_bytes(b"\x89PNG")
    (tmp_path / ".obsidian").mkdir()
    (tmp_path / ".obsidian" / "workspace.md").write_text("hidden", encoding="utf-8")
    return tmp_path


@pytest.fixture
def vault(vault_dir):
    local = LocalVault(vault_dir)
    yield local
    local.close()


class TestFrontmatter:

    def test_split(self):
        frontmatter, body = split_frontmatter(NOTE)
        assert frontmatter == {"topic": "Soccer", "tags": ["sport", "league"], "rating": 4}
        assert body.lstrip().startswith("# Match report")

    def test_no_frontmatter(self):
        assert split_frontmatter("just text") == (None, "just text")

    def test_invalid_yaml_is_ignored(self):
        frontmatter, body = split_frontmatter("---\nkey: [unclosed\n---\nbody")
        assert frontmatter is None
        assert body.strip() == "body"

    def test_non_mapping_is_ignored(self):
        frontmatter, _ = split_frontmatter("---\n- a\n- b\n---\n")
        assert frontmatter is None

    def test_inline_tags(self):
        _, body = split_frontmatter(NOTE)
        assert extract_inline_tags(body) == ["#weekend", "#sport"]

    def test_heading_is_not_a_tag(self):
        assert extract_inline_tags("# Heading\nfoo#bar (#nested/tag)") == ["#nested/tag"]


class TestLocalVault:

    def test_missing_root(self, tmp_path):
        with pytest.raises(FileOperationError):
            LocalVault(tmp_path / "nope")

    @pytest.mark.asyncio
    async def test_metadata(self, vault):
        snapshot = await vault.get_metadata(VaultFile(path="Inbox/report.md"))
        assert snapshot.get("topic") == "Soccer"
        assert snapshot.get("rating") == 4
        assert snapshot.tags == ("sport", "league", "#weekend", "#sport")

    @pytest.mark.asyncio
    async def test_metadata_of_missing_file(self, vault):
        assert await vault.get_metadata(VaultFile(path="Inbox/gone.md")) is None

    @pytest.mark.asyncio
    async def test_entries(self, vault):
        assert isinstance(await vault.get_entry("Inbox"), VaultFolder)
        file = await vault.get_entry("Inbox/report.md")
        assert isinstance(file, VaultFile)
        assert file.id
        assert await vault.get_entry("missing.md") is None
        assert await vault.get_entry("../outside.md") is None

    @pytest.mark.asyncio
    async def test_hidden_folders_are_skipped(self, vault):
        documents = await vault.list_documents()
        assert [d.path for d in documents] == ["Inbox/report.md"]

    @pytest.mark.asyncio
    async def test_list_children(self, vault):
        children = await vault.list_children("")
        assert [c.path for c in children] == ["Inbox"]
        with pytest.raises(FileOperationError):
            await vault.list_children("missing")

    @pytest.mark.asyncio
    async def test_rename_keeps_identity(self, vault, vault_dir):
        file = await vault.get_entry("Inbox/report.md")
        await vault.create_folder("Sports/Soccer")

        await vault.rename(file, "Sports/Soccer/report.md")

        assert file.path == "Sports/Soccer/report.md"
        assert (vault_dir / "Sports" / "Soccer" / "report.md").exists()
        assert not (vault_dir / "Inbox" / "report.md").exists()
        assert (await vault.get_entry("Sports/Soccer/report.md")).is_same(file)

    @pytest.mark.asyncio
    async def test_rename_refuses_to_overwrite(self, vault, vault_dir):
        (vault_dir / "Done").mkdir()
        (vault_dir / "Done" / "report.md").write_text("other", encoding="utf-8")
        file = await vault.get_entry("Inbox/report.md")

        with pytest.raises(FileOperationError):
            await vault.rename(file, "Done/report.md")
        assert file.path == "Inbox/report.md"

    @pytest.mark.asyncio
    async def test_create_folder_over_file(self, vault):
        with pytest.raises(FileOperationError):
            await vault.create_folder("Inbox/report.md")

    @pytest.mark.asyncio
    async def test_sorter_end_to_end(self, vault, vault_dir):
        rule = SortingRule(name="Sport", destination_folder="Topics", property_name="topic",
                           property_value="soccer", create_subfolders=True,
                           subfolder_property="topic")
        sorter = Sorter(vault)

        result = await sorter.sort_collection([rule])
        again = await sorter.sort_collection([rule])

        assert result.moved == 1
        assert again.moved == 0 and again.skipped == 1
        assert (vault_dir / "Topics" / "Soccer" / "report.md").read_text(encoding="utf-8") == NOTE

    @pytest.mark.asyncio
    async def test_sorter_conflict_on_disk(self, vault, vault_dir):
        (vault_dir / "Topics").mkdir()
        (vault_dir / "Topics" / "report.md").write_text("existing", encoding="utf-8")
        rule = SortingRule(name="Sport", destination_folder="Topics", property_name="topic",
                           property_value="soccer")
        file = await vault.get_entry("Inbox/report.md")

        result = await Sorter(vault).move(file, rule, await vault.get_metadata(file))

        assert result.status == MoveStatus.CONFLICT
        assert (vault_dir / "Topics" / "report.md").read_text(encoding="utf-8") == "existing"
