"""
Tecspacs: DatabaseManager Snippet Tests
=======================================

What:  CRUD, search and usage counters for snippets against a real SQLite file.
How:   Each test gets a fresh database from the `db_manager` fixture.
"""

import pytest

from tecspacs.exceptions import ConflictError, NotFoundError, ValidationError
from tecspacs.schemas.snippet import SnippetCreate, SnippetUpdate


class TestCreateSnippet:

    @pytest.mark.asyncio
    async def test_create_returns_increasing_ids(self, db_manager, sample_snippet_data):
        first = await db_manager.create_snippet(sample_snippet_data)
        second = await db_manager.create_snippet({**sample_snippet_data, "name": "throttle"})
        assert second > first

    @pytest.mark.asyncio
    async def test_create_accepts_schema_instance(self, db_manager):
        snippet_id = await db_manager.create_snippet(
            SnippetCreate(name="hello", language="python", content="print('hi')")
        )
        record = await db_manager.get_snippet("hello")
        assert record.id == snippet_id

    @pytest.mark.asyncio
    async def test_optional_fields_default_to_none(self, db_manager):
        await db_manager.create_snippet({"name": "bare", "language": "python", "content": "x = 1"})
        record = await db_manager.get_snippet("bare")
        assert record.description is None
        assert record.category is None
        assert record.usage_count == 0
        assert record.online_id is None

    @pytest.mark.asyncio
    async def test_duplicate_name_conflicts_and_keeps_one_row(self, db_manager, sample_snippet_data):
        await db_manager.create_snippet(sample_snippet_data)
        with pytest.raises(ConflictError, match="already exists"):
            await db_manager.create_snippet({**sample_snippet_data, "content": "other"})

        rows = await db_manager.get_all_snippets()
        assert [r.name for r in rows] == ["debounce"]
        assert rows[0].content == sample_snippet_data["content"]

    @pytest.mark.asyncio
    async def test_names_are_case_sensitive(self, db_manager):
        await db_manager.create_snippet({"name": "Foo", "language": "c", "content": "a"})
        await db_manager.create_snippet({"name": "foo", "language": "c", "content": "b"})
        assert (await db_manager.get_snippet("Foo")).content == "a"
        assert (await db_manager.get_snippet("foo")).content == "b"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("missing", ["name", "language", "content"])
    async def test_missing_required_field_rejected(self, db_manager, sample_snippet_data, missing):
        data = dict(sample_snippet_data)
        del data[missing]
        with pytest.raises(ValidationError, match="required") as exc_info:
            await db_manager.create_snippet(data)
        assert exc_info.value.field == missing
        assert await db_manager.get_all_snippets() == []

    @pytest.mark.asyncio
    async def test_whitespace_name_rejected(self, db_manager, sample_snippet_data):
        with pytest.raises(ValidationError):
            await db_manager.create_snippet({**sample_snippet_data, "name": "   "})

    @pytest.mark.asyncio
    async def test_online_id_not_settable_on_create(self, db_manager, sample_snippet_data):
        await db_manager.create_snippet({**sample_snippet_data, "online_id": "remote-1", "usage_count": 9})
        record = await db_manager.get_snippet("debounce")
        assert record.online_id is None
        assert record.usage_count == 0


class TestReadSnippets:

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, db_manager):
        assert await db_manager.get_snippet("missing") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["", "   ", None])
    async def test_get_empty_name_rejected(self, db_manager, name):
        with pytest.raises(ValidationError, match="Empty"):
            await db_manager.get_snippet(name)

    @pytest.mark.asyncio
    async def test_get_all_in_insertion_order(self, db_manager):
        for name in ["zeta", "alpha", "mid"]:
            await db_manager.create_snippet({"name": name, "language": "sql", "content": "select 1"})
        rows = await db_manager.get_all_snippets()
        assert [r.name for r in rows] == ["zeta", "alpha", "mid"]

    @pytest.mark.asyncio
    async def test_get_all_respects_limit(self, db_manager):
        for name in ["a", "b", "c"]:
            await db_manager.create_snippet({"name": name, "language": "sql", "content": "select 1"})
        rows = await db_manager.get_all_snippets(limit=2)
        assert [r.name for r in rows] == ["a", "b"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [0, -1])
    async def test_get_all_rejects_non_positive_limit(self, db_manager, limit):
        with pytest.raises(ValidationError, match="Limit"):
            await db_manager.get_all_snippets(limit=limit)


class TestUpdateSnippet:

    @pytest.mark.asyncio
    async def test_partial_update_preserves_other_fields(self, db_manager, sample_snippet_data):
        await db_manager.create_snippet(sample_snippet_data)
        record = await db_manager.update_snippet("debounce", {"content": "new body"})

        assert record.content == "new body"
        assert record.name == "debounce"
        assert record.language == "javascript"
        assert record.description == "Debounce a function"
        assert record.category == "utils"

    @pytest.mark.asyncio
    async def test_none_values_mean_unchanged(self, db_manager, sample_snippet_data):
        await db_manager.create_snippet(sample_snippet_data)
        record = await db_manager.update_snippet(
            "debounce", SnippetUpdate(description=None, category=None, language="typescript")
        )
        assert record.description == "Debounce a function"
        assert record.category == "utils"
        assert record.language == "typescript"

    @pytest.mark.asyncio
    async def test_empty_description_is_applied(self, db_manager, sample_snippet_data):
        await db_manager.create_snippet(sample_snippet_data)
        record = await db_manager.update_snippet("debounce", {"description": ""})
        assert record.description == ""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["content", "name", "language"])
    async def test_empty_required_field_rejected(self, db_manager, sample_snippet_data, field):
        await db_manager.create_snippet(sample_snippet_data)
        with pytest.raises(ValidationError, match="cannot be empty"):
            await db_manager.update_snippet("debounce", {field: ""})

        record = await db_manager.get_snippet("debounce")
        assert record.content == sample_snippet_data["content"]
        assert record.language == "javascript"

    @pytest.mark.asyncio
    async def test_rename(self, db_manager, sample_snippet_data):
        await db_manager.create_snippet(sample_snippet_data)
        await db_manager.update_snippet("debounce", {"name": "debounce-v2"})
        assert await db_manager.get_snippet("debounce") is None
        assert (await db_manager.get_snippet("debounce-v2")).content == sample_snippet_data["content"]

    @pytest.mark.asyncio
    async def test_rename_onto_existing_conflicts(self, db_manager, sample_snippet_data):
        await db_manager.create_snippet(sample_snippet_data)
        await db_manager.create_snippet({**sample_snippet_data, "name": "throttle"})
        with pytest.raises(ConflictError, match="throttle"):
            await db_manager.update_snippet("debounce", {"name": "throttle"})
        assert await db_manager.get_snippet("debounce") is not None

    @pytest.mark.asyncio
    async def test_update_missing_raises(self, db_manager):
        with pytest.raises(NotFoundError, match="does not exist"):
            await db_manager.update_snippet("missing", {"content": "x"})

    @pytest.mark.asyncio
    async def test_usage_count_and_online_id_preserved(self, db_manager, sample_snippet_data):
        await db_manager.create_snippet(sample_snippet_data)
        await db_manager.increment_snippet_usage("debounce")
        await db_manager.set_snippet_online_id("debounce", "remote-7")

        record = await db_manager.update_snippet(
            "debounce", {"content": "changed", "usage_count": 0, "online_id": None, "id": 99}
        )
        assert record.usage_count == 1
        assert record.online_id == "remote-7"
        assert record.id != 99


class TestDeleteSnippet:

    @pytest.mark.asyncio
    async def test_delete(self, db_manager, sample_snippet_data):
        await db_manager.create_snippet(sample_snippet_data)
        await db_manager.delete_snippet("debounce")
        assert await db_manager.get_snippet("debounce") is None

    @pytest.mark.asyncio
    async def test_delete_missing_raises(self, db_manager):
        with pytest.raises(NotFoundError):
            await db_manager.delete_snippet("missing")

    @pytest.mark.asyncio
    async def test_ids_not_reused_after_delete(self, db_manager, sample_snippet_data):
        first = await db_manager.create_snippet(sample_snippet_data)
        await db_manager.delete_snippet("debounce")
        second = await db_manager.create_snippet(sample_snippet_data)
        assert second > first


class TestSnippetUsage:

    @pytest.mark.asyncio
    async def test_increment_five_times(self, db_manager, sample_snippet_data):
        await db_manager.create_snippet(sample_snippet_data)
        for _ in range(5):
            assert await db_manager.increment_snippet_usage("debounce") is True
        assert (await db_manager.get_snippet("debounce")).usage_count == 5

    @pytest.mark.asyncio
    async def test_increment_is_isolated(self, db_manager, sample_snippet_data):
        await db_manager.create_snippet(sample_snippet_data)
        await db_manager.create_snippet({**sample_snippet_data, "name": "throttle"})
        await db_manager.increment_snippet_usage("debounce")
        assert (await db_manager.get_snippet("throttle")).usage_count == 0

    @pytest.mark.asyncio
    async def test_increment_missing_is_noop(self, db_manager):
        assert await db_manager.increment_snippet_usage("missing") is False
        assert await db_manager.get_all_snippets() == []


class TestSnippetSearch:

    @pytest.fixture
    def snippets(self):
        return [
            {"name": "array-chunk", "language": "javascript", "content": "a", "category": "arrays"},
            {"name": "array-flatten", "language": "python", "content": "b", "category": "arrays"},
            {"name": "http-get", "language": "python", "content": "c", "category": "network"},
        ]

    @pytest.mark.asyncio
    async def test_search_by_name_orders_by_usage_then_name(self, db_manager, snippets):
        for data in snippets:
            await db_manager.create_snippet(data)
        await db_manager.increment_snippet_usage("array-flatten")

        rows = await db_manager.search_snippets("name", "array")
        assert [r.name for r in rows] == ["array-flatten", "array-chunk"]

    @pytest.mark.asyncio
    async def test_search_no_match_returns_empty(self, db_manager, snippets):
        for data in snippets:
            await db_manager.create_snippet(data)
        assert await db_manager.search_snippets("category", "nothing") == []

    @pytest.mark.asyncio
    async def test_search_treats_wildcards_literally(self, db_manager):
        await db_manager.create_snippet({"name": "100%", "language": "c", "content": "x"})
        await db_manager.create_snippet({"name": "1000", "language": "c", "content": "y"})
        rows = await db_manager.search_snippets("name", "0%")
        assert [r.name for r in rows] == ["100%"]

    @pytest.mark.asyncio
    async def test_search_rejects_unknown_field(self, db_manager):
        with pytest.raises(ValidationError, match="Allowed fields"):
            await db_manager.search_snippets("content", "x")

    @pytest.mark.asyncio
    async def test_get_by_language(self, db_manager, snippets):
        for data in snippets:
            await db_manager.create_snippet(data)
        rows = await db_manager.get_snippets_by("language", "python")
        assert [r.name for r in rows] == ["array-flatten", "http-get"]

    @pytest.mark.asyncio
    async def test_get_by_rejects_unknown_field(self, db_manager):
        with pytest.raises(ValidationError):
            await db_manager.get_snippets_by("name", "x")


class TestSnippetOnlineId:

    @pytest.mark.asyncio
    async def test_set_online_id(self, db_manager, sample_snippet_data):
        await db_manager.create_snippet(sample_snippet_data)
        record = await db_manager.set_snippet_online_id("debounce", "abc123")
        assert record.online_id == "abc123"

    @pytest.mark.asyncio
    async def test_set_online_id_missing_raises(self, db_manager):
        with pytest.raises(NotFoundError):
            await db_manager.set_snippet_online_id("missing", "abc123")
