"""
Tecspacs: DatabaseManager Package Tests
=======================================

What:  Defaults, ordering, partial updates and counters for packages.
"""

import pytest

from tecspacs.exceptions import ConflictError, NotFoundError, ValidationError
from tecspacs.schemas.package import PackageUpdate


def package_fields(name, **extra):
    fields = {
        "name": name,
        "language": "python",
        "package_path": f"/tmp/packages/{name}",
        "manifest_path": f"/tmp/packages/{name}/package.json",
    }
    fields.update(extra)
    return fields


class TestCreatePackage:

    @pytest.mark.asyncio
    async def test_defaults_applied(self, db_manager):
        await db_manager.create_package(package_fields("utils"))
        record = await db_manager.get_package("utils")
        assert record.version == "1.0.0"
        assert record.author == "N/A"
        assert record.description is None
        assert record.category is None
        assert record.usage_count == 0

    @pytest.mark.asyncio
    async def test_empty_version_and_author_get_defaults(self, db_manager):
        await db_manager.create_package(package_fields("utils", version="", author=""))
        record = await db_manager.get_package("utils")
        assert record.version == "1.0.0"
        assert record.author == "N/A"

    @pytest.mark.asyncio
    async def test_explicit_values_kept(self, db_manager):
        await db_manager.create_package(package_fields("utils", version="2.1.0", author="sam"))
        record = await db_manager.get_package("utils")
        assert record.version == "2.1.0"
        assert record.author == "sam"

    @pytest.mark.asyncio
    async def test_duplicate_name_conflicts(self, db_manager):
        await db_manager.create_package(package_fields("utils"))
        with pytest.raises(ConflictError, match='Package "utils" already exists'):
            await db_manager.create_package(package_fields("utils", version="9.9.9"))

        rows = await db_manager.get_all_packages()
        assert len(rows) == 1
        assert rows[0].version == "1.0.0"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("missing", ["name", "language", "package_path", "manifest_path"])
    async def test_missing_required_field_rejected(self, db_manager, missing):
        fields = package_fields("utils")
        del fields[missing]
        with pytest.raises(ValidationError):
            await db_manager.create_package(fields)
        assert await db_manager.get_all_packages() == []


class TestReadPackages:

    @pytest.mark.asyncio
    async def test_get_missing_raises(self, db_manager):
        with pytest.raises(NotFoundError, match="does not exist"):
            await db_manager.get_package("missing")

    @pytest.mark.asyncio
    async def test_get_empty_name_rejected(self, db_manager):
        with pytest.raises(ValidationError):
            await db_manager.get_package("")

    @pytest.mark.asyncio
    async def test_package_exists(self, db_manager):
        await db_manager.create_package(package_fields("utils"))
        assert await db_manager.package_exists("utils") is True
        assert await db_manager.package_exists("other") is False

    @pytest.mark.asyncio
    async def test_get_all_orders_by_usage_then_name(self, db_manager):
        usage = {"high-usage": 3, "medium-usage": 1, "no-usage": 0, "also-high-usage": 3}
        for name, count in usage.items():
            await db_manager.create_package(package_fields(name))
            for _ in range(count):
                await db_manager.increment_package_usage(name)

        rows = await db_manager.get_all_packages()
        assert [(r.name, r.usage_count) for r in rows] == [
            ("also-high-usage", 3),
            ("high-usage", 3),
            ("medium-usage", 1),
            ("no-usage", 0),
        ]


class TestUpdatePackage:

    @pytest.mark.asyncio
    async def test_version_only_update_preserves_fields(self, db_manager):
        await db_manager.create_package(
            package_fields("utils", description="helpers", category="backend")
        )
        before = await db_manager.get_package("utils")
        after = await db_manager.update_package("utils", {"version": "2.0.0"})

        assert after.version == "2.0.0"
        for field in ("name", "description", "language", "category", "author", "package_path"):
            assert getattr(after, field) == getattr(before, field)

    @pytest.mark.asyncio
    async def test_none_means_unchanged(self, db_manager):
        await db_manager.create_package(package_fields("utils", description="helpers"))
        record = await db_manager.update_package(
            "utils", PackageUpdate(description=None, author="kim")
        )
        assert record.description == "helpers"
        assert record.author == "kim"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["name", "version", "language"])
    async def test_empty_value_rejected_and_row_untouched(self, db_manager, field):
        await db_manager.create_package(package_fields("utils", version="1.2.3"))
        with pytest.raises(ValidationError, match="cannot be empty"):
            await db_manager.update_package("utils", {field: ""})

        record = await db_manager.get_package("utils")
        assert record.name == "utils"
        assert record.version == "1.2.3"
        assert record.language == "python"

    @pytest.mark.asyncio
    async def test_rename_collision(self, db_manager):
        await db_manager.create_package(package_fields("one"))
        await db_manager.create_package(package_fields("two"))
        with pytest.raises(ConflictError):
            await db_manager.update_package("one", {"name": "two"})
        assert await db_manager.package_exists("one")

    @pytest.mark.asyncio
    async def test_update_missing_raises(self, db_manager):
        with pytest.raises(NotFoundError):
            await db_manager.update_package("missing", {"version": "2.0.0"})

    @pytest.mark.asyncio
    async def test_immutable_keys_ignored(self, db_manager):
        await db_manager.create_package(package_fields("utils"))
        await db_manager.increment_package_usage("utils")
        before = await db_manager.get_package("utils")

        after = await db_manager.update_package(
            "utils", {"usage_count": 50, "id": 1234, "online_id": "x", "category": "tools"}
        )
        assert after.usage_count == 1
        assert after.id == before.id
        assert after.online_id is None
        assert after.category == "tools"


class TestDeletePackage:

    @pytest.mark.asyncio
    async def test_delete(self, db_manager):
        await db_manager.create_package(package_fields("utils"))
        await db_manager.delete_package("utils")
        assert await db_manager.package_exists("utils") is False

    @pytest.mark.asyncio
    async def test_delete_missing_raises(self, db_manager):
        with pytest.raises(NotFoundError):
            await db_manager.delete_package("missing")


class TestPackageUsage:

    @pytest.mark.asyncio
    async def test_increment_isolated(self, db_manager):
        await db_manager.create_package(package_fields("a"))
        await db_manager.create_package(package_fields("b"))
        for _ in range(5):
            await db_manager.increment_package_usage("a")

        assert (await db_manager.get_package("a")).usage_count == 5
        assert (await db_manager.get_package("b")).usage_count == 0

    @pytest.mark.asyncio
    async def test_increment_missing_creates_nothing(self, db_manager):
        assert await db_manager.increment_package_usage("ghost") is False
        assert await db_manager.package_exists("ghost") is False


class TestPackageSearch:

    @pytest.mark.asyncio
    async def test_category_search(self, db_manager):
        await db_manager.create_package(package_fields("vue-utilities", category="frontend"))
        await db_manager.create_package(package_fields("backend-helpers", category="backend"))
        await db_manager.create_package(package_fields("react-components", category="frontend"))

        rows = await db_manager.search_packages("category", "frontend")
        assert [r.name for r in rows] == ["react-components", "vue-utilities"]

    @pytest.mark.asyncio
    async def test_description_search(self, db_manager):
        await db_manager.create_package(package_fields("a", description="date helpers"))
        await db_manager.create_package(package_fields("b", description="string helpers"))
        rows = await db_manager.search_packages("description", "date")
        assert [r.name for r in rows] == ["a"]

    @pytest.mark.asyncio
    async def test_search_no_match(self, db_manager):
        await db_manager.create_package(package_fields("a"))
        assert await db_manager.search_packages("name", "zzz") == []

    @pytest.mark.asyncio
    async def test_search_unknown_field(self, db_manager):
        with pytest.raises(ValidationError):
            await db_manager.search_packages("author", "x")

    @pytest.mark.asyncio
    async def test_get_by_category(self, db_manager):
        await db_manager.create_package(package_fields("a", category="frontend"))
        await db_manager.create_package(package_fields("b", category="frontend-extra"))
        rows = await db_manager.get_packages_by("category", "frontend")
        assert [r.name for r in rows] == ["a"]

    @pytest.mark.asyncio
    async def test_set_online_id(self, db_manager):
        await db_manager.create_package(package_fields("a"))
        record = await db_manager.set_package_online_id("a", "remote-1")
        assert record.online_id == "remote-1"
