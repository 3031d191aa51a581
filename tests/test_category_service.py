"""
Tests for CategoryService orchestration over the in-memory store
"""
import asyncio
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

import pytest

from catalog.database.category_store import MemoryCategoryStore
from catalog.exceptions import (
    CycleDetected, DuplicateSlug, IntegrityError, InvalidCategoryData, NotFound,
    ParentNotFound, SelfParent, StoreError
)
from catalog.models.category import DeletePolicy
from catalog.services.category_service import CategoryService


class InterleavingStore(MemoryCategoryStore):
    """Yields to the event loop before every read and write"""

    async def list(self):
        await asyncio.sleep(0)
        return await super().list()

    async def update(self, category_id, update_data):
        await asyncio.sleep(0)
        return await super().update(category_id, update_data)


class UnlockedStore(InterleavingStore):

    @asynccontextmanager
    async def lock(self):
        yield


async def snapshot(store):
    return [r.model_dump() for r in await store.list()]


@pytest.mark.unit
@pytest.mark.asyncio
class TestCreate:

    async def test_create_top_level(self, service, store):
        record = await service.create("Spark Plugs", "Ignition parts")

        assert record.category_id == 8
        assert record.slug == "spark-plugs"
        assert record.parent_id is None
        assert record.created_at is not None
        assert await store.get(8) == record

    async def test_create_child(self, service):
        record = await service.create("Air Filter", parent_id=6, image_url="img/air.png")

        assert record.parent_id == 6
        assert record.image_url == "img/air.png"
        assert record.description == ""
        tree = await service.build_tree()
        engine = next(n for n in tree if n.category_id == 2)
        filters = next(n for n in engine.subcategories if n.category_id == 6)
        assert [c.name for c in filters.subcategories] == ["Oil Filter", "Air Filter"]

    async def test_unknown_parent_inserts_nothing(self, service, store):
        before = await snapshot(store)

        with pytest.raises(ParentNotFound):
            await service.create("Air Filter", parent_id=42)

        assert await snapshot(store) == before

    async def test_duplicate_slug(self, service, store):
        with pytest.raises(DuplicateSlug):
            await service.create("brake pads")
        assert len(await store.list()) == 7

    async def test_store_failure_leaves_no_record(self, store):
        store.insert = AsyncMock(side_effect=StoreError("connection reset"))
        service = CategoryService(store)

        with pytest.raises(StoreError):
            await service.create("Spark Plugs")

        assert len(await store.list()) == 7


@pytest.mark.unit
@pytest.mark.asyncio
class TestUpdate:

    async def test_rename_updates_slug(self, service):
        record = await service.update(5, {'name': "Carburettor Kits"})

        assert record.name == "Carburettor Kits"
        assert record.slug == "carburettor-kits"
        assert record.parent_id == 2
        assert record.updated_at is not None

    async def test_description_and_image(self, service):
        record = await service.update(5, {'description': "Fuel mixing", 'image_url': "k/c.png"})

        assert record.description == "Fuel mixing"
        assert record.image_url == "k/c.png"
        assert record.slug == "carburetor"

    async def test_rename_collision(self, service):
        with pytest.raises(DuplicateSlug):
            await service.update(5, {'name': "Oil Filter"})

    async def test_parent_is_not_patchable(self, service, store):
        with pytest.raises(InvalidCategoryData):
            await service.update(7, {'parent_id': None})
        assert (await store.get(7)).parent_id == 6

    async def test_unknown_id(self, service):
        with pytest.raises(NotFound):
            await service.update(99, {'description': "x"})

    async def test_empty_patch_returns_current(self, service, store):
        record = await service.update(3, {})

        assert record == await store.get(3)


@pytest.mark.unit
@pytest.mark.asyncio
class TestMove:

    async def test_reparent(self, service):
        record = await service.move(6, 1)

        assert record.parent_id == 1
        assert [r.name for r in await service.ancestors(7)] == ["Brakes", "Filters"]

    async def test_to_top_level(self, service):
        record = await service.move(4, None)

        assert record.parent_id is None

    async def test_same_parent_is_noop(self, service, store):
        before = await snapshot(store)

        record = await service.move(7, 6)

        assert record.parent_id == 6
        assert await snapshot(store) == before

    @pytest.mark.parametrize("category_id, new_parent_id, error", [
        (2, 2, SelfParent),
        (2, 5, CycleDetected),
        (2, 7, CycleDetected),
        (1, 4, CycleDetected),
    ])
    async def test_invalid_move_leaves_store_unchanged(self, service, store,
                                                      category_id, new_parent_id, error):
        before = await snapshot(store)

        with pytest.raises(error):
            await service.move(category_id, new_parent_id)

        assert await snapshot(store) == before

    async def test_concurrent_moves_cannot_form_cycle(self, catalog_records):
        store = InterleavingStore(catalog_records)
        service = CategoryService(store)

        results = await asyncio.gather(
            service.move(1, 2),
            service.move(2, 1),
            return_exceptions=True
        )

        failures = [r for r in results if isinstance(r, Exception)]
        assert len(failures) == 1
        assert isinstance(failures[0], CycleDetected)
        await service.build_tree()

    async def test_unlocked_interleaving_would_form_cycle(self, catalog_records):
        service = CategoryService(UnlockedStore(catalog_records))

        results = await asyncio.gather(
            service.move(1, 2),
            service.move(2, 1),
            return_exceptions=True
        )

        assert not any(isinstance(r, Exception) for r in results)
        with pytest.raises(IntegrityError):
            await service.build_tree()


@pytest.mark.unit
@pytest.mark.asyncio
class TestRemove:

    async def test_cascade(self, service, store):
        result = await service.remove(2, DeletePolicy.CASCADE)

        assert result.removed_ids == [2, 5, 6, 7]
        assert result.promoted_ids == []
        assert [r.category_id for r in await store.list()] == [1, 3, 4]

    async def test_promote(self, service, store):
        result = await service.remove(3, "promote")

        assert result.removed_ids == [3]
        assert result.promoted_ids == [4]
        assert (await store.get(4)).parent_id == 1
        assert [r.category_id for r in await store.list()] == [1, 2, 4, 5, 6, 7]

    async def test_promote_top_level(self, service, store):
        result = await service.remove(2, DeletePolicy.PROMOTE)

        assert result.promoted_ids == [5, 6]
        assert (await store.get(5)).parent_id is None
        assert (await store.get(6)).parent_id is None
        assert (await store.get(7)).parent_id == 6

    async def test_unknown_policy(self, service, store):
        with pytest.raises(InvalidCategoryData):
            await service.remove(2, "orphan")
        assert len(await store.list()) == 7

    async def test_deleted_category_is_gone(self, service):
        await service.remove(4, DeletePolicy.CASCADE)

        with pytest.raises(NotFound):
            await service.get(4)
        with pytest.raises(NotFound):
            await service.update(4, {'description': "x"})
        with pytest.raises(NotFound):
            await service.move(4, 1)
        with pytest.raises(NotFound):
            await service.remove(4, DeletePolicy.PROMOTE)


@pytest.mark.unit
@pytest.mark.asyncio
class TestEngineScenario:

    async def test_scenario(self, engine_records):
        service = CategoryService(MemoryCategoryStore(engine_records))

        tree = await service.build_tree()
        assert len(tree) == 1 and tree[0].name == "Engine"

        with pytest.raises(CycleDetected):
            await service.move(1, 3)

        result = await service.remove(2, DeletePolicy.PROMOTE)
        assert result.removed_ids == [2]
        assert (await service.get(3)).parent_id == 1


@pytest.mark.unit
@pytest.mark.asyncio
class TestSearchAndNavigation:

    async def test_search_across_depths(self, service):
        results = await service.search("brake")

        assert [r.name for r in results] == ["Brakes", "Disc Brakes", "Brake Pads"]

    async def test_flat_results_ignore_depth(self):
        store = MemoryCategoryStore()
        service = CategoryService(store)
        brakes = await service.create("Brakes")
        disc = await service.create("Disc", parent_id=brakes.category_id)
        await service.create("Brake Pads", parent_id=disc.category_id)
        await service.create("Carburetor")

        results = await service.search("BRAKE")

        assert [r.name for r in results] == ["Brakes", "Brake Pads"]

    async def test_search_matches_description(self, service):
        results = await service.search("oil")

        assert [r.category_id for r in results] == [6, 7]

    async def test_blank_query(self, service):
        with pytest.raises(InvalidCategoryData):
            await service.search("   ")

    async def test_query_is_matched_verbatim(self, service):
        results = await service.search("oil ")

        assert [r.category_id for r in results] == [7]

    async def test_render_options(self, service):
        options = await service.render_options(exclude_id=1)

        assert [o.category_id for o in options] == [2, 5, 6, 7]
        assert [o.depth for o in options] == [0, 1, 1, 2]

    async def test_flatten_round_trip(self, service, store):
        flat = service.flatten(await service.build_tree())

        assert {r.category_id for r in flat} == {r.category_id for r in await store.list()}

    async def test_count(self, service):
        assert await service.count() == 7

    async def test_ancestors_unknown(self, service):
        with pytest.raises(NotFound):
            await service.ancestors(99)


@pytest.mark.unit
@pytest.mark.asyncio
class TestSetImage:

    async def test_stores_uploaded_url(self, store):
        images = AsyncMock()
        images.upload.return_value = {'url': "/static/categories/a.png"}
        service = CategoryService(store, image_service=images)

        record = await service.set_image(5, b"\x89PNG", "carb.png")

        images.upload.assert_awaited_once_with(b"\x89PNG", "carb.png")
        assert record.image_url == "/static/categories/a.png"

    async def test_unknown_category_skips_upload(self, store):
        images = AsyncMock()
        service = CategoryService(store, image_service=images)

        with pytest.raises(NotFound):
            await service.set_image(99, b"data", "x.png")
        images.upload.assert_not_awaited()

    async def test_replacing_image_removes_old_file(self, store):
        await store.update(5, {'image_url': "/static/categories/old.png"})
        images = AsyncMock()
        images.upload.return_value = {'url': "/static/categories/new.png"}
        service = CategoryService(store, image_service=images)

        record = await service.set_image(5, b"\x89PNG", "carb.png")

        assert record.image_url == "/static/categories/new.png"
        images.delete.assert_awaited_once_with("/static/categories/old.png")

    async def test_first_image_deletes_nothing(self, store):
        images = AsyncMock()
        images.upload.return_value = {'url': "/static/categories/a.png"}
        service = CategoryService(store, image_service=images)

        await service.set_image(5, b"\x89PNG", "carb.png")

        images.delete.assert_not_awaited()
