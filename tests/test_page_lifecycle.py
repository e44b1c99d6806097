import random

import pytest

from sitecollab.core.exceptions import ConflictError, InvariantViolation, NotFoundError
from sitecollab.domains.pages.services import LAST_PAGE_MESSAGE, PageService


async def _live_pages(session_factory, project_id):
    async with session_factory() as session:
        return await PageService(session).list_pages(project_id)


async def _assert_single_default(session_factory, project_id):
    pages = await _live_pages(session_factory, project_id)
    defaults = [page for page in pages if page.is_default]
    assert len(defaults) == min(1, len(pages))
    return pages


async def test_first_page_becomes_default(session_factory, project):
    async with session_factory() as session:
        page, created = await PageService(session).add_page(project.id, "p1", "Home")

    assert created is True
    assert page.is_default is True
    assert page.client_id == "p1"


async def test_adding_default_page_moves_the_flag(session_factory, project):
    async with session_factory() as session:
        service = PageService(session)
        await service.add_page(project.id, "p1", "Home", is_default=True)
        await service.add_page(project.id, "p2", "About", is_default=True)

    pages = await _assert_single_default(session_factory, project.id)
    by_client = {page.client_id: page for page in pages}
    assert by_client["p1"].is_default is False
    assert by_client["p2"].is_default is True
    assert not any(page.is_deleted for page in pages)


async def test_removing_default_page_reassigns_default(session_factory, project):
    async with session_factory() as session:
        service = PageService(session)
        await service.add_page(project.id, "p1", "Home", is_default=True)
        await service.add_page(project.id, "p2", "About")
        removed = await service.remove_page(project.id, "p1")

    assert removed.is_deleted is True
    assert removed.is_default is False

    pages = await _assert_single_default(session_factory, project.id)
    assert [(page.client_id, page.is_default) for page in pages] == [("p2", True)]


async def test_last_page_cannot_be_removed(session_factory, project):
    async with session_factory() as session:
        service = PageService(session)
        await service.add_page(project.id, "p1", "Home")

        with pytest.raises(InvariantViolation) as excinfo:
            await service.remove_page(project.id, "p1")

    assert excinfo.value.message == LAST_PAGE_MESSAGE
    pages = await _live_pages(session_factory, project.id)
    assert [page.client_id for page in pages] == ["p1"]
    assert pages[0].is_default is True


async def test_duplicate_client_id_is_ignored_or_rejected(session_factory, project):
    async with session_factory() as session:
        service = PageService(session)
        first, _ = await service.add_page(project.id, "p1", "Home", html="<h1>Home</h1>")
        again, created = await service.add_page(project.id, "p1", "Other name")

        assert created is False
        assert again.id == first.id
        assert again.name == "Home"

        with pytest.raises(ConflictError):
            await service.add_page(project.id, "p1", "Home", reject_duplicates=True)


async def test_re_adding_deleted_client_id_restores_page(session_factory, project):
    async with session_factory() as session:
        service = PageService(session)
        original, _ = await service.add_page(project.id, "p1", "Home", html="<p>old</p>")
        await service.add_page(project.id, "p2", "About")
        await service.remove_page(project.id, "p1")

        restored, created = await service.add_page(project.id, "p1", "Home again")

    assert created is True
    assert restored.id == original.id
    assert restored.is_deleted is False
    assert restored.name == "Home again"
    assert restored.html == "<p>old</p>"
    await _assert_single_default(session_factory, project.id)


async def test_update_applies_only_present_fields(session_factory, project):
    async with session_factory() as session:
        service = PageService(session)
        await service.add_page(project.id, "p1", "Home", html="<p>a</p>", css="p {}")
        updated = await service.update_page(project.id, "p1", changes={"html": "<p>b</p>"})

    assert updated.html == "<p>b</p>"
    assert updated.css == "p {}"
    assert updated.name == "Home"


async def test_update_can_move_default_but_not_unset_it(session_factory, project):
    async with session_factory() as session:
        service = PageService(session)
        await service.add_page(project.id, "p1", "Home")
        await service.add_page(project.id, "p2", "About")

        await service.update_page(project.id, "p1", changes={"is_default": False})
        pages = {page.client_id: page for page in await service.list_pages(project.id)}
        assert pages["p1"].is_default is True

        await service.update_page(project.id, "p2", name="About us", changes={"is_default": True})

    pages = {page.client_id: page for page in await _assert_single_default(session_factory, project.id)}
    assert pages["p2"].is_default is True
    assert pages["p2"].name == "About us"
    assert pages["p1"].is_default is False


async def test_missing_pages_are_noops_for_client_id_operations(session_factory, project):
    async with session_factory() as session:
        service = PageService(session)
        assert await service.remove_page(project.id, "ghost") is None
        assert await service.update_page(project.id, "ghost", name="x") is None

        with pytest.raises(NotFoundError):
            await service.remove_page_by_id("no-such-page")


async def test_restore_page_by_id_keeps_single_default(session_factory, project):
    async with session_factory() as session:
        service = PageService(session)
        await service.add_page(project.id, "p1", "Home")
        second, _ = await service.add_page(project.id, "p2", "About")
        await service.remove_page(project.id, "p2")

        restored = await service.restore_page(second.id)

    assert restored.is_deleted is False
    assert restored.is_default is False
    await _assert_single_default(session_factory, project.id)


async def test_sync_payload_uses_client_ids(session_factory, project):
    async with session_factory() as session:
        service = PageService(session)
        await service.add_page(project.id, "p1", "Home", components=[{"type": "text"}])
        payload = await service.sync_payload(project.id)

    assert payload == [{
        "id": "p1",
        "name": "Home",
        "html": None,
        "css": None,
        "components": [{"type": "text"}],
        "isDefault": True,
    }]


async def test_random_operation_sequence_keeps_exactly_one_default(session_factory, project):
    rng = random.Random(20261018)
    client_ids = [f"page-{n}" for n in range(6)]

    async with session_factory() as session:
        service = PageService(session)
        for _ in range(60):
            client_id = rng.choice(client_ids)
            operation = rng.choice(["add", "add", "remove", "update"])
            try:
                if operation == "add":
                    await service.add_page(project.id, client_id, client_id, is_default=rng.random() < 0.3)
                elif operation == "remove":
                    await service.remove_page(project.id, client_id)
                else:
                    await service.update_page(
                        project.id, client_id, changes={"is_default": rng.choice([True, False])}
                    )
            except InvariantViolation:
                pass

            pages = await service.list_pages(project.id)
            assert sum(1 for page in pages if page.is_default) == min(1, len(pages))
