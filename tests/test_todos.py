import asyncio

import pytest

from todo_service.errors import UserNotFound, WriteConflict
from todo_service.schemas import TodoItem
from todo_service.todos import (
    TodoMutationEngine,
    allocate_id,
    append_item,
    remove_item,
    replace_content,
)

ITEMS = [
    {"id": 1, "content": "one"},
    {"id": 2, "content": "two"},
    {"id": 3, "content": "three"},
]


def test_allocate_id_uses_counter():
    assert allocate_id([], 1) == 1
    assert allocate_id(ITEMS, 7) == 7


def test_allocate_id_skips_existing_ids():
    assert allocate_id(ITEMS, 2) == 4


def test_transforms_do_not_mutate_input():
    snapshot = [dict(item) for item in ITEMS]

    append_item(ITEMS, 4, "four")
    remove_item(ITEMS, 2)
    replace_content(ITEMS, 2, "deux")

    assert ITEMS == snapshot


def test_replace_content_keeps_order_and_other_entries():
    result = replace_content(ITEMS, 2, "deux")

    assert [item["id"] for item in result] == [1, 2, 3]
    assert result[1] == {"id": 2, "content": "deux"}
    assert result[0] == ITEMS[0]
    assert result[2] == ITEMS[2]


@pytest.fixture
async def alice(store, alice_fields):
    return await store.create(alice_fields, "hashed-value")


@pytest.fixture
async def engine(store):
    return TodoMutationEngine(store)


async def test_add_then_list(engine, alice):
    await engine.add(alice.id, "A")

    items = await engine.list_items(alice.id)

    assert len(items) == 1
    assert items[0].content == "A"
    assert isinstance(items[0], TodoItem)


async def test_add_is_not_idempotent(engine, alice):
    await engine.add(alice.id, "same")
    user = await engine.add(alice.id, "same")

    ids = [item["id"] for item in user.todo_list]
    assert len(ids) == 2
    assert len(set(ids)) == 2


async def test_delete_unknown_id_is_noop(engine, alice):
    before = await engine.add(alice.id, "keep me")

    after = await engine.delete(alice.id, 999)

    assert after.todo_list == before.todo_list
    assert after.version == before.version


async def test_edit_changes_only_target(engine, alice):
    for content in ("a", "b", "c"):
        user = await engine.add(alice.id, content)
    target = user.todo_list[1]["id"]

    edited = await engine.edit(alice.id, target, "B")

    assert [item["content"] for item in edited.todo_list] == ["a", "B", "c"]
    assert [item["id"] for item in edited.todo_list] == [
        item["id"] for item in user.todo_list
    ]


async def test_edit_unknown_id_is_noop(engine, alice):
    before = await engine.add(alice.id, "a")

    after = await engine.edit(alice.id, 42, "z")

    assert after.todo_list == before.todo_list


async def test_add_delete_add_keeps_second_id(engine, alice):
    first = await engine.add(alice.id, "first")
    first_id = first.todo_list[0]["id"]
    await engine.delete(alice.id, first_id)

    final = await engine.add(alice.id, "second")

    assert len(final.todo_list) == 1
    assert final.todo_list[0]["content"] == "second"
    assert final.todo_list[0]["id"] != first_id


async def test_unknown_user(engine):
    with pytest.raises(UserNotFound):
        await engine.add("0" * 32, "x")


class FlakyStore:
    """Delegates to a real store but loses the first ``conflicts`` writes."""

    def __init__(self, store, conflicts):
        self._store = store
        self.conflicts = conflicts
        self.writes = 0

    async def find_by_id(self, user_id):
        return await self._store.find_by_id(user_id)

    async def replace_todo_list(self, user_id, items, **kwargs):
        self.writes += 1
        if self.conflicts:
            self.conflicts -= 1
            raise WriteConflict(user_id)
        return await self._store.replace_todo_list(user_id, items, **kwargs)


async def test_conflict_is_retried(store, alice):
    flaky = FlakyStore(store, conflicts=1)
    engine = TodoMutationEngine(flaky, max_attempts=3)

    user = await engine.add(alice.id, "eventually")

    assert flaky.writes == 2
    assert [item["content"] for item in user.todo_list] == ["eventually"]


async def test_conflict_surfaces_after_max_attempts(store, alice):
    flaky = FlakyStore(store, conflicts=10)
    engine = TodoMutationEngine(flaky, max_attempts=2)

    with pytest.raises(WriteConflict):
        await engine.add(alice.id, "never")

    assert flaky.writes == 2


async def test_separate_engines_see_each_others_writes(store, alice):
    first = TodoMutationEngine(store)
    second = TodoMutationEngine(store)

    await first.add(alice.id, "from first")
    await second.add(alice.id, "from second")

    contents = [item.content for item in await first.list_items(alice.id)]
    assert contents == ["from first", "from second"]


def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        TodoMutationEngine(object(), max_attempts=0)


async def test_concurrent_adds_keep_every_item(store, alice):
    contents = [f"task {n}" for n in range(5)]
    engine = TodoMutationEngine(store, max_attempts=len(contents))

    results = await asyncio.gather(
        *(engine.add(alice.id, content) for content in contents)
    )

    for content, user in zip(contents, results):
        assert content in [item["content"] for item in user.todo_list]
    final = await store.find_by_id(alice.id)
    assert sorted(item["content"] for item in final.todo_list) == contents
    assert len({item["id"] for item in final.todo_list}) == len(contents)
    assert final.version == len(contents)
