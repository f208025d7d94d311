"""Tests for the evaluation store against a temporary SQLite file."""

import asyncio

import pytest

from app.core.exceptions import ConstraintViolation, StoreError
from app.store.evaluation_store import EvaluationKey, EvaluationStore

from .factories import make_record


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, store):
        await store.insert(make_record())
        await store.initialize()
        await store.initialize()
        assert len(await store.list_all()) == 1

    @pytest.mark.asyncio
    async def test_data_survives_reopen(self, database_url):
        async with EvaluationStore(database_url) as first:
            await first.insert(make_record())

        async with EvaluationStore(database_url) as second:
            rows = await second.list_all()
        assert [r.week for r in rows] == ["2024-W10"]

    @pytest.mark.asyncio
    async def test_closed_store_raises(self, database_url):
        store = EvaluationStore(database_url)
        with pytest.raises(StoreError):
            await store.list_all()

        await store.open()
        await store.close()
        await store.close()
        assert not store.is_open
        with pytest.raises(StoreError):
            await store.insert(make_record())


class TestInsert:
    @pytest.mark.asyncio
    async def test_insert_assigns_fresh_ids(self, store):
        first = await store.insert(make_record(student_id=1))
        second = await store.insert(make_record(student_id=2))
        assert first == 1
        assert second == 2

    @pytest.mark.asyncio
    async def test_duplicate_key_is_a_constraint_violation(self, store):
        await store.insert(make_record())
        with pytest.raises(ConstraintViolation) as exc_info:
            await store.insert(make_record(behavior=1))
        assert "UNIQUE" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_missing_required_column(self, store):
        record = make_record()
        del record["date"]
        with pytest.raises(ConstraintViolation) as exc_info:
            await store.insert(record)
        assert "NOT NULL" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_absent_defaults_to_false(self, store):
        record = make_record()
        del record["absent"]
        await store.insert(record)
        row = await store.find_by_key(EvaluationKey("2024-W10", 5, "quiz"))
        assert row.absent is False

    @pytest.mark.asyncio
    async def test_store_usable_after_constraint_violation(self, store):
        await store.insert(make_record())
        with pytest.raises(ConstraintViolation):
            await store.insert(make_record())
        await store.insert(make_record(student_id=6))
        assert len(await store.list_all()) == 2


class TestUpdateAndFind:
    @pytest.mark.asyncio
    async def test_update_overwrites_mutable_fields(self, store):
        evaluation_id = await store.insert(make_record())
        key = EvaluationKey("2024-W10", 5, "quiz")

        affected = await store.update(key, {
            "engagement": None,
            "behavior": 2,
            "absent": True,
            "date": "2024-03-08",
        })

        assert affected == 1
        row = await store.find_by_key(key)
        assert row.id == evaluation_id
        assert row.engagement is None
        assert row.behavior == 2
        assert row.absent is True
        assert row.date == "2024-03-08"

    @pytest.mark.asyncio
    async def test_update_without_match_affects_nothing(self, store):
        affected = await store.update(EvaluationKey("2024-W10", 99, "quiz"), {"behavior": 1})
        assert affected == 0
        assert await store.list_all() == []

    @pytest.mark.asyncio
    async def test_update_leaves_key_and_name_alone(self, store):
        await store.insert(make_record())
        key = EvaluationKey("2024-W10", 5, "quiz")
        await store.update(key, {"week": "2030-W01", "student_name": "Renamed", "behavior": 1})

        row = await store.find_by_key(key)
        assert row.week == "2024-W10"
        assert row.student_name == "Student 5"
        assert row.behavior == 1

    @pytest.mark.asyncio
    async def test_update_without_mutable_fields_reports_matches(self, store):
        await store.insert(make_record())

        assert await store.update(EvaluationKey("2024-W10", 5, "quiz"), {"student_name": "Renamed"}) == 1
        assert await store.update(EvaluationKey("2024-W10", 6, "quiz"), {}) == 0
        row = await store.find_by_key(EvaluationKey("2024-W10", 5, "quiz"))
        assert row.student_name == "Student 5"

    @pytest.mark.asyncio
    async def test_find_by_key_not_found(self, store):
        await store.insert(make_record())
        assert await store.find_by_key(EvaluationKey("2024-W10", 5, "homework")) is None


class TestListing:
    @pytest.mark.asyncio
    async def test_list_all_orders_by_week_descending(self, store):
        for week in ["2024-W02", "2024-W10", "2024-W09"]:
            await store.insert(make_record(week=week))

        rows = await store.list_all()
        assert [r.week for r in rows] == ["2024-W10", "2024-W09", "2024-W02"]

    @pytest.mark.asyncio
    async def test_week_order_is_lexicographic(self, store):
        await store.insert(make_record(week="2024-W10"))
        await store.insert(make_record(week="2024-W9"))

        rows = await store.list_all()
        assert [r.week for r in rows] == ["2024-W9", "2024-W10"]

    @pytest.mark.asyncio
    async def test_list_by_student_is_subsequence_of_list_all(self, store):
        for week, student_id in [("2024-W01", 1), ("2024-W03", 2), ("2024-W02", 1), ("2024-W03", 1)]:
            await store.insert(make_record(week=week, student_id=student_id))

        everything = await store.list_all()
        student_rows = await store.list_by_student(1)

        assert all(r.student_id == 1 for r in student_rows)
        assert [r.id for r in student_rows] == [r.id for r in everything if r.student_id == 1]
        assert [r.week for r in student_rows] == ["2024-W03", "2024-W02", "2024-W01"]

    @pytest.mark.asyncio
    async def test_list_by_unknown_student(self, store):
        await store.insert(make_record())
        assert await store.list_by_student(404) == []


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_existing_row(self, store):
        keep = await store.insert(make_record(student_id=1))
        drop = await store.insert(make_record(student_id=2))

        assert await store.delete_by_id(drop) == 1
        assert [r.id for r in await store.list_all()] == [keep]

    @pytest.mark.asyncio
    async def test_delete_missing_row(self, store):
        await store.insert(make_record())
        assert await store.delete_by_id(42) == 0
        assert len(await store.list_all()) == 1


class TestUpsert:
    @pytest.mark.asyncio
    async def test_upsert_creates_then_updates(self, store):
        created_id, created = await store.upsert(make_record())
        updated_id, second_created = await store.upsert(make_record(behavior=5))

        assert created is True
        assert second_created is False
        assert created_id == updated_id
        rows = await store.list_all()
        assert len(rows) == 1
        assert rows[0].behavior == 5

    @pytest.mark.asyncio
    async def test_concurrent_upserts_on_one_key(self, store):
        results = await asyncio.gather(
            store.upsert(make_record(behavior=1)),
            store.upsert(make_record(behavior=2)),
        )

        ids = {evaluation_id for evaluation_id, _ in results}
        created_flags = sorted(created for _, created in results)
        assert len(ids) == 1
        assert created_flags == [False, True]
        assert len(await store.list_all()) == 1

    @pytest.mark.asyncio
    async def test_upsert_without_key_field(self, store):
        with pytest.raises(ConstraintViolation) as exc_info:
            await store.upsert(make_record(week=None))
        assert "NOT NULL" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_upsert_update_needs_only_key_and_mutable_fields(self, store):
        created_id, _ = await store.upsert(make_record())
        record = make_record(behavior=5)
        del record["student_name"]

        updated_id, created = await store.upsert(record)

        assert (updated_id, created) == (created_id, False)
        row = await store.find_by_key(EvaluationKey("2024-W10", 5, "quiz"))
        assert row.behavior == 5
        assert row.student_name == "Student 5"
