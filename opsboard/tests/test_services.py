"""
Unit tests for the scheduling, grouping, list-query, reconciliation and storage services.
"""
from datetime import date, datetime
from types import SimpleNamespace

import pytest
from sqlalchemy import select

from opsboard.models.day_of_week import DayOfWeek
from opsboard.models.task import Task
from opsboard.services.grouping import format_heading, group_by_date
from opsboard.services.query import (
    InvalidCursor, ListQuery, PageParams, cursor_page, decode_cursor, encode_cursor,
    keyset_clause, order_clauses, page_metadata, page_params, parse_id_filter, resolve_sort,
)
from opsboard.services.reconcile import UnknownChildError, reconcile_children
from opsboard.services.recurrence import ScheduleFilter, matches_day_or_date, resolve_group_key
from opsboard.services.storage import LocalFileStorage, StorageError

TODAY = date(2025, 6, 10)


def record(**kwargs):
    kwargs.setdefault("day", None)
    kwargs.setdefault("date", None)
    return SimpleNamespace(**kwargs)


# ===================== RECURRENCE =====================


def test_day_filter_keeps_matching_and_date_specific_records():
    schedule = ScheduleFilter(day="MON")
    assert matches_day_or_date(record(day=DayOfWeek.MON), schedule)
    assert matches_day_or_date(record(date=datetime(2025, 6, 11)), schedule)
    assert not matches_day_or_date(record(day=DayOfWeek.TUE), schedule)


def test_day_filter_all_means_no_filter():
    assert matches_day_or_date(record(day=DayOfWeek.SUN), ScheduleFilter(day="ALL"))


def test_date_filter_keeps_same_day_and_later():
    schedule = ScheduleFilter(date=date(2025, 6, 10))
    assert matches_day_or_date(record(date=datetime(2025, 6, 10, 0, 0)), schedule)
    assert matches_day_or_date(record(date=datetime(2025, 6, 12, 15, 30)), schedule)
    assert not matches_day_or_date(record(date=datetime(2025, 6, 9, 23, 59)), schedule)


def test_date_filter_never_hides_day_recurring_records():
    schedule = ScheduleFilter(date=date(2030, 1, 1))
    assert matches_day_or_date(record(day=DayOfWeek.FRI), schedule)


def test_unscheduled_record_passes_both_filters():
    assert matches_day_or_date(record(), ScheduleFilter(day="MON", date=date(2030, 1, 1)))
    assert matches_day_or_date(record(), ScheduleFilter(day="SUN"))
    assert matches_day_or_date(record(), ScheduleFilter(date=date(2030, 1, 1)))


def test_group_key_uses_own_date_or_today():
    assert resolve_group_key(record(date=datetime(2025, 7, 4, 9)), TODAY) == "2025-07-04"
    assert resolve_group_key(record(day=DayOfWeek.WED), TODAY) == "2025-06-10"


# ===================== GROUPING =====================


def test_format_heading_suffixes():
    assert format_heading("2025-06-10", TODAY) == "June 10, 2025 - Today"
    assert format_heading("2025-06-11", TODAY) == "June 11, 2025 - Tomorrow"
    assert format_heading("2025-06-20", TODAY) == "June 20, 2025"


def test_group_by_date_sorts_groups_and_keeps_record_order():
    later = record(id=1, date=datetime(2025, 6, 12))
    recurring = record(id=2, day=DayOfWeek.MON)
    same_day = record(id=3, date=datetime(2025, 6, 12, 18))
    earlier = record(id=4, date=datetime(2025, 6, 10, 8))

    groups = group_by_date([later, recurring, same_day, earlier], TODAY)

    assert [g.date_key for g in groups] == ["2025-06-10", "2025-06-12"]
    assert [r.id for r in groups[0].records] == [2, 4]
    assert [r.id for r in groups[1].records] == [1, 3]
    assert groups[0].heading.endswith("- Today")


def test_group_by_date_empty():
    assert group_by_date([], TODAY) == []


# ===================== QUERY =====================


def test_parse_id_filter():
    assert parse_id_filter(None) is None
    assert parse_id_filter("") is None
    assert parse_id_filter("ALL") is None
    assert parse_id_filter("42") == 42


def test_page_params_clamp():
    assert page_params(None, None) == PageParams(page=1, limit=10)
    assert page_params(0, 500).limit == 100
    assert page_params(3, 20).skip == 40


def test_page_metadata():
    meta = page_metadata(25, PageParams(page=2, limit=10))
    assert meta["total_pages"] == 3
    assert meta["next_page"] == 3
    assert meta["prev_page"] == 1

    last = page_metadata(25, PageParams(page=3, limit=10))
    assert last["next_page"] is None

    empty = page_metadata(0, PageParams(page=1, limit=10))
    assert empty["total_pages"] == 0
    assert empty["prev_page"] is None


def test_resolve_sort_falls_back_to_default():
    allowed = {"date": Task.date, "title": Task.title}
    assert resolve_sort(allowed, "bogus", "desc", "date").field == "date"
    assert resolve_sort(allowed, "title", "asc", "date").expression is Task.title


def test_cursor_round_trip_and_sort_mismatch():
    sort = resolve_sort({"date": Task.date, "title": Task.title}, "date", "asc", "date")
    cursor = encode_cursor(sort, datetime(2025, 6, 10, 8), 7)
    assert decode_cursor(cursor, sort) == (datetime(2025, 6, 10, 8), 7)

    other = resolve_sort({"date": Task.date, "title": Task.title}, "title", "asc", "date")
    with pytest.raises(InvalidCursor):
        decode_cursor(cursor, other)


def test_decode_cursor_rejects_garbage():
    sort = resolve_sort({"date": Task.date}, "date", None, "date")
    with pytest.raises(InvalidCursor):
        decode_cursor("not-a-cursor", sort)


async def test_list_query_filters(db_session):
    db_session.add_all([
        Task(title="Check fridge", quantity=1, day=DayOfWeek.MON),
        Task(title="Order flour", quantity=1, date=datetime(2025, 6, 12)),
        Task(title="Clean ovens", quantity=1, date=datetime(2025, 6, 1)),
        Task(title="Fridge audit", quantity=1, day=DayOfWeek.TUE),
    ])
    await db_session.commit()

    query = ListQuery(Task).search("fridge", ["title"]).schedule(
        ScheduleFilter(day="MON", date=date(2025, 6, 10))
    )
    rows = (await db_session.execute(select(Task).where(query.condition))).scalars().all()
    assert [t.title for t in rows] == ["Check fridge"]

    everything = (await db_session.execute(select(Task).where(ListQuery(Task).condition))).scalars().all()
    assert len(everything) == 4


async def test_keyset_pages_do_not_overlap(db_session):
    db_session.add_all([Task(title=f"Task {i}", quantity=1, date=datetime(2025, 6, 10 + i % 3)) for i in range(7)])
    db_session.add(Task(title="Undated", quantity=1, day=DayOfWeek.MON))
    await db_session.commit()

    sort = resolve_sort({"date": Task.date}, "date", "asc", "date")
    seen, cursor = [], None
    while True:
        stmt = select(Task).order_by(*order_clauses(sort, Task.id)).limit(4)
        if cursor:
            value, last_id = decode_cursor(cursor, sort)
            stmt = stmt.where(keyset_clause(sort, Task.id, value, last_id))
        rows = (await db_session.execute(stmt)).scalars().all()
        page, info = cursor_page(list(rows), 3, sort, cursor)
        seen.extend(t.id for t in page)
        if not info["has_more"]:
            break
        cursor = info["next_cursor"]

    assert len(seen) == 8
    assert len(set(seen)) == 8


# ===================== RECONCILE =====================


def test_reconcile_updates_inserts_and_deletes():
    children = [SimpleNamespace(id=1, qty=1), SimpleNamespace(id=2, qty=2), SimpleNamespace(id=3, qty=3)]
    submitted = [SimpleNamespace(id=1, qty=10), SimpleNamespace(id=None, qty=99)]

    result = reconcile_children(
        children,
        submitted,
        build=lambda entry: SimpleNamespace(id=None, qty=entry.qty),
        apply=lambda child, entry: setattr(child, "qty", entry.qty),
    )

    assert (result.updated, result.inserted, result.deleted) == (1, 1, 2)
    assert [c.qty for c in children] == [10, 99]


def test_reconcile_rejects_foreign_ids():
    children = [SimpleNamespace(id=1)]
    with pytest.raises(UnknownChildError) as exc:
        reconcile_children(children, [SimpleNamespace(id=5)], build=lambda e: e, apply=lambda c, e: None)
    assert exc.value.child_ids == [5]
    assert len(children) == 1


# ===================== STORAGE =====================


def test_local_storage_upload_and_delete(tmp_path):
    storage = LocalFileStorage(str(tmp_path), "/uploads")
    result = storage.upload(b"hello", "notes.pdf", "documents")

    assert result["url"].startswith("/uploads/documents/")
    assert result["url"].endswith(".pdf")
    stored = tmp_path / result["url"].removeprefix("/uploads/")
    assert stored.read_bytes() == b"hello"

    assert storage.delete(result["url"]) is True
    assert not stored.exists()
    assert storage.delete(result["url"]) is False


def test_local_storage_rejects_bad_extension(tmp_path):
    storage = LocalFileStorage(str(tmp_path), "/uploads")
    with pytest.raises(StorageError):
        storage.upload(b"x", "script.exe", "documents")
