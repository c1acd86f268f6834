from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import DisconnectionError, OperationalError

from app.core.exceptions import (
    NotFoundError,
    StorageConnectionError,
    StorageError,
    ValidationError,
    translate_storage_error,
)
from app.services.source_repository import SourceRepository, require_id
from app.utils.codec import decode_json
from app.utils.timeutils import to_utc


def test_decode_json_reports_each_failure_kind():
    assert decode_json('["a", "b"]').value == ["a", "b"]
    assert decode_json(None).error == "empty"
    assert decode_json("").error == "empty"
    assert decode_json("{oops").error.startswith("invalid json")
    assert decode_json('{"a": 1}', list).error == "expected list, got dict"
    assert decode_json('{"a": 1}', dict).value == {"a": 1}


def test_decoded_default_only_replaces_failures():
    assert decode_json("[]").or_default(["x"]) == []
    assert decode_json("nope").or_default(["x"]) == ["x"]
    assert not decode_json("nope").ok


def test_to_utc_handles_naive_aware_and_strings():
    naive = datetime(2030, 3, 1, 12, 0)
    plus_two = datetime(2030, 3, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))

    assert to_utc(naive) == naive
    assert to_utc(plus_two) == naive
    assert to_utc("2030-03-01T12:00:00Z") == naive
    assert to_utc("2030-03-01T07:00:00-05:00") == naive


@pytest.mark.parametrize("value", ["tomorrow", 1700000000, None])
def test_to_utc_rejects_garbage(value):
    with pytest.raises(ValidationError):
        to_utc(value)


@pytest.mark.parametrize("value", [0, -1, True, "3", 2.0])
def test_require_id_rejects_non_positive_and_non_int(value):
    with pytest.raises(ValidationError):
        require_id(value, "assignment id")


def test_not_found_message_names_the_entity():
    error = NotFoundError("Milestone", 12)

    assert str(error) == "Milestone not found"
    assert error.entity_id == 12


def test_translate_storage_error_separates_lost_connections():
    lost = translate_storage_error(DisconnectionError("gone"))
    locked = translate_storage_error(OperationalError("UPDATE", {}, Exception("database is locked")))

    assert isinstance(lost, StorageConnectionError)
    assert isinstance(locked, StorageError)
    assert not isinstance(locked, StorageConnectionError)


def test_courses_listing_hides_archived(db, make_user, make_course):
    user = make_user()
    current = make_course(user, title="Statistics")
    make_course(user, title="Old Seminar", archived=True)
    make_course(make_user(), title="Not mine")

    repository = SourceRepository(db)

    assert [c.id for c in repository.list_courses_by_user(user.id)] == [current.id]
    assert len(repository.list_courses_by_user(user.id, include_archived=True)) == 2
