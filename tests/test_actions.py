"""
Тесты уровня действий: валидация, владение, конверт ответа
"""

import uuid
from datetime import datetime

import pytest

from ecohabits import actions, habit_log_store, habit_store
from ecohabits.errors import ActionError, ErrorKind
from ecohabits.models import CallerContext

FULL_HABIT = {
    "name": "Use reusable bottle",
    "description": "No single-use plastic",
    "category": "waste",
    "frequency": "daily",
    "targetPerPeriod": 1,
    "impactPerUnit": 0.08,
    "impactUnit": "kg_co2",
}


def _create(db, caller, **fields):
    payload = {"name": "Bike to work", **fields}
    return actions.create_habit(db, caller, payload)["data"]["habitId"]


def _habits_by_id(db, caller, include_inactive=False):
    result = actions.list_my_habits(db, caller, {"includeInactive": include_inactive})
    return {item["id"]: item for item in result["data"]["items"]}


def _store_must_not_be_called(*args, **kwargs):
    raise AssertionError("store accessed")


class TestCreateHabit:
    """createHabit"""

    def test_created_habit_is_listed_with_submitted_values(self, db_session, caller):
        result = actions.create_habit(db_session, caller, FULL_HABIT)

        assert result["success"] is True
        habit_id = result["data"]["habitId"]

        habit = _habits_by_id(db_session, caller)[habit_id]
        assert habit["isActive"] is True
        assert habit["userId"] == caller.user_id
        for field, value in FULL_HABIT.items():
            assert habit[field] == value
        assert habit["createdAt"] == habit["updatedAt"]

    def test_optional_fields_default_to_none(self, db_session, caller):
        habit_id = _create(db_session, caller)

        habit = _habits_by_id(db_session, caller)[habit_id]
        assert habit["description"] is None
        assert habit["targetPerPeriod"] is None
        assert habit["impactUnit"] is None

    def test_impact_unit_without_impact_per_unit_is_allowed(self, db_session, caller):
        habit_id = _create(db_session, caller, impactUnit="liters_water")

        habit = _habits_by_id(db_session, caller)[habit_id]
        assert habit["impactUnit"] == "liters_water"
        assert habit["impactPerUnit"] is None

    def test_free_text_frequency_is_accepted(self, db_session, caller):
        habit_id = _create(db_session, caller, frequency="every other day")

        assert _habits_by_id(db_session, caller)[habit_id]["frequency"] == "every other day"

    def test_snake_case_payload_is_accepted(self, db_session, caller):
        habit_id = _create(db_session, caller, target_per_period=5)

        assert _habits_by_id(db_session, caller)[habit_id]["targetPerPeriod"] == 5

    def test_ids_are_unique(self, db_session, caller):
        ids = {_create(db_session, caller) for _ in range(5)}
        assert len(ids) == 5

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"name": ""},
            {"name": "   "},
            {"name": "Bike", "targetPerPeriod": 0},
            {"name": "Bike", "targetPerPeriod": -3},
            {"name": "Bike", "impactPerUnit": "a lot"},
        ],
    )
    def test_invalid_payload_rejected(self, db_session, caller, payload):
        with pytest.raises(ActionError) as exc_info:
            actions.create_habit(db_session, caller, payload)

        assert exc_info.value.kind == ErrorKind.VALIDATION
        assert exc_info.value.issues
        assert _habits_by_id(db_session, caller) == {}


class TestUpdateHabit:
    """updateHabit"""

    def test_single_field_update_changes_only_that_field(self, db_session, caller):
        habit_id = actions.create_habit(db_session, caller, FULL_HABIT)["data"]["habitId"]
        before = _habits_by_id(db_session, caller)[habit_id]

        result = actions.update_habit(db_session, caller, {"id": habit_id, "category": "water"})

        assert result == {"success": True, "data": {"habitId": habit_id}}
        after = _habits_by_id(db_session, caller)[habit_id]
        assert after["category"] == "water"
        assert after["updatedAt"] >= before["updatedAt"]
        for field in set(before) - {"category", "updatedAt"}:
            assert after[field] == before[field], field

    def test_null_field_is_left_untouched(self, db_session, caller):
        habit_id = _create(db_session, caller, description="keep me")

        actions.update_habit(
            db_session, caller, {"id": habit_id, "name": "Walk", "description": None}
        )

        habit = _habits_by_id(db_session, caller)[habit_id]
        assert habit["name"] == "Walk"
        assert habit["description"] == "keep me"

    def test_empty_update_rejected_before_store_access(self, db_session, caller, monkeypatch):
        monkeypatch.setattr(habit_store, "get_habit", _store_must_not_be_called)
        monkeypatch.setattr(habit_store, "update_habit", _store_must_not_be_called)

        with pytest.raises(ActionError) as exc_info:
            actions.update_habit(db_session, caller, {"id": str(uuid.uuid4())})

        assert exc_info.value.kind == ErrorKind.VALIDATION
        assert "At least one field" in exc_info.value.message

    def test_only_null_fields_counts_as_empty(self, db_session, caller):
        habit_id = _create(db_session, caller)

        with pytest.raises(ActionError) as exc_info:
            actions.update_habit(db_session, caller, {"id": habit_id, "name": None})

        assert exc_info.value.kind == ErrorKind.VALIDATION

    def test_invalid_target_rejected(self, db_session, caller):
        habit_id = _create(db_session, caller)

        with pytest.raises(ActionError) as exc_info:
            actions.update_habit(db_session, caller, {"id": habit_id, "targetPerPeriod": 0})

        assert exc_info.value.kind == ErrorKind.VALIDATION

    def test_missing_habit_not_found(self, db_session, caller):
        with pytest.raises(ActionError) as exc_info:
            actions.update_habit(db_session, caller, {"id": str(uuid.uuid4()), "name": "X"})

        assert exc_info.value.kind == ErrorKind.NOT_FOUND
        assert exc_info.value.message == "Habit not found."

    def test_other_users_habit_not_found_and_unchanged(self, db_session, caller, other_caller):
        habit_id = _create(db_session, other_caller)

        with pytest.raises(ActionError) as exc_info:
            actions.update_habit(db_session, caller, {"id": habit_id, "name": "Hijacked"})

        assert exc_info.value.kind == ErrorKind.NOT_FOUND
        assert _habits_by_id(db_session, other_caller)[habit_id]["name"] == "Bike to work"


class TestArchiveHabit:
    """archiveHabit"""

    def test_archived_habit_hidden_by_default(self, db_session, caller):
        habit_id = _create(db_session, caller)

        result = actions.archive_habit(db_session, caller, {"id": habit_id})

        assert result["data"] == {"habitId": habit_id}
        assert habit_id not in _habits_by_id(db_session, caller)
        archived = _habits_by_id(db_session, caller, include_inactive=True)[habit_id]
        assert archived["isActive"] is False

    def test_archive_keeps_logs(self, db_session, caller):
        habit_id = _create(db_session, caller)
        actions.upsert_habit_log(db_session, caller, {"habitId": habit_id, "quantity": 1})

        actions.archive_habit(db_session, caller, {"id": habit_id})

        logs = actions.list_habit_logs(db_session, caller, {"habitId": habit_id})
        assert logs["data"]["total"] == 1

    def test_archived_habit_can_be_updated(self, db_session, caller):
        habit_id = _create(db_session, caller)
        actions.archive_habit(db_session, caller, {"id": habit_id})

        actions.update_habit(db_session, caller, {"id": habit_id, "name": "Z"})

        habit = _habits_by_id(db_session, caller, include_inactive=True)[habit_id]
        assert habit["name"] == "Z"
        assert habit["isActive"] is False

    def test_other_users_habit_not_found(self, db_session, caller, other_caller):
        habit_id = _create(db_session, other_caller)

        with pytest.raises(ActionError) as exc_info:
            actions.archive_habit(db_session, caller, {"id": habit_id})

        assert exc_info.value.kind == ErrorKind.NOT_FOUND
        assert habit_id in _habits_by_id(db_session, other_caller)

    def test_missing_id_rejected(self, db_session, caller):
        with pytest.raises(ActionError) as exc_info:
            actions.archive_habit(db_session, caller, {})

        assert exc_info.value.kind == ErrorKind.VALIDATION


class TestListMyHabits:
    """listMyHabits"""

    def test_default_payload_excludes_inactive(self, db_session, caller):
        active_id = _create(db_session, caller)
        archived_id = _create(db_session, caller)
        actions.archive_habit(db_session, caller, {"id": archived_id})

        result = actions.list_my_habits(db_session, caller)

        ids = [item["id"] for item in result["data"]["items"]]
        assert ids == [active_id]
        assert result["data"]["total"] == 1

    def test_include_inactive(self, db_session, caller):
        _create(db_session, caller)
        actions.archive_habit(db_session, caller, {"id": _create(db_session, caller)})

        result = actions.list_my_habits(db_session, caller, {"includeInactive": True})

        assert result["data"]["total"] == 2

    def test_only_own_habits_listed(self, db_session, caller, other_caller):
        _create(db_session, other_caller)

        result = actions.list_my_habits(db_session, caller, {})

        assert result["data"] == {"items": [], "total": 0}


class TestUpsertHabitLog:
    """upsertHabitLog"""

    def test_create_then_update_in_place(self, db_session, caller):
        habit_id = _create(db_session, caller, targetPerPeriod=3)

        created = actions.upsert_habit_log(db_session, caller, {"habitId": habit_id, "quantity": 1})
        log_id = created["data"]["logId"]
        assert created["data"]["mode"] == "created"

        updated = actions.upsert_habit_log(
            db_session, caller, {"id": log_id, "habitId": habit_id, "quantity": 2}
        )
        assert updated["data"] == {"logId": log_id, "mode": "updated"}

        logs = actions.list_habit_logs(db_session, caller, {"habitId": habit_id})["data"]
        assert logs["total"] == 1
        assert logs["items"][0]["quantity"] == 2

    def test_without_id_always_creates(self, db_session, caller):
        habit_id = _create(db_session, caller)
        payload = {"habitId": habit_id, "quantity": 1, "notes": "same"}

        first = actions.upsert_habit_log(db_session, caller, payload)["data"]
        second = actions.upsert_habit_log(db_session, caller, payload)["data"]

        assert first["mode"] == second["mode"] == "created"
        assert first["logId"] != second["logId"]

    def test_log_date_defaults_to_creation_time(self, db_session, caller):
        habit_id = _create(db_session, caller)
        actions.upsert_habit_log(db_session, caller, {"habitId": habit_id})

        log = actions.list_habit_logs(db_session, caller, {"habitId": habit_id})["data"]["items"][0]
        assert log["logDate"] == log["createdAt"]
        assert log["quantity"] is None

    def test_update_keeps_log_date_and_overwrites_notes(self, db_session, caller):
        habit_id = _create(db_session, caller)
        log_id = actions.upsert_habit_log(
            db_session,
            caller,
            {"habitId": habit_id, "logDate": "2026-10-01T08:00:00", "notes": "bus", "quantity": 4},
        )["data"]["logId"]

        actions.upsert_habit_log(db_session, caller, {"id": log_id, "habitId": habit_id})

        log = habit_log_store.get_log(db_session, log_id, caller.user_id)
        assert log.log_date.isoformat().startswith("2026-10-01T08:00:00")
        assert log.notes is None
        assert log.quantity is None

    def test_update_can_move_log_to_another_own_habit(self, db_session, caller):
        first = _create(db_session, caller)
        second = _create(db_session, caller)
        log_id = actions.upsert_habit_log(db_session, caller, {"habitId": first})["data"]["logId"]

        actions.upsert_habit_log(db_session, caller, {"id": log_id, "habitId": second})

        assert actions.list_habit_logs(db_session, caller, {"habitId": first})["data"]["total"] == 0
        assert actions.list_habit_logs(db_session, caller, {"habitId": second})["data"]["total"] == 1

    def test_update_cannot_move_log_to_foreign_habit(self, db_session, caller, other_caller):
        own = _create(db_session, caller)
        foreign = _create(db_session, other_caller)
        log_id = actions.upsert_habit_log(db_session, caller, {"habitId": own})["data"]["logId"]

        with pytest.raises(ActionError) as exc_info:
            actions.upsert_habit_log(db_session, caller, {"id": log_id, "habitId": foreign})

        assert exc_info.value.kind == ErrorKind.NOT_FOUND
        assert habit_log_store.get_log(db_session, log_id, caller.user_id).habit_id == own

    def test_negative_quantity_rejected(self, db_session, caller):
        habit_id = _create(db_session, caller)

        with pytest.raises(ActionError) as exc_info:
            actions.upsert_habit_log(db_session, caller, {"habitId": habit_id, "quantity": -1})

        assert exc_info.value.kind == ErrorKind.VALIDATION

    def test_log_date_with_offset_is_stored_in_utc(self, db_session, caller):
        """Смещение учитывается: 08:00+05:00 раньше 05:00Z"""
        habit_id = _create(db_session, caller)
        for log_date in ("2026-10-01T08:00:00+05:00", "2026-10-01T05:00:00Z"):
            actions.upsert_habit_log(db_session, caller, {"habitId": habit_id, "logDate": log_date})

        items = actions.list_habit_logs(db_session, caller, {"habitId": habit_id})["data"]["items"]

        assert [item["logDate"] for item in items] == [
            datetime(2026, 10, 1, 3, 0),
            datetime(2026, 10, 1, 5, 0),
        ]

    def test_log_date_offset_on_update(self, db_session, caller):
        habit_id = _create(db_session, caller)
        log_id = actions.upsert_habit_log(db_session, caller, {"habitId": habit_id})["data"]["logId"]

        actions.upsert_habit_log(
            db_session,
            caller,
            {"id": log_id, "habitId": habit_id, "logDate": "2026-10-01T00:30:00-02:00"},
        )

        log = habit_log_store.get_log(db_session, log_id, caller.user_id)
        assert log.log_date == datetime(2026, 10, 1, 2, 30)

    def test_zero_quantity_allowed(self, db_session, caller):
        habit_id = _create(db_session, caller)

        result = actions.upsert_habit_log(db_session, caller, {"habitId": habit_id, "quantity": 0})

        assert result["data"]["mode"] == "created"

    def test_foreign_habit_not_found(self, db_session, caller, other_caller):
        habit_id = _create(db_session, other_caller)

        with pytest.raises(ActionError) as exc_info:
            actions.upsert_habit_log(db_session, caller, {"habitId": habit_id, "quantity": 1})

        assert exc_info.value.kind == ErrorKind.NOT_FOUND
        assert exc_info.value.message == "Habit not found."

    def test_unknown_log_id_not_found(self, db_session, caller):
        habit_id = _create(db_session, caller)

        with pytest.raises(ActionError) as exc_info:
            actions.upsert_habit_log(
                db_session, caller, {"id": str(uuid.uuid4()), "habitId": habit_id}
            )

        assert exc_info.value.kind == ErrorKind.NOT_FOUND
        assert exc_info.value.message == "Habit log not found."

    def test_foreign_log_id_not_found(self, db_session, caller, other_caller):
        foreign_habit = _create(db_session, other_caller)
        foreign_log = actions.upsert_habit_log(
            db_session, other_caller, {"habitId": foreign_habit, "quantity": 7}
        )["data"]["logId"]
        own_habit = _create(db_session, caller)

        with pytest.raises(ActionError) as exc_info:
            actions.upsert_habit_log(
                db_session, caller, {"id": foreign_log, "habitId": own_habit, "quantity": 0}
            )

        assert exc_info.value.kind == ErrorKind.NOT_FOUND
        assert habit_log_store.get_log(db_session, foreign_log, other_caller.user_id).quantity == 7


class TestListHabitLogs:
    """listHabitLogs"""

    def test_all_logs_of_caller(self, db_session, caller, other_caller):
        first = _create(db_session, caller)
        second = _create(db_session, caller)
        actions.upsert_habit_log(db_session, caller, {"habitId": first})
        actions.upsert_habit_log(db_session, caller, {"habitId": second})
        foreign = _create(db_session, other_caller)
        actions.upsert_habit_log(db_session, other_caller, {"habitId": foreign})

        result = actions.list_habit_logs(db_session, caller)

        assert result["data"]["total"] == 2
        assert {item["habitId"] for item in result["data"]["items"]} == {first, second}

    def test_filter_by_habit(self, db_session, caller):
        first = _create(db_session, caller)
        second = _create(db_session, caller)
        actions.upsert_habit_log(db_session, caller, {"habitId": first})
        actions.upsert_habit_log(db_session, caller, {"habitId": second})

        result = actions.list_habit_logs(db_session, caller, {"habitId": first})

        assert [item["habitId"] for item in result["data"]["items"]] == [first]

    def test_foreign_habit_filter_not_found(self, db_session, caller, other_caller):
        foreign = _create(db_session, other_caller)
        actions.upsert_habit_log(db_session, other_caller, {"habitId": foreign})

        with pytest.raises(ActionError) as exc_info:
            actions.list_habit_logs(db_session, caller, {"habitId": foreign})

        assert exc_info.value.kind == ErrorKind.NOT_FOUND


class TestAuthentication:
    """Любое действие без пользователя в контексте → UNAUTHORIZED"""

    @pytest.mark.parametrize("name", sorted(actions.ACTIONS))
    @pytest.mark.parametrize(
        "payload",
        [None, {}, {"name": ""}, {"id": "x", "habitId": "y", "quantity": -1}],
    )
    def test_no_identity_is_unauthorized(self, name, payload, monkeypatch):
        monkeypatch.setattr(habit_store, "get_habit", _store_must_not_be_called)
        monkeypatch.setattr(habit_store, "list_habits", _store_must_not_be_called)
        monkeypatch.setattr(habit_log_store, "list_logs", _store_must_not_be_called)

        with pytest.raises(ActionError) as exc_info:
            actions.ACTIONS[name](None, CallerContext(), payload)

        assert exc_info.value.kind == ErrorKind.UNAUTHORIZED
        assert exc_info.value.status_code == 401

    def test_missing_context_is_unauthorized(self):
        with pytest.raises(ActionError) as exc_info:
            actions.create_habit(None, None, {"name": "Bike"})

        assert exc_info.value.kind == ErrorKind.UNAUTHORIZED
