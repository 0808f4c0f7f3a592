from tracker.adapters.memory.task_repo import InMemorySnapshotRepository
from tracker.adapters.system.id_providers import CounterIdProvider, SequentialIdProvider
from tracker.services.task_service import TaskService
from tracker.domain.enums import TaskPriority, TaskStatus, TaskType
from tracker.domain.errors import (
    TaskAlreadyExistsError,
    TaskNotFoundError,
    TaskPersistenceError,
    TaskValidationError,
    TaskVariantError,
    ViolationCode,
)
from dataclasses import FrozenInstanceError
from datetime import datetime, timezone, timedelta
import pytest


class FakeIdProvider:
    def __init__(self):
        self.counter = 0
    def new_id(self, existing) -> str:
        self.counter += 1
        return f"id-{self.counter}"

class FakeClock:
    def __init__(self, fixed: datetime | None = None):
        # jeśli nie podamy fixed, zwróci zawsze ten sam „teraz”
        self.fixed = fixed or datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    def now(self) -> datetime:
        return self.fixed
    def advance(self, **kwargs) -> None:
        self.fixed = self.fixed + timedelta(**kwargs)


class FailingRepository(InMemorySnapshotRepository):
    def save(self, records):
        raise TaskPersistenceError("disk full")


def make_service(records=None, clock=None, **kwargs) -> tuple[TaskService, InMemorySnapshotRepository]:
    repo = InMemorySnapshotRepository(records)
    service = TaskService(repo, SequentialIdProvider(), clock or FakeClock(), **kwargs)
    return service, repo


def test_create_bug_gets_defaults():
    service, _ = make_service()

    bug = service.create({"title": "Fix login", "type": "bug", "assignee": "Ada"})

    assert bug.type is TaskType.BUG
    assert bug.details.assignee == "Ada"
    assert bug.status is TaskStatus.TODO
    assert bug.priority is TaskPriority.MEDIUM
    assert bug.to_record()["assignee"] == "Ada"


def test_create_subtask_without_parent_raises():
    service, repo = make_service()

    with pytest.raises(TaskValidationError) as exc:
        service.create({"title": "x", "type": "subtask"})

    assert exc.value.code is ViolationCode.PARENT_REQUIRED
    assert service.count() == 0
    assert repo.saves == 0


def test_create_trims_title_and_description():
    service, _ = make_service()

    task = service.create({"title": "  Write docs ", "description": " for the API  "})

    assert task.title == "Write docs"
    assert task.description == "for the API"


def test_create_uses_clock_time():
    clock = FakeClock(datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc))
    service, _ = make_service(clock=clock)

    t = service.create({"title": "A"})

    assert t.created_at == clock.fixed
    assert t.to_record()["createdAt"] == "2025-01-02T03:04:05.000Z"


def test_injected_id_provider_is_used():
    service = TaskService(InMemorySnapshotRepository(), FakeIdProvider(), FakeClock())

    assert service.create({"title": "A"}).task_id == "id-1"
    assert service.create({"title": "B"}).task_id == "id-2"


def test_second_id_is_successor_of_first():
    service, _ = make_service()

    first = service.create({"title": "A"})
    second = service.create({"title": "B"})

    assert first.task_id == "1"
    assert second.task_id == "2"


def test_id_follows_last_record_not_highest():
    service, _ = make_service([{"id": 7, "title": "a"}, {"id": "3", "title": "b"}])

    assert service.create({"title": "c"}).task_id == "4"


def test_non_numeric_last_id_falls_back_to_length():
    service, _ = make_service([{"id": "1", "title": "a"}, {"id": "abc", "title": "b"}])

    assert service.create({"title": "c"}).task_id == "3"


def test_sequential_ids_can_collide_after_reordering():
    # znana luka schematu "ostatni + 1"
    records = [{"id": "2", "title": "a"}, {"id": "1", "title": "b"}]
    service, _ = make_service(records)

    service.create({"title": "c"})

    assert [t.task_id for t in service.get_all()] == ["2", "1", "2"]


def test_counter_ids_never_collide():
    records = [{"id": "2", "title": "a"}, {"id": "1", "title": "b"}]
    service = TaskService(InMemorySnapshotRepository(records), CounterIdProvider(), FakeClock())

    assert service.create({"title": "c"}).task_id == "3"


def test_explicit_id_is_accepted_once():
    service, _ = make_service()

    task = service.create({"id": "abc", "title": "A"})
    assert task.task_id == "abc"

    with pytest.raises(TaskAlreadyExistsError):
        service.create({"id": "abc", "title": "B"})


def test_get_by_id_returns_created_record():
    service, _ = make_service()

    created = service.create({"title": "Epic", "type": "epic", "features": ["Login"]})

    assert service.get_by_id(created.task_id) == created
    assert service.get_by_id(1) == created
    assert service.get_by_id("1") == created


def test_get_by_id_missing_returns_none_and_get_task_raises():
    service, _ = make_service()

    assert service.get_by_id("nope") is None
    with pytest.raises(TaskNotFoundError):
        service.get_task("nope")


def test_update_with_empty_patch_changes_nothing():
    service, _ = make_service()
    story = service.create({"title": "S", "type": "story", "storyPoints": 5, "deadline": "2025-02-01"})

    updated = service.update(story.task_id, {})

    assert updated == story
    assert service.get_task(story.task_id) == story


def test_update_touches_only_given_fields():
    clock = FakeClock()
    service, _ = make_service(clock=clock)
    task = service.create({"title": "A", "description": "first", "priority": "high"})
    clock.advance(hours=1)

    updated = service.update(task.task_id, {"status": "done"})

    assert updated.status is TaskStatus.DONE
    assert updated.title == "A"
    assert updated.description == "first"
    assert updated.priority is TaskPriority.HIGH
    assert updated.created_at == task.created_at


def test_update_story_points_on_bug_is_ignored():
    service, _ = make_service()
    bug = service.create({"title": "Fix login", "type": "bug", "assignee": "Ada"})

    updated = service.update(bug.task_id, {"storyPoints": 3})

    assert updated == bug
    assert "storyPoints" not in updated.to_record()


def test_update_wrong_variant_rejected_when_strict():
    service, _ = make_service(strict_variants=True)
    bug = service.create({"title": "Fix login", "type": "bug"})

    with pytest.raises(TaskValidationError) as exc:
        service.update(bug.task_id, {"storyPoints": 3})

    assert exc.value.code is ViolationCode.WRONG_VARIANT


def test_update_variant_fields_on_matching_variant():
    service, _ = make_service()
    bug = service.create({"title": "B", "type": "bug"})
    story = service.create({"title": "S", "type": "story"})
    epic = service.create({"title": "E", "type": "epic", "features": ["a"]})

    assert service.update(bug.task_id, {"assignee": "Ada"}).details.assignee == "Ada"
    story = service.update(story.task_id, {"storyPoints": 8, "epicId": epic.task_id})
    assert story.details.story_points == 8
    assert story.details.epic_id == epic.task_id
    assert service.update(epic.task_id, {"features": ["x", "y"]}).details.features == ("x", "y")


def test_update_missing_task_raises_not_found():
    service, _ = make_service()

    with pytest.raises(TaskNotFoundError):
        service.update("42", {"title": "x"})


def test_update_collects_all_violations():
    service, _ = make_service()
    task = service.create({"title": "A"})

    with pytest.raises(TaskValidationError) as exc:
        service.update(task.task_id, {"title": " ", "priority": "urgent", "type": "bug"})

    codes = {v.code for v in exc.value.violations}
    assert codes == {ViolationCode.TITLE_EMPTY, ViolationCode.INVALID_PRIORITY, ViolationCode.IMMUTABLE_FIELD}
    assert service.get_task(task.task_id) == task


def test_update_can_clear_deadline():
    service, _ = make_service()
    task = service.create({"title": "A", "deadline": "2025-03-01T10:00:00Z"})

    updated = service.update(task.task_id, {"deadline": None})

    assert updated.deadline is None
    assert "deadline" not in updated.to_record()


def test_delete_then_get_returns_none():
    service, _ = make_service()
    task = service.create({"title": "A"})

    service.delete(task.task_id)

    assert service.get_by_id(task.task_id) is None
    with pytest.raises(TaskNotFoundError):
        service.delete(task.task_id)


def test_filter_by_status_keeps_order():
    service, _ = make_service()
    a = service.create({"title": "A"})
    service.create({"title": "B", "status": "done"})
    c = service.create({"title": "C", "type": "bug"})

    result = service.filter({"status": "todo"})

    assert result == [t for t in service.get_all() if t.status is TaskStatus.TODO]
    assert [t.task_id for t in result] == [a.task_id, c.task_id]


def test_filter_combines_predicates_with_inclusive_dates():
    clock = FakeClock()
    service, _ = make_service(clock=clock)
    service.create({"title": "old", "type": "bug"})
    clock.advance(days=1)
    middle = service.create({"title": "middle", "type": "bug", "priority": "high"})
    clock.advance(days=1)
    last = service.create({"title": "last", "type": "bug", "priority": "high"})
    service.create({"title": "story", "type": "story", "priority": "high"})

    result = service.filter({
        "type": "bug",
        "priority": "high",
        "createdFrom": "2025-01-02T12:00:00Z",
        "createdTo": "2025-01-03T12:00:00Z",
    })

    assert result == [middle, last]


def test_filter_without_params_returns_everything():
    service, _ = make_service()
    service.create({"title": "A"})
    service.create({"title": "B"})

    assert service.filter({}) == service.get_all()
    assert service.filter() == service.get_all()


def test_filter_unknown_value_matches_nothing():
    service, _ = make_service()
    service.create({"title": "A"})

    assert service.filter({"status": "archived"}) == []


def test_filter_rejects_invalid_date():
    service, _ = make_service()

    with pytest.raises(TaskValidationError) as exc:
        service.filter({"createdFrom": "yesterday"})

    assert exc.value.code is ViolationCode.INVALID_DATE


def test_task_without_deadline_is_always_on_time():
    service, _ = make_service()
    task = service.create({"title": "A"})

    assert service.is_completed_before_deadline(task)
    assert service.is_completed_before_deadline(task, "2999-01-01T00:00:00Z")


def test_completed_before_deadline_is_inclusive_and_ignores_status():
    service, _ = make_service()
    task = service.create({"title": "A", "deadline": "2025-01-10T00:00:00Z"})

    assert service.is_completed_before_deadline(task, "2025-01-10T00:00:00Z")
    assert not service.is_completed_before_deadline(task, "2025-01-10T00:00:00.001Z")

    done = service.update(task.task_id, {"status": "done"})
    assert not service.is_completed_before_deadline(done, "2025-01-11T00:00:00Z")


def test_completed_before_deadline_defaults_to_clock():
    clock = FakeClock()
    service, _ = make_service(clock=clock)
    task = service.create({"title": "A", "deadline": "2025-01-10T00:00:00Z"})

    assert service.is_completed_before_deadline(task)
    clock.advance(days=30)
    assert not service.is_completed_before_deadline(task)


def test_reads_are_snapshots():
    service, _ = make_service()
    task = service.create({"title": "Epic", "type": "epic", "features": ["a"]})

    listing = service.get_all()
    listing.clear()
    assert service.count() == 1

    with pytest.raises(FrozenInstanceError):
        task.title = "hacked"
    with pytest.raises(AttributeError):
        task.details.features.append("b")


def test_every_change_is_persisted():
    service, repo = make_service()

    task = service.create({"title": "A"})
    service.update(task.task_id, {"priority": "low"})
    service.create({"title": "B", "type": "subtask", "parentId": task.task_id})
    service.delete(task.task_id)

    assert repo.saves == 4
    assert repo.load() == [t.to_record() for t in service.get_all()]
    assert repo.load()[0]["parentId"] == "1"


def test_snapshot_is_reloaded_into_variants():
    service, repo = make_service()
    service.create({"title": "E", "type": "epic", "features": ["a", "b"]})
    service.create({"title": "S", "type": "story", "storyPoints": 3, "epicId": "1"})

    reloaded = TaskService(repo, SequentialIdProvider(), FakeClock())

    assert reloaded.get_all() == service.get_all()


def test_early_year_dates_survive_reload():
    service, repo = make_service()
    task = service.create({"title": "x", "deadline": "0999-01-01T00:00:00Z"})

    reloaded = TaskService(repo, SequentialIdProvider(), FakeClock())

    assert repo.load()[0]["deadline"] == "0999-01-01T00:00:00.000Z"
    assert reloaded.get_task(task.task_id).deadline == datetime(999, 1, 1, tzinfo=timezone.utc)


def test_loading_subtask_without_parent_fails():
    with pytest.raises(TaskValidationError):
        make_service([{"id": "1", "title": "orphan", "type": "subtask"}])


def test_add_and_remove_feature():
    service, repo = make_service()
    epic = service.create({"title": "E", "type": "epic", "features": ["a", "b"]})

    epic = service.add_feature(epic.task_id, "c")
    saves = repo.saves
    again = service.add_feature(epic.task_id, "c")

    assert again.details.features == ("a", "b", "c")
    assert repo.saves == saves
    assert service.remove_feature(epic.task_id, "a").details.features == ("b", "c")


def test_feature_on_non_epic_raises():
    service, _ = make_service()
    task = service.create({"title": "A"})

    with pytest.raises(TaskVariantError):
        service.add_feature(task.task_id, "x")


def test_failed_save_propagates_and_keeps_memory_change():
    service = TaskService(FailingRepository(), SequentialIdProvider(), FakeClock())

    with pytest.raises(TaskPersistenceError):
        service.create({"title": "A"})

    # brak rollbacku: pamięć i snapshot są rozjechane
    assert service.count() == 1


def test_review_status_only_when_configured():
    service, _ = make_service()
    with pytest.raises(TaskValidationError):
        service.create({"title": "A", "status": "review"})

    board, _ = make_service(statuses=frozenset(TaskStatus))
    assert board.create({"title": "A", "status": "review"}).status is TaskStatus.REVIEW


def test_task_info_renders_variant_summary():
    service, _ = make_service()
    bug = service.create({"title": "Fix login", "type": "bug"})

    assert service.task_info(bug.task_id).splitlines()[0] == "Bug: Fix login (ID: 1)"
    assert "Assignee: Unassigned" in service.task_info(bug.task_id)
