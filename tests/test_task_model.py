import pytest
from datetime import datetime, timezone
from tracker.domain.enums import TaskPriority, TaskStatus, TaskType
from tracker.domain.errors import TaskValidationError, TaskVariantError, ViolationCode
from tracker.domain.task import (
    BugDetails,
    EpicDetails,
    PlainDetails,
    StoryDetails,
    SubtaskDetails,
    Task,
    TaskBase,
    TaskId,
)

CREATED = datetime(2025, 10, 19, 20, 0, 0, tzinfo=timezone.utc)


def make_task(details=PlainDetails(), **overrides) -> Task:
    fields = dict(
        task_id=TaskId("7"),
        title="Title",
        created_at=CREATED,
        status=TaskStatus.TODO,
        priority=TaskPriority.MEDIUM,
        details=details,
    )
    fields.update(overrides)
    return Task(**fields)


def test_plain_task_info():
    task = make_task(description="Just demo")

    assert task.info() == (
        "Task: Title (ID: 7)\n"
        "Status: todo\n"
        "Priority: medium\n"
        "Created: 2025-10-19T20:00:00.000Z\n"
        "Description: Just demo"
    )


def test_subtask_info_shows_parent_after_header():
    task = make_task(SubtaskDetails(TaskId("3")), deadline=CREATED)

    lines = task.info().splitlines()

    assert lines[0] == "Subtask: Title (ID: 7)"
    assert lines[1] == "Parent Task ID: 3"
    assert lines[-1] == "Deadline: 2025-10-19T20:00:00.000Z"


def test_bug_info_assignee_or_unassigned():
    assert "Assignee: Ada" in make_task(BugDetails("Ada")).info()
    assert "Assignee: Unassigned" in make_task(BugDetails()).info()


def test_story_info_estimates_and_epic():
    info = make_task(StoryDetails()).info()
    assert "Story Points: Not estimated" in info
    assert "Epic ID: Not assigned" in info

    info = make_task(StoryDetails(0, TaskId("1"))).info()
    assert "Story Points: 0" in info
    assert "Epic ID: 1" in info


def test_epic_info_features():
    assert "Features: No features defined" in make_task(EpicDetails()).info()
    assert "Features: A, B" in make_task(EpicDetails(("A", "B"))).info()


def test_type_comes_from_details():
    assert make_task().type is TaskType.TASK
    assert make_task(EpicDetails()).type is TaskType.EPIC


def test_to_record_flattens_variant_fields_and_omits_absent():
    story = make_task(StoryDetails(3, TaskId("1")), description="d")

    assert story.to_record() == {
        "id": "7",
        "title": "Title",
        "description": "d",
        "createdAt": "2025-10-19T20:00:00.000Z",
        "status": "todo",
        "priority": "medium",
        "type": "story",
        "storyPoints": 3,
        "epicId": "1",
    }
    assert "assignee" not in make_task(BugDetails()).to_record()
    assert make_task(EpicDetails()).to_record()["features"] == []


def test_update_is_partial_and_returns_new_object():
    task = make_task(description="keep")

    updated = task.update({"status": TaskStatus.DONE})

    assert updated is not task
    assert updated.status is TaskStatus.DONE
    assert updated.description == "keep"
    assert task.status is TaskStatus.TODO


def test_update_rejects_non_base_fields():
    with pytest.raises(TaskValidationError) as exc:
        make_task().update({"task_id": "9"})

    assert exc.value.code is ViolationCode.IMMUTABLE_FIELD


def test_epic_features_idempotent_add_and_remove_all():
    epic = make_task(EpicDetails(["a", "b", "a"]))

    assert epic.details.features == ("a", "b", "a")
    assert epic.add_feature("b") is epic
    assert epic.add_feature("c").details.features == ("a", "b", "a", "c")
    assert epic.remove_feature("a").details.features == ("b",)


def test_variant_operations_on_wrong_kind_raise():
    bug = make_task(BugDetails())

    with pytest.raises(TaskVariantError):
        bug.add_feature("x")
    with pytest.raises(TaskVariantError):
        bug.set_story_points(1)
    with pytest.raises(TaskVariantError):
        make_task().set_assignee("Ada")


def test_story_setters():
    story = make_task(StoryDetails())

    story = story.set_story_points(5).set_epic_id(TaskId("2"))

    assert story.details == StoryDetails(5, TaskId("2"))


@pytest.mark.parametrize("factory", [
    lambda: SubtaskDetails(TaskId(" ")),
    lambda: BugDetails("   "),
    lambda: StoryDetails(-1),
    lambda: StoryDetails(True),
    lambda: StoryDetails(None, TaskId("")),
    lambda: EpicDetails(("ok", " ")),
])
def test_variant_payload_rules(factory):
    with pytest.raises(TaskValidationError):
        factory()


def test_from_base_refuses_mismatched_payload():
    base = TaskBase(
        task_id=TaskId("1"), title="t", created_at=CREATED,
        status=TaskStatus.TODO, priority=TaskPriority.LOW, type=TaskType.BUG,
    )

    assert Task.from_base(base, BugDetails("Ada")).type is TaskType.BUG
    with pytest.raises(TaskVariantError):
        Task.from_base(base, EpicDetails())
