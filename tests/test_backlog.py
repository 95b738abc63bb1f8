import pytest

from jee_tracker.backlog import (
    count_open_backlog, create_backlog_item, delete_backlog_item, get_backlog_items,
    scope_from_input, update_backlog_item,
)
from jee_tracker.exceptions import NotFoundError, ValidationError
from jee_tracker.models import MultiTopic, SingleTopic, Unscoped
from jee_tracker.syllabus import delete_topic


@pytest.mark.parametrize("topic_id, topic_ids, expected", [
    (None, None, Unscoped()),
    (4, None, SingleTopic(4)),
    (None, [4], SingleTopic(4)),
    (None, [4, 4], SingleTopic(4)),
    (None, [3, 4, 3], MultiTopic((3, 4))),
    (None, [], Unscoped()),
])
def test_scope_from_input(topic_id, topic_ids, expected):
    assert scope_from_input(topic_id, topic_ids) == expected


def test_create_with_each_scope(db, student):
    create_backlog_item(db, student.id, "Revise vectors")
    create_backlog_item(db, student.id, "Projectiles", topic_id=1, priority="high", type="practice")
    create_backlog_item(db, student.id, "Electrostatics", topic_ids=[3, 4], type="forgetting")
    items = get_backlog_items(db, student.id)
    # Newest first
    assert [i.title for i in items] == ["Electrostatics", "Projectiles", "Revise vectors"]
    assert items[0].scope == MultiTopic((3, 4))
    assert items[1].scope == SingleTopic(1)
    assert items[1].priority == "high"
    assert items[2].scope == Unscoped()
    assert items[2].priority == "medium"
    assert items[2].type == "concept"


def test_both_topic_fields_rejected(db, student):
    with pytest.raises(ValidationError, match="either topic_id or topic_ids"):
        create_backlog_item(db, student.id, "Both", topic_id=1, topic_ids=[2, 3])


def test_invalid_priority_rejected(db, student):
    with pytest.raises(ValidationError):
        create_backlog_item(db, student.id, "Bad", priority="urgent")


def test_update_and_count_open(db, student):
    a = create_backlog_item(db, student.id, "A")
    create_backlog_item(db, student.id, "B")
    assert count_open_backlog(get_backlog_items(db, student.id)) == 2
    done = update_backlog_item(db, a.id, user_id=student.id, is_completed=True, deadline="2026-04-01T00:00:00")
    assert done.is_completed is True
    assert done.deadline.startswith("2026-04-01")
    assert count_open_backlog(get_backlog_items(db, student.id)) == 1


def test_update_checks_owner(db, student, other_student):
    item = create_backlog_item(db, student.id, "Mine")
    with pytest.raises(NotFoundError):
        update_backlog_item(db, item.id, user_id=other_student.id, title="Stolen")
    with pytest.raises(NotFoundError):
        update_backlog_item(db, 999, title="Missing")


def test_delete(db, student):
    item = create_backlog_item(db, student.id, "Gone soon")
    delete_backlog_item(db, item.id)
    assert get_backlog_items(db, student.id) == []
    with pytest.raises(NotFoundError):
        delete_backlog_item(db, item.id)


def test_topic_reference_cleared_when_topic_deleted(db, student):
    item = create_backlog_item(db, student.id, "Kinematics", topic_id=1)
    delete_topic(db, 1)
    assert get_backlog_items(db, student.id)[0].id == item.id
    assert get_backlog_items(db, student.id)[0].scope == Unscoped()


def test_delete_checks_owner(db, student, other_student):
    item = create_backlog_item(db, other_student.id, "Theirs")
    with pytest.raises(NotFoundError):
        delete_backlog_item(db, item.id, user_id=student.id)
    assert len(get_backlog_items(db, other_student.id)) == 1
    delete_backlog_item(db, item.id, user_id=other_student.id)
    assert get_backlog_items(db, other_student.id) == []


def test_create_checks_references(db, student):
    with pytest.raises(NotFoundError):
        create_backlog_item(db, student.id, "Ghost", topic_id=999)
    with pytest.raises(NotFoundError):
        create_backlog_item(db, student.id, "Ghosts", topic_ids=[1, 999])
    with pytest.raises(NotFoundError):
        create_backlog_item(db, "missing", "Nobody")
    assert get_backlog_items(db, student.id) == []
