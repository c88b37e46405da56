# tests/test_notification_service.py

from __future__ import annotations

import pytest

from services import notification_service, task_service


@pytest.fixture()
def assigned(db, make_user):
    alice, bob = make_user("alice"), make_user("bob")
    task = task_service.create_task(db, alice.id, "Draft spec", assignee_id=bob.id).task
    return alice, bob, task


def test_mark_read_is_idempotent_and_scoped_to_recipient(db, assigned) -> None:
    alice, bob, _ = assigned
    notif = notification_service.list_notifications(db, bob.id)[0]
    assert notif["is_read"] is False

    # someone else cannot read it
    assert notification_service.mark_read(db, notif["id"], alice.id) is None

    first = notification_service.mark_read(db, notif["id"], bob.id)
    second = notification_service.mark_read(db, notif["id"], bob.id)
    assert first["is_read"] is True
    assert second == first
    assert notification_service.unread_count(db, bob.id) == 0


def test_unread_filter_and_mark_all(db, assigned) -> None:
    alice, bob, task = assigned
    notification_service.send_notification(db, alice.id, bob.id, task["id"], "Ping")
    assert notification_service.unread_count(db, bob.id) == 2

    newest = notification_service.list_notifications(db, bob.id)[0]
    assert newest["message"] == "Ping"
    notification_service.mark_read(db, newest["id"], bob.id)

    unread = notification_service.list_notifications(db, bob.id, unread_only=True)
    assert [n["message"] for n in unread] == ["You have been assigned a new task: Draft spec"]

    assert notification_service.mark_all_read(db, bob.id) == 1
    assert notification_service.mark_all_read(db, bob.id) == 0


def test_send_validates_recipient_and_task(db, assigned) -> None:
    alice, bob, task = assigned
    with pytest.raises(ValueError):
        notification_service.send_notification(db, alice.id, alice.id, task["id"], "Me")
    with pytest.raises(LookupError):
        notification_service.send_notification(db, alice.id, 999, task["id"], "Nobody")
    with pytest.raises(LookupError):
        notification_service.send_notification(db, alice.id, bob.id, 999, "No task")

    sent = notification_service.send_notification(db, alice.id, bob.id, task["id"], "Look")
    assert sent["user_id"] == bob.id
    assert sent["task_id"] == task["id"]
