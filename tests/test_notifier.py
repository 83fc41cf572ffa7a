from trackboard.progress.notifier import ChangeNotifier, SnapshotChanged


def test_versions_move_per_scope():
    notifier = ChangeNotifier()
    assert notifier.version_for(1) == (0, 0)

    notifier.notify_user(1, "task_status")
    assert notifier.version_for(1) == (0, 1)
    assert notifier.version_for(2) == (0, 0)

    notifier.notify_all("track_edited")
    assert notifier.version_for(1) == (1, 1)
    assert notifier.version_for(2) == (1, 0)


def test_listeners_receive_events_until_unsubscribed():
    notifier = ChangeNotifier()
    seen = []
    notifier.subscribe(seen.append)
    notifier.subscribe(seen.append)  # subscribing twice is a no-op

    notifier.notify_user(7, "track_completed")
    assert seen == [SnapshotChanged(scope="user", user_id=7, reason="track_completed")]

    notifier.unsubscribe(seen.append)
    notifier.notify_all("track_deleted")
    assert len(seen) == 1


def test_failing_listener_does_not_block_others():
    notifier = ChangeNotifier()
    seen = []

    def broken(event):
        raise RuntimeError("boom")

    notifier.subscribe(broken)
    notifier.subscribe(seen.append)

    event = notifier.notify_all("task_created")
    assert event.scope == "all"
    assert seen == [event]
