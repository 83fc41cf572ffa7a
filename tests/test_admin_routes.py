from conftest import create_track, login_client, unique_email


def promote(superadmin, client, role="admin"):
    user_id = client.get("/api/me").json()["id"]
    resp = superadmin.put(f"/admin/users/{user_id}/role", data={"role": role})
    assert resp.status_code == 200, resp.text
    return user_id


def test_admin_routes_reject_learners(learner):
    assert learner.get("/admin/tracks").status_code == 403
    assert learner.post("/admin/tracks", data={"name": "Nope"}).status_code == 403
    assert learner.get("/admin/users").status_code == 403


def test_track_crud(superadmin):
    created = superadmin.post(
        "/admin/tracks",
        data={
            "name": "  CRUD week ",
            "description": "Basics",
            "start_date": "2035-05-05",
            "end_date": "2035-05-11",
        },
    )
    assert created.status_code == 200
    track = created.json()["track"]
    assert track["name"] == "CRUD week"
    assert track["status"] == "upcoming"
    assert track["task_count"] == 0

    updated = superadmin.put(f"/admin/tracks/{track['id']}", data={"name": "CRUD week (edited)", "status": "past"})
    assert updated.status_code == 200
    assert updated.json()["track"]["name"] == "CRUD week (edited)"
    assert updated.json()["track"]["status"] == "completed"
    # Untouched fields stay as they were
    assert updated.json()["track"]["description"] == "Basics"

    cleared = superadmin.put(f"/admin/tracks/{track['id']}", data={"clear": "description,end_date"})
    assert cleared.status_code == 200
    assert cleared.json()["track"]["description"] is None
    assert cleared.json()["track"]["end_date"] is None
    assert cleared.json()["track"]["start_date"] == "2035-05-05"

    listed = superadmin.get("/admin/tracks").json()["tracks"]
    assert any(t["id"] == track["id"] for t in listed)

    deleted = superadmin.delete(f"/admin/tracks/{track['id']}")
    assert deleted.status_code == 200
    assert superadmin.delete(f"/admin/tracks/{track['id']}").status_code == 404


def test_track_validation(superadmin):
    bad_date = superadmin.post("/admin/tracks", data={"name": "Bad", "start_date": "05/05/2035"})
    assert bad_date.status_code == 400

    backwards = superadmin.post(
        "/admin/tracks",
        data={"name": "Backwards", "start_date": "2035-05-11", "end_date": "2035-05-05"},
    )
    assert backwards.status_code == 400
    assert backwards.json()["detail"] == "End date cannot be before start date"

    bad_status = superadmin.post("/admin/tracks", data={"name": "Odd", "status": "someday"})
    assert bad_status.status_code == 400

    track_id, _ = create_track(superadmin, "Validation week", "2035-06-01", "2035-06-07", tasks=())
    unknown_clear = superadmin.put(f"/admin/tracks/{track_id}", data={"clear": "name"})
    assert unknown_clear.status_code == 400


def test_task_crud(superadmin):
    track_id, (first, second) = create_track(superadmin, "Task week", "2036-01-01", tasks=("One", "Two"))

    appended = superadmin.post(
        f"/admin/tracks/{track_id}/tasks",
        data={"name": "Three", "caption": "Wrap up", "deadline": "2036-01-07T18:00:00Z"},
    )
    assert appended.status_code == 200
    third = appended.json()["task"]
    assert third["task_order"] == 3
    assert third["deadline"].startswith("2036-01-07T18:00:00")

    bad_deadline = superadmin.post(f"/admin/tracks/{track_id}/tasks", data={"name": "Late", "deadline": "soon"})
    assert bad_deadline.status_code == 400

    moved = superadmin.put(f"/admin/tasks/{first}", data={"task_order": 9})
    assert moved.status_code == 200
    names = [t["name"] for t in superadmin.get(f"/admin/tracks/{track_id}/tasks").json()["tasks"]]
    assert names == ["Two", "Three", "One"]

    cleared = superadmin.put(f"/admin/tasks/{third['id']}", data={"clear": "caption,deadline"})
    assert cleared.json()["task"]["caption"] is None
    assert cleared.json()["task"]["deadline"] is None

    assert superadmin.delete(f"/admin/tasks/{second}").status_code == 200
    assert superadmin.put(f"/admin/tasks/{second}", data={"name": "Ghost"}).status_code == 404


def test_deleting_track_removes_tasks_and_progress(superadmin, learner):
    track_id, (a, b) = create_track(superadmin, "Doomed week", "2037-01-01", tasks=("A", "B"))
    learner.post(f"/api/tasks/{a}/status", data={"status": "in-progress"})
    learner.post(f"/api/tasks/{a}/status", data={"status": "completed"})

    resp = superadmin.delete(f"/admin/tracks/{track_id}")
    assert resp.status_code == 200
    assert resp.json()["deleted_tasks"] == 2

    assert learner.get(f"/api/tracks/{track_id}").status_code == 404
    assert learner.post(f"/api/tasks/{b}/status", data={"status": "in-progress"}).status_code == 404
    dashboard = learner.get("/api/me/dashboard").json()
    assert dashboard["stats"]["orphaned_tasks"] == 0
    assert dashboard["current_track_id"] != track_id


def test_sync_status_follows_dates(superadmin):
    track_id, _ = create_track(superadmin, "Past week", "2020-01-06", "2020-01-12", tasks=())

    resp = superadmin.post("/admin/tracks/sync-status")
    assert resp.status_code == 200
    changes = [c for c in resp.json()["changed"] if c["track_id"] == track_id]
    assert changes == [{"track_id": track_id, "from": "upcoming", "to": "completed"}]

    again = superadmin.post("/admin/tracks/sync-status").json()["changed"]
    assert all(c["track_id"] != track_id for c in again)


def test_admins_only_manage_assigned_tracks(superadmin):
    admin = login_client(unique_email("admin"))
    admin_id = promote(superadmin, admin)

    foreign_id, _ = create_track(superadmin, "Superadmin week", "2038-01-01", tasks=())
    own = admin.post("/admin/tracks", data={"name": "Admin week", "start_date": "2038-02-01"})
    assert own.status_code == 200
    own_id = own.json()["track"]["id"]

    visible = [t["id"] for t in admin.get("/admin/tracks").json()["tracks"]]
    assert visible == [own_id]
    assert superadmin.get(f"/admin/tracks/{own_id}/assignments").json()["admin_user_ids"] == [admin_id]

    assert admin.put(f"/admin/tracks/{foreign_id}", data={"name": "Mine now"}).status_code == 403
    assert admin.post(f"/admin/tracks/{foreign_id}/tasks", data={"name": "X"}).status_code == 403

    assigned = superadmin.post(f"/admin/tracks/{foreign_id}/assignments", data={"admin_user_id": admin_id})
    assert assigned.status_code == 200
    assert superadmin.get(f"/admin/tracks/{foreign_id}/assignments").json()["admin_user_ids"] == [admin_id]
    assert admin.put(f"/admin/tracks/{foreign_id}", data={"name": "Shared week"}).status_code == 200

    unassigned = superadmin.delete(f"/admin/tracks/{foreign_id}/assignments/{admin_id}")
    assert unassigned.status_code == 200
    assert admin.put(f"/admin/tracks/{foreign_id}", data={"name": "Again"}).status_code == 403

    # Demoting drops the remaining assignments
    promote(superadmin, admin, role="user")
    assert superadmin.get(f"/admin/tracks/{own_id}/assignments").json()["admin_user_ids"] == []
    assert admin.get("/admin/tracks").status_code == 403


def test_role_changes_are_superadmin_only(superadmin, learner):
    admin = login_client(unique_email("admin"))
    promote(superadmin, admin)
    learner_id = learner.get("/api/me").json()["id"]

    assert admin.put(f"/admin/users/{learner_id}/role", data={"role": "admin"}).status_code == 403
    assert superadmin.put(f"/admin/users/{learner_id}/role", data={"role": "wizard"}).status_code == 400

    track_id, _ = create_track(superadmin, "Role week", "2039-01-01", tasks=())
    only_admins = superadmin.post(f"/admin/tracks/{track_id}/assignments", data={"admin_user_id": learner_id})
    assert only_admins.status_code == 400

    own_id = superadmin.get("/api/me").json()["id"]
    demote_self = superadmin.put(f"/admin/users/{own_id}/role", data={"role": "user"})
    assert demote_self.status_code == 400

    users = admin.get("/admin/users").json()["users"]
    assert any(u["id"] == learner_id for u in users)


def test_adding_task_reopens_completed_track(superadmin, learner):
    week, (a,) = create_track(superadmin, "Grown week", "2040-01-01", tasks=("A",))
    _, (b,) = create_track(superadmin, "Following week", "2040-01-08", tasks=("B",))

    learner.post(f"/api/tasks/{a}/status", data={"status": "in-progress"})
    learner.post(f"/api/tasks/{a}/status", data={"status": "completed"})
    assert learner.post(f"/api/tracks/{week}/complete").status_code == 200
    learner.post(f"/api/tasks/{b}/status", data={"status": "in-progress"})
    assert learner.get(f"/api/tracks/{week}").json()["summary"]["state"] == "completed"

    added = superadmin.post(f"/admin/tracks/{week}/tasks", data={"name": "Extra"})
    assert added.status_code == 200

    summary = learner.get(f"/api/tracks/{week}").json()["summary"]
    assert summary["state"] == "upcoming"
    assert summary["percent"] == 50
    assert summary["can_complete"] is False
