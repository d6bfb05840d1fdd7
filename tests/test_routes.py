"""
Test: HTTP routes: every blueprint exercised through Flask's test client
against a demo-seeded store.
"""
import io

from schooldash import store as actions


NEW_STUDENT = {
    "name": "Maya Brooks",
    "grade": "Grade 4",
    "age": 9,
    "subjects": ["mathematics", "Science"],
    "parent_contacts": {"primary": {"name": "Tom Brooks", "email": "tom@email.com", "phone": "555"}},
}

CSV_TEXT = (
    "name,grade,age,primary_contact_name,primary_contact_email,primary_contact_phone\n"
    "Owen Reyes,Grade 4,10,Ana Reyes,ana@email.com,555-0202\n"
    "Bad Age,Grade 4,x,Ana Reyes,ana@email.com,555-0202\n"
)


class TestAppShell:
    def test_index(self, client):
        resp = client.get('/')
        assert resp.status_code == 200
        assert resp.get_json()["message"] == "SchoolDash Backend"

    def test_state(self, client):
        data = client.get('/api/state').get_json()
        assert set(data) >= {"current_teacher", "students", "classes", "subjects", "assessments",
                             "grade_entries", "analytics", "current_view", "dark_mode"}
        assert len(data["students"]) == 5

    def test_empty_app_has_no_demo(self, empty_app):
        data = empty_app.test_client().get('/api/state').get_json()
        assert data["students"] == []
        assert data["current_teacher"] is None

    def test_settings(self, client):
        data = client.get('/api/settings').get_json()
        assert data["analysis_delay"] == 0
        assert "late_penalty" in data


class TestDashboardRoutes:
    def test_set_view(self, client):
        resp = client.post('/api/view', json={"view": "reports"})
        assert resp.get_json() == {"current_view": "reports"}

    def test_set_unknown_view(self, client):
        resp = client.post('/api/view', json={"view": "calendar"})
        assert resp.status_code == 400
        assert "error" in resp.get_json()

    def test_toggle_theme(self, client):
        assert client.post('/api/theme/toggle').get_json() == {"dark_mode": True}
        assert client.post('/api/theme/toggle').get_json() == {"dark_mode": False}

    def test_dashboard(self, client):
        data = client.get('/api/dashboard').get_json()
        assert data["teacher"]["name"] == "Ms. Sarah Wilson"
        assert data["summary"]["total_students"] == 5
        assert data["summary"]["grades_recorded"] == 40

    def test_results(self, client):
        data = client.get('/api/results?subject=Science').get_json()
        assert data["count"] == 9

    def test_reports(self, client):
        data = client.get('/api/reports?subject=Mathematics').get_json()
        assert [s["subject"] for s in data["subjects"]] == ["Mathematics"]

    def test_demo_reload(self, client, app_store):
        client.delete('/api/students/1')
        resp = client.post('/api/demo/reload')
        assert resp.get_json()["students"] == 5
        assert any(s["id"] == "1" for s in app_store.state["students"])


class TestStudentRoutes:
    def test_list_and_search(self, client):
        assert client.get('/api/students').get_json()["count"] == 5
        data = client.get('/api/students?search=sofia').get_json()
        assert [s["name"] for s in data["students"]] == ["Sofia Chen"]

    def test_create(self, client):
        resp = client.post('/api/students', json=NEW_STUDENT)
        assert resp.status_code == 201
        student = resp.get_json()
        assert student["subjects"] == ["Mathematics", "Science"]
        assert student["emergency_contact"]["name"] == "Tom Brooks"
        assert client.get(f"/api/students/{student['id']}").status_code == 200

    def test_create_invalid(self, client):
        resp = client.post('/api/students', json={"name": "", "grade": "Grade 4", "age": -1})
        assert resp.status_code == 400
        assert resp.get_json()["errors"] == [
            "Student name is required", "Age must be a positive number"]

    def test_get_unknown(self, client):
        assert client.get('/api/students/nope').status_code == 404

    def test_update(self, client):
        resp = client.put('/api/students/1', json={"name": "Emma T.", "age": 10})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["name"] == "Emma T."
        assert data["overall_grade"] == 86

    def test_create_ignores_class_ids(self, client, app_store):
        resp = client.post('/api/students', json={**NEW_STUDENT, "class_ids": ["c1"]})
        student = resp.get_json()
        assert student["class_ids"] == []
        math = next(c for c in app_store.state["classes"] if c["id"] == "c1")
        assert student["id"] not in math["student_ids"]

    def test_update_keeps_class_membership(self, client, app_store):
        before = client.get('/api/students/1').get_json()["class_ids"]
        resp = client.put('/api/students/1', json={"class_ids": [], "overall_grade": 5})
        assert resp.status_code == 200
        assert resp.get_json()["class_ids"] == before
        assert resp.get_json()["overall_grade"] == 86
        math = next(c for c in app_store.state["classes"] if c["id"] == "c1")
        assert "1" in math["student_ids"]

    def test_update_invalid(self, client):
        assert client.put('/api/students/1', json={"age": 0}).status_code == 400
        assert client.put('/api/students/nope', json={"age": 9}).status_code == 404

    def test_delete_leaves_rosters(self, client, app_store):
        assert client.delete('/api/students/2').status_code == 200
        assert all("2" not in c["student_ids"] for c in app_store.state["classes"])


class TestStudentImport:
    def test_json_import(self, client, app_store):
        resp = client.post('/api/students/import', json={"csv": CSV_TEXT})
        data = resp.get_json()
        assert data["status"] == "imported"
        assert data["imported"] == 1
        assert data["errors"] == ["Row 3: Invalid age"]
        assert len(app_store.state["students"]) == 6

    def test_file_upload(self, client, app_store):
        resp = client.post('/api/students/import', data={
            "file": (io.BytesIO(CSV_TEXT.encode("utf-8")), "roster.csv"),
        }, content_type='multipart/form-data')
        assert resp.get_json()["imported"] == 1
        assert len(app_store.state["students"]) == 6

    def test_dry_run(self, client, app_store):
        resp = client.post('/api/students/import', json={"csv": CSV_TEXT, "dry_run": True})
        data = resp.get_json()
        assert data["status"] == "preview"
        assert data["imported"] == 0
        assert len(data["students"]) == 1
        assert len(app_store.state["students"]) == 5

    def test_rejects_other_file_types(self, client):
        resp = client.post('/api/students/import', data={
            "file": (io.BytesIO(b"not a roster"), "roster.xlsx"),
        }, content_type='multipart/form-data')
        assert resp.status_code == 400

    def test_missing_body(self, client):
        assert client.post('/api/students/import', json={}).status_code == 400

    def test_missing_columns(self, client, app_store):
        resp = client.post('/api/students/import', json={"csv": "name,grade\nAva,Grade 4\n"})
        data = resp.get_json()
        assert data["imported"] == 0
        assert data["errors"][0].startswith("Missing required columns:")
        assert len(app_store.state["students"]) == 5

    def test_template_download(self, client):
        resp = client.get('/api/students/import-template')
        assert resp.status_code == 200
        assert resp.mimetype == 'text/csv'
        assert "attachment" in resp.headers["Content-Disposition"]
        assert resp.get_data(as_text=True).startswith("name,grade,age,")


class TestClassRoutes:
    def test_list_with_stats(self, client):
        data = client.get('/api/classes').get_json()
        assert data["count"] == 3
        math = next(c for c in data["classes"] if c["id"] == "c1")
        assert math["stats"]["student_count"] == 5

    def test_create(self, client):
        resp = client.post('/api/classes', json={
            "name": "Grade 4 History", "subject": "history", "room": "Room 104",
            "schedule": [{"day": "Thursday", "time": "14:00", "duration": 45}],
        })
        assert resp.status_code == 201
        cls = resp.get_json()
        assert cls["subject"] == "History"
        assert cls["teacher_id"] == "1"
        assert cls["student_ids"] == []

    def test_create_invalid(self, client):
        resp = client.post('/api/classes', json={})
        assert resp.status_code == 400
        assert len(resp.get_json()["errors"]) == 4

    def test_create_ignores_student_ids(self, client, app_store):
        resp = client.post('/api/classes', json={
            "name": "Grade 4 Art", "subject": "Art", "room": "Room 105",
            "schedule": [{"day": "Friday", "time": "10:00"}], "student_ids": ["1", "2"],
        })
        cls = resp.get_json()
        assert cls["student_ids"] == []
        assert all(cls["id"] not in s["class_ids"] for s in app_store.state["students"])

    def test_create_with_malformed_schedule(self, client):
        resp = client.post('/api/classes', json={
            "name": "Grade 4 Art", "subject": "Art", "room": "Room 105", "schedule": ["Friday"],
        })
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid schedule entry: Friday"

    def test_details(self, client):
        data = client.get('/api/classes/c3').get_json()
        assert data["class"]["name"] == "Grade 4 Science"
        assert data["schedule"] == "Wednesday 13:00 (90min)"
        assert len(data["students"]) == 3
        assert client.get('/api/classes/nope').status_code == 404

    def test_update(self, client):
        resp = client.put('/api/classes/c3', json={"room": "Lab 2"})
        assert resp.get_json()["room"] == "Lab 2"
        assert client.put('/api/classes/c3', json={"room": ""}).status_code == 400

    def test_enroll_and_unenroll(self, client, app_store):
        resp = client.post('/api/classes/c3/students', json={"student_ids": ["2"]})
        assert "2" in resp.get_json()["student_ids"]
        liam = next(s for s in app_store.state["students"] if s["id"] == "2")
        assert "c3" in liam["class_ids"]

        resp = client.delete('/api/classes/c3/students/2')
        assert "2" not in resp.get_json()["student_ids"]
        liam = next(s for s in app_store.state["students"] if s["id"] == "2")
        assert "c3" not in liam["class_ids"]

    def test_enroll_unknown_class(self, client):
        assert client.post('/api/classes/nope/students', json={"student_ids": ["2"]}).status_code == 404

    def test_delete(self, client, app_store):
        client.delete('/api/classes/c2')
        assert all("c2" not in s["class_ids"] for s in app_store.state["students"])


class TestAssessmentRoutes:
    def test_list(self, client):
        data = client.get('/api/assessments?class_id=c2').get_json()
        assert [a["id"] for a in data["assessments"]] == ["a5", "a6", "a7"]
        assert data["assessments"][0]["class_name"] == "Grade 4 English"
        assert data["assessments"][0]["completion"]["completion"] == 100

    def test_create_inherits_subject(self, client):
        resp = client.post('/api/assessments', json={
            "class_id": "c3", "title": "Magnets Quiz", "due_date": "2030-01-10",
            "total_marks": 10, "weight": 5,
        })
        assert resp.status_code == 201
        assert resp.get_json()["subject"] == "Science"

    def test_create_invalid(self, client):
        resp = client.post('/api/assessments', json={"title": "No class", "total_marks": 0})
        assert resp.status_code == 400
        errors = resp.get_json()["errors"]
        assert "Class is required" in errors
        assert "Total marks must be greater than zero" in errors

    def test_update(self, client):
        resp = client.put('/api/assessments/a1', json={"title": "Times Tables Quiz"})
        assert resp.get_json()["title"] == "Times Tables Quiz"
        assert client.put('/api/assessments/nope', json={}).status_code == 404

    def test_update_with_string_marks_then_grade(self, client, app_store):
        resp = client.put('/api/assessments/a4', json={"total_marks": "40", "weight": "20"})
        assert resp.status_code == 200
        assert resp.get_json()["total_marks"] == 40.0
        assert resp.get_json()["weight"] == 20.0

        resp = client.post('/api/assessments/a4/grades', json={"grades": {"5": {"score": 30}}})
        assert resp.status_code == 200
        assert resp.get_json()["saved"] == 1
        entry = next(g for g in app_store.state["grade_entries"]
                     if g["assessment_id"] == "a4" and g["student_id"] == "5")
        assert entry["percentage"] == 75
        assert client.get('/api/assessments/history').status_code == 200

    def test_update_canonicalises_subject(self, client):
        assert client.put('/api/assessments/a1', json={"subject": " science "}).get_json()[
            "subject"] == "Science"
        assert client.put('/api/assessments/a1', json={"subject": ""}).get_json()[
            "subject"] == "Mathematics"

    def test_grade_sheet(self, client):
        data = client.get('/api/assessments/a4/grades').get_json()
        assert len(data["rows"]) == 5
        assert data["saved_count"] == 4
        ava = next(r for r in data["rows"] if r["student_id"] == "5")
        assert ava["graded"] is False
        assert client.get('/api/assessments/nope/grades').status_code == 404

    def test_save_grades_refreshes_analytics(self, client, app_store):
        before = app_store.state["analytics"]
        resp = client.post('/api/assessments/a4/grades', json={
            "grades": {"5": {"score": 40, "feedback": "Well measured"}, "2": {"score": 0}},
        })
        data = resp.get_json()
        assert data["saved"] == 1
        assert data["completion"]["completion"] == 100

        state = app_store.state
        entry = next(g for g in state["grade_entries"]
                     if g["assessment_id"] == "a4" and g["student_id"] == "5")
        assert entry["percentage"] == 80
        assert entry["is_late"] is True
        assert state["analytics"] is not before
        assert not any(a["type"] == "missing_assignment" for a in state["analytics"]["alerts"])

    def test_save_grades_without_auto_refresh(self, client, app_store, restore_config):
        restore_config.update({"auto_refresh_analytics": False})
        before = app_store.state["analytics"]
        client.post('/api/assessments/a4/grades', json={"grades": {"5": {"score": 40}}})
        assert app_store.state["analytics"] is before

    def test_save_grades_bad_body(self, client):
        assert client.post('/api/assessments/a4/grades', json={"grades": []}).status_code == 400
        assert client.post('/api/assessments/nope/grades', json={"grades": {}}).status_code == 404

    def test_delete_removes_grades(self, client, app_store):
        client.delete('/api/assessments/a10')
        state = app_store.state
        assert all(g["assessment_id"] != "a10" for g in state["grade_entries"])
        sofia = next(s for s in state["students"] if s["id"] == "3")
        assert sofia["overall_grade"] == 95

    def test_history(self, client):
        data = client.get('/api/assessments/history?class_id=c3').get_json()
        assert data["count"] == 3


class TestAnalyticsRoutes:
    def test_snapshot(self, client):
        data = client.get('/api/analytics').get_json()
        assert data["overview"]["unread_alerts"] == len(data["alerts"])
        assert data["last_updated"] is not None

    def test_section(self, client):
        data = client.get('/api/analytics/learning_gaps').get_json()
        assert data["count"] == len(data["learning_gaps"])

    def test_unknown_section(self, client):
        assert client.get('/api/analytics/horoscope').status_code == 404

    def test_overview(self, client):
        data = client.get('/api/analytics/overview').get_json()
        assert set(data) >= {"total_insights", "high_priority_insights", "unread_alerts",
                             "open_gaps", "pending_recommendations"}

    def test_refresh(self, client, app_store):
        app_store.dispatch(actions.UPDATE_AI_ANALYTICS, actions.empty_analytics())
        data = client.post('/api/analytics/refresh').get_json()
        assert data["trends"]
        assert app_store.state["analytics"]["trends"] == data["trends"]
