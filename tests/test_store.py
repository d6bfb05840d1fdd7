"""
Test: State store: reducer transitions, cascades, membership and subscribers.
"""
import pytest

from schooldash import store as actions
from schooldash.store import Store, initial_state, reduce


def _student(sid, class_ids=None):
    return {"id": sid, "name": f"Student {sid}", "grade": "Grade 4", "age": 9,
            "subjects": ["Mathematics"], "class_ids": list(class_ids or [])}


def _class(cid, student_ids=None):
    return {"id": cid, "name": f"Class {cid}", "subject": "Mathematics",
            "student_ids": list(student_ids or [])}


class TestReduce:
    def test_initial_state_shape(self):
        state = initial_state()
        assert state["current_view"] == "dashboard"
        assert state["dark_mode"] is False
        assert [s["name"] for s in state["subjects"]] == [
            "Mathematics", "English", "Science", "History", "Geography"]
        assert state["analytics"]["last_updated"] is None

    def test_add_does_not_mutate_input(self):
        state = initial_state()
        new_state = reduce(state, {"type": actions.ADD_STUDENT, "payload": _student("s1")})
        assert state["students"] == []
        assert len(new_state["students"]) == 1

    def test_untouched_collections_are_shared(self):
        state = initial_state()
        new_state = reduce(state, {"type": actions.ADD_STUDENT, "payload": _student("s1")})
        assert new_state["classes"] is state["classes"]

    def test_unknown_action_returns_same_state(self):
        state = initial_state()
        assert reduce(state, {"type": "NOT_A_THING", "payload": 1}) is state

    def test_update_missing_id_is_noop(self):
        state = reduce(initial_state(), {"type": actions.ADD_STUDENT, "payload": _student("s1")})
        new_state = reduce(state, {"type": actions.UPDATE_STUDENT, "payload": _student("ghost")})
        assert new_state["students"] == state["students"]

    def test_delete_missing_id_is_noop(self):
        state = reduce(initial_state(), {"type": actions.ADD_STUDENT, "payload": _student("s1")})
        new_state = reduce(state, {"type": actions.DELETE_STUDENT, "payload": "ghost"})
        assert [s["id"] for s in new_state["students"]] == ["s1"]

    def test_payload_is_copied(self):
        payload = _student("s1")
        state = reduce(initial_state(), {"type": actions.ADD_STUDENT, "payload": payload})
        payload["name"] = "Changed"
        assert state["students"][0]["name"] == "Student s1"

    def test_bulk_add(self):
        state = reduce(initial_state(), {
            "type": actions.BULK_ADD_STUDENTS, "payload": [_student("a"), _student("b")]})
        assert [s["id"] for s in state["students"]] == ["a", "b"]

    def test_toggle_dark_mode_and_view(self):
        state = reduce(initial_state(), {"type": actions.TOGGLE_DARK_MODE})
        state = reduce(state, {"type": actions.SET_VIEW, "payload": "analytics"})
        assert state["dark_mode"] is True
        assert state["current_view"] == "analytics"


class TestCascades:
    def _seeded(self):
        state = initial_state()
        state = reduce(state, {"type": actions.ADD_STUDENT, "payload": _student("s1", ["c1"])})
        state = reduce(state, {"type": actions.ADD_CLASS, "payload": _class("c1", ["s1"])})
        return state

    def test_delete_student_leaves_rosters(self):
        state = reduce(self._seeded(), {"type": actions.DELETE_STUDENT, "payload": "s1"})
        assert state["classes"][0]["student_ids"] == []

    def test_delete_class_leaves_students(self):
        state = reduce(self._seeded(), {"type": actions.DELETE_CLASS, "payload": "c1"})
        assert state["students"][0]["class_ids"] == []

    def test_delete_assessment_drops_grades(self):
        state = initial_state()
        state = reduce(state, {"type": actions.ADD_ASSESSMENT, "payload": {"id": "a1"}})
        state = reduce(state, {"type": actions.ADD_GRADE_ENTRY,
                               "payload": {"id": "g1", "assessment_id": "a1"}})
        state = reduce(state, {"type": actions.ADD_GRADE_ENTRY,
                               "payload": {"id": "g2", "assessment_id": "other"}})
        state = reduce(state, {"type": actions.DELETE_ASSESSMENT, "payload": "a1"})
        assert state["assessments"] == []
        assert [g["id"] for g in state["grade_entries"]] == ["g2"]


class TestMembership:
    def _state(self):
        state = initial_state()
        state = reduce(state, {"type": actions.ADD_STUDENT, "payload": _student("s1")})
        return reduce(state, {"type": actions.ADD_CLASS, "payload": _class("c1")})

    def test_enroll_updates_both_sides(self):
        state = reduce(self._state(), {"type": actions.ENROLL_STUDENT,
                                       "payload": {"class_id": "c1", "student_id": "s1"}})
        assert state["classes"][0]["student_ids"] == ["s1"]
        assert state["students"][0]["class_ids"] == ["c1"]

    def test_enroll_twice_keeps_one_membership(self):
        enroll = {"type": actions.ENROLL_STUDENT, "payload": {"class_id": "c1", "student_id": "s1"}}
        state = reduce(reduce(self._state(), enroll), enroll)
        assert state["classes"][0]["student_ids"] == ["s1"]

    def test_unenroll(self):
        payload = {"class_id": "c1", "student_id": "s1"}
        state = reduce(self._state(), {"type": actions.ENROLL_STUDENT, "payload": payload})
        state = reduce(state, {"type": actions.UNENROLL_STUDENT, "payload": payload})
        assert state["classes"][0]["student_ids"] == []
        assert state["students"][0]["class_ids"] == []

    def test_enroll_unknown_student_is_noop(self):
        state = self._state()
        new_state = reduce(state, {"type": actions.ENROLL_STUDENT,
                                   "payload": {"class_id": "c1", "student_id": "ghost"}})
        assert new_state is state


class TestLoadInitialData:
    def test_seeds_collections(self, demo_payload):
        state = reduce(initial_state(), {"type": actions.LOAD_INITIAL_DATA, "payload": demo_payload})
        assert state["current_teacher"]["name"] == "Ms. Sarah Wilson"
        assert len(state["students"]) == len(demo_payload["students"])
        assert len(state["grade_entries"]) == len(demo_payload["grade_entries"])
        assert state["analytics"]["last_updated"] is not None


class TestStore:
    def test_dispatch_returns_new_state(self, store):
        state = store.dispatch(actions.ADD_STUDENT, _student("s1"))
        assert state is store.state
        assert store.state["students"][0]["id"] == "s1"

    def test_subscriber_sees_action_and_state(self, store):
        seen = []
        store.subscribe(lambda action, state: seen.append((action["type"], len(state["students"]))))
        store.dispatch(actions.ADD_STUDENT, _student("s1"))
        assert seen == [(actions.ADD_STUDENT, 1)]

    def test_unsubscribe(self, store):
        seen = []
        unsubscribe = store.subscribe(lambda action, state: seen.append(action["type"]))
        unsubscribe()
        store.dispatch(actions.TOGGLE_DARK_MODE)
        assert seen == []

    def test_subscriber_may_dispatch(self, store):
        def _follow_up(action, state):
            if action["type"] == actions.ADD_STUDENT:
                store.dispatch(actions.SET_VIEW, "students")

        store.subscribe(_follow_up)
        store.dispatch(actions.ADD_STUDENT, _student("s1"))
        assert store.state["current_view"] == "students"

    def test_starts_from_given_state(self):
        state = initial_state()
        state["dark_mode"] = True
        assert Store(state).state["dark_mode"] is True


class TestMalformedPayloads:
    @pytest.mark.parametrize("action_type", [
        actions.ADD_STUDENT, actions.UPDATE_STUDENT, actions.BULK_ADD_STUDENTS,
        actions.ADD_CLASS, actions.UPDATE_CLASS, actions.ENROLL_STUDENT, actions.UNENROLL_STUDENT,
        actions.ADD_ASSESSMENT, actions.UPDATE_ASSESSMENT, actions.ADD_GRADE_ENTRY,
        actions.UPDATE_GRADE_ENTRY, actions.UPDATE_AI_ANALYTICS, actions.LOAD_INITIAL_DATA,
    ])
    def test_none_payload_leaves_state(self, action_type):
        state = reduce(initial_state(), {"type": actions.ADD_STUDENT, "payload": _student("s1")})
        state = reduce(state, {"type": actions.ADD_CLASS, "payload": _class("c1")})
        assert reduce(state, {"type": action_type, "payload": None}) == state

    def test_record_without_id_is_ignored(self):
        state = reduce(initial_state(), {"type": actions.ADD_STUDENT, "payload": _student("s1")})
        new_state = reduce(state, {"type": actions.UPDATE_STUDENT, "payload": {"name": "No id"}})
        assert new_state["students"] == state["students"]

    def test_bulk_add_skips_non_records(self):
        state = reduce(initial_state(), {
            "type": actions.BULK_ADD_STUDENTS, "payload": [_student("a"), "b", None]})
        assert [s["id"] for s in state["students"]] == ["a"]


class TestActionCreator:
    def test_builds_action(self):
        assert actions.action(actions.SET_VIEW, "reports") == {"type": "SET_VIEW", "payload": "reports"}

    def test_dispatch_hands_listeners_the_built_action(self, store):
        seen = []
        store.subscribe(lambda action, state: seen.append(action))
        store.dispatch(actions.SET_VIEW, "reports")
        assert seen == [actions.action(actions.SET_VIEW, "reports")]

    def test_dispatching_unknown_type_keeps_state(self, store):
        before = store.state
        assert store.dispatch("NOPE", {"id": "x"}) is before

    def test_every_handler_has_a_constant(self):
        assert actions.DATA_ACTIONS <= actions.ACTION_TYPES
        assert len(actions.ACTION_TYPES) == 20
