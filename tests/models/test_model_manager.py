"""Unit tests for ModelManager.

This module tests the facade end to end: routing to the address book,
one history commit per successful mutation, undo/redo installation,
filtered views and time-relative queries through the injected clock.
"""

from datetime import timedelta
from pathlib import Path
from uuid import uuid4

import pytest
from pydantic import ValidationError

from addressbook.address_book import AddressBook
from addressbook.exceptions import (
    DuplicateEntityError,
    EntityNotFoundError,
    InvalidArgumentError,
    NothingToRedoError,
    NothingToUndoError,
)
from addressbook.filtered import PREDICATE_SHOW_ALL, NameContainsKeywordsPredicate
from addressbook.history import History
from addressbook.model_manager import ModelManager
from addressbook.prefs import UserPrefs
from tests.fixtures.entities import (
    BASE_TIME,
    at,
    create_meeting,
    create_person,
    create_recurring_meeting,
)
from tests.fixtures.model import create_model_manager


class TestModelManagerInstantiation:
    """Test instantiation patterns for ModelManager."""

    def test_defaults(self):
        model = ModelManager()

        assert model.get_address_book() == AddressBook()
        assert model.get_user_prefs() == UserPrefs()
        assert not model.can_undo
        assert list(model.filtered_persons) == []

    def test_initial_book_is_copied(self, alice, bob):
        source = AddressBook()
        source.add_person(alice)

        model = ModelManager(address_book=source)
        source.add_person(bob)

        assert model.get_address_book().person_list == [alice]

    def test_initial_book_is_history_start(self, alice):
        source = AddressBook()
        source.add_person(alice)

        model = ModelManager(address_book=source)

        assert model.history.current == source.snapshot()

    def test_user_prefs_are_copied(self):
        prefs = UserPrefs(interval_between_meetings=15)

        model = ModelManager(user_prefs=prefs)
        prefs.interval_between_meetings = 45

        assert model.interval_between_meetings == 15

    def test_file_path_setter_coerces_to_path(self):
        model = ModelManager()

        model.address_book_file_path = "backup/book.json"

        assert model.address_book_file_path == Path("backup/book.json")

    def test_invalid_interval_assignment_is_rejected(self, model):
        with pytest.raises(ValidationError):
            model.get_user_prefs().interval_between_meetings = -5

        assert not model.has_conflict(create_meeting())

    def test_equality(self, alice):
        first, second = create_model_manager(), create_model_manager()
        assert first == second

        first.add_person(alice)
        assert first != second

        second.add_person(alice)
        assert first == second

        second.update_filtered_person_list(lambda p: False)
        assert first != second


class TestPersonOperations:
    """Person mutations through the facade."""

    def test_add_person_commits_once(self, model, alice):
        model.add_person(alice)

        assert model.has_person(alice)
        assert model.history.undo_count == 1

    def test_add_person_resets_person_view(self, model, alice, bob):
        model.add_person(alice)
        model.update_filtered_person_list(NameContainsKeywordsPredicate(["Alice"]))

        model.add_person(bob)

        assert model.filtered_persons.predicate is PREDICATE_SHOW_ALL
        assert list(model.filtered_persons) == [alice, bob]

    def test_failed_add_does_not_commit(self, model, alice):
        model.add_person(alice)

        with pytest.raises(DuplicateEntityError):
            model.add_person(alice)

        assert model.history.undo_count == 1

    def test_get_participant(self, model, alice):
        model.add_person(alice)

        assert model.get_participant(alice.uuid) == alice
        with pytest.raises(EntityNotFoundError):
            model.get_participant(uuid4())

    def test_person_map_is_live_and_read_only(self, model, alice, bob):
        person_map = model.get_person_map()
        model.add_person(alice)

        assert dict(person_map) == {alice.uuid: alice}
        with pytest.raises(TypeError):
            person_map[bob.uuid] = bob

    def test_set_person_commits(self, model, alice):
        model.add_person(alice)
        edited = alice.edit(email="alice@work.example.com")

        model.set_person(alice, edited)

        assert model.get_participant(alice.uuid) == edited
        assert model.history.undo_count == 2

    def test_reattach_dependent_meetings_does_not_commit(self, model, alice):
        model.add_person(alice)
        model.add_meeting(create_meeting(participants=(alice.uuid,)))
        versions = model.get_address_book().version

        model.reattach_dependent_meetings(alice)

        assert model.get_address_book().version == versions + 1
        assert model.history.undo_count == 2


class TestMeetingOperations:
    """Meeting mutations and queries through the facade."""

    def test_scenario_from_empty_store(self):
        model = create_model_manager(interval_between_meetings=30)
        p1 = create_person("P One")
        model.add_person(p1)
        m1 = create_meeting("M1", start=at(10), end=at(11), participants=(p1.uuid,))
        model.add_meeting(m1)

        m2 = create_meeting("M2", start=at(11, 15), end=at(12))
        result = model.has_conflict(m2)
        assert result.conflict is True
        assert result.conflicting_meeting == m1

        model.set_user_prefs(UserPrefs(interval_between_meetings=0))
        m3 = create_meeting("M3", start=at(11, 30), end=at(12, 30))
        assert not model.has_conflict(m3)
        model.add_meeting(m3)

        model.delete_person(p1)
        assert model.get_address_book().get_meeting(m1.meeting_id).participants == ()

    def test_has_conflict_uses_interval_preference(self):
        model = create_model_manager(interval_between_meetings=15)
        model.add_meeting(create_meeting(start=at(10), end=at(11)))

        assert model.has_conflict(create_meeting(start=at(11), end=at(12)))
        assert not model.has_conflict(create_meeting(start=at(11, 15), end=at(12)))

    def test_add_meeting_resets_meeting_view(self, model):
        model.update_filtered_meeting_list(lambda m: False)

        model.add_meeting(create_meeting())

        assert len(model.filtered_meetings) == 1

    def test_delete_person_detaches_in_one_commit(self, model, alice, bob):
        model.add_person(alice)
        model.add_person(bob)
        for hour in (9, 13):
            model.add_meeting(create_meeting(start=at(hour), participants=(alice.uuid, bob.uuid)))

        model.delete_person(alice)

        assert all(m.participants == (bob.uuid,) for m in model.filtered_meetings)
        assert model.history.undo_count == 5

    def test_add_recurring_meeting(self, model):
        meeting = create_recurring_meeting(count=4)

        added = model.add_recurring_meeting(meeting)

        assert len(added) == 4
        assert list(model.filtered_meetings) == added
        assert model.history.undo_count == 1

    def test_add_recurring_meeting_is_all_or_nothing(self, model):
        meeting = create_recurring_meeting(count=3)
        model.add_meeting(meeting)

        with pytest.raises(DuplicateEntityError):
            model.add_recurring_meeting(meeting)

        assert model.get_address_book().meetings == [meeting]
        assert model.history.undo_count == 1

    def test_delete_recurring_meetings(self, model):
        added = model.add_recurring_meeting(create_recurring_meeting(count=3))
        lunch = create_meeting("Lunch", start=at(12))
        model.add_meeting(lunch)

        model.delete_recurring_meetings(added[1])

        assert model.get_address_book().meetings == [lunch]

    def test_set_and_delete_meeting(self, model):
        meeting = create_meeting()
        model.add_meeting(meeting)
        edited = meeting.edit(title="Renamed")

        model.set_meeting(meeting, edited)
        assert model.has_meeting(edited)
        assert model.filtered_meetings[0].title == "Renamed"

        model.delete_meeting(edited)
        assert not model.has_meeting(meeting)

    def test_get_next_meeting_uses_clock(self, model, clock):
        model.add_meeting(create_meeting("Morning", start=at(10)))
        model.add_meeting(create_meeting("Evening", start=at(18)))

        assert model.get_next_meeting().title == "Morning"
        assert model.get_next_meeting(timedelta(hours=2)).title == "Evening"

        clock.set_time(at(19))
        assert model.get_next_meeting() is None

    def test_refresh_application_sorts_idempotently(self, model):
        for hour in (15, 9, 12):
            model.add_meeting(create_meeting(f"At {hour}", start=at(hour)))
        undo_count = model.history.undo_count

        model.refresh_application()
        first = list(model.filtered_meetings)
        model.refresh_application()

        assert [m.title for m in first] == ["At 9", "At 12", "At 15"]
        assert list(model.filtered_meetings) == first
        assert model.history.undo_count == undo_count

    def test_refresh_application_keeps_history_in_step(self, model, alice):
        model.add_person(alice)
        model.add_meeting(create_meeting("Late", start=at(15), participants=(alice.uuid,)))
        model.add_meeting(create_meeting("Early", start=at(9)))

        model.refresh_application()

        assert model.history.current == model.get_address_book().snapshot()

    def test_no_op_command_after_refresh_does_not_commit(self, model, alice):
        model.add_person(alice)
        model.add_meeting(create_meeting("Late", start=at(15), participants=(alice.uuid,)))
        model.add_meeting(create_meeting("Early", start=at(9)))
        model.refresh_application()
        undo_count = model.history.undo_count

        model.reattach_dependent_meetings(alice)

        assert model.history.undo_count == undo_count

    def test_sort_survives_undo_redo(self, model):
        model.add_meeting(create_meeting("Late", start=at(15)))
        model.add_meeting(create_meeting("Early", start=at(9)))
        model.refresh_application()

        model.undo()
        model.redo()

        assert [m.title for m in model.filtered_meetings] == ["Early", "Late"]

    def test_sort_meeting_holds_operation_lock(self, model):
        entered = []

        class RecordingLock:
            def __enter__(self):
                entered.append(True)

            def __exit__(self, *exc_info):
                return False

        model._operation_lock = RecordingLock()

        model.sort_meeting()

        assert entered == [True]


class TestViews:
    """Filtered views exposed by the facade."""

    def test_remind_meetings(self, model, clock):
        soon = create_meeting("Soon", start=BASE_TIME + timedelta(hours=3))
        later = create_meeting("Later", start=BASE_TIME + timedelta(days=3))
        model.add_meeting(later)
        model.add_meeting(soon)

        view = model.remind_meetings(24)

        assert list(view) == [soon]

    def test_remind_meetings_rejects_bad_hours(self, model):
        with pytest.raises(InvalidArgumentError):
            model.remind_meetings(0)

    def test_views_are_not_versioned(self, model, alice, bob):
        model.add_person(alice)
        model.add_person(bob)
        model.update_filtered_person_list(NameContainsKeywordsPredicate(["Bob"]))

        model.undo()

        assert model.filtered_persons.predicate == NameContainsKeywordsPredicate(["Bob"])
        assert list(model.filtered_persons) == []


class TestUndoRedo:
    """Undo/redo installs committed snapshots into the live book."""

    def test_undo_restores_previous_state(self, model, alice):
        model.add_person(alice)
        meeting = create_meeting(participants=(alice.uuid,))
        model.add_meeting(meeting)
        before_delete = model.get_address_book().snapshot()

        model.delete_person(alice)
        model.undo()

        assert model.get_address_book().snapshot() == before_delete
        assert list(model.filtered_persons) == [alice]
        assert model.filtered_meetings[0].participants == (alice.uuid,)

    def test_redo_reapplies(self, model, alice):
        model.add_person(alice)
        model.undo()
        assert not model.has_person(alice)

        model.redo()

        assert model.has_person(alice)

    def test_boundaries(self, model, alice):
        with pytest.raises(NothingToUndoError):
            model.undo()

        model.add_person(alice)
        with pytest.raises(NothingToRedoError):
            model.redo()

    def test_new_command_after_undo_discards_redo(self, model, alice, bob):
        model.add_person(alice)
        model.add_person(bob)
        model.undo()

        model.add_person(create_person("Carol Ng"))

        assert not model.can_redo
        with pytest.raises(NothingToRedoError):
            model.redo()
        assert [p.name for p in model.filtered_persons] == ["Alice Tan", "Carol Ng"]

    def test_undo_then_mutate_does_not_corrupt_history(self, model, alice, bob):
        model.add_person(alice)
        committed = model.history.current

        model.add_person(bob)
        model.undo()
        model.get_address_book().add_person(create_person("Direct Write"))

        assert model.history.current == committed

    def test_set_address_book_commits(self, model, alice):
        replacement = AddressBook()
        replacement.add_person(alice)

        model.set_address_book(replacement)
        model.undo()

        assert model.get_address_book() == AddressBook()

    def test_continues_existing_history(self, alice):
        history = History()
        model = ModelManager(history=history)

        model.add_person(alice)

        assert model.history is history
        assert history.undo_count == 1
