"""Tests for entity and column resolution."""

from datetime import datetime

import pytest

from fluxcmd.resolution import ColumnMatch, ColumnRejection, EntityMatch, NotFound
from fluxcmd.resolution.resolver import find_entity, resolve_column, resolve_user, suggest
from fluxcmd.store.models import Task, User
from fluxcmd.workflows import AGILE_WORKFLOW, ITSM_WORKFLOW, WorkflowColumn, WorkflowConfig

CREATED = datetime(2025, 3, 1)

SIMPLE_WORKFLOW = WorkflowConfig(
    id="simple",
    name="Simple",
    columns=[
        WorkflowColumn(id="todo", title="To Do", category="backlog"),
        WorkflowColumn(id="done", title="Done", category="done"),
    ],
)


def make_task(task_id: str, title: str) -> Task:
    return Task(id=task_id, title=title, status="todo", created_at=CREATED, updated_at=CREATED)


@pytest.fixture
def tasks():
    return [
        make_task("task-1", "Fix login bug"),
        make_task("task-2", "Bug triage meeting"),
        make_task("task-3", "Write release notes"),
    ]


@pytest.fixture
def users():
    return [
        User(id="user-1", name="Alice Johnson", email="alice@example.com"),
        User(id="user-2", name="Bob Smith", email="bob@example.com"),
    ]


def by_title(task: Task) -> str:
    return task.title


class TestFindEntity:
    """Test find_entity."""

    def test_exact_id_wins(self, tasks):
        result = find_entity("task-3", tasks, key=by_title)
        assert isinstance(result, EntityMatch)
        assert result.entity.id == "task-3"

    def test_case_insensitive_substring(self, tasks):
        result = find_entity("  RELEASE ", tasks, key=by_title)
        assert result.entity.id == "task-3"
        assert not result.is_ambiguous

    def test_first_match_wins_deterministically(self, tasks):
        """'bug' matches two titles; the earlier one is always chosen."""
        first = find_entity("bug", tasks, key=by_title)
        for _ in range(5):
            again = find_entity("bug", tasks, key=by_title)
            assert again.entity.id == first.entity.id
        assert first.entity.title == "Fix login bug"
        assert [c.id for c in first.candidates] == ["task-2"]
        assert first.is_ambiguous

    def test_iteration_order_decides(self, tasks):
        result = find_entity("bug", list(reversed(tasks)), key=by_title)
        assert result.entity.id == "task-2"

    def test_not_found_offers_suggestions(self, tasks):
        result = find_entity("relase notes", tasks, key=by_title, label="task")
        assert isinstance(result, NotFound)
        assert "Write release notes" in result.suggestions
        assert result.message.startswith("No task found matching 'relase notes'")
        assert "Did you mean: 'Write release notes'" in result.message

    def test_not_found_without_close_titles(self, tasks):
        result = find_entity("zzzz", tasks, key=by_title, label="task")
        assert isinstance(result, NotFound)
        assert result.suggestions == []
        assert result.message == "No task found matching 'zzzz'"

    def test_empty_fragment(self, tasks):
        result = find_entity("   ", tasks, key=by_title, label="task")
        assert isinstance(result, NotFound)
        assert result.message == "No task was specified"

    def test_suggestions_are_capped(self):
        many = [make_task(f"task-{n}", f"Deploy service {n}") for n in range(10)]
        assert len(suggest("deploy", [t.title for t in many])) == 5


class TestResolveUser:
    """Test resolve_user."""

    @pytest.mark.parametrize("word", ["me", "My", " myself "])
    def test_self_references_resolve_to_current_user(self, users, word):
        result = resolve_user(word, users, current_user_id="user-2")
        assert result.entity.id == "user-2"

    def test_self_reference_without_current_user(self, users):
        result = resolve_user("me", users, current_user_id=None)
        assert isinstance(result, NotFound)
        assert "No current user" in result.message

    def test_matches_name_or_email(self, users):
        assert resolve_user("bob", users, None).entity.id == "user-2"
        assert resolve_user("alice@example", users, None).entity.id == "user-1"

    def test_unknown_user(self, users):
        result = resolve_user("Zed", users, None)
        assert isinstance(result, NotFound)
        assert "No user found matching 'Zed'" in result.message


class TestResolveColumn:
    """Test resolve_column."""

    @pytest.mark.parametrize("raw", ["Done", "done", "DONE", "  done "])
    def test_spellings_of_done(self, raw):
        result = resolve_column(raw, SIMPLE_WORKFLOW)
        assert isinstance(result, ColumnMatch)
        assert result.column_id == "done"

    def test_unknown_status_lists_every_column(self):
        result = resolve_column("archived", SIMPLE_WORKFLOW)
        assert isinstance(result, ColumnRejection)
        assert "To Do" in result.message
        assert "Done" in result.message
        assert result.valid_columns == ["To Do (todo)", "Done (done)"]

    @pytest.mark.parametrize(
        "raw, expected, step",
        [
            ("code-review", "code-review", "id"),
            ("Code-Review", "code-review", "id_casefold"),
            ("qa testing", "testing", "title_casefold"),
            ("in_progress", "in-progress", "id_alias"),
            ("in progress", "in-progress", "title_casefold"),
            ("WIP", "in-progress", "id_alias"),
            ("complete", "done", "id_alias"),
            ("Sprint_Backlog", "todo", "title_alias"),
        ],
    )
    def test_resolution_steps(self, raw, expected, step):
        result = resolve_column(raw, AGILE_WORKFLOW)
        assert result.column_id == expected
        assert result.matched_by == step

    def test_category_fallback(self):
        result = resolve_column("done", ITSM_WORKFLOW)
        assert result.column_id == "resolved"
        assert result.matched_by == "category"

    def test_empty_status_is_rejected(self):
        assert isinstance(resolve_column("", AGILE_WORKFLOW), ColumnRejection)
        assert isinstance(resolve_column(None, AGILE_WORKFLOW), ColumnRejection)
