"""Tests for the review service: refresh flow and MCP tool semantics."""

import json

import pytest
from conftest import INTERLEAVED_DIFF, SCENARIO_A_DIFF, SCENARIO_C_DIFF

from reviewbridge.core.exceptions import (
    AnchorResolutionError,
    CommentNotFoundError,
    NoRepositoryError,
    RepositoryError,
)
from reviewbridge.diff.parser import parse_diff
from reviewbridge.models.comment import Comment, Origin
from reviewbridge.models.requests import (
    AddCommentRequest,
    DeleteCommentRequest,
    GetCommentsRequest,
    GetDiffRequest,
    UpdateCommentRequest,
)


@pytest.mark.asyncio
async def test_scenario_b_add_comment_by_line_ref(loaded_service):
    result = json.loads(
        await loaded_service.handle_tool(
            AddCommentRequest(file_path="a.ts", line_ref=2, text="fix this")
        )
    )
    assert result["success"] is True
    assert result["comment"]["line_ref"] == 2

    (stored,) = loaded_service.store.list()
    assert stored.anchor_line == 2
    assert stored.outdated is False
    assert stored.id == result["comment"]["id"]


@pytest.mark.asyncio
async def test_scenario_c_refresh_marks_comment_outdated(loaded_service):
    await loaded_service.handle_tool(AddCommentRequest(file_path="a.ts", line_ref=2, text="fix this"))
    loaded_service.next_snapshot = parse_diff(SCENARIO_C_DIFF)

    await loaded_service.refresh()

    (stored,) = loaded_service.store.list()
    assert stored.outdated is True


@pytest.mark.asyncio
async def test_scenario_d_update_unknown_id(loaded_service):
    loaded_service.add_comment("a.ts", 2, "keep me")
    message = await loaded_service.handle_tool(UpdateCommentRequest(id="nope", text="new text"))
    assert "not found" in message
    assert len(loaded_service.store) == 1
    assert loaded_service.store.list()[0].text == "keep me"


@pytest.mark.asyncio
async def test_scenario_e_same_line_twice(loaded_service):
    loaded_service.snapshot = parse_diff(
        "diff --git a/b.ts b/b.ts\n"
        "--- a/b.ts\n"
        "+++ b/b.ts\n"
        "@@ -4,2 +4,3 @@\n"
        " four\n"
        "+five\n"
        " six\n"
    )
    await loaded_service.handle_tool(AddCommentRequest(file_path="b.ts", line_ref=5, text="first"))
    await loaded_service.handle_tool(AddCommentRequest(file_path="b.ts", line_ref=5, text="second"))
    comments = loaded_service.store.list("b.ts")
    assert len(comments) == 1
    assert comments[0].text == "second"


@pytest.mark.asyncio
async def test_add_comment_unresolvable_line_is_a_message(loaded_service):
    message = await loaded_service.handle_tool(
        AddCommentRequest(file_path="a.ts", line_ref=40, text="nowhere")
    )
    assert message.startswith("Line 40 not found in diff for a.ts")
    assert "get_diff" in message
    assert len(loaded_service.store) == 0


@pytest.mark.asyncio
async def test_delete_comment_tool(loaded_service):
    comment = loaded_service.add_comment("a.ts", 2, "bye")
    assert json.loads(await loaded_service.handle_tool(DeleteCommentRequest(id=comment.id))) == {
        "success": True
    }
    assert len(loaded_service.store) == 0
    message = await loaded_service.handle_tool(DeleteCommentRequest(id=comment.id))
    assert message == f"Comment {comment.id} not found."


@pytest.mark.asyncio
async def test_update_comment_tool(loaded_service):
    comment = loaded_service.add_comment("a.ts", 2, "old")
    await loaded_service.handle_tool(UpdateCommentRequest(id=comment.id, text="new"))
    assert loaded_service.store.get(comment.id).text == "new"


@pytest.mark.asyncio
async def test_get_diff_reports_line_refs_not_stable_ids(loaded_service):
    files = json.loads(await loaded_service.handle_tool(GetDiffRequest()))
    assert len(files) == 1
    hunk = files[0]["hunks"][0]
    assert hunk["header"] == "@@ -1,3 +1,4 @@"
    assert hunk["lines"] == [
        {"line_ref": 1, "type": "context", "content": " const a = 1"},
        {"line_ref": 2, "type": "added", "content": "+const b = 2"},
    ]
    assert "stable_id" not in json.dumps(files)


@pytest.mark.asyncio
async def test_get_diff_filters_by_file(loaded_service):
    assert json.loads(await loaded_service.handle_tool(GetDiffRequest(file_path="other.ts"))) == []


@pytest.mark.asyncio
async def test_get_diff_without_repository(service):
    message = await service.handle_tool(GetDiffRequest())
    assert message.startswith("No repository is open")


@pytest.mark.asyncio
async def test_get_comments_sorted_with_line_refs(loaded_service):
    loaded_service.store.add(Comment(file_path="z.ts", anchor_line=0, text="elsewhere"))
    loaded_service.add_comment("a.ts", 2, "second line")
    loaded_service.add_comment("a.ts", 1, "first line")
    comments = json.loads(await loaded_service.handle_tool(GetCommentsRequest()))
    assert [(c["file_path"], c["line_ref"]) for c in comments] == [
        ("a.ts", 1),
        ("a.ts", 2),
        ("z.ts", None),
    ]
    only_a = json.loads(await loaded_service.handle_tool(GetCommentsRequest(file_path="a.ts")))
    assert len(only_a) == 2


@pytest.mark.asyncio
async def test_refresh_failure_clears_snapshot_but_keeps_comments(loaded_service, monkeypatch):
    loaded_service.add_comment("a.ts", 2, "survives")

    async def failing_fetch(repository):
        raise RepositoryError(repository.root_path, "boom")

    monkeypatch.setattr("reviewbridge.services.review_service.fetch_diff", failing_fetch)
    with pytest.raises(RepositoryError):
        await loaded_service.refresh()
    assert loaded_service.snapshot is None
    assert loaded_service.selected is None
    (comment,) = loaded_service.store.list()
    assert comment.outdated is False


@pytest.mark.asyncio
async def test_refresh_without_repository(service):
    with pytest.raises(NoRepositoryError):
        await service.refresh()


@pytest.mark.asyncio
async def test_refresh_keeps_selection(loaded_service):
    await loaded_service.refresh()
    assert loaded_service.selected == ("a.ts", False)
    loaded_service.next_snapshot = parse_diff(SCENARIO_C_DIFF) + parse_diff(
        SCENARIO_A_DIFF.replace("a.ts", "c.ts")
    )
    loaded_service.select_file("a.ts", False)
    await loaded_service.refresh()
    assert loaded_service.selected == ("a.ts", False)


@pytest.mark.asyncio
async def test_open_repository_failure(service, tmp_path):
    with pytest.raises(RepositoryError):
        await service.open_repository(str(tmp_path / "missing"))
    assert service.repository is None
    assert service.snapshot is None


def test_ui_add_comment_requires_existing_anchor(loaded_service):
    with pytest.raises(AnchorResolutionError):
        loaded_service.add_comment("a.ts", 17, "no such row")


def test_ui_delete_unknown_comment(loaded_service):
    with pytest.raises(CommentNotFoundError):
        loaded_service.delete_comment("missing")


def test_protocol_mutations_are_pushed_to_ui(loaded_service):
    queue = loaded_service.coordinator.subscribe_ui()
    loaded_service.add_comment("a.ts", 2, "from ui")
    assert queue.empty()
    loaded_service.add_comment("a.ts", 1, "from agent", origin=Origin.PROTOCOL)
    assert queue.get_nowait().comment.text == "from agent"


def test_export_review(loaded_service):
    loaded_service.add_comment("a.ts", 2, "fix this")
    loaded_service.store.add(Comment(file_path="a.ts", anchor_line=9, text="old", outdated=True))
    assert loaded_service.export_review() == (
        'a.ts:2 — "fix this"\n'
        'a.ts:? — "[OUTDATED] old"'
    )


def test_comment_rows_follow_real_line_order(service):
    service.snapshot = parse_diff(INTERLEAVED_DIFF)
    on_removed = service.add_comment("m.py", 2, "why drop b?")
    on_added = service.add_comment("m.py", 3, "name c better")

    rows = service.comment_rows()
    assert [(r["id"], r["anchor_line"], r["line_ref"]) for r in rows] == [
        (on_added.id, 3, 10),
        (on_removed.id, 2, 11),
    ]
