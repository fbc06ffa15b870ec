from __future__ import annotations

from typing import Any, List

import pytest

SCENARIO: List[Any] = ["A", {"ctrl": "branch", "offset": 2}, "B", {"ctrl": "jump", "offset": 1}, "C"]
COMPILED_SCENARIO: List[Any] = [
    "A",
    {"ctrl": "branch", "offset": 4},
    {"ctrl": "jump", "offset": 1},
    "B",
    {"ctrl": "jump", "offset": 1},
    "C",
]


def _loaded():
    from novelflow.document import Document

    document = Document()
    document.load_flow({"flow": SCENARIO})
    return document


def _texts(group) -> List[str]:
    return [line.text for line in group.lines]


@pytest.mark.basic
def test_load_flow_makes_fallthrough_explicit_and_compiles() -> None:
    document = _loaded()
    g0, g1, g2 = document.groups

    assert document.start_group is g0
    assert _texts(g0) == ["A", "branch +2", "jump +1"]
    assert [i.target for i in g0.branch_instructions()] == [g2.id, g1.id]
    assert g2.parents == [g0.id, g1.id]

    assert document.compile() == COMPILED_SCENARIO


def test_compiled_flow_rebuilds_same_groups() -> None:
    from novelflow.graph import build_graph

    document = _loaded()
    groups = build_graph(document.compile())

    assert len(groups) == 3
    assert groups[2].parents == [0, 1]
    assert groups[0].children == [2, 1]


@pytest.mark.basic
def test_load_flow_is_not_undoable() -> None:
    document = _loaded()

    assert len(document.undo_log) == 0
    assert document.undo() is False
    assert len(document.groups) == 3


@pytest.mark.basic
def test_remove_group_reroutes_incoming_branches_and_undoes() -> None:
    document = _loaded()
    g0, g1, g2 = document.groups
    before = document.compile()

    document.remove_group(g1)

    assert document.group_ids == [g0.id, g2.id]
    assert [i.target for i in g0.branch_instructions()] == [g2.id, g2.id]
    assert g1.id not in g0.children
    assert document.compile() == ["A", {"ctrl": "branch", "offset": 2}, {"ctrl": "jump", "offset": 1}, "C"]

    assert document.undo() is True
    assert document.group_ids == [g0.id, g1.id, g2.id]
    assert g0.children == [g2.id, g1.id]
    assert g1.parents == [g0.id]
    assert g2.parents == [g0.id, g1.id]
    assert document.compile() == before


def test_removing_start_group_clears_start_until_undone() -> None:
    from novelflow.document import CompileError

    document = _loaded()
    g0 = document.groups[0]

    document.remove_group(g0)
    assert document.start_group is None
    with pytest.raises(CompileError):
        document.compile()

    document.undo()
    assert document.start_group is g0
    assert g0.is_start is True
    assert document.compile() == COMPILED_SCENARIO


def test_remove_groups_is_one_undo_step() -> None:
    document = _loaded()
    g0, g1, g2 = document.groups

    document.remove_groups([g1, g2])
    assert document.group_ids == [g0.id]
    assert len(document.undo_log) == 1

    document.undo()
    assert document.compile() == COMPILED_SCENARIO


def test_remove_instruction_clears_branch_target() -> None:
    document = _loaded()
    g0, g1, g2 = document.groups
    branch = g0.get_instruction(1)

    document.remove_instruction(g0, 1)
    assert branch.target is None
    assert g0.children == [g1.id]
    assert g2.parents == [g1.id]

    document.undo()
    assert g0.get_instruction(1) is branch
    assert branch.target == g2.id
    assert g0.children == [g2.id, g1.id]
    assert g2.parents == [g0.id, g1.id]


def test_insert_instruction_with_target_is_one_step() -> None:
    document = _loaded()
    g0, g1, g2 = document.groups

    jump = document.append_instruction(g2, {"ctrl": "jump", "offset": 1}, target=g0)
    assert jump.target == g0.id
    assert g0.parents == [g2.id]

    document.undo()
    assert len(g2.instructions) == 1
    assert g0.parents == []
    assert g2.children == []


def test_set_branch_target_requires_branch() -> None:
    document = _loaded()
    g0, g1, _ = document.groups

    with pytest.raises(ValueError):
        document.set_branch_target(g0, g0.get_instruction(0), g1)

    branch = g0.get_instruction(1)
    document.set_branch_target(g0, branch, g1)
    assert branch.target == g1.id
    document.undo()
    assert branch.target == document.groups[2].id


@pytest.mark.basic
def test_replace_text_is_a_single_undo_step() -> None:
    from novelflow.document import Document

    document = Document()
    group = document.create_group(["Hello Bob", "keep", "Bye Bob"])
    other = document.create_group(["Bob?"])

    assert document.replace_text("Bob", "Alice") == 3
    assert _texts(group) == ["Hello Alice", "keep", "Bye Alice"]
    assert _texts(other) == ["Alice?"]
    assert len(document.undo_log) == 3

    document.undo()
    assert _texts(group) == ["Hello Bob", "keep", "Bye Bob"]
    assert _texts(other) == ["Bob?"]
    assert len(document.undo_log) == 2

    with pytest.raises(ValueError):
        document.replace_text("", "x")


def test_create_group_marks_first_group_as_start() -> None:
    from novelflow.document import Document

    document = Document()
    first = document.create_group(["a"])
    second = document.create_group(["b"], x=100, y=200)

    assert (first.x, first.y) == (document.config.new_group_x, document.config.new_group_y)
    assert (second.x, second.y) == (100, 200)
    assert document.start_group is first
    assert document.tracker.registered == [first.id, second.id]

    document.undo()
    assert document.group_ids == [first.id]
    document.undo()
    assert document.group_ids == []
    assert document.start_group is None


def test_untargeted_branch_compiles_to_nop() -> None:
    from novelflow.document import Document

    document = Document()
    document.create_group(["a", {"ctrl": "branch", "offset": 1}])

    assert document.compile() == ["a", {"ctrl": "nop"}]


def test_compile_without_start_group_raises() -> None:
    from novelflow.document import CompileError, Document

    with pytest.raises(CompileError):
        Document().compile()


def test_documents_do_not_share_history() -> None:
    from novelflow.document import Document

    first = Document()
    second = Document()
    first.create_group(["a"])

    assert second.undo() is False
    assert first.undo() is True


def test_remove_group_drops_selection_until_undone() -> None:
    document = _loaded()
    g1 = document.groups[1]
    document.tracker.select(g1.id)
    document.tracker.focus(g1.id)

    document.remove_group(g1)

    assert g1.id not in document.tracker.selected
    assert document.tracker.focused is None
    with pytest.raises(KeyError):
        document.tracker.select(g1.id)

    document.undo()
    assert g1.id in document.tracker.selected
    assert document.tracker.focused == g1.id


@pytest.mark.basic
def test_appended_plain_instruction_stays_ahead_of_branches() -> None:
    from novelflow.document import Document, EditorSaveData, deserialize_document, serialize_document

    document = _loaded()
    g0 = document.groups[0]

    added = document.append_instruction(g0, "Z")
    assert g0.index_of(added) == 1
    assert _texts(g0) == ["A", "Z", "branch +2", "jump +1"]
    compiled = document.compile()
    assert compiled[:2] == ["A", "Z"]

    restored = Document()
    deserialize_document(EditorSaveData.from_dict(serialize_document(document).to_dict()), restored)
    assert restored.compile() == compiled


def test_inserted_branch_stays_behind_plain_instructions() -> None:
    from novelflow.document import Document

    document = Document()
    group = document.create_group(["a", "b", {"ctrl": "jump", "offset": 1}, "c"])
    assert _texts(group) == ["a", "b", "c", "jump +1"]

    branch = document.insert_instruction(group, 0, {"ctrl": "branch", "offset": 1})
    assert group.index_of(branch) == 3


def test_load_flow_keeps_existing_start_group() -> None:
    from novelflow.document import Document

    document = Document()
    first = document.create_group(["intro"])

    created = document.load_flow(SCENARIO)

    assert document.start_group is first
    assert first.is_start is True
    assert not any(group.is_start for group in created)


def test_replace_text_edits_lines_in_place() -> None:
    from novelflow.document import Document

    document = Document()
    group = document.create_group(["Hi Bob\nBye Bob"])
    lines = group.lines
    instruction = group.get_instruction(0)

    assert document.replace_text("Bob", "Al") == 1
    assert group.lines == lines
    assert group.get_instruction(0) is instruction
    assert _texts(group) == ["Hi Al", "Bye Al"]
    assert document.compile() == ["Hi Al\nBye Al"]

    document.undo()
    assert _texts(group) == ["Hi Bob", "Bye Bob"]
    assert document.compile() == ["Hi Bob\nBye Bob"]


def test_replace_text_ignores_dict_keys() -> None:
    from novelflow.document import Document

    document = Document()
    group = document.create_group([{"name": "Bob"}, {"speaker": "narrator"}])

    assert document.replace_text("name", "x") == 0
    assert len(document.undo_log) == 1

    assert document.replace_text("Bob", "Al") == 1
    assert document.compile() == [{"name": "Al"}, {"speaker": "narrator"}]
    assert _texts(group)[0] == '{"name": "Al"}'


def test_edit_line_is_undoable() -> None:
    from novelflow.document import Document

    document = Document()
    group = document.create_group(["line one"])

    document.edit_line(group, group.lines[0], "line 1")
    assert document.compile() == ["line 1"]

    document.undo()
    assert document.compile() == ["line one"]
