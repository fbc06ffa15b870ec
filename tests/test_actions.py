from __future__ import annotations

from typing import Any, List

import pytest

SCENARIO: List[Any] = ["A", {"ctrl": "branch", "offset": 2}, "B", {"ctrl": "jump", "offset": 1}, "C"]


def _snapshot(document) -> Any:
    groups = []
    for gid in sorted(document._groups):
        g = document._groups[gid]
        groups.append(
            (
                g.id,
                list(g.parents),
                list(g.children),
                [id(i) for i in g.instructions],
                [id(line) for line in g.lines],
                [i.target for i in g.instructions],
                g.is_start,
                g.height,
            )
        )
    return document.group_ids, document._start_group, groups


def _loaded():
    from novelflow.document import Document

    document = Document()
    document.load_flow(SCENARIO)
    return document


@pytest.mark.basic
def test_remove_instruction_inverse_restores_same_object() -> None:
    from novelflow.document import Document
    from novelflow.editing.actions import RemoveInstructionAction

    document = Document()
    group = document.create_group(["first", "second"])
    original = group.get_instruction(0)

    action = RemoveInstructionAction(0, group)
    action.perform()
    assert action.removed_instruction is original
    assert [line.text for line in group.lines] == ["second"]

    action.inverse().perform()
    assert group.get_instruction(0) is original
    assert [line.text for line in group.lines] == ["first", "second"]


@pytest.mark.basic
def test_inverse_before_perform_raises_for_every_action() -> None:
    from novelflow.editing.actions import (
        AddGroupAction,
        AddInstructionAction,
        BranchTargetChangeAction,
        EditLineAction,
        InverseBeforePerformError,
        MarkGroupAsStartAction,
        RemoveGroupAction,
        RemoveInstructionAction,
    )

    document = _loaded()
    g0, g1, _ = document.groups
    branch = g0.get_instruction(1)

    actions = [
        AddGroupAction(document.new_group(), document),
        RemoveGroupAction(g1, document),
        AddInstructionAction(document.make_instruction("x"), 0, g1),
        RemoveInstructionAction(0, g1),
        MarkGroupAsStartAction(g1, document),
        BranchTargetChangeAction(g1, branch, g0, document),
        EditLineAction(g1.lines[0], "x", g1),
    ]
    for action in actions:
        with pytest.raises(InverseBeforePerformError):
            action.inverse()


def test_add_instruction_splices_lines_before_next_instruction() -> None:
    from novelflow.document import Document
    from novelflow.editing.actions import AddInstructionAction

    document = Document()
    group = document.create_group(["a", "c"])
    before = _snapshot(document)

    action = AddInstructionAction(document.make_instruction("b1\nb2"), 1, group)
    action.perform()

    assert [line.text for line in group.lines] == ["a", "b1", "b2", "c"]
    assert group.owner_of(group.lines[2]) is group.get_instruction(1)
    assert group.height == document.config.group_height(4)

    action.inverse().perform()
    assert _snapshot(document) == before


def test_add_instruction_rejects_out_of_range_index() -> None:
    from novelflow.document import Document
    from novelflow.editing.actions import AddInstructionAction

    document = Document()
    group = document.create_group(["a"])

    with pytest.raises(IndexError):
        AddInstructionAction(document.make_instruction("x"), 3, group).perform()


def test_remove_group_inverse_restores_neighbour_ordering() -> None:
    from novelflow.editing.actions import RemoveGroupAction

    document = _loaded()
    g0, g1, g2 = document.groups
    before = _snapshot(document)

    action = RemoveGroupAction(g1, document)
    action.perform()
    assert document.group_ids == [g0.id, g2.id]
    assert g0.children == [g2.id]
    assert g2.parents == [g0.id]
    assert not document.tracker.is_registered(g1.id)

    action.inverse().perform()
    assert _snapshot(document) == before
    assert document.tracker.is_registered(g1.id)


def test_add_group_inverse_removes_group_again() -> None:
    from novelflow.editing.actions import AddGroupAction

    document = _loaded()
    before = _snapshot(document)
    group = document.new_group()

    action = AddGroupAction(group, document)
    action.perform()
    assert document.group_ids[-1] == group.id

    action.inverse().perform()
    assert _snapshot(document)[0] == before[0]
    assert _snapshot(document)[2][:3] == before[2][:3]


def test_branch_target_change_inverse_restores_edge_positions() -> None:
    from novelflow.editing.actions import BranchTargetChangeAction

    document = _loaded()
    g0, g1, g2 = document.groups
    branch = g0.get_instruction(1)
    assert branch.target == g2.id
    before = _snapshot(document)

    action = BranchTargetChangeAction(g1, branch, g0, document)
    action.perform()
    assert branch.target == g1.id
    assert g0.children == [g1.id, g1.id]
    assert g1.parents == [g0.id, g0.id]
    assert g2.parents == [g1.id]

    action.inverse().perform()
    assert _snapshot(document) == before


def test_mark_group_as_start_inverse() -> None:
    from novelflow.editing.actions import MarkGroupAsStartAction

    document = _loaded()
    g0, g1, _ = document.groups

    action = MarkGroupAsStartAction(g1, document)
    action.perform()
    assert document.start_group is g1
    assert g1.is_start and not g0.is_start

    action.inverse().perform()
    assert document.start_group is g0
    assert g0.is_start and not g1.is_start


@pytest.mark.basic
def test_edit_line_keeps_line_and_inverse_restores_text() -> None:
    from novelflow.core.models import PlainInstruction
    from novelflow.document import Document
    from novelflow.editing.actions import EditLineAction

    document = Document()
    group = document.create_group(["Hello\nBob"])
    instruction = group.get_instruction(0)
    line = group.lines[1]
    before = _snapshot(document)

    action = EditLineAction(line, "Alice", group)
    action.perform()
    assert action.previous_text == "Bob"
    assert group.lines[1] is line
    assert line.text == "Alice"
    assert group.get_instruction(0) is instruction
    assert instruction.instruction == PlainInstruction("Hello\nAlice")

    action.inverse().perform()
    assert _snapshot(document) == before
    assert line.text == "Bob"
    assert instruction.instruction == PlainInstruction("Hello\nBob")


def test_edit_line_reads_structured_payload_back() -> None:
    from novelflow.core.models import PlainInstruction
    from novelflow.document import Document
    from novelflow.editing.actions import EditLineAction

    document = Document()
    group = document.create_group([{"say": "hi"}])
    line = group.lines[0]

    EditLineAction(line, '{"say": "bye"}', group).perform()
    assert group.get_instruction(0).instruction == PlainInstruction({"say": "bye"})

    with pytest.raises(ValueError):
        EditLineAction(line, "{not json", group).perform()
    with pytest.raises(ValueError):
        EditLineAction(line, '{"ctrl": "end"}', group).perform()
    assert line.text == '{"say": "bye"}'


def test_edit_line_rejects_control_lines() -> None:
    from novelflow.editing.actions import EditLineAction

    document = _loaded()
    g0 = document.groups[0]
    branch_line = g0.get_instruction(1).lines[0]

    with pytest.raises(ValueError):
        EditLineAction(branch_line, "branch +9", g0).perform()
    assert branch_line.text == "branch +2"


def test_remove_group_inverse_restores_selection_and_focus() -> None:
    from novelflow.editing.actions import RemoveGroupAction

    document = _loaded()
    g1 = document.groups[1]
    document.tracker.select(g1.id)
    document.tracker.focus(g1.id)

    action = RemoveGroupAction(g1, document)
    action.perform()
    assert g1.id not in document.tracker.selected
    assert document.tracker.focused is None

    action.inverse().perform()
    assert g1.id in document.tracker.selected
    assert document.tracker.focused == g1.id
