from __future__ import annotations

from waypoint_composer.history import History


def test_undo_redo_walks_committed_states():
    history = History(0)
    history.set_state(1)
    history.set_state(lambda n: n + 1)

    assert history.state == 2
    assert history.undo()
    assert history.state == 1
    assert history.undo()
    assert history.state == 0
    assert not history.undo()

    assert history.redo()
    assert history.redo()
    assert history.state == 2
    assert not history.redo()


def test_commit_after_undo_truncates_redo_tail():
    history = History("a")
    history.set_state("b")
    history.set_state("c")
    history.undo()
    history.undo()

    history.set_state("x")

    assert history.state == "x"
    assert not history.can_redo
    assert len(history) == 2


def test_overwrite_replaces_current_entry_without_growing():
    history = History({"v": 1})
    history.set_state({"v": 2})

    assert history.set_state({"v": 3}, overwrite=True)

    assert history.state == {"v": 3}
    assert len(history) == 2
    history.undo()
    assert history.state == {"v": 1}
    history.redo()
    assert history.state == {"v": 3}


def test_equal_update_is_not_recorded():
    history = History({"points": [1, 2]})

    assert not history.set_state({"points": [1, 2]})
    assert not history.can_undo
    assert history.index == 0


def test_reset_discards_all_entries():
    history = History(1)
    history.set_state(2)
    history.set_state(3)
    history.undo()

    history.reset(10)

    assert history.state == 10
    assert len(history) == 1
    assert not history.can_undo
    assert not history.can_redo
