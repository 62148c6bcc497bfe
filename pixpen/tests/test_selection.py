from pixpen.models.domain import SelectionState
from pixpen.services import selection
from pixpen.tests.helpers import make_object

W, H = 800, 600


def _objects():
    return [
        make_object(0, (100, 100, 500, 500)),
        make_object(1, (200, 200, 400, 400)),
        make_object(2, (700, 700, 900, 900)),
    ]


def test_smallest_box_wins_on_overlap():
    assert selection.hit_test(_objects(), 200, 150, W, H) == "obj_1"


def test_point_in_one_box_only():
    assert selection.hit_test(_objects(), 90, 70, W, H) == "obj_0"


def test_miss_returns_none():
    assert selection.hit_test(_objects(), 5, 5, W, H) is None
    assert selection.hit_test([], 5, 5, W, H) is None


def test_box_edges_are_inclusive():
    # obj_2 spans x 560..720, y 420..540
    assert selection.hit_test(_objects(), 560, 420, W, H) == "obj_2"
    assert selection.hit_test(_objects(), 720, 540, W, H) == "obj_2"


def test_equal_areas_keep_list_order():
    twins = [make_object(5, (0, 0, 100, 100)), make_object(6, (0, 0, 100, 100))]
    assert selection.hit_test(twins, 10, 10, W, H) == "obj_5"


def test_toggle_appends_and_removes():
    state = SelectionState()
    state = selection.toggle(state, "obj_2")
    state = selection.toggle(state, "obj_0")
    assert state.selected_ids == ["obj_2", "obj_0"]

    state = selection.toggle(state, "obj_2")
    assert state.selected_ids == ["obj_0"]


def test_remove_and_clear_keep_hover():
    state = SelectionState(hovered_id="obj_1", selected_ids=["obj_0", "obj_1"])

    removed = selection.remove(state, "obj_0")
    assert removed.selected_ids == ["obj_1"]
    assert removed.hovered_id == "obj_1"

    cleared = selection.clear(state)
    assert cleared.selected_ids == []
    assert cleared.hovered_id == "obj_1"
    # inputs are not mutated
    assert state.selected_ids == ["obj_0", "obj_1"]


def test_selected_objects_follow_selection_order():
    objects = _objects()
    state = SelectionState(selected_ids=["obj_2", "missing", "obj_0"])
    assert [o.id for o in selection.selected_objects(objects, state)] == ["obj_2", "obj_0"]


def test_toggle_twice_restores_selection():
    state = SelectionState(selected_ids=["obj_1"])
    again = selection.toggle(selection.toggle(state, "obj_0"), "obj_0")
    assert again.selected_ids == state.selected_ids
