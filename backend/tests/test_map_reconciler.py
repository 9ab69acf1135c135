from domain.models import Coordinates, Entry, Place
from services.map_reconciler import (
    CANDIDATE_MARKER_ID,
    DEFAULT_STYLE,
    SELECTED_STYLE,
    MarkerOpKind,
    MarkerState,
    reconcile,
)


def _entry(entry_id: str, coords=None) -> Entry:
    return Entry(
        id=entry_id,
        name=entry_id,
        location=Place(formatted_address=entry_id, summary="", coordinates=coords),
    )


def _apply(live, plan):
    """Minimal in-memory application of a plan for diff tests."""
    live = dict(live)
    for op in plan.ops:
        if op.kind == MarkerOpKind.REMOVE:
            live.pop(op.marker_id)
        else:
            live[op.marker_id] = op.state
    return live


A = Coordinates(48.8584, 2.2945)
B = Coordinates(37.8199, -122.4783)


def test_creates_markers_for_pinned_entries_only():
    entries = [_entry("a", A), _entry("b", B), _entry("custom")]
    plan = reconcile({}, entries)
    assert [(op.kind, op.marker_id) for op in plan.ops] == [
        (MarkerOpKind.CREATE, "a"),
        (MarkerOpKind.CREATE, "b"),
    ]
    assert plan.camera is None


def test_second_pass_is_noop():
    entries = [_entry("a", A), _entry("b", B)]
    live = _apply({}, reconcile({}, entries, selected_id="a"))
    plan = reconcile(live, entries, selected_id="a")
    assert plan.is_noop
    assert plan.count(MarkerOpKind.CREATE) == 0
    assert plan.count(MarkerOpKind.REMOVE) == 0


def test_removes_markers_of_missing_entries():
    live = {"gone": MarkerState(A, DEFAULT_STYLE), "a": MarkerState(A, DEFAULT_STYLE)}
    plan = reconcile(live, [_entry("a", A)])
    assert [(op.kind, op.marker_id) for op in plan.ops] == [(MarkerOpKind.REMOVE, "gone")]


def test_selection_change_updates_in_place():
    entries = [_entry("a", A), _entry("b", B)]
    live = _apply({}, reconcile({}, entries, selected_id="a"))
    plan = reconcile(live, entries, selected_id="b")

    kinds = {op.marker_id: op.kind for op in plan.ops}
    assert kinds == {"a": MarkerOpKind.UPDATE, "b": MarkerOpKind.UPDATE}
    live = _apply(live, plan)
    assert live["b"].style == SELECTED_STYLE
    assert live["a"].style == DEFAULT_STYLE


def test_at_most_one_selected_marker():
    entries = [_entry("a", A), _entry("b", B), _entry("c", Coordinates(0, 0))]
    live = _apply({}, reconcile({}, entries, selected_id="c"))
    selected = [mid for mid, state in live.items() if state.style.selected]
    assert selected == ["c"]
    assert live["c"].style.z_index > max(live["a"].style.z_index, live["b"].style.z_index)


def test_camera_flies_to_selected_entry():
    plan = reconcile({}, [_entry("a", A)], selected_id="a")
    assert plan.camera.center == A
    assert plan.camera.zoom == 17
    assert plan.camera.animation == "fly"


def test_no_camera_for_unpinned_or_missing_selection():
    assert reconcile({}, [_entry("a")], selected_id="a").camera is None
    assert reconcile({}, [_entry("a", A)], selected_id="zzz").camera is None


def test_candidate_lifecycle():
    picked = Coordinates(10, 20)
    plan = reconcile({}, [], picked=picked)
    assert plan.candidate.kind == MarkerOpKind.CREATE
    assert plan.candidate.marker_id == CANDIDATE_MARKER_ID
    assert plan.camera.center == picked
    assert plan.camera.animation == "set_view"

    assert reconcile({}, [], picked=picked, live_candidate=picked).candidate is None

    moved = reconcile({}, [], picked=Coordinates(11, 21), live_candidate=picked)
    assert moved.candidate.kind == MarkerOpKind.UPDATE

    cleared = reconcile({}, [], picked=None, live_candidate=picked)
    assert cleared.candidate.kind == MarkerOpKind.REMOVE
    assert cleared.camera is None


def test_camera_only_moves_when_focus_changes():
    entries = [_entry("a", A), _entry("b", B)]
    first = reconcile({}, entries, selected_id="a")
    assert first.focus == ("a", A)

    assert reconcile({}, entries, selected_id="a", focused=first.focus).camera is None

    moved = [_entry("a", B), _entry("b", B)]
    assert reconcile({}, moved, selected_id="a", focused=first.focus).camera.center == B
    assert reconcile({}, entries, selected_id="b", focused=first.focus).camera.center == B


def test_marker_removed_when_entry_loses_coordinates():
    live = {"a": MarkerState(A, DEFAULT_STYLE)}
    plan = reconcile(live, [_entry("a")])
    assert [(op.kind, op.marker_id) for op in plan.ops] == [(MarkerOpKind.REMOVE, "a")]
