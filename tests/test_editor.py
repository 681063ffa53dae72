"""
Tests for CanvasEditor: event dispatch end to end, toolbar operations and
snapshots.
"""

import math
from types import SimpleNamespace

import pytest

from flowcanvas.canvas.constants import MIDDLE_BUTTON
from flowcanvas.canvas.editor import CanvasEditor, CanvasSnapshot
from flowcanvas.canvas.errors import UnknownBlockType
from flowcanvas.canvas.geometry import Point
from flowcanvas.canvas.interaction import (
    IDLE,
    Cancel,
    ConnectingFrom,
    DraggingNode,
    Drop,
    KeyDown,
    Outside,
    Panning,
    PointerDown,
    PointerMove,
    PointerUp,
    Wheel,
)


@pytest.fixture
def editor():
    return CanvasEditor()


@pytest.fixture
def two_nodes(editor):
    """A database at (0,0) and a bar chart at (300,0)."""
    a = editor.store.add_node('database', Point(0, 0))
    b = editor.store.add_node('bar-chart', Point(300, 0))
    return a, b


def positions(editor):
    return {n.id: n.position for n in editor.store.nodes}


class TestConnect:

    def test_connect_two_nodes(self, editor, two_nodes):
        a, b = two_nodes
        editor.dispatch(PointerDown(Point(200, 40)))
        assert isinstance(editor.state, ConnectingFrom)
        editor.dispatch(PointerMove(Point(300, 40)))
        editor.dispatch(PointerUp(Point(300, 40)))

        assert editor.state == IDLE
        assert len(editor.store.edges) == 1
        edge = editor.store.edges[0]
        assert (edge.source_id, edge.target_id) == (a.id, b.id)

    def test_second_connection_is_ignored(self, editor, two_nodes):
        for _ in range(2):
            editor.dispatch(PointerDown(Point(200, 40)))
            editor.dispatch(PointerUp(Point(300, 40)))
        assert len(editor.store.edges) == 1
        assert editor.state == IDLE

    def test_connection_to_own_input_is_ignored(self, editor):
        node = editor.store.add_node('filter', Point(100, 100))
        editor.dispatch(PointerDown(Point(300, 140)))
        editor.dispatch(PointerUp(Point(100, 140)))
        assert editor.store.edges == ()
        assert editor.state == IDLE

    def test_pending_connection_in_snapshot(self, editor, two_nodes):
        editor.dispatch(PointerDown(Point(200, 40)))
        editor.dispatch(PointerMove(Point(260, 90)))
        snapshot = editor.snapshot()
        assert snapshot.pending_connection == (Point(200, 40), Point(260, 90))
        editor.dispatch(KeyDown('Escape'))
        assert editor.snapshot().pending_connection is None

    def test_click_on_edge_removes_it(self, editor):
        a = editor.store.add_node('database', Point(0, 0))
        b = editor.store.add_node('bar-chart', Point(400, 0))
        editor.store.add_edge(a.id, b.id)
        editor.dispatch(PointerDown(Point(300, 40)))
        assert editor.store.edges == ()


class TestDrag:

    def test_drag_snaps_to_grid(self, editor):
        node = editor.store.add_node('filter', Point(100, 100))
        editor.dispatch(PointerDown(Point(150, 140)))
        assert isinstance(editor.state, DraggingNode)
        assert editor.selected_node_id == node.id

        editor.dispatch(PointerMove(Point(150 + 37, 140 + 53)))
        assert editor.store.get_node(node.id).position == Point(140, 160)

        editor.dispatch(PointerUp(Point(187, 193)))
        assert editor.state == IDLE

    def test_drag_under_zoom_and_pan(self, editor):
        node = editor.store.add_node('table', Point(0, 0))
        editor.viewport.set_pan(Point(50, 50))
        editor.viewport.set_zoom(2.0, Point(50, 50))
        # node (0,0) is at screen (50,50); grab it 20 screen px inside
        editor.dispatch(PointerDown(Point(70, 70)))
        editor.dispatch(PointerMove(Point(70 + 80, 70 + 40)))
        assert editor.store.get_node(node.id).position == Point(40, 20)

    def test_global_release_ends_drag(self, editor):
        editor.store.add_node('filter', Point(100, 100))
        editor.dispatch(PointerDown(Point(150, 140)))
        editor.dispatch(PointerUp(Point(-400, -400), target=Outside()))
        assert editor.state == IDLE

    def test_node_removed_mid_drag(self, editor):
        node = editor.store.add_node('filter', Point(100, 100))
        editor.dispatch(PointerDown(Point(150, 140)))
        editor.store.remove_node(node.id)
        editor.dispatch(PointerMove(Point(200, 200)))
        assert editor.state == IDLE


class TestClosure:

    def enter(self, editor, mode):
        if mode == 'panning':
            editor.dispatch(PointerDown(Point(500, 500), button=MIDDLE_BUTTON))
            assert isinstance(editor.state, Panning)
        elif mode == 'dragging':
            editor.dispatch(PointerDown(Point(100, 20)))
            assert isinstance(editor.state, DraggingNode)
        elif mode == 'connecting':
            editor.dispatch(PointerDown(Point(200, 40)))
            assert isinstance(editor.state, ConnectingFrom)

    @pytest.mark.parametrize("mode", ['idle', 'panning', 'dragging', 'connecting'])
    @pytest.mark.parametrize("event", [KeyDown('Escape'), PointerUp(Point(-1, -1), Outside()), Cancel()])
    def test_returns_to_idle_without_mutation(self, editor, two_nodes, mode, event):
        self.enter(editor, mode)
        before_nodes = positions(editor)
        before_edges = editor.store.edges
        before_view = editor.viewport.state

        editor.dispatch(event)

        assert editor.state == IDLE
        assert positions(editor) == before_nodes
        assert editor.store.edges == before_edges
        assert editor.viewport.state == before_view


class TestPanAndZoom:

    def test_middle_drag_pans(self, editor):
        editor.dispatch(PointerDown(Point(100, 100), button=MIDDLE_BUTTON))
        editor.dispatch(PointerMove(Point(160, 70)))
        assert editor.viewport.pan == Point(60, -30)
        editor.dispatch(PointerUp(Point(160, 70)))
        editor.dispatch(PointerMove(Point(0, 0)))
        assert editor.viewport.pan == Point(60, -30)

    def test_wheel_zooms_around_pointer(self, editor):
        anchor = Point(400, 300)
        before = editor.viewport.screen_to_canvas(anchor)
        editor.dispatch(Wheel(anchor, delta_y=-100))
        assert editor.viewport.zoom == pytest.approx(1.1)
        after = editor.viewport.screen_to_canvas(anchor)
        assert after.distance_to(before) < 1e-9

    def test_wheel_while_panning_keeps_pointer_anchor(self, editor):
        editor.dispatch(PointerDown(Point(400, 300), button=MIDDLE_BUTTON))
        editor.dispatch(PointerMove(Point(420, 300)))
        pointer = Point(420, 300)
        before = editor.viewport.screen_to_canvas(pointer)

        editor.dispatch(Wheel(pointer, delta_y=-100))
        assert editor.viewport.screen_to_canvas(pointer).distance_to(before) < 1e-9
        editor.dispatch(PointerMove(pointer))
        assert editor.viewport.screen_to_canvas(pointer).distance_to(before) < 1e-9

        # Panning continues from the zoomed view
        pan = editor.viewport.pan
        editor.dispatch(PointerMove(Point(440, 310)))
        assert isinstance(editor.state, Panning)
        assert editor.viewport.pan == pan + Point(20, 10)

    def test_zoom_stays_in_bounds(self, editor):
        for _ in range(60):
            editor.zoom_in()
        assert editor.viewport.zoom == 2.0
        for _ in range(120):
            editor.zoom_out()
        assert editor.viewport.zoom == 0.25

    def test_toolbar_zoom_keeps_surface_centre(self, editor):
        editor.set_surface(Point(0, 0), Point(800, 600))
        centre = Point(400, 300)
        before = editor.viewport.screen_to_canvas(centre)
        editor.zoom_in()
        assert editor.viewport.screen_to_canvas(centre).distance_to(before) < 1e-9

    def test_non_finite_event_ignored(self, editor):
        editor.dispatch(Wheel(Point(math.nan, 0), delta_y=-1))
        assert editor.viewport.zoom == 1.0

    def test_reset_view(self, editor):
        editor.zoom_in()
        editor.viewport.pan_by(Point(10, 10))
        state = editor.reset_view()
        assert state.zoom == 1.0
        assert state.pan == Point(0, 0)

    def test_settings_are_honoured(self):
        settings = SimpleNamespace(grid_size=50, min_zoom=0.5, max_zoom=1.5,
                                   zoom_step=1.5, duplicate_offset=100)
        editor = CanvasEditor(settings=settings)
        node = editor.add_block('table', Point(70, 70))
        assert node.position == Point(50, 50)
        editor.zoom_in()
        assert editor.viewport.zoom == 1.5
        assert editor.duplicate_selected().position == Point(150, 150)


class TestPaletteAndToolbar:

    def test_add_block_default_positions(self, editor):
        first = editor.add_block('database')
        second = editor.add_block('table')
        assert first.position == Point(100, 100)
        assert second.position == Point(120, 220)
        assert editor.selected_node_id == second.id

    def test_add_unknown_block(self, editor):
        with pytest.raises(UnknownBlockType):
            editor.add_block('spreadsheet')

    def test_drop_template(self, editor):
        editor.viewport.set_pan(Point(100, 0))
        node = editor.drop_template(Point(341, 219), {'type': 'filter', 'label': 'Filter'})
        assert node.type == 'filter'
        assert node.position == Point(240, 220)
        assert editor.selected_node_id == node.id

    def test_drop_bad_descriptor(self, editor):
        with pytest.raises(ValueError):
            editor.drop_template(Point(0, 0), {'label': 'no type'})
        assert len(editor.store) == 0

    def test_drop_of_unknown_type_is_ignored(self, editor):
        editor.dispatch(Drop(Point(100, 100), 'spreadsheet'))
        assert len(editor.store) == 0
        assert editor.state == IDLE
        assert editor.selected_node_id is None

    def test_duplicate_selected(self, editor):
        node = editor.add_block('filter', Point(100, 100))
        copy = editor.duplicate_selected()
        assert copy.position == Point(140, 140)
        assert editor.selected_node_id == copy.id

    def test_duplicate_without_selection(self, editor):
        assert editor.duplicate_selected() is None

    def test_delete_key_cascades(self, editor, two_nodes):
        a, b = two_nodes
        editor.store.add_edge(a.id, b.id)
        editor.select(a.id)
        editor.dispatch(KeyDown('Delete'))
        assert not editor.store.has_node(a.id)
        assert editor.store.edges == ()
        assert editor.selected_node_id is None

    def test_click_empty_clears_selection(self, editor, two_nodes):
        a, _ = two_nodes
        editor.select(a.id)
        editor.dispatch(PointerDown(Point(900, 900)))
        assert editor.selected_node_id is None

    def test_configure_selected(self, editor):
        editor.add_block('sort')
        node = editor.configure_selected(column='date', direction='asc')
        assert node.config.column == 'date'
        assert editor.snapshot().selected_node.config.direction == 'asc'

    def test_rename_selected(self, editor):
        node = editor.add_block('database')
        assert editor.rename_selected('  Orders DB ').label == 'Orders DB'
        assert editor.store.get_node(node.id).label == 'Orders DB'
        # blank restores the catalog label
        assert editor.rename_selected('').label == 'Database'

    def test_rename_without_selection(self, editor):
        assert editor.rename_selected('x') is None

    def test_bring_to_front_and_send_to_back(self, editor):
        a = editor.add_block('database', Point(0, 0))
        b = editor.add_block('table', Point(40, 0))
        editor.select(a.id)
        assert editor.bring_to_front() is True
        assert [n.id for n in editor.store.nodes] == [b.id, a.id]
        assert editor.bring_to_front() is False
        assert editor.send_to_back() is True
        assert [n.id for n in editor.store.nodes] == [a.id, b.id]

    def test_front_node_wins_overlapping_press(self, editor):
        a = editor.add_block('database', Point(0, 0))
        b = editor.add_block('table', Point(40, 0))
        editor.select(a.id)
        editor.bring_to_front()
        editor.dispatch(KeyDown('Escape'))
        editor.dispatch(PointerDown(Point(100, 40)))
        assert editor.selected_node_id == a.id

    def test_select_missing_node_is_ignored(self, editor, two_nodes):
        a, _ = two_nodes
        editor.select(a.id)
        editor.select('node-missing')
        assert editor.selected_node_id == a.id
        editor.select(None)
        assert editor.selected_node_id is None

    def test_remove_edge(self, editor, two_nodes):
        a, b = two_nodes
        edge = editor.store.add_edge(a.id, b.id)
        assert editor.remove_edge(edge.id) is True
        assert editor.store.edges == ()
        assert editor.remove_edge(edge.id) is False

    def test_remove_node_resets_connection(self, editor, two_nodes):
        a, _ = two_nodes
        editor.dispatch(PointerDown(Point(200, 40)))
        assert editor.remove_node(a.id) is True
        assert editor.state == IDLE
        assert editor.remove_node(a.id) is False


class TestNotifications:

    def test_on_change_receives_snapshots(self, editor, two_nodes):
        seen = []
        editor.set_on_change(seen.append)
        editor.dispatch(PointerDown(Point(200, 40)))
        editor.dispatch(PointerUp(Point(300, 40)))
        assert len(seen) == 2
        assert all(isinstance(s, CanvasSnapshot) for s in seen)
        assert len(seen[-1].edges) == 1

    def test_no_change_no_notification(self, editor):
        seen = []
        editor.set_on_change(seen.append)
        editor.dispatch(PointerMove(Point(5, 5)))
        assert seen == []

    def test_snapshot_is_immutable(self, editor):
        editor.add_block('table')
        snapshot = editor.snapshot()
        with pytest.raises(Exception):
            snapshot.selected_node_id = None
        editor.add_block('table')
        assert len(snapshot.nodes) == 1
