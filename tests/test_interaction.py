"""
Tests for the pure interaction reducer.
"""

import pytest

from flowcanvas.canvas.constants import LEFT_BUTTON, MIDDLE_BUTTON, RIGHT_BUTTON
from flowcanvas.canvas.geometry import Point
from flowcanvas.canvas.interaction import (
    IDLE,
    AddEdge,
    AddNode,
    Cancel,
    ClearSelection,
    ConnectingFrom,
    DraggingNode,
    Drop,
    EdgePath,
    EmptyCanvas,
    Idle,
    InputPort,
    KeyDown,
    MoveNode,
    NodeBody,
    Outside,
    OutputPort,
    Panning,
    PointerDown,
    PointerMove,
    PointerUp,
    RemoveEdge,
    RemoveSelection,
    SelectNode,
    SetPan,
    Wheel,
    ZoomAt,
    reduce,
)
from flowcanvas.canvas.viewport import ViewportState

VIEW = ViewportState()

ALL_STATES = [
    IDLE,
    Panning(start_screen=Point(10, 10), start_pan=Point(0, 0)),
    DraggingNode(node_id='node-a', grab_offset=Point(5, 5)),
    ConnectingFrom(source_node_id='node-a', cursor=Point(200, 40)),
]


class TestIdle:

    def test_middle_button_pans(self):
        t = reduce(IDLE, PointerDown(Point(50, 60), EmptyCanvas(), button=MIDDLE_BUTTON), VIEW)
        assert t.state == Panning(start_screen=Point(50, 60), start_pan=Point(0, 0))
        assert t.commands == ()

    def test_alt_left_pans_even_over_a_node(self):
        target = NodeBody('node-a', Point(0, 0))
        t = reduce(IDLE, PointerDown(Point(5, 5), target, alt=True), VIEW)
        assert isinstance(t.state, Panning)

    def test_right_button_ignored(self):
        t = reduce(IDLE, PointerDown(Point(5, 5), EmptyCanvas(), button=RIGHT_BUTTON), VIEW)
        assert t.state is IDLE
        assert t.commands == ()

    def test_output_port_starts_connection(self):
        t = reduce(IDLE, PointerDown(Point(200, 40), OutputPort('node-a')), VIEW)
        assert t.state == ConnectingFrom('node-a', Point(200, 40))

    def test_input_port_does_not_start_connection(self):
        t = reduce(IDLE, PointerDown(Point(300, 40), InputPort('node-b')), VIEW)
        assert t.state is IDLE
        assert t.commands == ()

    def test_node_body_starts_drag_and_selects(self):
        view = ViewportState(zoom=2.0, pan=Point(10, 10))
        target = NodeBody('node-a', Point(100, 100))
        # screen (310, 290) -> canvas (150, 140)
        t = reduce(IDLE, PointerDown(Point(310, 290), target), view)
        assert t.state == DraggingNode('node-a', grab_offset=Point(50, 40))
        assert t.commands == (SelectNode('node-a'),)

    def test_edge_click_removes_edge(self):
        t = reduce(IDLE, PointerDown(Point(0, 0), EdgePath('edge-1')), VIEW)
        assert t.state is IDLE
        assert t.commands == (RemoveEdge('edge-1'),)

    def test_empty_canvas_clears_selection(self):
        t = reduce(IDLE, PointerDown(Point(0, 0), EmptyCanvas()), VIEW)
        assert t.commands == (ClearSelection(),)

    def test_delete_key_removes_selection(self):
        assert reduce(IDLE, KeyDown('Delete'), VIEW).commands == (RemoveSelection(),)
        assert reduce(IDLE, KeyDown('Backspace'), VIEW).commands == (RemoveSelection(),)

    def test_moves_and_releases_are_ignored(self):
        assert reduce(IDLE, PointerMove(Point(1, 1)), VIEW).commands == ()
        assert reduce(IDLE, PointerUp(Point(1, 1), Outside()), VIEW).state is IDLE


class TestActiveModes:

    def test_pan_follows_pointer_delta(self):
        state = Panning(start_screen=Point(100, 100), start_pan=Point(20, -5))
        t = reduce(state, PointerMove(Point(130, 90)), VIEW)
        assert t.state == state
        assert t.commands == (SetPan(Point(50, -15)),)

    def test_drag_moves_by_grab_offset(self):
        state = DraggingNode('node-a', grab_offset=Point(50, 40))
        t = reduce(state, PointerMove(Point(187, 193)), VIEW)
        assert t.commands == (MoveNode('node-a', Point(137, 153)),)

    def test_delete_ignored_while_dragging(self):
        state = DraggingNode('node-a', grab_offset=Point(0, 0))
        assert reduce(state, KeyDown('Delete'), VIEW).commands == ()

    def test_connection_tracks_cursor(self):
        state = ConnectingFrom('node-a', Point(200, 40))
        t = reduce(state, PointerMove(Point(260, 80)), VIEW)
        assert t.state == ConnectingFrom('node-a', Point(260, 80))

    def test_connection_completes_on_input_port(self):
        state = ConnectingFrom('node-a', Point(200, 40))
        t = reduce(state, PointerUp(Point(300, 40), InputPort('node-b')), VIEW)
        assert t.state is IDLE
        assert t.commands == (AddEdge('node-a', 'node-b'),)

    def test_connection_to_own_input_is_dropped(self):
        state = ConnectingFrom('node-a', Point(200, 40))
        t = reduce(state, PointerUp(Point(0, 40), InputPort('node-a')), VIEW)
        assert t.state is IDLE
        assert t.commands == ()

    @pytest.mark.parametrize("target", [EmptyCanvas(), OutputPort('node-b'),
                                        NodeBody('node-b', Point(0, 0)), Outside()])
    def test_connection_elsewhere_is_dropped(self, target):
        state = ConnectingFrom('node-a', Point(200, 40))
        t = reduce(state, PointerUp(Point(0, 0), target), VIEW)
        assert t.state is IDLE
        assert t.commands == ()


class TestClosure:

    @pytest.mark.parametrize("state", ALL_STATES)
    def test_escape_returns_to_idle(self, state):
        t = reduce(state, KeyDown('Escape'), VIEW)
        assert isinstance(t.state, Idle)
        assert t.commands == (ClearSelection(),)

    @pytest.mark.parametrize("state", ALL_STATES)
    def test_outside_release_returns_to_idle(self, state):
        t = reduce(state, PointerUp(Point(-50, -50), Outside()), VIEW)
        assert isinstance(t.state, Idle)
        assert t.commands == ()

    @pytest.mark.parametrize("state", ALL_STATES)
    def test_cancel_returns_to_idle(self, state):
        t = reduce(state, Cancel(), VIEW)
        assert isinstance(t.state, Idle)
        assert t.commands == ()


class TestStatelessEvents:

    @pytest.mark.parametrize("state", ALL_STATES)
    def test_wheel_zooms_at_pointer(self, state):
        t = reduce(state, Wheel(Point(400, 300), delta_y=-120), VIEW, zoom_step=1.25)
        assert t.state == state
        assert t.commands == (ZoomAt(1.25, Point(400, 300)),)

    def test_wheel_down_zooms_out(self):
        t = reduce(IDLE, Wheel(Point(0, 0), delta_y=3), VIEW, zoom_step=1.25)
        assert t.commands == (ZoomAt(0.8, Point(0, 0)),)

    def test_zero_wheel_delta(self):
        assert reduce(IDLE, Wheel(Point(0, 0), delta_y=0), VIEW).commands == ()

    def test_drop_places_in_canvas_space(self):
        view = ViewportState(zoom=0.5, pan=Point(100, 0))
        t = reduce(IDLE, Drop(Point(300, 200), 'filter'), view)
        assert t.commands == (AddNode('filter', Point(400, 400)),)

    def test_unknown_state(self):
        with pytest.raises(TypeError):
            reduce(object(), PointerMove(Point(0, 0)), VIEW)
