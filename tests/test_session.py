import threading

import pytest

from locatorsynth.errors import BridgeTimeout, LocatorSynthError, TargetNotFound
from locatorsynth.session import InspectionSession, SynthesisBridge

PAGE = """
<html><body>
<div id="toolbar"><button id="saveBtn">Save</button><button>Close</button></div>
</body></html>
"""


def test_session_select_and_synthesize() -> None:
    session = InspectionSession.from_markup(PAGE)

    node = session.select("#saveBtn")
    result = session.synthesize()

    assert node.get("id") == "saveBtn"
    assert result.css.expression == "#saveBtn"
    assert session.last_result is result


def test_session_select_by_xpath_takes_first_of_many() -> None:
    session = InspectionSession.from_markup(PAGE)

    node = session.select("//button", "xpath")

    assert node.get("id") == "saveBtn"


def test_session_errors() -> None:
    session = InspectionSession.from_markup(PAGE)

    with pytest.raises(TargetNotFound):
        session.select("#missing")
    with pytest.raises(LocatorSynthError):
        session.synthesize()


def test_session_reset_clears_selection() -> None:
    session = InspectionSession.from_markup(PAGE)
    session.select("#saveBtn")
    session.synthesize()

    session.reset()

    assert session.selected is None
    assert session.last_result is None


def test_fragment_session_is_sandboxed() -> None:
    session = InspectionSession.from_markup("<p>Intro</p><button>Save</button>", sandbox=True)

    session.select("button")
    result = session.synthesize()

    assert session.context.sandbox
    assert result.xpath.unique


def test_bridge_round_trip() -> None:
    bridge = SynthesisBridge(InspectionSession.from_markup(PAGE))
    try:
        assert bridge.request("ping") == "pong"
        assert bridge.request("select", {"expression": "#saveBtn"}) == {"tag": "button", "id": "saveBtn"}
        payload = bridge.request("synthesize")
        assert payload["css"]["expression"] == "#saveBtn"
        assert bridge.request("reset") is None
    finally:
        bridge.shutdown()


def test_bridge_propagates_command_errors() -> None:
    bridge = SynthesisBridge(InspectionSession.from_markup(PAGE))
    try:
        with pytest.raises(LocatorSynthError):
            bridge.request("explode")
        with pytest.raises(TargetNotFound):
            bridge.request("select", "#missing")
        assert bridge.pending_count() == 0
    finally:
        bridge.shutdown()


def test_bridge_timeout_discards_late_reply() -> None:
    class BlockingSession:
        def __init__(self) -> None:
            self.release = threading.Event()

        def synthesize(self):
            self.release.wait(5)
            raise LocatorSynthError("late")

    session = BlockingSession()
    bridge = SynthesisBridge(session, default_timeout=0.05)  # type: ignore[arg-type]
    try:
        with pytest.raises(BridgeTimeout) as excinfo:
            bridge.request("synthesize")
        assert excinfo.value.timeout == 0.05
        assert bridge.pending_count() == 0

        session.release.set()
        assert bridge.request("ping", timeout=5) == "pong"
        assert bridge.pending_count() == 0
    finally:
        bridge.shutdown()
