from __future__ import annotations

from dataclasses import dataclass, field
import logging
import queue
import threading
from typing import Any
import uuid

from lxml.html import HtmlElement

from .dom import Context, parse_document, parse_fragment
from .errors import BridgeTimeout, LocatorSynthError, TargetNotFound
from .locator_generator import generate_locator_candidates
from .models import FrameBoundary, SelectorKind, SynthesisResult
from .settings import SynthesisSettings
from .validation import find_matches

logger = logging.getLogger("locatorsynth.bridge")


@dataclass(slots=True)
class InspectionSession:
    """Caller-owned inspection state: the document, the selected node and the last result."""

    context: Context
    settings: SynthesisSettings = field(default_factory=SynthesisSettings)
    selected: HtmlElement | None = None
    frame: FrameBoundary | None = None
    last_result: SynthesisResult | None = None

    @classmethod
    def from_markup(
        cls,
        markup: str,
        settings: SynthesisSettings | None = None,
        *,
        sandbox: bool = False,
    ) -> InspectionSession:
        if sandbox:
            _root, context = parse_fragment(markup)
        else:
            context = Context.for_document(parse_document(markup))
        return cls(context=context, settings=settings or SynthesisSettings())

    def select(self, expression: str, kind: SelectorKind = "css") -> HtmlElement:
        matches = find_matches(expression, self.context, kind)
        if not matches:
            raise TargetNotFound(f"No element matches {kind} expression {expression!r}")
        if len(matches) > 1:
            logger.warning("%s expression %r matched %d elements; using the first", kind, expression, len(matches))
        self.selected = matches[0]
        self.last_result = None
        return self.selected

    def select_node(self, node: HtmlElement, frame: FrameBoundary | None = None) -> None:
        if not self.context.contains(node):
            raise TargetNotFound("Node does not belong to this session's document")
        self.selected = node
        self.frame = frame
        self.last_result = None

    def synthesize(self) -> SynthesisResult:
        if self.selected is None:
            raise LocatorSynthError("No element selected")
        self.last_result = generate_locator_candidates(self.selected, self.context, self.settings, frame=self.frame)
        return self.last_result

    def reset(self) -> None:
        self.selected = None
        self.frame = None
        self.last_result = None


class _PendingReply:
    __slots__ = ("done", "value", "error")

    def __init__(self) -> None:
        self.done = threading.Event()
        self.value: Any = None
        self.error: BaseException | None = None


class SynthesisBridge:
    """Serializes requests against a session on a worker thread.

    Every request carries a correlation id; the caller blocks on the reply
    with that id and gets ``BridgeTimeout`` when it does not arrive in time.
    """

    def __init__(self, session: InspectionSession, default_timeout: float = 10.0) -> None:
        self.session = session
        self.default_timeout = default_timeout
        self.logger = logger

        self._commands: queue.Queue[tuple[str | None, str, Any]] = queue.Queue()
        self._pending: dict[str, _PendingReply] = {}
        self._pending_lock = threading.Lock()
        self._thread = threading.Thread(target=self._run, name="locatorsynth-bridge", daemon=True)
        self._started = False
        self._running = True

    def start(self) -> None:
        if self._started:
            return
        self._started = True
        self._thread.start()

    def shutdown(self) -> None:
        if not self._started:
            return
        self._commands.put((None, "shutdown", None))
        self._thread.join(timeout=5)

    def request(self, command: str, payload: Any = None, timeout: float | None = None) -> Any:
        request_id = uuid.uuid4().hex
        reply = _PendingReply()
        with self._pending_lock:
            self._pending[request_id] = reply

        self.start()
        self._commands.put((request_id, command, payload))

        wait = self.default_timeout if timeout is None else timeout
        if not reply.done.wait(wait):
            with self._pending_lock:
                self._pending.pop(request_id, None)
            raise BridgeTimeout(request_id, wait)

        if reply.error is not None:
            raise reply.error
        return reply.value

    def pending_count(self) -> int:
        with self._pending_lock:
            return len(self._pending)

    def _run(self) -> None:
        while self._running:
            request_id, command, payload = self._commands.get()
            if command == "shutdown":
                self._running = False
                break
            value: Any = None
            error: BaseException | None = None
            try:
                value = self._handle_command(command, payload)
            except LocatorSynthError as exc:
                error = exc
            except Exception as exc:
                self.logger.exception("Bridge command %s failed", command)
                error = exc
            self._reply(request_id, value, error)

    def _reply(self, request_id: str | None, value: Any, error: BaseException | None) -> None:
        if request_id is None:
            return
        with self._pending_lock:
            reply = self._pending.pop(request_id, None)
        if reply is None:
            self.logger.debug("Dropping late reply for request %s", request_id)
            return
        reply.value = value
        reply.error = error
        reply.done.set()

    def _handle_command(self, command: str, payload: Any) -> Any:
        if command == "ping":
            return "pong"
        if command == "select":
            data = payload if isinstance(payload, dict) else {"expression": str(payload)}
            node = self.session.select(str(data.get("expression", "")), data.get("kind", "css"))
            return {"tag": node.tag, "id": node.get("id") or ""}
        if command == "synthesize":
            return self.session.synthesize().to_payload()
        if command == "reset":
            self.session.reset()
            return None
        raise LocatorSynthError(f"Unknown bridge command: {command}")
