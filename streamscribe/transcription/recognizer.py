"""DashScope Paraformer real-time recognizer over a duplex WebSocket."""

import asyncio
import logging
import threading
import uuid
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, NamedTuple, Optional

import aiohttp

from .base import (
    AbstractStreamingRecognizer,
    CompletedCallback,
    ErrorCallback,
    ResultCallback,
    SentenceCallback,
)
from .messages import (
    EVENT_RESULT_GENERATED,
    EVENT_TASK_FAILED,
    EVENT_TASK_FINISHED,
    EVENT_TASK_STARTED,
    InboundMessage,
    build_finish_task,
    build_run_task,
    parse_inbound,
    parse_sentence,
)
from ..config.settings import RecognizerSettings
from ..errors import (
    AudioSendError,
    ProtocolError,
    RemoteTaskError,
    StreamInterruptedError,
    StreamScribeError,
    TransportConnectionError,
)
from ..models.session import RecognitionSession, SessionState

logger = logging.getLogger(__name__)

# Opens a WebSocket for (url, headers); returns an aiohttp-compatible connection.
Connector = Callable[[str, Dict[str, str]], Awaitable[Any]]

FRAME_AUDIO = "audio"
FRAME_CONTROL = "control"

_CONNECT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, OSError)
_SEND_ERRORS = (aiohttp.ClientError, ConnectionError, RuntimeError)


class OutboundFrame(NamedTuple):
    """A frame waiting for the writer task."""
    kind: str
    data: Any


class SpeechRecognizer(AbstractStreamingRecognizer):
    """Runs one Paraformer recognition task at a time over a duplex WebSocket.

    Usage:
        recognizer = SpeechRecognizer(settings)
        await recognizer.start(on_result=print, on_completed=done, on_error=log)
        recognizer.send_audio_data(pcm_chunk)
        recognizer.finish_task()
        await recognizer.wait_until_done()
        await recognizer.dispose()

    Inbound events are dispatched from a listener task in receipt order.
    Outbound frames go through a single writer task so they reach the
    service in the order they were queued.
    """

    def __init__(self, settings: RecognizerSettings, connector: Optional[Connector] = None):
        """Initialize the recognizer.

        Args:
            settings: Validated connection and recognition settings
            connector: Coroutine opening the WebSocket; defaults to aiohttp

        Raises:
            ConfigurationError: If the settings are invalid
        """
        settings.validate()
        self.settings = settings
        self.service_name = "DashScope Paraformer"
        self._connector = connector or self._open_websocket

        self._http: Optional[aiohttp.ClientSession] = None
        self._ws = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._outbound: Optional[asyncio.Queue] = None
        self._listener_task: Optional[asyncio.Task] = None
        self._writer_task: Optional[asyncio.Task] = None
        self._active_event: Optional[asyncio.Event] = None
        self._done_event: Optional[asyncio.Event] = None

        # Guards state changes made from producer threads (finish_task).
        self._state_lock = threading.RLock()
        self._disposed = False
        self._completion_sent = False
        self._finish_sent = False

        self._on_result: Optional[ResultCallback] = None
        self._on_completed: Optional[CompletedCallback] = None
        self._on_error: Optional[ErrorCallback] = None
        self._on_sentence: Optional[SentenceCallback] = None

        self.session = RecognitionSession(task_id="", sample_rate=settings.sample_rate)
        self.last_error: Optional[StreamScribeError] = None

        logger.info(f"SpeechRecognizer initialized: model={settings.model}, "
                    f"sample_rate={settings.sample_rate}Hz, languages={settings.language_hints}")

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def task_id(self) -> str:
        return self.session.task_id

    async def __aenter__(self) -> "SpeechRecognizer":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()

    async def start(self,
                    on_result: ResultCallback,
                    on_completed: CompletedCallback,
                    on_error: ErrorCallback,
                    on_sentence: Optional[SentenceCallback] = None) -> None:
        """Open the transport, send run-task and begin listening.

        Returns once the run-task command has been written; results arrive
        through the callbacks. Errors never propagate out of this call.
        """
        state = self.session.state
        if state != SessionState.IDLE and not state.is_terminal:
            message = f"Recognition already in progress (task {self.task_id}, {state.value})"
            logger.warning(message)
            on_error(message)
            return

        await self._stop_tasks()
        await self._release_http()

        self._on_result = on_result
        self._on_completed = on_completed
        self._on_error = on_error
        self._on_sentence = on_sentence
        self._disposed = False
        self._completion_sent = False
        self._finish_sent = False
        self.last_error = None

        self._loop = asyncio.get_running_loop()
        self._outbound = asyncio.Queue()
        self._active_event = asyncio.Event()
        self._done_event = asyncio.Event()

        self.session = RecognitionSession(
            task_id=uuid.uuid4().hex,
            sample_rate=self.settings.sample_rate,
            state=SessionState.CONNECTING,
            started_at=datetime.now(),
        )
        logger.info(f"Starting recognition task {self.task_id}")

        try:
            ws = await self._connect()
        except _CONNECT_ERRORS as e:
            logger.error(f"WebSocket connection failed: {e}")
            await self._abort_start(TransportConnectionError(f"Connection failed: {e}"))
            return

        if self._start_abandoned():
            await self._discard_transport(ws)
            return

        self._ws = ws
        self._transition(SessionState.AWAITING_START)

        try:
            await self._send_run_task(ws)
        except _SEND_ERRORS as e:
            logger.error(f"Failed to send run-task: {e}")
            await self._abort_start(TransportConnectionError(f"Failed to send run-task: {e}"))
            return

        if self._start_abandoned():
            await self._close_transport()
            await self._release_http()
            return

        self._writer_task = asyncio.create_task(self._write_outbound())
        self._listener_task = asyncio.create_task(self._listen())

    def send_audio_data(self, chunk: bytes) -> None:
        """Queue a binary PCM frame. Dropped unless the task is active.

        May be called from a producer thread other than the event loop's.
        """
        if self.session.state != SessionState.ACTIVE:
            logger.debug(f"Dropping {len(chunk)} bytes of audio, session is {self.session.state.value}")
            return
        if not chunk:
            return
        self._enqueue(OutboundFrame(FRAME_AUDIO, bytes(chunk)))

    def finish_task(self) -> None:
        """Queue finish-task behind any pending audio. Sent at most once per task."""
        with self._state_lock:
            if self.session.state != SessionState.ACTIVE or self.session.finish_requested:
                logger.debug("finish_task ignored")
                return
            self.session.finish_requested = True
            self._transition(SessionState.FINISHING)

        logger.info(f"Sending finish-task for {self.task_id}")
        self._enqueue(OutboundFrame(FRAME_CONTROL, build_finish_task(self.task_id)))

    async def dispose(self) -> None:
        """Stop listening, close the transport and suppress further callbacks.

        Safe to call repeatedly, and before start().
        """
        self._disposed = True
        with self._state_lock:
            state = self.session.state
            if state != SessionState.IDLE and not state.is_terminal:
                logger.info(f"Disposing recognizer while task {self.task_id} is {state.value}")
                self.session.state = SessionState.FAILED
                self.session.finished_at = datetime.now()

        await self._stop_tasks()
        await self._close_transport()
        await self._release_http()
        if self._done_event is not None:
            self._done_event.set()

    async def flush(self) -> None:
        """Wait until every queued outbound frame has been written or dropped.

        Also returns if the writer stops first (dispose, end of session), since
        frames left in the queue will then never be written.
        """
        writer = self._writer_task
        if self._outbound is None or writer is None or writer.done():
            return
        drained = asyncio.ensure_future(self._outbound.join())
        try:
            await asyncio.wait({drained, writer}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            drained.cancel()

    async def wait_until_active(self, timeout: Optional[float] = None) -> bool:
        """Wait for task-started (or the end of the session).

        Returns:
            True if the task is active
        """
        if self._active_event is None or self._done_event is None:
            return False
        waiters = [
            asyncio.ensure_future(self._active_event.wait()),
            asyncio.ensure_future(self._done_event.wait()),
        ]
        try:
            await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()
        return self.session.state == SessionState.ACTIVE

    async def wait_until_done(self, timeout: Optional[float] = None) -> bool:
        """Wait for the session to end.

        Returns:
            False if the timeout expired first
        """
        if self._done_event is None:
            return True
        try:
            await asyncio.wait_for(self._done_event.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def _open_websocket(self, url: str, headers: Dict[str, str]):
        """Default connector: aiohttp client WebSocket with the auth headers attached."""
        if self._http is None or self._http.closed:
            self._http = aiohttp.ClientSession()

        logger.info(f"Connecting to {url}")
        logger.debug(f"Using API key of length {len(self.settings.api_key)}")
        ws = await self._http.ws_connect(url, headers=headers, heartbeat=self.settings.heartbeat)
        logger.info("WebSocket connection established")
        return ws

    async def _connect(self):
        return await asyncio.wait_for(
            self._connector(self.settings.url, self.settings.connection_headers()),
            timeout=self.settings.connect_timeout,
        )

    async def _send_run_task(self, ws) -> None:
        message = build_run_task(
            task_id=self.task_id,
            model=self.settings.model,
            sample_rate=self.settings.sample_rate,
            audio_format=self.settings.audio_format,
            language_hints=self.settings.language_hints,
        )
        logger.info(f"Sending run-task for {self.task_id}")
        await ws.send_str(message)

    def _start_abandoned(self) -> bool:
        """True if dispose() ran, or the session ended, while start() was awaiting."""
        if self._disposed or self.session.state.is_terminal:
            logger.info(f"Start of task {self.task_id} abandoned ({self.session.state.value})")
            return True
        return False

    async def _discard_transport(self, ws) -> None:
        """Close a socket that was opened for a session nobody wants any more."""
        try:
            await ws.close()
        except (aiohttp.ClientError, OSError, RuntimeError) as e:
            logger.warning(f"Error closing WebSocket: {e}")
        await self._release_http()

    async def _abort_start(self, error: StreamScribeError) -> None:
        """Fail a session that never reached a live transport. No completion callback."""
        self._transition(SessionState.FAILED)
        self._report_error(error)
        await self._close_transport()
        await self._release_http()
        self._done_event.set()

    async def _listen(self) -> None:
        """Consume inbound frames until the session ends."""
        try:
            while True:
                ws = self._ws
                if ws is None:
                    break
                async for message in ws:
                    if message.type == aiohttp.WSMsgType.TEXT:
                        await self._handle_message(message.data)
                    elif message.type == aiohttp.WSMsgType.BINARY:
                        logger.debug(f"Ignoring {len(message.data)} byte binary frame from service")
                    elif message.type == aiohttp.WSMsgType.ERROR:
                        logger.warning(f"WebSocket error: {message.data}")
                        break
                    if self.session.state.is_terminal or self._ws is not ws:
                        break

                if self._disposed or self.session.state.is_terminal:
                    break
                if not await self._recover_from_disconnect():
                    break
        except asyncio.CancelledError:
            logger.debug("Listener cancelled")
            raise
        except Exception as e:
            logger.exception(f"Listener stopped unexpectedly: {e}")
            self._fail(StreamInterruptedError(f"Listener stopped unexpectedly: {e}"))

        await self._close_transport()
        if self._outbound is not None:
            self._outbound.put_nowait(None)
        self._notify_completed()
        self._done_event.set()
        logger.info(f"Recognition session {self.task_id} ended: {self.session.state.value}")

    async def _handle_message(self, data: Any) -> None:
        """Decode one inbound frame and apply it to the session state."""
        logger.debug(f"Received message: {data}")
        try:
            message = parse_inbound(data)
        except ProtocolError as e:
            logger.error(f"Message handling error: {e}")
            self._report_error(e)
            return

        if message.task_id and message.task_id != self.task_id:
            logger.debug(f"Message for task {message.task_id} while running {self.task_id}")

        state = self.session.state
        event = message.event

        if event == EVENT_TASK_STARTED:
            if state == SessionState.AWAITING_START:
                self._transition(SessionState.ACTIVE)
                self._active_event.set()
                logger.info(f"Recognition task started - TaskID: {self.task_id}")
            elif state == SessionState.ACTIVE:
                logger.info(f"Task {self.task_id} acknowledged again after reconnect")
            else:
                self._ignore(message, state)

        elif event == EVENT_RESULT_GENERATED:
            if state not in (SessionState.ACTIVE, SessionState.FINISHING):
                self._ignore(message, state)
                return
            try:
                result = parse_sentence(message)
            except ProtocolError as e:
                logger.error(f"Message handling error: {e}")
                self._report_error(e)
                return
            self.session.results_received += 1
            logger.debug(f"Recognition result: {result.text} (final={result.is_final})")
            self._invoke(self._on_result, result.text)
            if self._on_sentence is not None:
                self._invoke(self._on_sentence, result)

        elif event == EVENT_TASK_FINISHED:
            if state not in (SessionState.ACTIVE, SessionState.FINISHING):
                self._ignore(message, state)
                return
            self._transition(SessionState.COMPLETED)
            logger.info(f"Recognition task {self.task_id} finished")
            await self._close_transport()
            self._notify_completed()

        elif event == EVENT_TASK_FAILED:
            if state.is_terminal:
                self._ignore(message, state)
                return
            detail = message.error_message or "unknown error"
            if message.error_code:
                detail = f"{detail} ({message.error_code})"
            self._transition(SessionState.FAILED)
            self._report_error(RemoteTaskError(f"Recognition failed: {detail}",
                                               error_code=message.error_code))
            await self._close_transport()

        else:
            logger.warning(f"Unknown event: {event}")
            logger.debug(f"Full message: header={message.header} payload={message.payload}")

    def _ignore(self, message: InboundMessage, state: SessionState) -> None:
        logger.warning(f"Ignoring {message.event} while session is {state.value}")

    async def _recover_from_disconnect(self) -> bool:
        """Handle a transport that closed without a terminal event.

        Returns:
            True if a new transport is in place and listening should continue
        """
        state = self.session.state
        await self._close_transport()

        if state in (SessionState.CONNECTING, SessionState.AWAITING_START):
            self._fail(StreamInterruptedError("Connection closed before task start"))
            return False

        if (state != SessionState.ACTIVE or not self.settings.auto_reconnect
                or self.settings.max_reconnect_attempts == 0):
            self._fail(StreamInterruptedError("Connection closed before task finished"))
            return False

        return await self._reconnect()

    async def _reconnect(self) -> bool:
        """Reopen the transport and resend run-task for the same task id, with linear backoff."""
        max_attempts = self.settings.max_reconnect_attempts

        for attempt in range(1, max_attempts + 1):
            delay = self.settings.reconnect_delay * attempt
            logger.warning(f"Reconnecting {attempt}/{max_attempts} in {delay:.1f}s...")
            await asyncio.sleep(delay)

            if self._disposed or self.session.state != SessionState.ACTIVE:
                return False

            try:
                ws = await self._connect()
            except _CONNECT_ERRORS as e:
                logger.warning(f"Reconnect attempt {attempt} failed: {e}")
                continue

            try:
                await self._send_run_task(ws)
            except _SEND_ERRORS as e:
                logger.warning(f"Reconnect attempt {attempt} could not resend run-task: {e}")
                await ws.close()
                continue

            self._ws = ws
            self.session.reconnect_count += 1
            logger.info(f"Reconnected task {self.task_id} after {attempt} attempt(s)")
            return True

        self._fail(StreamInterruptedError(f"Reconnect failed after {max_attempts} attempts"))
        return False

    async def _write_outbound(self) -> None:
        """Single writer: sends queued frames in FIFO order until the None sentinel."""
        queue = self._outbound
        while True:
            frame = await queue.get()
            try:
                if frame is None:
                    return
                await self._send_frame(frame)
            finally:
                queue.task_done()

    async def _send_frame(self, frame: OutboundFrame) -> None:
        ws = self._ws
        if ws is None or ws.closed:
            logger.debug(f"Dropping {frame.kind} frame, transport is not open")
            return

        if frame.kind == FRAME_AUDIO and self._finish_sent:
            logger.debug(f"Dropping {len(frame.data)} bytes of audio queued behind finish-task")
            return

        try:
            if frame.kind == FRAME_AUDIO:
                logger.debug(f"Sending PCM data: {len(frame.data)} bytes")
                await ws.send_bytes(frame.data)
                self.session.chunks_sent += 1
                self.session.bytes_sent += len(frame.data)
            else:
                self._finish_sent = True
                await ws.send_str(frame.data)
        except _SEND_ERRORS as e:
            logger.error(f"Failed to send {frame.kind} frame: {e}")
            self._report_error(AudioSendError(f"Failed to send {frame.kind} frame: {e}"))

    def _enqueue(self, frame: OutboundFrame) -> None:
        loop = self._loop
        if loop is None or self._outbound is None:
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            self._outbound.put_nowait(frame)
            return
        try:
            loop.call_soon_threadsafe(self._outbound.put_nowait, frame)
        except RuntimeError as e:
            logger.warning(f"Event loop unavailable, dropping {frame.kind} frame: {e}")

    def _transition(self, new_state: SessionState) -> bool:
        with self._state_lock:
            if not self.session.can_transition_to(new_state):
                logger.warning(f"Refusing transition {self.session.state.value} -> {new_state.value}")
                return False
            logger.debug(f"Session {self.task_id}: {self.session.state.value} -> {new_state.value}")
            self.session.state = new_state
            if new_state.is_terminal:
                self.session.finished_at = datetime.now()
            return True

    def _fail(self, error: StreamScribeError) -> None:
        self._transition(SessionState.FAILED)
        self._report_error(error)

    def _report_error(self, error: StreamScribeError) -> None:
        self.last_error = error
        self.session.error_message = str(error)
        logger.error(f"{type(error).__name__}: {error}")
        self._invoke(self._on_error, str(error))

    def _notify_completed(self) -> None:
        """Fire the completion callback at most once per start()."""
        if self._completion_sent:
            return
        self._completion_sent = True
        self._invoke(self._on_completed)

    def _invoke(self, callback: Optional[Callable], *args) -> None:
        if callback is None or self._disposed:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception(f"Callback {getattr(callback, '__name__', callback)} raised")

    async def _close_transport(self) -> None:
        ws, self._ws = self._ws, None
        if ws is None:
            return
        if not ws.closed:
            try:
                await ws.close()
            except (aiohttp.ClientError, OSError, RuntimeError) as e:
                logger.warning(f"Error closing WebSocket: {e}")
        logger.debug("WebSocket closed")

    async def _release_http(self) -> None:
        http, self._http = self._http, None
        if http is not None and not http.closed:
            await http.close()

    async def _stop_tasks(self) -> None:
        current = asyncio.current_task()
        pending = []
        for task in (self._listener_task, self._writer_task):
            if task is not None and task is not current and not task.done():
                task.cancel()
                pending.append(task)
        if self._listener_task is not current:
            self._listener_task = None
        self._writer_task = None
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
