"""JSON control messages exchanged with the DashScope duplex inference endpoint."""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..errors import ProtocolError
from ..models.transcription import TranscriptionResult

logger = logging.getLogger(__name__)

ACTION_RUN_TASK = "run-task"
ACTION_FINISH_TASK = "finish-task"
STREAMING_DUPLEX = "duplex"

EVENT_TASK_STARTED = "task-started"
EVENT_RESULT_GENERATED = "result-generated"
EVENT_TASK_FINISHED = "task-finished"
EVENT_TASK_FAILED = "task-failed"


@dataclass
class InboundMessage:
    """A decoded server message."""
    event: str
    task_id: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    header: Dict[str, Any] = field(default_factory=dict)
    payload: Dict[str, Any] = field(default_factory=dict)


def build_run_task(task_id: str,
                   model: str,
                   sample_rate: int,
                   audio_format: str,
                   language_hints: List[str]) -> str:
    """Serialize the run-task command that opens a recognition task."""
    message = {
        "header": {
            "action": ACTION_RUN_TASK,
            "task_id": task_id,
            "streaming": STREAMING_DUPLEX,
        },
        "payload": {
            "task_group": "audio",
            "task": "asr",
            "function": "recognition",
            "model": model,
            "parameters": {
                "sample_rate": sample_rate,
                "format": audio_format,
                "language_hints": list(language_hints),
            },
            "input": {},
        },
    }
    return json.dumps(message, ensure_ascii=False)


def build_finish_task(task_id: str) -> str:
    """Serialize the finish-task command that closes the audio stream."""
    message = {
        "header": {
            "action": ACTION_FINISH_TASK,
            "task_id": task_id,
            "streaming": STREAMING_DUPLEX,
        },
        "payload": {
            "input": {},
        },
    }
    return json.dumps(message, ensure_ascii=False)


def parse_inbound(data: Any) -> InboundMessage:
    """Decode one inbound text frame.

    Raises:
        ProtocolError: if the frame is not a JSON object with a header and event
    """
    if isinstance(data, (bytes, bytearray)):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProtocolError(f"Inbound message is not valid UTF-8: {e}") from e

    try:
        message = json.loads(data)
    except (TypeError, ValueError) as e:
        raise ProtocolError(f"Inbound message is not valid JSON: {e}") from e

    if not isinstance(message, dict):
        raise ProtocolError("Inbound message is not a JSON object")

    header = message.get("header")
    if not isinstance(header, dict):
        raise ProtocolError("Inbound message has no header")

    event = header.get("event")
    if not isinstance(event, str) or not event:
        raise ProtocolError("Inbound message header has no event")

    payload = message.get("payload") or {}
    if not isinstance(payload, dict):
        raise ProtocolError(f"Inbound {event} payload is not an object")

    return InboundMessage(
        event=event,
        task_id=header.get("task_id"),
        error_code=header.get("error_code"),
        error_message=header.get("error_message"),
        header=header,
        payload=payload,
    )


def parse_sentence(message: InboundMessage) -> TranscriptionResult:
    """Extract the sentence carried by a result-generated message.

    Missing levels yield an empty text; wrongly typed levels are a protocol error.
    """
    output = message.payload.get("output") or {}
    if not isinstance(output, dict):
        raise ProtocolError("result-generated output is not an object")
    sentence = output.get("sentence") or {}
    if not isinstance(sentence, dict):
        raise ProtocolError("result-generated sentence is not an object")

    text = sentence.get("text")
    if text is None:
        text = ""
    elif not isinstance(text, str):
        text = str(text)

    return TranscriptionResult(
        text=text,
        task_id=message.task_id or "",
        is_final=bool(sentence.get("sentence_end", False)),
        begin_time=sentence.get("begin_time"),
        end_time=sentence.get("end_time"),
    )
