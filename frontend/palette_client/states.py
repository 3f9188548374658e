"""
Upload lifecycle as a tagged union plus a pure transition function.

Every state and event carries the `seq` of the user action it belongs to.
An event whose `seq` does not match the current state's is stale and is
dropped, so a slow response for a superseded upload can never overwrite the
result of a newer one.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Annotated, Literal, Optional, Union

from .models import AnalysisResult, ClientError


# --- States ---

class _BaseState(BaseModel):
    seq: int = 0
    preview: Optional[str] = Field(None, repr=False)
    result: Optional[AnalysisResult] = None # last successful palette, kept across failures
    error: Optional[ClientError] = None

    model_config = ConfigDict(frozen=True)


class Idle(_BaseState):
    phase: Literal["idle"] = "idle"


class Previewing(_BaseState):
    phase: Literal["previewing"] = "previewing"


class Loading(_BaseState):
    phase: Literal["loading"] = "loading"


class Ready(_BaseState):
    phase: Literal["ready"] = "ready"


class Failed(_BaseState):
    phase: Literal["failed"] = "failed"


UploadState = Annotated[
    Union[Idle, Previewing, Loading, Ready, Failed],
    Field(discriminator="phase")
]


# --- Events ---

class _BaseEvent(BaseModel):
    seq: int

    model_config = ConfigDict(frozen=True)


class FileSelected(_BaseEvent):
    type: Literal["file_selected"] = "file_selected"
    filename: str


class InputRejected(_BaseEvent):
    type: Literal["input_rejected"] = "input_rejected"
    error: ClientError


class RequestStarted(_BaseEvent):
    type: Literal["request_started"] = "request_started"


class PreviewDecoded(_BaseEvent):
    type: Literal["preview_decoded"] = "preview_decoded"
    preview: str = Field(repr=False)


class ResponseReceived(_BaseEvent):
    type: Literal["response_received"] = "response_received"
    result: AnalysisResult


class RequestFailed(_BaseEvent):
    type: Literal["request_failed"] = "request_failed"
    error: ClientError


UploadEvent = Annotated[
    Union[FileSelected, InputRejected, RequestStarted, PreviewDecoded, ResponseReceived, RequestFailed],
    Field(discriminator="type")
]


def _enter(target: type, state: _BaseState, **changes) -> _BaseState:
    fields = {"seq": state.seq, "preview": state.preview, "result": state.result, "error": state.error}
    fields.update(changes)
    return target(**fields)


def transition(state: _BaseState, event: _BaseEvent) -> _BaseState:
    """
    Returns the state that follows `state` after `event`.
    Returns `state` itself when the event does not apply.
    """
    # A newer user action starts a new generation; an older one is stale.
    if isinstance(event, (FileSelected, InputRejected)) and event.seq < state.seq:
        return state
    if isinstance(event, FileSelected):
        return _enter(Previewing, state, seq=event.seq, preview=None, error=None)
    if isinstance(event, InputRejected):
        return _enter(Failed, state, seq=event.seq, preview=None, error=event.error)

    if event.seq != state.seq:
        return state

    if isinstance(event, PreviewDecoded):
        return state.model_copy(update={"preview": event.preview})
    if isinstance(event, RequestStarted) and isinstance(state, Previewing):
        return _enter(Loading, state)
    if isinstance(event, ResponseReceived) and isinstance(state, Loading):
        return _enter(Ready, state, result=event.result, error=None)
    if isinstance(event, RequestFailed) and isinstance(state, Loading):
        return _enter(Failed, state, error=event.error)
    return state
