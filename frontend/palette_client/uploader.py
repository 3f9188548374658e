import logging
import threading
from concurrent import futures
from typing import Callable, List, Optional

from . import api, states
from .models import AnalysisResult, ClientError, ErrorKind, UploadedImage

logger = logging.getLogger(__name__)

Listener = Callable[[states._BaseState, states._BaseState], None]


class UploadClient:
    """
    Drives the upload -> analyze -> display cycle for one user session.

    `submit` returns immediately; the preview decode and the network call run
    on a worker pool and report back through `transition`, which discards
    anything belonging to a superseded upload.
    """

    def __init__(
        self,
        analyze: Callable[[UploadedImage], AnalysisResult] = api.request_analysis,
        decode_preview: Callable[[UploadedImage], str] = api.encode_preview,
        max_workers: int = 4,
        executor: Optional[futures.Executor] = None,
    ):
        self._analyze = analyze
        self._decode_preview = decode_preview
        # A caller-supplied pool is shared and is not shut down by close().
        self._owns_executor = executor is None
        self._executor = executor or futures.ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="palette-upload")
        self._lock = threading.Lock()
        self._state: states._BaseState = states.Idle()
        self._seq = 0
        self._pending: List[futures.Future] = []
        self._listeners: List[Listener] = []

    @property
    def state(self) -> states._BaseState:
        return self._state

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def submit(self, image: Optional[UploadedImage]) -> None:
        """
        Starts a new analysis for `image`. Never raises; problems end up in a
        Failed state.
        """
        with self._lock:
            self._seq += 1
            seq = self._seq

        try:
            api.validate_image(image)
        except api.InvalidInputError as e:
            logger.warning(f"Upload #{seq} rejected: {e.message}")
            self._dispatch(states.InputRejected(seq=seq, error=ClientError(kind=e.kind, message=e.message)))
            return

        logger.info(f"Upload #{seq}: '{image.filename}' ({image.size} bytes)")
        self._dispatch(states.FileSelected(seq=seq, filename=image.filename))
        self._dispatch(states.RequestStarted(seq=seq))

        preview_future = self._executor.submit(self._run_preview, seq, image)
        request_future = self._executor.submit(self._run_request, seq, image)
        with self._lock:
            self._pending = [f for f in self._pending if not f.done()]
            self._pending.extend([preview_future, request_future])

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Blocks until all background work started so far has finished.
        Returns False if `timeout` expired first.
        """
        with self._lock:
            pending = list(self._pending)
        _, not_done = futures.wait(pending, timeout=timeout)
        return not not_done

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    # --- Background work ---

    def _run_preview(self, seq: int, image: UploadedImage) -> None:
        try:
            preview = self._decode_preview(image)
        except Exception as e:
            # A broken preview does not affect the analysis itself.
            logger.warning(f"Upload #{seq}: preview decode failed: {e}")
            return
        self._dispatch(states.PreviewDecoded(seq=seq, preview=preview))

    def _run_request(self, seq: int, image: UploadedImage) -> None:
        try:
            result = self._analyze(image)
        except api.AnalysisClientError as e:
            logger.error(f"Upload #{seq} failed ({e.kind.value}): {e.message}")
            event = states.RequestFailed(seq=seq, error=ClientError(kind=e.kind, message=e.message))
        except Exception as e:
            logger.error(f"Upload #{seq} failed unexpectedly: {e}", exc_info=True)
            event = states.RequestFailed(
                seq=seq,
                error=ClientError(kind=ErrorKind.NETWORK_FAILURE, message="Something went wrong while analyzing your photo.")
            )
        else:
            logger.info(f"Upload #{seq}: received {len(result.colors)} colors")
            event = states.ResponseReceived(seq=seq, result=result)
        self._dispatch(event)

    def _dispatch(self, event: states._BaseEvent) -> None:
        with self._lock:
            old = self._state
            new = states.transition(old, event)
            if new is old:
                if event.seq != old.seq:
                    logger.debug(f"Discarding stale {event.type} for upload #{event.seq} (current #{old.seq})")
                return
            self._state = new
            listeners = list(self._listeners)
        for listener in listeners:
            listener(old, new)
