import pytest
import threading
import time
from concurrent import futures

from palette_client import api, states
from palette_client.models import AnalysisResult, ErrorKind, UploadedImage
from palette_client.uploader import UploadClient


def make_image(filename: str = "selfie.jpg", content_type: str = "image/jpeg", size: int = 10 * 1024) -> UploadedImage:
    return UploadedImage(filename=filename, content_type=content_type, content=b"\xff" * size)


def make_result(name: str, hex_value: str = "#c77743") -> AnalysisResult:
    return AnalysisResult.model_validate({
        "colors": [{"name": name, "hex": hex_value, "usage": "Perfect for autumn outfits and evening wear", "confidence": 0.95}],
        "skinTone": "warm",
        "season": "autumn",
    })


@pytest.fixture
def make_client():
    created = []
    def _make(analyze, **kwargs):
        client = UploadClient(analyze=analyze, **kwargs)
        created.append(client)
        return client
    yield _make
    for client in created:
        client.close()


@pytest.fixture
def phase_log():
    log = []
    def listener(old, new):
        if old.phase != new.phase:
            log.append(new.phase)
    return log, listener

# --- Single upload ---

def test_submit_scenario_a_reaches_ready(make_client):
    client = make_client(lambda image: make_result("Warm Terracotta"))

    client.submit(make_image())
    assert client.wait(timeout=5)

    state = client.state
    assert isinstance(state, states.Ready)
    assert [c.name for c in state.result.colors] == ["Warm Terracotta"]
    assert state.result.colors[0].hex == "#c77743"
    assert state.preview.startswith("data:image/jpeg;base64,")


def test_submit_passes_through_previewing_then_loading_once(make_client, phase_log):
    log, listener = phase_log
    client = make_client(lambda image: make_result("Any"))
    client.subscribe(listener)

    client.submit(make_image())
    client.wait(timeout=5)

    assert log == ["previewing", "loading", "ready"]


def test_submit_is_loading_while_request_in_flight(make_client):
    release = threading.Event()
    def slow_analyze(image):
        release.wait(5)
        return make_result("Slow")

    client = make_client(slow_analyze)
    client.submit(make_image())

    assert isinstance(client.state, states.Loading)
    release.set()
    client.wait(timeout=5)
    assert isinstance(client.state, states.Ready)


def test_each_submit_gets_a_new_sequence_number(make_client):
    client = make_client(lambda image: make_result("Any"))
    client.submit(make_image())
    client.wait(timeout=5)
    first_seq = client.state.seq
    client.submit(make_image())
    client.wait(timeout=5)
    assert client.state.seq == first_seq + 1

# --- Failures ---

def test_network_failure_scenario_b(make_client):
    def offline(image):
        raise api.NetworkFailureError("Could not reach the analysis service.")

    client = make_client(offline)
    client.submit(make_image())
    client.wait(timeout=5)

    state = client.state
    assert isinstance(state, states.Failed)
    assert state.phase != "loading"
    assert state.error.kind is ErrorKind.NETWORK_FAILURE


def test_unexpected_exception_does_not_escape(make_client):
    def broken(image):
        raise KeyError("boom")

    client = make_client(broken)
    client.submit(make_image())
    client.wait(timeout=5)

    assert isinstance(client.state, states.Failed)
    assert "boom" not in client.state.error.message


def test_failure_keeps_previous_palette(make_client):
    outcomes = [make_result("First"), api.ServerError(500, "API Error (500): Failed to process image")]
    def analyze(image):
        outcome = outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    client = make_client(analyze)
    client.submit(make_image())
    client.wait(timeout=5)
    client.submit(make_image())
    client.wait(timeout=5)

    state = client.state
    assert isinstance(state, states.Failed)
    assert state.error.kind is ErrorKind.SERVER_ERROR
    assert state.result.colors[0].name == "First"


@pytest.mark.parametrize("image", [
    None,
    make_image(filename="notes.txt", content_type="text/plain"),
    make_image(size=0),
])
def test_invalid_input_sends_no_request(make_client, mocker, image):
    analyze = mocker.Mock()
    client = make_client(analyze)

    client.submit(image)
    client.wait(timeout=5)

    analyze.assert_not_called()
    assert isinstance(client.state, states.Failed)
    assert client.state.error.kind is ErrorKind.INVALID_INPUT


def test_preview_failure_does_not_block_analysis(make_client):
    def bad_preview(image):
        raise ValueError("cannot decode")

    client = make_client(lambda image: make_result("Fine"), decode_preview=bad_preview)
    client.submit(make_image())
    client.wait(timeout=5)

    assert isinstance(client.state, states.Ready)
    assert client.state.preview is None

# --- Superseded uploads ---

def test_second_upload_wins_when_its_response_arrives_first_scenario_d(make_client):
    first_started = threading.Event()
    release_first = threading.Event()

    def analyze(image):
        if image.filename == "first.jpg":
            first_started.set()
            release_first.wait(5)
            return make_result("First", "#111111")
        return make_result("Second", "#222222")

    client = make_client(analyze)
    client.submit(make_image("first.jpg"))
    assert first_started.wait(5)
    time.sleep(0.05)
    client.submit(make_image("second.jpg"))

    # Let the second request finish before the first one answers.
    deadline = time.monotonic() + 5
    while not isinstance(client.state, states.Ready) and time.monotonic() < deadline:
        time.sleep(0.01)
    release_first.set()
    assert client.wait(timeout=5)

    assert client.state.result.colors[0].name == "Second"
    assert client.state.seq == 2


def test_second_upload_wins_when_first_response_arrives_first(make_client):
    release_second = threading.Event()

    def analyze(image):
        if image.filename == "second.jpg":
            release_second.wait(5)
            return make_result("Second", "#222222")
        return make_result("First", "#111111")

    client = make_client(analyze)
    client.submit(make_image("first.jpg"))
    client.submit(make_image("second.jpg"))
    time.sleep(0.05)
    assert isinstance(client.state, states.Loading)
    release_second.set()
    client.wait(timeout=5)

    assert client.state.result.colors[0].name == "Second"


def test_stale_failure_does_not_replace_newer_result(make_client):
    release_first = threading.Event()

    def analyze(image):
        if image.filename == "first.jpg":
            release_first.wait(5)
            raise api.NetworkFailureError("timed out")
        return make_result("Second")

    client = make_client(analyze)
    client.submit(make_image("first.jpg"))
    client.submit(make_image("second.jpg"))
    deadline = time.monotonic() + 5
    while not isinstance(client.state, states.Ready) and time.monotonic() < deadline:
        time.sleep(0.01)
    release_first.set()
    client.wait(timeout=5)

    assert isinstance(client.state, states.Ready)
    assert client.state.error is None

# --- Worker pool ---

def test_shared_executor_survives_client_close():
    shared = futures.ThreadPoolExecutor(max_workers=2)
    try:
        first = UploadClient(analyze=lambda image: make_result("First"), executor=shared)
        second = UploadClient(analyze=lambda image: make_result("Second"), executor=shared)

        first.submit(make_image())
        first.wait(timeout=5)
        first.close()

        second.submit(make_image())
        assert second.wait(timeout=5)
        assert second.state.result.colors[0].name == "Second"
    finally:
        shared.shutdown(wait=True)


def test_close_shuts_down_own_executor(make_client):
    client = make_client(lambda image: make_result("Any"))
    client.close()
    with pytest.raises(RuntimeError):
        client._executor.submit(lambda: None)
