import logging

import pytest

from uniroute.endpoints import Endpoint
from uniroute.errors import EndpointRoutingError
from uniroute.router import RequestRouter

@pytest.mark.parametrize(
    "request_, expected",
    [
        ({"audio": {"file": "clip.mp3", "action": "transcribe"}}, Endpoint.AUDIO_TRANSCRIPTION),
        ({"audio": {"file": "clip.mp3", "action": "translate"}}, Endpoint.AUDIO_TRANSLATION),
        ({"audio": {"text": "hello", "action": "speech"}}, Endpoint.AUDIO_SPEECH),
        ({"image": {"prompt": "a sunset"}}, Endpoint.IMAGE_GENERATION),
        ({"image": {"image": "x.png", "prompt": "add sky"}}, Endpoint.IMAGE_EDIT),
        ({"image": {"image": "x.png"}}, Endpoint.IMAGE_VARIATION),
        ({"audio_input": {"file": "q.wav"}}, Endpoint.CHAT_COMPLETION),
        ({"audio_input": {"data": "UklGRg==", "format": "wav"}}, Endpoint.CHAT_COMPLETION),
        ({"message": "hello"}, Endpoint.RESPONSE_API),
        ({"messages": [{"role": "user", "content": "hi"}]}, Endpoint.RESPONSE_API),
        ({}, Endpoint.RESPONSE_API),
    ],
)
def test_routes_to_expected_endpoint(request_, expected):
    assert RequestRouter().determine_endpoint(request_) is expected

def test_image_with_prompt_is_edit_not_generation():
    router = RequestRouter(validate_conflicts=True, conflict_behavior="error")
    assert router.determine_endpoint({"image": {"image": "x.png", "prompt": "add sky"}}) is Endpoint.IMAGE_EDIT

def test_audio_input_wins_over_sibling_message():
    router = RequestRouter(validate_conflicts=True, conflict_behavior="error")
    req = {"message": "what is said here?", "audio_input": {"file": "q.wav"}}
    assert router.determine_endpoint(req) is Endpoint.CHAT_COMPLETION

@pytest.mark.parametrize(
    "request_",
    [
        {"audio": "not a dict"},
        {"image": "not a dict"},
        {"audio": None, "image": None},
        {"audio": {"file": "clip.mp3"}},
        {"audio": {"file": "clip.mp3", "action": "dance"}},
        {"audio": {"file": "clip.mp3", "action": 3}},
        {"audio": {"text": "hi", "action": "transcribe"}},
        {"image": {"prompt": None, "image": None}},
    ],
)
def test_malformed_shapes_fall_back_without_raising(request_):
    router = RequestRouter(validate_conflicts=True)
    assert router.determine_endpoint(request_) is Endpoint.RESPONSE_API

def test_determinism():
    router = RequestRouter()
    req = {"audio": {"file": "a.wav", "action": "translate"}, "message": "x"}
    results = {router.determine_endpoint(req) for _ in range(20)}
    assert results == {Endpoint.AUDIO_TRANSLATION}

def test_custom_priority_first_match_wins():
    router = RequestRouter(endpoint_priority=["response_api", "audio_transcription"])
    req = {"message": "hello", "audio": {"file": "a.mp3", "action": "transcribe"}}
    assert router.determine_endpoint(req) is Endpoint.RESPONSE_API

def test_endpoint_missing_from_priority_is_never_chosen():
    router = RequestRouter(endpoint_priority=["image_generation", "response_api"])
    assert router.determine_endpoint({"audio": {"file": "a.mp3", "action": "transcribe"}}) is Endpoint.RESPONSE_API

CONFLICTING = {
    "audio": {"file": "a.mp3", "action": "transcribe"},
    "image": {"prompt": "a cat"},
}

def test_conflict_error_raises_with_explanation():
    router = RequestRouter(validate_conflicts=True, conflict_behavior="error")
    with pytest.raises(EndpointRoutingError) as ei:
        router.determine_endpoint(CONFLICTING)

    exp = ei.value.explanation
    assert exp.candidates == ["audio_transcription", "image_generation"]
    assert "transcribe" in exp.reasoning
    assert exp.conclusion
    assert "Reasoning:" in str(ei.value)
    assert "Conclusion:" in str(ei.value)

def test_conflict_warn_logs_and_uses_priority(caplog):
    logger = logging.getLogger("test.router.warn")
    router = RequestRouter(validate_conflicts=True, conflict_behavior="warn", logger=logger)
    with caplog.at_level(logging.WARNING, logger="test.router.warn"):
        assert router.determine_endpoint(CONFLICTING) is Endpoint.AUDIO_TRANSCRIPTION
    assert any("conflict" in r.getMessage() for r in caplog.records)

def test_conflict_silent_uses_priority_without_logging(caplog):
    logger = logging.getLogger("test.router.silent")
    router = RequestRouter(
        endpoint_priority=["image_generation", "audio_transcription", "response_api"],
        validate_conflicts=True,
        conflict_behavior="silent",
        logger=logger,
    )
    with caplog.at_level(logging.DEBUG, logger="test.router.silent"):
        assert router.determine_endpoint(CONFLICTING) is Endpoint.IMAGE_GENERATION
    assert not caplog.records

def test_conflict_detection_disabled_resolves_by_priority():
    router = RequestRouter(validate_conflicts=False, conflict_behavior="error")
    assert router.determine_endpoint(CONFLICTING) is Endpoint.AUDIO_TRANSCRIPTION

def test_invalid_priority_tokens_raise():
    with pytest.raises(EndpointRoutingError) as ei:
        RequestRouter(endpoint_priority=["fake_endpoint", "audio_transcription", "another_invalid"])
    msg = str(ei.value)
    assert "Invalid endpoints:" in msg
    assert "fake_endpoint" in msg and "another_invalid" in msg
    assert ei.value.explanation.candidates == ["fake_endpoint", "another_invalid"]

def test_invalid_priority_tokens_skipped_when_validation_disabled():
    router = RequestRouter(endpoint_priority=["invalid_endpoint", "audio_transcription"], validate_endpoint_names=False)
    assert router.priority == [Endpoint.AUDIO_TRANSCRIPTION]

def test_unknown_conflict_behavior_rejected():
    with pytest.raises(ValueError):
        RequestRouter(conflict_behavior="explode")

def test_explain_lists_matches():
    exp = RequestRouter().explain({"image": {"image": "x.png"}})
    assert exp.candidates == ["image_variation"]
    assert exp.conclusion == "routed to image_variation"
