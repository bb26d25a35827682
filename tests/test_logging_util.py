import logging

import pytest

from uniroute.logging_util import PIPELINE_STEPS, get_logger, log_retry, log_step, timed_step

def test_get_logger_attaches_one_handler():
    a = get_logger("uniroute.test.handlers")
    b = get_logger("uniroute.test.handlers")
    assert a is b
    assert len(a.handlers) == 1

def test_log_step_numbers_stage_and_adds_context(caplog):
    logger = logging.getLogger("uniroute.test.step")
    with caplog.at_level(logging.INFO, logger="uniroute.test.step"):
        log_step(logger, "send", "POST /v1/responses", endpoint="response_api", request_id="r1")
        log_step(logger, "route", "route request")
    first, second = [r.getMessage() for r in caplog.records]
    assert first == "[STEP 3/4 send] endpoint=response_api request=r1 - POST /v1/responses"
    assert second == "[STEP 1/4 route] route request"

def test_timed_step_records_duration_on_failure():
    logger = logging.getLogger("uniroute.test.timed")
    timings = {}
    with pytest.raises(RuntimeError):
        with timed_step(logger, "transform_request", "build", timings):
            raise RuntimeError("boom")
    assert isinstance(timings["transform_request_ms"], int)

def test_log_retry_shows_attempt_budget(caplog):
    logger = logging.getLogger("uniroute.test.retry")
    with caplog.at_level(logging.WARNING, logger="uniroute.test.retry"):
        log_retry(logger, "/v1/x", 1, 3, ConnectionError("down"), 200)
    assert caplog.records[0].getMessage() == "POST /v1/x attempt 1/3 failed (down); retrying in 200ms"

def test_pipeline_has_four_stages():
    assert PIPELINE_STEPS == ("route", "transform_request", "send", "transform_response")
