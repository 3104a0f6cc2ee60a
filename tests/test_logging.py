"""Tests for the per-operation log context and JSON serialization."""

import io
import json

from loguru import logger

from boarddb.logging import (
    current_context,
    operation_context,
    serialize,
    setup_logging,
)


def capture_record(message: str, **extra) -> dict:
    records: list = []
    handler_id = logger.add(lambda m: records.append(m.record), level="DEBUG")
    try:
        logger.bind(**extra).info(message)
    finally:
        logger.remove(handler_id)
    return records[0]


class TestOperationContext:
    """Tests for operation_context tagging."""

    def test_context_is_empty_outside_operations(self):
        """Test no tags are set outside an operation."""
        assert current_context() == {}

    def test_operation_draws_request_id(self):
        """Test the outermost operation gets a short request id."""
        with operation_context("like_post", viewer_id="alice") as tags:
            assert current_context() == tags
            assert tags["operation"] == "like_post"
            assert tags["viewer_id"] == "alice"
            assert len(tags["request_id"]) == 12

        assert current_context() == {}

    def test_each_operation_gets_its_own_request_id(self):
        """Test sibling operations do not share a request id."""
        with operation_context("get_post_detail") as first:
            pass
        with operation_context("get_post_detail") as second:
            pass

        assert first["request_id"] != second["request_id"]

    def test_nested_operation_keeps_request_and_viewer(self):
        """Test nested operations inherit the request id and viewer and restore on exit."""
        with operation_context("delete_user", viewer_id="alice") as outer:
            with operation_context("delete_post") as inner:
                assert inner["request_id"] == outer["request_id"]
                assert inner["viewer_id"] == "alice"
                assert current_context()["operation"] == "delete_post"
            assert current_context()["operation"] == "delete_user"

        assert "operation" not in current_context()

    def test_service_calls_tag_records(self, board, make_user):
        """Test records logged by a service call carry its operation tags."""
        make_user("alice")
        records: list = []
        handler_id = logger.add(lambda m: records.append(m.record), level="DEBUG")
        try:
            board.create_post("alice", "general", "Hi", "Hello")
        finally:
            logger.remove(handler_id)

        tagged = [r for r in records if r["extra"].get("operation") == "create_post"]
        assert tagged
        assert {r["extra"]["viewer_id"] for r in tagged} == {"alice"}
        assert len({r["extra"]["request_id"] for r in tagged}) == 1


class TestSerialize:
    """Tests for the JSON serializer."""

    def test_includes_context_and_extra(self):
        """Test the payload carries context tags and bound extras."""
        with operation_context("delete_post", viewer_id="bob") as tags:
            record = capture_record("Deleted post", post_id=3)
            payload = json.loads(serialize(record))

        assert payload["message"] == "Deleted post"
        assert payload["level"] == "INFO"
        assert payload["operation"] == "delete_post"
        assert payload["viewer_id"] == "bob"
        assert payload["request_id"] == tags["request_id"]
        assert payload["post_id"] == 3

    def test_bound_values_win_over_context(self):
        """Test values passed to bind() override context tags."""
        with operation_context("like_post", viewer_id="bob"):
            record = capture_record("Liked", viewer_id="carol")

        assert json.loads(serialize(record))["viewer_id"] == "carol"

    def test_omits_none_and_private_extras(self):
        """Test None values and underscore keys are left out."""
        record = capture_record("Plain", post_id=None, _internal="x")
        payload = json.loads(serialize(record))

        assert "post_id" not in payload
        assert "_internal" not in payload
        assert "request_id" not in payload

    def test_exception_details(self):
        """Test an attached exception is serialized with its traceback."""
        records: list = []
        handler_id = logger.add(lambda m: records.append(m.record), level="DEBUG")
        try:
            try:
                raise RuntimeError("boom")
            except RuntimeError:
                logger.exception("Failed")
        finally:
            logger.remove(handler_id)

        payload = json.loads(serialize(records[0]))
        assert payload["error"]["type"] == "RuntimeError"
        assert payload["error"]["message"] == "boom"
        assert "Traceback" in payload["error"]["traceback"]


class TestSetupLogging:
    """Tests for sink configuration."""

    def test_json_sink(self):
        """Test JSON output emits one tagged object per line."""
        stream = io.StringIO()
        setup_logging(level="INFO", json_logs=True, sink=stream)

        with operation_context("scrap_post", viewer_id="carol"):
            logger.info("Scrapped")
        logger.debug("Hidden")

        lines = stream.getvalue().splitlines()
        assert len(lines) == 1
        payload = json.loads(lines[0])
        assert payload["message"] == "Scrapped"
        assert payload["operation"] == "scrap_post"

    def test_console_sink_prefixes_operation(self):
        """Test console output is prefixed with operation#request_id."""
        stream = io.StringIO()
        setup_logging(level="INFO", sink=stream)

        with operation_context("unlike_post") as tags:
            logger.info("Unliked")

        assert f"unlike_post#{tags['request_id']} | Unliked" in stream.getvalue()
