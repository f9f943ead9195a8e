"""
Unit Tests — Push Executor
==========================
Drains fake registry push streams and checks the exact progress lines.
"""
import io
from unittest.mock import MagicMock

import pytest
import requests

from paastel_build.core.exceptions import TransportError
from paastel_build.executor.push_executor import run_push
from paastel_build.models.events import PushEvent, PushEventKind


def _client(messages):
    client = MagicMock()
    client.push.return_value = iter(messages)
    return client


@pytest.fixture
def streams():
    return io.StringIO(), io.StringIO()


# ---------------------------------------------------------------------------
# 1. Event classification
# ---------------------------------------------------------------------------
class TestPushEventKind:

    @pytest.mark.parametrize("message, kind", [
        ({"status": "Pushing", "progress": "[==>   ]"}, PushEventKind.PROGRESS_UPDATE),
        ({"status": "Pushed"}, PushEventKind.STATUS_ONLY),
        ({"error": "denied"}, PushEventKind.EMBEDDED_ERROR),
        ({"status": "Pushing", "error": "denied"}, PushEventKind.EMBEDDED_ERROR),
        ({"id": "abc123"}, PushEventKind.IGNORED),
        ({"progress": "[==>   ]"}, PushEventKind.IGNORED),
        ({}, PushEventKind.IGNORED),
    ])
    def test_kind(self, message, kind):
        assert PushEvent.model_validate(message).kind is kind


# ---------------------------------------------------------------------------
# 2. Request
# ---------------------------------------------------------------------------
class TestPushRequest:

    def test_anonymous_push(self, streams):
        client = _client([])
        run_push(client, "localhost:5000/teste/nginx", "dev", None, *streams)
        client.push.assert_called_once_with(
            "localhost:5000/teste/nginx",
            tag="dev",
            auth_config=None,
            stream=True,
            decode=True,
        )

    def test_credentials_passed_through_untouched(self, streams):
        creds = {"username": "ci", "password": "s3cret", "serveraddress": "registry.example.com"}
        client = _client([])

        run_push(client, "registry.example.com/app", "1.0", creds, *streams)

        assert client.push.call_args.kwargs["auth_config"] is creds


# ---------------------------------------------------------------------------
# 3. Stream handling
# ---------------------------------------------------------------------------
class TestPushStream:

    def test_progress_and_status_lines(self, streams):
        out, err = streams
        client = _client([
            {"status": "The push refers to repository [localhost:5000/teste/nginx]"},
            {"status": "Pushing", "progress": "[==>      ]  1.2MB/5MB", "id": "abc"},
            {"status": "Pushed", "id": "abc"},
            {"status": "dev: digest: sha256:123 size: 1570"},
        ])

        outcome = run_push(client, "localhost:5000/teste/nginx", "dev", None, out, err)

        assert out.getvalue() == (
            "→ The push refers to repository [localhost:5000/teste/nginx]\n"
            "→ Pushing | [==>      ]  1.2MB/5MB\n"
            "→ Pushed\n"
            "→ dev: digest: sha256:123 size: 1570\n"
        )
        assert err.getvalue() == ""
        assert outcome.status_updates == 4

    def test_empty_progress_still_rendered(self, streams):
        out, err = streams
        run_push(_client([{"status": "Preparing", "progress": ""}]), "app", "latest", None, out, err)
        assert out.getvalue() == "→ Preparing | \n"

    def test_unrecognised_messages_ignored(self, streams):
        out, err = streams
        outcome = run_push(
            _client([{"id": "abc"}, {"aux": {"Digest": "sha256:1"}}]),
            "app", "latest", None, out, err,
        )
        assert out.getvalue() == ""
        assert err.getvalue() == ""
        assert outcome.ignored == 2
        assert outcome.message_count == 2

    def test_drained_log_counts_ignored_messages(self, streams, caplog):
        with caplog.at_level("INFO", logger="paastel_build.executor.push_executor"):
            run_push(_client([{"id": "abc"}, {"status": "Pushed"}]), "app", "latest", None, *streams)

        assert "updates=1 | ignored=1" in caplog.text

    def test_embedded_error_reported_and_stream_continues(self, streams):
        out, err = streams
        client = _client([
            {"status": "Pushing", "progress": "[=>]"},
            {"error": "unauthorized: authentication required"},
            {"status": "Retrying"},
        ])

        outcome = run_push(client, "app", "latest", None, out, err)

        assert err.getvalue() == "❌ Docker push error: unauthorized: authentication required\n"
        assert out.getvalue().endswith("→ Retrying\n")
        assert outcome.embedded_errors == ["unauthorized: authentication required"]

    def test_error_wins_over_status(self, streams):
        out, err = streams
        run_push(_client([{"status": "Pushing", "error": "blob unknown"}]), "app", "latest", None, out, err)
        assert out.getvalue() == ""
        assert "blob unknown" in err.getvalue()


# ---------------------------------------------------------------------------
# 4. Transport failures
# ---------------------------------------------------------------------------
class TestPushTransportErrors:

    def test_read_timeout_mid_stream_aborts(self, streams):
        out, err = streams

        def gen():
            yield {"status": "Pushing", "progress": "[=>]"}
            raise requests.exceptions.ReadTimeout("read timed out")

        client = MagicMock()
        client.push.return_value = gen()

        with pytest.raises(TransportError) as exc_info:
            run_push(client, "app", "latest", None, out, err)

        assert exc_info.value.phase == "push"
        assert "ReadTimeout" in exc_info.value.message
        assert out.getvalue() == "→ Pushing | [=>]\n"

    def test_non_object_message_aborts(self, streams):
        with pytest.raises(TransportError):
            run_push(_client([42]), "app", "latest", None, *streams)
