"""
Unit Tests — Orchestrator
=========================
End-to-end runs of validate → archive → build → push against a mocked
daemon client.
"""
import gzip
import io
import json
import tarfile
from unittest.mock import MagicMock, patch

import pytest
import requests
from docker.errors import DockerException

from paastel_build.core.config import PipelineConfig
from paastel_build.core.exceptions import ConfigError, TransportError
from paastel_build.pipeline.orchestrator import Orchestrator, run_pipeline, validate_config

IMAGE = "localhost:5000/teste/nginx:dev"


def _client(build_messages=(), push_messages=()):
    client = MagicMock()
    client.build.return_value = iter(build_messages)
    client.push.return_value = iter(push_messages)
    return client


def _broken_build():
    yield {"stream": "Step 1/2 : FROM nginx\n"}
    raise requests.exceptions.ConnectionError("connection reset by peer")


@pytest.fixture
def context(tmp_path):
    (tmp_path / "Dockerfile").write_text("FROM nginx\nCOPY . /usr/share/nginx/html\n")
    (tmp_path / "index.html").write_text("<h1>hi</h1>\n")
    (tmp_path / "debug.log").write_text("noise\n")
    (tmp_path / ".dockerignore").write_text("*.log\n")
    return tmp_path


@pytest.fixture
def streams():
    return io.StringIO(), io.StringIO()


def _config(context, **overrides):
    values = {"image": IMAGE, "context_dir": str(context)}
    values.update(overrides)
    return PipelineConfig(**values)


# ---------------------------------------------------------------------------
# 1. Validation
# ---------------------------------------------------------------------------
class TestValidation:

    def test_returns_parsed_reference(self, context):
        ref = validate_config(_config(context))
        assert ref.repository == "localhost:5000/teste/nginx"
        assert ref.tag == "dev"

    def test_missing_context_dir(self, tmp_path, streams):
        client = _client()
        with pytest.raises(ConfigError) as exc_info:
            run_pipeline(_config(tmp_path / "missing"), client, *streams)
        assert "does not exist" in exc_info.value.message
        client.build.assert_not_called()

    def test_missing_dockerfile(self, tmp_path, streams):
        client = _client()
        with pytest.raises(ConfigError) as exc_info:
            run_pipeline(_config(tmp_path), client, *streams)
        assert "Dockerfile 'Dockerfile' not found" in exc_info.value.message
        client.build.assert_not_called()

    def test_custom_dockerfile_location(self, context, streams):
        (context / "docker").mkdir()
        (context / "docker" / "Dockerfile.prod").write_text("FROM nginx\n")
        client = _client()

        run_pipeline(_config(context, dockerfile="docker/Dockerfile.prod"), client, *streams)

        assert client.build.call_args.kwargs["dockerfile"] == "docker/Dockerfile.prod"

    def test_empty_image(self, context, streams):
        client = _client()
        with pytest.raises(ConfigError):
            run_pipeline(_config(context, image="  "), client, *streams)
        client.build.assert_not_called()


# ---------------------------------------------------------------------------
# 2. Successful runs
# ---------------------------------------------------------------------------
class TestSuccessfulRun:

    def test_build_then_push(self, context, streams):
        out, err = streams
        client = _client(
            build_messages=[{"stream": "Step 1/2 : FROM nginx\n"}],
            push_messages=[{"status": "Pushing", "progress": "[=>]"}, {"status": "Pushed"}],
        )

        result = run_pipeline(_config(context), client, out, err)

        assert result.status == "success"
        assert result.pushed is True
        assert result.stage == "done"
        client.build.assert_called_once()
        client.push.assert_called_once_with(
            "localhost:5000/teste/nginx",
            tag="dev",
            auth_config=None,
            stream=True,
            decode=True,
        )
        text = out.getvalue()
        assert "Step 1/2 : FROM nginx\n" in text
        assert "→ Pushing | [=>]\n" in text
        assert text.index("Build finished") < text.index("Pushing image")

    def test_build_tag_is_full_image(self, context, streams):
        client = _client()
        run_pipeline(_config(context), client, *streams)
        assert client.build.call_args.kwargs["tag"] == IMAGE

    def test_archive_sent_to_daemon_respects_ignore_rules(self, context, streams):
        client = _client()
        run_pipeline(_config(context), client, *streams)

        fileobj = client.build.call_args.kwargs["fileobj"]
        raw = gzip.decompress(fileobj.getvalue())
        with tarfile.open(fileobj=io.BytesIO(raw)) as tar:
            names = set(tar.getnames())
        assert names == {".dockerignore", "Dockerfile", "index.html"}

    def test_embedded_errors_do_not_fail_the_run(self, context, streams):
        out, err = streams
        client = _client(
            build_messages=[{"error": "warning from daemon"}],
            push_messages=[{"error": "layer already exists"}, {"status": "Pushed"}],
        )

        result = run_pipeline(_config(context), client, out, err)

        assert result.status == "success"
        assert result.build_errors == ["warning from daemon"]
        assert result.push_errors == ["layer already exists"]
        assert "Docker build error: warning from daemon" in err.getvalue()

    def test_push_disabled(self, context, streams):
        client = _client()
        result = run_pipeline(_config(context, push=False), client, *streams)
        assert result.status == "success"
        assert result.pushed is False
        client.push.assert_not_called()

    def test_credentials_forwarded_to_push(self, context, streams):
        creds = {"username": "ci", "password": "token"}
        client = _client()
        run_pipeline(_config(context, credentials=creds), client, *streams)
        assert client.push.call_args.kwargs["auth_config"] == creds

    @pytest.mark.parametrize("image, expected", [
        ("nginx:", "nginx:latest"),
        (" nginx:dev ", "nginx:dev"),
        ("nginx", "nginx:latest"),
    ])
    def test_build_tag_matches_pushed_reference(self, context, streams, image, expected):
        out, _ = streams
        client = _client()

        run_pipeline(_config(context, image=image), client, *streams)

        pushed = "{}:{}".format(client.push.call_args.args[0], client.push.call_args.kwargs["tag"])
        assert client.build.call_args.kwargs["tag"] == expected
        assert pushed == expected
        assert f"Starting image build: {expected}\n" in out.getvalue()

    def test_untagged_image_pushes_latest(self, context, streams):
        client = _client()
        run_pipeline(_config(context, image="nginx"), client, *streams)
        client.push.assert_called_once()
        assert client.push.call_args.args == ("nginx",)
        assert client.push.call_args.kwargs["tag"] == "latest"


# ---------------------------------------------------------------------------
# 3. Failures
# ---------------------------------------------------------------------------
class TestFailedRun:

    def test_build_transport_error_skips_push(self, context, streams):
        client = MagicMock()
        client.build.return_value = _broken_build()

        with pytest.raises(TransportError) as exc_info:
            run_pipeline(_config(context), client, *streams)

        assert exc_info.value.phase == "build"
        client.push.assert_not_called()

    def test_results_written_on_failure(self, context, tmp_path, streams):
        results = tmp_path / "out" / "results.json"
        results.parent.mkdir()
        client = MagicMock()
        client.build.return_value = _broken_build()

        with pytest.raises(TransportError):
            run_pipeline(_config(context, results_path=str(results)), client, *streams)

        data = json.loads(results.read_text())
        assert data["status"] == "failure"
        assert data["stage"] == "build"
        assert "Error during build stream" in data["error_message"]
        assert data["pushed"] is False

    def test_results_written_on_success(self, context, tmp_path, streams):
        results = tmp_path / "results.json"
        run_pipeline(_config(context, results_path=str(results)), _client(), *streams)

        data = json.loads(results.read_text())
        assert data["status"] == "success"
        assert data["repository"] == "localhost:5000/teste/nginx"
        assert data["tag"] == "dev"
        assert data["archive_files"] == 3
        assert data["archive_excluded"] == 1


# ---------------------------------------------------------------------------
# 4. Connecting
# ---------------------------------------------------------------------------
class TestConnect:

    def test_client_created_from_environment(self, context, streams):
        api = _client()
        with patch("paastel_build.pipeline.orchestrator.docker.from_env") as from_env:
            from_env.return_value.api = api
            Orchestrator(out=streams[0], err=streams[1]).run(_config(context, timeout=30))

        from_env.assert_called_once_with(timeout=30)
        api.build.assert_called_once()

    def test_unreachable_daemon(self, context, streams):
        with patch(
            "paastel_build.pipeline.orchestrator.docker.from_env",
            side_effect=DockerException("Error while fetching server API version"),
        ):
            with pytest.raises(TransportError) as exc_info:
                run_pipeline(_config(context), None, *streams)

        assert exc_info.value.phase == "connect"
