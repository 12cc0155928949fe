import json
import textwrap

import pytest
from typer.testing import CliRunner

from lambda_router.cli.main import LocalContext, app, build_sample_event
from lambda_router.core.events import EventSource, detect_event_source

runner = CliRunner()

TARGET_MODULE = textwrap.dedent(
    """
    from lambda_router import Application, Settings

    app = Application(Settings())
    app.get("/hello/:name", lambda req, resp, next_: resp.json({"hello": req.params["name"]}))


    def sync_handler(event, context):
        return {"statusCode": 204, "remaining": context.get_remaining_time_in_millis()}


    not_callable = 42
    """
)


@pytest.fixture
def target_module(tmp_path, monkeypatch):
    (tmp_path / "cli_target_app.py").write_text(TARGET_MODULE)
    monkeypatch.syspath_prepend(str(tmp_path))
    return "cli_target_app"


@pytest.fixture
def event_file(tmp_path):
    path = tmp_path / "event.json"
    path.write_text(json.dumps(build_sample_event(EventSource.APIGW, path="/hello/world")))
    return str(path)


class TestSampleEvent:
    def test_api_gateway(self):
        result = runner.invoke(app, ["sample-event", "-p", "/hello", "-q", "a=1", "-q", "a=2", "-H", "X-Test: yes"])
        assert result.exit_code == 0, result.output
        event = json.loads(result.stdout)
        assert detect_event_source(event) is EventSource.APIGW
        assert event["path"] == "/hello"
        assert event["multiValueQueryStringParameters"] == {"a": ["1", "2"]}
        assert event["queryStringParameters"] == {"a": "2"}
        assert event["headers"] == {"X-Test": "yes"}

    def test_load_balancer(self):
        result = runner.invoke(app, ["sample-event", "--source", "alb", "--method", "post", "--body", "{}"])
        assert result.exit_code == 0, result.output
        event = json.loads(result.stdout)
        assert detect_event_source(event) is EventSource.ALB
        assert event["httpMethod"] == "POST"
        assert event["body"] == "{}"
        assert event["queryStringParameters"] is None

    def test_unknown_source(self):
        result = runner.invoke(app, ["sample-event", "--source", "sqs"])
        assert result.exit_code == 2

    def test_malformed_header(self):
        result = runner.invoke(app, ["sample-event", "-H", "no-colon"])
        assert result.exit_code != 0


class TestInvoke:
    def test_application(self, target_module, event_file):
        result = runner.invoke(app, ["invoke", f"{target_module}:app", event_file])
        assert result.exit_code == 0, result.output
        output = json.loads(result.stdout)
        assert output["statusCode"] == 200
        assert json.loads(output["body"]) == {"hello": "world"}

    def test_plain_function(self, target_module, event_file):
        result = runner.invoke(app, ["invoke", f"{target_module}:sync_handler", event_file, "--timeout-ms", "5000"])
        assert result.exit_code == 0, result.output
        output = json.loads(result.stdout)
        assert output["statusCode"] == 204
        assert 0 < output["remaining"] <= 5000

    def test_event_from_stdin(self, target_module):
        event = json.dumps(build_sample_event(EventSource.ALB, path="/hello/stdin"))
        result = runner.invoke(app, ["invoke", f"{target_module}:app", "-"], input=event)
        assert result.exit_code == 0, result.output
        output = json.loads(result.stdout)
        assert output["statusDescription"] == "200 OK"
        assert json.loads(output["body"]) == {"hello": "stdin"}

    def test_not_callable(self, target_module, event_file):
        result = runner.invoke(app, ["invoke", f"{target_module}:not_callable", event_file])
        assert result.exit_code == 1

    def test_bad_target(self, event_file):
        result = runner.invoke(app, ["invoke", "no_colon_here", event_file])
        assert result.exit_code != 0

    def test_bad_log_level(self, target_module, event_file):
        result = runner.invoke(app, ["invoke", f"{target_module}:app", event_file, "-l", "loud"])
        assert result.exit_code == 2


def test_local_context_counts_down():
    context = LocalContext(timeout_ms=1000)
    assert 0 < context.get_remaining_time_in_millis() <= 1000
    assert LocalContext(timeout_ms=0).get_remaining_time_in_millis() == 0
