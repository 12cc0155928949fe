import base64
import json

import pytest

from lambda_router import Application, ConsoleLogger, EventSource, Request, Settings
from samples import (
    ALB_MULTI_VALUE_RAW_QUERY,
    ALB_RAW_QUERY,
    ALL_EVENTS,
    API_GATEWAY_RAW_QUERY,
    PARSED_COOKIES,
    REFERER,
    alb_multi_value_request,
    alb_request,
    api_gateway_request,
)


class TestConstruction:
    @pytest.mark.parametrize(
        "event_factory, raw_query, source",
        [
            (api_gateway_request, API_GATEWAY_RAW_QUERY, EventSource.APIGW),
            (alb_request, ALB_RAW_QUERY, EventSource.ALB),
            (alb_multi_value_request, ALB_MULTI_VALUE_RAW_QUERY, EventSource.ALB),
        ],
    )
    def test_url_fields(self, request_factory, event_factory, raw_query, source):
        req = request_factory(event_factory())
        assert req.method == "GET"
        assert req.path == "/echo/asdf/a"
        assert req.url == "/echo/asdf/a" + raw_query
        assert req.original_url == req.url
        assert req.base_url == ""
        assert req.params == {}
        assert req.event_source_type is source
        assert req.is_alb() is (source is EventSource.ALB)
        assert req.is_apigw() is (source is EventSource.APIGW)

    def test_method_is_uppercased(self, request_factory):
        assert request_factory(api_gateway_request(httpMethod="post")).method == "POST"

    def test_url_without_query(self, request_factory):
        req = request_factory(alb_request(queryStringParameters=None))
        assert req.url == "/echo/asdf/a?"
        assert req.path == "/echo/asdf/a"
        assert req.query == {}

    def test_query(self, request_factory):
        multi = {"foo": {"a": ["bar b", "baz c"]}, "x": ["1", "2"], "y": "z"}
        assert request_factory(api_gateway_request()).query == multi
        assert request_factory(alb_multi_value_request()).query == multi
        assert request_factory(alb_request()).query == {"foo": {"a": "baz c"}, "x": "2", "y": "z"}

    def test_context_and_request_context(self, request_factory, context):
        req = request_factory()
        assert req.context is context
        assert req.request_context["identity"]["sourceIp"] == "12.12.12.12"


class TestHeaders:
    @pytest.mark.parametrize("name", sorted(ALL_EVENTS))
    def test_get_is_case_insensitive_and_aliases_referrer(self, request_factory, name):
        req = request_factory(ALL_EVENTS[name]())
        assert req.get("user-agent") == "curl/7.54.0"
        assert req.get("USER-AGENT") == "curl/7.54.0"
        assert req.header("User-Agent") == "curl/7.54.0"
        assert req.get("referer") == REFERER
        assert req.get("Referrer") == REFERER
        assert req.get("x-not-there") is None
        assert req.header_all("x-not-there") is None

    def test_multi_value_headers_win(self, request_factory):
        req = request_factory(api_gateway_request())
        assert req.get("foo") == "baz"
        assert req.header_all("Foo") == ["bar", "baz"]

    def test_single_value_headers(self, request_factory):
        req = request_factory(alb_request())
        assert req.get("foo") == "baz"
        assert req.header_all("foo") == ["baz"]


class TestDerivedFields:
    @pytest.mark.parametrize("name", sorted(ALL_EVENTS))
    def test_cookies(self, request_factory, name):
        assert request_factory(ALL_EVENTS[name]()).cookies == PARSED_COOKIES

    def test_no_cookie_header(self, request_factory):
        event = alb_request()
        del event["headers"]["cookie"]
        assert request_factory(event).cookies == {}

    def test_api_gateway(self, request_factory):
        req = request_factory(api_gateway_request())
        assert req.hostname == "b5gee6dacf.execute-api.us-east-1.amazonaws.com"
        assert req.ip == "12.12.12.12"
        assert req.protocol == "https"
        assert req.secure is True
        assert req.xhr is False

    def test_alb_without_trust_proxy(self, request_factory):
        req = request_factory(alb_request())
        assert req.hostname == "alb-lambda-prd-123456806.us-east-1.elb.amazonaws.com"
        assert req.ip is None
        assert req.protocol is None
        assert req.secure is False

    def test_alb_with_trust_proxy(self, context):
        app = Application(Settings({"trust proxy": True}))
        event = alb_request()
        event["headers"]["x-forwarded-host"] = "example.com:8443"
        req = Request(app, event, context)
        assert req.hostname == "example.com"
        assert req.ip == "8.8.8.8"
        assert req.protocol == "http"

    def test_hostname_port_is_stripped(self, request_factory):
        event = alb_request()
        event["headers"]["host"] = "localhost:3000"
        assert request_factory(event).hostname == "localhost"

    def test_xhr(self, request_factory):
        event = alb_request()
        event["headers"]["x-requested-with"] = "XMLHttpRequest"
        assert request_factory(event).xhr is True


class TestBody:
    def test_empty_body_is_none(self, request_factory):
        assert request_factory(api_gateway_request()).body is None
        assert request_factory(alb_request()).body is None

    def test_json_body(self, request_factory):
        event = alb_request(body=json.dumps({"a": 1}))
        event["headers"]["content-type"] = "application/json; charset=utf-8"
        assert request_factory(event).body == {"a": 1}

    def test_invalid_json_body(self, request_factory):
        event = alb_request(body="{nope")
        event["headers"]["content-type"] = "application/json"
        assert request_factory(event).body is None

    def test_other_bodies_are_raw(self, request_factory):
        event = alb_request(body="a=1&b=2")
        event["headers"]["content-type"] = "application/x-www-form-urlencoded"
        assert request_factory(event).body == "a=1&b=2"

    def test_base64_body(self, request_factory):
        event = alb_request(body=base64.b64encode(b'{"a": 2}').decode(), isBase64Encoded=True)
        event["headers"]["content-type"] = "application/json"
        assert request_factory(event).body == {"a": 2}


class TestSubRequests:
    def test_derived_fields(self, request_factory):
        req = request_factory()
        sub = req.make_sub_request("/echo", {"id": "1"})
        assert sub is not req
        assert sub.base_url == "/echo"
        assert sub.url == "/asdf/a" + API_GATEWAY_RAW_QUERY
        assert sub.path == "/asdf/a"
        assert sub.original_url == req.original_url
        assert sub.params == {"id": "1"}
        assert sub.method == req.method
        assert sub.hostname == req.hostname
        assert sub.context is req.context

    def test_state_is_shared(self, request_factory):
        req = request_factory()
        sub = req.make_sub_request("/echo")
        assert sub.query is req.query
        assert sub.cookies is req.cookies
        assert sub.log is req.log
        sub.body = {"changed": True}
        assert req.body == {"changed": True}

    def test_params_are_read_only(self, request_factory):
        sub = request_factory().make_sub_request("", {"id": "1"})
        with pytest.raises(TypeError):
            sub.params["id"] = "2"

    def test_url_change_is_pushed_to_every_ancestor(self, request_factory):
        req = request_factory()
        mid = req.make_sub_request("/echo")
        leaf = mid.make_sub_request("/asdf")
        assert leaf.url == "/a" + API_GATEWAY_RAW_QUERY

        leaf.url = "/b?to=you"
        assert leaf.path == "/b"
        assert mid.url == "/asdf/b?to=you"
        assert req.url == "/echo/asdf/b?to=you"
        assert req.path == "/echo/asdf/b"
        assert req.original_url == "/echo/asdf/a" + API_GATEWAY_RAW_QUERY
        # the query is not re-parsed
        assert "to" not in req.query
        assert req.query["y"] == "z"


def test_default_logger(request_factory):
    req = request_factory()
    assert isinstance(req.log, ConsoleLogger)
    assert req.log.get_level() == "info"
