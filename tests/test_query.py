from lambda_router.core.query import build_raw_query, encode_component, parse_query, safe_decode


class TestBuildRawQuery:
    def test_prefers_multi_value_parameters(self):
        raw = build_raw_query({"foo[a]": ["bar b", "baz c"], "x": ["1", "2"]}, {"x": "2"})
        assert raw == "&foo[a]=bar%20b&foo[a]=baz%20c&x=1&x=2"

    def test_falls_back_to_single_value_parameters(self):
        assert build_raw_query(None, {"x": "2", "y": "z"}) == "&x=2&y=z"
        assert build_raw_query({}, {"x": "2"}) == "&x=2"

    def test_does_not_double_encode(self):
        assert build_raw_query({"q": ["bar%20b", "baz c"]}, None) == "&q=bar%20b&q=baz%20c"

    def test_empty(self):
        assert build_raw_query(None, None) == ""


class TestParseQuery:
    def test_repeated_keys_become_lists(self):
        assert parse_query("&x=1&x=2&y=z") == {"x": ["1", "2"], "y": "z"}

    def test_brackets_nest(self):
        assert parse_query("a[b]=1&a[c][d]=2") == {"a": {"b": "1", "c": {"d": "2"}}}

    def test_encoded_brackets_nest(self):
        assert parse_query("&foo%5Ba%5D=baz%20c") == {"foo": {"a": "baz c"}}

    def test_empty_brackets_append(self):
        assert parse_query("a[]=1&a[]=2") == {"a": ["1", "2"]}

    def test_small_indexes_build_lists(self):
        assert parse_query("a[1]=y&a[0]=x") == {"a": ["x", "y"]}

    def test_large_indexes_stay_keys(self):
        assert parse_query("a[100]=x") == {"a": {"100": "x"}}

    def test_depth_is_limited(self):
        parsed = parse_query("a[b][c][d][e][f][g]=1")
        assert parsed == {"a": {"b": {"c": {"d": {"e": {"f": {"[g]": "1"}}}}}}}

    def test_plus_is_space(self):
        assert parse_query("q=a+b") == {"q": "a b"}


def test_component_helpers():
    assert encode_component("a b/c?") == "a%20b%2Fc%3F"
    assert encode_component("it's (ok)!*") == "it's%20(ok)!*"
    assert safe_decode("bar%20b") == "bar b"
    assert safe_decode("%FF") == ""
