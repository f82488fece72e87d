"""Tests for routecrawl.crawler.router: per-host path-template router."""

import pytest

from routecrawl.crawler.errors import ConfigError, RouteNotFound
from routecrawl.crawler.processor import PageProcessor
from routecrawl.crawler.router import LITERAL, PARAM, WILDCARD, Router, parse_template


class _Named(PageProcessor):
    def __init__(self, name: str) -> None:
        self.name = name

    def contents(self, document, params):
        return [self.name]

    def metainfo(self, document, params):
        return {}


class TestParseTemplate:
    def test_root(self) -> None:
        assert parse_template("/") == []

    def test_literal_and_param(self) -> None:
        segments = parse_template("/users/:id")
        assert [(s.kind, s.value) for s in segments] == [(LITERAL, "users"), (PARAM, "id")]

    def test_trailing_wildcard(self) -> None:
        segments = parse_template("/files/*path")
        assert segments[-1].kind == WILDCARD
        assert segments[-1].value == "path"

    def test_wildcard_must_be_last(self) -> None:
        with pytest.raises(ConfigError):
            parse_template("/files/*path/more")

    def test_empty_param_name(self) -> None:
        with pytest.raises(ConfigError):
            parse_template("/users/:")


class TestRouterMatch:
    def test_templates_on_one_host(self, stub_processor) -> None:
        router = (
            Router()
            .insert("https://h.example/", stub_processor)
            .insert("https://h.example/:id", stub_processor)
            .insert("https://h.example/users/:id", stub_processor)
        )

        assert router.match("https://h.example/").template == "/"
        assert router.match("https://h.example/123").template == "/:id"
        assert router.match("https://h.example/users/123").template == "/users/:id"
        with pytest.raises(RouteNotFound):
            router.match("https://h.example/123/123")

    def test_no_cross_host_fallback(self, stub_processor) -> None:
        router = Router().insert("https://one.example/users/:id", stub_processor)

        with pytest.raises(RouteNotFound):
            router.match("https://two.example/users/1")

    def test_param_binding(self, stub_processor) -> None:
        router = Router().insert("https://www.google.co.jp/users/:id", stub_processor)

        assert router.match("https://www.google.co.jp/users/20").params == {"id": "20"}

    def test_hosts_are_partitioned(self) -> None:
        google = _Named("google")
        yahoo = _Named("yahoo")
        router = (
            Router()
            .insert("https://www.google.co.jp/", google)
            .insert("https://www.google.co.jp/:id", google)
            .insert("https://www.yahoo.co.jp/shops/:id", yahoo)
        )

        assert router.match("https://www.google.co.jp/10").params == {"id": "10"}
        match = router.match("https://www.yahoo.co.jp/shops/10")
        assert match.processor is yahoo
        assert match.params == {"id": "10"}
        with pytest.raises(RouteNotFound):
            router.match("https://www.yahoo.co.jp/10")

    def test_literal_beats_param_regardless_of_order(self) -> None:
        me = _Named("me")
        by_id = _Named("by_id")
        router = (
            Router()
            .insert("https://h.example/users/:id", by_id)
            .insert("https://h.example/users/me", me)
        )

        assert router.match("https://h.example/users/me").processor is me
        assert router.match("https://h.example/users/42").processor is by_id

    def test_param_beats_wildcard(self) -> None:
        param = _Named("param")
        wildcard = _Named("wildcard")
        router = (
            Router()
            .insert("https://h.example/docs/*rest", wildcard)
            .insert("https://h.example/docs/:page", param)
        )

        assert router.match("https://h.example/docs/intro").processor is param
        match = router.match("https://h.example/docs/guide/install")
        assert match.processor is wildcard
        assert match.params == {"rest": "guide/install"}

    def test_backtracks_from_literal_to_param(self) -> None:
        literal = _Named("literal")
        param = _Named("param")
        router = (
            Router()
            .insert("https://h.example/a/b", literal)
            .insert("https://h.example/:x/c", param)
        )

        match = router.match("https://h.example/a/c")
        assert match.processor is param
        assert match.params == {"x": "a"}

    def test_wildcard_needs_a_segment(self, stub_processor) -> None:
        router = Router().insert("https://h.example/files/*path", stub_processor)

        with pytest.raises(RouteNotFound):
            router.match("https://h.example/files")

    def test_trailing_slash_ignored(self, stub_processor) -> None:
        router = Router().insert("https://h.example/users/:id", stub_processor)

        assert router.match("https://h.example/users/7/").params == {"id": "7"}

    def test_root_matches_empty_path(self, stub_processor) -> None:
        router = Router().insert("https://h.example/", stub_processor)

        assert router.match("https://h.example").template == "/"

    def test_scheme_port_and_case_do_not_affect_host(self, stub_processor) -> None:
        router = Router().insert("https://H.Example/p/:id", stub_processor)

        assert router.match("http://h.example:8080/p/1").params == {"id": "1"}

    def test_query_string_ignored(self, stub_processor) -> None:
        router = Router().insert("https://h.example/p/:id", stub_processor)

        assert router.match("https://h.example/p/1?ref=home").params == {"id": "1"}

    def test_unparsable_url(self, stub_processor) -> None:
        router = Router().insert("https://h.example/", stub_processor)

        with pytest.raises(RouteNotFound):
            router.match("http://[::1")

    def test_is_routable(self, stub_processor) -> None:
        router = Router().insert("https://h.example/p/:id", stub_processor)

        assert router.is_routable("https://h.example/p/1")
        assert not router.is_routable("https://h.example/q/1")


class TestRouterInsert:
    def test_insert_returns_router(self, stub_processor) -> None:
        router = Router()
        assert router.insert("https://h.example/", stub_processor) is router

    def test_introspection(self, stub_processor) -> None:
        router = (
            Router()
            .insert("https://a.example/", stub_processor)
            .insert("https://b.example/x/:id/", stub_processor)
        )

        assert len(router) == 2
        assert router.hosts == ["a.example", "b.example"]
        assert router.routes == [("a.example", "/"), ("b.example", "/x/:id")]

    def test_duplicate_template_conflicts(self, stub_processor) -> None:
        router = Router().insert("https://h.example/users/:id", stub_processor)

        with pytest.raises(ConfigError):
            router.insert("https://h.example/users/:id", stub_processor)

    def test_param_name_conflict(self, stub_processor) -> None:
        router = Router().insert("https://h.example/users/:id", stub_processor)

        with pytest.raises(ConfigError):
            router.insert("https://h.example/users/:name", stub_processor)

    def test_second_wildcard_conflicts(self, stub_processor) -> None:
        router = Router().insert("https://h.example/files/*path", stub_processor)

        with pytest.raises(ConfigError):
            router.insert("https://h.example/files/*other", stub_processor)

    def test_same_template_on_other_host_is_fine(self, stub_processor) -> None:
        router = (
            Router()
            .insert("https://a.example/users/:id", stub_processor)
            .insert("https://b.example/users/:id", stub_processor)
        )

        assert len(router) == 2

    @pytest.mark.parametrize("pattern", ["not a url", "/users/:id", "ftp://h.example/", "https:///x"])
    def test_unparsable_pattern(self, stub_processor, pattern: str) -> None:
        with pytest.raises(ConfigError):
            Router().insert(pattern, stub_processor)
