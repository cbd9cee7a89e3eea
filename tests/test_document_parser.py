from pathlib import Path

import pytest

from http_fmt.errors import ParseFailure
from http_fmt.parser.base import BodyKind
from http_fmt.parser.document import parse_document, parse_file, unwrap_script
from http_fmt.parser.syntax import get_parser, normalize_text

FIXTURES = Path(__file__).parent / "fixtures"


class TestSyntax:
    def test_normalize_text(self):
        assert normalize_text("a\r\nb\rc") == "a\nb\nc\n"
        assert normalize_text("a\n") == "a\n"

    def test_parser_is_shared(self):
        assert get_parser() is get_parser()

    def test_rejected_text_raises_parse_failure_with_position(self):
        with pytest.raises(ParseFailure) as exc_info:
            parse_document("GET https://example.com HTTP/1.1\nnot a header\n", source="bad.http")
        assert exc_info.value.source == "bad.http"
        assert exc_info.value.line == 2
        assert str(exc_info.value).startswith("bad.http:2:")


class TestVariables:
    def test_variables_in_document_order_with_duplicates(self):
        doc = parse_document(
            "@a = 1\n@b=2\n\n###\n@a = 3\nGET https://example.com\n"
        )
        assert [(v.key, v.value) for v in doc.variables] == [("a", "1"), ("b", "2"), ("a", "3")]

    def test_variable_without_value(self):
        doc = parse_document("@empty =\n")
        assert doc.variables[0].key == "empty"
        assert doc.variables[0].value == ""

    def test_variables_only_document_has_no_blocks(self):
        doc = parse_document("@a = 1\n")
        assert doc.blocks == []


class TestBlocks:
    def test_request_line_defaults(self):
        doc = parse_document("https://example.com/users\n")
        req = doc.blocks[0].request
        assert req.method == "GET"
        assert req.url == "https://example.com/users"
        assert req.http_version == "HTTP/1.1"

    def test_configured_defaults(self):
        doc = parse_document(
            "https://example.com\n", default_method="POST", default_http_version="HTTP/2"
        )
        req = doc.blocks[0].request
        assert req.method == "POST"
        assert req.http_version == "HTTP/2"

    def test_separator_text_and_empty_blocks(self):
        doc = parse_document("### first\n\n###\n\n### third\nGET https://example.com\n")
        assert len(doc.blocks) == 1
        assert doc.blocks[0].request_separator_text == "third"

    def test_comments_and_metadata(self):
        doc = parse_document(
            "###\n# plain\n// slashes\n# @name GET_USER\n// @no-redirect\nGET https://example.com\n"
        )
        block = doc.blocks[0]
        assert block.comments == ["# plain", "// slashes"]
        assert [(m.key, m.value) for m in block.metadata] == [("name", "GET_USER"), ("no-redirect", "")]

    def test_headers_split_on_first_colon(self):
        doc = parse_document("GET https://example.com\nX-Url: https://other.example.com\nEmpty:\n")
        headers = doc.blocks[0].request.headers
        assert [(h.key, h.value) for h in headers] == [
            ("X-Url", "https://other.example.com"),
            ("Empty", ""),
        ]

    def test_url_is_folded(self):
        doc = parse_document("GET https://a.com/x?y=1&z=2 HTTP/1.1\n")
        assert doc.blocks[0].request.url == "https://a.com/x\n  ?y=1\n  &z=2"

    def test_scripts_and_redirect(self):
        text = (
            "###\n"
            "< ./before.js\n"
            "POST https://example.com\n"
            "\n"
            "payload\n"
            "\n"
            "> {%\n"
            "    client.log(response.status);\n"
            "%}\n"
            "> ./after.js\n"
            ">> ./out.json\n"
        )
        block = parse_document(text).blocks[0]
        assert block.pre_request_scripts[0].script == "./before.js"
        assert not block.pre_request_scripts[0].inline
        assert [s.script for s in block.post_request_scripts] == [
            "client.log(response.status);",
            "./after.js",
        ]
        assert block.post_request_scripts[0].inline
        assert block.response_redirect == ">> ./out.json"
        assert block.request.body.strip() == "payload"


class TestBodies:
    @pytest.mark.parametrize(
        "body, kind",
        [
            ('{"a": 1}', BodyKind.JSON),
            ("[1, 2]", BodyKind.JSON),
            ("query { me { id } }", BodyKind.GRAPHQL),
            ("a=1&b=2", BodyKind.FORM),
            ("<user><id>1</id></user>", BodyKind.XML),
            ("< ./payload.json", BodyKind.EXTERNAL),
            ("hello world", BodyKind.RAW),
        ],
    )
    def test_body_kind_from_grammar(self, body, kind):
        doc = parse_document(f"POST https://example.com\n\n{body}\n")
        assert doc.blocks[0].request.body_kind == kind

    def test_body_spans_lines_until_next_separator(self):
        doc = parse_document(
            'POST https://example.com\n\n{\n  "a": 1\n}\n\n###\nGET https://example.com\n'
        )
        assert doc.blocks[0].request.body.strip() == '{\n  "a": 1\n}'
        assert len(doc.blocks) == 2

    def test_request_without_body(self):
        doc = parse_document("GET https://example.com\nAccept: */*\n\n")
        assert doc.blocks[0].request.body is None


class TestParseFile:
    def test_parse_fixture(self):
        doc = parse_file(FIXTURES / "http" / "messy.http")
        assert [v.key for v in doc.variables] == ["host", "token"]
        assert len(doc.blocks) == 3
        assert doc.blocks[1].request_separator_text == "Create user"
        assert doc.blocks[2].request.http_version == "HTTP/2"


class TestUnwrapScript:
    def test_strips_delimiters_and_indentation(self):
        assert unwrap_script("{%\n    a();\n      b();\n%}") == "a();\n  b();"
