from http_fmt.parser.base import (
    Block,
    BodyKind,
    Document,
    Header,
    Metadata,
    Request,
    Variable,
    comment_lines,
    metadata_name,
)


class TestRequest:
    def test_defaults(self):
        req = Request(url="https://example.com")
        assert req.method == "GET"
        assert req.http_version == "HTTP/1.1"
        assert req.headers == []
        assert req.body is None
        assert req.body_kind == BodyKind.NONE

    def test_get_header_is_case_insensitive(self):
        req = Request(
            url="https://example.com",
            headers=[Header(key="content-type", value="application/json")],
        )
        assert req.get_header("Content-Type") == "application/json"
        assert req.get_header("Accept") is None


class TestBlock:
    def test_block_without_content_is_empty(self):
        assert Block().is_empty()
        assert Block(request_separator_text="only a separator").is_empty()

    def test_block_with_url_is_not_empty(self):
        assert not Block(request=Request(url="https://example.com")).is_empty()

    def test_comment_only_block_is_not_empty(self):
        assert not Block(comments=["# Folder: Users"]).is_empty()

    def test_metadata_only_block_is_not_empty(self):
        assert not Block(metadata=[Metadata(key="name", value="X")]).is_empty()

    def test_lists_are_not_shared_between_instances(self):
        a = Block()
        b = Block()
        a.comments.append("# a")
        assert b.comments == []


class TestDocument:
    def test_variables_keep_order_and_duplicates(self):
        doc = Document(variables=[Variable(key="a", value="1"), Variable(key="a", value="2")])
        assert [v.value for v in doc.variables] == ["1", "2"]


class TestHelpers:
    def test_comment_lines_one_per_non_empty_line(self):
        assert comment_lines("Returns all pets.\n\n  Supports paging.\n") == [
            "# Returns all pets.",
            "# Supports paging.",
        ]

    def test_comment_lines_escape_metadata_lookalikes(self):
        assert comment_lines("@deprecated soon\n@ mention\nemail a@b.io") == [
            "# - @deprecated soon",
            "# @ mention",
            "# email a@b.io",
        ]

    def test_comment_lines_of_nothing(self):
        assert comment_lines(None) == []
        assert comment_lines("") == []

    def test_metadata_name(self):
        assert metadata_name("Get user") == "GET_USER"
        assert metadata_name("  list   all\titems ") == "LIST_ALL_ITEMS"
