"""
Unit tests for feed download, XML tree building and streaming.

Run: pytest tests/unit/test_feed_parser.py -v
"""

import pytest
import requests
from unittest.mock import MagicMock, patch

from parsers.feed_parser import (
    fetch,
    parse,
    extract_products,
    save_feed_to_disk,
    iter_products_from_file,
    cleanup_feed_file,
    feed_file_path,
)
from parsers.xml_tree import build_tree
from services.taxonomy_service import summarize
from exceptions import (
    FetchTimeout,
    FetchFailed,
    NetworkError,
    MalformedFeed,
    UnexpectedShape,
    FeedFileMissingError,
)
from tests.factories import FeedProductFactory, feed_xml


def _response(status: int = 200, content: bytes = b"<offer/>") -> MagicMock:
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    response.content = content
    response.text = content.decode("utf-8", "replace")
    return response


# ===================
# XML TREE TESTS
# ===================

class TestBuildTree:
    """Tests for build_tree()"""

    def test_attributes_use_prefix(self):
        """Should store attributes under '@_' keys."""
        tree = build_tree(b'<offer><category id="10" name="Drills"/></offer>')

        assert tree["offer"]["category"] == {"@_id": "10", "@_name": "Drills"}

    def test_text_only_element_is_string(self):
        """Should collapse a text-only element to its string."""
        tree = build_tree(b"<offer><title>Drill</title></offer>")

        assert tree["offer"]["title"] == "Drill"

    def test_text_with_attributes_uses_text_key(self):
        """Should keep text under '#text' next to attributes."""
        tree = build_tree(b'<offer><name xml:lang="eng">Drill</name></offer>')

        assert tree["offer"]["name"] == {"@_xml:lang": "eng", "#text": "Drill"}

    def test_repeated_children_become_list(self):
        """Should turn repeated elements into a list."""
        tree = build_tree(b"<offer><p>a</p><p>b</p><p>c</p></offer>")

        assert tree["offer"]["p"] == ["a", "b", "c"]

    def test_namespaced_names_keep_prefix(self):
        """Should keep the document prefix on namespaced names."""
        content = b'<offer xmlns:iaiext="http://ext"><iaiext:originals iaiext:priority="1"/></offer>'

        tree = build_tree(content)

        assert tree["offer"]["iaiext:originals"] == {"@_iaiext:priority": "1"}


# ===================
# PARSE TESTS
# ===================

class TestParse:
    """Tests for parse() and extract_products()"""

    def test_parse_malformed_raises(self):
        """Should raise MalformedFeed for broken XML."""
        with pytest.raises(MalformedFeed) as exc_info:
            parse(b"<offer><products>")

        assert exc_info.value.code == "FEED_MALFORMED"

    def test_single_product_wrapped_in_list(self):
        """Should return a list even for one product."""
        document = parse(feed_xml([FeedProductFactory.create(id="1")]))

        products = extract_products(document)

        assert len(products) == 1
        assert products[0]["@_id"] == "1"

    def test_missing_products_path_raises(self):
        """Should raise UnexpectedShape without offer > products > product."""
        document = parse(b"<catalog><items/></catalog>")

        with pytest.raises(UnexpectedShape):
            extract_products(document)

    def test_product_count_matches_summary_total(self):
        """Should count the same products as the taxonomy summary."""
        # Arrange
        document = parse(feed_xml(FeedProductFactory.create_batch(7)))

        # Act
        products = extract_products(document)
        summary = summarize(products)

        # Assert
        assert len(products) == summary.total_products == 7


# ===================
# FETCH TESTS
# ===================

class TestFetch:
    """Tests for fetch()"""

    def test_fetch_returns_body(self):
        """Should return the response body on 200."""
        with patch("parsers.feed_parser.requests.get", return_value=_response(content=b"<offer/>")) as get:
            content = fetch("https://vendor.test/feed.xml")

        assert content == b"<offer/>"
        assert get.call_args.kwargs["allow_redirects"] is True
        assert "User-Agent" in get.call_args.kwargs["headers"]

    def test_fetch_timeout_raises(self):
        """Should map a requests timeout to FetchTimeout."""
        with patch("parsers.feed_parser.requests.get", side_effect=requests.exceptions.Timeout()):
            with pytest.raises(FetchTimeout) as exc_info:
                fetch("https://vendor.test/feed.xml", timeout=5)

        assert exc_info.value.status_code == 504

    def test_fetch_connection_error_raises(self):
        """Should map transport errors to NetworkError."""
        with patch("parsers.feed_parser.requests.get", side_effect=requests.exceptions.ConnectionError("refused")):
            with pytest.raises(NetworkError):
                fetch("https://vendor.test/feed.xml")

    def test_fetch_bad_status_raises(self):
        """Should raise FetchFailed with the status code."""
        with patch("parsers.feed_parser.requests.get", return_value=_response(404, b"not found")):
            with pytest.raises(FetchFailed) as exc_info:
                fetch("https://vendor.test/feed.xml")

        assert exc_info.value.details["http_status"] == 404

    def test_fetch_empty_body_raises(self):
        """Should treat an empty body as a failed fetch."""
        with patch("parsers.feed_parser.requests.get", return_value=_response(content=b"  ")):
            with pytest.raises(FetchFailed):
                fetch("https://vendor.test/feed.xml")


# ===================
# ON-DISK FEED TESTS
# ===================

class TestOnDiskFeed:
    """Tests for save_feed_to_disk(), iter_products_from_file() and cleanup_feed_file()"""

    def test_save_and_stream(self, feed_dir):
        """Should stream back every saved product in order."""
        # Arrange
        content = feed_xml([FeedProductFactory.create(id=str(i)) for i in range(1, 4)])

        # Act
        with patch("parsers.feed_parser.requests.get", return_value=_response(content=content)):
            path = save_feed_to_disk("https://vendor.test/feed.xml", "session-1")
        ids = [record["@_id"] for record in iter_products_from_file(path)]

        # Assert
        assert path == str(feed_file_path("session-1"))
        assert path.startswith(str(feed_dir))
        assert ids == ["1", "2", "3"]

    def test_streamed_records_match_parsed_records(self, tmp_path):
        """Should yield the same dict shape as parse() + extract_products()."""
        content = feed_xml([FeedProductFactory.create(id="9", images=[("https://img.test/a.jpg", 1)])])
        path = tmp_path / "feed.xml"
        path.write_bytes(content)

        streamed = list(iter_products_from_file(str(path)))

        assert streamed == extract_products(parse(content))

    def test_missing_file_raises(self, tmp_path):
        """Should raise FeedFileMissingError for a deleted file."""
        with pytest.raises(FeedFileMissingError) as exc_info:
            list(iter_products_from_file(str(tmp_path / "gone.xml")))

        assert exc_info.value.status_code == 404

    def test_truncated_file_raises_malformed(self, tmp_path):
        """Should raise MalformedFeed when the XML breaks part-way."""
        path = tmp_path / "broken.xml"
        path.write_bytes(feed_xml([FeedProductFactory.create()])[:-40])

        with pytest.raises(MalformedFeed):
            list(iter_products_from_file(str(path)))

    def test_cleanup_removes_file(self, tmp_path):
        """Should delete the saved feed."""
        path = tmp_path / "feed.xml"
        path.write_bytes(b"<offer/>")

        cleanup_feed_file(str(path))

        assert not path.exists()

    def test_cleanup_missing_file_is_noop(self, tmp_path):
        """Should not raise when the file is already gone."""
        cleanup_feed_file(str(tmp_path / "gone.xml"))
        cleanup_feed_file(None)
