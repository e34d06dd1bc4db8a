"""
Unit tests for SessionService and ImportWorkflowService.

The workflow tests run the whole pipeline against the in-memory
Supabase double with the feed download patched.

Run: pytest tests/unit/test_session_and_workflow.py -v
"""

import pytest
from unittest.mock import MagicMock, patch

from exceptions import (
    FetchFailed,
    MalformedFeed,
    FeedFileMissingError,
    ImportSessionNotFoundError,
    ImportConfigNotFoundError,
    InvalidSessionStateError,
)
from models.feed import SelectionFilters
from models.session import ImportConfigCreate, SessionStatus
from parsers.feed_parser import feed_file_path
from services.image_service import ImageService
from services.import_workflow_service import ImportWorkflowService
from services.session_service import SessionService
from tests.factories import FeedProductFactory, ImportSessionFactory, feed_xml


FEED_URL = "https://vendor.test/feed.xml"


def _response(content: bytes, status: int = 200) -> MagicMock:
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    response.content = content
    response.text = content.decode("utf-8", "replace")
    return response


def _feed() -> bytes:
    return feed_xml([
        FeedProductFactory.create(id="1", name="Drill", category_id="10", category_name="Drills",
                                  producer_id="5", producer_name="Acme"),
        FeedProductFactory.create(id="2", name="Saw", category_id="20", category_name="Saws",
                                  producer_id="5", producer_name="Acme"),
        FeedProductFactory.create(id="3", name="Hammer drill", category_id="10", category_name="Drills",
                                  producer_id="6", producer_name="Bosco"),
    ])


def _serve(content: bytes, status: int = 200):
    return patch("parsers.feed_parser.requests.get", return_value=_response(content, status))


@pytest.fixture
def sessions(mock_db):
    return SessionService()


@pytest.fixture
def workflow(sessions, catalog, extensions, feed_dir):
    return ImportWorkflowService(
        sessions=sessions,
        catalog=catalog,
        extensions=extensions,
        provider=None,
        image_service=ImageService(mode="passthrough"),
        batch_size=10,
    )


# ===================
# SESSION SERVICE TESTS
# ===================

class TestSessionService:
    """Tests for SessionService"""

    def test_create_and_get(self, sessions):
        """Should create a session in parsing status."""
        created = sessions.create(FEED_URL)

        fetched = sessions.get(created.id)

        assert fetched.status == SessionStatus.PARSING
        assert fetched.xml_url == FEED_URL
        assert fetched.selected_categories == []

    def test_get_not_found(self, sessions):
        with pytest.raises(ImportSessionNotFoundError) as exc_info:
            sessions.get("missing")

        assert exc_info.value.status_code == 404

    def test_update_serializes_status(self, sessions, mock_supabase):
        session = sessions.create(FEED_URL)

        updated = sessions.update(session.id, status=SessionStatus.READY, xml_file_path="/tmp/feed.xml")

        assert updated.status == SessionStatus.READY
        assert mock_supabase.rows("import_sessions")[0]["status"] == "ready"

    def test_update_not_found(self, sessions):
        with pytest.raises(ImportSessionNotFoundError):
            sessions.update("missing", status=SessionStatus.FAILED)

    def test_list_newest_first(self, sessions, mock_supabase):
        older = ImportSessionFactory.create(id="s-1")
        newer = ImportSessionFactory.create(id="s-2")
        older["created_at"] = "2026-01-01T00:00:00Z"
        newer["created_at"] = "2026-02-01T00:00:00Z"
        mock_supabase.set_table_data("import_sessions", [older, newer])

        assert [s.id for s in sessions.list_sessions()] == ["s-2", "s-1"]

    def test_configs(self, sessions):
        """Should store configs and filter the enabled ones."""
        enabled = sessions.create_config(ImportConfigCreate(price_xml_url="https://vendor.test/a.xml"))
        sessions.create_config(ImportConfigCreate(price_xml_url="https://vendor.test/b.xml", enabled=False))

        assert [c.id for c in sessions.list_configs(enabled_only=True)] == [enabled.id]
        assert len(sessions.list_configs()) == 2
        assert sessions.get_config(enabled.id).price_xml_url == "https://vendor.test/a.xml"

    def test_config_not_found(self, sessions):
        with pytest.raises(ImportConfigNotFoundError):
            sessions.get_config("missing")


# ===================
# DOWNLOAD AND SELECT TESTS
# ===================

class TestDownloadAndSelect:
    """Tests for download_and_parse() and select()"""

    def test_download_stores_summary_and_path(self, workflow):
        """Should save the feed and move the session to ready."""
        # Arrange
        session = workflow.create_session(FEED_URL)

        # Act
        with _serve(_feed()):
            ready = workflow.download_and_parse(session.id)

        # Assert
        assert ready.status == SessionStatus.READY
        assert ready.xml_file_path == str(feed_file_path(session.id))
        assert feed_file_path(session.id).exists()
        assert ready.parsed_data.total_products == 3
        assert [c.id for c in ready.parsed_data.categories] == ["10", "20"]

    def test_download_failure_marks_session_failed(self, workflow, sessions):
        session = workflow.create_session(FEED_URL)

        with _serve(b"gone", status=500):
            with pytest.raises(FetchFailed):
                workflow.download_and_parse(session.id)

        failed = sessions.get(session.id)
        assert failed.status == SessionStatus.FAILED
        assert "HTTP 500" in failed.error

    def test_malformed_feed_cleans_up(self, workflow, sessions):
        """Should delete the saved file when the feed cannot be parsed."""
        session = workflow.create_session(FEED_URL)

        with _serve(b"<offer><products><product id='1'>"):
            with pytest.raises(MalformedFeed):
                workflow.download_and_parse(session.id)

        assert not feed_file_path(session.id).exists()
        assert sessions.get(session.id).status == SessionStatus.FAILED

    def test_select_stores_filters(self, workflow, mock_supabase):
        mock_supabase.set_table_data("import_sessions", [ImportSessionFactory.create(id="s-1")])

        selected = workflow.select("s-1", SelectionFilters(categories=["10"], brands=["5"]))

        assert selected.status == SessionStatus.SELECTING
        assert selected.selected_categories == ["10"]
        assert selected.selected_brands == ["5"]

    def test_select_requires_parsed_session(self, workflow, mock_supabase):
        """Should refuse a selection while the feed is still parsing."""
        mock_supabase.set_table_data("import_sessions", [ImportSessionFactory.create(id="s-1", status="parsing")])

        with pytest.raises(InvalidSessionStateError) as exc_info:
            workflow.select("s-1", SelectionFilters())

        assert exc_info.value.code == "IMPORT_SESSION_INVALID_STATE"


# ===================
# IMPORT RUN TESTS
# ===================

class TestRunImport:
    """Tests for run_import() and import_url()"""

    def test_imports_selected_products(self, workflow, sessions, mock_supabase):
        """Should import only the selected category and clean up."""
        # Arrange
        session = workflow.create_session(FEED_URL)
        with _serve(_feed()):
            workflow.download_and_parse(session.id)
        workflow.select(session.id, SelectionFilters(categories=["10"]))

        # Act
        result = workflow.run_import(session.id)

        # Assert
        assert result.status == "completed"
        assert (result.total, result.created, result.successful, result.failed) == (2, 2, 2, 0)
        assert {row["handle"] for row in mock_supabase.rows("products")} == {"1", "3"}
        assert [row["name"] for row in mock_supabase.rows("product_categories")] == ["Drills"]
        assert len(mock_supabase.rows("product_category_links")) == 2

        finished = sessions.get(session.id)
        assert finished.status == SessionStatus.COMPLETED
        assert finished.xml_file_path is None
        assert not feed_file_path(session.id).exists()

    def test_two_selected_drills(self, workflow, mock_supabase):
        """Should import drill-a and drill-b from the selected category as new products."""
        # Arrange
        content = feed_xml([
            FeedProductFactory.create(id="drill-a", name="Drill A", category_id="10", category_name="Drills",
                                      producer_id="5", producer_name="Acme"),
            FeedProductFactory.create(id="drill-b", name="Drill B", category_id="10", category_name="Drills",
                                      producer_id="5", producer_name="Acme"),
            FeedProductFactory.create(id="saw-a", name="Saw A", category_id="20", category_name="Saws"),
        ])

        # Act
        with _serve(content):
            result = workflow.import_url(FEED_URL, SelectionFilters(categories=["10"]))

        # Assert
        assert result.status == "completed"
        assert (result.created, result.updated, result.failed) == (2, 0, 0)
        assert {row["handle"] for row in mock_supabase.rows("products")} == {"drill-a", "drill-b"}
        assert [row["name"] for row in mock_supabase.rows("product_categories")] == ["Drills"]

    def test_brands_created_once(self, workflow, mock_supabase):
        """Should create each producer once and link every product to its brand."""
        # Act
        with _serve(_feed()):
            workflow.import_url(FEED_URL, SelectionFilters())
            workflow.import_url(FEED_URL, SelectionFilters())

        # Assert
        brands = {row["name"]: row["id"] for row in mock_supabase.rows("product_brands")}
        assert set(brands) == {"Acme", "Bosco"}
        by_handle = {row["handle"]: row for row in mock_supabase.rows("products")}
        assert by_handle["1"]["brand_id"] == brands["Acme"]
        assert by_handle["2"]["brand_id"] == brands["Acme"]
        assert by_handle["3"]["brand_id"] == brands["Bosco"]

    def test_brand_failure_still_imports(self, workflow, mock_supabase):
        mock_supabase.fail_on("product_brands", "select")

        with _serve(_feed()):
            result = workflow.import_url(FEED_URL, SelectionFilters())

        assert (result.created, result.failed) == (3, 0)
        assert all("brand_id" not in row for row in mock_supabase.rows("products"))

    def test_second_run_updates_without_duplicates(self, workflow, mock_supabase):
        """Should update existing products and reuse categories."""
        # Act
        with _serve(_feed()):
            first = workflow.import_url(FEED_URL, SelectionFilters())
            second = workflow.import_url(FEED_URL, SelectionFilters())

        # Assert
        assert (first.created, first.updated) == (3, 0)
        assert (second.created, second.updated) == (0, 3)
        assert len(mock_supabase.rows("products")) == 3
        assert len(mock_supabase.rows("product_categories")) == 2
        assert len(mock_supabase.rows("product_category_links")) == 3

    def test_small_batches_give_same_result(self, sessions, catalog, extensions, feed_dir, mock_supabase):
        workflow = ImportWorkflowService(
            sessions=sessions,
            catalog=catalog,
            extensions=extensions,
            image_service=ImageService(mode="passthrough"),
            batch_size=1,
        )

        with _serve(_feed()):
            result = workflow.import_url(FEED_URL, SelectionFilters())

        assert result.created == 3
        assert len(mock_supabase.rows("product_categories")) == 2

    def test_record_without_id_is_skipped(self, workflow):
        content = feed_xml([
            FeedProductFactory.create(id="1"),
            '<product><description><name xml:lang="eng">No id</name></description></product>',
        ])

        with _serve(content):
            result = workflow.import_url(FEED_URL, SelectionFilters())

        assert (result.total, result.created, result.skipped) == (2, 1, 1)
        assert result.status == "completed"

    def test_all_failed_marks_session_failed(self, workflow, sessions, mock_supabase):
        """Should fail the session when nothing was written."""
        mock_supabase.fail_on("products", "insert", "connection reset")

        with _serve(_feed()):
            result = workflow.import_url(FEED_URL, SelectionFilters())

        assert result.status == "failed"
        assert result.failed == 3
        session = sessions.get(result.session_id)
        assert session.status == SessionStatus.FAILED
        assert "connection reset" in session.error

    def test_requires_ready_session(self, workflow, mock_supabase):
        mock_supabase.set_table_data("import_sessions", [ImportSessionFactory.create(id="s-1", status="completed")])

        with pytest.raises(InvalidSessionStateError):
            workflow.run_import("s-1")

    def test_missing_file_path_raises(self, workflow, mock_supabase):
        mock_supabase.set_table_data("import_sessions", [ImportSessionFactory.create(id="s-1")])

        with pytest.raises(FeedFileMissingError):
            workflow.run_import("s-1")

    def test_deleted_feed_file_fails_session(self, workflow, sessions, mock_supabase, tmp_path):
        """Should mark the session failed when the saved feed disappeared."""
        mock_supabase.set_table_data("import_sessions", [
            ImportSessionFactory.create(id="s-1", xml_file_path=str(tmp_path / "gone.xml"))
        ])

        with pytest.raises(FeedFileMissingError):
            workflow.run_import("s-1")

        assert sessions.get("s-1").status == SessionStatus.FAILED

    def test_enrichment_translates_display_names(self, sessions, catalog, extensions, feed_dir, stub_provider, mock_supabase):
        """Should create translated categories and keep the feed spelling on the extension."""
        # Arrange
        workflow = ImportWorkflowService(
            sessions=sessions,
            catalog=catalog,
            extensions=extensions,
            provider=stub_provider,
            image_service=ImageService(mode="passthrough"),
        )

        # Act
        with _serve(_feed()):
            result = workflow.import_url(FEED_URL, SelectionFilters(product_ids=["1"]))

        # Assert
        assert result.created == 1
        product = mock_supabase.rows("products")[0]
        assert product["title"] == "BG:Drill"
        assert product["handle"] == "1"
        assert [row["name"] for row in mock_supabase.rows("product_categories")] == ["BG:Drills"]
        assert mock_supabase.rows("category_extensions")[0]["original_name"] == "Drills"
