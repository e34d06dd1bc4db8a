"""
Shared test fixtures.

The Supabase double below keeps rows in memory per table, so services
that write and then read back (sessions, category extensions, the
catalog adapter) behave like they do against a real database.
"""

import sys
from pathlib import Path

# Add repo root to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import pytest
from unittest.mock import patch
from datetime import datetime
from typing import Callable, Generator, Optional
from uuid import uuid4

from models.enrichment import MetaContent, OptimizedDescription
from services.text_generation import BaseTextGenerationProvider

# ===================
# MOCK SUPABASE CLIENT
# ===================

DEFAULT_UNIQUE = {
    "products": ("handle",),
    "product_categories": ("parent_category_id", "handle"),
    "product_brands": ("handle",),
}


def _column_value(row: dict, column: str):
    """Row value for a column or a "metadata->>key" json path."""
    if "->>" in column:
        base, key = column.split("->>", 1)
        value = (row.get(base) or {}).get(key)
        return str(value) if value is not None else None
    return row.get(column)


class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data=None, count: int = None):
        self.data = data if data is not None else []
        if count is not None:
            self.count = count
        elif isinstance(self.data, list):
            self.count = len(self.data)
        else:
            self.count = 1 if self.data else 0


class MockSupabaseQuery:
    """Chainable query over one in-memory table."""

    def __init__(self, table: "MockSupabaseTable", operation: str, payload=None):
        self._table = table
        self._operation = operation
        self._payload = payload
        self._filters: list[Callable[[dict], bool]] = []
        self._order: Optional[tuple[str, bool]] = None
        self._limit: Optional[int] = None
        self._range: Optional[tuple[int, int]] = None
        self._is_single = False

    def eq(self, column, value):
        self._filters.append(lambda row: _column_value(row, column) == value)
        return self

    def neq(self, column, value):
        self._filters.append(lambda row: _column_value(row, column) != value)
        return self

    def in_(self, column, values):
        wanted = list(values)
        self._filters.append(lambda row: _column_value(row, column) in wanted)
        return self

    def is_(self, column, value):
        if value in ("null", None):
            self._filters.append(lambda row: _column_value(row, column) is None)
        else:
            self._filters.append(lambda row: _column_value(row, column) == value)
        return self

    def order(self, column, desc: bool = False, **kwargs):
        self._order = (column, desc)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def single(self):
        self._is_single = True
        return self

    def _matching(self) -> list[dict]:
        return [row for row in self._table.rows if all(f(row) for f in self._filters)]

    def execute(self) -> MockSupabaseResponse:
        client = self._table.client
        client.check_failure(self._table.name, self._operation)

        if self._operation == "insert":
            data = self._table.insert_rows(self._payload)
        elif self._operation == "update":
            data = []
            for row in self._matching():
                row.update(self._payload)
                data.append(dict(row))
        elif self._operation == "delete":
            data = self._matching()
            self._table.rows = [row for row in self._table.rows if row not in data]
        else:
            data = [dict(row) for row in self._matching()]
            if self._order:
                column, desc = self._order
                data.sort(key=lambda row: str(row.get(column) or ""), reverse=desc)
            if self._range:
                data = data[self._range[0]:self._range[1] + 1]
            if self._limit is not None:
                data = data[:self._limit]

        if self._is_single:
            return MockSupabaseResponse(data=data[0] if data else None)
        return MockSupabaseResponse(data=data)


class MockSupabaseTable:
    """In-memory table with optional unique constraints."""

    def __init__(self, client: "MockSupabaseClient", name: str):
        self.client = client
        self.name = name
        self.rows: list[dict] = []

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self, "select")

    def insert(self, data):
        return MockSupabaseQuery(self, "insert", data)

    def update(self, data):
        return MockSupabaseQuery(self, "update", dict(data))

    def delete(self):
        return MockSupabaseQuery(self, "delete")

    def insert_rows(self, data) -> list[dict]:
        rows = [dict(item) for item in (data if isinstance(data, list) else [data])]
        unique = self.client.unique.get(self.name)

        if unique:
            taken = {tuple(row.get(column) for column in unique) for row in self.rows}
            for row in rows:
                key = tuple(row.get(column) for column in unique)
                if key in taken:
                    raise Exception(
                        f'duplicate key value violates unique constraint "{self.name}_key" '
                        f'Key ({", ".join(unique)})=({", ".join(str(v) for v in key)}) already exists.'
                    )
                taken.add(key)

        now = datetime.utcnow().isoformat() + "Z"
        for row in rows:
            row.setdefault("id", str(uuid4()))
            row.setdefault("created_at", now)
            row.setdefault("updated_at", now)
        self.rows.extend(rows)
        return [dict(row) for row in rows]


class MockStorageBucket:
    """Mock Supabase Storage bucket."""

    def __init__(self, name: str, uploads: dict):
        self.name = name
        self._uploads = uploads

    def upload(self, path, content, file_options=None):
        self._uploads[f"{self.name}/{path}"] = {
            "content": content,
            "content_type": (file_options or {}).get("content-type"),
        }
        return {"Key": path}

    def get_public_url(self, path):
        return f"https://storage.test/{self.name}/{path}"


class MockStorage:
    def __init__(self):
        self.uploads: dict = {}

    def from_(self, bucket: str) -> MockStorageBucket:
        return MockStorageBucket(bucket, self.uploads)


class MockSupabaseClient:
    """Mock Supabase client backed by in-memory tables."""

    def __init__(self):
        self._tables: dict[str, MockSupabaseTable] = {}
        self._failures: dict[tuple[str, str], str] = {}
        self.unique = dict(DEFAULT_UNIQUE)
        self.storage = MockStorage()

    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Seed rows for a table."""
        self.table(table_name).rows = [dict(row) for row in data]

    def rows(self, table_name: str) -> list[dict]:
        """Current rows of a table."""
        return self.table(table_name).rows

    def fail_on(self, table_name: str, operation: str, message: str = "connection reset"):
        """Make every <operation> on a table raise."""
        self._failures[(table_name, operation)] = message

    def clear_failures(self):
        """Let every operation succeed again."""
        self._failures.clear()

    def check_failure(self, table_name: str, operation: str) -> None:
        message = self._failures.get((table_name, operation))
        if message:
            raise Exception(message)

    def table(self, name: str) -> MockSupabaseTable:
        if name not in self._tables:
            self._tables[name] = MockSupabaseTable(self, name)
        return self._tables[name]


# ===================
# FAKE TEXT PROVIDERS
# ===================

class ScriptedProvider(BaseTextGenerationProvider):
    """
    Provider whose completions come from a script.

    `responses` is either a list consumed in order or a callable
    (prompt, max_tokens, long_form) -> str. Exceptions in the list are
    raised instead of returned.
    """

    name = "scripted"

    def __init__(self, responses=None, target_language: str = "bg"):
        super().__init__(target_language)
        self.responses = responses if responses is not None else []
        self.calls: list[dict] = []

    def _complete(self, prompt: str, max_tokens: int, long_form: bool = False) -> str:
        self.calls.append({"prompt": prompt, "max_tokens": max_tokens, "long_form": long_form})
        if callable(self.responses):
            return self.responses(prompt, max_tokens, long_form)
        if not self.responses:
            return ""
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class StubProvider:
    """
    Deterministic provider for pipeline tests.

    Translations are prefixed with "BG:"; failing methods can be listed
    in `fail` and raise the given error.
    """

    name = "stub"

    def __init__(self, fail: Optional[dict] = None):
        self.fail = fail or {}
        self.calls: list[tuple] = []

    def _call(self, method: str, *args):
        self.calls.append((method, *args))
        if method in self.fail:
            raise self.fail[method]

    def translate(self, text, target_lang=None):
        self._call("translate", text)
        return f"BG:{text}"

    def translate_title(self, title, brand=None, target_lang=None):
        self._call("translate_title", title, brand)
        return f"BG:{title}"

    def generate_meta_description(self, product, original_description=None):
        self._call("generate_meta_description", product.handle)
        return MetaContent(meta_title=f"Meta {product.title}"[:60], meta_description="Meta description")

    def optimize_description(self, product, original_description=None):
        self._call("optimize_description", product.handle)
        return OptimizedDescription(
            technical_safe="<p>Technical</p>",
            seo_enhanced="<p>SEO</p>",
            short="Short summary of the product",
        )

    def extract_included_items(self, description):
        self._call("extract_included_items", description)
        return None

    def extract_technical_data(self, description):
        self._call("extract_technical_data", description)
        return None

    def generate_category_description(self, category_path):
        self._call("generate_category_description", category_path)
        return f"About {category_path}"


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("products", [
                {"id": "1", "handle": "drill-a", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("import_sessions", [...])
            # Services built inside the test get the mock
    """
    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("integrations.catalog.get_supabase_client", return_value=mock_supabase):
            with patch("integrations.catalog.get_admin_client", return_value=None):
                with patch("services.session_service.get_supabase_client", return_value=mock_supabase):
                    with patch("services.category_extension_service.get_supabase_client", return_value=mock_supabase):
                        yield mock_supabase


@pytest.fixture
def catalog(mock_db):
    """Supabase catalog adapter on the in-memory client."""
    from integrations.catalog import SupabaseCatalogService
    return SupabaseCatalogService()


@pytest.fixture
def extensions(mock_db):
    """Category extension service on the in-memory client."""
    from services.category_extension_service import CategoryExtensionService
    return CategoryExtensionService()


@pytest.fixture
def stub_provider() -> StubProvider:
    return StubProvider()


@pytest.fixture
def feed_dir(tmp_path, monkeypatch):
    """Saved feeds go to a per-test temp directory."""
    from config.settings import settings
    monkeypatch.setattr(settings, "feed_temp_dir", str(tmp_path))
    return tmp_path
