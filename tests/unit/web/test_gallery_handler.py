"""Tests for the gallery page and row grouping."""

import math
from datetime import timedelta
from unittest.mock import patch

import pytest

from kittens.errors import DatabaseError, ImageServingError
from kittens.web.handlers.gallery import ROW_SIZE, group_into_rows
from tests.conftest import FIXED_NOW


class TestGroupIntoRows:
    """Test cases for group_into_rows."""

    @pytest.mark.parametrize("count", range(0, 11))
    def test_row_shape(self, count):
        """Test ceil(n/3) rows, full rows of three, short last row of n mod 3."""
        items = list(range(count))

        rows = group_into_rows(items)

        assert len(rows) == math.ceil(count / ROW_SIZE)
        assert all(len(row) == 3 for row in rows[:-1])
        if rows:
            assert len(rows[-1]) == (count % 3 or 3)

    def test_preserves_order(self):
        """Test rows keep the input order."""
        rows = group_into_rows(["a", "b", "c", "d", "e"])

        assert rows == [["a", "b", "c"], ["d", "e"]]
        assert [item for row in rows for item in row] == ["a", "b", "c", "d", "e"]

    def test_empty(self):
        assert group_into_rows([]) == []

    def test_custom_row_size(self):
        assert group_into_rows([1, 2, 3, 4], row_size=2) == [[1, 2], [3, 4]]

    def test_invalid_row_size(self):
        with pytest.raises(ValueError):
            group_into_rows([1], row_size=0)


class TestGalleryHandler:
    """Test cases for GET /gallery."""

    def _seed(self, record_store, test_data_factory, names_by_age):
        for name, minutes in names_by_age.items():
            record_store.put(
                name, test_data_factory.create_record(name=name, upload_time=FIXED_NOW - timedelta(minutes=minutes))
            )

    def test_empty_gallery(self, client):
        """Test rendering with no uploads."""
        response = client.get("/gallery")

        assert response.status_code == 200
        assert response.mimetype == "text/html"
        assert "No kittens yet" in response.get_data(as_text=True)

    def test_newest_first(self, client, record_store, test_data_factory, mock_images):
        """Test uploads are rendered in descending upload time."""
        self._seed(record_store, test_data_factory, {"Oldest": 30, "Newest": 1, "Middle": 10})

        response = client.get("/gallery")
        html = response.get_data(as_text=True)

        assert response.status_code == 200
        assert html.index("Newest") < html.index("Middle") < html.index("Oldest")
        resolved = [call.args[0] for call in mock_images.resolve_serving_url.call_args_list]
        assert resolved == ["uploads/newest", "uploads/middle", "uploads/oldest"]

    def test_rows_of_three(self, client, record_store, test_data_factory):
        """Test seven uploads render as three rows."""
        self._seed(record_store, test_data_factory, {f"cat{i}": i for i in range(7)})

        html = client.get("/gallery").get_data(as_text=True)

        assert html.count('<div class="row">') == 3
        assert html.count('<figure class="kitten">') == 7

    def test_display_urls_rendered(self, client, record_store, test_data_factory):
        self._seed(record_store, test_data_factory, {"Tom": 1})

        html = client.get("/gallery").get_data(as_text=True)

        assert 'src="https://img.test/uploads/tom"' in html

    def test_unresolvable_url_still_listed(self, client, record_store, test_data_factory, mock_images):
        """Test a failed URL resolution keeps the item with a placeholder."""
        self._seed(record_store, test_data_factory, {"Tom": 1, "Felix": 2})

        def resolve(ref, timeout=None):
            if ref == "uploads/tom":
                raise ImageServingError("broken image")
            return f"https://img.test/{ref}"

        mock_images.resolve_serving_url.side_effect = resolve

        response = client.get("/gallery")
        html = response.get_data(as_text=True)

        assert response.status_code == 200
        assert "Tom" in html
        assert "Image unavailable" in html
        assert 'src="https://img.test/uploads/felix"' in html

    def test_query_failure_renders_empty_gallery(self, client, record_store):
        """Test a record-store failure degrades to an empty page instead of an error."""
        with patch.object(record_store, "query", side_effect=DatabaseError("down")):
            response = client.get("/gallery")

        assert response.status_code == 200
        assert "No kittens yet" in response.get_data(as_text=True)

    def test_names_are_escaped(self, client, record_store, test_data_factory):
        """Test kitten names are HTML-escaped by the template."""
        record_store.put("x", test_data_factory.create_record(name="<b>Tom</b>", object_ref="uploads/x"))

        html = client.get("/gallery").get_data(as_text=True)

        assert "&lt;b&gt;Tom&lt;/b&gt;" in html
        assert "<b>Tom</b>" not in html
