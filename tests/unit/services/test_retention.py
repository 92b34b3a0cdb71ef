"""Tests for the retention sweep."""

from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest

from kittens.errors import DatabaseError, ImageServingError
from kittens.services.image_service import ImageServingService
from kittens.services.retention import PruneResult, prune_expired_uploads
from tests.conftest import FIXED_NOW


class TestPruneExpiredUploads:
    """Test cases for prune_expired_uploads."""

    def setup_method(self):
        self.images = MagicMock(spec=ImageServingService)
        self.cutoff = FIXED_NOW - timedelta(minutes=5)

    def _seed(self, record_store, test_data_factory):
        ages = {"ancient": 60, "old": 6, "edge": 5, "fresh": 1}
        for name, minutes in ages.items():
            record_store.put(
                name,
                test_data_factory.create_record(name=name, upload_time=test_data_factory.minutes_ago(minutes)),
            )

    def test_prunes_only_records_before_cutoff(self, record_store, test_data_factory):
        """Test that old records go and newer ones are untouched."""
        self._seed(record_store, test_data_factory)

        result = prune_expired_uploads(record_store, self.images, self.cutoff)

        remaining = {key for key, _ in record_store.query()}
        assert remaining == {"edge", "fresh"}
        assert result.matched == 2
        assert result.released == 2
        assert result.deleted == 2
        assert result.release_failures == []
        released_refs = {call.args[0] for call in self.images.release_serving_url.call_args_list}
        assert released_refs == {"uploads/ancient", "uploads/old"}

    def test_no_record_older_than_cutoff_remains(self, record_store, test_data_factory):
        """Test the post-condition of a sweep over many records."""
        for minutes in range(0, 20):
            record_store.put(
                f"k{minutes}",
                test_data_factory.create_record(name=f"cat{minutes}", upload_time=test_data_factory.minutes_ago(minutes)),
            )

        prune_expired_uploads(record_store, self.images, self.cutoff)

        assert all(not record.is_older_than(self.cutoff) for _, record in record_store.query())
        assert record_store.count() == 6

    def test_release_failures_do_not_stop_sweep(self, record_store, test_data_factory):
        """Test best-effort release: failures are counted and records still deleted."""
        self._seed(record_store, test_data_factory)
        self.images.release_serving_url.side_effect = [ImageServingError("denied"), True]

        result = prune_expired_uploads(record_store, self.images, self.cutoff)

        assert self.images.release_serving_url.call_count == 2
        assert len(result.release_failures) == 1
        assert result.released == 1
        assert result.deleted == 2
        assert {key for key, _ in record_store.query()} == {"edge", "fresh"}

    def test_query_failure_aborts_without_deletions(self, record_store):
        """Test that a failed query propagates and nothing is released."""
        with patch.object(record_store, "query", side_effect=DatabaseError("down")):
            with pytest.raises(DatabaseError):
                prune_expired_uploads(record_store, self.images, self.cutoff)

        self.images.release_serving_url.assert_not_called()

    def test_single_batch_delete(self, record_store, test_data_factory):
        """Test that all matched keys are removed with one delete call."""
        self._seed(record_store, test_data_factory)

        with patch.object(record_store, "delete_many", wraps=record_store.delete_many) as delete_many:
            prune_expired_uploads(record_store, self.images, self.cutoff)

        delete_many.assert_called_once()

    def test_nothing_to_prune(self, record_store):
        result = prune_expired_uploads(record_store, self.images, self.cutoff)

        assert result == PruneResult(cutoff=self.cutoff)
        self.images.release_serving_url.assert_not_called()

    def test_dry_run_changes_nothing(self, record_store, test_data_factory):
        """Test dry runs only report matches."""
        self._seed(record_store, test_data_factory)

        result = prune_expired_uploads(record_store, self.images, self.cutoff, dry_run=True)

        assert result.matched == 2
        assert result.deleted == 0
        assert record_store.count() == 4
        self.images.release_serving_url.assert_not_called()

    def test_result_to_dict(self):
        result = PruneResult(cutoff=self.cutoff, matched=3, released=2, release_failures=["k"], deleted=3)

        assert result.to_dict() == {
            "cutoff": self.cutoff.isoformat(),
            "matched": 3,
            "released": 2,
            "release_failures": 1,
            "deleted": 3,
        }
