"""Tests for the catalog cleanup service."""
import pytest
from unittest.mock import call

from errors import CatalogHostError, PreconditionError
from repositories import ProductRepository
from services import CatalogCleanupService, CleanupResult


class TestDuplicateCleanup:
    """Test the duplicate cleanup operation against a mock host."""

    def test_trashes_all_but_oldest(self, mock_host, make_record):
        mock_host.fetch_candidate_products.return_value = [
            make_record(1, sku="S"),
            make_record(2, sku="S"),
            make_record(3, sku="T"),
            make_record(4, sku="s"),
        ]
        service = CatalogCleanupService(mock_host)

        result = service.run_duplicate_cleanup()

        assert mock_host.remove_product.call_args_list == [call(2), call(4)]
        assert result.succeeded == 2
        assert result.processed == 2
        assert result.failed_ids == []
        assert result.to_dict()["trashed"] == 2
        assert result.finished_at is not None

    def test_fetches_default_statuses(self, mock_host):
        CatalogCleanupService(mock_host).run_duplicate_cleanup()

        mock_host.fetch_candidate_products.assert_called_once_with(["publish", "pending", "draft", "private"])

    def test_trash_is_never_a_candidate_status(self, mock_host):
        service = CatalogCleanupService(mock_host, dedup_statuses=["publish", "trash"])
        service.run_duplicate_cleanup()

        mock_host.fetch_candidate_products.assert_called_once_with(["publish"])

    def test_continues_after_failures(self, mock_host, make_record):
        mock_host.fetch_candidate_products.return_value = [make_record(i, sku="S") for i in range(1, 6)]
        mock_host.remove_product.side_effect = [True, False, CatalogHostError("timeout", 4), True]

        result = CatalogCleanupService(mock_host).run_duplicate_cleanup()

        assert mock_host.remove_product.call_count == 4
        assert result.succeeded == 2
        assert result.processed == 4
        assert result.failed_ids == [3, 4]

    def test_unexpected_exception_is_recorded_as_failure(self, mock_host, make_record):
        mock_host.fetch_candidate_products.return_value = [make_record(i, sku="S") for i in range(1, 4)]
        mock_host.remove_product.side_effect = [RuntimeError("boom"), True]

        result = CatalogCleanupService(mock_host).run_duplicate_cleanup()

        assert result.failed_ids == [2]
        assert result.succeeded == 1

    def test_dry_run_does_not_mutate(self, mock_host, make_record):
        mock_host.fetch_candidate_products.return_value = [make_record(i, sku="S") for i in range(1, 4)]

        result = CatalogCleanupService(mock_host).run_duplicate_cleanup(dry_run=True)

        mock_host.remove_product.assert_not_called()
        assert result.dry_run is True
        assert result.succeeded == 2
        assert "would be moved" in result.message

    def test_no_duplicates(self, mock_host, make_record):
        mock_host.fetch_candidate_products.return_value = [make_record(1, sku="A"), make_record(2, sku="B")]

        result = CatalogCleanupService(mock_host).run_duplicate_cleanup()

        mock_host.remove_product.assert_not_called()
        assert result.succeeded == 0
        assert result.message == "Finished: 0 duplicate product(s) moved to the trash."

    def test_preview(self, mock_host, make_record):
        mock_host.fetch_candidate_products.return_value = [make_record(1, sku="A"), make_record(2, sku="a")]

        report = CatalogCleanupService(mock_host).preview_duplicates()

        assert report.removals == [2]
        mock_host.remove_product.assert_not_called()


class TestImageReviewScan:
    """Test the image review operation against a mock host."""

    def test_moves_products_to_pending(self, mock_host, make_record):
        mock_host.fetch_products_without_primary_image.return_value = [
            make_record(10, has_image=False),
            make_record(11, has_image=False),
        ]

        result = CatalogCleanupService(mock_host).run_image_review_scan()

        assert mock_host.set_product_status.call_args_list == [call(10, "pending"), call(11, "pending")]
        assert result.succeeded == 2
        assert result.to_dict()["updated"] == 2
        assert result.message == "Finished: 2 product(s) without image sent to review."

    def test_skips_products_that_gained_an_image(self, mock_host, make_record):
        mock_host.fetch_products_without_primary_image.return_value = [
            make_record(10, has_image=False),
            make_record(11, has_image=True),
        ]

        result = CatalogCleanupService(mock_host).run_image_review_scan()

        mock_host.set_product_status.assert_called_once_with(10, "pending")
        assert result.processed == 1

    def test_respects_batch_limit_and_target_status(self, mock_host):
        service = CatalogCleanupService(mock_host, image_review_limit=50, review_status="draft")
        service.run_image_review_scan()

        mock_host.fetch_products_without_primary_image.assert_called_once_with(50)

    def test_failures_are_reported(self, mock_host, make_record):
        mock_host.fetch_products_without_primary_image.return_value = [
            make_record(1, has_image=False),
            make_record(2, has_image=False),
        ]
        mock_host.set_product_status.side_effect = [False, True]

        result = CatalogCleanupService(mock_host).run_image_review_scan()

        assert result.failed_ids == [1]
        assert result.succeeded == 1


class TestPreconditions:
    """Test that operations refuse to run without a usable catalog."""

    def test_no_host(self):
        service = CatalogCleanupService(None)

        with pytest.raises(PreconditionError):
            service.run_duplicate_cleanup()

    def test_unavailable_host(self, mock_host):
        mock_host.is_available.return_value = False
        service = CatalogCleanupService(mock_host)

        with pytest.raises(PreconditionError) as exc_info:
            service.run_image_review_scan()

        assert exc_info.value.status_code == 503
        mock_host.fetch_products_without_primary_image.assert_not_called()

    def test_failed_candidate_listing(self, mock_host):
        mock_host.fetch_candidate_products.side_effect = CatalogHostError(
            "GET /products returned 503 after 3 attempts"
        )

        with pytest.raises(PreconditionError) as exc_info:
            CatalogCleanupService(mock_host).run_duplicate_cleanup()

        assert exc_info.value.status_code == 503
        assert exc_info.value.details == {'backend': 'mock'}
        assert "503 after 3 attempts" in exc_info.value.message
        mock_host.remove_product.assert_not_called()

    def test_failed_image_listing(self, mock_host):
        mock_host.fetch_products_without_primary_image.side_effect = CatalogHostError("timeout")

        with pytest.raises(PreconditionError):
            CatalogCleanupService(mock_host).run_image_review_scan()

        mock_host.set_product_status.assert_not_called()


class TestFromConfig:

    def test_reads_config_keys(self, mock_host):
        service = CatalogCleanupService.from_config(mock_host, {
            'DEDUP_STATUSES': ['publish', 'private'],
            'IMAGE_REVIEW_BATCH_LIMIT': 25,
            'IMAGE_REVIEW_TARGET_STATUS': 'draft'
        })

        assert service.dedup_statuses == ['publish', 'private']
        assert service.image_review_limit == 25
        assert service.review_status == 'draft'


class TestCleanupResult:

    def test_count_label(self):
        assert CleanupResult(operation="image_review").count_label == "updated"
        assert CleanupResult(operation="duplicate_cleanup").count_label == "trashed"


class TestAgainstSqlCatalog:
    """End-to-end runs against the SQL catalog host."""

    def test_duplicate_cleanup(self, db, sql_host, add_product):
        original = add_product(title="Stapler", sku="ST-1", minutes=0)
        copy = add_product(title="Stapler (copy)", sku="st-1 ", minutes=5)
        draft_copy = add_product(title="Stapler", sku="ST-1", status="draft", minutes=9)
        already_trashed = add_product(title="Stapler", sku="ST-1", status="trash", minutes=1)
        untitled_a = add_product(title="", minutes=2)
        untitled_b = add_product(title="  ", minutes=3)
        unique = add_product(title="Glue", minutes=4)

        result = CatalogCleanupService(sql_host).run_duplicate_cleanup()

        assert result.succeeded == 3
        assert result.failed_ids == []

        with db.session_scope() as session:
            repo = ProductRepository(session)
            assert repo.get(original).status == "publish"
            assert repo.get(copy).status == "trash"
            assert repo.get(draft_copy).status == "trash"
            assert repo.get(draft_copy).pre_trash_status == "draft"
            assert repo.get(already_trashed).trashed_at is None
            assert repo.get(untitled_a).status == "publish"
            assert repo.get(untitled_b).status == "trash"
            assert repo.get(unique).status == "publish"

    def test_second_run_finds_nothing(self, sql_host, add_product):
        add_product(sku="A", minutes=0)
        add_product(sku="A", minutes=1)
        service = CatalogCleanupService(sql_host)

        assert service.run_duplicate_cleanup().succeeded == 1
        assert service.run_duplicate_cleanup().succeeded == 0

    def test_image_review(self, db, sql_host, add_product):
        missing = add_product(title="No image", image=None)
        draft = add_product(title="Draft", status="draft", image=None)
        with_image = add_product(title="Has image")

        result = CatalogCleanupService(sql_host).run_image_review_scan()

        assert result.succeeded == 1
        with db.session_scope() as session:
            repo = ProductRepository(session)
            assert repo.get(missing).status == "pending"
            assert repo.get(draft).status == "draft"
            assert repo.get(with_image).status == "publish"
