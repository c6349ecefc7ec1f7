"""Tests for request and report schemas."""

import pytest
from pydantic import ValidationError

from device_pricing.schemas.engine import ClassifyRequest, PipelineRunRequest, PriceQuery
from device_pricing.schemas.report import BatchReport


class TestPriceQuery:

    def test_countries_normalized(self):
        query = PriceQuery(category_id="c", countries=[" sk", "Fr", ""])
        assert query.countries == ["SK", "FR"]

    def test_empty_countries_mean_no_filter(self):
        assert PriceQuery(category_id="c", countries=[]).countries is None

    def test_extra_fields_forbidden(self):
        with pytest.raises(ValidationError):
            PriceQuery(category_id="c", country="SK")


class TestRequests:

    def test_classify_defaults(self):
        request = ClassifyRequest(text="hip stem")
        assert request.use_extraction is False
        assert request.manufacturer_name is None

    def test_pipeline_run_defaults_to_dry_run(self):
        request = PipelineRunRequest()
        assert request.dry_run is True
        assert request.batch_size is None

    @pytest.mark.parametrize("batch_size", [0, 1001])
    def test_batch_size_bounds(self, batch_size: int):
        with pytest.raises(ValidationError):
            PipelineRunRequest(batch_size=batch_size)


class TestBatchReport:

    def test_count(self):
        report = BatchReport(pipeline="x", dry_run=False, buckets={"mapped": 3})
        assert report.count("mapped") == 3
        assert report.count("unmapped") == 0
        assert report.written == 0
        assert report.cancelled is False
