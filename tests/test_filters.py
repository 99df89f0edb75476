"""Tests for filter normalization into match predicates."""

from datetime import datetime, timezone

import pytest

from core.errors import InvalidFilter
from core.filters import MatchPredicate, normalize_filters, parse_filter_date
from core.pipeline import build_region_pipeline, build_sales_pipeline


class TestNormalizeFilters:
    def test_no_filters_gives_empty_predicate(self):
        predicate = normalize_filters({})
        assert predicate == MatchPredicate()
        assert predicate.is_empty
        assert predicate.to_match() == {}

    def test_none_input_is_treated_as_no_filters(self):
        assert normalize_filters(None).is_empty

    def test_blank_values_are_omitted(self):
        predicate = normalize_filters({"startDate": "", "endDate": "", "product": "", "customer": "  "})
        assert predicate.is_empty
        assert predicate.to_match() == {}

    def test_dates_parse_to_utc_midnight(self):
        predicate = normalize_filters({"startDate": "2023-01-01", "endDate": "2023-01-31"})
        assert predicate.date_from == datetime(2023, 1, 1, tzinfo=timezone.utc)
        assert predicate.date_to == datetime(2023, 1, 31, tzinfo=timezone.utc)

    def test_offset_timestamp_is_converted_to_utc(self):
        predicate = normalize_filters({"startDate": "2023-01-01T05:00:00+05:00"})
        assert predicate.date_from == datetime(2023, 1, 1, 0, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize("field", ["startDate", "endDate"])
    def test_whitespace_only_date_is_invalid(self, field):
        with pytest.raises(InvalidFilter) as excinfo:
            normalize_filters({field: "   "})
        assert str(excinfo.value) == f"Invalid {field} format"

    def test_padded_date_is_accepted(self):
        predicate = normalize_filters({"startDate": " 2023-01-01 "})
        assert predicate.date_from == datetime(2023, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize("field", ["startDate", "endDate"])
    def test_invalid_date_names_the_field(self, field):
        with pytest.raises(InvalidFilter) as excinfo:
            normalize_filters({field: "not-a-date"})
        assert excinfo.value.field == field
        assert str(excinfo.value) == f"Invalid {field} format"

    def test_start_date_checked_before_end_date(self):
        with pytest.raises(InvalidFilter) as excinfo:
            normalize_filters({"startDate": "bogus", "endDate": "also bogus"})
        assert excinfo.value.field == "startDate"

    def test_impossible_calendar_date_is_invalid(self):
        with pytest.raises(InvalidFilter):
            normalize_filters({"endDate": "2023-02-30"})

    def test_inverted_range_is_not_an_error(self):
        predicate = normalize_filters({"startDate": "2023-02-01", "endDate": "2023-01-01"})
        assert predicate.date_from > predicate.date_to

    def test_product_and_customer_are_trimmed(self):
        predicate = normalize_filters({"product": "  Prod A ", "customer": "Cust 1"})
        assert predicate.product == "Prod A"
        assert predicate.customer == "Cust 1"
        assert predicate.to_match() == {"product": "Prod A", "customer": "Cust 1"}

    def test_only_supplied_constraints_are_in_match(self):
        predicate = normalize_filters({"endDate": "2023-01-31", "customer": "Cust 1"})
        match = predicate.to_match()
        assert set(match) == {"date", "customer"}
        assert set(match["date"]) == {"$lte"}


class TestMatchPredicateParams:
    def test_params_round_trip_through_normalizer(self):
        predicate = normalize_filters({"startDate": "2023-01-01", "product": "Prod A"})
        params = predicate.to_params()
        assert params == {"startDate": "2023-01-01T00:00:00+00:00", "product": "Prod A"}
        assert normalize_filters(params) == predicate

    def test_parse_filter_date_keeps_cause(self):
        with pytest.raises(InvalidFilter) as excinfo:
            parse_filter_date("01/02/2023x", "startDate")
        assert isinstance(excinfo.value.__cause__, ValueError)


class TestPipelines:
    def test_date_range_lands_in_first_match_stage(self):
        pipeline = build_sales_pipeline(normalize_filters({"startDate": "2023-01-01", "endDate": "2023-01-31"}))
        date = pipeline[0]["$match"]["date"]
        assert isinstance(date["$gte"], datetime)
        assert isinstance(date["$lte"], datetime)

    def test_sales_pipeline_groups_by_product_and_customer(self):
        pipeline = build_sales_pipeline(MatchPredicate())
        assert [list(stage)[0] for stage in pipeline] == ["$match", "$group", "$project", "$sort"]
        group = pipeline[1]["$group"]
        assert group["_id"] == {"product": "$product", "customer": "$customer"}
        assert group["totalSales"] == {"$sum": "$amount"}
        assert group["salesCount"] == {"$sum": 1}
        assert pipeline[3]["$sort"] == {"product": 1, "customer": 1}

    def test_region_pipeline_matches_region(self):
        pipeline = build_region_pipeline("North")
        assert pipeline[0] == {"$match": {"region": "North"}}
        assert pipeline[1]["$group"]["_id"] == "$salesperson"
