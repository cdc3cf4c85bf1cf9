from __future__ import annotations

import datetime as dt

import pytest

from app.schemas.issue_search import ComponentRef
from app.services.errors import ValidationError
from app.services.query_normalizer import normalize, parse_date


class TestNormalizeFilters:
    """Test parsing of filter parameters."""

    def test_empty_params(self):
        """Test that no parameters give an unfiltered, default-paged query."""
        query = normalize({})

        assert query.issue_keys == ()
        assert query.resolved is None
        assert query.scope.is_empty
        assert query.sort is None
        assert query.asc is True
        assert query.page == 1
        assert query.page_size == 100
        assert query.ignore_paging is False
        assert query.hide_rules is False

    def test_comma_separated_lists(self):
        """Test that list parameters are split and trimmed."""
        query = normalize({
            "severities": "BLOCKER, CRITICAL",
            "statuses": "OPEN,REOPENED,",
            "rules": "xoo:x1",
            "assignees": "john,simon",
        })

        assert query.severities == ("BLOCKER", "CRITICAL")
        assert query.statuses == ("OPEN", "REOPENED")
        assert query.rules == ("xoo:x1",)
        assert query.assignees == ("john", "simon")

    def test_tri_state_booleans(self):
        """Test resolved/assigned/planned stay unset unless given."""
        query = normalize({"resolved": "false", "assigned": "yes"})

        assert query.resolved is False
        assert query.assigned is True
        assert query.planned is None

    def test_invalid_boolean(self):
        """Test that an unparseable boolean is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            normalize({"resolved": "maybe"})
        assert exc_info.value.param == "resolved"

    def test_sort_is_case_insensitive(self):
        """Test that sort keys are upper-cased and validated."""
        assert normalize({"sort": "update_date"}).sort == "UPDATE_DATE"
        with pytest.raises(ValidationError):
            normalize({"sort": "NAME"})

    def test_asc_false(self):
        """Test descending sort request."""
        assert normalize({"sort": "SEVERITY", "asc": "false"}).asc is False

    def test_unknown_facet_rejected(self):
        """Test that facets outside the supported list are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            normalize({"facets": "severities,colors"})
        assert exc_info.value.param == "facets"

    def test_unknown_extra_field_rejected(self):
        """Test that unsupported extra fields are rejected."""
        with pytest.raises(ValidationError):
            normalize({"extra_fields": "actions,karma"})

    def test_facets_keep_request_order(self):
        """Test that facets are listed in the order they were asked for."""
        query = normalize({"facets": "statuses,severities"})
        assert query.facets == ("statuses", "severities")


class TestNormalizeDates:
    """Test parsing of creation date parameters."""

    def test_date_only(self):
        """Test a plain date parses to midnight."""
        assert parse_date("2014-09-04") == dt.datetime(2014, 9, 4)

    def test_datetime_with_offset_converted_to_utc(self):
        """Test that an offset datetime is normalized to naive UTC."""
        assert parse_date("2013-05-01T13:00:00+0100") == dt.datetime(2013, 5, 1, 12, 0, 0)

    def test_unparseable_date(self):
        """Test that garbage dates are rejected with the parameter name."""
        with pytest.raises(ValidationError) as exc_info:
            normalize({"createdAfter": "yesterday"})
        assert exc_info.value.param == "createdAfter"

    def test_created_range(self):
        """Test createdAfter and createdBefore are both kept."""
        query = normalize({"createdAfter": "2014-01-01", "createdBefore": "2014-02-01"})
        assert query.created_after == dt.datetime(2014, 1, 1)
        assert query.created_before == dt.datetime(2014, 2, 1)

    def test_inverted_range_rejected(self):
        """Test that createdAfter later than createdBefore is rejected."""
        with pytest.raises(ValidationError):
            normalize({"createdAfter": "2014-02-01", "createdBefore": "2014-01-01"})


class TestNormalizeScope:
    """Test parsing of component and project parameters."""

    def test_uuid_and_key_references(self):
        """Test that legacy key parameters and uuid parameters are merged."""
        query = normalize({
            "componentKeys": "MyComponent",
            "componentUuids": "BCDE",
            "fileUuids": "FEDC",
            "projectKeys": "MyProject",
            "projectUuids": "ABCD",
        })

        assert query.scope.components == (
            ComponentRef.key("MyComponent"),
            ComponentRef.uuid("BCDE"),
            ComponentRef.uuid("FEDC"),
        )
        assert query.scope.projects == (ComponentRef.key("MyProject"), ComponentRef.uuid("ABCD"))
        assert query.component_uuids == ("BCDE", "FEDC")
        assert query.project_uuids == ("ABCD",)

    def test_roots_and_modules(self):
        """Test componentRootUuids and moduleUuids both expand to descendants."""
        query = normalize({"componentRootUuids": "ABCD", "moduleUuids": "MOD1"})
        assert query.scope.roots == (ComponentRef.uuid("ABCD"), ComponentRef.uuid("MOD1"))

    def test_duplicates_removed(self):
        """Test that repeated references are only kept once."""
        query = normalize({"componentUuids": "BCDE,BCDE", "fileUuids": "BCDE"})
        assert query.scope.components == (ComponentRef.uuid("BCDE"),)

    def test_on_component_only(self):
        """Test the onComponentOnly flag."""
        assert normalize({"onComponentOnly": "true"}).scope.on_component_only is True


class TestNormalizePaging:
    """Test resolution of current and deprecated paging parameters."""

    def test_current_parameters(self):
        """Test p and ps."""
        query = normalize({"p": "3", "ps": "20"})
        assert (query.page, query.page_size) == (3, 20)

    def test_deprecated_parameters(self):
        """Test pageIndex and pageSize alone."""
        query = normalize({"pageIndex": "2", "pageSize": "9"})
        assert (query.page, query.page_size) == (2, 9)

    def test_current_parameters_win_per_field(self):
        """Test precedence is decided independently for page and page size."""
        query = normalize({"p": "2", "pageIndex": "5", "pageSize": "9"})
        assert (query.page, query.page_size) == (2, 9)

    def test_minus_one_means_all_results(self):
        """Test ps=-1 requests ignore paging with the default page size."""
        query = normalize({"ps": "-1"})
        assert query.ignore_paging is True
        assert query.page_size == 100

    def test_ignore_paging_flag(self):
        """Test the explicit ignorePaging flag."""
        assert normalize({"ignorePaging": "true"}).ignore_paging is True

    @pytest.mark.parametrize("params", [{"p": "0"}, {"ps": "0"}, {"ps": "-2"}, {"pageIndex": "-1"}, {"p": "one"}])
    def test_invalid_paging_rejected(self, params):
        """Test that out-of-range or non-numeric paging values are rejected."""
        with pytest.raises(ValidationError):
            normalize(params)

    def test_default_page_size_from_environment(self, monkeypatch):
        """Test that the default page size is configurable."""
        monkeypatch.setenv("ISSUES_DEFAULT_PAGE_SIZE", "25")
        assert normalize({}).page_size == 25
