"""
Tests for the listing filter builder

Checks which column each match result constrains, that user input only
ever reaches SQL as bound parameters, and how the remaining search
filters compose into the listing query.
"""
import pytest

from src.mls_search.models.location import (
    AmbiguousMatch,
    GeographyRecord,
    LocationField,
    MatchType,
    NoMatch,
    SingleMatch,
)
from src.mls_search.models.search import MAX_PRICE, SearchRequest
from src.mls_search.services.filter_builder import (
    PAGE_SIZE,
    build_filters,
    build_location_filter,
    is_location_alias,
)
from src.mls_search.services.geography_cache import GeographyLookupCache
from src.mls_search.services.location_resolver import LocationResolver


class TestBuildLocationFilter:
    """Tests for build_location_filter"""

    def test_no_result_means_no_filter(self):
        location_filter = build_location_filter(None)

        assert location_filter.clause is None
        assert location_filter.compiled() == {"sql": None, "params": {}}

    def test_no_match_without_text_means_no_filter(self):
        assert build_location_filter(NoMatch(), "").clause is None

    def test_no_match_falls_back_to_substring_search(self):
        compiled = build_location_filter(NoMatch(), "Atlantis").compiled()

        for column in ("city", "mlsareamajor", "subdivisionname"):
            assert f"mls_properties.{column} LIKE" in compiled["sql"]
        assert " OR " in compiled["sql"]
        assert set(compiled["params"].values()) == {"Atlantis"}

    def test_no_match_escapes_wildcards(self):
        compiled = build_location_filter(NoMatch(), "50%_off").compiled()

        assert set(compiled["params"].values()) == {"50/%/_off"}

    def test_user_text_is_never_inlined(self):
        text = "x'; DROP TABLE mls_properties; --"
        compiled = build_location_filter(NoMatch(), text).compiled()

        assert "DROP TABLE" not in compiled["sql"]
        assert set(compiled["params"].values()) == {"x'; DROP TABLE mls/_properties; --"}

    def test_single_city(self):
        result = SingleMatch(LocationField.CITY, "Todos Santos", MatchType.EXACT, 1.0)

        compiled = build_location_filter(result).compiled()

        assert compiled["sql"].startswith("mls_properties.city = :")
        assert list(compiled["params"].values()) == ["Todos Santos"]

    def test_single_match_uses_most_specific_value(self):
        result = SingleMatch(
            LocationField.SUBDIVISION, "Nopolo", MatchType.EXACT, 1.0,
            derived_city="Loreto", derived_area="Loreto",
        )

        location_filter = build_location_filter(result)
        compiled = location_filter.compiled()

        assert compiled["sql"].startswith("mls_properties.subdivisionname = :")
        assert list(compiled["params"].values()) == ["Nopolo"]
        assert "subdivision = 'Nopolo'" in location_filter.description

    def test_ambiguous_parents_filter_on_matched_field(self):
        result = SingleMatch(
            LocationField.AREA, "La Paz", MatchType.EXACT, 1.0,
            ambiguous_parents=True, parent_cities=("La Paz", "El Centenario"),
        )

        compiled = build_location_filter(result).compiled()

        assert compiled["sql"].startswith("mls_properties.mlsareamajor = :")
        assert list(compiled["params"].values()) == ["La Paz"]

    def test_ambiguous_match_uses_in_list(self):
        result = AmbiguousMatch(
            LocationField.CITY, MatchType.SUBSTRING, 0.75,
            candidates=("Cabo San Lucas", "San Lucas"),
        )

        location_filter = build_location_filter(result)
        compiled = location_filter.compiled()

        assert "mls_properties.city IN" in compiled["sql"]
        assert list(compiled["params"].values()) == [["Cabo San Lucas", "San Lucas"]]
        assert "2 values" in location_filter.description

    def test_alias_bypasses_result(self):
        location_filter = build_location_filter(None, "All La Paz")
        compiled = location_filter.compiled()

        assert "mls_properties.mlsareamajor LIKE" in compiled["sql"]
        assert list(compiled["params"].values()) == ["La Paz"]
        assert location_filter.description.startswith("Alias")

    def test_unknown_result_type_rejected(self):
        with pytest.raises(TypeError):
            build_location_filter("La Paz")


class TestIsLocationAlias:
    """Tests for is_location_alias"""

    @pytest.mark.parametrize("text", ["All La Paz", "all la paz", "  ALL LA PAZ "])
    def test_alias(self, text):
        assert is_location_alias(text) is True

    @pytest.mark.parametrize("text", [None, "", "La Paz", "All Cabo"])
    def test_not_alias(self, text):
        assert is_location_alias(text) is False


class TestBuildFilters:
    """Tests for build_filters"""

    def test_no_filters(self):
        query = build_filters(SearchRequest())

        assert query.clauses == ()
        assert query.limit == PAGE_SIZE
        assert query.offset == 0

    def test_all_attribute_filters(self):
        request = SearchRequest(**{
            "propertyType": "Single Family Residence",
            "priceRange": "100000-500000",
            "bedrooms": 3,
            "bathrooms": 2,
            "cfe": True,
            "pool": True,
            "newListing": True,
            "openHouse": True,
            "virtualTour": True,
        })

        query = build_filters(request)
        sql = str(query.to_statement())

        assert len(query.clauses) == 9
        assert "mls_properties.propertytypelabel = :" in sql
        assert "mls_properties.currentpricepublic BETWEEN" in sql
        assert "mls_properties.bedstotal >= :" in sql
        assert "mls_properties.bathsfull >= :" in sql
        assert "mls_properties.electric LIKE" in sql
        assert "mls_properties.poolfeatures LIKE" in sql
        assert "mls_properties.majorchangetype = :" in sql
        assert "mls_properties.openhousescount > :" in sql
        assert "mls_properties.virtualtourscount > :" in sql

    def test_open_ended_price_range(self):
        query = build_filters(SearchRequest(priceRange="250000-"))
        params = query.to_statement().compile().params

        assert 250000.0 in params.values()
        assert float(MAX_PRICE) in params.values()

    def test_location_clause_comes_first(self):
        result = SingleMatch(LocationField.CITY, "Loreto", MatchType.EXACT, 1.0)
        query = build_filters(SearchRequest(location="Loreto", bedrooms=2), result)

        assert len(query.clauses) == 2
        assert query.clauses[0] is query.location.clause

    def test_ordering_and_paging(self):
        query = build_filters(SearchRequest(page=3))
        statement = query.to_statement()
        sql = str(statement)
        params = statement.compile().params

        assert "ORDER BY mls_properties.currentpricepublic DESC" in sql
        assert "LIMIT" in sql and "OFFSET" in sql
        assert query.offset == 2 * PAGE_SIZE
        assert PAGE_SIZE in params.values()
        assert 2 * PAGE_SIZE in params.values()


class TestResolvedLocationFilters:
    """Resolution and filter building together"""

    @pytest.fixture
    def resolver(self):
        records = [
            GeographyRecord("La Paz", "La Paz", "Centro"),
            GeographyRecord("El Centenario", "La Paz", "Chametla"),
            GeographyRecord("Cabo San Lucas", "Cabo Corridor", "Pedregal"),
        ]
        return LocationResolver(GeographyLookupCache(lambda: records))

    def test_la_paz_filters_on_area(self, resolver):
        result = resolver.resolve("La Paz")
        compiled = build_location_filter(result, "La Paz").compiled()

        assert compiled["sql"].startswith("mls_properties.mlsareamajor = :")
        assert list(compiled["params"].values()) == ["La Paz"]

    def test_misspelled_subdivision_filters_on_subdivision(self, resolver):
        result = resolver.resolve("Pedrigal")
        compiled = build_location_filter(result, "Pedrigal").compiled()

        assert compiled["sql"].startswith("mls_properties.subdivisionname = :")
        assert list(compiled["params"].values()) == ["Pedregal"]
