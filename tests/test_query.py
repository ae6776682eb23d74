"""Filter normalization and table query building."""
from datetime import date

from fleetdesk.models.driver import DriverStatusEnum
from fleetdesk.platform.query import Condition, Op, Range, TableQuery, escape_like, gte, ilike, lt, normalize_filters


class TestNormalizeFilters:

    def test_plain_values_become_equality(self):
        assert normalize_filters({"status": "active"}) == (Condition("status", Op.EQ, "active"),)

    def test_lists_become_membership(self):
        conditions = normalize_filters({"status": ["active", "on-leave"]})
        assert conditions == (Condition("status", Op.IN, ("active", "on-leave")),)

    def test_none_becomes_is_null(self):
        assert normalize_filters({"user_id": None}) == (Condition("user_id", Op.IS, None),)

    def test_range_expands_to_bounds(self):
        start, end = date(2026, 1, 1), date(2026, 2, 1)
        conditions = normalize_filters({"next_service_date": Range(gte=start, lt=end)})
        assert set(conditions) == {
            Condition("next_service_date", Op.GTE, start),
            Condition("next_service_date", Op.LT, end),
        }

    def test_enums_are_frozen_to_values(self):
        assert normalize_filters({"status": DriverStatusEnum.ON_LEAVE}) == (
            Condition("status", Op.EQ, "on-leave"),
        )

    def test_order_does_not_matter(self):
        first = normalize_filters({"status": "active", "license_expiry": lt(date(2026, 5, 1))})
        second = normalize_filters({"license_expiry": lt(date(2026, 5, 1)), "status": "active"})
        assert first == second
        assert hash(first) == hash(second)

    def test_empty_filters(self):
        assert normalize_filters(None) == ()
        assert normalize_filters({}) == ()


class TestTableQuery:

    def test_where_accumulates(self):
        query = TableQuery("drivers").where(company_id="c1").where({"status": "active"}, hire_date=gte(date(2020, 1, 1)))
        assert len(query.conditions) == 3
        assert query.column_values("company_id") == ["c1"]

    def test_builder_does_not_mutate(self):
        base = TableQuery("vehicles")
        narrowed = base.where(status="available").order("created_at", desc=True).one()
        assert base.conditions == ()
        assert base.order_by is None
        assert narrowed.single is True
        assert narrowed.ascending is False

    def test_blank_search_is_ignored(self):
        query = TableQuery("vehicles").search(("make", "model"), "   ")
        assert query.search_term is None
        query = TableQuery("vehicles").search(("make", "model"), " ford ")
        assert query.search_term == "ford"
        assert query.search_columns == ("make", "model")

    def test_range_sets_count(self):
        query = TableQuery("vehicles").range(20, 10)
        assert (query.offset, query.limit, query.count) == (20, 10, True)

    def test_ilike_constraint(self):
        query = TableQuery("vehicles").where(make=ilike("%ford%"))
        assert query.conditions == (Condition("make", Op.ILIKE, "%ford%"),)

    def test_escape_like(self):
        assert escape_like("ford") == "ford"
        assert escape_like("50%") == "50\\%"
        assert escape_like("F_1") == "F\\_1"
        assert escape_like("a\\b") == "a\\\\b"
