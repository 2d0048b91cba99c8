from bootcamp_api.services.query_builder import (
    DEFAULT_LIMIT,
    Direction,
    FilterCondition,
    Operator,
    QueryBuilder,
    SortKey,
    build_query_plan,
    coerce_value,
    parse_filters,
    parse_pagination,
    parse_sort,
    strip_hidden,
)


def test_defaults_when_no_parameters():
    plan = build_query_plan({})

    assert plan.filters == ()
    assert plan.sort == (SortKey(field="created_at", direction=Direction.DESCENDING),)
    assert plan.projection is None
    assert plan.page == 1
    assert plan.limit == DEFAULT_LIMIT
    assert plan.skip == 0


def test_reserved_keys_are_not_filters():
    filters = parse_filters({"page": "2", "sort": "name", "limit": "5", "fields": "name", "housing": "true"})

    assert filters == (FilterCondition(field="housing", op=Operator.EQ, value=True),)


def test_bracket_operators():
    filters = parse_filters({
        "average_cost[lte]": "10000",
        "rating[gt]": "4.5",
        "careers[in]": "Business,UI/UX",
        "weeks[eq]": "8",
    })

    assert FilterCondition(field="average_cost", op=Operator.LTE, value=10000) in filters
    assert FilterCondition(field="rating", op=Operator.GT, value=4.5) in filters
    assert FilterCondition(field="careers", op=Operator.IN, value=["Business", "UI/UX"]) in filters
    assert FilterCondition(field="weeks", op=Operator.EQ, value=8) in filters


def test_unknown_operator_is_a_plain_field_name():
    filters = parse_filters({"rating[between]": "3"})

    assert filters == (FilterCondition(field="rating[between]", value=3),)


def test_coerce_value():
    assert coerce_value("true") is True
    assert coerce_value("false") is False
    assert coerce_value("42") == 42
    assert coerce_value("-3") == -3
    assert coerce_value("2.5") == 2.5
    assert coerce_value("02118") == "02118"
    assert coerce_value("Boston") == "Boston"
    assert coerce_value("True") == "True"


def test_parse_sort():
    assert parse_sort("-average_rating,name") == (
        SortKey(field="average_rating", direction=Direction.DESCENDING),
        SortKey(field="name", direction=Direction.ASCENDING),
    )
    assert parse_sort("") == parse_sort(None) == parse_sort("-created_at")
    assert parse_sort(",-,") == parse_sort("-created_at")


def test_parse_pagination_falls_back_on_bad_values():
    assert parse_pagination("3", "20") == (3, 20)
    assert parse_pagination("0", "-5") == (1, DEFAULT_LIMIT)
    assert parse_pagination("abc", None) == (1, DEFAULT_LIMIT)
    assert parse_pagination("2.5", "10") == (1, 10)


def test_page_window():
    plan = build_query_plan({"page": "3", "limit": "10"})

    assert plan.skip == 20
    assert plan.limit == 10


def test_fields_projection():
    assert build_query_plan({"fields": "name, description"}).projection == ("name", "description")
    assert build_query_plan({"fields": ""}).projection is None


def test_base_filters_come_first_and_are_kept():
    plan = build_query_plan({"rating[gte]": "8"}, base_filters={"bootcamp_id": "abc"})

    assert plan.filters[0] == FilterCondition(field="bootcamp_id", value="abc")
    assert plan.filters[1] == FilterCondition(field="rating", op=Operator.GTE, value=8)


def test_builder_steps_are_independent_of_order():
    params = {"housing": "true", "sort": "name", "fields": "name", "page": "2", "limit": "5"}
    builder = QueryBuilder(params)

    forward = builder.apply_filter().apply_sort().apply_fields().apply_pagination().plan
    backward = builder.apply_pagination().apply_fields().apply_sort().apply_filter().plan

    assert forward == backward


def test_builder_is_immutable():
    builder = QueryBuilder({"housing": "true", "page": "4"})
    filtered = builder.apply_filter()

    assert builder.plan.filters == ()
    assert filtered.plan.filters == (FilterCondition(field="housing", value=True),)
    assert filtered.plan.page == 1


def test_strip_hidden():
    document = {"id": "1", "name": "Jane", "password_hash": "x", "tokens": []}

    assert strip_hidden(document, {"password_hash", "tokens"}) == {"id": "1", "name": "Jane"}
