# tests/test_ordering.py
"""
Property tests for the pure ordering rules shared by every catalog tier.
"""
from types import SimpleNamespace

from hypothesis import given, strategies as st

from app.services.ordering import (
    ORDER_SENTINEL,
    SYSTEM_FILTERS,
    filter_legacy,
    filter_snapshot,
    legacy_tag_names,
    order_filter_names,
    sort_system_list,
    used_tag_names,
)

order_values = st.one_of(st.none(), st.integers(min_value=0, max_value=300))
tag_names = st.text(
    alphabet=st.characters(whitelist_categories=("Lu", "Ll", "Nd")),
    min_size=1,
    max_size=8,
).filter(lambda n: n not in SYSTEM_FILTERS)


def _item(index: int, **kwargs) -> SimpleNamespace:
    kwargs.setdefault("published", True)
    return SimpleNamespace(id=index, **kwargs)


@given(st.lists(order_values, max_size=30))
def test_system_sort_is_stable_and_puts_missing_at_sentinel(values):
    items = [_item(i, featured_order=v) for i, v in enumerate(values)]

    result = sort_system_list(items, "Featured")

    keys = [ORDER_SENTINEL if p.featured_order is None else p.featured_order for p in result]
    assert keys == sorted(keys)
    assert sorted(p.id for p in result) == list(range(len(values)))
    # Ties keep their input order.
    for a, b in zip(result, result[1:]):
        if (a.featured_order if a.featured_order is not None else ORDER_SENTINEL) == (
            b.featured_order if b.featured_order is not None else ORDER_SENTINEL
        ):
            assert a.id < b.id


@given(st.lists(st.tuples(st.booleans(), order_values), max_size=30))
def test_legacy_filter_is_publish_gated_for_guests(rows):
    items = [_item(i, published=pub, priority=prio, tags=["SEO"]) for i, (pub, prio) in enumerate(rows)]

    guest = filter_legacy(items, "SEO", include_unpublished=False)
    admin = filter_legacy(items, "SEO", include_unpublished=True)

    assert all(p.published for p in guest)
    assert len(admin) == len(items)
    assert {p.id for p in guest} == {p.id for p in items if p.published}


@given(
    used=st.sets(tag_names, max_size=10),
    known=st.lists(tag_names, unique=True, max_size=10),
)
def test_filter_names_start_with_system_triplet_and_list_each_used_tag_once(used, known):
    tag_order = {name: index for index, name in enumerate(known)}

    result = order_filter_names(used, tag_order)

    assert result[:3] == list(SYSTEM_FILTERS)
    assert sorted(result[3:]) == sorted(used)

    known_part = [n for n in result[3:] if n in tag_order]
    assert [tag_order[n] for n in known_part] == sorted(tag_order[n] for n in known_part)
    # Unknown names come after every known one.
    positions = [n in tag_order for n in result[3:]]
    assert positions == sorted(positions, reverse=True)


def test_filter_names_are_alphabetical_without_tag_store():
    assert order_filter_names({"b", "a", "c"}, None) == ["Featured", "Free", "All", "a", "b", "c"]


def test_legacy_tag_names_accepts_list_and_comma_string():
    assert legacy_tag_names(["SEO", " Local "]) == ["SEO", "Local"]
    assert legacy_tag_names("SEO, Local,,") == ["SEO", "Local"]
    assert legacy_tag_names(None) == []


def test_used_tags_prefer_memberships_over_legacy_names():
    membership = SimpleNamespace(tag=SimpleNamespace(name="Analytics"))
    products = [
        _item(1, tags=["SEO", "Featured"], product_tags=[membership]),
        _item(2, tags="Local", product_tags=[]),
    ]

    assert used_tag_names(products) == {"Analytics"}


def test_used_tags_fall_back_to_legacy_names_without_system_names():
    products = [
        _item(1, tags=["SEO", "Featured"], product_tags=[]),
        _item(2, tags="Local", product_tags=[]),
    ]

    assert used_tag_names(products) == {"SEO", "Local"}


def test_snapshot_filter_matches_memberships_and_orders_by_priority():
    membership = SimpleNamespace(tag=SimpleNamespace(name="SEO"))
    products = [
        _item(1, priority=5, tags=None, product_tags=[membership]),
        _item(2, priority=1, tags=["SEO"], product_tags=[]),
        _item(3, priority=None, tags=["SEO"], product_tags=[]),
        _item(4, priority=0, tags=["Other"], product_tags=[]),
    ]

    assert [p.id for p in filter_snapshot(products, "SEO", False)] == [2, 1, 3]


def test_snapshot_filter_keeps_system_semantics():
    products = [
        _item(1, featured=True, featured_order=2),
        _item(2, featured=False, featured_order=0),
        _item(3, featured=True, featured_order=None),
        _item(4, featured=True, featured_order=0, published=False),
    ]

    assert [p.id for p in filter_snapshot(products, "Featured", False)] == [1, 3]
    assert [p.id for p in filter_snapshot(products, "Featured", True)] == [4, 1, 3]
