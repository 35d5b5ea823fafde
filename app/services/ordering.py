# app/services/ordering.py
"""
Pure ordering / filtering rules for catalog lists.

Works on anything shaped like a product (ORM rows, read models, legacy
JSON items) so that the database tiers and the in-memory snapshot tier
share a single definition of "sorted" and "visible".
"""
from typing import Any, Iterable, Sequence, TypeVar

P = TypeVar("P")

FEATURED = "Featured"
FREE = "Free"
ALL = "All"
SYSTEM_FILTERS: tuple[str, ...] = (FEATURED, FREE, ALL)

# Missing order values sort after every explicit one.
ORDER_SENTINEL = 100
# Junction member whose position was somehow not captured.
MISSING_POSITION = 999

SYSTEM_ORDER_FIELDS: dict[str, str] = {
    FEATURED: "featured_order",
    FREE: "free_order",
    ALL: "all_order",
}

SYSTEM_FLAGS: dict[str, str | None] = {
    FEATURED: "featured",
    FREE: "free",
    ALL: None,
}

# "featured" / "free" as used in URLs and admin actions.
SYSTEM_KINDS: dict[str, str] = {
    "featured": FEATURED,
    "free": FREE,
    "all": ALL,
}


def is_system_filter(name: str) -> bool:
    return name in SYSTEM_FILTERS


def order_value(value: int | None, default: int = ORDER_SENTINEL) -> int:
    return default if value is None else value


def legacy_tag_names(raw: Any) -> list[str]:
    """
    Normalize the legacy `tags` column: list of names, comma-separated
    string, or nothing.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        return [part.strip() for part in raw.split(",") if part.strip()]
    return [str(item).strip() for item in raw if item is not None and str(item).strip()]


def membership_tag_names(product: Any) -> list[str]:
    """
    Tag names from the junction memberships attached to a product.
    """
    names: list[str] = []
    for membership in getattr(product, "product_tags", None) or []:
        tag = getattr(membership, "tag", None)
        name = getattr(tag, "name", None)
        if name:
            names.append(name)
    return names


def visible(products: Iterable[P], include_unpublished: bool) -> list[P]:
    if include_unpublished:
        return list(products)
    return [p for p in products if getattr(p, "published", False)]


def sort_system_list(products: Iterable[P], filter_name: str) -> list[P]:
    """
    Stable sort by the system list's own order field, missing => 100.
    """
    field = SYSTEM_ORDER_FIELDS[filter_name]
    return sorted(products, key=lambda p: order_value(getattr(p, field, None)))


def filter_system_list(
    products: Iterable[P],
    filter_name: str,
    include_unpublished: bool,
) -> list[P]:
    """
    Members of a system pseudo-tag, publish-gated and ordered.
    """
    flag = SYSTEM_FLAGS[filter_name]
    members = [p for p in products if flag is None or getattr(p, flag, False)]
    return sort_system_list(visible(members, include_unpublished), filter_name)


def sort_by_priority(products: Iterable[P]) -> list[P]:
    return sorted(products, key=lambda p: order_value(getattr(p, "priority", None)))


def filter_legacy(
    products: Iterable[P],
    tag_name: str,
    include_unpublished: bool,
) -> list[P]:
    """
    Legacy array semantics: products whose denormalized `tags` contain the
    name, publish-gated, ordered by priority.
    """
    members = [p for p in products if tag_name in legacy_tag_names(getattr(p, "tags", None))]
    return sort_by_priority(visible(members, include_unpublished))


def filter_snapshot(
    products: Sequence[P],
    filter_name: str,
    include_unpublished: bool,
) -> list[P]:
    """
    In-memory resolution over an already loaded product list.

    System filters keep their exact semantics. Tags match through either
    the junction memberships or the legacy names and fall back to the
    coarse priority ordering.
    """
    if is_system_filter(filter_name):
        return filter_system_list(products, filter_name, include_unpublished)

    members = [
        p
        for p in products
        if filter_name in membership_tag_names(p)
        or filter_name in legacy_tag_names(getattr(p, "tags", None))
    ]
    return sort_by_priority(visible(members, include_unpublished))


def used_tag_names(products: Iterable[Any]) -> set[str]:
    """
    Every tag name referenced by at least one of the given products.

    Junction memberships are authoritative. The legacy names only count
    when none of the products carries a membership.
    """
    products = list(products)
    names: set[str] = set()
    for p in products:
        names.update(membership_tag_names(p))
    if not names:
        for p in products:
            names.update(legacy_tag_names(getattr(p, "tags", None)))
    names.difference_update(SYSTEM_FILTERS)
    return names


def order_filter_names(used: Iterable[str], tag_order: dict[str, int] | None) -> list[str]:
    """
    System triplet first, then used tags by the Tag Store's order_index.

    Names unknown to the Tag Store go last alphabetically. Without a tag
    order (store unavailable) the used names are alphabetical.
    """
    used = set(used)
    if tag_order is None:
        return [*SYSTEM_FILTERS, *sorted(used)]

    known = sorted((n for n in used if n in tag_order), key=lambda n: (tag_order[n], n))
    unknown = sorted(n for n in used if n not in tag_order)
    return [*SYSTEM_FILTERS, *known, *unknown]
