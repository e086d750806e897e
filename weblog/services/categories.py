"""
Category hierarchy for a web log.

Turns a flat set of categories into an ordered forest with full slugs,
ancestor names and published-post counts (parent counts include posts in
subcategories).

Usage:
    from weblog.services.categories import order_by_hierarchy, count_posts

    ordered = order_by_hierarchy(categories)
    counted = count_posts(ordered, {"post-1": ["cat-a"], "post-2": ["cat-b"]})
"""

from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import structlog

from weblog.data.base import WebLogData
from weblog.models import Category, DisplayCategory

logger = structlog.get_logger(__name__)


def order_by_hierarchy(categories: Iterable[Category]) -> List[DisplayCategory]:
    """
    Order categories as a depth-first walk of their tree.

    Siblings are sorted by name, case-insensitively (stable). A category whose
    parent is not in the set is a root. Parent chains that loop back on
    themselves are logged and broken: the first category of the loop reached
    in name order is emitted as a root.
    """
    cats = sorted(categories, key=lambda c: c.name.lower())
    by_id = {cat.id: cat for cat in cats}

    children: Dict[Optional[str], List[Category]] = {}
    for cat in cats:
        parent = cat.parent_id if cat.parent_id in by_id else None
        children.setdefault(parent, []).append(cat)

    ordered: List[DisplayCategory] = []
    visited: set[str] = set()

    def walk(parent_id: Optional[str], slug_base: Optional[str], parent_names: List[str]) -> None:
        # Explicit stack; a malformed parent chain cannot recurse without bound
        stack = [(cat, slug_base, parent_names) for cat in reversed(children.get(parent_id, []))]
        while stack:
            cat, base, names = stack.pop()
            if cat.id in visited:
                continue
            visited.add(cat.id)
            full_slug = f"{base}/{cat.slug}" if base else cat.slug
            ordered.append(
                DisplayCategory(
                    id=cat.id,
                    slug=full_slug,
                    name=cat.name,
                    description=cat.description,
                    parent_names=list(names),
                )
            )
            child_names = names + [cat.name]
            for child in reversed(children.get(cat.id, [])):
                stack.append((child, full_slug, child_names))

    walk(None, None, [])

    for cat in cats:
        if cat.id not in visited:
            logger.warning(
                "Category parent chain forms a cycle; treating as top-level",
                category_id=cat.id,
                category_name=cat.name,
                parent_id=cat.parent_id,
            )
            children.setdefault(f"cycle:{cat.id}", []).append(cat)
            walk(f"cycle:{cat.id}", None, [])

    return ordered


def descendant_ids(ordered: Sequence[DisplayCategory], category: DisplayCategory) -> List[str]:
    """The category's id followed by the id of every subcategory beneath it."""
    return [category.id] + [
        cat.id for cat in ordered if cat.id != category.id and category.name in cat.parent_names
    ]


def count_posts(
    ordered: Sequence[DisplayCategory], post_categories: Mapping[str, Sequence[str]]
) -> List[DisplayCategory]:
    """
    Fill in post counts.

    Args:
        ordered: Output of order_by_hierarchy
        post_categories: Category ids of each published post, keyed by post id

    Returns:
        Copies of the categories with `post_count` set to the number of
        distinct posts in the category or any of its subcategories
    """
    counted = []
    for cat in ordered:
        ids = set(descendant_ids(ordered, cat))
        total = sum(1 for cat_ids in post_categories.values() if ids.intersection(cat_ids))
        counted.append(cat.model_copy(update={"post_count": total}))
    return counted


def category_ids_for(ordered: Sequence[DisplayCategory], slug_or_id: str) -> List[str]:
    """
    Ids to query for posts "in" a category (subcategory posts included).

    The category may be given by id or by full slug; a value matching
    neither yields just that value.
    """
    for cat in ordered:
        if cat.id == slug_or_id or cat.slug == slug_or_id:
            return descendant_ids(ordered, cat)
    return [slug_or_id]


def find_by_slug(ordered: Sequence[DisplayCategory], slug: str) -> Optional[DisplayCategory]:
    return next((cat for cat in ordered if cat.slug == slug), None)


def find_by_id(ordered: Sequence[DisplayCategory], category_id: str) -> Optional[DisplayCategory]:
    return next((cat for cat in ordered if cat.id == category_id), None)


async def build_hierarchy(data: WebLogData, web_log_id: str) -> List[DisplayCategory]:
    """Fetch a web log's categories and post assignments and build the counted hierarchy."""
    categories = await data.find_categories(web_log_id)
    post_categories = await data.find_published_category_ids(web_log_id)
    hierarchy = count_posts(order_by_hierarchy(categories), post_categories)
    logger.debug("Category hierarchy built", web_log_id=web_log_id, categories=len(hierarchy))
    return hierarchy
