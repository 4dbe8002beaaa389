"""
Extra-group resolution and selection validation.

``resolve_extra_groups`` is pure: it takes snapshots of the candidate
groups and returns the effective, deduplicated list for one menu item.
``load_extra_groups`` is the thin ORM wrapper used by views and checkout;
listing views pass ``load_global_groups()`` in so globals load once per request.
"""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from core.exceptions import ExtrasSelectionError
from core.money import q2

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedExtraItem:
    id: int
    group_id: int
    name: str
    price: Decimal
    image_url: str = ""


@dataclass(frozen=True)
class ResolvedExtraGroup:
    id: int
    name: str
    is_global: bool
    min_selections: int
    max_selections: int
    description: str = ""
    items: Tuple[ResolvedExtraItem, ...] = field(default_factory=tuple)

    @property
    def unbounded(self) -> bool:
        return self.max_selections == 0

    def item(self, extra_item_id) -> Optional[ResolvedExtraItem]:
        for it in self.items:
            if it.id == extra_item_id:
                return it
        return None

    def check_count(self, count: int) -> None:
        if count < self.min_selections:
            raise ExtrasSelectionError(
                self.id, f"select at least {self.min_selections} (got {count})"
            )
        if not self.unbounded and count > self.max_selections:
            raise ExtrasSelectionError(
                self.id, f"select at most {self.max_selections} (got {count})"
            )


@dataclass(frozen=True)
class ExtraSelection:
    """One selected extra on a cart line."""
    extra_item_id: int
    group_id: Optional[int] = None
    quantity: int = 1


def snapshot_group(group) -> ResolvedExtraGroup:
    """Freeze an ``ExtraGroup`` (with prefetched ``items``), dropping inactive items."""
    items = tuple(
        ResolvedExtraItem(
            id=it.id,
            group_id=group.id,
            name=it.name,
            price=q2(it.price),
            image_url=getattr(it, "image_url", "") or "",
        )
        for it in group.items.all()
        if it.is_active
    )
    return ResolvedExtraGroup(
        id=group.id,
        name=group.name,
        is_global=bool(group.is_global),
        min_selections=int(group.min_selections or 0),
        max_selections=int(group.max_selections or 0),
        description=group.description or "",
        items=items,
    )


def _is_active(group) -> bool:
    return bool(getattr(group, "is_active", True))


def resolve_extra_groups(menu_item, global_groups: Iterable, item_linked_groups: Iterable) -> List[ResolvedExtraGroup]:
    """
    Effective extra groups for ``menu_item``.

    Item-linked groups come first, then the remaining global groups. A group
    reachable both ways appears once (first occurrence wins). Inactive groups
    and inactive items never appear in the result.
    """
    resolved: List[ResolvedExtraGroup] = []
    seen = set()
    for group in list(item_linked_groups) + list(global_groups):
        if not _is_active(group):
            continue
        snap = group if isinstance(group, ResolvedExtraGroup) else snapshot_group(group)
        if snap.id in seen:
            continue
        seen.add(snap.id)
        resolved.append(snap)
    logger.debug(
        "Resolved %d extra groups for menu item %s",
        len(resolved), getattr(menu_item, "id", menu_item),
    )
    return resolved


def load_global_groups() -> List[ResolvedExtraGroup]:
    """Active global groups as snapshots, loaded once and shared across items."""
    from .models import ExtraGroup

    groups = (
        ExtraGroup.objects.filter(is_global=True, is_active=True)
        .prefetch_related("items")
        .order_by("sort_order", "name")
    )
    return [snapshot_group(group) for group in groups]


def _linked_groups(menu_item):
    # Use links prefetched with ``extra_group_links__extra_group__items`` when present
    if "extra_group_links" in getattr(menu_item, "_prefetched_objects_cache", {}):
        links = sorted(
            menu_item.extra_group_links.all(),
            key=lambda link: (link.sort_order, link.extra_group.name),
        )
        return [link.extra_group for link in links]

    from .models import ExtraGroup

    return (
        ExtraGroup.objects.filter(menu_item_links__menu_item=menu_item, is_active=True)
        .prefetch_related("items")
        .order_by("menu_item_links__sort_order", "name")
    )


def load_extra_groups(menu_item, global_groups: Optional[Sequence[ResolvedExtraGroup]] = None) -> List[ResolvedExtraGroup]:
    if global_groups is None:
        global_groups = load_global_groups()
    return resolve_extra_groups(menu_item, global_groups, _linked_groups(menu_item))


def validate_selections(groups: Sequence[ResolvedExtraGroup], selections: Iterable[ExtraSelection]) -> List[Tuple[ResolvedExtraGroup, ResolvedExtraItem, int]]:
    """
    Check a line's selected extras against the item's resolved groups.

    Every selection must name an active item of an offered group, and each
    group that has selections must satisfy ``min <= count <= max``.
    Returns ``(group, item, quantity)`` triples priced from the catalog.
    """
    by_group: Dict[int, ResolvedExtraGroup] = {g.id: g for g in groups}
    item_index: Dict[int, ResolvedExtraGroup] = {}
    for g in groups:
        for it in g.items:
            item_index.setdefault(it.id, g)

    counts: Counter = Counter()
    matched = []
    for sel in selections:
        if sel.quantity is None or int(sel.quantity) < 1:
            raise ExtrasSelectionError(sel.group_id, "extra quantity must be at least 1")
        if sel.group_id is not None:
            group = by_group.get(sel.group_id)
            if group is None:
                raise ExtrasSelectionError(sel.group_id, "group is not available for this item")
        else:
            group = item_index.get(sel.extra_item_id)
            if group is None:
                raise ExtrasSelectionError(None, f"extra {sel.extra_item_id} is not available for this item")
        item = group.item(sel.extra_item_id)
        if item is None:
            raise ExtrasSelectionError(group.id, f"extra {sel.extra_item_id} is not available")
        counts[group.id] += 1
        matched.append((group, item, int(sel.quantity)))

    for group_id, count in counts.items():
        by_group[group_id].check_count(count)
    return matched
