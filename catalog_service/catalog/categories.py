"""
Category parsing and hierarchy building.

The upstream returns categories as a flat list whose parent pointers come in
several legacy field names and may be missing, self-referential, dangling or
even cyclic. parse_categories() normalises the records; the
CategoryHierarchyBuilder links them into an ordered forest where every input
node appears exactly once.
"""

import logging
from collections import deque
from dataclasses import dataclass, field, replace
from datetime import time
from typing import Any, Dict, Iterable, Iterator, List, NamedTuple, Optional, Sequence

from catalog_service import metrics
from catalog_service.domain.entities import AvailabilityPeriod, Category, DayOfWeek

logger = logging.getLogger(__name__)

UNNAMED_CATEGORY = "Unnamed Category"

# Checked in order; the first non-empty value wins.
PARENT_FIELDS = (
    "rootCategory",
    "parentCategory",
    "parentCategoryId",
    "parent_category",
    "root_category",
)

DEFAULT_START = time(0, 0, 0)
DEFAULT_END = time(23, 59, 59)


def parse_time(value: Optional[str], default: time) -> time:
    """
    Parse a local wall-clock time in HH:MM or HH:MM:SS form.

    Raises:
        ValueError: If the value is present but not a valid time
    """
    if not value:
        return default
    return time.fromisoformat(str(value).strip())


def parse_availability_period(raw: Dict[str, Any]) -> AvailabilityPeriod:
    """
    Parse one availability period, camelCase or snake_case, flat or nested.

    Raises:
        ValueError: On an invalid time or day name
    """
    data = raw.get("availabilityPeriodData") or raw.get("availability_period_data") or raw

    start = data.get("startTime") or data.get("start_time")
    end = data.get("endTime") or data.get("end_time")
    day = data.get("dayOfWeek") or data.get("day_of_week")

    return AvailabilityPeriod(
        id=raw.get("id"),
        start_time=parse_time(start, DEFAULT_START),
        end_time=parse_time(end, DEFAULT_END),
        day_of_week=DayOfWeek.parse(day) if day else None,
    )


def _parse_periods(raw_periods: Any, period_index: Dict[str, Any], category_id: str) -> tuple:
    periods = []
    for entry in raw_periods or []:
        raw = period_index.get(entry) if isinstance(entry, str) else entry
        if not isinstance(raw, dict):
            continue
        try:
            periods.append(parse_availability_period(raw))
        except ValueError as e:
            logger.warning(f"Ignoring availability period of category {category_id}: {e}")
    return tuple(periods)


def _parent_id(data: Dict[str, Any]) -> Optional[str]:
    for name in PARENT_FIELDS:
        value = data.get(name)
        if isinstance(value, dict):
            value = value.get("id")
        if value:
            return str(value)
    return None


def parse_categories(raw_response: Optional[Dict[str, Any]]) -> List[Category]:
    """
    Normalise a categories response into flat Category records.

    Args:
        raw_response: Body with ``objects`` and optionally an
            ``availabilityPeriods`` id -> period index

    Returns:
        Flat categories (no subcategories yet) with ``sort_order`` set to the
        1-based position in the response
    """
    data = raw_response or {}
    period_index = data.get("availabilityPeriods") or data.get("availability_periods") or {}
    if not isinstance(period_index, dict):
        period_index = {}

    categories: List[Category] = []

    for index, obj in enumerate(data.get("objects") or []):
        if not isinstance(obj, dict) or obj.get("type") != "CATEGORY" or not obj.get("id"):
            continue

        category_data = obj.get("categoryData")
        if category_data is None:
            category_data = obj.get("category_data")
        if not isinstance(category_data, dict):
            metrics.track_item_skipped("CATEGORY", "malformed")
            logger.warning(f"Skipping category {obj['id']} without category data")
            continue

        is_top_level = category_data.get("isTopLevel") is True or category_data.get("is_top_level") is True
        parent_id = None if is_top_level else _parent_id(category_data)

        raw_periods = (
            obj.get("availabilityPeriods")
            or obj.get("availability_periods")
            or category_data.get("availabilityPeriodIds")
            or category_data.get("availability_period_ids")
        )

        visible = category_data.get("onlineVisibility", category_data.get("online_visibility"))
        deleted = obj.get("isDeleted") or obj.get("is_deleted")

        categories.append(
            Category(
                id=str(obj["id"]),
                name=category_data.get("name") or UNNAMED_CATEGORY,
                description=category_data.get("description") or "",
                parent_id=parent_id,
                sort_order=index + 1,
                availability_periods=_parse_periods(raw_periods, period_index, obj["id"]),
                is_active=visible is not False and not deleted,
            )
        )

    return categories


@dataclass(eq=False)
class _Node:
    category: Category
    parent_id: Optional[str]
    children: List["_Node"] = field(default_factory=list)
    level: int = -1


class CategoryHierarchyBuilder:
    """
    Links flat categories into a forest.

    Roots are nodes whose parent is absent, themselves, or unknown. A parent
    cycle is broken by promoting one of its members to a root: starting from
    the first unreached node in input order, parent links are followed until
    a node repeats. Nodes hanging below the cycle keep their parents.
    Siblings are ordered by ``sort_order``.
    """

    def build(self, flat_categories: Sequence[Category]) -> List[Category]:
        nodes: Dict[str, _Node] = {}
        for category in flat_categories:
            if category.id in nodes:
                logger.warning(f"Duplicate category id {category.id}; keeping the first occurrence")
                continue
            nodes[category.id] = _Node(category=category, parent_id=category.parent_id)

        roots: List[_Node] = []
        for node_id, node in nodes.items():
            parent_id = node.parent_id
            if parent_id is None or parent_id == node_id or parent_id not in nodes:
                if parent_id is not None and parent_id != node_id:
                    logger.info(f"Category {node_id} has unknown parent {parent_id}; treating as root")
                node.parent_id = None
                roots.append(node)
            else:
                nodes[parent_id].children.append(node)

        self._assign_levels(roots)

        for node_id, node in nodes.items():
            if node.level >= 0:
                continue
            # Unreached means the node sits on or below a parent cycle.
            cycle_node = self._find_cycle_node(nodes, node_id)
            logger.warning(
                f"Category {cycle_node.category.id} is part of a parent cycle; promoting to root"
            )
            nodes[cycle_node.parent_id].children.remove(cycle_node)
            cycle_node.parent_id = None
            roots.append(cycle_node)
            self._assign_levels([cycle_node])

        return self._freeze(roots)

    @staticmethod
    def _find_cycle_node(nodes: Dict[str, _Node], start_id: str) -> _Node:
        """Follow parent links from an unreached node to the first repeated node."""
        seen = set()
        current_id = start_id
        while current_id not in seen:
            seen.add(current_id)
            current_id = nodes[current_id].parent_id
        return nodes[current_id]

    @staticmethod
    def _assign_levels(roots: List[_Node]) -> None:
        queue = deque((root, 0) for root in roots)
        while queue:
            node, level = queue.popleft()
            node.level = level
            queue.extend((child, level + 1) for child in node.children)

    def _freeze(self, nodes: List[_Node]) -> List[Category]:
        ordered = sorted(nodes, key=lambda node: node.category.sort_order)
        return [
            replace(
                node.category,
                parent_id=node.parent_id,
                level=node.level,
                subcategories=tuple(self._freeze(node.children)),
            )
            for node in ordered
        ]


def build_category_hierarchy(flat_categories: Sequence[Category]) -> List[Category]:
    return CategoryHierarchyBuilder().build(flat_categories)


def iter_categories(forest: Iterable[Category]) -> Iterator[Category]:
    """Depth-first, pre-order walk over a category forest."""
    for category in forest:
        yield category
        yield from iter_categories(category.subcategories)


def find_category(forest: Iterable[Category], category_id: str) -> Optional[Category]:
    return next((c for c in iter_categories(forest) if c.id == category_id), None)


class NavigationSplit(NamedTuple):
    """Root categories split for menu rendering."""

    parents: List[Category]
    standalone: List[Category]
    all: List[Category]


def split_navigation(forest: Sequence[Category]) -> NavigationSplit:
    """Separate roots with subcategories from standalone roots."""
    roots = [category for category in forest if category.level == 0]
    return NavigationSplit(
        parents=[category for category in roots if category.subcategories],
        standalone=[category for category in roots if not category.subcategories],
        all=list(forest),
    )
