from typing import List, Optional

from .dom import TreeNode


# Tried in order; later strategies catch anchors without a role attribute
ANCHOR_SELECTORS = [
    'a[role="link"][href*="groups"]',
    'a[href*="groups"]',
]

# Closest wrapper that holds a group card's name, members and activity text
CONTAINER_SELECTOR = (
    '[role="article"], [data-pagelet], div[class*="x1lliihq"], div[class*="x1y1aw1k"]'
)

# Elements whose text may carry the group name when the anchor text is poor
NAME_NODE_SELECTOR = "span, strong, h1, h2, h3, div"


def find_group_anchors(root: TreeNode) -> List[TreeNode]:
    """Collect anchors that plausibly point at group pages, once each.

    Every strategy runs against the same snapshot; an element matched by
    several strategies is returned once, in document order.
    """
    matched = set()
    for sel in ANCHOR_SELECTORS:
        matched.update(root.select(sel))
    if not matched:
        return []
    return [node for node in root.select("a") if node in matched]


def find_container(anchor: TreeNode) -> Optional[TreeNode]:
    """Nearest meaningful card around an anchor, else its parent."""
    container = anchor.closest(CONTAINER_SELECTOR)
    if container is not None:
        return container
    return anchor.parent
