from __future__ import annotations

import logging
from typing import Optional

from sheetgen import config
from sheetgen.errors import PackingError
from sheetgen.models import PackRect, PackResult, PlacedRect


class Node:
    __slots__ = ("x", "y", "width", "height", "occupied", "down", "right")

    def __init__(self, x: int, y: int, width: int, height: int):
        self.x = x
        self.y = y
        self.width = width
        self.height = height
        self.occupied = False
        self.down: Optional[Node] = None
        self.right: Optional[Node] = None

    def __repr__(self) -> str:
        state = "occupied" if self.occupied else "free"
        return f"Node({self.x}, {self.y}, {self.width}x{self.height}, {state})"


class GrowingPacker:
    """Binary-tree packer whose root grows right or down when nothing fits.

    Growth prefers the direction that keeps the container closer to square.
    """

    def __init__(self, width: int, height: int, *, max_size: int = config.MAX_ATLAS_SIZE):
        self.root = Node(0, 0, width, height)
        self.max_size = max_size

    def fit(self, width: int, height: int) -> Node:
        node = self.find_node(self.root, width, height)
        if node is not None:
            return self.split_node(node, width, height)
        return self.grow_node(width, height)

    @staticmethod
    def find_node(root: Node, width: int, height: int) -> Optional[Node]:
        # Depth-first, right subtree before down subtree.
        stack = [root]
        while stack:
            node = stack.pop()
            if node.occupied:
                if node.down is not None:
                    stack.append(node.down)
                if node.right is not None:
                    stack.append(node.right)
            elif width <= node.width and height <= node.height:
                return node
        return None

    @staticmethod
    def split_node(node: Node, width: int, height: int) -> Node:
        node.occupied = True
        node.down = Node(node.x, node.y + height, node.width, node.height - height)
        node.right = Node(node.x + width, node.y, node.width - width, height)
        return node

    def grow_node(self, width: int, height: int) -> Node:
        root_w = self.root.width
        root_h = self.root.height

        can_down = width <= root_w
        can_right = height <= root_h

        should_right = can_right and root_h > root_w + width
        should_down = can_down and root_w > root_h + height

        if should_right:
            return self.grow_right(width, height)
        if should_down:
            return self.grow_down(width, height)
        if can_right:
            return self.grow_right(width, height)
        if can_down:
            return self.grow_down(width, height)

        raise PackingError(f"Unable to pack a {width}x{height} rectangle.")

    def grow_right(self, width: int, height: int) -> Node:
        old = self.root
        new_root = Node(0, 0, old.width + width, old.height)
        new_root.occupied = True
        new_root.down = old
        new_root.right = Node(old.width, 0, width, old.height)
        return self._refit(new_root, width, height)

    def grow_down(self, width: int, height: int) -> Node:
        old = self.root
        new_root = Node(0, 0, old.width, old.height + height)
        new_root.occupied = True
        new_root.right = old
        new_root.down = Node(0, old.height, old.width, height)
        return self._refit(new_root, width, height)

    def _refit(self, new_root: Node, width: int, height: int) -> Node:
        if max(new_root.width, new_root.height) > self.max_size:
            raise PackingError(
                f"Atlas would grow to {new_root.width}x{new_root.height}, "
                f"beyond the {self.max_size}px limit."
            )
        self.root = new_root
        node = self.find_node(self.root, width, height)
        if node is None:
            raise PackingError(f"Unable to pack a {width}x{height} rectangle.")
        return self.split_node(node, width, height)


def pack_rectangles(rects: list[PackRect], *, max_size: int = config.MAX_ATLAS_SIZE) -> PackResult:
    """Place every rectangle; larger areas first, equal areas in input order."""
    if not rects:
        return PackResult(0, 0, {})

    ordered = sorted(rects, key=lambda r: r.area, reverse=True)
    first = ordered[0]
    if max(first.width, first.height) > max_size:
        raise PackingError(
            f"A {first.width}x{first.height} frame exceeds the {max_size}px atlas limit."
        )

    packer = GrowingPacker(first.width, first.height, max_size=max_size)
    placements: dict[str, PlacedRect] = {}
    for rect in ordered:
        node = packer.fit(rect.width, rect.height)
        placements[rect.id] = PlacedRect(rect.id, node.x, node.y, rect.width, rect.height)

    logging.info(
        "Packed %s rectangles into %sx%s", len(placements), packer.root.width, packer.root.height
    )
    return PackResult(packer.root.width, packer.root.height, placements)
