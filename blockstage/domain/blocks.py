"""Block tree helpers — construction and id-based traversal of block forests.

A forest is a tuple of ``Block``. Every helper returns new tuples/blocks and
never mutates its input, so earlier snapshots stay valid.
"""

import uuid
from dataclasses import replace
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from blockstage.config import BLOCK_DEFAULTS
from blockstage.domain.models import Block

Forest = Tuple[Block, ...]


def new_block_id() -> str:
    return uuid.uuid4().hex[:9]


def make_block(kind: str, block_id: Optional[str] = None, **overrides: Any) -> Block:
    """Create a block of ``kind`` with its default parameters.

    Raises ValueError for a kind that has no defaults entry.
    """
    if kind not in BLOCK_DEFAULTS:
        raise ValueError(f"unknown block kind: {kind!r}")
    params = dict(BLOCK_DEFAULTS[kind])
    params.update(overrides)
    return Block(id=block_id or new_block_id(), kind=kind, params=params)


def iter_blocks(forest: Sequence[Block]) -> Iterator[Block]:
    """Depth-first, pre-order walk over every block in the forest."""
    for block in forest:
        yield block
        if block.children:
            yield from iter_blocks(block.children)


def find_by_id(forest: Sequence[Block], block_id: str) -> Optional[Block]:
    for block in iter_blocks(forest):
        if block.id == block_id:
            return block
    return None


def remove_by_id(forest: Sequence[Block], block_id: str) -> Forest:
    """Excise the block with ``block_id`` wherever it sits, with its subtree.

    Nodes whose subtree did not change are reused as-is, so removing a missing
    id returns an equal forest.
    """
    out: List[Block] = []
    for block in forest:
        if block.id == block_id:
            continue
        if block.children:
            children = remove_by_id(block.children, block_id)
            if len(children) != len(block.children) or any(
                a is not b for a, b in zip(children, block.children)
            ):
                block = replace(block, children=children)
        out.append(block)
    return tuple(out)


def update_by_id(
    forest: Sequence[Block],
    block_id: str,
    fn: Callable[[Block], Block],
) -> Tuple[Forest, bool]:
    """Rebuild the forest with ``fn`` applied to the block with ``block_id``.

    Returns ``(forest, found)``. Only the path from the root to the target is
    rebuilt.
    """
    out: List[Block] = []
    found = False
    for block in forest:
        if not found and block.id == block_id:
            block = fn(block)
            found = True
        elif not found and block.children:
            children, found = update_by_id(block.children, block_id, fn)
            if found:
                block = replace(block, children=children)
        out.append(block)
    return tuple(out), found


def map_blocks(forest: Sequence[Block], fn: Callable[[Block], Block]) -> Forest:
    """Rebuild every node of the forest bottom-up through ``fn``."""
    out = []
    for block in forest:
        if block.children:
            block = replace(block, children=map_blocks(block.children, fn))
        out.append(fn(block))
    return tuple(out)


def collect_by_kind(forest: Sequence[Block], kind: str) -> List[Block]:
    return [b for b in iter_blocks(forest) if b.kind == kind]


def contains_kind(forest: Sequence[Block], kind: str) -> bool:
    return any(b.kind == kind for b in iter_blocks(forest))


def count_blocks(forest: Sequence[Block]) -> int:
    return sum(1 for _ in iter_blocks(forest))


def block_ids(forest: Sequence[Block]) -> set:
    return {b.id for b in iter_blocks(forest)}


def merge_params(block: Block, partial: Dict[str, Any]) -> Block:
    return replace(block, params={**block.params, **partial})
