"""Block Stage — block programs for sprites on a 2D stage."""

from blockstage.config import BLOCK_DEFAULTS, CONFIG
from blockstage.domain.models import Actor, Block, Message, ProgramState
from blockstage.domain.blocks import collect_by_kind, find_by_id, make_block, remove_by_id
from blockstage.store import Store, reduce
from blockstage.interpreter import Interpreter, RunResult
from blockstage.collision import CollisionDetector
from blockstage.stage import Stage, snapshot_view

__all__ = [
    "BLOCK_DEFAULTS",
    "CONFIG",
    "Actor",
    "Block",
    "Message",
    "ProgramState",
    "collect_by_kind",
    "find_by_id",
    "make_block",
    "remove_by_id",
    "Store",
    "reduce",
    "Interpreter",
    "RunResult",
    "CollisionDetector",
    "Stage",
    "snapshot_view",
]
