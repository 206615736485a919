"""Domain data models — immutable dataclasses for blocks, actors and snapshots."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class Block:
    """One instruction node. Only ``repeat`` blocks carry children.

    ``params`` is read-only once the block is in a snapshot: unchanged nodes
    are shared with earlier snapshots, so edits go through
    ``UpdateBlockParams``, which always builds a new dict.
    """

    id: str
    kind: str  # "move" | "turn" | "goto" | "repeat" | "say" | "think"
    params: Dict[str, Any] = field(default_factory=dict)
    children: Tuple["Block", ...] = ()

    @property
    def is_repeat(self) -> bool:
        return self.kind == "repeat"


@dataclass(frozen=True)
class Message:
    """Speech or thought bubble shown above an actor until ``expires_at``."""

    kind: str  # "say" | "think"
    text: str
    expires_at: float  # epoch seconds


@dataclass(frozen=True)
class Actor:
    """A sprite on the stage with its own block forest."""

    id: str
    name: str
    x: float = 0.0
    y: float = 0.0
    direction: float = 90.0  # degrees, 90 = facing right
    costume: str = ""
    costume_bg: Optional[str] = None
    visible: bool = True
    width: float = 50.0
    height: float = 50.0
    message: Optional[Message] = None
    blocks: Tuple[Block, ...] = ()


@dataclass(frozen=True)
class ProgramState:
    """One snapshot of the whole program."""

    actors: Tuple[Actor, ...] = ()
    active_actor_id: Optional[str] = None
    is_running: bool = False

    def get_actor(self, actor_id: Optional[str]) -> Optional[Actor]:
        if actor_id is None:
            return None
        return next((a for a in self.actors if a.id == actor_id), None)

    @property
    def active_actor(self) -> Optional[Actor]:
        return self.get_actor(self.active_actor_id)
