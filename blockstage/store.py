"""State store — closed set of actions, a pure reducer, and an atomic Store.

Every transition is ``reduce(state, action) -> state``. Reducers never mutate
the incoming snapshot and never raise: degenerate input (unknown actor or
block id, duplicate ids, non-repeat parent) returns the input state object
unchanged. The ``is_running`` flag is advisory; nothing here rejects an
action because a run is in progress.
"""

import sys
from dataclasses import dataclass, fields, replace
from numbers import Number
from typing import Any, Callable, Dict, List, Optional

from blockstage.config import CONFIG
from blockstage.domain.blocks import (
    block_ids,
    collect_by_kind,
    map_blocks,
    merge_params,
    remove_by_id,
    update_by_id,
)
from blockstage.domain.models import Actor, Block, ProgramState


def _log(msg: str):
    print(msg, file=sys.stderr)


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AddBlock:
    block: Block
    actor_id: Optional[str] = None


@dataclass(frozen=True)
class RemoveBlock:
    block_id: str
    actor_id: Optional[str] = None


@dataclass(frozen=True)
class UpdateBlockParams:
    block_id: str
    params: Dict[str, Any]
    actor_id: Optional[str] = None


@dataclass(frozen=True)
class AddChildToRepeat:
    parent_id: str
    block: Block
    actor_id: Optional[str] = None


@dataclass(frozen=True)
class ClearBlocks:
    actor_id: Optional[str] = None


@dataclass(frozen=True)
class SetRunning:
    value: bool


@dataclass(frozen=True)
class UpdateActor:
    actor_id: str
    changes: Dict[str, Any]


@dataclass(frozen=True)
class ResetActors:
    x: float = 0.0
    y: float = 0.0
    direction: float = 90.0


@dataclass(frozen=True)
class AddActor:
    actor: Actor


@dataclass(frozen=True)
class RemoveActor:
    actor_id: str


@dataclass(frozen=True)
class SetActiveActor:
    actor_id: str


@dataclass(frozen=True)
class SwapAnimations:
    actor_a: str
    actor_b: str


# Fields UpdateActor may touch; id and the block forest have their own actions
_ACTOR_MUTABLE_FIELDS = frozenset(
    f.name for f in fields(Actor) if f.name not in ("id", "blocks")
)


# ---------------------------------------------------------------------------
# Reducer
# ---------------------------------------------------------------------------

def _target_id(state: ProgramState, actor_id: Optional[str]) -> Optional[str]:
    return actor_id or state.active_actor_id


def _replace_actor(state: ProgramState, actor_id: Optional[str], fn) -> ProgramState:
    """Apply ``fn`` to the named actor; ``fn`` returning the same actor is a no-op."""
    for index, actor in enumerate(state.actors):
        if actor.id != actor_id:
            continue
        updated = fn(actor)
        if updated is actor:
            return state
        actors = state.actors[:index] + (updated,) + state.actors[index + 1:]
        return replace(state, actors=actors)
    return state


def _add_block(state: ProgramState, action: AddBlock) -> ProgramState:
    def apply(actor: Actor) -> Actor:
        if block_ids(actor.blocks) & block_ids((action.block,)):
            return actor
        return replace(actor, blocks=actor.blocks + (action.block,))

    return _replace_actor(state, _target_id(state, action.actor_id), apply)


def _remove_block(state: ProgramState, action: RemoveBlock) -> ProgramState:
    def apply(actor: Actor) -> Actor:
        blocks = remove_by_id(actor.blocks, action.block_id)
        if blocks == actor.blocks:
            return actor
        return replace(actor, blocks=blocks)

    return _replace_actor(state, _target_id(state, action.actor_id), apply)


def _update_block_params(state: ProgramState, action: UpdateBlockParams) -> ProgramState:
    def apply(actor: Actor) -> Actor:
        blocks, found = update_by_id(
            actor.blocks, action.block_id, lambda b: merge_params(b, action.params)
        )
        return replace(actor, blocks=blocks) if found else actor

    return _replace_actor(state, _target_id(state, action.actor_id), apply)


def _add_child_to_repeat(state: ProgramState, action: AddChildToRepeat) -> ProgramState:
    def add_child(block: Block) -> Block:
        if not block.is_repeat:
            return block
        return replace(block, children=block.children + (action.block,))

    def apply(actor: Actor) -> Actor:
        if block_ids(actor.blocks) & block_ids((action.block,)):
            return actor
        blocks, found = update_by_id(actor.blocks, action.parent_id, add_child)
        if not found or blocks == actor.blocks:
            return actor
        return replace(actor, blocks=blocks)

    return _replace_actor(state, _target_id(state, action.actor_id), apply)


def _clear_blocks(state: ProgramState, action: ClearBlocks) -> ProgramState:
    return _replace_actor(
        state,
        _target_id(state, action.actor_id),
        lambda actor: replace(actor, blocks=()),
    )


def _set_running(state: ProgramState, action: SetRunning) -> ProgramState:
    return replace(state, is_running=bool(action.value))


def _update_actor(state: ProgramState, action: UpdateActor) -> ProgramState:
    changes = {k: v for k, v in action.changes.items() if k in _ACTOR_MUTABLE_FIELDS}
    if not changes:
        return state
    return _replace_actor(state, action.actor_id, lambda actor: replace(actor, **changes))


def _reset_actors(state: ProgramState, action: ResetActors) -> ProgramState:
    actors = tuple(
        replace(actor, x=action.x, y=action.y, direction=action.direction, message=None)
        for actor in state.actors
    )
    return replace(state, actors=actors)


def _add_actor(state: ProgramState, action: AddActor) -> ProgramState:
    if state.get_actor(action.actor.id) is not None:
        return state
    return replace(
        state,
        actors=state.actors + (action.actor,),
        active_actor_id=action.actor.id,
    )


def _remove_actor(state: ProgramState, action: RemoveActor) -> ProgramState:
    if len(state.actors) <= 1 or state.get_actor(action.actor_id) is None:
        return state
    actors = tuple(a for a in state.actors if a.id != action.actor_id)
    active = state.active_actor_id
    if active == action.actor_id:
        active = actors[0].id if actors else None
    return replace(state, actors=actors, active_actor_id=active)


def _set_active_actor(state: ProgramState, action: SetActiveActor) -> ProgramState:
    if state.get_actor(action.actor_id) is None:
        return state
    return replace(state, active_actor_id=action.actor_id)


def _invert_moves(actor: Actor) -> Actor:
    move_ids = {b.id for b in collect_by_kind(actor.blocks, "move")}

    def negate(block: Block) -> Block:
        # Fresh params dict for every node so nothing is shared with the old snapshot
        params = dict(block.params)
        steps = params.get("steps")
        if block.id in move_ids and isinstance(steps, Number) and not isinstance(steps, bool):
            params["steps"] = -steps
        return replace(block, params=params)

    return replace(actor, blocks=map_blocks(actor.blocks, negate))


def _swap_animations(state: ProgramState, action: SwapAnimations) -> ProgramState:
    # Same actor on both sides negates twice, which nets out to no change
    if action.actor_a == action.actor_b:
        return state
    if state.get_actor(action.actor_a) is None or state.get_actor(action.actor_b) is None:
        return state
    targets = {action.actor_a, action.actor_b}
    actors = tuple(
        _invert_moves(actor) if actor.id in targets else actor
        for actor in state.actors
    )
    return replace(state, actors=actors)


_REDUCERS: Dict[type, Callable[[ProgramState, Any], ProgramState]] = {
    AddBlock: _add_block,
    RemoveBlock: _remove_block,
    UpdateBlockParams: _update_block_params,
    AddChildToRepeat: _add_child_to_repeat,
    ClearBlocks: _clear_blocks,
    SetRunning: _set_running,
    UpdateActor: _update_actor,
    ResetActors: _reset_actors,
    AddActor: _add_actor,
    RemoveActor: _remove_actor,
    SetActiveActor: _set_active_actor,
    SwapAnimations: _swap_animations,
}


def reduce(state: ProgramState, action: Any) -> ProgramState:
    """Apply one action. Unknown action types leave the state unchanged."""
    handler = _REDUCERS.get(type(action))
    if handler is None:
        _log(f"[Store] ignoring unknown action {type(action).__name__}")
        return state
    return handler(state, action)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

Listener = Callable[[ProgramState, ProgramState, Any], None]


class Store:
    """Holds the current snapshot and applies actions as atomic replacements.

    Prior snapshots are kept (bounded by ``history_limit``) for inspection.
    """

    def __init__(
        self,
        initial_state: Optional[ProgramState] = None,
        history_limit: Optional[int] = None,
    ):
        self._state = initial_state if initial_state is not None else ProgramState()
        self._history_limit = (
            history_limit if history_limit is not None else CONFIG["history_limit"]
        )
        self._history: List[ProgramState] = []
        self._listeners: List[Listener] = []

    @property
    def state(self) -> ProgramState:
        return self._state

    @property
    def history(self) -> List[ProgramState]:
        """Snapshots replaced so far, oldest first."""
        return list(self._history)

    def dispatch(self, action: Any) -> ProgramState:
        previous = self._state
        new_state = reduce(previous, action)
        if new_state is previous:
            return previous
        self._state = new_state
        if self._history_limit > 0:
            self._history.append(previous)
            del self._history[:-self._history_limit]
        for listener in list(self._listeners):
            listener(previous, new_state, action)
        return new_state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener(previous, current, action)``; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
