"""Stage facade — the operations a presentation layer calls.

Wires a Store, an Interpreter and a CollisionDetector together and turns
each user action into one store transition plus a user-visible notice.
Results are plain dicts: ``{"success": bool, "notice": str, ...}`` with an
``"error"`` code on failure.

Unlike the Store, the Stage refuses block edits and actor add/remove while a
run is in progress.
"""

import asyncio
import random
import sys
from dataclasses import asdict
from typing import Any, Callable, Dict, Optional

from blockstage.collision import CollisionDetector
from blockstage.config import CONFIG
from blockstage.domain.blocks import count_blocks, find_by_id, make_block
from blockstage.domain.models import Actor, ProgramState
from blockstage.interpreter import Interpreter
from blockstage.sprites import initial_state, make_actor
from blockstage.store import (
    AddActor,
    AddBlock,
    AddChildToRepeat,
    ClearBlocks,
    RemoveActor,
    RemoveBlock,
    SetActiveActor,
    SetRunning,
    Store,
    UpdateBlockParams,
)


def _log(msg: str):
    print(msg, file=sys.stderr)


RUNNING_NOTICE = "Program is running"


def snapshot_view(state: ProgramState) -> Dict[str, Any]:
    """Return a plain-dict view of a snapshot for display."""
    actors = []
    for actor in state.actors:
        data = asdict(actor)
        data["block_count"] = count_blocks(actor.blocks)
        data["active"] = actor.id == state.active_actor_id
        actors.append(data)
    return {
        "actors": actors,
        "active_actor_id": state.active_actor_id,
        "is_running": state.is_running,
        "stage": {"width": CONFIG["stage_width"], "height": CONFIG["stage_height"]},
    }


class Stage:
    """Public entry point for editing and running block programs."""

    def __init__(
        self,
        store: Optional[Store] = None,
        notify: Optional[Callable[[str], None]] = None,
        sleep=None,
        clock=None,
        rng: Optional[random.Random] = None,
        pacing_seconds: Optional[float] = None,
        tick_seconds: Optional[float] = None,
    ):
        self.store = store or Store(initial_state())
        self._notify = notify or (lambda msg: _log(f"[Stage] {msg}"))
        self._rng = rng or random.Random()
        self.interpreter = Interpreter(
            self.store,
            sleep=sleep,
            clock=clock,
            pacing_seconds=pacing_seconds,
            notify=self._notify,
        )
        self.detector = CollisionDetector(
            self.store,
            sleep=sleep,
            tick_seconds=tick_seconds,
            notify=self._notify,
        )
        self.detector.attach()
        self._run_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> ProgramState:
        return self.store.state

    def view(self) -> Dict[str, Any]:
        return snapshot_view(self.store.state)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _ok(self, notice: Optional[str] = None, **extra) -> Dict[str, Any]:
        if notice:
            self._notify(notice)
        return {"success": True, "notice": notice, **extra}

    def _fail(self, error: str, notice: Optional[str] = None) -> Dict[str, Any]:
        if notice:
            self._notify(notice)
        return {"success": False, "error": error, "notice": notice}

    def _running_guard(self) -> Optional[Dict[str, Any]]:
        if self.store.state.is_running:
            return self._fail("running", RUNNING_NOTICE)
        return None

    def _resolve_actor(self, actor_id: Optional[str]) -> Optional[Actor]:
        state = self.store.state
        return state.get_actor(actor_id or state.active_actor_id)

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------
    def add_block(self, kind: str, actor_id: Optional[str] = None) -> Dict[str, Any]:
        """Create a block with default parameters at the end of the actor's forest."""
        blocked = self._running_guard()
        if blocked:
            return blocked
        actor = self._resolve_actor(actor_id)
        if actor is None:
            return self._fail("not_found")
        try:
            block = make_block(kind)
        except ValueError as e:
            _log(f"[Stage] add_block rejected: {e}")
            return self._fail("unknown_kind")
        self.store.dispatch(AddBlock(block, actor_id=actor.id))
        return self._ok("Block added!", block_id=block.id)

    def remove_block(self, block_id: str, actor_id: Optional[str] = None) -> Dict[str, Any]:
        blocked = self._running_guard()
        if blocked:
            return blocked
        before = self.store.state
        after = self.store.dispatch(RemoveBlock(block_id, actor_id=actor_id))
        if after is before:
            return self._fail("not_found")
        return self._ok()

    def update_block(
        self,
        block_id: str,
        params: Dict[str, Any],
        actor_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Merge ``params`` into the block. A missing block is a silent no-op."""
        blocked = self._running_guard()
        if blocked:
            return blocked
        self.store.dispatch(UpdateBlockParams(block_id, dict(params), actor_id=actor_id))
        actor = self._resolve_actor(actor_id)
        found = actor is not None and find_by_id(actor.blocks, block_id) is not None
        return self._ok(block_id=block_id, found=found)

    def add_child(
        self,
        parent_id: str,
        kind: str,
        actor_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Append a new default block of ``kind`` inside the repeat ``parent_id``."""
        blocked = self._running_guard()
        if blocked:
            return blocked
        try:
            block = make_block(kind)
        except ValueError as e:
            _log(f"[Stage] add_child rejected: {e}")
            return self._fail("unknown_kind")
        before = self.store.state
        after = self.store.dispatch(AddChildToRepeat(parent_id, block, actor_id=actor_id))
        if after is before:
            return self._ok(block_id=None, found=False)
        return self._ok("Block added!", block_id=block.id, found=True)

    def clear_blocks(self, actor_id: Optional[str] = None) -> Dict[str, Any]:
        blocked = self._running_guard()
        if blocked:
            return blocked
        self.store.dispatch(ClearBlocks(actor_id=actor_id))
        return self._ok("Blocks cleared for this sprite!")

    # ------------------------------------------------------------------
    # Actors
    # ------------------------------------------------------------------
    def add_actor(self) -> Dict[str, Any]:
        blocked = self._running_guard()
        if blocked:
            return blocked
        actor = make_actor(len(self.store.state.actors) + 1, rng=self._rng)
        self.store.dispatch(AddActor(actor))
        return self._ok(f"Added {actor.name}", actor_id=actor.id)

    def remove_actor(self, actor_id: str) -> Dict[str, Any]:
        blocked = self._running_guard()
        if blocked:
            return blocked
        state = self.store.state
        if len(state.actors) <= 1:
            _log("[Stage] refused to remove the last actor")
            return self._fail("last_actor", "Cannot remove the only sprite")
        if state.get_actor(actor_id) is None:
            return self._fail("not_found")
        self.store.dispatch(RemoveActor(actor_id))
        return self._ok("Sprite removed")

    def select_actor(self, actor_id: str) -> Dict[str, Any]:
        if self.store.state.get_actor(actor_id) is None:
            return self._fail("not_found")
        self.store.dispatch(SetActiveActor(actor_id))
        return self._ok(actor_id=actor_id)

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------
    def _walk_in_flight(self) -> bool:
        return self.store.state.is_running or self.interpreter.status == "running"

    async def run(self, actor_id: Optional[str] = None) -> Dict[str, Any]:
        """Run the active actor's program and wait for it to finish.

        Refused with ``already_running`` while an earlier walk has not ended,
        including one whose flag was cleared by ``stop``.
        """
        if self._walk_in_flight():
            return self._fail("already_running", RUNNING_NOTICE)
        result = await self.interpreter.run(actor_id)
        if result.error != "already_running":
            await self.detector.wait_stopped()
        out = {"success": result.success, "notice": result.notice}
        if result.error:
            out["error"] = result.error
        return out

    def start_run(self, actor_id: Optional[str] = None) -> Optional[asyncio.Task]:
        """Schedule ``run`` in the background; None if a run is already in progress."""
        if self._walk_in_flight() or (self._run_task and not self._run_task.done()):
            return None
        self._run_task = asyncio.get_running_loop().create_task(self.run(actor_id))
        return self._run_task

    def stop(self) -> Dict[str, Any]:
        """Clear the running flag. An in-flight program still walks to its end,
        and new runs are refused until it does."""
        self.store.dispatch(SetRunning(False))
        return self._ok()
