"""Sequential block interpreter — walks one actor's forest and animates it.

The interpreter only writes through ``Store.dispatch``. Each block finishes,
including its timed wait, before the next one starts. Waits go through an
injectable ``sleep`` coroutine so tests can run without real delays.
"""

import asyncio
import math
import sys
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence

from blockstage.config import CONFIG
from blockstage.domain.blocks import contains_kind, find_by_id
from blockstage.domain.models import Block, Message
from blockstage.store import ResetActors, SetRunning, Store, SwapAnimations, UpdateActor


def _log(msg: str):
    print(msg, file=sys.stderr)


SleepFn = Callable[[float], Awaitable[None]]
NotifyFn = Callable[[str], None]

PREFLIGHT_NOTICE = "Sprites collided! Animation directions swapped!"


@dataclass
class RunResult:
    success: bool
    error: Optional[str] = None
    notice: Optional[str] = None


class Interpreter:
    """Runs a block program against a Store.

    States: ``idle`` -> ``running`` -> ``done`` | ``failed``. A finished
    interpreter can be run again.
    """

    def __init__(
        self,
        store: Store,
        sleep: Optional[SleepFn] = None,
        clock: Optional[Callable[[], float]] = None,
        pacing_seconds: Optional[float] = None,
        home_direction: Optional[float] = None,
        notify: Optional[NotifyFn] = None,
    ):
        self.store = store
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or time.time
        self.pacing_seconds = (
            pacing_seconds if pacing_seconds is not None else CONFIG["pacing_seconds"]
        )
        self.home_direction = (
            home_direction if home_direction is not None else CONFIG["home_direction"]
        )
        self._notify = notify or _log
        self.status = "idle"
        self._handlers = {
            "move": self._move,
            "turn": self._turn,
            "goto": self._goto,
            "repeat": self._repeat,
            "say": self._show_message,
            "think": self._show_message,
        }

    async def run(self, actor_id: Optional[str] = None) -> RunResult:
        """Execute the actor's program (default: the active actor) to completion.

        A walk that is still in flight blocks new runs even after the running
        flag has been cleared by a stop.
        """
        state = self.store.state
        if state.is_running or self.status == "running":
            return RunResult(False, error="already_running")

        actor_id = actor_id or state.active_actor_id
        actor = state.get_actor(actor_id)
        if actor is None:
            return RunResult(False, error="not_found")
        if not actor.blocks:
            notice = "No blocks to run!"
            self._notify(notice)
            return RunResult(False, error="no_blocks", notice=notice)

        self.status = "running"
        _log(f"[Interpreter] run started for {actor_id}")
        try:
            self.store.dispatch(SetRunning(True))
            self.store.dispatch(ResetActors(direction=self.home_direction))
            self._preflight_swap()
            await self._execute(actor_id, actor.blocks)
            self.status = "done"
        except Exception as e:
            self.status = "failed"
            _log(f"[Interpreter] run failed for {actor_id}: {e}")
            notice = "Error running animation"
            self._notify(notice)
            return RunResult(False, error=str(e), notice=notice)
        finally:
            # Cancelled walks end here without passing through except
            if self.status == "running":
                self.status = "failed"
            self.store.dispatch(SetRunning(False))

        _log(f"[Interpreter] run finished for {actor_id}")
        notice = "Animation complete!"
        self._notify(notice)
        return RunResult(True, notice=notice)

    # ------------------------------------------------------------------
    # Pre-flight
    # ------------------------------------------------------------------
    def _preflight_swap(self):
        """Swap the first two visible actors once if two actors have move blocks.

        This ignores geometry entirely; CollisionDetector does the distance
        based check independently.
        """
        actors = self.store.state.actors
        movers = [a for a in actors if contains_kind(a.blocks, "move")]
        if len(movers) < 2:
            return
        visible = [a for a in actors if a.visible]
        if len(visible) < 2:
            return
        self.store.dispatch(SwapAnimations(visible[0].id, visible[1].id))
        _log(f"[Interpreter] pre-flight swap {visible[0].id} <-> {visible[1].id}")
        self._notify(PREFLIGHT_NOTICE)

    # ------------------------------------------------------------------
    # Walking
    # ------------------------------------------------------------------
    async def _execute(self, actor_id: str, blocks: Sequence[Block]):
        for block in blocks:
            # Parameters are re-read so swaps applied mid-run take effect
            current = self._latest(actor_id, block)
            handler = self._handlers.get(current.kind)
            if handler is None:
                _log(f"[Interpreter] skipping unknown block kind {current.kind!r}")
                continue
            await handler(actor_id, current)

    def _latest(self, actor_id: str, block: Block) -> Block:
        actor = self.store.state.get_actor(actor_id)
        if actor is None:
            return block
        return find_by_id(actor.blocks, block.id) or block

    async def _move(self, actor_id: str, block: Block):
        actor = self.store.state.get_actor(actor_id)
        if actor is None:
            return
        steps = float(block.params.get("steps", 0))
        radians = math.radians(actor.direction)
        self.store.dispatch(UpdateActor(actor_id, {
            "x": actor.x + steps * math.cos(radians),
            "y": actor.y + steps * math.sin(radians),
        }))
        await self._sleep(self.pacing_seconds)

    async def _turn(self, actor_id: str, block: Block):
        actor = self.store.state.get_actor(actor_id)
        if actor is None:
            return
        degrees = float(block.params.get("degrees", 0))
        self.store.dispatch(UpdateActor(actor_id, {
            "direction": (actor.direction + degrees) % 360,
        }))
        await self._sleep(self.pacing_seconds)

    async def _goto(self, actor_id: str, block: Block):
        self.store.dispatch(UpdateActor(actor_id, {
            "x": float(block.params.get("x", 0)),
            "y": float(block.params.get("y", 0)),
        }))
        await self._sleep(self.pacing_seconds)

    async def _repeat(self, actor_id: str, block: Block):
        times = max(0, int(block.params.get("times", 0)))
        for _ in range(times):
            await self._execute(actor_id, block.children)

    async def _show_message(self, actor_id: str, block: Block):
        seconds = max(0.0, float(block.params.get("seconds", 0)))
        message = Message(
            kind=block.kind,
            text=str(block.params.get("text", "")),
            expires_at=self._clock() + seconds,
        )
        self.store.dispatch(UpdateActor(actor_id, {"message": message}))
        await self._sleep(seconds)
        self.store.dispatch(UpdateActor(actor_id, {"message": None}))
