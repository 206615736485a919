"""Collision detector — pairwise distance checks on a fixed tick during a run."""

import asyncio
import math
import sys
from typing import Awaitable, Callable, Optional, Set, Tuple

from blockstage.config import CONFIG
from blockstage.domain.models import Actor, ProgramState
from blockstage.store import Store, SwapAnimations


def _log(msg: str):
    print(msg, file=sys.stderr)


Pair = Tuple[str, str]


def overlapping(a: Actor, b: Actor) -> bool:
    """Treat each actor as a circle whose diameter is its width."""
    distance = math.hypot(a.x - b.x, a.y - b.y)
    return distance < (a.width + b.width) / 2


class CollisionDetector:
    """Swaps move animations once per colliding pair per run.

    ``attach()`` subscribes to the store: the tick loop starts when the
    running flag turns on and stops itself once it turns off, at which point
    the handled-pairs set is cleared.
    """

    def __init__(
        self,
        store: Store,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        tick_seconds: Optional[float] = None,
        notify: Optional[Callable[[str], None]] = None,
    ):
        self.store = store
        self._sleep = sleep or asyncio.sleep
        self.tick_seconds = (
            tick_seconds if tick_seconds is not None else CONFIG["collision_tick_seconds"]
        )
        self._notify = notify or _log
        self.handled: Set[Pair] = set()
        self._task: Optional[asyncio.Task] = None
        self._unsubscribe = None

    def attach(self):
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self._on_change)

    def detach(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    @property
    def ticking(self) -> bool:
        return self._task is not None and not self._task.done()

    def _on_change(self, previous: ProgramState, current: ProgramState, action):
        if current.is_running and not previous.is_running:
            self.start()
        elif previous.is_running and not current.is_running:
            self.handled.clear()

    def start(self):
        """Schedule the tick loop on the running event loop."""
        if self.ticking:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _log("[Collision] no running event loop, detector not started")
            return
        self._task = loop.create_task(self.run_loop())

    async def wait_stopped(self):
        if self._task is not None:
            await self._task

    async def run_loop(self):
        try:
            while self.store.state.is_running:
                self.check_once()
                await self._sleep(self.tick_seconds)
        finally:
            if not self.store.state.is_running:
                self.handled.clear()

    def check_once(self) -> Optional[Pair]:
        """Run one detection pass; returns the pair swapped this tick, if any."""
        state = self.store.state
        if not state.is_running:
            return None
        actors = state.actors
        for i in range(len(actors)):
            for j in range(i + 1, len(actors)):
                first, second = actors[i], actors[j]
                pair = (first.id, second.id)
                if pair in self.handled or not overlapping(first, second):
                    continue
                self.store.dispatch(SwapAnimations(first.id, second.id))
                self.handled.add(pair)
                _log(f"[Collision] {first.id} <-> {second.id} swapped")
                self._notify(f"{first.name} collided with {second.name}! Animations swapped!")
                return pair
        return None
