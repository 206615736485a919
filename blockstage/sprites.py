"""Sprite catalog and factories for new actors and the starting program."""

import random
import uuid
from dataclasses import dataclass
from typing import Optional

from blockstage.config import CONFIG
from blockstage.domain.models import Actor, ProgramState


@dataclass(frozen=True)
class Costume:
    name: str
    emoji: str
    color: str


COSTUMES = (
    Costume("Cat", "🐱", "bg-orange-200"),
    Costume("Dog", "🐶", "bg-amber-200"),
    Costume("Rabbit", "🐰", "bg-gray-200"),
    Costume("Panda", "🐼", "bg-gray-100"),
    Costume("Fox", "🦊", "bg-amber-300"),
    Costume("Bear", "🐻", "bg-amber-700"),
    Costume("Frog", "🐸", "bg-green-300"),
    Costume("Monkey", "🐵", "bg-amber-400"),
    Costume("Tiger", "🐯", "bg-yellow-300"),
)


def new_actor_id() -> str:
    return f"sprite-{uuid.uuid4().hex[:8]}"


def make_actor(
    ordinal: int,
    rng: Optional[random.Random] = None,
    costume: Optional[Costume] = None,
) -> Actor:
    """Build a new actor named "<Costume> <ordinal>" at a random spot near the origin."""
    rng = rng or random.Random()
    costume = costume or rng.choice(COSTUMES)
    return Actor(
        id=new_actor_id(),
        name=f"{costume.name} {ordinal}",
        x=rng.random() * 100 - 50,
        y=rng.random() * 100 - 50,
        direction=CONFIG["home_direction"],
        costume=costume.emoji,
        costume_bg=costume.color,
    )


def initial_state() -> ProgramState:
    """The program a fresh stage starts with: a single idle Cat."""
    cat = COSTUMES[0]
    actor = Actor(
        id="sprite1",
        name=cat.name,
        direction=CONFIG["home_direction"],
        costume=cat.emoji,
        costume_bg=cat.color,
    )
    return ProgramState(actors=(actor,), active_actor_id=actor.id, is_running=False)
