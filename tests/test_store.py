"""Tests for the reducer and Store."""

from dataclasses import replace

from blockstage.domain.blocks import find_by_id, make_block
from blockstage.domain.models import Actor, Block, Message, ProgramState
from blockstage.store import (
    AddActor,
    AddBlock,
    AddChildToRepeat,
    ClearBlocks,
    RemoveActor,
    RemoveBlock,
    ResetActors,
    SetActiveActor,
    SetRunning,
    Store,
    SwapAnimations,
    UpdateActor,
    UpdateBlockParams,
    reduce,
)


def _actor(actor_id, blocks=(), **kw) -> Actor:
    return Actor(id=actor_id, name=actor_id.title(), blocks=tuple(blocks), **kw)


def _state(*actors, active=None, running=False) -> ProgramState:
    return ProgramState(
        actors=tuple(actors),
        active_actor_id=active or actors[0].id,
        is_running=running,
    )


def _program():
    """Cat: move(m1), repeat(r)[move(m2), turn(t)]; Dog: move(m3), say(s)."""
    cat = _actor("cat", [
        Block("m1", "move", {"steps": 10}),
        Block("r", "repeat", {"times": 2}, (
            Block("m2", "move", {"steps": -4}),
            Block("t", "turn", {"degrees": 15}),
        )),
    ])
    dog = _actor("dog", [
        Block("m3", "move", {"steps": 3}),
        Block("s", "say", {"text": "woof", "seconds": 1}),
    ], x=30.0)
    return _state(cat, dog)


class TestBlockActions:
    def test_add_block_defaults_to_active_actor(self):
        state = _program()
        block = make_block("think")
        out = reduce(state, AddBlock(block))
        cat = out.get_actor("cat")
        assert cat.blocks[-1] is block
        assert find_by_id(cat.blocks, block.id).params == {"text": "Hmm...", "seconds": 2}

    def test_add_block_to_named_actor(self):
        out = reduce(_program(), AddBlock(make_block("goto"), actor_id="dog"))
        assert len(out.get_actor("dog").blocks) == 3
        assert len(out.get_actor("cat").blocks) == 2

    def test_add_block_duplicate_id_is_noop(self):
        state = _program()
        out = reduce(state, AddBlock(Block("m2", "turn", {"degrees": 1})))
        assert out is state

    def test_add_block_unknown_actor_is_noop(self):
        state = _program()
        assert reduce(state, AddBlock(make_block("move"), actor_id="ghost")) is state

    def test_remove_nested_block(self):
        out = reduce(_program(), RemoveBlock("m2"))
        assert find_by_id(out.get_actor("cat").blocks, "m2") is None
        assert find_by_id(out.get_actor("cat").blocks, "t") is not None

    def test_remove_missing_block_is_noop(self):
        state = _program()
        assert reduce(state, RemoveBlock("nope")) is state

    def test_update_merges_params(self):
        out = reduce(_program(), UpdateBlockParams("t", {"degrees": 45}))
        block = find_by_id(out.get_actor("cat").blocks, "t")
        assert block.params == {"degrees": 45}
        assert block.kind == "turn"
        assert block.id == "t"

    def test_update_keeps_unmentioned_params(self):
        out = reduce(_program(), UpdateBlockParams("s", {"seconds": 5}, actor_id="dog"))
        assert find_by_id(out.get_actor("dog").blocks, "s").params == {"text": "woof", "seconds": 5}

    def test_update_leaves_older_snapshot_params(self):
        store = Store(_program())
        patch = {"degrees": 45}
        store.dispatch(UpdateBlockParams("t", patch))
        patch["degrees"] = 99
        old = find_by_id(store.history[-1].get_actor("cat").blocks, "t")
        new = find_by_id(store.state.get_actor("cat").blocks, "t")
        assert old.params == {"degrees": 15}
        assert new.params == {"degrees": 45}
        assert new.params is not old.params

    def test_update_unknown_id_returns_same_state(self):
        """Unknown ids leave the whole state untouched."""
        state = _program()
        assert reduce(state, UpdateBlockParams("nope", {"steps": 1})) is state

    def test_add_child_to_nested_repeat(self):
        state = _program()
        child = make_block("move")
        out = reduce(state, AddChildToRepeat("r", child))
        repeat = find_by_id(out.get_actor("cat").blocks, "r")
        assert repeat.children[-1] is child
        assert len(find_by_id(state.get_actor("cat").blocks, "r").children) == 2

    def test_add_child_to_non_repeat_is_noop(self):
        state = _program()
        assert reduce(state, AddChildToRepeat("m1", make_block("move"))) is state

    def test_add_child_missing_parent_is_noop(self):
        state = _program()
        assert reduce(state, AddChildToRepeat("nope", make_block("move"))) is state

    def test_clear_blocks(self):
        out = reduce(_program(), ClearBlocks(actor_id="dog"))
        assert out.get_actor("dog").blocks == ()
        assert len(out.get_actor("cat").blocks) == 2


class TestRunningFlag:
    def test_set_running(self):
        assert reduce(_program(), SetRunning(True)).is_running is True

    def test_flag_does_not_gate_mutations(self):
        """The store accepts block edits while running."""
        state = replace(_program(), is_running=True)
        out = reduce(state, AddBlock(make_block("move")))
        assert len(out.get_actor("cat").blocks) == 3


class TestActorActions:
    def test_update_actor_merges_fields(self):
        msg = Message("say", "hi", 5.0)
        out = reduce(_program(), UpdateActor("dog", {"x": 1.5, "message": msg}))
        dog = out.get_actor("dog")
        assert dog.x == 1.5
        assert dog.message == msg
        assert dog.name == "Dog"

    def test_update_actor_ignores_id_and_blocks(self):
        state = _program()
        out = reduce(state, UpdateActor("dog", {"id": "x", "blocks": ()}))
        assert out is state

    def test_reset_actors(self):
        state = reduce(_program(), UpdateActor("cat", {
            "x": 5.0, "y": -3.0, "direction": 10.0, "message": Message("think", "...", 1.0),
        }))
        out = reduce(state, ResetActors())
        for actor in out.actors:
            assert (actor.x, actor.y, actor.direction, actor.message) == (0.0, 0.0, 90.0, None)
        assert out.get_actor("cat").blocks == state.get_actor("cat").blocks

    def test_add_actor_becomes_active(self):
        out = reduce(_program(), AddActor(_actor("fox")))
        assert out.actors[-1].id == "fox"
        assert out.active_actor_id == "fox"

    def test_add_duplicate_actor_is_noop(self):
        state = _program()
        assert reduce(state, AddActor(_actor("dog"))) is state

    def test_remove_last_actor_is_noop(self):
        state = _state(_actor("solo"))
        assert reduce(state, RemoveActor("solo")) is state

    def test_remove_active_reassigns_first(self):
        state = _state(_actor("a"), _actor("b"), _actor("c"), active="a")
        out = reduce(state, RemoveActor("a"))
        assert [a.id for a in out.actors] == ["b", "c"]
        assert out.active_actor_id == "b"

    def test_remove_inactive_keeps_active(self):
        state = _state(_actor("a"), _actor("b"), _actor("c"), active="c")
        out = reduce(state, RemoveActor("a"))
        assert len(out.actors) == 2
        assert out.active_actor_id == "c"

    def test_remove_unknown_is_noop(self):
        state = _program()
        assert reduce(state, RemoveActor("ghost")) is state

    def test_set_active(self):
        assert reduce(_program(), SetActiveActor("dog")).active_actor_id == "dog"

    def test_set_active_unknown_is_noop(self):
        state = _program()
        assert reduce(state, SetActiveActor("ghost")) is state


class TestSwapAnimations:
    def test_negates_all_moves(self):
        out = reduce(_program(), SwapAnimations("cat", "dog"))
        cat, dog = out.get_actor("cat"), out.get_actor("dog")
        assert find_by_id(cat.blocks, "m1").params["steps"] == -10
        assert find_by_id(cat.blocks, "m2").params["steps"] == 4
        assert find_by_id(dog.blocks, "m3").params["steps"] == -3

    def test_leaves_everything_else(self):
        state = _program()
        out = reduce(state, SwapAnimations("cat", "dog"))
        assert find_by_id(out.get_actor("cat").blocks, "t") == find_by_id(state.get_actor("cat").blocks, "t")
        assert out.get_actor("dog").x == 30.0
        assert out.active_actor_id == state.active_actor_id

    def test_other_actors_untouched(self):
        state = reduce(_program(), AddActor(_actor("fox", [Block("m9", "move", {"steps": 1})])))
        out = reduce(state, SwapAnimations("cat", "dog"))
        assert out.get_actor("fox") is state.get_actor("fox")

    def test_involution(self):
        state = _program()
        twice = reduce(reduce(state, SwapAnimations("cat", "dog")), SwapAnimations("cat", "dog"))
        assert twice == state

    def test_prior_snapshot_unchanged(self):
        state = _program()
        out = reduce(state, SwapAnimations("cat", "dog"))
        assert find_by_id(state.get_actor("cat").blocks, "m1").params["steps"] == 10
        assert find_by_id(out.get_actor("cat").blocks, "t").params is not \
            find_by_id(state.get_actor("cat").blocks, "t").params

    def test_missing_actor_is_noop(self):
        state = _program()
        assert reduce(state, SwapAnimations("cat", "ghost")) is state

    def test_same_actor_is_noop(self):
        state = _program()
        assert reduce(state, SwapAnimations("cat", "cat")) is state


class TestStore:
    def test_dispatch_replaces_snapshot(self):
        store = Store(_program())
        before = store.state
        after = store.dispatch(SetRunning(True))
        assert store.state is after
        assert before.is_running is False

    def test_history_records_previous(self):
        store = Store(_program())
        first = store.state
        store.dispatch(SetRunning(True))
        store.dispatch(SetRunning(False))
        assert store.history[0] is first
        assert len(store.history) == 2

    def test_history_limit(self):
        store = Store(_program(), history_limit=3)
        for i in range(10):
            store.dispatch(UpdateActor("cat", {"x": float(i)}))
        assert len(store.history) == 3
        assert store.history[-1].get_actor("cat").x == 8.0

    def test_noop_does_not_notify(self):
        store = Store(_program())
        calls = []
        store.subscribe(lambda prev, cur, action: calls.append(action))
        store.dispatch(RemoveActor("ghost"))
        assert calls == []
        assert store.history == []

    def test_subscribe_and_unsubscribe(self):
        store = Store(_program())
        calls = []
        unsubscribe = store.subscribe(lambda prev, cur, action: calls.append((prev, cur, action)))
        action = SetActiveActor("dog")
        store.dispatch(action)
        assert calls[0][2] is action
        assert calls[0][0].active_actor_id == "cat"
        unsubscribe()
        store.dispatch(SetActiveActor("cat"))
        assert len(calls) == 1

    def test_unknown_action_ignored(self):
        store = Store(_program())
        before = store.state
        assert store.dispatch(object()) is before
