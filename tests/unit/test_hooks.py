"""Tests for the composition wrappers."""

from __future__ import annotations

import itertools

from ctxhooks.config import EngineConfig
from ctxhooks.context import Context
from ctxhooks.engine import Engine, get_engine
from ctxhooks.hooks import (
    anchor,
    buoy,
    buoy_factory,
    clone,
    factory,
    hook,
    unforkable_anchor,
    util,
)


def make_counter(context):
    """Return a fresh counter."""
    return itertools.count(1)


class TestHook:
    """Tests for hook()."""

    def test_passthrough(self, incr):
        """hook() returns the function unchanged."""
        assert hook(incr) is incr


class TestAnchor:
    """Tests for anchor()."""

    def test_memoizes_in_context(self, engine, incr):
        """The wrapped hook runs once per context."""
        counter = anchor(incr, engine=engine)
        ctx = Context()
        assert counter(ctx) == 1
        assert counter(ctx) == 1
        assert engine.get(ctx, incr) == 1

    def test_preserves_metadata(self, engine):
        """functools metadata is copied."""
        anchored = anchor(make_counter, engine=engine)
        assert anchored.__name__ == "make_counter"
        assert anchored.__doc__ == "Return a fresh counter."
        assert anchored.__wrapped__ is make_counter

    def test_inherited_through_fork(self, engine, incr):
        """Anchored state is inherited by forks."""
        counter = anchor(incr, engine=engine)
        ctx = Context()
        counter(ctx)
        assert counter(engine.fork(ctx)) == 1

    def test_uses_default_engine(self, incr):
        """Without engine=, the default engine is used."""
        counter = anchor(incr)
        ctx = Context()
        counter(ctx)
        assert get_engine().is_used(ctx, incr)

    def test_decorator_form(self, engine):
        """anchor works as a bare decorator."""
        @anchor
        def settings(context, name="default"):
            return {"name": name}

        ctx = Context()
        assert settings(ctx, name="x") is settings(ctx)
        assert settings(ctx)["name"] == "x"


class TestBuoy:
    """Tests for buoy()."""

    def test_not_inherited(self, engine, incr):
        """Buoy state is rebuilt in forks."""
        counter = buoy(incr, engine=engine)
        ctx = Context()
        assert counter(ctx) == 1
        forked = engine.fork(ctx)
        assert engine.is_used(forked, incr) is False
        assert counter(forked) == 2
        assert counter(ctx) == 1

    def test_alias(self):
        """unforkable_anchor is another name for buoy."""
        assert unforkable_anchor is buoy

    def test_decorator_with_arguments(self):
        """buoy accepts keyword arguments as a decorator."""
        @buoy(shared=True)
        def session(context):
            return object()

        registration = get_engine().registration(session.__wrapped__)
        assert registration.shared is True

    def test_private_clones_are_independent(self, engine):
        """Private buoys do not share with clones."""
        counter = buoy(make_counter, engine=engine)
        other = anchor(clone(make_counter, engine=engine), engine=engine)
        ctx = Context()
        assert counter(ctx) is not other(ctx)

    def test_shared_clones_share_one_value(self, engine):
        """Shared buoys share one value with clones."""
        counter = buoy(make_counter, shared=True, engine=engine)
        other = anchor(clone(make_counter, engine=engine), engine=engine)
        ctx = Context()
        assert counter(ctx) is other(ctx)
        assert next(counter(ctx)) == 1
        assert next(other(ctx)) == 2

    def test_shared_state_still_not_inherited(self, engine):
        """Sharing does not make state forkable."""
        counter = buoy(make_counter, shared=True, engine=engine)
        other = anchor(clone(make_counter, engine=engine), engine=engine)
        ctx = Context()
        counter(ctx)
        forked = engine.fork(ctx)
        assert engine.is_used(forked, make_counter) is False
        assert other(forked) is not counter(ctx)

    def test_config_default_sharing(self):
        """buoy_sharing sets the default."""
        engine = Engine(EngineConfig(buoy_sharing="shared"))
        buoy(make_counter, engine=engine)
        assert engine.registration(make_counter).shared is True


class TestUtil:
    """Tests for util()."""

    def test_without_context_is_singleton(self, engine, incr):
        """Without a context the hook itself is the context."""
        counter = util(incr, engine=engine)
        assert counter() == 1
        assert counter() == 1
        assert engine.is_context(incr)

    def test_with_context(self, engine, incr):
        """An explicit context gets its own value."""
        counter = util(incr, engine=engine)
        assert counter() == 1
        assert counter(Context()) == 2
        assert counter() == 1

    def test_forwards_arguments(self, engine):
        """Extra arguments reach the hook on first use."""
        def greeting(context, name):
            return f"hello {name}"

        greet = util(greeting, engine=engine)
        assert greet(None, "world") == "hello world"
        assert greet(None, "again") == "hello world"


class TestClone:
    """Tests for clone()."""

    def test_new_identity_same_behavior(self, engine, incr):
        """A clone behaves like the original."""
        copy = clone(incr, engine=engine)
        assert copy is not incr
        assert copy.__name__ == incr.__name__
        assert copy(None) == 1
        assert incr(None) == 2

    def test_clones_memoize_independently(self, engine):
        """Each clone is its own key."""
        ctx = Context()
        a = clone(make_counter, engine=engine)
        b = clone(make_counter, engine=engine)
        assert engine.use(ctx, a) is not engine.use(ctx, b)
        assert engine.use(ctx, a) is engine.use(ctx, a)

    def test_clone_of_forkable_is_forkable(self, engine):
        """Clones of plain hooks are not registered."""
        assert engine.is_unforkable(clone(make_counter, engine=engine)) is False

    def test_clone_of_private_unforkable(self, engine):
        """Private clones own their registration."""
        engine.mark_unforkable(make_counter)
        copy = clone(make_counter, engine=engine)
        registration = engine.registration(copy)
        assert registration.owner is copy
        assert registration.shared is False

    def test_clone_of_clone_keeps_shared_owner(self, engine):
        """Shared clones keep the original owner."""
        engine.mark_unforkable(make_counter, shared=True)
        copy = clone(clone(make_counter, engine=engine), engine=engine)
        assert engine.registration(copy).owner is make_counter


class TestFactory:
    """Tests for factory()."""

    def test_instances_are_independent(self, engine):
        """Every instance has its own state."""
        make = factory(make_counter, engine=engine)
        h1, h2 = make(), make()
        ctx = Context()
        assert h1(ctx) is not h2(ctx)
        assert h1(ctx) is h1(ctx)
        assert next(h1(ctx)) == 1
        assert next(h2(ctx)) == 1

    def test_instances_inherit_through_fork(self, engine):
        """Factory instances are forkable."""
        make = factory(make_counter, engine=engine)
        h = make()
        ctx = Context()
        value = h(ctx)
        assert h(engine.fork(ctx)) is value

    def test_name(self, engine):
        """Factories are named after the hook."""
        assert factory(make_counter, engine=engine).__name__ == "make_counter_factory"


class TestBuoyFactory:
    """Tests for buoy_factory()."""

    def test_private_instances(self, engine):
        """Private buoy instances are independent and unforkable."""
        make = buoy_factory(make_counter, engine=engine)
        h1, h2 = make(), make()
        ctx = Context()
        assert h1(ctx) is not h2(ctx)
        forked = engine.fork(ctx)
        assert h1(forked) is not h1(ctx)

    def test_shared_instances(self, engine):
        """Shared buoy instances share state but not across forks."""
        make = buoy_factory(make_counter, shared=True, engine=engine)
        h1, h2 = make(), make()
        ctx = Context()
        assert h1(ctx) is h2(ctx)
        forked = engine.fork(ctx)
        assert h1(forked) is not h1(ctx)
        assert h1(forked) is h2(forked)
