"""Tests for the unforkable registry."""

from __future__ import annotations

import pytest

from ctxhooks.context import Context


class TestUnforkable:
    """Tests for state that forks never see."""

    def test_not_visible_after_fork(self, engine, incr):
        """Unforkable state stays with its context."""
        engine.mark_unforkable(incr)
        ctx = Context()
        assert engine.use(ctx, incr) == 1

        forked = engine.fork(ctx)
        assert engine.is_used(forked, incr) is False
        assert engine.is_inherited(forked, incr) is False

    def test_rematerialized_per_context(self, engine, incr):
        """A fork runs the hook again."""
        engine.mark_unforkable(incr)
        ctx = Context()
        engine.use(ctx, incr)
        forked = engine.fork(ctx)
        assert engine.use(forked, incr) == 2
        assert engine.use(ctx, incr) == 1

    def test_get_from_fork_raises(self, engine, incr):
        """get() in a fork does not reach the parent."""
        from ctxhooks.errors import NotInitializedError

        engine.mark_unforkable(incr)
        ctx = Context()
        engine.use(ctx, incr)
        with pytest.raises(NotInitializedError):
            engine.get(engine.fork(ctx), incr)

    def test_not_copied_in_copy_mode(self, engine, incr):
        """Snapshots skip unforkable state."""
        engine.mark_unforkable(incr)
        ctx = Context()
        engine.use(ctx, incr)
        forked = engine.fork(ctx, mode="copy")
        assert engine.is_used(forked, incr) is False

    def test_forkable_state_still_inherited(self, engine, incr):
        """Other state is inherited as usual."""
        def settings(context):
            return "settings"

        engine.mark_unforkable(incr)
        ctx = Context()
        engine.use(ctx, incr)
        engine.use(ctx, settings)
        forked = engine.fork(ctx)
        assert engine.is_inherited(forked, settings)
        assert not engine.is_used(forked, incr)

    def test_entries_flag_unforkable(self, engine, incr):
        """entries() marks unforkable values."""
        engine.mark_unforkable(incr)
        ctx = Context()
        engine.use(ctx, incr)
        [entry] = engine.entries(ctx)
        assert entry.unforkable is True
        assert entry.hook is incr
        assert entry.value == 1


class TestRegistration:
    """Tests for unforkable registration."""

    def test_is_unforkable(self, engine, incr):
        """mark_unforkable() returns the hook and registers it."""
        assert engine.is_unforkable(incr) is False
        assert engine.mark_unforkable(incr) is incr
        assert engine.is_unforkable(incr) is True

    def test_reregistering_identically_is_noop(self, engine, incr):
        """Repeating the same registration is allowed."""
        engine.mark_unforkable(incr)
        engine.mark_unforkable(incr)
        assert engine.registration(incr).owner is incr

    def test_registration_is_immutable(self, engine, incr):
        """A conflicting registration raises."""
        engine.mark_unforkable(incr)
        with pytest.raises(ValueError, match="already registered"):
            engine.mark_unforkable(incr, shared=True)

    def test_shared_owner_keys_state(self, engine):
        """Shared hooks resolve to their owner's value."""
        def owner(context):
            return []

        def alias(context):
            return owner(context)

        engine.mark_unforkable(owner, shared=True)
        engine.mark_unforkable(alias, shared=True, owner=owner)
        ctx = Context()
        assert engine.use(ctx, owner) is engine.use(ctx, alias)
