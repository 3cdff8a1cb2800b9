"""
ctxhooks: Identity-keyed, hierarchical state for hook functions.

A context is any object passed through a call graph. Hook functions attach
their own private state to it, keyed by the hook function itself, and
compute it lazily on first use. Forked contexts read their parent's state
until they initialize their own.

Example:
    import ctxhooks

    @ctxhooks.anchor
    def settings(ctx):
        return {"debug": False}

    @ctxhooks.buoy
    def session(ctx):
        return open_session(settings(ctx))

    root = ctxhooks.create_context("root")
    settings(root)["debug"] = True

    request = ctxhooks.fork(root)
    settings(request)["debug"]          # True, inherited from root
    session(request) is session(root)   # False, buoys are never inherited

    ctxhooks.print_context(request)
"""

__version__ = "0.1.0"

# Functional API (default engine)
from ctxhooks.accessor import (
    ContextHandle,
    fork,
    get,
    init,
    is_context,
    is_inherited,
    is_used,
    use,
    use_context,
)

# Configuration
from ctxhooks.config import EngineConfig, find_config_file

# Context
from ctxhooks.context import Context, create_context

# Display
from ctxhooks.display import describe, format_context, print_context, render_tree

# Engine
from ctxhooks.engine import (
    Engine,
    Hook,
    Registration,
    StateEntry,
    get_engine,
    reset_engine,
    set_engine,
)

# Errors
from ctxhooks.errors import (
    ContextError,
    ContextInUseError,
    NotInitializedError,
    SameContextError,
)

# Composition wrappers
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

__all__ = [
    # Version
    "__version__",
    # Context
    "Context",
    "create_context",
    # Engine
    "Engine",
    "Hook",
    "Registration",
    "StateEntry",
    "get_engine",
    "set_engine",
    "reset_engine",
    # Functional API
    "is_context",
    "is_used",
    "init",
    "use",
    "get",
    "is_inherited",
    "fork",
    "use_context",
    "ContextHandle",
    # Wrappers
    "hook",
    "anchor",
    "buoy",
    "unforkable_anchor",
    "util",
    "clone",
    "factory",
    "buoy_factory",
    # Configuration
    "EngineConfig",
    "find_config_file",
    # Display
    "describe",
    "format_context",
    "render_tree",
    "print_context",
    # Errors
    "ContextError",
    "NotInitializedError",
    "SameContextError",
    "ContextInUseError",
]
