"""Plugin system: user-supplied request/response transformers.

* :class:`Plugin` -- optional base class with pass-through hooks.
* :class:`HookRunner` -- runs the hooks of an ordered plugin list.
"""

from csdelivery.plugins.base import Plugin
from csdelivery.plugins.hooks import HookRunner

__all__ = ["Plugin", "HookRunner"]
