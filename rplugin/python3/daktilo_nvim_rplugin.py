"""Remote plugin shim: pynvim loads plugin classes found in this module."""

from daktilo_nvim.host.plugin import DaktiloPlugin

__all__ = ["DaktiloPlugin"]
