"""
daktilo_nvim: Neovim plugin for daktilo
Relays insert-mode cursor movement to the daktilo gRPC server
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("daktilo-nvim")
except PackageNotFoundError:
    __version__ = "dev"
__author__ = "daktilo_nvim contributors"
