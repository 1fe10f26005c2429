"""
pynvim remote plugin entry point.

Neovim loads this through `rplugin/python3/daktilo_nvim_rplugin.py`. Usage:

    :call DaktiloStart({'rpc_port': 50051})
    :call DaktiloStop()

or from Lua, `require("daktilo_nvim").start({ rpc_port = 50051 })`.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import pynvim

from daktilo_nvim.bridge.session import ClientFactory, CursorBridge
from daktilo_nvim.client.network import CursorReportClient
from daktilo_nvim.common.config import Config, ConfigLoader
from daktilo_nvim.common.logging_setup import logging_setup
from daktilo_nvim.host.adapter import CURSOR_INFO_EVAL, NvimHostAdapter

logger = logging.getLogger(__name__)

# Seconds VimLeavePre waits for the background client to say goodbye.
LEAVE_JOIN_TIMEOUT = 1.0


def startArguments_parse(args: list[Any]) -> Config:
    """
    Resolve configuration from DaktiloStart arguments.

    Args:
        args: Function arguments; the first one, when a dict, holds plugin options

    Returns:
        Resolved Config
    """
    options: Any = args[0] if args else None
    if not isinstance(options, dict):
        if options is not None:
            logger.warning("DaktiloStart expects a dictionary, got %r", options)
        options = {}
    return ConfigLoader.configWithOverrides_load(**options)


@pynvim.plugin
class DaktiloPlugin:
    """Neovim-facing commands and autocmds for one plugin host."""

    def __init__(
        self,
        nvim: Any,
        client_factory: ClientFactory = CursorReportClient,
        logging_setup_func: Callable[..., Any] = logging_setup,
    ) -> None:
        """
        Initialize plugin.

        Args:
            nvim: Attached pynvim Nvim object
            client_factory: RPC client factory for new sessions
            logging_setup_func: Logging setup callback
        """
        self.nvim: Any = nvim
        self.host: NvimHostAdapter = NvimHostAdapter(nvim)
        self.client_factory: ClientFactory = client_factory
        self.logging_setup_func: Callable[..., Any] = logging_setup_func
        self.bridge: Optional[CursorBridge] = None

    @pynvim.function("DaktiloStart", sync=True)
    def session_start(self, args: list[Any]) -> None:
        """Start a bridge session, replacing any running one."""
        config: Config = startArguments_parse(args)
        self.logging_setup_func(config.logging.level, config.logging.format, config.logging.file)

        if self.bridge is not None:
            logger.info("Restarting daktilo session")
            self.bridge.session_end()

        self.bridge = CursorBridge(config, self.host, client_factory=self.client_factory)
        self.bridge.session_start()

    @pynvim.function("DaktiloStop", sync=True)
    def session_stop(self, args: list[Any]) -> None:
        """End the running bridge session, if any."""
        if self.bridge is None:
            return
        self.bridge.session_end()
        self.bridge = None

    @pynvim.autocmd("CursorMovedI", pattern="*", eval=CURSOR_INFO_EVAL, sync=False)
    def cursorMoved_handle(self, cursor_info: Any) -> None:
        """Relay an insert-mode cursor movement."""
        self.host.cursorMoved_handle(cursor_info, self.bridge)

    @pynvim.autocmd("VimLeavePre", pattern="*", sync=True)
    def vimLeave_handle(self) -> None:
        """End the session before Neovim exits."""
        if self.bridge is None:
            return
        self.bridge.session_end(timeout=LEAVE_JOIN_TIMEOUT)
        self.bridge = None
