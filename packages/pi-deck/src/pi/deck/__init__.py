"""pi-deck: terminal page/modal runtime with differential rendering."""

# App and driver
from pi.deck.app import App, run
from pi.deck.config import DeckSettings
from pi.deck.driver import Driver, Outcome

# Input
from pi.deck.decoder import InputDecoder, decode_bytes
from pi.deck.keys import GLOBAL_KEYS, Key, KeyId, KeyToken, encode_token

# Errors
from pi.deck.errors import DeckError, KeyConflictError, PageNotFoundError, TerminalError

# Key dispatch and hints
from pi.deck.hints import HintStack
from pi.deck.keymap import Binding, KeyHandlerStack

# Modals
from pi.deck.modal import (
    Clamped,
    Fixed,
    MessagePage,
    ModalFrame,
    ModalStack,
    ModalUI,
    PromptPage,
    Ratio,
    alert,
    confirm,
    confirm_with_extract,
    prompt,
    resolve_width,
)

# Navigation
from pi.deck.navigation import NavigationState, Transition

# Background notify
from pi.deck.notify import DebouncedNotifier

# Pages
from pi.deck.page import BasePage, KeyBinding, KeyInterceptPage, Page, PageScope
from pi.deck.registry import PageRegistry

# Rendering
from pi.deck.render import Renderer
from pi.deck.services import Services
from pi.deck.size import Size, SizeProbe

# Terminal
from pi.deck.terminal import ProcessTerminal, Terminal

__all__ = [
    # App and driver
    "App",
    "DeckSettings",
    "Driver",
    "Outcome",
    "run",
    # Input
    "GLOBAL_KEYS",
    "InputDecoder",
    "Key",
    "KeyId",
    "KeyToken",
    "decode_bytes",
    "encode_token",
    # Errors
    "DeckError",
    "KeyConflictError",
    "PageNotFoundError",
    "TerminalError",
    # Key dispatch and hints
    "Binding",
    "HintStack",
    "KeyHandlerStack",
    # Modals
    "Clamped",
    "Fixed",
    "MessagePage",
    "ModalFrame",
    "ModalStack",
    "ModalUI",
    "PromptPage",
    "Ratio",
    "alert",
    "confirm",
    "confirm_with_extract",
    "prompt",
    "resolve_width",
    # Navigation
    "NavigationState",
    "Transition",
    # Background notify
    "DebouncedNotifier",
    # Pages
    "BasePage",
    "KeyBinding",
    "KeyInterceptPage",
    "Page",
    "PageRegistry",
    "PageScope",
    # Rendering
    "Renderer",
    "Services",
    "Size",
    "SizeProbe",
    # Terminal
    "ProcessTerminal",
    "Terminal",
]
