#!/usr/bin/env python3
"""
xmux: X event / stdin / deadline multiplexing demo

Main entry point for the xmux session. This program:
1. Opens an X display and maps a small window
2. Waits on the X event queue, standard input and a timeout at once
3. Logs matching window events as they arrive
4. Echoes lines typed on stdin ("quit" or EOF ends the session)
5. Ticks at debug level whenever the timeout passes with nothing to do

Usage:
    # Start with defaults ($DISPLAY, 1 s timeout)
    xmux

    # Config file, debug ticks
    xmux --config ~/.config/xmux.toml --debug

Architecture:

    ┌──────────────┐
    │  X server    │──socket──┐
    └──────────────┘          ▼
                      ┌───────────────┐   EVENT / AUXILIARY_READY / TIMEOUT
    stdin ──────────▶ │ wait()        │ ─────────────────────────────────▶ session
                      │ (poll loop)   │
    timeout ────────▶ └───────────────┘
"""

import argparse
import copy
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml

# Set up logging before imports that use it
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger('xmux')

from Xlib import X
from Xlib import error as XError

from .engine.deadline import validate_timeout
from .engine.multiplexed_wait import wait
from .errors import ConnectionFault
from .interfaces.wait_outcome import OutcomeKind
from .sources.event_filter import EventFilter
from .sources.xlib_source import XEventSource


DEFAULT_CONFIG: Dict[str, Any] = {
    'display': {
        'name': '',
    },
    'window': {
        'title': 'xmux',
        'width': 320,
        'height': 240,
    },
    'events': {
        'mask': ['ExposureMask', 'KeyPressMask', 'ButtonPressMask', 'StructureNotifyMask'],
        'max_deferred': 256,
    },
    'loop': {
        'timeout': 1.0,
    },
}


def event_name(event: Any) -> str:
    """Class name python-xlib gives an event, e.g. "KeyPress"."""
    return type(event).__name__


class XWaitSession:
    """
    Interactive session multiplexing one X window with stdin.

    Owns the display connection and the window; everything in between
    is a loop over wait().
    """

    def __init__(
        self,
        config: Dict[str, Any],
        display: Any = None,
        input_fd: Optional[int] = None
    ):
        """
        Initialize the session.

        Args:
            config: Configuration dictionary (see DEFAULT_CONFIG)
            display: Already-open display (for testing); opened on start otherwise
            input_fd: Descriptor to read lines from (default: stdin)
        """
        self.config = config
        self.display_name = config.get('display', {}).get('name') or None

        window_config = config.get('window', {})
        self.title = window_config.get('title', 'xmux')
        self.width = int(window_config.get('width', 320))
        self.height = int(window_config.get('height', 240))

        self.mask_names: List[str] = list(config.get('events', {}).get('mask', []))
        self.max_deferred = config.get('events', {}).get('max_deferred')
        self.event_filter = EventFilter.from_names(self.mask_names)
        self.timeout = validate_timeout(config.get('loop', {}).get('timeout', 1.0))

        self.display = display
        self.input_fd = sys.stdin.fileno() if input_fd is None else input_fd
        self.window = None
        self.source: Optional[XEventSource] = None
        self.wm_delete_window = None

        # State
        self.running = False
        self._input_buffer = b''
        self.events_handled = 0
        self.lines_read = 0
        self.timeouts = 0

        logger.info("=" * 60)
        logger.info("xmux initializing")
        logger.info(f"  Display: {self.display_name or os.environ.get('DISPLAY', '(unset)')}")
        logger.info(f"  Window: {self.width}x{self.height} '{self.title}'")
        logger.info(f"  Event mask: {', '.join(self.mask_names) or '(all)'}")
        logger.info(f"  Timeout: {self.timeout}s")
        logger.info("=" * 60)

    def open(self) -> bool:
        """
        Connect to the display and map the window.

        Returns:
            True if the window is up
        """
        if self.display is None:
            try:
                from Xlib.display import Display
                self.display = Display(self.display_name)
            except XError.DisplayError as e:
                logger.error(f"Failed to open X display: {e}")
                return False

        screen = self.display.screen()
        self.window = screen.root.create_window(
            0, 0, self.width, self.height, 1, screen.root_depth,
            background_pixel=screen.white_pixel,
            event_mask=self.event_filter.event_mask,
        )
        self.window.set_wm_name(self.title)

        # Window manager close requests arrive as ClientMessage, which no
        # event mask selects, so they show up among the deferred events.
        self.wm_delete_window = self.display.intern_atom('WM_DELETE_WINDOW')
        self.window.set_wm_protocols([self.wm_delete_window])

        self.window.map()
        self.display.flush()

        self.source = XEventSource(
            self.display,
            self.event_filter.for_window(self.window),
            max_deferred=self.max_deferred,
        )
        logger.info(f"Window 0x{self.window.id:x} mapped")
        return True

    def run(self) -> int:
        """
        Run the session until quit, EOF, window close or a signal.

        Returns:
            Process exit status
        """
        if not self.open():
            return 1

        self.running = True

        # Set up signal handlers
        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        try:
            self._main_loop()
        except ConnectionFault as e:
            logger.error(f"X connection lost: {e}")
            return 1
        finally:
            self._cleanup()
        return 0

    def _main_loop(self):
        """Main wait loop."""
        logger.info("Entering main loop (type 'quit' or send EOF to exit)")

        while self.running:
            outcome = wait(self.source, self.input_fd, self.timeout)
            logger.debug(f"Outcome: {outcome.to_dict()}")

            if outcome.kind is OutcomeKind.EVENT:
                self._handle_event(outcome.payload)
            elif outcome.kind is OutcomeKind.AUXILIARY_READY:
                self._handle_input()
            else:
                self.timeouts += 1
                logger.debug(f"Tick ({self.timeouts} timeouts)")

            for event in self.source.take_deferred():
                self._handle_deferred(event)

    def _handle_event(self, event: Any):
        self.events_handled += 1
        name = event_name(event)

        if event.type == X.KeyPress:
            logger.info(f"{name}: keycode={event.detail} state=0x{event.state:x}")
        elif event.type == X.ButtonPress:
            logger.info(f"{name}: button={event.detail} at ({event.event_x}, {event.event_y})")
        elif event.type == X.Expose:
            logger.info(f"{name}: {event.width}x{event.height}+{event.x}+{event.y}")
        elif event.type == X.DestroyNotify:
            logger.info("Window destroyed")
            self.window = None
            self.running = False
        else:
            logger.info(name)

    def _handle_deferred(self, event: Any):
        if event.type == X.ClientMessage and self.wm_delete_window is not None:
            _, data = event.data
            if data and data[0] == self.wm_delete_window:
                logger.info("Window closed by window manager")
                self.running = False
                return
        logger.debug(f"Ignored {event_name(event)}")

    def _handle_input(self):
        """Read what stdin has and act on complete lines."""
        chunk = os.read(self.input_fd, 4096)
        if not chunk:
            logger.info("End of input")
            self.running = False
            return

        self._input_buffer += chunk
        *lines, self._input_buffer = self._input_buffer.split(b'\n')

        for raw in lines:
            line = raw.decode('utf-8', errors='replace').strip()
            self.lines_read += 1
            if line == 'quit':
                logger.info("Quit requested")
                self.running = False
                return
            if line:
                logger.info(f"stdin: {line}")

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals."""
        logger.info(f"Received signal {signum}, shutting down...")
        self.running = False

    def _cleanup(self):
        """Clean up resources on shutdown."""
        logger.info("Cleaning up...")

        if self.window is not None:
            try:
                self.window.destroy()
                self.display.flush()
            except (XError.ConnectionClosedError, OSError) as e:
                logger.debug(f"Window already gone: {e}")
        if self.display is not None:
            try:
                self.display.close()
            except (XError.ConnectionClosedError, OSError) as e:
                logger.debug(f"Display already closed: {e}")

        logger.info(
            f"Handled {self.events_handled} events, {self.lines_read} lines, "
            f"{self.timeouts} timeouts"
        )
        logger.info("xmux stopped")


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from TOML file, layered over the defaults."""
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path and Path(config_path).exists():
        with open(config_path, 'r') as f:
            loaded = toml.load(f)
        for section, values in loaded.items():
            if isinstance(values, dict):
                config.setdefault(section, {}).update(values)
            else:
                config[section] = values

    return config


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='xmux: wait on X events, stdin and a timeout at once',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Start with defaults
    xmux

    # Specific display, faster ticks
    xmux --display :1 --timeout 0.25 --debug
        """
    )

    parser.add_argument(
        '--config', '-c',
        help='Path to TOML configuration file'
    )
    parser.add_argument(
        '--display', '-d',
        help='X display to connect to (overrides config and $DISPLAY)'
    )
    parser.add_argument(
        '--timeout', '-t',
        type=float,
        help='Seconds to wait per iteration before ticking (overrides config)'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )

    args = parser.parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    # Load configuration
    config = load_config(args.config)

    # Apply command-line overrides
    if args.display:
        config.setdefault('display', {})['name'] = args.display
    if args.timeout is not None:
        if args.timeout < 0:
            parser.error('--timeout must be non-negative')
        config.setdefault('loop', {})['timeout'] = args.timeout

    try:
        session = XWaitSession(config)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    sys.exit(session.run())


if __name__ == '__main__':
    main()
