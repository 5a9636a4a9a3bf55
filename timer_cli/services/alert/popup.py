"""Expiry popup window (tkinter)"""
import logging
from typing import Callable, Optional

try:
    import tkinter as tk
except ImportError:
    tk = None

from timer_cli.exceptions import AlertDeliveryFailure, TimerError
from timer_cli.models.timer import AlertAction

logger = logging.getLogger(__name__)

FONT = ("DejaVu Sans", 13)
TITLE_FONT = ("DejaVu Sans", 16, "bold")


def cancel_requested(should_cancel: Callable[[], bool]) -> bool:
    """Check for cancellation; a failed check keeps the alert open."""
    try:
        return should_cancel()
    except TimerError as e:
        logger.error(f"Cancel check failed, will retry: {e}")
        return False


def show_alert_popup(
    message: str,
    should_cancel: Callable[[], bool],
    snooze_label: str = "Snooze",
    poll_ms: int = 250,
) -> Optional[AlertAction]:
    """
    Show a topmost window with Stop / Snooze / Restart and block.

    Keys: s / Enter / Escape = stop, z = snooze, r = restart. Closing the
    window counts as stop.

    Returns:
        The chosen action, or None if ``should_cancel`` turned True first

    Raises:
        AlertDeliveryFailure: If no window can be opened (no display, no Tk)
    """
    if tk is None:
        raise AlertDeliveryFailure("tkinter is not installed")
    try:
        root = tk.Tk()
    except tk.TclError as e:
        raise AlertDeliveryFailure(f"cannot open alert window: {e}") from e

    chosen: dict = {"action": None}

    def choose(action: AlertAction) -> None:
        chosen["action"] = action
        root.destroy()

    def poll() -> None:
        if cancel_requested(should_cancel):
            logger.info("Alert closed by cancellation")
            root.destroy()
            return
        root.after(poll_ms, poll)

    try:
        root.title(message)
        root.attributes("-topmost", True)
        root.resizable(False, False)
        root.protocol("WM_DELETE_WINDOW", lambda: choose(AlertAction.STOP))

        frame = tk.Frame(root, padx=24, pady=18)
        frame.pack(fill="both", expand=True)
        tk.Label(frame, text="⌛", font=("DejaVu Sans", 32)).pack()
        tk.Label(frame, text=message, font=TITLE_FONT, wraplength=360).pack(pady=(6, 14))

        buttons = tk.Frame(frame)
        buttons.pack()
        tk.Button(buttons, text="Stop (s)", font=FONT, width=10,
                  command=lambda: choose(AlertAction.STOP)).pack(side="left", padx=4)
        tk.Button(buttons, text=f"{snooze_label} (z)", font=FONT, width=14,
                  command=lambda: choose(AlertAction.SNOOZE)).pack(side="left", padx=4)
        tk.Button(buttons, text="Restart (r)", font=FONT, width=10,
                  command=lambda: choose(AlertAction.RESTART)).pack(side="left", padx=4)

        for key in ("s", "<Return>", "<Escape>"):
            root.bind(key, lambda _e: choose(AlertAction.STOP))
        root.bind("z", lambda _e: choose(AlertAction.SNOOZE))
        root.bind("r", lambda _e: choose(AlertAction.RESTART))

        root.focus_force()
        root.after(poll_ms, poll)
        root.mainloop()
    except tk.TclError as e:
        raise AlertDeliveryFailure(f"alert window failed: {e}") from e

    return chosen["action"]
