"""
Dialog Tracker

JavaScript alert/confirm/prompt handling for one page.

Playwright reports dialogs as events and the action that opened a dialog
blocks until a listener answers it. Page objects therefore decide the
answer up front: accept_alert / dismiss_alert / send_alert_text arm the
response for the next dialog, and the listener applies it the moment the
dialog opens. Unarmed dialogs are dismissed, as Playwright does when no
listener is attached.

Usage:
    dialogs = DialogTracker.of(page)
    await dialogs.accept_alert()
    await page.click("#delete")
    assert await dialogs.get_alert_text() == "Delete item?"
"""

import asyncio
import logging
import weakref
from typing import Optional

from playwright.async_api import Dialog, Page

from ..errors import WaitTimeoutError

logger = logging.getLogger(__name__)

ACCEPT = "accept"
DISMISS = "dismiss"


class DialogTracker:
    """Armed response and last message for the dialogs of one page"""

    _registry: "weakref.WeakKeyDictionary[Page, DialogTracker]" = weakref.WeakKeyDictionary()

    def __init__(self, page: Page):
        self.page = page
        self.last_message: Optional[str] = None
        self.last_type: Optional[str] = None
        self._action = DISMISS
        self._prompt_text: Optional[str] = None
        self._opened = asyncio.Event()
        page.on("dialog", self._on_dialog)

    @classmethod
    def of(cls, page: Page) -> "DialogTracker":
        """Shared tracker for `page`, attached on first use."""
        tracker = cls._registry.get(page)
        if tracker is None:
            tracker = cls(page)
            cls._registry[page] = tracker
        return tracker

    # ==================== Arming ====================

    async def accept_alert(self):
        self._arm(ACCEPT)

    async def dismiss_alert(self):
        self._arm(DISMISS)

    async def send_alert_text(self, text: str):
        """Accept the next prompt with `text` as its input."""
        self._arm(ACCEPT, text)

    def _arm(self, action: str, prompt_text: Optional[str] = None):
        self._action = action
        self._prompt_text = prompt_text
        self.last_message = None
        self._opened.clear()

    # ==================== Reading ====================

    async def get_alert_text(self, timeout: int = 0) -> str:
        """
        Message of the most recent dialog.

        Args:
            timeout: Time to wait for a dialog in ms when none has opened yet

        Raises:
            WaitTimeoutError: if no dialog opened within `timeout`
        """
        if self.last_message is None:
            try:
                await asyncio.wait_for(self._opened.wait(), timeout / 1000)
            except asyncio.TimeoutError:
                raise WaitTimeoutError(f"No dialog opened after {timeout}ms", timeout)
        return self.last_message

    # ==================== Listener ====================

    async def _on_dialog(self, dialog: Dialog):
        action, prompt_text = self._action, self._prompt_text
        self._action, self._prompt_text = DISMISS, None

        self.last_message = dialog.message
        self.last_type = dialog.type
        logger.debug(f"Dialog ({dialog.type}) opened: {dialog.message!r} - {action}")

        try:
            if action == ACCEPT:
                if prompt_text is not None:
                    await dialog.accept(prompt_text)
                else:
                    await dialog.accept()
            else:
                await dialog.dismiss()
        finally:
            self._opened.set()
