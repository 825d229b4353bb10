"""
Framework Hooks

Runner-agnostic lifecycle callbacks that wire up:
- Per-worker isolated logging
- Per-scenario logging context
- Screenshot on scenario failure
- Browser state cleanup between scenarios
- Report backup on completion
- Optional capture of uncaught errors into errors.log

Call them from the BDD runner's own hooks (pytest-bdd, behave, ...).
"""

import asyncio
import os
import re
from typing import Optional

from playwright.async_api import Page

from .config import Settings
from .log import LoggingManager, sanitize_scenario_name
from .utils.report_backup import ReportBackupManager

DEFAULT_WORKER_ID = "0-0"

BANNER = "=" * 44


def resolve_worker_id(explicit: Optional[str] = None) -> str:
    """Explicit id, else the pytest-xdist worker ("gw3" -> "0-3"), else "0-0"."""
    if explicit:
        return explicit
    xdist_worker = os.getenv("PYTEST_XDIST_WORKER", "")
    match = re.fullmatch(r"gw(\d+)", xdist_worker)
    if match:
        return f"0-{match.group(1)}"
    return DEFAULT_WORKER_ID


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class FrameworkHooks:
    """Lifecycle glue between a test runner and the framework"""

    def __init__(
        self,
        logging_manager: LoggingManager,
        settings: Optional[Settings] = None,
        backup_manager: Optional[ReportBackupManager] = None,
        screenshot_on_failure: bool = True,
        clean_browser_state: bool = True,
        capture_uncaught_errors: bool = False
    ):
        self.logging_manager = logging_manager
        self.settings = settings or Settings()
        self.backup_manager = backup_manager
        self.screenshot_on_failure = screenshot_on_failure
        self.clean_browser_state = clean_browser_state
        self.capture_uncaught_errors = capture_uncaught_errors
        self._hooked_loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def logger(self):
        return self.logging_manager.get_logger("Config")

    # ==================== Session ====================

    def on_prepare(self, workers: int = 1):
        self.logger.info(BANNER)
        self.logger.info(" Test Execution Starting")
        self.logger.info(f"  Environment : {self.settings.test_env}")
        self.logger.info(f"  Browser     : {self.settings.browser}")
        self.logger.info(f"  Base URL    : {self.settings.base_url}")
        self.logger.info(f"  Parallel    : {workers} worker(s)")
        self.logger.info(BANNER)

    def before_session(self, worker_id: Optional[str] = None) -> str:
        """Scope logging to this worker. Returns the worker id used."""
        worker_id = resolve_worker_id(worker_id)
        if not self.logging_manager.set_worker_context(worker_id):
            self.logger.warning(f"Worker log directory unavailable, logging to {self.logging_manager.log_dir}")
        if self.capture_uncaught_errors:
            self._hooked_loop = _running_loop()
            self.logging_manager.install_exception_hooks(self._hooked_loop)
        self.logger.info(f"Browser session initialised (worker: {worker_id})")
        return worker_id

    async def after_session(self):
        self.logger.info("Browser session closing")
        if self.capture_uncaught_errors:
            self.logging_manager.uninstall_exception_hooks(self._hooked_loop)
            self._hooked_loop = None
        await self.logging_manager.flush_all()

    # ==================== Feature / Scenario ====================

    def before_feature(self, name: str):
        self.logger.info(f"> Feature: {name}")

    def after_feature(self, name: str):
        self.logger.info(f"< Feature completed: {name}")

    def before_scenario(self, name: str):
        self.logging_manager.set_scenario_context(name)
        self.logger.info(f"  > Scenario: {name}")

    async def after_scenario(self, name: str, passed: bool, page: Optional[Page] = None):
        """
        Log the outcome, capture failure evidence and reset browser state.

        The scenario log context is always cleared, even when cleanup fails.
        """
        try:
            status = "PASSED" if passed else "FAILED"
            self.logger.info(f"  < Scenario {status}: {name}")

            if page is not None and not passed and self.screenshot_on_failure:
                await self._capture_failure(page, name)

            if page is not None and self.clean_browser_state:
                await self._clean_browser_state(page)
        finally:
            self.logging_manager.clear_scenario_context()

    async def _capture_failure(self, page: Page, name: str):
        path = os.path.join(
            self.settings.screenshots_dir,
            f"FAILED_{sanitize_scenario_name(name)}.png"
        )
        try:
            os.makedirs(self.settings.screenshots_dir, exist_ok=True)
            await page.screenshot(path=path)
            self.logger.info(f"Failure screenshot saved: {path}")
        except Exception as e:
            self.logger.warning(f"Screenshot on failure: {e}")

    async def _clean_browser_state(self, page: Page):
        try:
            await page.evaluate("() => { localStorage.clear(); sessionStorage.clear(); }")
            await page.context.clear_cookies()
        except Exception as e:
            self.logger.warning(f"Browser cleanup: {e}")

    # ==================== Completion ====================

    async def on_complete(self, exit_code: int):
        self.logger.info(BANNER)
        self.logger.info(" Test Execution Complete")
        self.logger.info(f"  Exit code: {exit_code}")
        self.logger.info(BANNER)

        if not self.settings.report_backup_enabled:
            return

        backup_manager = self.backup_manager or ReportBackupManager(
            settings=self.settings,
            logger=self.logging_manager.get_logger("ReportBackupManager")
        )
        try:
            if await backup_manager.backup():
                self.logger.info("Report backup completed successfully")
        except Exception as e:
            self.logger.warning(f"Report backup: {e}")
