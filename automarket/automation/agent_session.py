"""
Agent session lifecycle: open an agent, reach its sell list, close it again.
"""

import logging
from enum import Enum
from typing import Optional

from automarket.core.errors import RunCancelled, SurfaceNotReady
from automarket.core.retry import RunToken
from .actions import Surface
from .context import AutomationContext

logger = logging.getLogger(__name__)


class SessionState(Enum):
    CLOSED = "closed"
    OPENING = "opening"
    MENU_AWAITING = "menu_awaiting"
    MENU_READY = "menu_ready"
    ACTION_SELECTED = "action_selected"
    ACTIVE = "active"
    CLOSING = "closing"


class AgentSession:
    """
    Wraps one agent from open to close.

    Usage:
        session = AgentSession(ctx)
        if await session.open(0, token):
            ...
            await session.close(did_vendor, token)

    A failed open is not fatal; the scheduler moves on to the next agent.
    """

    def __init__(self, ctx: AutomationContext):
        self.ctx = ctx
        self.state = SessionState.CLOSED
        self.agent_index: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.state != SessionState.CLOSED

    async def open(self, agent_index: int, token: RunToken) -> bool:
        """Open the agent and select "sell from inventory". False on any timeout."""
        target = self.ctx.target
        retry = self.ctx.retry
        self.agent_index = agent_index
        self.state = SessionState.OPENING

        try:
            await retry.require(
                lambda: target.is_surface_ready(Surface.AGENT_LIST), 10, 100,
                Surface.AGENT_LIST.value, token,
            )
            if not await target.open_agent(agent_index):
                logger.error(f"Failed to send open request for agent {agent_index}")
                self.state = SessionState.CLOSED
                return False

            self.state = SessionState.MENU_AWAITING
            logger.info("Waiting for selection menu after opening agent...")
            await retry.require(
                lambda: target.is_surface_ready(Surface.SELECTION_MENU), 100, 100,
                Surface.SELECTION_MENU.value, token,
            )
            self.state = SessionState.MENU_READY
            await retry.delay(300, token)

            if not await target.select_sell_action():
                logger.error("Could not find 'Sell items in your inventory on the market' option")
                # Menu is up but unusable; leave cleanly so the next agent can open
                await self._dismiss()
                return False
            self.state = SessionState.ACTION_SELECTED

            await retry.require(
                lambda: target.is_surface_ready(Surface.SELL_LIST), 30, 100,
                Surface.SELL_LIST.value, token,
            )
            self.state = SessionState.ACTIVE
            logger.info(f"Agent {agent_index} sell list is ready")
            return True

        except RunCancelled:
            raise
        except SurfaceNotReady as e:
            logger.warning(f"Agent {agent_index}: {e.message}")
            await self._dismiss()
            return False
        except Exception as e:
            logger.error(f"Error opening agent {agent_index}: {e}", exc_info=True)
            await self._dismiss()
            return False

    async def close(self, did_vendor: bool, token: RunToken) -> bool:
        """
        Close sub-surfaces and the agent.

        Vendoring makes the application ask for confirmation on leave; that
        dialog is only waited for when did_vendor is set. Closing an already
        closed session does nothing.
        """
        if self.state == SessionState.CLOSED:
            return True

        target = self.ctx.target
        retry = self.ctx.retry
        self.state = SessionState.CLOSING

        try:
            for surface in (Surface.SELL_DIALOG, Surface.SELL_LIST, Surface.SELECTION_MENU):
                if await target.close_surface(surface):
                    await retry.delay(500, token)

            await target.close_agent()

            if did_vendor:
                await self._confirm_leave(token)

            if not await retry.poll_until_ready(
                lambda: target.is_surface_ready(Surface.AGENT_LIST), 30, 60, token
            ):
                logger.warning("Agent list did not come back after closing agent")

            logger.info(f"Closed agent {self.agent_index}")
            return True

        except RunCancelled:
            raise
        except Exception as e:
            logger.error(f"Error closing agent {self.agent_index}: {e}", exc_info=True)
            return False
        finally:
            self.state = SessionState.CLOSED

    async def _confirm_leave(self, token: RunToken) -> bool:
        target = self.ctx.target
        retry = self.ctx.retry

        await retry.delay(300, token)
        if await retry.poll_until_ready(
            lambda: target.is_surface_ready(Surface.CONFIRM_DIALOG), 20, 60, token
        ):
            if await target.confirm_dialog_if_present():
                logger.info("Confirmed leaving agent")
                await retry.delay(300, token)
                return True
        logger.debug("No leave confirmation dialog appeared")
        return False

    async def _dismiss(self):
        """Best-effort cleanup after a failed open."""
        agent_was_opened = self.state not in (SessionState.CLOSED, SessionState.OPENING)
        try:
            await self.ctx.target.close_surface(Surface.SELL_LIST)
            await self.ctx.target.close_surface(Surface.SELECTION_MENU)
            if agent_was_opened:
                await self.ctx.target.close_agent()
        except Exception as e:
            logger.debug(f"Cleanup after failed open raised: {e}")
        self.state = SessionState.CLOSED
