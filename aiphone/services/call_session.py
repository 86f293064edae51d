"""Call orchestration: greeting, the turn loop and call record bookkeeping."""

import asyncio
import logging
from typing import Optional

from .bundle import ServiceBundle
from .settings import CallSettings
from .turn_controller import TurnController
from ..dialogue import ConversationHistory
from ..errors import FatalCallError
from ..models.call import CallStatus, TurnOutcome

logger = logging.getLogger(__name__)


class CallSession:
    """Runs one call from greeting to completion.

    The call record is finalized exactly once, whichever of normal
    completion, interruption or failure gets there first.
    """

    def __init__(self, services: ServiceBundle, settings: CallSettings,
                 controller: Optional[TurnController] = None):
        self.services = services
        self.settings = settings
        self.history = ConversationHistory()
        self.controller = controller or TurnController(
            services, self.history, settings, report_status=self.update_status)
        self.call_id = None
        self.turns_completed = 0
        self.consecutive_device_errors = 0
        self.last_outcome: Optional[TurnOutcome] = None
        self._finalized = False

    @property
    def finalized(self) -> bool:
        return self._finalized

    async def run(self) -> Optional[TurnOutcome]:
        """Run the call until the loop ends.

        Returns:
            Outcome of the last turn, None if no turn ran

        Raises:
            FatalCallError: After too many consecutive device failures
            asyncio.CancelledError: When the call is interrupted
        """
        try:
            await self.start()
            await self.greet()
            outcome = await self.loop()
            await self.finish(outcome)
            return outcome
        except asyncio.CancelledError:
            logger.info("Call interrupted")
            await self.handle_interrupt()
            raise
        except Exception as e:
            logger.error(f"Call failed: {e}")
            await self.fail()
            raise

    async def start(self) -> None:
        self.call_id = await self.services.tracker.create_call() if self.services.tracker.is_configured else None
        # History belongs to a single run; a re-run session starts empty
        self.history.clear()

    async def greet(self) -> None:
        logger.info("Speaking welcome message...")
        await self.update_status(CallStatus.GREETING)
        await self.controller.speak(self.settings.greeting)
        self.history.append_assistant(self.settings.greeting)

    async def loop(self) -> Optional[TurnOutcome]:
        outcome = None
        while True:
            outcome = await self.controller.run_turn()
            self.last_outcome = outcome
            self.turns_completed += 1

            if outcome.device_error:
                self.consecutive_device_errors += 1
                if self.consecutive_device_errors >= self.settings.max_consecutive_device_errors:
                    raise FatalCallError(
                        f"Audio device failed {self.consecutive_device_errors} times in a row")
            else:
                self.consecutive_device_errors = 0

            if not outcome.should_continue_loop:
                return outcome

    async def finish(self, outcome: Optional[TurnOutcome]) -> None:
        """Mark the call completed, attaching the triage payload when present."""
        if not self._claim_finalize():
            return
        if outcome is not None and outcome.end_call_requested and outcome.triage_payload is not None:
            logger.info(f"Sending triage information for call {self.call_id}")
            await self.services.tracker.complete_call(self.call_id, outcome.triage_payload)
        else:
            await self.update_status(CallStatus.COMPLETED)
        self._release_call()

    async def handle_interrupt(self) -> bool:
        """Mark the call completed after an interrupt; later calls are no-ops.

        Returns:
            True if this call performed the finalization
        """
        if not self._claim_finalize():
            return False
        logger.info("Marking interrupted call as completed")
        await self.update_status(CallStatus.COMPLETED)
        self._release_call()
        return True

    async def fail(self) -> bool:
        if not self._claim_finalize():
            return False
        await self.update_status(CallStatus.ERROR)
        self._release_call()
        return True

    async def update_status(self, status: CallStatus) -> None:
        if self.call_id is None:
            logger.debug(f"No call record, status {status.value} not reported")
            return
        await self.services.tracker.update_status(self.call_id, status)

    def _claim_finalize(self) -> bool:
        if self._finalized:
            return False
        self._finalized = True
        return True

    def _release_call(self) -> None:
        if self.call_id is not None:
            logger.info(f"Call {self.call_id} released")
        self.call_id = None
