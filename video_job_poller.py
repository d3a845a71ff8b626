"""
Video Job Poller

Polls the status of several asynchronous video-generation invocations until
each reaches a terminal state or the overall timeout elapses.
"""

import logging
import time
from typing import Callable, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str, Dict], None]


class VideoJobPoller:
    """Poll a batch of invocations with a fixed interval and a deadline"""

    TERMINAL_STATUSES = {"Completed", "Failed"}

    def __init__(self, check_status: Callable[[str], Dict], interval: float = 15.0,
                 timeout: float = 900.0, max_errors: int = 3,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], float] = time.monotonic):
        self.check_status = check_status
        self.interval = interval
        self.timeout = timeout
        self.max_errors = max_errors
        self.sleep = sleep
        self.clock = clock

    def is_terminal(self, status: Dict) -> bool:
        return status.get("status") in self.TERMINAL_STATUSES

    def poll(self, invocation_arns: List[str], on_update: Optional[StatusCallback] = None) -> Dict[str, Dict]:
        """
        Poll until every invocation is terminal or the timeout elapses.

        A status lookup that raises is retried on the next round; after
        ``max_errors`` consecutive failures the invocation is marked Failed.
        Invocations still running at the deadline are returned with
        ``timedOut: True``.

        Args:
            invocation_arns: Invocations to watch
            on_update: Called with (arn, status) whenever a status changes

        Returns:
            Final status dictionary per invocation ARN
        """
        statuses: Dict[str, Dict] = {
            arn: {"invocationArn": arn, "status": "InProgress"} for arn in invocation_arns
        }
        errors = {arn: 0 for arn in invocation_arns}
        deadline = self.clock() + self.timeout
        rounds = 0

        while True:
            pending = [arn for arn in invocation_arns if not self.is_terminal(statuses[arn])]
            if not pending:
                break

            rounds += 1
            for arn in pending:
                try:
                    status = self.check_status(arn)
                    errors[arn] = 0
                except (ClientError, BotoCoreError) as e:
                    errors[arn] += 1
                    logger.warning(f"Status check {errors[arn]}/{self.max_errors} failed for {arn}: {e}")
                    if errors[arn] < self.max_errors:
                        continue
                    status = {"invocationArn": arn, "status": "Failed", "failureMessage": str(e)}

                if status.get("status") != statuses[arn].get("status"):
                    logger.info(f"🎬 {arn}: {statuses[arn].get('status')} -> {status.get('status')}")
                    statuses[arn] = status
                    if on_update:
                        on_update(arn, status)
                else:
                    statuses[arn] = status

            if all(self.is_terminal(statuses[arn]) for arn in invocation_arns):
                break

            if self.clock() >= deadline:
                for arn in invocation_arns:
                    if not self.is_terminal(statuses[arn]):
                        statuses[arn] = {**statuses[arn], "timedOut": True}
                        if on_update:
                            on_update(arn, statuses[arn])
                logger.warning(f"⏰ Video polling timed out after {rounds} rounds")
                break

            self.sleep(self.interval)

        return statuses
