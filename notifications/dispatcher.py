"""Send notification jobs through the push client and write back delivery state."""

from collections.abc import Callable
from datetime import datetime

import structlog

from config.constants import FCM_MULTICAST_LIMIT
from notifications.ports import PushClient, UserStore
from notifications.types import DispatchResult, DispatchTarget, NotificationJob, SendOutcome
from utils.retry import sanitize_error
from utils.time_utils import utc_now

log = structlog.get_logger(__name__)


def _chunks(targets: list[DispatchTarget], size: int) -> list[list[DispatchTarget]]:
    return [targets[i : i + size] for i in range(0, len(targets), size)]


class NotificationDispatcher:
    """Deliver a job to its targets, then update cooldowns and prune dead tokens."""

    def __init__(
        self,
        push_client: PushClient,
        user_store: UserStore,
        batch_size: int = FCM_MULTICAST_LIMIT,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._push = push_client
        self._users = user_store
        self._batch_size = max(1, min(batch_size, FCM_MULTICAST_LIMIT))
        self._clock = clock

    async def dispatch(self, job: NotificationJob) -> DispatchResult:
        """Dispatch a job. Returns a summary; never raises for send failures."""
        result = DispatchResult(job_type=job.type, attempted=len(job.targets))
        if not job.targets:
            log.info("dispatch_skipped", type=job.type.value, reason="no_targets")
            return result

        pairs: list[tuple[DispatchTarget, SendOutcome]] = []
        chunks_sent = 0
        for batch in _chunks(job.targets, self._batch_size):
            tokens = [t.push_token for t in batch]
            try:
                outcomes = await self._push.send_multicast(job, tokens)
            except Exception as e:
                # Delivery state of this chunk is unknown; earlier chunks still count
                log.error(
                    "dispatch_send_failed",
                    type=job.type.value,
                    targets=len(batch),
                    error=sanitize_error(str(e)),
                )
                result.failed += len(batch)
                continue
            chunks_sent += 1
            if len(outcomes) != len(batch):
                log.warning(
                    "dispatch_outcome_mismatch",
                    type=job.type.value,
                    tokens=len(batch),
                    outcomes=len(outcomes),
                )
            pairs.extend(zip(batch, outcomes))

        if chunks_sent == 0:
            result.send_failed = True
            return result

        now = self._clock()
        invalid: list[str] = []
        for target, outcome in pairs:
            if outcome.success:
                result.delivered.append(target.user_id)
            elif outcome.token_invalid:
                invalid.append(target.push_token)
            else:
                result.failed += 1
                log.warning(
                    "dispatch_token_failed",
                    type=job.type.value,
                    user_id=target.user_id,
                    error_code=outcome.error_code,
                )

        if job.cooldown_window is not None:
            for user_id in result.delivered:
                await self._record_sent(job, user_id, now, result)

        for token in dict.fromkeys(invalid):
            await self._remove_token(token, result)
        result.invalid_tokens = list(dict.fromkeys(invalid))

        log.info(
            "notification_dispatched",
            type=job.type.value,
            attempted=result.attempted,
            delivered=result.delivered_count,
            invalid=len(result.invalid_tokens),
            failed=result.failed,
            cooldowns=result.cooldowns_updated,
        )
        return result

    async def _record_sent(
        self, job: NotificationJob, user_id: str, now: datetime, result: DispatchResult
    ) -> None:
        try:
            await self._users.record_notification_sent(user_id, job.type, now)
            result.cooldowns_updated += 1
        except Exception as e:
            log.error(
                "cooldown_write_failed",
                type=job.type.value,
                user_id=user_id,
                error=sanitize_error(str(e)),
            )

    async def _remove_token(self, token: str, result: DispatchResult) -> None:
        try:
            removed = await self._users.remove_push_token(token)
            result.tokens_removed += removed
            log.info("push_token_removed", users=removed)
        except Exception as e:
            log.error("push_token_cleanup_failed", error=sanitize_error(str(e)))
