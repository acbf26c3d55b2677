"""Scheduled nudge job ids and slot times."""

from dataclasses import dataclass
from datetime import time

from config.settings import Settings
from utils.time_utils import parse_hhmm

STUDY_NUDGE_JOB = "study_nudge"
SOCIAL_NUDGE_JOB = "social_nudge"

# Late runs within this window still fire (e.g. after a brief restart)
MISFIRE_GRACE_SECONDS = 300


@dataclass(frozen=True)
class NudgeSlot:
    job_id: str
    at: time

    @property
    def slot_id(self) -> str:
        return f"{self.job_id}_{self.at.hour:02d}{self.at.minute:02d}"


def nudge_slots(settings: Settings) -> list[NudgeSlot]:
    """All configured nudge slots in the scheduler's time zone."""
    slots = [NudgeSlot(STUDY_NUDGE_JOB, parse_hhmm(t)) for t in settings.study_nudge_times]
    slots += [NudgeSlot(SOCIAL_NUDGE_JOB, parse_hhmm(t)) for t in settings.social_nudge_times]
    return slots
