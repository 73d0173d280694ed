"""Score listing and best-time merging on top of a key-value tree."""
from typing import Any, Callable, List, Optional
import logging
import math
import time

from pydantic import ValidationError as PydanticValidationError

from scoreboard.database import KeyValueTree, join_path, split_path
from scoreboard.errors import StoreError, ValidationError
from scoreboard.models import (
    COURSES,
    DEFAULT_COURSE,
    ScoreRecord,
    ScoreSubmission,
    SortDirection,
    coerce_time,
)
from scoreboard.services.keys import canonical_key, display_name, normalize_device

logger = logging.getLogger(__name__)


def epoch_millis() -> int:
    return int(time.time() * 1000)


def parse_record(key: str, raw: Any) -> ScoreRecord:
    """Build a ScoreRecord from the value stored at /scores/<key>."""
    if not isinstance(raw, dict):
        raise StoreError(f"Score record {key!r} is not an object")
    data = dict(raw)
    # The storage location is the source of truth for the key
    data["key"] = key
    try:
        return ScoreRecord.model_validate(data)
    except PydanticValidationError as e:
        raise StoreError(f"Score record {key!r} is malformed: {e}") from e


def merge_best_times(existing: dict, submission: ScoreSubmission) -> dict:
    """
    Merge course times per slot.

    A finite submitted time replaces the prior one only when it is lower.
    A missing or non-finite submitted time keeps the prior one. Slots that
    were never set stay absent.
    """
    merged = {}
    for course in COURSES:
        submitted = submission.time_for(course)
        prior = coerce_time(existing.get(course))
        if submitted is not None:
            merged[course] = submitted if prior is None else min(prior, submitted)
        elif prior is not None:
            merged[course] = prior
    return merged


class ScoreStore:
    """
    Leaderboard over a KeyValueTree.

    Records live at <root>/<canonical key>. submit() reads the current record
    and writes the merged one back without any transaction, so two concurrent
    submissions for the same player race and the later write wins.
    """

    def __init__(
        self,
        tree: KeyValueTree,
        root: str = "/scores",
        clock: Callable[[], int] = epoch_millis,
    ):
        self.tree = tree
        self.root = join_path(split_path(root))
        self.clock = clock

    def record_path(self, key: str) -> str:
        return f"{self.root}/{key}"

    async def list_scores(
        self,
        course: str = DEFAULT_COURSE,
        direction: Optional[str] = SortDirection.ASC,
    ) -> List[ScoreRecord]:
        """
        Return every record sorted by one course's time.

        Records without a time for the course sort as +infinity: last when
        ascending, first when descending. Ties keep ascending key order.
        Unknown courses fall back to c1; any direction other than "desc" is
        ascending.
        """
        if course not in COURSES:
            course = DEFAULT_COURSE
        descending = direction == SortDirection.DESC

        data = await self.tree.get(self.root)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise StoreError(f"Score collection at {self.root} is not an object")

        records = [parse_record(key, raw) for key, raw in data.items()]
        records.sort(key=lambda record: record.key)

        def course_time(record: ScoreRecord) -> float:
            value = record.time_for(course)
            return math.inf if value is None else value

        records.sort(key=course_time, reverse=descending)
        return records

    async def submit(self, submission: ScoreSubmission) -> ScoreRecord:
        """
        Merge a submission into the player's record and persist it.

        Raises ValidationError before any store access when the name is
        missing or has no letters or digits to build a key from.
        """
        raw_name = submission.name or ""
        if not raw_name.strip():
            raise ValidationError("Missing name")
        key = canonical_key(raw_name)
        if not key:
            raise ValidationError("Name must contain at least one letter or digit")

        path = self.record_path(key)
        existing = await self.tree.get(path)
        if existing is None:
            existing = {}
        if not isinstance(existing, dict):
            raise StoreError(f"Score record {key!r} is not an object")

        record = ScoreRecord(
            key=key,
            name=display_name(raw_name),
            device=normalize_device(submission.device),
            updated_at=self.clock(),
            **merge_best_times(existing, submission),
        )
        await self.tree.set(path, record.to_stored())
        logger.debug("[STORE] Saved %s", path)
        return record
