"""Read-modify-write of generation records with bounded compare-and-swap retries."""

import logging
from collections.abc import Callable
from uuid import UUID

from tripgen.app.db.repositories import GenerationRepository, StaleRecordError
from tripgen.app.models.generation import GenerationRecord
from tripgen.app.orchestration.errors import NotFoundError

logger = logging.getLogger(__name__)

CAS_MAX_ATTEMPTS = 3

RecordMutation = Callable[[GenerationRecord], GenerationRecord | None]


async def mutate_record(
    generations: GenerationRepository,
    trip_id: UUID,
    mutate: RecordMutation,
    *,
    max_attempts: int = CAS_MAX_ATTEMPTS,
) -> GenerationRecord:
    """Apply ``mutate`` to the freshest record and save it.

    ``mutate`` is re-applied to a re-read record whenever the save loses a
    race. It may raise to abort, or return None to leave the record as is.

    Returns:
        The saved record (or the unchanged fresh record)

    Raises:
        NotFoundError: If the trip has no generation record
        StaleRecordError: If every attempt lost its race
    """
    for attempt in range(1, max_attempts + 1):
        record = await generations.get(trip_id)
        if record is None:
            raise NotFoundError(f"No generation record for trip {trip_id}")

        updated = mutate(record)
        if updated is None:
            return record

        try:
            return await generations.save(updated)
        except StaleRecordError:
            if attempt == max_attempts:
                raise
            logger.info(
                f"Generation record changed concurrently, re-reading (attempt {attempt})",
                extra={"structured": {"trip_id": str(trip_id), "attempt": attempt}},
            )

    raise StaleRecordError(f"generation record for {trip_id} kept changing")
