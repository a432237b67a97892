"""Mock collaborators for the expiry automation runners."""

import asyncio

from models.notifications import ListingPayload, ListingResult, TaskResult


class RecordingTaskChannel:
    """Pharmacist channel that records calls and fails on chosen call numbers (1-based)."""

    def __init__(self, fail_on: set[int] | None = None, delay: float = 0.0):
        self.fail_on = fail_on or set()
        self.delay = delay
        self.calls: list[tuple[str, str]] = []

    async def send_task(self, pharmacist_id, message):
        self.calls.append((pharmacist_id, message))
        if self.delay:
            await asyncio.sleep(self.delay)
        if len(self.calls) in self.fail_on:
            raise ConnectionError("WhatsApp provider unreachable")
        return TaskResult(success=True, message_id=f"wha_{len(self.calls)}")


class RecordingListingChannel:
    def __init__(self, fail_on: set[int] | None = None):
        self.fail_on = fail_on or set()
        self.calls: list[ListingPayload] = []

    async def publish(self, payload):
        self.calls.append(payload)
        if len(self.calls) in self.fail_on:
            return ListingResult(success=False, error="map API returned 503")
        return ListingResult(success=True)


class FailingQueryStore:
    """Store whose classifier queries always fail."""

    def __init__(self):
        self.updates = []

    async def get_expiring_batches(self, max_days):
        raise ConnectionError("database unreachable")

    async def get_rotation_needed_batches(self, min_days, max_days):
        raise ConnectionError("database unreachable")

    async def update_batch_for_promotion(self, batch_id, *, is_promotional, selling_price):
        self.updates.append(batch_id)
        return None
