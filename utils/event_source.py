import logging

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional
from utils.sui_client import SuiClient, SuiEvent, SuiEventId, EventPage
from utils.config import DEFAULT_PAGE_SIZE


def get_event_timestamp_ms(event: SuiEvent) -> int:
    return int(event.get("timestampMs") or 0)


def get_event_sort_key(event: SuiEvent) -> tuple[int, int]:
    event_id = event.get("id") or {}
    return get_event_timestamp_ms(event), int(event_id.get("eventSeq") or 0)


@dataclass
class EventBatch:
    # Ascending by timestamp across all event types
    events: List[SuiEvent]
    # Cursor per event type pointing at the last event included in `events`
    cursors: Dict[str, Optional[SuiEventId]]
    # Cursors the batch was fetched from
    start_cursors: Dict[str, Optional[SuiEventId]] = field(default_factory=dict)
    # Included events per event type, in fullnode order
    events_by_type: Dict[str, List[SuiEvent]] = field(default_factory=dict)

    def get_cursors_before(self, event_id: SuiEventId) -> Dict[str, Optional[SuiEventId]]:
        """Cursors that make the next fetch start again at `event_id`.

        Every event ordered at or after `event_id` in this batch is fetched
        again, so replaying keeps the batch order across event types.
        """
        event_ids = [event["id"] for event in self.events]
        if event_id not in event_ids:
            return dict(self.cursors)
        replayed_ids = event_ids[event_ids.index(event_id) :]

        cursors = dict(self.start_cursors)
        for event_type, events in self.events_by_type.items():
            for event in events:
                if event["id"] in replayed_ids:
                    break
                cursors[event_type] = event["id"]
        return cursors


class MarketplaceEventSource:
    """Fetches one page per Move event type and merges them into one batch.

    The fullnode only paginates per event type, so there is no merged cursor.
    When a type has more pages pending, events of other types newer than that
    type's last fetched event are held back until the lagging type catches up.
    The cursors of the returned batch only cover events that were included.
    """

    def __init__(
        self,
        client: SuiClient,
        event_types: Mapping[str, str],
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        self.client = client
        # Short event name -> fully qualified Move event type
        self.event_types = dict(event_types)
        self.page_size = page_size

    def fetch_events(
        self, cursors: Mapping[str, Optional[SuiEventId]]
    ) -> EventBatch:
        pages: Dict[str, EventPage] = {}
        for event_type, move_event_type in self.event_types.items():
            pages[event_type] = self.client.query_events(
                move_event_type,
                cursor=cursors.get(event_type),
                limit=self.page_size,
            )

        low_watermark = self.get_low_watermark(pages)
        start_cursors: Dict[str, Optional[SuiEventId]] = {
            event_type: cursors.get(event_type) for event_type in self.event_types
        }
        next_cursors = dict(start_cursors)
        events_by_type: Dict[str, List[SuiEvent]] = {
            event_type: [] for event_type in self.event_types
        }
        events: List[SuiEvent] = []
        num_held_back = 0
        for event_type, page in pages.items():
            for event in page["data"]:
                if (
                    low_watermark is not None
                    and get_event_timestamp_ms(event) > low_watermark
                ):
                    num_held_back += 1
                    continue
                events.append(event)
                events_by_type[event_type].append(event)
                next_cursors[event_type] = event["id"]

        if num_held_back:
            logging.info(
                "[EventSource] Holding back events newer than a lagging event type",
                extra={
                    "low_watermark": low_watermark,
                    "num_held_back": num_held_back,
                },
            )

        events.sort(key=get_event_sort_key)
        return EventBatch(
            events=events,
            cursors=next_cursors,
            start_cursors=start_cursors,
            events_by_type=events_by_type,
        )

    @staticmethod
    def get_low_watermark(pages: Mapping[str, EventPage]) -> Optional[int]:
        watermark = None
        for page in pages.values():
            if not page["hasNextPage"] or not page["data"]:
                continue
            last_timestamp = get_event_timestamp_ms(page["data"][-1])
            watermark = (
                last_timestamp if watermark is None else min(watermark, last_timestamp)
            )
        return watermark
