from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Mapping, Optional
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker
from utils.models.general_models import IndexerCursor
from utils.session import Session, insert_for
from utils.sui_client import SuiEvent, SuiEventId


@dataclass
class ProcessingResult:
    num_events: int = 0
    num_processed: int = 0
    num_skipped: int = 0
    num_failed: int = 0
    start_timestamp_ms: Optional[int] = None
    end_timestamp_ms: Optional[int] = None
    processing_duration_in_secs: float = 0.0
    # Ids of the events that raised, in batch order
    failed_event_ids: List[SuiEventId] = field(default_factory=list)


@dataclass
class CursorState:
    # Event type -> last processed event id, None when nothing was processed yet
    cursors: Dict[str, Optional[SuiEventId]] = field(default_factory=dict)
    updated_at: Optional[datetime] = None


class EventsProcessor(ABC):
    def __init__(self, session_factory: sessionmaker = Session):
        self.session_factory = session_factory

    # Name of the processor for status logging
    # This will get stored in the database next to each event type cursor
    @abstractmethod
    def name(self) -> str:
        pass

    # Short event name -> fully qualified Move event type this processor indexes
    @abstractmethod
    def event_types(self) -> Dict[str, str]:
        pass

    # Processes a batch of events in the given order.
    # A failing event must not fail the rest of the batch, it is reported in
    # `failed_event_ids` so the cursors can be held back before it.
    @abstractmethod
    def process_events(self, events: List[SuiEvent]) -> ProcessingResult:
        pass

    def get_cursor_state(self) -> CursorState:
        state = CursorState(cursors={event_type: None for event_type in self.event_types()})
        with self.session_factory() as session:
            rows = session.scalars(
                select(IndexerCursor).where(IndexerCursor.indexer_name == self.name())
            ).all()
        for row in rows:
            if row.event_type not in state.cursors or row.last_tx_digest is None:
                continue
            state.cursors[row.event_type] = {
                "txDigest": row.last_tx_digest,
                "eventSeq": row.last_event_seq or "0",
            }
            if state.updated_at is None or row.updated_at > state.updated_at:
                state.updated_at = row.updated_at
        return state

    def update_cursor_state(
        self, cursors: Mapping[str, Optional[SuiEventId]]
    ) -> None:
        values = [
            {
                "indexer_name": self.name(),
                "event_type": event_type,
                "last_tx_digest": cursor["txDigest"],
                "last_event_seq": str(cursor["eventSeq"]),
            }
            for event_type, cursor in sorted(cursors.items())
            if cursor is not None
        ]
        if not values:
            return

        with self.session_factory() as session, session.begin():
            insert_stmt = insert_for(session, IndexerCursor).values(values)
            on_conflict_do_update_stmt = insert_stmt.on_conflict_do_update(
                index_elements=["indexer_name", "event_type"],
                set_={
                    "last_tx_digest": insert_stmt.excluded.last_tx_digest,
                    "last_event_seq": insert_stmt.excluded.last_event_seq,
                    "updated_at": insert_stmt.excluded.updated_at,
                },
            )
            session.execute(on_conflict_do_update_stmt)
