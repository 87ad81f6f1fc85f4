from sqlalchemy.orm import DeclarativeBase
from utils.models.annotated_types import (
    StringPrimaryKeyType,
    NullableStringType,
    UpdatedAtType,
)


class Base(DeclarativeBase):
    pass


# One row per (indexer, event type). Sui event queries are paginated per Move
# event type, so each type keeps its own resumption point.
class IndexerCursor(Base):
    __tablename__ = "indexer_cursors"

    indexer_name: StringPrimaryKeyType
    event_type: StringPrimaryKeyType
    last_tx_digest: NullableStringType
    last_event_seq: NullableStringType
    updated_at: UpdatedAtType
