from prometheus_client import Counter, Gauge

PROCESSED_EVENTS_COUNTER = Counter(
    "indexer_processor_processed_events",
    "Number of events projected into the database",
    ["processor_name", "event_type"],
)

FAILED_EVENTS_COUNTER = Counter(
    "indexer_processor_failed_events",
    "Number of events that raised while being projected",
    ["processor_name"],
)

FAILED_POLL_CYCLES_COUNTER = Counter(
    "indexer_processor_failed_poll_cycles",
    "Number of poll cycles aborted by an error",
    ["processor_name"],
)

LATEST_PROCESSED_TIMESTAMP = Gauge(
    "indexer_processor_latest_event_timestamp_ms",
    "Timestamp of the latest processed event",
    ["processor_name"],
)

LAST_BATCH_SIZE = Gauge(
    "indexer_processor_last_batch_size",
    "Number of events fetched by the latest poll cycle",
    ["processor_name"],
)
