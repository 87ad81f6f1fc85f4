import logging
import threading

from enum import Enum
from prometheus_client.twisted import MetricsResource
from processors.sui_nft_marketplace.processor import SuiNFTMarketplaceProcessor
from time import perf_counter
from twisted.internet import reactor
from twisted.web.resource import Resource
from twisted.web.server import Site
from typing import Optional
from utils.config import Config, DEFAULT_POLL_INTERVAL_MS
from utils.event_source import MarketplaceEventSource
from utils.events_processor import EventsProcessor, ProcessingResult
from utils.metrics import FAILED_POLL_CYCLES_COUNTER, LAST_BATCH_SIZE
from utils.models.general_models import Base
from utils.processor_name import ProcessorName
from utils.session import Session, create_db_engine
from utils.sui_client import SuiClient

PROCESSOR_SERVICE_TYPE = "processor"


class PollerState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class EventPoller:
    """Single worker that fetches a batch, processes it and sleeps.

    Only one cycle runs at a time. Any error raised by a cycle is logged and
    the next cycle starts after the usual interval; there is no backoff.
    Events that failed to project are fetched again by the next cycle.
    `stop` lets the running cycle finish and cuts the following sleep short.
    """

    def __init__(
        self,
        processor: EventsProcessor,
        event_source: MarketplaceEventSource,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
    ):
        self.processor = processor
        self.event_source = event_source
        self.poll_interval_ms = poll_interval_ms
        self._state = PollerState.STOPPED
        # Guards `_state` and `_thread`; only the poller's own methods take it
        self._state_lock = threading.Lock()
        self._wake_up = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> PollerState:
        return self._state

    def start(self) -> None:
        with self._state_lock:
            if self._state == PollerState.RUNNING:
                logging.info(
                    "[Indexer] Indexer already running",
                    extra={
                        "processor_name": self.processor.name(),
                        "service_type": PROCESSOR_SERVICE_TYPE,
                    },
                )
                return

            self._state = PollerState.RUNNING
            self._wake_up.clear()
            logging.info(
                "[Indexer] Starting event indexer",
                extra={
                    "processor_name": self.processor.name(),
                    "poll_interval_ms": self.poll_interval_ms,
                    "service_type": PROCESSOR_SERVICE_TYPE,
                },
            )
            # A loop that is still finishing its last cycle picks the new state up
            if self._thread is None:
                self._thread = threading.Thread(
                    target=self._run_loop,
                    name=f"{self.processor.name()}-poller",
                    daemon=True,
                )
                self._thread.start()

    def stop(self) -> None:
        with self._state_lock:
            if self._state == PollerState.STOPPED:
                return
            logging.info(
                "[Indexer] Stopping indexer",
                extra={
                    "processor_name": self.processor.name(),
                    "service_type": PROCESSOR_SERVICE_TYPE,
                },
            )
            self._state = PollerState.STOPPED
            self._wake_up.set()

    def join(self, timeout: Optional[float] = None) -> None:
        thread = self._thread
        if thread is not None:
            thread.join(timeout)

    def _should_continue(self) -> bool:
        with self._state_lock:
            if self._state == PollerState.RUNNING:
                return True
            self._thread = None
            return False

    def _run_loop(self) -> None:
        while self._should_continue():
            try:
                self.run_cycle()
            except Exception as e:
                logging.exception(
                    "[Indexer] Error in poll cycle",
                    extra={
                        "processor_name": self.processor.name(),
                        "error": str(e),
                        "service_type": PROCESSOR_SERVICE_TYPE,
                    },
                )
                FAILED_POLL_CYCLES_COUNTER.labels(
                    processor_name=self.processor.name()
                ).inc()

            self._wake_up.wait(self.poll_interval_ms / 1000)

        logging.info(
            "[Indexer] Indexer stopped",
            extra={
                "processor_name": self.processor.name(),
                "service_type": PROCESSOR_SERVICE_TYPE,
            },
        )

    # Fetch, process and persist the cursors of one batch
    def run_cycle(self) -> ProcessingResult:
        processor_name = self.processor.name()
        start_time = perf_counter()

        cursor_state = self.processor.get_cursor_state()
        batch = self.event_source.fetch_events(cursor_state.cursors)
        LAST_BATCH_SIZE.labels(processor_name=processor_name).set(len(batch.events))
        if not batch.events:
            logging.debug(
                "[Indexer] No new events",
                extra={
                    "processor_name": processor_name,
                    "service_type": PROCESSOR_SERVICE_TYPE,
                },
            )
            return ProcessingResult()

        logging.info(
            "[Indexer] Processing events",
            extra={
                "processor_name": processor_name,
                "num_of_events": len(batch.events),
                "service_type": PROCESSOR_SERVICE_TYPE,
                "step": "1",
            },
        )
        processing_result = self.processor.process_events(batch.events)
        cursors = batch.cursors
        if processing_result.failed_event_ids:
            # Fetch the first failed event again next cycle, writes are idempotent
            first_failed_event_id = processing_result.failed_event_ids[0]
            cursors = batch.get_cursors_before(first_failed_event_id)
            logging.warning(
                "[Indexer] Events failed, cursors held back to retry them",
                extra={
                    "processor_name": processor_name,
                    "num_failed": processing_result.num_failed,
                    "first_failed_event_id": first_failed_event_id,
                    "service_type": PROCESSOR_SERVICE_TYPE,
                },
            )
        self.processor.update_cursor_state(cursors)

        logging.info(
            "[Indexer] Finished processing batch of events",
            extra={
                "processor_name": processor_name,
                "num_of_events": processing_result.num_events,
                "num_processed": processing_result.num_processed,
                "num_skipped": processing_result.num_skipped,
                "num_failed": processing_result.num_failed,
                "start_timestamp_ms": processing_result.start_timestamp_ms,
                "end_timestamp_ms": processing_result.end_timestamp_ms,
                "processing_duration_in_secs": str(
                    format(processing_result.processing_duration_in_secs, ".8f")
                ),
                "duration_in_secs": str(format(perf_counter() - start_time, ".8f")),
                "service_type": PROCESSOR_SERVICE_TYPE,
                "step": "2",
            },
        )
        return processing_result


class IndexerProcessorServer:
    config: Config

    def __init__(self, config: Config):
        self.config = config
        server_config = self.config.server_config
        processor_config = server_config.processor_config
        logging.info(
            "[Indexer] Kicking off",
            extra={
                "processor_name": processor_config.type,
                "rpc_url": server_config.get_rpc_url(),
                "package_id": processor_config.package_id,
                "marketplace_id": processor_config.marketplace_id,
                "service_type": PROCESSOR_SERVICE_TYPE,
            },
        )

        self.sui_client = SuiClient(
            server_config.get_rpc_url(),
            timeout_secs=server_config.request_timeout_secs,
        )

        # Instantiate the correct processor based on config
        match processor_config.type:
            case ProcessorName.SUI_NFT_MARKETPLACE_PROCESSOR.value:
                self.processor = SuiNFTMarketplaceProcessor(
                    processor_config, self.sui_client
                )
            case _:
                raise Exception(
                    "Invalid processor name"
                    "\n[ERROR]: The specified processor name was invalid or not found.\n"
                    "         - If you are using a custom processor, make sure to add it to the ProcessorName enum in utils/processor_name.py.\n"
                    "         - Ensure the IndexerProcessorServer constructor in utils/worker.py uses the new enum value.\n"
                )

        self.event_source = MarketplaceEventSource(
            self.sui_client,
            self.processor.event_types(),
            page_size=server_config.page_size,
        )
        self.poller = EventPoller(
            self.processor,
            self.event_source,
            poll_interval_ms=server_config.poll_interval_ms,
        )

    def run(self) -> None:
        # Run DB migrations
        logging.info(
            "[Indexer] Initializing DB tables",
            extra={
                "processor_name": self.processor.name(),
                "service_type": PROCESSOR_SERVICE_TYPE,
            },
        )
        self.init_db_tables()
        logging.info(
            "[Indexer] DB tables initialized",
            extra={
                "processor_name": self.processor.name(),
                "service_type": PROCESSOR_SERVICE_TYPE,
            },
        )

        self.start_health_and_monitoring_ports()

        cursor_state = self.processor.get_cursor_state()
        logging.info(
            "[Indexer] Resuming from cursors",
            extra={
                "processor_name": self.processor.name(),
                "cursors": cursor_state.cursors,
                "cursors_updated_at": cursor_state.updated_at,
                "service_type": PROCESSOR_SERVICE_TYPE,
            },
        )

        self.poller.start()
        self.poller.join()

    def stop(self) -> None:
        self.poller.stop()

    def init_db_tables(self) -> None:
        engine = create_db_engine(self.config.server_config.db_connection_uri)
        Session.configure(bind=engine)
        Base.metadata.create_all(engine, checkfirst=True)

    def start_health_and_monitoring_ports(self) -> None:
        # Start the health + metrics server.
        def start_health_server() -> None:
            # The kubelet uses liveness probes to know when to restart a container. In cases where the
            # container is crashing or unresponsive, the kubelet receives timeout or error responses, and then
            # restarts the container. It polls every 10 seconds by default.
            root = Resource()
            root.putChild(b"metrics", MetricsResource())  # type: ignore

            class ServerOk(Resource):
                isLeaf = True

                def render_GET(self, request):
                    return b"ok"

            root.putChild(b"", ServerOk())  # type: ignore
            factory = Site(root)
            reactor.listenTCP(self.config.health_check_port, factory)  # type: ignore
            reactor.run(installSignalHandlers=False)  # type: ignore

        t = threading.Thread(target=start_health_server, daemon=True)
        t.start()
