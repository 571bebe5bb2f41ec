"""
Prometheus metrics service for monitoring and observability
"""
from prometheus_client import Counter, Histogram, CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST
from loguru import logger

# Create a custom registry to avoid conflicts
registry = CollectorRegistry()

# =================================
# Context pack metrics
# =================================

# Pack creation counter
context_packs_created_total = Counter(
    'context_packs_created_total',
    'Total context packs created',
    registry=registry
)

# Items per created pack
context_pack_items = Histogram(
    'context_pack_items',
    'Items stored per context pack',
    buckets=[1, 5, 10, 25, 50, 100, 200, 400],
    registry=registry
)

# Preview reads that degraded to an empty preview
context_pack_preview_failures_total = Counter(
    'context_pack_preview_failures_total',
    'Item previews that could not be read',
    registry=registry
)

# Reference expansions
context_pack_expansions_total = Counter(
    'context_pack_expansions_total',
    'Context pack reference expansions',
    ['status'],  # status: expanded/missing
    registry=registry
)

# =================================
# Send guard metrics
# =================================

send_guard_runs_total = Counter(
    'send_guard_runs_total',
    'Send guard passes',
    ['inline_context'],  # true/false
    registry=registry
)

send_failures_total = Counter(
    'send_failures_total',
    'Wrapped send calls that raised',
    ['provider'],
    registry=registry
)


class MetricsService:
    """Service for managing Prometheus metrics"""

    def __init__(self):
        self.registry = registry
        logger.debug("Metrics service initialized")

    def get_metrics(self) -> bytes:
        """
        Generate Prometheus metrics in text format

        Returns:
            bytes: Metrics in Prometheus text format
        """
        return generate_latest(self.registry)

    def get_content_type(self) -> str:
        return CONTENT_TYPE_LATEST

    @staticmethod
    def record_pack_created(item_count: int, preview_failures: int):
        """Track context pack creation"""
        context_packs_created_total.inc()
        context_pack_items.observe(item_count)
        if preview_failures:
            context_pack_preview_failures_total.inc(preview_failures)

    @staticmethod
    def record_expansion(expanded: int, missing: int):
        """Track expanded and missing references"""
        if expanded:
            context_pack_expansions_total.labels(status="expanded").inc(expanded)
        if missing:
            context_pack_expansions_total.labels(status="missing").inc(missing)

    @staticmethod
    def record_guard_run(inline_context: bool):
        send_guard_runs_total.labels(inline_context=str(inline_context).lower()).inc()

    @staticmethod
    def record_send_failure(provider: str):
        send_failures_total.labels(provider=provider or "unknown").inc()


metrics_service = MetricsService()
