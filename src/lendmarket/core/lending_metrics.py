"""
Lending Marketplace Metrics for LendMarket

Prometheus metrics for listing lifecycle transitions, revenue distribution
and failed operations.
"""

from prometheus_client import REGISTRY, Counter, Gauge


class LendingMetrics:
    """Metrics for lending operations."""

    def __init__(self, registry=None):
        self.registry = registry or REGISTRY

        # Lifecycle metrics
        self.listings_created = Counter(
            'lendmarket_listings_created_total',
            'Total number of listings created',
            registry=self.registry
        )

        self.listings_agreed = Counter(
            'lendmarket_listings_agreed_total',
            'Total number of listings matched by a borrower',
            registry=self.registry
        )

        self.listings_canceled = Counter(
            'lendmarket_listings_canceled_total',
            'Total number of listings canceled',
            registry=self.registry
        )

        self.listings_completed = Counter(
            'lendmarket_listings_completed_total',
            'Total number of loans ended',
            ['ended_by'],
            registry=self.registry
        )

        self.upfront_fees = Counter(
            'lendmarket_upfront_fees_total',
            'Upfront fees paid by borrowers in base units',
            registry=self.registry
        )

        # Revenue metrics
        self.revenue_claims = Counter(
            'lendmarket_revenue_claims_total',
            'Total number of revenue claims',
            registry=self.registry
        )

        self.revenue_distributed = Counter(
            'lendmarket_revenue_distributed_total',
            'Revenue distributed in base units',
            ['token', 'party'],
            registry=self.registry
        )

        # Failure metrics
        self.operation_failures = Counter(
            'lendmarket_operation_failures_total',
            'Lending operations aborted',
            ['operation', 'error'],
            registry=self.registry
        )

        # Index gauges
        self.active_listings = Gauge(
            'lendmarket_active_listings',
            'Listings currently in each status bucket',
            ['status'],
            registry=self.registry
        )

    def record_created(self):
        self.listings_created.inc()

    def record_agreed(self, initial_cost: int):
        self.listings_agreed.inc()
        if initial_cost:
            self.upfront_fees.inc(initial_cost)

    def record_canceled(self):
        self.listings_canceled.inc()

    def record_completed(self, ended_by: str):
        self.listings_completed.labels(ended_by=ended_by).inc()

    def record_claim(self, payouts):
        """Record one claim and every transfer it made."""
        self.revenue_claims.inc()
        for payout in payouts:
            for party, amount in payout.amounts().items():
                if amount:
                    self.revenue_distributed.labels(token=payout.token, party=party).inc(amount)

    def record_failure(self, operation: str, error: Exception):
        self.operation_failures.labels(
            operation=operation, error=type(error).__name__
        ).inc()

    def set_active_listings(self, status: str, count: int):
        self.active_listings.labels(status=status).set(count)
