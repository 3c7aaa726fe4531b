from prometheus_client import Counter, Gauge, Histogram


class HoldChatMetrics:
    """
    Hold & Chat Core Metrics Collector

    Tracks lease lifecycle, conversation traffic and live-channel fan-out
    """

    def __init__(self):
        # ========== Lease Metrics ==========
        self.lease_requests = Counter(
            'lease_requests_total',
            'Total lease creation requests',
            ['duration_minutes', 'result'],  # result: created/conflict
        )

        self.lease_transitions = Counter(
            'lease_transitions_total',
            'Lease state transitions',
            ['to_status', 'source'],  # source: holder/timer/sweep/read
        )

        self.active_leases = Gauge('active_leases_gauge', 'Leases currently active')

        # ========== Conversation Metrics ==========
        self.sessions_created = Counter(
            'conversation_sessions_created_total', 'Conversation sessions created'
        )

        self.messages_posted = Counter(
            'conversation_messages_posted_total',
            'Messages appended to conversation sessions',
            ['delivered'],  # delivered: true/false at post time
        )

        self.sessions_expired = Counter(
            'conversation_sessions_expired_total', 'Sessions moved to read-only by retention'
        )

        # ========== Live Channel Metrics ==========
        self.live_events = Counter(
            'live_events_total', 'Live events fanned out', ['event_type', 'result']
        )

        self.live_connections = Gauge('live_connections_gauge', 'Open live channel connections')

        # ========== Store Metrics ==========
        self.store_operation_duration = Histogram(
            'store_operation_duration_seconds',
            'In-process store operation duration',
            ['store', 'operation'],
            buckets=[0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.0],
        )

    # ========== Helper Methods ==========

    def record_lease_request(self, *, duration_minutes: int, result: str):
        self.lease_requests.labels(duration_minutes=str(duration_minutes), result=result).inc()
        if result == 'created':
            self.active_leases.inc()

    def record_lease_transition(self, *, to_status: str, source: str):
        self.lease_transitions.labels(to_status=to_status, source=source).inc()
        self.active_leases.dec()

    def record_message_posted(self, *, delivered: bool):
        self.messages_posted.labels(delivered=str(delivered).lower()).inc()

    def record_live_event(self, *, event_type: str, delivered: int, dropped: int):
        if delivered:
            self.live_events.labels(event_type=event_type, result='delivered').inc(delivered)
        if dropped:
            self.live_events.labels(event_type=event_type, result='dropped').inc(dropped)

    def record_store_operation(self, *, store: str, operation: str, duration: float):
        self.store_operation_duration.labels(store=store, operation=operation).observe(duration)


# Global metrics instance
metrics = HoldChatMetrics()
