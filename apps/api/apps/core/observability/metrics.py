"""
Metrics instrumentation (Prometheus client).

All application counters and histograms live on a single registry object so
call sites read as ``metrics.<name>.labels(...).inc()``.
"""
import logging
import time
from functools import wraps

from prometheus_client import Counter, Gauge, Histogram

logger = logging.getLogger(__name__)


class MetricsRegistry:
    """
    Central metrics registry for the clinic lifecycle API.

    Provides typed access to all application metrics.
    """

    def __init__(self):
        self._setup_metrics()

    def _create_counter(self, name, description, labels=None):
        return Counter(name, description, labels or [])

    def _create_histogram(self, name, description, labels=None, buckets=None):
        if buckets:
            return Histogram(name, description, labels or [], buckets=buckets)
        return Histogram(name, description, labels or [])

    def _create_gauge(self, name, description, labels=None):
        return Gauge(name, description, labels or [])

    def _setup_metrics(self):
        """Setup all application metrics."""

        # ===================================================================
        # HTTP Metrics
        # ===================================================================
        self.http_requests_total = self._create_counter(
            'http_requests_total',
            'Total HTTP requests',
            ['path', 'method', 'status']
        )

        self.http_request_duration_seconds = self._create_histogram(
            'http_request_duration_seconds',
            'HTTP request duration in seconds',
            ['path', 'method'],
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
        )

        self.exceptions_total = self._create_counter(
            'exceptions_total',
            'Total exceptions',
            ['exception_type', 'location']
        )

        # ===================================================================
        # Patient lifecycle Metrics
        # ===================================================================
        self.patient_status_transition_total = self._create_counter(
            'patient_status_transition_total',
            'Patient status transitions',
            ['from_status', 'to_status', 'channel', 'result']  # result: success|rejected
        )

        self.patient_audit_log_created_total = self._create_counter(
            'patient_audit_log_created_total',
            'Patient audit log entries created',
            ['action']
        )

        # ===================================================================
        # Discharge Metrics
        # ===================================================================
        self.discharge_evaluations_total = self._create_counter(
            'discharge_evaluations_total',
            'Discharge criteria evaluations',
            ['eligible']  # true|false
        )

        self.discharge_evaluation_duration_seconds = self._create_histogram(
            'discharge_evaluation_duration_seconds',
            'Duration of a discharge criteria evaluation',
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
        )

        self.auto_discharge_total = self._create_counter(
            'auto_discharge_total',
            'Auto-discharge attempts',
            ['result']  # success|invalid_state|conflict|forbidden
        )

        self.discharge_requests_total = self._create_counter(
            'discharge_requests_total',
            'Discharge requests created',
            ['result']
        )

        self.discharge_request_reviews_total = self._create_counter(
            'discharge_request_reviews_total',
            'Discharge request reviews',
            ['decision', 'result']  # decision: approved|denied
        )

        self.discharge_request_conflicts_total = self._create_counter(
            'discharge_request_conflicts_total',
            'Concurrent review attempts that lost the pending -> reviewed race'
        )

        # ===================================================================
        # Notification Metrics
        # ===================================================================
        self.notifications_created_total = self._create_counter(
            'notifications_created_total',
            'In-app notifications created',
            ['type']
        )

        self.notification_delivery_failures_total = self._create_counter(
            'notification_delivery_failures_total',
            'Notification receivers or email tasks that failed',
            ['stage']  # receiver|email
        )

    def track_duration(self, histogram_metric):
        """
        Decorator to track function duration.

        Usage:
            @metrics.track_duration(metrics.discharge_evaluation_duration_seconds)
            def evaluate_discharge(patient_id):
                ...
        """
        def decorator(func):
            @wraps(func)
            def wrapper(*args, **kwargs):
                start_time = time.time()
                try:
                    return func(*args, **kwargs)
                finally:
                    histogram_metric.observe(time.time() - start_time)
            return wrapper
        return decorator


# Global metrics instance
metrics = MetricsRegistry()
