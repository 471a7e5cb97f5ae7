# src/pricewatch/infrastructure/monitoring/metrics.py
"""
Prometheus counters shared by the sweep, rule and dispatch paths.
Exposed over HTTP by interfaces/api/metrics.py.
"""

from prometheus_client import Counter, Histogram

ALERTS_FIRED = Counter("pw_alerts_fired_total", "Alerts fired by the rule evaluator", ["alert_type"])
ALERTS_SENT = Counter("pw_alerts_sent_total", "Alerts delivered to a user", ["alert_type"])
ALERTS_SUPPRESSED = Counter("pw_alerts_suppressed_total", "Alerts suppressed before delivery", ["reason"])
DELIVERY_FAILURES = Counter("pw_delivery_failures_total", "Failed notification attempts")

FETCH_FAILURES = Counter("pw_fetch_failures_total", "Price fetches that failed after retries")
STALE_OBSERVATIONS = Counter("pw_stale_observations_total", "Out-of-order price observations rejected")
SWEEPS = Counter("pw_sweeps_total", "Completed price sweeps")
SWEEP_DURATION = Histogram("pw_sweep_duration_seconds", "Wall time of one price sweep")
