"""
Constants and configuration for Kubestatus.

This module contains the configuration constants used throughout Kubestatus,
including time windows, health thresholds, scoring penalties and default
values for the CLI and HTTP server.

Constants are organized by category:
- Time windows: Event lookback and restart recency windows
- Health scoring: Thresholds and penalties used by the analyzer
- Collection: Log tail size, concurrency and masking rules
- Logging: Default log levels and environment variable names
- Server defaults: Default host and port configurations
- Kubernetes API: Metrics API group and version constants
"""

# Time windows (in seconds)
RECENT_RESTART_WINDOW_SECONDS = 300  # 5 minutes
EVENTS_WINDOW_REQUESTED_SECONDS = 3600  # 1 hour
EVENTS_WINDOW_DEFAULT_SECONDS = 300  # 5 minutes

# Health scoring thresholds (percent)
MEM_DEGRADED_PERCENT = 85
CPU_DEGRADED_PERCENT = 90
MEM_PROBLEMATIC_PERCENT = 90

# Health scoring penalties
SCORE_MAX = 100
SCORE_WAITING = 50
SCORE_UNKNOWN_STATE = 30
PENALTY_NONZERO_EXIT = 20
PENALTY_RECENT_RESTART = 25
PENALTY_READINESS = 15
PENALTY_HIGH_MEMORY = 20
PENALTY_HIGH_CPU = 15
POD_PENALTY_CRITICAL = 30
POD_PENALTY_DEGRADED = 15

# Collection
LOG_TAIL_LINES = 10
DEFAULT_MAX_WORKERS = 16
MASKED_VALUE = "***"
SENSITIVE_ENV_PATTERNS = ("PASSWORD", "SECRET", "KEY", "TOKEN", "PASS")

# Sorting and output
SORT_KEYS = ("name", "restarts", "cpu", "memory", "age")
DEFAULT_SORT_KEY = "name"
OUTPUT_FORMATS = ("json", "summary")
DEFAULT_OUTPUT_FORMAT = "summary"

# Logging
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_UVICORN_LOG_LEVEL = "info"
LOG_FORMAT = "[%(asctime)s] %(levelname)s %(message)s"

# Environment variables
ENV_LOG_LEVEL = "KUBESTATUS_LOG_LEVEL"
ENV_MAX_WORKERS = "KUBESTATUS_MAX_WORKERS"
ENV_HOST = "KUBESTATUS_HOST"
ENV_PORT = "KUBESTATUS_PORT"
ENV_UVICORN_LEVEL = "KUBESTATUS_UVICORN_LEVEL"

# Server defaults
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8080

# Kubernetes API
METRICS_API_GROUP = "metrics.k8s.io"
METRICS_API_VERSION = "v1beta1"
METRICS_API_PLURAL = "pods"
DEFAULT_NAMESPACE = "default"
