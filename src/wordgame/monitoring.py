"""Monitoring configuration for the word game data layer."""
from prometheus_client import Counter, Gauge, start_http_server

# Learning metrics
answers_recorded = Counter(
    "wordgame_answers_total",
    "Total number of answers recorded for words",
    ["outcome"],
)

words_tracked = Gauge(
    "wordgame_words_tracked",
    "Number of words with learning statistics",
)

game_records_saved = Counter(
    "wordgame_game_records_total",
    "Total number of completed game sessions recorded",
)

# Backup metrics
data_exports = Counter(
    "wordgame_exports_total",
    "Total number of data exports produced",
)

data_imports = Counter(
    "wordgame_imports_total",
    "Total number of data import attempts",
    ["result"],
)

data_resets = Counter(
    "wordgame_resets_total",
    "Total number of reset requests",
    ["result"],
)

# Storage metrics
storage_errors = Counter(
    "wordgame_storage_errors_total",
    "Total number of storage backend errors",
    ["operation"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
