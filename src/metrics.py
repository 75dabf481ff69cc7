from dataclasses import dataclass
from datetime import datetime

import pandas as pd


@dataclass
class ProxyStat:
    """
    Running counters for one proxy endpoint.

    Fields:
        attempts    : Requests issued through this endpoint.
        successes   : Attempts that returned usable HTML.
        failures    : Attempts that failed (bad status, empty body, network
                      error or timeout).
        last_used   : UTC timestamp of the most recent attempt/outcome.
    """
    attempts: int = 0
    successes: int = 0
    failures: int = 0
    last_used: datetime | None = None

    @property
    def success_rate(self) -> float:
        return self.successes / self.attempts if self.attempts else 0.0

    def as_dict(self) -> dict:
        return {
            "attempts": self.attempts,
            "successes": self.successes,
            "failures": self.failures,
            "last_used": self.last_used,
            "success_rate": self.success_rate,
        }


def stats_frame(stats: dict[str, dict]) -> pd.DataFrame:
    """
    Tabulate a `ProxyRetrievalEngine.get_stats()` mapping, one row per
    endpoint in the order endpoints were first tried.
    """
    columns = ["endpoint", "attempts", "successes", "failures", "success_rate", "last_used"]
    rows = [{"endpoint": endpoint_id, **values} for endpoint_id, values in stats.items()]
    return pd.DataFrame(rows, columns=columns)
