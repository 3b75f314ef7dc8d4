"""
Usage telemetry for Taskloom.

Computes token counts and cost for a successful call and hands the record
to one or more sinks. Telemetry is best-effort: nothing here raises to the
caller.
"""

import json
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from taskloom.providers.cost import CostTable, calculate_cost
from taskloom.providers.models import SessionUsage, TelemetryRecord

logger = logging.getLogger(__name__)


class TelemetrySink(Protocol):
    """Destination for telemetry records."""

    def emit(self, record: TelemetryRecord) -> None: ...


class LoggingTelemetrySink:
    """Writes records to the ``taskloom.telemetry`` logger."""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self._logger = logging.getLogger("taskloom.telemetry")

    def emit(self, record: TelemetryRecord) -> None:
        level = logging.INFO if self.debug else logging.DEBUG
        self._logger.log(level, f"AI usage telemetry: {record.to_dict()}")


class JsonlTelemetrySink:
    """Appends records to a JSON Lines file, one object per line."""

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()

    def emit(self, record: TelemetryRecord) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record.to_dict()) + "\n")

    def read_records(self) -> list[dict]:
        """Read back all records (used by the CLI and tests)."""
        if not self.path.exists():
            return []
        with open(self.path, encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TelemetryRecorder:
    """
    Builds telemetry records and emits them to sinks.

    Also keeps a per-model aggregate of everything recorded through this
    instance, for session summaries.
    """

    def __init__(
        self,
        cost_table: CostTable | None = None,
        sinks: list[TelemetrySink] | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.cost_table = cost_table or CostTable()
        self.sinks: list[TelemetrySink] = list(sinks) if sinks is not None else []
        self.clock = clock
        self.session_usage: dict[str, SessionUsage] = {}

    def record(
        self,
        *,
        user_id: str,
        command_name: str | None,
        provider_name: str,
        model_id: str,
        input_tokens: int | None,
        output_tokens: int | None,
        output_type: str = "cli",
    ) -> TelemetryRecord | None:
        """
        Build and emit a usage record.

        Returns:
            The record, or None if it could not be built.
        """
        try:
            input_tokens = input_tokens or 0
            output_tokens = output_tokens or 0
            cost = self.cost_table.lookup(provider_name, model_id)

            record = TelemetryRecord(
                timestamp=self.clock(),
                user_id=user_id,
                command_name=command_name,
                model_used=model_id,
                provider_name=provider_name,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                total_tokens=input_tokens + output_tokens,
                total_cost=calculate_cost(cost, input_tokens, output_tokens),
                currency=cost.currency,
            )
        except Exception as e:
            logger.error(f"Failed to log AI usage telemetry: {e}")
            return None

        self.session_usage.setdefault(model_id, SessionUsage(model=model_id)).add(record)
        logger.debug(
            f"Recorded usage for {provider_name}/{model_id} ({output_type}): "
            f"{record.input_tokens} in, {record.output_tokens} out, "
            f"{record.total_cost:.6f} {record.currency}"
        )

        for sink in self.sinks:
            try:
                sink.emit(record)
            except Exception as e:
                logger.error(f"Telemetry sink {type(sink).__name__} failed: {e}")

        return record

    @property
    def total_cost(self) -> float:
        return sum(u.total_cost for u in self.session_usage.values())

    @property
    def total_tokens(self) -> int:
        return sum(u.input_tokens + u.output_tokens for u in self.session_usage.values())

    def session_summary(self) -> dict:
        """Aggregate usage of this recorder, totals plus a per-model breakdown."""
        return {
            "total_cost": round(self.total_cost, 6),
            "total_tokens": self.total_tokens,
            "request_count": sum(u.request_count for u in self.session_usage.values()),
            "by_model": {
                model: {
                    "input_tokens": usage.input_tokens,
                    "output_tokens": usage.output_tokens,
                    "cost": round(usage.total_cost, 6),
                    "requests": usage.request_count,
                }
                for model, usage in self.session_usage.items()
            },
        }

    def reset(self) -> None:
        self.session_usage.clear()
