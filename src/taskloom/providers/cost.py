"""
Cost table lookup for Taskloom.

Maps provider+model to per-token pricing from the model catalog.
"""

import logging

from taskloom.config.models import ModelMap, find_model, get_model_map
from taskloom.providers.models import CostEntry

logger = logging.getLogger(__name__)

ZERO_COST = CostEntry()


class CostTable:
    """Per-million-token pricing lookup. Unknown models cost nothing."""

    def __init__(self, model_map: ModelMap | None = None):
        """
        Args:
            model_map: Model catalog. Defaults to the shared catalog, loaded lazily.
        """
        self._model_map = model_map

    @property
    def model_map(self) -> ModelMap:
        if self._model_map is None:
            self._model_map = get_model_map()
        return self._model_map

    def lookup(self, provider: str, model_id: str) -> CostEntry:
        """
        Get pricing for a provider+model.

        Args:
            provider: Provider name.
            model_id: Model identifier.

        Returns:
            The cost entry; zero cost in USD when not in the catalog.
        """
        if provider.lower() not in self.model_map:
            logger.warning(
                f"Provider '{provider}' not found in model map. "
                f"Cannot determine cost for model {model_id}."
            )
            return ZERO_COST

        model = find_model(self.model_map, provider, model_id)
        if model is None or model.cost_per_1m_tokens is None:
            logger.debug(
                f"Cost data not found for model '{model_id}' under provider "
                f"'{provider}'. Assuming zero cost."
            )
            return ZERO_COST

        cost = model.cost_per_1m_tokens
        return CostEntry(
            input_cost_per_1m=cost.input or 0.0,
            output_cost_per_1m=cost.output or 0.0,
            currency=cost.currency or "USD",
        )


def calculate_cost(entry: CostEntry, input_tokens: int, output_tokens: int) -> float:
    """Total cost of a call, rounded to 6 decimal places."""
    total = (input_tokens / 1_000_000) * entry.input_cost_per_1m + (
        output_tokens / 1_000_000
    ) * entry.output_cost_per_1m
    return round(total, 6)
