"""
Location Agent for Continuum
Resolves the scene location of a generated response through an ordered
chain of strategies, falling back to the previously known location.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from ..config import PipelineConfig
from ..prompts import LOCATOR_PROMPT_TEMPLATE, NO_LOCATION_SENTINEL
from .base import BaseAgent, LLMClient

logger = logging.getLogger(__name__)

LOCATION_LABEL = re.compile(r"^\s*(?:\*\*)?Location:(?:\*\*)?[ \t]*(.+)")


class LocationSource(str, Enum):
    EXPLICIT = "explicit"
    INFERRED = "inferred"
    PREVIOUS = "previous"


@dataclass
class LocationResolution:
    location: Optional[str]
    source: LocationSource


class LocationStrategy(ABC):
    """One way of reading a location out of generated text."""

    source: LocationSource

    @abstractmethod
    async def extract(self, text: str, run_id: str = "") -> Optional[str]:
        pass


class ExplicitLocationStrategy(LocationStrategy):
    """A literal 'Location:' label at the very start of the text."""

    source = LocationSource.EXPLICIT

    async def extract(self, text: str, run_id: str = "") -> Optional[str]:
        match = LOCATION_LABEL.match(text)
        if not match:
            return None
        location = match.group(1).strip().strip("*").strip()
        return location or None


class InferredLocationStrategy(BaseAgent, LocationStrategy):
    """Ask a model to read the location from the header lines."""

    source = LocationSource.INFERRED

    def __init__(self, llm_client: LLMClient, config: Optional[PipelineConfig] = None):
        super().__init__(name="Locator", llm_client=llm_client)
        self.config = config or PipelineConfig()

    async def extract(self, text: str, run_id: str = "") -> Optional[str]:
        header = "\n".join(text.split("\n")[: self.config.location_header_lines])
        prompt = LOCATOR_PROMPT_TEMPLATE.format(sentinel=NO_LOCATION_SENTINEL, header=header)

        response = await self.generate_with_logging(
            prompt,
            run_id=run_id,
            temperature=0.0,
            action="extract_location",
        )
        if response.blocked:
            return None

        location = response.text.strip().strip("\"'`").strip()
        if location == NO_LOCATION_SENTINEL or len(location) <= self.config.min_location_length:
            return None
        return location


class LocationTracker:
    """
    Ordered fallback chain. The first strategy that yields a location wins;
    a strategy that raises is skipped.
    """

    def __init__(self, strategies: Sequence[LocationStrategy]):
        self.strategies: List[LocationStrategy] = list(strategies)

    @classmethod
    def default(cls, llm_client: LLMClient, config: Optional[PipelineConfig] = None) -> "LocationTracker":
        return cls([ExplicitLocationStrategy(), InferredLocationStrategy(llm_client, config)])

    @property
    def agents(self) -> List[BaseAgent]:
        return [strategy for strategy in self.strategies if isinstance(strategy, BaseAgent)]

    async def resolve(
        self,
        text: str,
        previous_location: Optional[str] = None,
        run_id: str = "",
    ) -> LocationResolution:
        if text.strip():
            for strategy in self.strategies:
                try:
                    location = await strategy.extract(text, run_id=run_id)
                except Exception as e:
                    logger.warning(f"[LocationTracker] {strategy.source.value} strategy failed: {e}")
                    continue
                if location:
                    return LocationResolution(location=location, source=strategy.source)

        return LocationResolution(location=previous_location, source=LocationSource.PREVIOUS)

    async def extract_location(
        self,
        text: str,
        previous_location: Optional[str] = None,
        run_id: str = "",
    ) -> Optional[str]:
        resolution = await self.resolve(text, previous_location, run_id=run_id)
        logger.info(f"[LocationTracker] Location \"{resolution.location}\" ({resolution.source.value})")
        return resolution.location
