from __future__ import annotations

from abc import ABC, abstractmethod

from src.domain.models.realtime import VehicleRecord


class IFeedDecoder(ABC):
    """Port turning a raw payload into vehicle records (or raising `DecodeError`)."""

    @abstractmethod
    def decode(self, content: bytes) -> tuple[VehicleRecord, ...]:
        raise NotImplementedError
