"""Aggregated delivery counters returned by fan-out operations."""

from __future__ import annotations

from dataclasses import dataclass, field

from .notification_event import Channel


@dataclass
class ChannelTally:
    """Number of successful and failed attempts on one channel."""

    sent: int = 0
    failed: int = 0

    def record(self, success: bool) -> None:
        if success:
            self.sent += 1
        else:
            self.failed += 1

    def add(self, other: "ChannelTally") -> None:
        self.sent += other.sent
        self.failed += other.failed

    def to_dict(self) -> dict[str, int]:
        return {"sent": self.sent, "failed": self.failed}


@dataclass
class DeliveryResult:
    """Per-channel counts for one dispatched event."""

    push: ChannelTally = field(default_factory=ChannelTally)
    line: ChannelTally = field(default_factory=ChannelTally)
    in_app: ChannelTally = field(default_factory=ChannelTally)

    def tally(self, channel: Channel) -> ChannelTally:
        return getattr(self, channel.value)

    def add(self, other: "DeliveryResult") -> None:
        for channel in Channel:
            self.tally(channel).add(other.tally(channel))

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {channel.value: self.tally(channel).to_dict() for channel in Channel}


@dataclass
class DigestResult:
    """Daily digest counts broken down by audience."""

    stock: DeliveryResult = field(default_factory=DeliveryResult)
    cs: DeliveryResult = field(default_factory=DeliveryResult)
    dentist: DeliveryResult = field(default_factory=DeliveryResult)

    def summary(self) -> str:
        """Return a one-line description of external deliveries per audience."""

        parts = []
        for label, result in (("Stock", self.stock), ("CS", self.cs), ("Dentist", self.dentist)):
            sent = result.push.sent + result.line.sent
            parts.append(f"{label}: {sent} sent")
        return ", ".join(parts)

    def to_dict(self) -> dict[str, dict[str, dict[str, int]]]:
        return {
            "stock": self.stock.to_dict(),
            "cs": self.cs.to_dict(),
            "dentist": self.dentist.to_dict(),
        }


__all__ = ["ChannelTally", "DeliveryResult", "DigestResult"]
