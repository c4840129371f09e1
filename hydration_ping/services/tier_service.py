"""Plan tier capability flags."""

from __future__ import annotations

from dataclasses import dataclass

from hydration_ping.core.config import get_pro_schedule_limit

TIERS = ("free", "pro")
FREE_SCHEDULE_LIMIT = 1


class TierLimitError(PermissionError):
    """Raised when an action needs a capability the user's tier does not grant."""


@dataclass(frozen=True)
class Capabilities:
    max_schedules: int
    sms_enabled: bool


def capabilities_for_tier(tier: str | None) -> Capabilities:
    # 日本語: 不明なプランは free 扱い / English: Unknown tiers get free capabilities
    if tier == "pro":
        return Capabilities(max_schedules=get_pro_schedule_limit(), sms_enabled=True)
    return Capabilities(max_schedules=FREE_SCHEDULE_LIMIT, sms_enabled=False)


def ensure_can_add_schedule(tier: str | None, existing_count: int) -> None:
    capabilities = capabilities_for_tier(tier)
    if existing_count >= capabilities.max_schedules:
        if tier == "pro":
            raise TierLimitError(f"The pro plan supports up to {capabilities.max_schedules} schedules.")
        raise TierLimitError("The free plan supports one schedule.")


def ensure_sms_enabled(tier: str | None) -> None:
    if not capabilities_for_tier(tier).sms_enabled:
        raise TierLimitError("SMS features are only available to Pro users.")


__all__ = [
    "TIERS",
    "FREE_SCHEDULE_LIMIT",
    "TierLimitError",
    "Capabilities",
    "capabilities_for_tier",
    "ensure_can_add_schedule",
    "ensure_sms_enabled",
]
