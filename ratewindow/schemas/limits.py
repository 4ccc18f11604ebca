"""Pydantic schemas for quota specs, check options and verdicts."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

VerdictReason = Literal["limit", "skipped", "allowlisted", "denylisted", "blocked"]


class WindowSpec(BaseModel):
    """Quota definition: at most ``limit`` admitted requests per ``window_ms``, per key."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    limit: int = Field(
        ...,
        ge=1,
        description="Maximum admitted requests per window.",
    )
    window_ms: int = Field(
        ...,
        ge=1,
        description="Window length in milliseconds.",
    )


class CheckOptions(BaseModel):
    """Per-call policy flags evaluated by the caller."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    dry_run: bool = Field(
        default=False,
        description="Count the request and compute the verdict, but never report it as blocked.",
    )
    skip: bool = Field(
        default=False,
        description="Bypass the check entirely; the store is not touched.",
    )


class Verdict(BaseModel):
    """Allow/deny decision plus the quota metadata a response renderer needs."""

    model_config = ConfigDict(frozen=True)

    allowed: bool = Field(
        ..., description="Whether the request may proceed."
    )
    limit: int = Field(
        ..., ge=1, description="Configured requests per window."
    )
    remaining: int = Field(
        ..., ge=0, description="Requests left in the current window (0 when blocked)."
    )
    reset_at: int = Field(
        ..., description="Epoch milliseconds at which the current window ends."
    )
    current: int | float = Field(
        ...,
        description=(
            "Effective request count used for the decision: an integer for fixed "
            "windows, a weighted estimate for sliding windows."
        ),
    )
    reason: VerdictReason = Field(
        default="limit",
        description="Why the verdict was produced (normal check or a short-circuit).",
    )
    retry_after_ms: int | None = Field(
        default=None,
        ge=0,
        description="Suggested wait before retrying, set only when not allowed.",
    )
