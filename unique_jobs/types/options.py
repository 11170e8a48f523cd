"""
Uniqueness option types.

`UniquenessOptions` is what a job type declares; `UniquenessConfig` is
the resolved form handed to the coordinator, with named filters already
turned into callables and defaults applied.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from unique_jobs.constants import DEFAULT_EXPIRATION_SECONDS

# Maps the full argument list to the reduced value used for fingerprinting
ArgsFilter = Callable[[list[Any]], Any]


class UniquenessOptions(BaseModel):
    """
    Declared uniqueness options for a job type.
    Unset fields fall back to request overrides or global defaults.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", arbitrary_types_allowed=True)

    unique: bool | None = None
    unique_expiration_seconds: int | None = Field(default=None, gt=0)
    unique_args_filter: str | Callable[..., Any] | None = None
    unique_on_all_queues: bool | None = None
    unique_checks_retry_queue: bool | None = None


@dataclass(frozen=True)
class UniquenessConfig:
    """Resolved uniqueness configuration for one decision."""

    enabled: bool = False
    expiration_seconds: int = DEFAULT_EXPIRATION_SECONDS
    args_filter: ArgsFilter | None = None
    on_all_queues: bool = False
    checks_retry_queue: bool = False

    @classmethod
    def disabled(cls) -> "UniquenessConfig":
        """Configuration that admits every request untouched."""
        return cls(enabled=False)
