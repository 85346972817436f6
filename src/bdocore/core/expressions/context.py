"""Evaluation context and system values.

System values are recomputed every time a context is built: ``NOW`` and
``TODAY`` depend on the clock, so a context is meant for one evaluation
pass and then discarded.
"""

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Callable, Mapping

SYSTEM_NOW = "NOW"
SYSTEM_TODAY = "TODAY"
SYSTEM_CURRENT_USER = "CURRENT_USER"

Clock = Callable[[], datetime]


def _local_now() -> datetime:
    return datetime.now().astimezone()


def anonymous_user() -> dict[str, Any]:
    """User record used when no authenticated user is supplied."""
    return {"Id": "", "Email": "", "FirstName": "", "LastName": ""}


def get_system_values(
    current_user: Mapping[str, Any] | None = None,
    clock: Clock | None = None,
) -> dict[str, Any]:
    """Compute the ambient values available to expressions.

    Args:
        current_user: The authenticated user record. This module never
            fetches it; callers pass what their auth layer provides.
        clock: Returns the current instant. Defaults to local time.

    Returns:
        Mapping with NOW (current instant), TODAY (NOW at local midnight)
        and CURRENT_USER.
    """
    now = (clock or _local_now)()
    return {
        SYSTEM_NOW: now,
        SYSTEM_TODAY: now.replace(hour=0, minute=0, second=0, microsecond=0),
        SYSTEM_CURRENT_USER: dict(current_user) if current_user is not None else anonymous_user(),
    }


@dataclass(frozen=True)
class EvaluationContext:
    """Form values plus system values for one evaluation pass.

    Both mappings are read-only snapshots taken at construction.
    """

    form_values: Mapping[str, Any] = field(default_factory=dict)
    system_values: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "form_values", MappingProxyType(dict(self.form_values)))
        object.__setattr__(self, "system_values", MappingProxyType(dict(self.system_values)))

    @classmethod
    def create(
        cls,
        form_values: Mapping[str, Any] | None = None,
        current_user: Mapping[str, Any] | None = None,
        clock: Clock | None = None,
    ) -> "EvaluationContext":
        """Build a context with freshly computed system values."""
        return cls(
            form_values=form_values or {},
            system_values=get_system_values(current_user, clock),
        )
