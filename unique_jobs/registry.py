"""
Per-job-type uniqueness registry.

Job types declare their options once; named argument filters are
resolved into callables at registration so no name lookup happens on
the decision path. Invalid declarations never fail the caller: the job
type is registered with uniqueness disabled and a warning is logged.
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import ValidationError

from unique_jobs.config import Settings, get_settings
from unique_jobs.errors import ConfigurationError
from unique_jobs.types.job import JobRequest
from unique_jobs.types.options import ArgsFilter, UniquenessConfig, UniquenessOptions

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class _RegisteredJobType:
    options: UniquenessOptions
    args_filter: ArgsFilter | None
    valid: bool = True


def _spread(fn: Callable[..., Any]) -> ArgsFilter:
    """Adapt a named filter, which takes the arguments spread out."""

    def reducer(args: list[Any]) -> Any:
        return fn(*args)

    reducer.__name__ = getattr(fn, "__name__", "reducer")
    return reducer


def resolve_args_filter(
    job_type: str,
    args_filter: str | Callable[..., Any] | None,
    target: Any = None,
    filters: Mapping[str, Callable[..., Any]] | None = None,
) -> ArgsFilter | None:
    """
    Turn a declared argument filter into a reducer.

    Args:
        job_type: Job type the filter belongs to, for error messages.
        args_filter: A filter name, a callable taking the argument list, or None.
        target: Object whose attribute a named filter may be.
        filters: Explicit name -> function mapping, checked first.

    Returns:
        The reducer, or None for the identity filter.

    Raises:
        ConfigurationError: If a named filter cannot be found.
    """
    if args_filter is None:
        return None
    if callable(args_filter):
        return args_filter

    fn = (filters or {}).get(args_filter)
    if fn is None and target is not None:
        fn = getattr(target, args_filter, None)
    if fn is None or not callable(fn):
        raise ConfigurationError(
            f"Unknown args filter '{args_filter}' for job type '{job_type}'",
            job_type=job_type,
        )
    return _spread(fn)


class JobTypeRegistry:
    """
    Registry of uniqueness options keyed by job type.

    Boolean flags are enabled when either the job type or the request
    enables them; neither side can switch off what the other turned on.
    The retry queue check falls back to the global default in Settings
    only when neither side sets it. The expiration comes from the
    request, then the job type, then Settings.
    """

    def __init__(self, settings: Settings | None = None):
        """
        Initialize the registry.

        Args:
            settings: Global defaults. Uses cached settings if not provided.
        """
        self._settings = settings or get_settings()
        self._job_types: dict[str, _RegisteredJobType] = {}

    def register(
        self,
        job_type: str,
        options: UniquenessOptions | Mapping[str, Any] | None = None,
        target: Any = None,
        filters: Mapping[str, Callable[..., Any]] | None = None,
    ) -> bool:
        """
        Register uniqueness options for a job type.

        Args:
            job_type: Job type identifier.
            options: Declared options, as a model or a plain mapping.
            target: Object that named filters are looked up on.
            filters: Explicit name -> function mapping for named filters.

        Returns:
            True if the options were valid, False if uniqueness was
            disabled for the job type instead.
        """
        try:
            if options is None:
                parsed = UniquenessOptions()
            elif isinstance(options, UniquenessOptions):
                parsed = options
            else:
                parsed = UniquenessOptions.model_validate(dict(options))
            args_filter = resolve_args_filter(job_type, parsed.unique_args_filter, target, filters)
        except (ValidationError, ConfigurationError) as e:
            logger.warning(
                "Invalid uniqueness options, uniqueness disabled",
                extra={"job_type": job_type, "error": str(e)},
            )
            self._job_types[job_type] = _RegisteredJobType(
                options=UniquenessOptions(unique=False),
                args_filter=None,
                valid=False,
            )
            return False

        self._job_types[job_type] = _RegisteredJobType(options=parsed, args_filter=args_filter)
        logger.info(
            "Registered job type",
            extra={"job_type": job_type, "unique": bool(parsed.unique)},
        )
        return True

    def unique_job(self, job_type: str | None = None, **options: Any) -> Callable[[T], T]:
        """
        Decorator registering a job class or function.

        Named filters are looked up as attributes of the decorated object.

        Args:
            job_type: Job type identifier. Defaults to the object's __name__.
            **options: UniquenessOptions fields.
        """

        def decorator(target: T) -> T:
            name = job_type or getattr(target, "__name__")
            self.register(name, options, target=target)
            return target

        return decorator

    def unregister(self, job_type: str) -> None:
        """Remove a job type's options."""
        self._job_types.pop(job_type, None)

    def options_for(self, job_type: str) -> UniquenessOptions:
        """Get the declared options for a job type."""
        registered = self._job_types.get(job_type)
        return registered.options if registered else UniquenessOptions()

    def is_registered(self, job_type: str) -> bool:
        return job_type in self._job_types

    def resolve(self, request: JobRequest) -> UniquenessConfig:
        """
        Resolve the configuration that applies to a request.

        Args:
            request: The job request.

        Returns:
            UniquenessConfig: Merged configuration.
        """
        registered = self._job_types.get(request.job_type)
        if registered is not None and not registered.valid:
            return UniquenessConfig.disabled()

        options = registered.options if registered else UniquenessOptions()
        args_filter = registered.args_filter if registered else None

        if not (options.unique or request.unique):
            return UniquenessConfig.disabled()

        return UniquenessConfig(
            enabled=True,
            expiration_seconds=_first_set(
                request.unique_expiration_seconds,
                options.unique_expiration_seconds,
                self._settings.default_expiration_seconds,
            ),
            args_filter=args_filter,
            on_all_queues=bool(options.unique_on_all_queues),
            checks_retry_queue=self._checks_retry_queue(options, request),
        )

    def _checks_retry_queue(self, options: UniquenessOptions, request: JobRequest) -> bool:
        if options.unique_checks_retry_queue or request.unique_checks_retry_queue:
            return True
        if options.unique_checks_retry_queue is None and request.unique_checks_retry_queue is None:
            return self._settings.unique_checks_retry_queue
        return False


def _first_set(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None
