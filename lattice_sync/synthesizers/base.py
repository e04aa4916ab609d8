"""Shared behaviour of the per-kind synthesizers."""

from typing import Callable, Iterable, List, TypeVar

from ..cache import ReconciliationCache
from ..errors import FatalError, LatticeSyncError, SynthesisError
from ..logging import get_logger
from ..model import ResourceKind, Stack

logger = get_logger(__name__)

T = TypeVar("T")


class BaseSynthesizer:
    """Drives one manager across every resource of its kind in a stack.

    Parameters
    ----------
    manager:
        The manager for ``kind``, built for the same pass.
    stack:
        Desired state for the pass; statuses are written back onto it.
    cache:
        Reconciliation cache shared by every synthesizer of the pass.
    """

    kind: ResourceKind

    def __init__(self, manager, stack: Stack, cache: ReconciliationCache) -> None:
        self.manager = manager
        self.stack = stack
        self.cache = cache

    def synthesize(self) -> None:
        raise NotImplementedError

    def _for_each(self, items: Iterable[T], action: Callable[[T], None], label: str = "") -> List[LatticeSyncError]:
        """Apply ``action`` to every item, collecting failures instead of stopping.

        Returns the collected errors; ``_raise_collected`` turns them into the
        single error the deployer sees.
        """
        errors: List[LatticeSyncError] = []
        for item in items:
            try:
                action(item)
            except LatticeSyncError as e:
                logger.info(
                    "Resource failed to converge",
                    kind=self.kind.value,
                    phase=label or "synthesize",
                    resource=getattr(item, "id", str(item)),
                    error=str(e),
                )
                errors.append(e)
        return errors

    def _raise_collected(self, errors: List[LatticeSyncError]):
        """Raise the failures of a phase, if any.

        Fatal errors are raised as-is so they are never retried blindly;
        anything else becomes one ``SynthesisError``.
        """
        if not errors:
            return
        for err in errors:
            if isinstance(err, FatalError):
                raise err
        raise SynthesisError(self.kind.value, errors)
