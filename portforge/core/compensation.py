"""Compensating actions for external resources created during a run."""
from dataclasses import dataclass
from typing import Callable, List

from portforge.core.logger import get_logger

logger = get_logger(__name__)


@dataclass
class Compensation:
    description: str
    action: Callable[[], object]


class CompensationStack:
    """Undo log for a pipeline run.

    Each stage that creates something outside this machine (an uploaded
    object, a repository, a Vercel project) registers the inverse action.
    ``unwind`` runs them newest first.
    """

    def __init__(self):
        self._actions: List[Compensation] = []

    def __len__(self) -> int:
        return len(self._actions)

    @property
    def descriptions(self) -> List[str]:
        return [c.description for c in self._actions]

    def register(self, description: str, action: Callable[[], object]) -> None:
        """Record how to undo a resource that was just created."""
        self._actions.append(Compensation(description, action))
        logger.debug(f"Registered compensation: {description}")

    def clear(self) -> None:
        self._actions.clear()

    def unwind(self) -> List[str]:
        """Run registered compensations in reverse order.

        A failing compensation is logged and skipped so the remaining ones
        still run.

        Returns:
            Descriptions of compensations that failed
        """
        failed = []
        while self._actions:
            compensation = self._actions.pop()
            logger.warning(f"Rolling back: {compensation.description}")
            try:
                compensation.action()
            except Exception as e:
                logger.error(f"Rollback step failed ({compensation.description}): {e}")
                failed.append(compensation.description)

        if failed:
            logger.warning("Rollback completed with errors")
        else:
            logger.info("Rollback complete")
        return failed
