"""
Processor interface shared by the CLI and the scheduler.
"""

from abc import ABC, abstractmethod


class BaseProcessor(ABC):
    """A mailbox pipeline that can be run once on demand."""

    @abstractmethod
    def process(self) -> dict:
        """
        Run one pass over the mailbox.

        Returns:
            Counters for the pass, e.g. {"processed": 3, "skipped": 9}
        """
        pass
