"""Per-run resolution state."""

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Set

from .collector import CoordinateCollector
from .locator import DescriptorLocator
from .pom_models import Diagnostic

logger = logging.getLogger(__name__)


class ProgressSink:
    """Receives progress reports and carries the cancellation flag.

    ``cancel()`` may be called from any thread; the resolver polls
    ``is_cancelled()`` between descriptors and stops with whatever it has
    collected so far. Subclasses override ``report`` to forward progress to
    a UI.
    """

    def __init__(self):
        self._cancelled = threading.Event()

    def report(self, fraction: float, status: str) -> None:
        logger.debug("[%3.0f%%] %s", fraction * 100, status)

    def cancel(self) -> None:
        self._cancelled.set()

    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()


@dataclass
class ResolutionContext:
    """Everything one resolution run shares across descriptors.

    Attributes:
        locator: The local repository being read.
        collector: Output store.
        visited: ``group:artifact:version`` keys already expanded; a GAV is
            added before its descriptor is processed, which is what stops
            cycles.
        seen_descriptors: Descriptor files already resolved as roots.
        diagnostics: Everything that was skipped, with the reason.
        progress: Progress and cancellation channel.
    """
    locator: DescriptorLocator
    collector: CoordinateCollector = field(default_factory=CoordinateCollector)
    visited: Set[str] = field(default_factory=set)
    seen_descriptors: Set[Path] = field(default_factory=set)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    progress: ProgressSink = field(default_factory=ProgressSink)

    @classmethod
    def for_repository(cls, repo_root: Path, progress: Optional[ProgressSink] = None) -> "ResolutionContext":
        return cls(locator=DescriptorLocator(repo_root), progress=progress or ProgressSink())

    @property
    def repo_root(self) -> Path:
        return self.locator.repo_root

    @property
    def cancelled(self) -> bool:
        return self.progress.is_cancelled()

    def record(self, kind: str, subject: str, message: str) -> None:
        self.diagnostics.append(Diagnostic(kind, subject, message))
