"""Directory scanning for descriptors and binaries.

Used when no project model is available: every descriptor found under the
given directories becomes a root, and every artifact seen along the way has
its other locally cached versions resolved too.
"""

import logging
from collections import deque
from pathlib import Path
from typing import Iterable, List, Optional

from .config import DEFAULT_SKIP_DIRS
from .context import ResolutionContext
from .locator import DescriptorLocator
from .resolver import GraphResolver

logger = logging.getLogger(__name__)


def _is_descriptor(path: Path) -> bool:
    return path.name == "pom.xml" or path.suffix == ".pom"


class BatchDirectoryScanner:
    """Breadth-first scanner over project or repository directories.

    Args:
        locator: Repository used to anchor relative roots and to enumerate
            cached versions.
        resolver: Resolver the found descriptors are fed to.
        skip_dirs: Directory names never descended into. Hidden directories
            are always skipped.
    """

    def __init__(self, locator: DescriptorLocator, resolver: Optional[GraphResolver] = None,
                 skip_dirs: Iterable[str] = DEFAULT_SKIP_DIRS):
        self.locator = locator
        self.resolver = resolver or GraphResolver(locator)
        self.skip_dirs = frozenset(skip_dirs)

    def scan(self, root_dirs: Iterable[Path]) -> List[Path]:
        """Collect candidate descriptors under ``root_dirs``.

        Binaries are mapped to their sibling descriptor
        (``foo-1.0.jar`` -> ``foo-1.0.pom``); a binary without one is skipped.
        Relative roots are taken relative to the repository root.

        Returns:
            Descriptor paths in breadth-first discovery order, without duplicates.
        """
        found = {}
        for root in root_dirs:
            root = Path(root)
            if not root.is_absolute():
                root = self.locator.repo_root / root
            if not root.is_dir():
                logger.warning("Scan root %s is not a directory, skipping", root)
                continue
            queue = deque([root])
            while queue:
                current = queue.popleft()
                try:
                    entries = sorted(current.iterdir())
                except OSError as e:
                    logger.warning("Cannot list %s: %s", current, e)
                    continue
                for entry in entries:
                    if entry.is_dir():
                        if entry.name.startswith(".") or entry.name in self.skip_dirs:
                            continue
                        queue.append(entry)
                    elif _is_descriptor(entry):
                        found.setdefault(entry.resolve(), entry)
                    elif entry.suffix == ".jar":
                        sibling = entry.with_suffix(".pom")
                        if sibling.is_file():
                            found.setdefault(sibling.resolve(), sibling)
                        else:
                            logger.debug("No descriptor next to %s, skipping", entry)
        logger.info("Scan found %d descriptor(s)", len(found))
        return list(found.values())

    def resolve(self, root_dirs: Iterable[Path], context: ResolutionContext,
                expand_versions: bool = True) -> None:
        """Scan ``root_dirs`` and resolve everything found into ``context``.

        With ``expand_versions`` every version directory cached for an
        artifact seen during resolution is resolved as well, so versions no
        descriptor asks for still show up.
        """
        descriptors = self.scan(root_dirs)
        self.resolver.resolve_all(descriptors, context)
        if not expand_versions or context.cancelled:
            return

        extra = []
        for group_id, artifact_id in context.collector.observed_artifacts():
            for version_dir in self.locator.version_dirs(group_id, artifact_id):
                for pom in sorted(version_dir.glob("*.pom")):
                    if pom.resolve() not in context.seen_descriptors:
                        extra.append(pom)
        if extra:
            logger.info("Resolving %d additional cached version(s)", len(extra))
            self.resolver.resolve_all(extra, context)
