"""Graph resolution: from root descriptors to a flat coordinate list.

Each root descriptor contributes every coordinate its effective model
mentions. Referenced coordinates whose descriptor is cached locally are then
expanded in turn (their parent, their BOM imports, their own runtime
dependencies) until nothing new is reachable.
"""

import logging
from collections import deque
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .config import DEFAULT_TRANSITIVE_SCOPES, CollectorSettings, get_settings
from .context import ProgressSink, ResolutionContext
from .effective_model import EffectiveModelBuilder
from .errors import DescriptorNotFound, DescriptorParseError, InvalidCoordinate, UnresolvedPlaceholder
from .locator import DescriptorLocator
from .pom_models import ArtifactCoordinate, Dependency, EffectiveModel, SourceType
from .pom_parser import read_descriptor
from .properties import DEFAULT_MAX_PASSES

logger = logging.getLogger(__name__)

PLUGIN_PACKAGING = "maven-plugin"

# Edges whose target descriptor is opened and followed further.
_EXPANDED_EDGES = {
    SourceType.PARENT,
    SourceType.BOM,
    SourceType.DEPENDENCY,
    SourceType.PLUGIN,
    SourceType.PLUGIN_DEP,
}


class GraphResolver:
    """Resolve root descriptors into a ``ResolutionContext``.

    Args:
        locator: Repository the referenced descriptors are read from.
        builder: Effective model builder; one is created for ``locator`` if omitted.
        transitive_scopes: Scopes followed when a referenced descriptor's own
            dependencies are expanded. Unscoped dependencies count as ``compile``.
        max_passes: Interpolation re-scan limit for the default builder.
    """

    def __init__(self, locator: DescriptorLocator, builder: Optional[EffectiveModelBuilder] = None,
                 transitive_scopes: Iterable[str] = DEFAULT_TRANSITIVE_SCOPES,
                 max_passes: int = DEFAULT_MAX_PASSES):
        self.locator = locator
        self.builder = builder or EffectiveModelBuilder(locator, max_passes)
        self.transitive_scopes = frozenset(transitive_scopes)

    def resolve_all(self, roots: Iterable[Path], context: ResolutionContext) -> None:
        """Resolve every root descriptor, and every module they declare, into ``context``.

        A failing descriptor is recorded in ``context.diagnostics`` and skipped.
        Cancellation is checked before each root; a cancelled run keeps what
        it has collected.

        Raises:
            RepositoryUnavailable: The repository root is not a directory.
        """
        self.locator.check_available()
        queue = deque(Path(r) for r in roots)
        total = len(queue)
        done = 0
        while queue:
            if context.cancelled:
                logger.info("Resolution cancelled with %d descriptor(s) left", len(queue))
                return
            path = queue.popleft()
            context.progress.report(done / total, f"Resolving {path}")
            try:
                modules = self.resolve_root(path, context)
            except OSError as e:
                logger.warning("Could not read %s: %s", path, e)
                context.record("io-error", str(path), str(e))
                modules = []
            queue.extend(modules)
            total += len(modules)
            done += 1
        context.progress.report(1.0, f"Collected {len(context.collector)} coordinates")

    def resolve_root(self, path: Path, context: ResolutionContext) -> List[Path]:
        """Resolve one root descriptor and expand everything it references.

        Returns:
            Descriptor paths of the modules the root declares, for the caller
            to resolve as further roots.
        """
        path = Path(path)
        key = path.resolve()
        if key in context.seen_descriptors:
            return []
        context.seen_descriptors.add(key)

        model = self.builder.build(path)
        if model is None:
            self._resolve_salvaged(path, context)
            return []
        if model.group_id and model.artifact_id and model.version:
            context.visited.add(model.gav)
        context.diagnostics.extend(model.dropped)

        edges = self._emit_model(model, context)
        self._expand(edges, context)
        return self._module_paths(model, path, context)

    def _emit_model(self, model: EffectiveModel, context: ResolutionContext) -> List[ArtifactCoordinate]:
        """Collect every coordinate a root model mentions; return those to expand."""
        emitted = [self._emit(context, SourceType.PROJECT, model.group_id, model.artifact_id,
                              model.version, packaging=model.packaging)]
        if model.parent is not None:
            emitted.append(self._emit(context, SourceType.PARENT, model.parent.group_id,
                                      model.parent.artifact_id, model.parent.version, packaging="pom"))
        for dep in model.dependencies:
            emitted.append(self._emit_dependency(context, SourceType.DEPENDENCY, dep))
        for dep in model.dependency_management:
            emitted.append(self._emit_dependency(context, SourceType.DEP_MANAGED, dep))
        for bom in model.bom_imports:
            emitted.append(self._emit(context, SourceType.BOM, bom.group_id, bom.artifact_id,
                                      bom.version, packaging="pom", scope=bom.scope))
        for source_type, plugins in ((SourceType.PLUGIN, model.plugins),
                                     (SourceType.PLUGIN_MANAGED, model.managed_plugins)):
            for plugin in plugins:
                emitted.append(self._emit(context, source_type, plugin.group_id, plugin.artifact_id,
                                          plugin.version, packaging=PLUGIN_PACKAGING))
                for dep in plugin.dependencies:
                    coord = self._emit_dependency(context, SourceType.PLUGIN_DEP, dep)
                    if source_type is SourceType.PLUGIN:
                        emitted.append(coord)
        return [c for c in emitted if c is not None and c.source_type in _EXPANDED_EDGES]

    def _expand(self, edges: Sequence[ArtifactCoordinate], context: ResolutionContext) -> None:
        """Depth-first expansion of referenced coordinates.

        A GAV is marked visited before its descriptor is built, so each one is
        expanded at most once however many edges lead to it.
        """
        stack = list(reversed(edges))
        while stack:
            if context.cancelled:
                return
            coord = stack.pop()
            if coord.gav in context.visited:
                continue
            pom = self.locator.pom_path_for(coord.group_id, coord.artifact_id, coord.version)
            if not pom.is_file():
                logger.debug("No local descriptor for %s, not expanding", coord.gav)
                continue
            context.visited.add(coord.gav)
            try:
                model = self.builder.build(pom)
            except OSError as e:
                logger.warning("Could not read %s: %s", pom, e)
                context.record("io-error", coord.gav, str(e))
                continue
            if model is None:
                stack.extend(self._salvaged_parent(pom, coord, context))
                continue
            context.diagnostics.extend(model.dropped)
            stack.extend(reversed(self._referenced(model, coord.source_type, context)))

    def _referenced(self, model: EffectiveModel, edge: SourceType,
                    context: ResolutionContext) -> List[ArtifactCoordinate]:
        """Coordinates contributed by a descriptor reached through ``edge``.

        A parent's content is already part of the child's model, so a parent
        edge only contributes the next parent up.
        """
        found = []
        if model.parent is not None:
            found.append(self._emit(context, SourceType.PARENT, model.parent.group_id,
                                    model.parent.artifact_id, model.parent.version, packaging="pom"))
        if edge is not SourceType.PARENT:
            for bom in model.bom_imports:
                found.append(self._emit(context, SourceType.BOM, bom.group_id, bom.artifact_id,
                                        bom.version, packaging="pom", scope=bom.scope))
            dep_source = (SourceType.PLUGIN_DEP if edge in (SourceType.PLUGIN, SourceType.PLUGIN_DEP)
                          else SourceType.DEPENDENCY)
            for dep in model.dependencies:
                if dep.optional or (dep.scope or "compile") not in self.transitive_scopes:
                    continue
                found.append(self._emit_dependency(context, dep_source, dep))
        return [c for c in found if c is not None]

    def _salvaged_parent(self, pom: Path, coord: ArtifactCoordinate,
                         context: ResolutionContext) -> List[ArtifactCoordinate]:
        """Parent edge of a referenced descriptor that could not be built."""
        raw = None
        try:
            read_descriptor(pom)
        except DescriptorParseError as e:
            raw = e.partial
        except DescriptorNotFound:
            logger.debug("Descriptor vanished: %s", pom)
        if raw is None or raw.parent is None:
            context.record("unreadable-descriptor", coord.gav, f"could not build {pom}")
            return []
        context.record("parse-error", coord.gav, "malformed, using salvaged parent")
        parent = self._emit(context, SourceType.PARENT, raw.parent.group_id,
                            raw.parent.artifact_id, raw.parent.version, packaging="pom")
        return [parent] if parent is not None else []

    def _resolve_salvaged(self, path: Path, context: ResolutionContext) -> None:
        """Fall back to whatever identity a broken root descriptor still yields."""
        try:
            raw = read_descriptor(path)
        except DescriptorNotFound:
            logger.warning("Root descriptor not found: %s", path)
            context.record("not-found", str(path), "descriptor does not exist")
            return
        except DescriptorParseError as e:
            raw = e.partial
            if raw is None:
                context.record("parse-error", str(path), str(e.cause))
                return
            context.record("parse-error", str(path), "malformed, using salvaged identity")

        parent = raw.parent
        edges = [self._emit(context, SourceType.PROJECT,
                            raw.group_id or (parent.group_id if parent else None),
                            raw.artifact_id,
                            raw.version or (parent.version if parent else None),
                            packaging=raw.packaging or "jar")]
        if parent is not None:
            edges.append(self._emit(context, SourceType.PARENT, parent.group_id,
                                    parent.artifact_id, parent.version, packaging="pom"))
        self._expand([c for c in edges if c is not None and c.source_type is SourceType.PARENT], context)

    def _module_paths(self, model: EffectiveModel, path: Path, context: ResolutionContext) -> List[Path]:
        paths = []
        for module in model.modules:
            module_path = path.parent / module
            if module_path.is_dir():
                module_path = module_path / "pom.xml"
            if not module_path.is_file():
                logger.warning("Module '%s' of %s has no pom.xml, skipping", module, path)
                context.record("missing-module", module, f"no descriptor at {module_path}")
                continue
            paths.append(module_path)
        return paths

    def _emit_dependency(self, context: ResolutionContext, source_type: SourceType,
                         dep: Dependency) -> Optional[ArtifactCoordinate]:
        return self._emit(context, source_type, dep.group_id, dep.artifact_id, dep.version,
                          packaging=dep.dep_type or "jar", classifier=dep.classifier, scope=dep.scope)

    @staticmethod
    def _emit(context: ResolutionContext, source_type: SourceType, group_id, artifact_id, version,
              packaging="jar", classifier=None, scope=None) -> Optional[ArtifactCoordinate]:
        """Validate and collect one coordinate.

        Returns:
            The coordinate (new or already collected), or ``None`` if it was
            invalid and dropped.
        """
        try:
            coord = ArtifactCoordinate(group_id, artifact_id, version, packaging, classifier,
                                       scope=scope, source_type=source_type)
        except InvalidCoordinate as e:
            logger.debug("Skipping %s coordinate %s: %s", source_type.value, e.subject, e)
            kind = "unresolved-placeholder" if isinstance(e, UnresolvedPlaceholder) else "missing-field"
            context.record(kind, e.subject or "", str(e))
            return None
        context.collector.add(coord)
        return coord


def collect_project(roots: Iterable[Path], repo_root: Optional[Path] = None,
                    progress: Optional[ProgressSink] = None,
                    settings: Optional[CollectorSettings] = None) -> ResolutionContext:
    """Resolve ``roots`` against a local repository in one call.

    Args:
        roots: Root descriptor paths (``pom.xml`` files).
        repo_root: Repository root; defaults to the configured one.
        progress: Optional progress and cancellation sink.
        settings: Settings to use instead of the environment-derived ones.

    Returns:
        The finished context; ``context.collector.to_list()`` is the result.
    """
    settings = settings or get_settings()
    context = ResolutionContext.for_repository(repo_root or settings.repository_root, progress)
    resolver = GraphResolver(context.locator, transitive_scopes=settings.transitive_scopes,
                             max_passes=settings.max_property_passes)
    resolver.resolve_all(roots, context)
    return context
