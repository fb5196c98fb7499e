"""Effective model construction.

Walks a descriptor's parent chain, merges inherited declarations top-down
(parent first, child overrides), imports BOMs and interpolates every
version exactly once against the final property table.
"""

import dataclasses
import logging
from collections import OrderedDict
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .errors import DescriptorNotFound, DescriptorParseError
from .locator import DescriptorLocator
from .pom_models import (
    Declarations,
    Dependency,
    Diagnostic,
    EffectiveModel,
    ParentRef,
    Plugin,
    RawDescriptor,
)
from .pom_parser import is_bom_import, read_descriptor
from .properties import (
    DEFAULT_MAX_PASSES,
    builtin_properties,
    has_placeholder,
    lookup_plugin_version,
    resolve_properties,
)

logger = logging.getLogger(__name__)


def _overlay(inherited: Iterable, declared: Iterable, key: Callable, merge: Callable) -> list:
    """Merge two declaration lists, child entries overriding inherited ones with the same key.

    Inherited entries keep their position; new child entries are appended.
    """
    merged = OrderedDict()
    for item in inherited:
        merged[key(item)] = item
    for item in declared:
        k = key(item)
        merged[k] = merge(merged[k], item) if k in merged else item
    return list(merged.values())


def _merge_dependency(parent: Dependency, child: Dependency) -> Dependency:
    """Child fields win; fields the child leaves out are taken from the parent."""
    return dataclasses.replace(
        child,
        version=child.version or parent.version,
        scope=child.scope or parent.scope,
        classifier=child.classifier or parent.classifier,
        dep_type=child.dep_type or parent.dep_type,
    )


def _merge_plugin(parent: Plugin, child: Plugin) -> Plugin:
    return Plugin(
        group_id=child.group_id,
        artifact_id=child.artifact_id,
        version=child.version or parent.version,
        dependencies=_overlay(parent.dependencies, child.dependencies,
                              key=lambda d: d.ga, merge=_merge_dependency),
    )


def _ga(item) -> Tuple[str, str]:
    return item.ga


def _dependency_key(dep: Dependency):
    return dep.dependency_key


class EffectiveModelBuilder:
    """Build ``EffectiveModel`` instances from descriptors in one local repository.

    A builder caches the models it builds by descriptor path, so it should
    live no longer than one resolution run.

    Args:
        locator: Maps parent and BOM references to descriptor files.
        max_passes: Interpolation re-scan limit.
    """

    def __init__(self, locator: DescriptorLocator, max_passes: int = DEFAULT_MAX_PASSES):
        self.locator = locator
        self.max_passes = max_passes
        self._models: Dict[Path, EffectiveModel] = {}
        self._raws: Dict[Path, RawDescriptor] = {}

    def build(self, descriptor_path: Path) -> Optional[EffectiveModel]:
        """Build the effective model of a descriptor.

        A missing parent or BOM does not fail the build: the model is built
        without it and the omission is recorded in ``model.dropped``.

        Returns:
            The effective model, or ``None`` if the descriptor itself is
            missing or malformed (callers may fall back to
            ``DescriptorParseError.partial`` via ``read_descriptor``).
        """
        return self._build(Path(descriptor_path), ())

    def read(self, path: Path) -> RawDescriptor:
        """``read_descriptor`` with a per-builder cache. Errors are not cached."""
        key = path.resolve()
        raw = self._raws.get(key)
        if raw is None:
            raw = read_descriptor(path)
            self._raws[key] = raw
        return raw

    def _build(self, path: Path, chain: Tuple[Path, ...]) -> Optional[EffectiveModel]:
        key = path.resolve()
        if key in self._models:
            return self._models[key]
        try:
            raw = self.read(path)
        except DescriptorNotFound:
            logger.debug("Descriptor not found: %s", path)
            return None
        except DescriptorParseError as e:
            logger.warning("Descriptor could not be parsed: %s (%s)", path, e.cause)
            return None

        chain = chain + (key,)
        dropped: List[Diagnostic] = []
        parent_ref = self._interpolate_parent(raw, dropped)
        parent_model = None
        if parent_ref is not None and not has_placeholder(parent_ref.version):
            parent_model = self._build_parent(raw, parent_ref, chain, dropped)

        model = self._assemble(raw, parent_ref, parent_model, chain, dropped)
        self._models[key] = model
        logger.debug("Built effective model %s from %s (%d dependencies, %d plugins)",
                     model.gav, path, len(model.dependencies), len(model.plugins))
        return model

    def _interpolate_parent(self, raw: RawDescriptor, dropped: List[Diagnostic]) -> Optional[ParentRef]:
        """Resolve placeholders in the parent reference against the descriptor's own properties."""
        ref = raw.parent
        if ref is None:
            return None
        resolved = ParentRef(
            group_id=self._interpolate(ref.group_id, raw.properties),
            artifact_id=self._interpolate(ref.artifact_id, raw.properties),
            version=self._interpolate(ref.version, raw.properties),
            relative_path=ref.relative_path,
        )
        if has_placeholder(resolved.version):
            dropped.append(Diagnostic("unresolved-placeholder", f"{ref.group_id}:{ref.artifact_id}",
                                      f"parent version '{ref.version}' cannot be resolved"))
        return resolved

    def _build_parent(self, raw: RawDescriptor, ref: ParentRef, chain: Tuple[Path, ...],
                      dropped: List[Diagnostic]) -> Optional[EffectiveModel]:
        subject = f"{ref.group_id}:{ref.artifact_id}:{ref.version}"
        path = self._relative_parent(raw, ref)
        if path is None:
            path = self.locator.pom_path_for(ref.group_id, ref.artifact_id, ref.version)
        if not path.is_file():
            logger.warning("Parent %s of %s not found locally (%s), continuing without it",
                           subject, raw.path, path)
            dropped.append(Diagnostic("missing-parent", subject, f"not found at {path}"))
            return None
        if path.resolve() in chain:
            logger.warning("Parent cycle detected at %s, ignoring parent of %s", subject, raw.path)
            dropped.append(Diagnostic("cycle", subject, "parent chain loops back"))
            return None
        return self._build(path, chain)

    def _relative_parent(self, raw: RawDescriptor, ref: ParentRef) -> Optional[Path]:
        """The on-disk parent named by ``relativePath`` if it really is the referenced parent."""
        if raw.path is None or ref.relative_path == "":
            return None
        candidate = raw.path.parent / (ref.relative_path or "../pom.xml")
        if candidate.is_dir():
            candidate = candidate / "pom.xml"
        if not candidate.is_file():
            return None
        try:
            other = self.read(candidate)
        except (DescriptorNotFound, DescriptorParseError):
            return None
        group_id = other.group_id or (other.parent.group_id if other.parent else None)
        version = other.version or (other.parent.version if other.parent else None)
        if (other.artifact_id, group_id, version) == (ref.artifact_id, ref.group_id, ref.version):
            return candidate
        return None

    def _assemble(self, raw: RawDescriptor, parent_ref: Optional[ParentRef],
                  parent_model: Optional[EffectiveModel], chain: Tuple[Path, ...],
                  dropped: List[Diagnostic]) -> EffectiveModel:
        inherited = parent_model.declarations if parent_model else Declarations()
        declarations = Declarations(
            properties={**inherited.properties, **raw.properties},
            dependencies=_overlay(inherited.dependencies, raw.dependencies,
                                  key=_dependency_key, merge=_merge_dependency),
            dependency_management=_overlay(inherited.dependency_management, raw.dependency_management,
                                           key=_ga, merge=_merge_dependency),
            plugins=_overlay(inherited.plugins, raw.plugins, key=_ga, merge=_merge_plugin),
            managed_plugins=_overlay(inherited.managed_plugins, raw.managed_plugins,
                                     key=_ga, merge=_merge_plugin),
        )

        raw_group = raw.group_id or (parent_ref.group_id if parent_ref else None)
        raw_version = raw.version or (parent_ref.version if parent_ref else None)
        packaging = raw.packaging or "jar"
        table = dict(declarations.properties)
        for name, value in builtin_properties(raw_group, raw.artifact_id, raw_version,
                                              packaging, parent_ref).items():
            if name.startswith(("project.", "pom.")):
                table[name] = value
            else:
                table.setdefault(name, value)

        model = EffectiveModel(
            path=raw.path,
            group_id=self._interpolate(raw_group, table),
            artifact_id=self._interpolate(raw.artifact_id, table),
            version=self._interpolate(raw_version, table),
            packaging=self._interpolate(packaging, table),
            parent=parent_ref,
            properties=table,
            modules=list(raw.modules),
            declarations=declarations,
            dropped=dropped,
        )

        managed, model.bom_imports = self._resolve_management(declarations, table, chain, dropped)
        model.dependency_management = list(managed.values())
        model.dependencies = [
            dep for dep in (
                self._resolve_dependency(d, table, managed, "dependency", dropped)
                for d in declarations.dependencies
            ) if dep is not None
        ]
        model.managed_plugins, model.plugins = self._resolve_plugins(declarations, table, dropped)
        return model

    def _resolve_management(self, declarations: Declarations, table: Dict[str, str],
                            chain: Tuple[Path, ...], dropped: List[Diagnostic]):
        """Interpolate managed entries and merge imported BOM contents.

        Imported entries never override an entry that is declared locally or
        inherited; earlier imports win over later ones.
        """
        managed: "OrderedDict[Tuple[str, str], Dependency]" = OrderedDict()
        boms: List[Dependency] = []
        for entry in declarations.dependency_management:
            resolved = self._resolve_dependency(entry, table, None, "managed dependency", dropped)
            if resolved is None:
                continue
            if is_bom_import(resolved):
                boms.append(resolved)
            else:
                managed[resolved.ga] = resolved
        for bom in boms:
            for entry in self._import_bom(bom, chain, dropped):
                managed.setdefault(entry.ga, entry)
        return managed, boms

    def _import_bom(self, bom: Dependency, chain: Tuple[Path, ...],
                    dropped: List[Diagnostic]) -> List[Dependency]:
        subject = f"{bom.group_id}:{bom.artifact_id}:{bom.version}"
        path = self.locator.pom_path_for(bom.group_id, bom.artifact_id, bom.version)
        if not path.is_file():
            logger.warning("BOM %s not found locally (%s), its managed versions are unavailable",
                           subject, path)
            dropped.append(Diagnostic("missing-bom", subject, f"not found at {path}"))
            return []
        if path.resolve() in chain:
            logger.warning("BOM import cycle detected at %s", subject)
            dropped.append(Diagnostic("cycle", subject, "BOM import loops back"))
            return []
        imported = self._build(path, chain)
        if imported is None:
            dropped.append(Diagnostic("missing-bom", subject, f"could not be read from {path}"))
            return []
        return imported.dependency_management

    def _resolve_dependency(self, dep: Dependency, table: Dict[str, str],
                            managed: Optional[Dict[Tuple[str, str], Dependency]],
                            kind: str, dropped: List[Diagnostic]) -> Optional[Dependency]:
        """Interpolate one dependency, filling its version and attributes from management."""
        group_id = self._interpolate(dep.group_id, table)
        artifact_id = self._interpolate(dep.artifact_id, table)
        if not group_id or not artifact_id:
            self._drop(dropped, "missing-field", f"{group_id}:{artifact_id}",
                       f"{kind} lacks groupId or artifactId")
            return None
        base = managed.get((group_id, artifact_id)) if managed else None
        if dep.version:
            version = self._interpolate(dep.version, table)
        else:
            version = base.version if base else None
        subject = f"{group_id}:{artifact_id}:{version}"
        if not version:
            self._drop(dropped, "missing-field", subject, f"{kind} has no declared or managed version")
            return None
        classifier = self._interpolate(dep.classifier or (base.classifier if base else None), table)
        if any(has_placeholder(v) for v in (group_id, artifact_id, version, classifier)):
            self._drop(dropped, "unresolved-placeholder", subject, f"{kind} is not fully resolved")
            return None
        return Dependency(
            group_id=group_id,
            artifact_id=artifact_id,
            version=version,
            scope=dep.scope or (base.scope if base else None),
            classifier=classifier,
            dep_type=dep.dep_type or (base.dep_type if base else None),
            optional=dep.optional,
        )

    def _resolve_plugins(self, declarations: Declarations, table: Dict[str, str],
                         dropped: List[Diagnostic]):
        """Resolve managed plugins, then plugins, each once against the final table.

        Version precedence for a plugin: its own version expression, then the
        managed plugin's, then the conventional version properties.
        """
        managed: "OrderedDict[Tuple[str, str], Plugin]" = OrderedDict()
        for decl in declarations.managed_plugins:
            resolved = self._resolve_plugin(decl, None, table, "managed plugin", dropped)
            if resolved is not None:
                managed[resolved.ga] = resolved

        managed_decls = {p.ga: p for p in declarations.managed_plugins}
        plugins = []
        for decl in declarations.plugins:
            base = managed_decls.get(decl.ga)
            if base is not None:
                decl = _merge_plugin(base, decl)
            resolved = self._resolve_plugin(decl, managed.get(decl.ga), table, "plugin", dropped)
            if resolved is not None:
                plugins.append(resolved)
        return list(managed.values()), plugins

    def _resolve_plugin(self, decl: Plugin, managed: Optional[Plugin], table: Dict[str, str],
                        kind: str, dropped: List[Diagnostic]) -> Optional[Plugin]:
        group_id = self._interpolate(decl.group_id, table)
        artifact_id = self._interpolate(decl.artifact_id, table)
        if not artifact_id:
            self._drop(dropped, "missing-field", f"{group_id}:", f"{kind} lacks artifactId")
            return None
        if decl.version:
            version = self._interpolate(decl.version, table)
        elif managed is not None:
            version = managed.version
        else:
            version = lookup_plugin_version(group_id, artifact_id, table, self.max_passes)
        subject = f"{group_id}:{artifact_id}:{version}"
        if not version:
            self._drop(dropped, "missing-field", subject, f"{kind} has no resolvable version")
            return None
        if has_placeholder(group_id) or has_placeholder(artifact_id) or has_placeholder(version):
            self._drop(dropped, "unresolved-placeholder", subject, f"{kind} is not fully resolved")
            return None
        dependencies = [
            dep for dep in (
                self._resolve_dependency(d, table, None, f"dependency of {group_id}:{artifact_id}", dropped)
                for d in decl.dependencies
            ) if dep is not None
        ]
        return Plugin(group_id, artifact_id, version, dependencies)

    def _interpolate(self, value: Optional[str], table: Dict[str, str]) -> Optional[str]:
        return resolve_properties(value, table, self.max_passes)

    @staticmethod
    def _drop(dropped: List[Diagnostic], kind: str, subject: str, message: str) -> None:
        logger.debug("Dropping %s: %s", subject, message)
        dropped.append(Diagnostic(kind, subject, message))
