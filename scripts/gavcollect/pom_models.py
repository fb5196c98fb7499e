"""Maven data model classes.

Plain data structures for the three stages a descriptor goes through:
``RawDescriptor`` (one parsed file), ``EffectiveModel`` (merged with its
parent chain and interpolated) and ``ArtifactCoordinate`` (one collected
artifact). The only behavior here is coordinate validation.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .errors import MissingRequiredField, UnresolvedPlaceholder
from .properties import has_placeholder

# groupId assumed for <plugin> entries that omit it.
DEFAULT_PLUGIN_GROUP = "org.apache.maven.plugins"


class SourceType(str, Enum):
    """Why a coordinate was collected."""
    PROJECT = "PROJECT"
    PARENT = "PARENT"
    DEPENDENCY = "DEPENDENCY"
    DEP_MANAGED = "DEP_MANAGED"
    BOM = "BOM"
    PLUGIN = "PLUGIN"
    PLUGIN_MANAGED = "PLUGIN_MANAGED"
    PLUGIN_DEP = "PLUGIN_DEP"


@dataclass
class Dependency:
    """A Maven ``<dependency>`` element.

    Used for ``<dependencies>``, ``<dependencyManagement>`` and plugin-level
    dependency lists alike. Version, scope, type and classifier stay ``None``
    when the element is absent so that managed values can fill them in.

    Attributes:
        group_id: Maven groupId (e.g. ``org.springframework.boot``).
        artifact_id: Maven artifactId (e.g. ``spring-boot-starter-web``).
        version: Version expression, or ``None`` if managed elsewhere.
        scope: compile, provided, runtime, test, system or import.
        classifier: Optional classifier (e.g. ``sources``, ``tests``).
        dep_type: Optional type (e.g. ``pom`` for BOM imports).
        optional: Whether the dependency is marked ``<optional>true</optional>``.
    """
    group_id: str
    artifact_id: str
    version: Optional[str] = None
    scope: Optional[str] = None
    classifier: Optional[str] = None
    dep_type: Optional[str] = None
    optional: bool = False

    @property
    def ga(self) -> Tuple[str, str]:
        return (self.group_id, self.artifact_id)

    @property
    def dependency_key(self) -> Tuple[str, str, str, Optional[str]]:
        """Identity used when a child redeclares an inherited dependency."""
        return (self.group_id, self.artifact_id, self.dep_type or "jar", self.classifier)


@dataclass
class Plugin:
    """A Maven ``<plugin>`` element.

    Attributes:
        group_id: Plugin groupId (defaults to ``org.apache.maven.plugins``).
        artifact_id: Plugin artifactId (e.g. ``maven-compiler-plugin``).
        version: Version expression, or ``None`` if inherited from pluginManagement.
        dependencies: The plugin's own ``<dependencies>`` list.
    """
    group_id: str
    artifact_id: str
    version: Optional[str] = None
    dependencies: List[Dependency] = field(default_factory=list)

    @property
    def ga(self) -> Tuple[str, str]:
        return (self.group_id, self.artifact_id)


@dataclass
class ParentRef:
    """A ``<parent>`` block.

    ``relative_path`` is ``None`` when the element is absent (Maven then
    assumes ``../pom.xml``) and ``""`` when it is declared empty, which
    disables the on-disk lookup.
    """
    group_id: str
    artifact_id: str
    version: str
    relative_path: Optional[str] = None


@dataclass
class RawDescriptor:
    """Parse result for a single descriptor file, before any merging.

    Identity fields are optional because a module may inherit its groupId
    and version from the parent. Nothing in here is interpolated.
    """
    path: Optional[Path] = None
    group_id: Optional[str] = None
    artifact_id: Optional[str] = None
    version: Optional[str] = None
    packaging: Optional[str] = None
    parent: Optional[ParentRef] = None
    properties: Dict[str, str] = field(default_factory=dict)
    dependencies: List[Dependency] = field(default_factory=list)
    dependency_management: List[Dependency] = field(default_factory=list)
    plugins: List[Plugin] = field(default_factory=list)
    managed_plugins: List[Plugin] = field(default_factory=list)
    modules: List[str] = field(default_factory=list)


@dataclass
class Declarations:
    """Merged but uninterpolated declarations of a whole parent chain.

    Children inherit from this rather than from the resolved lists, so that
    every version expression is interpolated exactly once, against the
    final (child-overriding-parent) property table.
    """
    properties: Dict[str, str] = field(default_factory=dict)
    dependencies: List[Dependency] = field(default_factory=list)
    dependency_management: List[Dependency] = field(default_factory=list)
    plugins: List[Plugin] = field(default_factory=list)
    managed_plugins: List[Plugin] = field(default_factory=list)


@dataclass
class Diagnostic:
    """One item that was skipped or dropped during resolution."""
    kind: str
    subject: str
    message: str

    def __str__(self) -> str:
        return f"{self.kind}: {self.subject}: {self.message}"


@dataclass
class EffectiveModel:
    """A descriptor merged with its parent chain and fully interpolated.

    Every version in ``dependencies``, ``dependency_management``,
    ``bom_imports``, ``plugins`` and ``managed_plugins`` is resolved; entries
    that could not be resolved were dropped and described in ``dropped``.

    Attributes:
        path: Descriptor the model was built from.
        group_id: Resolved groupId (inherited from the parent if absent).
        artifact_id: Resolved artifactId.
        version: Resolved version (inherited from the parent if absent).
        packaging: Declared packaging, ``jar`` by default.
        parent: Parent reference with interpolated fields, if any.
        properties: Interpolation table (declared properties of the whole
            chain plus the built-in ``project.*`` values).
        dependencies: Resolved direct and inherited dependencies.
        dependency_management: Resolved managed entries, BOM contents merged in.
        bom_imports: Resolved ``scope=import`` entries, declared or inherited.
        plugins: Resolved ``<build><plugins>``.
        managed_plugins: Resolved ``<build><pluginManagement>`` entries.
        modules: This descriptor's own ``<modules>``.
        declarations: Uninterpolated merged declarations, used for inheritance.
        dropped: Diagnostics for entries removed during interpolation.
    """
    path: Optional[Path] = None
    group_id: Optional[str] = None
    artifact_id: Optional[str] = None
    version: Optional[str] = None
    packaging: str = "jar"
    parent: Optional[ParentRef] = None
    properties: Dict[str, str] = field(default_factory=dict)
    dependencies: List[Dependency] = field(default_factory=list)
    dependency_management: List[Dependency] = field(default_factory=list)
    bom_imports: List[Dependency] = field(default_factory=list)
    plugins: List[Plugin] = field(default_factory=list)
    managed_plugins: List[Plugin] = field(default_factory=list)
    modules: List[str] = field(default_factory=list)
    declarations: Declarations = field(default_factory=Declarations)
    dropped: List[Diagnostic] = field(default_factory=list)

    @property
    def gav(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.version}"


@dataclass(frozen=True)
class ArtifactCoordinate:
    """A fully versioned artifact collected during resolution.

    Equality and hashing only consider ``(group_id, artifact_id, version,
    packaging, classifier)``; ``scope`` and ``source_type`` ride along as
    provenance. Construction fails with ``MissingRequiredField`` or
    ``UnresolvedPlaceholder`` rather than producing a half-resolved value.
    """
    group_id: str
    artifact_id: str
    version: str
    packaging: str = "jar"
    classifier: Optional[str] = None
    scope: Optional[str] = field(default=None, compare=False)
    source_type: SourceType = field(default=SourceType.DEPENDENCY, compare=False)

    def __post_init__(self):
        subject = f"{self.group_id}:{self.artifact_id}:{self.version}"
        for name in ("group_id", "artifact_id", "version"):
            value = getattr(self, name)
            if not value or not value.strip():
                raise MissingRequiredField(f"{name} is blank", subject)
            if has_placeholder(value):
                raise UnresolvedPlaceholder(f"{name} '{value}' is not resolved", subject)
        if has_placeholder(self.classifier):
            raise UnresolvedPlaceholder(f"classifier '{self.classifier}' is not resolved", subject)
        if not self.packaging:
            object.__setattr__(self, "packaging", "jar")

    @property
    def key(self) -> Tuple[str, str, str, str, Optional[str]]:
        return (self.group_id, self.artifact_id, self.version, self.packaging, self.classifier)

    @property
    def gav(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.version}"

    @property
    def ga(self) -> Tuple[str, str]:
        return (self.group_id, self.artifact_id)

    def __str__(self) -> str:
        if self.classifier:
            return f"{self.group_id}:{self.artifact_id}:{self.classifier}:{self.version}:{self.packaging}"
        return f"{self.group_id}:{self.artifact_id}:{self.version}:{self.packaging}"
