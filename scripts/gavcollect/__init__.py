"""Maven effective-model resolution and local artifact coordinate collection."""

from .collector import CoordinateCollector
from .context import ProgressSink, ResolutionContext
from .effective_model import EffectiveModelBuilder
from .pom_models import ArtifactCoordinate, Dependency, EffectiveModel, Plugin, SourceType
from .pom_parser import read_descriptor
from .resolver import GraphResolver, collect_project

__all__ = [
    "ArtifactCoordinate", "CoordinateCollector", "Dependency", "EffectiveModel", "EffectiveModelBuilder",
    "GraphResolver", "Plugin", "ProgressSink", "ResolutionContext", "SourceType", "collect_project",
    "read_descriptor",
]
