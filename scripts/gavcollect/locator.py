"""Local repository path arithmetic.

Maps coordinates onto the standard repository layout::

    <root>/<groupId as path>/<artifactId>/<version>/<artifactId>-<version>.<ext>
"""

from pathlib import Path
from typing import List, Optional

from .errors import RepositoryUnavailable

# Packaging types whose binary is a plain jar file.
_JAR_PACKAGINGS = {"maven-plugin", "bundle", "ejb", "ejb-client", "test-jar", "java-source", "javadoc"}


def packaging_extension(packaging: Optional[str]) -> str:
    """File extension of the binary for a packaging type (``maven-plugin`` -> ``jar``)."""
    if not packaging:
        return "jar"
    return "jar" if packaging in _JAR_PACKAGINGS else packaging


class DescriptorLocator:
    """Resolve coordinates to files in one local repository.

    Args:
        repo_root: Repository root directory. It does not have to exist; an
            absent repository simply never yields a local descriptor.
    """

    def __init__(self, repo_root: Path):
        self.repo_root = Path(repo_root).expanduser().absolute()

    def __repr__(self) -> str:
        return f"DescriptorLocator({str(self.repo_root)!r})"

    def artifact_dir(self, group_id: str, artifact_id: str) -> Path:
        """Directory holding every cached version of ``group_id:artifact_id``."""
        return self.repo_root.joinpath(*group_id.split("."), artifact_id)

    def version_dir(self, group_id: str, artifact_id: str, version: str) -> Path:
        return self.artifact_dir(group_id, artifact_id) / version

    def pom_path_for(self, group_id: str, artifact_id: str, version: str) -> Path:
        """Canonical descriptor path for a GAV."""
        return self.version_dir(group_id, artifact_id, version) / f"{artifact_id}-{version}.pom"

    def artifact_path_for(self, coord) -> Path:
        """Canonical binary path for a coordinate, honoring its classifier.

        ``pom`` packaging maps to the descriptor itself.
        """
        ext = packaging_extension(coord.packaging)
        name = f"{coord.artifact_id}-{coord.version}"
        if coord.classifier:
            name += f"-{coord.classifier}"
        return self.version_dir(coord.group_id, coord.artifact_id, coord.version) / f"{name}.{ext}"

    def local_path_for(self, coord) -> Optional[Path]:
        """The file that best represents ``coord`` locally.

        The binary is preferred; the descriptor is the fallback. Returns
        ``None`` if neither exists.
        """
        binary = self.artifact_path_for(coord)
        if binary.is_file():
            return binary
        pom = self.pom_path_for(coord.group_id, coord.artifact_id, coord.version)
        if pom.is_file():
            return pom
        return None

    def version_dirs(self, group_id: str, artifact_id: str) -> List[Path]:
        """All version directories cached for ``group_id:artifact_id``, sorted by name."""
        artifact_dir = self.artifact_dir(group_id, artifact_id)
        if not artifact_dir.is_dir():
            return []
        return sorted(p for p in artifact_dir.iterdir() if p.is_dir())

    def check_available(self) -> None:
        """Raise ``RepositoryUnavailable`` if the root exists but is not a directory.

        A missing root is not an error: nothing has been cached yet.
        """
        if self.repo_root.exists() and not self.repo_root.is_dir():
            raise RepositoryUnavailable(self.repo_root)
