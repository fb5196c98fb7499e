"""Shared test fixtures for the coordinate collector test suite."""

import textwrap
from pathlib import Path

import pytest

from gavcollect.locator import DescriptorLocator

POM_TEMPLATE = """\
<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
    <modelVersion>4.0.0</modelVersion>
    <groupId>{group_id}</groupId>
    <artifactId>{artifact_id}</artifactId>
    <version>{version}</version>
    {packaging}
{body}
</project>
"""


class LocalRepo:
    """A throwaway local repository laid out like ``~/.m2/repository``."""

    def __init__(self, root: Path):
        self.root = root
        self.locator = DescriptorLocator(root)

    def add_pom(self, group_id, artifact_id, version, body="", packaging=None) -> Path:
        """Write a descriptor with the given identity; ``body`` goes inside ``<project>``."""
        path = self.locator.pom_path_for(group_id, artifact_id, version)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(POM_TEMPLATE.format(
            group_id=group_id,
            artifact_id=artifact_id,
            version=version,
            packaging=f"<packaging>{packaging}</packaging>" if packaging else "",
            body=textwrap.dedent(body),
        ), encoding="utf-8")
        return path

    def add_raw_pom(self, group_id, artifact_id, version, content) -> Path:
        path = self.locator.pom_path_for(group_id, artifact_id, version)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content), encoding="utf-8")
        return path

    def add_file(self, group_id, artifact_id, version, ext="jar", classifier=None) -> Path:
        name = f"{artifact_id}-{version}"
        if classifier:
            name += f"-{classifier}"
        path = self.locator.version_dir(group_id, artifact_id, version) / f"{name}.{ext}"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"PK")
        return path


@pytest.fixture
def tmp_pom(tmp_path):
    """Factory fixture that writes a pom.xml to a temp directory and returns the path."""
    def _write(content: str, name: str = "pom.xml") -> Path:
        pom = tmp_path / name
        pom.parent.mkdir(parents=True, exist_ok=True)
        pom.write_text(textwrap.dedent(content), encoding="utf-8")
        return pom
    return _write


@pytest.fixture
def local_repo(tmp_path):
    """An empty local repository under ``tmp_path/repo``."""
    root = tmp_path / "repo"
    root.mkdir()
    return LocalRepo(root)


@pytest.fixture
def write_module(tmp_path):
    """Factory fixture writing ``<tmp_path>/project/<rel_dir>/pom.xml``."""
    project = tmp_path / "project"

    def _write(rel_dir: str, content: str) -> Path:
        directory = project / rel_dir if rel_dir else project
        directory.mkdir(parents=True, exist_ok=True)
        pom = directory / "pom.xml"
        pom.write_text(textwrap.dedent(content), encoding="utf-8")
        return pom
    return _write
