"""Descriptor parsing and XML helpers.

Reads one ``pom.xml`` / ``.pom`` file into a ``RawDescriptor``. No property
is resolved here, the parent chain is not followed and no management
section is applied; that is the effective-model builder's job.
"""

import logging
import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional

from .errors import DescriptorNotFound, DescriptorParseError
from .pom_models import DEFAULT_PLUGIN_GROUP, Dependency, ParentRef, Plugin, RawDescriptor

logger = logging.getLogger(__name__)

# XML namespace used by Maven POM files (POM model version 4.0.0).
NS = {"m": "http://maven.apache.org/POM/4.0.0"}


def _find(el, tag, ns=NS):
    """Find a direct child XML element, trying with and without the Maven namespace.

    Args:
        el: Parent XML element to search within.
        tag: Tag name to look for (without namespace prefix).
        ns: Namespace mapping (defaults to Maven POM 4.0.0).

    Returns:
        The first matching child element, or ``None`` if not found.
    """
    result = el.find(f"m:{tag}", ns)
    if result is not None:
        return result
    return el.find(tag)


def _findall(el, tag, ns=NS):
    """All direct children named ``tag``, namespaced ones first."""
    if el is None:
        return []
    return list(el.findall(f"m:{tag}", ns)) + list(el.findall(tag))


def _text(el, tag, ns=NS):
    """Extract the stripped text of a child element, or ``None`` if missing or empty."""
    child = _find(el, tag, ns)
    if child is not None and child.text and child.text.strip():
        return child.text.strip()
    return None


def _local_name(tag: str) -> str:
    return tag.split("}")[-1] if "}" in tag else tag


def _section(el, *path):
    """Walk nested child elements, e.g. ``_section(root, "build", "pluginManagement", "plugins")``."""
    for tag in path:
        if el is None:
            return None
        el = _find(el, tag)
    return el


def _parse_dependency(dep_el) -> Dependency:
    """Parse a ``<dependency>`` element. Absent optional fields stay ``None``."""
    optional_text = _text(dep_el, "optional")
    return Dependency(
        group_id=_text(dep_el, "groupId") or "",
        artifact_id=_text(dep_el, "artifactId") or "",
        version=_text(dep_el, "version"),
        scope=_text(dep_el, "scope"),
        classifier=_text(dep_el, "classifier"),
        dep_type=_text(dep_el, "type"),
        optional=bool(optional_text) and optional_text.lower() == "true",
    )


def _parse_plugin(plugin_el) -> Plugin:
    """Parse a ``<plugin>`` element.

    If groupId is absent it defaults to ``org.apache.maven.plugins``. The
    plugin's own ``<dependencies>`` are kept, its configuration is not.
    """
    deps_el = _find(plugin_el, "dependencies")
    return Plugin(
        group_id=_text(plugin_el, "groupId") or DEFAULT_PLUGIN_GROUP,
        artifact_id=_text(plugin_el, "artifactId") or "",
        version=_text(plugin_el, "version"),
        dependencies=[_parse_dependency(d) for d in _findall(deps_el, "dependency")],
    )


def _parse_parent(parent_el) -> Optional[ParentRef]:
    """Parse the ``<parent>`` block; an incomplete block is ignored with a warning."""
    if parent_el is None:
        return None
    group_id = _text(parent_el, "groupId")
    artifact_id = _text(parent_el, "artifactId")
    version = _text(parent_el, "version")
    if not (group_id and artifact_id and version):
        logger.warning("Incomplete <parent> block ignored: groupId=%s, artifactId=%s, version=%s",
                       group_id, artifact_id, version)
        return None
    rel_el = _find(parent_el, "relativePath")
    relative_path = None
    if rel_el is not None:
        relative_path = (rel_el.text or "").strip()
    return ParentRef(group_id, artifact_id, version, relative_path)


def read_descriptor(pom_path: Path) -> RawDescriptor:
    """Parse a descriptor file into a RawDescriptor.

    Handles both namespaced and non-namespaced POM files in a single pass.

    Args:
        pom_path: Filesystem path to the ``pom.xml`` or ``.pom`` file.

    Returns:
        The unmerged, uninterpolated descriptor.

    Raises:
        DescriptorNotFound: The path is missing or not a regular file.
        DescriptorParseError: The file is not well-formed XML. The exception's
            ``partial`` attribute carries whatever identity could be salvaged.
    """
    pom_path = Path(pom_path)
    if not pom_path.is_file():
        raise DescriptorNotFound(pom_path)
    try:
        root = ET.parse(pom_path).getroot()
    except ET.ParseError as e:
        partial = salvage_descriptor(pom_path.read_text(encoding="utf-8", errors="replace"), pom_path)
        raise DescriptorParseError(pom_path, e, partial) from e

    properties = {}
    props_el = _find(root, "properties")
    if props_el is not None:
        for child in props_el:
            if not isinstance(child.tag, str):
                continue
            if child.text and child.text.strip():
                properties[_local_name(child.tag)] = child.text.strip()

    build_el = _find(root, "build")
    modules = []
    for mod_el in _findall(_find(root, "modules"), "module"):
        if mod_el.text and mod_el.text.strip():
            modules.append(mod_el.text.strip())

    return RawDescriptor(
        path=pom_path,
        group_id=_text(root, "groupId"),
        artifact_id=_text(root, "artifactId"),
        version=_text(root, "version"),
        packaging=_text(root, "packaging"),
        parent=_parse_parent(_find(root, "parent")),
        properties=properties,
        dependencies=[_parse_dependency(d) for d in _findall(_find(root, "dependencies"), "dependency")],
        dependency_management=[
            _parse_dependency(d)
            for d in _findall(_section(root, "dependencyManagement", "dependencies"), "dependency")
        ],
        plugins=[_parse_plugin(p) for p in _findall(_section(build_el, "plugins"), "plugin")],
        managed_plugins=[
            _parse_plugin(p) for p in _findall(_section(build_el, "pluginManagement", "plugins"), "plugin")
        ],
        modules=modules,
    )


_COMMENT = re.compile(r"<!--.*?-->", re.DOTALL)
_PARENT_BLOCK = re.compile(r"<parent>(.*?)</parent>", re.DOTALL)
# Sections whose nested groupId/artifactId/version must not be mistaken for the project's own.
_NESTED_BLOCKS = re.compile(
    r"<(parent|dependencies|dependencyManagement|build|profiles|reporting|distributionManagement)\b.*?</\1>",
    re.DOTALL,
)


def _tag_value(text: str, tag: str) -> Optional[str]:
    match = re.search(rf"<{tag}>\s*([^<]+?)\s*</{tag}>", text)
    return match.group(1) if match else None


def salvage_descriptor(text: str, path: Optional[Path] = None) -> Optional[RawDescriptor]:
    """Best-effort identity extraction from a descriptor that is not valid XML.

    Only top-level identity and the ``<parent>`` block are recovered; lists
    are never salvaged. Used so that a truncated or hand-broken descriptor
    still contributes its own coordinate and its parent.

    Returns:
        A partial RawDescriptor, or ``None`` if neither an artifactId nor a
        complete parent block could be found.
    """
    text = _COMMENT.sub("", text)
    parent = None
    parent_match = _PARENT_BLOCK.search(text)
    if parent_match:
        block = parent_match.group(1)
        g, a, v = (_tag_value(block, t) for t in ("groupId", "artifactId", "version"))
        if g and a and v:
            parent = ParentRef(g, a, v)
    top = _NESTED_BLOCKS.sub("", text)
    artifact_id = _tag_value(top, "artifactId")
    if artifact_id is None and parent is None:
        return None
    return RawDescriptor(
        path=path,
        group_id=_tag_value(top, "groupId"),
        artifact_id=artifact_id,
        version=_tag_value(top, "version"),
        packaging=_tag_value(top, "packaging"),
        parent=parent,
    )


def is_bom_import(dep: Dependency) -> bool:
    """Check whether a managed dependency is a BOM import.

    ``scope`` must be ``import``; ``type`` must be ``pom`` or absent, since
    Maven only allows importing ``pom`` artifacts.
    """
    return dep.scope == "import" and (dep.dep_type or "pom") == "pom"
