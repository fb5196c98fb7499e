"""Maven property interpolation.

Substitutes ``${name}`` references against a property table, and looks up
plugin versions through the conventional property names projects use when
a plugin is declared without a version.
"""

import logging
import re
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")

# Upper bound on re-scans; guards against a=${b}, b=${a}.
DEFAULT_MAX_PASSES = 10


def has_placeholder(value: Optional[str]) -> bool:
    """Return ``True`` if ``value`` still contains a ``${...}`` reference."""
    return bool(value) and PLACEHOLDER.search(value) is not None


def resolve_properties(text: Optional[str], properties: Dict[str, str],
                       max_passes: int = DEFAULT_MAX_PASSES) -> Optional[str]:
    """Replace every ``${name}`` in ``text`` with ``properties[name]``.

    Unlike a single anchored lookup, this handles references embedded in a
    larger string (``${major}.${minor}-SNAPSHOT``) and values that refer to
    other properties. The text is re-scanned until nothing changes or
    ``max_passes`` is reached; unknown names are left verbatim.

    Args:
        text: The string to interpolate. ``None`` and ``""`` pass through.
        properties: Property table to substitute from.
        max_passes: Maximum number of substitution passes.

    Returns:
        The interpolated string. It may still contain ``${...}`` if a name is
        unknown or the references are circular; callers use
        :func:`has_placeholder` to decide whether to drop the value.
    """
    if not text:
        return text

    def _lookup(match):
        value = properties.get(match.group(1))
        return match.group(0) if value is None else value

    result = text
    for _ in range(max_passes):
        substituted = PLACEHOLDER.sub(_lookup, result)
        if substituted == result:
            return result
        result = substituted
    if has_placeholder(result):
        logger.warning("Property interpolation stopped after %d passes, possible circular reference: %s",
                       max_passes, text)
    return result


def plugin_version_keys(group_id: str, artifact_id: str) -> List[str]:
    """Candidate property names holding a plugin's version, in lookup order.

    1. ``<groupId>:<artifactId>.version``
    2. ``<artifactId>.version``
    3. ``plugin.<artifactId>.version``
    4. ``<short>.plugin.version``, where ``<short>`` is the artifactId without
       its ``maven-`` prefix and ``-maven-plugin``/``-plugin`` suffix
       (``maven-jar-plugin`` -> ``jar.plugin.version``)
    """
    keys = [
        f"{group_id}:{artifact_id}.version",
        f"{artifact_id}.version",
        f"plugin.{artifact_id}.version",
    ]
    short = artifact_id
    if short.startswith("maven-"):
        short = short[len("maven-"):]
    for suffix in ("-maven-plugin", "-plugin"):
        if short.endswith(suffix):
            short = short[:-len(suffix)]
            break
    if short and short != artifact_id:
        keys.append(f"{short}.plugin.version")
    return keys


def lookup_plugin_version(group_id: str, artifact_id: str, properties: Dict[str, str],
                          max_passes: int = DEFAULT_MAX_PASSES) -> Optional[str]:
    """Find a plugin version through the conventional property names.

    The first candidate from :func:`plugin_version_keys` that is present and
    interpolates to a placeholder-free value wins.

    Returns:
        The resolved version, or ``None`` if no candidate applies.
    """
    for key in plugin_version_keys(group_id, artifact_id):
        raw = properties.get(key)
        if not raw:
            continue
        value = resolve_properties(raw, properties, max_passes)
        if value and not has_placeholder(value):
            logger.debug("Plugin %s:%s version %s taken from property %s",
                         group_id, artifact_id, value, key)
            return value
    return None


def builtin_properties(group_id, artifact_id, version, packaging, parent=None) -> Dict[str, str]:
    """Built-in ``project.*`` values for a model's interpolation table.

    Also provides the legacy ``pom.*`` aliases and the bare ``groupId`` /
    ``artifactId`` / ``version`` names that older descriptors still use.
    ``None`` values are omitted so the references stay visibly unresolved.
    """
    values = {
        "groupId": group_id,
        "artifactId": artifact_id,
        "version": version,
        "packaging": packaging,
    }
    if parent is not None:
        values["parent.groupId"] = parent.group_id
        values["parent.artifactId"] = parent.artifact_id
        values["parent.version"] = parent.version
    result = {}
    for name, value in values.items():
        if value is None:
            continue
        result[f"project.{name}"] = value
        result[f"pom.{name}"] = value
        if "." not in name and name != "packaging":
            result[name] = value
    return result
